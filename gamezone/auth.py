from __future__ import annotations

import re
import time

from fastapi import Depends, Request

from gamezone.errors import AuthenticationError, ConfigurationError, ValidationError

STEAM_ID_RE = re.compile(r"[0-9]{17}")


def public_user(user: dict) -> dict:
    """The subset of a ``users`` row that is safe to keep in the session."""
    return {
        "id": user["id"],
        "username": user["username"],
        "email": user["email"],
        "steamId": user.get("steam_id"),
        "steamUsername": user.get("steam_username"),
        "avatarUrl": user.get("avatar_url"),
    }


def start_session(request: Request, user: dict, *, remember: bool = False) -> None:
    settings = request.app.state.settings
    lifetime = settings.REMEMBER_MAX_AGE if remember else settings.SESSION_MAX_AGE
    request.session.clear()
    request.session["user_id"] = user["id"]
    request.session["user"] = public_user(user)
    request.session["expires_at"] = time.time() + lifetime


def end_session(request: Request) -> None:
    request.session.clear()


def check_steam_id(steam_id: str) -> str:
    if not STEAM_ID_RE.fullmatch(steam_id):
        raise ValidationError("Invalid Steam ID format")
    return steam_id


def check_app_id(app_id: str) -> int:
    if not (app_id.isascii() and app_id.isdigit()):
        raise ValidationError("Invalid app ID")
    return int(app_id)


async def current_user(request: Request) -> dict:
    """Dependency: the logged-in user from the session cookie."""
    if not request.session.get("user_id"):
        raise AuthenticationError("You are not logged in")
    if request.session.get("expires_at", 0) <= time.time():
        request.session.clear()
        raise AuthenticationError("Your session has expired")
    return request.session["user"]


async def require_steam_api(request: Request) -> None:
    """Dependency: STEAM_API_KEY must be configured."""
    if not request.app.state.settings.STEAM_API_KEY:
        raise ConfigurationError("Steam API is not configured")


async def require_steam(
    request: Request, user: dict = Depends(current_user)
) -> str:
    """Dependency: logged in with a linked Steam account; returns its id."""
    if not user.get("steamId"):
        raise ValidationError("Steam account is not linked")
    await require_steam_api(request)
    return user["steamId"]


async def require_steam_session(
    request: Request, user: dict = Depends(current_user)
) -> str:
    """Like ``require_steam``, but an unlinked account is a 401."""
    if not user.get("steamId"):
        raise AuthenticationError("You are not logged in or Steam is not linked")
    await require_steam_api(request)
    return user["steamId"]
