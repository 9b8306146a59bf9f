from __future__ import annotations

import logging
import re
import sqlite3

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, RedirectResponse
from pydantic import BaseModel

from gamezone.auth import current_user, end_session, public_user, start_session
from gamezone.errors import (
    AuthenticationError,
    ConflictError,
    GameZoneError,
    ValidationError,
)
from gamezone.security import MAX_PASSWORD_BYTES, hash_password, verify_password
from gamezone.services import steam, steam_openid

log = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth")

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
# Domain of the placeholder addresses given to Steam-only accounts.
STEAM_EMAIL_DOMAIN = "@gamezone.local"


class RegisterRequest(BaseModel):
    username: str | None = None
    email: str | None = None
    password: str | None = None


class LoginRequest(BaseModel):
    email: str | None = None
    password: str | None = None
    remember: bool = False


def _validate_registration(body: RegisterRequest) -> None:
    if not body.username or not body.email or not body.password:
        raise ValidationError("All fields are required")
    if not 3 <= len(body.username) <= 30:
        raise ValidationError("Username must be 3-30 characters long")
    if not EMAIL_RE.match(body.email):
        raise ValidationError("Invalid email address")
    if body.email.lower().endswith(STEAM_EMAIL_DOMAIN):
        raise ValidationError("This email domain is reserved")
    if len(body.password) < 8:
        raise ValidationError("Password must be at least 8 characters long")
    if len(body.password.encode()) > MAX_PASSWORD_BYTES:
        raise ValidationError("Password is too long")


@router.post("/register")
async def register(body: RegisterRequest, request: Request):
    _validate_registration(body)
    users = request.app.state.users
    if users.find_by_email(body.email):
        raise ConflictError("A user with this email already exists")

    password_hash = await hash_password(
        body.password, rounds=request.app.state.settings.BCRYPT_ROUNDS
    )
    try:
        user = users.create(body.username, body.email, password_hash)
    except sqlite3.IntegrityError:
        raise ConflictError("Username or email is already taken")

    log.info("Registered user %s", user["id"])
    start_session(request, user)
    return JSONResponse(
        {
            "success": True,
            "message": "Account created",
            "user": {"id": user["id"], "username": user["username"], "email": user["email"]},
        },
        status_code=201,
    )


@router.post("/login")
async def login(body: LoginRequest, request: Request):
    if not body.email or not body.password:
        raise ValidationError("Email and password are required")

    users = request.app.state.users
    user = users.find_by_email(body.email)
    if not user:
        raise AuthenticationError("Invalid email or password")
    if not user["password_hash"]:
        raise AuthenticationError("This account uses Steam sign-in")
    if not await verify_password(body.password, user["password_hash"]):
        raise AuthenticationError("Invalid email or password")

    users.update_last_login(user["id"])
    start_session(request, user, remember=body.remember)
    session_user = public_user(user)
    return {
        "success": True,
        "message": "Logged in",
        "user": {k: v for k, v in session_user.items() if k != "steamId"},
    }


@router.post("/logout")
async def logout(request: Request):
    end_session(request)
    return {"success": True, "message": "Logged out"}


@router.get("/me")
async def me(user: dict = Depends(current_user)):
    return {"success": True, "user": user}


# ---- Steam sign-in -----------------------------------------------------


def _login_error(code: str) -> RedirectResponse:
    return RedirectResponse(f"/login.html?error={code}", status_code=302)


@router.get("/steam")
async def steam_login(request: Request):
    settings = request.app.state.settings
    if not settings.STEAM_API_KEY:
        return _login_error("steam_not_configured")
    return RedirectResponse(
        steam_openid.login_url(settings.steam_return_url(), settings.steam_realm()),
        status_code=302,
    )


async def _steam_persona(request: Request, steam_id: str) -> tuple[str, str | None]:
    """Display name and avatar for a fresh Steam sign-in."""
    state = request.app.state
    try:
        result = await steam.player_profile(state.http, state.cache, state.settings, steam_id)
    except GameZoneError as e:
        log.warning("No Steam profile for %s during sign-in: %s", steam_id, e)
        return f"steam_{steam_id}", None
    if not result.ok:
        return f"steam_{steam_id}", None
    profile = result.data
    name = profile.get("personaName") or f"steam_{steam_id}"
    return name, profile.get("avatarFull") or profile.get("avatar")


def _create_steam_user(users, steam_id: str, name: str, avatar: str | None) -> dict:
    email = f"steam_{steam_id}{STEAM_EMAIL_DOMAIN}"
    try:
        return users.create_with_steam(name, email, steam_id, name, avatar)
    except sqlite3.IntegrityError:
        # persona name already used as a local username
        return users.create_with_steam(
            f"{name}_{steam_id[-6:]}", email, steam_id, name, avatar
        )


@router.get("/steam/callback")
async def steam_callback(request: Request):
    state = request.app.state
    settings = state.settings
    if not settings.STEAM_API_KEY:
        return _login_error("steam_not_configured")

    steam_id = await steam_openid.verify(
        state.http, dict(request.query_params), settings.steam_return_url()
    )
    if steam_id is None:
        return _login_error("steam_failed")

    users = state.users
    user = users.find_by_steam_id(steam_id)
    if user is None:
        name, avatar = await _steam_persona(request, steam_id)
        linking_id = request.session.get("user_id")
        if linking_id and users.find_by_id(linking_id):
            user = users.link_steam(linking_id, steam_id, name, avatar)
            log.info("Linked Steam %s to user %s", steam_id, linking_id)
        else:
            try:
                user = _create_steam_user(users, steam_id, name, avatar)
            except sqlite3.IntegrityError as e:
                log.warning("Could not create a user for Steam %s: %s", steam_id, e)
                return _login_error("steam_failed")
            log.info("Created user %s from Steam %s", user["id"], steam_id)

    users.update_last_login(user["id"])
    start_session(request, user)
    return RedirectResponse("/?login=steam_success", status_code=302)
