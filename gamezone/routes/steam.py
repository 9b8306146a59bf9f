from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from gamezone.auth import (
    check_app_id,
    check_steam_id,
    current_user,
    require_steam,
    require_steam_api,
    require_steam_session,
)
from gamezone.errors import ConfigurationError, NotFoundError, ValidationError
from gamezone.services import ggdeals, steam
from gamezone.services.proxy import ProxyResult

router = APIRouter(prefix="/api/steam")


def _ctx(request: Request):
    state = request.app.state
    return state.http, state.cache, state.settings


def _games_response(result: ProxyResult, steam_id: str) -> dict:
    if result.ok:
        return {
            "success": True,
            "games": result.data,
            "total": len(result.data),
            "steamId": steam_id,
            "fromCache": result.from_cache,
        }
    message = (
        "The profile is private"
        if result.status == "forbidden"
        else "No games or the profile is private"
    )
    return {"success": True, "games": [], "total": 0, "steamId": steam_id, "message": message}


def _profile_response(result: ProxyResult) -> dict:
    if not result.ok:
        raise NotFoundError("Steam profile not found")
    return {"success": True, "profile": result.data, "fromCache": result.from_cache}


def _achievements_response(result: ProxyResult, app_id: int) -> dict:
    if result.ok:
        return {"success": True, **result.data, "fromCache": result.from_cache}
    return {
        "success": True,
        **steam.empty_achievements(app_id, private=result.status == "forbidden"),
    }


@router.get("/games")
async def my_games(request: Request, steam_id: str = Depends(require_steam)):
    client, cache, settings = _ctx(request)
    result = await steam.owned_games(client, cache, settings, steam_id)
    return _games_response(result, steam_id)


@router.get("/games/{steam_id}", dependencies=[Depends(require_steam_api)])
async def games_for(steam_id: str, request: Request):
    check_steam_id(steam_id)
    client, cache, settings = _ctx(request)
    result = await steam.owned_games(client, cache, settings, steam_id)
    return _games_response(result, steam_id)


@router.get("/profile")
async def my_profile(request: Request, steam_id: str = Depends(require_steam)):
    client, cache, settings = _ctx(request)
    return _profile_response(await steam.player_profile(client, cache, settings, steam_id))


@router.get("/profile/{steam_id}", dependencies=[Depends(require_steam_api)])
async def profile_for(steam_id: str, request: Request):
    check_steam_id(steam_id)
    client, cache, settings = _ctx(request)
    return _profile_response(await steam.player_profile(client, cache, settings, steam_id))


@router.get("/resolve/{vanity}", dependencies=[Depends(require_steam_api)])
async def resolve(vanity: str, request: Request):
    client, cache, settings = _ctx(request)
    result = await steam.resolve_vanity(client, cache, settings, vanity)
    if not result.ok:
        raise NotFoundError("Steam user not found")
    return {"success": True, "steamId": result.data}


@router.get("/achievements/{app_id}")
async def my_achievements(
    app_id: str, request: Request, steam_id: str = Depends(require_steam_session)
):
    appid = check_app_id(app_id)
    client, cache, settings = _ctx(request)
    result = await steam.achievements(client, cache, settings, steam_id, appid)
    return _achievements_response(result, appid)


@router.get(
    "/achievements/{app_id}/{steam_id}",
    dependencies=[Depends(current_user), Depends(require_steam_api)],
)
async def achievements_for(app_id: str, steam_id: str, request: Request):
    appid = check_app_id(app_id)
    check_steam_id(steam_id)
    client, cache, settings = _ctx(request)
    result = await steam.achievements(client, cache, settings, steam_id, appid)
    return _achievements_response(result, appid)


@router.get("/friends")
async def my_friends(request: Request, steam_id: str = Depends(require_steam)):
    client, cache, settings = _ctx(request)
    result = await steam.friends(client, cache, settings, steam_id)
    if result.ok:
        return {
            "success": True,
            "friends": result.data,
            "total": len(result.data),
            "fromCache": result.from_cache,
        }
    if result.status == "forbidden":
        return {"success": True, "friends": [], "total": 0, "message": "Friends list is private"}
    return {
        "success": True,
        "friends": [],
        "total": 0,
        "message": "No friends or the list is private",
    }


@router.get("/prices")
async def prices(request: Request, appIds: str | None = None):
    if not appIds:
        raise ValidationError("Missing appIds parameter")
    client, cache, settings = _ctx(request)
    if not settings.GGDEALS_API_KEY:
        raise ConfigurationError("gg.deals API is not configured")

    ids = ggdeals.normalize_ids(appIds.split(","))
    if not ids or not all(i.isascii() and i.isdigit() for i in ids):
        raise ValidationError("Invalid appIds parameter")

    result = await ggdeals.prices(client, cache, settings, ids)
    return {
        "success": True,
        "prices": result.data if result.ok else {},
        "fromCache": result.from_cache,
    }
