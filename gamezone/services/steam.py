"""Steam Web API client: owned games, profiles, achievements, friends.

Each public coroutine goes through the shared response cache and returns
a ``ProxyResult``; the record builders are plain functions so routes and
tests can use them directly.
"""
from __future__ import annotations

import logging
import math

import httpx

from gamezone.cache import TTLCache, make_key
from gamezone.services.proxy import ProxyResult, load_cached
from gamezone.services.upstream import (
    RESOURCE_POLICIES,
    EmptyResult,
    Success,
    fetch,
    lookup,
)

log = logging.getLogger(__name__)

API_BASE = "https://api.steampowered.com"
OWNED_GAMES_URL = f"{API_BASE}/IPlayerService/GetOwnedGames/v1/"
PLAYER_SUMMARIES_URL = f"{API_BASE}/ISteamUser/GetPlayerSummaries/v2/"
RESOLVE_VANITY_URL = f"{API_BASE}/ISteamUser/ResolveVanityURL/v1/"
FRIEND_LIST_URL = f"{API_BASE}/ISteamUser/GetFriendList/v1/"
ACHIEVEMENTS_URL = f"{API_BASE}/ISteamUserStats/GetPlayerAchievements/v1/"

MEDIA_URL = "https://media.steampowered.com/steamcommunity/public/images/apps"
HEADER_URL = "https://cdn.cloudflare.steamstatic.com/steam/apps/{appid}/header.jpg"

# GetPlayerSummaries accepts at most 100 ids per call
MAX_SUMMARY_IDS = 100


def round_half_up(value: float, digits: int = 0) -> float:
    """Round like a calculator does (2.5 -> 3), not like ``round``."""
    factor = 10**digits
    return math.floor(value * factor + 0.5) / factor


# ---- Record builders ---------------------------------------------------


def playtime_hours(minutes: int) -> float:
    return round_half_up(minutes / 60, 1)


def _image_url(appid: int, image_hash: str | None) -> str | None:
    if not image_hash:
        return None
    return f"{MEDIA_URL}/{appid}/{image_hash}.jpg"


def game_record(game: dict) -> dict:
    appid = game["appid"]
    minutes = game.get("playtime_forever", 0)
    return {
        "appId": appid,
        "name": game.get("name"),
        "playtime": minutes,
        "playtimeHours": playtime_hours(minutes),
        "playtime2Weeks": game.get("playtime_2weeks", 0),
        "iconUrl": _image_url(appid, game.get("img_icon_url")),
        "logoUrl": _image_url(appid, game.get("img_logo_url")),
        "headerUrl": HEADER_URL.format(appid=appid),
        "lastPlayed": game.get("rtime_last_played") or None,
    }


def build_games(payload: dict) -> list[dict]:
    """GetOwnedGames response -> records, most played first."""
    games = [game_record(g) for g in payload["response"]["games"]]
    games.sort(key=lambda g: g["playtime"], reverse=True)
    return games


def profile_record(player: dict) -> dict:
    return {
        "steamId": player.get("steamid"),
        "personaName": player.get("personaname"),
        "profileUrl": player.get("profileurl"),
        "avatar": player.get("avatar"),
        "avatarMedium": player.get("avatarmedium"),
        "avatarFull": player.get("avatarfull"),
        # 0=offline, 1=online, 2=busy, ...
        "personaState": player.get("personastate"),
        # 1=private, 3=public
        "visibility": player.get("communityvisibilitystate"),
        "lastLogoff": player.get("lastlogoff"),
    }


def achievement_percentage(unlocked: int, total: int) -> int:
    if total <= 0:
        return 0
    return int(round_half_up(unlocked / total * 100))


def empty_achievements(app_id: int, *, private: bool = False) -> dict:
    summary = {
        "appId": app_id,
        "hasAchievements": False,
        "total": 0,
        "unlocked": 0,
        "percentage": 0,
    }
    if private:
        summary["isPrivate"] = True
    return summary


def summarize_achievements(app_id: int, payload: dict) -> dict:
    stats = payload["playerstats"]
    achievements = stats["achievements"]
    total = len(achievements)
    unlocked = sum(1 for a in achievements if a.get("achieved") == 1)
    return {
        "appId": app_id,
        "hasAchievements": True,
        "total": total,
        "unlocked": unlocked,
        "percentage": achievement_percentage(unlocked, total),
        "gameName": stats.get("gameName"),
    }


def friend_record(player: dict) -> dict:
    return {
        "steamId": player.get("steamid"),
        "username": player.get("personaname") or "",
        "avatarUrl": player.get("avatarmedium") or player.get("avatar"),
        "profileUrl": player.get("profileurl"),
        "isOnline": (player.get("personastate") or 0) > 0,
    }


def sort_friends(friends: list[dict]) -> list[dict]:
    """Online first, then by name ignoring case."""
    return sorted(friends, key=lambda f: (not f["isOnline"], f["username"].casefold()))


def build_friends(payload: dict) -> list[dict]:
    return sort_friends([friend_record(p) for p in payload["response"]["players"]])


# ---- Public API --------------------------------------------------------


async def owned_games(
    client: httpx.AsyncClient, cache: TTLCache, settings, steam_id: str
) -> ProxyResult:
    policy = RESOURCE_POLICIES["games"]
    params = {
        "key": settings.STEAM_API_KEY,
        "steamid": steam_id,
        "include_appinfo": 1,
        "include_played_free_games": 1,
        "format": "json",
    }
    return await load_cached(
        cache,
        make_key("games", steam_id),
        policy.ttl(settings),
        lambda: fetch(client, OWNED_GAMES_URL, policy, params, build_games),
        "Failed to fetch the games list",
    )


async def player_profile(
    client: httpx.AsyncClient, cache: TTLCache, settings, steam_id: str
) -> ProxyResult:
    policy = RESOURCE_POLICIES["profile"]
    params = {"key": settings.STEAM_API_KEY, "steamids": steam_id}
    return await load_cached(
        cache,
        make_key("profile", steam_id),
        policy.ttl(settings),
        lambda: fetch(
            client,
            PLAYER_SUMMARIES_URL,
            policy,
            params,
            lambda p: profile_record(p["response"]["players"][0]),
        ),
        "Failed to fetch the Steam profile",
    )


async def resolve_vanity(
    client: httpx.AsyncClient, cache: TTLCache, settings, vanity: str
) -> ProxyResult:
    """Vanity profile name -> 64-bit Steam id."""
    policy = RESOURCE_POLICIES["resolve"]
    params = {"key": settings.STEAM_API_KEY, "vanityurl": vanity}
    return await load_cached(
        cache,
        make_key("resolve", vanity.lower()),
        policy.ttl(settings),
        lambda: fetch(
            client,
            RESOLVE_VANITY_URL,
            policy,
            params,
            lambda p: p["response"]["steamid"],
        ),
        "Failed to look up the Steam user",
    )


async def achievements(
    client: httpx.AsyncClient,
    cache: TTLCache,
    settings,
    steam_id: str,
    app_id: int,
) -> ProxyResult:
    policy = RESOURCE_POLICIES["achievements"]
    params = {
        "key": settings.STEAM_API_KEY,
        "steamid": steam_id,
        "appid": app_id,
        "l": settings.STEAM_LANGUAGE,
    }
    return await load_cached(
        cache,
        make_key("achievements", steam_id, app_id),
        policy.ttl(settings),
        lambda: fetch(
            client,
            ACHIEVEMENTS_URL,
            policy,
            params,
            lambda p: summarize_achievements(app_id, p),
        ),
        "Failed to fetch achievements",
    )


async def friends(
    client: httpx.AsyncClient, cache: TTLCache, settings, steam_id: str
) -> ProxyResult:
    """Friend list joined with the friends' player summaries."""

    async def produce():
        listed = await fetch(
            client,
            FRIEND_LIST_URL,
            RESOURCE_POLICIES["friends"],
            {"key": settings.STEAM_API_KEY, "steamid": steam_id, "relationship": "friend"},
        )
        if not isinstance(listed, Success):
            return listed
        ids = [
            f["steamid"]
            for f in lookup(listed.payload, ("friendslist", "friends"))
            if f.get("steamid")
        ][:MAX_SUMMARY_IDS]
        if not ids:
            return EmptyResult(reason="no friends")
        return await fetch(
            client,
            PLAYER_SUMMARIES_URL,
            RESOURCE_POLICIES["friend_profiles"],
            {"key": settings.STEAM_API_KEY, "steamids": ",".join(ids)},
            build_friends,
        )

    return await load_cached(
        cache,
        make_key("friends", steam_id),
        RESOURCE_POLICIES["friends"].ttl(settings),
        produce,
        "Failed to fetch the friends list",
    )
