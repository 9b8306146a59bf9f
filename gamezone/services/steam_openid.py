"""Steam sign-in through OpenID 2.0.

Steam is the only provider, so the flow is the direct one: redirect to
the Steam login page, then ask Steam to confirm the signed assertion it
sends back (``check_authentication``).
"""
from __future__ import annotations

import logging
import re
from typing import Mapping
from urllib.parse import urlencode

import httpx

log = logging.getLogger(__name__)

OPENID_ENDPOINT = "https://steamcommunity.com/openid/login"
OPENID_NS = "http://specs.openid.net/auth/2.0"
IDENTIFIER_SELECT = "http://specs.openid.net/auth/2.0/identifier_select"

_CLAIMED_ID_RE = re.compile(r"https?://steamcommunity\.com/openid/id/([0-9]{17})")


def login_url(return_to: str, realm: str) -> str:
    params = {
        "openid.ns": OPENID_NS,
        "openid.mode": "checkid_setup",
        "openid.return_to": return_to,
        "openid.realm": realm,
        "openid.identity": IDENTIFIER_SELECT,
        "openid.claimed_id": IDENTIFIER_SELECT,
    }
    return f"{OPENID_ENDPOINT}?{urlencode(params)}"


def claimed_steam_id(params: Mapping[str, str]) -> str | None:
    match = _CLAIMED_ID_RE.fullmatch(params.get("openid.claimed_id", ""))
    return match.group(1) if match else None


async def verify(
    client: httpx.AsyncClient, params: Mapping[str, str], return_to: str
) -> str | None:
    """Return the signed-in Steam id, or None when Steam does not vouch for it."""
    if params.get("openid.mode") != "id_res":
        log.info("Steam sign-in cancelled or malformed (mode=%s)", params.get("openid.mode"))
        return None
    if not params.get("openid.return_to", "").startswith(return_to):
        log.warning("Steam sign-in return_to mismatch: %s", params.get("openid.return_to"))
        return None
    steam_id = claimed_steam_id(params)
    if steam_id is None:
        log.warning("Steam sign-in without a usable claimed_id")
        return None

    body = {k: v for k, v in params.items() if k.startswith("openid.")}
    body["openid.mode"] = "check_authentication"
    try:
        resp = await client.post(OPENID_ENDPOINT, data=body)
    except httpx.HTTPError as e:
        log.warning("Steam OpenID verification failed: %s", e)
        return None
    if resp.status_code != 200 or "is_valid:true" not in resp.text:
        log.warning("Steam rejected the sign-in assertion (status %s)", resp.status_code)
        return None
    return steam_id
