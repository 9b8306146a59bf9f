"""gg.deals price lookups keyed by Steam app id."""
from __future__ import annotations

import logging

import httpx

from gamezone.cache import TTLCache, set_key
from gamezone.services.proxy import ProxyResult, load_cached
from gamezone.services.steam import round_half_up
from gamezone.services.upstream import RESOURCE_POLICIES, fetch

log = logging.getLogger(__name__)

PRICES_URL = "https://api.gg.deals/v1/prices/by-steam-app-id/"
GAME_PAGE_URL = "https://gg.deals/game/?steam_app_id={app_id}"

MAX_IDS = 100


def _price(value) -> float | None:
    """gg.deals sends prices as strings; blank or zero means no offer."""
    if value in (None, ""):
        return None
    try:
        price = float(value)
    except (TypeError, ValueError):
        return None
    return price or None


def discount_percent(current: float | None, regular: float | None) -> int:
    if current and regular and regular > current:
        return int(round_half_up((1 - current / regular) * 100))
    return 0


def price_quote(app_id: str, game: dict | None, default_currency: str) -> dict | None:
    """One gg.deals entry -> quote, preferring keyshop offers over retail."""
    if not game or not game.get("prices"):
        return None
    p = game["prices"]

    keyshop = _price(p.get("currentKeyshops"))
    retail = _price(p.get("currentRetail"))
    current = keyshop or retail

    lows = [
        low
        for low in (_price(p.get("historicalKeyshops")), _price(p.get("historicalRetail")))
        if low is not None
    ]

    return {
        "currentPrice": current,
        "regularPrice": retail,
        "discount": discount_percent(current, retail),
        "currency": p.get("currency") or default_currency,
        "url": game.get("url") or GAME_PAGE_URL.format(app_id=app_id),
        "historicalLow": min(lows) if lows else None,
        "source": "keyshop" if keyshop else "retail",
    }


def build_prices(payload: dict, default_currency: str) -> dict[str, dict | None]:
    return {
        str(app_id): price_quote(str(app_id), game, default_currency)
        for app_id, game in (payload.get("data") or {}).items()
    }


def normalize_ids(app_ids: list[str]) -> list[str]:
    """Drop blanks and duplicates, keep the first ``MAX_IDS``."""
    seen = dict.fromkeys(a.strip() for a in app_ids if a.strip())
    return list(seen)[:MAX_IDS]


async def prices(
    client: httpx.AsyncClient, cache: TTLCache, settings, app_ids: list[str]
) -> ProxyResult:
    """Quotes for a batch of app ids, cached as one entry per id set."""
    policy = RESOURCE_POLICIES["prices"]
    ids = sorted(normalize_ids(app_ids))
    params = {
        "ids": ",".join(ids),
        "key": settings.GGDEALS_API_KEY,
        "region": settings.GGDEALS_REGION,
    }
    return await load_cached(
        cache,
        set_key("prices", ids),
        policy.ttl(settings),
        lambda: fetch(
            client,
            PRICES_URL,
            policy,
            params,
            lambda p: build_prices(p, settings.GGDEALS_DEFAULT_CURRENCY),
        ),
        "Failed to fetch prices",
    )
