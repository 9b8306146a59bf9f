"""Cache-first loading of upstream resources."""
from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Literal

from pydantic import BaseModel

from gamezone.cache import TTLCache
from gamezone.errors import UpstreamFailure
from gamezone.services.upstream import (
    EmptyResult,
    FetchOutcome,
    Forbidden,
    Success,
)

log = logging.getLogger(__name__)


class ProxyResult(BaseModel):
    status: Literal["ok", "empty", "forbidden"]
    data: Any = None
    from_cache: bool = False
    reason: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == "ok"


async def load_cached(
    cache: TTLCache,
    key: str,
    ttl: float,
    produce: Callable[[], Awaitable[FetchOutcome]],
    failure_message: str,
) -> ProxyResult:
    """Serve *key* from *cache* while fresh, otherwise call *produce*.

    Only ``Success`` payloads are stored.  Empty and forbidden outcomes
    are handed back uncached so a profile that turns public again is
    picked up on the next request.  Anything else raises
    ``UpstreamFailure`` carrying *failure_message* and nothing from the
    upstream body.
    """
    entry = cache.get_fresh(key, ttl)
    if entry is not None:
        log.debug("Cache hit %s", key)
        return ProxyResult(status="ok", data=entry.payload, from_cache=True)

    outcome = await produce()
    if isinstance(outcome, Success):
        cache.put(key, outcome.payload)
        return ProxyResult(status="ok", data=outcome.payload)
    if isinstance(outcome, EmptyResult):
        return ProxyResult(status="empty", reason=outcome.reason)
    if isinstance(outcome, Forbidden):
        return ProxyResult(status="forbidden", reason=outcome.reason)

    log.error("Loading %s failed: status=%s", key, outcome.status_code)
    raise UpstreamFailure(failure_message)
