"""Upstream JSON fetcher with resource-aware outcome classification.

Steam and gg.deals report "nothing here" in several ways: a 200 with the
interesting field missing, a 400 for games without stats, a 403 for
private profiles.  ``classify`` turns a status + body into one of four
outcomes using a per-resource ``ResourcePolicy`` so that callers only
ever branch on the outcome type.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Callable, Union

import httpx
from pydantic import BaseModel, ConfigDict

log = logging.getLogger(__name__)

_SNIPPET = 500


class Success(BaseModel):
    payload: Any = None


class EmptyResult(BaseModel):
    reason: str = ""


class Forbidden(BaseModel):
    reason: str = ""


class UpstreamError(BaseModel):
    status_code: int | None = None
    body: str = ""


FetchOutcome = Union[Success, EmptyResult, Forbidden, UpstreamError]


class ResourcePolicy(BaseModel):
    """How one upstream resource signals success, emptiness and privacy."""

    model_config = ConfigDict(frozen=True)

    name: str
    expected: tuple[str, ...]
    ttl_setting: str | None = None
    empty_statuses: frozenset[int] = frozenset()
    forbidden_statuses: frozenset[int] = frozenset()
    private_markers: tuple[str, ...] = ()
    # Path to a boolean the upstream sets to false when it has no data.
    success_flag: tuple[str, ...] | None = None
    require_items: bool = False

    def ttl(self, settings) -> int:
        return getattr(settings, self.ttl_setting) if self.ttl_setting else 0


# HTTP 400 -> empty is a GetPlayerAchievements quirk (games without
# stats); it is deliberately not applied to any other resource.
RESOURCE_POLICIES: dict[str, ResourcePolicy] = {
    "games": ResourcePolicy(
        name="games",
        expected=("response", "games"),
        ttl_setting="TTL_GAMES",
        forbidden_statuses=frozenset({401, 403}),
    ),
    "profile": ResourcePolicy(
        name="profile",
        expected=("response", "players"),
        ttl_setting="TTL_PROFILE",
        require_items=True,
    ),
    "resolve": ResourcePolicy(
        name="resolve",
        expected=("response", "steamid"),
        ttl_setting="TTL_PROFILE",
    ),
    "achievements": ResourcePolicy(
        name="achievements",
        expected=("playerstats", "achievements"),
        ttl_setting="TTL_ACHIEVEMENTS",
        empty_statuses=frozenset({400}),
        forbidden_statuses=frozenset({401, 403}),
        private_markers=("Profile is not public",),
        success_flag=("playerstats", "success"),
    ),
    "friends": ResourcePolicy(
        name="friends",
        expected=("friendslist", "friends"),
        ttl_setting="TTL_FRIENDS",
        forbidden_statuses=frozenset({401, 403}),
        require_items=True,
    ),
    "friend_profiles": ResourcePolicy(
        name="friend_profiles",
        expected=("response", "players"),
        ttl_setting="TTL_FRIENDS",
    ),
    "prices": ResourcePolicy(
        name="prices",
        expected=("data",),
        ttl_setting="TTL_PRICES",
    ),
}


def lookup(payload: Any, path: tuple[str, ...]) -> Any:
    """Walk *path* through nested dicts; None when any step is missing."""
    node = payload
    for part in path:
        if not isinstance(node, dict):
            return None
        node = node.get(part)
    return node


def _is_private(text: str, policy: ResourcePolicy) -> bool:
    return any(marker in text for marker in policy.private_markers)


def classify(status: int, text: str, policy: ResourcePolicy) -> FetchOutcome:
    """Map an upstream status + raw body onto a ``FetchOutcome``."""
    try:
        payload = json.loads(text)
    except ValueError:
        if status in policy.empty_statuses:
            return EmptyResult(reason=f"HTTP {status}")
        if status in policy.forbidden_statuses:
            return Forbidden(reason=f"HTTP {status}")
        return UpstreamError(status_code=status, body=text[:_SNIPPET])

    if status != 200:
        if status in policy.empty_statuses:
            return EmptyResult(reason=f"HTTP {status}")
        if status in policy.forbidden_statuses or _is_private(text, policy):
            return Forbidden(reason=f"HTTP {status}")
        return UpstreamError(status_code=status, body=text[:_SNIPPET])

    if policy.success_flag and lookup(payload, policy.success_flag) is False:
        if _is_private(text, policy):
            return Forbidden(reason="private profile")
        return EmptyResult(reason="upstream reported no data")

    value = lookup(payload, policy.expected)
    if value is None:
        return EmptyResult(reason=f"missing {'.'.join(policy.expected)}")
    if policy.require_items and not value:
        return EmptyResult(reason=f"empty {'.'.join(policy.expected)}")
    return Success(payload=payload)


async def fetch(
    client: httpx.AsyncClient,
    url: str,
    policy: ResourcePolicy,
    params: dict[str, Any] | None = None,
    transform: Callable[[Any], Any] | None = None,
) -> FetchOutcome:
    """GET *url* once and classify the answer.

    When *transform* is given it is applied to a successful payload; a
    payload it cannot digest is reported as an ``UpstreamError``.
    """
    try:
        resp = await client.get(url, params=params)
    except httpx.HTTPError as e:
        log.warning("%s request failed: %s", policy.name, e)
        return UpstreamError(status_code=None, body=str(e))

    outcome = classify(resp.status_code, resp.text, policy)
    if isinstance(outcome, UpstreamError):
        log.warning(
            "%s upstream error, status %s: %s",
            policy.name,
            outcome.status_code,
            outcome.body,
        )
        return outcome
    if not isinstance(outcome, Success):
        log.info("%s: %s (%s)", policy.name, type(outcome).__name__, outcome.reason)
        return outcome
    if transform is None:
        return outcome
    try:
        return Success(payload=transform(outcome.payload))
    except (AttributeError, KeyError, TypeError, ValueError) as e:
        log.warning("%s payload could not be reshaped: %r", policy.name, e)
        return UpstreamError(status_code=resp.status_code, body=resp.text[:_SNIPPET])
