"""Shared fixtures: a fake upstream behind httpx.MockTransport and a fake clock."""

import httpx
import pytest
from fastapi.testclient import TestClient

from gamezone.cache import TTLCache
from gamezone.config import Settings
from gamezone.main import create_app

STEAM_ID = "76561197960435530"
FRIEND_A = "76561197960435531"
FRIEND_B = "76561197960435532"
FRIEND_C = "76561197960435533"


class FakeClock:
    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeUpstream:
    """Answers requests whose URL contains a registered fragment.

    Each fragment holds a queue of responses; the last one repeats.
    Every request is recorded so tests can count network round trips.
    """

    def __init__(self):
        self.routes: dict[str, list] = {}
        self.calls: list[httpx.Request] = []

    def add(self, fragment, status=200, json=None, text=None, exc=None):
        self.routes.setdefault(fragment, []).append((status, json, text, exc))

    def reset(self, fragment=None):
        if fragment is None:
            self.routes.clear()
        else:
            self.routes.pop(fragment, None)
        self.calls.clear()

    def count(self, fragment) -> int:
        return sum(1 for r in self.calls if fragment in str(r.url))

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        for fragment, queue in self.routes.items():
            if fragment in str(request.url):
                status, json, text, exc = queue.pop(0) if len(queue) > 1 else queue[0]
                if exc is not None:
                    raise exc
                if json is not None:
                    return httpx.Response(status, json=json)
                return httpx.Response(status, text=text or "")
        return httpx.Response(404, text="no fake route")


def player(steam_id, name, state=1, **extra):
    data = {
        "steamid": steam_id,
        "personaname": name,
        "profileurl": f"https://steamcommunity.com/profiles/{steam_id}/",
        "avatar": f"https://avatars.example/{steam_id}.jpg",
        "avatarmedium": f"https://avatars.example/{steam_id}_medium.jpg",
        "avatarfull": f"https://avatars.example/{steam_id}_full.jpg",
        "personastate": state,
        "communityvisibilitystate": 3,
        "lastlogoff": 1700000000,
    }
    data.update(extra)
    return data


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def upstream():
    return FakeUpstream()


@pytest.fixture
def settings(tmp_path):
    s = Settings()
    s.STEAM_API_KEY = "test-steam-key"
    s.GGDEALS_API_KEY = "test-gg-key"
    s.DATABASE_PATH = str(tmp_path / "gamezone.db")
    s.SESSION_SECRET = "test-secret"
    s.STEAM_RETURN_URL = "http://testserver/api/auth/steam/callback"
    s.STEAM_REALM = "http://testserver/"
    s.BCRYPT_ROUNDS = 4
    s.CACHE_SWEEP_INTERVAL = 3600
    return s


@pytest.fixture
def cache(clock):
    return TTLCache(max_entries=100, clock=clock)


@pytest.fixture
def client(settings, upstream, cache):
    app = create_app(settings, transport=httpx.MockTransport(upstream.handler), cache=cache)
    with TestClient(app) as c:
        yield c


def openid_params(steam_id=STEAM_ID, return_to="http://testserver/api/auth/steam/callback"):
    return {
        "openid.ns": "http://specs.openid.net/auth/2.0",
        "openid.mode": "id_res",
        "openid.op_endpoint": "https://steamcommunity.com/openid/login",
        "openid.claimed_id": f"https://steamcommunity.com/openid/id/{steam_id}",
        "openid.identity": f"https://steamcommunity.com/openid/id/{steam_id}",
        "openid.return_to": return_to,
        "openid.response_nonce": "2024-01-01T00:00:00Zabc",
        "openid.assoc_handle": "1234567890",
        "openid.signed": "signed,op_endpoint,claimed_id,identity,return_to,response_nonce,assoc_handle",
        "openid.sig": "c2lnbmF0dXJl",
    }


@pytest.fixture
def steam_client(client, upstream, cache):
    """Client signed in through Steam; upstream and cache start clean."""
    upstream.add("openid/login", text="ns:http://specs.openid.net/auth/2.0\nis_valid:true\n")
    upstream.add("GetPlayerSummaries", json={"response": {"players": [player(STEAM_ID, "Gabe")]}})
    resp = client.get(
        "/api/auth/steam/callback", params=openid_params(), follow_redirects=False
    )
    assert resp.status_code == 302
    assert resp.headers["location"] == "/?login=steam_success"
    upstream.reset()
    cache.clear()
    return client
