"""Tests for /api/auth: local accounts, sessions and Steam sign-in."""

from urllib.parse import parse_qs, urlparse

from conftest import STEAM_ID, openid_params, player

USER = {"username": "gamer", "email": "gamer@example.com", "password": "hunter2hunter2"}


def _register(client, **overrides):
    return client.post("/api/auth/register", json={**USER, **overrides})


def test_register_logs_user_in(client):
    resp = _register(client)
    assert resp.status_code == 201
    body = resp.json()
    assert body["success"] is True
    assert body["user"]["username"] == "gamer"

    me = client.get("/api/auth/me").json()
    assert me["user"]["email"] == "gamer@example.com"
    assert me["user"]["steamId"] is None


def test_register_validation(client):
    cases = [
        ({"password": ""}, "All fields are required"),
        ({"username": "ab"}, "Username must be 3-30 characters long"),
        ({"email": "not-an-email"}, "Invalid email address"),
        ({"password": "short"}, "Password must be at least 8 characters long"),
        ({"password": "x" * 100}, "Password is too long"),
    ]
    for overrides, message in cases:
        resp = _register(client, **overrides)
        assert resp.status_code == 400
        assert resp.json() == {"success": False, "message": message}


def test_register_duplicate_email_and_username(client):
    assert _register(client).status_code == 201
    resp = _register(client, username="other")
    assert resp.status_code == 409
    resp = _register(client, email="other@example.com")
    assert resp.status_code == 409
    assert resp.json()["message"] == "Username or email is already taken"


def test_login_and_logout(client):
    _register(client)
    client.post("/api/auth/logout")
    assert client.get("/api/auth/me").status_code == 401

    resp = client.post(
        "/api/auth/login", json={"email": USER["email"], "password": USER["password"]}
    )
    assert resp.status_code == 200
    assert resp.json()["user"]["username"] == "gamer"
    assert client.get("/api/auth/me").status_code == 200

    assert client.post("/api/auth/logout").json()["success"] is True
    assert client.get("/api/auth/me").status_code == 401


def test_login_wrong_password(client):
    _register(client)
    resp = client.post("/api/auth/login", json={"email": USER["email"], "password": "wrong-password"})
    assert resp.status_code == 401
    assert resp.json()["message"] == "Invalid email or password"


def test_login_missing_fields(client):
    resp = client.post("/api/auth/login", json={"email": USER["email"]})
    assert resp.status_code == 400


def test_malformed_body_is_400(client):
    resp = client.post(
        "/api/auth/login", content="not json", headers={"content-type": "application/json"}
    )
    assert resp.status_code == 400
    assert resp.json()["success"] is False


def test_session_expires(client, settings, monkeypatch):
    import time

    _register(client)
    real_time = time.time
    monkeypatch.setattr(time, "time", lambda: real_time() + settings.SESSION_MAX_AGE + 1)
    resp = client.get("/api/auth/me")
    assert resp.status_code == 401
    assert resp.json()["message"] == "Your session has expired"


def test_remember_me_outlives_default_session(client, settings, monkeypatch):
    import time

    _register(client)
    client.post(
        "/api/auth/login",
        json={"email": USER["email"], "password": USER["password"], "remember": True},
    )
    real_time = time.time
    monkeypatch.setattr(time, "time", lambda: real_time() + settings.SESSION_MAX_AGE + 1)
    assert client.get("/api/auth/me").status_code == 200


# ---- Steam sign-in -------------------------------------------------------


def test_steam_login_redirects_to_openid(client):
    resp = client.get("/api/auth/steam", follow_redirects=False)
    assert resp.status_code == 302
    location = urlparse(resp.headers["location"])
    assert location.netloc == "steamcommunity.com"
    query = parse_qs(location.query)
    assert query["openid.mode"] == ["checkid_setup"]
    assert query["openid.return_to"] == ["http://testserver/api/auth/steam/callback"]


def test_steam_login_not_configured(client, settings):
    settings.STEAM_API_KEY = ""
    resp = client.get("/api/auth/steam", follow_redirects=False)
    assert resp.headers["location"] == "/login.html?error=steam_not_configured"


def test_steam_callback_creates_account(steam_client):
    user = steam_client.get("/api/auth/me").json()["user"]
    assert user["steamId"] == STEAM_ID
    assert user["steamUsername"] == "Gabe"
    assert user["email"] == f"steam_{STEAM_ID}@gamezone.local"
    assert user["avatarUrl"].endswith("_full.jpg")


def test_steam_only_account_cannot_use_password(steam_client):
    steam_client.post("/api/auth/logout")
    resp = steam_client.post(
        "/api/auth/login",
        json={"email": f"steam_{STEAM_ID}@gamezone.local", "password": "whatever123"},
    )
    assert resp.status_code == 401
    assert resp.json()["message"] == "This account uses Steam sign-in"


def test_steam_callback_links_logged_in_account(client, upstream):
    _register(client)
    upstream.add("openid/login", text="ns:http://specs.openid.net/auth/2.0\nis_valid:true\n")
    upstream.add("GetPlayerSummaries", json={"response": {"players": [player(STEAM_ID, "Gabe")]}})

    resp = client.get("/api/auth/steam/callback", params=openid_params(), follow_redirects=False)
    assert resp.headers["location"] == "/?login=steam_success"

    user = client.get("/api/auth/me").json()["user"]
    assert user["username"] == "gamer"
    assert user["steamId"] == STEAM_ID


def test_steam_callback_rejected_assertion(client, upstream):
    upstream.add("openid/login", text="ns:http://specs.openid.net/auth/2.0\nis_valid:false\n")
    resp = client.get("/api/auth/steam/callback", params=openid_params(), follow_redirects=False)
    assert resp.headers["location"] == "/login.html?error=steam_failed"
    assert client.get("/api/auth/me").status_code == 401


def test_steam_callback_foreign_return_to(client, upstream):
    params = openid_params(return_to="https://evil.example/callback")
    resp = client.get("/api/auth/steam/callback", params=params, follow_redirects=False)
    assert resp.headers["location"] == "/login.html?error=steam_failed"
    assert upstream.calls == []


def test_steam_callback_falls_back_when_profile_unavailable(client, upstream):
    upstream.add("openid/login", text="ns:http://specs.openid.net/auth/2.0\nis_valid:true\n")
    upstream.add("GetPlayerSummaries", status=500, text="down")

    client.get("/api/auth/steam/callback", params=openid_params(), follow_redirects=False)
    user = client.get("/api/auth/me").json()["user"]
    assert user["username"] == f"steam_{STEAM_ID}"
    assert user["avatarUrl"] is None


def test_register_rejects_steam_placeholder_domain(client):
    resp = _register(client, email=f"steam_{STEAM_ID}@gamezone.local")
    assert resp.status_code == 400
    assert resp.json()["message"] == "This email domain is reserved"


def test_steam_callback_email_taken_redirects_with_error(client, upstream):
    client.app.state.users.create("squatter", f"steam_{STEAM_ID}@gamezone.local", "x")
    upstream.add("openid/login", text="ns:http://specs.openid.net/auth/2.0\nis_valid:true\n")
    upstream.add("GetPlayerSummaries", json={"response": {"players": [player(STEAM_ID, "Gabe")]}})

    resp = client.get("/api/auth/steam/callback", params=openid_params(), follow_redirects=False)
    assert resp.status_code == 302
    assert resp.headers["location"] == "/login.html?error=steam_failed"
    assert client.get("/api/auth/me").status_code == 401
