"""Tests for the auth routes — registration, login, OAuth callbacks, logout."""

from unittest.mock import AsyncMock, patch
from urllib.parse import parse_qs, urlparse

import pytest
from sqlalchemy import func, select

from techfeed.core.errors import StoreUnavailable
from techfeed.core.identity import Provider
from techfeed.models.user import User

GOOGLE_TOKEN = "https://oauth2.googleapis.com/token"
GOOGLE_USERINFO = "https://openidconnect.googleapis.com/v1/userinfo"
GITHUB_TOKEN = "https://github.com/login/oauth/access_token"
GITHUB_USER = "https://api.github.com/user"
GITHUB_EMAILS = "https://api.github.com/user/emails"


# ── Registration ─────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_register_json_success(client):
    r = await client.post("/register", json={"email": "alice@example.com", "password": "pw123"})
    assert r.status_code == 201
    data = r.json()
    assert data["success"] is True
    assert data["user"]["email"] == "alice@example.com"
    assert data["user"]["name"] == "alice@example.com"
    assert data["user"]["providers"] == ["local"]
    assert "password_hash" not in data["user"]


@pytest.mark.asyncio
async def test_register_json_duplicate_email(client, db_session):
    payload = {"email": "alice@example.com", "password": "pw123"}
    await client.post("/register", json=payload)

    r = await client.post("/register", json=payload)
    assert r.status_code == 409
    assert r.json()["success"] is False

    count = (await db_session.execute(select(func.count()).select_from(User))).scalar_one()
    assert count == 1


@pytest.mark.asyncio
async def test_register_json_invalid_email(client):
    r = await client.post("/register", json={"email": "not-an-email", "password": "pw"})
    assert r.status_code == 422
    assert r.json()["success"] is False


@pytest.mark.asyncio
async def test_register_form_redirects(client):
    form = {"email": "bob@example.com", "password": "pw123", "name": "Bob"}
    r = await client.post("/register", data=form)
    assert r.status_code == 303
    assert r.headers["location"] == "/login"

    r = await client.post("/register", data=form)
    assert r.status_code == 303
    assert r.headers["location"] == "/register?error=email_in_use"


@pytest.mark.asyncio
async def test_register_page_renders(client):
    r = await client.get("/register")
    assert r.status_code == 200
    assert 'action="/register"' in r.text


# ── Local login ───────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_login_success_sets_session_cookie(client):
    await client.post("/register", json={"email": "alice@example.com", "password": "pw123"})

    r = await client.post("/login", data={"email": "alice@example.com", "password": "pw123"})
    assert r.status_code == 303
    assert r.headers["location"] == "/"
    set_cookie = r.headers["set-cookie"].lower()
    assert "techfeed.sid=" in set_cookie
    assert "max-age=1209600" in set_cookie
    assert "samesite=lax" in set_cookie
    assert "httponly" in set_cookie

    me = await client.get("/me")
    assert me.status_code == 200
    assert me.json()["email"] == "alice@example.com"


@pytest.mark.asyncio
async def test_login_wrong_password_redirects_to_login(client):
    await client.post("/register", json={"email": "alice@example.com", "password": "pw123"})

    r = await client.post("/login", data={"email": "alice@example.com", "password": "wrong"})
    assert r.status_code == 303
    assert r.headers["location"].startswith("/login")
    assert "techfeed.sid" not in client.cookies


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "form",
    [
        {"email": "alice@example.com"},
        {"password": "pw123"},
        {},
        {"email": "   ", "password": "pw123"},
    ],
)
async def test_login_missing_fields_redirects_to_login(client, form):
    await client.post("/register", json={"email": "alice@example.com", "password": "pw123"})

    r = await client.post("/login", data=form)
    assert r.status_code == 303
    assert r.headers["location"] == "/login?error=invalid_credentials"
    assert "techfeed.sid" not in client.cookies


@pytest.mark.asyncio
async def test_login_unknown_user_looks_like_wrong_password(client):
    await client.post("/register", json={"email": "alice@example.com", "password": "pw123"})

    unknown = await client.post("/login", data={"email": "zed@example.com", "password": "pw"})
    wrong = await client.post("/login", data={"email": "alice@example.com", "password": "pw"})
    assert unknown.headers["location"] == wrong.headers["location"]


@pytest.mark.asyncio
async def test_login_page_redirects_when_signed_in(signed_in):
    r = await signed_in.get("/login")
    assert r.status_code == 303
    assert r.headers["location"] == "/"


@pytest.mark.asyncio
async def test_login_page_shows_error_message(client):
    r = await client.get("/login?error=invalid_credentials")
    assert r.status_code == 200
    assert "inválidos" in r.text


@pytest.mark.asyncio
async def test_store_unavailable_is_503(client):
    with patch(
        "techfeed.api.routers.auth.authenticate_local",
        new_callable=AsyncMock,
        side_effect=StoreUnavailable(),
    ):
        r = await client.post("/login", data={"email": "a@example.com", "password": "pw"})
    assert r.status_code == 503
    assert r.json()["success"] is False


# ── Guard / logout ───────────────────────────────────────────────────────────

@pytest.mark.asyncio
@pytest.mark.parametrize("path", ["/", "/news", "/search?q=ai", "/me"])
async def test_protected_routes_redirect_anonymous(client, path):
    r = await client.get(path)
    assert r.status_code == 303
    assert r.headers["location"] == "/login"


@pytest.mark.asyncio
async def test_logout_ends_session(signed_in):
    r = await signed_in.get("/logout")
    assert r.status_code == 303
    assert r.headers["location"] == "/"
    assert "techfeed.sid" not in signed_in.cookies

    r = await signed_in.get("/me")
    assert r.status_code == 303


@pytest.mark.asyncio
async def test_logout_when_anonymous_is_noop(client):
    r = await client.get("/logout")
    assert r.status_code == 303
    assert r.headers["location"] == "/"


# ── OAuth ─────────────────────────────────────────────────────────────────────

async def _start(client, provider: str) -> str:
    r = await client.get(f"/auth/{provider}")
    assert r.status_code == 302
    assert "techfeed.oauth_state" in client.cookies
    return parse_qs(urlparse(r.headers["location"]).query)["state"][0]


@pytest.mark.asyncio
async def test_oauth_start_redirects_to_provider(client):
    r = await client.get("/auth/google")
    assert r.status_code == 302
    location = urlparse(r.headers["location"])
    assert location.netloc == "accounts.google.com"

    r = await client.get("/auth/github")
    assert r.status_code == 302
    assert urlparse(r.headers["location"]).netloc == "github.com"


@pytest.mark.asyncio
async def test_oauth_unknown_provider_is_rejected(client):
    r = await client.get("/auth/myspace")
    assert r.status_code == 422


@pytest.mark.asyncio
async def test_oauth_unconfigured_provider_redirects_to_login(client, app_context):
    app_context.oauth_clients[Provider.GITHUB].client_id = None
    r = await client.get("/auth/github")
    assert r.status_code == 303
    assert r.headers["location"].startswith("/login")


@pytest.mark.asyncio
async def test_google_callback_creates_user_and_session(client, upstream):
    state = await _start(client, "google")
    upstream.add("POST", GOOGLE_TOKEN, json={"access_token": "ya29"})
    upstream.add("GET", GOOGLE_USERINFO, json={"sub": "g1", "email": "bob@example.com", "name": "Bob"})

    r = await client.get("/auth/google/callback", params={"code": "c1", "state": state})
    assert r.status_code == 303
    assert r.headers["location"] == "/"
    assert "techfeed.sid" in client.cookies

    me = (await client.get("/me")).json()
    assert me["email"] == "bob@example.com"
    assert me["name"] == "Bob"
    assert me["providers"] == ["google"]


@pytest.mark.asyncio
async def test_github_callback_links_local_account(client, upstream):
    await client.post("/register", json={"email": "alice@example.com", "password": "pw123"})
    state = await _start(client, "github")
    upstream.add("POST", GITHUB_TOKEN, json={"access_token": "gho"})
    upstream.add("GET", GITHUB_USER, json={"id": 77, "login": "alice", "email": "alice@example.com"})
    upstream.add("GET", GITHUB_EMAILS, json=[])

    r = await client.get("/auth/github/callback", params={"code": "c2", "state": state})
    assert r.status_code == 303
    assert r.headers["location"] == "/"

    me = (await client.get("/me")).json()
    assert me["email"] == "alice@example.com"
    assert me["providers"] == ["local", "github"]

    # the password still works
    await client.get("/logout")
    r = await client.post("/login", data={"email": "alice@example.com", "password": "pw123"})
    assert r.headers["location"] == "/"


@pytest.mark.asyncio
async def test_github_callback_without_email_uses_placeholder(client, upstream):
    state = await _start(client, "github")
    upstream.add("POST", GITHUB_TOKEN, json={"access_token": "gho"})
    upstream.add("GET", GITHUB_USER, json={"id": 3, "login": "carol", "email": None})
    upstream.add("GET", GITHUB_EMAILS, json=[])

    await client.get("/auth/github/callback", params={"code": "c3", "state": state})

    me = (await client.get("/me")).json()
    assert me["email"] == "carol@github.com"
    assert me["name"] == "carol"


@pytest.mark.asyncio
async def test_callback_with_wrong_state_redirects_to_login(client, upstream):
    await _start(client, "google")
    r = await client.get("/auth/google/callback", params={"code": "c1", "state": "forged"})
    assert r.status_code == 303
    assert r.headers["location"] == "/login?error=oauth"
    assert "techfeed.sid" not in client.cookies
    assert upstream.requests == []


@pytest.mark.asyncio
async def test_callback_state_is_bound_to_provider(client):
    state = await _start(client, "google")
    r = await client.get("/auth/github/callback", params={"code": "c1", "state": state})
    assert r.headers["location"] == "/login?error=oauth"


@pytest.mark.asyncio
async def test_callback_provider_denied(client):
    state = await _start(client, "google")
    r = await client.get(
        "/auth/google/callback", params={"error": "access_denied", "state": state}
    )
    assert r.status_code == 303
    assert r.headers["location"] == "/login?error=oauth"


@pytest.mark.asyncio
async def test_callback_token_exchange_failure(client, upstream):
    state = await _start(client, "google")
    upstream.add("POST", GOOGLE_TOKEN, json={"error": "invalid_grant"}, status_code=400)
    r = await client.get("/auth/google/callback", params={"code": "bad", "state": state})
    assert r.headers["location"] == "/login?error=oauth"
