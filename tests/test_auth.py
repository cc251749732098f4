"""
Registration, login, the authentication gate, and the profile endpoints.

The gate distinguishes a missing credential (401) from a present but bad
one (403); several tests below pin that asymmetry down.
"""
from datetime import datetime, timedelta, timezone

import pytest
from httpx import AsyncClient

from miniboard.main import app
from miniboard.models import Role
from miniboard.security import TokenService
from helpers import PASSWORD, bearer, login, register, register_and_login


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_register(async_client: AsyncClient):
    resp = await async_client.post("/api/register", json={
        "username": "alice",
        "password": PASSWORD,
        "name": "Alice",
    })
    assert resp.status_code == 201
    assert resp.json() == {"message": "registration successful"}


@pytest.mark.asyncio
async def test_register_does_not_log_in(async_client: AsyncClient):
    resp = await async_client.post("/api/register", json={
        "username": "bob", "password": PASSWORD, "name": "Bob",
    })
    assert "token" not in resp.json()


@pytest.mark.asyncio
async def test_duplicate_username_returns_409(async_client: AsyncClient):
    await register(async_client, "dup")
    resp = await async_client.post("/api/register", json={
        "username": "dup", "password": "other", "name": "Other",
    })
    assert resp.status_code == 409


@pytest.mark.asyncio
@pytest.mark.parametrize("missing", ["username", "password", "name"])
async def test_register_missing_field_returns_422(async_client: AsyncClient, missing: str):
    payload = {"username": "carol", "password": PASSWORD, "name": "Carol"}
    del payload[missing]
    resp = await async_client.post("/api/register", json=payload)
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_register_empty_password_returns_422(async_client: AsyncClient):
    resp = await async_client.post("/api/register", json={
        "username": "dave", "password": "", "name": "Dave",
    })
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_register_overlong_password_returns_422(async_client: AsyncClient):
    resp = await async_client.post("/api/register", json={
        "username": "erin", "password": "x" * 73, "name": "Erin",
    })
    assert resp.status_code == 422


# ---------------------------------------------------------------------------
# Login
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_login_returns_token_and_public_account(async_client: AsyncClient):
    await register(async_client, "frank", "Frank F.")
    body = await login(async_client, "frank")

    assert body["token"]
    user = body["user"]
    assert user["username"] == "frank"
    assert user["name"] == "Frank F."
    assert user["role"] == "standard"
    assert "password" not in user
    assert "password_hash" not in user
    assert PASSWORD not in str(body)
    assert "$2b$" not in str(body)


@pytest.mark.asyncio
async def test_login_token_decodes_to_account(async_client: AsyncClient):
    await register(async_client, "grace")
    body = await login(async_client, "grace")
    principal = app.state.token_service.verify(body["token"])
    assert principal.id == body["user"]["id"]
    assert principal.role is Role.STANDARD


@pytest.mark.asyncio
async def test_login_wrong_password_returns_403(async_client: AsyncClient):
    await register(async_client, "heidi")
    resp = await async_client.post("/api/login", json={"username": "heidi", "password": "nope"})
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_login_unknown_user_returns_403(async_client: AsyncClient):
    resp = await async_client.post("/api/login", json={"username": "ghost", "password": PASSWORD})
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_login_failures_are_indistinguishable(async_client: AsyncClient):
    await register(async_client, "ivan")
    wrong_password = await async_client.post("/api/login", json={"username": "ivan", "password": "nope"})
    unknown_user = await async_client.post("/api/login", json={"username": "nobody", "password": "nope"})
    assert wrong_password.json() == unknown_user.json()


# ---------------------------------------------------------------------------
# Authentication gate
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_missing_authorization_returns_401(async_client: AsyncClient):
    resp = await async_client.get("/api/profile")
    assert resp.status_code == 401
    assert resp.json()["detail"] == "authentication required"
    assert resp.headers["www-authenticate"] == "Bearer"


@pytest.mark.asyncio
@pytest.mark.parametrize("header", ["Basic dXNlcjpwYXNz", "Token abc", "Bearer", "Bearer   "])
async def test_non_bearer_authorization_counts_as_missing(async_client: AsyncClient, header: str):
    resp = await async_client.get("/api/profile", headers={"Authorization": header})
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_garbled_token_returns_403(async_client: AsyncClient):
    resp = await async_client.get("/api/profile", headers=bearer("not.a.token"))
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_expired_token_returns_403(async_client: AsyncClient):
    headers, account_id = await register_and_login(async_client, "judy")
    tokens: TokenService = app.state.token_service
    stale = tokens.issue(account_id, Role.STANDARD, now=datetime.now(timezone.utc) - timedelta(days=8))
    resp = await async_client.get("/api/profile", headers=bearer(stale))
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_token_from_other_secret_returns_403(async_client: AsyncClient):
    headers, account_id = await register_and_login(async_client, "ken")
    forged = TokenService("forger-signing-secret-0123456789abcdef").issue(account_id, Role.ADMINISTRATOR)
    resp = await async_client.get("/api/profile", headers=bearer(forged))
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_bearer_scheme_is_case_insensitive(async_client: AsyncClient):
    body = await _register_login_raw(async_client, "liam")
    resp = await async_client.get("/api/profile", headers={"Authorization": f"bearer {body['token']}"})
    assert resp.status_code == 200


# ---------------------------------------------------------------------------
# Profile
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_get_profile(async_client: AsyncClient):
    headers, account_id = await register_and_login(async_client, "mallory")
    resp = await async_client.get("/api/profile", headers=headers)
    assert resp.status_code == 200
    profile = resp.json()
    assert profile["id"] == account_id
    assert profile["username"] == "mallory"
    assert "password_hash" not in profile


@pytest.mark.asyncio
async def test_delete_profile_then_token_still_passes_gate(async_client: AsyncClient):
    """
    The gate does not re-read the account, so the token keeps working after
    the account is gone; the profile lookup itself reports 404.
    """
    headers, _ = await register_and_login(async_client, "niaj")
    resp = await async_client.delete("/api/profile", headers=headers)
    assert resp.status_code == 200
    assert resp.json() == {"message": "account deleted"}

    resp = await async_client.get("/api/profile", headers=headers)
    assert resp.status_code == 404

    # Deleting again touches zero rows and still succeeds.
    resp = await async_client.delete("/api/profile", headers=headers)
    assert resp.status_code == 200


@pytest.mark.asyncio
async def test_deleted_account_token_cannot_create_content(async_client: AsyncClient):
    author, _ = await register_and_login(async_client, "author")
    post = (await async_client.post("/api/posts", json={"title": "T", "content": "C"}, headers=author)).json()

    ghost, _ = await register_and_login(async_client, "ghost")
    assert (await async_client.delete("/api/profile", headers=ghost)).status_code == 200

    resp = await async_client.post("/api/posts", json={"title": "Boo", "content": "C"}, headers=ghost)
    assert resp.status_code == 404
    resp = await async_client.post(f"/api/posts/{post['id']}/comments", json={"content": "Boo"}, headers=ghost)
    assert resp.status_code == 404

    listing = (await async_client.get("/api/posts")).json()
    assert [p["title"] for p in listing] == ["T"]
    assert (await async_client.get(f"/api/posts/{post['id']}/comments")).json() == []


@pytest.mark.asyncio
async def test_deleted_account_cannot_log_in(async_client: AsyncClient):
    headers, _ = await register_and_login(async_client, "olivia")
    await async_client.delete("/api/profile", headers=headers)
    resp = await async_client.post("/api/login", json={"username": "olivia", "password": PASSWORD})
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_delete_profile_requires_authentication(async_client: AsyncClient):
    resp = await async_client.delete("/api/profile")
    assert resp.status_code == 401


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

async def _register_login_raw(client: AsyncClient, username: str) -> dict:
    await register(client, username)
    return await login(client, username)
