"""Shared request helpers for the endpoint tests."""
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from miniboard.models import Role
from miniboard.schemas import RegisterRequest
from miniboard.security import PasswordHasher
from miniboard.services import account_service

PASSWORD = "correct horse battery staple"


async def register(client: AsyncClient, username: str, name: str | None = None) -> None:
    resp = await client.post("/api/register", json={
        "username": username,
        "password": PASSWORD,
        "name": name or username.title(),
    })
    assert resp.status_code == 201, resp.text


async def login(client: AsyncClient, username: str, password: str = PASSWORD) -> dict:
    resp = await client.post("/api/login", json={"username": username, "password": password})
    assert resp.status_code == 200, resp.text
    return resp.json()


async def register_and_login(client: AsyncClient, username: str) -> tuple[dict, int]:
    """Return (auth headers, account id) for a fresh standard account."""
    await register(client, username)
    body = await login(client, username)
    return bearer(body["token"]), body["user"]["id"]


async def create_admin_and_login(
    client: AsyncClient, db: AsyncSession, username: str = "admin"
) -> tuple[dict, int]:
    """Administrators can only be created below the HTTP layer."""
    await account_service.create_account(
        db,
        RegisterRequest(username=username, password=PASSWORD, name="Administrator"),
        PasswordHasher(rounds=4),
        role=Role.ADMINISTRATOR,
    )
    await db.commit()
    body = await login(client, username)
    return bearer(body["token"]), body["user"]["id"]


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


async def create_post(client: AsyncClient, headers: dict, title: str = "Hello", content: str = "World") -> dict:
    resp = await client.post("/api/posts", json={"title": title, "content": content}, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


async def create_comment(client: AsyncClient, headers: dict, post_id: int, content: str = "Nice post") -> dict:
    resp = await client.post(f"/api/posts/{post_id}/comments", json={"content": content}, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()
