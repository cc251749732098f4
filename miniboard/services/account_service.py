"""
Account service: registration, login, profile, and self-deletion.

Password hashing is CPU-bound, so it runs in Starlette's threadpool rather
than on the event loop.

Username uniqueness is left to the unique constraint on
``accounts.username``; the resulting ``IntegrityError`` is translated to
``ConflictFailure`` here so callers never see a raw store fault.
"""
import logging

from sqlalchemy import delete, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from miniboard.cache import cache
from miniboard.errors import ConflictFailure, InvalidCredential, NotFound
from miniboard.models import Account, Comment, Post, Role
from miniboard.schemas import LoginRequest, RegisterRequest
from miniboard.security import PasswordHasher, TokenService

logger = logging.getLogger(__name__)

_LOGIN_FAILED = "invalid username or password"


def _account_to_dict(account: Account) -> dict:
    """Public view of an account. The password hash is deliberately absent."""
    return {
        "id": account.id,
        "username": account.username,
        "name": account.name,
        "role": account.role.value,
        "created_at": account.created_at.isoformat() if account.created_at else None,
    }


async def create_account(
    db: AsyncSession,
    data: RegisterRequest,
    hasher: PasswordHasher,
    role: Role = Role.STANDARD,
) -> Account:
    """
    Insert a new account with a freshly hashed password.

    The HTTP API always uses the default role; ``scripts/create_admin.py``
    is the only caller passing ``Role.ADMINISTRATOR``.
    """
    password_hash = await run_in_threadpool(hasher.hash, data.password)
    account = Account(
        username=data.username,
        password_hash=password_hash,
        name=data.name,
        role=role,
    )
    db.add(account)
    try:
        await db.flush()
    except IntegrityError as exc:
        raise ConflictFailure("username is already taken") from exc
    logger.info("Registered account id=%d username=%r role=%s", account.id, account.username, role.value)
    return account


async def register(db: AsyncSession, data: RegisterRequest, hasher: PasswordHasher) -> dict:
    """Create a standard account. Does not log the caller in."""
    await create_account(db, data, hasher)
    return {"message": "registration successful"}


async def login(
    db: AsyncSession,
    data: LoginRequest,
    hasher: PasswordHasher,
    tokens: TokenService,
) -> dict:
    """
    Check the credentials and issue a token carrying the account's current
    role.

    Unknown usernames and wrong passwords fail identically with
    ``InvalidCredential``.
    """
    result = await db.execute(select(Account).where(Account.username == data.username))
    account = result.scalar_one_or_none()
    if account is None:
        logger.debug("Login failed: unknown username %r", data.username)
        raise InvalidCredential(_LOGIN_FAILED)

    if not await run_in_threadpool(hasher.verify, data.password, account.password_hash):
        logger.debug("Login failed: wrong password for account id=%d", account.id)
        raise InvalidCredential(_LOGIN_FAILED)

    token = tokens.issue(account.id, account.role)
    return {"token": token, "user": _account_to_dict(account)}


async def ensure_account_exists(db: AsyncSession, account_id: int) -> None:
    """
    Raise ``NotFound`` when *account_id* has no row.

    Tokens outlive their account, so writes that stamp an owner check this
    first. The select goes to the database rather than the identity map,
    which still holds rows removed by the bulk deletes below.
    """
    found = await db.scalar(select(Account.id).where(Account.id == account_id))
    if found is None:
        raise NotFound("account not found")


async def get_profile(db: AsyncSession, account_id: int) -> dict:
    account = await db.get(Account, account_id)
    if account is None:
        raise NotFound("account not found")
    return _account_to_dict(account)


async def delete_account(db: AsyncSession, account_id: int) -> int:
    """
    Delete an account together with everything that depends on it:

    1. comments written by the account, and comments on its posts
    2. posts owned by the account
    3. the account row

    All statements run in the caller's transaction, so the cascade commits
    or rolls back as a unit. Returns the number of account rows removed
    (0 when the account was already gone).
    """
    owned_post_ids = select(Post.id).where(Post.user_id == account_id)
    await db.execute(
        delete(Comment)
        .where(or_(Comment.user_id == account_id, Comment.post_id.in_(owned_post_ids)))
        .execution_options(synchronize_session=False)
    )
    await db.execute(
        delete(Post)
        .where(Post.user_id == account_id)
        .execution_options(synchronize_session=False)
    )
    result = await db.execute(
        delete(Account)
        .where(Account.id == account_id)
        .execution_options(synchronize_session=False)
    )
    await cache.invalidate_all_posts(session=db)

    if result.rowcount:
        logger.info("Deleted account id=%d with its posts and comments", account_id)
    return result.rowcount
