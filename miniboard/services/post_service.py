"""
Post service: business logic for the Post aggregate.

Design notes
------------
- Public reads (list, detail) go through the cache-aside pattern; every
  write invalidates the list and the touched post's entries.
- ``joinedload(Post.author)`` is used wherever the author name is
  serialised, so listings cost one query regardless of size.
- Update and delete load the post first and raise ``NotFound`` before the
  ownership check; only then does ``ensure_can_mutate`` decide.
- Service functions flush but do not commit; the transaction boundary is
  owned by the ``get_db`` dependency in the router layer.
"""
import logging

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload

from miniboard.cache import cache
from miniboard.config import settings
from miniboard.errors import NotFound
from miniboard.models import Comment, Post
from miniboard.policy import ensure_can_mutate
from miniboard.schemas import PostCreate, PostUpdate
from miniboard.security import Principal
from miniboard.services.account_service import ensure_account_exists

logger = logging.getLogger(__name__)

LIST_CACHE_KEY = "posts:list"


# ---------------------------------------------------------------------------
# Serialisation helpers
# ---------------------------------------------------------------------------

def _serialize_author(author) -> dict | None:
    if author is None:
        return None
    return {"id": author.id, "name": author.name}


def _post_to_dict(post: Post) -> dict:
    return {
        "id": post.id,
        "title": post.title,
        "content": post.content,
        "user_id": post.user_id,
        "created_at": post.created_at.isoformat() if post.created_at else None,
        "updated_at": post.updated_at.isoformat() if post.updated_at else None,
        "author": _serialize_author(post.author),
    }


async def _load_post(db: AsyncSession, post_id: int) -> Post:
    """Return the post with its author loaded, or raise ``NotFound``."""
    q = (
        select(Post)
        .where(Post.id == post_id)
        .options(joinedload(Post.author))
        .execution_options(populate_existing=True)
    )
    post = (await db.execute(q)).unique().scalar_one_or_none()
    if post is None:
        raise NotFound("post not found")
    return post


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

async def get_posts(db: AsyncSession) -> list[dict]:
    """Return every post, newest first, with its author's name."""
    cached = await cache.get(LIST_CACHE_KEY)
    if cached is not None:
        return cached

    q = select(Post).options(joinedload(Post.author)).order_by(Post.id.desc())
    result = await db.execute(q)
    posts = [_post_to_dict(p) for p in result.unique().scalars().all()]

    await cache.set(LIST_CACHE_KEY, posts, ttl=settings.CACHE_TTL_LIST)
    return posts


async def get_post(db: AsyncSession, post_id: int) -> dict:
    cache_key = f"posts:detail:{post_id}"
    cached = await cache.get(cache_key)
    if cached is not None:
        return cached

    data = _post_to_dict(await _load_post(db, post_id))
    await cache.set(cache_key, data, ttl=settings.CACHE_TTL_DETAIL)
    return data


async def get_posts_by_owner(db: AsyncSession, owner_id: int) -> list[dict]:
    """
    Posts owned by *owner_id*, newest first.

    The owner filter stands in for an authorization check: callers pass the
    principal's own id. Not cached.
    """
    q = (
        select(Post)
        .where(Post.user_id == owner_id)
        .options(joinedload(Post.author))
        .order_by(Post.id.desc())
    )
    result = await db.execute(q)
    return [_post_to_dict(p) for p in result.unique().scalars().all()]


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------

async def create_post(db: AsyncSession, data: PostCreate, principal: Principal) -> dict:
    """
    Create a post owned by *principal*. Ownership is never client-supplied.

    ``NotFound`` if the principal's account has been deleted since login.
    """
    await ensure_account_exists(db, principal.id)
    post = Post(title=data.title, content=data.content, user_id=principal.id)
    db.add(post)
    await db.flush()

    await cache.invalidate_post(session=db)
    return _post_to_dict(await _load_post(db, post.id))


async def update_post(
    db: AsyncSession, post_id: int, data: PostUpdate, principal: Principal
) -> dict:
    """
    Apply the fields present in *data* to the post.

    Raises ``NotFound`` for a missing post, then ``InvalidCredential`` when
    *principal* is neither the owner nor an administrator.
    """
    post = await _load_post(db, post_id)
    ensure_can_mutate(principal, post.user_id)

    for field, value in data.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(post, field, value)

    await db.flush()
    await cache.invalidate_post(post_id, session=db)
    return _post_to_dict(post)


async def delete_post(db: AsyncSession, post_id: int, principal: Principal) -> None:
    """
    Delete the post and all of its comments in the caller's transaction.

    Same ``NotFound``-then-policy order as ``update_post``.
    """
    post = await _load_post(db, post_id)
    ensure_can_mutate(principal, post.user_id)

    await db.execute(
        delete(Comment)
        .where(Comment.post_id == post_id)
        .execution_options(synchronize_session=False)
    )
    await db.delete(post)
    await db.flush()

    await cache.invalidate_post(post_id, session=db)
    logger.info("Post id=%d deleted by account id=%d", post_id, principal.id)
