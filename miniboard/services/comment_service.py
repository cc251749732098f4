"""
Comment service: comments attached to posts.

A comment can only be created against a post that exists; the check runs
before the insert. Editing and deletion follow the same ownership rule as
posts (owner or administrator), with ``NotFound`` taking precedence.
"""
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload

from miniboard.cache import cache
from miniboard.config import settings
from miniboard.errors import NotFound
from miniboard.models import Comment, Post
from miniboard.policy import ensure_can_mutate
from miniboard.schemas import CommentCreate, CommentUpdate
from miniboard.security import Principal
from miniboard.services.account_service import ensure_account_exists


def _comment_to_dict(comment: Comment) -> dict:
    data = {
        "id": comment.id,
        "content": comment.content,
        "user_id": comment.user_id,
        "post_id": comment.post_id,
        "created_at": comment.created_at.isoformat() if comment.created_at else None,
        "updated_at": comment.updated_at.isoformat() if comment.updated_at else None,
        "author": None,
        "post": None,
    }
    if comment.author is not None:
        data["author"] = {"id": comment.author.id, "name": comment.author.name}
    if comment.post is not None:
        data["post"] = {"id": comment.post.id, "title": comment.post.title}
    return data


async def _load_comment(db: AsyncSession, comment_id: int) -> Comment:
    q = (
        select(Comment)
        .where(Comment.id == comment_id)
        .options(joinedload(Comment.author))
        .execution_options(populate_existing=True)
    )
    comment = (await db.execute(q)).unique().scalar_one_or_none()
    if comment is None:
        raise NotFound("comment not found")
    return comment


async def add_comment(
    db: AsyncSession, post_id: int, data: CommentCreate, principal: Principal
) -> dict:
    """
    Create a comment by *principal* on *post_id*.

    ``NotFound`` if the post is missing or the principal's account has been
    deleted since login.
    """
    post = await db.get(Post, post_id)
    if post is None:
        raise NotFound("post not found")
    await ensure_account_exists(db, principal.id)

    comment = Comment(content=data.content, user_id=principal.id, post_id=post_id)
    db.add(comment)
    await db.flush()

    await cache.invalidate_comments(post_id, session=db)
    return _comment_to_dict(await _load_comment(db, comment.id))


async def get_comments_for_post(db: AsyncSession, post_id: int) -> list[dict]:
    """
    Comments on *post_id* in insertion order, with author names.

    A post without comments, or one that does not exist, yields ``[]``.
    """
    cache_key = f"posts:comments:{post_id}"
    cached = await cache.get(cache_key)
    if cached is not None:
        return cached

    q = (
        select(Comment)
        .where(Comment.post_id == post_id)
        .options(joinedload(Comment.author))
        .order_by(Comment.id.asc())
    )
    result = await db.execute(q)
    comments = [_comment_to_dict(c) for c in result.unique().scalars().all()]

    await cache.set(cache_key, comments, ttl=settings.CACHE_TTL_LIST)
    return comments


async def get_comments_by_owner(db: AsyncSession, owner_id: int) -> list[dict]:
    """Comments written by *owner_id*, newest first, each with its post's id and title."""
    q = (
        select(Comment)
        .where(Comment.user_id == owner_id)
        .options(joinedload(Comment.author), joinedload(Comment.post))
        .order_by(Comment.id.desc())
    )
    result = await db.execute(q)
    return [_comment_to_dict(c) for c in result.unique().scalars().all()]


async def update_comment(
    db: AsyncSession, comment_id: int, data: CommentUpdate, principal: Principal
) -> dict:
    comment = await _load_comment(db, comment_id)
    ensure_can_mutate(principal, comment.user_id)

    comment.content = data.content
    await db.flush()

    await cache.invalidate_comments(comment.post_id, session=db)
    return _comment_to_dict(comment)


async def delete_comment(db: AsyncSession, comment_id: int, principal: Principal) -> None:
    comment = await _load_comment(db, comment_id)
    ensure_can_mutate(principal, comment.user_id)

    post_id = comment.post_id
    await db.delete(comment)
    await db.flush()

    await cache.invalidate_comments(post_id, session=db)
