import json
import logging

import redis.asyncio as redis
from sqlalchemy.ext.asyncio import AsyncSession

from miniboard.config import settings

logger = logging.getLogger(__name__)

# session.info key holding the patterns to drop again after commit
_PENDING_KEY = "cache_invalidations"


class CacheManager:
    """
    Cache-aside manager backed by Redis, used for the public post reads.

    Every method is a no-op (reads return None) when Redis is not connected
    or a command fails, so the API keeps working without Redis.
    """

    def __init__(self) -> None:
        self._redis: redis.Redis | None = None
        self._hits: int = 0
        self._misses: int = 0

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def connect(self) -> None:
        """Open the connection pool.  Called once at application startup."""
        self._redis = redis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            socket_connect_timeout=2,
            socket_timeout=2,
        )
        try:
            await self._redis.ping()
            logger.info("Redis connected: %s", settings.REDIS_URL)
        except Exception as exc:  # pragma: no cover
            logger.warning("Redis ping failed, post caching disabled: %s", exc)
            await self._redis.aclose()
            self._redis = None

    async def disconnect(self) -> None:
        if self._redis:
            await self._redis.aclose()
            self._redis = None

    # ------------------------------------------------------------------
    # Core cache operations
    # ------------------------------------------------------------------

    async def get(self, key: str) -> dict | list | None:
        if not self._redis:
            self._misses += 1
            return None
        try:
            data = await self._redis.get(key)
        except Exception as exc:
            logger.debug("Cache GET error for key=%r: %s", key, exc)
            self._misses += 1
            return None
        if data is None:
            self._misses += 1
            return None
        self._hits += 1
        return json.loads(data)

    async def set(self, key: str, value: dict | list, ttl: int | None = None) -> None:
        if not self._redis:
            return
        try:
            await self._redis.set(key, json.dumps(value, default=str), ex=ttl)
        except Exception as exc:
            logger.debug("Cache SET error for key=%r: %s", key, exc)

    async def delete_pattern(self, pattern: str) -> None:
        """Delete all keys matching *pattern* using SCAN (avoids blocking KEYS)."""
        if not self._redis:
            return
        try:
            keys = [key async for key in self._redis.scan_iter(match=pattern)]
            if keys:
                await self._redis.delete(*keys)
                logger.debug("Cache invalidated %d key(s) matching %r", len(keys), pattern)
        except Exception as exc:
            logger.debug("Cache DELETE_PATTERN error for pattern=%r: %s", pattern, exc)

    # ------------------------------------------------------------------
    # Invalidation helpers
    # ------------------------------------------------------------------

    async def invalidate(self, *patterns: str, session: AsyncSession | None = None) -> None:
        """
        Drop every key matching *patterns* now and, when *session* is given,
        once more after that session commits (see ``invalidate_pending``).

        Writers invalidate before their transaction commits, so a public read
        in between can put the old rows back; the second pass removes them.
        """
        for pattern in patterns:
            await self.delete_pattern(pattern)
        if session is not None:
            session.info.setdefault(_PENDING_KEY, set()).update(patterns)

    async def invalidate_pending(self, session: AsyncSession) -> None:
        """Replay the invalidations recorded on *session*. Call after commit."""
        for pattern in session.info.pop(_PENDING_KEY, ()):
            await self.delete_pattern(pattern)

    def discard_pending(self, session: AsyncSession) -> None:
        session.info.pop(_PENDING_KEY, None)

    async def invalidate_post(
        self, post_id: int | None = None, session: AsyncSession | None = None
    ) -> None:
        """
        Drop the post list and, when *post_id* is given, that post's detail
        and comment list.
        """
        patterns = ["posts:list"]
        if post_id is not None:
            patterns += [f"posts:detail:{post_id}", f"posts:comments:{post_id}"]
        await self.invalidate(*patterns, session=session)

    async def invalidate_comments(self, post_id: int, session: AsyncSession | None = None) -> None:
        await self.invalidate(f"posts:comments:{post_id}", session=session)

    async def invalidate_all_posts(self, session: AsyncSession | None = None) -> None:
        """Used after an account deletion, which can touch any post's comments."""
        await self.invalidate("posts:*", session=session)

    # ------------------------------------------------------------------
    # Observability
    # ------------------------------------------------------------------

    @property
    def stats(self) -> dict:
        total = self._hits + self._misses
        return {
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": round(self._hits / total * 100, 1) if total > 0 else 0.0,
        }


cache = CacheManager()
