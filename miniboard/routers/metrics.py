from fastapi import APIRouter, Depends
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from miniboard.database import get_db
from miniboard.models import Account, Comment, Post
from miniboard.schemas import MetricsResponse
from miniboard.cache import cache

router = APIRouter(prefix="/api/metrics", tags=["metrics"])

@router.get("", response_model=MetricsResponse)
async def get_metrics(db: AsyncSession = Depends(get_db)):
    total_accounts = (await db.execute(select(func.count()).select_from(Account))).scalar_one()
    total_posts = (await db.execute(select(func.count()).select_from(Post))).scalar_one()
    total_comments = (await db.execute(select(func.count()).select_from(Comment))).scalar_one()

    avg_comments = total_comments / total_posts if total_posts > 0 else 0

    return MetricsResponse(
        total_accounts=total_accounts,
        total_posts=total_posts,
        total_comments=total_comments,
        avg_comments_per_post=round(avg_comments, 2),
        cache_info=cache.stats,
    )
