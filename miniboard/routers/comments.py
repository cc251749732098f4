from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from miniboard.database import get_db
from miniboard.dependencies import get_current_principal
from miniboard.schemas import CommentResponse, CommentUpdate, MessageResponse
from miniboard.security import Principal
from miniboard.services import comment_service

router = APIRouter(prefix="/api", tags=["comments"])

@router.get("/mycomments", response_model=list[CommentResponse])
async def list_my_comments(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    return await comment_service.get_comments_by_owner(db, principal.id)

@router.put("/comments/{comment_id}", response_model=CommentResponse)
async def update_comment(
    comment_id: int,
    data: CommentUpdate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    return await comment_service.update_comment(db, comment_id, data, principal)

@router.delete("/comments/{comment_id}", response_model=MessageResponse)
async def delete_comment(
    comment_id: int,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    await comment_service.delete_comment(db, comment_id, principal)
    return {"message": "comment deleted"}
