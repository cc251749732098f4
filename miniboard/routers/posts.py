from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from miniboard.database import get_db
from miniboard.dependencies import get_current_principal
from miniboard.schemas import CommentCreate, CommentResponse, MessageResponse, PostCreate, PostResponse, PostUpdate
from miniboard.security import Principal
from miniboard.services import comment_service, post_service

router = APIRouter(prefix="/api", tags=["posts"])

@router.get("/posts", response_model=list[PostResponse])
async def list_posts(db: AsyncSession = Depends(get_db)):
    return await post_service.get_posts(db)

@router.get("/myposts", response_model=list[PostResponse])
async def list_my_posts(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    return await post_service.get_posts_by_owner(db, principal.id)

@router.get("/posts/{post_id}", response_model=PostResponse)
async def get_post(post_id: int, db: AsyncSession = Depends(get_db)):
    return await post_service.get_post(db, post_id)

@router.post("/posts", status_code=201, response_model=PostResponse)
async def create_post(
    data: PostCreate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    return await post_service.create_post(db, data, principal)

@router.put("/posts/{post_id}", response_model=PostResponse)
async def update_post(
    post_id: int,
    data: PostUpdate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    return await post_service.update_post(db, post_id, data, principal)

@router.delete("/posts/{post_id}", response_model=MessageResponse)
async def delete_post(
    post_id: int,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    await post_service.delete_post(db, post_id, principal)
    return {"message": "post deleted"}

@router.get("/posts/{post_id}/comments", response_model=list[CommentResponse])
async def list_post_comments(post_id: int, db: AsyncSession = Depends(get_db)):
    return await comment_service.get_comments_for_post(db, post_id)

@router.post("/posts/{post_id}/comments", status_code=201, response_model=CommentResponse)
async def add_comment(
    post_id: int,
    data: CommentCreate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    return await comment_service.add_comment(db, post_id, data, principal)
