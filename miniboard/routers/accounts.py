from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from miniboard.database import get_db
from miniboard.dependencies import get_current_principal, get_password_hasher, get_token_service
from miniboard.schemas import AccountResponse, LoginRequest, LoginResponse, MessageResponse, RegisterRequest
from miniboard.security import PasswordHasher, Principal, TokenService
from miniboard.services import account_service

router = APIRouter(prefix="/api", tags=["accounts"])

@router.post("/register", status_code=201, response_model=MessageResponse)
async def register(
    data: RegisterRequest,
    db: AsyncSession = Depends(get_db),
    hasher: PasswordHasher = Depends(get_password_hasher),
):
    return await account_service.register(db, data, hasher)

@router.post("/login", response_model=LoginResponse)
async def login(
    data: LoginRequest,
    db: AsyncSession = Depends(get_db),
    hasher: PasswordHasher = Depends(get_password_hasher),
    tokens: TokenService = Depends(get_token_service),
):
    return await account_service.login(db, data, hasher, tokens)

@router.get("/profile", response_model=AccountResponse)
async def get_profile(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    return await account_service.get_profile(db, principal.id)

@router.delete("/profile", response_model=MessageResponse)
async def delete_profile(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    await account_service.delete_account(db, principal.id)
    return {"message": "account deleted"}
