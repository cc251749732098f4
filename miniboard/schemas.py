from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from miniboard.models import Role
from miniboard.security import PasswordHasher


class MessageResponse(BaseModel):
    message: str


# --- Account ---

class RegisterRequest(BaseModel):
    username: str = Field(min_length=1, max_length=100)
    password: str = Field(min_length=1)
    name: str = Field(min_length=1, max_length=150)

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, value: str) -> str:
        if len(value.encode("utf-8")) > PasswordHasher.MAX_SECRET_BYTES:
            raise ValueError(
                f"password must be at most {PasswordHasher.MAX_SECRET_BYTES} bytes"
            )
        return value


class LoginRequest(BaseModel):
    username: str = Field(min_length=1)
    password: str = Field(min_length=1)


class AccountResponse(BaseModel):
    """Public account record. Never carries the password hash."""
    id: int
    username: str
    name: str
    role: Role
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class LoginResponse(BaseModel):
    token: str
    user: AccountResponse


# --- Post ---

class AuthorSummary(BaseModel):
    id: int
    name: str


class PostCreate(BaseModel):
    title: str = Field(min_length=1, max_length=300)
    content: str = Field(min_length=1)


class PostUpdate(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=300)
    content: str | None = Field(None, min_length=1)


class PostResponse(BaseModel):
    id: int
    title: str
    content: str
    user_id: int
    created_at: datetime
    updated_at: datetime | None = None
    author: AuthorSummary | None = None


# --- Comment ---

class PostSummary(BaseModel):
    id: int
    title: str


class CommentCreate(BaseModel):
    content: str = Field(min_length=1)


class CommentUpdate(BaseModel):
    content: str = Field(min_length=1)


class CommentResponse(BaseModel):
    id: int
    content: str
    user_id: int
    post_id: int
    created_at: datetime
    updated_at: datetime | None = None
    author: AuthorSummary | None = None
    post: PostSummary | None = None


# --- Metrics ---

class MetricsResponse(BaseModel):
    total_accounts: int
    total_posts: int
    total_comments: int
    avg_comments_per_post: float
    cache_info: dict = {}
