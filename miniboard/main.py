import logging
from contextlib import asynccontextmanager
from datetime import timedelta
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from miniboard.cache import cache
from miniboard.config import settings
from miniboard.errors import install_error_handlers
from miniboard.middleware import TimingMiddleware
from miniboard.routers import accounts, comments, metrics, posts
from miniboard.security import PasswordHasher, TokenService

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    try:
        await cache.connect()
    except Exception as exc:
        logger.warning("Starting without Redis: %s", exc)
    yield
    # Shutdown
    await cache.disconnect()

app = FastAPI(
    title="MiniBoard API",
    description="Accounts, posts and comments with owner/administrator access control",
    version="1.0.0",
    lifespan=lifespan,
)

# Auth services: built once from settings, read-only afterwards.
app.state.token_service = TokenService(
    secret=settings.SECRET_KEY,
    algorithm=settings.JWT_ALGORITHM,
    ttl=timedelta(days=settings.TOKEN_TTL_DAYS),
)
app.state.password_hasher = PasswordHasher(rounds=settings.BCRYPT_ROUNDS)

install_error_handlers(app)

# Middleware
app.add_middleware(TimingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    # Credentialed CORS is never combined with a wildcard origin.
    allow_credentials="*" not in settings.CORS_ORIGINS,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

# Routers
app.include_router(accounts.router)
app.include_router(posts.router)
app.include_router(comments.router)
app.include_router(metrics.router)

@app.get("/health")
async def health():
    return {"status": "healthy", "version": "1.0.0"}
