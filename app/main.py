from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from redis.asyncio import Redis
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy import text

from app.core.config import settings
from app.core.exceptions import register_exception_handlers
from app.core.log_config import RequestLoggingMiddleware, setup_logging
from app.core.rate_limit import limiter
from app.db.session import SessionLocal
from app.watch.routes import admin as watch_admin
from app.watch.routes import progress

setup_logging()
logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    logger.info("starting_up", project=settings.PROJECT_NAME)
    app.state.redis = Redis.from_url(settings.REDIS_URL, decode_responses=True, encoding="utf-8")

    yield

    logger.info("closing_redis")
    await app.state.redis.close()
    logger.info("shutdown_complete")


app = FastAPI(
    title=settings.PROJECT_NAME,
    debug=settings.DEBUG,
    lifespan=lifespan,
    description="Server-side validation of video watch progress",
    version="1.0.0",
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)  # type: ignore[arg-type]
register_exception_handlers(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestLoggingMiddleware)

app.include_router(progress.router, prefix=settings.API_V1_PREFIX, tags=["progress"])
app.include_router(
    watch_admin.router, prefix=f"{settings.API_V1_PREFIX}/admin", tags=["admin-progress"]
)


@app.get("/")
async def root() -> dict[str, str]:
    return {"message": settings.PROJECT_NAME, "version": "1.0.0", "status": "running"}


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Report database and broker reachability. Never raises."""
    redis_status = "unknown"
    db_status = "unknown"

    redis_client: Redis | None = getattr(app.state, "redis", None)
    try:
        if redis_client is not None:
            await redis_client.ping()
            redis_status = "healthy"
    except Exception:
        redis_status = "unhealthy"

    try:
        db = SessionLocal()
        try:
            db.execute(text("SELECT 1"))
            db_status = "healthy"
        finally:
            db.close()
    except Exception:
        db_status = "unhealthy"

    all_healthy = redis_status == "healthy" and db_status == "healthy"
    overall = "healthy" if all_healthy else "degraded"

    return {"status": overall, "redis": redis_status, "database": db_status}
