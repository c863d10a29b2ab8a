"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from nextmcq.config import get_settings
from nextmcq.database import close_db, get_session, init_db
from nextmcq.health.router import router as health_router
from nextmcq.middleware import setup_middleware
from nextmcq.ranking.router import router as ranking_router
from nextmcq.redis_client import close_redis, init_redis
from nextmcq.rewards.config_store import RewardConfigStore
from nextmcq.rewards.router import router as rewards_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url)
    await init_redis(settings.redis_url)

    store = RewardConfigStore()
    async for db in get_session():
        await store.load(db)
        break
    app.state.reward_config = store
    logger.info("Rewards API started (environment=%s)", settings.environment)

    yield

    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="NextMCQ Rewards API",
        description="Rankings, leaderboards and the monthly reward pipeline for NextMCQ",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(ranking_router)
    app.include_router(rewards_router)

    return app


app = create_app()
