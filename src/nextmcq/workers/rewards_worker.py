"""Monthly rewards arq worker: scheduled init and batch processing.

Runs the same service code as the cron HTTP endpoints, for deployments that
prefer an in-cluster scheduler over an external cron calling the API.
"""

from __future__ import annotations

import logging

import redis.asyncio as aioredis
import structlog
from arq import cron
from sqlalchemy.ext.asyncio import AsyncSession

from nextmcq.config import get_settings
from nextmcq.database import close_db, get_session, init_db
from nextmcq.middleware.logging import setup_logging
from nextmcq.rewards.batch_processor import run_pending_jobs
from nextmcq.rewards.config_store import RewardConfigStore
from nextmcq.rewards.service import initialize_monthly_rewards

logger = logging.getLogger(__name__)


async def _get_db_session() -> AsyncSession:
    """Get a database session for the worker."""
    async for session in get_session():
        return session
    raise RuntimeError("Failed to get database session")


async def rewards_startup(ctx: dict) -> None:  # type: ignore[type-arg]
    """Initialize DB, Redis and the reward config store on worker startup."""
    settings = get_settings()
    setup_logging(settings)
    await init_db(settings.database_url)

    ctx["redis"] = aioredis.from_url(
        settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=10,
    )

    store = RewardConfigStore()
    db = await _get_db_session()
    try:
        await store.load(db)
    finally:
        await db.close()
    ctx["reward_config"] = store
    logger.info("Rewards worker started")


async def rewards_shutdown(ctx: dict) -> None:  # type: ignore[type-arg]
    """Clean up on worker shutdown."""
    redis_client: aioredis.Redis | None = ctx.get("redis")
    if redis_client:
        await redis_client.aclose()
    await close_db()
    logger.info("Rewards worker shut down")


async def init_monthly_rewards(ctx: dict) -> dict:  # type: ignore[type-arg]
    """Scheduled task: 1st of each month at 00:05 UTC.

    Creates last month's snapshots and jobs. Idempotent.
    """
    structlog.contextvars.bind_contextvars(cron_job="init_monthly_rewards")
    store: RewardConfigStore = ctx["reward_config"]
    db = await _get_db_session()
    try:
        # Pick up admin edits made since the last run
        await store.invalidate(db)
        result = await initialize_monthly_rewards(db, store)
        logger.info(
            "Monthly rewards init for %02d/%d: %s",
            result["month"], result["year"],
            {category: r["status"] for category, r in result["results"].items()},
        )
        return result
    finally:
        await db.close()


async def process_monthly_rewards(ctx: dict) -> dict:  # type: ignore[type-arg]
    """Periodic task: advance pending reward jobs every 2 minutes."""
    structlog.contextvars.bind_contextvars(cron_job="process_monthly_rewards")
    db = await _get_db_session()
    try:
        result = await run_pending_jobs(db, ctx.get("redis"))
        if result["status"] != "idle":
            logger.info(
                "Processed %d reward jobs in %s, %d remaining",
                len(result["results"]), result["duration"], result["remaining_jobs"],
            )
        return result
    finally:
        await db.close()


class RewardsWorkerSettings:
    """arq worker settings for the monthly rewards scheduler."""

    functions = [init_monthly_rewards, process_monthly_rewards]
    cron_jobs = [
        cron(init_monthly_rewards, day=1, hour=0, minute=5),
        cron(process_monthly_rewards, minute=set(range(0, 60, 2))),
    ]
    on_startup = rewards_startup
    on_shutdown = rewards_shutdown
    max_jobs = 2
    job_timeout = 300  # 5 minutes, matches the job lease
