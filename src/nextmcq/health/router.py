"""Liveness, readiness and version endpoints.

``/ready`` also reports the reward pipeline's state (config source and job
backlog) so a stuck monthly run is visible from the readiness check operators
already watch. Only the database and Redis decide readiness.
"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy import func, select, text
from sqlalchemy.ext.asyncio import AsyncSession

from nextmcq.config import get_settings
from nextmcq.db.models import RewardJob
from nextmcq.dependencies import get_db
from nextmcq.redis_client import get_redis

router = APIRouter()


@router.get("/health")
async def health() -> dict[str, str]:
    return {"status": "healthy"}


async def _reward_backlog(db: AsyncSession) -> dict[str, int]:
    result = await db.execute(select(RewardJob.status, func.count(RewardJob.id)).group_by(RewardJob.status))
    counts = {status: int(count) for status, count in result}
    return {
        "pending": counts.get("pending", 0),
        "processing": counts.get("processing", 0),
        "failed": counts.get("failed", 0),
    }


@router.get("/ready")
async def readiness(
    request: Request,
    db: AsyncSession = Depends(get_db),  # noqa: B008
) -> dict[str, object]:
    checks: dict[str, str] = {}
    rewards: dict[str, object] = {}

    try:
        await db.execute(text("SELECT 1"))
        checks["database"] = "ok"
        rewards["jobs"] = await _reward_backlog(db)
    except Exception as exc:
        checks["database"] = f"error: {exc}"

    try:
        await get_redis().ping()
        checks["redis"] = "ok"
    except Exception as exc:
        checks["redis"] = f"error: {exc}"

    store = getattr(request.app.state, "reward_config", None)
    rewards["config"] = "app_config" if store is not None and store.loaded else "defaults"

    all_ok = all(v == "ok" for v in checks.values())
    return {"status": "ready" if all_ok else "degraded", "checks": checks, "rewards": rewards}


@router.get("/version")
async def version() -> dict[str, object]:
    settings = get_settings()
    return {
        "version": settings.app_version,
        "environment": settings.environment,
        "reward_batch_size": settings.reward_batch_size,
    }
