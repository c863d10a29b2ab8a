"""Monthly rewards API: cron triggers, admin reads and user reward history."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from nextmcq.auth.dependencies import get_current_user, require_cron_key
from nextmcq.config import get_settings
from nextmcq.db.models import User
from nextmcq.dependencies import get_config_store, get_db, get_optional_redis
from nextmcq.rewards.award_service import get_period_rewards, get_user_reward_history
from nextmcq.rewards.batch_processor import run_pending_jobs
from nextmcq.rewards.config_store import RewardConfigStore
from nextmcq.rewards.schemas import (
    InitResponse,
    JobsStatusResponse,
    PeriodResultsResponse,
    ProcessResponse,
    RewardConfigResponse,
    RewardHistoryResponse,
    RewardJobResponse,
    RewardRecordResponse,
)
from nextmcq.rewards.service import get_jobs_status, initialize_monthly_rewards
from nextmcq.schemas import Envelope, ok

router = APIRouter(prefix="/api/v1/ranking/monthly-rewards", tags=["Monthly Rewards"])


# ── Cron triggers ──


@router.post("/init", response_model=Envelope[InitResponse], dependencies=[Depends(require_cron_key)])
async def init_monthly_rewards(
    db: AsyncSession = Depends(get_db),
    config_store: RewardConfigStore = Depends(get_config_store),
):
    """Create last month's snapshots and reward jobs. Safe to call repeatedly."""
    result = await initialize_monthly_rewards(db, config_store)
    return ok(InitResponse.model_validate(result), "Monthly rewards initialized")


@router.post("/process", response_model=Envelope[ProcessResponse], dependencies=[Depends(require_cron_key)])
async def process_monthly_rewards(
    db: AsyncSession = Depends(get_db),
    redis: object = Depends(get_optional_redis),
):
    """Advance every claimable job by one batch within the time budget."""
    result = await run_pending_jobs(db, redis)
    message = "No pending jobs" if result["status"] == "idle" else "Batch processing completed"
    return ok(ProcessResponse.model_validate(result), message)


@router.get("/status", response_model=Envelope[JobsStatusResponse], dependencies=[Depends(require_cron_key)])
async def monthly_rewards_status(
    month: int | None = Query(None, ge=1, le=12),
    year: int | None = Query(None, ge=2000),
    db: AsyncSession = Depends(get_db),
):
    """Most recent jobs and per-status totals."""
    status = await get_jobs_status(db, month, year)
    return ok(JobsStatusResponse(
        jobs=[RewardJobResponse.model_validate(job) for job in status["jobs"]],
        summary=status["summary"],
    ))


@router.get("/results", response_model=Envelope[PeriodResultsResponse], dependencies=[Depends(require_cron_key)])
async def monthly_rewards_results(
    month: int = Query(..., ge=1, le=12),
    year: int = Query(..., ge=2000),
    category: str = Query(..., pattern="^(students|teachers)$"),
    db: AsyncSession = Depends(get_db),
):
    """Every reward granted for one period, in rank order."""
    records = await get_period_rewards(db, month, year, category)
    return ok(PeriodResultsResponse(
        month=month,
        year=year,
        category=category,
        total=len(records),
        rewards=[RewardRecordResponse.model_validate(r) for r in records],
    ))


@router.post(
    "/config/refresh",
    response_model=Envelope[RewardConfigResponse],
    dependencies=[Depends(require_cron_key)],
)
async def refresh_reward_config(
    db: AsyncSession = Depends(get_db),
    config_store: RewardConfigStore = Depends(get_config_store),
):
    """Reload reward amounts from app_config. Jobs already initialized keep their frozen table."""
    table = await config_store.invalidate(db)
    return ok(
        RewardConfigResponse(tiers={tier.value: reward for tier, reward in table.tiers.items()}),
        "Reward configuration reloaded",
    )


# ── User endpoints ──


@router.get("/history", response_model=Envelope[RewardHistoryResponse])
async def my_reward_history(
    limit: int | None = Query(None, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """The caller's monthly rewards, newest period first."""
    if limit is None:
        limit = get_settings().reward_history_default_limit
    records = await get_user_reward_history(db, current_user.id, limit=limit)
    return ok(RewardHistoryResponse(
        rewards=[RewardRecordResponse.model_validate(r) for r in records],
        count=len(records),
    ))
