"""Monthly reward initialization and job status reporting.

``initialize_monthly_rewards`` is what the cron ``init`` trigger runs on the
first of each month: for every reward category it creates the job of the
previous month, captures the ranking snapshot and freezes the reward table
onto the job. It is safe to call repeatedly.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from nextmcq.db.models import RewardJob
from nextmcq.exceptions import RewardsError
from nextmcq.ranking.scoring import REWARD_CATEGORIES
from nextmcq.rewards import job_service
from nextmcq.rewards.config_store import RewardConfigStore
from nextmcq.rewards.period_utils import get_previous_month
from nextmcq.rewards.snapshot_service import get_or_create_snapshot

logger = logging.getLogger(__name__)

RECENT_JOBS_LIMIT = 10


async def _initialize_category(
    db: AsyncSession,
    config_store: RewardConfigStore,
    month: int,
    year: int,
    category: str,
) -> dict[str, Any]:
    job = await job_service.find_or_create_job(db, month, year, category)

    if job.status == job_service.STATUS_COMPLETED:
        return {"status": "already_completed", "job_id": job.id, "progress": job_service.job_progress(job)}

    requeued = False
    if job.status == job_service.STATUS_FAILED:
        # A manual re-init re-arms a job that ran out of retries
        job.status = job_service.STATUS_PENDING
        job.retry_count = 0
        job.last_error = None
        requeued = True

    if job.snapshot_id is not None:
        if requeued:
            await db.commit()
            logger.info("Requeued failed reward job %d for %s %02d/%d", job.id, category, month, year)
            return {"status": "requeued", "job_id": job.id, "progress": job_service.job_progress(job)}
        return {"status": "already_initialized", "job_id": job.id, "progress": job_service.job_progress(job)}

    if job.current_batch > 0 or job.processed_users > 0 or job.failed_users > 0:
        # Batches were already paid from a snapshot that no longer exists
        raise RewardsError(f"Reward job {job.id} has progress but no snapshot, not rebuilding")

    snapshot = await get_or_create_snapshot(db, month, year, category)
    # Snapshot commit/rollback may have expired the job
    await db.refresh(job)

    job.snapshot_id = snapshot.id
    job.total_users = snapshot.total_users
    job.total_batches = math.ceil(snapshot.total_users / job.batch_size)
    job.current_batch = 0
    job.processed_users = 0
    job.failed_users = 0
    job.reward_table = config_store.table.to_json()
    job.status = job_service.STATUS_PENDING
    await db.commit()

    logger.info(
        "Initialized %s reward job %d for %02d/%d: %d users in %d batches",
        category, job.id, month, year, job.total_users, job.total_batches,
    )
    return {
        "status": "initialized",
        "job_id": job.id,
        "snapshot_id": snapshot.id,
        "total_users": job.total_users,
        "total_batches": job.total_batches,
    }


async def initialize_monthly_rewards(
    db: AsyncSession,
    config_store: RewardConfigStore,
    now: datetime | None = None,
) -> dict[str, Any]:
    """Create snapshots and jobs for the previous month, one per reward category.

    A failure in one category is reported in its result and does not stop
    the others.
    """
    month, year = get_previous_month(now)
    logger.info("Initializing monthly rewards for %02d/%d", month, year)

    results: dict[str, dict[str, Any]] = {}
    for category in REWARD_CATEGORIES:
        try:
            results[category] = await _initialize_category(db, config_store, month, year, category)
        except Exception as exc:
            logger.exception("Failed to initialize %s rewards for %02d/%d", category, month, year)
            await db.rollback()
            results[category] = {"status": "error", "error": str(exc)}

    return {"month": month, "year": year, "results": results}


async def get_jobs_status(
    db: AsyncSession,
    month: int | None = None,
    year: int | None = None,
) -> dict[str, Any]:
    """Most recent jobs plus per-status totals, optionally limited to one period."""
    filters = []
    if month is not None:
        filters.append(RewardJob.month == month)
    if year is not None:
        filters.append(RewardJob.year == year)

    jobs_result = await db.execute(
        select(RewardJob)
        .where(*filters)
        .order_by(RewardJob.created_at.desc(), RewardJob.id.desc())
        .limit(RECENT_JOBS_LIMIT)
    )
    jobs = list(jobs_result.scalars().all())

    summary_result = await db.execute(
        select(
            RewardJob.status,
            func.count(RewardJob.id).label("count"),
            func.coalesce(func.sum(RewardJob.processed_users), 0).label("total_processed"),
            func.coalesce(func.sum(RewardJob.failed_users), 0).label("total_failed"),
        )
        .where(*filters)
        .group_by(RewardJob.status)
    )
    summary = {
        row.status: {
            "count": int(row.count),
            "total_processed": int(row.total_processed),
            "total_failed": int(row.total_failed),
        }
        for row in summary_result
    }

    return {"jobs": jobs, "summary": summary}
