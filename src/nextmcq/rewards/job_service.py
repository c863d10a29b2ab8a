"""Reward job state machine.

    pending ──claim──► processing ──release──► pending
                           │
                           ├──► completed
                           └──► failed ──claim (retry_count < max_retries)──► processing

A job is claimable when it is pending, when it is processing but its
``last_processed_at`` is older than the lease timeout (the worker holding it
died), or when it failed and still has retries left. Claiming is a single
conditional UPDATE, so two overlapping invocations cannot both claim the same
job. A holder that outlives its lease can still race the worker that
reclaimed it; ``advance_batch`` moves the cursor only from the batch the
caller processed, so the slower of the two gives up instead of skipping a
batch.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from sqlalchemy import and_, case, func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.elements import ColumnElement

from nextmcq.config import get_settings
from nextmcq.db.models import RewardJob
from nextmcq.rewards.period_utils import as_utc
from nextmcq.rewards.tiers import empty_stats

logger = logging.getLogger(__name__)

STATUS_PENDING = "pending"
STATUS_PROCESSING = "processing"
STATUS_COMPLETED = "completed"
STATUS_FAILED = "failed"


def _claimable(now: datetime, lease_timeout_seconds: int) -> ColumnElement[bool]:
    stale_before = now - timedelta(seconds=lease_timeout_seconds)
    return or_(
        RewardJob.status == STATUS_PENDING,
        and_(
            RewardJob.status == STATUS_PROCESSING,
            or_(RewardJob.last_processed_at.is_(None), RewardJob.last_processed_at < stale_before),
        ),
        and_(
            RewardJob.status == STATUS_FAILED,
            RewardJob.retry_count < RewardJob.max_retries,
        ),
    )


async def get_job(db: AsyncSession, month: int, year: int, category: str) -> RewardJob | None:
    result = await db.execute(
        select(RewardJob).where(
            RewardJob.month == month,
            RewardJob.year == year,
            RewardJob.category == category,
        )
    )
    return result.scalar_one_or_none()


async def find_or_create_job(db: AsyncSession, month: int, year: int, category: str) -> RewardJob:
    """Return the period's job, creating it as pending with zero progress."""
    job = await get_job(db, month, year, category)
    if job is not None:
        return job

    settings = get_settings()
    now = datetime.now(timezone.utc)
    job = RewardJob(
        month=month,
        year=year,
        category=category,
        status=STATUS_PENDING,
        batch_size=settings.reward_batch_size,
        max_retries=settings.reward_max_retries,
        stats=empty_stats(),
        error_log=[],
        created_at=now,
        updated_at=now,
    )
    db.add(job)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        existing = await get_job(db, month, year, category)
        if existing is None:
            raise
        return existing
    return job


async def get_pending_jobs(
    db: AsyncSession,
    now: datetime | None = None,
    lease_timeout_seconds: int | None = None,
) -> list[RewardJob]:
    """Jobs with claimable work, oldest period first."""
    if now is None:
        now = datetime.now(timezone.utc)
    if lease_timeout_seconds is None:
        lease_timeout_seconds = get_settings().reward_lease_timeout_seconds
    result = await db.execute(
        select(RewardJob)
        .where(RewardJob.snapshot_id.is_not(None), _claimable(now, lease_timeout_seconds))
        .order_by(RewardJob.year.asc(), RewardJob.month.asc(), RewardJob.id.asc())
    )
    return list(result.scalars().all())


async def count_unfinished_jobs(db: AsyncSession) -> int:
    result = await db.execute(
        select(func.count(RewardJob.id)).where(RewardJob.status.in_([STATUS_PENDING, STATUS_PROCESSING]))
    )
    return int(result.scalar_one())


async def mark_processing(
    db: AsyncSession,
    job: RewardJob,
    now: datetime | None = None,
    lease_timeout_seconds: int | None = None,
) -> bool:
    """Claim the job. Returns False if another worker holds it or it is finished."""
    if now is None:
        now = datetime.now(timezone.utc)
    if lease_timeout_seconds is None:
        lease_timeout_seconds = get_settings().reward_lease_timeout_seconds

    result = await db.execute(
        update(RewardJob)
        .where(RewardJob.id == job.id, _claimable(now, lease_timeout_seconds))
        .values(
            status=STATUS_PROCESSING,
            last_processed_at=now,
            started_at=case((RewardJob.started_at.is_(None), now), else_=RewardJob.started_at),
            updated_at=now,
        )
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    await db.refresh(job)
    return result.rowcount == 1


async def advance_batch(db: AsyncSession, job_id: int, from_batch: int) -> bool:
    """Move the cursor from ``from_batch`` to the next batch, uncommitted.

    Returns False when the cursor is no longer at ``from_batch``: a worker
    that reclaimed a stale lease already finished this batch.
    """
    result = await db.execute(
        update(RewardJob)
        .where(RewardJob.id == job_id, RewardJob.current_batch == from_batch)
        .values(current_batch=RewardJob.current_batch + 1)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


async def update_progress(db: AsyncSession, job: RewardJob, processed: int, failed: int) -> None:
    """Add batch counters and stamp the lease. Status is left unchanged."""
    now = datetime.now(timezone.utc)
    job.processed_users += processed
    job.failed_users += failed
    job.last_processed_at = now
    job.updated_at = now
    await db.flush()


async def release(db: AsyncSession, job: RewardJob) -> None:
    """Hand a partially processed job back so the next invocation can claim it."""
    job.status = STATUS_PENDING
    job.updated_at = datetime.now(timezone.utc)
    await db.flush()


async def mark_completed(db: AsyncSession, job: RewardJob) -> None:
    now = datetime.now(timezone.utc)
    job.status = STATUS_COMPLETED
    job.completed_at = now
    job.updated_at = now
    started_at = as_utc(job.started_at)
    if started_at is not None:
        job.processing_duration = round((now - started_at).total_seconds(), 3)
    await db.flush()


async def mark_failed(db: AsyncSession, job: RewardJob, error_message: str) -> None:
    job.status = STATUS_FAILED
    job.last_error = error_message
    job.retry_count += 1
    job.updated_at = datetime.now(timezone.utc)
    await db.flush()
    logger.warning(
        "Reward job %d (%s %02d/%d) failed (attempt %d/%d): %s",
        job.id, job.category, job.month, job.year, job.retry_count, job.max_retries, error_message,
    )


def job_progress(job: RewardJob) -> dict:
    percentage = round(job.processed_users / job.total_users * 100) if job.total_users else 100
    return {
        "batch": job.current_batch,
        "total_batches": job.total_batches,
        "processed_users": job.processed_users,
        "failed_users": job.failed_users,
        "total_users": job.total_users,
        "percentage": percentage,
    }
