"""Batch processor for monthly reward jobs.

Each call advances one job by one batch of snapshot entries. No state is
kept in memory between calls: the job row's ``current_batch`` is both the
resume cursor and the slice offset, so a job interrupted after batch k is
picked up again at batch k.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from nextmcq.config import get_settings
from nextmcq.db.models import RankingSnapshot, RewardJob
from nextmcq.exceptions import SnapshotNotFoundError
from nextmcq.rewards import job_service
from nextmcq.rewards.award_service import AwardRequest, award_monthly_reward
from nextmcq.rewards.snapshot_service import get_snapshot_entries, mark_snapshot_processed
from nextmcq.rewards.tiers import RewardTable, empty_stats

logger = logging.getLogger(__name__)


async def _complete(db: AsyncSession, job: RewardJob, snapshot: RankingSnapshot) -> None:
    await job_service.mark_completed(db, job)
    await mark_snapshot_processed(db, snapshot)
    await db.commit()
    logger.info(
        "Reward job %d completed for %s %02d/%d: %d users processed, %d failed",
        job.id, job.category, job.month, job.year, job.processed_users, job.failed_users,
    )


def _job_summary(job: RewardJob, status: str | None = None) -> dict[str, Any]:
    return {
        "job_id": job.id,
        "category": job.category,
        "month": job.month,
        "year": job.year,
        "status": status or job.status,
    }


async def process_job_batch(db: AsyncSession, redis: object, job: RewardJob) -> dict[str, Any]:
    """Advance ``job`` by one batch and return a progress report.

    Per-user failures are recorded in the job's error log and do not stop
    the batch. Job-level failures (e.g. missing snapshot) propagate.
    """
    if not await job_service.mark_processing(db, job):
        logger.info("Reward job %d is held by another worker, skipping", job.id)
        return _job_summary(job, status="skipped")

    snapshot = await db.get(RankingSnapshot, job.snapshot_id) if job.snapshot_id is not None else None
    if snapshot is None:
        raise SnapshotNotFoundError(job.snapshot_id)

    logger.info(
        "Processing batch %d/%d for %s %02d/%d",
        job.current_batch + 1, job.total_batches, job.category, job.month, job.year,
    )

    batch = job.current_batch
    start = batch * job.batch_size
    entries = [
        {"user_id": e.user_id, "rank": e.rank}
        for e in await get_snapshot_entries(db, snapshot.id, offset=start, limit=job.batch_size)
    ]

    if not entries:
        await _complete(db, job, snapshot)
        return {
            **_job_summary(job),
            "total_processed": job.processed_users,
            "stats": job.stats,
        }

    table = RewardTable.from_json(job.reward_table)
    # Plain copies: a per-user rollback expires every loaded row
    job_id, snapshot_id = job.id, snapshot.id
    month, year, category = job.month, job.year, job.category
    batch_stats = empty_stats()
    errors: list[dict[str, Any]] = []
    processed = 0
    failed = 0

    for entry in entries:
        tier, reward = table.for_rank(entry["rank"])
        try:
            await award_monthly_reward(db, redis, AwardRequest(
                user_id=entry["user_id"],
                month=month,
                year=year,
                category=category,
                tier=tier,
                rank=entry["rank"],
                coins=reward.coins,
                xp=reward.xp,
                badge=reward.badge,
                snapshot_id=snapshot_id,
            ))
        except Exception as exc:
            await db.rollback()
            logger.warning("Failed to award user %d (rank %d): %s", entry["user_id"], entry["rank"], exc)
            failed += 1
            errors.append({
                "user_id": entry["user_id"],
                "rank": entry["rank"],
                "error": str(exc),
                "at": datetime.now(timezone.utc).isoformat(),
            })
            continue

        # Counted whether granted now or on an earlier interrupted run of this batch
        batch_stats[tier.value.lower()] += 1
        batch_stats["total_coins_awarded"] += reward.coins
        batch_stats["total_xp_awarded"] += reward.xp
        processed += 1

    if not await job_service.advance_batch(db, job_id, batch):
        await db.rollback()
        await db.refresh(job)
        logger.warning(
            "Batch %d of reward job %d was already recorded by another worker, discarding counters",
            batch + 1, job_id,
        )
        return _job_summary(job, status="skipped")

    await db.refresh(job)
    await db.refresh(snapshot)

    stats = dict(job.stats or empty_stats())
    for key, value in batch_stats.items():
        stats[key] = stats.get(key, 0) + value
    job.stats = stats
    if errors:
        job.error_log = [*(job.error_log or []), *errors]
    await job_service.update_progress(db, job, processed, failed)

    if job.current_batch >= job.total_batches:
        await _complete(db, job, snapshot)
    else:
        await job_service.release(db, job)
        await db.commit()

    return {
        **_job_summary(job),
        "progress": job_service.job_progress(job),
        "batch_result": {"processed": processed, "failed": failed, "errors": len(errors)},
    }


async def run_pending_jobs(
    db: AsyncSession,
    redis: object,
    budget_seconds: float | None = None,
) -> dict[str, Any]:
    """Process one batch for every claimable job until the wall-clock budget runs out."""
    if budget_seconds is None:
        budget_seconds = get_settings().reward_process_budget_seconds

    started = time.monotonic()
    pending = await job_service.get_pending_jobs(db)
    if not pending:
        return {"status": "idle", "results": []}

    logger.info("Processing %d pending reward jobs", len(pending))
    job_ids = [job.id for job in pending]
    results: list[dict[str, Any]] = []

    for job_id in job_ids:
        if time.monotonic() - started > budget_seconds:
            logger.info("Reward processing budget of %.1fs reached, stopping", budget_seconds)
            break

        job = await db.get(RewardJob, job_id)
        if job is None:
            continue
        try:
            results.append(await process_job_batch(db, redis, job))
        except Exception as exc:
            logger.exception("Error processing reward job %d", job_id)
            await db.rollback()
            await db.refresh(job)
            await job_service.mark_failed(db, job, str(exc))
            await db.commit()
            results.append({**_job_summary(job), "error": str(exc)})

    duration = time.monotonic() - started
    return {
        "status": "processed",
        "results": results,
        "duration": f"{duration:.2f}s",
        "remaining_jobs": await job_service.count_unfinished_jobs(db),
    }
