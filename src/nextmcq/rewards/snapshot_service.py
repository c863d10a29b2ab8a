"""Monthly ranking snapshots.

A snapshot freezes the ranking of one category for one month. It is built
once per (month, year, category) and reused afterwards, so reward processing
for a period never runs against two different rankings.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from nextmcq.config import get_settings
from nextmcq.db.models import RankingSnapshot, RankingSnapshotEntry
from nextmcq.exceptions import InvalidCategoryError
from nextmcq.ranking.leaderboard_service import fetch_ranked_users
from nextmcq.ranking.scoring import REWARD_CATEGORIES

logger = logging.getLogger(__name__)


async def get_snapshot(db: AsyncSession, month: int, year: int, category: str) -> RankingSnapshot | None:
    result = await db.execute(
        select(RankingSnapshot).where(
            RankingSnapshot.month == month,
            RankingSnapshot.year == year,
            RankingSnapshot.category == category,
        )
    )
    return result.scalar_one_or_none()


async def create_snapshot(
    db: AsyncSession,
    month: int,
    year: int,
    category: str,
    max_users: int | None = None,
) -> RankingSnapshot:
    """Rank every active user of the category and persist the result."""
    if category not in REWARD_CATEGORIES:
        raise InvalidCategoryError(category)
    if max_users is None:
        max_users = get_settings().snapshot_max_users

    ranked = await fetch_ranked_users(db, category, limit=max_users)
    now = datetime.now(timezone.utc)

    snapshot = RankingSnapshot(
        month=month,
        year=year,
        category=category,
        total_users=len(ranked),
        snapshot_date=now,
        processed=False,
        created_at=now,
    )
    db.add(snapshot)
    await db.flush()  # Get snapshot.id

    db.add_all(
        RankingSnapshotEntry(
            snapshot_id=snapshot.id,
            user_id=entry["user_id"],
            rank=entry["rank"],
            score=entry["score"],
            user_name=entry["name"],
            user_email=entry["email"],
            role=entry["role"],
        )
        for entry in ranked
    )
    await db.commit()

    logger.info("Created %s snapshot for %02d/%d: %d users", category, month, year, snapshot.total_users)
    return snapshot


async def get_or_create_snapshot(db: AsyncSession, month: int, year: int, category: str) -> RankingSnapshot:
    """Return the period's snapshot, building it on first use."""
    existing = await get_snapshot(db, month, year, category)
    if existing is not None:
        return existing

    try:
        return await create_snapshot(db, month, year, category)
    except IntegrityError:
        # Another initializer created it first
        await db.rollback()
        snapshot = await get_snapshot(db, month, year, category)
        if snapshot is None:
            raise
        return snapshot


async def get_snapshot_entries(
    db: AsyncSession,
    snapshot_id: int,
    offset: int,
    limit: int,
) -> list[RankingSnapshotEntry]:
    """One slice of a snapshot in rank order."""
    result = await db.execute(
        select(RankingSnapshotEntry)
        .where(RankingSnapshotEntry.snapshot_id == snapshot_id)
        .order_by(RankingSnapshotEntry.rank.asc())
        .offset(offset)
        .limit(limit)
    )
    return list(result.scalars().all())


async def mark_snapshot_processed(db: AsyncSession, snapshot: RankingSnapshot) -> None:
    snapshot.processed = True
    snapshot.processed_at = datetime.now(timezone.utc)
    await db.flush()
