"""Idempotent monthly reward award.

The RewardRecord row keyed by (user_id, month, year, category) is the proof
of award. Badge, coin/XP credit, level and record are written in one
transaction, so a crash in the middle can never leave a credited user
without a record (and a retry can never pay twice).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from nextmcq.db.models import RewardRecord, User, UserBadge
from nextmcq.exceptions import UserNotFoundError
from nextmcq.redis_client import publish_event
from nextmcq.rewards.levels import compute_level
from nextmcq.rewards.tiers import RewardTier

logger = logging.getLogger(__name__)

REWARD_CHANNEL = "pubsub:monthly_reward"


@dataclass(frozen=True)
class AwardRequest:
    user_id: int
    month: int
    year: int
    category: str
    tier: RewardTier
    rank: int
    coins: int
    xp: int
    badge: str
    snapshot_id: int


async def get_reward_record(
    db: AsyncSession, user_id: int, month: int, year: int, category: str
) -> RewardRecord | None:
    result = await db.execute(
        select(RewardRecord).where(
            RewardRecord.user_id == user_id,
            RewardRecord.month == month,
            RewardRecord.year == year,
            RewardRecord.category == category,
        )
    )
    return result.scalar_one_or_none()


async def has_period_badge(db: AsyncSession, user_id: int, month: int, year: int, category: str) -> bool:
    result = await db.execute(
        select(UserBadge.id).where(
            UserBadge.user_id == user_id,
            UserBadge.month == month,
            UserBadge.year == year,
            UserBadge.category == category,
        )
    )
    return result.scalar_one_or_none() is not None


async def credit_user(db: AsyncSession, user_id: int, coins: int, xp: int) -> tuple[int, int]:
    """Add coins/XP with an in-database increment and raise the level to match.

    Returns (new_xp, new_level). Increments compose with any other reward
    flow crediting the same user concurrently.
    """
    now = datetime.now(timezone.utc)
    await db.execute(
        update(User)
        .where(User.id == user_id)
        .values(coins=User.coins + coins, xp=User.xp + xp, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    result = await db.execute(select(User.xp, User.level).where(User.id == user_id))
    row = result.one()
    new_level = compute_level(int(row.xp))["level"]
    if new_level > row.level:
        await db.execute(
            update(User)
            .where(User.id == user_id, User.level < new_level)
            .values(level=new_level)
            .execution_options(synchronize_session=False)
        )
    return int(row.xp), max(new_level, row.level)


async def award_monthly_reward(db: AsyncSession, redis: object, request: AwardRequest) -> bool:
    """Award one user's monthly reward. Returns True if granted, False if already awarded.

    Raises UserNotFoundError if the user no longer exists. On any other
    exception the caller must roll the session back.
    """
    existing = await get_reward_record(db, request.user_id, request.month, request.year, request.category)
    if existing is not None:
        logger.info(
            "Reward already awarded to user %d for %02d/%d/%s",
            request.user_id, request.month, request.year, request.category,
        )
        return False

    user_exists = await db.execute(select(User.id).where(User.id == request.user_id))
    if user_exists.scalar_one_or_none() is None:
        raise UserNotFoundError(request.user_id)

    now = datetime.now(timezone.utc)

    if not await has_period_badge(db, request.user_id, request.month, request.year, request.category):
        db.add(UserBadge(
            user_id=request.user_id,
            name=request.badge,
            category=request.category,
            month=request.month,
            year=request.year,
            tier=request.tier.value,
            rank=request.rank,
            earned_at=now,
        ))

    new_xp, new_level = await credit_user(db, request.user_id, request.coins, request.xp)

    db.add(RewardRecord(
        user_id=request.user_id,
        month=request.month,
        year=request.year,
        category=request.category,
        rank=request.rank,
        tier=request.tier.value,
        coins_awarded=request.coins,
        xp_awarded=request.xp,
        badge_awarded=request.badge,
        snapshot_id=request.snapshot_id,
        status="awarded",
        awarded_at=now,
    ))

    try:
        await db.commit()
    except IntegrityError:
        # Concurrent award for the same period won the unique key
        await db.rollback()
        return False

    await _publish_reward(redis, request, new_xp, new_level)
    return True


async def _publish_reward(redis: object, request: AwardRequest, new_xp: int, new_level: int) -> None:
    """Broadcast the award for notification fan-out."""
    await publish_event(redis, REWARD_CHANNEL, {
        "user_id": request.user_id,
        "month": request.month,
        "year": request.year,
        "category": request.category,
        "tier": request.tier.value,
        "rank": request.rank,
        "coins": request.coins,
        "xp": request.xp,
        "badge": request.badge,
        "total_xp": new_xp,
        "level": new_level,
    })


async def get_user_reward_history(db: AsyncSession, user_id: int, limit: int = 20) -> list[RewardRecord]:
    """A user's reward records, newest period first."""
    result = await db.execute(
        select(RewardRecord)
        .where(RewardRecord.user_id == user_id)
        .order_by(RewardRecord.year.desc(), RewardRecord.month.desc(), RewardRecord.awarded_at.desc())
        .limit(limit)
    )
    return list(result.scalars().all())


async def get_period_rewards(db: AsyncSession, month: int, year: int, category: str) -> list[RewardRecord]:
    """All records of a period, in rank order."""
    result = await db.execute(
        select(RewardRecord)
        .where(
            RewardRecord.month == month,
            RewardRecord.year == year,
            RewardRecord.category == category,
        )
        .order_by(RewardRecord.rank.asc())
    )
    return list(result.scalars().all())
