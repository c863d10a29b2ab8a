"""Idempotent monthly award tests."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from nextmcq.db.models import RankingSnapshot, RewardRecord, UserBadge
from nextmcq.exceptions import UserNotFoundError
from nextmcq.rewards.award_service import (
    AwardRequest,
    award_monthly_reward,
    get_period_rewards,
    get_user_reward_history,
)
from nextmcq.rewards.tiers import RewardTier
from tests.factories import create_user, reload_user


async def _snapshot(db: AsyncSession, month: int = 9, year: int = 2026, category: str = "students") -> RankingSnapshot:
    snapshot = RankingSnapshot(month=month, year=year, category=category, total_users=0)
    db.add(snapshot)
    await db.commit()
    return snapshot


def _request(user_id: int, snapshot_id: int, **overrides) -> AwardRequest:
    fields = {
        "user_id": user_id,
        "month": 9,
        "year": 2026,
        "category": "students",
        "tier": RewardTier.CHAMPION,
        "rank": 1,
        "coins": 1000,
        "xp": 500,
        "badge": "Monthly Champion",
        "snapshot_id": snapshot_id,
    }
    fields.update(overrides)
    return AwardRequest(**fields)


class TestAwardMonthlyReward:
    @pytest.mark.asyncio
    async def test_grants_coins_xp_level_badge_and_record(self, db_session: AsyncSession):
        user = await create_user(db_session, coins=5, xp=0)
        snapshot = await _snapshot(db_session)

        granted = await award_monthly_reward(db_session, None, _request(user.id, snapshot.id))
        assert granted is True

        user = await reload_user(db_session, user.id)
        assert user.coins == 1005
        assert user.xp == 500
        assert user.level == 5  # 464 <= 500 < 610

        badge = (await db_session.execute(select(UserBadge).where(UserBadge.user_id == user.id))).scalar_one()
        assert (badge.name, badge.tier, badge.rank, badge.month, badge.year) == (
            "Monthly Champion", "CHAMPION", 1, 9, 2026,
        )

        record = (await db_session.execute(select(RewardRecord))).scalar_one()
        assert record.coins_awarded == 1000
        assert record.status == "awarded"

    @pytest.mark.asyncio
    async def test_second_award_is_noop(self, db_session: AsyncSession):
        user = await create_user(db_session)
        snapshot = await _snapshot(db_session)

        assert await award_monthly_reward(db_session, None, _request(user.id, snapshot.id)) is True
        assert await award_monthly_reward(db_session, None, _request(user.id, snapshot.id)) is False

        user = await reload_user(db_session, user.id)
        assert user.coins == 1000
        assert user.xp == 500
        badges = await db_session.execute(select(func.count(UserBadge.id)))
        assert badges.scalar_one() == 1
        records = await db_session.execute(select(func.count(RewardRecord.id)))
        assert records.scalar_one() == 1

    @pytest.mark.asyncio
    async def test_other_category_awarded_separately(self, db_session: AsyncSession):
        user = await create_user(db_session)
        snapshot = await _snapshot(db_session)
        teachers = await _snapshot(db_session, category="teachers")

        await award_monthly_reward(db_session, None, _request(user.id, snapshot.id))
        granted = await award_monthly_reward(
            db_session, None, _request(user.id, teachers.id, category="teachers", coins=10, xp=100),
        )
        assert granted is True
        assert (await reload_user(db_session, user.id)).coins == 1010

    @pytest.mark.asyncio
    async def test_existing_badge_not_duplicated(self, db_session: AsyncSession):
        user = await create_user(db_session)
        snapshot = await _snapshot(db_session)
        db_session.add(UserBadge(
            user_id=user.id, name="Monthly Champion", category="students",
            month=9, year=2026, tier="CHAMPION", rank=1,
        ))
        await db_session.commit()

        assert await award_monthly_reward(db_session, None, _request(user.id, snapshot.id)) is True
        badges = await db_session.execute(select(func.count(UserBadge.id)))
        assert badges.scalar_one() == 1

    @pytest.mark.asyncio
    async def test_level_never_decreases(self, db_session: AsyncSession):
        user = await create_user(db_session, xp=0, level=9)
        snapshot = await _snapshot(db_session)
        await award_monthly_reward(db_session, None, _request(user.id, snapshot.id, xp=100))
        assert (await reload_user(db_session, user.id)).level == 9

    @pytest.mark.asyncio
    async def test_missing_user_raises(self, db_session: AsyncSession):
        snapshot = await _snapshot(db_session)
        with pytest.raises(UserNotFoundError):
            await award_monthly_reward(db_session, None, _request(999_999, snapshot.id))

    @pytest.mark.asyncio
    async def test_publishes_notification(self, db_session: AsyncSession):
        user = await create_user(db_session)
        snapshot = await _snapshot(db_session)
        redis = AsyncMock()

        await award_monthly_reward(db_session, redis, _request(user.id, snapshot.id))

        redis.publish.assert_awaited_once()
        channel, message = redis.publish.await_args.args
        assert channel == "pubsub:monthly_reward"
        assert '"tier": "CHAMPION"' in message

    @pytest.mark.asyncio
    async def test_publish_failure_does_not_undo_award(self, db_session: AsyncSession):
        user = await create_user(db_session)
        snapshot = await _snapshot(db_session)
        redis = AsyncMock()
        redis.publish.side_effect = ConnectionError("redis down")

        assert await award_monthly_reward(db_session, redis, _request(user.id, snapshot.id)) is True
        assert (await reload_user(db_session, user.id)).coins == 1000


class TestRewardQueries:
    @pytest.mark.asyncio
    async def test_history_newest_first(self, db_session: AsyncSession):
        user = await create_user(db_session)
        for month, year in [(11, 2025), (2, 2026), (12, 2025)]:
            snapshot = await _snapshot(db_session, month=month, year=year)
            await award_monthly_reward(db_session, None, _request(user.id, snapshot.id, month=month, year=year))

        history = await get_user_reward_history(db_session, user.id)
        assert [(r.year, r.month) for r in history] == [(2026, 2), (2025, 12), (2025, 11)]

        limited = await get_user_reward_history(db_session, user.id, limit=1)
        assert [(r.year, r.month) for r in limited] == [(2026, 2)]

    @pytest.mark.asyncio
    async def test_period_rewards_in_rank_order(self, db_session: AsyncSession):
        snapshot = await _snapshot(db_session)
        second = await create_user(db_session)
        first = await create_user(db_session)
        await award_monthly_reward(db_session, None, _request(
            second.id, snapshot.id, rank=2, tier=RewardTier.ELITE, coins=500, xp=400, badge="Monthly Elite",
        ))
        await award_monthly_reward(db_session, None, _request(first.id, snapshot.id))

        records = await get_period_rewards(db_session, 9, 2026, "students")
        assert [r.user_id for r in records] == [first.id, second.id]
