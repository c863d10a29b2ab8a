"""Engine setup tests."""

from __future__ import annotations

import pytest
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from nextmcq.db.models import RewardJob


class TestSqliteEngine:
    @pytest.mark.asyncio
    async def test_foreign_keys_enforced(self, db_session: AsyncSession):
        assert (await db_session.execute(text("PRAGMA foreign_keys"))).scalar_one() == 1

    @pytest.mark.asyncio
    async def test_job_cannot_point_at_unknown_snapshot(self, db_session: AsyncSession):
        db_session.add(RewardJob(month=9, year=2026, category="students", snapshot_id=987_654, stats={}, error_log=[]))
        with pytest.raises(IntegrityError):
            await db_session.commit()
        await db_session.rollback()
