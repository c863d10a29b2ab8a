"""Reward configuration store.

Holds the monthly reward table (coins/XP/badge per tier). Loaded once at
startup from the ``app_config`` table, where admins override individual
values with keys like ``ranking.monthly.champion.coins``. ``invalidate``
reloads it after an admin write. The store is passed explicitly to the code
that needs it; nothing reads it as ambient state.
"""

from __future__ import annotations

import logging

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from nextmcq.db.models import AppConfig
from nextmcq.rewards.tiers import RewardTable, RewardTier, TierReward

logger = logging.getLogger(__name__)

KEY_PREFIX = "ranking.monthly."
_FIELDS = ("coins", "xp", "badge")


def table_from_settings(settings: dict[str, object]) -> RewardTable:
    """Build a reward table from ``ranking.monthly.<tier>.<field>`` settings over the defaults."""
    table = RewardTable.default()
    for tier in RewardTier:
        current = table.tiers[tier].model_dump()
        for field in _FIELDS:
            key = f"{KEY_PREFIX}{tier.value.lower()}.{field}"
            if key in settings:
                current[field] = settings[key]
        try:
            table.tiers[tier] = TierReward.model_validate(current)
        except ValidationError:
            logger.warning("Ignoring invalid reward settings for tier %s: %s", tier.value, current)
    return table


class RewardConfigStore:
    """In-memory reward table with explicit reload."""

    def __init__(self, table: RewardTable | None = None) -> None:
        self._table = table or RewardTable.default()
        self.loaded = table is not None

    @property
    def table(self) -> RewardTable:
        return self._table

    async def load(self, db: AsyncSession) -> RewardTable:
        """Read overrides from app_config. Keeps the previous table if the read fails."""
        try:
            result = await db.execute(select(AppConfig).where(AppConfig.key.startswith(KEY_PREFIX)))
            settings = {row.key: row.value for row in result.scalars()}
        except Exception:
            logger.warning("Failed to load reward settings, keeping current table", exc_info=True)
            return self._table

        self._table = table_from_settings(settings)
        self.loaded = True
        logger.info("Loaded reward settings (%d overrides)", len(settings))
        return self._table

    async def invalidate(self, db: AsyncSession) -> RewardTable:
        """Drop the cached table and reload it."""
        logger.info("Invalidating reward settings")
        return await self.load(db)
