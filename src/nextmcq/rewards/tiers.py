"""Monthly reward tiers.

Tier boundaries are fixed:

    rank 1       → CHAMPION
    rank 2-10    → ELITE
    rank 11-50   → ACHIEVER
    rank 51-100  → PERFORMER
    rank 101+    → UNPLACED

Reward amounts per tier are configurable (see config_store). The table in force
when a job is initialized is frozen onto the job for its whole lifetime.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel


class RewardTier(str, Enum):
    CHAMPION = "CHAMPION"
    ELITE = "ELITE"
    ACHIEVER = "ACHIEVER"
    PERFORMER = "PERFORMER"
    UNPLACED = "UNPLACED"


# (tier, highest rank in tier), checked in order
TIER_BOUNDARIES: tuple[tuple[RewardTier, int | None], ...] = (
    (RewardTier.CHAMPION, 1),
    (RewardTier.ELITE, 10),
    (RewardTier.ACHIEVER, 50),
    (RewardTier.PERFORMER, 100),
    (RewardTier.UNPLACED, None),
)


def resolve_tier(rank: int) -> RewardTier:
    """Map a 1-based rank to its reward tier."""
    if rank < 1:
        msg = f"Rank must be >= 1, got {rank}"
        raise ValueError(msg)
    for tier, upper in TIER_BOUNDARIES:
        if upper is None or rank <= upper:
            return tier
    raise AssertionError("unreachable")  # pragma: no cover


class TierReward(BaseModel):
    coins: int
    xp: int
    badge: str


DEFAULT_TIER_REWARDS: dict[RewardTier, TierReward] = {
    RewardTier.CHAMPION: TierReward(coins=1000, xp=500, badge="Monthly Champion"),
    RewardTier.ELITE: TierReward(coins=500, xp=400, badge="Monthly Elite"),
    RewardTier.ACHIEVER: TierReward(coins=200, xp=300, badge="Monthly Achiever"),
    RewardTier.PERFORMER: TierReward(coins=100, xp=200, badge="Monthly Performer"),
    RewardTier.UNPLACED: TierReward(coins=10, xp=100, badge="Monthly Unplaced"),
}


class RewardTable(BaseModel):
    """Coins/XP/badge for every tier."""

    tiers: dict[RewardTier, TierReward]

    @classmethod
    def default(cls) -> RewardTable:
        return cls(tiers={tier: reward.model_copy() for tier, reward in DEFAULT_TIER_REWARDS.items()})

    @classmethod
    def from_json(cls, data: dict[str, Any] | None) -> RewardTable:
        """Load a table frozen onto a job. Tiers missing from ``data`` fall back to defaults."""
        table = cls.default()
        for key, value in (data or {}).items():
            table.tiers[RewardTier(key)] = TierReward.model_validate(value)
        return table

    def to_json(self) -> dict[str, Any]:
        return {tier.value: reward.model_dump() for tier, reward in self.tiers.items()}

    def for_rank(self, rank: int) -> tuple[RewardTier, TierReward]:
        tier = resolve_tier(rank)
        return tier, self.tiers[tier]


def empty_stats() -> dict[str, int]:
    """Per-tier award counters kept on a reward job."""
    stats = {tier.value.lower(): 0 for tier in RewardTier}
    stats["total_coins_awarded"] = 0
    stats["total_xp_awarded"] = 0
    return stats
