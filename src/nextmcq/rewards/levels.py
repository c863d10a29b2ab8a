"""Level computation from cumulative XP.

Level 2 costs BASE_XP; every following level costs XP_GROWTH_PERCENT more
than the previous one, floored. Level never decreases as XP grows.
"""

from __future__ import annotations

BASE_XP = 100
XP_GROWTH_PERCENT = 10


def xp_required_for_level(level: int) -> int:
    """Cumulative XP needed to reach ``level``."""
    if level <= 1:
        return 0
    total = 0
    cost = BASE_XP
    for _ in range(1, level):
        total += cost
        cost = cost * (100 + XP_GROWTH_PERCENT) // 100
    return total


def compute_level(total_xp: int) -> dict:
    """Compute level info from total XP."""
    level = 1
    used = 0
    cost = BASE_XP

    while used + cost <= total_xp:
        used += cost
        level += 1
        cost = cost * (100 + XP_GROWTH_PERCENT) // 100

    return {
        "level": level,
        "xp_into_level": max(total_xp - used, 0),
        "xp_for_level": cost,
        "next_level": level + 1,
    }
