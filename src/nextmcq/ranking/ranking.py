"""Deterministic rank assignment.

Users ranked by score DESC, then by user_id ASC as the tiebreaker, so a
re-run over the same counters always yields the same ranks.
"""

from __future__ import annotations

from typing import Any


def rank_entries(entries: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Sort entries and assign dense 1-based ranks.

    Input: list of dicts with at least:
        - user_id: int
        - score: int

    Output: same dicts sorted, each augmented with ``rank``.
    """
    sorted_entries = sorted(entries, key=lambda e: (-e.get("score", 0), e["user_id"]))
    for idx, entry in enumerate(sorted_entries):
        entry["rank"] = idx + 1
    return sorted_entries


def total_pages(total: int, per_page: int) -> int:
    if per_page <= 0:
        return 0
    return (total + per_page - 1) // per_page
