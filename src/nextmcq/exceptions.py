"""Domain exceptions for ranking and reward processing."""

from __future__ import annotations


class RewardsError(Exception):
    """Base class for ranking/reward domain errors."""


class InvalidCategoryError(RewardsError):
    def __init__(self, category: str) -> None:
        super().__init__(f"Invalid category: {category}")
        self.category = category


class SnapshotNotFoundError(RewardsError):
    def __init__(self, snapshot_id: int | None) -> None:
        super().__init__(f"Snapshot not found: {snapshot_id}")
        self.snapshot_id = snapshot_id


class UserNotFoundError(RewardsError):
    def __init__(self, user_id: int) -> None:
        super().__init__(f"User not found: {user_id}")
        self.user_id = user_id
