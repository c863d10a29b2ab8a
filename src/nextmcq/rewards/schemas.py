"""Pydantic schemas for the monthly reward API."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict

from nextmcq.rewards.tiers import TierReward


# --- Jobs ---


class RewardJobResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    month: int
    year: int
    category: str
    status: str
    current_batch: int
    total_batches: int
    batch_size: int
    total_users: int
    processed_users: int
    failed_users: int
    snapshot_id: int | None
    stats: dict[str, int]
    error_log: list[dict[str, Any]]
    retry_count: int
    max_retries: int
    last_error: str | None
    started_at: datetime | None
    last_processed_at: datetime | None
    completed_at: datetime | None
    processing_duration: float | None
    created_at: datetime


class StatusSummary(BaseModel):
    count: int
    total_processed: int
    total_failed: int


class JobsStatusResponse(BaseModel):
    jobs: list[RewardJobResponse]
    summary: dict[str, StatusSummary]


# --- Cron triggers ---


class InitCategoryResult(BaseModel):
    status: str  # initialized, already_initialized, already_completed, requeued, error
    job_id: int | None = None
    snapshot_id: int | None = None
    total_users: int | None = None
    total_batches: int | None = None
    progress: dict[str, int] | None = None
    error: str | None = None


class InitResponse(BaseModel):
    month: int
    year: int
    results: dict[str, InitCategoryResult]


class ProcessResponse(BaseModel):
    status: str  # idle, processed
    results: list[dict[str, Any]]
    duration: str | None = None
    remaining_jobs: int | None = None


# --- Awards ---


class RewardRecordResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: int
    month: int
    year: int
    category: str
    rank: int
    tier: str
    coins_awarded: int
    xp_awarded: int
    badge_awarded: str
    awarded_at: datetime


class RewardHistoryResponse(BaseModel):
    rewards: list[RewardRecordResponse]
    count: int


class PeriodResultsResponse(BaseModel):
    month: int
    year: int
    category: str
    total: int
    rewards: list[RewardRecordResponse]


class RewardConfigResponse(BaseModel):
    tiers: dict[str, TierReward]
