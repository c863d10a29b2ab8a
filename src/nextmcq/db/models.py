"""ORM models for users, ranking snapshots and the monthly reward pipeline.

Users are created by the platform's account service; this service reads their
counters and credits coins, XP, levels and badges.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from nextmcq.db.base import Base, BigIntPK


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class User(Base):
    """Maps to the 'users' table."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(50), nullable=False)
    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False)
    role: Mapped[str] = mapped_column(String(16), nullable=False, default="student", server_default="student")
    institute: Mapped[str | None] = mapped_column(String(128), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")

    # --- Student counters ---
    total_tests: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    correct_answers: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    total_questions: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")

    # --- Teacher counters ---
    tests_created: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    total_attempts_of_students: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")

    # --- Rewards ---
    coins: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0, server_default="0")
    xp: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0, server_default="0")
    level: Mapped[int] = mapped_column(Integer, nullable=False, default=1, server_default="1")

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)

    badges: Mapped[list[UserBadge]] = relationship("UserBadge", back_populates="user")


class UserBadge(Base):
    """Append-only badge list. One badge per user per ranking period."""

    __tablename__ = "user_badges"
    __table_args__ = (
        UniqueConstraint("user_id", "category", "month", "year", name="uq_user_badges_period"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    name: Mapped[str] = mapped_column(String(64), nullable=False)
    category: Mapped[str] = mapped_column(String(16), nullable=False)
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    tier: Mapped[str] = mapped_column(String(16), nullable=False)
    rank: Mapped[int] = mapped_column(Integer, nullable=False)
    earned_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)

    user: Mapped[User] = relationship("User", back_populates="badges")


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


class AppConfig(Base):
    """Admin-editable key/value settings (reward amounts, badge names)."""

    __tablename__ = "app_config"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    key: Mapped[str] = mapped_column(String(128), unique=True, nullable=False)
    value: Mapped[Any] = mapped_column(JSON, nullable=False)
    description: Mapped[str] = mapped_column(String(256), nullable=False, default="", server_default="")
    category: Mapped[str] = mapped_column(String(16), nullable=False, default="system", server_default="system")
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)


# ---------------------------------------------------------------------------
# Monthly rankings
# ---------------------------------------------------------------------------


class RankingSnapshot(Base):
    """Ranking captured once per (month, year, category)."""

    __tablename__ = "ranking_snapshots"
    __table_args__ = (
        UniqueConstraint("month", "year", "category", name="uq_ranking_snapshots_period"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    category: Mapped[str] = mapped_column(String(16), nullable=False)
    total_users: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    snapshot_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    processed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
    processed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)

    entries: Mapped[list[RankingSnapshotEntry]] = relationship(
        "RankingSnapshotEntry", back_populates="snapshot", order_by="RankingSnapshotEntry.rank"
    )


class RankingSnapshotEntry(Base):
    """One ranked user inside a snapshot. Name/email copied in case the user is deleted."""

    __tablename__ = "ranking_snapshot_entries"
    __table_args__ = (
        UniqueConstraint("snapshot_id", "rank", name="uq_snapshot_entries_rank"),
        UniqueConstraint("snapshot_id", "user_id", name="uq_snapshot_entries_user"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    snapshot_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("ranking_snapshots.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    rank: Mapped[int] = mapped_column(Integer, nullable=False)
    score: Mapped[int] = mapped_column(BigInteger, nullable=False)
    user_name: Mapped[str | None] = mapped_column(String(50), nullable=True)
    user_email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    role: Mapped[str] = mapped_column(String(16), nullable=False)

    snapshot: Mapped[RankingSnapshot] = relationship("RankingSnapshot", back_populates="entries")


class RewardJob(Base):
    """Batch-progress state machine for one (month, year, category)."""

    __tablename__ = "reward_jobs"
    __table_args__ = (
        UniqueConstraint("month", "year", "category", name="uq_reward_jobs_period"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    category: Mapped[str] = mapped_column(String(16), nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="pending", server_default="pending")

    current_batch: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_batches: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    batch_size: Mapped[int] = mapped_column(Integer, nullable=False, default=50)
    total_users: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    processed_users: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    failed_users: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    snapshot_id: Mapped[int | None] = mapped_column(
        BigInteger, ForeignKey("ranking_snapshots.id", ondelete="RESTRICT"), nullable=True
    )
    reward_table: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    stats: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    error_log: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)

    retry_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    max_retries: Mapped[int] = mapped_column(Integer, nullable=False, default=3)
    last_error: Mapped[str | None] = mapped_column(Text, nullable=True)

    started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    last_processed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    processing_duration: Mapped[float | None] = mapped_column(Float, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)


class RewardRecord(Base):
    """Immutable proof of award. Its (user, month, year, category) key is the idempotency key."""

    __tablename__ = "reward_records"
    __table_args__ = (
        UniqueConstraint("user_id", "month", "year", "category", name="uq_reward_records_period"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    category: Mapped[str] = mapped_column(String(16), nullable=False)
    rank: Mapped[int] = mapped_column(Integer, nullable=False)
    tier: Mapped[str] = mapped_column(String(16), nullable=False)
    coins_awarded: Mapped[int] = mapped_column(Integer, nullable=False)
    xp_awarded: Mapped[int] = mapped_column(Integer, nullable=False)
    badge_awarded: Mapped[str] = mapped_column(String(64), nullable=False)
    snapshot_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("ranking_snapshots.id", ondelete="RESTRICT"), nullable=False
    )
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="awarded")
    awarded_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
