"""Ranking and monthly reward schema.

Creates users (if the account service has not already), user_badges,
app_config, ranking_snapshots, ranking_snapshot_entries, reward_jobs and
reward_records.

Revision ID: 001_rewards_schema
Revises: None
Create Date: 2026-10-01
"""

from collections.abc import Sequence

from alembic import op

revision: str = "001_rewards_schema"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # --- Users (shared with the account service) ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS users (
            id BIGSERIAL PRIMARY KEY,
            name VARCHAR(50) NOT NULL,
            email VARCHAR(320) UNIQUE NOT NULL,
            role VARCHAR(16) NOT NULL DEFAULT 'student',
            institute VARCHAR(128),
            is_active BOOLEAN NOT NULL DEFAULT true,
            total_tests INTEGER NOT NULL DEFAULT 0,
            correct_answers INTEGER NOT NULL DEFAULT 0,
            total_questions INTEGER NOT NULL DEFAULT 0,
            tests_created INTEGER NOT NULL DEFAULT 0,
            total_attempts_of_students INTEGER NOT NULL DEFAULT 0,
            coins BIGINT NOT NULL DEFAULT 0,
            xp BIGINT NOT NULL DEFAULT 0,
            level INTEGER NOT NULL DEFAULT 1,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS idx_users_role_active ON users(role, is_active)")

    # --- User Badges ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS user_badges (
            id BIGSERIAL PRIMARY KEY,
            user_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            name VARCHAR(64) NOT NULL,
            category VARCHAR(16) NOT NULL,
            month INTEGER NOT NULL,
            year INTEGER NOT NULL,
            tier VARCHAR(16) NOT NULL,
            rank INTEGER NOT NULL,
            earned_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_user_badges_period UNIQUE (user_id, category, month, year)
        )
    """)

    # --- App Config ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS app_config (
            id BIGSERIAL PRIMARY KEY,
            key VARCHAR(128) UNIQUE NOT NULL,
            value JSON NOT NULL,
            description VARCHAR(256) NOT NULL DEFAULT '',
            category VARCHAR(16) NOT NULL DEFAULT 'system',
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)

    # --- Ranking Snapshots ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS ranking_snapshots (
            id BIGSERIAL PRIMARY KEY,
            month INTEGER NOT NULL,
            year INTEGER NOT NULL,
            category VARCHAR(16) NOT NULL,
            total_users INTEGER NOT NULL DEFAULT 0,
            snapshot_date TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            processed BOOLEAN NOT NULL DEFAULT false,
            processed_at TIMESTAMPTZ,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_ranking_snapshots_period UNIQUE (month, year, category)
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS ranking_snapshot_entries (
            id BIGSERIAL PRIMARY KEY,
            snapshot_id BIGINT NOT NULL REFERENCES ranking_snapshots(id) ON DELETE CASCADE,
            user_id BIGINT NOT NULL,
            rank INTEGER NOT NULL,
            score BIGINT NOT NULL,
            user_name VARCHAR(50),
            user_email VARCHAR(320),
            role VARCHAR(16) NOT NULL,
            CONSTRAINT uq_snapshot_entries_rank UNIQUE (snapshot_id, rank),
            CONSTRAINT uq_snapshot_entries_user UNIQUE (snapshot_id, user_id)
        )
    """)

    # --- Reward Jobs ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS reward_jobs (
            id BIGSERIAL PRIMARY KEY,
            month INTEGER NOT NULL,
            year INTEGER NOT NULL,
            category VARCHAR(16) NOT NULL,
            status VARCHAR(16) NOT NULL DEFAULT 'pending',
            current_batch INTEGER NOT NULL DEFAULT 0,
            total_batches INTEGER NOT NULL DEFAULT 0,
            batch_size INTEGER NOT NULL DEFAULT 50,
            total_users INTEGER NOT NULL DEFAULT 0,
            processed_users INTEGER NOT NULL DEFAULT 0,
            failed_users INTEGER NOT NULL DEFAULT 0,
            snapshot_id BIGINT REFERENCES ranking_snapshots(id) ON DELETE RESTRICT,
            reward_table JSON,
            stats JSON NOT NULL DEFAULT '{}',
            error_log JSON NOT NULL DEFAULT '[]',
            retry_count INTEGER NOT NULL DEFAULT 0,
            max_retries INTEGER NOT NULL DEFAULT 3,
            last_error TEXT,
            started_at TIMESTAMPTZ,
            last_processed_at TIMESTAMPTZ,
            completed_at TIMESTAMPTZ,
            processing_duration DOUBLE PRECISION,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_reward_jobs_period UNIQUE (month, year, category)
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS idx_reward_jobs_status ON reward_jobs(status)")

    # --- Reward Records ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS reward_records (
            id BIGSERIAL PRIMARY KEY,
            user_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            month INTEGER NOT NULL,
            year INTEGER NOT NULL,
            category VARCHAR(16) NOT NULL,
            rank INTEGER NOT NULL,
            tier VARCHAR(16) NOT NULL,
            coins_awarded INTEGER NOT NULL,
            xp_awarded INTEGER NOT NULL,
            badge_awarded VARCHAR(64) NOT NULL,
            snapshot_id BIGINT NOT NULL REFERENCES ranking_snapshots(id) ON DELETE RESTRICT,
            status VARCHAR(16) NOT NULL DEFAULT 'awarded',
            awarded_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_reward_records_period UNIQUE (user_id, month, year, category)
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_reward_records_user_period
        ON reward_records(user_id, year DESC, month DESC)
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS reward_records")
    op.execute("DROP TABLE IF EXISTS reward_jobs")
    op.execute("DROP TABLE IF EXISTS ranking_snapshot_entries")
    op.execute("DROP TABLE IF EXISTS ranking_snapshots")
    op.execute("DROP TABLE IF EXISTS app_config")
    op.execute("DROP TABLE IF EXISTS user_badges")
    # users belongs to the account service
