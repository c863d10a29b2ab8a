"""Health endpoint tests."""

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from nextmcq.rewards import job_service


@pytest.mark.asyncio
async def test_health(client: AsyncClient) -> None:
    """GET /health returns 200 with healthy status."""
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


@pytest.mark.asyncio
async def test_readiness_without_redis(client: AsyncClient) -> None:
    """Database is reachable; Redis is not initialized in tests, so the service is degraded."""
    response = await client.get("/ready")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "degraded"
    assert data["checks"]["database"] == "ok"
    assert data["checks"]["redis"].startswith("error")
    assert data["rewards"] == {
        "jobs": {"pending": 0, "processing": 0, "failed": 0},
        "config": "defaults",
    }


@pytest.mark.asyncio
async def test_readiness_reports_reward_backlog(client: AsyncClient, db_session: AsyncSession) -> None:
    await job_service.find_or_create_job(db_session, 9, 2026, "students")
    failed = await job_service.find_or_create_job(db_session, 9, 2026, "teachers")
    failed.status = "failed"
    await db_session.commit()

    data = (await client.get("/ready")).json()

    assert data["rewards"]["jobs"] == {"pending": 1, "processing": 0, "failed": 1}


@pytest.mark.asyncio
async def test_version(client: AsyncClient) -> None:
    response = await client.get("/version")
    assert response.status_code == 200
    data = response.json()
    assert data["version"] == "0.1.0"
    assert data["reward_batch_size"] == 50
    assert "environment" in data
