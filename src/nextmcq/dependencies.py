"""Shared FastAPI dependencies."""

from collections.abc import AsyncGenerator

from fastapi import Request

from nextmcq.database import get_session as _get_session
from nextmcq.redis_client import get_redis_or_none
from nextmcq.rewards.config_store import RewardConfigStore

get_db = _get_session


async def get_optional_redis() -> AsyncGenerator[object, None]:
    """Yield the Redis client, or None when Redis is not initialized."""
    yield get_redis_or_none()


def get_config_store(request: Request) -> RewardConfigStore:
    """The app's reward configuration store (defaults until loaded at startup)."""
    store: RewardConfigStore | None = getattr(request.app.state, "reward_config", None)
    if store is None:
        store = RewardConfigStore()
        request.app.state.reward_config = store
    return store
