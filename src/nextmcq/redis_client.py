"""Redis pool shared by the API, the rate limiter and reward notifications.

Redis is optional for reward processing: awards are committed to the database
first and the pub/sub notification is best effort. ``publish_event`` drops
the event when Redis is down or was never initialized.
"""

import json
import logging
from typing import Any

import redis.asyncio as redis

logger = logging.getLogger(__name__)

_pool: redis.Redis | None = None


async def init_redis(url: str) -> None:
    global _pool  # noqa: PLW0603
    _pool = redis.from_url(  # type: ignore[no-untyped-call]
        url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=20,
        health_check_interval=30,
    )


async def close_redis() -> None:
    global _pool  # noqa: PLW0603
    if _pool:
        await _pool.aclose()
        _pool = None


def get_redis() -> redis.Redis:
    """The pool, for code that cannot run without Redis (rate limiting, readiness)."""
    if _pool is None:
        msg = "Redis not initialized. Call init_redis() first."
        raise RuntimeError(msg)
    return _pool


def get_redis_or_none() -> redis.Redis | None:
    return _pool


async def publish_event(client: Any, channel: str, payload: dict[str, Any]) -> bool:  # noqa: ANN401
    """Publish ``payload`` as JSON on ``channel``. Returns False if it was dropped."""
    if client is None:
        return False
    try:
        await client.publish(channel, json.dumps(payload))
    except Exception:
        logger.warning("Failed to publish to %s, dropping event", channel, exc_info=True)
        return False
    return True
