"""Best-effort pub/sub publishing."""

import json
from unittest.mock import AsyncMock

import pytest

from nextmcq.redis_client import publish_event


class TestPublishEvent:
    @pytest.mark.asyncio
    async def test_publishes_json(self):
        client = AsyncMock()
        assert await publish_event(client, "pubsub:monthly_reward", {"user_id": 7, "tier": "ELITE"}) is True
        channel, message = client.publish.await_args.args
        assert channel == "pubsub:monthly_reward"
        assert json.loads(message) == {"user_id": 7, "tier": "ELITE"}

    @pytest.mark.asyncio
    async def test_no_client_drops_event(self):
        assert await publish_event(None, "pubsub:monthly_reward", {"user_id": 7}) is False

    @pytest.mark.asyncio
    async def test_connection_error_drops_event(self):
        client = AsyncMock()
        client.publish.side_effect = ConnectionError("redis down")
        assert await publish_event(client, "pubsub:monthly_reward", {"user_id": 7}) is False
