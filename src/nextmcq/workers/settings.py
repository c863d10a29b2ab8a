"""arq worker settings module.

Import path for arq CLI: arq nextmcq.workers.settings.WorkerSettings
"""

from __future__ import annotations

from arq.connections import RedisSettings

from nextmcq.config import get_settings
from nextmcq.workers.rewards_worker import RewardsWorkerSettings


class WorkerSettings(RewardsWorkerSettings):
    redis_settings = RedisSettings.from_dsn(get_settings().arq_redis_url)


__all__ = ["WorkerSettings"]
