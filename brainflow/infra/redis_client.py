from __future__ import annotations

import redis

from brainflow.config import settings_from_env


def create_redis() -> redis.Redis:
    # decode_responses=True => strings in/out instead of bytes
    return redis.Redis.from_url(settings_from_env().redis_url, decode_responses=True)
