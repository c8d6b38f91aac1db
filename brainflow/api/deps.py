from __future__ import annotations

from collections.abc import Generator

import redis

from brainflow.assets.registry import ContentCatalog
from brainflow.assets.singleton import get_catalog
from brainflow.config import Settings, settings_from_env
from brainflow.infra.redis_client import create_redis


def get_redis() -> Generator[redis.Redis, None, None]:
    client = create_redis()
    try:
        yield client
    finally:
        client.close()


def get_settings() -> Settings:
    return settings_from_env()


def get_content_catalog() -> ContentCatalog:
    return get_catalog()
