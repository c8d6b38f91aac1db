from __future__ import annotations

from contextlib import contextmanager

import redis


@contextmanager
def entity_lock(*, r: redis.Redis, kind: str, entity_id: str, ttl_ms: int = 5_000):
    """Best-effort lock serializing mutations of one flow or session.

    A second caller gets a ValueError instead of waiting; the core never
    blocks.
    """

    key = f"lock:{kind}:{entity_id}"
    acquired = r.set(key, "1", nx=True, px=ttl_ms)
    if not acquired:
        raise ValueError(f"{kind.capitalize()} is busy")
    try:
        yield
    finally:
        r.delete(key)
