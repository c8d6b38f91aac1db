from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime
from uuid import UUID, uuid4

import redis

from brainflow.api.models import FlowRecord
from brainflow.assets.registry import ContentCatalog
from brainflow.errors import RecordNotFound
from brainflow.flow.sequencer import StepSequencer
from brainflow.translations import normalize_locale

logger = logging.getLogger(__name__)


FLOW_KEY_PREFIX = "brainflow:flow:"  # + {uuid}
USER_FLOWS_KEY_PREFIX = "brainflow:user-flows:"  # + {user_id}
COMPLETION_KEY_PREFIX = "brainflow:flow-complete:"  # + {user_id}:{flow_name}


def _now() -> datetime:
    return datetime.now(tz=UTC)


def _flow_key(flow_id: UUID) -> str:
    return f"{FLOW_KEY_PREFIX}{flow_id}"


def _completion_key(user_id: str, flow_name: str) -> str:
    return f"{COMPLETION_KEY_PREFIX}{user_id}:{flow_name}"


def save_flow(*, r: redis.Redis, record: FlowRecord) -> None:
    record.last_updated_at = _now()
    r.set(_flow_key(record.flow_id), record.model_dump_json())


def get_flow(*, r: redis.Redis, flow_id: UUID) -> FlowRecord | None:
    raw = r.get(_flow_key(flow_id))
    if not raw:
        return None
    return FlowRecord.model_validate_json(raw)


def require_flow(*, r: redis.Redis, flow_id: UUID) -> FlowRecord:
    record = get_flow(r=r, flow_id=flow_id)
    if record is None:
        raise RecordNotFound("Flow not found")
    return record


def create_flow(
    *,
    r: redis.Redis,
    catalog: ContentCatalog,
    user_id: str,
    flow_name: str,
    locale: str | None,
) -> FlowRecord:
    steps = catalog.flow(flow_name)
    now = _now()

    record = FlowRecord(
        flow_id=uuid4(),
        user_id=user_id,
        flow_name=flow_name,
        locale=normalize_locale(locale),
        created_at=now,
        last_updated_at=now,
        snapshot=StepSequencer(steps).snapshot(),
    )
    r.set(_flow_key(record.flow_id), record.model_dump_json())
    r.sadd(f"{USER_FLOWS_KEY_PREFIX}{user_id}", str(record.flow_id))
    logger.info("Created flow %s (%s) for user %s", record.flow_id, flow_name, user_id)
    return record


def list_flows(*, r: redis.Redis, user_id: str) -> list[FlowRecord]:
    out: list[FlowRecord] = []
    for sid in sorted(r.smembers(f"{USER_FLOWS_KEY_PREFIX}{user_id}")):
        try:
            fid = UUID(sid)
        except ValueError:
            continue
        record = get_flow(r=r, flow_id=fid)
        if record is not None:
            out.append(record)
    out.sort(key=lambda f: f.created_at, reverse=True)
    return out


def mark_flow_complete(*, r: redis.Redis, user_id: str, flow_name: str) -> bool:
    """Persist "<flow> complete" for a user. Returns False if it was already recorded."""

    stored = r.set(_completion_key(user_id, flow_name), _now().isoformat(), nx=True)
    return bool(stored)


def is_flow_complete(*, r: redis.Redis, user_id: str, flow_name: str) -> bool:
    return bool(r.exists(_completion_key(user_id, flow_name)))


def completion_hook(*, r: redis.Redis, record: FlowRecord) -> Callable[[], None]:
    """`on_finished` callback for a sequencer built from `record`."""

    def _on_finished() -> None:
        if mark_flow_complete(r=r, user_id=record.user_id, flow_name=record.flow_name):
            logger.info("Recorded %s completion for user %s", record.flow_name, record.user_id)

    return _on_finished


def sequencer_for(
    *,
    record: FlowRecord,
    catalog: ContentCatalog,
    strict: bool,
    on_finished: Callable[[], None] | None = None,
) -> StepSequencer:
    return StepSequencer.restore(
        catalog.flow(record.flow_name),
        record.snapshot,
        strict=strict,
        on_finished=on_finished,
        flow_id=str(record.flow_id),
    )

