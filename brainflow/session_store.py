from __future__ import annotations

import logging
from datetime import UTC, datetime
from uuid import UUID, uuid4

import redis

from brainflow.api.models import SessionRecord, SessionResult
from brainflow.errors import RecordNotFound
from brainflow.session.engine import SessionEngine

logger = logging.getLogger(__name__)


SESSION_KEY_PREFIX = "brainflow:session:"  # + {uuid}
HISTORY_KEY_PREFIX = "brainflow:history:"  # + {user_id}


def _now() -> datetime:
    return datetime.now(tz=UTC)


def _session_key(session_id: UUID) -> str:
    return f"{SESSION_KEY_PREFIX}{session_id}"


def new_session_record(
    *,
    user_id: str,
    engine: SessionEngine,
    game_id: str | None = None,
    flow_id: UUID | None = None,
    step_index: int | None = None,
) -> SessionRecord:
    now = _now()
    return SessionRecord(
        session_id=uuid4(),
        user_id=user_id,
        created_at=now,
        last_updated_at=now,
        game_id=game_id,
        flow_id=flow_id,
        step_index=step_index,
        state=engine.state,
    )


def save_session(*, r: redis.Redis, record: SessionRecord) -> None:
    record.last_updated_at = _now()
    r.set(_session_key(record.session_id), record.model_dump_json())


def get_session(*, r: redis.Redis, session_id: UUID) -> SessionRecord | None:
    raw = r.get(_session_key(session_id))
    if not raw:
        return None
    return SessionRecord.model_validate_json(raw)


def require_session(*, r: redis.Redis, session_id: UUID) -> SessionRecord:
    record = get_session(r=r, session_id=session_id)
    if record is None:
        raise RecordNotFound("Session not found")
    return record


def append_session_result(*, r: redis.Redis, record: SessionRecord) -> SessionResult:
    """Write the history row for a completed session."""

    state = record.state
    if state.outcome is None:
        raise ValueError("Only completed sessions have a result")

    result = SessionResult(
        session_id=record.session_id,
        user_id=record.user_id,
        game_id=record.game_id,
        content_type=state.content.type,
        difficulty=state.difficulty,
        outcome=state.outcome,
        completed_at=_now(),
    )
    r.rpush(f"{HISTORY_KEY_PREFIX}{record.user_id}", result.model_dump_json())
    logger.debug("Stored result for session %s (score=%s)", record.session_id, state.outcome.score)
    return result


def list_session_results(*, r: redis.Redis, user_id: str) -> list[SessionResult]:
    rows = r.lrange(f"{HISTORY_KEY_PREFIX}{user_id}", 0, -1)
    return [SessionResult.model_validate_json(row) for row in rows]
