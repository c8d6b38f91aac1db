from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import Any, Literal
from uuid import UUID

import redis

from brainflow.api.models import FlowRecord, SessionRecord
from brainflow.assets.registry import ContentCatalog
from brainflow.config import Settings
from brainflow.content.validation import validate_content
from brainflow.core.events import AnalyticsEvent
from brainflow.flow.fsm import FlowPhase
from brainflow.flow.selection import selection_ready, toggle_selection
from brainflow.flow.sequencer import StepSequencer, TransitionResult
from brainflow.flow.steps import StepKind
from brainflow.flow_store import completion_hook, get_flow, require_flow, save_flow, sequencer_for
from brainflow.lock import entity_lock
from brainflow.session.engine import SessionEngine
from brainflow.session.state import SessionPhase
from brainflow.session_store import append_session_result, new_session_record, require_session, save_session
from brainflow.streams import publish_many

logger = logging.getLogger(__name__)


FlowActionName = Literal[
    "advance",
    "retreat",
    "set_readiness",
    "finish",
    "abandon",
    "toggle_selection",
    "set_response",
]
SessionActionName = Literal["start", "input", "timeout", "complete", "abandon"]


@dataclass(frozen=True, slots=True)
class FlowActionResult:
    record: FlowRecord
    sequencer: StepSequencer
    transition: TransitionResult
    event_ids: list[str]


@dataclass(frozen=True, slots=True)
class SessionActionResult:
    record: SessionRecord
    engine: SessionEngine
    # Only set for "input": False when the engine ignored the input.
    accepted: bool | None
    event_ids: list[str]


def _selection_key(seq: StepSequencer) -> str:
    return str(seq.current_step.config.get("data_key") or f"step_{seq.current_index}")


def _require_open(seq: StepSequencer) -> None:
    if seq.phase != FlowPhase.in_progress:
        raise ValueError(f"Flow is {seq.phase.value}")


def _flow_events(*, record: FlowRecord, seq: StepSequencer, before_index: int, before_phase: FlowPhase) -> list[AnalyticsEvent]:
    base = {"flow_id": str(record.flow_id), "flow_name": record.flow_name}
    events: list[AnalyticsEvent] = []

    if seq.current_index > before_index:
        events.append(
            AnalyticsEvent.now(
                type="flow_step_advanced",
                user_id=record.user_id,
                payload={**base, "from_index": str(before_index), "to_index": str(seq.current_index)},
            )
        )
    if seq.phase != before_phase:
        if seq.phase == FlowPhase.finished:
            events.append(AnalyticsEvent.now(type="flow_finished", user_id=record.user_id, payload=base))
        elif seq.phase == FlowPhase.abandoned:
            events.append(
                AnalyticsEvent.now(
                    type="flow_abandoned",
                    user_id=record.user_id,
                    payload={**base, "step_index": str(seq.current_index)},
                )
            )
    return events


def dispatch_flow_action(
    *,
    r: redis.Redis,
    catalog: ContentCatalog,
    settings: Settings,
    flow_id: UUID,
    action: FlowActionName,
    payload: dict[str, Any] | None = None,
) -> FlowActionResult:
    """Apply one user action to a stored flow.

    - acquires the per-flow lock
    - rebuilds the sequencer from the catalog steps + stored snapshot
    - applies the transition
    - persists the snapshot (and completion, once, on finish)
    - emits analytics events (Redis Streams)
    """

    payload = payload or {}

    with entity_lock(r=r, kind="flow", entity_id=str(flow_id), ttl_ms=settings.lock_ttl_ms):
        record = require_flow(r=r, flow_id=flow_id)
        seq = sequencer_for(
            record=record,
            catalog=catalog,
            strict=settings.strict_flows,
            on_finished=completion_hook(r=r, record=record),
        )
        before_index, before_phase = seq.current_index, seq.phase

        if action == "advance":
            result = seq.advance()
        elif action == "retreat":
            result = seq.retreat()
        elif action == "set_readiness":
            result = seq.set_readiness(int(payload["index"]), bool(payload["ready"]))
        elif action == "finish":
            result = seq.finish()
        elif action == "abandon":
            result = seq.abandon()
        elif action == "toggle_selection":
            _require_open(seq)
            step = seq.current_step
            if step.kind != StepKind.selection:
                raise ValueError("Current step is not a selection step")
            key = _selection_key(seq)
            selected = toggle_selection(step.config, record.responses.get(key) or [], str(payload.get("value")))
            record.responses[key] = selected
            result = seq.set_readiness(seq.current_index, selection_ready(step.config, selected))
        elif action == "set_response":
            _require_open(seq)
            record.responses[str(payload["key"])] = payload.get("value")
            result = TransitionResult(ok=True, current_index=seq.current_index, phase=seq.phase)
        else:
            raise ValueError(f"Unknown action: {action}")

        record.snapshot = seq.snapshot()
        record.last_error = result.error
        save_flow(r=r, record=record)

        events = _flow_events(record=record, seq=seq, before_index=before_index, before_phase=before_phase)
        ids = publish_many(r=r, entries=[e.stream_entry() for e in events])

        return FlowActionResult(record=record, sequencer=seq, transition=result, event_ids=ids)


def _new_seed() -> int:
    return random.SystemRandom().randrange(2**31)


def create_session(
    *,
    r: redis.Redis,
    catalog: ContentCatalog,
    user_id: str,
    game_id: str | None = None,
    content: dict[str, Any] | None = None,
    seed: int | None = None,
    difficulty: float = 1.0,
    time_limit_ms: int | None = None,
) -> SessionRecord:
    if game_id is not None:
        game = catalog.game(game_id)
        if game is None:
            raise ValueError(f"Unknown game: {game_id}")
        if game.content is None:
            raise ValueError(f"Game {game_id} has no playable content")
        validated = game.content
    elif content is not None:
        validated = validate_content(content)
    else:
        raise ValueError("Either game_id or content is required")

    engine = SessionEngine(
        validated,
        seed=_new_seed() if seed is None else seed,
        difficulty=difficulty,
        time_limit_ms=time_limit_ms,
    )
    record = new_session_record(user_id=user_id, engine=engine, game_id=game_id)
    save_session(r=r, record=record)
    logger.info("Created session %s (%s) for user %s", record.session_id, validated.type, user_id)
    return record


def start_session_from_flow(
    *,
    r: redis.Redis,
    catalog: ContentCatalog,
    flow_id: UUID,
    seed: int | None = None,
    difficulty: float = 1.0,
    time_limit_ms: int | None = None,
) -> SessionRecord:
    """Create a session for the flow's current `game` step."""

    flow = require_flow(r=r, flow_id=flow_id)
    seq = sequencer_for(record=flow, catalog=catalog, strict=False)
    _require_open(seq)

    step = seq.current_step
    if step.kind != StepKind.game or step.content is None:
        raise ValueError("Current step is not a game step")

    engine = SessionEngine(
        step.content,
        seed=_new_seed() if seed is None else seed,
        difficulty=difficulty,
        time_limit_ms=time_limit_ms,
    )
    record = new_session_record(
        user_id=flow.user_id,
        engine=engine,
        flow_id=flow.flow_id,
        step_index=seq.current_index,
    )
    save_session(r=r, record=record)
    logger.info("Created session %s for flow %s step %s", record.session_id, flow_id, seq.current_index)
    return record


def _mark_flow_step_ready(*, r: redis.Redis, catalog: ContentCatalog, settings: Settings, record: SessionRecord) -> None:
    if record.flow_id is None or record.step_index is None:
        return

    with entity_lock(r=r, kind="flow", entity_id=str(record.flow_id), ttl_ms=settings.lock_ttl_ms):
        flow = get_flow(r=r, flow_id=record.flow_id)
        if flow is None:
            logger.warning("Session %s points at missing flow %s", record.session_id, record.flow_id)
            return

        seq = sequencer_for(record=flow, catalog=catalog, strict=False)
        if seq.phase != FlowPhase.in_progress or seq.current_index != record.step_index:
            logger.info("Flow %s moved past step %s; leaving readiness as is", flow.flow_id, record.step_index)
            return

        seq.set_readiness(record.step_index, True)
        flow.snapshot = seq.snapshot()
        save_flow(r=r, record=flow)


def dispatch_session_action(
    *,
    r: redis.Redis,
    catalog: ContentCatalog,
    settings: Settings,
    session_id: UUID,
    action: SessionActionName,
    payload: dict[str, Any] | None = None,
) -> SessionActionResult:
    payload = payload or {}

    with entity_lock(r=r, kind="session", entity_id=str(session_id), ttl_ms=settings.lock_ttl_ms):
        record = require_session(r=r, session_id=session_id)
        engine = SessionEngine.restore(record.state)

        accepted: bool | None = None
        if action == "start":
            engine.start()
        elif action == "input":
            accepted = engine.record_input(payload["value"], at_ms=payload.get("at_ms"))
        elif action == "timeout":
            engine.timeout(at_ms=payload.get("at_ms"))
        elif action == "complete":
            engine.complete()
        elif action == "abandon":
            engine.abandon()
        else:
            raise ValueError(f"Unknown action: {action}")

        record.state = engine.state
        save_session(r=r, record=record)

        events: list[AnalyticsEvent] = []
        base = {"session_id": str(record.session_id), "content_type": engine.content.type}
        if engine.phase == SessionPhase.complete and action == "complete":
            result = append_session_result(r=r, record=record)
            events.append(
                AnalyticsEvent.now(
                    type="session_completed",
                    user_id=record.user_id,
                    payload={
                        **base,
                        "score": str(result.outcome.score),
                        "correct": str(result.outcome.correct).lower(),
                        "elapsed_ms": str(result.outcome.elapsed_ms),
                    },
                )
            )
        elif engine.phase == SessionPhase.abandoned:
            events.append(AnalyticsEvent.now(type="session_abandoned", user_id=record.user_id, payload=base))

        ids = publish_many(r=r, entries=[e.stream_entry() for e in events])

    if action == "complete":
        _mark_flow_step_ready(r=r, catalog=catalog, settings=settings, record=record)

    return SessionActionResult(record=record, engine=engine, accepted=accepted, event_ids=ids)
