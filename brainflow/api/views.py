from __future__ import annotations

from typing import Any

from brainflow.api.models import FlowRecord, FlowView, GameView, SessionRecord, SessionView, StepView
from brainflow.assets.registry import ContentCatalog
from brainflow.flow.sequencer import StepSequencer
from brainflow.flow.steps import STEP_ENTITY_TYPE, STEP_TEXT_FIELDS, localize_step
from brainflow.games import GameEntry
from brainflow.session.engine import SessionEngine
from brainflow.session.plan import ArithmeticPlan, MemoryMatrixPlan, SessionPlan
from brainflow.translations import build_translation_map, fetch_content_translations


def flow_view(*, record: FlowRecord, seq: StepSequencer, catalog: ContentCatalog) -> FlowView:
    step = seq.current_step
    rows = fetch_content_translations(
        catalog.translations,
        entity_type=STEP_ENTITY_TYPE,
        entity_ids=[step.entity_id] if step.entity_id else [],
        fields=STEP_TEXT_FIELDS,
        locale=record.locale,
    )
    localized = localize_step(index=seq.current_index, step=step, tmap=build_translation_map(rows))

    return FlowView(
        flow_id=record.flow_id,
        user_id=record.user_id,
        flow_name=record.flow_name,
        locale=record.locale,
        phase=seq.phase,
        current_index=seq.current_index,
        total_steps=len(seq.steps),
        is_ready=seq.is_ready,
        can_retreat=seq.can_retreat,
        statuses=seq.statuses(),
        current_step=StepView(
            index=localized.index,
            kind=localized.kind,
            title=localized.title,
            description=localized.description,
            content=localized.content.to_wire() if localized.content is not None else None,
            config=dict(localized.config),
        ),
        responses=record.responses,
        last_error=record.last_error,
    )


def plan_view(plan: SessionPlan) -> dict[str, Any]:
    """What the player needs to see. Arithmetic answers stay server-side."""

    if isinstance(plan, ArithmeticPlan):
        return {
            "problems": [{"text": p.text, "choices": list(p.choices)} for p in plan.problems],
        }
    if isinstance(plan, MemoryMatrixPlan):
        return {
            "rows": plan.rows,
            "cols": plan.cols,
            "targets": list(plan.targets),
            "display_time_ms": plan.display_time_ms,
        }
    return {"sentence_parts": list(plan.sentence_parts), "choices": list(plan.choices)}


def session_view(*, record: SessionRecord, engine: SessionEngine) -> SessionView:
    return SessionView(
        session_id=record.session_id,
        user_id=record.user_id,
        game_id=record.game_id,
        flow_id=record.flow_id,
        step_index=record.step_index,
        phase=engine.phase,
        content=engine.content.to_wire(),
        plan=plan_view(engine.plan),
        inputs_recorded=len(engine.inputs),
        score=engine.outcome.score if engine.outcome else None,
        outcome=engine.outcome,
    )


def game_view(game: GameEntry) -> GameView:
    return GameView(
        id=game.id,
        name=game.name,
        description=game.description,
        instructions=game.instructions,
        category_id=game.category_id,
        playable=game.playable,
        content=game.content.to_wire() if game.content is not None else None,
    )
