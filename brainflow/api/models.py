from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field, StrictInt, StrictStr

from brainflow.errors import FlowErrorKind
from brainflow.flow.fsm import FlowPhase, StepStatus
from brainflow.flow.sequencer import FlowSnapshot
from brainflow.flow.steps import StepKind
from brainflow.session.state import SessionOutcome, SessionPhase, SessionState


# --- persisted records ---------------------------------------------------------


class FlowRecord(BaseModel):
    flow_id: UUID
    user_id: str
    flow_name: str
    locale: str
    created_at: datetime
    last_updated_at: datetime

    snapshot: FlowSnapshot = Field(default_factory=FlowSnapshot)

    # Answers collected along the way, keyed by the step's data_key.
    responses: dict[str, Any] = Field(default_factory=dict)

    # Last contract violation reported by the sequencer (lenient mode).
    last_error: FlowErrorKind | None = None


class SessionRecord(BaseModel):
    session_id: UUID
    user_id: str
    created_at: datetime
    last_updated_at: datetime

    game_id: str | None = None
    # Set when the session was started from a game step of a flow.
    flow_id: UUID | None = None
    step_index: int | None = None

    state: SessionState


class SessionResult(BaseModel):
    """History row written once per completed session."""

    session_id: UUID
    user_id: str
    game_id: str | None
    content_type: str
    difficulty: float
    outcome: SessionOutcome
    completed_at: datetime


# --- requests ------------------------------------------------------------------


class FlowCreateRequest(BaseModel):
    user_id: str = Field(..., min_length=1)
    flow_name: str = "onboarding"
    locale: str | None = None


class ReadinessRequest(BaseModel):
    index: int
    ready: bool


class ResponseRequest(BaseModel):
    key: str = Field(..., min_length=1)
    value: Any = None


class SelectionToggleRequest(BaseModel):
    value: str


class SessionCreateRequest(BaseModel):
    user_id: str = Field(..., min_length=1)
    # Either a catalog game id or raw content.
    game_id: str | None = None
    content: dict[str, Any] | None = None
    seed: int | None = None
    difficulty: float = Field(default=1.0, ge=0, le=10)
    time_limit_ms: int | None = Field(default=None, gt=0)


class FlowSessionRequest(BaseModel):
    seed: int | None = None
    difficulty: float = Field(default=1.0, ge=0, le=10)
    time_limit_ms: int | None = Field(default=None, gt=0)


class SessionInputRequest(BaseModel):
    value: StrictInt | StrictStr
    at_ms: int | None = Field(default=None, ge=0)


class TimeoutRequest(BaseModel):
    at_ms: int | None = Field(default=None, ge=0)


# --- responses -----------------------------------------------------------------


class StepView(BaseModel):
    index: int
    kind: StepKind
    title: str
    description: str
    content: dict[str, Any] | None = None
    config: dict[str, Any] = Field(default_factory=dict)


class FlowView(BaseModel):
    flow_id: UUID
    user_id: str
    flow_name: str
    locale: str
    phase: FlowPhase
    current_index: int
    total_steps: int
    is_ready: bool
    can_retreat: bool
    statuses: list[StepStatus]
    current_step: StepView
    responses: dict[str, Any]
    last_error: FlowErrorKind | None = None


class SessionView(BaseModel):
    session_id: UUID
    user_id: str
    game_id: str | None
    flow_id: UUID | None
    step_index: int | None
    phase: SessionPhase
    content: dict[str, Any]
    # What the player is shown: problems, tiles to memorize, choices.
    plan: dict[str, Any]
    inputs_recorded: int
    score: int | None
    outcome: SessionOutcome | None


class GameView(BaseModel):
    id: str
    name: str
    description: str
    instructions: str
    category_id: str | None
    playable: bool
    content: dict[str, Any] | None


class GameListResponse(BaseModel):
    games: list[GameView]


class ContentValidateResponse(BaseModel):
    valid: bool
    content: dict[str, Any] | None = None
    error: dict[str, str] | None = None
