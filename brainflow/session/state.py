from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field, StrictInt, StrictStr

from brainflow.content.schema import ContentVariant


class SessionPhase(StrEnum):
    setup = "setup"
    active = "active"
    scoring = "scoring"
    complete = "complete"
    abandoned = "abandoned"


TERMINAL_PHASES: frozenset[SessionPhase] = frozenset({SessionPhase.complete, SessionPhase.abandoned})


class SessionInput(BaseModel):
    # Tile index / numeric answer, or the chosen option text.
    value: StrictInt | StrictStr
    # Milliseconds since the session became active.
    at_ms: int = Field(..., ge=0)


class SessionOutcome(BaseModel):
    score: int
    correct: bool
    elapsed_ms: int
    accuracy: float
    correct_count: int
    total: int


class SessionState(BaseModel):
    """Everything needed to rebuild an engine; owned by exactly one session."""

    phase: SessionPhase = SessionPhase.setup
    content: ContentVariant
    seed: int
    difficulty: float = 1.0
    time_limit_ms: int | None = None

    started_at: datetime | None = None
    inputs: list[SessionInput] = Field(default_factory=list)
    # Offset at which inputs closed (last answer or timeout).
    ended_at_ms: int | None = None
    timed_out: bool = False

    score: int | None = None
    outcome: SessionOutcome | None = None
