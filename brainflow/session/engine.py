from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from datetime import UTC, datetime

from statemachine.exceptions import TransitionNotAllowed

from brainflow.content.schema import ContentVariant
from brainflow.errors import SessionStateError
from brainflow.session.fsm import SessionFSM
from brainflow.session.plan import DEFAULT_ARITHMETIC_ROUNDS, SessionPlan, build_plan
from brainflow.session.scoring import score_inputs
from brainflow.session.state import TERMINAL_PHASES, SessionInput, SessionOutcome, SessionPhase, SessionState

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


class SessionEngine:
    """Drives one game from setup to a terminal outcome.

    One engine per session: once it is complete or abandoned every mutating
    call raises `SessionStateError`, and a new game needs a new engine.

    Input offsets (`at_ms`) are measured from `start()`. Callers replaying a
    recorded game pass them explicitly; live callers let the engine read its
    clock.
    """

    def __init__(
        self,
        content: ContentVariant,
        *,
        seed: int,
        difficulty: float = 1.0,
        time_limit_ms: int | None = None,
        rounds: int = DEFAULT_ARITHMETIC_ROUNDS,
        clock: Callable[[], datetime] = _utcnow,
    ):
        if time_limit_ms is not None and time_limit_ms <= 0:
            raise ValueError("time_limit_ms must be positive")

        self.content = content
        self.plan: SessionPlan = build_plan(content, seed=seed, rounds=rounds)
        self._seed = seed
        self._difficulty = difficulty
        self._time_limit_ms = time_limit_ms
        self._clock = clock
        self._fsm = SessionFSM()

        self._started_at: datetime | None = None
        self._inputs: list[SessionInput] = []
        self._ended_at_ms: int | None = None
        self._timed_out = False
        self._outcome: SessionOutcome | None = None

    @classmethod
    def restore(
        cls,
        state: SessionState,
        *,
        rounds: int = DEFAULT_ARITHMETIC_ROUNDS,
        clock: Callable[[], datetime] = _utcnow,
    ) -> SessionEngine:
        engine = cls(
            state.content,
            seed=state.seed,
            difficulty=state.difficulty,
            time_limit_ms=state.time_limit_ms,
            rounds=rounds,
            clock=clock,
        )
        engine._fsm = SessionFSM(state.phase)
        engine._started_at = state.started_at
        engine._inputs = list(state.inputs)
        engine._ended_at_ms = state.ended_at_ms
        engine._timed_out = state.timed_out
        engine._outcome = state.outcome
        return engine

    # --- queries -------------------------------------------------------------

    @property
    def phase(self) -> SessionPhase:
        return self._fsm.phase

    @property
    def inputs(self) -> tuple[SessionInput, ...]:
        return tuple(self._inputs)

    @property
    def outcome(self) -> SessionOutcome | None:
        return self._outcome

    @property
    def state(self) -> SessionState:
        return SessionState(
            phase=self.phase,
            content=self.content,
            seed=self._seed,
            difficulty=self._difficulty,
            time_limit_ms=self._time_limit_ms,
            started_at=self._started_at,
            inputs=list(self._inputs),
            ended_at_ms=self._ended_at_ms,
            timed_out=self._timed_out,
            score=self._outcome.score if self._outcome else None,
            outcome=self._outcome,
        )

    def elapsed_ms(self) -> int:
        if self._started_at is None:
            return 0
        delta = self._clock() - self._started_at
        return max(0, int(delta.total_seconds() * 1000))

    # --- transitions ---------------------------------------------------------

    def start(self) -> None:
        self._transition("begin", "start")
        self._started_at = self._clock()
        logger.debug("Session started (%s)", self.content.type)

        # Content with nothing to collect is complete as soon as it starts.
        if self.plan.inputs_complete(self._inputs):
            self._close_inputs(at_ms=0)

    def record_input(self, value: int | str, *, at_ms: int | None = None) -> bool:
        """Record one answer/tap.

        Returns False when the input is ignored (memorize window, repeated
        tile). Raises ValueError for an input the content cannot accept.
        """

        self._require(SessionPhase.active, "record_input")
        offset = self.elapsed_ms() if at_ms is None else at_ms
        if offset < 0:
            raise ValueError("at_ms must be >= 0")
        if self._inputs and offset < self._inputs[-1].at_ms:
            raise ValueError("Inputs must be recorded in time order")

        if self._time_limit_ms is not None and offset >= self._time_limit_ms:
            self._timed_out = True
            self._close_inputs(at_ms=self._time_limit_ms)
            return False

        if not self.plan.accept(value, at_ms=offset, inputs=self._inputs):
            return False

        self._inputs.append(SessionInput(value=value, at_ms=offset))
        if self.plan.inputs_complete(self._inputs):
            self._close_inputs(at_ms=offset)
        return True

    def timeout(self, *, at_ms: int | None = None) -> None:
        """The caller's timer fired: stop collecting inputs and move to scoring."""

        self._require(SessionPhase.active, "timeout")
        offset = self.elapsed_ms() if at_ms is None else at_ms
        if self._time_limit_ms is not None:
            offset = min(offset, self._time_limit_ms)
        if self._inputs:
            offset = max(offset, self._inputs[-1].at_ms)
        self._timed_out = True
        self._close_inputs(at_ms=offset)

    def complete(self) -> SessionOutcome:
        self._require(SessionPhase.scoring, "complete")
        outcome = score_inputs(
            self.plan,
            self._inputs,
            difficulty=self._difficulty,
            elapsed_ms=self._ended_at_ms or 0,
        )
        self._transition("finalize", "complete")
        self._outcome = outcome
        logger.info("Session complete (%s): score=%s correct=%s", self.content.type, outcome.score, outcome.correct)
        return outcome

    def abandon(self) -> None:
        self._transition("cancel", "abandon")
        logger.info("Session abandoned (%s)", self.content.type)

    # --- internals -----------------------------------------------------------

    def _close_inputs(self, *, at_ms: int) -> None:
        self._ended_at_ms = at_ms
        self._transition("close_inputs", "close_inputs")

    def _require(self, phase: SessionPhase, action: str) -> None:
        if self.phase != phase:
            raise SessionStateError(self._denied_message(action))

    def _transition(self, event: str, action: str) -> None:
        try:
            self._fsm.send(event)
        except TransitionNotAllowed as e:
            raise SessionStateError(self._denied_message(action)) from e

    def _denied_message(self, action: str) -> str:
        if self.phase in TERMINAL_PHASES:
            return f"Session is {self.phase.value}; start a new session instead of '{action}'"
        return f"Action '{action}' not allowed in phase '{self.phase.value}'"


def replay(
    content: ContentVariant,
    inputs: Sequence[SessionInput],
    *,
    seed: int,
    difficulty: float = 1.0,
    time_limit_ms: int | None = None,
    rounds: int = DEFAULT_ARITHMETIC_ROUNDS,
) -> SessionOutcome:
    """Recompute the outcome of a recorded game."""

    engine = SessionEngine(content, seed=seed, difficulty=difficulty, time_limit_ms=time_limit_ms, rounds=rounds)
    engine.start()
    for item in inputs:
        if engine.phase != SessionPhase.active:
            break
        engine.record_input(item.value, at_ms=item.at_ms)
    if engine.phase == SessionPhase.active:
        engine.timeout(at_ms=inputs[-1].at_ms if inputs else 0)
    return engine.complete()
