from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from pydantic import BaseModel, Field

from brainflow.errors import FlowErrorKind, FlowStateError
from brainflow.flow.fsm import FlowFSM, FlowPhase, StepStatus
from brainflow.flow.steps import StepDefinition
from brainflow.flow.validators import TransitionContext, pipeline_for_transition

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class TransitionResult:
    """Outcome of one sequencer call.

    - `ok`: the call took effect (or was an allowed no-op such as a repeated `finish()`).
    - `error`: why it did not, when `ok` is False.
    """

    ok: bool
    current_index: int
    phase: FlowPhase
    error: FlowErrorKind | None = None
    message: str = ""


class FlowSnapshot(BaseModel):
    """Serializable sequencer state; the step list itself is not part of it."""

    current_index: int = 0
    readiness: dict[int, bool] = Field(default_factory=dict)
    completed: list[int] = Field(default_factory=list)
    phase: FlowPhase = FlowPhase.in_progress


class StepSequencer:
    """Walks an ordered, immutable list of steps.

    Forward progress is gated per step: `advance()` only moves past the
    current step once that step has reported itself ready through
    `set_readiness()`. Presentational steps start ready, interactive ones do
    not.

    Contract violations (`invalid_transition`, `flow_already_closed`) raise
    `FlowStateError` when `strict` is set and are logged and ignored
    otherwise. `not_ready` is never raised; callers are expected to check
    `is_ready` before offering the action.
    """

    def __init__(
        self,
        steps: Sequence[StepDefinition],
        *,
        strict: bool = False,
        on_finished: Callable[[], None] | None = None,
        flow_id: str = "",
    ):
        if not steps:
            raise ValueError("A flow needs at least one step")

        self._steps: tuple[StepDefinition, ...] = tuple(steps)
        self._strict = strict
        self._on_finished = on_finished
        self.flow_id = flow_id

        self._current_index = 0
        self._readiness: dict[int, bool] = {i: step.default_ready for i, step in enumerate(self._steps)}
        self._completed: set[int] = set()
        self._fsm = FlowFSM()

    @classmethod
    def restore(
        cls,
        steps: Sequence[StepDefinition],
        snapshot: FlowSnapshot,
        *,
        strict: bool = False,
        on_finished: Callable[[], None] | None = None,
        flow_id: str = "",
    ) -> StepSequencer:
        seq = cls(steps, strict=strict, on_finished=on_finished, flow_id=flow_id)
        if not 0 <= snapshot.current_index < len(seq._steps):
            raise ValueError(f"Snapshot index {snapshot.current_index} is outside the flow ({len(seq._steps)} steps)")

        seq._current_index = snapshot.current_index
        for idx, ready in snapshot.readiness.items():
            if 0 <= idx < len(seq._steps):
                seq._readiness[idx] = ready
        seq._completed = {i for i in snapshot.completed if 0 <= i < len(seq._steps)}
        seq._fsm = FlowFSM(snapshot.phase)
        return seq

    def snapshot(self) -> FlowSnapshot:
        return FlowSnapshot(
            current_index=self._current_index,
            readiness=dict(self._readiness),
            completed=sorted(self._completed),
            phase=self.phase,
        )

    # --- queries -------------------------------------------------------------

    @property
    def steps(self) -> tuple[StepDefinition, ...]:
        return self._steps

    @property
    def phase(self) -> FlowPhase:
        return self._fsm.phase

    @property
    def current_index(self) -> int:
        return self._current_index

    @property
    def current_step(self) -> StepDefinition:
        return self._steps[self._current_index]

    @property
    def is_ready(self) -> bool:
        return self._readiness.get(self._current_index, False)

    @property
    def can_retreat(self) -> bool:
        return self.phase == FlowPhase.in_progress and self._current_index > 0

    def readiness(self, index: int) -> bool:
        return self._readiness.get(index, False)

    def status(self, index: int) -> StepStatus:
        if not 0 <= index < len(self._steps):
            raise IndexError(f"No step {index}")
        if index == self._current_index and self.phase == FlowPhase.in_progress:
            return StepStatus.current
        if index in self._completed:
            return StepStatus.completed
        return StepStatus.not_reached

    def statuses(self) -> list[StepStatus]:
        return [self.status(i) for i in range(len(self._steps))]

    # --- transitions ---------------------------------------------------------

    def advance(self) -> TransitionResult:
        denied = self._guard("advance")
        if denied is not None:
            return denied

        self._completed.add(self._current_index)
        if self._current_index == len(self._steps) - 1:
            self._close_finished()
        else:
            self._current_index += 1
            logger.debug("Flow %s advanced to step %s", self.flow_id, self._current_index)
        return self._result()

    def retreat(self) -> TransitionResult:
        denied = self._guard("retreat")
        if denied is not None:
            return denied

        # The readiness of the step being left is kept as-is.
        self._current_index -= 1
        logger.debug("Flow %s retreated to step %s", self.flow_id, self._current_index)
        return self._result()

    def set_readiness(self, index: int, ready: bool) -> TransitionResult:
        denied = self._guard("set_readiness", index=index)
        if denied is not None:
            return denied

        self._readiness[index] = ready
        return self._result()

    def finish(self) -> TransitionResult:
        """Close the flow as completed by the user.

        Only the last step, once ready, can finish the flow; anywhere else the
        call is reported like any other refused transition. Completion can be
        triggered from more than one place (an explicit "done" action and the
        last step's own advance), so calling this on an already finished flow
        is a no-op.
        """

        if self.phase == FlowPhase.finished:
            return self._result()
        denied = self._guard("finish")
        if denied is not None:
            return denied

        self._completed.add(self._current_index)
        self._close_finished()
        return self._result()

    def abandon(self) -> TransitionResult:
        denied = self._guard("abandon")
        if denied is not None:
            return denied

        self._fsm.abandon()
        logger.info("Flow %s abandoned at step %s", self.flow_id, self._current_index)
        return self._result()

    # --- internals -----------------------------------------------------------

    def _close_finished(self) -> None:
        self._fsm.complete()
        logger.info("Flow %s finished", self.flow_id)
        if self._on_finished is not None:
            self._on_finished()

    def _result(self) -> TransitionResult:
        return TransitionResult(ok=True, current_index=self._current_index, phase=self.phase)

    def _guard(self, action: str, *, index: int | None = None) -> TransitionResult | None:
        ctx = TransitionContext(flow_id=self.flow_id, action=action, index=index)
        try:
            pipeline_for_transition(action).validate(ctx=ctx, flow=self)
        except FlowStateError as e:
            return self._violation(ctx, e)
        return None

    def _violation(self, ctx: TransitionContext, error: FlowStateError) -> TransitionResult:
        if error.kind == FlowErrorKind.not_ready:
            logger.debug("Flow %s: %s", self.flow_id, error)
        elif self._strict:
            raise error
        else:
            logger.warning("Flow %s: ignoring '%s': %s", self.flow_id, ctx.action, error)

        return TransitionResult(
            ok=False,
            current_index=self._current_index,
            phase=self.phase,
            error=error.kind,
            message=str(error),
        )
