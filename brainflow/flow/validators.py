from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING

from brainflow.errors import FlowErrorKind, FlowStateError
from brainflow.flow.fsm import FlowPhase

if TYPE_CHECKING:
    from brainflow.flow.sequencer import StepSequencer


@dataclass(frozen=True, slots=True)
class TransitionContext:
    """Inputs available to transition guards.

    Keep this tight and serializable-ish so we can safely log it.
    """

    flow_id: str
    action: str
    index: int | None = None


class TransitionValidator(ABC):
    """A small, composable guard for one sequencer transition."""

    @abstractmethod
    def validate(self, *, ctx: TransitionContext, flow: StepSequencer) -> None:
        raise NotImplementedError


@dataclass(frozen=True, slots=True)
class FlowOpenValidator(TransitionValidator):
    """Deny every mutation once the flow is finished or abandoned."""

    def validate(self, *, ctx: TransitionContext, flow: StepSequencer) -> None:
        if flow.phase != FlowPhase.in_progress:
            raise FlowStateError(
                FlowErrorKind.flow_already_closed,
                f"Action '{ctx.action}' not allowed: flow is {flow.phase.value}",
            )


@dataclass(frozen=True, slots=True)
class ReadinessValidator(TransitionValidator):
    """The current step must have reported itself ready."""

    def validate(self, *, ctx: TransitionContext, flow: StepSequencer) -> None:
        if not flow.is_ready:
            raise FlowStateError(FlowErrorKind.not_ready, f"Step {flow.current_index} is not ready")


@dataclass(frozen=True, slots=True)
class CurrentStepValidator(TransitionValidator):
    """Only the step on screen may gate its own progression."""

    def validate(self, *, ctx: TransitionContext, flow: StepSequencer) -> None:
        if ctx.index != flow.current_index:
            raise FlowStateError(
                FlowErrorKind.invalid_transition,
                f"Readiness can only be set for the current step {flow.current_index} (got {ctx.index})",
            )


@dataclass(frozen=True, slots=True)
class NotFirstStepValidator(TransitionValidator):
    def validate(self, *, ctx: TransitionContext, flow: StepSequencer) -> None:
        if flow.current_index == 0:
            raise FlowStateError(FlowErrorKind.invalid_transition, "Already at the first step")


@dataclass(frozen=True, slots=True)
class LastStepValidator(TransitionValidator):
    def validate(self, *, ctx: TransitionContext, flow: StepSequencer) -> None:
        if flow.current_index != len(flow.steps) - 1:
            raise FlowStateError(
                FlowErrorKind.invalid_transition,
                f"Only the last step can finish the flow (at step {flow.current_index} of {len(flow.steps)})",
            )


@dataclass(frozen=True, slots=True)
class ValidatorPipeline:
    validators: tuple[TransitionValidator, ...]

    def validate(self, *, ctx: TransitionContext, flow: StepSequencer) -> None:
        for v in self.validators:
            v.validate(ctx=ctx, flow=flow)


DEFAULT_TRANSITION_PIPELINES: dict[str, ValidatorPipeline] = {
    "advance": ValidatorPipeline(validators=(FlowOpenValidator(), ReadinessValidator())),
    "retreat": ValidatorPipeline(validators=(FlowOpenValidator(), NotFirstStepValidator())),
    "set_readiness": ValidatorPipeline(validators=(FlowOpenValidator(), CurrentStepValidator())),
    "finish": ValidatorPipeline(validators=(FlowOpenValidator(), LastStepValidator(), ReadinessValidator())),
    "abandon": ValidatorPipeline(validators=(FlowOpenValidator(),)),
}


def pipeline_for_transition(action: str) -> ValidatorPipeline:
    pipe = DEFAULT_TRANSITION_PIPELINES.get(action)
    if pipe is None:
        raise ValueError(f"Unknown transition: {action}")
    return pipe
