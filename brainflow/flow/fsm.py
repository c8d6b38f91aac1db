from __future__ import annotations

from enum import StrEnum

from statemachine import State, StateMachine


class FlowPhase(StrEnum):
    in_progress = "in_progress"
    finished = "finished"
    abandoned = "abandoned"


class StepStatus(StrEnum):
    not_reached = "not_reached"
    current = "current"
    completed = "completed"


class FlowFSM(StateMachine):
    """Flow-level phase machine.

    Only guards the terminal transitions; step position and readiness live on
    the sequencer.
    """

    in_progress = State(FlowPhase.in_progress.value, value=FlowPhase.in_progress.value, initial=True)
    finished = State(FlowPhase.finished.value, value=FlowPhase.finished.value, final=True)
    abandoned = State(FlowPhase.abandoned.value, value=FlowPhase.abandoned.value, final=True)

    complete = in_progress.to(finished)
    abandon = in_progress.to(abandoned)

    def __init__(self, phase: FlowPhase = FlowPhase.in_progress):
        super().__init__(start_value=phase.value)

    @property
    def phase(self) -> FlowPhase:
        return FlowPhase(str(self.current_state.value))
