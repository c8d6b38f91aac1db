from __future__ import annotations

from statemachine import State, StateMachine

from brainflow.session.state import SessionPhase


class SessionFSM(StateMachine):
    """Lifecycle of one interactive content unit.

    setup -> active -> scoring -> complete, with cancellation from setup or
    active going straight to abandoned. Both terminal states are final: an
    engine that reached them is discarded, never reset.
    """

    setup = State(SessionPhase.setup.value, value=SessionPhase.setup.value, initial=True)
    active = State(SessionPhase.active.value, value=SessionPhase.active.value)
    scoring = State(SessionPhase.scoring.value, value=SessionPhase.scoring.value)
    complete = State(SessionPhase.complete.value, value=SessionPhase.complete.value, final=True)
    abandoned = State(SessionPhase.abandoned.value, value=SessionPhase.abandoned.value, final=True)

    begin = setup.to(active)
    close_inputs = active.to(scoring)
    finalize = scoring.to(complete)
    cancel = setup.to(abandoned) | active.to(abandoned)

    def __init__(self, phase: SessionPhase = SessionPhase.setup):
        super().__init__(start_value=phase.value)

    @property
    def phase(self) -> SessionPhase:
        return SessionPhase(str(self.current_state.value))
