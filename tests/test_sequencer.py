from __future__ import annotations

import pytest

from brainflow.content.schema import MentalArithmeticContent
from brainflow.errors import FlowErrorKind, FlowStateError
from brainflow.flow.fsm import FlowPhase, StepStatus
from brainflow.flow.sequencer import FlowSnapshot, StepSequencer
from brainflow.flow.steps import StepDefinition, StepKind


def _steps() -> list[StepDefinition]:
    return [
        StepDefinition(kind=StepKind.welcome, title="Welcome"),
        StepDefinition(kind=StepKind.selection, config={"options": ["a", "b"]}),
        StepDefinition(kind=StepKind.game, content=MentalArithmeticContent()),
        StepDefinition(kind=StepKind.affirmation, title="Done"),
    ]


def test_initial_state() -> None:
    seq = StepSequencer(_steps())
    assert seq.current_index == 0
    assert seq.phase == FlowPhase.in_progress
    assert seq.is_ready is True
    assert seq.can_retreat is False
    assert seq.statuses() == [StepStatus.current, StepStatus.not_reached, StepStatus.not_reached, StepStatus.not_reached]


def test_empty_flow_is_rejected() -> None:
    with pytest.raises(ValueError):
        StepSequencer([])


def test_interactive_steps_start_not_ready() -> None:
    seq = StepSequencer(_steps())
    assert [seq.readiness(i) for i in range(4)] == [True, False, False, True]


def test_advance_is_gated_by_readiness() -> None:
    seq = StepSequencer(_steps())
    assert seq.advance().ok
    assert seq.current_index == 1

    res = seq.advance()
    assert res.ok is False
    assert res.error == FlowErrorKind.not_ready
    assert seq.current_index == 1

    assert seq.set_readiness(1, True).ok
    assert seq.advance().ok
    assert seq.current_index == 2
    assert seq.status(0) == StepStatus.completed
    assert seq.status(1) == StepStatus.completed
    assert seq.status(2) == StepStatus.current


def test_not_ready_is_never_raised_even_when_strict() -> None:
    seq = StepSequencer(_steps(), strict=True)
    seq.advance()
    res = seq.advance()
    assert res.error == FlowErrorKind.not_ready


def test_readiness_only_for_current_step() -> None:
    seq = StepSequencer(_steps())
    res = seq.set_readiness(2, True)
    assert res.ok is False
    assert res.error == FlowErrorKind.invalid_transition
    assert seq.readiness(2) is False


def test_strict_mode_raises_contract_violations() -> None:
    seq = StepSequencer(_steps(), strict=True)
    with pytest.raises(FlowStateError) as e:
        seq.set_readiness(2, True)
    assert e.value.kind == FlowErrorKind.invalid_transition

    with pytest.raises(FlowStateError) as e:
        seq.retreat()
    assert e.value.kind == FlowErrorKind.invalid_transition


def test_retreat_keeps_readiness_of_left_step() -> None:
    seq = StepSequencer(_steps())
    seq.advance()
    seq.set_readiness(1, True)
    seq.advance()

    assert seq.retreat().ok
    assert seq.current_index == 1
    assert seq.is_ready is True
    assert seq.can_retreat is True


def test_finish_via_last_advance_fires_callback_once() -> None:
    calls: list[str] = []
    seq = StepSequencer(_steps(), on_finished=lambda: calls.append("done"))
    seq.advance()
    seq.set_readiness(1, True)
    seq.advance()
    seq.set_readiness(2, True)
    seq.advance()

    assert seq.advance().ok
    assert seq.phase == FlowPhase.finished
    assert seq.current_index == 3
    assert calls == ["done"]

    # Repeated finish() is an allowed no-op.
    assert seq.finish().ok
    assert calls == ["done"]
    assert seq.statuses() == [StepStatus.completed] * 4


def _walk_to_last(seq: StepSequencer) -> None:
    while seq.current_index < len(seq.steps) - 1:
        seq.set_readiness(seq.current_index, True)
        assert seq.advance().ok


def test_finish_is_refused_before_the_last_step() -> None:
    calls: list[str] = []
    seq = StepSequencer(_steps(), on_finished=lambda: calls.append("done"))

    res = seq.finish()
    assert res.ok is False
    assert res.error == FlowErrorKind.invalid_transition
    assert seq.phase == FlowPhase.in_progress
    assert seq.current_index == 0
    assert seq.status(0) == StepStatus.current
    assert calls == []

    strict = StepSequencer(_steps(), strict=True)
    with pytest.raises(FlowStateError):
        strict.finish()


def test_finish_on_last_step_requires_readiness() -> None:
    calls: list[str] = []
    seq = StepSequencer(_steps(), on_finished=lambda: calls.append("done"))
    _walk_to_last(seq)

    seq.set_readiness(3, False)
    res = seq.finish()
    assert res.error == FlowErrorKind.not_ready
    assert seq.phase == FlowPhase.in_progress
    assert calls == []

    seq.set_readiness(3, True)
    assert seq.finish().ok
    assert seq.phase == FlowPhase.finished
    assert seq.statuses() == [StepStatus.completed] * 4
    assert calls == ["done"]


def test_closed_flow_rejects_mutations() -> None:
    seq = StepSequencer(_steps())
    _walk_to_last(seq)
    assert seq.finish().ok

    for res in (seq.advance(), seq.retreat(), seq.set_readiness(0, False), seq.abandon()):
        assert res.ok is False
        assert res.error == FlowErrorKind.flow_already_closed
    assert seq.phase == FlowPhase.finished


def test_abandon_then_finish_is_flow_already_closed() -> None:
    calls: list[str] = []
    seq = StepSequencer(_steps(), on_finished=lambda: calls.append("done"))
    assert seq.abandon().ok
    assert seq.phase == FlowPhase.abandoned

    res = seq.finish()
    assert res.error == FlowErrorKind.flow_already_closed
    assert calls == []

    strict = StepSequencer(_steps(), strict=True)
    strict.abandon()
    with pytest.raises(FlowStateError):
        strict.finish()


def test_single_step_flow() -> None:
    seq = StepSequencer([StepDefinition(kind=StepKind.welcome)])
    assert seq.advance().ok
    assert seq.phase == FlowPhase.finished


def test_snapshot_restore() -> None:
    seq = StepSequencer(_steps())
    seq.advance()
    seq.set_readiness(1, True)
    seq.advance()

    snap = FlowSnapshot.model_validate_json(seq.snapshot().model_dump_json())
    restored = StepSequencer.restore(_steps(), snap)
    assert restored.current_index == 2
    assert restored.readiness(1) is True
    assert restored.statuses() == seq.statuses()


def test_restore_rejects_index_outside_flow() -> None:
    with pytest.raises(ValueError):
        StepSequencer.restore(_steps(), FlowSnapshot(current_index=7))


def test_status_out_of_range() -> None:
    seq = StepSequencer(_steps())
    with pytest.raises(IndexError):
        seq.status(4)


def test_optional_selection_and_explicit_override() -> None:
    optional = StepDefinition(kind=StepKind.selection, config={"optional": True, "options": ["a"]})
    gated_welcome = StepDefinition(kind=StepKind.welcome, validation_required=True)
    assert optional.default_ready is True
    assert gated_welcome.default_ready is False


def test_game_step_requires_content() -> None:
    with pytest.raises(ValueError):
        StepDefinition(kind=StepKind.game)
