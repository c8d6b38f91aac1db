from __future__ import annotations

import pytest

from brainflow.errors import FlowErrorKind, FlowStateError
from brainflow.flow.sequencer import StepSequencer
from brainflow.flow.steps import StepDefinition, StepKind
from brainflow.flow.validators import TransitionContext, pipeline_for_transition


def _flow() -> StepSequencer:
    return StepSequencer(
        [
            StepDefinition(kind=StepKind.welcome),
            StepDefinition(kind=StepKind.profile),
        ],
        flow_id="f1",
    )


def test_open_validator_runs_first() -> None:
    seq = _flow()
    seq.abandon()
    ctx = TransitionContext(flow_id="f1", action="retreat")

    with pytest.raises(FlowStateError) as e:
        pipeline_for_transition("retreat").validate(ctx=ctx, flow=seq)

    assert e.value.kind == FlowErrorKind.flow_already_closed
    assert "abandoned" in str(e.value)


def test_advance_pipeline_checks_readiness() -> None:
    seq = _flow()
    seq.advance()
    ctx = TransitionContext(flow_id="f1", action="advance")

    with pytest.raises(FlowStateError) as e:
        pipeline_for_transition("advance").validate(ctx=ctx, flow=seq)

    assert e.value.kind == FlowErrorKind.not_ready
    assert str(e.value) == "Step 1 is not ready"


def test_set_readiness_pipeline_checks_index() -> None:
    seq = _flow()
    ctx = TransitionContext(flow_id="f1", action="set_readiness", index=1)

    with pytest.raises(FlowStateError) as e:
        pipeline_for_transition("set_readiness").validate(ctx=ctx, flow=seq)

    assert e.value.kind == FlowErrorKind.invalid_transition


def test_flow_errors_are_value_errors() -> None:
    seq = _flow()
    ctx = TransitionContext(flow_id="f1", action="retreat")
    with pytest.raises(ValueError):
        pipeline_for_transition("retreat").validate(ctx=ctx, flow=seq)


def test_unknown_transition_pipeline_raises() -> None:
    with pytest.raises(ValueError) as e:
        pipeline_for_transition("teleport")
    assert "Unknown transition" in str(e.value)


def test_finish_pipeline_checks_position_before_readiness() -> None:
    seq = _flow()
    ctx = TransitionContext(flow_id="f1", action="finish")

    with pytest.raises(FlowStateError) as e:
        pipeline_for_transition("finish").validate(ctx=ctx, flow=seq)
    assert e.value.kind == FlowErrorKind.invalid_transition

    seq.advance()
    with pytest.raises(FlowStateError) as e:
        pipeline_for_transition("finish").validate(ctx=ctx, flow=seq)
    assert e.value.kind == FlowErrorKind.not_ready

    seq.set_readiness(1, True)
    pipeline_for_transition("finish").validate(ctx=ctx, flow=seq)
