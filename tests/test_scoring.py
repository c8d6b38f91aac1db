from __future__ import annotations

import pytest

from brainflow.session.plan import LanguagePlan, MemoryMatrixPlan
from brainflow.session.scoring import calculate_bpi, clamp_difficulty, score_inputs
from brainflow.session.state import SessionInput


@pytest.mark.parametrize(
    "kwargs,expected",
    [
        ({"accuracy": 1.0, "difficulty": 1.0, "target_time_ms": 6000, "actual_time_ms": 4000}, 350),
        # No speed bonus at or below 50% accuracy.
        ({"accuracy": 0.5, "difficulty": 1.0, "target_time_ms": 6000, "actual_time_ms": 1000}, 100),
        # Slower than target never costs points.
        ({"accuracy": 1.0, "difficulty": 0.0, "target_time_ms": 6000, "actual_time_ms": 9000}, 100),
        # Halves round up.
        ({"accuracy": 1.0, "difficulty": 0.0, "target_time_ms": 6000, "actual_time_ms": 5995}, 101),
        ({"accuracy": 0.0, "difficulty": 0.0}, 0),
        ({"accuracy": 1.0, "difficulty": 2.0}, 200),
    ],
)
def test_calculate_bpi(kwargs: dict, expected: int) -> None:
    assert calculate_bpi(**kwargs) == expected


def test_difficulty_is_clamped() -> None:
    assert clamp_difficulty(-3) == 0.0
    assert clamp_difficulty(4.5) == 4.5
    assert clamp_difficulty(42) == 10.0


def test_score_inputs_clamps_difficulty() -> None:
    plan = LanguagePlan(sentence_parts=("a ", "."), choices=("x", "y"), answer="x", target_ms_per_item=None)
    outcome = score_inputs(plan, [SessionInput(value="x", at_ms=100)], difficulty=25.0, elapsed_ms=100)
    assert outcome.score == 100 + 500


def test_score_inputs_is_pure() -> None:
    plan = MemoryMatrixPlan(rows=2, cols=2, targets=(0, 3), display_time_ms=100)
    inputs = [SessionInput(value=0, at_ms=200), SessionInput(value=1, at_ms=300)]
    a = score_inputs(plan, inputs, difficulty=1.0, elapsed_ms=300)
    b = score_inputs(plan, inputs, difficulty=1.0, elapsed_ms=300)
    assert a == b
    assert a.accuracy == 0.5
    assert a.correct is False
    assert a.score == 100
