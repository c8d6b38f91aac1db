"""Brain Performance Index (BPI).

    BPI = 100 * accuracy + 50 * difficulty + speed_bonus

The speed bonus is 0.1 point per millisecond saved against the target time
and only applies above 50% accuracy, so fast guessing earns nothing.
"""

from __future__ import annotations

import math
from collections.abc import Sequence

from brainflow.session.plan import MemoryMatrixPlan, SessionPlan
from brainflow.session.state import SessionInput, SessionOutcome

SPEED_BONUS_PER_MS = 0.1
MIN_DIFFICULTY = 0.0
MAX_DIFFICULTY = 10.0


def _round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def clamp_difficulty(difficulty: float) -> float:
    return max(MIN_DIFFICULTY, min(MAX_DIFFICULTY, difficulty))


def calculate_bpi(
    *,
    accuracy: float,
    difficulty: float,
    target_time_ms: float | None = None,
    actual_time_ms: float | None = None,
) -> int:
    base = 100 * accuracy
    difficulty_bonus = difficulty * 50

    speed_bonus = 0.0
    if accuracy > 0.5 and target_time_ms is not None and actual_time_ms is not None:
        speed_bonus = max(0.0, target_time_ms - actual_time_ms) * SPEED_BONUS_PER_MS

    return max(0, _round_half_up(base + difficulty_bonus + speed_bonus))


def score_inputs(
    plan: SessionPlan,
    inputs: Sequence[SessionInput],
    *,
    difficulty: float,
    elapsed_ms: int,
) -> SessionOutcome:
    """Pure: the same plan, inputs and difficulty always give the same outcome."""

    total = plan.total
    correct_count = plan.correct_count(inputs)

    if total == 0:
        # Nothing to recall (e.g. a memory matrix with zero targets).
        accuracy = 1.0
    else:
        accuracy = correct_count / total

    if isinstance(plan, MemoryMatrixPlan):
        correct = plan.all_correct(inputs)
    else:
        correct = total > 0 and correct_count == total

    avg_response_ms = round(elapsed_ms / len(inputs)) if inputs else None
    score = calculate_bpi(
        accuracy=accuracy,
        difficulty=clamp_difficulty(difficulty),
        target_time_ms=plan.target_ms_per_item,
        actual_time_ms=avg_response_ms,
    )

    return SessionOutcome(
        score=score,
        correct=correct,
        elapsed_ms=elapsed_ms,
        accuracy=accuracy,
        correct_count=correct_count,
        total=total,
    )
