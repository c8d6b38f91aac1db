"""Deterministic session parameters derived from validated content.

The only randomness is a `random.Random(seed)` whose bounds come from the
content (operand range, operators, grid size, target count); the seed is an
explicit session parameter, so the same content and seed always produce the
same plan.
"""

from __future__ import annotations

import random
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Union

from brainflow.content.schema import (
    ContentVariant,
    MemoryMatrixContent,
    MentalArithmeticContent,
    MentalLanguageDiscriminationContent,
)
from brainflow.session.state import SessionInput

DEFAULT_OPERAND_RANGE: tuple[int, int] = (1, 10)
DEFAULT_OPERATORS: tuple[str, ...] = ("+", "-", "x")
DEFAULT_ARITHMETIC_ROUNDS = 5

# Per-item target response times used by the speed bonus.
ARITHMETIC_TARGET_MS_PER_ITEM = 6000
LANGUAGE_TARGET_MS_PER_ITEM = 9000


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


@dataclass(frozen=True, slots=True)
class ArithmeticProblem:
    left: int
    operator: str
    right: int
    answer: int
    choices: tuple[int, int]

    @property
    def text(self) -> str:
        return f"{self.left} {self.operator} {self.right} = ?"


@dataclass(frozen=True, slots=True)
class ArithmeticPlan:
    problems: tuple[ArithmeticProblem, ...]
    target_ms_per_item: int | None = ARITHMETIC_TARGET_MS_PER_ITEM

    @property
    def total(self) -> int:
        return len(self.problems)

    def accept(self, value: object, *, at_ms: int, inputs: Sequence[SessionInput]) -> bool:
        if not _is_int(value):
            raise ValueError("Arithmetic answers must be integers")
        return True

    def inputs_complete(self, inputs: Sequence[SessionInput]) -> bool:
        return len(inputs) >= self.total

    def correct_count(self, inputs: Sequence[SessionInput]) -> int:
        return sum(1 for p, i in zip(self.problems, inputs) if i.value == p.answer)


@dataclass(frozen=True, slots=True)
class MemoryMatrixPlan:
    rows: int
    cols: int
    targets: tuple[int, ...]
    display_time_ms: int
    target_ms_per_item: int | None = None

    @property
    def cell_count(self) -> int:
        return self.rows * self.cols

    @property
    def total(self) -> int:
        return len(self.targets)

    def accept(self, value: object, *, at_ms: int, inputs: Sequence[SessionInput]) -> bool:
        if not _is_int(value) or not 0 <= value < self.cell_count:  # type: ignore[operator]
            raise ValueError(f"Tile must be an index in 0..{self.cell_count - 1}")
        if at_ms < self.display_time_ms:
            # Still memorizing: taps are ignored.
            return False
        return all(i.value != value for i in inputs)

    def inputs_complete(self, inputs: Sequence[SessionInput]) -> bool:
        return len(inputs) >= self.total

    def correct_count(self, inputs: Sequence[SessionInput]) -> int:
        targets = set(self.targets)
        return sum(1 for i in inputs if i.value in targets)

    def all_correct(self, inputs: Sequence[SessionInput]) -> bool:
        return {i.value for i in inputs} == set(self.targets)


@dataclass(frozen=True, slots=True)
class LanguagePlan:
    sentence_parts: tuple[str, ...]
    choices: tuple[str, ...]
    answer: str
    target_ms_per_item: int | None = LANGUAGE_TARGET_MS_PER_ITEM

    @property
    def total(self) -> int:
        return 1

    def accept(self, value: object, *, at_ms: int, inputs: Sequence[SessionInput]) -> bool:
        if not isinstance(value, str) or value not in self.choices:
            raise ValueError("Choice must be one of the offered options")
        return True

    def inputs_complete(self, inputs: Sequence[SessionInput]) -> bool:
        return len(inputs) >= 1

    def correct_count(self, inputs: Sequence[SessionInput]) -> int:
        return 1 if inputs and inputs[0].value == self.answer else 0


SessionPlan = Union[ArithmeticPlan, MemoryMatrixPlan, LanguagePlan]


def _nonzero(rng: random.Random, lo: int, hi: int) -> int:
    while True:
        n = rng.randint(lo, hi)
        if n != 0:
            return n


def _arithmetic_problem(rng: random.Random, lo: int, hi: int, operators: Sequence[str]) -> ArithmeticProblem:
    op = rng.choice(list(operators))

    if op == "/":
        # Built backwards from the quotient so answers stay integral.
        right = _nonzero(rng, lo, hi)
        answer = rng.randint(lo, hi)
        left = right * answer
    else:
        left = rng.randint(lo, hi)
        right = rng.randint(lo, hi)
        if op == "+":
            answer = left + right
        elif op == "-":
            answer = left - right
        else:
            answer = left * right

    offset = rng.randint(1, 5)
    distractor = answer + offset if rng.random() > 0.5 else answer - offset
    choices = (answer, distractor) if rng.random() > 0.5 else (distractor, answer)
    return ArithmeticProblem(left=left, operator=op, right=right, answer=answer, choices=choices)


def build_plan(content: ContentVariant, *, seed: int, rounds: int = DEFAULT_ARITHMETIC_ROUNDS) -> SessionPlan:
    rng = random.Random(seed)

    if isinstance(content, MentalArithmeticContent):
        if rounds < 1:
            raise ValueError("rounds must be >= 1")
        lo, hi = content.operand_range or DEFAULT_OPERAND_RANGE
        operators = sorted(set(content.operators or DEFAULT_OPERATORS))
        if "/" in operators and lo == hi == 0:
            operators.remove("/")
            if not operators:
                raise ValueError("operandRange [0, 0] cannot produce a division problem")
        problems = tuple(_arithmetic_problem(rng, lo, hi, operators) for _ in range(rounds))
        return ArithmeticPlan(problems=problems)

    if isinstance(content, MemoryMatrixContent):
        cells = content.grid_size.cell_count
        targets = tuple(sorted(rng.sample(range(cells), content.target_count)))
        return MemoryMatrixPlan(
            rows=content.grid_size.rows,
            cols=content.grid_size.cols,
            targets=targets,
            display_time_ms=content.display_time_ms,
        )

    if isinstance(content, MentalLanguageDiscriminationContent):
        choices = list(content.options)
        rng.shuffle(choices)
        return LanguagePlan(
            sentence_parts=tuple(content.sentence_parts),
            choices=tuple(choices),
            answer=content.answer,
        )

    raise ValueError(f"Unsupported content type: {type(content).__name__}")
