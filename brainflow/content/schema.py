from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, StrictInt, StrictStr, model_validator
from pydantic_core import PydanticCustomError

Operator = Literal["+", "-", "x", "*", "/"]

# Wire names are camelCase; the backend also stores some records in snake_case.
# Validation accepts either spelling, serialization always emits camelCase.


def _wire(camel: str, snake: str) -> dict[str, Any]:
    return {"validation_alias": AliasChoices(camel, snake), "serialization_alias": camel}


class ContentModel(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class GridSize(ContentModel):
    rows: StrictInt = Field(..., ge=1)
    cols: StrictInt = Field(..., ge=1)

    @property
    def cell_count(self) -> int:
        return self.rows * self.cols


class MentalArithmeticContent(ContentModel):
    type: Literal["mental_arithmetic"] = "mental_arithmetic"

    # [min, max], inclusive.
    operand_range: tuple[StrictInt, StrictInt] | None = Field(default=None, **_wire("operandRange", "operand_range"))
    operators: Annotated[list[Operator], Field(min_length=1)] | None = None

    @model_validator(mode="after")
    def _check_operand_range(self) -> MentalArithmeticContent:
        if self.operand_range is not None:
            lo, hi = self.operand_range
            if lo > hi:
                raise PydanticCustomError(
                    "out_of_range",
                    "operandRange min {lo} is greater than max {hi}",
                    {"field": "operandRange", "lo": lo, "hi": hi},
                )
        return self

    @model_validator(mode="after")
    def _check_operators_unique(self) -> MentalArithmeticContent:
        seen: set[str] = set()
        for op in self.operators or ():
            if op in seen:
                raise PydanticCustomError(
                    "out_of_range",
                    "operator '{op}' is listed more than once",
                    {"field": "operators", "op": op},
                )
            seen.add(op)
        return self


class MemoryMatrixContent(ContentModel):
    type: Literal["memory_matrix"] = "memory_matrix"

    grid_size: GridSize = Field(..., **_wire("gridSize", "grid_size"))
    target_count: StrictInt = Field(..., ge=0, **_wire("targetCount", "target_count"))
    display_time_ms: StrictInt = Field(..., gt=0, **_wire("displayTimeMs", "display_time_ms"))

    @model_validator(mode="after")
    def _check_target_count(self) -> MemoryMatrixContent:
        cells = self.grid_size.cell_count
        if self.target_count > cells:
            raise PydanticCustomError(
                "out_of_range",
                "targetCount {count} exceeds the {cells} cells of the grid",
                {"field": "targetCount", "count": self.target_count, "cells": cells},
            )
        return self


class MentalLanguageDiscriminationContent(ContentModel):
    type: Literal["mental_language_discrimination"] = "mental_language_discrimination"

    # Text around the blank, e.g. ["She went ", " the store."].
    sentence_parts: list[StrictStr] = Field(..., min_length=1, **_wire("sentenceParts", "sentence_parts"))
    options: list[StrictStr]
    answer: StrictStr

    @model_validator(mode="after")
    def _check_answer(self) -> MentalLanguageDiscriminationContent:
        if self.answer not in self.options:
            raise PydanticCustomError(
                "referential_mismatch",
                "answer '{answer}' is not one of the options",
                {"field": "answer", "answer": self.answer},
            )
        return self


ContentVariant = Annotated[
    Union[MentalArithmeticContent, MemoryMatrixContent, MentalLanguageDiscriminationContent],
    Field(discriminator="type"),
]

CONTENT_MODELS: dict[str, type[ContentModel]] = {
    "mental_arithmetic": MentalArithmeticContent,
    "memory_matrix": MemoryMatrixContent,
    "mental_language_discrimination": MentalLanguageDiscriminationContent,
}
