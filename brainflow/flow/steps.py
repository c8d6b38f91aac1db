from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from types import MappingProxyType
from typing import Any

from brainflow.content.schema import ContentVariant
from brainflow.content.validation import validate_content
from brainflow.translations import localize_fields

STEP_ENTITY_TYPE = "onboarding_step"
STEP_TEXT_FIELDS: tuple[str, ...] = ("title", "description")


class StepKind(StrEnum):
    welcome = "welcome"
    profile = "profile"
    selection = "selection"
    assessment = "assessment"
    affirmation = "affirmation"
    interstitial = "interstitial"
    game = "game"
    custom = "custom"


# Kinds that collect something from the user before they can move on.
INTERACTIVE_KINDS: frozenset[StepKind] = frozenset(
    {StepKind.profile, StepKind.selection, StepKind.assessment, StepKind.game}
)


@dataclass(frozen=True, slots=True)
class StepDefinition:
    """One entry of a flow. Identity is its position in the flow."""

    kind: StepKind
    content: ContentVariant | None = None
    config: Mapping[str, Any] = field(default_factory=dict)
    validation_required: bool | None = None

    # Translation key plus base (fallback) text.
    entity_id: str | None = None
    title: str | None = None
    description: str | None = None

    def __post_init__(self) -> None:
        if self.kind == StepKind.game and self.content is None:
            raise ValueError("A game step needs validated content")
        object.__setattr__(self, "config", MappingProxyType(dict(self.config)))

    @property
    def requires_validation(self) -> bool:
        if self.validation_required is not None:
            return self.validation_required
        if self.kind == StepKind.selection and self.config.get("optional"):
            return False
        return self.kind in INTERACTIVE_KINDS

    @property
    def default_ready(self) -> bool:
        return not self.requires_validation


@dataclass(frozen=True, slots=True)
class LocalizedStep:
    index: int
    kind: StepKind
    title: str
    description: str
    content: ContentVariant | None
    config: Mapping[str, Any]


def step_from_raw(raw: Mapping[str, Any]) -> StepDefinition:
    """Build a step from a catalog record.

    Raises ValueError for an unknown kind and ContentValidationError for bad
    game content.
    """

    try:
        kind = StepKind(str(raw.get("kind")))
    except ValueError as e:
        raise ValueError(f"Unknown step kind: {raw.get('kind')!r}") from e

    raw_content = raw.get("content")
    content = validate_content(raw_content) if raw_content is not None else None

    validation_required = raw.get("validation_required")
    if validation_required is not None and not isinstance(validation_required, bool):
        raise ValueError("validation_required must be a boolean")

    return StepDefinition(
        kind=kind,
        content=content,
        config=dict(raw.get("config") or {}),
        validation_required=validation_required,
        entity_id=raw.get("entity_id"),
        title=raw.get("title"),
        description=raw.get("description"),
    )


def localize_step(*, index: int, step: StepDefinition, tmap: Mapping[str, Mapping[str, str]]) -> LocalizedStep:
    texts = localize_fields(tmap, step.entity_id, {"title": step.title, "description": step.description})
    return LocalizedStep(
        index=index,
        kind=step.kind,
        title=texts["title"],
        description=texts["description"],
        content=step.content,
        config=step.config,
    )
