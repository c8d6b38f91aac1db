from __future__ import annotations

import csv
import json
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from brainflow.content.validation import try_validate_content
from brainflow.errors import ContentValidationError
from brainflow.flow.steps import StepDefinition, StepKind, step_from_raw
from brainflow.games import GameEntry
from brainflow.translations import TranslationRow, normalize_locale

logger = logging.getLogger(__name__)


class AssetLoadError(RuntimeError):
    pass


@dataclass(frozen=True, slots=True)
class TranslationRecord:
    entity_type: str
    entity_id: str
    field: str
    locale: str
    text: str


@dataclass(frozen=True, slots=True)
class TranslationTable:
    """File-backed translation source.

    Serves rows for exactly one locale per call, in file order.
    """

    records: tuple[TranslationRecord, ...]

    def fetch(
        self,
        *,
        entity_type: str,
        entity_ids: Sequence[str],
        fields: Sequence[str],
        locale: str,
    ) -> list[TranslationRow]:
        wanted_ids = set(entity_ids)
        wanted_fields = set(fields)
        loc = normalize_locale(locale)
        return [
            TranslationRow(entity_id=r.entity_id, field=r.field, text=r.text)
            for r in self.records
            if r.entity_type == entity_type
            and r.locale == loc
            and r.entity_id in wanted_ids
            and r.field in wanted_fields
        ]


@dataclass(frozen=True, slots=True)
class ContentCatalog:
    flows: dict[str, tuple[StepDefinition, ...]]
    games: tuple[GameEntry, ...]
    translations: TranslationTable

    def flow(self, name: str) -> tuple[StepDefinition, ...]:
        steps = self.flows.get(name)
        if steps is None:
            raise ValueError(f"Unknown flow: {name}")
        return steps

    def game(self, game_id: str) -> GameEntry | None:
        return next((g for g in self.games if g.id == game_id), None)

    @property
    def active_games(self) -> tuple[GameEntry, ...]:
        return tuple(g for g in self.games if g.is_active)


def _read_json(path: Path) -> Any:
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError as e:
        raise AssetLoadError(f"Asset file not found: {path}") from e
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        raise AssetLoadError(f"Invalid JSON in {path}: {e}") from e


def load_flow_json(path: Path) -> tuple[StepDefinition, ...]:
    data = _read_json(path)
    raw_steps = data.get("steps") if isinstance(data, dict) else None
    if not isinstance(raw_steps, list):
        raise AssetLoadError(f"Flow file {path} has no 'steps' list")

    steps: list[StepDefinition] = []
    for idx, raw in enumerate(raw_steps):
        if not isinstance(raw, dict):
            raise AssetLoadError(f"Step {idx} in {path} is not an object")
        try:
            steps.append(step_from_raw(raw))
        except ContentValidationError as e:
            # Bad content only costs the flow that step.
            logger.warning("Dropping step %s of %s: %s", idx, path.name, e)
        except ValueError as e:
            raise AssetLoadError(f"Step {idx} in {path}: {e}") from e

    if not steps:
        raise AssetLoadError(f"Flow file {path} has no usable steps")
    return tuple(steps)


def load_flows_dir(path: Path) -> dict[str, tuple[StepDefinition, ...]]:
    if not path.is_dir():
        raise AssetLoadError(f"Flow directory not found: {path}")
    flows = {p.stem: load_flow_json(p) for p in sorted(path.glob("*.json"))}
    if not flows:
        raise AssetLoadError(f"No flow files in {path}")
    return flows


def load_games_json(path: Path) -> tuple[GameEntry, ...]:
    data = _read_json(path)
    if not isinstance(data, list):
        raise AssetLoadError(f"Games file {path} must hold a list")

    out: list[GameEntry] = []
    seen: set[str] = set()
    for raw in data:
        gid = str(raw.get("id") or "").strip() if isinstance(raw, dict) else ""
        if not gid:
            continue
        if gid in seen:
            raise AssetLoadError(f"Duplicate game id: {gid}")
        seen.add(gid)

        raw_content = raw.get("content")
        content = try_validate_content(raw_content, source=f"game {gid}") if raw_content is not None else None
        out.append(
            GameEntry(
                id=gid,
                name=str(raw.get("name") or gid),
                description=str(raw.get("description") or ""),
                instructions=str(raw.get("instructions") or ""),
                category_id=raw.get("category_id"),
                is_active=bool(raw.get("is_active", True)),
                content=content,
            )
        )
    return tuple(out)


def _read_csv_rows(path: Path) -> list[list[str]]:
    try:
        with path.open(encoding="utf-8-sig", newline="") as f:
            rows = [[c.strip() for c in row if c is not None] for row in csv.reader(f)]
    except FileNotFoundError as e:
        raise AssetLoadError(f"Asset file not found: {path}") from e

    return [row for row in rows if any(cell.strip() for cell in row)]


def load_translations_csv(path: Path) -> TranslationTable:
    rows = _read_csv_rows(path)
    if not rows:
        raise AssetLoadError(f"Empty translations CSV: {path}")

    header = [c.casefold() for c in rows[0]]
    if header[:5] != ["entity_type", "entity_id", "field", "locale", "text"]:
        raise AssetLoadError(f"Unexpected header in {path}: {rows[0]}")

    out: list[TranslationRecord] = []
    for row in rows[1:]:
        if len(row) < 4:
            continue
        entity_type, entity_id, field, locale = row[0], row[1], row[2], row[3]
        # A missing text column is an explicit empty translation.
        text = row[4] if len(row) > 4 else ""
        if not entity_type or not entity_id or not field:
            continue
        out.append(
            TranslationRecord(
                entity_type=entity_type,
                entity_id=entity_id,
                field=field,
                locale=normalize_locale(locale),
                text=text,
            )
        )
    return TranslationTable(records=tuple(out))


def _fallback_catalog() -> ContentCatalog:
    """Small built-in catalog for tests/CI when the asset files are missing."""

    from brainflow.content.schema import (
        GridSize,
        MemoryMatrixContent,
        MentalArithmeticContent,
        MentalLanguageDiscriminationContent,
    )

    arithmetic = MentalArithmeticContent(operand_range=(1, 10), operators=["+", "-"])
    onboarding = (
        StepDefinition(kind=StepKind.welcome, entity_id="onboarding.welcome", title="Welcome", description="Let's get started."),
        StepDefinition(
            kind=StepKind.selection,
            entity_id="onboarding.focus",
            title="Focus",
            description="What requires your focus the most?",
            config={
                "data_key": "focusGoals",
                "options": ["attention_span", "reduce_distractions", "task_switching", "deep_work"],
            },
        ),
        StepDefinition(
            kind=StepKind.interstitial,
            entity_id="onboarding.focus_fact",
            title="Did you know?",
            description="With training, you can reclaim your focus.",
        ),
        StepDefinition(kind=StepKind.game, entity_id="onboarding.warmup", title="Warm-up", content=arithmetic),
        StepDefinition(kind=StepKind.affirmation, entity_id="onboarding.done", title="You're all set"),
    )

    games = (
        GameEntry(id="mental_arithmetic", name="Mental Arithmetic", content=arithmetic),
        GameEntry(
            id="memory_matrix",
            name="Memory Matrix",
            content=MemoryMatrixContent(grid_size=GridSize(rows=4, cols=4), target_count=4, display_time_ms=2000),
        ),
        GameEntry(
            id="mental_language_discrimination",
            name="Word Choice",
            content=MentalLanguageDiscriminationContent(
                sentence_parts=["She went ", " the store."],
                options=["to", "too"],
                answer="to",
            ),
        ),
    )

    return ContentCatalog(flows={"onboarding": onboarding}, games=games, translations=TranslationTable(records=()))


def load_catalog(*, root: Path, strict: bool = False) -> ContentCatalog:
    assets_dir = root / "assets"

    # Default behavior: fall back to the built-in catalog when files are missing.
    # `strict` (BRAINFLOW_STRICT_ASSETS=1) turns that into an AssetLoadError.

    try:
        return ContentCatalog(
            flows=load_flows_dir(assets_dir / "flows"),
            games=load_games_json(assets_dir / "games.json"),
            translations=load_translations_csv(assets_dir / "translations.csv"),
        )
    except AssetLoadError:
        if strict:
            raise
        logger.warning("Asset catalog under %s is missing or invalid; using built-in catalog", assets_dir)
        return _fallback_catalog()
