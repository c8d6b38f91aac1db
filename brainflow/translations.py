"""Localized-text overlay for content entities.

Rows arrive already filtered to one locale. They are folded into a nested map
(entity_id -> field -> text) and looked up with a three-tier fallback:
translated text, then the caller's base text, then "".
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Protocol

TranslationMap = dict[str, dict[str, str]]


@dataclass(frozen=True, slots=True)
class TranslationRow:
    entity_id: str
    field: str
    text: str


class TranslationSource(Protocol):
    def fetch(
        self,
        *,
        entity_type: str,
        entity_ids: Sequence[str],
        fields: Sequence[str],
        locale: str,
    ) -> list[TranslationRow]: ...


def normalize_locale(locale: str | None) -> str:
    if not locale:
        return "en"

    normalized = locale.strip().lower()
    if normalized.startswith("zh"):
        return "zh"
    if normalized.startswith("pt"):
        return "pt"
    return normalized.split("-")[0]


def build_translation_map(rows: Iterable[TranslationRow]) -> TranslationMap:
    tmap: TranslationMap = {}
    for row in rows:
        # Last write wins for a repeated (entity_id, field).
        tmap.setdefault(row.entity_id, {})[row.field] = row.text
    return tmap


def resolve_translation(tmap: Mapping[str, Mapping[str, str]], entity_id: str, field: str, fallback: str | None) -> str:
    text = tmap.get(entity_id, {}).get(field)
    if text is not None:
        # An empty translation is still a translation.
        return text
    if fallback is not None:
        return fallback
    return ""


def localize_fields(
    tmap: Mapping[str, Mapping[str, str]],
    entity_id: str | None,
    base: Mapping[str, str | None],
) -> dict[str, str]:
    if entity_id is None:
        return {field: text or "" for field, text in base.items()}
    return {field: resolve_translation(tmap, entity_id, field, text) for field, text in base.items()}


def fetch_content_translations(
    source: TranslationSource,
    *,
    entity_type: str,
    entity_ids: Sequence[str],
    fields: Sequence[str],
    locale: str | None,
) -> list[TranslationRow]:
    if not entity_ids:
        return []
    return source.fetch(
        entity_type=entity_type,
        entity_ids=list(entity_ids),
        fields=list(fields),
        locale=normalize_locale(locale),
    )
