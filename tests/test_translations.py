from __future__ import annotations

import pytest

from brainflow.translations import (
    TranslationRow,
    build_translation_map,
    fetch_content_translations,
    localize_fields,
    normalize_locale,
    resolve_translation,
)


class _RecordingSource:
    def __init__(self, rows: list[TranslationRow]):
        self.rows = rows
        self.calls: list[dict] = []

    def fetch(self, *, entity_type, entity_ids, fields, locale):  # type: ignore[no-untyped-def]
        self.calls.append({"entity_type": entity_type, "entity_ids": entity_ids, "fields": fields, "locale": locale})
        return list(self.rows)


@pytest.mark.parametrize(
    "raw,expected",
    [
        (None, "en"),
        ("", "en"),
        ("en-US", "en"),
        ("ES", "es"),
        ("zh-Hant-TW", "zh"),
        ("pt-BR", "pt"),
        (" fr-CA ", "fr"),
    ],
)
def test_normalize_locale(raw: str | None, expected: str) -> None:
    assert normalize_locale(raw) == expected


def test_three_tier_fallback() -> None:
    tmap = build_translation_map([TranslationRow(entity_id="g1", field="name", text="Juego")])

    assert resolve_translation(tmap, "g1", "name", "Game") == "Juego"
    assert resolve_translation(tmap, "g1", "description", "Base") == "Base"
    assert resolve_translation(tmap, "g2", "name", "Other") == "Other"
    assert resolve_translation(tmap, "g2", "name", None) == ""


def test_empty_translation_wins_over_fallback() -> None:
    tmap = build_translation_map([TranslationRow(entity_id="s1", field="description", text="")])
    assert resolve_translation(tmap, "s1", "description", "English text") == ""


def test_last_row_wins_for_duplicates() -> None:
    tmap = build_translation_map(
        [
            TranslationRow(entity_id="g1", field="name", text="first"),
            TranslationRow(entity_id="g1", field="name", text="second"),
        ]
    )
    assert tmap == {"g1": {"name": "second"}}


def test_localize_fields_without_entity_id_uses_base_text() -> None:
    tmap = build_translation_map([TranslationRow(entity_id="x", field="title", text="T")])
    assert localize_fields(tmap, None, {"title": "Hello", "description": None}) == {"title": "Hello", "description": ""}


def test_fetch_with_no_ids_does_not_query() -> None:
    source = _RecordingSource([TranslationRow(entity_id="a", field="name", text="A")])
    rows = fetch_content_translations(source, entity_type="game", entity_ids=[], fields=["name"], locale="es")
    assert rows == []
    assert source.calls == []


def test_fetch_normalizes_locale() -> None:
    source = _RecordingSource([])
    fetch_content_translations(source, entity_type="game", entity_ids=["a"], fields=("name",), locale="es-MX")
    assert source.calls == [{"entity_type": "game", "entity_ids": ["a"], "fields": ["name"], "locale": "es"}]
