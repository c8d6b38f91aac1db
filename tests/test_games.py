from __future__ import annotations

from datetime import date

import pytest

from brainflow.assets.singleton import get_catalog
from brainflow.games import GameEntry, daily_workout, localize_games


def _pool() -> list[GameEntry]:
    return [GameEntry(id=f"g{i}", name=f"Game {i}") for i in range(8)] + [GameEntry(id="off", name="Off", is_active=False)]


def test_daily_workout_is_stable_per_user_and_day() -> None:
    day = date(2025, 3, 14)
    a = daily_workout(_pool(), user_id="u1", day=day)
    b = daily_workout(list(reversed(_pool())), user_id="u1", day=day)

    assert [g.id for g in a] == [g.id for g in b]
    assert len(a) == 3
    assert len({g.id for g in a}) == 3
    assert "off" not in {g.id for g in a}


def test_daily_workout_bounds() -> None:
    day = date(2025, 3, 14)
    assert daily_workout(_pool(), user_id="u1", day=day, count=0) == []
    assert len(daily_workout(_pool(), user_id="u1", day=day, count=50)) == 8
    with pytest.raises(ValueError):
        daily_workout(_pool(), user_id="u1", day=day, count=-1)


def test_localize_games_with_fallback() -> None:
    catalog = get_catalog()
    games = localize_games(catalog.active_games, source=catalog.translations, locale="es-ES")
    by_id = {g.id: g for g in games}

    assert by_id["mental_arithmetic"].name == "Aritmética mental"
    assert by_id["memory_matrix"].name == "Matriz de memoria"
    # Untranslated fields keep the base text.
    assert by_id["memory_matrix"].description == "Remember the tiles."
    assert by_id["mental_language_discrimination"].name == "Word Choice"
    assert by_id["mental_language_discrimination"].instructions == "Elige la palabra correcta."


def test_localize_games_unknown_locale_keeps_base_text() -> None:
    catalog = get_catalog()
    games = localize_games(catalog.active_games, source=catalog.translations, locale="de")
    assert [g.name for g in games] == [g.name for g in catalog.active_games]
