from __future__ import annotations

import pytest

from brainflow.flow.selection import max_selections, option_values, selection_ready, toggle_selection


MULTI = {"options": ["a", "b", "c"], "max_selections": 2}
SINGLE = {"options": [{"label": "five"}, {"label": "ten"}], "max_selections": 1}


def test_option_values_accept_plain_and_labelled_options() -> None:
    assert option_values(MULTI) == ["a", "b", "c"]
    assert option_values(SINGLE) == ["five", "ten"]
    assert option_values({}) == []


def test_cap_defaults_to_option_count() -> None:
    assert max_selections({"options": ["a", "b", "c"]}) == 3
    assert max_selections({"options": ["a"], "max_selections": 0}) == 1


def test_toggle_adds_and_removes() -> None:
    selected = toggle_selection(MULTI, [], "a")
    assert selected == ["a"]
    selected = toggle_selection(MULTI, selected, "b")
    assert selected == ["a", "b"]
    assert toggle_selection(MULTI, selected, "a") == ["b"]


def test_toggle_at_cap_is_unchanged() -> None:
    assert toggle_selection(MULTI, ["a", "b"], "c") == ["a", "b"]


def test_single_choice_replaces() -> None:
    assert toggle_selection(SINGLE, ["five"], "ten") == ["ten"]


def test_unknown_option_is_rejected() -> None:
    with pytest.raises(ValueError):
        toggle_selection(MULTI, [], "z")


def test_selection_ready() -> None:
    assert selection_ready(MULTI, []) is False
    assert selection_ready(MULTI, ["a"]) is True
    assert selection_ready({"optional": True}, []) is True
