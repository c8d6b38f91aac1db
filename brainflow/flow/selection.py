from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any


def option_values(config: Mapping[str, Any]) -> list[str]:
    """Stored value of each option: the label key, whatever language is on screen."""

    values: list[str] = []
    for option in config.get("options") or []:
        if isinstance(option, str):
            values.append(option)
        elif isinstance(option, Mapping) and option.get("label"):
            values.append(str(option["label"]))
    return values


def max_selections(config: Mapping[str, Any]) -> int:
    cap = config.get("max_selections")
    if isinstance(cap, int) and not isinstance(cap, bool) and cap > 0:
        return cap
    return max(1, len(option_values(config)))


def toggle_selection(config: Mapping[str, Any], selected: Sequence[str], value: str) -> list[str]:
    if value not in option_values(config):
        raise ValueError(f"'{value}' is not an option of this step")

    current = list(selected)
    if value in current:
        return [v for v in current if v != value]

    cap = max_selections(config)
    if cap == 1:
        return [value]
    if len(current) >= cap:
        return current
    return [*current, value]


def selection_ready(config: Mapping[str, Any], selected: Sequence[str]) -> bool:
    return bool(config.get("optional")) or len(selected) > 0
