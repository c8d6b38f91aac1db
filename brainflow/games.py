from __future__ import annotations

import random
from collections.abc import Sequence
from dataclasses import dataclass, replace
from datetime import date

from brainflow.content.schema import ContentVariant
from brainflow.translations import TranslationSource, build_translation_map, fetch_content_translations, localize_fields

GAME_ENTITY_TYPE = "game"
GAME_TEXT_FIELDS: tuple[str, ...] = ("name", "description", "instructions")


@dataclass(frozen=True, slots=True)
class GameEntry:
    """A playable game as listed in the catalog.

    `content` is None when the stored record failed validation; such a game
    is listed but cannot start a session.
    """

    id: str
    name: str
    description: str = ""
    instructions: str = ""
    category_id: str | None = None
    is_active: bool = True
    content: ContentVariant | None = None

    @property
    def playable(self) -> bool:
        return self.content is not None


def localize_games(games: Sequence[GameEntry], *, source: TranslationSource, locale: str | None) -> list[GameEntry]:
    rows = fetch_content_translations(
        source,
        entity_type=GAME_ENTITY_TYPE,
        entity_ids=[g.id for g in games],
        fields=GAME_TEXT_FIELDS,
        locale=locale,
    )
    tmap = build_translation_map(rows)

    out: list[GameEntry] = []
    for g in games:
        texts = localize_fields(tmap, g.id, {"name": g.name, "description": g.description, "instructions": g.instructions})
        out.append(replace(g, **texts))
    return out


def daily_workout(games: Sequence[GameEntry], *, user_id: str, day: date, count: int = 3) -> list[GameEntry]:
    """Pick today's games for a user.

    Stable for a given (user, day) and independent of catalog order.
    """

    if count < 0:
        raise ValueError("count must be >= 0")

    pool = sorted((g for g in games if g.is_active), key=lambda g: g.id)
    if not pool or count == 0:
        return []

    rng = random.Random(f"{day.isoformat()}:{user_id}")
    return rng.sample(pool, k=min(count, len(pool)))
