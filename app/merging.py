"""Join extracted identifiers with their detail and icon records."""

from __future__ import annotations

import logging
from typing import Iterable, Mapping

from pydantic import ValidationError

from .models import DetailRecord, GameEntity, GameGenre

logger = logging.getLogger(__name__)


def build_game(universe_id: int, detail: DetailRecord, icon_url: str | None = None) -> GameEntity:
    """Return the canonical entity for one universe and its detail record."""

    return GameEntity(
        name=detail.name or "",
        description=detail.description or "",
        creator_name=detail.resolved_creator_name,
        creator_id=detail.resolved_creator_id,
        place_id=detail.root_place_id or 0,
        universe_id=universe_id,
        thumbnail_url=icon_url or None,
        player_count=detail.playing,
        max_players=detail.max_players,
        genre=GameGenre.from_label(detail.genre),
        is_verified=bool(detail.creator and detail.creator.has_verified_badge),
    )


def merge_games(
    ids: Iterable[int],
    details: Mapping[int, DetailRecord],
    icons: Mapping[int, str],
) -> list[GameEntity]:
    """Return entities for ``ids`` in their original order.

    Identifiers without a detail record are dropped; a missing icon leaves the
    thumbnail unset.
    """

    games: list[GameEntity] = []
    for universe_id in ids:
        detail = details.get(universe_id)
        if detail is None:
            continue
        try:
            games.append(build_game(universe_id, detail, icons.get(universe_id)))
        except ValidationError as exc:
            logger.warning("Skipping universe %s with unusable details: %s", universe_id, exc)
    return games
