"""Persistence of favorite and recently played games."""

from __future__ import annotations

import logging
from datetime import datetime

from pydantic import ValidationError
from sqlalchemy import delete, select

from ..database import Database
from ..db_models import FavoriteGame, RecentGame
from ..models import GameEntity
from ..utils import utc_now

logger = logging.getLogger(__name__)


class GameLibrary:
    """Caller-side state layered on top of discovery results."""

    def __init__(self, database: Database, *, recent_limit: int = 20):
        self._database = database
        self._recent_limit = recent_limit

    async def toggle_favorite(self, game: GameEntity) -> bool:
        """Add ``game`` to the favorites or remove it; return the new state."""

        async with self._database.session() as session:
            existing = await session.get(FavoriteGame, game.id)
            if existing is not None:
                await session.delete(existing)
                return False
            favorite = game.model_copy(update={"is_favorite": True})
            session.add(
                FavoriteGame(
                    game_id=game.id,
                    name=game.name,
                    payload=favorite.model_dump(mode="json", by_alias=True),
                )
            )
            return True

    async def is_favorite(self, game_id: int) -> bool:
        async with self._database.session() as session:
            return await session.get(FavoriteGame, game_id) is not None

    async def list_favorites(self) -> list[GameEntity]:
        async with self._database.session() as session:
            result = await session.execute(
                select(FavoriteGame).order_by(FavoriteGame.created_at, FavoriteGame.game_id)
            )
            return _load_games(row.payload for row in result.scalars())

    async def record_play(self, game: GameEntity, *, when: datetime | None = None) -> GameEntity:
        """Move ``game`` to the front of the recently played list."""

        played_at = when or utc_now()
        updated = game.model_copy(update={"last_played": played_at})
        async with self._database.session() as session:
            existing = await session.get(RecentGame, game.id)
            if existing is not None:
                await session.delete(existing)
                await session.flush()
            session.add(
                RecentGame(
                    game_id=game.id,
                    name=game.name,
                    payload=updated.model_dump(mode="json", by_alias=True),
                    last_played=played_at,
                )
            )
            await session.flush()

            result = await session.execute(
                select(RecentGame.game_id)
                .order_by(RecentGame.last_played.desc())
                .offset(self._recent_limit)
            )
            stale = [row[0] for row in result.all()]
            if stale:
                await session.execute(delete(RecentGame).where(RecentGame.game_id.in_(stale)))
        return updated

    async def list_recent(self) -> list[GameEntity]:
        async with self._database.session() as session:
            result = await session.execute(
                select(RecentGame).order_by(RecentGame.last_played.desc())
            )
            return _load_games(row.payload for row in result.scalars())


def _load_games(payloads) -> list[GameEntity]:
    games: list[GameEntity] = []
    for payload in payloads:
        try:
            games.append(GameEntity.model_validate(payload))
        except ValidationError as exc:
            logger.warning("Dropping unreadable library entry: %s", exc)
    return games
