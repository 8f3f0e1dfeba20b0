from __future__ import annotations

import asyncio
from datetime import datetime, timedelta

from app.database import Database
from app.models import GameEntity
from app.services.library import GameLibrary


def _game(universe_id: int, **extra: object) -> GameEntity:
    return GameEntity(
        name=f"Game {universe_id}",
        universe_id=universe_id,
        place_id=universe_id * 10,
        **extra,
    )


def _run(tmp_path, scenario, *, recent_limit: int = 20):
    async def runner():
        database = Database(f"sqlite+aiosqlite:///{tmp_path / 'library.db'}")
        await database.create_all()
        try:
            return await scenario(GameLibrary(database, recent_limit=recent_limit))
        finally:
            await database.dispose()

    return asyncio.run(runner())


def test_toggle_favorite_adds_and_removes(tmp_path) -> None:
    async def scenario(library: GameLibrary):
        added = await library.toggle_favorite(_game(1))
        stored = await library.list_favorites()
        flagged = await library.is_favorite(1)
        removed = await library.toggle_favorite(_game(1))
        return added, stored, flagged, removed, await library.list_favorites()

    added, stored, flagged, removed, remaining = _run(tmp_path, scenario)

    assert added is True and flagged is True
    assert [game.id for game in stored] == [1]
    assert stored[0].is_favorite is True
    assert stored[0].place_id == 10
    assert removed is False
    assert remaining == []


def test_record_play_orders_newest_first_and_moves_replays(tmp_path) -> None:
    start = datetime(2024, 1, 1, 12, 0, 0)

    async def scenario(library: GameLibrary):
        await library.record_play(_game(1), when=start)
        await library.record_play(_game(2), when=start + timedelta(minutes=1))
        updated = await library.record_play(_game(1), when=start + timedelta(minutes=2))
        return updated, await library.list_recent()

    updated, recent = _run(tmp_path, scenario)

    assert updated.last_played == start + timedelta(minutes=2)
    assert [game.id for game in recent] == [1, 2]
    assert recent[0].last_played == start + timedelta(minutes=2)


def test_recent_list_is_trimmed_to_limit(tmp_path) -> None:
    start = datetime(2024, 1, 1)

    async def scenario(library: GameLibrary):
        for offset in range(5):
            await library.record_play(_game(offset + 1), when=start + timedelta(hours=offset))
        return await library.list_recent()

    recent = _run(tmp_path, scenario, recent_limit=3)

    assert [game.id for game in recent] == [5, 4, 3]


def test_library_keeps_place_only_games(tmp_path) -> None:
    async def scenario(library: GameLibrary):
        await library.toggle_favorite(GameEntity(name="Place", place_id=77, rating=4.5))
        return await library.list_favorites()

    (game,) = _run(tmp_path, scenario)

    assert game.id == 77
    assert game.universe_id == 0
    assert game.rating == 4.5


def test_record_play_defaults_to_aware_utc_timestamp(tmp_path) -> None:
    async def scenario(library: GameLibrary):
        updated = await library.record_play(_game(3))
        return updated, await library.list_recent()

    updated, recent = _run(tmp_path, scenario)

    assert updated.last_played is not None
    assert updated.last_played.utcoffset() == timedelta(0)
    assert recent[0].last_played == updated.last_played
