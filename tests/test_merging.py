"""Tests for joining identifiers with detail and icon records."""

from __future__ import annotations

from app.merging import merge_games
from app.models import DetailRecord, GameGenre


def _detail(universe_id: int, **extra: object) -> DetailRecord:
    payload: dict[str, object] = {
        "id": universe_id,
        "rootPlaceId": universe_id * 10,
        "name": f"Game {universe_id}",
    }
    payload.update(extra)
    return DetailRecord.model_validate(payload)


def test_merge_keeps_id_order_and_drops_missing_details():
    details = {3: _detail(3), 9: _detail(9)}

    games = merge_games([5, 9, 3], details, {})

    assert [game.universe_id for game in games] == [9, 3]


def test_merge_ignores_detail_mapping_order():
    details = {2: _detail(2), 1: _detail(1)}

    games = merge_games([1, 2], details, {2: "https://icons/2.png"})

    assert [game.id for game in games] == [1, 2]
    assert games[0].thumbnail_url is None
    assert games[1].thumbnail_url == "https://icons/2.png"


def test_merge_maps_detail_fields():
    detail = _detail(
        7,
        description="Escape the tower",
        creator={"id": 55, "name": "Studio", "hasVerifiedBadge": True},
        playing=1234,
        maxPlayers=12,
        genre="Adventure",
    )

    (game,) = merge_games([7], {7: detail}, {})

    assert game.name == "Game 7"
    assert game.place_id == 70
    assert game.description == "Escape the tower"
    assert game.creator_id == 55
    assert game.creator_name == "Studio"
    assert game.player_count == 1234
    assert game.max_players == 12
    assert game.genre is GameGenre.ADVENTURE
    assert game.is_verified is True


def test_merge_defaults_missing_and_negative_numbers():
    detail = DetailRecord.model_validate({"id": 4, "playing": -20})

    (game,) = merge_games([4], {4: detail}, {})

    assert game.player_count == 0
    assert game.place_id == 0
    assert game.name == ""
    assert game.rating == 0.0


def test_merge_skips_entities_without_identity():
    detail = DetailRecord.model_validate({"id": 0})

    assert merge_games([0], {0: detail}, {}) == []
