"""Configuration settings behaviour tests."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from app.config import Settings
from app.discovery import KNOWN_SORT_IDS


def test_defaults_match_discovery_limits() -> None:
    settings = Settings(_env_file=None)

    assert settings.search_id_cap == 40
    assert settings.recommendation_id_cap == 60
    assert settings.enrichment_batch_limit == 10
    assert settings.preferred_sort_ids == KNOWN_SORT_IDS
    assert str(settings.roblox_games_url).startswith("https://games.roblox.com")


def test_preferred_sort_ids_parse_comma_lists() -> None:
    """Comma separated values keep their order and drop duplicates."""

    settings = Settings(_env_file=None, PREFERRED_SORT_IDS=" B_V1, A_V2 ,B_V1,")

    assert settings.preferred_sort_ids == ("B_V1", "A_V2")


def test_preferred_sort_ids_accept_sequences() -> None:
    settings = Settings(_env_file=None, PREFERRED_SORT_IDS=["X", "Y"])

    assert settings.preferred_sort_ids == ("X", "Y")


def test_preferred_sort_ids_blank_defaults() -> None:
    """Blank values fall back to the known explore sorts."""

    settings = Settings(_env_file=None, PREFERRED_SORT_IDS=" , ")

    assert settings.preferred_sort_ids == KNOWN_SORT_IDS


def test_log_level_is_normalised() -> None:
    assert Settings(_env_file=None, LOG_LEVEL="debug").log_level == "DEBUG"

    with pytest.raises(ValidationError, match="LOG_LEVEL"):
        Settings(_env_file=None, LOG_LEVEL="chatty")


def test_caps_must_be_positive() -> None:
    with pytest.raises(ValidationError):
        Settings(_env_file=None, SEARCH_ID_CAP=0)
    with pytest.raises(ValidationError):
        Settings(_env_file=None, ENRICHMENT_BATCH_LIMIT=-1)


def test_preferred_sort_ids_read_comma_list_from_environment(monkeypatch) -> None:
    monkeypatch.setenv("PREFERRED_SORT_IDS", "B_V1,A_V2")

    settings = Settings(_env_file=None)

    assert settings.preferred_sort_ids == ("B_V1", "A_V2")
