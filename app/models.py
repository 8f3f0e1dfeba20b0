"""Pydantic models describing games and the upstream records they are built from."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel, to_pascal

from .utils import non_negative


class GameGenre(str, Enum):
    """Genre labels used by the games catalog."""

    ACTION = "Action"
    ADVENTURE = "Adventure"
    FIGHTING = "Fighting"
    FPS = "FPS"
    HORROR = "Horror"
    MEDIEVAL = "Medieval"
    MILITARY = "Military"
    NAVAL = "Naval"
    RPG = "RPG"
    SCI_FI = "Sci-Fi"
    SPORTS = "Sports"
    TOWN = "Town and City"
    TUTORIAL = "Tutorial"
    WESTERN = "Western"
    OTHER = "Other"
    UNKNOWN = "unknown"

    @classmethod
    def from_label(cls, label: Any) -> "GameGenre":
        """Return the genre whose label matches ``label`` case-insensitively."""

        if isinstance(label, GameGenre):
            return label
        text = str(label or "").strip().casefold()
        for genre in cls:
            if genre.value.casefold() == text:
                return genre
        return cls.UNKNOWN


def rating_from_votes(up_votes: int | None, down_votes: int | None) -> float | None:
    """Convert an upvote/downvote pair to a 0-5 rating, or ``None`` without votes."""

    up = non_negative(up_votes)
    down = non_negative(down_votes)
    if up + down == 0:
        return None
    return up / (up + down) * 5.0


class GameEntity(BaseModel):
    """A single game as returned to callers of the discovery service."""

    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)

    name: str = ""
    description: str = ""
    creator_name: str = ""
    creator_id: int = 0
    place_id: int = 0
    universe_id: int = 0
    thumbnail_url: str | None = Field(default=None, alias="thumbnailURL")
    player_count: int = 0
    max_players: int = 0
    rating: float = 0.0
    genre: GameGenre = GameGenre.UNKNOWN
    tags: list[str] = Field(default_factory=list)
    is_verified: bool = False
    is_favorite: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None
    last_played: datetime | None = None

    @field_validator(
        "creator_id", "place_id", "universe_id", "player_count", "max_players",
        mode="before",
    )
    @classmethod
    def _clamp_counts(cls, value: object) -> int:
        return non_negative(value)

    @field_validator("rating", mode="before")
    @classmethod
    def _clamp_rating(cls, value: object) -> float:
        try:
            rating = float(value)  # type: ignore[arg-type]
        except (TypeError, ValueError):
            return 0.0
        if rating != rating:  # NaN
            return 0.0
        return min(max(rating, 0.0), 5.0)

    @field_validator("genre", mode="before")
    @classmethod
    def _parse_genre(cls, value: object) -> GameGenre:
        return GameGenre.from_label(value)

    @field_validator("tags", mode="before")
    @classmethod
    def _unique_tags(cls, value: object) -> list[str]:
        if value is None:
            return []
        if isinstance(value, str):
            value = [value]
        tags: list[str] = []
        for tag in value:  # type: ignore[union-attr]
            text = str(tag).strip()
            if text and text not in tags:
                tags.append(text)
        return tags

    @model_validator(mode="after")
    def _require_identity(self) -> "GameEntity":
        if not self.universe_id and not self.place_id:
            raise ValueError("A game needs a non-zero universe id or place id")
        return self

    @property
    def id(self) -> int:
        """Canonical identifier: the universe id when known, else the place id."""

        return self.universe_id or self.place_id

    @property
    def join_url(self) -> str:
        return f"roblox://placeId={self.place_id}"

    def custom_join_url(self, parameters: Mapping[str, str] | None = None) -> str:
        """Return the join URL with extra ``key=value`` launch parameters appended."""

        url = self.join_url
        if parameters:
            url += "&" + "&".join(f"{key}={value}" for key, value in parameters.items())
        return url

    def to_payload(self) -> dict[str, Any]:
        """Return the JSON-ready representation used by the API and the library."""

        payload = self.model_dump(mode="json", by_alias=True)
        payload["id"] = self.id
        payload["joinUrl"] = self.join_url
        return payload


def private_server_url(place_id: int, access_code: str) -> str:
    return f"roblox://placeId={place_id}&accessCode={access_code}"


def follow_user_url(user_id: int | str) -> str:
    return f"roblox://experiences/start?userId={user_id}"


class CreatorRef(BaseModel):
    """Nested creator block on a game detail record."""

    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)

    id: int | None = None
    name: str | None = None
    has_verified_badge: bool = False


class DetailRecord(BaseModel):
    """Batch detail record for a universe."""

    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)

    id: int
    root_place_id: int | None = None
    name: str | None = None
    description: str | None = None
    creator: CreatorRef | None = None
    creator_name: str | None = None
    creator_id: int | None = None
    playing: int | None = None
    visits: int | None = None
    max_players: int | None = None
    favorited_count: int | None = None
    genre: str | None = None

    @property
    def resolved_creator_name(self) -> str:
        if self.creator is not None and self.creator.name:
            return self.creator.name
        return self.creator_name or ""

    @property
    def resolved_creator_id(self) -> int:
        if self.creator is not None and self.creator.id:
            return self.creator.id
        return self.creator_id or 0


class IconRecord(BaseModel):
    """``{targetId, imageUrl}`` entry returned by the thumbnail services."""

    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)

    target_id: int
    image_url: str | None = None
    state: str | None = None


class LegacyGameRecord(BaseModel):
    """Pre-shaped record from the legacy keyword search endpoint."""

    model_config = ConfigDict(populate_by_name=True, alias_generator=to_pascal)

    place_id: int
    name: str
    universe_id: int | None = None
    description: str | None = None
    creator_name: str | None = None
    creator_id: int | None = None
    player_count: int | None = None
    total_up_votes: int | None = None
    total_down_votes: int | None = None
