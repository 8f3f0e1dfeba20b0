"""Application configuration models."""

from __future__ import annotations

from functools import lru_cache
from typing import Annotated, Iterable, Literal

from pydantic import Field, HttpUrl, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from .discovery import KNOWN_SORT_IDS


class Settings(BaseSettings):
    """Settings loaded from environment variables or a .env file."""

    app_name: str = Field(default="RBXScout", alias="APP_NAME")
    server_host: str = Field(default="127.0.0.1", alias="HOST")
    server_port: int = Field(default=3000, alias="PORT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    roblox_games_url: HttpUrl = Field(
        default="https://games.roblox.com", alias="ROBLOX_GAMES_URL"
    )
    roblox_thumbnails_url: HttpUrl = Field(
        default="https://thumbnails.roblox.com", alias="ROBLOX_THUMBNAILS_URL"
    )
    roblox_apis_url: HttpUrl = Field(
        default="https://apis.roblox.com", alias="ROBLOX_APIS_URL"
    )
    roblox_web_url: HttpUrl = Field(
        default="https://www.roblox.com", alias="ROBLOX_WEB_URL"
    )
    roblox_legacy_api_url: HttpUrl = Field(
        default="https://api.roblox.com", alias="ROBLOX_LEGACY_API_URL"
    )
    user_agent: str = Field(
        default="RBXScout/1.0 (+https://github.com/rbxscout)", alias="USER_AGENT"
    )

    http_timeout: float = Field(default=15.0, alias="HTTP_TIMEOUT", gt=0, le=120)
    http_connect_timeout: float = Field(
        default=5.0, alias="HTTP_CONNECT_TIMEOUT", gt=0, le=60
    )

    search_id_cap: int = Field(default=40, alias="SEARCH_ID_CAP", ge=1, le=500)
    recommendation_id_cap: int = Field(
        default=60, alias="RECOMMENDATION_ID_CAP", ge=1, le=500
    )
    enrichment_batch_limit: int = Field(
        default=10, alias="ENRICHMENT_BATCH_LIMIT", ge=1, le=100
    )
    legacy_search_max_rows: int = Field(
        default=25, alias="LEGACY_SEARCH_MAX_ROWS", ge=1, le=100
    )
    # NoDecode keeps comma lists from the environment away from JSON decoding
    preferred_sort_ids: Annotated[tuple[str, ...], NoDecode] = Field(
        default=KNOWN_SORT_IDS, alias="PREFERRED_SORT_IDS"
    )

    recent_games_limit: int = Field(default=20, alias="RECENT_GAMES_LIMIT", ge=1, le=500)
    database_url: str = Field(
        default="sqlite+aiosqlite:///./rbxscout.db", alias="DATABASE_URL"
    )

    environment: Literal["development", "production"] = Field(
        default="development", alias="ENVIRONMENT"
    )

    @field_validator("preferred_sort_ids", mode="before")
    @classmethod
    def _parse_sort_ids(cls, value: object) -> tuple[str, ...]:
        """Normalise preferred sort identifiers from environment values."""

        if value is None:
            return KNOWN_SORT_IDS
        if isinstance(value, str):
            raw_values = [part.strip() for part in value.split(",")]
        elif isinstance(value, Iterable):
            raw_values = [str(part).strip() for part in value]
        else:
            raise TypeError("PREFERRED_SORT_IDS must be a string or iterable of strings")

        cleaned: list[str] = []
        for entry in raw_values:
            if entry and entry not in cleaned:
                cleaned.append(entry)
        if not cleaned:
            return KNOWN_SORT_IDS
        return tuple(cleaned)

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalise_log_level(cls, value: object) -> str:
        text = str(value or "INFO").strip().upper()
        if text not in {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}:
            raise ValueError("LOG_LEVEL must be a standard logging level name")
        return text

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""

    return Settings()  # type: ignore[call-arg]


settings = get_settings()
