"""Utilities for communicating with the Roblox web APIs."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

import httpx
from pydantic import ValidationError

from ..config import Settings
from ..models import DetailRecord, IconRecord, LegacyGameRecord
from ..strategies import StrategyDescriptor, parse_sort_catalog
from ..utils import coerce_int, join_ids

logger = logging.getLogger(__name__)

SITE_ORIGIN = "https://www.roblox.com"
ICON_SIZE = "150x150"
THUMBNAIL_SIZE = "768x432"


class RobloxAPIError(Exception):
    """Raised when an upstream call fails or returns an unusable body."""

    def __init__(self, message: str, *, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


@dataclass(slots=True)
class SessionCredentials:
    """Opaque credential bundle forwarded to every upstream call."""

    cookie: str | None = field(default=None, repr=False)
    csrf_token: str | None = field(default=None, repr=False)

    @property
    def authenticated(self) -> bool:
        return bool(self.cookie and self.cookie.strip())

    def headers(self) -> dict[str, str]:
        headers: dict[str, str] = {}
        if self.authenticated:
            headers["Cookie"] = f".ROBLOSECURITY={self.cookie.strip()}"  # type: ignore[union-attr]
        if self.csrf_token:
            headers["x-csrf-token"] = self.csrf_token
        return headers

    @classmethod
    def from_headers(cls, headers: Mapping[str, str]) -> "SessionCredentials":
        """Build credentials from ``X-Roblox-Cookie`` / ``X-CSRF-Token`` headers."""

        return cls(
            cookie=headers.get("x-roblox-cookie") or None,
            csrf_token=headers.get("x-csrf-token") or None,
        )


ANONYMOUS = SessionCredentials()


class RobloxClient:
    """Thin wrapper around the games, thumbnails, explore and search APIs."""

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient):
        self._settings = settings
        self._client = http_client
        self._games_url = _base(settings.roblox_games_url)
        self._thumbnails_url = _base(settings.roblox_thumbnails_url)
        self._apis_url = _base(settings.roblox_apis_url)
        self._web_url = _base(settings.roblox_web_url)
        self._legacy_url = _base(settings.roblox_legacy_api_url)

    def _headers(
        self,
        credentials: SessionCredentials | None,
        *,
        referer: bool = False,
    ) -> dict[str, str]:
        headers = {
            "Accept": "application/json",
            "User-Agent": self._settings.user_agent,
        }
        if referer:
            headers["Referer"] = SITE_ORIGIN
            headers["Origin"] = SITE_ORIGIN
        if credentials is not None:
            headers.update(credentials.headers())
        return headers

    async def _request(
        self,
        label: str,
        method: str,
        url: str,
        *,
        credentials: SessionCredentials | None = None,
        params: Mapping[str, Any] | None = None,
        json: Any = None,
        referer: bool = False,
    ) -> httpx.Response:
        try:
            response = await self._client.request(
                method,
                url,
                params=params,
                json=json,
                headers=self._headers(credentials, referer=referer),
            )
        except httpx.HTTPError as exc:
            raise RobloxAPIError(
                f"{label} request failed: {exc.__class__.__name__}"
            ) from exc
        logger.info("%s HTTP %s bytes=%s", label, response.status_code, len(response.content))
        if response.status_code >= 400:
            raise RobloxAPIError(
                f"{label} returned HTTP {response.status_code}",
                status_code=response.status_code,
            )
        return response

    @staticmethod
    def _json(response: httpx.Response, label: str) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            raise RobloxAPIError(f"{label} returned a non-JSON body") from exc

    # Explore / search documents. Bodies are returned raw for the extractor.

    async def fetch_sorts(
        self, session_id: str, credentials: SessionCredentials | None = None
    ) -> list[StrategyDescriptor]:
        """Return the sort descriptors currently published by the explore API."""

        logger.info("Fetching explore sorts sessionId=%s", session_id)
        response = await self._request(
            "Explore sorts",
            "GET",
            f"{self._apis_url}/explore-api/v1/get-sorts",
            credentials=credentials,
            params={"sessionId": session_id},
            referer=True,
        )
        return parse_sort_catalog(response.content)

    async def fetch_sort_content(
        self,
        sort_id: str,
        session_id: str,
        credentials: SessionCredentials | None = None,
    ) -> bytes:
        response = await self._request(
            f"Explore sort {sort_id}",
            "GET",
            f"{self._apis_url}/explore-api/v1/get-sort-content",
            credentials=credentials,
            params={"sessionId": session_id, "sortId": sort_id},
        )
        return response.content

    async def omni_search(
        self,
        keyword: str,
        session_id: str,
        credentials: SessionCredentials | None = None,
    ) -> bytes:
        logger.info("Omni search query=%r sessionId=%s", keyword, session_id)
        response = await self._request(
            "Omni search",
            "GET",
            f"{self._apis_url}/search-api/omni-search",
            credentials=credentials,
            params={"searchQuery": keyword, "pageType": "games", "sessionId": session_id},
            referer=True,
        )
        return response.content

    async def omni_recommendation(
        self, session_id: str, credentials: SessionCredentials | None = None
    ) -> bytes:
        logger.info("Omni recommendation sessionId=%s", session_id)
        response = await self._request(
            "Omni recommendation",
            "POST",
            f"{self._apis_url}/discovery-api/omni-recommendation",
            credentials=credentials,
            json={"pageType": "Home", "sessionId": session_id},
            referer=True,
        )
        return response.content

    # Batch enrichment endpoints.

    async def fetch_game_details(
        self,
        universe_ids: Iterable[int],
        credentials: SessionCredentials | None = None,
    ) -> dict[int, DetailRecord]:
        """Return detail records keyed by universe id."""

        ids = list(universe_ids)
        if not ids:
            return {}
        response = await self._request(
            "Game details",
            "GET",
            f"{self._games_url}/v1/games",
            credentials=credentials,
            params={"universeIds": join_ids(ids)},
        )
        details: dict[int, DetailRecord] = {}
        for entry in _data_entries(self._json(response, "Game details")):
            try:
                record = DetailRecord.model_validate(entry)
            except ValidationError:
                logger.debug("Ignoring malformed game detail entry: %s", entry)
                continue
            details[record.id] = record
        return details

    async def fetch_game_icons(
        self,
        universe_ids: Iterable[int],
        credentials: SessionCredentials | None = None,
    ) -> dict[int, str]:
        """Return square icon URLs keyed by universe id."""

        ids = list(universe_ids)
        if not ids:
            return {}
        response = await self._request(
            "Game icons",
            "GET",
            f"{self._thumbnails_url}/v1/games/icons",
            credentials=credentials,
            params={
                "universeIds": join_ids(ids),
                "size": ICON_SIZE,
                "format": "Png",
                "isCircular": "false",
            },
        )
        return _image_map(self._json(response, "Game icons"))

    # Legacy search and its per-item helpers.

    async def legacy_search(self, keyword: str) -> list[LegacyGameRecord]:
        """Return pre-shaped records from the legacy games list endpoint."""

        logger.info("Legacy search query=%r", keyword)
        response = await self._request(
            "Legacy search",
            "GET",
            f"{self._web_url}/games/api/v1/games/list",
            params={
                "model.keyword": keyword,
                "model.startRows": 0,
                "model.maxRows": self._settings.legacy_search_max_rows,
                "model.gameFilter": 1,
                "model.timeFilter": 0,
                "model.genreFilter": 0,
            },
        )
        payload = self._json(response, "Legacy search")
        games = payload.get("Games") if isinstance(payload, dict) else None
        if not isinstance(games, list):
            raise RobloxAPIError("Legacy search returned an unexpected payload")

        records: list[LegacyGameRecord] = []
        for entry in games[: self._settings.legacy_search_max_rows]:
            try:
                records.append(LegacyGameRecord.model_validate(entry))
            except ValidationError:
                logger.debug("Ignoring malformed legacy search entry: %s", entry)
        return records

    async def fetch_universe_id(self, place_id: int) -> int | None:
        """Return the universe owning ``place_id``; ``None`` when the lookup fails."""

        logger.debug("Universe lookup for placeId=%s", place_id)
        try:
            response = await self._request(
                "Universe lookup",
                "GET",
                f"{self._legacy_url}/universes/get-universe-containing-place",
                params={"placeId": place_id},
            )
            payload = self._json(response, "Universe lookup")
        except RobloxAPIError as exc:
            logger.warning("Universe lookup for place %s failed: %s", place_id, exc)
            return None
        if not isinstance(payload, dict):
            return None
        universe_id = coerce_int(payload.get("UniverseId"))
        return universe_id if universe_id and universe_id > 0 else None

    async def fetch_universe_thumbnail(self, universe_id: int) -> str | None:
        """Return the first wide thumbnail of a universe, if any."""

        try:
            response = await self._request(
                "Universe thumbnail",
                "GET",
                f"{self._thumbnails_url}/v1/games/multiget/thumbnails",
                params={
                    "universeIds": universe_id,
                    "size": THUMBNAIL_SIZE,
                    "format": "Png",
                    "isCircular": "false",
                },
            )
            payload = self._json(response, "Universe thumbnail")
        except RobloxAPIError as exc:
            logger.warning("Thumbnail lookup for universe %s failed: %s", universe_id, exc)
            return None
        for entry in _data_entries(payload):
            thumbnails = entry.get("thumbnails")
            if isinstance(thumbnails, list):
                for thumbnail in thumbnails:
                    if isinstance(thumbnail, dict) and thumbnail.get("imageUrl"):
                        return str(thumbnail["imageUrl"])
        return None

    async def fetch_place_icon(self, place_id: int) -> str | None:
        """Return the square icon for a place, placeholder included."""

        try:
            response = await self._request(
                "Place icon",
                "GET",
                f"{self._thumbnails_url}/v1/places/gameicons",
                params={
                    "placeIds": place_id,
                    "size": ICON_SIZE,
                    "format": "Png",
                    "isCircular": "false",
                    "returnPolicy": "PlaceHolder",
                },
            )
            payload = self._json(response, "Place icon")
        except RobloxAPIError as exc:
            logger.warning("Icon lookup for place %s failed: %s", place_id, exc)
            return None
        return _image_map(payload).get(place_id)

    async def resolve_thumbnail(self, universe_id: int, place_id: int) -> str | None:
        """Prefer the universe thumbnail and fall back to the place icon."""

        if universe_id > 0:
            thumbnail = await self.fetch_universe_thumbnail(universe_id)
            if thumbnail:
                return thumbnail
        if place_id > 0:
            return await self.fetch_place_icon(place_id)
        return None

    async def fetch_avatar_headshots(self, user_ids: Iterable[int]) -> dict[int, str]:
        """Return avatar headshot URLs keyed by user id; empty on failure."""

        ids = list(user_ids)
        if not ids:
            return {}
        logger.info("Fetching avatar headshots for count=%s", len(ids))
        try:
            response = await self._request(
                "Avatar headshots",
                "GET",
                f"{self._thumbnails_url}/v1/users/avatar-headshot",
                params={
                    "userIds": join_ids(ids),
                    "size": ICON_SIZE,
                    "format": "Png",
                    "isCircular": "false",
                },
            )
            payload = self._json(response, "Avatar headshots")
        except RobloxAPIError as exc:
            logger.warning("Avatar headshot lookup failed: %s", exc)
            return {}
        return _image_map(payload)


def _base(url: object) -> str:
    return str(url).rstrip("/")


def _data_entries(payload: Any) -> list[dict[str, Any]]:
    data = payload.get("data") if isinstance(payload, dict) else None
    if not isinstance(data, list):
        return []
    return [entry for entry in data if isinstance(entry, dict)]


def _image_map(payload: Any) -> dict[int, str]:
    images: dict[int, str] = {}
    for entry in _data_entries(payload):
        try:
            record = IconRecord.model_validate(entry)
        except ValidationError:
            continue
        if record.image_url:
            images[record.target_id] = record.image_url
    return images
