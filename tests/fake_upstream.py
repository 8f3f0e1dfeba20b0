"""In-memory stand-in for the Roblox endpoints used by the discovery tests."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import httpx

from app.config import Settings
from app.services.roblox import RobloxClient


def game_entry(content_id: object) -> dict[str, object]:
    return {"contentType": "Game", "contentId": content_id}


@dataclass
class FakeRoblox:
    """Routes requests by path; a status code in place of a body fails that call."""

    sorts: list[dict[str, Any]] | int = field(default_factory=list)
    sort_content: dict[str, Any] = field(default_factory=dict)
    omni_search: Any = None
    recommendation: Any = None
    legacy_games: list[dict[str, Any]] | int = field(default_factory=list)
    details: dict[int, dict[str, Any]] = field(default_factory=dict)
    details_status: int = 200
    icons: dict[int, str] = field(default_factory=dict)
    icons_status: int = 200
    universes: dict[int, int] = field(default_factory=dict)
    thumbnails: dict[int, str] = field(default_factory=dict)
    place_icons: dict[int, str] = field(default_factory=dict)
    requests: list[httpx.Request] = field(default_factory=list)

    def paths(self) -> list[str]:
        return [request.url.path for request in self.requests]

    def sort_requests(self) -> list[str]:
        return [
            request.url.params["sortId"]
            for request in self.requests
            if request.url.path.endswith("get-sort-content")
        ]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        params = request.url.params
        if path == "/explore-api/v1/get-sorts":
            return _reply({"sorts": self.sorts} if isinstance(self.sorts, list) else self.sorts)
        if path == "/explore-api/v1/get-sort-content":
            return _reply(self.sort_content.get(params["sortId"], {"sorts": []}))
        if path == "/search-api/omni-search":
            return _reply(self.omni_search)
        if path == "/discovery-api/omni-recommendation":
            return _reply(self.recommendation)
        if path == "/v1/games":
            if self.details_status != 200:
                return httpx.Response(self.details_status)
            ids = [int(part) for part in params["universeIds"].split(",")]
            return _reply({"data": [self.details[i] for i in ids if i in self.details]})
        if path == "/v1/games/icons":
            if self.icons_status != 200:
                return httpx.Response(self.icons_status)
            ids = [int(part) for part in params["universeIds"].split(",")]
            return _reply(
                {"data": [{"targetId": i, "imageUrl": self.icons[i]} for i in ids if i in self.icons]}
            )
        if path == "/games/api/v1/games/list":
            if isinstance(self.legacy_games, int):
                return httpx.Response(self.legacy_games)
            return _reply({"Games": self.legacy_games})
        if path == "/universes/get-universe-containing-place":
            place_id = int(params["placeId"])
            if place_id not in self.universes:
                return httpx.Response(404)
            return _reply({"UniverseId": self.universes[place_id]})
        if path == "/v1/games/multiget/thumbnails":
            universe_id = int(params["universeIds"])
            thumbs = [{"imageUrl": self.thumbnails[universe_id]}] if universe_id in self.thumbnails else []
            return _reply({"data": [{"universeId": universe_id, "thumbnails": thumbs}]})
        if path == "/v1/places/gameicons":
            place_id = int(params["placeIds"])
            data = [{"targetId": place_id, "imageUrl": self.place_icons[place_id]}] if place_id in self.place_icons else []
            return _reply({"data": data})
        return httpx.Response(404)

    def client(self, **overrides: object) -> tuple[RobloxClient, httpx.AsyncClient]:
        settings = build_settings(**overrides)
        http_client = httpx.AsyncClient(transport=httpx.MockTransport(self.handler))
        return RobloxClient(settings, http_client), http_client


def build_settings(**overrides: object) -> Settings:
    return Settings(_env_file=None, **overrides)  # type: ignore[arg-type]


def detail(universe_id: int, **extra: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "id": universe_id,
        "rootPlaceId": universe_id * 10,
        "name": f"Game {universe_id}",
        "creator": {"id": 1, "name": "Creator"},
        "playing": universe_id,
    }
    payload.update(extra)
    return payload


def _reply(body: Any) -> httpx.Response:
    if isinstance(body, int):
        return httpx.Response(body)
    if isinstance(body, (bytes, str)):
        return httpx.Response(200, content=body)
    return httpx.Response(200, json=body)
