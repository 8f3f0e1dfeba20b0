"""Entry point for the FastAPI-powered discovery service."""

from __future__ import annotations

import logging
from contextlib import AsyncExitStack, asynccontextmanager
from typing import Any

import httpx
from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError

from .config import settings
from .database import Database
from .models import GameEntity, follow_user_url, private_server_url
from .services.discovery import DiscoveryService
from .services.library import GameLibrary
from .services.roblox import RobloxClient, SessionCredentials
from .utils import coerce_int

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

app: FastAPI


@asynccontextmanager
async def lifespan(fastapi_app: FastAPI):
    exit_stack = AsyncExitStack()
    http_client = await exit_stack.enter_async_context(
        httpx.AsyncClient(
            timeout=httpx.Timeout(
                settings.http_timeout, connect=settings.http_connect_timeout
            ),
            follow_redirects=True,
        )
    )
    database = Database(settings.database_url)
    await database.create_all()

    client = RobloxClient(settings, http_client)
    discovery = DiscoveryService(settings, client)
    library = GameLibrary(database, recent_limit=settings.recent_games_limit)

    fastapi_app.state.roblox_client = client
    fastapi_app.state.discovery_service = discovery
    fastapi_app.state.game_library = library

    try:
        yield
    finally:  # pragma: no cover - teardown path exercised at runtime
        await discovery.close()
        await database.dispose()
        await exit_stack.aclose()


def create_app() -> FastAPI:
    fastapi_app = FastAPI(
        title=settings.app_name,
        description="Game discovery across the Roblox explore, search and games APIs",
        version="1.0.0",
        lifespan=lifespan,
    )

    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    register_routes(fastapi_app)
    return fastapi_app


def get_discovery_service(app: FastAPI) -> DiscoveryService:
    service = getattr(app.state, "discovery_service", None)
    if not isinstance(service, DiscoveryService):
        raise RuntimeError("Discovery service not initialised")
    return service


def get_game_library(app: FastAPI) -> GameLibrary:
    library = getattr(app.state, "game_library", None)
    if not isinstance(library, GameLibrary):
        raise RuntimeError("Game library not initialised")
    return library


def get_roblox_client(app: FastAPI) -> RobloxClient:
    client = getattr(app.state, "roblox_client", None)
    if not isinstance(client, RobloxClient):
        raise RuntimeError("Roblox client not initialised")
    return client


def register_routes(fastapi_app: FastAPI) -> None:
    def _credentials(request: Request) -> SessionCredentials:
        return SessionCredentials.from_headers(request.headers)

    async def _game_from_body(request: Request) -> GameEntity:
        try:
            payload: Any = await request.json()
        except ValueError as exc:
            raise HTTPException(status_code=400, detail="Body must be JSON") from exc
        try:
            return GameEntity.model_validate(payload)
        except ValidationError as exc:
            raise HTTPException(
                status_code=400, detail=exc.errors(include_url=False, include_context=False)
            ) from exc

    @fastapi_app.get("/healthz")
    async def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    @fastapi_app.get("/games/search")
    async def search_games(
        request: Request,
        q: str = Query(default="", max_length=200),
        channel: str | None = Query(default=None, max_length=64),
    ) -> dict[str, Any]:
        service = get_discovery_service(fastapi_app)
        result = await service.search(q, _credentials(request), channel=channel)
        return result.to_payload()

    @fastapi_app.get("/games/trending")
    async def trending_games(
        request: Request,
        intent: str = Query(default="trending", max_length=64),
        limit: int | None = Query(default=None, ge=1, le=100),
    ) -> dict[str, Any]:
        service = get_discovery_service(fastapi_app)
        result = await service.trending(intent, _credentials(request), limit=limit)
        return result.to_payload()

    @fastapi_app.get("/games/top-rated")
    async def top_rated_games(
        request: Request,
        limit: int = Query(default=10, ge=1, le=100),
    ) -> dict[str, Any]:
        service = get_discovery_service(fastapi_app)
        result = await service.top_rated(limit, _credentials(request))
        return result.to_payload()

    @fastapi_app.get("/games/recommended")
    async def recommended_games(
        request: Request,
        limit: int = Query(default=20, ge=1, le=60),
    ) -> dict[str, Any]:
        service = get_discovery_service(fastapi_app)
        result = await service.recommended(limit, _credentials(request))
        return result.to_payload()

    @fastapi_app.get("/games/popular")
    async def popular_games(request: Request) -> dict[str, Any]:
        service = get_discovery_service(fastapi_app)
        result = await service.popular_default(_credentials(request))
        return result.to_payload()

    @fastapi_app.get("/games/thumbnail")
    async def game_thumbnail(
        universe_id: int = Query(default=0, ge=0, alias="universeId"),
        place_id: int = Query(default=0, ge=0, alias="placeId"),
    ) -> dict[str, str | None]:
        if not universe_id and not place_id:
            raise HTTPException(status_code=400, detail="universeId or placeId is required")
        client = get_roblox_client(fastapi_app)
        return {"imageUrl": await client.resolve_thumbnail(universe_id, place_id)}

    @fastapi_app.get("/games/join-url")
    async def game_join_url(
        place_id: int = Query(default=0, ge=0, alias="placeId"),
        access_code: str | None = Query(default=None, alias="accessCode", max_length=200),
        launch_data: str | None = Query(default=None, alias="launchData", max_length=200),
        follow_user_id: int = Query(default=0, ge=0, alias="followUserId"),
    ) -> dict[str, str]:
        if follow_user_id:
            return {"joinUrl": follow_user_url(follow_user_id)}
        if not place_id:
            raise HTTPException(status_code=400, detail="placeId or followUserId is required")
        if access_code:
            return {"joinUrl": private_server_url(place_id, access_code)}
        game = GameEntity(place_id=place_id)
        parameters = {"launchData": launch_data} if launch_data else None
        return {"joinUrl": game.custom_join_url(parameters)}

    @fastapi_app.get("/users/headshots")
    async def user_headshots(
        user_ids: str = Query(default="", alias="userIds", max_length=2000),
    ) -> dict[str, dict[int, str]]:
        ids = [coerce_int(part) for part in user_ids.split(",")]
        valid = [identifier for identifier in ids if identifier is not None and identifier > 0]
        if not valid:
            raise HTTPException(status_code=400, detail="userIds must list numeric user ids")
        client = get_roblox_client(fastapi_app)
        return {"headshots": await client.fetch_avatar_headshots(valid)}

    @fastapi_app.get("/library/favorites")
    async def list_favorites() -> dict[str, Any]:
        library = get_game_library(fastapi_app)
        games = await library.list_favorites()
        return {"games": [game.to_payload() for game in games]}

    @fastapi_app.post("/library/favorites")
    async def toggle_favorite(request: Request) -> dict[str, Any]:
        game = await _game_from_body(request)
        library = get_game_library(fastapi_app)
        is_favorite = await library.toggle_favorite(game)
        return {"id": game.id, "isFavorite": is_favorite}

    @fastapi_app.get("/library/favorites/{game_id}")
    async def favorite_status(game_id: int) -> dict[str, Any]:
        library = get_game_library(fastapi_app)
        return {"id": game_id, "isFavorite": await library.is_favorite(game_id)}

    @fastapi_app.get("/library/recent")
    async def list_recent() -> dict[str, Any]:
        library = get_game_library(fastapi_app)
        games = await library.list_recent()
        return {"games": [game.to_payload() for game in games]}

    @fastapi_app.post("/library/recent")
    async def record_play(request: Request) -> dict[str, Any]:
        game = await _game_from_body(request)
        library = get_game_library(fastapi_app)
        updated = await library.record_play(game)
        return updated.to_payload()


app = create_app()
