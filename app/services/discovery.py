"""High level orchestration of game discovery across the upstream APIs."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, TypeVar

from pydantic import ValidationError

from ..config import Settings
from ..discovery import TOP_RATED_PATTERNS, DiscoveryIntent, intent_for
from ..extraction import extract_ids
from ..merging import merge_games
from ..models import GameEntity, LegacyGameRecord, rating_from_votes
from ..strategies import build_rules, resolve_best_strategy, resolve_strategy_order
from ..utils import new_session_id
from .enrichment import fetch_enrichment
from .roblox import ANONYMOUS, RobloxAPIError, RobloxClient, SessionCredentials

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(slots=True)
class DiscoveryResult:
    """Games produced by one discovery call plus diagnostics for the caller."""

    games: list[GameEntity] = field(default_factory=list)
    strategy: str | None = None
    error: str | None = None

    def to_payload(self) -> dict[str, Any]:
        return {
            "games": [game.to_payload() for game in self.games],
            "strategy": self.strategy,
            "error": self.error,
        }


class CallSupersededError(Exception):
    """Raised to the caller whose call was cancelled by a newer one."""

    def __init__(self, channel: str):
        super().__init__(f"Call on channel {channel!r} was superseded")
        self.channel = channel


class LatestCallGate:
    """Run at most one call per channel, cancelling the one it supersedes.

    A superseded caller gets ``CallSupersededError`` and its result is never
    produced, so newer results cannot be overwritten by older ones. If the
    caller itself is cancelled, the ``asyncio.CancelledError`` propagates.
    """

    def __init__(self) -> None:
        self._tasks: dict[str, asyncio.Task[Any]] = {}
        self._superseded: set[asyncio.Task[Any]] = set()

    async def run(self, channel: str, awaitable: Awaitable[T]) -> T:
        previous = self._tasks.get(channel)
        if previous is not None and not previous.done():
            logger.debug("Cancelling superseded call on channel %s", channel)
            self._superseded.add(previous)
            previous.cancel()
        task: asyncio.Task[T] = asyncio.ensure_future(awaitable)
        self._tasks[channel] = task
        try:
            return await task
        except asyncio.CancelledError:
            if task in self._superseded:
                raise CallSupersededError(channel) from None
            raise
        finally:
            self._superseded.discard(task)
            if self._tasks.get(channel) is task:
                del self._tasks[channel]

    def in_flight(self, channel: str) -> bool:
        task = self._tasks.get(channel)
        return task is not None and not task.done()

    async def cancel_all(self) -> None:
        tasks = [task for task in self._tasks.values() if not task.done()]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()


class DiscoveryService:
    """Turns a query or discovery intent into an ordered list of games.

    The service holds no per-call state: every method starts with a fresh
    upstream session id and only reads configuration.
    """

    def __init__(self, settings: Settings, client: RobloxClient):
        self._settings = settings
        self._client = client
        self._rules = build_rules(settings.preferred_sort_ids)
        self._gate = LatestCallGate()

    @property
    def gate(self) -> LatestCallGate:
        return self._gate

    async def close(self) -> None:
        await self._gate.cancel_all()

    # Keyword search

    async def search(
        self,
        keyword: str,
        credentials: SessionCredentials | None = None,
        *,
        channel: str | None = None,
    ) -> DiscoveryResult:
        """Search games by keyword.

        When ``channel`` is given, an earlier search still running on the same
        channel is cancelled and returns an empty result with error
        ``"superseded"``.
        """

        if channel is not None:
            try:
                return await self._gate.run(channel, self._search(keyword, credentials))
            except CallSupersededError:
                logger.info("Search on channel %s superseded by a newer one", channel)
                return DiscoveryResult(error="superseded")
        return await self._search(keyword, credentials)

    async def _search(
        self, keyword: str, credentials: SessionCredentials | None
    ) -> DiscoveryResult:
        query = (keyword or "").strip()
        if not query:
            return DiscoveryResult()
        credentials = credentials or ANONYMOUS

        if credentials.authenticated:
            try:
                result = await self._omni_search(query, credentials)
            except RobloxAPIError as exc:
                logger.warning("Omni search failed, falling back to legacy search: %s", exc)
            else:
                if result.games:
                    return result
                logger.info("Omni search returned no games, falling back to legacy search")

        return await self._legacy_search(query)

    async def _omni_search(
        self, query: str, credentials: SessionCredentials
    ) -> DiscoveryResult:
        session_id = new_session_id()
        document = await self._client.omni_search(query, session_id, credentials)
        ids = extract_ids(document, cap=self._settings.search_id_cap)
        logger.info("Omni search extracted ids=%s total=%s", ids[:10], len(ids))
        if not ids:
            return DiscoveryResult(strategy="omni-search")
        result = await self._enrich_and_merge(ids, credentials, strategy="omni-search")
        if result.error and not result.games:
            raise RobloxAPIError(result.error)
        return result

    async def _legacy_search(self, query: str) -> DiscoveryResult:
        try:
            records = await self._client.legacy_search(query)
        except RobloxAPIError as exc:
            logger.warning("Legacy search failed for %r: %s", query, exc)
            return DiscoveryResult(strategy="legacy-search", error=str(exc))

        games: list[GameEntity] = []
        for record in records:
            game = await self._legacy_game(record)
            if game is not None:
                games.append(game)
        logger.info("Legacy search mapped results=%s", len(games))
        return DiscoveryResult(games=games, strategy="legacy-search")

    async def _legacy_game(self, record: LegacyGameRecord) -> GameEntity | None:
        universe_id = record.universe_id or 0
        if universe_id <= 0 and record.place_id > 0:
            universe_id = await self._client.fetch_universe_id(record.place_id) or 0
        thumbnail = await self._client.resolve_thumbnail(universe_id, record.place_id)
        try:
            return GameEntity(
                name=record.name,
                description=record.description or "",
                creator_name=record.creator_name or "",
                creator_id=record.creator_id,
                place_id=record.place_id,
                universe_id=universe_id,
                thumbnail_url=thumbnail,
                player_count=record.player_count,
                rating=rating_from_votes(record.total_up_votes, record.total_down_votes) or 0.0,
            )
        except ValidationError as exc:
            logger.warning("Skipping legacy search record %s: %s", record.place_id, exc)
            return None

    # Catalog driven intents

    async def trending(
        self,
        intent: str | DiscoveryIntent = "trending",
        credentials: SessionCredentials | None = None,
        *,
        limit: int | None = None,
    ) -> DiscoveryResult:
        """Return games from the first sort candidate that yields any ids."""

        credentials = credentials or ANONYMOUS
        resolved = intent if isinstance(intent, DiscoveryIntent) else intent_for(intent)
        session_id = new_session_id()
        try:
            catalog = await self._client.fetch_sorts(session_id, credentials)
        except RobloxAPIError as exc:
            logger.warning("Could not load explore sorts: %s", exc)
            return DiscoveryResult(error=str(exc))
        if not catalog:
            logger.info("No explore sorts returned")
            return DiscoveryResult()

        last_error: str | None = None
        for sort_id in resolve_strategy_order(catalog, resolved, rules=self._rules):
            try:
                document = await self._client.fetch_sort_content(sort_id, session_id, credentials)
            except RobloxAPIError as exc:
                logger.warning("Sort %s failed: %s", sort_id, exc)
                last_error = str(exc)
                continue
            ids = extract_ids(document, cap=self._settings.search_id_cap)
            logger.info("Sort %s yielded ids=%s", sort_id, len(ids))
            if ids:
                batch_limit = self._settings.enrichment_batch_limit
                if limit is not None:
                    batch_limit = min(max(limit, 0), batch_limit)
                return await self._enrich_and_merge(
                    ids[:batch_limit], credentials, strategy=sort_id
                )
        return DiscoveryResult(error=last_error)

    async def top_rated(
        self,
        top_n: int = 10,
        credentials: SessionCredentials | None = None,
    ) -> DiscoveryResult:
        """Return games from the single sort that best matches "top rated"."""

        credentials = credentials or ANONYMOUS
        session_id = new_session_id()
        try:
            catalog = await self._client.fetch_sorts(session_id, credentials)
        except RobloxAPIError as exc:
            logger.warning("Could not load explore sorts for top rated: %s", exc)
            return DiscoveryResult(error=str(exc))

        sort_id = resolve_best_strategy(catalog, TOP_RATED_PATTERNS)
        if sort_id is None:
            return DiscoveryResult()
        logger.info("Top rated sortId=%s", sort_id)
        try:
            document = await self._client.fetch_sort_content(sort_id, session_id, credentials)
        except RobloxAPIError as exc:
            logger.warning("Top rated sort %s failed: %s", sort_id, exc)
            return DiscoveryResult(strategy=sort_id, error=str(exc))

        ids = extract_ids(document, cap=self._settings.search_id_cap)[: max(top_n, 0)]
        if not ids:
            return DiscoveryResult(strategy=sort_id)
        return await self._enrich_and_merge(ids, credentials, strategy=sort_id)

    # Fixed endpoints

    async def recommended(
        self,
        limit: int = 20,
        credentials: SessionCredentials | None = None,
    ) -> DiscoveryResult:
        """Return the personalised home recommendations; needs a session cookie."""

        credentials = credentials or ANONYMOUS
        if not credentials.authenticated:
            logger.info("No session cookie, skipping recommendations")
            return DiscoveryResult()
        session_id = new_session_id()
        try:
            document = await self._client.omni_recommendation(session_id, credentials)
        except RobloxAPIError as exc:
            logger.warning("Recommendation feed failed: %s", exc)
            return DiscoveryResult(strategy="omni-recommendation", error=str(exc))

        ids = extract_ids(document, cap=self._settings.recommendation_id_cap)
        logger.info("Recommendations extracted ids=%s total=%s", ids[:10], len(ids))
        ids = ids[: max(limit, 0)]
        if not ids:
            return DiscoveryResult(strategy="omni-recommendation")
        return await self._enrich_and_merge(ids, credentials, strategy="omni-recommendation")

    async def popular_default(
        self, credentials: SessionCredentials | None = None
    ) -> DiscoveryResult:
        """Recommendations when signed in, otherwise (or if empty) trending."""

        credentials = credentials or ANONYMOUS
        if credentials.authenticated:
            result = await self.recommended(20, credentials)
            if result.games:
                return result
        return await self.trending("trending", credentials)

    async def _enrich_and_merge(
        self,
        ids: list[int],
        credentials: SessionCredentials,
        *,
        strategy: str,
    ) -> DiscoveryResult:
        bundle = await fetch_enrichment(self._client, ids, credentials)
        games = merge_games(bundle.ids, bundle.details, bundle.icons)
        logger.info("%s mapped games=%s", strategy, len(games))
        return DiscoveryResult(games=games, strategy=strategy, error=bundle.detail_error)
