"""Concurrent detail and icon fetching for a batch of universe ids."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Iterable

from ..models import DetailRecord
from .roblox import RobloxClient, SessionCredentials

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class EnrichmentBundle:
    """Detail and icon lookups for one batch; missing keys are not errors."""

    ids: list[int] = field(default_factory=list)
    details: dict[int, DetailRecord] = field(default_factory=dict)
    icons: dict[int, str] = field(default_factory=dict)
    detail_error: str | None = None
    icon_error: str | None = None


async def fetch_enrichment(
    client: RobloxClient,
    ids: Iterable[int],
    credentials: SessionCredentials | None = None,
    *,
    limit: int | None = None,
) -> EnrichmentBundle:
    """Fetch details and icons for ``ids`` concurrently and wait for both.

    ``limit`` truncates the batch before dispatch. Each branch fails on its
    own: a detail failure is recorded on the bundle for the caller to report,
    an icon failure only leaves the icon map empty.
    """

    batch = list(ids)
    if limit is not None:
        batch = batch[: max(limit, 0)]
    bundle = EnrichmentBundle(ids=batch)
    if not batch:
        return bundle

    details_result, icons_result = await asyncio.gather(
        client.fetch_game_details(batch, credentials),
        client.fetch_game_icons(batch, credentials),
        return_exceptions=True,
    )

    if _is_failure(details_result):
        logger.warning("Detail fetch failed for %s ids: %s", len(batch), details_result)
        bundle.detail_error = str(details_result)
    else:
        bundle.details = details_result

    if _is_failure(icons_result):
        logger.warning("Icon fetch failed for %s ids: %s", len(batch), icons_result)
        bundle.icon_error = str(icons_result)
    else:
        bundle.icons = icons_result

    return bundle


def _is_failure(result: Any) -> bool:
    if isinstance(result, BaseException):
        if not isinstance(result, Exception):
            # cancellation and interpreter exits are never absorbed
            raise result
        return True
    return False
