"""Discovery intents and the sort vocabulary used to resolve them."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping


# Legacy explore sort ids that have stayed stable across upstream revisions.
KNOWN_SORT_IDS: tuple[str, ...] = (
    "Top_Trending_V4",
    "Up_And_Coming_V4",
    "CCU_Based_V1",
    "Popular_Worldwide_V4",
)

# Matched against sort names only, whatever the intent.
GENERIC_SORT_TOKENS: tuple[str, ...] = ("trend", "coming", "ccu")


@dataclass(frozen=True)
class DiscoveryIntent:
    """Synonym patterns an ordered sort lookup matches against."""

    id: str
    patterns: tuple[str, ...]

    def matches(self, text: str) -> bool:
        """Return whether any of the intent's patterns occurs in ``text``."""

        lowered = text.lower()
        return any(pattern in lowered for pattern in self.patterns)


TRENDING_PATTERNS: tuple[str, ...] = (
    "top trending",
    "trending",
    "up and coming",
    "up-and-coming",
    "engaging",
    "popular",
    "ccu",
)

# Used by the single best-guess lookup, never by the ordered one.
TOP_RATED_PATTERNS: tuple[str, ...] = (
    "top rated",
    "highest rated",
    "most liked",
    "top-rated",
    "rating",
)


DISCOVERY_INTENTS: Mapping[str, DiscoveryIntent] = {
    intent.id: intent
    for intent in [
        DiscoveryIntent(id="trending", patterns=TRENDING_PATTERNS),
        DiscoveryIntent(id="popular", patterns=TRENDING_PATTERNS),
    ]
}


def intent_for(name: str) -> DiscoveryIntent:
    """Return the intent registered under ``name`` or a literal one-off intent.

    Unknown intents match sorts by their own lowercased text, so callers can
    ask for any upstream sort by a fragment of its label.
    """

    key = (name or "").strip().lower()
    known = DISCOVERY_INTENTS.get(key)
    if known is not None:
        return known
    return DiscoveryIntent(id=key or "custom", patterns=(key,) if key else ())
