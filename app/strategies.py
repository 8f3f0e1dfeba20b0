"""Resolution of upstream sort strategies for a discovery intent.

The explore service publishes its sorts as ``(id, label)`` pairs without any
stable machine-readable meaning, so candidates are ranked by an ordered list
of rules: known identifiers first, then label matches, then everything else.
Each rule only appends ids that an earlier rule has not already claimed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Protocol, Sequence

from .discovery import GENERIC_SORT_TOKENS, KNOWN_SORT_IDS, DiscoveryIntent, intent_for
from .utils import load_json_document

logger = logging.getLogger(__name__)

# Checked in order; the first non-empty string wins.
NAME_KEYS: tuple[str, ...] = (
    "name",
    "displayName",
    "displayText",
    "displayNameText",
    "title",
    "titleText",
    "carouselTitle",
    "contextualTitle",
    "sortName",
    "localeTitle",
    "text",
    "label",
    "labelText",
)


@dataclass(frozen=True, slots=True)
class StrategyDescriptor:
    """An upstream sort as published by the catalog endpoint."""

    id: str
    display_name: str

    def haystacks(self) -> tuple[str, str]:
        return self.display_name.lower(), self.id.lower()


def parse_sort_catalog(document: Any) -> list[StrategyDescriptor]:
    """Return the sort descriptors listed in a catalog response.

    Entries without a usable id are skipped; malformed documents produce an
    empty list.
    """

    root = load_json_document(document)
    if not isinstance(root, dict):
        return []
    sorts = root.get("sorts")
    if not isinstance(sorts, list):
        sorts = root.get("Sorts")
    if not isinstance(sorts, list):
        return []

    descriptors: list[StrategyDescriptor] = []
    for entry in sorts:
        if not isinstance(entry, dict):
            continue
        sort_id = _descriptor_id(entry)
        if sort_id is None:
            continue
        descriptors.append(StrategyDescriptor(id=sort_id, display_name=_descriptor_name(entry)))
    return descriptors


def _descriptor_id(entry: dict[str, Any]) -> str | None:
    for key in ("id", "sortId"):
        value = entry.get(key)
        if isinstance(value, str) and value:
            return value
    value = entry.get("id")
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return None


def _descriptor_name(entry: dict[str, Any]) -> str:
    for key in NAME_KEYS:
        value = entry.get(key)
        if isinstance(value, str) and value:
            return value
    title = entry.get("title")
    if isinstance(title, dict):
        for value in title.values():
            if isinstance(value, str) and value:
                return value
    return " ".join(value for value in entry.values() if isinstance(value, str))


class OrderingRule(Protocol):
    """A single ranking stage of :func:`resolve_strategy_order`."""

    def select(
        self, catalog: Sequence[StrategyDescriptor], intent: DiscoveryIntent
    ) -> Iterable[str]:
        ...


@dataclass(frozen=True)
class KnownIdsRule:
    """Hardcoded legacy sort ids, in their fixed order, when the catalog has them."""

    known_ids: tuple[str, ...] = KNOWN_SORT_IDS

    def select(
        self, catalog: Sequence[StrategyDescriptor], intent: DiscoveryIntent
    ) -> Iterable[str]:
        available = {descriptor.id for descriptor in catalog}
        return [sort_id for sort_id in self.known_ids if sort_id in available]


@dataclass(frozen=True)
class NamePatternRule:
    """Sorts whose label or id contains an intent synonym, in catalog order."""

    generic_tokens: tuple[str, ...] = GENERIC_SORT_TOKENS

    def select(
        self, catalog: Sequence[StrategyDescriptor], intent: DiscoveryIntent
    ) -> Iterable[str]:
        matched: list[str] = []
        for descriptor in catalog:
            name, sort_id = descriptor.haystacks()
            if intent.matches(name) or intent.matches(sort_id):
                matched.append(descriptor.id)
            elif any(token in name for token in self.generic_tokens):
                matched.append(descriptor.id)
        return matched


class RemainderRule:
    """Every catalog entry, so the result is never empty for a non-empty catalog."""

    def select(
        self, catalog: Sequence[StrategyDescriptor], intent: DiscoveryIntent
    ) -> Iterable[str]:
        return [descriptor.id for descriptor in catalog]


DEFAULT_RULES: tuple[OrderingRule, ...] = (KnownIdsRule(), NamePatternRule(), RemainderRule())


def build_rules(known_ids: Sequence[str] | None = None) -> tuple[OrderingRule, ...]:
    """Return the default rule chain, optionally with a custom known-id list."""

    if known_ids is None:
        return DEFAULT_RULES
    return (KnownIdsRule(tuple(known_ids)), NamePatternRule(), RemainderRule())


def resolve_strategy_order(
    catalog: Sequence[StrategyDescriptor],
    intent: str | DiscoveryIntent,
    *,
    rules: Sequence[OrderingRule] = DEFAULT_RULES,
) -> list[str]:
    """Return candidate sort ids to try for ``intent``, most preferred first."""

    resolved_intent = intent if isinstance(intent, DiscoveryIntent) else intent_for(intent)
    ordered: list[str] = []
    claimed: set[str] = set()
    for rule in rules:
        for sort_id in rule.select(catalog, resolved_intent):
            if sort_id not in claimed:
                claimed.add(sort_id)
                ordered.append(sort_id)
    return ordered


def resolve_best_strategy(
    catalog: Sequence[StrategyDescriptor], patterns: Iterable[str]
) -> str | None:
    """Return the first sort whose label or id contains any pattern.

    Without a match the first catalog entry is returned, which may be an
    unrelated sort; ``None`` only when the catalog is empty.
    """

    lowered = [pattern.lower() for pattern in patterns]
    for descriptor in catalog:
        name, sort_id = descriptor.haystacks()
        for pattern in lowered:
            if pattern in name or pattern in sort_id:
                return descriptor.id
    if not catalog:
        return None
    logger.info(
        "No sort matched %s; falling back to %s. Candidates: %s",
        lowered,
        catalog[0].id,
        ", ".join(f"{d.id}:{d.display_name}" for d in catalog[:10]),
    )
    return catalog[0].id
