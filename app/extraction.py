"""Schema-agnostic identifier extraction from upstream JSON documents.

Upstream discovery endpoints nest their content entries at different depths
and under different keys, so identifiers are collected by walking the whole
document and matching a discriminator field on every object it contains.
"""

from __future__ import annotations

from typing import Any

from .utils import coerce_int, load_json_document

GAME_CONTENT_TYPE = "Game"
CONTENT_TYPE_FIELD = "contentType"
CONTENT_ID_FIELD = "contentId"


def extract_ids(
    document: Any,
    predicate_field: str = CONTENT_TYPE_FIELD,
    predicate_value: str = GAME_CONTENT_TYPE,
    id_field: str = CONTENT_ID_FIELD,
    cap: int = 40,
) -> list[int]:
    """Collect unique identifiers from every object whose discriminator matches.

    ``document`` may be raw bytes, a JSON string, or an already-decoded value.
    Objects are visited depth-first in document order, so the result follows
    first appearance. Identifiers may be integers or numeric strings; anything
    else is skipped. The walk stops as soon as ``cap`` identifiers are held.
    Unparseable input yields an empty list.
    """

    if cap <= 0:
        return []
    root = load_json_document(document)
    if root is None:
        return []

    collected: list[int] = []
    seen: set[int] = set()
    stack: list[Any] = [root]
    while stack:
        node = stack.pop()
        if isinstance(node, dict):
            if node.get(predicate_field) == predicate_value:
                identifier = coerce_int(node.get(id_field))
                if identifier is not None and identifier not in seen:
                    seen.add(identifier)
                    collected.append(identifier)
                    if len(collected) >= cap:
                        break
            children = list(node.values())
        elif isinstance(node, list):
            children = node
        else:
            continue
        # reversed so the leftmost child is visited first
        stack.extend(
            child for child in reversed(children) if isinstance(child, (dict, list))
        )
    return collected
