"""Utility helpers for the RBXScout service."""

from __future__ import annotations

import json
import uuid
from datetime import datetime, timezone
from typing import Any, Iterable


def load_json_document(payload: Any) -> Any | None:
    """Return a parsed JSON value, or ``None`` when ``payload`` is not JSON.

    Already-decoded values (dicts, lists, scalars) are returned unchanged.
    """

    if isinstance(payload, (bytes, bytearray, memoryview)):
        try:
            payload = bytes(payload).decode("utf-8")
        except UnicodeDecodeError:
            return None
    if not isinstance(payload, str):
        return payload
    try:
        return json.loads(payload)
    except (ValueError, RecursionError):
        # ValueError also covers integer literals past the digit limit
        return None


def coerce_int(value: Any) -> int | None:
    """Return ``value`` as an integer when it is one or a numeric string."""

    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        text = value.strip()
        if text.isascii() and (text.isdigit() or (text[:1] in "+-" and text[1:].isdigit())):
            try:
                return int(text)
            except ValueError:
                return None
    return None


def non_negative(value: Any) -> int:
    """Return an integer count, treating missing or negative values as zero."""

    number = coerce_int(value)
    if number is None and isinstance(value, float):
        number = int(value)
    if number is None or number < 0:
        return 0
    return number


def join_ids(ids: Iterable[int]) -> str:
    """Return the comma-joined identifier batch used by the batch endpoints."""

    return ",".join(str(identifier) for identifier in ids)


def utc_now() -> datetime:
    """Return the current time as an aware UTC datetime."""

    return datetime.now(timezone.utc)


def new_session_id() -> str:
    """Return a fresh upstream session identifier."""

    return str(uuid.uuid4())
