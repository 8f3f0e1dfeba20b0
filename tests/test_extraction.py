"""Tests for the recursive identifier extractor."""

from __future__ import annotations

import json

from app.extraction import extract_ids


def _game(content_id: object) -> dict[str, object]:
    return {"contentType": "Game", "contentId": content_id}


def test_extract_ids_dedupes_string_and_integer_forms():
    document = {
        "searchResults": [
            {"contents": [_game("555")]},
            {"deeper": {"nested": [{"items": [_game(555)]}]}},
        ]
    }

    assert extract_ids(document) == [555]


def test_extract_ids_preserves_first_seen_order():
    document = {
        "sorts": [
            {"games": [_game(3), _game(1)]},
            {"games": [_game(2), _game(3)]},
        ],
        "tail": _game("4"),
    }

    assert extract_ids(json.dumps(document).encode()) == [3, 1, 2, 4]


def test_extract_ids_respects_cap():
    document = [_game(index) for index in range(100)]

    ids = extract_ids(document, cap=40)

    assert ids == list(range(40))


def test_extract_ids_continues_below_matching_objects():
    document = {
        "contentType": "Game",
        "contentId": 10,
        "related": [_game(11), {"contentType": "Game", "contentId": 10}],
    }

    assert extract_ids(document) == [10, 11]


def test_extract_ids_skips_non_game_and_non_numeric_entries():
    document = [
        {"contentType": "Experience", "contentId": 1},
        _game("abc"),
        _game(None),
        _game(True),
        _game({"id": 4}),
        _game(5),
    ]

    assert extract_ids(document) == [5]


def test_extract_ids_uses_custom_fields():
    document = {"rows": [{"kind": "Universe", "universeId": "77"}, _game(1)]}

    assert extract_ids(document, "kind", "Universe", "universeId", cap=5) == [77]


def test_extract_ids_returns_empty_for_malformed_documents():
    assert extract_ids(b'{"contents": [{"contentType": "Game", "contentId": 1') == []
    assert extract_ids(b"<html>Too Many Requests</html>") == []
    assert extract_ids(b"") == []
    assert extract_ids(None) == []


def test_extract_ids_handles_deep_nesting_without_recursion():
    document: object = _game(99)
    for _ in range(5_000):
        document = {"child": [document]}

    assert extract_ids(document) == [99]


def test_extract_ids_with_zero_cap_is_empty():
    assert extract_ids([_game(1)], cap=0) == []


def test_extract_ids_skips_identifiers_past_the_digit_limit():
    document = [
        {"contentType": "Game", "contentId": "9" * 5000},
        {"contentType": "Game", "contentId": "12"},
    ]

    assert extract_ids(document) == [12]


def test_extract_ids_treats_oversized_integer_literals_as_malformed():
    body = b'{"x": ' + b"1" * 5000 + b', "items": [{"contentType": "Game", "contentId": 3}]}'

    assert extract_ids(body) == []
