from datetime import timezone

from app.utils import coerce_int, join_ids, load_json_document, non_negative, utc_now


def test_coerce_int_accepts_numeric_strings():
    assert coerce_int("555") == 555
    assert coerce_int(" 42 ") == 42
    assert coerce_int(7) == 7


def test_coerce_int_rejects_other_values():
    assert coerce_int("12a") is None
    assert coerce_int("") is None
    assert coerce_int(True) is None
    assert coerce_int(3.5) is None
    assert coerce_int(None) is None


def test_non_negative_clamps_and_defaults():
    assert non_negative(-4) == 0
    assert non_negative(None) == 0
    assert non_negative("17") == 17
    assert non_negative(9.9) == 9


def test_load_json_document_returns_none_for_garbage():
    assert load_json_document(b'{"a": [1, 2') is None
    assert load_json_document(b"\xff\xfe\x00") is None
    assert load_json_document("not json") is None
    assert load_json_document({"already": "parsed"}) == {"already": "parsed"}


def test_join_ids():
    assert join_ids([3, 1, 2]) == "3,1,2"


def test_coerce_int_rejects_strings_past_the_digit_limit():
    assert coerce_int("7" * 5000) is None


def test_utc_now_is_timezone_aware():
    assert utc_now().tzinfo is timezone.utc
