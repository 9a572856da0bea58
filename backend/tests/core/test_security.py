"""Input Security — tests for allow-listing, id sanitization and pagination clamping.

Tests cover:
    - pick_allowed_fields drops unknown keys
    - sanitize_id canonicalizes UUIDs and rejects junk without raising
    - page_request clamps instead of rejecting
    - escape_like and parse_iso_date edge cases
"""

from datetime import date
from uuid import uuid4

from app.core.security import (
    PageRequest, build_pagination, clamp, escape_like, is_valid_currency_code,
    is_valid_email, page_request, parse_float, parse_int, parse_iso_date,
    pick_allowed_fields, sanitize_id,
)


def test_pick_allowed_fields_drops_unknown_keys():
    data = {"name": "Acme", "firm_id": "evil", "status": "active"}
    assert pick_allowed_fields(data, ("name", "status")) == {"name": "Acme", "status": "active"}


def test_pick_allowed_fields_handles_none():
    assert pick_allowed_fields(None, ("name",)) == {}


def test_sanitize_id_canonicalizes_uuid():
    uid = uuid4()
    assert sanitize_id(str(uid).upper()) == str(uid)
    assert sanitize_id(uid) == str(uid)


def test_sanitize_id_rejects_junk():
    assert sanitize_id("not-a-uuid") is None
    assert sanitize_id("") is None
    assert sanitize_id(42) is None


def test_parse_int_falls_back_to_default():
    assert parse_int("7", 5) == 7
    assert parse_int("abc", 5) == 5
    assert parse_int("0", 5) == 5
    assert parse_int(None, 5) == 5


def test_parse_float_rejects_nan_and_inf():
    assert parse_float("12.5") == 12.5
    assert parse_float("nan") is None
    assert parse_float("inf") is None
    assert parse_float(True) is None


def test_page_request_clamps_values():
    assert page_request("-2", "-5") == PageRequest(page=1, limit=1)
    assert page_request("3", "500") == PageRequest(page=3, limit=100)
    assert page_request(None, None) == PageRequest(page=1, limit=20)


def test_page_request_offset():
    assert PageRequest(page=3, limit=20).offset == 40


def test_build_pagination_counts_pages():
    assert build_pagination(PageRequest(2, 20), 45) == {
        "page": 2, "limit": 20, "total": 45, "pages": 3,
    }
    assert build_pagination(PageRequest(1, 20), 0)["pages"] == 0


def test_clamp():
    assert clamp(150, 1, 100) == 100
    assert clamp(-1, 1, 100) == 1


def test_currency_and_email_checks():
    assert is_valid_currency_code("SAR")
    assert not is_valid_currency_code("sar")
    assert is_valid_email("a@b.co")
    assert not is_valid_email("no-at-sign")


def test_escape_like_escapes_wildcards():
    assert escape_like("50%_off") == "50\\%\\_off"


def test_parse_iso_date_accepts_datetime_strings():
    assert parse_iso_date("2024-03-01") == date(2024, 3, 1)
    assert parse_iso_date("2024-03-01T10:00:00Z") == date(2024, 3, 1)
    assert parse_iso_date("03/01/2024") is None
