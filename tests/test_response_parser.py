"""Tests for response validation."""

from __future__ import annotations

import pytest

from vitalzen.errors import ParseError, ParseErrorKind
from vitalzen.models import RecommendationResponse
from vitalzen.response_parser import parse_response


def test_parses_valid_response() -> None:
    raw = b'{"header": "Calm Mind", "description": "Try 5 minutes of breathing."}'
    assert parse_response(raw) == RecommendationResponse(
        header="Calm Mind", description="Try 5 minutes of breathing."
    )


def test_extra_fields_are_ignored() -> None:
    raw = b'{"header": "H", "description": "D", "duration": 5, "tags": ["calm"]}'
    assert parse_response(raw) == RecommendationResponse(header="H", description="D")


@pytest.mark.parametrize(
    "raw",
    [
        b"",
        b"not json",
        b'{"header": "H"',
        b"\xff\xfe\xfa",
        b"[]",
        b'"text"',
        b"null",
        b"42",
        pytest.param(b"[" * 100000, id="deeply-nested"),
    ],
)
def test_malformed_bodies(raw: bytes) -> None:
    with pytest.raises(ParseError) as exc_info:
        parse_response(raw)
    assert exc_info.value.kind is ParseErrorKind.MALFORMED_JSON


@pytest.mark.parametrize(
    ("raw", "field"),
    [
        (b'{"header": "X"}', "description"),
        (b'{"description": "D"}', "header"),
        (b"{}", "header"),
        (b'{"header": null, "description": "D"}', "header"),
        (b'{"header": "H", "description": 3}', "description"),
        (b'{"header": ["H"], "description": "D"}', "header"),
    ],
)
def test_missing_or_non_string_fields(raw: bytes, field: str) -> None:
    with pytest.raises(ParseError) as exc_info:
        parse_response(raw)
    assert exc_info.value.kind is ParseErrorKind.MISSING_FIELD
    assert exc_info.value.field == field
