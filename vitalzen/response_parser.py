"""Validation of recommendation response bodies."""

import json
from typing import Any

from .errors import ParseError, ParseErrorKind
from .models import RecommendationResponse

REQUIRED_FIELDS = ("header", "description")


def parse_response(raw: bytes) -> RecommendationResponse:
    """
    Decode and validate a response body.

    Args:
        raw: Response body as received from the endpoint

    Returns:
        Parsed recommendation

    Raises:
        ParseError: MALFORMED_JSON if the body is not a JSON object,
            MISSING_FIELD if a required string field is absent or not a string
    """
    try:
        data: Any = json.loads(raw)
    except (ValueError, RecursionError) as e:
        # ValueError covers JSONDecodeError and UnicodeDecodeError
        raise ParseError(ParseErrorKind.MALFORMED_JSON, f"Response is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise ParseError(
            ParseErrorKind.MALFORMED_JSON,
            f"Expected a JSON object, got {type(data).__name__}",
        )

    for name in REQUIRED_FIELDS:
        if not isinstance(data.get(name), str):
            raise ParseError(ParseErrorKind.MISSING_FIELD, field=name)

    return RecommendationResponse(header=data["header"], description=data["description"])
