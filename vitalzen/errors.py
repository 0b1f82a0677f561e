"""Error taxonomy for recommendation fetches."""

from enum import Enum
from typing import Optional


class TransportErrorKind(str, Enum):
    """Ways a single HTTP exchange can fail."""

    TIMEOUT = "timeout"
    CONNECTION_REFUSED = "connection_refused"
    CONNECTION_LOST = "connection_lost"
    TLS_ERROR = "tls_error"
    HTTP_STATUS = "http_status"


class ParseErrorKind(str, Enum):
    """Ways a response body can fail validation."""

    MALFORMED_JSON = "malformed_json"
    MISSING_FIELD = "missing_field"


class RecommendationError(Exception):
    """Base class for errors that fail a recommendation fetch."""

    kind: Enum


class TransportError(RecommendationError):
    """Raised when the HTTP exchange with the recommendation endpoint fails."""

    def __init__(
        self,
        kind: TransportErrorKind,
        message: str = "",
        status_code: Optional[int] = None,
    ):
        """
        Initialize transport error.

        Args:
            kind: Failure kind
            message: Human readable detail
            status_code: HTTP status code, only set for HTTP_STATUS errors
        """
        self.kind = kind
        self.status_code = status_code
        if not message:
            message = kind.value
            if status_code is not None:
                message = f"{message} ({status_code})"
        super().__init__(message)


class ParseError(RecommendationError):
    """Raised when a response body is not a valid recommendation."""

    def __init__(self, kind: ParseErrorKind, message: str = "", field: Optional[str] = None):
        self.kind = kind
        self.field = field
        if not message:
            message = kind.value if field is None else f"{kind.value}: {field}"
        super().__init__(message)


class FetchCancelled(Exception):
    """Raised to the caller of a fetch that was superseded or cancelled."""

    def __init__(self, request_id: int):
        self.request_id = request_id
        super().__init__(f"Fetch {request_id} was cancelled")


class MetricSourceError(Exception):
    """Raised when a metric export cannot be loaded."""
