"""HTTP transport for the recommendation endpoint."""

import asyncio
import ssl
from typing import Optional

import httpx

from ..errors import TransportError, TransportErrorKind
from ..models import RecommendationRequest
from ..transport.base import Transport
from ..utils.logger import get_logger


class HttpTransport(Transport):
    """Transport that exchanges JSON with the endpoint over HTTP(S) via httpx."""

    SUPPORTED_METHODS = ("GET", "POST")

    def __init__(self, method: str = "POST", client: Optional[httpx.AsyncClient] = None):
        """
        Initialize HTTP transport.

        Args:
            method: HTTP method used for every request (GET or POST)
            client: Optional preconfigured client. If None, one is created and
                owned by this transport
        """
        method = method.upper()
        if method not in self.SUPPORTED_METHODS:
            raise ValueError(f"Unsupported HTTP method: {method}")

        self.method = method
        self.logger = get_logger(__name__)

        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(
            headers={"Content-Type": "application/json", "Accept": "application/json"},
        )

    async def send(self, endpoint: str, request: RecommendationRequest, timeout: float) -> bytes:
        """
        Send the request payload and return the raw response body.

        Args:
            endpoint: Endpoint URL
            request: Request to send
            timeout: Hard bound in seconds covering connect, upload and download

        Returns:
            Response body bytes

        Raises:
            TransportError: On timeout, connection failure, TLS failure or a
                non-2xx status
        """
        self.logger.debug(f"{self.method} {endpoint} (timeout {timeout}s)")

        try:
            # httpx timeouts are per operation, wait_for bounds the whole exchange
            return await asyncio.wait_for(self._exchange(endpoint, request, timeout), timeout)
        except asyncio.TimeoutError as e:
            self.logger.warning(f"No response from {endpoint} within {timeout}s")
            raise TransportError(
                TransportErrorKind.TIMEOUT, f"No response within {timeout}s"
            ) from e

    async def _exchange(
        self, endpoint: str, request: RecommendationRequest, timeout: float
    ) -> bytes:
        try:
            response = await self.client.request(
                self.method,
                endpoint,
                json=request.to_payload(),
                timeout=httpx.Timeout(timeout),
            )
        except httpx.TimeoutException as e:
            raise TransportError(TransportErrorKind.TIMEOUT, str(e)) from e
        except httpx.ConnectError as e:
            if _is_tls_failure(e):
                self.logger.warning(f"TLS handshake with {endpoint} failed: {e}")
                raise TransportError(TransportErrorKind.TLS_ERROR, str(e)) from e
            self.logger.warning(f"Connection to {endpoint} failed: {e}")
            raise TransportError(TransportErrorKind.CONNECTION_REFUSED, str(e)) from e
        except httpx.TransportError as e:
            self.logger.warning(f"Connection to {endpoint} lost: {e}")
            raise TransportError(TransportErrorKind.CONNECTION_LOST, str(e)) from e
        except httpx.RequestError as e:
            # Corrupt content encoding, redirect loops
            self.logger.warning(f"Exchange with {endpoint} failed: {e}")
            raise TransportError(TransportErrorKind.CONNECTION_LOST, str(e)) from e

        if not response.is_success:
            self.logger.warning(f"{endpoint} answered with HTTP {response.status_code}")
            raise TransportError(
                TransportErrorKind.HTTP_STATUS, status_code=response.status_code
            )

        self.logger.debug(f"Received {len(response.content)} bytes from {endpoint}")
        return response.content

    async def aclose(self) -> None:
        """Close the underlying client if this transport created it."""
        if self._owns_client:
            await self.client.aclose()


def _is_tls_failure(exc: BaseException) -> bool:
    """Check whether an exception was caused by an SSL/TLS error."""
    seen = set()
    current: Optional[BaseException] = exc
    while current is not None and id(current) not in seen:
        if isinstance(current, ssl.SSLError):
            return True
        seen.add(id(current))
        current = current.__cause__ or current.__context__

    message = str(exc)
    return "SSL" in message or "CERTIFICATE_VERIFY_FAILED" in message
