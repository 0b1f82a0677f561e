"""Abstract base class for recommendation transports."""

from abc import ABC, abstractmethod

from ..models import RecommendationRequest


class Transport(ABC):
    """Abstract base class for exchanging a request with the recommendation endpoint."""

    @abstractmethod
    async def send(self, endpoint: str, request: RecommendationRequest, timeout: float) -> bytes:
        """
        Send a request and wait for the complete response body.

        Implementations make exactly one attempt and never retry. Cancelling the
        awaiting task must abort the underlying connection.

        Args:
            endpoint: Endpoint URL
            request: Request to send
            timeout: Hard bound in seconds on the whole exchange

        Returns:
            Raw response body

        Raises:
            TransportError: If the exchange fails or times out
        """
        pass

    async def aclose(self) -> None:
        """Release any held connection resources."""
        pass

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()
