"""Single-flight orchestration of recommendation fetches."""

import asyncio
from typing import Callable, List, Optional

from .errors import FetchCancelled, RecommendationError
from .models import (
    FetchState,
    Failed,
    Idle,
    InFlight,
    MetricBundle,
    RecommendationResponse,
    Succeeded,
)
from .request_builder import build_request
from .response_parser import parse_response
from .transport.base import Transport
from .utils.logger import get_logger

StateListener = Callable[[FetchState], None]


class RecommendationFetcher:
    """
    Fetches personalized recommendations for one session.

    At most one fetch is in flight at a time. Starting a new fetch supersedes
    (cancels) the one in flight; a superseded attempt never touches the state
    again, even if its transport call completes afterwards.

    The state is confined to the event loop running the fetches, so no locking
    is done here. Use one instance per session.
    """

    DEFAULT_TIMEOUT = 30.0

    def __init__(
        self,
        transport: Transport,
        endpoint: str,
        timeout: float = DEFAULT_TIMEOUT,
        session_id: str = "default",
    ):
        """
        Initialize fetcher.

        Args:
            transport: Transport used for the HTTP exchange
            endpoint: Recommendation endpoint URL
            timeout: Hard bound in seconds on each transport call
            session_id: Identifier used in log messages
        """
        if timeout <= 0:
            raise ValueError(f"Timeout must be positive, got {timeout}")

        self.transport = transport
        self.endpoint = endpoint
        self.timeout = timeout
        self.session_id = session_id
        self.logger = get_logger(__name__)

        self._state: FetchState = Idle()
        self._listeners: List[StateListener] = []
        self._task: Optional[asyncio.Future] = None
        self._current_id: Optional[int] = None
        self._last_id = 0

    @property
    def state(self) -> FetchState:
        """Current fetch state of this session."""
        return self._state

    @property
    def in_flight(self) -> bool:
        return isinstance(self._state, InFlight)

    def add_listener(self, listener: StateListener) -> None:
        """
        Register a callable notified with every new state, in transition order.

        Args:
            listener: Callable taking the new FetchState
        """
        self._listeners.append(listener)

    async def fetch(self, bundle: MetricBundle) -> RecommendationResponse:
        """
        Fetch a recommendation for the given metrics.

        Args:
            bundle: Metrics to send

        Returns:
            The recommendation, also published as Succeeded

        Raises:
            TransportError: If the exchange failed (state becomes Failed)
            ParseError: If the response was invalid (state becomes Failed)
            FetchCancelled: If this attempt was superseded or cancelled
        """
        if self._task is not None:
            self.logger.info(
                f"[{self.session_id}] Superseding in-flight fetch {self._current_id}"
            )
            self._cancel_task()

        self._last_id += 1
        request_id = self._last_id
        self._current_id = request_id
        self._set_state(InFlight(request_id))

        task = asyncio.ensure_future(self._attempt(request_id, bundle))
        self._task = task
        try:
            return await task
        except asyncio.CancelledError:
            if self._current_id != request_id:
                raise FetchCancelled(request_id) from None
            # The caller itself was cancelled
            if task.cancelled():
                self.logger.info(f"[{self.session_id}] Fetch {request_id} cancelled by caller")
                self._current_id = None
                self._set_state(Idle())
            raise
        except Exception:
            # Taxonomy errors already moved the state on; anything else is a bug
            if self._state == InFlight(request_id):
                self.logger.error(
                    f"[{self.session_id}] Fetch {request_id} died on an unexpected error",
                    exc_info=True,
                )
                self._current_id = None
                self._set_state(Idle())
            raise
        finally:
            if self._task is task:
                self._task = None

    def cancel(self) -> bool:
        """
        Cancel the in-flight fetch, if any, and return to Idle.

        Returns:
            True if a fetch was cancelled, False if none was in flight
        """
        if self._task is None:
            return False

        self.logger.info(f"[{self.session_id}] Cancelling fetch {self._current_id}")
        self._cancel_task()
        self._set_state(Idle())
        return True

    def _cancel_task(self) -> None:
        self._task.cancel()
        self._task = None
        self._current_id = None

    async def _attempt(self, request_id: int, bundle: MetricBundle) -> RecommendationResponse:
        """Run one builder -> transport -> parser pass for a request id."""
        request = build_request(bundle)
        kinds = ", ".join(kind.value for kind in bundle.present_kinds()) or "none"
        self.logger.info(
            f"[{self.session_id}] Fetch {request_id}: requesting recommendation (metrics: {kinds})"
        )

        try:
            raw = await self.transport.send(self.endpoint, request, self.timeout)
            self._ensure_current(request_id)
            response = parse_response(raw)
        except RecommendationError as e:
            self._ensure_current(request_id)
            self.logger.error(f"[{self.session_id}] Fetch {request_id} failed: {e}")
            self._set_state(Failed(e))
            raise

        self._ensure_current(request_id)
        self.logger.info(f"[{self.session_id}] ✓ Fetch {request_id} succeeded: {response.header}")
        self._set_state(Succeeded(response))
        return response

    def _ensure_current(self, request_id: int) -> None:
        """Drop results of an attempt that is no longer the current one."""
        if self._current_id != request_id:
            self.logger.debug(
                f"[{self.session_id}] Discarding result of stale fetch {request_id}"
            )
            raise FetchCancelled(request_id)

    def _set_state(self, state: FetchState) -> None:
        self._state = state
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception as e:
                self.logger.error(
                    f"[{self.session_id}] State listener failed: {e}", exc_info=True
                )
