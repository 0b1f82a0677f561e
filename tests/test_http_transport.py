"""Tests for the httpx-based transport."""

from __future__ import annotations

import asyncio
import json
import ssl
from datetime import datetime, timezone

import httpx
import pytest

from vitalzen.errors import TransportError, TransportErrorKind
from vitalzen.models import MetricBundle, MetricSample
from vitalzen.request_builder import build_request
from vitalzen.transport.http import HttpTransport

ENDPOINT = "https://recommend.test/api/meditation"


def _request():
    ts = datetime(2024, 3, 1, 8, 0, tzinfo=timezone.utc)
    return build_request(MetricBundle(steps=[MetricSample(timestamp=ts, value=10, unit="count")]))


def _transport(handler, method: str = "POST") -> HttpTransport:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HttpTransport(method=method, client=client)


def _send(transport: HttpTransport, timeout: float = 5.0) -> bytes:
    async def run() -> bytes:
        try:
            return await transport.send(ENDPOINT, _request(), timeout)
        finally:
            await transport.client.aclose()

    return asyncio.run(run())


def test_posts_payload_and_returns_body() -> None:
    seen: dict[str, object] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["url"] = str(request.url)
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"header": "H", "description": "D"})

    body = _send(_transport(handler))

    assert json.loads(body) == {"header": "H", "description": "D"}
    assert seen["method"] == "POST"
    assert seen["url"] == ENDPOINT
    assert set(seen["body"]) == {"stepsData"}  # type: ignore[arg-type]


def test_uses_configured_method() -> None:
    methods: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        methods.append(request.method)
        return httpx.Response(200, content=b"{}")

    _send(_transport(handler, method="get"))
    assert methods == ["GET"]


def test_rejects_unsupported_method() -> None:
    with pytest.raises(ValueError):
        HttpTransport(method="DELETE")


@pytest.mark.parametrize("status", [400, 404, 500, 503])
def test_non_success_status(status: int) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status, text="nope")

    with pytest.raises(TransportError) as exc_info:
        _send(_transport(handler))
    assert exc_info.value.kind is TransportErrorKind.HTTP_STATUS
    assert exc_info.value.status_code == status


def test_slow_response_times_out() -> None:
    async def handler(request: httpx.Request) -> httpx.Response:
        await asyncio.sleep(5)
        return httpx.Response(200, content=b"{}")

    with pytest.raises(TransportError) as exc_info:
        _send(_transport(handler), timeout=0.05)
    assert exc_info.value.kind is TransportErrorKind.TIMEOUT


def test_httpx_timeout_maps_to_timeout() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("read timed out", request=request)

    with pytest.raises(TransportError) as exc_info:
        _send(_transport(handler))
    assert exc_info.value.kind is TransportErrorKind.TIMEOUT


def test_connection_refused() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("[Errno 111] Connection refused", request=request)

    with pytest.raises(TransportError) as exc_info:
        _send(_transport(handler))
    assert exc_info.value.kind is TransportErrorKind.CONNECTION_REFUSED


def test_tls_failure() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        try:
            raise ssl.SSLCertVerificationError(1, "certificate verify failed")
        except ssl.SSLError as e:
            raise httpx.ConnectError("handshake failed", request=request) from e

    with pytest.raises(TransportError) as exc_info:
        _send(_transport(handler))
    assert exc_info.value.kind is TransportErrorKind.TLS_ERROR


def test_connection_lost_after_connect() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadError("connection reset by peer", request=request)

    with pytest.raises(TransportError) as exc_info:
        _send(_transport(handler))
    assert exc_info.value.kind is TransportErrorKind.CONNECTION_LOST


def test_corrupt_content_encoding() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            headers={"Content-Encoding": "gzip"},
            stream=httpx.ByteStream(b"notgzip"),
        )

    with pytest.raises(TransportError) as exc_info:
        _send(_transport(handler))
    assert exc_info.value.kind is TransportErrorKind.CONNECTION_LOST
    assert isinstance(exc_info.value.__cause__, httpx.DecodingError)


def test_cancellation_aborts_exchange() -> None:
    async def run() -> bool:
        started = asyncio.Event()
        aborted = asyncio.Event()

        async def handler(request: httpx.Request) -> httpx.Response:
            started.set()
            try:
                await asyncio.sleep(5)
            except asyncio.CancelledError:
                aborted.set()
                raise
            return httpx.Response(200, content=b"{}")

        transport = _transport(handler)
        task = asyncio.ensure_future(transport.send(ENDPOINT, _request(), 10))
        await started.wait()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        await transport.client.aclose()
        return aborted.is_set()

    assert asyncio.run(run()) is True


def test_aclose_only_closes_owned_client() -> None:
    async def run() -> tuple[bool, bool]:
        injected = httpx.AsyncClient()
        await HttpTransport(client=injected).aclose()

        owned = HttpTransport()
        await owned.aclose()
        result = (injected.is_closed, owned.client.is_closed)
        await injected.aclose()
        return result

    assert asyncio.run(run()) == (False, True)
