"""Shared fixtures for VitalZen tests."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Any

import pytest

from vitalzen.models import MetricBundle, MetricSample, RecommendationRequest
from vitalzen.transport.base import Transport


class ScriptedTransport(Transport):
    """Transport replying from a script of (delay, body or exception) entries."""

    def __init__(self, *replies: tuple[float, Any]) -> None:
        self.replies = list(replies)
        self.requests: list[RecommendationRequest] = []
        self.timeouts: list[float] = []
        self.cancelled = 0
        self.closed = False

    async def send(
        self, endpoint: str, request: RecommendationRequest, timeout: float
    ) -> bytes:
        self.requests.append(request)
        self.timeouts.append(timeout)
        delay, reply = self.replies.pop(0)
        try:
            await asyncio.sleep(delay)
        except asyncio.CancelledError:
            self.cancelled += 1
            raise
        if isinstance(reply, Exception):
            raise reply
        return reply

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def scripted_transport() -> type[ScriptedTransport]:
    return ScriptedTransport


@pytest.fixture
def steps_bundle() -> MetricBundle:
    ts = datetime(2024, 3, 1, 8, 0, tzinfo=timezone.utc)
    return MetricBundle(steps=[MetricSample(timestamp=ts, value=4200, unit="count")])
