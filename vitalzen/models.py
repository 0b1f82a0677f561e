"""Data model for recommendation requests, responses and fetch state."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Dict, Optional, Tuple, Union

from .errors import RecommendationError


class MetricKind(str, Enum):
    """Kinds of health metrics that can be sent with a request."""

    STEPS = "steps"
    SLEEP = "sleep"
    HEART_RATE = "heartRate"

    @property
    def wire_key(self) -> str:
        """Key used for this kind in the outbound JSON payload."""
        return _WIRE_KEYS[self]


_WIRE_KEYS = {
    MetricKind.STEPS: "stepsData",
    MetricKind.SLEEP: "sleepData",
    MetricKind.HEART_RATE: "heartrateData",
}


@dataclass(frozen=True)
class MetricSample:
    """A single timestamped measurement."""

    timestamp: datetime
    value: float
    unit: str

    def to_dict(self) -> Dict[str, Union[str, float]]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "value": self.value,
            "unit": self.unit,
        }


@dataclass(frozen=True)
class MetricBundle:
    """
    Health metrics collected for one recommendation request.

    Each kind is optional. ``None`` means the kind is absent and is left out of
    the payload; an empty tuple is sent as an empty array.
    """

    steps: Optional[Tuple[MetricSample, ...]] = None
    sleep: Optional[Tuple[MetricSample, ...]] = None
    heart_rate: Optional[Tuple[MetricSample, ...]] = None

    def __post_init__(self) -> None:
        # Accept any sequence from callers but store tuples
        for name in ("steps", "sleep", "heart_rate"):
            samples = getattr(self, name)
            if samples is not None and not isinstance(samples, tuple):
                object.__setattr__(self, name, tuple(samples))

    def get(self, kind: MetricKind) -> Optional[Tuple[MetricSample, ...]]:
        """Get the samples for a metric kind, or None if absent."""
        return {
            MetricKind.STEPS: self.steps,
            MetricKind.SLEEP: self.sleep,
            MetricKind.HEART_RATE: self.heart_rate,
        }[kind]

    def present_kinds(self) -> Tuple[MetricKind, ...]:
        """Metric kinds included in this bundle, in wire order."""
        return tuple(kind for kind in MetricKind if self.get(kind) is not None)


@dataclass(frozen=True)
class RecommendationRequest:
    """Outbound request, immutable once built."""

    bundle: MetricBundle
    requested_at: datetime

    def to_payload(self) -> Dict[str, list]:
        """
        Serialize to the outbound JSON object.

        Returns:
            Dictionary with one ``*Data`` key per metric kind present in the bundle
        """
        payload = {}
        for kind in self.bundle.present_kinds():
            payload[kind.wire_key] = [sample.to_dict() for sample in self.bundle.get(kind)]
        return payload


@dataclass(frozen=True)
class RecommendationResponse:
    """Personalized meditation suggestion returned by the remote service."""

    header: str
    description: str


@dataclass(frozen=True)
class Idle:
    """No fetch has run yet, or the last one was cancelled."""


@dataclass(frozen=True)
class InFlight:
    """A fetch attempt is waiting on the remote service."""

    request_id: int


@dataclass(frozen=True)
class Succeeded:
    """The latest fetch attempt produced a recommendation."""

    response: RecommendationResponse


@dataclass(frozen=True)
class Failed:
    """The latest fetch attempt failed."""

    error: RecommendationError

    @property
    def kind(self):
        """Kind of the underlying transport or parse error."""
        return self.error.kind


FetchState = Union[Idle, InFlight, Succeeded, Failed]
