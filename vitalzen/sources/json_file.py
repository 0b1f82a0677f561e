"""Metric source backed by a JSON export file."""

import json
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from ..errors import MetricSourceError
from ..models import MetricBundle, MetricKind, MetricSample
from ..sources.base import MetricSource
from ..utils.logger import get_logger


class JsonFileSource(MetricSource):
    """
    Loads a metric bundle from a JSON export.

    The file holds an object with optional ``steps``, ``sleep`` and
    ``heartRate`` arrays (the ``stepsData``/``sleepData``/``heartrateData``
    payload keys are accepted as well), each made of
    ``{"timestamp": ISO-8601, "value": number, "unit": string}`` objects.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self.logger = get_logger(__name__)

    def load_bundle(self) -> MetricBundle:
        if not self.path.exists():
            raise MetricSourceError(f"Metrics file not found: {self.path}")

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise MetricSourceError(f"Invalid JSON in metrics file {self.path}: {e}") from e

        if not isinstance(data, dict):
            raise MetricSourceError(f"Metrics file {self.path} must contain a JSON object")

        bundle = MetricBundle(
            steps=self._read_kind(data, MetricKind.STEPS),
            sleep=self._read_kind(data, MetricKind.SLEEP),
            heart_rate=self._read_kind(data, MetricKind.HEART_RATE),
        )

        summary = {kind.value: len(bundle.get(kind)) for kind in bundle.present_kinds()}
        self.logger.debug(f"Loaded metrics from {self.path}: {summary}")
        return bundle

    def _read_kind(
        self, data: Dict[str, Any], kind: MetricKind
    ) -> Optional[Tuple[MetricSample, ...]]:
        """Read the samples of one kind, or None if the file has none."""
        raw = data.get(kind.value, data.get(kind.wire_key))
        if raw is None:
            return None
        if not isinstance(raw, list):
            raise MetricSourceError(f"'{kind.value}' in {self.path} must be an array")

        samples: List[MetricSample] = []
        for idx, item in enumerate(raw):
            try:
                samples.append(_parse_sample(item))
            except (KeyError, TypeError, ValueError) as e:
                raise MetricSourceError(
                    f"Invalid {kind.value} sample at index {idx} in {self.path}: {e}"
                ) from e
        return tuple(samples)


def _parse_sample(item: Dict[str, Any]) -> MetricSample:
    value = item["value"]
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"value must be a number, got {value!r}")
    return MetricSample(
        timestamp=datetime.fromisoformat(item["timestamp"]),
        value=value,
        unit=str(item["unit"]),
    )
