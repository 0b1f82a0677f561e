"""Builds outbound recommendation requests."""

from datetime import datetime, timezone
from typing import Optional

from .models import MetricBundle, RecommendationRequest


def build_request(
    bundle: MetricBundle, requested_at: Optional[datetime] = None
) -> RecommendationRequest:
    """
    Assemble a recommendation request from a metric bundle.

    Absent metric kinds stay absent; nothing is validated, so this never fails.

    Args:
        bundle: Metrics to send
        requested_at: Request timestamp (defaults to now, UTC)

    Returns:
        Immutable request ready for dispatch
    """
    if requested_at is None:
        requested_at = datetime.now(timezone.utc)
    return RecommendationRequest(bundle=bundle, requested_at=requested_at)
