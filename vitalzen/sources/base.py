"""Abstract base class for metric sources."""

from abc import ABC, abstractmethod

from ..models import MetricBundle


class MetricSource(ABC):
    """Abstract base class for loading health metrics to send with a request."""

    @abstractmethod
    def load_bundle(self) -> MetricBundle:
        """
        Load the metrics currently available for a user.

        Returns:
            Bundle with every metric kind the source has data for

        Raises:
            MetricSourceError: If the source data cannot be read
        """
        pass
