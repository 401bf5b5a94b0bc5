"""Publisher interface for ingest outputs."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence

from ncov_ingest.config import Destination
from ncov_ingest.models import Artifacts


class Publisher(ABC):
    """Publishes local artifacts to their consumer-facing location."""

    @abstractmethod
    def publish(self, artifacts: Artifacts, names: Sequence[str], destination: Destination) -> None:
        """Publish each named artifact under ``destination``."""
