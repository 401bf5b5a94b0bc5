"""Base interface for raw record sources."""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path


class RecordSource(ABC):
    """Produces the raw newline-delimited JSON record stream."""

    name: str
    fresh: bool

    @abstractmethod
    def fetch(self, target: Path) -> Path:
        """Write the record stream to ``target`` and return its path."""
