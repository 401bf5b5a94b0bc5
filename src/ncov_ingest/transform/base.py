"""Base interface for record transformers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path

from ncov_ingest.models import Artifacts


@dataclass
class TransformResult:
    """Counts and diagnostics from one transform pass."""

    records_read: int = 0
    records_written: int = 0
    records_rejected: int = 0
    annotations: list[str] = field(default_factory=list)


class RecordTransformer(ABC):
    """Converts a raw record stream into metadata, sequences and annotations."""

    name: str

    @abstractmethod
    def transform(self, records_path: Path, artifacts: Artifacts) -> TransformResult:
        """Write canonical outputs into ``artifacts`` and return a summary."""
