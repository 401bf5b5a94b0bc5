"""Raw record sources."""

from .base import RecordSource
from .command import CommandRecordSource
from .snapshot import SnapshotRecordSource

__all__ = ["RecordSource", "CommandRecordSource", "SnapshotRecordSource"]
