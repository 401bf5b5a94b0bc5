"""Exception hierarchy for ingest runs."""

from __future__ import annotations

from collections.abc import Sequence


class IngestError(Exception):
    """Base class for all ingest failures."""


class StageError(IngestError):
    """A pipeline stage failed and the run must abort."""

    def __init__(self, message: str, *, stage: str | None = None) -> None:
        super().__init__(message)
        self.stage = stage


class CommandError(StageError):
    """An external tool exited with a non-zero status."""

    def __init__(self, command: Sequence[str], returncode: int) -> None:
        super().__init__(f"Command {' '.join(command)!r} exited with status {returncode}")
        self.command = tuple(command)
        self.returncode = returncode


class LocationResolutionError(StageError):
    """Metadata rows reference locations missing from the hierarchy."""

    def __init__(self, unresolved: Sequence[tuple[str, str]]) -> None:
        preview = ", ".join(f"{strain} ({location})" for strain, location in unresolved[:10])
        more = f" and {len(unresolved) - 10} more" if len(unresolved) > 10 else ""
        super().__init__(
            f"{len(unresolved)} metadata rows have unresolvable locations: {preview}{more}",
            stage="quality",
        )
        self.unresolved = list(unresolved)


class ObjectNotFoundError(IngestError):
    """A requested object does not exist in storage."""


class NotificationError(IngestError):
    """The notification channel rejected a message."""
