"""Record source that runs the upstream fetch client."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path

from ncov_ingest.commands import run_command
from ncov_ingest.sources.base import RecordSource

logger = logging.getLogger("ncov_ingest.sources")


class CommandRecordSource(RecordSource):
    """Capture the stdout of a fetch client as the record stream."""

    name = "fetch"
    fresh = True

    def __init__(self, command: Sequence[str], *, cwd: str | Path | None = None) -> None:
        if not command:
            raise ValueError("Fetch command cannot be empty")
        self.command = tuple(command)
        self.cwd = cwd

    def fetch(self, target: Path) -> Path:
        target.parent.mkdir(parents=True, exist_ok=True)
        run_command(self.command, stdout_path=target, cwd=self.cwd)
        logger.info("Fetched %s (%d bytes)", target.name, target.stat().st_size)
        return target
