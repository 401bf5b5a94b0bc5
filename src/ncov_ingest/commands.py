"""Blocking invocation of external command-line tools."""

from __future__ import annotations

import logging
import shlex
import subprocess
from collections.abc import Sequence
from pathlib import Path

from ncov_ingest.errors import CommandError

logger = logging.getLogger("ncov_ingest.commands")


def run_command(
    command: Sequence[str],
    *,
    stdout_path: str | Path | None = None,
    cwd: str | Path | None = None,
) -> None:
    """Run ``command`` to completion, optionally capturing stdout to a file.

    The tool's stderr passes straight through to ours. A non-zero exit raises
    ``CommandError`` carrying the tool's return code.
    """

    logger.info("Command: %s", shlex.join(command))
    try:
        if stdout_path is None:
            result = subprocess.run(list(command), cwd=cwd, check=False)
        else:
            with Path(stdout_path).open("wb") as stdout:
                result = subprocess.run(list(command), cwd=cwd, stdout=stdout, check=False)
    except FileNotFoundError as exc:
        raise CommandError(command, 127) from exc

    if result.returncode != 0:
        raise CommandError(command, result.returncode)
