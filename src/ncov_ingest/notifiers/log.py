"""Notifier that writes messages to the run log."""

from __future__ import annotations

import logging
from pathlib import Path

from ncov_ingest.notifiers.base import Notifier

logger = logging.getLogger("ncov_ingest.notify")


class LoggingNotifier(Notifier):
    """Used when no Slack credentials are configured."""

    def post(self, text: str) -> None:
        logger.info("Notification: %s", text)

    def upload_file(self, path: str | Path, *, title: str) -> None:
        logger.info("Notification attachment %r: %s", title, path)
