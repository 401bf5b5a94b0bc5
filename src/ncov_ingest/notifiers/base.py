"""Notification channel interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path


class Notifier(ABC):
    """Delivers human-readable run updates."""

    @abstractmethod
    def post(self, text: str) -> None:
        """Post a text message."""

    @abstractmethod
    def upload_file(self, path: str | Path, *, title: str) -> None:
        """Attach a local file to the channel."""
