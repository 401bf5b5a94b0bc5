"""Notification channels for ingest runs."""

from .base import Notifier
from .log import LoggingNotifier
from .slack import SlackNotifier

__all__ = ["Notifier", "LoggingNotifier", "SlackNotifier"]
