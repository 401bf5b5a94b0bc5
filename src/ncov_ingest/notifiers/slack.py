"""Slack Web API notifier."""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any

import requests

from ncov_ingest.errors import NotificationError
from ncov_ingest.notifiers.base import Notifier

logger = logging.getLogger("ncov_ingest.notify")

SLACK_API_URL = "https://slack.com/api"

_CHANNEL_ID = re.compile(r"^[CGD][A-Z0-9]{8,}$")


class SlackNotifier(Notifier):
    """Post messages and file attachments to one or more Slack channels.

    File uploads use the external upload flow: request an upload URL, send the
    bytes, then complete the upload into each channel. Completing an upload
    requires channel IDs, so configured channel names are resolved once through
    ``conversations.list``.
    """

    def __init__(
        self,
        *,
        token: str,
        channels: tuple[str, ...],
        session: requests.Session | None = None,
        timeout: float = 30.0,
        api_url: str = SLACK_API_URL,
    ) -> None:
        if not channels:
            raise ValueError("SlackNotifier requires at least one channel")

        self.channels = channels
        self._channel_ids: tuple[str, ...] | None = None
        self.timeout = timeout
        self.api_url = api_url.rstrip("/")
        self.session = session or requests.Session()
        self.session.headers.update({"Authorization": f"Bearer {token}"})

    def post(self, text: str) -> None:
        for channel in self.channels:
            self._call("chat.postMessage", json={"channel": channel, "text": text})
        logger.info("Slack: message sent to %s", ", ".join(self.channels))

    def upload_file(self, path: str | Path, *, title: str) -> None:
        file_path = Path(path)
        payload = file_path.read_bytes()
        channel_ids = self.channel_ids()

        ticket = self._call(
            "files.getUploadURLExternal",
            data={"filename": file_path.name, "length": str(len(payload))},
        )
        response = self.session.post(
            ticket["upload_url"],
            files={"file": (file_path.name, payload)},
            timeout=self.timeout,
        )
        response.raise_for_status()

        for channel in channel_ids:
            self._call(
                "files.completeUploadExternal",
                json={
                    "files": [{"id": ticket["file_id"], "title": title}],
                    "channel_id": channel,
                },
            )
        logger.info("Slack: uploaded %s", file_path.name)

    def channel_ids(self) -> tuple[str, ...]:
        if self._channel_ids is None:
            names = {channel.lstrip("#") for channel in self.channels if not _CHANNEL_ID.match(channel)}
            found = self._lookup_channel_ids(names) if names else {}
            missing = sorted(names - found.keys())
            if missing:
                raise NotificationError(f"Slack channels not found: {', '.join(missing)}")
            self._channel_ids = tuple(
                channel if _CHANNEL_ID.match(channel) else found[channel.lstrip("#")]
                for channel in self.channels
            )
        return self._channel_ids

    def _lookup_channel_ids(self, names: set[str]) -> dict[str, str]:
        found: dict[str, str] = {}
        cursor = ""
        while True:
            body = self._call(
                "conversations.list",
                data={
                    "types": "public_channel,private_channel",
                    "exclude_archived": "true",
                    "limit": "1000",
                    "cursor": cursor,
                },
            )
            for channel in body.get("channels", []):
                if channel.get("name") in names:
                    found[channel["name"]] = channel["id"]

            cursor = body.get("response_metadata", {}).get("next_cursor", "")
            if not cursor or found.keys() >= names:
                return found

    def _call(self, method: str, **kwargs: Any) -> dict[str, Any]:
        response = self.session.post(
            f"{self.api_url}/{method}",
            timeout=self.timeout,
            **kwargs,
        )
        response.raise_for_status()
        body = response.json()
        if not body.get("ok"):
            raise NotificationError(f"Slack {method} failed: {body.get('error', 'unknown error')}")
        return body
