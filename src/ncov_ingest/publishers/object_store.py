"""Publisher that uploads compressed artifacts to object storage."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path

from ncov_ingest.config import Destination
from ncov_ingest.models import Artifacts
from ncov_ingest.notifiers.base import Notifier
from ncov_ingest.publishers.base import Publisher
from ncov_ingest.storage.base import ObjectStore

logger = logging.getLogger("ncov_ingest.publish")


class ObjectStorePublisher(Publisher):
    """Upload every artifact; announce uploads unless the run is silent."""

    def __init__(self, *, store: ObjectStore, notifier: Notifier) -> None:
        self.store = store
        self.notifier = notifier

    def publish(self, artifacts: Artifacts, names: Sequence[str], destination: Destination) -> None:
        for name in names:
            self.upload(artifacts.path(name), name, destination)

    def upload(self, path: Path, name: str, destination: Destination) -> None:
        url = destination.key_for(name)
        self.store.upload(path, url)
        logger.info("Published %s to %s", name, url)
        if not destination.silent:
            self.notifier.post(f"Updated {url}")
