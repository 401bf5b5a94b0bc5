"""Record source that reuses a previously uploaded snapshot."""

from __future__ import annotations

import logging
from pathlib import Path

from ncov_ingest.sources.base import RecordSource
from ncov_ingest.storage.base import ObjectStore

logger = logging.getLogger("ncov_ingest.sources")


class SnapshotRecordSource(RecordSource):
    """Download the record stream from object storage."""

    name = "snapshot"
    fresh = False

    def __init__(self, *, store: ObjectStore, url: str) -> None:
        self.store = store
        self.url = url

    def fetch(self, target: Path) -> Path:
        logger.info("Reusing snapshot %s", self.url)
        return self.store.download(self.url, target)
