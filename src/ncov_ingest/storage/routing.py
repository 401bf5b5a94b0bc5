"""Object store that picks a backend from each URL's scheme."""

from __future__ import annotations

from pathlib import Path

from ncov_ingest.storage.base import ObjectStore
from ncov_ingest.storage.local import LocalObjectStore
from ncov_ingest.storage.s3 import S3ObjectStore


class SchemeRoutingObjectStore(ObjectStore):
    """Send ``s3://`` URLs to S3 and everything else to the local filesystem.

    Source and destination roots may use different schemes, so the backend is
    chosen per call rather than once per run.
    """

    def __init__(self, *, s3: ObjectStore | None = None, local: ObjectStore | None = None) -> None:
        self.s3 = s3 or S3ObjectStore()
        self.local = local or LocalObjectStore()

    def backend_for(self, url: str) -> ObjectStore:
        if url.startswith("s3://"):
            return self.s3
        return self.local

    def download(self, url: str, target: str | Path) -> Path:
        return self.backend_for(url).download(url, target)

    def upload(self, source: str | Path, url: str) -> None:
        self.backend_for(url).upload(source, url)

    def exists(self, url: str) -> bool:
        return self.backend_for(url).exists(url)
