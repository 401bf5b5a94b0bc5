"""Filesystem-backed object store for local runs."""

from __future__ import annotations

import logging
from pathlib import Path

from ncov_ingest.errors import ObjectNotFoundError
from ncov_ingest.storage.base import ObjectStore, decompress_into, gzip_file

logger = logging.getLogger("ncov_ingest.storage")


class LocalObjectStore(ObjectStore):
    """Treat ``file://`` URLs or plain paths as object keys on local disk."""

    def download(self, url: str, target: str | Path) -> Path:
        path = self._path(url)
        if not path.is_file():
            raise ObjectNotFoundError(f"No object at {url}")

        logger.debug("Copying %s -> %s", path, target)
        return decompress_into(path, target)

    def upload(self, source: str | Path, url: str) -> None:
        path = self._path(url)
        if path.name.endswith(".gz"):
            gzip_file(source, path)
        else:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(Path(source).read_bytes())
        logger.debug("Stored %s at %s", source, path)

    def exists(self, url: str) -> bool:
        return self._path(url).is_file()

    @staticmethod
    def _path(url: str) -> Path:
        if url.startswith("file://"):
            return Path(url[len("file://"):])
        return Path(url)
