"""Base class for object storage backends."""

from __future__ import annotations

import gzip
import shutil
from abc import ABC, abstractmethod
from pathlib import Path
from typing import IO

GZIP_MAGIC = b"\x1f\x8b"


class ObjectStore(ABC):
    """Reads and writes pipeline artifacts at object URLs.

    Objects are gzip-compressed at the storage boundary; downloads are
    decompressed transparently and tolerate plain (uncompressed) objects.
    """

    @abstractmethod
    def download(self, url: str, target: str | Path) -> Path:
        """Fetch ``url`` into ``target`` as plain text.

        Raises ``ObjectNotFoundError`` when the object does not exist.
        """

    @abstractmethod
    def upload(self, source: str | Path, url: str) -> None:
        """Compress ``source`` and store it at ``url``."""

    @abstractmethod
    def exists(self, url: str) -> bool:
        """Return True if an object is stored at ``url``."""


def is_gzip_file(path: str | Path) -> bool:
    with Path(path).open("rb") as stream:
        return stream.read(2) == GZIP_MAGIC


def open_maybe_gzip(path: str | Path) -> IO[bytes]:
    """Open ``path`` for binary reading, decompressing if it is gzip data."""

    if is_gzip_file(path):
        return gzip.open(path, "rb")
    return Path(path).open("rb")


def decompress_into(source: str | Path, target: str | Path) -> Path:
    """Copy ``source`` to ``target``, gunzipping it on the way if needed."""

    target_path = Path(target)
    target_path.parent.mkdir(parents=True, exist_ok=True)
    with open_maybe_gzip(source) as source_stream:
        with target_path.open("wb") as target_stream:
            shutil.copyfileobj(source_stream, target_stream)
    return target_path


def gzip_file(source: str | Path, target: str | Path) -> Path:
    """Write a gzip-compressed copy of ``source`` to ``target``."""

    target_path = Path(target)
    target_path.parent.mkdir(parents=True, exist_ok=True)
    with Path(source).open("rb") as source_stream:
        with gzip.open(target_path, "wb") as target_stream:
            shutil.copyfileobj(source_stream, target_stream)
    return target_path
