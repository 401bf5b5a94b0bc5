"""Object storage backends for ingest artifacts."""

from .base import ObjectStore, decompress_into, gzip_file, open_maybe_gzip
from .local import LocalObjectStore
from .routing import SchemeRoutingObjectStore
from .s3 import S3ObjectStore, parse_s3_url


def build_object_store() -> ObjectStore:
    """Return a store that serves both ``s3://`` URLs and local paths."""

    return SchemeRoutingObjectStore()


__all__ = [
    "ObjectStore",
    "LocalObjectStore",
    "S3ObjectStore",
    "SchemeRoutingObjectStore",
    "build_object_store",
    "decompress_into",
    "gzip_file",
    "open_maybe_gzip",
    "parse_s3_url",
]
