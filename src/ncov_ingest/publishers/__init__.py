"""Ingest output publishers."""

from .base import Publisher
from .object_store import ObjectStorePublisher

__all__ = ["Publisher", "ObjectStorePublisher"]
