"""Amazon S3 object store backend."""

from __future__ import annotations

import logging
import tempfile
from pathlib import Path
from typing import Any

import boto3
from botocore.exceptions import ClientError

from ncov_ingest.errors import ObjectNotFoundError
from ncov_ingest.storage.base import ObjectStore, decompress_into, gzip_file

logger = logging.getLogger("ncov_ingest.storage")

_MISSING_CODES = {"404", "NoSuchKey", "NotFound"}


def parse_s3_url(url: str) -> tuple[str, str]:
    """Split ``s3://bucket/key`` into bucket and key."""

    if not url.startswith("s3://"):
        raise ValueError(f"Not an S3 URL: {url}")

    bucket, _, key = url[len("s3://"):].partition("/")
    if not bucket or not key:
        raise ValueError(f"S3 URL must include bucket and key: {url}")
    return bucket, key


class S3ObjectStore(ObjectStore):
    """Store artifacts in S3 with gzip content encoding."""

    def __init__(self, client: Any | None = None) -> None:
        self._client = client

    @property
    def client(self) -> Any:
        # Created lazily so skipped runs never touch AWS.
        if self._client is None:
            self._client = boto3.client("s3")
        return self._client

    def download(self, url: str, target: str | Path) -> Path:
        bucket, key = parse_s3_url(url)
        target_path = Path(target)
        target_path.parent.mkdir(parents=True, exist_ok=True)

        with tempfile.NamedTemporaryFile(
            dir=target_path.parent, prefix=".download_", delete=False
        ) as handle:
            raw_path = Path(handle.name)

        try:
            try:
                self.client.download_file(bucket, key, str(raw_path))
            except ClientError as exc:
                if _error_code(exc) in _MISSING_CODES:
                    raise ObjectNotFoundError(f"No object at {url}") from exc
                raise

            logger.info("Downloaded %s", url)
            return decompress_into(raw_path, target_path)
        finally:
            raw_path.unlink(missing_ok=True)

    def upload(self, source: str | Path, url: str) -> None:
        bucket, key = parse_s3_url(url)
        source_path = Path(source)

        with tempfile.TemporaryDirectory(prefix="ncov_ingest_upload_") as scratch:
            compressed = gzip_file(source_path, Path(scratch) / f"{source_path.name}.gz")
            self.client.upload_file(
                str(compressed),
                bucket,
                key,
                ExtraArgs={"ContentEncoding": "gzip", "ContentType": _content_type(source_path)},
            )
        logger.info("Uploaded %s to %s", source_path, url)

    def exists(self, url: str) -> bool:
        bucket, key = parse_s3_url(url)
        try:
            self.client.head_object(Bucket=bucket, Key=key)
        except ClientError as exc:
            if _error_code(exc) in _MISSING_CODES:
                return False
            raise
        return True


def _error_code(exc: ClientError) -> str:
    return str(exc.response.get("Error", {}).get("Code", ""))


def _content_type(path: Path) -> str:
    name = path.name.lower()
    if name.endswith(".tsv"):
        return "text/tab-separated-values"
    if name.endswith(".ndjson"):
        return "application/x-ndjson"
    return "text/plain"
