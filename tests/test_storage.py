import gzip
import sys
from pathlib import Path

import pytest
from botocore.exceptions import ClientError

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT / "src"))

from ncov_ingest.errors import ObjectNotFoundError  # noqa: E402
from ncov_ingest.storage import (  # noqa: E402
    LocalObjectStore,
    S3ObjectStore,
    SchemeRoutingObjectStore,
    parse_s3_url,
)


def test_local_store_round_trips_through_gzip(tmp_path: Path) -> None:
    source = tmp_path / "metadata.tsv"
    source.write_text("strain\nA\n")
    store = LocalObjectStore()
    url = f"file://{tmp_path}/bucket/metadata.tsv.gz"

    store.upload(source, url)

    stored = tmp_path / "bucket" / "metadata.tsv.gz"
    assert gzip.decompress(stored.read_bytes()) == b"strain\nA\n"
    assert store.exists(url)
    assert store.download(url, tmp_path / "out.tsv").read_text() == "strain\nA\n"


def test_local_store_tolerates_uncompressed_objects(tmp_path: Path) -> None:
    stored = tmp_path / "bucket" / "sequences.fasta.gz"
    stored.parent.mkdir()
    stored.write_text(">A\nACGT\n")

    result = LocalObjectStore().download(str(stored), tmp_path / "sequences.fasta")

    assert result.read_text() == ">A\nACGT\n"


def test_local_store_missing_object(tmp_path: Path) -> None:
    with pytest.raises(ObjectNotFoundError):
        LocalObjectStore().download(str(tmp_path / "nope.gz"), tmp_path / "out")


def test_parse_s3_url() -> None:
    assert parse_s3_url("s3://bucket/branch/x/metadata.tsv.gz") == ("bucket", "branch/x/metadata.tsv.gz")
    with pytest.raises(ValueError):
        parse_s3_url("s3://bucket")


class _FakeS3Client:
    def __init__(self, objects: dict[tuple[str, str], bytes] | None = None) -> None:
        self.objects = dict(objects or {})
        self.extra_args: dict[tuple[str, str], dict[str, str]] = {}

    def download_file(self, bucket, key, filename):
        if (bucket, key) not in self.objects:
            raise ClientError({"Error": {"Code": "404", "Message": "Not Found"}}, "HeadObject")
        Path(filename).write_bytes(self.objects[(bucket, key)])

    def upload_file(self, filename, bucket, key, ExtraArgs=None):
        self.objects[(bucket, key)] = Path(filename).read_bytes()
        self.extra_args[(bucket, key)] = ExtraArgs or {}

    def head_object(self, Bucket, Key):
        if (Bucket, Key) not in self.objects:
            raise ClientError({"Error": {"Code": "404", "Message": "Not Found"}}, "HeadObject")
        return {}


def test_s3_store_uploads_gzip_with_content_encoding(tmp_path: Path) -> None:
    source = tmp_path / "metadata.tsv"
    source.write_text("strain\nA\n")
    client = _FakeS3Client()
    store = S3ObjectStore(client=client)

    store.upload(source, "s3://bucket/tmp/metadata.tsv.gz")

    assert gzip.decompress(client.objects[("bucket", "tmp/metadata.tsv.gz")]) == b"strain\nA\n"
    assert client.extra_args[("bucket", "tmp/metadata.tsv.gz")]["ContentEncoding"] == "gzip"
    assert store.exists("s3://bucket/tmp/metadata.tsv.gz")
    assert not store.exists("s3://bucket/tmp/other.tsv.gz")


def test_s3_store_download_decompresses_and_maps_missing(tmp_path: Path) -> None:
    client = _FakeS3Client({("bucket", "nextclade.tsv.gz"): gzip.compress(b"seqName\tclade\n")})
    store = S3ObjectStore(client=client)

    result = store.download("s3://bucket/nextclade.tsv.gz", tmp_path / "nextclade.tsv")

    assert result.read_text() == "seqName\tclade\n"
    assert [path.name for path in tmp_path.iterdir()] == ["nextclade.tsv"]

    with pytest.raises(ObjectNotFoundError):
        store.download("s3://bucket/missing.tsv.gz", tmp_path / "missing.tsv")


def test_routing_store_picks_backend_per_url(tmp_path: Path) -> None:
    client = _FakeS3Client({("bucket", "nextclade.tsv.gz"): gzip.compress(b"seqName\tclade\n")})
    store = SchemeRoutingObjectStore(s3=S3ObjectStore(client=client))
    source = tmp_path / "metadata.tsv"
    source.write_text("strain\nA\n")

    previous = store.download("s3://bucket/nextclade.tsv.gz", tmp_path / "nextclade.tsv")
    store.upload(source, str(tmp_path / "out" / "metadata.tsv.gz"))

    assert previous.read_text() == "seqName\tclade\n"
    assert gzip.decompress((tmp_path / "out" / "metadata.tsv.gz").read_bytes()) == b"strain\nA\n"
    assert list(client.objects) == [("bucket", "nextclade.tsv.gz")]
    assert store.exists(str(tmp_path / "out" / "metadata.tsv.gz"))
    assert not store.exists("s3://bucket/metadata.tsv.gz")
