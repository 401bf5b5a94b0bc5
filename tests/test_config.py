import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT / "src"))

from ncov_ingest.config import (  # noqa: E402
    DEFAULT_SOURCE_ROOT,
    DestinationKind,
    IngestConfig,
    resolve_destination,
)


def test_from_env_defaults_destination_to_source() -> None:
    config = IngestConfig.from_env({})

    assert config.source_root == DEFAULT_SOURCE_ROOT
    assert config.destination_root == DEFAULT_SOURCE_ROOT
    assert config.github_ref is None
    assert config.slack_channels == ()


def test_from_env_reads_overrides() -> None:
    config = IngestConfig.from_env(
        {
            "S3_SRC": "s3://bucket/",
            "S3_DST": "s3://other",
            "GITHUB_REF": "refs/heads/master",
            "SLACK_TOKEN": "xoxb-1",
            "SLACK_CHANNELS": "ncov-updates, ncov-alerts",
            "NCOV_INGEST_FETCH_COMMAND": "./bin/fetch --since '2021-01-01'",
        }
    )

    assert config.source_root == "s3://bucket"
    assert config.destination_root == "s3://other"
    assert config.slack_channels == ("ncov-updates", "ncov-alerts")
    assert config.fetch_command == ("./bin/fetch", "--since", "2021-01-01")


def test_empty_github_ref_counts_as_absent() -> None:
    config = IngestConfig.from_env({"GITHUB_REF": "  "})

    destination = resolve_destination(config)

    assert config.github_ref is None
    assert destination is not None
    assert destination.kind is DestinationKind.TMP


def test_production_ref_publishes_to_root_loudly() -> None:
    config = IngestConfig.from_env({"S3_SRC": "s3://bucket", "GITHUB_REF": "refs/heads/master"})

    destination = resolve_destination(config)

    assert destination is not None
    assert destination.prefix == "s3://bucket"
    assert destination.production
    assert not destination.silent
    assert destination.key_for("metadata.tsv") == "s3://bucket/metadata.tsv.gz"


def test_feature_branch_publishes_silently_under_branch_prefix() -> None:
    config = IngestConfig.from_env({"S3_SRC": "s3://bucket", "GITHUB_REF": "refs/heads/feature/x"})

    destination = resolve_destination(config)

    assert destination is not None
    assert destination.prefix == "s3://bucket/branch/feature/x"
    assert destination.kind is DestinationKind.BRANCH
    assert destination.silent
    assert not destination.production


def test_local_run_publishes_to_tmp() -> None:
    config = IngestConfig.from_env({"S3_SRC": "s3://bucket", "S3_DST": "s3://scratch"})

    destination = resolve_destination(config)

    assert destination is not None
    assert destination.prefix == "s3://scratch/tmp"
    assert destination.silent


def test_other_refs_are_skipped() -> None:
    for ref in ("refs/tags/v1.0", "refs/pull/12/merge", "refs/heads/"):
        config = IngestConfig.from_env({"GITHUB_REF": ref})
        assert resolve_destination(config) is None


def test_production_ref_is_configurable() -> None:
    config = IngestConfig.from_env(
        {"GITHUB_REF": "refs/heads/main", "NCOV_INGEST_PRODUCTION_REF": "refs/heads/main"}
    )

    destination = resolve_destination(config)

    assert destination is not None
    assert destination.production
