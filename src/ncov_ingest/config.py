"""Run configuration and destination routing for ingest pipelines."""

from __future__ import annotations

import dataclasses
import shlex
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Mapping

DEFAULT_SOURCE_ROOT = "s3://nextstrain-ncov-private"
DEFAULT_PRODUCTION_REF = "refs/heads/master"
BRANCH_REF_PREFIX = "refs/heads/"

CONFIG_DIR = Path(__file__).resolve().parents[2] / "config"


class DestinationKind(str, Enum):
    """Which storage area a run publishes into."""

    PRODUCTION = "production"
    BRANCH = "branch"
    TMP = "tmp"


@dataclass(frozen=True)
class Destination:
    """Resolved publication prefix for one run."""

    prefix: str
    kind: DestinationKind
    silent: bool

    @property
    def production(self) -> bool:
        return self.kind is DestinationKind.PRODUCTION

    def key_for(self, artifact: str) -> str:
        """Return the compressed object URL for a local artifact name."""

        return join_url(self.prefix, f"{artifact}.gz")


@dataclass(frozen=True)
class IngestConfig:
    """Explicit configuration for a single ingest run.

    Built once at process start and handed to every stage; nothing downstream
    reads the process environment.
    """

    source_root: str = DEFAULT_SOURCE_ROOT
    destination_root: str = DEFAULT_SOURCE_ROOT
    github_ref: str | None = None
    production_ref: str = DEFAULT_PRODUCTION_REF
    fetch_command: tuple[str, ...] = ("./bin/fetch-from-gisaid",)
    nextclade_command: tuple[str, ...] = ("nextclade", "run")
    slack_token: str | None = None
    slack_channels: tuple[str, ...] = ()
    location_hierarchy_path: Path = CONFIG_DIR / "location_hierarchy.tsv"
    location_additions_path: Path | None = CONFIG_DIR / "location_hierarchy_additions.tsv"
    clade_columns: tuple[str, ...] = ("clade",)
    min_sequence_length: int = 27_000

    @classmethod
    def from_env(cls, environ: Mapping[str, str]) -> "IngestConfig":
        """Build a configuration from an environment mapping."""

        source_root = _clean(environ.get("S3_SRC")) or DEFAULT_SOURCE_ROOT
        destination_root = _clean(environ.get("S3_DST")) or source_root

        kwargs: dict[str, object] = {
            "source_root": source_root.rstrip("/"),
            "destination_root": destination_root.rstrip("/"),
            "github_ref": _clean(environ.get("GITHUB_REF")),
            "slack_token": _clean(environ.get("SLACK_TOKEN")),
            "slack_channels": tuple(
                channel.strip()
                for channel in (environ.get("SLACK_CHANNELS") or "").split(",")
                if channel.strip()
            ),
        }

        fetch_command = _clean(environ.get("NCOV_INGEST_FETCH_COMMAND"))
        if fetch_command:
            kwargs["fetch_command"] = tuple(shlex.split(fetch_command))

        nextclade_command = _clean(environ.get("NCOV_INGEST_NEXTCLADE_COMMAND"))
        if nextclade_command:
            kwargs["nextclade_command"] = tuple(shlex.split(nextclade_command))

        production_ref = _clean(environ.get("NCOV_INGEST_PRODUCTION_REF"))
        if production_ref:
            kwargs["production_ref"] = production_ref

        return cls(**kwargs)  # type: ignore[arg-type]

    def with_overrides(self, **changes: object) -> "IngestConfig":
        """Return a copy with selected fields replaced."""

        return dataclasses.replace(self, **changes)  # type: ignore[arg-type]


def resolve_destination(config: IngestConfig) -> Destination | None:
    """Pick the publication prefix for the triggering ref.

    Returns ``None`` for refs that should not run at all (tags, pull request
    merge refs and so on); callers treat that as a successful no-op.
    """

    ref = config.github_ref
    root = config.destination_root

    if ref == config.production_ref:
        return Destination(prefix=root, kind=DestinationKind.PRODUCTION, silent=False)

    if ref and ref.startswith(BRANCH_REF_PREFIX):
        branch = ref[len(BRANCH_REF_PREFIX):]
        if branch:
            return Destination(
                prefix=join_url(root, "branch", branch),
                kind=DestinationKind.BRANCH,
                silent=True,
            )
        return None

    if not ref:
        return Destination(prefix=join_url(root, "tmp"), kind=DestinationKind.TMP, silent=True)

    return None


def join_url(root: str, *parts: str) -> str:
    cleaned = [root.rstrip("/")]
    cleaned.extend(part.strip("/") for part in parts if part.strip("/"))
    return "/".join(cleaned)


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None
