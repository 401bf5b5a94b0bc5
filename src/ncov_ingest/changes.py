"""Comparison of outgoing artifacts against their published counterparts."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path

import pandas as pd

from ncov_ingest.config import join_url
from ncov_ingest.errors import ObjectNotFoundError, StageError
from ncov_ingest.fasta import iter_fasta, read_tsv
from ncov_ingest.models import (
    ACCESSION,
    ADDITIONAL_INFO,
    FLAGGED_METADATA,
    LOCATION_HIERARCHY,
    METADATA,
    RAW_RECORDS,
    SEQUENCES,
    STRAIN,
    Artifacts,
)
from ncov_ingest.notifiers.base import Notifier
from ncov_ingest.storage.base import ObjectStore

logger = logging.getLogger("ncov_ingest.changes")

_ROW_KEY = "__row__"


@dataclass
class ArtifactChanges:
    """Keys added, removed or modified between two versions of an artifact."""

    name: str
    added: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)
    changed: list[str] = field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        return bool(self.added or self.removed or self.changed)

    def summary(self, max_listed: int = 20) -> str:
        lines = [
            f"{self.name}: {len(self.added)} added, {len(self.removed)} removed, "
            f"{len(self.changed)} changed"
        ]
        for label, keys in (("Added", self.added), ("Removed", self.removed), ("Changed", self.changed)):
            if not keys:
                continue
            listed = ", ".join(keys[:max_listed])
            more = f" (+{len(keys) - max_listed} more)" if len(keys) > max_listed else ""
            lines.append(f"{label}: {listed}{more}")
        return "\n".join(lines)


@dataclass(frozen=True)
class ComparisonRule:
    """Which artifact to diff and by what key.

    ``key=None`` compares whole rows, so only additions and removals are
    reported.
    """

    artifact: str
    key: str | None
    fasta: bool = False


DEFAULT_COMPARISON_RULES: tuple[ComparisonRule, ...] = (
    ComparisonRule(METADATA, STRAIN),
    ComparisonRule(SEQUENCES, None, fasta=True),
    ComparisonRule(FLAGGED_METADATA, STRAIN),
    ComparisonRule(ADDITIONAL_INFO, ACCESSION),
    ComparisonRule(LOCATION_HIERARCHY, None),
)


def compare_tables(
    name: str,
    current: pd.DataFrame,
    baseline: pd.DataFrame,
    key: str | None,
) -> ArtifactChanges:
    labels: dict[str, str] = {}
    if key is None:
        order = list(current.columns) + [column for column in baseline.columns if column not in current.columns]
        current = _with_row_key(current.reindex(columns=order, fill_value=""), labels)
        baseline = _with_row_key(baseline.reindex(columns=order, fill_value=""), labels)
        key = _ROW_KEY

    for side, frame in (("current", current), ("baseline", baseline)):
        if key not in frame.columns:
            raise StageError(f"{name} {side} table has no {key!r} column", stage="changes")

    columns = sorted((set(current.columns) | set(baseline.columns)) - {key})
    current_indexed = _index(current, key, columns)
    baseline_indexed = _index(baseline, key, columns)

    added = current_indexed.index.difference(baseline_indexed.index, sort=False)
    removed = baseline_indexed.index.difference(current_indexed.index, sort=False)
    common = current_indexed.index.intersection(baseline_indexed.index, sort=False)

    changed: list[str] = []
    if len(common) and columns:
        differs = (current_indexed.loc[common, columns] != baseline_indexed.loc[common, columns]).any(axis=1)
        changed = [str(item) for item in differs[differs].index]

    def label(item: object) -> str:
        return labels.get(str(item), str(item))

    return ArtifactChanges(
        name=name,
        added=[label(item) for item in added],
        removed=[label(item) for item in removed],
        changed=[label(item) for item in changed],
    )


def compare_fasta(name: str, current: Path, baseline: Path | None) -> ArtifactChanges:
    current_records = dict(iter_fasta(current))
    baseline_records = dict(iter_fasta(baseline)) if baseline is not None else {}

    return ArtifactChanges(
        name=name,
        added=[key for key in current_records if key not in baseline_records],
        removed=[key for key in baseline_records if key not in current_records],
        changed=[
            key
            for key, sequence in current_records.items()
            if key in baseline_records and baseline_records[key] != sequence
        ],
    )


def count_records(path: Path) -> int:
    """Number of non-blank lines in an NDJSON file."""

    with path.open("rb") as stream:
        return sum(1 for line in stream if line.strip())


class ChangeNotifier:
    """Post a change summary for every outgoing artifact.

    Baselines are fetched from ``baseline_root``; a missing baseline counts as
    empty. The flagged-annotation list is attached as-is.
    """

    def __init__(
        self,
        *,
        store: ObjectStore,
        notifier: Notifier,
        baseline_root: str,
        rules: Sequence[ComparisonRule] = DEFAULT_COMPARISON_RULES,
        max_listed: int = 20,
    ) -> None:
        self.store = store
        self.notifier = notifier
        self.baseline_root = baseline_root
        self.rules = tuple(rules)
        self.max_listed = max_listed

    def run(self, artifacts: Artifacts, scratch: Path) -> list[ArtifactChanges]:
        results: list[ArtifactChanges] = []
        for rule in self.rules:
            baseline = self.fetch_baseline(rule.artifact, scratch)
            current = artifacts.path(rule.artifact)

            if rule.fasta:
                changes = compare_fasta(rule.artifact, current, baseline)
            else:
                columns = (rule.key,) if rule.key else ()
                changes = compare_tables(
                    rule.artifact,
                    read_tsv(current, columns=columns),
                    read_tsv(baseline, columns=columns) if baseline is not None else _empty(columns),
                    rule.key,
                )

            if changes.has_changes:
                self.notifier.post(changes.summary(self.max_listed))
            else:
                logger.info("%s: no changes", rule.artifact)
            results.append(changes)

        annotations = artifacts.flagged_annotations
        if annotations.exists() and annotations.stat().st_size > 0:
            self.notifier.upload_file(annotations, title="Flagged annotations")

        return results

    def fetch_baseline(self, artifact: str, scratch: Path) -> Path | None:
        url = join_url(self.baseline_root, f"{artifact}.gz")
        try:
            return self.store.download(url, scratch / "baseline" / artifact)
        except ObjectNotFoundError:
            logger.info("No published %s; comparing against an empty baseline", artifact)
            return None


class RecordChangeNotifier:
    """Report how many records a fresh fetch adds over the published snapshot."""

    def __init__(self, *, store: ObjectStore, notifier: Notifier, baseline_url: str) -> None:
        self.store = store
        self.notifier = notifier
        self.baseline_url = baseline_url

    def run(self, records: Path, scratch: Path) -> int:
        try:
            baseline = self.store.download(self.baseline_url, scratch / "baseline" / RAW_RECORDS)
            previous = count_records(baseline)
        except ObjectNotFoundError:
            previous = 0

        current = count_records(records)
        delta = current - previous
        if delta > 0:
            self.notifier.post(f"{delta} new records ({current} total)")
        elif delta == 0:
            self.notifier.post(f"No new records ({current} total)")
        else:
            self.notifier.post(f"{-delta} records removed ({current} total)")
        return delta


def _with_row_key(frame: pd.DataFrame, labels: dict[str, str]) -> pd.DataFrame:
    """Key each row by all of its values, empty levels included."""

    keys: list[str] = []
    for row in frame.itertuples(index=False):
        values = ["" if pd.isna(value) else str(value) for value in row]
        row_key = "\t".join(values)
        # Only trailing empty levels are trimmed from the label.
        while values and not values[-1]:
            values.pop()
        labels[row_key] = " / ".join(values)
        keys.append(row_key)

    keyed = frame.copy()
    keyed[_ROW_KEY] = keys
    return keyed


def _empty(columns: Sequence[str]) -> pd.DataFrame:
    return pd.DataFrame(columns=list(columns), dtype=str)


def _index(frame: pd.DataFrame, key: str, columns: list[str]) -> pd.DataFrame:
    return (
        frame.drop_duplicates(subset=key, keep="first")
        .set_index(key)
        .reindex(columns=columns, fill_value="")
        .astype(str)
    )
