"""Quality checks for transformed metadata."""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path

import pandas as pd

from ncov_ingest.errors import LocationResolutionError
from ncov_ingest.fasta import read_tsv, write_tsv
from ncov_ingest.models import ACCESSION, FLAGGED_METADATA_COLUMNS, LOCATION_COLUMNS, STRAIN

logger = logging.getLogger("ncov_ingest.quality")

Location = tuple[str, str, str, str]

_DATE_RE = re.compile(r"^\d{4}-(\d{2}|XX)-(\d{2}|XX)$")


@dataclass(frozen=True)
class ValidationRule:
    """Soft predicate over one metadata row.

    ``check`` returns a human-readable reason when the row should be flagged
    and ``None`` when it passes.
    """

    name: str
    check: Callable[[Mapping[str, str]], str | None]


@dataclass(frozen=True)
class FlaggedRow:
    strain: str
    accession: str
    reasons: tuple[str, ...]


@dataclass
class QualityReport:
    """Outcome of a quality gate pass."""

    rows: int = 0
    flagged: list[FlaggedRow] = field(default_factory=list)


class LocationHierarchy:
    """Reference of known region/country/division/location combinations.

    A metadata location resolves when its filled levels, read left to right
    without gaps, match a prefix of some reference row.
    """

    def __init__(self, rows: Iterable[Location], additions: Iterable[Location] = ()) -> None:
        self._base = list(dict.fromkeys(self._normalize(row) for row in rows))
        base_set = set(self._base)
        self._added = [
            row
            for row in dict.fromkeys(self._normalize(row) for row in additions)
            if row not in base_set
        ]

        self._prefixes: set[tuple[str, ...]] = set()
        for row in self.rows():
            filled = self._filled(row)
            for depth in range(1, len(filled) + 1):
                self._prefixes.add(filled[:depth])

    @classmethod
    def load(cls, path: str | Path, additions_path: str | Path | None = None) -> "LocationHierarchy":
        rows = cls._read_rows(path)
        additions = cls._read_rows(additions_path) if additions_path is not None else []
        return cls(rows, additions)

    def rows(self) -> list[Location]:
        return [*self._base, *self._added]

    def additions(self) -> list[Location]:
        """Rows contributed by the local additions file."""

        return list(self._added)

    def resolves(self, region: str, country: str, division: str, location: str) -> bool:
        levels = self._normalize((region, country, division, location))
        filled = self._filled(levels)
        if not filled or any(levels[len(filled):]):
            return False
        return filled in self._prefixes

    def write(self, path: str | Path) -> None:
        write_tsv(pd.DataFrame(self.rows(), columns=list(LOCATION_COLUMNS)), path)

    @staticmethod
    def _read_rows(path: str | Path | None) -> list[Location]:
        if path is None or not Path(path).exists():
            return []
        frame = read_tsv(path, columns=LOCATION_COLUMNS)
        for column in LOCATION_COLUMNS:
            if column not in frame.columns:
                frame[column] = ""
        return [tuple(row) for row in frame[list(LOCATION_COLUMNS)].itertuples(index=False)]  # type: ignore[misc]

    @staticmethod
    def _normalize(row: Sequence[str]) -> Location:
        values = [str(value or "").strip() for value in row]
        values.extend([""] * (4 - len(values)))
        return values[0], values[1], values[2], values[3]

    @staticmethod
    def _filled(levels: Sequence[str]) -> tuple[str, ...]:
        filled: list[str] = []
        for value in levels:
            if not value:
                break
            filled.append(value)
        return tuple(filled)


def build_default_rules(*, min_sequence_length: int = 27_000) -> tuple[ValidationRule, ...]:
    """Soft predicates applied to every metadata row."""

    def collection_date(row: Mapping[str, str]) -> str | None:
        value = row.get("date", "")
        if not value:
            return "missing collection date"
        if not _DATE_RE.match(value):
            return f"malformed collection date {value!r}"
        return None

    def date_order(row: Mapping[str, str]) -> str | None:
        collected = _parse_date(row.get("date", ""))
        submitted = _parse_date(row.get("date_submitted", ""))
        if collected and submitted and collected > submitted:
            return "collection date after submission date"
        return None

    def sequence_length(row: Mapping[str, str]) -> str | None:
        try:
            length = int(row.get("length", ""))
        except ValueError:
            return "missing sequence length"
        if length < min_sequence_length:
            return f"sequence length {length} below {min_sequence_length}"
        return None

    def host(row: Mapping[str, str]) -> str | None:
        return None if row.get("host") else "missing host"

    return (
        ValidationRule("collection_date", collection_date),
        ValidationRule("date_order", date_order),
        ValidationRule("sequence_length", sequence_length),
        ValidationRule("host", host),
    )


class QualityGate:
    """Flag soft validation failures and block on unknown locations.

    Flagged rows stay in the metadata and are listed in the flagged-metadata
    report. Rows whose location cannot be resolved abort the run with
    ``LocationResolutionError``.
    """

    def __init__(
        self,
        hierarchy: LocationHierarchy,
        rules: Sequence[ValidationRule] | None = None,
    ) -> None:
        self.hierarchy = hierarchy
        self.rules = tuple(rules) if rules is not None else build_default_rules()

    def run(self, metadata: Path, report_path: Path) -> QualityReport:
        frame = read_tsv(metadata)
        report = QualityReport(rows=len(frame))
        unresolved: list[tuple[str, str]] = []

        for row in frame.to_dict("records"):
            values = {key: str(value) for key, value in row.items()}
            strain = values.get(STRAIN, "")

            reasons = tuple(
                reason for reason in (rule.check(values) for rule in self.rules) if reason
            )
            if reasons:
                report.flagged.append(
                    FlaggedRow(strain=strain, accession=values.get(ACCESSION, ""), reasons=reasons)
                )

            location = tuple(values.get(column, "") for column in LOCATION_COLUMNS)
            if not self.hierarchy.resolves(*location):
                unresolved.append((strain, " / ".join(part for part in location if part) or "<empty>"))

        self.write_report(report.flagged, report_path)
        logger.info("Quality gate: %d of %d rows flagged", len(report.flagged), report.rows)

        if unresolved:
            raise LocationResolutionError(unresolved)
        return report

    @staticmethod
    def write_report(flagged: Sequence[FlaggedRow], path: Path) -> None:
        write_tsv(
            pd.DataFrame(
                [(item.strain, item.accession, "; ".join(item.reasons)) for item in flagged],
                columns=list(FLAGGED_METADATA_COLUMNS),
            ),
            path,
        )


def _parse_date(value: str) -> date | None:
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None
