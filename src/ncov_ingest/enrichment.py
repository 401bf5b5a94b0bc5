"""Incremental clade assignment for new sequences."""

from __future__ import annotations

import csv
import logging
from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from ncov_ingest.commands import run_command
from ncov_ingest.errors import StageError
from ncov_ingest.fasta import iter_fasta, read_tsv, write_fasta, write_tsv
from ncov_ingest.models import CLADE_KEY, STRAIN

logger = logging.getLogger("ncov_ingest.enrichment")


@dataclass(frozen=True)
class CladeEnrichmentReport:
    """Counts from one enrichment pass."""

    unassigned: int
    assigned: int
    merged: int


class CladeAssigner(ABC):
    """Assigns clades to the sequences of a FASTA file."""

    @abstractmethod
    def assign(self, fasta_path: Path, output_tsv: Path) -> None:
        """Write one row per input sequence to ``output_tsv``."""


class NextcladeAssigner(CladeAssigner):
    """Run the nextclade CLI on a FASTA file.

    ``command`` carries everything up to the output options, for example
    ``("nextclade", "run", "--input-dataset", "data/sars-cov-2")``.
    """

    def __init__(self, command: Sequence[str] = ("nextclade", "run")) -> None:
        if not command:
            raise ValueError("Nextclade command cannot be empty")
        self.command = tuple(command)

    def assign(self, fasta_path: Path, output_tsv: Path) -> None:
        run_command([*self.command, "--output-tsv", str(output_tsv), str(fasta_path)])


class IncrementalCladeEnricher:
    """Assign clades only to sequences missing from the clade table.

    The clade table is append-only: existing rows keep their bytes and order,
    and an identifier already present is never submitted to the assigner.
    """

    def __init__(
        self,
        assigner: CladeAssigner,
        *,
        clade_columns: Sequence[str] = ("clade",),
        key_column: str = CLADE_KEY,
    ) -> None:
        self.assigner = assigner
        self.clade_columns = tuple(clade_columns)
        self.key_column = key_column

    def run(
        self,
        *,
        sequences: Path,
        clade_table: Path,
        metadata: Path,
        scratch: Path,
    ) -> CladeEnrichmentReport:
        known = self.assigned_ids(clade_table)
        unassigned_path = scratch / "unassigned.fasta"
        unassigned = self.write_unassigned(sequences, known, unassigned_path)

        assigned = 0
        if unassigned:
            logger.info("Assigning clades to %d new sequences", unassigned)
            output = scratch / "clades.new.tsv"
            self.assigner.assign(unassigned_path, output)
            assigned = self.append_rows(clade_table, output, known)
        else:
            logger.info("No new sequences need clade assignment")

        merged = self.merge(metadata, clade_table)
        return CladeEnrichmentReport(unassigned=unassigned, assigned=assigned, merged=merged)

    def assigned_ids(self, clade_table: Path) -> set[str]:
        frame = read_tsv(clade_table, columns=(self.key_column,))
        if self.key_column not in frame.columns:
            raise StageError(
                f"Clade table {clade_table} has no {self.key_column!r} column",
                stage="enrichment",
            )
        return set(frame[self.key_column])

    @staticmethod
    def write_unassigned(sequences: Path, known: set[str], target: Path) -> int:
        """Write sequences whose identifier is not in ``known``; may be empty."""

        return write_fasta(
            target,
            ((identifier, sequence) for identifier, sequence in iter_fasta(sequences) if identifier not in known),
        )

    def append_rows(self, clade_table: Path, new_rows: Path, known: set[str]) -> int:
        """Append assigner output to ``clade_table`` in its existing column order."""

        if not new_rows.exists():
            raise StageError(f"Clade assigner produced no output at {new_rows}", stage="enrichment")

        with new_rows.open("r", newline="") as stream:
            reader = csv.DictReader(stream, delimiter="\t")
            incoming = list(reader)
            incoming_header = list(reader.fieldnames or ())

        header = self._existing_header(clade_table)
        write_header = header is None
        if header is None:
            header = incoming_header
        if self.key_column not in header:
            raise StageError(
                f"Clade assigner output has no {self.key_column!r} column", stage="enrichment"
            )

        needs_newline = not write_header and not self._ends_with_newline(clade_table)
        appended = 0
        with clade_table.open("a", newline="") as stream:
            if needs_newline:
                stream.write("\n")
            writer = csv.DictWriter(
                stream,
                fieldnames=header,
                delimiter="\t",
                lineterminator="\n",
                extrasaction="ignore",
                restval="",
            )
            if write_header:
                writer.writeheader()
            for row in incoming:
                identifier = row.get(self.key_column) or ""
                if not identifier or identifier in known:
                    continue
                writer.writerow(row)
                known.add(identifier)
                appended += 1

        logger.info("Appended %d rows to %s", appended, clade_table.name)
        return appended

    def merge(self, metadata: Path, clade_table: Path) -> int:
        """Left-join clade columns onto the metadata table in place."""

        frame = read_tsv(metadata)
        clades = read_tsv(clade_table, columns=(self.key_column, *self.clade_columns))
        for column in self.clade_columns:
            if column not in clades.columns:
                clades[column] = ""

        clades = (
            clades[[self.key_column, *self.clade_columns]]
            .drop_duplicates(subset=self.key_column, keep="first")
            .rename(columns={self.key_column: STRAIN})
        )
        frame = frame.drop(columns=[column for column in self.clade_columns if column in frame.columns])
        merged = frame.merge(clades, how="left", on=STRAIN).fillna("")
        write_tsv(merged, metadata)

        matched = int(frame[STRAIN].isin(clades[STRAIN]).sum())
        logger.info("Merged clades into %d of %d metadata rows", matched, len(frame))
        return matched

    @staticmethod
    def _existing_header(path: Path) -> list[str] | None:
        if not path.exists() or path.stat().st_size == 0:
            return None
        with path.open("r", newline="") as stream:
            first = stream.readline()
        return next(csv.reader([first.rstrip("\r\n")], delimiter="\t"))

    @staticmethod
    def _ends_with_newline(path: Path) -> bool:
        with path.open("rb") as stream:
            stream.seek(-1, 2)
            return stream.read(1) == b"\n"
