"""Artifact layout shared by the ingest stages."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

RAW_RECORDS = "gisaid.ndjson"
METADATA = "metadata.tsv"
SEQUENCES = "sequences.fasta"
ADDITIONAL_INFO = "additional_info.tsv"
CLADE_TABLE = "nextclade.tsv"
FLAGGED_METADATA = "flagged_metadata.txt"
FLAGGED_ANNOTATIONS = "flagged_annotations.txt"
LOCATION_HIERARCHY = "location_hierarchy.tsv"

STRAIN = "strain"
ACCESSION = "gisaid_epi_isl"
CLADE_KEY = "seqName"

METADATA_COLUMNS: tuple[str, ...] = (
    "strain",
    "gisaid_epi_isl",
    "date",
    "region",
    "country",
    "division",
    "location",
    "host",
    "length",
    "date_submitted",
)

ADDITIONAL_INFO_COLUMNS: tuple[str, ...] = (
    "gisaid_epi_isl",
    "strain",
    "additional_host_info",
    "additional_location_info",
)

LOCATION_COLUMNS: tuple[str, ...] = ("region", "country", "division", "location")

FLAGGED_METADATA_COLUMNS: tuple[str, ...] = ("strain", "gisaid_epi_isl", "reason")


@dataclass(frozen=True)
class Artifacts:
    """Local paths of every file a run reads or writes."""

    root: Path

    def path(self, name: str) -> Path:
        return self.root / name

    @property
    def raw_records(self) -> Path:
        return self.root / RAW_RECORDS

    @property
    def metadata(self) -> Path:
        return self.root / METADATA

    @property
    def sequences(self) -> Path:
        return self.root / SEQUENCES

    @property
    def additional_info(self) -> Path:
        return self.root / ADDITIONAL_INFO

    @property
    def clade_table(self) -> Path:
        return self.root / CLADE_TABLE

    @property
    def flagged_metadata(self) -> Path:
        return self.root / FLAGGED_METADATA

    @property
    def flagged_annotations(self) -> Path:
        return self.root / FLAGGED_ANNOTATIONS

    @property
    def location_hierarchy(self) -> Path:
        return self.root / LOCATION_HIERARCHY


PUBLISHED_ARTIFACTS: tuple[str, ...] = (
    METADATA,
    SEQUENCES,
    ADDITIONAL_INFO,
    CLADE_TABLE,
    FLAGGED_METADATA,
    LOCATION_HIERARCHY,
)
