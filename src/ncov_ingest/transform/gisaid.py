"""Transformer for GISAID-style NDJSON record streams."""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any

import pandas as pd

from ncov_ingest.fasta import write_fasta, write_tsv
from ncov_ingest.models import (
    ADDITIONAL_INFO_COLUMNS,
    METADATA_COLUMNS,
    Artifacts,
)
from ncov_ingest.transform.base import RecordTransformer, TransformResult

logger = logging.getLogger("ncov_ingest.transform")

_STRAIN_PREFIX = re.compile(r"^hcov-19/", re.IGNORECASE)
_WHITESPACE = re.compile(r"\s+")
_LOCATION_LEVELS = 4


class GisaidTransformer(RecordTransformer):
    """Normalize provider records into metadata, FASTA and additional info.

    Malformed records are either repaired or dropped, and every such decision
    is reported as one line in the flagged-annotation list.
    """

    name = "gisaid"

    def transform(self, records_path: Path, artifacts: Artifacts) -> TransformResult:
        result = TransformResult()
        metadata_rows: list[dict[str, str]] = []
        additional_rows: list[dict[str, str]] = []
        sequences: list[tuple[str, str]] = []
        seen: dict[str, str] = {}

        with Path(records_path).open("rb") as stream:
            for line_number, line in enumerate(stream, start=1):
                if not line.strip():
                    continue

                result.records_read += 1
                record = self._parse_line(line, line_number, result)
                if record is None:
                    result.records_rejected += 1
                    continue

                strain = self._strain(record.get("covv_virus_name"))
                accession = self._clean(record.get("covv_accession_id"))
                sequence = self._sequence(record.get("sequence"))

                if not strain or not accession:
                    result.annotations.append(
                        f"line {line_number}: missing strain name or accession; record dropped"
                    )
                    result.records_rejected += 1
                    continue

                if not sequence:
                    result.annotations.append(f"{strain} ({accession}): empty sequence; record dropped")
                    result.records_rejected += 1
                    continue

                if strain in seen:
                    result.annotations.append(
                        f"{strain} ({accession}): duplicate of {seen[strain]}; record dropped"
                    )
                    result.records_rejected += 1
                    continue
                seen[strain] = accession

                region, country, division, location = self._location(
                    record.get("covv_location"), strain, result
                )
                metadata_rows.append(
                    {
                        "strain": strain,
                        "gisaid_epi_isl": accession,
                        "date": self._clean(record.get("covv_collection_date")),
                        "region": region,
                        "country": country,
                        "division": division,
                        "location": location,
                        "host": self._clean(record.get("covv_host")),
                        "length": str(len(sequence)),
                        "date_submitted": self._clean(record.get("covv_subm_date")),
                    }
                )
                sequences.append((strain, sequence))

                host_info = self._clean(record.get("covv_add_host_info"))
                location_info = self._clean(record.get("covv_add_location"))
                if host_info or location_info:
                    additional_rows.append(
                        {
                            "gisaid_epi_isl": accession,
                            "strain": strain,
                            "additional_host_info": host_info,
                            "additional_location_info": location_info,
                        }
                    )

        write_tsv(pd.DataFrame(metadata_rows, columns=list(METADATA_COLUMNS)), artifacts.metadata)
        write_tsv(
            pd.DataFrame(additional_rows, columns=list(ADDITIONAL_INFO_COLUMNS)),
            artifacts.additional_info,
        )
        result.records_written = write_fasta(artifacts.sequences, sequences)

        with artifacts.flagged_annotations.open("w", newline="\n") as stream:
            for annotation in result.annotations:
                stream.write(f"{annotation}\n")

        logger.info(
            "Transformed %d records: %d written, %d rejected, %d annotations",
            result.records_read,
            result.records_written,
            result.records_rejected,
            len(result.annotations),
        )
        return result

    @staticmethod
    def _parse_line(line: bytes, line_number: int, result: TransformResult) -> dict[str, Any] | None:
        try:
            text = line.decode("utf-8")
        except UnicodeDecodeError:
            result.annotations.append(f"line {line_number}: invalid UTF-8; record dropped")
            return None

        try:
            record = json.loads(text)
        except json.JSONDecodeError:
            result.annotations.append(f"line {line_number}: malformed JSON; record dropped")
            return None

        if not isinstance(record, dict):
            result.annotations.append(f"line {line_number}: not a JSON object; record dropped")
            return None
        return record

    @staticmethod
    def _clean(value: Any) -> str:
        if value is None:
            return ""
        return _WHITESPACE.sub(" ", str(value)).strip()

    @classmethod
    def _strain(cls, value: Any) -> str:
        cleaned = cls._clean(value)
        return _WHITESPACE.sub("", _STRAIN_PREFIX.sub("", cleaned))

    @staticmethod
    def _sequence(value: Any) -> str:
        if value is None:
            return ""
        return _WHITESPACE.sub("", str(value)).upper()

    @classmethod
    def _location(
        cls,
        value: Any,
        strain: str,
        result: TransformResult,
    ) -> tuple[str, str, str, str]:
        parts = [cls._clean(part) for part in cls._clean(value).split("/")]
        parts = [part for part in parts if part]

        if len(parts) > _LOCATION_LEVELS:
            result.annotations.append(
                f"{strain}: location has {len(parts)} levels; extra levels folded into location"
            )
            parts = parts[: _LOCATION_LEVELS - 1] + [" / ".join(parts[_LOCATION_LEVELS - 1 :])]

        parts.extend([""] * (_LOCATION_LEVELS - len(parts)))
        return parts[0], parts[1], parts[2], parts[3]
