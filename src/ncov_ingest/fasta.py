"""Minimal FASTA and TSV helpers used across stages."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from pathlib import Path

import pandas as pd


def iter_fasta(path: str | Path) -> Iterator[tuple[str, str]]:
    """Yield ``(identifier, sequence)`` pairs from a FASTA file."""

    identifier: str | None = None
    chunks: list[str] = []
    with Path(path).open("r", newline="") as stream:
        for line in stream:
            line = line.rstrip("\r\n")
            if line.startswith(">"):
                if identifier is not None:
                    yield identifier, "".join(chunks)
                identifier = line[1:].strip()
                chunks = []
            elif identifier is not None:
                chunks.append(line.strip())

    if identifier is not None:
        yield identifier, "".join(chunks)


def write_fasta(path: str | Path, records: Iterable[tuple[str, str]]) -> int:
    """Write records to ``path`` with ``\\n`` endings; return the count."""

    count = 0
    with Path(path).open("w", newline="\n") as stream:
        for identifier, sequence in records:
            stream.write(f">{identifier}\n{sequence}\n")
            count += 1
    return count


def fasta_ids(path: str | Path) -> list[str]:
    return [identifier for identifier, _ in iter_fasta(path)]


def read_tsv(path: str | Path, columns: Iterable[str] = ()) -> pd.DataFrame:
    """Read a TSV as strings; missing or empty files become an empty frame."""

    file_path = Path(path)
    if not file_path.exists() or file_path.stat().st_size == 0:
        return pd.DataFrame(columns=list(columns), dtype=str)

    return pd.read_csv(file_path, sep="\t", dtype=str, keep_default_na=False)


def write_tsv(frame: pd.DataFrame, path: str | Path) -> None:
    frame.to_csv(path, sep="\t", index=False, lineterminator="\n")
