import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT / "tests"))
sys.path.insert(0, str(ROOT / "src"))

from fakes import FakeCladeAssigner  # noqa: E402
from ncov_ingest.enrichment import IncrementalCladeEnricher, NextcladeAssigner  # noqa: E402
from ncov_ingest.errors import CommandError  # noqa: E402
from ncov_ingest.fasta import read_tsv, write_fasta  # noqa: E402


def _setup(tmp_path: Path, ids: list[str], clade_rows: list[str] | None) -> dict[str, Path]:
    sequences = tmp_path / "sequences.fasta"
    write_fasta(sequences, [(identifier, "ACGT") for identifier in ids])

    metadata = tmp_path / "metadata.tsv"
    metadata.write_text(
        "strain\tgisaid_epi_isl\n"
        + "".join(f"{identifier}\tEPI_{index}\n" for index, identifier in enumerate(ids))
    )

    clade_table = tmp_path / "nextclade.tsv"
    if clade_rows is not None:
        clade_table.write_text("seqName\tclade\tqc.overallStatus\n" + "".join(f"{row}\n" for row in clade_rows))

    scratch = tmp_path / "scratch"
    scratch.mkdir()
    return {"sequences": sequences, "metadata": metadata, "clade_table": clade_table, "scratch": scratch}


def test_only_unassigned_sequences_reach_the_assigner(tmp_path: Path) -> None:
    paths = _setup(tmp_path, ["A", "B", "C"], ["A\t20A\tmediocre"])
    original_first_row = paths["clade_table"].read_text().splitlines()[1]
    assigner = FakeCladeAssigner({"B": "21J", "C": "21K"})

    report = IncrementalCladeEnricher(assigner).run(**paths)

    assert assigner.calls == [["B", "C"]]
    assert report.unassigned == 2
    assert report.assigned == 2

    lines = paths["clade_table"].read_text().splitlines()
    assert lines[1] == original_first_row
    assert [line.split("\t")[0] for line in lines[1:]] == ["A", "B", "C"]


def test_second_run_leaves_clade_table_byte_identical(tmp_path: Path) -> None:
    paths = _setup(tmp_path, ["A", "B"], ["A\t20A\tgood"])
    assigner = FakeCladeAssigner()
    enricher = IncrementalCladeEnricher(assigner)

    enricher.run(**paths)
    after_first = paths["clade_table"].read_bytes()
    report = enricher.run(**paths)

    assert paths["clade_table"].read_bytes() == after_first
    assert report.unassigned == 0
    assert report.assigned == 0
    assert assigner.calls == [["B"]]


def test_empty_unassigned_set_writes_empty_fasta_without_calling_tool(tmp_path: Path) -> None:
    paths = _setup(tmp_path, ["A"], ["A\t20A\tgood"])
    assigner = FakeCladeAssigner()

    IncrementalCladeEnricher(assigner).run(**paths)

    assert assigner.calls == []
    assert (paths["scratch"] / "unassigned.fasta").read_text() == ""


def test_missing_clade_table_is_treated_as_empty(tmp_path: Path) -> None:
    paths = _setup(tmp_path, ["A", "B"], None)
    assigner = FakeCladeAssigner()

    report = IncrementalCladeEnricher(assigner).run(**paths)

    assert assigner.calls == [["A", "B"]]
    assert report.assigned == 2
    assert paths["clade_table"].read_text().splitlines()[0] == "seqName\tclade\tqc.overallStatus"


def test_appended_rows_follow_existing_column_order(tmp_path: Path) -> None:
    paths = _setup(tmp_path, ["A", "B"], None)
    paths["clade_table"].write_text("clade\tseqName\nA1\tA")

    IncrementalCladeEnricher(FakeCladeAssigner({"B": "21J"})).run(**paths)

    assert paths["clade_table"].read_text() == "clade\tseqName\nA1\tA\n21J\tB\n"


def test_merge_keeps_rows_without_assignment(tmp_path: Path) -> None:
    paths = _setup(tmp_path, ["A", "B"], ["A\t20A\tgood"])
    paths["sequences"].write_text(">A\nACGT\n")

    report = IncrementalCladeEnricher(FakeCladeAssigner()).run(**paths)

    metadata = read_tsv(paths["metadata"])
    assert list(metadata["strain"]) == ["A", "B"]
    assert list(metadata["clade"]) == ["20A", ""]
    assert report.merged == 1


def test_assigner_failure_propagates_and_leaves_table_untouched(tmp_path: Path) -> None:
    paths = _setup(tmp_path, ["A", "B"], ["A\t20A\tgood"])
    before = paths["clade_table"].read_bytes()

    with pytest.raises(CommandError):
        IncrementalCladeEnricher(FakeCladeAssigner(fail=True)).run(**paths)

    assert paths["clade_table"].read_bytes() == before


def test_nextclade_assigner_builds_command(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    seen: list[list[str]] = []
    monkeypatch.setattr(
        "ncov_ingest.enrichment.run_command",
        lambda command, **_: seen.append(list(command)),
    )

    NextcladeAssigner(("nextclade", "run", "--input-dataset", "ds")).assign(
        tmp_path / "in.fasta", tmp_path / "out.tsv"
    )

    assert seen == [
        [
            "nextclade",
            "run",
            "--input-dataset",
            "ds",
            "--output-tsv",
            str(tmp_path / "out.tsv"),
            str(tmp_path / "in.fasta"),
        ]
    ]
