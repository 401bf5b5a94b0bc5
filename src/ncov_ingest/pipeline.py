"""Composable ingest pipeline orchestrator."""

from __future__ import annotations

import logging
import tempfile
from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path

from ncov_ingest.changes import ArtifactChanges, ChangeNotifier, RecordChangeNotifier
from ncov_ingest.config import Destination, IngestConfig, join_url
from ncov_ingest.enrichment import (
    CladeAssigner,
    CladeEnrichmentReport,
    IncrementalCladeEnricher,
    NextcladeAssigner,
)
from ncov_ingest.errors import ObjectNotFoundError, StageError
from ncov_ingest.models import CLADE_TABLE, PUBLISHED_ARTIFACTS, RAW_RECORDS, Artifacts
from ncov_ingest.notifiers import LoggingNotifier, Notifier, SlackNotifier
from ncov_ingest.publishers import ObjectStorePublisher
from ncov_ingest.quality import LocationHierarchy, QualityGate, build_default_rules
from ncov_ingest.sources import CommandRecordSource, RecordSource, SnapshotRecordSource
from ncov_ingest.storage import ObjectStore, build_object_store
from ncov_ingest.transform import GisaidTransformer, RecordTransformer

logger = logging.getLogger("ncov_ingest.pipeline")


@dataclass
class IngestRunReport:
    """Execution summary for a pipeline run."""

    destination: str
    kind: str
    fetched: bool = False
    new_records: int | None = None
    records_read: int = 0
    records_written: int = 0
    records_rejected: int = 0
    annotations: int = 0
    clades: CladeEnrichmentReport | None = None
    flagged_rows: int = 0
    changes: list[ArtifactChanges] = field(default_factory=list)
    published: list[str] = field(default_factory=list)
    stages: list[str] = field(default_factory=list)

    def to_payload(self) -> dict[str, object]:
        return {
            "destination": self.destination,
            "kind": self.kind,
            "fetched": self.fetched,
            "new_records": self.new_records,
            "records_read": self.records_read,
            "records_written": self.records_written,
            "records_rejected": self.records_rejected,
            "annotations": self.annotations,
            "clades_assigned": self.clades.assigned if self.clades else 0,
            "flagged_rows": self.flagged_rows,
            "changed_artifacts": [item.name for item in self.changes if item.has_changes],
            "published": self.published,
        }


@dataclass
class IngestContext:
    """State handed from stage to stage within one run."""

    config: IngestConfig
    destination: Destination
    artifacts: Artifacts
    scratch: Path
    report: IngestRunReport


class Stage(ABC):
    """One step of the pipeline; raises ``StageError`` to abort the run."""

    name: str

    @abstractmethod
    def run(self, context: IngestContext) -> None:
        """Advance the run, reading and writing ``context.artifacts``."""


class SourceStage(Stage):
    name = "source"

    def __init__(self, source: RecordSource, *, record_changes: RecordChangeNotifier | None = None) -> None:
        self.source = source
        self.record_changes = record_changes

    def run(self, context: IngestContext) -> None:
        records = self.source.fetch(context.artifacts.raw_records)
        context.report.fetched = self.source.fresh
        if self.source.fresh and context.destination.production and self.record_changes is not None:
            context.report.new_records = self.record_changes.run(records, context.scratch)


class TransformStage(Stage):
    name = "transform"

    def __init__(self, transformer: RecordTransformer) -> None:
        self.transformer = transformer

    def run(self, context: IngestContext) -> None:
        result = self.transformer.transform(context.artifacts.raw_records, context.artifacts)
        context.report.records_read = result.records_read
        context.report.records_written = result.records_written
        context.report.records_rejected = result.records_rejected
        context.report.annotations = len(result.annotations)


class CladeEnrichmentStage(Stage):
    name = "clades"

    def __init__(self, enricher: IncrementalCladeEnricher, *, store: ObjectStore, previous_url: str) -> None:
        self.enricher = enricher
        self.store = store
        self.previous_url = previous_url

    def run(self, context: IngestContext) -> None:
        artifacts = context.artifacts
        try:
            self.store.download(self.previous_url, artifacts.clade_table)
        except ObjectNotFoundError:
            logger.warning("No previous clade table at %s; starting from empty", self.previous_url)

        context.report.clades = self.enricher.run(
            sequences=artifacts.sequences,
            clade_table=artifacts.clade_table,
            metadata=artifacts.metadata,
            scratch=context.scratch,
        )


class QualityGateStage(Stage):
    name = "quality"

    def __init__(self, gate: QualityGate) -> None:
        self.gate = gate

    def run(self, context: IngestContext) -> None:
        artifacts = context.artifacts
        self.gate.hierarchy.write(artifacts.location_hierarchy)
        additions = self.gate.hierarchy.additions()
        if additions:
            logger.info("Location hierarchy has %d local additions", len(additions))

        report = self.gate.run(artifacts.metadata, artifacts.flagged_metadata)
        context.report.flagged_rows = len(report.flagged)


class ChangeNotificationStage(Stage):
    name = "changes"

    def __init__(self, change_notifier: ChangeNotifier) -> None:
        self.change_notifier = change_notifier

    def run(self, context: IngestContext) -> None:
        if not context.destination.production:
            logger.info("Skipping change notifications for %s run", context.destination.kind.value)
            return
        context.report.changes = self.change_notifier.run(context.artifacts, context.scratch)


class PublishStage(Stage):
    name = "publish"

    def __init__(self, publisher: ObjectStorePublisher, names: Sequence[str] = PUBLISHED_ARTIFACTS) -> None:
        self.publisher = publisher
        self.names = tuple(names)

    def run(self, context: IngestContext) -> None:
        # A fresh fetch replaces the stored snapshot only once everything else passed.
        names = [RAW_RECORDS, *self.names] if context.report.fetched else list(self.names)
        self.publisher.publish(context.artifacts, names, context.destination)
        context.report.published.extend(names)


class IngestPipeline:
    """Run stages in order inside a scratch directory.

    The first failing stage aborts the run. The scratch directory is removed
    on every exit path, including interrupts.
    """

    def __init__(
        self,
        *,
        config: IngestConfig,
        destination: Destination,
        stages: Sequence[Stage],
        workdir: str | Path | None = None,
    ) -> None:
        self.config = config
        self.destination = destination
        self.stages = list(stages)
        self.workdir = workdir

    def run(self) -> IngestRunReport:
        report = IngestRunReport(destination=self.destination.prefix, kind=self.destination.kind.value)
        logger.info("Publishing to %s (%s)", self.destination.prefix, self.destination.kind.value)

        with tempfile.TemporaryDirectory(prefix="ncov_ingest_", dir=self.workdir) as scratch_dir:
            scratch = Path(scratch_dir)
            data = scratch / "data"
            work = scratch / "work"
            data.mkdir()
            work.mkdir()

            context = IngestContext(
                config=self.config,
                destination=self.destination,
                artifacts=Artifacts(root=data),
                scratch=work,
                report=report,
            )

            for stage in self.stages:
                logger.info("Stage: %s", stage.name)
                try:
                    stage.run(context)
                except StageError as exc:
                    if exc.stage is None:
                        exc.stage = stage.name
                    logger.error("Stage %s failed: %s", stage.name, exc)
                    raise
                report.stages.append(stage.name)

        return report


def build_notifier(config: IngestConfig) -> Notifier:
    if config.slack_token and config.slack_channels:
        return SlackNotifier(token=config.slack_token, channels=config.slack_channels)
    return LoggingNotifier()


def build_pipeline(
    config: IngestConfig,
    destination: Destination,
    *,
    fetch: bool,
    store: ObjectStore | None = None,
    notifier: Notifier | None = None,
    assigner: CladeAssigner | None = None,
    source: RecordSource | None = None,
    transformer: RecordTransformer | None = None,
    workdir: str | Path | None = None,
) -> IngestPipeline:
    """Compose the standard stage sequence; any collaborator can be replaced."""

    store = store or build_object_store()
    notifier = notifier or build_notifier(config)
    publisher = ObjectStorePublisher(store=store, notifier=notifier)

    if source is None:
        if fetch:
            source = CommandRecordSource(config.fetch_command)
        else:
            source = SnapshotRecordSource(store=store, url=destination.key_for(RAW_RECORDS))

    hierarchy = LocationHierarchy.load(config.location_hierarchy_path, config.location_additions_path)
    gate = QualityGate(hierarchy, build_default_rules(min_sequence_length=config.min_sequence_length))

    stages: list[Stage] = [
        SourceStage(
            source,
            record_changes=RecordChangeNotifier(
                store=store,
                notifier=notifier,
                baseline_url=join_url(config.source_root, f"{RAW_RECORDS}.gz"),
            ),
        ),
        TransformStage(transformer or GisaidTransformer()),
        CladeEnrichmentStage(
            IncrementalCladeEnricher(
                assigner or NextcladeAssigner(config.nextclade_command),
                clade_columns=config.clade_columns,
            ),
            store=store,
            previous_url=join_url(config.source_root, f"{CLADE_TABLE}.gz"),
        ),
        QualityGateStage(gate),
        ChangeNotificationStage(
            ChangeNotifier(store=store, notifier=notifier, baseline_root=config.source_root)
        ),
        PublishStage(publisher),
    ]
    return IngestPipeline(config=config, destination=destination, stages=stages, workdir=workdir)
