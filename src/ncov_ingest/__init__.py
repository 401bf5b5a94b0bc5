"""SARS-CoV-2 metadata and sequence ingest pipeline.

This package fetches provider records, normalizes them, assigns clades to new
sequences, flags quality issues and publishes the results to object storage.
"""

from .changes import ArtifactChanges, ChangeNotifier, RecordChangeNotifier, compare_fasta, compare_tables
from .config import Destination, DestinationKind, IngestConfig, resolve_destination
from .enrichment import CladeAssigner, IncrementalCladeEnricher, NextcladeAssigner
from .errors import (
    CommandError,
    IngestError,
    LocationResolutionError,
    NotificationError,
    ObjectNotFoundError,
    StageError,
)
from .models import Artifacts
from .pipeline import IngestPipeline, IngestRunReport, Stage, build_notifier, build_pipeline
from .quality import LocationHierarchy, QualityGate, ValidationRule, build_default_rules

__all__ = [
    "ArtifactChanges",
    "Artifacts",
    "ChangeNotifier",
    "CladeAssigner",
    "CommandError",
    "Destination",
    "DestinationKind",
    "IncrementalCladeEnricher",
    "IngestConfig",
    "IngestError",
    "IngestPipeline",
    "IngestRunReport",
    "LocationHierarchy",
    "LocationResolutionError",
    "NextcladeAssigner",
    "NotificationError",
    "ObjectNotFoundError",
    "QualityGate",
    "RecordChangeNotifier",
    "Stage",
    "StageError",
    "ValidationRule",
    "build_default_rules",
    "build_notifier",
    "build_pipeline",
    "compare_fasta",
    "compare_tables",
    "resolve_destination",
]
