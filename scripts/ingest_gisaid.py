#!/usr/bin/env python3
"""Ingest provider records, assign clades, check quality and publish."""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
import time
from collections.abc import Mapping, Sequence
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(REPO_ROOT / "src"))

from ncov_ingest import (  # noqa: E402
    CommandError,
    IngestConfig,
    StageError,
    build_pipeline,
    resolve_destination,
)


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description=(
            "Rebuild ingest outputs. Destination is chosen from GITHUB_REF: the "
            "production ref publishes to S3_DST, other branches to "
            "S3_DST/branch/<name>, local runs to S3_DST/tmp."
        )
    )
    parser.add_argument(
        "--fetch",
        action="store_true",
        help="Fetch fresh records from the provider instead of reusing the stored snapshot.",
    )
    parser.add_argument(
        "--workdir",
        default=None,
        help="Parent directory for the run's scratch space (default: system temp).",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level.",
    )
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None, environ: Mapping[str, str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
    logger = logging.getLogger("ncov_ingest.cli")
    started = time.perf_counter()

    config = IngestConfig.from_env(os.environ if environ is None else environ)
    destination = resolve_destination(config)
    if destination is None:
        logger.info("Ref %s does not publish anywhere; nothing to do.", config.github_ref)
        print(json.dumps({"skipped": True, "ref": config.github_ref}, indent=2))
        return 0

    pipeline = build_pipeline(config, destination, fetch=args.fetch, workdir=args.workdir)
    try:
        report = pipeline.run()
    except CommandError as exc:
        logger.error("%s", exc)
        return exc.returncode
    except StageError as exc:
        logger.error("Run aborted in %s stage: %s", exc.stage, exc)
        return 1

    payload = report.to_payload()
    payload["skipped"] = False
    payload["elapsed_seconds"] = round(time.perf_counter() - started, 2)
    print(json.dumps(payload, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
