"""CLI job that imports a CSV batch of builder websites into the directory."""

import argparse
import csv
import dataclasses
import json
import logging
from pathlib import Path
from typing import List, Optional

from builder_pipeline.core.config import OVERWRITE_POLICIES, Settings, get_settings
from builder_pipeline.core.db import find_builder_by_name, init_pool, upsert_builder
from builder_pipeline.core.duplicates import DuplicateResolver
from builder_pipeline.core.orchestrator import BatchOrchestrator
from builder_pipeline.core.pipeline import BuilderPipeline
from builder_pipeline.core.report import RunReport
from builder_pipeline.core.us_states import normalize_state
from builder_pipeline.etl.transform import from_builder_row, to_builder_row
from builder_pipeline.models import BuilderRecord, Target

logger = logging.getLogger(__name__)


def read_targets(csv_path: str, state_filter: Optional[str] = None) -> List[Target]:
    """Targets from a CSV with ``state``, ``website_url`` and optional ``name`` columns."""
    wanted_state = (normalize_state(state_filter) or state_filter.strip().upper()) if state_filter else None
    targets: List[Target] = []
    with open(csv_path, newline="", encoding="utf-8-sig") as handle:
        reader = csv.DictReader(handle)
        for line_no, raw in enumerate(reader, start=2):
            row = {(key or "").strip().lower(): (value or "").strip() for key, value in raw.items() if key}
            try:
                target = Target(state=row.get("state", ""), url=row.get("website_url", ""), known_name=row.get("name"))
            except ValueError as exc:
                logger.warning("Skipping line %d: %s", line_no, exc)
                continue
            if wanted_state and target.state != wanted_state:
                continue
            targets.append(target)

    logger.info("Loaded %d target(s) from %s%s", len(targets), csv_path, f" for {wanted_state}" if wanted_state else "")
    return targets


def lookup_existing(normalized_name: str) -> Optional[BuilderRecord]:
    row = find_builder_by_name(normalized_name)
    return from_builder_row(row) if row else None


def save_record(record: BuilderRecord) -> None:
    upsert_builder(to_builder_row(record))


def run_targets(targets: List[Target], *, settings: Optional[Settings] = None, loader=None) -> RunReport:
    settings = settings or get_settings()
    init_pool()

    pipeline = BuilderPipeline.from_settings(settings, loader=loader)
    orchestrator = BatchOrchestrator(
        pipeline,
        save_record,
        DuplicateResolver(lookup_existing, policy=settings.overwrite_policy),
        max_retries=settings.max_retries,
        retry_delay=settings.retry_delay_seconds,
        target_delay=settings.target_delay_seconds,
    )
    try:
        report = orchestrator.run(targets)
    finally:
        pipeline.loader.close()

    report.log()
    return report


def run_batch_job(
    csv_path: str,
    *,
    state: Optional[str] = None,
    overwrite_policy: Optional[str] = None,
    auto_remediate: Optional[bool] = None,
    report_json: Optional[str] = None,
    loader=None,
) -> RunReport:
    settings = get_settings()
    overrides = {}
    if overwrite_policy:
        overrides["overwrite_policy"] = overwrite_policy
    if auto_remediate is not None:
        overrides["csp_auto_remediate"] = auto_remediate
    if overrides:
        settings = dataclasses.replace(settings, **overrides)

    targets = read_targets(csv_path, state)
    if not targets:
        logger.warning("No targets to process in %s", csv_path)
        report = RunReport()
        report.finish()
    else:
        report = run_targets(targets, settings=settings, loader=loader)

    if report_json:
        Path(report_json).write_text(json.dumps(report.to_dict(), indent=2), encoding="utf-8")
        logger.info("Wrote run report to %s", report_json)
    return report


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Import builder websites into the directory")
    parser.add_argument("csv_path", help="CSV with state, website_url and optional name columns")
    parser.add_argument("--state", dest="state", help="Only process rows for this state")
    parser.add_argument(
        "--overwrite",
        dest="overwrite_policy",
        choices=OVERWRITE_POLICIES,
        help="How to handle builders that already exist (defaults to OVERWRITE_POLICY)",
    )
    parser.add_argument(
        "--no-remediate",
        dest="auto_remediate",
        action="store_false",
        default=None,
        help="Drop photos from disallowed origins instead of extending the allow-list",
    )
    parser.add_argument("--report-json", dest="report_json", help="Write the run report as JSON to this path")
    return parser


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s - %(message)s")
    parser = build_parser()
    args = parser.parse_args()

    run_batch_job(
        args.csv_path,
        state=args.state,
        overwrite_policy=args.overwrite_policy,
        auto_remediate=args.auto_remediate,
        report_json=args.report_json,
    )


if __name__ == "__main__":
    main()
