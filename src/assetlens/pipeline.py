"""End-to-end upload processing and the ``assetlens`` command line entry point."""
from __future__ import annotations

import argparse
import json
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable, List, Optional, Sequence, Tuple

from .analytics import InventorySummary, aggregate
from .config import AssetLensSettings, SupportScheme, load_settings
from .errors import AssetLensError
from .io import read_input_file, write_export, write_summary
from .jobs import InMemoryJobStore, JobRecord, JobStore, new_job_id, status_payload, sweep_expired
from .logging_utils import get_logger, log_error, log_system_event, setup_logging
from .normalizer import RowNormalizer, normalize_dataset

LOGGER = get_logger("pipeline")


def normalize_and_aggregate(
    raw_rows: Iterable[Any],
    settings: AssetLensSettings,
    now: Any = None,
) -> Tuple[List[Any], InventorySummary]:
    """Run the dataset normalizer and the aggregator over already-decoded rows."""

    normalizer = RowNormalizer.from_settings(settings)
    records = normalize_dataset(raw_rows, normalizer)
    return records, aggregate(records, now=now)


def process_upload(
    path: str | Path,
    store: JobStore,
    settings: Optional[AssetLensSettings] = None,
    customer_name: Optional[str] = None,
    now: Any = None,
) -> JobRecord:
    """Decode ``path``, normalize and aggregate it, and store the result as a new job.

    Jobs older than ``settings.jobs.retention_minutes`` are swept from ``store``
    before the new job is added.

    Raises:
        InputFileError: If the file cannot be decoded.
    """

    settings = settings or AssetLensSettings()
    p = Path(path)
    log_system_event(LOGGER, f"Processing file {p.name} for customer {customer_name or 'Unknown'}")
    raw_rows = read_input_file(p)
    records, summary = normalize_and_aggregate(raw_rows, settings, now=now)
    job = JobRecord(
        job_id=new_job_id(),
        records=tuple(records),
        summary=summary,
        customer_name=customer_name or "Unknown",
        filename=p.name,
    )
    sweep_expired(store, settings.jobs.retention_minutes)
    store.put(job.job_id, job)
    log_system_event(LOGGER, f"Job {job.job_id} stored with {job.rows_processed} rows")
    return job


def build_arg_parser() -> argparse.ArgumentParser:
    """Create an argument parser for the assetlens CLI."""

    parser = argparse.ArgumentParser(description="Normalize an inventory spreadsheet and summarize coverage and lifecycle")
    parser.add_argument("--input", required=True, help="CSV/TSV/TXT/XLSX file to process")
    parser.add_argument("--config", help="Path to a YAML configuration file")
    parser.add_argument(
        "--scheme",
        choices=[s.value for s in SupportScheme],
        help="Support-status rules; overrides normalization.support_scheme from the config",
    )
    parser.add_argument("--now", help="Reference date for lifecycle counts (YYYY-MM-DD); defaults to today (UTC)")
    parser.add_argument("--customer", help="Customer name recorded on the job and used in export names")
    parser.add_argument("--output", help="Write normalized records to this .csv or .xlsx file")
    parser.add_argument("--summary", help="Write the summary JSON to this file instead of stdout")
    parser.add_argument("--log-level", help="Override the configured log level")
    return parser


def _apply_overrides(settings: AssetLensSettings, args: argparse.Namespace) -> AssetLensSettings:
    if not args.scheme:
        return settings
    normalization = settings.normalization.model_copy(update={"support_scheme": SupportScheme(args.scheme)})
    return settings.model_copy(update={"normalization": normalization})


def main(argv: Optional[Sequence[str]] = None) -> int:
    """CLI entry point; returns the process exit status."""

    parser = build_arg_parser()
    args = parser.parse_args(argv)

    try:
        settings = _apply_overrides(load_settings(args.config), args)
    except AssetLensError as exc:
        log_error(setup_logging(level=args.log_level), str(exc))
        return 1
    logger = setup_logging(settings, level=args.log_level)

    store = InMemoryJobStore()
    started = datetime.now()
    try:
        job = process_upload(args.input, store, settings, customer_name=args.customer, now=args.now)
    except AssetLensError as exc:
        log_error(logger, str(exc))
        return 1

    try:
        if args.output:
            write_export(job.records, args.output)
        if args.summary:
            write_summary(job.summary, args.summary)
    except OSError as exc:
        log_error(logger, f"Failed to write output: {exc}")
        return 1
    if not args.summary:
        print(json.dumps(job.summary.to_dict(), indent=2, ensure_ascii=False))

    for finding in status_payload(job)["results"]["findings"]:
        logger.info(finding)
    logger.info("Completed in %.2f seconds", (datetime.now() - started).total_seconds())
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI guard
    raise SystemExit(main())
