"""
CLI entry point

Administrative commands over a configured engine: snapshot validation,
booking reports and receipts.
"""

from __future__ import annotations

import argparse
import json
import sys
from typing import Optional

from btoengine import __version__
from btoengine.application.reports import ReportFilter
from btoengine.config import create_settings
from btoengine.core.di import build_engine
from btoengine.core.errors import BTOError
from btoengine.domain.enums import FlatType, MaritalStatus
from btoengine.infrastructure.logging import setup_logging


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="btoengine",
        description="BTO flat allocation engine - administrative commands",
    )
    parser.add_argument("--config", "-c", help="settings YAML file")
    parser.add_argument("--data-dir", help="override storage.data_dir")
    parser.add_argument("--backend", choices=["csv", "sqlite", "memory"], help="override storage.backend")
    parser.add_argument("--version", "-v", action="store_true", help="show version")

    subparsers = parser.add_subparsers(dest="command", help="available commands")

    subparsers.add_parser("validate", help="load the snapshot and check every invariant")

    report_parser = subparsers.add_parser("report", help="list booked flats")
    report_parser.add_argument("--project", help="project name")
    report_parser.add_argument("--flat-type", help="flat type, e.g. 2-Room")
    report_parser.add_argument("--marital-status", help="Single or Married")
    report_parser.add_argument("--min-age", type=int)
    report_parser.add_argument("--max-age", type=int)
    report_parser.add_argument("--json", action="store_true", help="print JSON rows")

    receipt_parser = subparsers.add_parser("receipt", help="print the receipt of a booked application")
    receipt_parser.add_argument("application_id")

    return parser


def _report_filter(parsed: argparse.Namespace) -> ReportFilter:
    return ReportFilter(
        project_name=parsed.project,
        flat_type=FlatType.parse(parsed.flat_type, field="flat_type") if parsed.flat_type else None,
        marital_status=(
            MaritalStatus.parse(parsed.marital_status, field="marital_status") if parsed.marital_status else None
        ),
        min_age=parsed.min_age,
        max_age=parsed.max_age,
    )


def run_cli(args: Optional[list] = None) -> int:
    """Run the CLI; returns the process exit code."""
    parser = create_parser()
    parsed = parser.parse_args(args)

    if parsed.version:
        print(f"btoengine v{__version__}")
        return 0

    if not parsed.command:
        parser.print_help()
        return 0

    try:
        settings = create_settings(parsed.config)
        if parsed.data_dir:
            settings.storage.data_dir = parsed.data_dir
        if parsed.backend:
            settings.storage.backend = parsed.backend
        setup_logging(settings.logging)

        with build_engine(settings) as engine:
            if parsed.command == "validate":
                counts = engine.verify()
                print("Snapshot OK: " + ", ".join(f"{k}={v}" for k, v in counts.items()))

            elif parsed.command == "report":
                rows = engine.reports.booking_report(_report_filter(parsed))
                if parsed.json:
                    print(json.dumps([r.to_dict() for r in rows], ensure_ascii=False, indent=2))
                else:
                    for r in rows:
                        print(
                            f"{r.project_name}\t{r.flat_type.value}\t{r.applicant_name}\t{r.applicant_nric}\t"
                            f"{r.age}\t{r.marital_status.value}"
                        )
                    print(f"{len(rows)} booking(s)")

            elif parsed.command == "receipt":
                application = engine.application(parsed.application_id)
                if application is None:
                    print(f"Error: no application {parsed.application_id}", file=sys.stderr)
                    return 1
                print(engine.reports.booking_receipt(application).unwrap())

        return 0

    except BTOError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(run_cli())
