"""Integrity verification command wiring for lens CLI."""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import Any

from core.integrity import render_integrity_report, save_integrity_report
from store.lens_client import LensClient


def add_verify_command(subparsers: Any) -> None:
    """Register verify subcommand."""
    parser = subparsers.add_parser(
        "verify",
        help="Count integrity violations in the loaded store",
    )
    parser.add_argument(
        "--report-path",
        help="Optional JSON file receiving the check report",
    )
    parser.add_argument(
        "--allow-violations",
        action="store_true",
        help="Exit 0 even when violations are found",
    )


def run_verify_command(client: LensClient, args: argparse.Namespace) -> int:
    """Execute integrity checks and print check report."""
    report = client.verify()
    print(render_integrity_report(report))
    if args.report_path:
        report_path = save_integrity_report(report, Path(args.report_path).expanduser())
        print(f"report_path={report_path}")
    if report.is_clean or args.allow_violations:
        return 0
    return 1
