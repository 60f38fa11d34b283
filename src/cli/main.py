"""Lens CLI entry points.
This module exposes commands for schema setup, loading and inspection.
It maps argparse commands onto SDK calls.
"""

from __future__ import annotations

import argparse
import sys
from dataclasses import replace
from pathlib import Path
from typing import Any, Sequence

from cli.query_command import add_query_command, run_query_command
from cli.verify_command import add_verify_command, run_verify_command
from core.config import LensConfig, default_database_url
from core.constants import LOAD_ORDER
from core.errors import LensError
from core.types import LoadOptions, LoadReport
from store.lens_client import LensClient


def build_parser() -> argparse.ArgumentParser:
    """Build the top-level CLI parser.

    Returns:
        Configured argument parser.
    """
    parser = argparse.ArgumentParser(prog="lens", description="MovieLens load and analytics CLI")
    parser.add_argument("--data-root", help="Override LENS_DATA_ROOT for this command")
    parser.add_argument("--database-url", help="Override LENS_DATABASE_URL for this command")
    subparsers = parser.add_subparsers(dest="command", required=True)
    _add_init_schema_command(subparsers)
    _add_load_command(subparsers)
    add_verify_command(subparsers)
    _add_summary_command(subparsers)
    add_query_command(subparsers)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the lens CLI.

    Args:
        argv: Optional argument vector.

    Returns:
        Process exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        client = _build_client(args.data_root, args.database_url)
        if args.command == "init-schema":
            return _run_init_schema_command(client, args)
        if args.command == "load":
            return _run_load_command(client, args)
        if args.command == "verify":
            return run_verify_command(client, args)
        if args.command == "summary":
            return _run_summary_command(client, args)
        if args.command == "query":
            return run_query_command(client, args)
    except LensError as error:
        print(f"error={error}", file=sys.stderr)
        return 1
    parser.error(f"Unsupported command: {args.command}")
    return 2


def _build_client(data_root: str | None, database_url: str | None) -> LensClient:
    """Build SDK client with optional data-root and database overrides.

    Args:
        data_root: Optional override path.
        database_url: Optional override SQLAlchemy URL.

    Returns:
        Configured SDK client.
    """
    config = LensConfig.from_env()
    if data_root:
        resolved_root = Path(data_root).expanduser().resolve()
        resolved_url = config.database_url
        if resolved_url == default_database_url(config.data_root):
            resolved_url = default_database_url(resolved_root)
        config = replace(config, data_root=resolved_root, database_url=resolved_url)
    if database_url:
        config = replace(config, database_url=database_url)
    return LensClient(config)


def _run_init_schema_command(client: LensClient, args: argparse.Namespace) -> int:
    """Handle init-schema command.

    Args:
        client: SDK client.
        args: Parsed CLI args.

    Returns:
        Exit code.
    """
    if not args.yes:
        print(
            "init-schema destroys all stored data. Re-run with --yes to confirm.",
            file=sys.stderr,
        )
        return 2
    client.define_schema()
    print("schema=ready")
    return 0


def _run_load_command(client: LensClient, args: argparse.Namespace) -> int:
    """Handle load command.

    Args:
        client: SDK client.
        args: Parsed CLI args.

    Returns:
        Exit code.
    """
    options = LoadOptions(
        source_root=args.source,
        fail_fast=args.fail_fast or client.config.fail_fast,
        batch_size=client.config.batch_size if args.batch_size is None else args.batch_size,
        sources=tuple(args.only) if args.only else LOAD_ORDER,
    )
    report = client.load(options)
    print(render_load_report(report))
    return 0


def _run_summary_command(client: LensClient, args: argparse.Namespace) -> int:
    """Handle summary command."""
    summary = client.analytics().dataset_summary()
    for name, count in summary.row_counts.items():
        print(f"{name}_rows={count}")
    ratings = summary.ratings
    print(f"ratings_unique_users={ratings.unique_users}")
    print(f"ratings_titles_rated={ratings.titles_rated}")
    print(f"ratings_min_score={_optional(ratings.min_score)}")
    print(f"ratings_max_score={_optional(ratings.max_score)}")
    print(f"ratings_mean_score={_optional(ratings.mean_score)}")
    print(f"ratings_earliest={_optional(ratings.earliest and ratings.earliest.isoformat())}")
    print(f"ratings_latest={_optional(ratings.latest and ratings.latest.isoformat())}")
    print(f"tags_unique={summary.tags.unique_tags}")
    print(f"tags_users={summary.tags.users_who_tagged}")
    print(f"tags_titles={summary.tags.titles_tagged}")
    print(f"titles_genre_combinations={summary.titles.unique_genre_combinations}")
    return 0


def render_load_report(report: LoadReport) -> str:
    """Render a load report as one line per source plus totals."""
    lines = []
    for item in report.sources:
        line = (
            f"{item.source_name}\tread={item.rows_read}\tloaded={item.rows_loaded}\t"
            f"errors={item.row_errors}\tabsent={item.absent_coercions}\t"
            f"{item.duration_seconds:.3f}s"
        )
        if item.first_error is not None:
            line += f"\tfirst_error={item.first_error.message}"
        lines.append(line)
    lines.append(f"rows_loaded={report.rows_loaded}")
    lines.append(f"row_errors={report.error_count}")
    return "\n".join(lines)


def _optional(value: object) -> str:
    return "-" if value is None else str(value)


def _add_init_schema_command(subparsers: Any) -> None:
    """Register init-schema subcommand."""
    parser = subparsers.add_parser(
        "init-schema",
        help="Drop and recreate all tables, destroying stored data",
    )
    parser.add_argument("--yes", action="store_true", help="Confirm data destruction")


def _add_load_command(subparsers: Any) -> None:
    """Register load subcommand."""
    parser = subparsers.add_parser("load", help="Load a local directory or S3 prefix")
    parser.add_argument("source", help="Directory or s3://bucket/prefix holding the CSV files")
    parser.add_argument(
        "--fail-fast",
        action="store_true",
        help="Abort on the first malformed row",
    )
    parser.add_argument("--batch-size", type=int, help="Rows per bulk insert batch")
    parser.add_argument(
        "--only",
        action="append",
        choices=LOAD_ORDER,
        help="Load only this source; repeatable",
    )


def _add_summary_command(subparsers: Any) -> None:
    """Register summary subcommand."""
    subparsers.add_parser("summary", help="Print row counts and dataset statistics")
