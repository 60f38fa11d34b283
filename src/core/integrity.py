"""Integrity verification workflow and report formatting.

Verification is read-only: it reports counts and never repairs data.
"""

from __future__ import annotations

import json
import time
from pathlib import Path

from sqlalchemy.engine import Connection

from core.integrity_checks import CheckCallable, build_checks
from core.integrity_types import IntegrityCheckResult, IntegrityReport
from core.logging_config import get_logger
from store.lens_store import LensStore

_LOGGER = get_logger(__name__)

__all__ = [
    "IntegrityCheckResult",
    "IntegrityReport",
    "render_integrity_report",
    "save_integrity_report",
    "verify_integrity",
]


def verify_integrity(store: LensStore) -> IntegrityReport:
    """Run every integrity check and return the named counts."""
    results: list[IntegrityCheckResult] = []
    with store.connect() as connection:
        for check_id, name, title, check_fn in build_checks():
            results.append(_run_single_check(connection, check_id, name, title, check_fn))
    report = IntegrityReport(checks=tuple(results), row_counts=store.row_counts())
    _LOGGER.info(
        "integrity_verified",
        clean=report.is_clean,
        violations=report.violations,
        row_counts=report.row_counts,
    )
    return report


def _run_single_check(
    connection: Connection,
    check_id: str,
    name: str,
    title: str,
    check_fn: CheckCallable,
) -> IntegrityCheckResult:
    started_at = time.monotonic()
    count = check_fn(connection)
    return IntegrityCheckResult(
        check_id=check_id,
        name=name,
        title=title,
        count=count,
        duration_seconds=round(time.monotonic() - started_at, 3),
    )


def render_integrity_report(report: IntegrityReport) -> str:
    """Render report into stable multi-line text for CLI output."""
    lines = [f"{name}_rows={count}" for name, count in report.row_counts.items()]
    for row in report.checks:
        status = "PASSED" if row.passed else "FAILED"
        lines.append(
            f"[{status}] {row.check_id} {row.name} {row.title} "
            f"({row.duration_seconds:.3f}s) :: count={row.count}"
        )
    lines.append(f"clean={str(report.is_clean).lower()}")
    return "\n".join(lines)


def save_integrity_report(report: IntegrityReport, report_path: Path) -> Path:
    """Persist report JSON for later inspection."""
    report_path.parent.mkdir(parents=True, exist_ok=True)
    payload = {
        "clean": report.is_clean,
        "row_counts": report.row_counts,
        "checks": [
            {
                "check_id": row.check_id,
                "name": row.name,
                "title": row.title,
                "count": row.count,
                "duration_seconds": row.duration_seconds,
            }
            for row in report.checks
        ],
    }
    report_path.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")
    return report_path
