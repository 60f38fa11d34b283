"""Structured load progress reporting.

This module defines the reporting collaborator that receives per-source
progress and summary events, and the default structlog implementation.
"""

from __future__ import annotations

from typing import Protocol

from core.logging_config import get_logger
from core.types import LoadReport, SourceLoadReport

_LOGGER = get_logger(__name__)


class LoadReporter(Protocol):
    """Receiver of load progress and summary events."""

    def source_started(self, source_name: str, uri: str) -> None:
        """Called before the first row of a source is read."""

    def batch_committed(self, source_name: str, rows_loaded: int) -> None:
        """Called after each committed batch with the running row count."""

    def source_completed(self, report: SourceLoadReport) -> None:
        """Called once a source is fully loaded."""

    def load_completed(self, report: LoadReport) -> None:
        """Called once every requested source is loaded."""


class LoggingLoadReporter:
    """Reporter that emits structured log events."""

    def source_started(self, source_name: str, uri: str) -> None:
        """Log the start of one source load."""
        _LOGGER.info("ingest_source_started", source_name=source_name, uri=uri)

    def batch_committed(self, source_name: str, rows_loaded: int) -> None:
        """Log running progress for one source."""
        _LOGGER.debug("ingest_batch_committed", source_name=source_name, rows_loaded=rows_loaded)

    def source_completed(self, report: SourceLoadReport) -> None:
        """Log the summary of one source load."""
        _LOGGER.info(
            "ingest_source_completed",
            source_name=report.source_name,
            rows_read=report.rows_read,
            rows_loaded=report.rows_loaded,
            row_errors=report.row_errors,
            absent_coercions=report.absent_coercions,
            duration_seconds=report.duration_seconds,
            first_error=report.first_error.message if report.first_error else None,
        )

    def load_completed(self, report: LoadReport) -> None:
        """Log the summary of a full load run."""
        _LOGGER.info(
            "ingest_completed",
            sources=[item.source_name for item in report.sources],
            rows_loaded=report.rows_loaded,
            row_errors=report.error_count,
        )
