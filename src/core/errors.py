"""Lens exception hierarchy.

This module defines traceable domain errors with clear boundaries.
Each subsystem raises a specific error type for debuggability.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Mapping

if TYPE_CHECKING:
    from core.types import LoadReport


class LensError(Exception):
    """Base exception for all lens failures."""


class LensConfigError(LensError):
    """Raised for invalid runtime configuration."""


class LensDependencyError(LensError):
    """Raised when an optional runtime dependency is missing."""


class LensStoreError(LensError):
    """Raised for data store read and write failures.

    When raised during a load, ``partial_report`` holds the rows
    committed before the failure.
    """

    def __init__(self, message: str, partial_report: LoadReport | None = None) -> None:
        super().__init__(message)
        self.partial_report = partial_report


class SchemaError(LensError):
    """Raised when the schema cannot be dropped or recreated."""


class SourceUnavailable(LensError):
    """Raised when a source is missing or unreadable.

    A source that fails part-way through a load carries the rows
    committed so far in ``partial_report``.
    """

    def __init__(self, message: str, partial_report: LoadReport | None = None) -> None:
        super().__init__(message)
        self.partial_report = partial_report


class RowCoercionError(LensError):
    """Raised for a single row that cannot be coerced into its entity shape."""

    def __init__(
        self,
        message: str,
        source_name: str = "",
        line_number: int = 0,
        partial_report: LoadReport | None = None,
    ) -> None:
        super().__init__(message)
        self.source_name = source_name
        self.line_number = line_number
        self.partial_report = partial_report


class DuplicateKeyError(LensError):
    """Raised when a primary key repeats within one load run."""

    def __init__(
        self,
        message: str,
        entity: str,
        key: tuple[object, ...],
        partial_report: LoadReport | None = None,
    ) -> None:
        super().__init__(message)
        self.entity = entity
        self.key = key
        self.partial_report = partial_report


class IntegrityViolation(LensError):
    """Raised when integrity counts are non-zero and the caller requires a clean store."""

    def __init__(self, message: str, counts: Mapping[str, int]) -> None:
        super().__init__(message)
        self.counts = dict(counts)


class QueryError(LensError):
    """Raised for malformed analytical query requests."""
