"""Public SDK surface for lens.

This module provides a stable import path for library users.
It re-exports the primary client and typed option and result models.
"""

from __future__ import annotations

from analytics.queries import AnalyticsQueries
from core.config import LensConfig
from core.errors import (
    DuplicateKeyError,
    IntegrityViolation,
    LensError,
    QueryError,
    RowCoercionError,
    SchemaError,
    SourceUnavailable,
)
from core.integrity_types import IntegrityReport
from core.types import Link, LoadOptions, LoadReport, Rating, Tag, Title
from store.lens_client import LensClient

__all__ = [
    "AnalyticsQueries",
    "DuplicateKeyError",
    "IntegrityReport",
    "IntegrityViolation",
    "LensClient",
    "LensConfig",
    "LensError",
    "Link",
    "LoadOptions",
    "LoadReport",
    "QueryError",
    "Rating",
    "RowCoercionError",
    "SchemaError",
    "SourceUnavailable",
    "Tag",
    "Title",
]
