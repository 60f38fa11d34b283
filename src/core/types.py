"""Shared typed models.

This module defines immutable entity and load-report models used by
the ingest, store, verification and analytics layers.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from core.constants import DEFAULT_BATCH_SIZE, GENRE_DELIMITER, LOAD_ORDER
from core.timestamps import epoch_to_datetime


@dataclass(frozen=True)
class Title:
    """Canonical movie entity.

    Attributes:
        movie_id: Primary key.
        title: Display name.
        genres: Pipe-separated category labels as loaded.
    """

    movie_id: int
    title: str
    genres: str

    @property
    def genre_labels(self) -> list[str]:
        """Parse the category labels on read."""
        return self.genres.split(GENRE_DELIMITER)

    @property
    def primary_genre(self) -> str:
        """Return the leading category label."""
        return self.genre_labels[0]


@dataclass(frozen=True)
class Rating:
    """Scored user/title association at a point in time.

    Attributes:
        user_id: Rating user.
        movie_id: Rated title.
        score: Score with one fractional digit, unvalidated.
        ts_unix: Authoritative epoch seconds.
    """

    user_id: int
    movie_id: int
    score: Decimal
    ts_unix: int

    @property
    def rated_at(self) -> datetime:
        """UTC calendar timestamp derived from ``ts_unix``."""
        return epoch_to_datetime(self.ts_unix)


@dataclass(frozen=True)
class Tag:
    """Free-text user/title label at a point in time."""

    user_id: int
    movie_id: int
    tag: str
    ts_unix: int

    @property
    def tagged_at(self) -> datetime:
        """UTC calendar timestamp derived from ``ts_unix``."""
        return epoch_to_datetime(self.ts_unix)


@dataclass(frozen=True)
class Link:
    """External identifiers of a title; either id may be absent."""

    movie_id: int
    imdb_id: int | None
    tmdb_id: int | None


@dataclass(frozen=True)
class LoadOptions:
    """Load command options.

    Attributes:
        source_root: Directory path or ``s3://`` prefix holding source files.
        fail_fast: Abort on the first row coercion error.
        batch_size: Rows per bulk insert batch.
        sources: Source names to load, always applied in root-first order.
    """

    source_root: str
    fail_fast: bool = False
    batch_size: int = DEFAULT_BATCH_SIZE
    sources: tuple[str, ...] = LOAD_ORDER


@dataclass(frozen=True)
class RowError:
    """One rejected source row."""

    source_name: str
    line_number: int
    message: str


@dataclass(frozen=True)
class SourceLoadReport:
    """Load summary for one source.

    Attributes:
        source_name: Entity/table name.
        rows_read: Data rows read after the header.
        rows_loaded: Rows committed to the store.
        row_errors: Rows rejected by coercion.
        absent_coercions: Malformed optional values stored as absent.
        duration_seconds: Elapsed wall time.
        first_error: First rejected row, if any.
    """

    source_name: str
    rows_read: int
    rows_loaded: int
    row_errors: int
    absent_coercions: int
    duration_seconds: float
    first_error: RowError | None = None


@dataclass(frozen=True)
class LoadReport:
    """Summary of one load run across sources."""

    sources: tuple[SourceLoadReport, ...]

    @property
    def rows_loaded(self) -> int:
        """Total rows committed across sources."""
        return sum(item.rows_loaded for item in self.sources)

    @property
    def error_count(self) -> int:
        """Total rejected rows across sources."""
        return sum(item.row_errors for item in self.sources)

    def source(self, source_name: str) -> SourceLoadReport | None:
        """Return the report for one source, if it was loaded."""
        for item in self.sources:
            if item.source_name == source_name:
                return item
        return None
