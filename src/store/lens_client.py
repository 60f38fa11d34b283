"""Python SDK for the movie dataset workflows.

This module exposes high-level APIs for schema management, loading,
integrity verification and analytics backed by the relational store.
"""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path

from analytics.queries import AnalyticsQueries
from core.config import LensConfig, default_database_url
from core.integrity import verify_integrity
from core.integrity_types import IntegrityReport
from core.types import Link, LoadOptions, LoadReport, Rating, Tag, Title
from ingest.load_reporter import LoadReporter
from ingest.pipeline import load_dataset
from store.lens_store import LensStore


class LensClient:
    """Primary SDK entry point for load, verify and analyze workflows."""

    def __init__(self, config: LensConfig | None = None) -> None:
        """Create SDK client.

        Args:
            config: Optional runtime configuration.
        """
        self._config = config or LensConfig.from_env()
        self._store = LensStore.from_config(self._config)

    @property
    def config(self) -> LensConfig:
        """Return the runtime configuration."""
        return self._config

    @property
    def store(self) -> LensStore:
        """Return the backing data store."""
        return self._store

    def define_schema(self) -> None:
        """Destroy all stored data and recreate the empty schema.

        Raises:
            SchemaError: If the reset fails; prior state is kept.
        """
        self._store.define_schema()

    def load(
        self,
        source: LoadOptions | str,
        reporter: LoadReporter | None = None,
    ) -> LoadReport:
        """Load delimited sources into the store.

        Args:
            source: Load options, or a source root using config defaults.
            reporter: Optional progress receiver.

        Returns:
            Per-source load report.
        """
        if isinstance(source, str):
            source = LoadOptions(
                source_root=source,
                fail_fast=self._config.fail_fast,
                batch_size=self._config.batch_size,
            )
        return load_dataset(source, self._store, self._config, reporter)

    def verify(self) -> IntegrityReport:
        """Run every integrity check against the store."""
        return verify_integrity(self._store)

    def analytics(self) -> AnalyticsQueries:
        """Return the query layer with the configured rating threshold."""
        return AnalyticsQueries(self._store, self._config.min_rating_count)

    def row_counts(self) -> dict[str, int]:
        """Count rows in every entity table."""
        return self._store.row_counts()

    def get_title(self, movie_id: int) -> Title | None:
        """Read one stored title."""
        return self._store.get_title(movie_id)

    def ratings_for(self, movie_id: int | None = None) -> list[Rating]:
        """Read stored ratings, optionally for one title."""
        return self._store.list_ratings(movie_id)

    def tags_for(self, movie_id: int | None = None) -> list[Tag]:
        """Read stored tags, optionally for one title."""
        return self._store.list_tags(movie_id)

    def get_link(self, movie_id: int) -> Link | None:
        """Read the external identifiers of one title."""
        return self._store.get_link(movie_id)

    def delete_title(self, movie_id: int) -> bool:
        """Delete an unreferenced title.

        Raises:
            IntegrityViolation: If ratings, tags or links reference it.
        """
        return self._store.delete_title(movie_id)

    def with_data_root(self, data_root: str) -> "LensClient":
        """Clone the client with a different local data root.

        The database URL follows the new root only when it was the
        default SQLite file under the previous root.

        Args:
            data_root: New data root path.

        Returns:
            New SDK client instance.
        """
        resolved_root = Path(data_root).expanduser().resolve()
        database_url = self._config.database_url
        if database_url == default_database_url(self._config.data_root):
            database_url = default_database_url(resolved_root)
        updated_config = replace(
            self._config,
            data_root=resolved_root,
            database_url=database_url,
        )
        return LensClient(updated_config)
