"""Load orchestration for the movie datasets.

This module coordinates source reading, staging, coercion, in-run key
checks and batched commits, loading root entities before dependents.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field

from core.config import LensConfig
from core.constants import LOAD_ORDER
from core.errors import (
    DuplicateKeyError,
    LensConfigError,
    LensStoreError,
    RowCoercionError,
    SchemaError,
    SourceUnavailable,
)
from core.types import LoadOptions, LoadReport, RowError, SourceLoadReport
from ingest.coercion import ENTITY_COERCERS, stage_row
from ingest.load_reporter import LoadReporter, LoggingLoadReporter
from ingest.source_reader import DelimitedSource, open_source
from store.lens_store import LensStore
from store.schema import PRIMARY_KEY_FIELDS


@dataclass
class _SourceProgress:
    """Mutable counters for the source currently being loaded."""

    source_name: str
    started_at: float = field(default_factory=time.monotonic)
    rows_read: int = 0
    rows_loaded: int = 0
    row_errors: int = 0
    absent_coercions: int = 0
    first_error: RowError | None = None

    def record_error(self, error: RowCoercionError) -> None:
        self.row_errors += 1
        if self.first_error is None:
            self.first_error = RowError(
                source_name=self.source_name,
                line_number=error.line_number,
                message=str(error),
            )

    def to_report(self) -> SourceLoadReport:
        return SourceLoadReport(
            source_name=self.source_name,
            rows_read=self.rows_read,
            rows_loaded=self.rows_loaded,
            row_errors=self.row_errors,
            absent_coercions=self.absent_coercions,
            duration_seconds=round(time.monotonic() - self.started_at, 3),
            first_error=self.first_error,
        )


class LoadPipelineRunner:
    """Runner for one batch load of the requested sources."""

    def __init__(
        self,
        options: LoadOptions,
        store: LensStore,
        config: LensConfig,
        reporter: LoadReporter | None = None,
    ) -> None:
        _require_batch_size(options.batch_size)
        self._options = options
        self._store = store
        self._config = config
        self._reporter = reporter or LoggingLoadReporter()
        self._completed: list[SourceLoadReport] = []

    def run(self) -> LoadReport:
        """Load every requested source, roots first, and return the report."""
        if not self._store.has_schema():
            raise SchemaError(
                "Cannot load: the schema does not exist. Run define_schema first."
            )
        sources = [
            open_source(self._options.source_root, name, self._config)
            for name in ordered_sources(self._options.sources)
        ]
        for source in sources:
            self._completed.append(self._load_source(source))
        report = LoadReport(sources=tuple(self._completed))
        self._reporter.load_completed(report)
        return report

    def _load_source(self, source: DelimitedSource) -> SourceLoadReport:
        progress = _SourceProgress(source_name=source.name)
        self._reporter.source_started(source.name, source.uri)
        try:
            self._load_rows(source, progress)
        except SourceUnavailable as error:
            error.partial_report = self._partial_report(progress)
            raise
        report = progress.to_report()
        self._reporter.source_completed(report)
        return report

    def _load_rows(self, source: DelimitedSource, progress: _SourceProgress) -> None:
        coerce = ENTITY_COERCERS[source.name]
        key_fields = PRIMARY_KEY_FIELDS[source.name]
        seen_keys: set[tuple[object, ...]] = set()
        batch: list[dict[str, object]] = []
        for row in source:
            progress.rows_read += 1
            try:
                coerced = coerce(stage_row(source.name, source.fields, row))
            except RowCoercionError as error:
                progress.record_error(error)
                if self._options.fail_fast:
                    error.partial_report = self._partial_report(progress)
                    raise
                continue
            if key_fields:
                key = tuple(coerced.values[name] for name in key_fields)
                if key in seen_keys:
                    self._flush(progress, batch)
                    raise DuplicateKeyError(
                        f"Duplicate primary key {key} in {source.name} at row "
                        f"{row.line_number}. Remove the repeated row; loads never upsert.",
                        entity=source.name,
                        key=key,
                        partial_report=self._partial_report(progress),
                    )
                seen_keys.add(key)
            progress.absent_coercions += coerced.absent_coercions
            batch.append(coerced.values)
            if len(batch) >= self._options.batch_size:
                self._flush(progress, batch)
        self._flush(progress, batch)

    def _flush(self, progress: _SourceProgress, batch: list[dict[str, object]]) -> None:
        if not batch:
            return
        try:
            progress.rows_loaded += self._store.bulk_insert(progress.source_name, batch)
        except (DuplicateKeyError, LensStoreError) as error:
            error.partial_report = self._partial_report(progress)
            raise
        batch.clear()
        self._reporter.batch_committed(progress.source_name, progress.rows_loaded)

    def _partial_report(self, progress: _SourceProgress) -> LoadReport:
        return LoadReport(sources=tuple(self._completed) + (progress.to_report(),))


def load_dataset(
    options: LoadOptions,
    store: LensStore,
    config: LensConfig,
    reporter: LoadReporter | None = None,
) -> LoadReport:
    """Load delimited sources into the store.

    Args:
        options: Load request options.
        store: Target data store with an existing schema.
        config: Runtime configuration.
        reporter: Optional progress receiver; logs events when omitted.

    Returns:
        Per-source load report.

    Raises:
        SchemaError: If the schema has not been defined.
        SourceUnavailable: If a requested source is missing or unreadable.
        RowCoercionError: On the first bad row when fail-fast is set.
        DuplicateKeyError: If a primary key repeats within the run.
        LensConfigError: If the batch size is not a positive integer.
        LensStoreError: If the store rejects a batch for another reason.
    """
    runner = LoadPipelineRunner(options, store, config, reporter)
    return runner.run()


def _require_batch_size(batch_size: int) -> None:
    if isinstance(batch_size, bool) or not isinstance(batch_size, int) or batch_size < 1:
        raise LensConfigError(
            f"Invalid batch size {batch_size!r}: expected an integer of at least 1."
        )


def ordered_sources(requested: tuple[str, ...]) -> tuple[str, ...]:
    """Order requested sources so root entities load before dependents."""
    unknown = sorted(set(requested) - set(LOAD_ORDER))
    if unknown:
        raise SourceUnavailable(
            f"Unknown sources: {', '.join(unknown)}. Expected any of: {', '.join(LOAD_ORDER)}."
        )
    return tuple(name for name in LOAD_ORDER if name in requested)
