"""Row staging and field coercion.

Raw rows are first staged as loosely-typed string mappings so blank
values and null markers can be cleaned, then cast into entity rows.
Score validity is not checked here; the integrity verifier owns it.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Callable, Mapping

from core.constants import (
    LINKS_TABLE,
    MOVIES_TABLE,
    NULL_MARKERS,
    RATINGS_TABLE,
    SCORE_QUANTUM,
    TAGS_TABLE,
)
from core.errors import RowCoercionError
from core.timestamps import epoch_to_datetime
from ingest.source_reader import SourceRow


@dataclass(frozen=True)
class StagedRow:
    """Loosely-typed row: field name to raw text, None when blank."""

    source_name: str
    line_number: int
    fields: Mapping[str, str | None]

    def fail(self, message: str) -> RowCoercionError:
        """Build a coercion error located at this row."""
        return RowCoercionError(
            f"Failed to coerce {self.source_name} row {self.line_number}: {message}",
            source_name=self.source_name,
            line_number=self.line_number,
        )


@dataclass(frozen=True)
class CoercedRow:
    """Entity row ready for insert.

    Attributes:
        values: Column-name keyed typed values.
        absent_coercions: Optional values that were malformed and stored as absent.
    """

    values: dict[str, object]
    absent_coercions: int = 0


def stage_row(source_name: str, fields: tuple[str, ...], row: SourceRow) -> StagedRow:
    """Stage a raw row against the declared field order.

    Args:
        source_name: Entity name for error context.
        fields: Declared field order.
        row: Raw source row.

    Returns:
        Staged row with blank values mapped to None.

    Raises:
        RowCoercionError: If the field count does not match.
    """
    if len(row.values) != len(fields):
        raise RowCoercionError(
            f"Failed to coerce {source_name} row {row.line_number}: expected "
            f"{len(fields)} fields, got {len(row.values)}.",
            source_name=source_name,
            line_number=row.line_number,
        )
    cleaned = {name: _blank_to_none(value) for name, value in zip(fields, row.values)}
    return StagedRow(source_name=source_name, line_number=row.line_number, fields=cleaned)


def is_missing(value: str | None) -> bool:
    """Return whether a staged value is a missing-value sentinel."""
    return value is None or value.strip() in NULL_MARKERS


def parse_required_int(staged: StagedRow, field: str) -> int:
    """Parse an identifier that must be present and integral."""
    value = staged.fields[field]
    if value is None:
        raise staged.fail(f"required field '{field}' is empty.")
    try:
        return int(value.strip())
    except ValueError as error:
        raise staged.fail(f"field '{field}' is not an integer: '{value}'.") from error


def parse_optional_int(staged: StagedRow, field: str) -> tuple[int | None, bool]:
    """Parse a nullable identifier.

    Returns:
        Parsed value or None, and whether the raw value was malformed
        (present but unparseable) rather than a missing-value sentinel.
    """
    value = staged.fields[field]
    if is_missing(value):
        return None, False
    try:
        return int(value.strip()), False
    except ValueError:
        return None, True


def parse_required_text(staged: StagedRow, field: str) -> str:
    """Return a text field that must be present, unmodified."""
    value = staged.fields[field]
    if value is None:
        raise staged.fail(f"required field '{field}' is empty.")
    return value


def parse_epoch(staged: StagedRow, field: str) -> int:
    """Parse epoch seconds whose calendar projection must be representable."""
    ts_unix = parse_required_int(staged, field)
    try:
        epoch_to_datetime(ts_unix)
    except OverflowError as error:
        raise staged.fail(
            f"timestamp {ts_unix} is outside the supported calendar range."
        ) from error
    return ts_unix


def parse_score(staged: StagedRow, field: str) -> Decimal:
    """Parse a score as a decimal with one fractional digit."""
    value = staged.fields[field]
    if value is None:
        raise staged.fail(f"required field '{field}' is empty.")
    try:
        score = Decimal(value.strip())
        if not score.is_finite():
            raise InvalidOperation(value)
        return score.quantize(SCORE_QUANTUM, rounding=ROUND_HALF_UP)
    except InvalidOperation as error:
        raise staged.fail(f"field '{field}' is not a finite decimal: '{value}'.") from error


def coerce_movie(staged: StagedRow) -> CoercedRow:
    """Coerce a staged movies row."""
    return CoercedRow(
        values={
            "movie_id": parse_required_int(staged, "movie_id"),
            "title": parse_required_text(staged, "title"),
            "genres": parse_required_text(staged, "genres"),
        }
    )


def coerce_rating(staged: StagedRow) -> CoercedRow:
    """Coerce a staged ratings row."""
    return CoercedRow(
        values={
            "user_id": parse_required_int(staged, "user_id"),
            "movie_id": parse_required_int(staged, "movie_id"),
            "score": parse_score(staged, "score"),
            "ts_unix": parse_epoch(staged, "ts_unix"),
        }
    )


def coerce_tag(staged: StagedRow) -> CoercedRow:
    """Coerce a staged tags row."""
    return CoercedRow(
        values={
            "user_id": parse_required_int(staged, "user_id"),
            "movie_id": parse_required_int(staged, "movie_id"),
            "tag": parse_required_text(staged, "tag"),
            "ts_unix": parse_epoch(staged, "ts_unix"),
        }
    )


def coerce_link(staged: StagedRow) -> CoercedRow:
    """Coerce a staged links row; malformed external ids become absent."""
    imdb_id, imdb_malformed = parse_optional_int(staged, "imdb_id")
    tmdb_id, tmdb_malformed = parse_optional_int(staged, "tmdb_id")
    return CoercedRow(
        values={
            "movie_id": parse_required_int(staged, "movie_id"),
            "imdb_id": imdb_id,
            "tmdb_id": tmdb_id,
        },
        absent_coercions=int(imdb_malformed) + int(tmdb_malformed),
    )


ENTITY_COERCERS: dict[str, Callable[[StagedRow], CoercedRow]] = {
    MOVIES_TABLE: coerce_movie,
    RATINGS_TABLE: coerce_rating,
    TAGS_TABLE: coerce_tag,
    LINKS_TABLE: coerce_link,
}


def _blank_to_none(value: str) -> str | None:
    if not value.strip():
        return None
    return value
