"""Calendar bucketing of epoch-second columns.

UTC year and month are derived in SQL with integer arithmetic only
(days-to-civil conversion over the proleptic Gregorian calendar), so every
backend assigns a row to the same calendar year or month as
``core.timestamps.epoch_to_datetime`` would. The cost per row is constant
whatever the span of the stored timestamps.
"""

from __future__ import annotations

from sqlalchemy import BigInteger, case, literal_column
from sqlalchemy.sql import ColumnElement

SECONDS_PER_DAY = 86400
# Seconds from 0001-01-01T00:00:00Z to the Unix epoch; the smallest
# timestamp ingestion accepts, so shifted values are never negative.
EPOCH_SHIFT_SECONDS = 62135596800
# Days from 0000-03-01 to 0001-01-01.
_MARCH_ERA_SHIFT_DAYS = 306
_DAYS_PER_ERA = 146097


def year_expression(column: ColumnElement[int]) -> ColumnElement[int]:
    """Build the UTC calendar year of an epoch-seconds column."""
    year, _ = _civil_parts(column)
    return year


def month_expression(column: ColumnElement[int]) -> ColumnElement[int]:
    """Build ``year * 100 + month`` for an epoch-seconds column.

    Args:
        column: Epoch-seconds column.

    Returns:
        Integer month label, for example ``199912`` for December 1999.
    """
    year, month = _civil_parts(column)
    return year * _int(100) + month


def split_month_label(label: int) -> tuple[int, int]:
    """Split a month label into ``(year, month)``."""
    return label // 100, label % 100


def _civil_parts(column: ColumnElement[int]) -> tuple[ColumnElement[int], ColumnElement[int]]:
    # Operands stay non-negative, so truncating and flooring division agree.
    days = (column + _int(EPOCH_SHIFT_SECONDS)) // _int(SECONDS_PER_DAY)
    shifted = days + _int(_MARCH_ERA_SHIFT_DAYS)
    era = shifted // _int(_DAYS_PER_ERA)
    day_of_era = shifted - era * _int(_DAYS_PER_ERA)
    year_of_era = (
        day_of_era
        - day_of_era // _int(1460)
        + day_of_era // _int(36524)
        - day_of_era // _int(146096)
    ) // _int(365)
    day_of_year = day_of_era - (
        _int(365) * year_of_era + year_of_era // _int(4) - year_of_era // _int(100)
    )
    # Month index counted from March.
    march_month = (_int(5) * day_of_year + _int(2)) // _int(153)
    before_january = march_month < _int(10)
    month = case((before_january, march_month + _int(3)), else_=march_month - _int(9))
    year = (
        year_of_era
        + era * _int(400)
        + case((before_january, _int(0)), else_=_int(1))
    )
    return year, month


def _int(value: int) -> ColumnElement[int]:
    # Inline literals keep SELECT and GROUP BY text identical on every backend.
    return literal_column(str(value), type_=BigInteger)
