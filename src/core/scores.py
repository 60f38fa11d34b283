"""Score value helpers shared by verification and analytics."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from core.constants import MAX_SCORE, MIN_SCORE, SCORE_QUANTUM, SCORE_STEP


def to_score(value: object) -> Decimal:
    """Convert a stored score (float, int, str or Decimal) to a one-digit Decimal."""
    return Decimal(str(value)).quantize(SCORE_QUANTUM, rounding=ROUND_HALF_UP)


def is_valid_score(score: Decimal | None) -> bool:
    """Return whether a score lies in {0.5, 1.0, ..., 5.0}."""
    if score is None:
        return False
    if score < MIN_SCORE or score > MAX_SCORE:
        return False
    return (score / SCORE_STEP) == (score / SCORE_STEP).to_integral_value()


def round_half_up(value: Decimal, quantum: Decimal) -> Decimal:
    """Round a decimal to a fixed quantum, halves away from zero."""
    return value.quantize(quantum, rounding=ROUND_HALF_UP)
