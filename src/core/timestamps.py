"""Epoch timestamp projection helpers.

Raw epoch seconds are authoritative; calendar timestamps are always
derived from them on read and never stored as independent state.
"""

from __future__ import annotations

from datetime import datetime, timedelta

from core.constants import UNIX_EPOCH


def epoch_to_datetime(ts_unix: int) -> datetime:
    """Project epoch seconds onto a UTC calendar timestamp.

    Args:
        ts_unix: Integer seconds since 1970-01-01T00:00:00Z.

    Returns:
        Timezone-aware UTC datetime equal to epoch + ``ts_unix`` seconds.
    """
    return UNIX_EPOCH + timedelta(seconds=ts_unix)
