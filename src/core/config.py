"""Runtime configuration model for lens.

This module owns all environment variable parsing and validation.
Other modules consume a typed config object instead of raw env reads.
"""

from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path

from core.constants import (
    DEFAULT_BATCH_SIZE,
    DEFAULT_DATA_ROOT,
    DEFAULT_DATABASE_FILE_NAME,
    DEFAULT_MIN_RATING_COUNT,
)
from core.errors import LensConfigError

_TRUE_VALUES = ("1", "true", "yes", "on")
_FALSE_VALUES = ("0", "false", "no", "off", "")


@dataclass(frozen=True)
class LensConfig:
    """Validated runtime configuration.

    Attributes:
        data_root: Local root directory for the default SQLite database.
        database_url: SQLAlchemy database URL of the data store.
        min_rating_count: Default threshold for quality rankings.
        fail_fast: Abort a load on the first row coercion error.
        batch_size: Rows committed per bulk insert batch.
        s3_region: Optional default AWS region for S3 sources.
        s3_profile: Optional AWS profile for boto3 session initialization.
    """

    data_root: Path
    database_url: str
    min_rating_count: int
    fail_fast: bool
    batch_size: int
    s3_region: str | None
    s3_profile: str | None

    @classmethod
    def from_env(cls) -> "LensConfig":
        """Build config from process environment variables.

        Returns:
            A validated config object.

        Raises:
            LensConfigError: If environment values are invalid.
        """
        data_root = Path(os.getenv("LENS_DATA_ROOT", str(DEFAULT_DATA_ROOT)))
        data_root = data_root.expanduser().resolve()
        database_url = os.getenv("LENS_DATABASE_URL") or default_database_url(data_root)
        min_rating_count = _parse_int(
            "LENS_MIN_RATING_COUNT",
            os.getenv("LENS_MIN_RATING_COUNT", str(DEFAULT_MIN_RATING_COUNT)),
            minimum=0,
        )
        batch_size = _parse_int(
            "LENS_BATCH_SIZE",
            os.getenv("LENS_BATCH_SIZE", str(DEFAULT_BATCH_SIZE)),
            minimum=1,
        )
        fail_fast = _parse_bool("LENS_FAIL_FAST", os.getenv("LENS_FAIL_FAST", "false"))
        return cls(
            data_root=data_root,
            database_url=database_url,
            min_rating_count=min_rating_count,
            fail_fast=fail_fast,
            batch_size=batch_size,
            s3_region=os.getenv("LENS_S3_REGION"),
            s3_profile=os.getenv("LENS_S3_PROFILE"),
        )


def default_database_url(data_root: Path) -> str:
    """Build the SQLite database URL under a data root."""
    return f"sqlite:///{(data_root / DEFAULT_DATABASE_FILE_NAME).as_posix()}"


def _parse_int(name: str, raw_value: str, minimum: int) -> int:
    """Parse a bounded integer environment value.

    Args:
        name: Environment variable name for error context.
        raw_value: Raw string from environment.
        minimum: Smallest accepted value.

    Returns:
        Parsed integer.

    Raises:
        LensConfigError: If value is not an integer or below minimum.
    """
    try:
        value = int(raw_value)
    except ValueError as error:
        raise LensConfigError(
            f"Invalid {name} value: expected integer, got '{raw_value}'. "
            f"Set {name} to a numeric value."
        ) from error
    if value < minimum:
        raise LensConfigError(
            f"Invalid {name} value: expected at least {minimum}, got {value}."
        )
    return value


def _parse_bool(name: str, raw_value: str) -> bool:
    """Parse a boolean environment flag."""
    normalized = raw_value.strip().lower()
    if normalized in _TRUE_VALUES:
        return True
    if normalized in _FALSE_VALUES:
        return False
    raise LensConfigError(
        f"Invalid {name} value: expected true/false, got '{raw_value}'."
    )
