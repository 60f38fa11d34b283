"""S3 URI parsing helpers.

This module centralizes S3 URI parsing for source locations.
"""

from __future__ import annotations

from dataclasses import dataclass

from core.errors import SourceUnavailable


@dataclass(frozen=True)
class S3Location:
    """Parsed S3 location model."""

    bucket: str
    prefix: str

    def key_for(self, file_name: str) -> str:
        """Build the object key of a file under this prefix."""
        if not self.prefix:
            return file_name
        return f"{self.prefix.rstrip('/')}/{file_name}"


def parse_s3_uri(uri: str) -> S3Location:
    """Parse and validate an S3 URI.

    Args:
        uri: URI in format ``s3://bucket`` or ``s3://bucket/prefix``.

    Returns:
        Parsed bucket and prefix pair.

    Raises:
        SourceUnavailable: If the URI has no bucket.
    """
    stripped_uri = uri.removeprefix("s3://")
    bucket, _, prefix = stripped_uri.partition("/")
    if not bucket:
        raise SourceUnavailable(
            f"Invalid S3 URI '{uri}': expected s3://bucket/prefix. "
            "Provide at least a bucket name."
        )
    return S3Location(bucket=bucket, prefix=prefix)
