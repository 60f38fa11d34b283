"""Delimited source readers for ingestion.

This module opens the per-entity delimited files from a local directory
or an S3 prefix and exposes them as lazy, restartable row sequences.
"""

from __future__ import annotations

import csv
import io
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Iterator, TextIO

from core.config import LensConfig
from core.constants import (
    DEFAULT_FIELD_DELIMITER,
    DEFAULT_HEADER_ROWS,
    SOURCE_FIELDS,
    SOURCE_FILE_NAMES,
)
from core.errors import LensDependencyError, SourceUnavailable
from core.s3_uri import S3Location, parse_s3_uri


@dataclass(frozen=True)
class SourceRow:
    """One raw data row with its one-based record number."""

    line_number: int
    values: tuple[str, ...]


@dataclass(frozen=True)
class DelimitedSource:
    """Lazy, finite, restartable sequence of raw string rows.

    Attributes:
        name: Entity name the source feeds.
        uri: Location of the source for messages.
        fields: Declared field order.
        opener: Callable returning a fresh text stream on each iteration.
        header_rows: Leading rows to skip.
        delimiter: Field delimiter.
    """

    name: str
    uri: str
    fields: tuple[str, ...]
    opener: Callable[[], TextIO]
    header_rows: int = DEFAULT_HEADER_ROWS
    delimiter: str = DEFAULT_FIELD_DELIMITER

    def __iter__(self) -> Iterator[SourceRow]:
        with self.opener() as stream:
            reader = csv.reader(stream, delimiter=self.delimiter)
            try:
                for record_number, values in enumerate(reader, 1):
                    if record_number <= self.header_rows:
                        continue
                    if not values:
                        continue
                    yield SourceRow(line_number=record_number, values=tuple(values))
            except (UnicodeDecodeError, csv.Error) as error:
                raise SourceUnavailable(
                    f"Failed to read source {self.uri}: {error}. "
                    "Provide a UTF-8 encoded delimited file."
                ) from error


def open_source(source_root: str, name: str, config: LensConfig) -> DelimitedSource:
    """Open the delimited source of one entity.

    Args:
        source_root: Local directory or ``s3://`` prefix.
        name: Entity name, e.g. ``ratings``.
        config: Runtime configuration for S3 session defaults.

    Returns:
        Restartable source over the entity file.

    Raises:
        SourceUnavailable: If the source is missing or unreadable.
    """
    if name not in SOURCE_FILE_NAMES:
        raise SourceUnavailable(
            f"Unknown source '{name}'. Expected one of: {', '.join(sorted(SOURCE_FILE_NAMES))}."
        )
    file_name = SOURCE_FILE_NAMES[name]
    if source_root.startswith("s3://"):
        return _open_s3_source(parse_s3_uri(source_root), name, file_name, config)
    return _open_local_source(Path(source_root).expanduser(), name, file_name)


def _open_local_source(source_root: Path, name: str, file_name: str) -> DelimitedSource:
    """Open a source file from the local file system.

    Args:
        source_root: Directory holding the dataset files.
        name: Entity name.
        file_name: File name under the root.

    Returns:
        Source reading the file lazily.

    Raises:
        SourceUnavailable: If the file is missing.
    """
    file_path = source_root / file_name
    if not file_path.is_file():
        raise SourceUnavailable(
            f"Failed to read source at {file_path}: path does not exist. "
            f"Place {file_name} under {source_root}."
        )

    def _open() -> TextIO:
        return file_path.open("r", encoding="utf-8-sig", newline="")

    return DelimitedSource(
        name=name,
        uri=str(file_path),
        fields=SOURCE_FIELDS[name],
        opener=_open,
    )


def _open_s3_source(
    location: S3Location,
    name: str,
    file_name: str,
    config: LensConfig,
) -> DelimitedSource:
    """Download a source object once and serve it from memory.

    Args:
        location: Bucket and prefix holding the dataset files.
        name: Entity name.
        file_name: Object name under the prefix.
        config: Runtime config containing optional profile/region.

    Returns:
        Source reading the downloaded body.

    Raises:
        SourceUnavailable: If the object cannot be fetched or decoded.
    """
    key = location.key_for(file_name)
    uri = f"s3://{location.bucket}/{key}"
    s3_client = _create_s3_client(config)
    body = _download_text(s3_client, location.bucket, key, uri)

    def _open() -> TextIO:
        return io.StringIO(body, newline="")

    return DelimitedSource(name=name, uri=uri, fields=SOURCE_FIELDS[name], opener=_open)


def _download_text(s3_client: Any, bucket: str, key: str, uri: str) -> str:
    """Fetch and decode one S3 object body."""
    try:
        payload = s3_client.get_object(Bucket=bucket, Key=key)["Body"].read()
    except Exception as error:
        raise SourceUnavailable(
            f"Failed to read source at {uri}: {error}. "
            "Check that the object exists and credentials allow reading it."
        ) from error
    try:
        return payload.decode("utf-8-sig")
    except UnicodeDecodeError as error:
        raise SourceUnavailable(
            f"Failed to decode source at {uri}: {error}. Upload UTF-8 encoded files."
        ) from error


def _create_s3_client(config: LensConfig) -> Any:
    """Create a boto3 S3 client.

    Args:
        config: Runtime config containing optional profile/region.

    Returns:
        Boto3 S3 client.

    Raises:
        LensDependencyError: If boto3 is missing.
    """
    try:
        import boto3
    except ImportError as error:
        raise LensDependencyError(
            "S3 support requires boto3, but it is not installed. "
            "Install boto3 to load from s3:// sources."
        ) from error
    session_kwargs = _build_boto3_session_kwargs(config)
    session = boto3.session.Session(**session_kwargs)
    return session.client("s3")


def _build_boto3_session_kwargs(config: LensConfig) -> dict[str, str]:
    """Build boto3 Session kwargs from config."""
    kwargs: dict[str, str] = {}
    if config.s3_profile:
        kwargs["profile_name"] = config.s3_profile
    if config.s3_region:
        kwargs["region_name"] = config.s3_region
    return kwargs
