"""Unit tests for delimited source reading."""

from __future__ import annotations

import sys

import pytest

from core.errors import LensDependencyError, SourceUnavailable
from ingest import source_reader
from ingest.source_reader import open_source
from tests.fixture_paths import fixture_path
from tests.lens_helpers import build_test_config


def test_open_source_skips_header_row(tmp_path) -> None:
    """Reader should yield data rows only."""
    config = build_test_config(tmp_path)
    source = open_source(str(fixture_path("movielens_small")), "movies", config)

    rows = list(source)

    assert len(rows) == 5 and rows[0].line_number == 2


def test_open_source_honors_quoted_fields(tmp_path) -> None:
    """Quoted fields with embedded delimiters should stay whole."""
    config = build_test_config(tmp_path)
    source = open_source(str(fixture_path("movielens_small")), "movies", config)

    titles = [row.values[1] for row in source]

    assert "American President, The (1995)" in titles


def test_source_is_restartable(tmp_path) -> None:
    """Iterating twice should yield the same rows."""
    config = build_test_config(tmp_path)
    source = open_source(str(fixture_path("movielens_small")), "ratings", config)

    assert list(source) == list(source)


def test_header_only_source_yields_nothing(tmp_path) -> None:
    """A header-only file should be a valid, empty source."""
    source = open_source(
        str(fixture_path("movielens_header_only")),
        "tags",
        build_test_config(tmp_path),
    )

    assert list(source) == []


def test_missing_source_raises(tmp_path) -> None:
    """Missing files should fail before any row is read."""
    with pytest.raises(SourceUnavailable):
        open_source(str(tmp_path / "missing"), "movies", build_test_config(tmp_path))


def test_unknown_source_name_raises(tmp_path) -> None:
    """Unknown entity names should be rejected."""
    with pytest.raises(SourceUnavailable):
        open_source(str(fixture_path("movielens_small")), "genome", build_test_config(tmp_path))


def test_undecodable_source_raises_on_read(tmp_path) -> None:
    """Non-UTF-8 bytes should surface as an unavailable source."""
    (tmp_path / "movies.csv").write_bytes(b"movieId,title,genres\n1,\xff\xfe,Drama\n")
    source = open_source(str(tmp_path), "movies", build_test_config(tmp_path / "data"))

    with pytest.raises(SourceUnavailable):
        list(source)


class _FakeBody:
    def __init__(self, payload: bytes) -> None:
        self._payload = payload

    def read(self) -> bytes:
        return self._payload


class _FakeS3Client:
    def __init__(self, objects: dict[str, bytes]) -> None:
        self._objects = objects
        self.requested: list[tuple[str, str]] = []

    def get_object(self, Bucket: str, Key: str) -> dict[str, _FakeBody]:
        self.requested.append((Bucket, Key))
        if Key not in self._objects:
            raise KeyError(Key)
        return {"Body": _FakeBody(self._objects[Key])}


def test_s3_source_reads_object_under_prefix(tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:
    """S3 sources should read the entity file under the given prefix."""
    fake_client = _FakeS3Client({"ml/movies.csv": b"movieId,title,genres\n1,Heat (1995),Action\n"})
    monkeypatch.setattr(source_reader, "_create_s3_client", lambda config: fake_client)

    rows = list(open_source("s3://bucket/ml", "movies", build_test_config(tmp_path)))

    assert rows[0].values == ("1", "Heat (1995)", "Action")


def test_s3_source_missing_object_raises(tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Missing S3 objects should fail as unavailable sources."""
    monkeypatch.setattr(source_reader, "_create_s3_client", lambda config: _FakeS3Client({}))

    with pytest.raises(SourceUnavailable):
        open_source("s3://bucket/ml", "movies", build_test_config(tmp_path))


def test_s3_client_requires_boto3(tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:
    """A missing boto3 install should raise a dependency error."""
    monkeypatch.setitem(sys.modules, "boto3", None)

    with pytest.raises(LensDependencyError):
        source_reader._create_s3_client(build_test_config(tmp_path))
