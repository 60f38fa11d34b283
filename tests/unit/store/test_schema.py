"""Unit tests for schema definition."""

from __future__ import annotations

import pytest
from sqlalchemy import inspect
from sqlalchemy.exc import OperationalError

from core.errors import SchemaError
from store.lens_store import create_store_engine
from store.schema import METADATA, define_schema, schema_exists
from tests.lens_helpers import build_loaded_client


def test_define_schema_creates_all_tables(tmp_path) -> None:
    """Schema definition should create the four entity tables."""
    engine = create_store_engine(f"sqlite:///{tmp_path / 'schema.db'}")

    define_schema(engine)

    assert set(inspect(engine).get_table_names()) == {"movies", "ratings", "tags", "links"}


def test_schema_missing_before_definition(tmp_path) -> None:
    """A fresh database should report no schema."""
    engine = create_store_engine(f"sqlite:///{tmp_path / 'empty.db'}")

    assert not schema_exists(engine)


def test_define_schema_twice_leaves_empty_tables(tmp_path) -> None:
    """Repeated resets should leave a valid, empty schema."""
    client = build_loaded_client(tmp_path)

    client.define_schema()
    client.define_schema()

    assert client.row_counts() == {"movies": 0, "links": 0, "ratings": 0, "tags": 0}


def test_ratings_primary_key_is_user_title_timestamp(tmp_path) -> None:
    """Ratings should be keyed by user, title and timestamp."""
    engine = create_store_engine(f"sqlite:///{tmp_path / 'schema.db'}")
    define_schema(engine)

    primary_key = inspect(engine).get_pk_constraint("ratings")["constrained_columns"]

    assert set(primary_key) == {"user_id", "movie_id", "ts_unix"}


def test_dependents_declare_title_foreign_keys(tmp_path) -> None:
    """Ratings, tags and links should reference the titles table."""
    engine = create_store_engine(f"sqlite:///{tmp_path / 'schema.db'}")
    define_schema(engine)
    inspector = inspect(engine)

    referred = {
        name: inspector.get_foreign_keys(name)[0]["referred_table"]
        for name in ("ratings", "tags", "links")
    }

    assert set(referred.values()) == {"movies"}


def _fail_create_all(*_args, **_kwargs) -> None:
    raise OperationalError("CREATE TABLE movies", {}, Exception("disk I/O error"))


def test_failed_reset_raises_schema_error(tmp_path, monkeypatch) -> None:
    """A reset that fails after dropping tables should raise a schema error."""
    client = build_loaded_client(tmp_path)
    monkeypatch.setattr(METADATA, "create_all", _fail_create_all)

    with pytest.raises(SchemaError):
        client.define_schema()


def test_failed_reset_keeps_prior_rows(tmp_path, monkeypatch) -> None:
    """A failed reset should roll back the drop and keep every loaded row."""
    client = build_loaded_client(tmp_path)
    monkeypatch.setattr(METADATA, "create_all", _fail_create_all)

    with pytest.raises(SchemaError):
        client.define_schema()

    assert client.row_counts() == {"movies": 5, "links": 5, "ratings": 7, "tags": 6}
