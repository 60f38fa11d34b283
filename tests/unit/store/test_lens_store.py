"""Unit tests for the relational store."""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

import pytest
from sqlalchemy import event

from core.errors import DuplicateKeyError, IntegrityViolation, LensStoreError
from store.lens_store import LensStore, create_store_engine
from tests.lens_helpers import build_client, build_loaded_client


def test_bulk_insert_returns_inserted_count(tmp_path) -> None:
    """Bulk insert should report how many rows were written."""
    client = build_client(tmp_path)

    inserted = client.store.bulk_insert(
        "movies",
        [
            {"movie_id": 1, "title": "Heat (1995)", "genres": "Action"},
            {"movie_id": 2, "title": "Casino (1995)", "genres": "Crime"},
        ],
    )

    assert inserted == 2


def test_bulk_insert_empty_batch_is_noop(tmp_path) -> None:
    """Empty batches should insert nothing."""
    client = build_client(tmp_path)

    assert client.store.bulk_insert("movies", []) == 0


def test_bulk_insert_existing_key_raises_duplicate(tmp_path) -> None:
    """Inserting a stored primary key should raise rather than upsert."""
    client = build_client(tmp_path)
    row = {"movie_id": 1, "title": "Heat (1995)", "genres": "Action"}
    client.store.bulk_insert("movies", [row])

    with pytest.raises(DuplicateKeyError):
        client.store.bulk_insert("movies", [row])


def test_failed_batch_is_rolled_back(tmp_path) -> None:
    """A failing batch should leave none of its rows behind."""
    client = build_client(tmp_path)
    client.store.bulk_insert("movies", [{"movie_id": 1, "title": "A", "genres": "Drama"}])

    with pytest.raises(DuplicateKeyError):
        client.store.bulk_insert(
            "movies",
            [
                {"movie_id": 2, "title": "B", "genres": "Drama"},
                {"movie_id": 1, "title": "A", "genres": "Drama"},
            ],
        )

    assert client.row_counts()["movies"] == 1


def test_bulk_insert_accepts_orphaned_dependents(tmp_path) -> None:
    """Foreign keys should not be enforced while rows are inserted."""
    client = build_client(tmp_path)

    inserted = client.store.bulk_insert(
        "ratings",
        [{"user_id": 1, "movie_id": 99, "score": Decimal("4.0"), "ts_unix": 964982703}],
    )

    assert inserted == 1


def test_bulk_insert_unknown_entity_raises(tmp_path) -> None:
    """Unknown entity names should be rejected."""
    client = build_client(tmp_path)

    with pytest.raises(LensStoreError):
        client.store.bulk_insert("genome", [{"movie_id": 1}])


def test_delete_title_with_dependents_is_refused(tmp_path) -> None:
    """Titles referenced by dependents should not be deleted."""
    client = build_loaded_client(tmp_path)

    with pytest.raises(IntegrityViolation) as error_info:
        client.delete_title(1)

    assert error_info.value.counts == {"links": 1, "ratings": 3, "tags": 4}


def test_refused_delete_keeps_title(tmp_path) -> None:
    """A refused deletion should leave the title in place."""
    client = build_loaded_client(tmp_path)

    with pytest.raises(IntegrityViolation):
        client.delete_title(1)

    assert client.row_counts()["movies"] == 5


def test_delete_unreferenced_title(tmp_path) -> None:
    """Titles without dependents should be deletable."""
    client = build_client(tmp_path)
    sabrina = {"movie_id": 7, "title": "Sabrina (1995)", "genres": "Comedy"}
    client.store.bulk_insert("movies", [sabrina])

    assert client.delete_title(7) is True and client.row_counts()["movies"] == 0


def test_delete_missing_title_returns_false(tmp_path) -> None:
    """Deleting an unknown title should report that nothing was deleted."""
    client = build_client(tmp_path)

    assert client.delete_title(404) is False


def test_read_connection_on_missing_schema_raises_store_error(tmp_path) -> None:
    """Queries against a missing schema should raise a store error."""
    client = build_client(tmp_path)
    client.store.engine.dispose()
    (tmp_path / "movielens.db").unlink()

    with pytest.raises(LensStoreError):
        client.row_counts()


def _enforce_sqlite_foreign_keys(engine) -> None:
    @event.listens_for(engine, "connect")
    def _foreign_keys_on(dbapi_connection, _record) -> None:
        dbapi_connection.execute("PRAGMA foreign_keys=ON")


def test_store_sessions_leave_foreign_keys_unenforced(tmp_path) -> None:
    """Store connections should not enforce foreign keys during loads."""
    engine = create_store_engine(f"sqlite:///{tmp_path / 'fk.db'}")

    with engine.connect() as connection:
        enforced = connection.exec_driver_sql("PRAGMA foreign_keys").scalar()

    assert enforced == 0


def test_enforced_foreign_key_failure_is_store_error(tmp_path) -> None:
    """A rejected orphan should raise a store error, not a duplicate key error."""
    engine = create_store_engine(f"sqlite:///{tmp_path / 'fk.db'}")
    _enforce_sqlite_foreign_keys(engine)
    store = LensStore(engine)
    store.define_schema()
    orphan = {"user_id": 1, "movie_id": 99, "score": Decimal("4.0"), "ts_unix": 964982703}

    with pytest.raises(LensStoreError) as error_info:
        store.bulk_insert("ratings", [orphan])

    assert "FOREIGN KEY" in str(error_info.value)


def test_get_title_parses_genre_labels(tmp_path) -> None:
    """A stored title should read back with its category labels."""
    title = build_loaded_client(tmp_path).get_title(4)

    assert title.genre_labels == ["Action", "Crime", "Thriller"]


def test_get_missing_title_returns_none(tmp_path) -> None:
    """Unknown titles should read back as absent."""
    assert build_loaded_client(tmp_path).get_title(404) is None


def test_ratings_for_title_in_time_order(tmp_path) -> None:
    """Ratings of one title should be ordered by time, then user."""
    ratings = build_loaded_client(tmp_path).ratings_for(1)

    assert [(row.user_id, row.score) for row in ratings] == [
        (2, Decimal("4.0")),
        (1, Decimal("4.0")),
        (3, Decimal("5.0")),
    ]


def test_rating_projects_utc_timestamp(tmp_path) -> None:
    """A read rating should expose its UTC calendar timestamp."""
    earliest = build_loaded_client(tmp_path).ratings_for()[0]

    assert earliest.rated_at == datetime(1999, 12, 31, 23, 59, 59, tzinfo=timezone.utc)


def test_tags_for_title_keep_stored_text(tmp_path) -> None:
    """Tags should read back exactly as loaded."""
    tags = build_loaded_client(tmp_path).tags_for(1)

    assert [row.tag for row in tags] == ["Funny", " funny ", "FUNNY", "pixar"]


def test_get_link_with_absent_identifiers(tmp_path) -> None:
    """Blank and null-marker identifiers should read back as None."""
    link = build_loaded_client(tmp_path).get_link(3)

    assert (link.imdb_id, link.tmdb_id) == (None, None)
