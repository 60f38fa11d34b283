"""Relational data store for the movie datasets.

This module wraps a SQLAlchemy engine behind the operations the rest of
the system needs: schema reset, batched inserts, read-only connections,
row counts, entity reads, and the guarded title deletion policy.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterator, Mapping, Sequence

from sqlalchemy import create_engine, delete, event, func, select
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from core.config import LensConfig
from core.constants import DEPENDENT_TABLES, LOAD_ORDER
from core.errors import DuplicateKeyError, IntegrityViolation, LensStoreError
from core.logging_config import get_logger
from core.scores import to_score
from core.types import Link, Rating, Tag, Title
from store.schema import TABLES, define_schema, links, movies, ratings, schema_exists, tags

_LOGGER = get_logger(__name__)

_SESSION_FOREIGN_KEYS_OFF = {
    "sqlite": "PRAGMA foreign_keys=OFF",
    "mysql": "SET FOREIGN_KEY_CHECKS=0",
    "mariadb": "SET FOREIGN_KEY_CHECKS=0",
}
# SQLSTATE for PostgreSQL and friends, server error number for MySQL.
_UNIQUE_VIOLATION_CODES = ("23505", 1062)
_UNIQUE_VIOLATION_MARKERS = ("unique", "duplicate", "primary key")


def create_store_engine(database_url: str) -> Engine:
    """Create an engine with transactional DDL and load-time foreign keys off.

    pysqlite commits DDL implicitly, so SQLite engines take over
    transaction control and emit BEGIN themselves. Foreign keys are
    declared in the schema but checked by the integrity verifier, so
    backends that can switch enforcement off per session do so.

    Args:
        database_url: SQLAlchemy database URL.

    Returns:
        Configured engine.
    """
    engine = create_engine(database_url)
    if engine.dialect.name == "sqlite":
        _enable_sqlite_transactions(engine)
    if engine.dialect.name in _SESSION_FOREIGN_KEYS_OFF:
        _disable_session_foreign_keys(engine, _SESSION_FOREIGN_KEYS_OFF[engine.dialect.name])
    return engine


def _enable_sqlite_transactions(engine: Engine) -> None:
    @event.listens_for(engine, "connect")
    def _disable_driver_transactions(dbapi_connection: Any, _record: Any) -> None:
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(connection: Connection) -> None:
        connection.exec_driver_sql("BEGIN")


def _disable_session_foreign_keys(engine: Engine, statement: str) -> None:
    @event.listens_for(engine, "connect")
    def _foreign_keys_off(dbapi_connection: Any, _record: Any) -> None:
        cursor = dbapi_connection.cursor()
        try:
            cursor.execute(statement)
        finally:
            cursor.close()


class LensStore:
    """SQLAlchemy-backed store for titles, ratings, tags and links.

    Foreign keys are declared in the schema but not enforced while rows
    are inserted; the integrity verifier checks them after a load.
    """

    def __init__(self, engine: Engine) -> None:
        """Initialize store over an engine.

        Args:
            engine: Target database engine.
        """
        self._engine = engine

    @classmethod
    def from_config(cls, config: LensConfig) -> "LensStore":
        """Create a store for the configured database URL."""
        if config.database_url.startswith("sqlite:///"):
            config.data_root.mkdir(parents=True, exist_ok=True)
        return cls(create_store_engine(config.database_url))

    @property
    def engine(self) -> Engine:
        """Underlying SQLAlchemy engine."""
        return self._engine

    def define_schema(self) -> None:
        """Destroy all stored data and recreate the four empty tables.

        Raises:
            SchemaError: If the reset fails; prior state is kept.
        """
        define_schema(self._engine)

    def has_schema(self) -> bool:
        """Return whether every entity table exists."""
        return schema_exists(self._engine)

    def bulk_insert(self, entity: str, rows: Sequence[Mapping[str, object]]) -> int:
        """Insert one batch of rows in a single transaction.

        Args:
            entity: Table name.
            rows: Column-name keyed row mappings.

        Returns:
            Number of rows inserted.

        Raises:
            DuplicateKeyError: If a row collides with a stored primary key.
            LensStoreError: If the insert fails for any other reason.
        """
        if not rows:
            return 0
        table = _table_for(entity)
        try:
            with self._engine.begin() as connection:
                connection.execute(table.insert(), list(rows))
        except IntegrityError as error:
            if _is_unique_violation(error):
                raise DuplicateKeyError(
                    f"Failed to insert into {entity}: a primary key already exists "
                    f"in the store ({error.orig}). Reset the schema before reloading.",
                    entity=entity,
                    key=(),
                ) from error
            raise LensStoreError(
                f"Failed to insert into {entity}: the store rejected the batch with a "
                f"constraint other than a key collision ({error.orig}). Foreign keys are "
                "checked by verify; relax enforcement on this backend to load orphans."
            ) from error
        except SQLAlchemyError as error:
            raise LensStoreError(
                f"Failed to insert {len(rows)} rows into {entity}: {error}."
            ) from error
        return len(rows)

    @contextmanager
    def connect(self) -> Iterator[Connection]:
        """Open a read connection that is always rolled back."""
        try:
            with self._engine.connect() as connection:
                yield connection
                connection.rollback()
        except SQLAlchemyError as error:
            raise LensStoreError(f"Failed to query the store: {error}.") from error

    def get_title(self, movie_id: int) -> Title | None:
        """Read one title, or None when it is not stored."""
        statement = select(movies.c.movie_id, movies.c.title, movies.c.genres).where(
            movies.c.movie_id == movie_id
        )
        with self.connect() as connection:
            row = connection.execute(statement).first()
        if row is None:
            return None
        return Title(movie_id=row[0], title=row[1], genres=row[2])

    def list_ratings(self, movie_id: int | None = None) -> list[Rating]:
        """Read ratings, optionally for one title, ordered by time then user."""
        statement = select(
            ratings.c.user_id, ratings.c.movie_id, ratings.c.score, ratings.c.ts_unix
        ).order_by(ratings.c.ts_unix, ratings.c.user_id, ratings.c.movie_id)
        if movie_id is not None:
            statement = statement.where(ratings.c.movie_id == movie_id)
        with self.connect() as connection:
            return [
                Rating(user_id=row[0], movie_id=row[1], score=to_score(row[2]), ts_unix=row[3])
                for row in connection.execute(statement)
            ]

    def list_tags(self, movie_id: int | None = None) -> list[Tag]:
        """Read tags with their text as stored, in insertion order."""
        statement = select(tags.c.user_id, tags.c.movie_id, tags.c.tag, tags.c.ts_unix).order_by(
            tags.c.tag_row_id
        )
        if movie_id is not None:
            statement = statement.where(tags.c.movie_id == movie_id)
        with self.connect() as connection:
            return [
                Tag(user_id=row[0], movie_id=row[1], tag=row[2], ts_unix=row[3])
                for row in connection.execute(statement)
            ]

    def get_link(self, movie_id: int) -> Link | None:
        """Read the external identifiers of one title."""
        statement = select(links.c.movie_id, links.c.imdb_id, links.c.tmdb_id).where(
            links.c.movie_id == movie_id
        )
        with self.connect() as connection:
            row = connection.execute(statement).first()
        if row is None:
            return None
        return Link(movie_id=row[0], imdb_id=row[1], tmdb_id=row[2])

    def row_counts(self) -> dict[str, int]:
        """Count rows in every entity table, in load order."""
        with self.connect() as connection:
            return {
                name: int(connection.scalar(select(func.count()).select_from(TABLES[name])) or 0)
                for name in LOAD_ORDER
            }

    def delete_title(self, movie_id: int) -> bool:
        """Delete a title that no dependent row references.

        Deletion is refused rather than cascaded: ratings, tags and links
        keep their referenced title.

        Args:
            movie_id: Title primary key.

        Returns:
            True when a title was deleted, False when it did not exist.

        Raises:
            IntegrityViolation: If dependents reference the title.
        """
        with self._engine.begin() as connection:
            dependents = _count_dependents(connection, movie_id)
            if any(dependents.values()):
                raise IntegrityViolation(
                    f"Refusing to delete title {movie_id}: it is referenced by "
                    + ", ".join(f"{count} {name}" for name, count in dependents.items() if count)
                    + ". Delete or reload the dependents first.",
                    counts=dependents,
                )
            result = connection.execute(delete(movies).where(movies.c.movie_id == movie_id))
        deleted = bool(result.rowcount)
        _LOGGER.info("title_deleted", movie_id=movie_id, deleted=deleted)
        return deleted


def _table_for(entity: str) -> Any:
    try:
        return TABLES[entity]
    except KeyError as error:
        raise LensStoreError(
            f"Unknown entity '{entity}'. Expected one of: {', '.join(sorted(TABLES))}."
        ) from error


def _is_unique_violation(error: IntegrityError) -> bool:
    orig = error.orig
    for code in (
        getattr(orig, "pgcode", None),
        getattr(orig, "sqlstate", None),
        getattr(orig, "errno", None),
        (getattr(orig, "args", None) or (None,))[0],
    ):
        if code in _UNIQUE_VIOLATION_CODES:
            return True
    message = str(orig).lower()
    if "foreign key" in message:
        return False
    return any(marker in message for marker in _UNIQUE_VIOLATION_MARKERS)


def _count_dependents(connection: Connection, movie_id: int) -> dict[str, int]:
    counts: dict[str, int] = {}
    for name in DEPENDENT_TABLES:
        table = TABLES[name]
        statement = select(func.count()).select_from(table).where(table.c.movie_id == movie_id)
        counts[name] = int(connection.scalar(statement) or 0)
    return counts

