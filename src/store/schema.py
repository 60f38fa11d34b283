"""Relational schema for the movie datasets.

This module declares the four entity tables and their constraints, and
owns the destructive, transactional schema reset.
"""

from __future__ import annotations

from sqlalchemy import (
    BigInteger,
    Column,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    Numeric,
    String,
    Table,
    inspect,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from core.constants import LINKS_TABLE, MOVIES_TABLE, RATINGS_TABLE, TAGS_TABLE
from core.errors import SchemaError
from core.logging_config import get_logger

_LOGGER = get_logger(__name__)

METADATA = MetaData()

movies = Table(
    MOVIES_TABLE,
    METADATA,
    Column("movie_id", Integer, primary_key=True, autoincrement=False),
    Column("title", String(255), nullable=False),
    # Pipe-separated labels, e.g. 'Adventure|Animation|Children'
    Column("genres", String(255), nullable=False),
)

ratings = Table(
    RATINGS_TABLE,
    METADATA,
    Column("user_id", Integer, primary_key=True, autoincrement=False),
    Column(
        "movie_id",
        Integer,
        ForeignKey(f"{MOVIES_TABLE}.movie_id"),
        primary_key=True,
        autoincrement=False,
    ),
    Column("score", Numeric(3, 1, asdecimal=False), nullable=False),
    Column("ts_unix", BigInteger, primary_key=True, autoincrement=False),
    Index("ix_ratings_movie", "movie_id"),
)

tags = Table(
    TAGS_TABLE,
    METADATA,
    Column("tag_row_id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", Integer, nullable=False),
    Column("movie_id", Integer, ForeignKey(f"{MOVIES_TABLE}.movie_id"), nullable=False),
    Column("tag", String(255), nullable=False),
    Column("ts_unix", BigInteger, nullable=False),
    Index("ix_tags_movie", "movie_id"),
)

links = Table(
    LINKS_TABLE,
    METADATA,
    Column(
        "movie_id",
        Integer,
        ForeignKey(f"{MOVIES_TABLE}.movie_id"),
        primary_key=True,
        autoincrement=False,
    ),
    Column("imdb_id", Integer, nullable=True),
    Column("tmdb_id", Integer, nullable=True),
)

TABLES = {
    MOVIES_TABLE: movies,
    RATINGS_TABLE: ratings,
    TAGS_TABLE: tags,
    LINKS_TABLE: links,
}

PRIMARY_KEY_FIELDS = {
    MOVIES_TABLE: ("movie_id",),
    RATINGS_TABLE: ("user_id", "movie_id", "ts_unix"),
    TAGS_TABLE: (),
    LINKS_TABLE: ("movie_id",),
}


def define_schema(engine: Engine) -> None:
    """Drop all entity tables and recreate them empty.

    This is a destructive reset, never a migration: every existing row is
    discarded. The drop and create run in one transaction so a failure
    leaves the previous schema in place.

    Args:
        engine: Target database engine.

    Raises:
        SchemaError: If the drop or create statements fail.
    """
    _LOGGER.warning("schema_reset_destroys_data", tables=sorted(TABLES))
    try:
        with engine.begin() as connection:
            METADATA.drop_all(connection)
            METADATA.create_all(connection)
    except SQLAlchemyError as error:
        raise SchemaError(
            f"Failed to reset schema on {engine.url.render_as_string(hide_password=True)}: "
            f"{error}. The previous schema was left in place."
        ) from error
    _LOGGER.info("schema_defined", tables=sorted(TABLES))


def schema_exists(engine: Engine) -> bool:
    """Return whether all entity tables exist in the database."""
    existing = set(inspect(engine).get_table_names())
    return set(TABLES) <= existing
