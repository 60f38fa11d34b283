"""Integrity check implementations.

Each check runs one read-only query and returns the number of offending
rows. Orphan checks use outer joins over the indexed ``movie_id`` columns
instead of per-row lookups.
"""

from __future__ import annotations

from typing import Callable

from sqlalchemy import ColumnElement, Table, func, or_, select
from sqlalchemy.engine import Connection
from sqlalchemy.sql import Select

from core.scores import is_valid_score, to_score
from store.schema import links, movies, ratings, tags

CheckCallable = Callable[[Connection], int]
CheckRow = tuple[str, str, str, CheckCallable]


def build_checks() -> tuple[CheckRow, ...]:
    """Build the ordered integrity check list."""
    return (
        ("I001", "null_movie_ids", "Null title ids", check_null_movie_ids),
        ("I002", "null_rating_keys", "Null rating keys", check_null_rating_keys),
        ("I003", "null_tag_keys", "Null tag keys", check_null_tag_keys),
        ("I004", "null_link_ids", "Null link ids", check_null_link_ids),
        ("I005", "invalid_ratings", "Scores outside 0.5..5.0 step 0.5", check_invalid_ratings),
        ("I006", "orphaned_ratings", "Ratings without a title", check_orphaned_ratings),
        ("I007", "orphaned_tags", "Tags without a title", check_orphaned_tags),
        ("I008", "orphaned_links", "Links without a title", check_orphaned_links),
        (
            "I009",
            "duplicate_rating_keys",
            "Repeated (user, title, timestamp) ratings",
            check_duplicate_rating_keys,
        ),
    )


def check_null_movie_ids(connection: Connection) -> int:
    """Count titles without a primary key value."""
    return _count(connection, _count_where(movies, movies.c.movie_id.is_(None)))


def check_null_rating_keys(connection: Connection) -> int:
    """Count ratings missing any component of their composite key."""
    condition = or_(
        ratings.c.user_id.is_(None),
        ratings.c.movie_id.is_(None),
        ratings.c.ts_unix.is_(None),
    )
    return _count(connection, _count_where(ratings, condition))


def check_null_tag_keys(connection: Connection) -> int:
    """Count tags missing their user, title or timestamp."""
    condition = or_(
        tags.c.user_id.is_(None),
        tags.c.movie_id.is_(None),
        tags.c.ts_unix.is_(None),
    )
    return _count(connection, _count_where(tags, condition))


def check_null_link_ids(connection: Connection) -> int:
    """Count links without a title id."""
    return _count(connection, _count_where(links, links.c.movie_id.is_(None)))


def check_invalid_ratings(connection: Connection) -> int:
    """Count ratings whose score is not in the discrete valid set.

    Scores are grouped in the database and judged with exact decimal
    arithmetic, so the check is independent of the backend's numeric type.
    """
    statement = select(ratings.c.score, func.count()).group_by(ratings.c.score)
    invalid = 0
    for score, count in connection.execute(statement):
        if score is None or not is_valid_score(to_score(score)):
            invalid += int(count)
    return invalid


def check_orphaned_ratings(connection: Connection) -> int:
    """Count ratings whose title id has no matching title."""
    return _count(connection, _orphans(ratings))


def check_orphaned_tags(connection: Connection) -> int:
    """Count tags whose title id has no matching title."""
    return _count(connection, _orphans(tags))


def check_orphaned_links(connection: Connection) -> int:
    """Count links whose title id has no matching title."""
    return _count(connection, _orphans(links))


def check_duplicate_rating_keys(connection: Connection) -> int:
    """Count ratings beyond the first for each (user, title, timestamp)."""
    groups = (
        select((func.count() - 1).label("extra"))
        .select_from(ratings)
        .group_by(ratings.c.user_id, ratings.c.movie_id, ratings.c.ts_unix)
        .having(func.count() > 1)
        .subquery()
    )
    return _count(connection, select(func.coalesce(func.sum(groups.c.extra), 0)))


def _count_where(table: Table, condition: ColumnElement[bool]) -> Select:
    return select(func.count()).select_from(table).where(condition)


def _orphans(table: Table) -> Select:
    joined = table.outerjoin(movies, table.c.movie_id == movies.c.movie_id)
    return select(func.count()).select_from(joined).where(movies.c.movie_id.is_(None))


def _count(connection: Connection, statement: Select) -> int:
    return int(connection.scalar(statement) or 0)
