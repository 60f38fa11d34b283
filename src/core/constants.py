"""Core constants used across lens modules.

This module centralizes dataset names, field layouts, and defaults.
Keeping values here avoids magic literals in business logic.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path

DEFAULT_DATA_ROOT = Path(".lens")
DEFAULT_DATABASE_FILE_NAME = "movielens.db"
DEFAULT_MIN_RATING_COUNT = 50
DEFAULT_BATCH_SIZE = 5000
DEFAULT_FIELD_DELIMITER = ","
DEFAULT_HEADER_ROWS = 1
GENRE_DELIMITER = "|"
NULL_MARKERS = ("\\N", "NULL", "null")
UNIX_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

MIN_SCORE = Decimal("0.5")
MAX_SCORE = Decimal("5.0")
SCORE_STEP = Decimal("0.5")
SCORE_QUANTUM = Decimal("0.1")
MEAN_QUANTUM = Decimal("0.01")
PERCENT_QUANTUM = Decimal("0.01")

MOVIES_TABLE = "movies"
RATINGS_TABLE = "ratings"
TAGS_TABLE = "tags"
LINKS_TABLE = "links"
ROOT_TABLES = (MOVIES_TABLE,)
DEPENDENT_TABLES = (LINKS_TABLE, RATINGS_TABLE, TAGS_TABLE)
LOAD_ORDER = ROOT_TABLES + DEPENDENT_TABLES

SOURCE_FILE_NAMES = {
    MOVIES_TABLE: "movies.csv",
    RATINGS_TABLE: "ratings.csv",
    TAGS_TABLE: "tags.csv",
    LINKS_TABLE: "links.csv",
}
SOURCE_FIELDS = {
    MOVIES_TABLE: ("movie_id", "title", "genres"),
    RATINGS_TABLE: ("user_id", "movie_id", "score", "ts_unix"),
    TAGS_TABLE: ("user_id", "movie_id", "tag", "ts_unix"),
    LINKS_TABLE: ("movie_id", "imdb_id", "tmdb_id"),
}
