"""Typed result rows for analytical queries."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal


@dataclass(frozen=True)
class TitleRatingCount:
    """Rating count of one title."""

    movie_id: int
    title: str
    ratings_count: int


@dataclass(frozen=True)
class UserRatingCount:
    """Rating count of one user."""

    user_id: int
    ratings_count: int


@dataclass(frozen=True)
class YearRatingCount:
    """Ratings made during one UTC calendar year."""

    year: int
    ratings_count: int


@dataclass(frozen=True)
class TagUsage:
    """Uses of one normalized tag."""

    tag: str
    uses: int


@dataclass(frozen=True)
class RatedTitle:
    """Mean score of a title with enough ratings."""

    movie_id: int
    title: str
    ratings_count: int
    mean_score: Decimal


@dataclass(frozen=True)
class ScoreShare:
    """Count and percentage share of one score value."""

    score: Decimal
    count: int
    percentage: Decimal


@dataclass(frozen=True)
class GenrePopularity:
    """Ratings attributed to one leading genre."""

    genre: str
    titles_count: int
    ratings_count: int
    mean_score: Decimal


@dataclass(frozen=True)
class MonthlyEngagement:
    """Rating activity in one UTC calendar month."""

    year: int
    month: int
    active_users: int
    ratings_count: int
    mean_score: Decimal


@dataclass(frozen=True)
class TaggedTitle:
    """Tag activity of one title."""

    movie_id: int
    title: str
    unique_tags: int
    tag_applications: int


@dataclass(frozen=True)
class RatingStatistics:
    """Aggregate statistics over all ratings.

    Attributes:
        total_ratings: Rating rows.
        unique_users: Distinct rating users.
        titles_rated: Distinct rated title ids.
        min_score: Lowest stored score.
        max_score: Highest stored score.
        mean_score: Mean score rounded to 2 places.
        earliest: Calendar timestamp of the oldest rating.
        latest: Calendar timestamp of the newest rating.
    """

    total_ratings: int
    unique_users: int
    titles_rated: int
    min_score: Decimal | None
    max_score: Decimal | None
    mean_score: Decimal | None
    earliest: datetime | None
    latest: datetime | None


@dataclass(frozen=True)
class TagStatistics:
    """Aggregate statistics over all tags."""

    total_tags: int
    unique_tags: int
    users_who_tagged: int
    titles_tagged: int


@dataclass(frozen=True)
class TitleStatistics:
    """Aggregate statistics over all titles."""

    total_titles: int
    unique_genre_combinations: int


@dataclass(frozen=True)
class DatasetSummary:
    """Row counts and summary statistics of the loaded store."""

    row_counts: dict[str, int]
    ratings: RatingStatistics
    tags: TagStatistics
    titles: TitleStatistics
