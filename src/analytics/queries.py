"""Read-only analytical queries over the loaded store.

Every ranking orders by its declared tie-break fields, so results are
identical for identical data regardless of insertion order. Means and
percentages are computed with exact decimal arithmetic and rounded half
up to two places.
"""

from __future__ import annotations

from collections import Counter, defaultdict
from decimal import Decimal
from typing import Iterable

from sqlalchemy import distinct, func, select
from sqlalchemy.engine import Connection

from core.analytics_types import (
    DatasetSummary,
    GenrePopularity,
    MonthlyEngagement,
    RatedTitle,
    RatingStatistics,
    ScoreShare,
    TaggedTitle,
    TagStatistics,
    TagUsage,
    TitleRatingCount,
    TitleStatistics,
    UserRatingCount,
    YearRatingCount,
)
from core.constants import DEFAULT_MIN_RATING_COUNT, MEAN_QUANTUM, PERCENT_QUANTUM
from core.errors import QueryError
from core.scores import round_half_up, to_score
from core.timestamps import epoch_to_datetime
from core.types import Title
from analytics.calendar_buckets import month_expression, split_month_label, year_expression
from store.lens_store import LensStore
from store.schema import movies, ratings, tags


class AnalyticsQueries:
    """Aggregation and ranking operations over one store."""

    def __init__(
        self,
        store: LensStore,
        min_rating_count: int = DEFAULT_MIN_RATING_COUNT,
    ) -> None:
        """Create a query layer.

        Args:
            store: Loaded data store.
            min_rating_count: Default threshold for ``top_rated_titles``.
        """
        self._store = store
        self._min_rating_count = _require_threshold(min_rating_count)

    def top_titles_by_rating_count(self, n: int) -> list[TitleRatingCount]:
        """Rank titles by rating count; ties by title name, then id."""
        _require_top_n(n)
        ratings_count = func.count().label("ratings_count")
        statement = (
            select(movies.c.movie_id, movies.c.title, ratings_count)
            .select_from(ratings.join(movies, movies.c.movie_id == ratings.c.movie_id))
            .group_by(movies.c.movie_id, movies.c.title)
            .order_by(ratings_count.desc(), movies.c.title.asc(), movies.c.movie_id.asc())
            .limit(n)
        )
        with self._store.connect() as connection:
            return [
                TitleRatingCount(movie_id=row[0], title=row[1], ratings_count=int(row[2]))
                for row in connection.execute(statement)
            ]

    def top_users_by_rating_count(self, n: int) -> list[UserRatingCount]:
        """Rank users by rating count; ties by ascending user id."""
        _require_top_n(n)
        ratings_count = func.count().label("ratings_count")
        statement = (
            select(ratings.c.user_id, ratings_count)
            .group_by(ratings.c.user_id)
            .order_by(ratings_count.desc(), ratings.c.user_id.asc())
            .limit(n)
        )
        with self._store.connect() as connection:
            return [
                UserRatingCount(user_id=row[0], ratings_count=int(row[1]))
                for row in connection.execute(statement)
            ]

    def ratings_per_year(self) -> list[YearRatingCount]:
        """Count ratings per UTC calendar year, ascending."""
        bucket = year_expression(ratings.c.ts_unix)
        statement = select(bucket, func.count()).group_by(bucket)
        with self._store.connect() as connection:
            counts = {int(row[0]): int(row[1]) for row in connection.execute(statement)}
        return [YearRatingCount(year=year, ratings_count=counts[year]) for year in sorted(counts)]

    def top_tags(self, n: int) -> list[TagUsage]:
        """Rank tags after trimming and lower-casing; ties by tag text."""
        _require_top_n(n)
        statement = select(tags.c.tag, func.count()).group_by(tags.c.tag)
        uses: Counter[str] = Counter()
        with self._store.connect() as connection:
            for tag, count in connection.execute(statement):
                uses[normalize_tag(tag)] += int(count)
        ranked = sorted(uses.items(), key=lambda item: (-item[1], item[0]))
        return [TagUsage(tag=tag, uses=count) for tag, count in ranked[:n]]

    def top_rated_titles(self, n: int, min_ratings: int | None = None) -> list[RatedTitle]:
        """Rank titles with enough ratings by mean score.

        Args:
            n: Number of titles to return.
            min_ratings: Minimum rating count; the configured default when omitted.

        Returns:
            Titles ordered by rounded mean desc, count desc, name asc.
        """
        _require_top_n(n)
        threshold = self._min_rating_count
        if min_ratings is not None:
            threshold = _require_threshold(min_ratings)
        with self._store.connect() as connection:
            stats = _title_score_stats(connection)
            names = _title_names(connection, stats)
        rows = [
            RatedTitle(
                movie_id=movie_id,
                title=names[movie_id],
                ratings_count=count,
                mean_score=_mean(total, count),
            )
            for movie_id, (count, total) in stats.items()
            if count >= threshold and movie_id in names
        ]
        rows.sort(key=lambda row: (-row.mean_score, -row.ratings_count, row.title, row.movie_id))
        return rows[:n]

    def score_distribution(self) -> list[ScoreShare]:
        """Count and percentage share per score, highest score first."""
        statement = select(ratings.c.score, func.count()).group_by(ratings.c.score)
        counts: Counter[Decimal] = Counter()
        with self._store.connect() as connection:
            for score, count in connection.execute(statement):
                counts[to_score(score)] += int(count)
        total = sum(counts.values())
        return [
            ScoreShare(
                score=score,
                count=counts[score],
                percentage=round_half_up(Decimal(counts[score] * 100) / total, PERCENT_QUANTUM),
            )
            for score in sorted(counts, reverse=True)
        ]

    def primary_genre_popularity(self, n: int | None = None) -> list[GenrePopularity]:
        """Attribute each title's ratings to its leading genre label.

        Args:
            n: Optional number of genres to return; all when omitted.

        Returns:
            Genres ordered by rating count desc, then genre name asc.
        """
        if n is not None:
            _require_top_n(n)
        with self._store.connect() as connection:
            stats = _title_score_stats(connection)
            statement = select(movies.c.movie_id, movies.c.title, movies.c.genres)
            titles = [
                Title(movie_id=row[0], title=row[1], genres=row[2])
                for row in connection.execute(statement)
            ]
        titles_count: Counter[str] = Counter()
        ratings_count: Counter[str] = Counter()
        score_totals: dict[str, Decimal] = defaultdict(Decimal)
        for title in titles:
            if title.movie_id not in stats:
                continue
            count, total = stats[title.movie_id]
            genre = title.primary_genre
            titles_count[genre] += 1
            ratings_count[genre] += count
            score_totals[genre] += total
        rows = [
            GenrePopularity(
                genre=genre,
                titles_count=titles_count[genre],
                ratings_count=ratings_count[genre],
                mean_score=_mean(score_totals[genre], ratings_count[genre]),
            )
            for genre in ratings_count
        ]
        rows.sort(key=lambda row: (-row.ratings_count, row.genre))
        return rows if n is None else rows[:n]

    def monthly_engagement(self) -> list[MonthlyEngagement]:
        """Active users, rating count and mean score per UTC month."""
        bucket = month_expression(ratings.c.ts_unix)
        users_statement = select(bucket, func.count(distinct(ratings.c.user_id))).group_by(bucket)
        scores_statement = select(bucket, ratings.c.score, func.count()).group_by(
            bucket, ratings.c.score
        )
        with self._store.connect() as connection:
            active_users = {int(row[0]): int(row[1]) for row in connection.execute(users_statement)}
            month_stats = _accumulate(
                (int(row[0]), row[1], int(row[2])) for row in connection.execute(scores_statement)
            )
        engagement = []
        for label in sorted(month_stats):
            year, month = split_month_label(label)
            count, total = month_stats[label]
            engagement.append(
                MonthlyEngagement(
                    year=year,
                    month=month,
                    active_users=active_users[label],
                    ratings_count=count,
                    mean_score=_mean(total, count),
                )
            )
        return engagement

    def most_tagged_titles(self, n: int) -> list[TaggedTitle]:
        """Rank titles by distinct normalized tags, then total applications."""
        _require_top_n(n)
        statement = (
            select(movies.c.movie_id, movies.c.title, tags.c.tag, func.count())
            .select_from(tags.join(movies, movies.c.movie_id == tags.c.movie_id))
            .group_by(movies.c.movie_id, movies.c.title, tags.c.tag)
        )
        names: dict[int, str] = {}
        unique_tags: dict[int, set[str]] = defaultdict(set)
        applications: Counter[int] = Counter()
        with self._store.connect() as connection:
            for movie_id, title, tag, count in connection.execute(statement):
                names[movie_id] = title
                unique_tags[movie_id].add(normalize_tag(tag))
                applications[movie_id] += int(count)
        rows = [
            TaggedTitle(
                movie_id=movie_id,
                title=names[movie_id],
                unique_tags=len(unique_tags[movie_id]),
                tag_applications=applications[movie_id],
            )
            for movie_id in names
        ]
        rows.sort(
            key=lambda row: (-row.unique_tags, -row.tag_applications, row.title, row.movie_id)
        )
        return rows[:n]

    def dataset_summary(self) -> DatasetSummary:
        """Row counts plus rating, tag and title statistics."""
        row_counts = self._store.row_counts()
        with self._store.connect() as connection:
            rating_stats = _rating_statistics(connection)
            tag_row = connection.execute(
                select(
                    func.count(),
                    func.count(distinct(tags.c.tag)),
                    func.count(distinct(tags.c.user_id)),
                    func.count(distinct(tags.c.movie_id)),
                )
            ).one()
            title_row = connection.execute(
                select(func.count(), func.count(distinct(movies.c.genres)))
            ).one()
        return DatasetSummary(
            row_counts=row_counts,
            ratings=rating_stats,
            tags=TagStatistics(
                total_tags=int(tag_row[0]),
                unique_tags=int(tag_row[1]),
                users_who_tagged=int(tag_row[2]),
                titles_tagged=int(tag_row[3]),
            ),
            titles=TitleStatistics(
                total_titles=int(title_row[0]),
                unique_genre_combinations=int(title_row[1]),
            ),
        )


def normalize_tag(tag: str) -> str:
    """Normalize a tag for grouping: trimmed and lower-cased."""
    return tag.strip().lower()


def _require_top_n(n: int) -> None:
    if isinstance(n, bool) or not isinstance(n, int) or n <= 0:
        raise QueryError(f"Invalid top-N size {n!r}: expected a positive integer.")


def _require_threshold(min_ratings: int) -> int:
    if isinstance(min_ratings, bool) or not isinstance(min_ratings, int) or min_ratings < 0:
        raise QueryError(
            f"Invalid minimum rating count {min_ratings!r}: expected a non-negative integer."
        )
    return min_ratings


def _mean(total: Decimal, count: int) -> Decimal:
    return round_half_up(total / count, MEAN_QUANTUM)


def _accumulate(rows: Iterable[tuple[int, object, int]]) -> dict[int, tuple[int, Decimal]]:
    """Fold ``(key, score, count)`` rows into exact ``(count, score total)`` per key."""
    folded: dict[int, tuple[int, Decimal]] = {}
    for key, score, count in rows:
        previous_count, previous_total = folded.get(key, (0, Decimal(0)))
        folded[key] = (previous_count + count, previous_total + to_score(score) * count)
    return folded


def _title_score_stats(connection: Connection) -> dict[int, tuple[int, Decimal]]:
    statement = select(ratings.c.movie_id, ratings.c.score, func.count()).group_by(
        ratings.c.movie_id, ratings.c.score
    )
    return _accumulate((row[0], row[1], int(row[2])) for row in connection.execute(statement))


def _title_names(connection: Connection, stats: dict[int, tuple[int, Decimal]]) -> dict[int, str]:
    if not stats:
        return {}
    statement = select(movies.c.movie_id, movies.c.title)
    return {row[0]: row[1] for row in connection.execute(statement) if row[0] in stats}


def _rating_statistics(connection: Connection) -> RatingStatistics:
    row = connection.execute(
        select(
            func.count(),
            func.count(distinct(ratings.c.user_id)),
            func.count(distinct(ratings.c.movie_id)),
            func.min(ratings.c.score),
            func.max(ratings.c.score),
            func.min(ratings.c.ts_unix),
            func.max(ratings.c.ts_unix),
        )
    ).one()
    total_ratings = int(row[0])
    if not total_ratings:
        return RatingStatistics(0, 0, 0, None, None, None, None, None)
    score_rows = connection.execute(
        select(ratings.c.score, func.count()).group_by(ratings.c.score)
    )
    totals = _accumulate((0, score, int(count)) for score, count in score_rows)
    count, total = totals[0]
    return RatingStatistics(
        total_ratings=total_ratings,
        unique_users=int(row[1]),
        titles_rated=int(row[2]),
        min_score=to_score(row[3]),
        max_score=to_score(row[4]),
        mean_score=_mean(total, count),
        earliest=epoch_to_datetime(int(row[5])),
        latest=epoch_to_datetime(int(row[6])),
    )
