"""Analytical query command wiring for lens CLI."""

from __future__ import annotations

import argparse
from typing import Any, Callable

from analytics.queries import AnalyticsQueries
from store.lens_client import LensClient

_DEFAULT_TOP_N = 10

QueryRunner = Callable[[AnalyticsQueries, argparse.Namespace], list[str]]


def add_query_command(subparsers: Any) -> None:
    """Register query subcommand."""
    parser = subparsers.add_parser("query", help="Run one analytical query")
    parser.add_argument("name", choices=sorted(_QUERY_RUNNERS), help="Query name")
    parser.add_argument("--top", type=int, default=_DEFAULT_TOP_N, help="Number of rows")
    parser.add_argument(
        "--min-ratings",
        type=int,
        help="Minimum rating count for top-rated (default LENS_MIN_RATING_COUNT)",
    )
    parser.add_argument(
        "--all",
        action="store_true",
        help="Return every row for genre-popularity",
    )


def run_query_command(client: LensClient, args: argparse.Namespace) -> int:
    """Execute one query and print tab-separated rows."""
    for line in _QUERY_RUNNERS[args.name](client.analytics(), args):
        print(line)
    return 0


def _top_titles(queries: AnalyticsQueries, args: argparse.Namespace) -> list[str]:
    return [
        f"{row.movie_id}\t{row.title}\t{row.ratings_count}"
        for row in queries.top_titles_by_rating_count(args.top)
    ]


def _top_users(queries: AnalyticsQueries, args: argparse.Namespace) -> list[str]:
    return [
        f"{row.user_id}\t{row.ratings_count}"
        for row in queries.top_users_by_rating_count(args.top)
    ]


def _ratings_per_year(queries: AnalyticsQueries, args: argparse.Namespace) -> list[str]:
    return [f"{row.year}\t{row.ratings_count}" for row in queries.ratings_per_year()]


def _top_tags(queries: AnalyticsQueries, args: argparse.Namespace) -> list[str]:
    return [f"{row.tag}\t{row.uses}" for row in queries.top_tags(args.top)]


def _top_rated(queries: AnalyticsQueries, args: argparse.Namespace) -> list[str]:
    return [
        f"{row.movie_id}\t{row.title}\t{row.ratings_count}\t{row.mean_score}"
        for row in queries.top_rated_titles(args.top, args.min_ratings)
    ]


def _score_distribution(queries: AnalyticsQueries, args: argparse.Namespace) -> list[str]:
    return [
        f"{row.score}\t{row.count}\t{row.percentage}"
        for row in queries.score_distribution()
    ]


def _genre_popularity(queries: AnalyticsQueries, args: argparse.Namespace) -> list[str]:
    limit = None if args.all else args.top
    return [
        f"{row.genre}\t{row.titles_count}\t{row.ratings_count}\t{row.mean_score}"
        for row in queries.primary_genre_popularity(limit)
    ]


def _monthly_engagement(queries: AnalyticsQueries, args: argparse.Namespace) -> list[str]:
    return [
        f"{row.year:04d}-{row.month:02d}\t{row.active_users}\t{row.ratings_count}\t{row.mean_score}"
        for row in queries.monthly_engagement()
    ]


def _most_tagged(queries: AnalyticsQueries, args: argparse.Namespace) -> list[str]:
    return [
        f"{row.movie_id}\t{row.title}\t{row.unique_tags}\t{row.tag_applications}"
        for row in queries.most_tagged_titles(args.top)
    ]


_QUERY_RUNNERS: dict[str, QueryRunner] = {
    "genre-popularity": _genre_popularity,
    "monthly-engagement": _monthly_engagement,
    "most-tagged": _most_tagged,
    "ratings-per-year": _ratings_per_year,
    "score-distribution": _score_distribution,
    "top-rated": _top_rated,
    "top-tags": _top_tags,
    "top-titles": _top_titles,
    "top-users": _top_users,
}
