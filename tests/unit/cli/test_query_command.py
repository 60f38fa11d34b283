"""Unit tests for the query CLI command."""

from __future__ import annotations

import pytest

from cli.main import main
from tests.fixture_paths import fixture_path


@pytest.fixture(autouse=True)
def _isolated_database(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("LENS_DATABASE_URL", raising=False)


def _query(data_root, capsys, *args: str) -> tuple[int, list[str]]:
    main(["--data-root", str(data_root), "init-schema", "--yes"])
    main(["--data-root", str(data_root), "load", str(fixture_path("movielens_small"))])
    capsys.readouterr()
    exit_code = main(["--data-root", str(data_root), "query", *args])
    return exit_code, capsys.readouterr().out.splitlines()


def test_query_top_titles(tmp_path, capsys) -> None:
    """top-titles should print id, title and count per row."""
    exit_code, lines = _query(tmp_path, capsys, "top-titles", "--top", "1")

    assert exit_code == 0 and lines == ["1\tToy Story (1995)\t3"]


def test_query_top_tags(tmp_path, capsys) -> None:
    """top-tags should print normalized tags."""
    _, lines = _query(tmp_path, capsys, "top-tags", "--top", "1")

    assert lines == ["funny\t3"]


def test_query_top_rated_with_threshold(tmp_path, capsys) -> None:
    """top-rated should honor --min-ratings."""
    _, lines = _query(tmp_path, capsys, "top-rated", "--min-ratings", "3")

    assert lines == ["1\tToy Story (1995)\t3\t4.33"]


def test_query_monthly_engagement_formats_month(tmp_path, capsys) -> None:
    """monthly-engagement should print zero-padded year-month labels."""
    _, lines = _query(tmp_path, capsys, "monthly-engagement")

    assert lines[0] == "1999-12\t1\t1\t2.50"


def test_query_invalid_top_exits_one(tmp_path, capsys) -> None:
    """A non-positive --top should fail with a query error."""
    exit_code, _ = _query(tmp_path, capsys, "top-users", "--top", "0")

    assert exit_code == 1
