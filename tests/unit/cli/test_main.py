"""Unit tests for CLI command handling."""

from __future__ import annotations

import pytest

from cli.main import main
from tests.fixture_paths import fixture_path


@pytest.fixture(autouse=True)
def _isolated_database(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("LENS_DATABASE_URL", raising=False)


def _init(data_root) -> None:
    assert main(["--data-root", str(data_root), "init-schema", "--yes"]) == 0


def test_cli_init_schema_requires_confirmation(tmp_path, capsys) -> None:
    """Schema reset should refuse to run without --yes."""
    exit_code = main(["--data-root", str(tmp_path), "init-schema"])
    error_output = capsys.readouterr().err

    assert exit_code == 2 and "--yes" in error_output


def test_cli_init_schema_creates_database(tmp_path) -> None:
    """Confirmed schema reset should create the SQLite file under the data root."""
    _init(tmp_path)

    assert (tmp_path / "movielens.db").is_file()


def test_cli_load_prints_source_report(tmp_path, capsys) -> None:
    """CLI load should print one line per source and totals."""
    _init(tmp_path)
    capsys.readouterr()

    exit_code = main(["--data-root", str(tmp_path), "load", str(fixture_path("movielens_small"))])
    output = capsys.readouterr().out

    assert exit_code == 0 and "rows_loaded=23" in output


def test_cli_load_without_schema_fails(tmp_path, capsys) -> None:
    """Lens errors should map to exit code 1 with a message."""
    exit_code = main(["--data-root", str(tmp_path), "load", str(fixture_path("movielens_small"))])
    error_output = capsys.readouterr().err

    assert exit_code == 1 and error_output.startswith("error=")


def test_cli_load_fail_fast_reports_error(tmp_path, capsys) -> None:
    """Fail-fast loads should exit 1 on the first malformed row."""
    _init(tmp_path)

    exit_code = main(
        [
            "--data-root",
            str(tmp_path),
            "load",
            str(fixture_path("movielens_malformed")),
            "--fail-fast",
        ]
    )

    assert exit_code == 1


def test_cli_load_only_selected_sources(tmp_path, capsys) -> None:
    """--only should restrict the load to the named sources."""
    _init(tmp_path)
    capsys.readouterr()

    main(
        [
            "--data-root",
            str(tmp_path),
            "load",
            str(fixture_path("movielens_small")),
            "--only",
            "movies",
        ]
    )
    output = capsys.readouterr().out

    assert "rows_loaded=5" in output


def test_cli_summary_prints_row_counts(tmp_path, capsys) -> None:
    """Summary should print per-table row counts."""
    _init(tmp_path)
    main(["--data-root", str(tmp_path), "load", str(fixture_path("movielens_small"))])
    capsys.readouterr()

    exit_code = main(["--data-root", str(tmp_path), "summary"])
    output = capsys.readouterr().out

    assert exit_code == 0 and "ratings_rows=7" in output


def test_cli_database_url_override(tmp_path) -> None:
    """An explicit database URL should take precedence over the data root."""
    database_path = tmp_path / "custom.db"

    exit_code = main(
        [
            "--data-root",
            str(tmp_path / "root"),
            "--database-url",
            f"sqlite:///{database_path}",
            "init-schema",
            "--yes",
        ]
    )

    assert exit_code == 0 and database_path.is_file()


def test_cli_load_zero_batch_size_fails(tmp_path, capsys) -> None:
    """An explicit zero batch size should be rejected, not replaced by the default."""
    _init(tmp_path)
    capsys.readouterr()

    exit_code = main(
        [
            "--data-root",
            str(tmp_path),
            "load",
            str(fixture_path("movielens_small")),
            "--batch-size",
            "0",
        ]
    )

    assert exit_code == 1 and "batch size" in capsys.readouterr().err
