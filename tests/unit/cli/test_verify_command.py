"""Unit tests for the verify CLI command."""

from __future__ import annotations

import json

import pytest

from cli.main import main
from tests.fixture_paths import fixture_path


@pytest.fixture(autouse=True)
def _isolated_database(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("LENS_DATABASE_URL", raising=False)


def _load(data_root, dataset: str) -> None:
    main(["--data-root", str(data_root), "init-schema", "--yes"])
    main(["--data-root", str(data_root), "load", str(fixture_path(dataset))])


def test_verify_clean_dataset_exits_zero(tmp_path, capsys) -> None:
    """A clean store should verify with exit code 0."""
    _load(tmp_path, "movielens_small")
    capsys.readouterr()

    exit_code = main(["--data-root", str(tmp_path), "verify"])
    output = capsys.readouterr().out

    assert exit_code == 0 and output.strip().endswith("clean=true")


def test_verify_violations_exit_one(tmp_path) -> None:
    """Violations should produce a failing exit code."""
    _load(tmp_path, "movielens_orphans")

    assert main(["--data-root", str(tmp_path), "verify"]) == 1


def test_verify_allow_violations_exits_zero(tmp_path) -> None:
    """--allow-violations should report without failing."""
    _load(tmp_path, "movielens_orphans")

    assert main(["--data-root", str(tmp_path), "verify", "--allow-violations"]) == 0


def test_verify_writes_report_file(tmp_path) -> None:
    """--report-path should persist the JSON report."""
    _load(tmp_path, "movielens_orphans")
    report_path = tmp_path / "reports" / "integrity.json"

    main(["--data-root", str(tmp_path), "verify", "--report-path", str(report_path)])
    payload = json.loads(report_path.read_text(encoding="utf-8"))

    assert payload["clean"] is False
