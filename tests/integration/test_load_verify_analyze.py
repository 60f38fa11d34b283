"""Integration tests for the load, verify and analyze workflow."""

from __future__ import annotations

from decimal import Decimal

import pytest

from core.errors import IntegrityViolation
from lens import LensClient, LoadOptions
from tests.fixture_paths import fixture_path
from tests.lens_helpers import build_test_config


def test_load_verify_and_rank_flow(tmp_path) -> None:
    """End-to-end flow should load, verify clean, and answer rankings."""
    client = LensClient(build_test_config(tmp_path))
    client.define_schema()

    client.load(LoadOptions(source_root=str(fixture_path("movielens_small")), batch_size=3))
    client.verify().raise_for_violations()
    top = client.analytics().top_rated_titles(1, min_ratings=2)

    assert [(row.title, row.mean_score) for row in top] == [("Toy Story (1995)", Decimal("4.33"))]


def test_reset_then_reload_restores_same_answers(tmp_path) -> None:
    """Resetting and reloading should reproduce identical results."""
    client = LensClient(build_test_config(tmp_path))
    client.define_schema()
    client.load(str(fixture_path("movielens_small")))
    first = client.analytics().dataset_summary()

    client.define_schema()
    client.load(str(fixture_path("movielens_small")))

    assert client.analytics().dataset_summary() == first


def test_dependents_loaded_alone_are_reported_as_orphans(tmp_path) -> None:
    """Dependents without their titles should fail strict verification."""
    client = LensClient(build_test_config(tmp_path))
    client.define_schema()
    client.load(LoadOptions(source_root=str(fixture_path("movielens_small")), sources=("ratings",)))

    with pytest.raises(IntegrityViolation) as error_info:
        client.verify().raise_for_violations()

    assert error_info.value.counts == {"orphaned_ratings": 7}


def test_with_data_root_moves_default_database(tmp_path) -> None:
    """Cloning with a new data root should follow the default database file."""
    client = LensClient(build_test_config(tmp_path / "first"))

    moved = client.with_data_root(str(tmp_path / "second"))
    moved.define_schema()

    assert (tmp_path / "second" / "movielens.db").is_file()
