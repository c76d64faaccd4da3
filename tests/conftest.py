"""Pytest configuration and fixtures."""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest

from transit_pulse.config import Settings, get_settings

from .fixtures.gtfs_fixture import write_gtfs_dir


@pytest.fixture(autouse=True)
def _clear_settings_cache() -> Iterator[None]:
    """Each test sees settings built from its own environment."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def static_dir(tmp_path: Path) -> Path:
    """Directory with the default routes/trips/stops fixture tables."""
    return write_gtfs_dir(tmp_path / "static")


@pytest.fixture
def settings(static_dir: Path, tmp_path: Path) -> Settings:
    """Settings pointing at the fixture tables, with no remote feeds."""
    return (
        Settings()
        .with_static_dir(static_dir)
        .model_copy(
            update={
                "trip_updates_url": None,
                "alerts_url": None,
                "output_file": tmp_path / "out" / "route_status.json",
            }
        )
    )
