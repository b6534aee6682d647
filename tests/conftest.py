"""Pytest configuration and fixtures."""

from pathlib import Path

import pytest

from explorer_views.catalog import ViewGraph, build_catalog
from explorer_views.config import clear_settings_cache

PROJECT_ROOT = Path(__file__).resolve().parent.parent


@pytest.fixture(scope="session")
def catalog() -> ViewGraph:
    """The full, validated catalog."""
    return build_catalog()


@pytest.fixture
def project_root() -> Path:
    """Directory holding alembic.ini."""
    return PROJECT_ROOT


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
    """Run every test outside the repository so a developer's .env is not read."""
    monkeypatch.chdir(tmp_path)
    clear_settings_cache()
    yield
    clear_settings_cache()


class FakeClock:
    """Monotonic clock advanced only by the fake sleep."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()
