"""Pytest configuration and shared fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest

from scenariokit.errors import ApiConnectionError
from tests.fixtures.fake_backend import FakeAdminClient


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep developer settings out of test runs."""
    for name in (
        "SCENARIOKIT_API_URL",
        "SCENARIOKIT_TIMEOUT",
        "SCENARIOKIT_POLL_INTERVAL",
        "SCENARIOKIT_MAX_POLL_ATTEMPTS",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def fake_client() -> FakeAdminClient:
    """Fake backend with three ordered locations and a small exit graph."""
    client = FakeAdminClient()
    client.add_location("a", 1, "Gate")
    client.add_location("b", 2, "Hall")
    client.add_location("c", 3, "Tower")
    client.add_exit("e1", "a", "b", button_text="Enter")
    client.add_exit("e2", "b", "c", type="TRIGGER", trigger_text="climb")
    client.add_exit("e3", "c", None, type="GAMEOVER", is_game_over=True)
    return client


@pytest.fixture
def connection_error() -> ApiConnectionError:
    return ApiConnectionError("GET", "/x", "cannot reach backend")
