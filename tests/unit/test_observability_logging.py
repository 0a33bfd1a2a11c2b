"""Tests for structured logging configuration."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

import pytest

from scenariokit.graph import ScenarioEditor
from scenariokit.ingest import ImportJobClient
from scenariokit.models import ImportJob
from scenariokit.observability import (
    LOG_FILENAME,
    close_file_logging,
    configure_logging,
    get_logger,
    log_context,
)

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path

    from tests.fixtures.fake_backend import FakeAdminClient


def _entries(log_dir: Path) -> list[dict[str, object]]:
    close_file_logging()
    lines = (log_dir / LOG_FILENAME).read_text(encoding="utf-8").splitlines()
    return [json.loads(line) for line in lines]


@pytest.fixture(autouse=True)
def _reset_logging() -> Iterator[None]:
    yield
    close_file_logging()
    configure_logging(verbosity=0)


def test_configure_logging_sets_level_warning() -> None:
    """Default verbosity (0) sets WARNING level."""
    configure_logging(verbosity=0)

    assert logging.getLogger().level == logging.WARNING


def test_configure_logging_verbose_lowers_root_level() -> None:
    """verbosity=1 opens the root logger; the console handler filters at INFO."""
    configure_logging(verbosity=1)

    root_logger = logging.getLogger()
    assert root_logger.level == logging.DEBUG
    assert root_logger.handlers[0].level == logging.INFO


def test_configure_logging_very_verbose_sets_debug() -> None:
    configure_logging(verbosity=2)

    root_logger = logging.getLogger()
    assert root_logger.level == logging.DEBUG
    assert root_logger.handlers[0].level == logging.DEBUG


def test_get_logger_auto_configures() -> None:
    """get_logger configures logging if not already done."""
    import scenariokit.observability.logging as log_module

    log_module._configured = False

    logger = get_logger("test")

    assert log_module._configured is True
    assert hasattr(logger, "info")


@pytest.mark.parametrize("name", ["httpx", "httpcore"])
def test_configure_logging_suppresses_noisy_loggers(name: str) -> None:
    configure_logging(verbosity=2)

    assert logging.getLogger(name).level == logging.WARNING


def test_file_logging_creates_log_dir(tmp_path: Path) -> None:
    log_dir = tmp_path / "logs"
    configure_logging(verbosity=0, log_to_file=True, log_dir=log_dir)

    assert log_dir.is_dir()
    assert (log_dir / LOG_FILENAME).exists()


def test_file_logging_requires_log_dir() -> None:
    with pytest.raises(ValueError, match="log_dir is required"):
        configure_logging(verbosity=0, log_to_file=True, log_dir=None)


def test_reconfiguration_closes_previous_handler(tmp_path: Path) -> None:
    import scenariokit.observability.logging as log_module

    configure_logging(verbosity=0, log_to_file=True, log_dir=tmp_path)
    first_handler = log_module._file_handler
    assert first_handler is not None

    configure_logging(verbosity=0, log_to_file=True, log_dir=tmp_path)

    assert first_handler.stream is None or first_handler.stream.closed
    assert log_module._file_handler is not None


def test_close_file_logging_clears_handler(tmp_path: Path) -> None:
    import scenariokit.observability.logging as log_module

    configure_logging(verbosity=0, log_to_file=True, log_dir=tmp_path)
    close_file_logging()

    assert log_module._file_handler is None


def test_jsonl_file_handler_writes_structlog_context(tmp_path: Path) -> None:
    """Event name and keyword fields land as top-level JSON keys."""
    configure_logging(verbosity=2, log_to_file=True, log_dir=tmp_path)

    logger = get_logger("test.context")
    logger.info("ingest_state", state="polling", job_id="job-7")

    entry = next(e for e in _entries(tmp_path) if e["event"] == "ingest_state")
    assert entry["state"] == "polling"
    assert entry["job_id"] == "job-7"
    assert entry["level"] == "info"
    assert entry["logger"] == "test.context"
    assert "timestamp" in entry


def test_stdlib_records_reach_jsonl_file(tmp_path: Path) -> None:
    configure_logging(verbosity=0, log_to_file=True, log_dir=tmp_path)

    logging.getLogger("scenariokit.plain").warning("plain %s", "record")

    entry = next(e for e in _entries(tmp_path) if e["event"] == "plain record")
    assert entry["level"] == "warning"
    assert entry["logger"] == "scenariokit.plain"


class TestLogContext:
    def test_fields_are_bound_inside_block_only(self, tmp_path: Path) -> None:
        configure_logging(verbosity=0, log_to_file=True, log_dir=tmp_path)
        logger = get_logger("test.bound")

        with log_context(game_id="g1", job_id=None):
            logger.info("inside")
        logger.info("outside")

        entries = {e["event"]: e for e in _entries(tmp_path)}
        assert entries["inside"]["game_id"] == "g1"
        assert "job_id" not in entries["inside"]
        assert "game_id" not in entries["outside"]

    def test_explicit_field_wins_over_context(self, tmp_path: Path) -> None:
        configure_logging(verbosity=0, log_to_file=True, log_dir=tmp_path)

        with log_context(job_id="outer"):
            get_logger("test.bound").info("event", job_id="inner")

        entry = next(e for e in _entries(tmp_path) if e["event"] == "event")
        assert entry["job_id"] == "inner"

    @pytest.mark.asyncio()
    async def test_editor_events_carry_game_id(
        self, tmp_path: Path, fake_client: FakeAdminClient
    ) -> None:
        configure_logging(verbosity=0, log_to_file=True, log_dir=tmp_path)

        await ScenarioEditor(fake_client, "g1").load()

        entry = next(e for e in _entries(tmp_path) if e["event"] == "editor_loaded")
        assert entry["game_id"] == "g1"
        assert entry["locations"] == 3

    @pytest.mark.asyncio()
    async def test_ingest_poll_events_carry_job_id(
        self, tmp_path: Path, fake_client: FakeAdminClient
    ) -> None:
        configure_logging(verbosity=0, log_to_file=True, log_dir=tmp_path)
        fake_client.jobs = [
            ImportJob.model_validate({"id": "job-1", "status": "progress", "progress": "Parsing"}),
            ImportJob.model_validate({"id": "job-1", "status": "done", "gameId": "g9"}),
        ]

        await ImportJobClient(fake_client, poll_interval=0).run(
            {"scenarioFile": ("scenario.md", b"# Moon", "text/markdown")}
        )

        entry = next(e for e in _entries(tmp_path) if e["event"] == "ingest_progress")
        assert entry["job_id"] == "job-1"
        assert entry["progress"] == "Parsing"
