"""Observability module for ScenarioKit.

Provides structured logging for the API client, editor and ingestion job.
"""

from scenariokit.observability.logging import (
    LOG_FILENAME,
    close_file_logging,
    configure_logging,
    get_logger,
    log_context,
)

__all__ = [
    "LOG_FILENAME",
    "close_file_logging",
    "configure_logging",
    "get_logger",
    "log_context",
]
