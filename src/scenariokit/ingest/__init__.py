"""Asynchronous document ingestion: start a backend job and poll it to completion."""

from scenariokit.ingest.job import (
    TERMINAL_STATES,
    CancelToken,
    GameOverrides,
    ImportJobClient,
    ImportOutcome,
    ImportState,
    upload_files,
)

__all__ = [
    "TERMINAL_STATES",
    "CancelToken",
    "GameOverrides",
    "ImportJobClient",
    "ImportOutcome",
    "ImportState",
    "upload_files",
]
