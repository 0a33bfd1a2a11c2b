"""Models for the asynchronous document ingestion job."""

from __future__ import annotations

from enum import StrEnum

from scenariokit.models.scenario import WireModel


class JobStatus(StrEnum):
    """Status values reported by the ingestion endpoint."""

    STARTING = "starting"
    PROGRESS = "progress"
    DONE = "done"
    ERROR = "error"


class ImportJob(WireModel):
    """One poll response for an ingestion job.

    ``status`` is kept as a plain string: the backend may add intermediate
    states, and anything other than ``done``/``error`` means "keep polling".
    """

    id: str
    status: str = JobStatus.STARTING
    progress: str | None = None
    game_id: str | None = None
    error: str | None = None

    @property
    def is_error(self) -> bool:
        return self.status == JobStatus.ERROR

    @property
    def is_done(self) -> bool:
        """True only when the job finished and named the created game."""
        return self.status == JobStatus.DONE and bool(self.game_id)
