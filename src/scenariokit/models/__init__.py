"""Pydantic models for the admin backend payloads."""

from scenariokit.models.document import (
    DocumentExit,
    DocumentGame,
    DocumentLocation,
    ScenarioDocument,
)
from scenariokit.models.jobs import ImportJob, JobStatus
from scenariokit.models.scenario import Exit, ExitType, Game, GameStatus, Location

__all__ = [
    "DocumentExit",
    "DocumentGame",
    "DocumentLocation",
    "Exit",
    "ExitType",
    "Game",
    "GameStatus",
    "ImportJob",
    "JobStatus",
    "Location",
    "ScenarioDocument",
]
