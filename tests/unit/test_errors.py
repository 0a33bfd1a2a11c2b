"""Tests for error types."""

from __future__ import annotations

from pathlib import Path

from scenariokit.errors import (
    ApiConnectionError,
    ApiError,
    ApiResponseError,
    ExitNotFoundError,
    LocationNotFoundError,
    ScenarioDocumentError,
    ScenarioKitError,
)


def test_response_error_message_includes_status_and_detail() -> None:
    error = ApiResponseError("PATCH", "/exits/e1", 404, "Exit not found")

    assert str(error) == "PATCH /exits/e1: HTTP 404 (Exit not found)"
    assert error.status_code == 404
    assert error.detail == "Exit not found"
    assert isinstance(error, ApiError)


def test_connection_error_has_no_detail() -> None:
    error = ApiConnectionError("GET", "/health", "cannot reach backend")

    assert error.detail is None
    assert isinstance(error, ScenarioKitError)


def test_location_not_found_suggests_close_ids() -> None:
    error = LocationNotFoundError("loc-12", ["loc-1", "loc-2", "tower"])

    assert "Location 'loc-12' not found" in str(error)
    assert "did you mean" in str(error)
    assert "tower" not in str(error)


def test_exit_not_found_without_suggestions() -> None:
    error = ExitNotFoundError("zzz", ["e1"])

    assert str(error) == "Exit 'zzz' not found"


def test_document_error_mentions_path() -> None:
    error = ScenarioDocumentError("game.title is required", Path("x.json"))

    assert "x.json" in str(error)
    assert error.reason == "game.title is required"
