"""Error types raised by the ScenarioKit client and editor.

API errors wrap transport and HTTP failures from the admin backend. Lookup
errors are raised when the editor is asked about a location or exit that the
last reconciliation pass did not produce; they carry the ids that do exist so
callers can point the user at a likely typo.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from difflib import get_close_matches
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pathlib import Path


class ScenarioKitError(Exception):
    """Base class for all ScenarioKit errors."""


class ApiError(ScenarioKitError):
    """Base exception for admin backend failures.

    Attributes:
        method: HTTP method of the failed request.
        path: Request path relative to the API base URL.
        detail: Error text reported by the backend, if any.
    """

    def __init__(self, method: str, path: str, message: str, detail: str | None = None) -> None:
        self.method = method
        self.path = path
        self.detail = detail
        super().__init__(f"{method} {path}: {message}")


class ApiConnectionError(ApiError):
    """Raised when the backend is unreachable or the request timed out."""


class ApiResponseError(ApiError):
    """Raised when the backend answers with a non-2xx status.

    Attributes:
        status_code: HTTP status returned by the backend.
    """

    def __init__(self, method: str, path: str, status_code: int, detail: str | None = None) -> None:
        self.status_code = status_code
        message = f"HTTP {status_code}"
        if detail:
            message += f" ({detail})"
        super().__init__(method, path, message, detail)


class ApiPayloadError(ApiError):
    """Raised when a response body is not the JSON shape the endpoint promises."""


def _suggest(wanted: str, available: list[str]) -> list[str]:
    return get_close_matches(wanted, available, n=3, cutoff=0.6)


@dataclass
class LocationNotFoundError(ScenarioKitError):
    """Raised when a location id is not part of the loaded game.

    Attributes:
        location_id: The id that was requested.
        available: Location ids present in the store.
    """

    location_id: str
    available: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        msg = f"Location '{self.location_id}' not found"
        suggestions = _suggest(self.location_id, self.available)
        if suggestions:
            msg += f" (did you mean: {', '.join(suggestions)}?)"
        return msg


@dataclass
class ExitNotFoundError(ScenarioKitError):
    """Raised when an exit id is not part of the reconciled edge view."""

    exit_id: str
    available: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        msg = f"Exit '{self.exit_id}' not found"
        suggestions = _suggest(self.exit_id, self.available)
        if suggestions:
            msg += f" (did you mean: {', '.join(suggestions)}?)"
        super().__init__(msg)


class ScenarioDocumentError(ScenarioKitError):
    """Raised when a scenario export document cannot be read or is malformed."""

    def __init__(self, reason: str, path: Path | None = None) -> None:
        self.path = path
        self.reason = reason
        where = f" at {path}" if path else ""
        super().__init__(f"Invalid scenario document{where}: {reason}")


class ConfigError(ScenarioKitError):
    """Raised when client configuration holds an unusable value."""

    def __init__(self, key: str, reason: str) -> None:
        self.key = key
        self.reason = reason
        super().__init__(f"Invalid configuration for {key}: {reason}")
