"""Async REST client for the game admin backend.

Wraps ``httpx.AsyncClient`` with one coroutine per backend endpoint. Every
failure is translated into an ``ApiError`` subclass:

- ``ApiConnectionError``: the request never got an answer (refused, timed out)
- ``ApiResponseError``: the backend answered with a non-2xx status
- ``ApiPayloadError``: the body is not the JSON shape the endpoint promises

Callers decide which failures are fatal; the client itself never retries.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Self, TypeVar
from urllib.parse import quote

import httpx
from pydantic import BaseModel, ValidationError

from scenariokit.config import ClientConfig
from scenariokit.errors import ApiConnectionError, ApiPayloadError, ApiResponseError
from scenariokit.models import Exit, Game, ImportJob, Location
from scenariokit.observability.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Mapping
    from types import TracebackType

log = get_logger(__name__)

# Keys the backend uses for error text, in order of preference
_ERROR_KEYS = ("error", "details", "message")

# (filename, content, media type) as accepted by httpx multipart uploads
UploadFile = tuple[str, bytes, str]

M = TypeVar("M", bound=BaseModel)


def _segment(value: str) -> str:
    """Quote an id for use as a single path segment."""
    return quote(str(value), safe="")


def error_detail(body: Any) -> str | None:
    """Extract the backend's error text from a decoded response body."""
    if isinstance(body, dict):
        for key in _ERROR_KEYS:
            value = body.get(key)
            if value:
                return str(value)
    return None


class AdminApiClient:
    """Client for the admin REST surface.

    Args:
        config: Connection settings. Defaults to ``ClientConfig()``.
        transport: Optional httpx transport (tests pass ``httpx.MockTransport``).
    """

    def __init__(
        self,
        config: ClientConfig | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config or ClientConfig()
        self._client = httpx.AsyncClient(
            base_url=self._config.api_url,
            timeout=self._config.timeout,
            transport=transport,
        )

    @property
    def config(self) -> ClientConfig:
        return self._config

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    # -- Transport -------------------------------------------------------------

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        files: Mapping[str, UploadFile] | None = None,
    ) -> Any:
        """Send one request and return the decoded JSON body (None when empty).

        Raises:
            ApiConnectionError: On transport failures and timeouts.
            ApiResponseError: On non-2xx responses.
            ApiPayloadError: If a non-empty body is not valid JSON.
        """
        log.debug("api_request", method=method, path=path)
        try:
            response = await self._client.request(method, path, json=json, files=files)
        except httpx.TimeoutException as e:
            log.error("api_timeout", method=method, path=path, timeout=self._config.timeout)
            raise ApiConnectionError(
                method, path, f"timed out after {self._config.timeout}s: {e}"
            ) from e
        except httpx.RequestError as e:
            log.error("api_connect_error", method=method, path=path, error=str(e))
            raise ApiConnectionError(method, path, f"cannot reach backend: {e}") from e

        body: Any = None
        decode_error: ValueError | None = None
        if response.content:
            try:
                body = response.json()
            except ValueError as e:
                decode_error = e

        if not response.is_success:
            detail = error_detail(body) or (response.text[:200] if decode_error else None)
            log.warning(
                "api_http_error",
                method=method,
                path=path,
                status_code=response.status_code,
                detail=detail,
            )
            raise ApiResponseError(method, path, response.status_code, detail)

        if decode_error is not None:
            raise ApiPayloadError(method, path, f"invalid JSON: {decode_error}") from decode_error

        log.debug("api_response", method=method, path=path, status_code=response.status_code)
        return body

    @staticmethod
    def _parse(model: type[M], body: Any, method: str, path: str) -> M:
        if not isinstance(body, dict):
            raise ApiPayloadError(method, path, f"expected an object, got {type(body).__name__}")
        try:
            return model.model_validate(body)
        except ValidationError as e:
            raise ApiPayloadError(method, path, str(e)) from e

    @staticmethod
    def _parse_list(model: type[M], body: Any, method: str, path: str) -> list[M]:
        if not isinstance(body, list):
            raise ApiPayloadError(method, path, f"expected a list, got {type(body).__name__}")
        try:
            return [model.model_validate(item) for item in body]
        except ValidationError as e:
            raise ApiPayloadError(method, path, str(e)) from e

    # -- Games -----------------------------------------------------------------

    async def health(self) -> bool:
        """Return True when the backend health endpoint answers ``ok``."""
        body = await self._request("GET", "/health")
        return isinstance(body, dict) and body.get("status") == "ok"

    async def list_games(self) -> list[Game]:
        """List all games (admin view, without locations)."""
        path = "/admin/games"
        return self._parse_list(Game, await self._request("GET", path), "GET", path)

    async def get_full_game(self, game_id: str) -> Game:
        """Fetch a game with nested locations (each may carry inline exits)."""
        path = f"/admin/games/{_segment(game_id)}/full"
        return self._parse(Game, await self._request("GET", path), "GET", path)

    async def update_game(self, game_id: str, fields: dict[str, Any]) -> Game:
        """Patch game metadata; only the given fields are sent."""
        path = f"/admin/games/{_segment(game_id)}"
        body = await self._request("PATCH", path, json=fields)
        return self._parse(Game, body, "PATCH", path)

    # -- Locations -------------------------------------------------------------

    async def create_location(self, game_id: str, fields: dict[str, Any]) -> Location:
        path = f"/games/{_segment(game_id)}/locations"
        body = await self._request("POST", path, json=fields)
        return self._parse(Location, body, "POST", path)

    async def update_location(self, location_id: str, fields: dict[str, Any]) -> Location:
        path = f"/locations/{_segment(location_id)}"
        body = await self._request("PATCH", path, json=fields)
        return self._parse(Location, body, "PATCH", path)

    async def delete_location(self, location_id: str) -> None:
        await self._request("DELETE", f"/locations/{_segment(location_id)}")

    # -- Exits -----------------------------------------------------------------

    async def list_game_exits(self, game_id: str) -> list[Exit]:
        """Fetch every exit of a game, each tagged with its owning location."""
        path = f"/games/{_segment(game_id)}/exits"
        return self._parse_list(Exit, await self._request("GET", path), "GET", path)

    async def list_location_exits(self, location_id: str) -> list[Exit]:
        path = f"/locations/{_segment(location_id)}/exits"
        return self._parse_list(Exit, await self._request("GET", path), "GET", path)

    async def create_exit(self, location_id: str, fields: dict[str, Any]) -> Exit:
        path = f"/locations/{_segment(location_id)}/exits"
        body = await self._request("POST", path, json=fields)
        return self._parse(Exit, body, "POST", path)

    async def update_exit(self, exit_id: str, fields: dict[str, Any]) -> Exit:
        path = f"/exits/{_segment(exit_id)}"
        body = await self._request("PATCH", path, json=fields)
        return self._parse(Exit, body, "PATCH", path)

    async def delete_exit(self, exit_id: str) -> None:
        await self._request("DELETE", f"/exits/{_segment(exit_id)}")

    # -- Ingestion & scenario documents ----------------------------------------

    async def start_ingest(self, files: Mapping[str, UploadFile]) -> str:
        """Upload source documents and start an ingestion job.

        Args:
            files: Multipart field name -> (filename, content, media type).

        Returns:
            The job id.

        Raises:
            ApiPayloadError: If the response carries no ``jobId``.
        """
        path = "/admin/ingest-import"
        body = await self._request("POST", path, files=files)
        job_id = body.get("jobId") if isinstance(body, dict) else None
        if not job_id:
            detail = error_detail(body)
            raise ApiPayloadError("POST", path, detail or "response has no jobId", detail)
        return str(job_id)

    async def get_ingest_job(self, job_id: str) -> ImportJob:
        """Fetch the status of an ingestion job."""
        path = f"/admin/ingest-import/{_segment(job_id)}"
        body = await self._request("GET", path)
        if isinstance(body, dict):
            body = {**body, "id": job_id}
        return self._parse(ImportJob, body, "GET", path)

    async def import_scenario(self, document: dict[str, Any]) -> str:
        """Create a new game from an export document and return its id."""
        path = "/admin/scenario/import"
        body = await self._request("POST", path, json=document)
        game_id = body.get("gameId") if isinstance(body, dict) else None
        if not game_id:
            detail = error_detail(body)
            raise ApiPayloadError("POST", path, detail or "response has no gameId", detail)
        return str(game_id)
