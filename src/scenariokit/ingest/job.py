"""Ingestion job client: upload a document, poll the job, hand off the game.

State machine::

    STARTING -> POLLING -> DONE | ERROR | TIMEOUT | CANCELLED

The job runs on the backend for an unpredictable time (it drives an external
generation process), so the client polls on a fixed interval with a hard
attempt cap. It never cancels the server job: TIMEOUT and CANCELLED only stop
this client, and the game may still appear in the game list later.
"""

from __future__ import annotations

import asyncio
import mimetypes
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING

from scenariokit.errors import ApiConnectionError, ApiError, ApiPayloadError
from scenariokit.observability.logging import get_logger, log_context

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping
    from pathlib import Path

    from scenariokit.api.client import AdminApiClient, UploadFile

log = get_logger(__name__)

START_FAILED_MESSAGE = "Import start failed"
POLL_FAILED_MESSAGE = "Import status check failed"
UNKNOWN_JOB_ERROR = "unknown"
TIMEOUT_MESSAGE = (
    "Import is taking too long. Refresh and check the game list: "
    "the job may still finish on the server."
)
CANCELLED_MESSAGE = "Import cancelled"


class ImportState(StrEnum):
    STARTING = "starting"
    POLLING = "polling"
    DONE = "done"
    ERROR = "error"
    TIMEOUT = "timeout"
    CANCELLED = "cancelled"


TERMINAL_STATES = frozenset(
    {ImportState.DONE, ImportState.ERROR, ImportState.TIMEOUT, ImportState.CANCELLED}
)


@dataclass
class GameOverrides:
    """Optional metadata applied to the imported game once the job is done.

    The instance may be edited while the job is still running; values are
    read only at completion.
    """

    title: str | None = None
    author: str | None = None
    cover_url: str | None = None

    def to_fields(self) -> dict[str, str]:
        """Non-empty values with backend field names."""
        values = {"title": self.title, "author": self.author, "coverUrl": self.cover_url}
        return {key: value for key, value in values.items() if value}

    def is_empty(self) -> bool:
        return not self.to_fields()


class CancelToken:
    """Cooperative cancellation for the polling loop."""

    def __init__(self) -> None:
        self._event = asyncio.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    async def sleep(self, seconds: float) -> bool:
        """Wait up to *seconds*; return True as soon as the token is cancelled."""
        # wait_for with a zero timeout never lets the wait run on 3.11
        if self._event.is_set():
            return True
        try:
            await asyncio.wait_for(self._event.wait(), timeout=seconds)
        except TimeoutError:
            return False
        return True


@dataclass
class ImportOutcome:
    """Final result of one ingestion session.

    Attributes:
        state: Terminal state reached.
        job_id: Backend job id (None if the start request failed).
        game_id: Created game (DONE only).
        message: User-facing message for non-DONE states.
        attempts: Number of status polls issued.
        overrides_applied: Whether the metadata overrides were saved.
        history: Every state the session passed through, in order.
    """

    state: ImportState
    job_id: str | None = None
    game_id: str | None = None
    message: str | None = None
    attempts: int = 0
    overrides_applied: bool = False
    history: list[ImportState] = field(default_factory=list)


@dataclass
class _Session:
    job_id: str | None = None
    attempts: int = 0
    last_progress: str | None = None
    history: list[ImportState] = field(default_factory=list)


def upload_files(scenario: Path, rules: Path | None = None) -> dict[str, UploadFile]:
    """Build the multipart body for ``POST /admin/ingest-import``."""

    def entry(path: Path) -> UploadFile:
        media_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        return (path.name, path.read_bytes(), media_type)

    files = {"scenarioFile": entry(scenario)}
    if rules is not None:
        files["rulesFile"] = entry(rules)
    return files


class ImportJobClient:
    """Drives one ingestion job from upload to a new game id.

    Instances are single-use: ``run()`` may be awaited once.

    Args:
        client: API client.
        poll_interval: Seconds between polls. Defaults to the client config.
        max_attempts: Poll cap. Defaults to the client config.
        on_progress: Called with each new (changed) progress label.
        on_state: Called on every state transition.
    """

    def __init__(
        self,
        client: AdminApiClient,
        *,
        poll_interval: float | None = None,
        max_attempts: int | None = None,
        on_progress: Callable[[str], None] | None = None,
        on_state: Callable[[ImportState], None] | None = None,
    ) -> None:
        self._client = client
        self._interval = (
            client.config.poll_interval if poll_interval is None else poll_interval
        )
        self._max_attempts = (
            client.config.max_poll_attempts if max_attempts is None else max_attempts
        )
        self._on_progress = on_progress
        self._on_state = on_state
        self._state: ImportState | None = None
        self._session = _Session()
        self.overrides = GameOverrides()

    @property
    def state(self) -> ImportState | None:
        return self._state

    @property
    def attempts(self) -> int:
        return self._session.attempts

    def _set_state(self, state: ImportState) -> None:
        self._state = state
        self._session.history.append(state)
        log.info("ingest_state", state=str(state), job_id=self._session.job_id)
        if self._on_state is not None:
            self._on_state(state)

    def _finish(
        self,
        state: ImportState,
        *,
        message: str | None = None,
        game_id: str | None = None,
        overrides_applied: bool = False,
    ) -> ImportOutcome:
        self._set_state(state)
        return ImportOutcome(
            state=state,
            job_id=self._session.job_id,
            game_id=game_id,
            message=message,
            attempts=self._session.attempts,
            overrides_applied=overrides_applied,
            history=list(self._session.history),
        )

    async def run(
        self,
        files: Mapping[str, UploadFile],
        *,
        overrides: GameOverrides | None = None,
        cancel: CancelToken | None = None,
    ) -> ImportOutcome:
        """Start the job and poll it until it reaches a terminal state.

        Args:
            files: Multipart documents (see ``upload_files``).
            overrides: Replaces ``self.overrides`` when given.
            cancel: Token that stops polling at the next wait.

        Returns:
            ImportOutcome describing how the session ended.

        Raises:
            RuntimeError: If the instance was already run.
        """
        if self._state is not None:
            raise RuntimeError("ImportJobClient.run() may only be called once")
        if overrides is not None:
            self.overrides = overrides
        cancel = cancel or CancelToken()

        self._set_state(ImportState.STARTING)
        if cancel.cancelled:
            return self._finish(ImportState.CANCELLED, message=CANCELLED_MESSAGE)

        try:
            job_id = await self._client.start_ingest(files)
        except ApiError as e:
            log.error("ingest_start_failed", error=str(e))
            detail = None if isinstance(e, ApiConnectionError) else e.detail
            message = f"{START_FAILED_MESSAGE}: {detail}" if detail else START_FAILED_MESSAGE
            return self._finish(ImportState.ERROR, message=message)

        self._session.job_id = job_id
        self._set_state(ImportState.POLLING)
        with log_context(job_id=job_id):
            return await self._poll(job_id, cancel)

    async def _poll(self, job_id: str, cancel: CancelToken) -> ImportOutcome:
        session = self._session
        while session.attempts < self._max_attempts:
            if await cancel.sleep(self._interval):
                log.info("ingest_cancelled", attempts=session.attempts)
                return self._finish(ImportState.CANCELLED, message=CANCELLED_MESSAGE)

            session.attempts += 1
            try:
                job = await self._client.get_ingest_job(job_id)
            except ApiPayloadError as e:
                # An unreadable body is not a verdict on the job; ask again
                log.warning("ingest_status_unreadable", error=str(e))
                continue
            except ApiError as e:
                log.error("ingest_poll_failed", error=str(e))
                return self._finish(ImportState.ERROR, message=POLL_FAILED_MESSAGE)

            if job.progress and job.progress != session.last_progress:
                session.last_progress = job.progress
                log.info("ingest_progress", progress=job.progress)
                if self._on_progress is not None:
                    self._on_progress(job.progress)

            if job.is_error:
                return self._finish(
                    ImportState.ERROR, message=job.error or UNKNOWN_JOB_ERROR
                )
            game_id = job.game_id
            if job.is_done and game_id:
                applied = await self._apply_overrides(game_id)
                return self._finish(
                    ImportState.DONE, game_id=game_id, overrides_applied=applied
                )

        log.warning("ingest_timeout", attempts=session.attempts)
        return self._finish(ImportState.TIMEOUT, message=TIMEOUT_MESSAGE)

    async def _apply_overrides(self, game_id: str) -> bool:
        """Best-effort metadata patch; failures are logged, never surfaced."""
        fields = self.overrides.to_fields()
        if not fields:
            return False
        try:
            await self._client.update_game(game_id, fields)
        except ApiError as e:
            log.warning("ingest_overrides_failed", game_id=game_id, error=str(e))
            return False
        log.info("ingest_overrides_applied", game_id=game_id, fields=sorted(fields))
        return True
