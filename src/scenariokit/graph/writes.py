"""Explicit results for editor writes.

Every mutating editor call returns a ``WriteResult`` instead of raising or
silently succeeding. The graph is only reloaded after a write that the
backend acknowledged; a failed write is reported to the notifier first and
leaves the store exactly as it was.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from scenariokit.errors import ApiError
from scenariokit.observability.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    Notifier = Callable[[str], None]
    Reloader = Callable[[], Awaitable[Any]]

log = get_logger(__name__)

RELOAD_FAILED_MESSAGE = "Saved, but reloading the scenario failed"


@dataclass(frozen=True)
class WriteResult:
    """Outcome of one editor write.

    Attributes:
        ok: Whether the backend accepted the write.
        data: The backend's response object (created/updated entity), if any.
        error: Description of the failure when ``ok`` is False.
        reloaded: Whether the follow-up reload completed.
    """

    ok: bool
    data: Any = None
    error: str | None = None
    reloaded: bool = False


async def reload_after_write(reload: Reloader, notify: Notifier, *, action: str) -> bool:
    """Reload the graph after a successful write.

    A failed reload does not undo the write; the user is told and the store
    keeps its previous contents until the next successful load.

    Returns:
        True if the reload completed.
    """
    try:
        await reload()
    except ApiError as e:
        log.warning("reload_after_write_failed", action=action, error=str(e))
        notify(RELOAD_FAILED_MESSAGE)
        return False
    return True


async def apply_write(
    write: Callable[[], Awaitable[Any]],
    *,
    reload: Reloader,
    notify: Notifier,
    action: str,
    failure_message: str,
    on_success: Callable[[Any], None] | None = None,
) -> WriteResult:
    """Run one write, then reload only if the backend accepted it.

    Args:
        write: Zero-argument coroutine factory performing the request.
        reload: Coroutine factory that refetches and reconciles the graph.
        notify: Receives the user-facing failure message.
        action: Short event name used in logs (e.g. ``exit_delete``).
        failure_message: Message shown to the user when the write fails.
        on_success: Called with the response before the reload starts.

    Returns:
        WriteResult describing the outcome.
    """
    try:
        data = await write()
    except ApiError as e:
        log.warning("write_failed", action=action, error=str(e))
        notify(failure_message)
        return WriteResult(ok=False, error=str(e))

    log.info("write_applied", action=action)
    if on_success is not None:
        on_success(data)
    reloaded = await reload_after_write(reload, notify, action=action)
    return WriteResult(ok=True, data=data, reloaded=reloaded)
