"""Scenario editor facade for one game.

Wires the store, reconciliation, ordering and exit writes together around a
single ``load()``: fetch the full game, reconcile its exits, replace the
store. Every accepted write ends with another ``load()``; local state is
never patched into its final form.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from scenariokit.graph.exits import ExitCRUD, ExitFields
from scenariokit.graph.ordering import MoveDirection, MoveResult, OrderingController
from scenariokit.graph.reconcile import EdgeSource, Reconciliation, ReconciliationEngine
from scenariokit.graph.store import GraphStore
from scenariokit.graph.writes import WriteResult, apply_write
from scenariokit.observability.logging import get_logger, log_context

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from scenariokit.api.client import AdminApiClient
    from scenariokit.graph.writes import Notifier

log = get_logger(__name__)


def _log_notice(message: str) -> None:
    log.warning("editor_notice", message=message)


class ScenarioEditor:
    """Editing session for one game's scenario graph.

    Args:
        client: API client.
        game_id: Game being edited.
        notify: Receives user-facing failure messages. Defaults to logging them.
    """

    def __init__(
        self,
        client: AdminApiClient,
        game_id: str,
        *,
        notify: Notifier | None = None,
    ) -> None:
        self._client = client
        self.game_id = game_id
        self._notify = notify or _log_notice
        self.store = GraphStore()
        self._reconciler = ReconciliationEngine(client)
        self._last_source: EdgeSource | None = None
        self.ordering = OrderingController(client, self.store, self.load, self._notify)
        self.exits = ExitCRUD(client, self.store, self.load, self._notify)

    @property
    def last_source(self) -> EdgeSource | None:
        """Edge source that won the most recent reconciliation."""
        return self._last_source

    async def load(self) -> Reconciliation:
        """Fetch the full game, reconcile its exits and replace the store.

        Raises:
            ApiError: If the full-game fetch fails. Exit source failures are
                absorbed by the reconciliation.
        """
        with log_context(game_id=self.game_id):
            game = await self._client.get_full_game(self.game_id)
            result = await self._reconciler.reconcile(game)
            self.store.replace(game, result.flat_exits)
            self._last_source = result.source
            log.debug(
                "editor_loaded",
                locations=self.store.location_count(),
                exits=self.store.exit_count(),
            )
        return result

    # -- Game & locations ------------------------------------------------------

    async def _write(
        self, write: Callable[[], Awaitable[Any]], *, action: str, failure_message: str
    ) -> WriteResult:
        with log_context(game_id=self.game_id):
            return await apply_write(
                write,
                reload=self.load,
                notify=self._notify,
                action=action,
                failure_message=failure_message,
            )

    async def update_game(self, fields: dict[str, Any]) -> WriteResult:
        return await self._write(
            lambda: self._client.update_game(self.game_id, fields),
            action="game_update",
            failure_message="Could not save game",
        )

    async def add_location(self, fields: dict[str, Any]) -> WriteResult:
        return await self._write(
            lambda: self._client.create_location(self.game_id, fields),
            action="location_create",
            failure_message="Could not add location",
        )

    async def update_location(self, location_id: str, fields: dict[str, Any]) -> WriteResult:
        return await self._write(
            lambda: self._client.update_location(location_id, fields),
            action="location_update",
            failure_message="Could not save location",
        )

    async def delete_location(self, location_id: str) -> WriteResult:
        """Delete a location. Its exits, and exits targeting it, are left in place."""
        return await self._write(
            lambda: self._client.delete_location(location_id),
            action="location_delete",
            failure_message="Could not delete location",
        )

    async def move_location(self, location_id: str, direction: MoveDirection | str) -> MoveResult:
        with log_context(game_id=self.game_id):
            return await self.ordering.move(location_id, direction)

    # -- Exits -----------------------------------------------------------------

    async def create_exit(self, location_id: str, draft: ExitFields) -> WriteResult:
        with log_context(game_id=self.game_id):
            return await self.exits.create(location_id, draft)

    async def update_exit(self, exit_id: str, patch: ExitFields) -> WriteResult:
        with log_context(game_id=self.game_id):
            return await self.exits.update(exit_id, patch)

    async def delete_exit(self, exit_id: str) -> WriteResult:
        with log_context(game_id=self.game_id):
            return await self.exits.delete(exit_id)
