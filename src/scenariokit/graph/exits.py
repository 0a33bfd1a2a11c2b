"""Create, update and delete individual exits.

Each write is followed by a full reload when the backend accepts it. A
created exit is staged in the store first so it is visible while the reload
is in flight; the reload then replaces it with whatever the winning source
reports. Failures are announced through the notifier and leave the store
untouched.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from scenariokit.graph.writes import WriteResult, apply_write
from scenariokit.models import Exit, ExitType
from scenariokit.models.scenario import WireModel
from scenariokit.observability.logging import get_logger

if TYPE_CHECKING:
    from scenariokit.api.client import AdminApiClient
    from scenariokit.graph.store import GraphStore
    from scenariokit.graph.writes import Notifier, Reloader

log = get_logger(__name__)

CREATE_FAILED_MESSAGE = "Could not add exit"
UPDATE_FAILED_MESSAGE = "Could not save exit"
DELETE_FAILED_MESSAGE = "Could not delete exit"


class ExitFields(WireModel):
    """Editable exit fields.

    Used both as a creation draft and as a partial patch: only fields that
    were explicitly set are sent on update. ``type`` is validated against
    BUTTON/TRIGGER/GAMEOVER at construction.
    """

    type: ExitType | None = None
    button_text: str | None = None
    trigger_text: str | None = None
    target_location_id: str | None = None
    is_game_over: bool | None = None

    def create_payload(self) -> dict[str, Any]:
        """Full creation body; missing type defaults to BUTTON."""
        return {
            "type": str(self.type or ExitType.BUTTON),
            "buttonText": self.button_text,
            "triggerText": self.trigger_text,
            "targetLocationId": self.target_location_id or None,
            "isGameOver": bool(self.is_game_over),
        }

    def patch_payload(self) -> dict[str, Any]:
        """Only the fields the caller set, with backend names."""
        return self.model_dump(mode="json", by_alias=True, exclude_unset=True)


class ExitCRUD:
    """Exit writes bound to one editor's store and reload.

    Args:
        client: API client.
        store: Store that receives optimistically created exits.
        reload: Coroutine factory that refetches and reconciles the game.
        notify: Receives user-facing failure messages.
    """

    def __init__(
        self,
        client: AdminApiClient,
        store: GraphStore,
        reload: Reloader,
        notify: Notifier,
    ) -> None:
        self._client = client
        self._store = store
        self._reload = reload
        self._notify = notify

    async def create(self, location_id: str, draft: ExitFields) -> WriteResult:
        """Create an exit on *location_id*, stage it, then reload."""
        payload = draft.create_payload()

        def stage(created: Exit) -> None:
            if created.location_id is None:
                created = created.model_copy(update={"location_id": location_id})
            self._store.stage_exit(created)

        return await apply_write(
            lambda: self._client.create_exit(location_id, payload),
            reload=self._reload,
            notify=self._notify,
            action="exit_create",
            failure_message=CREATE_FAILED_MESSAGE,
            on_success=stage,
        )

    async def update(self, exit_id: str, patch: ExitFields) -> WriteResult:
        """Patch the fields set on *patch*, then reload."""
        payload = patch.patch_payload()
        if not payload:
            log.debug("exit_update_empty", exit_id=exit_id)
        return await apply_write(
            lambda: self._client.update_exit(exit_id, payload),
            reload=self._reload,
            notify=self._notify,
            action="exit_update",
            failure_message=UPDATE_FAILED_MESSAGE,
        )

    async def delete(self, exit_id: str) -> WriteResult:
        """Delete an exit, then reload."""
        return await apply_write(
            lambda: self._client.delete_exit(exit_id),
            reload=self._reload,
            notify=self._notify,
            action="exit_delete",
            failure_message=DELETE_FAILED_MESSAGE,
        )
