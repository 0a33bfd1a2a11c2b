"""Create a new game from a scenario document."""

from __future__ import annotations

from typing import TYPE_CHECKING

from scenariokit.errors import ScenarioDocumentError
from scenariokit.observability.logging import get_logger

if TYPE_CHECKING:
    from scenariokit.api.client import AdminApiClient
    from scenariokit.models import ScenarioDocument

log = get_logger(__name__)


def dangling_keys(document: ScenarioDocument) -> list[str]:
    """Exit keys (``fromKey`` or ``toKey``) that name no document location."""
    known = {loc.key for loc in document.locations}
    missing: list[str] = []
    for exit_ in document.exits:
        for key in (exit_.from_key, exit_.to_key):
            if key and key not in known and key not in missing:
                missing.append(key)
    return missing


async def import_document(client: AdminApiClient, document: ScenarioDocument) -> str:
    """Upload *document* as a new game and return the new game id.

    Exits with an unknown ``fromKey`` are dropped by the backend; they are
    logged here so the loss is visible.

    Raises:
        ScenarioDocumentError: If the document has no game title.
        ApiError: If the backend rejects the import.
    """
    if not document.game.title.strip():
        raise ScenarioDocumentError("game.title is required")

    missing = dangling_keys(document)
    if missing:
        log.warning("import_dangling_keys", keys=missing)

    game_id = await client.import_scenario(document.to_wire())
    log.info(
        "scenario_imported",
        game_id=game_id,
        locations=len(document.locations),
        exits=len(document.exits),
    )
    return game_id
