"""Build scenario documents from the editor's graph store.

The document references locations by ``key`` (the server id at export time)
so it can be re-imported into a fresh game, where the backend assigns new ids
and resolves ``fromKey``/``toKey`` itself.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from scenariokit.models import (
    DocumentExit,
    DocumentGame,
    DocumentLocation,
    ScenarioDocument,
)
from scenariokit.observability.logging import get_logger

if TYPE_CHECKING:
    from scenariokit.graph.store import GraphStore

log = get_logger(__name__)

_GAME_FIELDS = tuple(DocumentGame.model_fields)


def build_document(store: GraphStore) -> ScenarioDocument:
    """Export the loaded game as a scenario document.

    Locations appear in editor order with their effective order value.
    Exits are listed per location in the same order; exits whose owner is
    not a loaded location are not exported.
    """
    game = store.game
    meta = DocumentGame.model_validate(game.model_dump(include=set(_GAME_FIELDS)))

    locations: list[DocumentLocation] = []
    exits: list[DocumentExit] = []
    for location in store.ordered_locations():
        locations.append(
            DocumentLocation(
                key=location.id,
                order=store.effective_order(location.id),
                title=location.title,
                description=location.description,
                rules_prompt=location.rules_prompt,
                background_url=location.background_url,
                music_url=location.music_url,
            )
        )
        for exit_ in store.exits_for(location.id):
            exits.append(
                DocumentExit(
                    from_key=location.id,
                    type=exit_.type,
                    button_text=exit_.button_text or None,
                    trigger_text=exit_.trigger_text or None,
                    to_key=exit_.target_location_id or None,
                    is_game_over=exit_.is_game_over,
                )
            )

    log.info(
        "document_built",
        game_id=game.id,
        locations=len(locations),
        exits=len(exits),
    )
    return ScenarioDocument(game=meta, locations=locations, exits=exits)


def remap_document(document: ScenarioDocument) -> ScenarioDocument:
    """Rewrite location keys to positional keys (``loc-1`` .. ``loc-N``).

    Two exports of the same scenario from different games differ only in
    their server ids; after remapping they compare equal by relative
    position. Target keys that match no location are kept verbatim.
    """
    mapping = {loc.key: f"loc-{i}" for i, loc in enumerate(document.locations, start=1)}
    locations = [loc.model_copy(update={"key": mapping[loc.key]}) for loc in document.locations]
    exits = [
        ex.model_copy(
            update={
                "from_key": mapping.get(ex.from_key, ex.from_key),
                "to_key": mapping.get(ex.to_key, ex.to_key) if ex.to_key else None,
            }
        )
        for ex in document.exits
    ]
    return document.model_copy(update={"locations": locations, "exits": exits})
