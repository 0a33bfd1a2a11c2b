"""Edge reconciliation across the backend's three exit sources.

The backend can report a game's exits in three ways that do not always agree
right after an import or an edit:

1. aggregate: ``GET /games/{id}/exits``, one flat list tagged by location
2. inline: ``locations[].exits`` embedded in the full-game fetch
3. per_location: ``GET /locations/{id}/exits`` issued for every location

Exactly one source is trusted per pass, by strict precedence. The first one
that yields at least one exit wins and the others are ignored entirely, even
if they hold exits the winner lacks. Sources are never merged.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING

from scenariokit.errors import ApiError
from scenariokit.observability.logging import get_logger

if TYPE_CHECKING:
    from scenariokit.api.client import AdminApiClient
    from scenariokit.models import Exit, Game, Location

log = get_logger(__name__)


class EdgeSource(StrEnum):
    """Which backend source supplied the reconciled exits."""

    AGGREGATE = "aggregate"
    INLINE = "inline"
    PER_LOCATION = "per_location"
    EMPTY = "empty"


@dataclass
class Reconciliation:
    """Result of one reconciliation pass.

    Attributes:
        source: The source that won precedence (EMPTY when none had exits).
        exits_by_location: Location id -> exits. Every location of the game is
            present; exits owned by unknown locations keep their own key.
            Aggregate exits without a locationId have no owner to group
            under, so they appear only in flat_exits (and are logged as
            ``reconcile_orphan_exit``).
        flat_exits: Every exit of the winning source exactly once, ownerless
            ones included.
    """

    source: EdgeSource
    exits_by_location: dict[str, list[Exit]] = field(default_factory=dict)
    flat_exits: list[Exit] = field(default_factory=list)


def _owned(location: Location, exits: list[Exit]) -> list[Exit]:
    """Tag exits with the location they were listed under."""
    return [
        e if e.location_id == location.id else e.model_copy(update={"location_id": location.id})
        for e in exits
    ]


def _empty_map(locations: list[Location]) -> dict[str, list[Exit]]:
    return {loc.id: [] for loc in locations}


class ReconciliationEngine:
    """Builds one coherent exit view for a game.

    Args:
        client: API client used for the aggregate and per-location fetches.
    """

    def __init__(self, client: AdminApiClient) -> None:
        self._client = client

    async def reconcile(self, game: Game) -> Reconciliation:
        """Pick the authoritative exit source for *game* and group its exits.

        Read failures never abort the pass: a failing aggregate fetch counts as
        "no data", and each failing per-location fetch counts as "no exits"
        for that location only.
        """
        locations = list(game.locations)

        aggregate = await self._fetch_aggregate(game.id)
        if aggregate:
            result = self._from_aggregate(locations, aggregate)
        elif any(loc.exits for loc in locations):
            result = self._from_lists(
                EdgeSource.INLINE, locations, [list(loc.exits) for loc in locations]
            )
        else:
            lists = await asyncio.gather(*(self._fetch_location(loc) for loc in locations))
            result = self._from_lists(EdgeSource.PER_LOCATION, locations, list(lists))
            if not result.flat_exits:
                result.source = EdgeSource.EMPTY

        log.info(
            "reconcile_complete",
            game_id=game.id,
            source=str(result.source),
            locations=len(locations),
            exits=len(result.flat_exits),
        )
        return result

    async def _fetch_aggregate(self, game_id: str) -> list[Exit]:
        try:
            return await self._client.list_game_exits(game_id)
        except ApiError as e:
            log.warning("reconcile_aggregate_unavailable", game_id=game_id, error=str(e))
            return []

    async def _fetch_location(self, location: Location) -> list[Exit]:
        try:
            return _owned(location, await self._client.list_location_exits(location.id))
        except ApiError as e:
            log.warning("reconcile_location_unavailable", location_id=location.id, error=str(e))
            return []

    def _from_aggregate(self, locations: list[Location], exits: list[Exit]) -> Reconciliation:
        grouped = _empty_map(locations)
        flat: list[Exit] = []
        for exit_ in exits:
            flat.append(exit_)
            if exit_.location_id is None:
                log.warning("reconcile_orphan_exit", exit_id=exit_.id)
                continue
            grouped.setdefault(exit_.location_id, []).append(exit_)
        return Reconciliation(EdgeSource.AGGREGATE, grouped, flat)

    def _from_lists(
        self,
        source: EdgeSource,
        locations: list[Location],
        lists: list[list[Exit]],
    ) -> Reconciliation:
        grouped = _empty_map(locations)
        flat: list[Exit] = []
        for location, exits in zip(locations, lists, strict=True):
            owned = _owned(location, exits)
            grouped[location.id] = owned
            flat.extend(owned)
        return Reconciliation(source, grouped, flat)
