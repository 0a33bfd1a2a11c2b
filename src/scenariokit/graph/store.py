"""Normalized in-memory store for one game's scenario graph.

Locations and exits are each kept once, keyed by id. Everything the editor
displays (the per-location exit map, the flat flow list, a game with inline
exits) is a projection computed on demand, so there is a single copy of the
graph to keep in sync.

The store never talks to the backend. It is filled by ``replace()`` after a
reconciliation pass and otherwise only receives optimistic exits via
``stage_exit()``, which the next ``replace()`` discards.
"""

from __future__ import annotations

from collections.abc import Iterable

from scenariokit.errors import ExitNotFoundError, LocationNotFoundError
from scenariokit.models import Exit, Game, Location

_ANON_PREFIX = "_anon:"


class GraphStore:
    """Authoritative in-memory view of one game's locations and exits."""

    def __init__(self) -> None:
        self._game: Game | None = None
        # Insertion order is the backend's array order; used to break order ties
        self._locations: dict[str, Location] = {}
        self._positions: dict[str, int] = {}
        self._exits: dict[str, Exit] = {}
        self._staged: set[str] = set()

    # -- Loading ---------------------------------------------------------------

    def replace(self, game: Game, exits: Iterable[Exit]) -> None:
        """Swap in a freshly reconciled graph, dropping any staged exits.

        Inline exits on ``game.locations`` are ignored; *exits* is the only
        edge data the store keeps.
        """
        self._game = game.model_copy(update={"locations": []})
        self._locations = {}
        self._positions = {}
        for position, location in enumerate(game.locations):
            self._locations[location.id] = location.model_copy(update={"exits": []})
            self._positions.setdefault(location.id, position)
        self._exits = {}
        self._staged = set()
        for exit_ in exits:
            self._exits[self._exit_key(exit_)] = exit_

    def stage_exit(self, exit_: Exit) -> None:
        """Show a just-created exit until the next reload replaces the graph."""
        key = self._exit_key(exit_)
        self._exits[key] = exit_
        self._staged.add(key)

    def _exit_key(self, exit_: Exit) -> str:
        if exit_.id:
            return exit_.id
        return f"{_ANON_PREFIX}{len(self._exits)}"

    # -- Game ------------------------------------------------------------------

    @property
    def is_loaded(self) -> bool:
        return self._game is not None

    @property
    def game(self) -> Game:
        """Game metadata (without locations). Raises if nothing was loaded."""
        if self._game is None:
            raise RuntimeError("GraphStore is empty; load a game first")
        return self._game

    @property
    def game_id(self) -> str | None:
        return self._game.id if self._game else None

    @property
    def staged_exit_ids(self) -> set[str]:
        return set(self._staged)

    # -- Locations -------------------------------------------------------------

    def has_location(self, location_id: str) -> bool:
        return location_id in self._locations

    def location(self, location_id: str) -> Location:
        try:
            return self._locations[location_id]
        except KeyError:
            raise LocationNotFoundError(location_id, list(self._locations)) from None

    def effective_order(self, location_id: str) -> int:
        """Persisted order, or the 1-based array position when it is unset."""
        location = self.location(location_id)
        if location.order is not None:
            return location.order
        return self._positions[location_id] + 1

    def ordered_locations(self) -> list[Location]:
        """Locations sorted by effective order; ties keep the backend's array order."""
        return sorted(
            self._locations.values(),
            key=lambda loc: (self.effective_order(loc.id), self._positions[loc.id]),
        )

    def location_count(self) -> int:
        return len(self._locations)

    # -- Exits -----------------------------------------------------------------

    def exit(self, exit_id: str) -> Exit:
        try:
            return self._exits[exit_id]
        except KeyError:
            raise ExitNotFoundError(exit_id, list(self._exits)) from None

    def flat_exits(self) -> list[Exit]:
        """Every exit exactly once, in reconciliation order."""
        return list(self._exits.values())

    def exits_for(self, location_id: str) -> list[Exit]:
        return [e for e in self._exits.values() if e.location_id == location_id]

    def exits_by_location(self) -> dict[str, list[Exit]]:
        """Map of location id to its exits.

        Every known location is present (possibly with an empty list). Exits
        owned by a location that no longer exists keep their own key; exits
        without any owner appear only in ``flat_exits()``.
        """
        grouped: dict[str, list[Exit]] = {loc.id: [] for loc in self.ordered_locations()}
        for exit_ in self._exits.values():
            if exit_.location_id is None:
                continue
            grouped.setdefault(exit_.location_id, []).append(exit_)
        return grouped

    def exit_count(self) -> int:
        return len(self._exits)

    # -- Projections -----------------------------------------------------------

    def inline_game(self) -> Game:
        """The game with ordered locations, each carrying its exits inline."""
        grouped = self.exits_by_location()
        locations = [
            loc.model_copy(update={"exits": list(grouped.get(loc.id, []))})
            for loc in self.ordered_locations()
        ]
        return self.game.model_copy(update={"locations": locations})
