"""Location reordering.

Moving a location one step up or down is planned against the store's
effective orders and written with as few backend updates as possible:

- sparse: if there is room for an integer on the far side of the neighbor
  (or the neighbor is at the edge of the list), only the moved location is
  rewritten, so there is no intermediate state with duplicated orders;
- swap: otherwise the two locations exchange order values. If the second
  update fails, the first is rolled back before the failure is reported.
- renumber: when any two locations share an order value, every location
  is rewritten to its new 1-based position. Writes that succeeded before a
  failure are rolled back the same way.

The store is never re-sorted locally; a successful move ends with a reload.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Literal

from scenariokit.errors import ApiError
from scenariokit.graph.writes import reload_after_write
from scenariokit.observability.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Sequence

    from scenariokit.api.client import AdminApiClient
    from scenariokit.graph.store import GraphStore
    from scenariokit.graph.writes import Notifier, Reloader

log = get_logger(__name__)

MIN_ORDER = 1
MOVE_FAILED_MESSAGE = "Could not reorder locations"


class MoveDirection(StrEnum):
    UP = "up"
    DOWN = "down"


@dataclass(frozen=True)
class MovePlan:
    """Order updates needed for one move, in the sequence they are issued."""

    strategy: Literal["sparse", "swap", "renumber"]
    writes: tuple[tuple[str, int], ...]


@dataclass
class MoveResult:
    """Outcome of ``OrderingController.move``.

    Attributes:
        location_id: The moved location; callers bring it into view.
        moved: False when the move was a no-op (already first/last).
        ok: False when a backend update failed.
        strategy: "sparse", "swap", "renumber", or None for a no-op.
        new_orders: Order values that were written, by location id.
        error: Failure description when ``ok`` is False.
        reloaded: Whether the follow-up reload completed.
    """

    location_id: str
    moved: bool = False
    ok: bool = True
    strategy: str | None = None
    new_orders: dict[str, int] = field(default_factory=dict)
    error: str | None = None
    reloaded: bool = False


def plan_move(
    ordered: Sequence[tuple[str, int]],
    location_id: str,
    direction: MoveDirection,
) -> MovePlan | None:
    """Plan the order updates that move *location_id* one step.

    Args:
        ordered: (location id, effective order) pairs, already sorted.
        location_id: Location to move.
        direction: UP or DOWN.

    Returns:
        The plan, or None if the neighbor would be out of bounds.

    Raises:
        ValueError: If *location_id* is not in *ordered*.
    """
    ids = [loc_id for loc_id, _ in ordered]
    orders = [order for _, order in ordered]
    idx = ids.index(location_id)
    step = -1 if direction == MoveDirection.UP else 1
    neighbor = idx + step
    if neighbor < 0 or neighbor >= len(ordered):
        return None
    if len(set(orders)) != len(orders):
        return _renumber(ids, orders, idx, neighbor)

    # The moved location must land strictly between the neighbor and the
    # location beyond it (or past the neighbor when nothing is beyond).
    beyond = neighbor + step
    pivot = orders[neighbor]
    if 0 <= beyond < len(ordered):
        low, high = sorted((pivot, orders[beyond]))
        if high - low >= 2:
            return MovePlan("sparse", ((location_id, low + (high - low) // 2),))
    else:
        target = pivot + step
        if target >= MIN_ORDER:
            return MovePlan("sparse", ((location_id, target),))

    return MovePlan("swap", ((location_id, orders[neighbor]), (ids[neighbor], orders[idx])))


def _renumber(ids: list[str], orders: list[int], idx: int, neighbor: int) -> MovePlan:
    """Write positional orders for the whole list with the two entries exchanged.

    Duplicate order values leave no single value that places a location
    between two tied neighbors, so every location whose order differs from
    its new position is rewritten. The moved location is written first.
    """
    target = list(ids)
    target[idx], target[neighbor] = target[neighbor], target[idx]
    current = dict(zip(ids, orders, strict=True))
    moved = ids[idx]
    writes = [
        (loc_id, position)
        for position, loc_id in enumerate(target, start=MIN_ORDER)
        if current[loc_id] != position
    ]
    writes.sort(key=lambda write: write[0] != moved)
    return MovePlan("renumber", tuple(writes))


class OrderingController:
    """Moves locations within a game's total order.

    Args:
        client: API client used for ``PATCH /locations/{id}``.
        store: Graph store holding the current order.
        reload: Coroutine factory that reloads the game after a move.
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

    async def move(self, location_id: str, direction: MoveDirection | str) -> MoveResult:
        """Move a location one step up or down.

        Raises:
            LocationNotFoundError: If the location is not in the loaded game.
        """
        direction = MoveDirection(direction)
        self._store.location(location_id)
        ordered = [
            (loc.id, self._store.effective_order(loc.id))
            for loc in self._store.ordered_locations()
        ]
        plan = plan_move(ordered, location_id, direction)
        if plan is None:
            log.debug("move_noop", location_id=location_id, direction=str(direction))
            return MoveResult(location_id=location_id)

        original = dict(ordered)
        applied: list[str] = []
        for target_id, order in plan.writes:
            try:
                await self._client.update_location(target_id, {"order": order})
            except ApiError as e:
                log.warning(
                    "move_write_failed",
                    location_id=target_id,
                    order=order,
                    strategy=plan.strategy,
                    error=str(e),
                )
                await self._rollback(applied, original)
                self._notify(MOVE_FAILED_MESSAGE)
                return MoveResult(
                    location_id=location_id,
                    ok=False,
                    strategy=plan.strategy,
                    error=str(e),
                )
            applied.append(target_id)

        log.info(
            "move_applied",
            location_id=location_id,
            direction=str(direction),
            strategy=plan.strategy,
        )
        reloaded = await reload_after_write(self._reload, self._notify, action="location_move")
        return MoveResult(
            location_id=location_id,
            moved=True,
            strategy=plan.strategy,
            new_orders=dict(plan.writes),
            reloaded=reloaded,
        )

    async def _rollback(self, applied: list[str], original: dict[str, int]) -> None:
        """Best-effort restore of orders written before a failure."""
        for target_id in reversed(applied):
            try:
                await self._client.update_location(target_id, {"order": original[target_id]})
            except ApiError as e:
                log.error("move_rollback_failed", location_id=target_id, error=str(e))
            else:
                log.info("move_rolled_back", location_id=target_id, order=original[target_id])
