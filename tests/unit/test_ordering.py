"""Tests for location reordering."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from scenariokit.errors import ApiResponseError, LocationNotFoundError
from scenariokit.graph import MoveDirection, MovePlan, ScenarioEditor, plan_move
from scenariokit.graph.ordering import MOVE_FAILED_MESSAGE
from tests.fixtures.fake_backend import FakeAdminClient

UP = MoveDirection.UP
DOWN = MoveDirection.DOWN


def _ordered(*orders: int) -> list[tuple[str, int]]:
    return [(chr(ord("a") + i), order) for i, order in enumerate(orders)]


class TestPlanMove:
    def test_dense_orders_swap_with_neighbor(self) -> None:
        plan = plan_move(_ordered(1, 2, 3, 4), "b", DOWN)

        assert plan == MovePlan("swap", (("b", 3), ("c", 2)))

    def test_first_up_is_noop(self) -> None:
        assert plan_move(_ordered(1, 2, 3, 4), "a", UP) is None

    def test_last_down_is_noop(self) -> None:
        assert plan_move(_ordered(1, 2, 3, 4), "d", DOWN) is None

    def test_single_location_is_noop(self) -> None:
        assert plan_move(_ordered(1), "a", DOWN) is None

    def test_sparse_gap_writes_one_midpoint(self) -> None:
        plan = plan_move(_ordered(10, 20, 30), "c", UP)

        assert plan == MovePlan("sparse", (("c", 15),))

    def test_moving_past_the_end_writes_one_value(self) -> None:
        assert plan_move(_ordered(1, 2, 3), "b", DOWN) == MovePlan("sparse", (("b", 4),))

    def test_moving_to_the_front_never_goes_below_one(self) -> None:
        plan = plan_move(_ordered(1, 2, 3), "b", UP)

        assert plan == MovePlan("swap", (("b", 1), ("a", 2)))

    def test_moving_to_the_front_with_room(self) -> None:
        assert plan_move(_ordered(5, 8), "b", UP) == MovePlan("sparse", (("b", 4),))

    def test_tied_orders_renumber_by_position(self) -> None:
        plan = plan_move(_ordered(1, 1, 1), "a", DOWN)

        assert plan == MovePlan("renumber", (("a", 2), ("c", 3)))

    def test_tie_elsewhere_renumbers_whole_list(self) -> None:
        plan = plan_move(_ordered(1, 5, 5, 9), "a", DOWN)

        assert plan == MovePlan("renumber", (("a", 2), ("b", 1), ("c", 3), ("d", 4)))

    def test_unknown_location(self) -> None:
        with pytest.raises(ValueError):
            plan_move(_ordered(1, 2), "z", UP)


@pytest.fixture
def notify() -> MagicMock:
    return MagicMock()


async def _editor(client: FakeAdminClient, notify: MagicMock) -> ScenarioEditor:
    editor = ScenarioEditor(client, "g1", notify=notify)
    await editor.load()
    return editor


class TestOrderingController:
    @pytest.mark.asyncio()
    async def test_swap_then_reload(self, fake_client: FakeAdminClient, notify: MagicMock) -> None:
        editor = await _editor(fake_client, notify)

        result = await editor.move_location("b", "up")

        assert result.ok and result.moved
        assert result.strategy == "swap"
        assert fake_client.orders() == {"a": 2, "b": 1, "c": 3}
        assert [loc.id for loc in editor.store.ordered_locations()] == ["b", "a", "c"]
        assert result.reloaded
        notify.assert_not_called()

    @pytest.mark.asyncio()
    async def test_sparse_move_writes_once(
        self, fake_client: FakeAdminClient, notify: MagicMock
    ) -> None:
        editor = await _editor(fake_client, notify)
        fake_client.calls.clear()

        result = await editor.move_location("b", DOWN)

        writes = [c for c in fake_client.calls if c[0] == "update_location"]
        assert writes == [("update_location", "b")]
        assert result.new_orders == {"b": 4}
        assert [loc.id for loc in editor.store.ordered_locations()] == ["a", "c", "b"]

    @pytest.mark.asyncio()
    async def test_noop_issues_no_writes(
        self, fake_client: FakeAdminClient, notify: MagicMock
    ) -> None:
        editor = await _editor(fake_client, notify)
        fake_client.calls.clear()

        result = await editor.move_location("a", UP)

        assert not result.moved
        assert result.ok
        assert fake_client.calls == []

    @pytest.mark.asyncio()
    async def test_second_write_failure_rolls_back_first(
        self, fake_client: FakeAdminClient, notify: MagicMock
    ) -> None:
        editor = await _editor(fake_client, notify)
        fake_client.fail["update_location"] = lambda loc_id: (
            ApiResponseError("PATCH", f"/locations/{loc_id}", 500) if loc_id == "a" else None
        )
        fake_client.calls.clear()

        result = await editor.move_location("b", UP)

        assert not result.ok
        assert result.error is not None
        assert fake_client.orders() == {"a": 1, "b": 2, "c": 3}
        notify.assert_called_once_with(MOVE_FAILED_MESSAGE)
        # No reload after a failed move
        assert ("get_full_game", "g1") not in fake_client.calls

    @pytest.mark.asyncio()
    async def test_first_write_failure_writes_nothing(
        self, fake_client: FakeAdminClient, notify: MagicMock
    ) -> None:
        editor = await _editor(fake_client, notify)
        fake_client.fail["update_location"] = ApiResponseError("PATCH", "/locations/b", 500)

        result = await editor.move_location("b", UP)

        assert not result.ok
        assert fake_client.orders() == {"a": 1, "b": 2, "c": 3}
        notify.assert_called_once_with(MOVE_FAILED_MESSAGE)

    @pytest.mark.asyncio()
    async def test_unset_orders_use_positions(self, notify: MagicMock) -> None:
        client = FakeAdminClient()
        client.add_location("a", None)
        client.add_location("b", None)
        editor = await _editor(client, notify)

        result = await editor.move_location("b", UP)

        assert result.ok
        assert client.orders() == {"a": 2, "b": 1}

    @pytest.mark.asyncio()
    async def test_unknown_location_raises(
        self, fake_client: FakeAdminClient, notify: MagicMock
    ) -> None:
        editor = await _editor(fake_client, notify)

        with pytest.raises(LocationNotFoundError):
            await editor.move_location("zz", UP)


class TestTiedOrders:
    @pytest.fixture
    def tied_client(self) -> FakeAdminClient:
        client = FakeAdminClient()
        for loc_id in ("a", "b", "c"):
            client.add_location(loc_id, 1)
        return client

    @pytest.mark.asyncio()
    @pytest.mark.parametrize(("location_id", "direction"), [("a", DOWN), ("b", UP)])
    async def test_move_swaps_only_the_pair(
        self,
        tied_client: FakeAdminClient,
        notify: MagicMock,
        location_id: str,
        direction: MoveDirection,
    ) -> None:
        editor = await _editor(tied_client, notify)

        result = await editor.move_location(location_id, direction)

        assert result.ok and result.moved
        assert result.strategy == "renumber"
        assert tied_client.orders() == {"a": 2, "b": 1, "c": 3}
        assert [loc.id for loc in editor.store.ordered_locations()] == ["b", "a", "c"]

    @pytest.mark.asyncio()
    async def test_failed_renumber_restores_every_write(
        self, tied_client: FakeAdminClient, notify: MagicMock
    ) -> None:
        editor = await _editor(tied_client, notify)
        tied_client.fail["update_location"] = lambda loc_id: (
            ApiResponseError("PATCH", f"/locations/{loc_id}", 500) if loc_id == "c" else None
        )

        result = await editor.move_location("a", DOWN)

        assert not result.ok
        assert tied_client.orders() == {"a": 1, "b": 1, "c": 1}
        notify.assert_called_once_with(MOVE_FAILED_MESSAGE)
