"""In-memory admin backend used by the editor, ingest and CLI tests."""

from __future__ import annotations

import itertools
from typing import Any

from scenariokit.config import ClientConfig
from scenariokit.errors import ApiResponseError
from scenariokit.models import Exit, Game, ImportJob, Location


class FakeAdminClient:
    """In-memory stand-in for ``AdminApiClient``.

    Stores one game's locations and exits and answers the editor's calls the
    way the backend does. Individual calls can be made to fail through
    ``fail``: a mapping of method name to the exception to raise (or a
    callable taking the call's first argument and returning one or None).
    """

    def __init__(self, config: ClientConfig | None = None) -> None:
        self.config = config or ClientConfig(poll_interval=0)
        self.game = Game(id="g1", title="Test Game")
        self.locations: dict[str, Location] = {}
        self.exits: dict[str, Exit] = {}
        self.aggregate_enabled = True
        self.inline_enabled = False
        self.fail: dict[str, Any] = {}
        self.calls: list[tuple[str, Any]] = []
        self.jobs: list[ImportJob | Exception] = []
        self.job_id = "job-1"
        self.imported: list[dict[str, Any]] = []
        self.closed = False
        self._ids = itertools.count(1)

    # -- Test helpers ----------------------------------------------------------

    def add_location(self, loc_id: str, order: int | None, title: str | None = None) -> Location:
        location = Location(id=loc_id, game_id=self.game.id, order=order, title=title or loc_id)
        self.locations[loc_id] = location
        return location

    def add_exit(
        self, exit_id: str, location_id: str, target: str | None = None, **fields: Any
    ) -> Exit:
        exit_ = Exit(id=exit_id, location_id=location_id, target_location_id=target, **fields)
        self.exits[exit_id] = exit_
        return exit_

    def _check(self, method: str, arg: Any = None) -> None:
        self.calls.append((method, arg))
        failure = self.fail.get(method)
        if callable(failure) and not isinstance(failure, Exception):
            failure = failure(arg)
        if failure is not None:
            raise failure

    def orders(self) -> dict[str, int | None]:
        return {loc_id: loc.order for loc_id, loc in self.locations.items()}

    # -- AdminApiClient surface -------------------------------------------------

    async def aclose(self) -> None:
        self.closed = True

    async def __aenter__(self) -> FakeAdminClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def health(self) -> bool:
        self._check("health")
        return True

    async def list_games(self) -> list[Game]:
        self._check("list_games")
        return [self.game]

    async def get_full_game(self, game_id: str) -> Game:
        self._check("get_full_game", game_id)
        locations = []
        for location in self.locations.values():
            exits = []
            if self.inline_enabled:
                exits = [e for e in self.exits.values() if e.location_id == location.id]
            locations.append(location.model_copy(update={"exits": exits}))
        return self.game.model_copy(update={"locations": locations})

    async def update_game(self, game_id: str, fields: dict[str, Any]) -> Game:
        self._check("update_game", game_id)
        patch = Game.model_validate({"id": game_id, **fields})
        changed = patch.model_fields_set - {"id"}
        self.game = self.game.model_copy(update={key: getattr(patch, key) for key in changed})
        return self.game

    async def create_location(self, game_id: str, fields: dict[str, Any]) -> Location:
        self._check("create_location", game_id)
        loc_id = f"loc{next(self._ids)}"
        order = fields.get("order")
        if order is None:
            order = max((loc.order or 0 for loc in self.locations.values()), default=0) + 1
        return self.add_location(loc_id, order, fields.get("title"))

    async def update_location(self, location_id: str, fields: dict[str, Any]) -> Location:
        self._check("update_location", location_id)
        if location_id not in self.locations:
            raise ApiResponseError("PATCH", f"/locations/{location_id}", 404, "Location not found")
        updated = self.locations[location_id].model_copy(update=fields)
        self.locations[location_id] = updated
        return updated

    async def delete_location(self, location_id: str) -> None:
        self._check("delete_location", location_id)
        self.locations.pop(location_id, None)

    async def list_game_exits(self, game_id: str) -> list[Exit]:
        self._check("list_game_exits", game_id)
        if not self.aggregate_enabled:
            return []
        return list(self.exits.values())

    async def list_location_exits(self, location_id: str) -> list[Exit]:
        self._check("list_location_exits", location_id)
        return [
            e.model_copy(update={"location_id": None})
            for e in self.exits.values()
            if e.location_id == location_id
        ]

    async def create_exit(self, location_id: str, fields: dict[str, Any]) -> Exit:
        self._check("create_exit", location_id)
        body = {**fields, "id": f"ex{next(self._ids)}", "locationId": location_id}
        exit_ = Exit.model_validate(body)
        self.exits[exit_.id] = exit_
        return exit_

    async def update_exit(self, exit_id: str, fields: dict[str, Any]) -> Exit:
        self._check("update_exit", exit_id)
        current = self.exits[exit_id]
        updated = Exit.model_validate({**current.to_wire(), **fields})
        self.exits[exit_id] = updated
        return updated

    async def delete_exit(self, exit_id: str) -> None:
        self._check("delete_exit", exit_id)
        self.exits.pop(exit_id, None)

    async def start_ingest(self, files: Any) -> str:
        self._check("start_ingest", files)
        return self.job_id

    async def get_ingest_job(self, job_id: str) -> ImportJob:
        self._check("get_ingest_job", job_id)
        if not self.jobs:
            return ImportJob(id=job_id, status="progress")
        # The last scripted answer repeats forever
        item = self.jobs.pop(0) if len(self.jobs) > 1 else self.jobs[0]
        if isinstance(item, Exception):
            raise item
        return item

    async def import_scenario(self, document: dict[str, Any]) -> str:
        self._check("import_scenario")
        self.imported.append(document)
        return f"imported-{len(self.imported)}"

