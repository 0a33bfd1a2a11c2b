"""Flow overview and graph quality checks.

Read-only analysis of a loaded ``GraphStore``: one row per location listing
its outgoing exits with resolved targets, plus findings for shapes the
backend accepts but the runtime handles poorly. No backend calls.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING

from scenariokit.observability.logging import get_logger

if TYPE_CHECKING:
    from scenariokit.graph.reconcile import EdgeSource
    from scenariokit.graph.store import GraphStore
    from scenariokit.models import Exit

log = get_logger(__name__)

NO_TARGET = "—"


class FindingKind(StrEnum):
    NO_EXITS = "no_exits"
    DANGLING_TARGET = "dangling_target"
    MISSING_TARGET = "missing_target"
    AMBIGUOUS = "ambiguous"


@dataclass
class FlowExit:
    """One outgoing exit as shown in the overview."""

    exit_id: str | None
    type: str
    label: str
    target_id: str | None
    target: str
    is_game_over: bool = False


@dataclass
class FlowRow:
    """A location and its outgoing exits."""

    location_id: str
    order: int
    title: str
    exits: list[FlowExit] = field(default_factory=list)


@dataclass
class Finding:
    kind: FindingKind
    location_id: str
    message: str
    exit_id: str | None = None


@dataclass
class FlowOverview:
    """Complete flow summary for one game."""

    game_id: str
    title: str
    rows: list[FlowRow] = field(default_factory=list)
    findings: list[Finding] = field(default_factory=list)
    source: EdgeSource | None = None

    @property
    def exit_count(self) -> int:
        return sum(len(row.exits) for row in self.rows)


def build_flow(store: GraphStore, source: EdgeSource | None = None) -> FlowOverview:
    """Summarize the loaded graph.

    Args:
        store: Loaded graph store.
        source: Edge source that produced the store's exits, for display.

    Returns:
        FlowOverview with rows in editor order and all findings.
    """
    game = store.game
    overview = FlowOverview(game_id=game.id, title=game.title, source=source)

    for location in store.ordered_locations():
        row = FlowRow(
            location_id=location.id,
            order=store.effective_order(location.id),
            title=location.title or location.id,
        )
        exits = store.exits_for(location.id)
        if not exits:
            overview.findings.append(
                Finding(FindingKind.NO_EXITS, location.id, f"'{row.title}' has no exits")
            )
        for exit_ in exits:
            row.exits.append(_flow_exit(store, exit_))
            overview.findings.extend(_exit_findings(store, row, exit_))
        overview.rows.append(row)

    log.info(
        "flow_built",
        game_id=game.id,
        locations=len(overview.rows),
        exits=overview.exit_count,
        findings=len(overview.findings),
    )
    return overview


def _flow_exit(store: GraphStore, exit_: Exit) -> FlowExit:
    target_id = exit_.target_location_id or None
    if target_id is None:
        target = NO_TARGET
    elif store.has_location(target_id):
        target = store.location(target_id).title or target_id
    else:
        target = target_id
    return FlowExit(
        exit_id=exit_.id,
        type=str(exit_.type),
        label=exit_.label,
        target_id=target_id,
        target=target,
        is_game_over=exit_.is_game_over,
    )


def _exit_findings(store: GraphStore, row: FlowRow, exit_: Exit) -> list[Finding]:
    findings: list[Finding] = []
    target_id = exit_.target_location_id
    where = f"'{row.title}' exit '{exit_.label}'"

    if target_id and not store.has_location(target_id):
        findings.append(
            Finding(
                FindingKind.DANGLING_TARGET,
                row.location_id,
                f"{where} targets unknown location '{target_id}'",
                exit_.id,
            )
        )
    if exit_.is_live and not target_id and not exit_.is_game_over:
        findings.append(
            Finding(
                FindingKind.MISSING_TARGET,
                row.location_id,
                f"{where} has no target",
                exit_.id,
            )
        )
    if exit_.is_ambiguous:
        findings.append(
            Finding(
                FindingKind.AMBIGUOUS,
                row.location_id,
                f"{where} has a target and also ends the game",
                exit_.id,
            )
        )
    return findings
