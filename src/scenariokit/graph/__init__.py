"""Scenario graph: normalized store, exit reconciliation and editing."""

from scenariokit.graph.editor import ScenarioEditor
from scenariokit.graph.exits import ExitCRUD, ExitFields
from scenariokit.graph.ordering import (
    MoveDirection,
    MovePlan,
    MoveResult,
    OrderingController,
    plan_move,
)
from scenariokit.graph.reconcile import EdgeSource, Reconciliation, ReconciliationEngine
from scenariokit.graph.store import GraphStore
from scenariokit.graph.writes import WriteResult

__all__ = [
    "EdgeSource",
    "ExitCRUD",
    "ExitFields",
    "GraphStore",
    "MoveDirection",
    "MovePlan",
    "MoveResult",
    "OrderingController",
    "Reconciliation",
    "ReconciliationEngine",
    "ScenarioEditor",
    "WriteResult",
    "plan_move",
]
