"""Scenario graph visualization.

Renders the loaded locations and exits as DOT (Graphviz) or Mermaid markup.
Exits that end the game point to a synthetic end node; exits without a
target are omitted.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from scenariokit.models import ExitType
from scenariokit.observability.logging import get_logger

if TYPE_CHECKING:
    from scenariokit.graph.store import GraphStore

log = get_logger(__name__)

END_NODE_ID = "__end__"
END_NODE_LABEL = "GAME OVER"

_START_COLOR = "#90EE90"  # light green
_END_COLOR = "#FFB6C1"  # light pink
_NODE_COLOR = "#ADD8E6"  # light blue
_DANGLING_COLOR = "#D3D3D3"  # light grey
_AMBIGUOUS_COLOR = "#FF4500"  # orange-red


@dataclass
class VizNode:
    id: str
    label: str
    is_start: bool = False
    is_end: bool = False
    is_dangling: bool = False


@dataclass
class VizEdge:
    from_id: str
    to_id: str
    label: str = ""
    is_trigger: bool = False
    is_ambiguous: bool = False


@dataclass
class ScenarioGraph:
    nodes: list[VizNode]
    edges: list[VizEdge] = field(default_factory=list)


def build_scenario_graph(store: GraphStore) -> ScenarioGraph:
    """Extract nodes and edges from the store.

    The first location in editor order is the start node. Targets that name
    no loaded location get a grey placeholder node.
    """
    locations = store.ordered_locations()
    nodes = [
        VizNode(id=loc.id, label=_truncate(loc.title or loc.id, 40), is_start=i == 0)
        for i, loc in enumerate(locations)
    ]
    known = {loc.id for loc in locations}
    dangling: list[str] = []
    edges: list[VizEdge] = []
    needs_end = False

    for loc in locations:
        for exit_ in store.exits_for(loc.id):
            target = exit_.target_location_id
            ends = exit_.is_game_over or exit_.type == ExitType.GAMEOVER
            if target:
                if target not in known and target not in dangling:
                    dangling.append(target)
                edges.append(
                    VizEdge(
                        from_id=loc.id,
                        to_id=target,
                        label=exit_.label,
                        is_trigger=exit_.type == ExitType.TRIGGER,
                        is_ambiguous=exit_.is_ambiguous,
                    )
                )
            elif ends:
                needs_end = True
                edges.append(VizEdge(from_id=loc.id, to_id=END_NODE_ID, label=exit_.label))

    nodes.extend(VizNode(id=d, label=d, is_dangling=True) for d in dangling)
    if needs_end:
        nodes.append(VizNode(id=END_NODE_ID, label=END_NODE_LABEL, is_end=True))

    log.debug("scenario_graph_built", nodes=len(nodes), edges=len(edges))
    return ScenarioGraph(nodes=nodes, edges=edges)


def render_dot(sg: ScenarioGraph, *, no_labels: bool = False) -> str:
    """Render a ScenarioGraph as DOT (Graphviz) markup.

    Args:
        sg: Scenario graph data.
        no_labels: If True, omit exit labels on edges.

    Returns:
        DOT format string.
    """
    lines = [
        "digraph scenario {",
        "  rankdir=LR;",
        '  node [fontname="Helvetica" fontsize=10 style="filled,solid"];',
        '  edge [fontname="Helvetica" fontsize=8];',
        "",
    ]

    for node in sg.nodes:
        attrs = _dot_node_attrs(node)
        attr_str = " ".join(f"{k}={v}" for k, v in attrs.items())
        lines.append(f'  "{_dot_escape(node.id)}" [{attr_str}];')

    lines.append("")

    for edge in sg.edges:
        edge_attrs: dict[str, str] = {}
        if not no_labels and edge.label:
            edge_attrs["label"] = f'"{_dot_escape(edge.label)}"'
        if edge.is_trigger:
            edge_attrs["style"] = '"dashed"'
        if edge.is_ambiguous:
            edge_attrs["color"] = f'"{_AMBIGUOUS_COLOR}"'
            edge_attrs["penwidth"] = '"2"'
        edge_attr_str = " ".join(f"{k}={v}" for k, v in edge_attrs.items())
        suffix = f" [{edge_attr_str}]" if edge_attr_str else ""
        src, dst = _dot_escape(edge.from_id), _dot_escape(edge.to_id)
        lines.append(f'  "{src}" -> "{dst}"{suffix};')

    lines.append("}")
    return "\n".join(lines)


def render_mermaid(sg: ScenarioGraph, *, no_labels: bool = False) -> str:
    """Render a ScenarioGraph as Mermaid markup.

    Args:
        sg: Scenario graph data.
        no_labels: If True, omit exit labels on edges.

    Returns:
        Mermaid format string.
    """
    lines = ["graph LR"]

    for node in sg.nodes:
        safe_id = _mermaid_id(node.id)
        label = _mermaid_escape(node.label)
        if node.is_end:
            lines.append(f'  {safe_id}(["{label}"]):::ending')
        elif node.is_start:
            lines.append(f'  {safe_id}["{label}"]:::start')
        elif node.is_dangling:
            lines.append(f'  {safe_id}["{label}"]:::dangling')
        else:
            lines.append(f'  {safe_id}["{label}"]')

    lines.append("")

    for edge in sg.edges:
        src = _mermaid_id(edge.from_id)
        dst = _mermaid_id(edge.to_id)
        arrow = "-.->" if edge.is_trigger else "-->"
        if not no_labels and edge.label:
            label = _mermaid_escape(edge.label)
            lines.append(f'  {src} {arrow}|"{label}"| {dst}')
        else:
            lines.append(f"  {src} {arrow} {dst}")

    lines.append("")
    lines.append(f"  classDef start fill:{_START_COLOR},stroke:#333")
    lines.append(f"  classDef ending fill:{_END_COLOR},stroke:#333")
    lines.append(f"  classDef dangling fill:{_DANGLING_COLOR},stroke:#333,stroke-dasharray:4")
    ambiguous = [i for i, e in enumerate(sg.edges) if e.is_ambiguous]
    if ambiguous:
        idx_list = ",".join(str(i) for i in ambiguous)
        lines.append(f"  linkStyle {idx_list} stroke:{_AMBIGUOUS_COLOR},stroke-width:2px")

    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _truncate(text: str, max_len: int) -> str:
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."


def _dot_node_attrs(node: VizNode) -> dict[str, str]:
    attrs: dict[str, str] = {}
    if node.is_end:
        attrs["shape"] = "octagon"
        attrs["fillcolor"] = f'"{_END_COLOR}"'
    elif node.is_start:
        attrs["shape"] = "doubleoctagon"
        attrs["fillcolor"] = f'"{_START_COLOR}"'
    elif node.is_dangling:
        attrs["shape"] = "box"
        attrs["style"] = '"filled,dashed"'
        attrs["fillcolor"] = f'"{_DANGLING_COLOR}"'
    else:
        attrs["shape"] = "box"
        attrs["fillcolor"] = f'"{_NODE_COLOR}"'
    attrs["label"] = f'"{_dot_escape(node.label)}"'
    return attrs


def _dot_escape(text: str) -> str:
    """Escape special characters for DOT labels."""
    return text.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")


def _mermaid_id(node_id: str) -> str:
    """Convert a node ID to a Mermaid-safe identifier."""
    safe = "".join(ch if ch.isalnum() or ch == "_" else "_" for ch in node_id)
    return f"n_{safe}"


def _mermaid_escape(text: str) -> str:
    return text.replace('"', "&quot;").replace("\n", " ")
