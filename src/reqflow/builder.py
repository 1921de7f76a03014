"""Node/edge builder — turn a position map into renderable nodes and edges.

Edges are discovered in a fixed order (anchor edges, requirement hierarchy,
measure hierarchy, business links). A source with several outgoing edges gets
one handle per edge from a fixed rotation, in that order, so identical input
always yields identical handles.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from typing import Any

import structlog

from reqflow.collector import CollectedEntities
from reqflow.diagnostics import DiagnosticCode, Diagnostics, ensure
from reqflow.relationships import RelationshipGraph
from reqflow.types import ANCHOR_RELATION, Edge, EdgeStyle, Node, NodeKind, Position

logger = structlog.get_logger(__name__)

UNGROUPED_LABEL = "Ungrouped"


@dataclass(frozen=True)
class EdgeSpec:
    source: str
    target: str
    relation: str

    @property
    def id(self) -> str:
        return f"{self.source}->{self.target}"


def discover_edges(
    collected: CollectedEntities,
    graph: RelationshipGraph,
    anchor_orphans: bool = True,
) -> list[EdgeSpec]:
    """All candidate edges in discovery order.

    An entity gets an anchor edge from its group header only when it takes
    part in no relationship at all, so anchor and relationship edges never
    touch the same entity. Roots with children are anchored only inside the
    clustered layout graph, not in the output.
    """
    specs: list[EdgeSpec] = []
    if anchor_orphans:
        for ce in collected:
            if graph.is_standalone(ce.node_key):
                specs.append(EdgeSpec(ce.group_key, ce.node_key, ANCHOR_RELATION))
    for rel in graph.relationships():
        specs.append(EdgeSpec(rel.parent_key, rel.child_key, rel.kind.value))
    return specs


def allocate_handles(specs: list[EdgeSpec], slots: tuple[str, ...]) -> dict[str, str | None]:
    """Map edge id → source handle.

    Sources with a single outgoing edge use the default handle (None). Sources
    with k > 1 edges get ``slots[i % len(slots)]`` for their i-th edge.
    """
    by_source: dict[str, list[EdgeSpec]] = defaultdict(list)
    for spec in specs:
        by_source[spec.source].append(spec)

    handles: dict[str, str | None] = {}
    for outgoing in by_source.values():
        if len(outgoing) == 1:
            handles[outgoing[0].id] = None
            continue
        for i, spec in enumerate(outgoing):
            handles[spec.id] = slots[i % len(slots)]
    return handles


def build_edges(
    positions: dict[str, Position],
    collected: CollectedEntities,
    graph: RelationshipGraph,
    slots: tuple[str, ...],
    style: EdgeStyle = EdgeStyle.DEFAULT,
    anchor_orphans: bool = True,
    diagnostics: Diagnostics | None = None,
) -> list[Edge]:
    """Build edges for every relationship (and anchor) whose ends were positioned."""
    diagnostics = ensure(diagnostics)
    kept: list[EdgeSpec] = []
    for spec in discover_edges(collected, graph, anchor_orphans):
        if spec.source not in positions or spec.target not in positions:
            diagnostics.report(
                DiagnosticCode.MISSING_ENDPOINT,
                "edge endpoint has no position, edge dropped",
                node_key=spec.target if spec.source in positions else spec.source,
                edge=spec.id,
            )
            continue
        kept.append(spec)

    handles = allocate_handles(kept, slots)
    return [
        Edge(
            id=spec.id,
            source=spec.source,
            target=spec.target,
            relation=spec.relation,
            style=style,
            source_handle=handles[spec.id],
        )
        for spec in kept
    ]


def build_nodes(
    positions: dict[str, Position],
    collected: CollectedEntities,
    graph: RelationshipGraph,
    edges: list[Edge],
) -> list[Node]:
    """One node per positioned group header and entity, headers first."""
    incoming: set[str] = {e.target for e in edges}
    outgoing: dict[str, list[str]] = defaultdict(list)
    for e in edges:
        if e.source_handle is not None:
            outgoing[e.source].append(e.source_handle)
        else:
            outgoing.setdefault(e.source, [])

    nodes: list[Node] = []
    for group in collected.groups:
        position = positions.get(group.node_key)
        if position is None:
            continue
        data: dict[str, Any] = {
            "group": group,
            "group_id": group.id,
            "label": group.label or (UNGROUPED_LABEL if group.is_ungrouped else str(group.id)),
            "has_outgoing": group.node_key in outgoing,
        }
        nodes.append(Node(id=group.node_key, kind=NodeKind.GROUP, position=position, data=data))

    for ce in collected:
        position = positions.get(ce.node_key)
        if position is None:
            continue
        key = ce.node_key
        data = {
            "entity": ce.entity,
            "entity_kind": ce.kind.value,
            "label": ce.entity.label or str(ce.entity.id),
            "group": ce.group_key,
            "group_id": ce.source_group.id,
            "height": position.height,
            "has_incoming": key in incoming,
            "has_outgoing": key in outgoing,
            "multi_parent": key in graph.multi_parent,
            "handles": list(outgoing.get(key, [])),
        }
        nodes.append(Node(id=key, kind=NodeKind.ENTITY, position=position, data=data))

    logger.debug("nodes_built", nodes=len(nodes), edges=len(edges))
    return nodes
