"""Clustered layered layout — one invisible cluster per subject area, ranks left to right.

Builds a networkx DiGraph of group headers and entities, runs the layered
pipeline from ``sugiyama`` and post-processes the raw coordinates so clusters
stack vertically with uniform gaps.
"""

from __future__ import annotations

from collections import defaultdict

import networkx as nx
import structlog

from reqflow.collector import CollectedEntities
from reqflow.config import LayoutConfig
from reqflow.connections import ConnectionIndex
from reqflow.diagnostics import DiagnosticCode, Diagnostics, ensure
from reqflow.layout.sugiyama import layered_layout
from reqflow.relationships import RelationshipGraph
from reqflow.types import ANCHOR_RELATION, Position, RelationKind, hierarchy_kind

logger = structlog.get_logger(__name__)

CLUSTER_PREFIX = "cluster:"

PositionMap = dict[str, Position]


def cluster_key(group_key: str) -> str:
    return f"{CLUSTER_PREFIX}{group_key}"


# ─── Compound Graph ───────────────────────────────────────────────────────────


def build_compound_graph(
    collected: CollectedEntities,
    connections: ConnectionIndex,
    config: LayoutConfig,
) -> nx.DiGraph:
    """Build the layout graph: headers, entities, anchor and parent edges.

    Every node carries ``width``/``height``, its ``cluster`` container and the
    ``group`` key it belongs to. Cluster containers appear only in the
    ``clusters`` graph attribute; they are not laid out themselves.
    """
    g: nx.DiGraph = nx.DiGraph(clusters=[cluster_key(group.node_key) for group in collected.groups])

    for group in collected.groups:
        g.add_node(
            group.node_key,
            width=config.group_width,
            height=config.group_height,
            cluster=cluster_key(group.node_key),
            group=group.node_key,
            header=True,
        )

    for ce in collected:
        g.add_node(
            ce.node_key,
            width=config.entity_width,
            height=config.estimate_height(ce.entity.has_note, ce.entity.has_snippet),
            cluster=cluster_key(ce.group_key),
            group=ce.group_key,
            header=False,
        )

    for ce in collected:
        conn = connections.get(ce.node_key)
        if conn is None or not conn.has_parents:
            g.add_edge(ce.group_key, ce.node_key, relation=ANCHOR_RELATION)
            continue
        for parent_key in conn.hierarchical_parents:
            g.add_edge(parent_key, ce.node_key, relation=hierarchy_kind(ce.kind).value)
        for parent_key in conn.business_parents:
            g.add_edge(parent_key, ce.node_key, relation=RelationKind.BUSINESS.value)

    return g


# ─── Post-processing ──────────────────────────────────────────────────────────


def _group_members(positions: PositionMap, g: nx.DiGraph) -> dict[str, list[str]]:
    members: dict[str, list[str]] = defaultdict(list)
    for key in positions:
        members[g.nodes[key]["group"]].append(key)
    return members


def spread_clusters(
    positions: PositionMap,
    g: nx.DiGraph,
    gap: float,
    min_height: float,
) -> PositionMap:
    """Shift each cluster as a block so clusters stack with a fixed gap.

    Raw x positions and relative y inside a cluster are preserved. Clusters
    are ordered by their raw top edge; each reserves at least ``min_height``.
    """
    members = _group_members(positions, g)
    if not members:
        return dict(positions)

    bounds = []
    for group_key, keys in members.items():
        top = min(positions[k].top for k in keys)
        bottom = max(positions[k].bottom for k in keys)
        bounds.append((top, group_key, bottom))
    order = {c: i for i, c in enumerate(g.graph.get("clusters", []))}
    bounds.sort(key=lambda b: (b[0], order.get(cluster_key(b[1]), len(order))))

    result: PositionMap = {}
    cursor = bounds[0][0]
    for top, group_key, bottom in bounds:
        shift = cursor - top
        for key in members[group_key]:
            p = positions[key]
            result[key] = p.moved_to(p.y + shift)
        cursor += max(bottom - top, min_height) + gap
    return result


def sequential_clusters(
    positions: PositionMap,
    g: nx.DiGraph,
    config: LayoutConfig,
) -> PositionMap:
    """Re-bucket entities by group and stack them in raw rank (x) order.

    Each group gets a band: its header on top, then one entity per slot in
    left-to-right order. Bands follow the cluster order of the graph.
    """
    members = _group_members(positions, g)
    result: PositionMap = {}
    cursor = 0.0
    for cluster in g.graph.get("clusters", []):
        group_key = cluster[len(CLUSTER_PREFIX) :]
        keys = members.get(group_key, [])
        if not keys:
            continue
        band_top = cursor
        y = cursor
        header = [k for k in keys if g.nodes[k].get("header")]
        entities = sorted((k for k in keys if not g.nodes[k].get("header")), key=lambda k: positions[k].x)
        for key in header + entities:
            p = positions[key]
            result[key] = p.moved_to(y + p.height / 2)
            y += p.height + config.inter_entity_gap
        used = y - config.inter_entity_gap - band_top
        cursor = band_top + max(used, config.min_cluster_height) + config.inter_group_gap
    return result


def _overlaps(a: Position, b: Position) -> bool:
    return (
        abs(a.x - b.x) * 2 < a.width + b.width
        and abs(a.y - b.y) * 2 < a.height + b.height
    )


def adjust_multi_parent(
    positions: PositionMap,
    graph: RelationshipGraph,
    connections: ConnectionIndex,
    diagnostics: Diagnostics,
) -> PositionMap:
    """Move multi-parent entities to the mean y of their parents.

    A move that would overlap another node is skipped and reported, so the
    result never places two nodes on top of each other.
    """
    result = dict(positions)
    for key in sorted(graph.multi_parent):
        current = result.get(key)
        conn = connections.get(key)
        if current is None or conn is None:
            continue
        parent_ys = [result[p].y for p in conn.parents if p in result]
        if len(parent_ys) < 2:
            continue
        moved = current.moved_to(sum(parent_ys) / len(parent_ys))
        if any(other != key and _overlaps(moved, pos) for other, pos in result.items()):
            diagnostics.report(
                DiagnosticCode.MULTI_PARENT_SKIPPED,
                "multi-parent adjustment would overlap another node",
                node_key=key,
            )
            continue
        result[key] = moved
    return result


# ─── Entry Point ──────────────────────────────────────────────────────────────


def clustered_layout(
    collected: CollectedEntities,
    graph: RelationshipGraph,
    connections: ConnectionIndex,
    config: LayoutConfig,
    diagnostics: Diagnostics | None = None,
) -> PositionMap:
    """Compute centre positions for every group header and entity."""
    diagnostics = ensure(diagnostics)
    g = build_compound_graph(collected, connections, config)
    if g.number_of_nodes() == 0:
        return {}

    placed = layered_layout(
        g,
        rank_gap=config.rank_gap,
        node_gap=config.inter_entity_gap,
        cluster_gap=config.inter_group_gap,
    )
    positions: PositionMap = {
        n.id: Position(x=n.x + n.width / 2, y=n.y + n.height / 2, width=n.width, height=n.height)
        for n in placed
    }

    if config.cluster_mode == "spread":
        positions = spread_clusters(positions, g, config.inter_group_gap, config.min_cluster_height)
    elif config.cluster_mode == "sequential":
        positions = sequential_clusters(positions, g, config)

    if config.enable_multi_parent_adjustment:
        positions = adjust_multi_parent(positions, graph, connections, diagnostics)

    logger.debug(
        "clustered_layout_complete",
        nodes=len(positions),
        edges=g.number_of_edges(),
        cluster_mode=config.cluster_mode,
    )
    return positions
