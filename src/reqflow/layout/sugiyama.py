"""Sugiyama-style layered layout on a clustered networkx DiGraph.

Phases:
  1. Cycle removal (greedy-FAS)
  2. Layer assignment (longest path)
  3. Dummy node insertion for edges spanning several layers
  4. Crossing minimization (barycenter), clusters kept contiguous per layer
  5. Coordinate assignment, left to right (layer = column)

Nodes are expected to carry ``width``, ``height`` and ``cluster`` attributes.
The graph attribute ``clusters`` lists cluster ids in their preferred
top-to-bottom order.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass

import networkx as nx

DUMMY_PREFIX = "__dummy_"
DUMMY_HEIGHT: float = 10.0
MAX_CROSSING_PASSES: int = 24

# ─── Cycle Removal (Greedy-FAS) ───────────────────────────────────────────────


def greedy_fas_ordering(graph: nx.DiGraph) -> list[str]:
    """Compute a node ordering using the greedy-FAS heuristic.

    Returns node ids in an ordering that keeps most edges pointing forward.

    Algorithm (Eades, Lin, Smyth 1993):
    - Maintain dynamic in/out degree counters updated as nodes are removed.
    - Repeatedly:
        1. Move all sinks (out_deg == 0) to s2.
        2. Move all sources (in_deg == 0) to s1.
        3. Of remaining nodes in cycles, pick max (out - in) and add to s1.
    - Final ordering: s1 + reversed(s2).

    The active set is an insertion-ordered dict so ties resolve the same way
    on every run.
    """
    active: dict[str, None] = dict.fromkeys(graph.nodes)

    out_deg: dict[str, int] = {node: graph.out_degree(node) for node in graph.nodes}
    in_deg: dict[str, int] = {node: graph.in_degree(node) for node in graph.nodes}
    # Self-loops never block a node from being a source or sink.
    for node in nx.nodes_with_selfloops(graph):
        out_deg[node] -= 1
        in_deg[node] -= 1

    s1: list[str] = []
    s2: list[str] = []

    while active:
        changed = True
        while changed:
            changed = False
            sinks = [n for n in active if out_deg[n] == 0]
            if sinks:
                changed = True
                for sink in sinks:
                    del active[sink]
                    s2.append(sink)
                    for pred in graph.predecessors(sink):
                        if pred in active:
                            out_deg[pred] -= 1

        changed = True
        while changed:
            changed = False
            sources = [n for n in active if in_deg[n] == 0]
            if sources:
                changed = True
                for source in sources:
                    del active[source]
                    s1.append(source)
                    for succ in graph.successors(source):
                        if succ in active:
                            in_deg[succ] -= 1

        if active:
            best = max(active, key=lambda n: out_deg[n] - in_deg[n])
            del active[best]
            s1.append(best)
            for succ in graph.successors(best):
                if succ in active:
                    in_deg[succ] -= 1
            for pred in graph.predecessors(best):
                if pred in active:
                    out_deg[pred] -= 1

    s2.reverse()
    s1.extend(s2)
    return s1


def remove_cycles(graph: nx.DiGraph) -> tuple[nx.DiGraph, set[tuple[str, str]]]:
    """Return a DAG copy of ``graph`` plus the set of edges that were reversed.

    Back-edges (source after target in the greedy-FAS ordering) are reversed;
    self-loops are counted as reversed and dropped from the DAG.
    """
    dag: nx.DiGraph = nx.DiGraph(**graph.graph)
    if graph.number_of_nodes() == 0:
        return dag, set()

    position: dict[str, int] = {node: pos for pos, node in enumerate(greedy_fas_ordering(graph))}

    reversed_edges: set[tuple[str, str]] = set()
    for src, tgt in graph.edges():
        if src == tgt or position[src] > position[tgt]:
            reversed_edges.add((src, tgt))

    for node_id in graph.nodes:
        dag.add_node(node_id, **graph.nodes[node_id])

    for src, tgt, attrs in graph.edges(data=True):
        if src == tgt:
            continue
        if (src, tgt) in reversed_edges:
            dag.add_edge(tgt, src, **attrs)
        else:
            dag.add_edge(src, tgt, **attrs)

    return dag, reversed_edges


# ─── Layer Assignment ─────────────────────────────────────────────────────────


class LayerAssignment:
    """Result of layer assignment: each node is assigned a layer (rank).

    Layer 0 is the leftmost column.

    Attributes:
        layers: Maps node id → layer index.
        layer_count: Total number of layers.
        reversed_edges: Edges reversed during cycle removal.
    """

    def __init__(
        self,
        layers: dict[str, int],
        layer_count: int,
        reversed_edges: set[tuple[str, str]],
    ) -> None:
        self.layers = layers
        self.layer_count = layer_count
        self.reversed_edges = reversed_edges

    @classmethod
    def assign(cls, dag: nx.DiGraph, reversed_edges: set[tuple[str, str]] | None = None) -> LayerAssignment:
        """Longest-path layering over a DAG in topological order."""
        layers: dict[str, int] = {node_id: 0 for node_id in dag.nodes}
        for node_id in nx.topological_sort(dag):
            for succ in dag.successors(node_id):
                if layers[succ] < layers[node_id] + 1:
                    layers[succ] = layers[node_id] + 1

        layer_count = (max(layers.values()) + 1) if layers else 0
        return cls(layers=layers, layer_count=layer_count, reversed_edges=reversed_edges or set())


# ─── Dummy Node Insertion ─────────────────────────────────────────────────────


@dataclass
class DummyEdge:
    """A long edge replaced by a chain of dummy nodes, one per skipped layer."""

    original_src: str
    original_tgt: str
    dummy_ids: list[str]


@dataclass
class AugmentedGraph:
    """A DAG in which every edge connects nodes of adjacent layers."""

    graph: nx.DiGraph
    layers: dict[str, int]
    layer_count: int
    dummy_edges: list[DummyEdge]


def insert_dummy_nodes(dag: nx.DiGraph, la: LayerAssignment) -> AugmentedGraph:
    """Split every edge spanning more than one layer into unit-length segments.

    Each dummy inherits the cluster of the edge's source so it is ordered
    alongside that cluster during crossing minimization.
    """
    g: nx.DiGraph = nx.DiGraph(**dag.graph)
    for node_id in dag.nodes:
        g.add_node(node_id, **dag.nodes[node_id])

    layers: dict[str, int] = copy.copy(la.layers)
    dummy_edges: list[DummyEdge] = []

    for edge_counter, (src_id, tgt_id) in enumerate(list(dag.edges())):
        src_layer = layers[src_id]
        layer_diff = layers[tgt_id] - src_layer

        if layer_diff <= 1:
            g.add_edge(src_id, tgt_id)
            continue

        dummy_ids: list[str] = []
        chain_prev = src_id
        cluster = dag.nodes[src_id].get("cluster")
        for i in range(layer_diff - 1):
            dummy_id = f"{DUMMY_PREFIX}{edge_counter}_{i}"
            g.add_node(dummy_id, width=0.0, height=DUMMY_HEIGHT, cluster=cluster, dummy=True)
            layers[dummy_id] = src_layer + i + 1
            dummy_ids.append(dummy_id)
            g.add_edge(chain_prev, dummy_id)
            chain_prev = dummy_id
        g.add_edge(chain_prev, tgt_id)

        dummy_edges.append(DummyEdge(original_src=src_id, original_tgt=tgt_id, dummy_ids=dummy_ids))

    layer_count = (max(layers.values()) + 1) if layers else 0
    return AugmentedGraph(graph=g, layers=layers, layer_count=layer_count, dummy_edges=dummy_edges)


# ─── Crossing Minimization (Barycenter) ───────────────────────────────────────


def _cluster_rank(graph: nx.DiGraph) -> dict[str, int]:
    order = {cluster: i for i, cluster in enumerate(graph.graph.get("clusters", []))}
    fallback = len(order)
    return {node: order.get(graph.nodes[node].get("cluster"), fallback) for node in graph.nodes}


def minimise_crossings(aug: AugmentedGraph) -> list[list[str]]:
    """Order nodes within each layer to reduce edge crossings.

    Initial order follows cluster order, then node insertion order. Top-down
    and bottom-up barycenter sweeps run until the crossing count stops
    improving. The sort key leads with the cluster rank, so members of one
    cluster stay contiguous inside every layer.
    """
    rank = _cluster_rank(aug.graph)

    ordering: list[list[str]] = [[] for _ in range(aug.layer_count)]
    for node_id in aug.graph.nodes:
        ordering[aug.layers[node_id]].append(node_id)
    for layer in ordering:
        layer.sort(key=rank.__getitem__)

    best = count_crossings(ordering, aug.graph)
    best_ordering = [list(layer) for layer in ordering]

    for _pass in range(MAX_CROSSING_PASSES):
        for layer_idx in range(1, aug.layer_count):
            prev = {nid: float(i) for i, nid in enumerate(ordering[layer_idx - 1])}
            ordering[layer_idx].sort(key=lambda a, p=prev: (rank[a], _barycenter(a, aug.graph, p, "incoming")))

        for layer_idx in range(max(0, aug.layer_count - 2), -1, -1):
            nxt = {nid: float(i) for i, nid in enumerate(ordering[layer_idx + 1])}
            ordering[layer_idx].sort(key=lambda a, n=nxt: (rank[a], _barycenter(a, aug.graph, n, "outgoing")))

        new = count_crossings(ordering, aug.graph)
        if new >= best:
            break
        best = new
        best_ordering = [list(layer) for layer in ordering]

    return best_ordering


def _barycenter(
    node_id: str,
    graph: nx.DiGraph,
    neighbor_pos: dict[str, float],
    direction: str,
) -> float:
    """Average position of a node's neighbours in the adjacent layer.

    Returns float('inf') if the node has no neighbours there.
    """
    neighbors = graph.predecessors(node_id) if direction == "incoming" else graph.successors(node_id)
    positions = [neighbor_pos[nb] for nb in neighbors if nb in neighbor_pos]
    if not positions:
        return float("inf")
    return sum(positions) / len(positions)


def count_crossings(ordering: list[list[str]], graph: nx.DiGraph) -> int:
    """Count edge crossings between consecutive layers (inversion count)."""
    total = 0
    for l_idx in range(len(ordering) - 1):
        tgt_pos: dict[str, int] = {nid: i for i, nid in enumerate(ordering[l_idx + 1])}
        edges: list[tuple[int, int]] = []
        for sp, src_id in enumerate(ordering[l_idx]):
            if src_id in graph:
                for nb in graph.successors(src_id):
                    if nb in tgt_pos:
                        edges.append((sp, tgt_pos[nb]))
        for i in range(len(edges)):
            for j in range(i + 1, len(edges)):
                ei, ej = edges[i], edges[j]
                if (ei[0] < ej[0] and ei[1] > ej[1]) or (ei[0] > ej[0] and ei[1] < ej[1]):
                    total += 1
    return total


# ─── Coordinate Assignment ────────────────────────────────────────────────────


@dataclass
class LayoutNode:
    """A positioned node; ``x``/``y`` are the top-left corner."""

    id: str
    layer: int
    order: int
    x: float
    y: float
    width: float
    height: float

    @property
    def center_y(self) -> float:
        return self.y + self.height / 2

    @property
    def is_dummy(self) -> bool:
        return self.id.startswith(DUMMY_PREFIX)


def assign_coordinates(
    ordering: list[list[str]],
    aug: AugmentedGraph,
    rank_gap: float,
    node_gap: float,
    cluster_gap: float,
) -> list[LayoutNode]:
    """Assign left-to-right coordinates.

    Each layer is a column as wide as its widest node, separated by
    ``rank_gap``; nodes are centred in their column. Inside a layer nodes are
    stacked top to bottom, ``node_gap`` apart within a cluster and
    ``cluster_gap`` apart across clusters. A barycenter refinement then shifts
    whole layers so children line up with their parents.
    """
    g = aug.graph

    def dims(node_id: str) -> tuple[float, float]:
        attrs = g.nodes[node_id]
        return float(attrs.get("width", 0.0)), float(attrs.get("height", DUMMY_HEIGHT))

    layer_width = [max((dims(nid)[0] for nid in layer), default=0.0) for layer in ordering]
    layer_x: list[float] = []
    x = 0.0
    for w in layer_width:
        layer_x.append(x)
        x += w + rank_gap

    nodes: list[LayoutNode] = []
    for layer_idx, layer_nodes in enumerate(ordering):
        y = 0.0
        prev_cluster: object = None
        for order, node_id in enumerate(layer_nodes):
            width, height = dims(node_id)
            cluster = g.nodes[node_id].get("cluster")
            if order > 0:
                y += node_gap if cluster == prev_cluster else cluster_gap
            nodes.append(
                LayoutNode(
                    id=node_id,
                    layer=layer_idx,
                    order=order,
                    x=layer_x[layer_idx] + (layer_width[layer_idx] - width) / 2,
                    y=y,
                    width=width,
                    height=height,
                )
            )
            y += height
            prev_cluster = cluster

    _refine_layers(nodes, ordering, g, max_shift=cluster_gap)

    if nodes:
        min_y = min(n.y for n in nodes)
        for n in nodes:
            n.y -= min_y

    return nodes


def _refine_layers(
    nodes: list[LayoutNode],
    ordering: list[list[str]],
    graph: nx.DiGraph,
    max_shift: float,
) -> None:
    """Shift each layer as a block toward its neighbours' centres.

    Top-down aligns a layer with its parents, bottom-up with its children.
    Shifts larger than ``max_shift`` are skipped so distant clusters are not
    dragged across each other.
    """
    by_id: dict[str, LayoutNode] = {n.id: n for n in nodes}

    def shift_layer(layer_idx: int, neighbor_layer: int, direction: str) -> None:
        own_sum = 0.0
        other_sum = 0.0
        count = 0
        for node_id in ordering[layer_idx]:
            node = by_id[node_id]
            neighbors = graph.predecessors(node_id) if direction == "incoming" else graph.successors(node_id)
            for nb in neighbors:
                other = by_id.get(nb)
                if other is None or other.is_dummy or other.layer != neighbor_layer:
                    continue
                own_sum += node.center_y
                other_sum += other.center_y
                count += 1
        if count == 0:
            return
        shift = (other_sum - own_sum) / count
        if abs(shift) > max_shift:
            return
        for node_id in ordering[layer_idx]:
            by_id[node_id].y += shift

    for layer_idx in range(1, len(ordering)):
        shift_layer(layer_idx, layer_idx - 1, "incoming")
    for layer_idx in range(len(ordering) - 2, -1, -1):
        shift_layer(layer_idx, layer_idx + 1, "outgoing")


# ─── Full Layered Pipeline ────────────────────────────────────────────────────


def layered_layout(
    graph: nx.DiGraph,
    rank_gap: float,
    node_gap: float,
    cluster_gap: float,
) -> list[LayoutNode]:
    """Run all phases and return positioned real (non-dummy) nodes."""
    if graph.number_of_nodes() == 0:
        return []
    dag, reversed_edges = remove_cycles(graph)
    la = LayerAssignment.assign(dag, reversed_edges)
    aug = insert_dummy_nodes(dag, la)
    ordering = minimise_crossings(aug)
    placed = assign_coordinates(ordering, aug, rank_gap, node_gap, cluster_gap)
    return [n for n in placed if not n.is_dummy]
