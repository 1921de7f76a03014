"""Tests for builder.py — edge discovery, handle allocation, node payloads."""

from __future__ import annotations

from reqflow.builder import EdgeSpec, allocate_handles, build_edges, build_nodes, discover_edges
from reqflow.collector import collect_entities
from reqflow.config import DEFAULT_HANDLE_SLOTS
from reqflow.diagnostics import DiagnosticCode, Diagnostics
from reqflow.relationships import build_relationships
from reqflow.types import EdgeStyle, Entity, EntityKind, Group, NodeKind, Position

# ─── Helpers ──────────────────────────────────────────────────────────────────


def req(entity_id, parent=None, links=(), **kwargs) -> Entity:
    return Entity(id=entity_id, kind=EntityKind.REQUIREMENT, parent_id=parent, cross_links=tuple(links), **kwargs)


def measure(entity_id, parent=None, links=(), **kwargs) -> Entity:
    return Entity(id=entity_id, kind=EntityKind.MEASURE, parent_id=parent, cross_links=tuple(links), **kwargs)


def group(group_id, reqs=(), measures=(), label=None) -> Group:
    return Group(
        id=group_id,
        label=f"Group {group_id}" if label is None else label,
        requirements=tuple(reqs),
        measures=tuple(measures),
    )


def prepare(*groups: Group):
    collected = collect_entities(groups)
    return collected, build_relationships(collected)


def place_all(collected) -> dict[str, Position]:
    """Give every header and entity a distinct dummy position."""
    keys = [g.node_key for g in collected.groups] + [ce.node_key for ce in collected]
    return {key: Position(x=0, y=i * 200, width=100, height=100) for i, key in enumerate(keys)}


# ─── Edge Discovery Tests ─────────────────────────────────────────────────────


class TestDiscoverEdges:
    def test_anchor_only_for_standalone_entities(self):
        collected, graph = prepare(group(1, [req(1), req(2), req(3, parent=2)], [measure(5)]))
        specs = discover_edges(collected, graph)
        anchors = [s.target for s in specs if s.relation == "anchor"]
        assert anchors == ["requirement:1", "measure:5"]

    def test_anchor_and_relationship_edges_exclusive(self):
        collected, graph = prepare(
            group(1, [req(1), req(2, parent=1), req(3)], [measure(5, links=[1]), measure(6)]),
        )
        specs = discover_edges(collected, graph)
        anchored = {s.target for s in specs if s.relation == "anchor"}
        related = {s.source for s in specs if s.relation != "anchor"}
        related |= {s.target for s in specs if s.relation != "anchor"}
        assert anchored == {"requirement:3", "measure:6"}
        assert not anchored & related

    def test_anchors_come_from_source_group(self):
        collected, graph = prepare(group(1, [req(1)]), group(2, [req(1), req(2)]))
        specs = discover_edges(collected, graph)
        assert specs == [
            EdgeSpec("group:1", "requirement:1", "anchor"),
            EdgeSpec("group:2", "requirement:2", "anchor"),
        ]

    def test_anchors_disabled(self):
        collected, graph = prepare(group(1, [req(1)]))
        assert discover_edges(collected, graph, anchor_orphans=False) == []

    def test_relationship_order(self):
        collected, graph = prepare(group(1, [req(1), req(2, parent=1)], [measure(1), measure(2, parent=1, links=[2])]))
        relations = [s.relation for s in discover_edges(collected, graph)]
        assert relations == ["requirement_hierarchy", "measure_hierarchy", "business"]

    def test_edge_id(self):
        assert EdgeSpec("requirement:1", "measure:2", "business").id == "requirement:1->measure:2"


# ─── Handle Allocation Tests ──────────────────────────────────────────────────


class TestAllocateHandles:
    def test_single_edge_uses_default_handle(self):
        specs = [EdgeSpec("a", "b", "business")]
        assert allocate_handles(specs, DEFAULT_HANDLE_SLOTS) == {"a->b": None}

    def test_distinct_handles_per_source(self):
        specs = [EdgeSpec("a", t, "business") for t in ("b", "c", "d")]
        handles = allocate_handles(specs, DEFAULT_HANDLE_SLOTS)
        assert [handles[s.id] for s in specs] == ["right-top", "right-middle", "right-bottom"]

    def test_rotation_wraps(self):
        specs = [EdgeSpec("a", t, "business") for t in ("b", "c", "d", "e")]
        handles = allocate_handles(specs, DEFAULT_HANDLE_SLOTS)
        assert handles["a->e"] == "right-top"

    def test_sources_are_independent(self):
        specs = [EdgeSpec("a", "b", "x"), EdgeSpec("c", "d", "x"), EdgeSpec("a", "e", "x")]
        handles = allocate_handles(specs, ("h1", "h2"))
        assert handles == {"a->b": "h1", "a->e": "h2", "c->d": None}


# ─── build_edges Tests ────────────────────────────────────────────────────────


class TestBuildEdges:
    def test_edges_carry_style_and_handles(self):
        collected, graph = prepare(group(1, [req(1)], [measure(5, links=[1]), measure(6, links=[1])]))
        edges = build_edges(place_all(collected), collected, graph, DEFAULT_HANDLE_SLOTS, style=EdgeStyle.SMOOTHSTEP)
        assert [e.id for e in edges] == ["requirement:1->measure:5", "requirement:1->measure:6"]
        assert [e.source_handle for e in edges] == ["right-top", "right-middle"]
        assert all(e.style is EdgeStyle.SMOOTHSTEP for e in edges)

    def test_missing_endpoint_dropped_and_reported(self):
        collected, graph = prepare(group(1, [req(1)], [measure(5, links=[1]), measure(6, links=[1])]))
        positions = place_all(collected)
        del positions["measure:6"]
        diagnostics = Diagnostics()
        edges = build_edges(positions, collected, graph, DEFAULT_HANDLE_SLOTS, diagnostics=diagnostics)
        assert [e.id for e in edges] == ["requirement:1->measure:5"]
        assert edges[0].source_handle is None
        assert diagnostics.codes() == [DiagnosticCode.MISSING_ENDPOINT]
        assert diagnostics.records[0].node_key == "measure:6"

    def test_endpoints_are_positioned(self):
        collected, graph = prepare(group(1, [req(1), req(2, parent=1)], [measure(5, links=[2])]), group(2, [req(9)]))
        positions = place_all(collected)
        for edge in build_edges(positions, collected, graph, DEFAULT_HANDLE_SLOTS):
            assert edge.source in positions
            assert edge.target in positions


# ─── build_nodes Tests ────────────────────────────────────────────────────────


class TestBuildNodes:
    def build(self, *groups: Group):
        collected, graph = prepare(*groups)
        positions = place_all(collected)
        edges = build_edges(positions, collected, graph, DEFAULT_HANDLE_SLOTS)
        return {n.id: n for n in build_nodes(positions, collected, graph, edges)}, positions

    def test_headers_first(self):
        collected, graph = prepare(group(1, [req(1)]), group(2, [req(2)]))
        positions = place_all(collected)
        nodes = build_nodes(positions, collected, graph, build_edges(positions, collected, graph, DEFAULT_HANDLE_SLOTS))
        assert [n.kind for n in nodes] == [NodeKind.GROUP, NodeKind.GROUP, NodeKind.ENTITY, NodeKind.ENTITY]

    def test_entity_data(self):
        nodes, positions = self.build(
            group(1, [req(1, label="Fire safety")], [measure(5, links=[1]), measure(6, links=[1])]),
        )
        data = nodes["requirement:1"].data
        assert data["label"] == "Fire safety"
        assert data["entity_kind"] == "requirement"
        assert data["group"] == "group:1"
        assert data["group_id"] == 1
        assert not data["has_incoming"]
        assert data["has_outgoing"]
        assert data["handles"] == ["right-top", "right-middle"]
        assert nodes["requirement:1"].position == positions["requirement:1"]

    def test_multi_parent_flag(self):
        nodes, _ = self.build(group(1, [req(1), req(2)], [measure(5, links=[1, 2])]))
        assert nodes["measure:5"].data["multi_parent"]
        assert nodes["measure:5"].data["has_incoming"]
        assert not nodes["requirement:1"].data["multi_parent"]

    def test_label_falls_back_to_id(self):
        nodes, _ = self.build(group(1, [req(7)]))
        assert nodes["requirement:7"].data["label"] == "7"

    def test_group_labels(self):
        nodes, _ = self.build(group(1, [req(1)]), group(2, label=""), group(None, [req(2)], label=""))
        assert nodes["group:1"].data["label"] == "Group 1"
        assert nodes["group:2"].data["label"] == "2"
        assert nodes["group:__ungrouped__"].data["label"] == "Ungrouped"

    def test_group_has_outgoing_only_with_anchor(self):
        nodes, _ = self.build(group(1, [req(1)]), group(2, [req(2)], [measure(2, links=[2])]))
        assert nodes["group:1"].data["has_outgoing"]
        assert not nodes["group:2"].data["has_outgoing"]

    def test_unpositioned_entity_skipped(self):
        collected, graph = prepare(group(1, [req(1), req(2)]))
        positions = place_all(collected)
        del positions["requirement:2"]
        nodes = build_nodes(positions, collected, graph, [])
        assert [n.id for n in nodes] == ["group:1", "requirement:1"]
