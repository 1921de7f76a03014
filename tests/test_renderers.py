"""Tests for renderers/reactflow.py — FlowResult to React Flow dicts."""

from __future__ import annotations

import json

from reqflow import build_flow
from reqflow.renderers import ReactFlowRenderer, Renderer
from reqflow.types import Entity, EntityKind, Group

# ─── Helpers ──────────────────────────────────────────────────────────────────


def sample_result(strategy: str = "clustered"):
    groups = [
        Group(
            id=1,
            label="Fire",
            payload={"groupId": 1},
            requirements=(
                Entity(id=1, kind=EntityKind.REQUIREMENT, payload={"id": 1, "title": "Escape"}),
                Entity(id=2, kind=EntityKind.REQUIREMENT),
            ),
            measures=(
                Entity(id=5, kind=EntityKind.MEASURE, cross_links=(1,)),
                Entity(id=6, kind=EntityKind.MEASURE, cross_links=(1,)),
            ),
        )
    ]
    return build_flow(groups, strategy=strategy)


def by_id(items: list[dict]) -> dict[str, dict]:
    return {item["id"]: item for item in items}


# ─── Renderer Tests ───────────────────────────────────────────────────────────


class TestReactFlowRenderer:
    def test_usable_as_renderer(self):
        renderer: Renderer = ReactFlowRenderer()
        assert set(renderer.render(sample_result())) == {"nodes", "edges"}

    def test_positions_are_top_left(self):
        result = sample_result()
        rendered = by_id(ReactFlowRenderer().render(result)["nodes"])
        for node in result.nodes:
            pos = node.position
            assert rendered[node.id]["position"] == {"x": pos.x - pos.width / 2, "y": pos.y - pos.height / 2}

    def test_node_types(self):
        nodes = by_id(ReactFlowRenderer().render(sample_result())["nodes"])
        assert nodes["group:1"]["type"] == "groupNode"
        assert nodes["requirement:1"]["type"] == "requirementNode"
        assert nodes["measure:5"]["type"] == "measureNode"

    def test_entity_data(self):
        nodes = by_id(ReactFlowRenderer(node_data={"showMerknader": True}).render(sample_result())["nodes"])
        data = nodes["requirement:1"]["data"]
        assert data["entity"] == {"id": 1, "title": "Escape"}
        assert data["usedHandles"] == {"source": ["right-top", "right-middle"], "target": []}
        assert data["showMerknader"]
        assert nodes["requirement:2"]["data"]["entity"] == {"id": 2}
        assert nodes["requirement:1"]["sourcePosition"] == "right"
        assert "targetPosition" not in nodes["requirement:1"]
        assert nodes["measure:5"]["targetPosition"] == "left"

    def test_group_data(self):
        nodes = by_id(ReactFlowRenderer().render(sample_result())["nodes"])
        assert nodes["group:1"]["data"] == {"groupId": 1, "label": "Fire", "group": {"groupId": 1}}
        assert nodes["group:1"]["sourcePosition"] == "right"

    def test_edges(self):
        edges = by_id(ReactFlowRenderer().render(sample_result())["edges"])
        business = edges["requirement:1->measure:5"]
        assert business["type"] == "default"
        assert business["sourceHandle"] == "right-top"
        assert business["data"] == {"relation": "business"}
        assert "sourceHandle" not in edges["group:1->requirement:2"]

    def test_columnar_uses_smoothstep(self):
        rendered = ReactFlowRenderer().render(sample_result("columnar"))
        assert {e["type"] for e in rendered["edges"]} == {"smoothstep"}
        nodes = by_id(rendered["nodes"])
        assert nodes["requirement:1"]["sourcePosition"] == "left"

    def test_json_serialisable(self):
        json.dumps(ReactFlowRenderer().render(sample_result()))

    def test_empty_result(self):
        assert ReactFlowRenderer().render(build_flow([])) == {"nodes": [], "edges": []}
