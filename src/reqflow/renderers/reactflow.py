"""React Flow renderer — serialise a FlowResult into plain node/edge dicts.

Positions are converted from centres to top-left corners, which is what the
React Flow canvas expects. Entity payloads are passed through as their
original records so the result is JSON-serialisable.
"""

from __future__ import annotations

from typing import Any

from reqflow.types import Edge, EdgeStyle, EntityKind, FlowResult, Node, NodeKind

NODE_TYPES: dict[str, str] = {
    EntityKind.REQUIREMENT.value: "requirementNode",
    EntityKind.MEASURE.value: "measureNode",
    NodeKind.GROUP.value: "groupNode",
}

# Which side of a node edges leave from and arrive at, per routing style.
_HANDLE_SIDES: dict[EdgeStyle, tuple[str, str]] = {
    EdgeStyle.DEFAULT: ("right", "left"),
    EdgeStyle.SMOOTHSTEP: ("left", "left"),
}


class ReactFlowRenderer:
    """Produce ``{"nodes": [...], "edges": [...]}`` for a React Flow canvas."""

    def __init__(self, node_data: dict[str, Any] | None = None) -> None:
        # Extra keys merged into every entity node's data (callbacks, view options).
        self.node_data = dict(node_data or {})

    def render(self, result: FlowResult) -> dict[str, list[dict[str, Any]]]:
        style = result.edges[0].style if result.edges else EdgeStyle.DEFAULT
        source_side, target_side = _HANDLE_SIDES[style]
        return {
            "nodes": [self._node(n, source_side, target_side) for n in result.nodes],
            "edges": [self._edge(e) for e in result.edges],
        }

    def _node(self, node: Node, source_side: str, target_side: str) -> dict[str, Any]:
        pos = node.position
        out: dict[str, Any] = {
            "id": node.id,
            "position": {"x": pos.x - pos.width / 2, "y": pos.y - pos.height / 2},
            "width": pos.width,
            "height": pos.height,
            "draggable": True,
            "selectable": True,
        }
        if node.kind is NodeKind.GROUP:
            group = node.data["group"]
            out["type"] = NODE_TYPES[NodeKind.GROUP.value]
            out["data"] = {"groupId": group.id, "label": node.data["label"], "group": group.payload}
            if node.data["has_outgoing"]:
                out["sourcePosition"] = source_side
            return out

        entity = node.data["entity"]
        out["type"] = NODE_TYPES[node.data["entity_kind"]]
        out["data"] = {
            "entity": entity.payload or {"id": entity.id},
            "label": node.data["label"],
            "groupId": node.data["group_id"],
            "calculatedHeight": node.data["height"],
            "hasIncoming": node.data["has_incoming"],
            "hasOutgoing": node.data["has_outgoing"],
            "multiParent": node.data["multi_parent"],
            "usedHandles": {"source": list(node.data["handles"]), "target": []},
            **self.node_data,
        }
        if node.data["has_outgoing"]:
            out["sourcePosition"] = source_side
        if node.data["has_incoming"]:
            out["targetPosition"] = target_side
        return out

    @staticmethod
    def _edge(edge: Edge) -> dict[str, Any]:
        out: dict[str, Any] = {
            "id": edge.id,
            "source": edge.source,
            "target": edge.target,
            "type": edge.style.value,
            "data": {"relation": edge.relation},
            "animated": False,
        }
        if edge.source_handle is not None:
            out["sourceHandle"] = edge.source_handle
        return out
