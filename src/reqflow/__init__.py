"""reqflow — relationship-graph layout for requirements and measures."""

from reqflow.config import LayoutConfig
from reqflow.diagnostics import Diagnostic, DiagnosticCode, Diagnostics
from reqflow.errors import IngestError, ReqflowError, UnknownStrategyError
from reqflow.ingest import groups_from_payload
from reqflow.layout import LayoutStrategy
from reqflow.pipeline import build_flow, build_flow_from_payload
from reqflow.types import (
    Edge,
    EdgeStyle,
    Entity,
    EntityKind,
    FlowResult,
    Group,
    Node,
    NodeKind,
    Position,
)

__all__ = [
    "Diagnostic",
    "DiagnosticCode",
    "Diagnostics",
    "Edge",
    "EdgeStyle",
    "Entity",
    "EntityKind",
    "FlowResult",
    "Group",
    "IngestError",
    "LayoutConfig",
    "LayoutStrategy",
    "Node",
    "NodeKind",
    "Position",
    "ReqflowError",
    "UnknownStrategyError",
    "build_flow",
    "build_flow_from_payload",
    "groups_from_payload",
]
