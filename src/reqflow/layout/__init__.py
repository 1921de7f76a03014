"""Layout strategies. Both take the same inputs and return a centre-position map."""

from __future__ import annotations

from collections.abc import Callable
from enum import Enum

from reqflow.collector import CollectedEntities
from reqflow.config import LayoutConfig
from reqflow.connections import ConnectionIndex
from reqflow.diagnostics import Diagnostics
from reqflow.layout.clustered import clustered_layout
from reqflow.layout.columnar import columnar_layout
from reqflow.relationships import RelationshipGraph
from reqflow.types import EdgeStyle, Position

PositionMap = dict[str, Position]
LayoutFn = Callable[
    [CollectedEntities, RelationshipGraph, ConnectionIndex, LayoutConfig, Diagnostics | None],
    PositionMap,
]


class LayoutStrategy(str, Enum):
    CLUSTERED = "clustered"
    COLUMNAR = "columnar"


LAYOUTS: dict[LayoutStrategy, LayoutFn] = {
    LayoutStrategy.CLUSTERED: clustered_layout,
    LayoutStrategy.COLUMNAR: columnar_layout,
}

EDGE_STYLES: dict[LayoutStrategy, EdgeStyle] = {
    LayoutStrategy.CLUSTERED: EdgeStyle.DEFAULT,
    LayoutStrategy.COLUMNAR: EdgeStyle.SMOOTHSTEP,
}

__all__ = [
    "EDGE_STYLES",
    "LAYOUTS",
    "LayoutStrategy",
    "PositionMap",
    "clustered_layout",
    "columnar_layout",
]
