"""Columnar layout — one column per subject area, rows aligned across columns.

Layout concept:
  - Each group becomes a column with its header on top.
  - Within a column entities are ordered depth-first so every parent is
    directly followed by its descendants.
  - The i-th entity of every column sits in global row i; all entities of a
    row share the row's vertical centre, and the row is as tall as its
    tallest entity.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field

import structlog

from reqflow.collector import CollectedEntities
from reqflow.config import LayoutConfig
from reqflow.connections import ConnectionIndex
from reqflow.diagnostics import DiagnosticCode, Diagnostics, ensure
from reqflow.relationships import RelationshipGraph
from reqflow.types import CollectedEntity, Group, Position

logger = structlog.get_logger(__name__)

PositionMap = dict[str, Position]


@dataclass
class Column:
    group: Group
    entities: list[CollectedEntity] = field(default_factory=list)


# ─── Column Ordering ──────────────────────────────────────────────────────────


def _id_sort_key(value: object) -> tuple[int, float, str]:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return (0, float(value), "")
    return (1, 0.0, str(value))


def group_sort_key(group: Group) -> tuple:
    """Groups with a sort key first (ascending), then by id; ungrouped last.

    Numeric sort keys order before string ones, so mixed payloads still sort.
    """
    has_sort_key = group.sort_key is not None
    return (
        group.is_ungrouped,
        not has_sort_key,
        _id_sort_key(group.sort_key) if has_sort_key else (0, 0.0, ""),
        _id_sort_key(group.id),
    )


def build_columns(collected: CollectedEntities) -> list[Column]:
    """One column per distinct group, in display order, each holding its entities."""
    columns = {group.node_key: Column(group=group) for group in collected.groups}
    for ce in collected:
        columns[ce.group_key].entities.append(ce)
    return sorted(columns.values(), key=lambda c: group_sort_key(c.group))


def order_column(
    column: Column,
    connections: ConnectionIndex,
    diagnostics: Diagnostics | None = None,
) -> list[CollectedEntity]:
    """Depth-first order that keeps parent → child chains contiguous.

    Only parents inside the column are followed. Roots are entities with no
    parent inside the column; whatever is left unvisited afterwards (cycles)
    is walked in column order and reported.
    """
    diagnostics = ensure(diagnostics)
    by_key = {ce.node_key: ce for ce in column.entities}
    children: dict[str, list[str]] = defaultdict(list)
    has_local_parent: set[str] = set()
    for ce in column.entities:
        conn = connections.get(ce.node_key)
        if conn is None:
            continue
        for parent_key in conn.parents:
            if parent_key in by_key:
                children[parent_key].append(ce.node_key)
                has_local_parent.add(ce.node_key)

    ordered: list[CollectedEntity] = []
    visited: set[str] = set()

    def visit(start: str) -> None:
        stack = [start]
        while stack:
            key = stack.pop()
            if key in visited:
                continue
            visited.add(key)
            ordered.append(by_key[key])
            stack.extend(reversed(children.get(key, [])))

    for ce in column.entities:
        if ce.node_key not in has_local_parent:
            visit(ce.node_key)
    for ce in column.entities:
        if ce.node_key not in visited:
            diagnostics.report(
                DiagnosticCode.HIERARCHY_CYCLE,
                "entity is only reachable through a parent cycle, ordered by input position",
                node_key=ce.node_key,
                group=column.group.node_key,
            )
            visit(ce.node_key)

    return ordered


# ─── Row Geometry ─────────────────────────────────────────────────────────────


def row_heights(columns: list[list[CollectedEntity]], config: LayoutConfig) -> list[float]:
    """Height of each global row: the tallest entity present at that index."""
    heights: list[float] = []
    for entities in columns:
        for row, ce in enumerate(entities):
            h = config.estimate_height(ce.entity.has_note, ce.entity.has_snippet)
            if row == len(heights):
                heights.append(h)
            elif h > heights[row]:
                heights[row] = h
    return heights


def row_centers(heights: list[float], config: LayoutConfig) -> list[float]:
    """Vertical centre of each row below the header slot."""
    centers: list[float] = []
    top = config.origin_y + config.header_height + config.header_gap
    for h in heights:
        centers.append(top + h / 2)
        top += h + config.inter_entity_gap
    return centers


def column_center(index: int, config: LayoutConfig) -> float:
    return config.origin_x + index * (config.column_width + config.column_gap) + config.column_width / 2


# ─── Entry Point ──────────────────────────────────────────────────────────────


def columnar_layout(
    collected: CollectedEntities,
    graph: RelationshipGraph,
    connections: ConnectionIndex,
    config: LayoutConfig,
    diagnostics: Diagnostics | None = None,
) -> PositionMap:
    """Compute centre positions for every group header and entity.

    Every group gets a column, empty ones included, so its header slot is
    reserved. Rows are ordered from ``connections``; ``graph`` is accepted
    for the shared layout signature only.
    """
    diagnostics = ensure(diagnostics)
    columns = build_columns(collected)
    ordered = [order_column(column, connections, diagnostics) for column in columns]
    heights = row_heights(ordered, config)
    centers = row_centers(heights, config)

    positions: PositionMap = {}
    for index, (column, entities) in enumerate(zip(columns, ordered)):
        x = column_center(index, config)
        positions[column.group.node_key] = Position(
            x=x,
            y=config.origin_y + config.header_height / 2,
            width=config.group_width,
            height=config.group_height,
        )
        for row, ce in enumerate(entities):
            positions[ce.node_key] = Position(
                x=x,
                y=centers[row],
                width=config.entity_width,
                height=config.estimate_height(ce.entity.has_note, ce.entity.has_snippet),
            )

    logger.debug("columnar_layout_complete", columns=len(columns), rows=len(heights))
    return positions
