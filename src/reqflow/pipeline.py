"""Full flow pipeline: collect → relate → index → lay out → build nodes and edges."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

import structlog

from reqflow.builder import build_edges, build_nodes
from reqflow.collector import collect_entities
from reqflow.config import LayoutConfig
from reqflow.connections import build_connection_index
from reqflow.diagnostics import Diagnostics, ensure
from reqflow.errors import UnknownStrategyError
from reqflow.layout import EDGE_STYLES, LAYOUTS, LayoutStrategy
from reqflow.relationships import build_relationships
from reqflow.types import FlowResult, Group

logger = structlog.get_logger(__name__)


def resolve_strategy(strategy: LayoutStrategy | str) -> LayoutStrategy:
    try:
        return LayoutStrategy(strategy)
    except ValueError as exc:
        raise UnknownStrategyError(f"unknown layout strategy {strategy!r}") from exc


def build_flow(
    groups: Iterable[Group],
    config: LayoutConfig | dict[str, Any] | None = None,
    strategy: LayoutStrategy | str = LayoutStrategy.CLUSTERED,
    diagnostics: Diagnostics | None = None,
) -> FlowResult:
    """Lay out ``groups`` and return positioned nodes and edges.

    Pure and synchronous: nothing is cached between calls and the input is
    never mutated. Data problems are recorded in ``diagnostics`` (and on the
    result) instead of raised.
    """
    layout_strategy = resolve_strategy(strategy)
    diagnostics = ensure(diagnostics)
    cfg = LayoutConfig.from_options(config, diagnostics)

    collected = collect_entities(groups, diagnostics)
    if collected.is_empty():
        return FlowResult(diagnostics=list(diagnostics))

    graph = build_relationships(collected, diagnostics)
    connections = build_connection_index(collected, graph)
    positions = LAYOUTS[layout_strategy](collected, graph, connections, cfg, diagnostics)

    edges = build_edges(
        positions,
        collected,
        graph,
        slots=cfg.handle_slots,
        style=EDGE_STYLES[layout_strategy],
        anchor_orphans=cfg.anchor_orphans,
        diagnostics=diagnostics,
    )
    nodes = build_nodes(positions, collected, graph, edges)

    logger.info(
        "flow_built",
        strategy=layout_strategy.value,
        nodes=len(nodes),
        edges=len(edges),
        diagnostics=len(diagnostics),
    )
    return FlowResult(nodes=nodes, edges=edges, diagnostics=list(diagnostics))


def build_flow_from_payload(
    payload: Any,
    config: LayoutConfig | dict[str, Any] | None = None,
    strategy: LayoutStrategy | str = LayoutStrategy.CLUSTERED,
    diagnostics: Diagnostics | None = None,
) -> FlowResult:
    """Ingest a JSON payload (see ``reqflow.ingest``) and lay it out."""
    from reqflow.ingest import groups_from_payload

    diagnostics = ensure(diagnostics)
    return build_flow(groups_from_payload(payload, diagnostics=diagnostics), config, strategy, diagnostics)
