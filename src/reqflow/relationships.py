"""Relationship graph — derive hierarchy and business links from collected entities.

Three relationship classes are discovered:
  - requirement → requirement (child's ``parent_id``)
  - measure → measure (child's ``parent_id``)
  - requirement → measure (business link; either side may carry the reference)

Lookups go through id-indexed dicts, so discovery is linear in the number of
entities plus references. Dangling and self references are dropped and
reported rather than raised.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field

import structlog

from reqflow.collector import CollectedEntities
from reqflow.diagnostics import DiagnosticCode, Diagnostics, ensure
from reqflow.types import CollectedEntity, EntityId, Relationship, RelationKind, hierarchy_kind

logger = structlog.get_logger(__name__)


@dataclass
class RelationshipGraph:
    """All relationships discovered for one layout run.

    Attributes:
        requirement_hierarchy: Requirement parent → requirement child links.
        measure_hierarchy: Measure parent → measure child links.
        business: Requirement → measure links.
        standalone_requirements: Requirements with no relationship at all.
        standalone_measures: Measures with no relationship at all.
        multi_parent: Node keys with more than one incoming relationship.
    """

    requirement_hierarchy: list[Relationship] = field(default_factory=list)
    measure_hierarchy: list[Relationship] = field(default_factory=list)
    business: list[Relationship] = field(default_factory=list)
    standalone_requirements: list[CollectedEntity] = field(default_factory=list)
    standalone_measures: list[CollectedEntity] = field(default_factory=list)
    multi_parent: set[str] = field(default_factory=set)
    incoming: Counter[str] = field(default_factory=Counter)
    outgoing: Counter[str] = field(default_factory=Counter)

    def relationships(self) -> list[Relationship]:
        """Every relationship in discovery order: hierarchies first, then business."""
        return self.requirement_hierarchy + self.measure_hierarchy + self.business

    def has_incoming(self, node_key: str) -> bool:
        return self.incoming[node_key] > 0

    def has_outgoing(self, node_key: str) -> bool:
        return self.outgoing[node_key] > 0

    def is_standalone(self, node_key: str) -> bool:
        return not self.has_incoming(node_key) and not self.has_outgoing(node_key)

    def _add(self, rel: Relationship) -> None:
        if rel.kind is RelationKind.REQUIREMENT_HIERARCHY:
            self.requirement_hierarchy.append(rel)
        elif rel.kind is RelationKind.MEASURE_HIERARCHY:
            self.measure_hierarchy.append(rel)
        else:
            self.business.append(rel)
        self.outgoing[rel.parent_key] += 1
        self.incoming[rel.child_key] += 1


def _index(entities: list[CollectedEntity]) -> dict[EntityId, CollectedEntity]:
    return {ce.entity.id: ce for ce in entities}


def _hierarchy_links(
    entities: list[CollectedEntity],
    graph: RelationshipGraph,
    diagnostics: Diagnostics,
) -> None:
    by_id = _index(entities)
    for child in entities:
        parent_id = child.entity.parent_id
        if parent_id is None:
            continue
        if parent_id == child.entity.id:
            diagnostics.report(
                DiagnosticCode.SELF_REFERENCE,
                "entity names itself as parent, ignored",
                node_key=child.node_key,
            )
            continue
        parent = by_id.get(parent_id)
        if parent is None:
            diagnostics.report(
                DiagnosticCode.DANGLING_PARENT,
                "parent id does not resolve, treated as no parent",
                node_key=child.node_key,
                parent_id=parent_id,
            )
            continue
        graph._add(Relationship(parent.node_key, child.node_key, hierarchy_kind(child.kind)))


def _business_links(
    requirements: list[CollectedEntity],
    measures: list[CollectedEntity],
    graph: RelationshipGraph,
    diagnostics: Diagnostics,
) -> None:
    req_by_id = _index(requirements)
    measure_by_id = _index(measures)
    req_order: dict[EntityId, int] = {ce.entity.id: i for i, ce in enumerate(requirements)}

    # measure id → requirement ids, from references carried by either side.
    linked: dict[EntityId, set[EntityId]] = {ce.entity.id: set() for ce in measures}

    for req in requirements:
        for measure_id in req.entity.cross_links:
            if measure_id in measure_by_id:
                linked[measure_id].add(req.entity.id)
            else:
                diagnostics.report(
                    DiagnosticCode.DANGLING_CROSS_LINK,
                    "requirement links to an unknown measure, ignored",
                    node_key=req.node_key,
                    target_id=measure_id,
                )

    for measure in measures:
        for req_id in measure.entity.cross_links:
            if req_id in req_by_id:
                linked[measure.entity.id].add(req_id)
            else:
                diagnostics.report(
                    DiagnosticCode.DANGLING_CROSS_LINK,
                    "measure links to an unknown requirement, ignored",
                    node_key=measure.node_key,
                    target_id=req_id,
                )

    for measure in measures:
        for req_id in sorted(linked[measure.entity.id], key=req_order.__getitem__):
            graph._add(Relationship(req_by_id[req_id].node_key, measure.node_key, RelationKind.BUSINESS))


def build_relationships(
    collected: CollectedEntities,
    diagnostics: Diagnostics | None = None,
) -> RelationshipGraph:
    """Discover every relationship between the collected entities."""
    diagnostics = ensure(diagnostics)
    graph = RelationshipGraph()

    _hierarchy_links(collected.requirements, graph, diagnostics)
    _hierarchy_links(collected.measures, graph, diagnostics)
    _business_links(collected.requirements, collected.measures, graph, diagnostics)

    graph.multi_parent = {key for key, count in graph.incoming.items() if count > 1}
    graph.standalone_requirements = [ce for ce in collected.requirements if graph.is_standalone(ce.node_key)]
    graph.standalone_measures = [ce for ce in collected.measures if graph.is_standalone(ce.node_key)]

    logger.debug(
        "relationships_built",
        requirement_hierarchy=len(graph.requirement_hierarchy),
        measure_hierarchy=len(graph.measure_hierarchy),
        business=len(graph.business),
        multi_parent=len(graph.multi_parent),
    )
    return graph
