"""Connection index — per-entity parent lookups precomputed from the relationship graph."""

from __future__ import annotations

from dataclasses import dataclass, field

from reqflow.collector import CollectedEntities
from reqflow.relationships import RelationshipGraph
from reqflow.types import RelationKind


@dataclass
class Connections:
    hierarchical_parents: list[str] = field(default_factory=list)
    business_parents: list[str] = field(default_factory=list)

    @property
    def parents(self) -> list[str]:
        return self.hierarchical_parents + self.business_parents

    @property
    def has_parents(self) -> bool:
        return bool(self.hierarchical_parents or self.business_parents)


ConnectionIndex = dict[str, Connections]


def build_connection_index(collected: CollectedEntities, graph: RelationshipGraph) -> ConnectionIndex:
    """Map every entity node key to its hierarchical and business parent keys."""
    index: ConnectionIndex = {ce.node_key: Connections() for ce in collected}
    for rel in graph.relationships():
        conn = index.get(rel.child_key)
        if conn is None:
            continue
        if rel.kind is RelationKind.BUSINESS:
            conn.business_parents.append(rel.parent_key)
        else:
            conn.hierarchical_parents.append(rel.parent_key)
    return index
