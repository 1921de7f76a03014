"""Core data types shared by every stage of the flow pipeline.

Entities and groups are read-only snapshots. Stages decorate them with
run-scoped wrappers (``CollectedEntity``) instead of mutating them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union

EntityId = Union[int, str]

UNGROUPED_KEY = "__ungrouped__"
GROUP_PREFIX = "group:"


class EntityKind(str, Enum):
    REQUIREMENT = "requirement"
    MEASURE = "measure"

    @property
    def opposite(self) -> EntityKind:
        return EntityKind.MEASURE if self is EntityKind.REQUIREMENT else EntityKind.REQUIREMENT


class RelationKind(str, Enum):
    REQUIREMENT_HIERARCHY = "requirement_hierarchy"
    MEASURE_HIERARCHY = "measure_hierarchy"
    BUSINESS = "business"


class NodeKind(str, Enum):
    ENTITY = "entity"
    GROUP = "group"


class EdgeStyle(str, Enum):
    """Routing style hint for the renderer."""

    DEFAULT = "default"
    SMOOTHSTEP = "smoothstep"


ANCHOR_RELATION = "anchor"


def hierarchy_kind(kind: EntityKind) -> RelationKind:
    """Relation kind of a same-kind parent link for entities of ``kind``."""
    if kind is EntityKind.REQUIREMENT:
        return RelationKind.REQUIREMENT_HIERARCHY
    return RelationKind.MEASURE_HIERARCHY


def make_node_key(kind: EntityKind, entity_id: EntityId) -> str:
    return f"{kind.value}:{entity_id}"


def group_node_key(group_id: EntityId | None) -> str:
    return f"{GROUP_PREFIX}{UNGROUPED_KEY if group_id is None else group_id}"


# ─── Input ────────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Entity:
    """One requirement or measure as supplied by the data layer.

    Attributes:
        id: Identifier, unique within its kind.
        kind: Explicit entity kind tag.
        parent_id: Same-kind hierarchical parent, if any.
        cross_links: Ids of opposite-kind entities this one is linked to.
        label: Display label passed through to the renderer.
        has_note: Whether a secondary note is present (height hint).
        has_snippet: Whether a description snippet is present (height hint).
        payload: Original record, untouched.
    """

    id: EntityId
    kind: EntityKind
    parent_id: EntityId | None = None
    cross_links: tuple[EntityId, ...] = ()
    label: str = ""
    has_note: bool = False
    has_snippet: bool = False
    payload: dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    @property
    def node_key(self) -> str:
        return make_node_key(self.kind, self.id)


@dataclass(frozen=True)
class Group:
    """A subject area holding entities of both kinds. ``id=None`` is "ungrouped"."""

    id: EntityId | None
    label: str = ""
    sort_key: float | str | None = None
    requirements: tuple[Entity, ...] = ()
    measures: tuple[Entity, ...] = ()
    payload: dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    @property
    def is_ungrouped(self) -> bool:
        return self.id is None

    @property
    def node_key(self) -> str:
        return group_node_key(self.id)

    def entities(self) -> tuple[Entity, ...]:
        return self.requirements + self.measures


# ─── Derived ──────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class CollectedEntity:
    """An entity stamped with the group it was first seen in."""

    entity: Entity
    source_group: Group

    @property
    def node_key(self) -> str:
        return self.entity.node_key

    @property
    def kind(self) -> EntityKind:
        return self.entity.kind

    @property
    def group_key(self) -> str:
        return self.source_group.node_key


@dataclass(frozen=True)
class Relationship:
    """A directed parent → child link between two node keys."""

    parent_key: str
    child_key: str
    kind: RelationKind


@dataclass(frozen=True)
class Position:
    """Centre coordinates plus size of one laid-out node."""

    x: float
    y: float
    width: float
    height: float

    @property
    def top(self) -> float:
        return self.y - self.height / 2

    @property
    def bottom(self) -> float:
        return self.y + self.height / 2

    def moved_to(self, y: float) -> Position:
        return Position(x=self.x, y=y, width=self.width, height=self.height)


# ─── Output ───────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Node:
    id: str
    kind: NodeKind
    position: Position
    data: dict[str, Any]


@dataclass(frozen=True)
class Edge:
    id: str
    source: str
    target: str
    relation: str
    style: EdgeStyle = EdgeStyle.DEFAULT
    source_handle: str | None = None


@dataclass
class FlowResult:
    """Output of one layout run."""

    nodes: list[Node] = field(default_factory=list)
    edges: list[Edge] = field(default_factory=list)
    diagnostics: list[Any] = field(default_factory=list)

    def node_ids(self) -> set[str]:
        return {n.id for n in self.nodes}
