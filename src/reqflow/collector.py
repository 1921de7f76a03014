"""Entity collection — flatten subject-area groups into deduplicated entity lists.

Dedup key is ``(kind, id)``; the first occurrence wins and is stamped with
the group it was seen in. Later occurrences in another group are reported,
never merged.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field

import structlog

from reqflow.diagnostics import DiagnosticCode, Diagnostics, ensure
from reqflow.types import CollectedEntity, Entity, EntityId, EntityKind, Group

logger = structlog.get_logger(__name__)


@dataclass
class CollectedEntities:
    """Deduplicated entities of both kinds plus the distinct groups, in input order."""

    requirements: list[CollectedEntity] = field(default_factory=list)
    measures: list[CollectedEntity] = field(default_factory=list)
    groups: list[Group] = field(default_factory=list)
    _by_key: dict[str, CollectedEntity] = field(default_factory=dict, repr=False)

    def all(self) -> list[CollectedEntity]:
        """Requirements first, then measures."""
        return self.requirements + self.measures

    def of_kind(self, kind: EntityKind) -> list[CollectedEntity]:
        return self.requirements if kind is EntityKind.REQUIREMENT else self.measures

    def get(self, node_key: str) -> CollectedEntity | None:
        return self._by_key.get(node_key)

    def __contains__(self, node_key: object) -> bool:
        return node_key in self._by_key

    def __iter__(self) -> Iterator[CollectedEntity]:
        return iter(self.all())

    def __len__(self) -> int:
        return len(self._by_key)

    def entities_for_group(self, group_id: EntityId | None) -> list[CollectedEntity]:
        """Entities whose source group has ``group_id``."""
        return [ce for ce in self.all() if ce.source_group.id == group_id]

    def is_empty(self) -> bool:
        return not self.groups


def collect_entities(groups: Iterable[Group], diagnostics: Diagnostics | None = None) -> CollectedEntities:
    """Flatten ``groups`` into deduplicated requirement and measure lists.

    Groups sharing an id collapse onto the first one seen. Entities listed
    under the ungrouped group (``id=None``) are kept and reported.
    """
    diagnostics = ensure(diagnostics)
    result = CollectedEntities()
    canonical: dict[EntityId | None, Group] = {}

    for group in groups:
        owner = canonical.get(group.id)
        if owner is None:
            owner = group
            canonical[group.id] = group
            result.groups.append(group)

        for entity in group.entities():
            _collect_one(entity, owner, result, diagnostics)

    logger.debug(
        "entities_collected",
        groups=len(result.groups),
        requirements=len(result.requirements),
        measures=len(result.measures),
    )
    return result


def _collect_one(
    entity: Entity,
    group: Group,
    result: CollectedEntities,
    diagnostics: Diagnostics,
) -> None:
    existing = result._by_key.get(entity.node_key)
    if existing is not None:
        if existing.source_group.id != group.id:
            diagnostics.report(
                DiagnosticCode.DUPLICATE_ENTITY,
                "entity listed under several groups, keeping the first",
                node_key=entity.node_key,
                kept_group=existing.source_group.id,
                ignored_group=group.id,
            )
        return

    if group.is_ungrouped:
        diagnostics.report(
            DiagnosticCode.UNGROUPED_ENTITY,
            "entity has no subject area, placed in the ungrouped column",
            node_key=entity.node_key,
        )

    collected = CollectedEntity(entity=entity, source_group=group)
    result._by_key[entity.node_key] = collected
    result.of_kind(entity.kind).append(collected)
