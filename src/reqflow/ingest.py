"""Payload ingestion — camelCase JSON records into typed groups and entities.

Accepted envelopes:
  - a list of group records
  - ``{"groups": [...]}``
  - ``{"items": [{"group": {...}, "entities": [{"entityType": ..., ...}]}]}``

Group records carry ``groupId``, ``groupLabel``, ``sortKey`` and the entity
lists ``kindAEntities``/``requirements`` and ``kindBEntities``/``measures``.
Every entity gets its kind from the list it came from or from an explicit
``entityType`` tag, never from the shape of its other fields.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

from reqflow.diagnostics import DiagnosticCode, Diagnostics, ensure
from reqflow.errors import IngestError
from reqflow.types import Entity, EntityId, EntityKind, Group

DEFAULT_KIND_ALIASES: dict[str, EntityKind] = {
    "requirement": EntityKind.REQUIREMENT,
    "measure": EntityKind.MEASURE,
}

_REQUIREMENT_LISTS = ("kindAEntities", "requirements")
_MEASURE_LISTS = ("kindBEntities", "measures")


def _first(record: Mapping[str, Any], *names: str, default: Any = None) -> Any:
    for name in names:
        if name in record and record[name] is not None:
            return record[name]
    return default


def _link_id(value: Any) -> EntityId:
    if isinstance(value, Mapping):
        if "id" not in value:
            raise IngestError(f"cross link without id: {value!r}")
        return value["id"]
    return value


def entity_from_record(record: Mapping[str, Any], kind: EntityKind) -> Entity:
    """Build an ``Entity`` of ``kind`` from one payload record."""
    if "id" not in record or record["id"] is None:
        raise IngestError(f"{kind.value} record without id: {record!r}")
    links = _first(record, "crossLinks", default=())
    return Entity(
        id=record["id"],
        kind=kind,
        parent_id=record.get("parentId"),
        cross_links=tuple(_link_id(v) for v in links),
        label=str(_first(record, "label", "title", default="")),
        has_note=bool(_first(record, "note", "notes", default=False)),
        has_snippet=bool(_first(record, "descriptionSnippet", default=False)),
        payload=dict(record),
    )


def _kind_of(record: Mapping[str, Any], aliases: Mapping[str, EntityKind]) -> EntityKind:
    tag = record.get("entityType")
    if not isinstance(tag, str) or tag.lower() not in aliases:
        raise IngestError(f"unknown entityType {tag!r} for record {record.get('id')!r}")
    return aliases[tag.lower()]


def _entities(
    records: Any,
    kind_of: Callable[[Mapping[str, Any]], EntityKind],
    diagnostics: Diagnostics,
) -> list[Entity]:
    entities: list[Entity] = []
    for record in records or ():
        try:
            if not isinstance(record, Mapping):
                raise IngestError(f"entity record is not a mapping: {record!r}")
            entities.append(entity_from_record(record, kind_of(record)))
        except IngestError as exc:
            record_id = record.get("id") if isinstance(record, Mapping) else None
            diagnostics.report(
                DiagnosticCode.INVALID_RECORD,
                "entity record skipped",
                record_id=record_id,
                error=str(exc),
            )
    return entities


def group_from_record(record: Mapping[str, Any], diagnostics: Diagnostics | None = None) -> Group:
    """Build a ``Group`` from a group record with separate entity lists.

    Entity records that cannot be converted are skipped and reported.
    """
    diagnostics = ensure(diagnostics)
    requirements = _entities(
        _first(record, *_REQUIREMENT_LISTS, default=()), lambda _: EntityKind.REQUIREMENT, diagnostics
    )
    measures = _entities(_first(record, *_MEASURE_LISTS, default=()), lambda _: EntityKind.MEASURE, diagnostics)
    return Group(
        id=_first(record, "groupId", "id"),
        label=str(_first(record, "groupLabel", "label", "title", default="")),
        sort_key=_first(record, "sortKey"),
        requirements=tuple(requirements),
        measures=tuple(measures),
        payload={k: v for k, v in record.items() if k not in _REQUIREMENT_LISTS + _MEASURE_LISTS},
    )


def group_from_item(
    item: Mapping[str, Any],
    aliases: Mapping[str, EntityKind],
    diagnostics: Diagnostics | None = None,
) -> Group:
    """Build a ``Group`` from an ``items`` entry with one tagged entity list."""
    diagnostics = ensure(diagnostics)
    info = item.get("group") or {}
    entities = _entities(item.get("entities"), lambda record: _kind_of(record, aliases), diagnostics)
    return Group(
        id=_first(info, "groupId", "id"),
        label=str(_first(info, "groupLabel", "label", "title", default="")),
        sort_key=_first(info, "sortKey"),
        requirements=tuple(e for e in entities if e.kind is EntityKind.REQUIREMENT),
        measures=tuple(e for e in entities if e.kind is EntityKind.MEASURE),
        payload=dict(info),
    )


def groups_from_payload(
    payload: Any,
    kind_aliases: Mapping[str, EntityKind] | None = None,
    diagnostics: Diagnostics | None = None,
) -> list[Group]:
    """Convert any accepted envelope into an ordered list of groups.

    ``kind_aliases`` extends the ``entityType`` tags understood for ``items``
    envelopes (keys are matched case-insensitively). Bad entity records are
    reported as ``INVALID_RECORD`` and skipped; an unsupported envelope raises
    ``IngestError``.
    """
    diagnostics = ensure(diagnostics)
    aliases = dict(DEFAULT_KIND_ALIASES)
    for tag, kind in (kind_aliases or {}).items():
        aliases[tag.lower()] = kind

    if payload is None:
        return []
    if isinstance(payload, Mapping):
        if isinstance(payload.get("items"), list):
            return [group_from_item(item, aliases, diagnostics) for item in payload["items"]]
        if isinstance(payload.get("groups"), list):
            return [group_from_record(record, diagnostics) for record in payload["groups"]]
        raise IngestError("payload mapping needs an 'items' or 'groups' list")
    if isinstance(payload, list):
        return [g if isinstance(g, Group) else group_from_record(g, diagnostics) for g in payload]
    raise IngestError(f"unsupported payload type {type(payload).__name__}")
