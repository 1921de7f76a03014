"""Tests for ingest.py — payload envelopes into typed groups and entities."""

from __future__ import annotations

import pytest

from reqflow.diagnostics import DiagnosticCode, Diagnostics
from reqflow.errors import IngestError
from reqflow.ingest import entity_from_record, groups_from_payload
from reqflow.types import EntityKind, Group

# ─── Entity Records ───────────────────────────────────────────────────────────


class TestEntityFromRecord:
    def test_fields(self):
        record = {
            "id": 3,
            "parentId": 1,
            "crossLinks": [5, {"id": 6}],
            "title": "Escape routes",
            "note": "see annex",
            "descriptionSnippet": "Routes must be marked",
        }
        entity = entity_from_record(record, EntityKind.REQUIREMENT)
        assert entity.id == 3
        assert entity.kind is EntityKind.REQUIREMENT
        assert entity.parent_id == 1
        assert entity.cross_links == (5, 6)
        assert entity.label == "Escape routes"
        assert entity.has_note
        assert entity.has_snippet
        assert entity.payload == record

    def test_label_preferred_over_title(self):
        entity = entity_from_record({"id": 1, "label": "L", "title": "T"}, EntityKind.MEASURE)
        assert entity.label == "L"

    def test_minimal_record(self):
        entity = entity_from_record({"id": "M-1"}, EntityKind.MEASURE)
        assert entity.parent_id is None
        assert entity.cross_links == ()
        assert not entity.has_note
        assert not entity.has_snippet

    def test_missing_id_raises(self):
        with pytest.raises(IngestError):
            entity_from_record({"title": "no id"}, EntityKind.REQUIREMENT)

    def test_link_without_id_raises(self):
        with pytest.raises(IngestError):
            entity_from_record({"id": 1, "crossLinks": [{"title": "x"}]}, EntityKind.REQUIREMENT)


# ─── Envelopes ────────────────────────────────────────────────────────────────


class TestGroupsFromPayload:
    def test_groups_envelope(self):
        groups = groups_from_payload(
            {
                "groups": [
                    {
                        "groupId": 4,
                        "groupLabel": "Fire",
                        "sortKey": 2,
                        "kindAEntities": [{"id": 1}],
                        "kindBEntities": [{"id": 2}],
                    }
                ]
            }
        )
        assert len(groups) == 1
        g = groups[0]
        assert (g.id, g.label, g.sort_key) == (4, "Fire", 2)
        assert [e.kind for e in g.entities()] == [EntityKind.REQUIREMENT, EntityKind.MEASURE]
        assert "kindAEntities" not in g.payload

    def test_plain_list_with_long_names(self):
        groups = groups_from_payload([{"id": 1, "label": "A", "requirements": [{"id": 1}], "measures": []}])
        assert groups[0].requirements[0].id == 1
        assert groups[0].measures == ()

    def test_items_envelope_uses_entity_type(self):
        payload = {
            "items": [
                {
                    "group": {"groupId": None, "groupLabel": "Other"},
                    "entities": [
                        {"id": 1, "entityType": "Requirement"},
                        {"id": 1, "entityType": "measure"},
                    ],
                }
            ]
        }
        g = groups_from_payload(payload)[0]
        assert g.is_ungrouped
        assert [e.node_key for e in g.entities()] == ["requirement:1", "measure:1"]

    def test_custom_kind_aliases(self):
        payload = {"items": [{"group": {"id": 1}, "entities": [{"id": 1, "entityType": "krav"}]}]}
        g = groups_from_payload(payload, kind_aliases={"KRAV": EntityKind.REQUIREMENT})[0]
        assert g.requirements[0].id == 1

    def test_unknown_entity_type_skipped_and_reported(self):
        payload = {
            "items": [
                {"group": {"id": 1}, "entities": [{"id": 1}, {"id": 2, "entityType": "measure"}]}
            ]
        }
        diagnostics = Diagnostics()
        g = groups_from_payload(payload, diagnostics=diagnostics)[0]
        assert [e.node_key for e in g.entities()] == ["measure:2"]
        assert diagnostics.codes() == [DiagnosticCode.INVALID_RECORD]
        assert diagnostics.records[0].context["record_id"] == 1

    def test_record_without_id_skipped(self):
        diagnostics = Diagnostics()
        groups = groups_from_payload(
            {"groups": [{"groupId": 1, "requirements": [{"title": "no id"}, {"id": 2}], "measures": ["M"]}]},
            diagnostics=diagnostics,
        )
        assert [e.node_key for e in groups[0].entities()] == ["requirement:2"]
        assert diagnostics.codes() == [DiagnosticCode.INVALID_RECORD] * 2
        assert diagnostics.records[0].context["record_id"] is None

    def test_bad_cross_link_skips_only_its_record(self):
        diagnostics = Diagnostics()
        groups = groups_from_payload(
            [{"id": 1, "requirements": [{"id": 1, "crossLinks": [{"title": "x"}]}, {"id": 2}]}],
            diagnostics=diagnostics,
        )
        assert [e.id for e in groups[0].requirements] == [2]
        assert diagnostics.records[0].context["record_id"] == 1

    def test_group_objects_pass_through(self):
        group = Group(id=1)
        assert groups_from_payload([group]) == [group]

    def test_none_is_empty(self):
        assert groups_from_payload(None) == []

    @pytest.mark.parametrize("payload", [{"data": []}, "groups", 42])
    def test_unsupported_payload_raises(self, payload):
        with pytest.raises(IngestError):
            groups_from_payload(payload)
