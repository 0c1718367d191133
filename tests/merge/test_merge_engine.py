"""Tests for merge_entities and MergeEngine."""

import pytest

from catalogdq.core.exceptions import PreconditionError
from catalogdq.core.schema import ATTACHMENT, AUDIT_LOG, LINK
from catalogdq.merge import MergeEngine, MergeRequest, MergeStrategy, merge_entities


class FailingAuditSink:
    def record(self, user_id, operation, entity_type, entity_id, changes):
        raise RuntimeError("audit log unavailable")


@pytest.fixture
def pumps(store):
    """Target P-101 and source P-101B with one link and one attachment on the source."""
    target = store.create("equipment", {"name": "P-101", "type": None, "projectId": "p1"})
    source = store.create("equipment", {"name": "P-101B", "type": "Pump", "projectId": "p1"})
    store.create(LINK, {"sourceEntityId": source["id"], "targetEntityId": "tag-1"})
    store.create(ATTACHMENT, {"entityId": source["id"], "fileName": "datasheet.pdf"})
    return source, target


class TestMergeEntities:
    source = {"id": "s", "name": "P-101B", "type": "Pump", "area": None}
    target = {"id": "t", "name": "P-101", "type": None, "area": "North"}

    def test_skip_keeps_target(self):
        assert merge_entities(self.source, self.target, MergeStrategy.SKIP) == self.target

    def test_overwrite(self):
        assert merge_entities(self.source, self.target, MergeStrategy.OVERWRITE) == {
            "id": "t",
            "name": "P-101B",
            "type": "Pump",
            "area": None,
        }

    def test_merge_fields_without_selections_takes_non_null_source(self):
        assert merge_entities(self.source, self.target, MergeStrategy.MERGE_FIELDS) == {
            "id": "t",
            "name": "P-101B",
            "type": "Pump",
            "area": "North",
        }

    def test_merge_fields_with_selections(self):
        merged = merge_entities(
            self.source,
            self.target,
            MergeStrategy.MERGE_FIELDS,
            {"name": "target", "type": "source"},
        )
        assert merged == {"id": "t", "name": "P-101", "type": "Pump", "area": "North"}

    def test_invalid_selection(self):
        with pytest.raises(PreconditionError):
            merge_entities(self.source, self.target, MergeStrategy.MERGE_FIELDS, {"name": "both"})


class TestMergeEngine:
    def test_overwrite_merge(self, merge_engine, store, pumps):
        source, target = pumps

        result = merge_engine.merge(
            MergeRequest("equipment", source["id"], target["id"], MergeStrategy.OVERWRITE),
            user_id="u1",
        )

        assert result.success
        assert result.merged_entity_id == target["id"]
        assert result.preserved_links == 1
        assert result.preserved_attachments == 1

        merged = store.find("equipment", target["id"])
        assert merged["name"] == "P-101B"
        assert merged["type"] == "Pump"
        assert store.find("equipment", source["id"]) is None

        link = store.find_all(LINK)[0]
        assert link["sourceEntityId"] == target["id"]
        assert store.find_all(ATTACHMENT)[0]["entityId"] == target["id"]

        audit = store.find(AUDIT_LOG, result.audit_log_id)
        assert audit["operation"] == "Merge"
        assert audit["entityId"] == target["id"]
        assert audit["changes"]["mergedFrom"] == source["id"]
        assert audit["changes"]["strategy"] == "overwrite"

    def test_strategy_given_as_string(self, merge_engine, pumps):
        source, target = pumps
        result = merge_engine.merge(MergeRequest("Equipment", source["id"], target["id"], "skip"), "u1")
        assert result.success

    def test_skip_leaves_target_unchanged(self, merge_engine, store, pumps):
        source, target = pumps
        before = store.find("equipment", target["id"])

        result = merge_engine.merge(
            MergeRequest("equipment", source["id"], target["id"], MergeStrategy.SKIP), "u1"
        )

        assert result.success
        assert store.find("equipment", target["id"]) == before
        assert store.find("equipment", source["id"]) is None

    def test_repoints_both_link_ends(self, merge_engine, store, pumps):
        source, target = pumps
        store.create(LINK, {"sourceEntityId": "tag-2", "targetEntityId": source["id"]})

        result = merge_engine.merge(
            MergeRequest("equipment", source["id"], target["id"], MergeStrategy.MERGE_FIELDS), "u1"
        )

        assert result.preserved_links == 2
        assert store.find_all(LINK, {"sourceEntityId": source["id"]}) == []
        assert store.find_all(LINK, {"targetEntityId": source["id"]}) == []
        inbound = store.find_all(LINK, {"targetEntityId": target["id"]})
        assert [link["sourceEntityId"] for link in inbound] == ["tag-2"]

    def test_failed_audit_rolls_back(self, store, pumps):
        source, target = pumps
        engine = MergeEngine(store, FailingAuditSink())

        result = engine.merge(
            MergeRequest("equipment", source["id"], target["id"], MergeStrategy.OVERWRITE), "u1"
        )

        assert not result.success
        assert result.error == "audit log unavailable"
        assert store.find("equipment", source["id"]) is not None
        assert store.find("equipment", target["id"])["name"] == "P-101"
        assert store.find_all(LINK)[0]["sourceEntityId"] == source["id"]
        assert store.find_all(ATTACHMENT)[0]["entityId"] == source["id"]

    def test_invalid_strategy(self, merge_engine, pumps):
        source, target = pumps
        result = merge_engine.merge(MergeRequest("equipment", source["id"], target["id"], "union"), "u1")
        assert not result.success
        assert result.error == "Invalid merge strategy"

    def test_unsupported_entity_type(self, merge_engine):
        result = merge_engine.merge(MergeRequest("pump", "a", "b", MergeStrategy.SKIP), "u1")
        assert not result.success
        assert result.error == "Unsupported entity type: pump"

    def test_source_equals_target(self, merge_engine, pumps):
        _, target = pumps
        result = merge_engine.merge(
            MergeRequest("equipment", target["id"], target["id"], MergeStrategy.OVERWRITE), "u1"
        )
        assert not result.success
        assert result.error == "Source and target must be different entities"

    def test_missing_entity(self, merge_engine, store, pumps):
        _, target = pumps
        result = merge_engine.merge(
            MergeRequest("equipment", "missing", target["id"], MergeStrategy.OVERWRITE), "u1"
        )
        assert not result.success
        assert result.error == "One or both entities not found"
        assert store.count(AUDIT_LOG) == 0

    def test_failure_result_to_dict(self, merge_engine):
        data = merge_engine.merge(MergeRequest("pump", "a", "b", "skip"), "u1").to_dict()
        assert data["success"] is False
        assert data["preservedLinks"] == 0
        assert data["error"] == "Unsupported entity type: pump"
