"""Tests for the validation query API."""

from datetime import timedelta

import pytest

from catalogdq.core.exceptions import AcknowledgementError, NotFoundError, ValidationBlockedError
from catalogdq.core.schema import VALIDATION_RESULT
from catalogdq.validation import Severity, StoredValidationResult, ValidationContext


def validate_tag(service, entity_id, entity, project_id="p1"):
    return service.validate_entity(ValidationContext(project_id, "tag", entity, entity_id=entity_id))


@pytest.fixture
def seeded(validation_service):
    """Two tags in p1 (one with errors, one with a warning) and one in p2."""
    validate_tag(validation_service, "t1", {"name": "FT-101", "type": "AI"})
    validate_tag(validation_service, "t2", {"name": "XYZ-1"})
    validate_tag(validation_service, "t3", {"name": "XYZ-2"}, project_id="p2")
    return validation_service


class TestQueries:
    def test_get_validation_results(self, seeded):
        results = seeded.get_validation_results("p1", "tag", "t1")
        assert {r.rule_name for r in results} == {"Naming Convention", "Scaling and Units"}
        assert all(isinstance(r, StoredValidationResult) for r in results)

    def test_results_newest_first(self, validation_service, store):
        base = StoredValidationResult(
            id="old", project_id="p1", entity_type="tag", entity_id="t1",
            rule_name="r", severity=Severity.WARNING, message="m",
        )
        newer = StoredValidationResult(
            id="new", project_id="p1", entity_type="tag", entity_id="t1",
            rule_name="r", severity=Severity.WARNING, message="m",
            created_at=base.created_at + timedelta(seconds=5),
        )
        store.create(VALIDATION_RESULT, base.to_record())
        store.create(VALIDATION_RESULT, newer.to_record())

        assert [r.id for r in validation_service.get_validation_results("p1", "tag", "t1")] == ["new", "old"]

    def test_project_results_are_scoped(self, seeded):
        p1 = seeded.get_project_validation_results("p1")
        assert {r.entity_id for r in p1} == {"t1", "t2"}
        assert seeded.get_project_validation_results("p1", entity_type="alarm") == []

    def test_clear_validation_results(self, seeded):
        assert seeded.clear_validation_results("p1", "tag", "t1") == 3
        assert seeded.get_validation_results("p1", "tag", "t1") == []


class TestAcknowledge:
    def test_acknowledge_warning(self, seeded, store):
        warning = seeded.get_validation_results("p1", "tag", "t2")[0]
        assert warning.severity is Severity.WARNING

        acknowledged = seeded.acknowledge_warning(warning.id)

        assert acknowledged.acknowledged
        assert store.find(VALIDATION_RESULT, warning.id)["acknowledged"] is True

    def test_cannot_acknowledge_error(self, seeded, store):
        error = next(
            r for r in seeded.get_validation_results("p1", "tag", "t1") if r.severity is Severity.ERROR
        )
        with pytest.raises(AcknowledgementError):
            seeded.acknowledge_warning(error.id)
        assert store.find(VALIDATION_RESULT, error.id)["acknowledged"] is False

    def test_unknown_result(self, validation_service):
        with pytest.raises(NotFoundError):
            validation_service.acknowledge_warning("missing")


class TestSummary:
    def test_summary_counts(self, seeded):
        warning = seeded.get_validation_results("p1", "tag", "t2")[0]
        seeded.acknowledge_warning(warning.id)

        summary = seeded.get_validation_summary("p1")

        assert summary["total"] == 4
        assert summary["errors"] == 2
        assert summary["warnings"] == 2
        assert summary["info"] == 0
        assert summary["acknowledged"] == 1
        assert summary["by_entity_type"] == {"tag": 4}
        assert summary["by_rule"] == {"Naming Convention": 2, "Scaling and Units": 2}

    def test_empty_summary(self, validation_service):
        assert validation_service.get_validation_summary("empty") == {
            "total": 0,
            "errors": 0,
            "warnings": 0,
            "info": 0,
            "acknowledged": 0,
            "by_entity_type": {},
            "by_rule": {},
        }


class TestCanSaveEntity:
    def test_clean_entity_can_be_saved(self, validation_service):
        assert validation_service.can_save_entity("p1", "equipment", {"name": "P-101"})

    def test_errors_block_save(self, validation_service):
        with pytest.raises(ValidationBlockedError) as exc_info:
            validation_service.can_save_entity("p1", "alarm", {"priority": "High"})

        errors = exc_info.value.context["errors"]
        assert "Alarm Completeness: Alarm setpoint is required" in errors

    def test_override(self, validation_service):
        assert validation_service.can_save_entity("p1", "alarm", {}, allow_override=True)
