"""Tests for RuleRegistry, bootstrap_registry and ValidationEngine."""

import logging

import pytest
from hypothesis import given

from catalogdq.core.exceptions import PreconditionError, RegistryFrozenError
from catalogdq.core.schema import VALIDATION_RESULT
from catalogdq.validation import (
    RuleConfigurationError,
    RuleRegistry,
    Severity,
    ValidationContext,
    ValidationEngine,
    ValidationFinding,
    ValidatorError,
    bootstrap_registry,
    has_errors,
    has_warnings,
)
from tests.conftest import analog_tag


class StubRule:
    """Rule returning fixed findings, for ordering and containment tests."""

    def __init__(self, name, entity_types=(), severity=Severity.WARNING, error=None):
        self.name = name
        self.description = f"stub {name}"
        self.applicable_entity_types = entity_types
        self.severity = severity
        self.error = error

    def validate(self, context):
        if self.error is not None:
            raise self.error
        return [ValidationFinding(self.name, self.severity, f"{self.name} fired")]


class TestRuleRegistry:
    def test_rules_for_entity_type_in_registration_order(self):
        registry = RuleRegistry()
        registry.register_rules(
            [StubRule("first", ("tag",)), StubRule("universal"), StubRule("other", ("alarm",))]
        )

        assert [r.name for r in registry.get_rules_for_entity_type("tag")] == ["first", "universal"]
        assert [r.name for r in registry.get_rules_for_entity_type("document")] == ["universal"]

    def test_overwrite_warns_and_reindexes(self, caplog):
        registry = RuleRegistry()
        registry.register_rule(StubRule("rule", ("tag",)))

        with caplog.at_level(logging.WARNING):
            registry.register_rule(StubRule("rule", ("alarm",)))

        assert "already registered" in caplog.text
        assert registry.get_rules_for_entity_type("tag") == []
        assert len(registry.get_rules_for_entity_type("alarm")) == 1
        assert len(registry) == 1

    def test_rejects_rule_without_name(self):
        with pytest.raises(RuleConfigurationError):
            RuleRegistry().register_rule(StubRule(""))

    def test_rejects_rule_without_validate(self):
        class NoValidate:
            name = "broken"
            applicable_entity_types = ()

        with pytest.raises(RuleConfigurationError):
            RuleRegistry().register_rule(NoValidate())

    def test_unregister(self):
        registry = RuleRegistry()
        registry.register_rule(StubRule("rule"))
        assert registry.unregister_rule("rule") is True
        assert registry.unregister_rule("rule") is False
        assert "rule" not in registry

    def test_frozen_registry_rejects_changes(self):
        registry = RuleRegistry().freeze()
        with pytest.raises(RegistryFrozenError):
            registry.register_rule(StubRule("late"))
        with pytest.raises(RegistryFrozenError):
            registry.unregister_rule("late")


class TestBootstrapRegistry:
    def test_builtin_rules(self):
        registry = bootstrap_registry()
        assert [r.name for r in registry.get_all_rules()] == [
            "Naming Convention",
            "Scaling and Units",
            "Duplicate Detection",
            "Alarm Completeness",
        ]
        assert registry.frozen

    def test_rules_per_entity_type(self):
        registry = bootstrap_registry()
        assert [r.name for r in registry.get_rules_for_entity_type("tag")] == [
            "Naming Convention",
            "Scaling and Units",
            "Duplicate Detection",
        ]
        assert [r.name for r in registry.get_rules_for_entity_type("document")] == [
            "Duplicate Detection"
        ]

    def test_extra_and_disabled_rules(self):
        registry = bootstrap_registry(
            extra_rules=[StubRule("Custom", ("tag",))],
            disabled_rules=["Duplicate Detection"],
        )
        assert "Custom" in registry
        assert "Duplicate Detection" not in registry

    def test_unknown_disabled_rule(self):
        with pytest.raises(RuleConfigurationError):
            bootstrap_registry(disabled_rules=["Spelling"])


class TestValidationEngine:
    def test_runs_applicable_rules(self, engine):
        findings = engine.validate_entity(
            ValidationContext("p1", "tag", {"name": "FT-101", "type": "AI", "scaleLow": 0, "scaleHigh": 100})
        )
        assert [f.rule_name for f in findings] == ["Naming Convention", "Scaling and Units"]
        assert has_errors(findings)
        assert has_warnings(findings)

    def test_no_rules_for_type(self):
        engine = ValidationEngine(RuleRegistry())
        assert engine.validate_entity(ValidationContext("p1", "tag", {})) == []

    def test_rule_exception_becomes_error_finding(self, caplog):
        registry = RuleRegistry()
        registry.register_rules(
            [
                StubRule("exploding", error=RuntimeError("lookup failed")),
                StubRule("after"),
            ]
        )
        engine = ValidationEngine(registry)

        with caplog.at_level(logging.ERROR):
            findings = engine.validate_entity(ValidationContext("p1", "tag", {}))

        assert findings[0] == ValidationFinding(
            "exploding", Severity.ERROR, "Validation rule execution failed: lookup failed"
        )
        assert findings[1].rule_name == "after"
        assert "exploding" in caplog.text

    def test_catalog_error_message_has_no_context_suffix(self):
        registry = RuleRegistry()
        registry.register_rule(StubRule("strict", error=ValidatorError("bad table", rule_name="strict")))

        findings = ValidationEngine(registry).validate_entity(ValidationContext("p1", "tag", {}))

        assert findings[0].is_error
        assert findings[0].message == "Validation rule execution failed: bad table"

    def test_validate_with_rules_skips_unknown_and_inapplicable(self, engine):
        findings = engine.validate_with_rules(
            ValidationContext("p1", "tag", {"name": "FT-101", "type": "AI"}),
            ["Alarm Completeness", "Missing Rule", "Naming Convention"],
        )
        assert [f.rule_name for f in findings] == ["Naming Convention"]

    def test_validate_and_store_replaces_results(self, engine, store):
        context = ValidationContext("p1", "tag", {"name": "FT-101", "type": "AI"}, entity_id="t1")
        engine.validate_and_store(context)
        first = store.find_all(VALIDATION_RESULT, {"entity_id": "t1"})

        context.entity = {"name": "AI-101", "type": "AI", "engineeringUnits": "bar", "scaleLow": 0, "scaleHigh": 10}
        engine.validate_and_store(context)

        assert len(first) == 3
        assert store.find_all(VALIDATION_RESULT, {"entity_id": "t1"}) == []

    def test_validate_and_store_is_idempotent(self, engine, store):
        def stored_results():
            return sorted(
                (r["rule_name"], r["severity"], r["message"], r["acknowledged"])
                for r in store.find_all(VALIDATION_RESULT, {"entity_id": "t1"})
            )

        context = ValidationContext("p1", "tag", {"name": "FT-101", "type": "AI"}, entity_id="t1")
        engine.validate_and_store(context)
        first = stored_results()
        engine.validate_and_store(context)

        assert len(first) == 3
        assert stored_results() == first
        assert store.count(VALIDATION_RESULT) == 3

    def test_validate_and_store_without_entity_id_stores_nothing(self, engine, store):
        engine.validate_and_store(ValidationContext("p1", "tag", {"name": "FT-101", "type": "AI"}))
        assert store.count(VALIDATION_RESULT) == 0

    def test_store_findings_skips_passed(self, engine, store):
        stored = engine.store_findings(
            "p1",
            "tag",
            "t1",
            [
                ValidationFinding("a", Severity.WARNING, "kept"),
                ValidationFinding("b", Severity.INFO, "ok", passed=True),
            ],
        )
        assert [s.rule_name for s in stored] == ["a"]
        assert store.count(VALIDATION_RESULT) == 1

    def test_storing_without_store_fails(self, registry):
        engine = ValidationEngine(registry)
        with pytest.raises(PreconditionError):
            engine.clear_results("p1", "tag", "t1")

    @given(analog_tag())
    def test_conforming_analog_tags_pass(self, tag):
        engine = ValidationEngine(bootstrap_registry())
        findings = engine.validate_entity(ValidationContext("p1", "tag", tag))
        assert not has_errors(findings)
        assert not has_warnings(findings)

