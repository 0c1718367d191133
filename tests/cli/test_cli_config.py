"""Tests for CLI configuration loading, validation and the reader registry."""

import logging

import pytest
from hypothesis import given
from hypothesis import strategies as st

from catalogdq.cli.config import ConfigError, build_match_rule, load_config, merge_config, validate_config
from catalogdq.cli.output import configure_logging
from catalogdq.cli.registry import get_reader, infer_reader, list_readers
from catalogdq.core.sources import CsvReader



class TestLoadConfig:
    def test_yaml(self, tmp_path):
        path = tmp_path / "tags.yaml"
        path.write_text("entity_type: tag\ncolumn_mappings:\n  Tag Name: name\n")
        assert load_config(path) == {"entity_type": "tag", "column_mappings": {"Tag Name": "name"}}

    def test_json(self, tmp_path):
        path = tmp_path / "tags.json"
        path.write_text('{"entity_type": "alarm"}')
        assert load_config(path) == {"entity_type": "alarm"}

    def test_autodetect(self, tmp_path):
        json_path = tmp_path / "a.conf"
        json_path.write_text('{"reader": "csv"}')
        yaml_path = tmp_path / "b.conf"
        yaml_path.write_text("reader: csv\n")

        assert load_config(json_path) == load_config(yaml_path) == {"reader": "csv"}

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_config(path) == {}

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError) as exc_info:
            load_config(tmp_path / "missing.yaml")
        assert "not found" in exc_info.value.message

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json")
        with pytest.raises(ConfigError):
            load_config(path)

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "broken.yaml"
        path.write_text("entity_type: [tag\n")
        with pytest.raises(ConfigError):
            load_config(path)

    def test_rejects_non_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- tag\n- alarm\n")
        with pytest.raises(ConfigError) as exc_info:
            load_config(path)
        assert "must be a mapping" in exc_info.value.message


class TestMergeConfig:
    def test_overrides_win(self):
        assert merge_config({"entity_type": "tag", "reader": "csv"}, entity_type="alarm") == {
            "entity_type": "alarm",
            "reader": "csv",
        }

    @given(st.dictionaries(st.sampled_from(["entity_type", "reader", "sheet_name"]), st.text(min_size=1)))
    def test_none_overrides_keep_base(self, base):
        assert merge_config(base, entity_type=None, reader=None, sheet_name=None) == base


class TestBuildMatchRule:
    def test_absent(self):
        assert build_match_rule({}) is None

    def test_valid(self):
        rule = build_match_rule(
            {"entity_type": "equipment", "match_rule": {"match_fields": ["name", "type"], "exact_match": True}}
        )
        assert rule.match_fields == ("name", "type")
        assert rule.exact_match
        assert rule.entity_type == "equipment"

    def test_unknown_keys(self):
        with pytest.raises(ConfigError) as exc_info:
            build_match_rule({"match_rule": {"match_fields": ["name"], "fuzzy": True}})
        assert exc_info.value.message == "Unknown match_rule keys: fuzzy"

    def test_invalid_threshold(self):
        with pytest.raises(ConfigError):
            build_match_rule({"match_rule": {"match_fields": ["name"], "similarity_threshold": 2}})

    def test_missing_fields(self):
        with pytest.raises(ConfigError):
            build_match_rule({"match_rule": {"exact_match": True}})


class TestValidateConfig:
    def test_valid(self):
        config = {
            "entity_type": "tag",
            "column_mappings": {"Tag": "name"},
            "disabled_rules": ["Duplicate Detection"],
            "match_rule": {"match_fields": ["name"]},
            "reader": "csv",
        }
        assert validate_config(config) == []

    def test_reports_every_problem(self):
        errors = validate_config(
            {
                "entity_type": "pump",
                "column_mappings": {"Tag": ""},
                "disabled_rules": ["Spelling"],
                "reader": "xlsx",
            }
        )
        assert errors[0] == "Unsupported entity type: pump (supported: tag, equipment, alarm, document)"
        assert errors[1] == "column_mappings['Tag'] must be a non-empty field name"
        assert errors[2].startswith("Unknown rule 'Spelling'. Available: Alarm Completeness")
        assert errors[3] == "Unknown reader 'xlsx'. Available: csv, json, ndjson, parquet"

    def test_wrong_shapes(self):
        errors = validate_config({"column_mappings": ["Tag"], "disabled_rules": "Naming Convention"})
        assert errors == [
            "column_mappings must be a mapping of column name to field name",
            "disabled_rules must be a list of rule names",
        ]


class TestReaderRegistry:
    @pytest.mark.parametrize(
        "name,expected",
        [("tags.csv", "csv"), ("tags.JSONL", "ndjson"), ("tags.pq", "parquet"), ("tags.json", "json")],
    )
    def test_infer_reader(self, tmp_path, name, expected):
        assert infer_reader(tmp_path / name) == expected

    def test_unknown_extension(self, tmp_path):
        with pytest.raises(ValueError):
            infer_reader(tmp_path / "tags.xlsx")

    def test_get_reader(self):
        assert isinstance(get_reader("csv"), CsvReader)

    def test_list_readers(self):
        assert list(list_readers()) == ["csv", "json", "ndjson", "parquet"]


class TestConfigureLogging:
    def test_log_file(self, tmp_path, restore_logging):
        log_file = tmp_path / "logs" / "run.log"
        configure_logging("info", log_file)

        logging.getLogger("catalogdq.test").info("hello from the test")
        for handler in logging.getLogger().handlers:
            handler.flush()

        assert "INFO catalogdq.test: hello from the test" in log_file.read_text()

    def test_invalid_level(self):
        with pytest.raises(ValueError):
            configure_logging("loud")
