"""Tests for speclint.linter.config: YAML config loading and validation."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from speclint.linter.config import ConfigError, find_config, load_config, parse_config
from speclint.linter.violation import Severity

if TYPE_CHECKING:
    from pathlib import Path


class TestParseConfig:
    def test_defaults(self) -> None:
        config = parse_config({})
        assert config.extends == ["all"]
        assert config.rules == {}
        assert config.output_format == "text"
        assert not config.resolve.disable_external_refs

    def test_extends_string(self) -> None:
        assert parse_config({"extends": "recommended"}).extends == ["recommended"]

    def test_rules_as_list(self) -> None:
        config = parse_config(
            {
                "rules": [
                    {"id": "owasp-integer-limit", "severity": "warn"},
                    {"id": "semantic-unused-component", "disabled": True},
                ]
            }
        )
        assert config.rules["owasp-integer-limit"].severity is Severity.WARNING
        assert config.rules["semantic-unused-component"].disabled

    def test_rules_as_mapping(self) -> None:
        config = parse_config(
            {
                "rules": {
                    "owasp-integer-limit": "info",
                    "semantic-unused-component": "off",
                    "style-path-trailing-slash": False,
                    "oas3-no-nullable": {"severity": "error"},
                }
            }
        )
        assert config.rules["owasp-integer-limit"].severity is Severity.INFO
        assert config.rules["semantic-unused-component"].disabled
        assert config.rules["style-path-trailing-slash"].disabled
        assert config.rules["oas3-no-nullable"].severity is Severity.ERROR

    def test_categories(self) -> None:
        config = parse_config({"categories": {"security": {"enabled": False, "severity": "hint"}}})
        assert config.categories["security"].enabled is False
        assert config.categories["security"].severity is Severity.HINT

    def test_resolve_fs_root_is_relative_to_config(self, tmp_path: Path) -> None:
        config = parse_config(
            {"resolve": {"fs_root": "specs", "disable_external_refs": True}}, base_dir=tmp_path
        )
        assert config.resolve.fs_root == tmp_path / "specs"
        assert config.resolve.disable_external_refs

    @pytest.mark.parametrize(
        ("data", "match"),
        [
            ([], "top level"),
            ({"colour": "red"}, "unknown key"),
            ({"extends": 3}, "extends"),
            ({"rules": [{"severity": "error"}]}, "string 'id'"),
            ({"rules": [{"id": "x", "level": "error"}]}, "unknown key"),
            ({"rules": {"x": "loud"}}, "unknown severity"),
            ({"rules": {"x": 3}}, "expected a severity"),
            ({"rules": [{"id": "x", "disabled": "yes"}]}, "disabled"),
            ({"categories": {"naming": {}}}, "unknown category"),
            ({"categories": {"style": {"enabled": "no"}}}, "enabled"),
            ({"output_format": "xml"}, "output_format"),
            ({"resolve": {"disable_external_refs": "sometimes"}}, "disable_external_refs"),
        ],
    )
    def test_invalid(self, data: object, match: str) -> None:
        with pytest.raises(ValueError, match=match):
            parse_config(data)


class TestLoadConfig:
    def test_load(self, tmp_path: Path) -> None:
        path = tmp_path / ".speclint.yaml"
        path.write_text("extends: [recommended]\noutput_format: json\n")
        config = load_config(path)
        assert config.extends == ["recommended"]
        assert config.output_format == "json"

    def test_empty_file_is_default(self, tmp_path: Path) -> None:
        path = tmp_path / ".speclint.yaml"
        path.write_text("")
        assert load_config(path).extends == ["all"]

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / ".speclint.yaml"
        path.write_text("rules: [unclosed\n")
        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_config(path)

    def test_invalid_content(self, tmp_path: Path) -> None:
        path = tmp_path / ".speclint.yaml"
        path.write_text("output_format: xml\n")
        with pytest.raises(ConfigError, match="Invalid config"):
            load_config(path)

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="Cannot read config"):
            load_config(tmp_path / "nope.yaml")


class TestFindConfig:
    def test_finds_yaml_then_yml(self, tmp_path: Path) -> None:
        assert find_config(tmp_path) is None
        (tmp_path / ".speclint.yml").write_text("{}\n")
        assert find_config(tmp_path) == tmp_path / ".speclint.yml"
        (tmp_path / ".speclint.yaml").write_text("{}\n")
        assert find_config(tmp_path) == tmp_path / ".speclint.yaml"
