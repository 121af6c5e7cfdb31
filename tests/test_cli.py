"""Tests for the `speclint` CLI commands."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

import pytest
import yaml
from click.testing import CliRunner

from speclint import __version__
from speclint.cli import main
from speclint.rules import RECOMMENDED

if TYPE_CHECKING:
    from pathlib import Path


SLASHED = """\
openapi: 3.1.0
servers:
  - url: https://api.example.com
paths:
  /pets/:
    get:
      responses:
        '200': {description: ok}
"""

WITH_INTEGER = SLASHED + """\
components:
  schemas:
    Count:
      type: integer
      description: A count.
      x-used: true
"""


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


@pytest.fixture()
def workdir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """An empty working directory, so no stray config file is discovered."""
    monkeypatch.chdir(tmp_path)
    return tmp_path


def _write(directory: Path, name: str, text: str) -> Path:
    path = directory / name
    path.write_text(text)
    return path


def _recommended(directory: Path, extra: str = "") -> Path:
    return _write(directory, "lint.yaml", "extends: [recommended]\n" + extra)


# ---------------------------------------------------------------------------
# lint
# ---------------------------------------------------------------------------


class TestLintCommand:
    def test_clean_document(self, workdir: Path, petstore_text: str) -> None:
        spec = _write(workdir, "openapi.yaml", petstore_text)
        config = _recommended(workdir)
        result = CliRunner().invoke(main, ["lint", str(spec), "--config", str(config)])
        assert result.exit_code == 0, result.output
        assert "No violations found (9 rules evaluated in" in result.output

    def test_violations_exit_zero_without_strict(self, workdir: Path) -> None:
        spec = _write(workdir, "openapi.yaml", SLASHED)
        config = _recommended(workdir)
        result = CliRunner().invoke(main, ["lint", str(spec), "--config", str(config)])
        assert result.exit_code == 0, result.output
        assert "[5:3] warning style-path-trailing-slash path `/pets/` must not end with a slash" in (
            result.output
        )
        assert "1 violation (0 error, 1 warning, 0 info, 0 hint); 1 fixable" in result.output

    def test_strict_exits_one(self, workdir: Path) -> None:
        spec = _write(workdir, "openapi.yaml", SLASHED)
        config = _recommended(workdir)
        result = CliRunner().invoke(main, ["lint", str(spec), "--config", str(config), "--strict"])
        assert result.exit_code == 1

    def test_strict_clean_exits_zero(self, workdir: Path, petstore_text: str) -> None:
        spec = _write(workdir, "openapi.yaml", petstore_text)
        config = _recommended(workdir)
        result = CliRunner().invoke(main, ["lint", str(spec), "--config", str(config), "--strict"])
        assert result.exit_code == 0

    def test_json_format(self, workdir: Path) -> None:
        spec = _write(workdir, "openapi.yaml", SLASHED)
        config = _recommended(workdir)
        result = CliRunner().invoke(
            main,
            ["lint", str(spec), "--config", str(config), "--format", "json", "--no-external-refs"],
        )
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["summary"]["violations_count"] == 1
        assert data["summary"]["rules_evaluated"] == 9
        violation = data["violations"][0]
        assert violation["rule_id"] == "style-path-trailing-slash"
        assert (violation["line"], violation["column"]) == (5, 3)
        assert violation["fixable"] is True
        assert violation["interactive"] is False
        assert violation["kind"] == "policy"

    def test_output_format_from_config(self, workdir: Path) -> None:
        spec = _write(workdir, "openapi.yaml", SLASHED)
        config = _recommended(workdir, "output_format: json\n")
        result = CliRunner().invoke(main, ["lint", str(spec), "--config", str(config)])
        assert json.loads(result.output)["summary"]["violations_count"] == 1

    def test_discovers_config_in_cwd(self, workdir: Path) -> None:
        spec = _write(workdir, "openapi.yaml", SLASHED)
        _write(workdir, ".speclint.yaml", "extends: recommended\nrules:\n  style-path-trailing-slash: off\n")
        result = CliRunner().invoke(main, ["lint", str(spec), "--strict"])
        assert result.exit_code == 0, result.output

    def test_severity_override(self, workdir: Path) -> None:
        spec = _write(workdir, "openapi.yaml", SLASHED)
        config = _recommended(workdir, "rules:\n  style-path-trailing-slash: error\n")
        result = CliRunner().invoke(main, ["lint", str(spec), "--config", str(config)])
        assert "error style-path-trailing-slash" in result.output

    def test_disable_option(self, workdir: Path) -> None:
        spec = _write(workdir, "openapi.yaml", SLASHED)
        config = _recommended(workdir)
        result = CliRunner().invoke(
            main,
            ["lint", str(spec), "--config", str(config), "-d", "style-path-trailing-slash", "--strict"],
        )
        assert result.exit_code == 0, result.output
        assert "No violations found (8 rules evaluated in" in result.output

    def test_unknown_disabled_rule_exits_two(self, workdir: Path) -> None:
        spec = _write(workdir, "openapi.yaml", SLASHED)
        result = CliRunner().invoke(main, ["lint", str(spec), "--disable", "no-such-rule"])
        assert result.exit_code == 2
        assert "no-such-rule" in result.output

    def test_ruleset_option_replaces_config(self, workdir: Path) -> None:
        spec = _write(workdir, "openapi.yaml", SLASHED)
        config = _recommended(workdir)
        result = CliRunner().invoke(
            main,
            ["lint", str(spec), "--config", str(config), "-r", "security", "--format", "json"],
        )
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["summary"]["rules_evaluated"] == 7
        rule_ids = {v["rule_id"] for v in data["violations"]}
        assert "owasp-define-error-responses-429" in rule_ids
        assert all(rule_id.startswith("owasp-") for rule_id in rule_ids)

    def test_summary_table(self, workdir: Path) -> None:
        spec = _write(workdir, "openapi.yaml", SLASHED)
        config = _recommended(workdir)
        result = CliRunner().invoke(main, ["lint", str(spec), "--config", str(config), "--summary"])
        assert result.exit_code == 0, result.output
        assert "Findings by rule" in result.output
        rows = [line.split() for line in result.output.splitlines() if not line.startswith("[")]
        assert ["style-path-trailing-slash", "warning", "1", "1"] in rows

    def test_summary_in_json(self, workdir: Path) -> None:
        spec = _write(workdir, "openapi.yaml", SLASHED)
        config = _recommended(workdir)
        result = CliRunner().invoke(
            main, ["lint", str(spec), "--config", str(config), "--summary", "--format", "json"]
        )
        assert result.exit_code == 0, result.output
        assert json.loads(result.output)["summary"]["rules"] == [
            {"rule_id": "style-path-trailing-slash", "severity": "warning", "count": 1, "fixable": 1}
        ]

    def test_invalid_document_exits_two(self, workdir: Path) -> None:
        spec = _write(workdir, "openapi.yaml", "- just\n- a list\n")
        result = CliRunner().invoke(main, ["lint", str(spec)])
        assert result.exit_code == 2
        assert "Error:" in result.output

    def test_invalid_config_exits_two(self, workdir: Path) -> None:
        spec = _write(workdir, "openapi.yaml", SLASHED)
        _write(workdir, ".speclint.yaml", "output_format: xml\n")
        result = CliRunner().invoke(main, ["lint", str(spec)])
        assert result.exit_code == 2
        assert "Invalid config" in result.output

    def test_unknown_ruleset_exits_two(self, workdir: Path) -> None:
        spec = _write(workdir, "openapi.yaml", SLASHED)
        config = _write(workdir, "lint.yaml", "extends: [strictest]\n")
        result = CliRunner().invoke(main, ["lint", str(spec), "--config", str(config)])
        assert result.exit_code == 2
        assert "unknown ruleset 'strictest'" in result.output

    def test_missing_file(self, workdir: Path) -> None:
        result = CliRunner().invoke(main, ["lint", str(workdir / "nope.yaml")])
        assert result.exit_code == 2


# ---------------------------------------------------------------------------
# fix
# ---------------------------------------------------------------------------


class TestFixCommand:
    def test_applies_and_writes(self, workdir: Path) -> None:
        spec = _write(workdir, "openapi.yaml", SLASHED)
        config = _recommended(workdir)
        result = CliRunner().invoke(main, ["fix", str(spec), "--config", str(config)])
        assert result.exit_code == 0, result.output
        assert (
            "fixed [5:3] style-path-trailing-slash: Remove trailing slash from path" in result.output
        )
        assert "  - /pets/" in result.output
        assert "  + /pets" in result.output
        assert f"1 fixes applied, written to {spec}" in result.output
        assert "0 violations remaining" in result.output
        assert list(yaml.safe_load(spec.read_text())["paths"]) == ["/pets"]

    def test_comments_and_layout_survive(self, workdir: Path) -> None:
        text = (
            "# Pet store; hand-maintained\n"
            "openapi: 3.1.0\n"
            "servers:\n"
            "  - url: https://api.example.com  # production\n"
            "paths:\n"
            "  /pets/:  # listing\n"
            "    get:\n"
            "      responses:\n"
            "        '200': {description: ok}\n"
        )
        spec = _write(workdir, "openapi.yaml", text)
        config = _recommended(workdir)
        result = CliRunner().invoke(main, ["fix", str(spec), "--config", str(config)])
        assert result.exit_code == 0, result.output
        assert "1 fixes applied" in result.output
        assert spec.read_text() == text.replace("/pets/:", "/pets:")

    def test_dry_run_does_not_write(self, workdir: Path) -> None:
        spec = _write(workdir, "openapi.yaml", SLASHED)
        config = _recommended(workdir)
        result = CliRunner().invoke(main, ["fix", str(spec), "--config", str(config), "--dry-run"])
        assert result.exit_code == 0, result.output
        assert "would fix [5:3] style-path-trailing-slash" in result.output
        assert "1 fixes would be applied (dry run)" in result.output
        assert spec.read_text() == SLASHED

    def test_output_file(self, workdir: Path) -> None:
        spec = _write(workdir, "openapi.yaml", SLASHED)
        target = workdir / "fixed.yaml"
        config = _recommended(workdir)
        result = CliRunner().invoke(
            main, ["fix", str(spec), "--config", str(config), "-o", str(target)]
        )
        assert result.exit_code == 0, result.output
        assert spec.read_text() == SLASHED
        assert "/pets:" in target.read_text()

    def test_nothing_to_fix(self, workdir: Path, petstore_text: str) -> None:
        spec = _write(workdir, "openapi.yaml", petstore_text)
        config = _recommended(workdir)
        result = CliRunner().invoke(main, ["fix", str(spec), "--config", str(config)])
        assert result.exit_code == 0, result.output
        assert "No fixes applied" in result.output
        assert spec.read_text() == petstore_text

    def test_interactive_fixes_wait_for_flag(self, workdir: Path) -> None:
        spec = _write(workdir, "openapi.yaml", WITH_INTEGER)
        config = _recommended(workdir, "rules:\n  owasp-integer-limit: error\n")
        result = CliRunner().invoke(main, ["fix", str(spec), "--config", str(config)])
        assert result.exit_code == 0, result.output
        assert "1 fixes need input; re-run with --interactive" in result.output
        assert "1 violations remaining" in result.output

    def test_interactive_answers(self, workdir: Path) -> None:
        spec = _write(workdir, "openapi.yaml", WITH_INTEGER)
        config = _recommended(workdir, "rules:\n  owasp-integer-limit: error\n")
        result = CliRunner().invoke(
            main, ["fix", str(spec), "--config", str(config), "--interactive"], input="1\n10\n"
        )
        assert result.exit_code == 0, result.output
        assert "Minimum value" in result.output
        assert "fixed" in result.output
        assert "owasp-integer-limit: Set minimum and maximum for integer schema" in result.output
        assert "2 fixes applied" in result.output
        assert "0 violations remaining" in result.output
        count = yaml.safe_load(spec.read_text())["components"]["schemas"]["Count"]
        assert (count["minimum"], count["maximum"]) == (1, 10)

    def test_interactive_empty_answer_skips(self, workdir: Path) -> None:
        spec = _write(workdir, "openapi.yaml", WITH_INTEGER)
        config = _recommended(workdir, "rules:\n  owasp-integer-limit: error\n")
        result = CliRunner().invoke(
            main, ["fix", str(spec), "--config", str(config), "-i"], input="\n"
        )
        assert result.exit_code == 0, result.output
        assert "1 fixes applied" in result.output
        assert "minimum" not in spec.read_text()

    def test_invalid_document_exits_two(self, workdir: Path) -> None:
        spec = _write(workdir, "openapi.yaml", "")
        result = CliRunner().invoke(main, ["fix", str(spec)])
        assert result.exit_code == 2


# ---------------------------------------------------------------------------
# rules / global options
# ---------------------------------------------------------------------------


class TestRulesCommand:
    def test_json(self) -> None:
        result = CliRunner().invoke(main, ["rules", "--format", "json"])
        assert result.exit_code == 0, result.output
        rules = {r["id"]: r for r in json.loads(result.output)}
        assert len(rules) == 16
        assert rules["oas3-no-nullable"]["versions"] == ["3.1"]
        assert rules["semantic-unused-component"]["versions"] is None
        assert rules["semantic-unused-component"]["rulesets"] == ["all", "recommended"]
        assert rules["owasp-integer-limit"]["rulesets"] == ["all", "security"]
        assert rules["owasp-integer-limit"]["severity"] == "error"

    def test_table(self) -> None:
        result = CliRunner().invoke(main, ["rules"])
        assert result.exit_code == 0, result.output
        assert "semantic-unused-component" in result.output
        assert "owasp-jwt-best-practices" in result.output

    def test_fix_guidance_in_json(self) -> None:
        result = CliRunner().invoke(main, ["rules", "--format", "json"])
        rules = {r["id"]: r for r in json.loads(result.output)}
        assert rules["oas3-no-nullable"]["how_to_fix"].startswith("Replace `nullable`")
        assert rules["oas3-no-nullable"]["fix_available"] is True
        assert rules["style-operation-success-response"]["fix_available"] is False
        assert rules["owasp-jwt-best-practices"]["link"] == "https://datatracker.ietf.org/doc/html/rfc8725"

    def test_category_filter(self) -> None:
        result = CliRunner().invoke(main, ["rules", "--format", "json", "--category", "security"])
        assert result.exit_code == 0, result.output
        rules = json.loads(result.output)
        assert len(rules) == 7
        assert {r["category"] for r in rules} == {"security"}

    def test_ruleset_filter(self) -> None:
        result = CliRunner().invoke(main, ["rules", "--format", "json", "--ruleset", "recommended"])
        assert result.exit_code == 0, result.output
        assert [r["id"] for r in json.loads(result.output)] == sorted(RECOMMENDED)

    def test_filters_combine(self) -> None:
        result = CliRunner().invoke(
            main, ["rules", "--format", "json", "--ruleset", "recommended", "--category", "style"]
        )
        assert [r["id"] for r in json.loads(result.output)] == [
            "style-oas3-api-servers",
            "style-oas3-host-trailing-slash",
            "style-operation-success-response",
            "style-path-trailing-slash",
        ]

    def test_unknown_ruleset_filter(self) -> None:
        result = CliRunner().invoke(main, ["rules", "--ruleset", "strictest"])
        assert result.exit_code == 2
        assert "unknown ruleset 'strictest'" in result.output

    def test_unknown_category_is_rejected(self) -> None:
        result = CliRunner().invoke(main, ["rules", "--category", "naming"])
        assert result.exit_code == 2


class TestDocsCommand:
    def test_markdown_to_stdout(self) -> None:
        result = CliRunner().invoke(main, ["docs"])
        assert result.exit_code == 0, result.output
        text = result.output
        assert text.startswith("# Lint Rules Reference\n")
        assert "- [security](#security)" in text
        headings = [line for line in text.splitlines() if line.startswith("## ")]
        assert headings == ["## Categories", "## schema", "## security", "## semantic", "## style"]
        assert "### owasp-jwt-best-practices" in text
        assert "[Documentation](https://datatracker.ietf.org/doc/html/rfc8725)" in text
        assert text.count("#### How to fix") == 16

    def test_json_to_file(self, workdir: Path) -> None:
        target = workdir / "rules.json"
        result = CliRunner().invoke(main, ["docs", "--format", "json", "-o", str(target)])
        assert result.exit_code == 0, result.output
        assert f"Wrote rule reference to {target}" in result.output
        data = json.loads(target.read_text())
        assert len(data["rules"]) == 16
        assert data["categories"] == ["schema", "security", "semantic", "style"]
        assert data["rulesets"] == ["all", "recommended", "security"]


class TestGlobalOptions:
    def test_version(self) -> None:
        result = CliRunner().invoke(main, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_help_lists_commands(self) -> None:
        result = CliRunner().invoke(main, ["--help"])
        assert result.exit_code == 0
        for command in ("lint", "fix", "rules", "docs"):
            assert command in result.output
