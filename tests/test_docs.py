"""Tests for speclint.linter.docs: the generated rule reference."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

from speclint.linter.docs import docs_by_category, render_json, render_markdown, rule_doc
from speclint.linter.registry import Registry
from speclint.linter.rule import CATEGORY_SCHEMA, CATEGORY_STYLE, Rule

if TYPE_CHECKING:
    from speclint.document.index import Index
    from speclint.linter.rule import RuleConfig
    from speclint.linter.violation import Violation


class QuietRule(Rule):
    id = "style-quiet"
    category = CATEGORY_STYLE
    summary = "Says nothing."
    description = "Never reports anything."

    def run(self, index: Index, config: RuleConfig) -> list[Violation]:
        return []


class DocumentedRule(QuietRule):
    id = "schema-documented"
    category = CATEGORY_SCHEMA
    versions = ("3.1",)
    how_to_fix = "Do the documented thing."
    link = "https://example.com/rules/schema-documented"
    fix_available = True


def _registry() -> Registry:
    registry = Registry()
    registry.register(QuietRule())
    registry.register(DocumentedRule())
    registry.register_ruleset("tidy", ["style-quiet"])
    return registry


class TestRuleDoc:
    def test_fields(self) -> None:
        registry = _registry()
        doc = rule_doc(DocumentedRule(), registry)
        assert doc.default_severity == "warning"
        assert doc.versions == ("3.1",)
        assert doc.rulesets == ("all",)
        assert doc.to_dict()["versions"] == ["3.1"]

    def test_grouped_by_sorted_category(self) -> None:
        grouped = docs_by_category(_registry())
        assert list(grouped) == ["schema", "style"]
        assert [d.id for d in grouped["style"]] == ["style-quiet"]
        assert grouped["style"][0].rulesets == ("all", "tidy")


class TestRendering:
    def test_markdown_sections(self) -> None:
        text = render_markdown(_registry())
        assert text.splitlines()[:6] == [
            "# Lint Rules Reference",
            "",
            "## Categories",
            "",
            "- [schema](#schema)",
            "- [style](#style)",
        ]
        documented = text[text.index("### schema-documented") : text.index("## style")]
        assert "**Applies to:** 3.1  " in documented
        assert "**Fix available:** yes  " in documented
        assert "#### How to fix\n\nDo the documented thing.\n" in documented
        assert "[Documentation](https://example.com/rules/schema-documented)" in documented
        quiet = text[text.index("### style-quiet") :]
        assert "How to fix" not in quiet
        assert "Fix available" not in quiet
        assert quiet.endswith("---\n")

    def test_json_payload(self) -> None:
        data = json.loads(render_json(_registry()))
        assert [r["id"] for r in data["rules"]] == ["schema-documented", "style-quiet"]
        assert data["categories"] == ["schema", "style"]
        assert data["rulesets"] == ["all", "tidy"]
        assert data["rules"][1]["how_to_fix"] == ""
