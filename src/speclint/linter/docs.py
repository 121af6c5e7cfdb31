"""Rule reference documentation generated from a registry.

Rules are grouped by category, categories and rules in alphabetical order, so
the output is stable between runs and can be committed next to the code.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from speclint.linter.registry import Registry
    from speclint.linter.rule import Rule


@dataclass(frozen=True)
class RuleDoc:
    """Everything the reference says about one rule."""

    id: str
    category: str
    default_severity: str
    summary: str
    description: str
    how_to_fix: str
    link: str
    versions: tuple[str, ...]
    fix_available: bool
    rulesets: tuple[str, ...]

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "category": self.category,
            "default_severity": self.default_severity,
            "summary": self.summary,
            "description": self.description,
            "how_to_fix": self.how_to_fix,
            "link": self.link,
            "versions": list(self.versions),
            "fix_available": self.fix_available,
            "rulesets": list(self.rulesets),
        }


def rule_doc(rule: Rule, registry: Registry) -> RuleDoc:
    return RuleDoc(
        id=rule.id,
        category=rule.category,
        default_severity=rule.default_severity.value,
        summary=rule.summary,
        description=rule.description,
        how_to_fix=rule.how_to_fix,
        link=rule.link,
        versions=tuple(rule.versions or ()),
        fix_available=rule.fix_available,
        rulesets=tuple(registry.rulesets_containing(rule.id)),
    )


def docs_by_category(registry: Registry) -> dict[str, list[RuleDoc]]:
    """Rule docs keyed by category; only categories with rules appear."""
    grouped: dict[str, list[RuleDoc]] = {}
    for rule in sorted(registry.all_rules(), key=lambda r: (r.category, r.id)):
        grouped.setdefault(rule.category, []).append(rule_doc(rule, registry))
    return grouped


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


def render_json(registry: Registry) -> str:
    grouped = docs_by_category(registry)
    payload = {
        "rules": [doc.to_dict() for docs in grouped.values() for doc in docs],
        "categories": list(grouped),
        "rulesets": registry.ruleset_names(),
    }
    return json.dumps(payload, indent=2) + "\n"


def render_markdown(registry: Registry) -> str:
    """Render the reference as one Markdown page with a category index."""
    grouped = docs_by_category(registry)
    lines = ["# Lint Rules Reference", "", "## Categories", ""]
    lines.extend(f"- [{category}](#{category})" for category in grouped)
    lines.append("")
    for category, docs in grouped.items():
        lines.extend([f"## {category}", ""])
        for doc in docs:
            lines.extend(_rule_markdown(doc))
    return "\n".join(lines)


def _rule_markdown(doc: RuleDoc) -> list[str]:
    lines = [
        f"### {doc.id}",
        "",
        f"**Severity:** {doc.default_severity}  ",
        f"**Category:** {doc.category}  ",
    ]
    if doc.summary:
        lines.append(f"**Summary:** {doc.summary}  ")
    if doc.versions:
        lines.append(f"**Applies to:** {', '.join(doc.versions)}  ")
    lines.append(f"**Rulesets:** {', '.join(doc.rulesets)}  ")
    if doc.fix_available:
        lines.append("**Fix available:** yes  ")
    lines.extend(["", doc.description, ""])
    if doc.how_to_fix:
        lines.extend(["#### How to fix", "", doc.how_to_fix, ""])
    if doc.link:
        lines.extend([f"[Documentation]({doc.link})", ""])
    lines.extend(["---", ""])
    return lines
