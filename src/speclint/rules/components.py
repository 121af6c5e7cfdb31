"""Documentation rules over reusable components."""

from __future__ import annotations

from typing import TYPE_CHECKING

import yaml

from speclint.document import yml
from speclint.linter.rule import CATEGORY_STYLE, Rule
from speclint.linter.violation import Severity
from speclint.rules.fixes import AddDescriptionFix

if TYPE_CHECKING:
    from speclint.document.index import Index
    from speclint.linter.rule import RuleConfig
    from speclint.linter.violation import Violation

# Components whose object has a ``description`` field.
DESCRIBED_KINDS: tuple[str, ...] = (
    "schemas",
    "parameters",
    "requestBodies",
    "responses",
    "examples",
    "headers",
    "links",
    "securitySchemes",
)

_LABELS = {
    "schemas": "schema",
    "parameters": "parameter",
    "requestBodies": "request body",
    "responses": "response",
    "examples": "example",
    "headers": "header",
    "links": "link",
    "securitySchemes": "security scheme",
}


class ComponentDescriptionRule(Rule):
    id = "style-component-description"
    category = CATEGORY_STYLE
    default_severity = Severity.HINT
    summary = "Reusable components should include descriptions."
    description = (
        "Descriptions explain what a shared definition is for and how to use it. "
        "Components that are references to other components are not checked."
    )
    how_to_fix = (
        "Add a description to each reusable component (schemas, parameters, responses, "
        "requestBodies, headers, examples, links, callbacks, securitySchemes)."
    )
    fix_available = True

    def run(self, index: Index, config: RuleConfig) -> list[Violation]:
        violations: list[Violation] = []
        for component in index.components:
            if component.kind not in DESCRIBED_KINDS:
                continue
            node = component.node
            if not isinstance(node, yaml.MappingNode) or yml.has_key(node, "$ref"):
                continue
            if (yml.get_scalar(node, "description") or "").strip():
                continue
            label = f"{_LABELS[component.kind]} '{component.name}'"
            violations.append(
                self.violation(
                    config,
                    component.key_node,
                    f"`{component.kind}` component `{component.name}` is missing a description",
                    AddDescriptionFix(node, label),
                )
            )
        return violations
