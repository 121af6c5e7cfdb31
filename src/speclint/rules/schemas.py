"""Rules over schema objects (inline and component schemas alike)."""

from __future__ import annotations

from typing import TYPE_CHECKING

import yaml

from speclint.document import yml
from speclint.linter.rule import CATEGORY_SCHEMA, CATEGORY_SECURITY, CATEGORY_SEMANTIC, Rule
from speclint.linter.violation import Severity
from speclint.rules.fixes import (
    RemoveDuplicateEnumFix,
    RemoveNullableFix,
    SetAdditionalPropertiesFalseFix,
    SetIntegerFormatFix,
    SetIntegerLimitsFix,
)

if TYPE_CHECKING:
    from speclint.document.index import Index
    from speclint.linter.rule import RuleConfig
    from speclint.linter.violation import Violation

_TAG_PREFIXES = {
    yml.INT_TAG: "int",
    yml.BOOL_TAG: "bool",
    "tag:yaml.org,2002:float": "float",
}


def schema_types(schema: yaml.Node) -> list[str]:
    """``type`` as a list, whether declared as a scalar or a sequence."""
    type_node = yml.get_value(schema, "type")
    if isinstance(type_node, yaml.ScalarNode):
        return [str(type_node.value)]
    if isinstance(type_node, yaml.SequenceNode):
        return [str(item.value) for item in type_node.value if isinstance(item, yaml.ScalarNode)]
    return []


def _enum_key(node: yaml.ScalarNode) -> str:
    if node.tag == yml.NULL_TAG:
        return "null"
    prefix = _TAG_PREFIXES.get(node.tag, "string")
    return f"{prefix}:{node.value}"


def _enum_display(node: yaml.ScalarNode) -> str:
    if node.tag == yml.NULL_TAG:
        return "null"
    prefix = _TAG_PREFIXES.get(node.tag)
    return f"{prefix}:{node.value}" if prefix else str(node.value)


class NoNullableRule(Rule):
    id = "oas3-no-nullable"
    category = CATEGORY_SCHEMA
    default_severity = Severity.WARNING
    versions = ("3.1",)
    summary = "OpenAPI 3.1 must not use the `nullable` keyword."
    description = (
        "OpenAPI 3.1 aligns with JSON Schema 2020-12, which has no `nullable`. Use a "
        "type array that includes `null` instead (e.g. `type: [string, 'null']`)."
    )
    how_to_fix = "Replace `nullable` with a type array that includes `null` (e.g. `type: [string, 'null']`)."
    link = "https://spec.openapis.org/oas/v3.1.0#schema-object"
    fix_available = True

    def run(self, index: Index, config: RuleConfig) -> list[Violation]:
        return [
            self.violation(
                config,
                schema.node,
                'the `nullable` keyword is not supported in OpenAPI 3.1 - use `type: [actualType, "null"]` instead',
                RemoveNullableFix(schema.node),
            )
            for schema in index.schemas
            if yml.has_key(schema.node, "nullable")
        ]


class DuplicatedEnumRule(Rule):
    id = "semantic-duplicated-enum"
    category = CATEGORY_SEMANTIC
    default_severity = Severity.WARNING
    summary = "Enum arrays should not contain duplicate values."
    description = (
        "Duplicate enum values are redundant and can confuse client code generation "
        "and validation."
    )
    how_to_fix = "Remove or consolidate duplicate entries in enum arrays."
    fix_available = True

    def run(self, index: Index, config: RuleConfig) -> list[Violation]:
        violations: list[Violation] = []
        for schema in index.schemas:
            enum = yml.get_value(schema.node, "enum")
            if not isinstance(enum, yaml.SequenceNode):
                continue
            groups: dict[str, list[yaml.ScalarNode]] = {}
            for item in enum.value:
                if isinstance(item, yaml.ScalarNode):
                    groups.setdefault(_enum_key(item), []).append(item)
            for items in groups.values():
                if len(items) < 2:
                    continue
                violations.append(
                    self.violation(
                        config,
                        items[1],
                        f"enum contains a duplicate: `{_enum_display(items[1])}`",
                        RemoveDuplicateEnumFix(enum, list(items[1:])),
                    )
                )
        return violations


class NoAdditionalPropertiesRule(Rule):
    id = "owasp-no-additional-properties"
    category = CATEGORY_SECURITY
    default_severity = Severity.WARNING
    summary = "Object schemas should not allow additional properties."
    description = (
        "Allowing unexpected properties can lead to mass assignment vulnerabilities. "
        "Set `additionalProperties` to false or omit it."
    )
    how_to_fix = "Set `additionalProperties` to false or remove it from object schemas."
    link = "https://owasp.org/API-Security/editions/2023/en/0xa3-broken-object-property-level-authorization/"
    fix_available = True

    def run(self, index: Index, config: RuleConfig) -> list[Violation]:
        violations: list[Violation] = []
        for schema in index.schemas:
            if "object" not in schema_types(schema.node):
                continue
            additional = yml.get_value(schema.node, "additionalProperties")
            if additional is None or yml.is_false(additional):
                continue
            if yml.is_true(additional):
                fix = SetAdditionalPropertiesFalseFix(schema.node)
            elif isinstance(additional, yaml.MappingNode):
                fix = None
            else:
                continue
            violations.append(
                self.violation(
                    config,
                    schema.node,
                    "additionalProperties should not be set to true or define a schema - "
                    "set to false or omit it",
                    fix,
                )
            )
        return violations


class IntegerLimitRule(Rule):
    id = "owasp-integer-limit"
    category = CATEGORY_SECURITY
    default_severity = Severity.ERROR
    summary = "Integer schemas must declare minimum and maximum."
    description = (
        "Unbounded integers invite overflow and resource exhaustion. Declare `minimum` "
        "(or `exclusiveMinimum`) and `maximum` (or `exclusiveMaximum`)."
    )
    how_to_fix = "Add `minimum` and `maximum` (or their exclusive forms) to integer schemas."
    link = "https://owasp.org/API-Security/editions/2023/en/0xa4-unrestricted-resource-consumption/"
    fix_available = True

    def run(self, index: Index, config: RuleConfig) -> list[Violation]:
        violations: list[Violation] = []
        for schema in index.schemas:
            if "integer" not in schema_types(schema.node):
                continue
            node = schema.node
            has_min = yml.has_key(node, "minimum") or yml.has_key(node, "exclusiveMinimum")
            has_max = yml.has_key(node, "maximum") or yml.has_key(node, "exclusiveMaximum")
            if has_min and has_max:
                continue
            violations.append(
                self.violation(
                    config,
                    node,
                    "schema of type `integer` must specify `minimum` and `maximum`",
                    SetIntegerLimitsFix(node),
                )
            )
        return violations


class IntegerFormatRule(Rule):
    id = "owasp-integer-format"
    category = CATEGORY_SECURITY
    default_severity = Severity.ERROR
    summary = "Integer schemas must declare an int32 or int64 format."
    description = (
        "Without a format the integer width is undefined, so clients and servers may "
        "disagree about the valid range."
    )
    how_to_fix = "Set `format` to `int32` or `int64` on integer schemas."
    link = "https://owasp.org/API-Security/editions/2023/en/0xa4-unrestricted-resource-consumption/"
    fix_available = True

    def run(self, index: Index, config: RuleConfig) -> list[Violation]:
        violations: list[Violation] = []
        for schema in index.schemas:
            if "integer" not in schema_types(schema.node):
                continue
            if yml.get_scalar(schema.node, "format") in ("int32", "int64"):
                continue
            violations.append(
                self.violation(
                    config,
                    schema.node,
                    "schema of type `integer` must specify `format` as `int32` or `int64`",
                    SetIntegerFormatFix(schema.node),
                )
            )
        return violations
