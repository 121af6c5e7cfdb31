"""Rules over path templates."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

import yaml

from speclint.document import yml
from speclint.document.index import ResolutionError
from speclint.linter.fix import ScalarTransformFix
from speclint.linter.rule import CATEGORY_SEMANTIC, CATEGORY_STYLE, Rule
from speclint.linter.violation import Severity, ViolationKind
from speclint.rules.fixes import AddPathParameterFix

if TYPE_CHECKING:
    from speclint.document.index import Index
    from speclint.linter.rule import RuleConfig
    from speclint.linter.violation import Violation

_PATH_PARAM_RE = re.compile(r"\{([^{}/]+)\}")


def strip_trailing_slashes(value: str) -> str:
    """``/pets///`` becomes ``/pets``; the root path ``/`` is left alone."""
    return value.rstrip("/") or "/"


def extract_path_params(path: str) -> list[str]:
    return _PATH_PARAM_RE.findall(path)


def infer_path_param_type(name: str) -> tuple[str, str]:
    """Guess ``(type, format)`` for a template parameter from its name."""
    lower = name.lower()
    if "uuid" in lower or "guid" in lower:
        return "string", "uuid"
    if lower.endswith("id"):
        return "integer", ""
    return "string", ""


class PathTrailingSlashRule(Rule):
    id = "style-path-trailing-slash"
    category = CATEGORY_STYLE
    default_severity = Severity.WARNING
    summary = "Paths should not end with a trailing slash."
    description = (
        "A trailing slash makes `/pets/` and `/pets` two different routes for many "
        "servers and code generators. Declare paths without it."
    )
    how_to_fix = "Remove the trailing slash from the path key."
    fix_available = True

    def run(self, index: Index, config: RuleConfig) -> list[Violation]:
        violations: list[Violation] = []
        for path_item in index.path_items:
            path = path_item.path
            if path == "/" or not path.endswith("/"):
                continue
            if not isinstance(path_item.key_node, yaml.ScalarNode):
                continue
            fix = ScalarTransformFix(
                path_item.key_node, strip_trailing_slashes, "Remove trailing slash from path"
            )
            violations.append(
                self.violation(config, path_item.key_node, f"path `{path}` must not end with a slash", fix)
            )
        return violations


class PathParamsRule(Rule):
    id = "semantic-path-params"
    category = CATEGORY_SEMANTIC
    default_severity = Severity.ERROR
    summary = "Path template parameters must match declared path parameters."
    description = (
        "Every `{param}` in a path template must be declared as an `in: path` parameter "
        "on the operation or its path item, and every declared path parameter must "
        "appear in the template."
    )
    how_to_fix = (
        "Ensure every `{param}` in the path has an `in: path` parameter and remove any "
        "unused path parameters."
    )
    fix_available = True

    def run(self, index: Index, config: RuleConfig) -> list[Violation]:
        violations: list[Violation] = []
        for path_item in index.path_items:
            if not isinstance(path_item.node, yaml.MappingNode) or yml.has_key(path_item.node, "$ref"):
                continue
            template = extract_path_params(path_item.path)
            shared = self._declared_path_params(index, config, path_item.node, violations)

            for operation in index.operations:
                if operation.path_item is not path_item:
                    continue
                declared = {**shared, **self._declared_path_params(index, config, operation.node, violations)}

                for name in template:
                    if name in declared:
                        continue
                    schema_type, schema_format = infer_path_param_type(name)
                    violations.append(
                        self.violation(
                            config,
                            operation.node,
                            f"path parameter `{{{name}}}` is not defined in operation parameters",
                            AddPathParameterFix(operation.node, name, schema_type, schema_format),
                        )
                    )
                for name in declared:
                    if name not in template:
                        violations.append(
                            self.violation(
                                config,
                                operation.node,
                                f"parameter `{name}` is declared as path parameter but not used "
                                f"in path template `{path_item.path}`",
                            )
                        )
        return violations

    def _declared_path_params(
        self,
        index: Index,
        config: RuleConfig,
        holder: yaml.Node,
        violations: list[Violation],
    ) -> dict[str, bool]:
        """Names of ``in: path`` parameters declared on *holder*.

        Parameters whose ``$ref`` cannot be resolved are reported and skipped.
        """
        params: dict[str, bool] = {}
        parameters = yml.get_value(holder, "parameters")
        if not isinstance(parameters, yaml.SequenceNode):
            return params
        for node in parameters.value:
            try:
                param = index.resolve(node)
            except ResolutionError as exc:
                ref = yml.get_scalar(node, "$ref")
                violations.append(
                    self.violation(
                        config,
                        node,
                        f"failed to resolve parameter reference `{ref}`: {exc}",
                        kind=ViolationKind.RESOLUTION,
                        severity=Severity.ERROR,
                    )
                )
                continue
            if yml.get_scalar(param, "in") == "path":
                name = yml.get_scalar(param, "name")
                if name:
                    params[name] = True
        return params
