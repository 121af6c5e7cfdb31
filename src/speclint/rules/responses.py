"""Rules over operation responses."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

import yaml

from speclint.document import yml
from speclint.document.index import ResolutionError
from speclint.linter.rule import CATEGORY_SECURITY, CATEGORY_STYLE, Rule
from speclint.linter.violation import Severity
from speclint.rules.fixes import AddErrorResponseFix, AddRetryAfterHeaderFix, has_header

if TYPE_CHECKING:
    from speclint.document.index import Index, Operation
    from speclint.linter.rule import RuleConfig
    from speclint.linter.violation import Violation

_SUCCESS_CODE_RE = re.compile(r"^[23](\d\d|XX)$")


def _operation_name(operation: Operation) -> str:
    return yml.get_scalar(operation.node, "operationId") or "undefined operation (no operationId)"


def _resolved_response(index: Index, operation: Operation, status: str) -> yaml.Node | None:
    """The response object for *status*, following ``$ref``; ``None`` if absent or dangling."""
    response = yml.get_value(yml.get_value(operation.node, "responses"), status)
    if response is None:
        return None
    try:
        return index.resolve(response)
    except ResolutionError:
        return None


class SuccessResponseRule(Rule):
    id = "style-operation-success-response"
    category = CATEGORY_STYLE
    default_severity = Severity.WARNING
    summary = "Operations should define at least one 2xx or 3xx response."
    description = (
        "Success responses tell API consumers what data they receive when a request "
        "completes. Every operation should declare at least one."
    )
    how_to_fix = "Add at least one 2xx or 3xx response to every operation."

    def run(self, index: Index, config: RuleConfig) -> list[Violation]:
        is_oas3 = index.version.startswith("3.")
        violations: list[Violation] = []
        for operation in index.operations:
            responses_key, responses = yml.get_map_element(operation.node, "responses")
            anchor = responses_key if responses_key is not None else operation.key_node
            name = _operation_name(operation)

            seen = False
            integer_codes: list[str] = []
            for code, key_node, _response in yml.iter_map(responses):
                if _SUCCESS_CODE_RE.match(code.upper()):
                    seen = True
                if is_oas3 and key_node.tag == yml.INT_TAG:
                    integer_codes.append(code)
                    seen = True

            if not seen:
                violations.append(
                    self.violation(
                        config,
                        anchor,
                        f"operation `{name}` must define at least a single `2xx` or `3xx` response",
                    )
                )
            for code in integer_codes:
                violations.append(
                    self.violation(
                        config,
                        anchor,
                        f"operation `{name}` uses an `integer` instead of a `string` for response code `{code}`",
                    )
                )
        return violations


class ErrorResponses429Rule(Rule):
    id = "owasp-define-error-responses-429"
    category = CATEGORY_SECURITY
    default_severity = Severity.WARNING
    summary = "Operations should define a 429 Too Many Requests response with a schema."
    description = (
        "Rate limit responses tell clients they exceeded a usage threshold and need to "
        "slow down. Add a 429 response with a response body schema."
    )
    how_to_fix = "Add a 429 response with a response body schema to operations that may be rate limited."
    link = "https://owasp.org/API-Security/editions/2023/en/0xa4-unrestricted-resource-consumption/"
    fix_available = True

    def run(self, index: Index, config: RuleConfig) -> list[Violation]:
        violations: list[Violation] = []
        for operation in index.operations:
            label = f"{operation.method} {operation.path}"
            responses = yml.get_value(operation.node, "responses")
            if not isinstance(responses, yaml.MappingNode):
                violations.append(
                    self.violation(
                        config, operation.node, f"operation {label} is missing 429 Too Many Requests response"
                    )
                )
                continue
            if not yml.has_key(responses, "429"):
                violations.append(
                    self.violation(
                        config,
                        responses,
                        f"operation {label} is missing 429 Too Many Requests response",
                        AddErrorResponseFix(responses, "429", "Too Many Requests"),
                    )
                )
                continue
            response = _resolved_response(index, operation, "429")
            if not isinstance(response, yaml.MappingNode):
                continue
            content = yml.get_value(response, "content")
            if isinstance(content, yaml.MappingNode) and content.value:
                continue
            anchor = yml.get_value(response, "description") or response
            violations.append(
                self.violation(config, anchor, f"operation {label} has 429 response but missing content schema")
            )
        return violations


class RateLimitRetryAfterRule(Rule):
    id = "owasp-rate-limit-retry-after"
    category = CATEGORY_SECURITY
    default_severity = Severity.ERROR
    summary = "429 responses must declare a Retry-After header."
    description = (
        "Clients that hit a rate limit need to know when to retry. Declare a "
        "`Retry-After` header on every 429 response."
    )
    how_to_fix = "Add a `Retry-After` header to every 429 response."
    link = "https://owasp.org/API-Security/editions/2023/en/0xa4-unrestricted-resource-consumption/"
    fix_available = True

    def run(self, index: Index, config: RuleConfig) -> list[Violation]:
        violations: list[Violation] = []
        for operation in index.operations:
            response = _resolved_response(index, operation, "429")
            if not isinstance(response, yaml.MappingNode):
                continue
            if has_header(yml.get_value(response, "headers"), "Retry-After"):
                continue
            violations.append(
                self.violation(
                    config,
                    response,
                    f"operation {operation.method} {operation.path} 429 response is missing "
                    "Retry-After header",
                    AddRetryAfterHeaderFix(response),
                )
            )
        return violations
