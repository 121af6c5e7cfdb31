"""Rules over security schemes."""

from __future__ import annotations

from typing import TYPE_CHECKING

import yaml

from speclint.document import yml
from speclint.linter.rule import CATEGORY_SECURITY, Rule
from speclint.linter.violation import Severity
from speclint.rules.fixes import AppendRFC8725Fix

if TYPE_CHECKING:
    from speclint.document.index import Index
    from speclint.linter.rule import RuleConfig
    from speclint.linter.violation import Violation


class JWTBestPracticesRule(Rule):
    id = "owasp-jwt-best-practices"
    category = CATEGORY_SECURITY
    default_severity = Severity.ERROR
    summary = "OAuth2/JWT schemes must mention RFC8725 in their description."
    description = (
        "Security schemes using OAuth2 or JWT bearer tokens must declare support for "
        "RFC8725 (JWT Best Current Practices) in their description."
    )
    how_to_fix = "Update OAuth2/JWT security scheme descriptions to mention RFC8725 compliance."
    link = "https://datatracker.ietf.org/doc/html/rfc8725"
    fix_available = True

    def run(self, index: Index, config: RuleConfig) -> list[Violation]:
        violations: list[Violation] = []
        for component in index.components_of("securitySchemes"):
            scheme = component.node
            if not isinstance(scheme, yaml.MappingNode):
                continue
            is_oauth2 = yml.get_scalar(scheme, "type") == "oauth2"
            is_jwt = (yml.get_scalar(scheme, "bearerFormat") or "").lower() == "jwt"
            if not (is_oauth2 or is_jwt):
                continue
            if "RFC8725" in (yml.get_scalar(scheme, "description") or ""):
                continue
            anchor = yml.get_value(scheme, "description") or scheme
            violations.append(
                self.violation(
                    config,
                    anchor,
                    f"security scheme `{component.name}` must explicitly declare support for "
                    "RFC8725 in the description",
                    AppendRFC8725Fix(scheme),
                )
            )
        return violations
