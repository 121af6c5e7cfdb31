"""Built-in rule catalog."""

from __future__ import annotations

from speclint.linter.registry import Registry
from speclint.linter.rule import CATEGORY_SECURITY
from speclint.rules.components import ComponentDescriptionRule
from speclint.rules.paths import PathParamsRule, PathTrailingSlashRule
from speclint.rules.responses import (
    ErrorResponses429Rule,
    RateLimitRetryAfterRule,
    SuccessResponseRule,
)
from speclint.rules.schemas import (
    DuplicatedEnumRule,
    IntegerFormatRule,
    IntegerLimitRule,
    NoAdditionalPropertiesRule,
    NoNullableRule,
)
from speclint.rules.security import JWTBestPracticesRule
from speclint.rules.servers import ApiServersRule, HostTrailingSlashRule, SecurityHostsHttpsRule
from speclint.rules.unused_components import UnusedComponentRule

BUILTIN_RULES = (
    UnusedComponentRule,
    PathParamsRule,
    DuplicatedEnumRule,
    PathTrailingSlashRule,
    HostTrailingSlashRule,
    ApiServersRule,
    SuccessResponseRule,
    ComponentDescriptionRule,
    NoNullableRule,
    SecurityHostsHttpsRule,
    ErrorResponses429Rule,
    RateLimitRetryAfterRule,
    JWTBestPracticesRule,
    NoAdditionalPropertiesRule,
    IntegerLimitRule,
    IntegerFormatRule,
)

RECOMMENDED = (
    "semantic-unused-component",
    "semantic-path-params",
    "semantic-duplicated-enum",
    "style-path-trailing-slash",
    "style-oas3-host-trailing-slash",
    "style-oas3-api-servers",
    "style-operation-success-response",
    "oas3-no-nullable",
    "owasp-security-hosts-https-oas3",
)


def default_registry() -> Registry:
    """A fresh registry with every built-in rule and the ``recommended`` / ``security`` rulesets."""
    registry = Registry()
    for rule_cls in BUILTIN_RULES:
        registry.register(rule_cls())
    registry.register_ruleset("recommended", RECOMMENDED)
    registry.register_ruleset(
        "security", [rule.id for rule in registry.all_rules() if rule.category == CATEGORY_SECURITY]
    )
    return registry


__all__ = ["BUILTIN_RULES", "RECOMMENDED", "default_registry"]
