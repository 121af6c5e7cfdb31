"""Rule runner: pick the enabled rules, run them, aggregate violations."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from speclint.document.index import build_index
from speclint.linter.config import ConfigError, LintConfig
from speclint.linter.rule import RuleConfig
from speclint.linter.violation import Severity, Violation, ViolationKind

if TYPE_CHECKING:
    from collections.abc import Iterable

    from speclint.document.index import Index
    from speclint.document.model import Document
    from speclint.linter.registry import Registry
    from speclint.linter.rule import Rule

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass
class LintResult:
    """Result of a lint run."""

    violations: list[Violation] = field(default_factory=list)
    rules_evaluated: int = 0
    elapsed_ms: float = 0.0

    @property
    def error_count(self) -> int:
        return sum(1 for v in self.violations if v.severity is Severity.ERROR)

    @property
    def has_errors(self) -> bool:
        return self.error_count > 0

    @property
    def fixable_count(self) -> int:
        return sum(1 for v in self.violations if v.fix is not None)


# ---------------------------------------------------------------------------
# Rule selection
# ---------------------------------------------------------------------------


def enabled_rules(registry: Registry, config: LintConfig) -> list[Rule]:
    """Resolve rulesets, then category settings, then rule entries."""
    selected: set[str] = set()
    for name in config.extends:
        if not registry.has_ruleset(name):
            known = ", ".join(registry.ruleset_names())
            msg = f"unknown ruleset {name!r} in 'extends' (known: {known})"
            raise ConfigError(msg)
        selected.update(registry.ruleset(name))

    unknown = [rule_id for rule_id in config.rules if rule_id not in registry]
    if unknown:
        msg = f"unknown rule(s) in 'rules': {', '.join(unknown)}"
        raise ConfigError(msg)

    rules: list[Rule] = []
    for rule in registry.all_rules():
        enabled = rule.id in selected
        category = config.categories.get(rule.category)
        if category is not None and category.enabled is not None:
            enabled = category.enabled
        setting = config.rules.get(rule.id)
        if setting is not None:
            enabled = not setting.disabled
        if enabled:
            rules.append(rule)
    return rules


def severity_override(rule: Rule, config: LintConfig) -> Severity | None:
    """Configured severity for *rule*, or ``None`` when it keeps its default."""
    setting = config.rules.get(rule.id)
    if setting is not None and setting.severity is not None:
        return setting.severity
    category = config.categories.get(rule.category)
    if category is not None and category.severity is not None:
        return category.severity
    return None


def rule_config(rule: Rule, config: LintConfig) -> RuleConfig:
    return RuleConfig(
        severity=severity_override(rule, config) or rule.default_severity,
        resolve=config.resolve,
    )


# ---------------------------------------------------------------------------
# Execution
# ---------------------------------------------------------------------------


def run(rules: Iterable[Rule], index: Index, config: LintConfig | None = None) -> list[Violation]:
    """Run *rules* against *index* and return violations in document order.

    A rule that raises does not stop the others: the failure is logged and
    reported as an error-severity ``rule-failure`` violation.
    """
    config = config or LintConfig()
    version = index.version
    violations: list[Violation] = []

    for rule in rules:
        if not rule.applies_to(version):
            logger.debug("Skipping %s: not applicable to version %r", rule.id, version)
            continue
        try:
            found = rule.run(index, rule_config(rule, config))
        except Exception as exc:
            logger.exception("Rule %s failed", rule.id)
            violations.append(
                Violation(
                    rule_id=rule.id,
                    severity=Severity.ERROR,
                    message=f"rule execution failed: {exc}",
                    node=index.document.root,
                    kind=ViolationKind.RULE_FAILURE,
                )
            )
            continue

        override = severity_override(rule, config)
        for violation in found:
            if (
                override is not None
                and violation.kind is ViolationKind.POLICY
                and violation.severity is not override
            ):
                violation = Violation(
                    rule_id=violation.rule_id,
                    severity=override,
                    message=violation.message,
                    node=violation.node,
                    fix=violation.fix,
                    kind=violation.kind,
                )
            violations.append(violation)

    violations.sort(key=Violation.sort_key)
    return violations


def lint(
    document: Document,
    registry: Registry,
    config: LintConfig | None = None,
    *,
    index: Index | None = None,
) -> LintResult:
    """Index *document* (unless *index* is given) and run every enabled rule.

    Raises
    ------
    ConfigError
        When the config names an unknown ruleset or rule.
    """
    start = time.monotonic()
    config = config or LintConfig()
    rules = enabled_rules(registry, config)
    if index is None:
        index = build_index(document, config.resolve)
    violations = run(rules, index, config)
    evaluated = sum(1 for rule in rules if rule.applies_to(index.version))
    elapsed = (time.monotonic() - start) * 1000
    return LintResult(violations=violations, rules_evaluated=evaluated, elapsed_ms=elapsed)
