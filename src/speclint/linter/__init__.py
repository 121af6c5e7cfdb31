"""Linter core: rule contract, fixes, runner, fix orchestration and formatters."""

from speclint.linter.config import (
    CategorySetting,
    ConfigError,
    LintConfig,
    RuleSetting,
    find_config,
    load_config,
    parse_config,
)
from speclint.linter.fix import (
    Fix,
    FixError,
    FixState,
    FixUsageError,
    Prompt,
    PromptKind,
    ScalarTransformFix,
)
from speclint.linter.fixer import (
    AppliedFix,
    FailedFix,
    FixEngine,
    FixMode,
    FixOptions,
    FixPartition,
    FixResult,
    Prompter,
    SkippedFix,
    SkipFix,
    SkipReason,
    apply_automatic_fixes,
    apply_fix,
    apply_interactive_fix,
    partition_violations,
    revalidate,
)
from speclint.linter.format import format_json, format_text
from speclint.linter.registry import Registry
from speclint.linter.rule import Rule, RuleConfig
from speclint.linter.runner import LintResult, enabled_rules, lint, rule_config, run
from speclint.linter.violation import Severity, Violation, ViolationKind

__all__ = [
    "AppliedFix",
    "CategorySetting",
    "ConfigError",
    "FailedFix",
    "Fix",
    "FixEngine",
    "FixError",
    "FixMode",
    "FixOptions",
    "FixPartition",
    "FixResult",
    "FixState",
    "FixUsageError",
    "LintConfig",
    "LintResult",
    "Prompt",
    "PromptKind",
    "Prompter",
    "Registry",
    "Rule",
    "RuleConfig",
    "RuleSetting",
    "ScalarTransformFix",
    "Severity",
    "SkipFix",
    "SkipReason",
    "SkippedFix",
    "Violation",
    "ViolationKind",
    "apply_automatic_fixes",
    "apply_fix",
    "apply_interactive_fix",
    "enabled_rules",
    "find_config",
    "format_json",
    "format_text",
    "lint",
    "load_config",
    "parse_config",
    "partition_violations",
    "revalidate",
    "rule_config",
    "run",
]
