"""Fix orchestration: partition, apply, and re-validate."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Protocol

from speclint.document.index import build_index
from speclint.document.model import Document
from speclint.linter.config import LintConfig
from speclint.linter.fix import FixError, FixUsageError
from speclint.linter.runner import enabled_rules, run
from speclint.linter.violation import Violation

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from speclint.linter.fix import Fix
    from speclint.linter.registry import Registry

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Partitioning
# ---------------------------------------------------------------------------


@dataclass
class FixPartition:
    automatic: list[Violation] = field(default_factory=list)
    interactive: list[Violation] = field(default_factory=list)
    unfixable: list[Violation] = field(default_factory=list)


def partition_violations(violations: Iterable[Violation]) -> FixPartition:
    """Split violations by whether they carry a fix and whether it needs input."""
    partition = FixPartition()
    for violation in violations:
        if violation.fix is None:
            partition.unfixable.append(violation)
        elif violation.fix.interactive:
            partition.interactive.append(violation)
        else:
            partition.automatic.append(violation)
    return partition


def apply_fix(fix: Fix, document: Document) -> None:
    """Dispatch to the layer the fix edits."""
    if fix.mutates_node:
        fix.apply_node(document.root)
    else:
        fix.apply(document)


def apply_interactive_fix(
    violation: Violation, answers: Sequence[str], document: Document
) -> tuple[str, str]:
    """Feed *answers* to the violation's fix and apply it.

    Returns the ``(before, after)`` description of the change.  Raises
    :class:`FixUsageError` when the violation has no fix or the answers are
    rejected.
    """
    fix = violation.fix
    if fix is None:
        msg = f"{violation.rule_id} violation at {violation.line}:{violation.column} has no fix"
        raise FixUsageError(msg)
    fix.set_input(answers)
    before, after = fix.describe_change()
    apply_fix(fix, document)
    return before, after


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


class FixMode(str, Enum):
    NONE = "none"
    AUTO = "auto"
    INTERACTIVE = "interactive"


class SkipReason(str, Enum):
    INTERACTIVE = "interactive"
    CONFLICT = "conflict"
    USER = "user"


class SkipFix(Exception):
    """Raised by a prompter to leave the current fix unapplied."""


class Prompter(Protocol):
    def ask(self, violation: Violation, fix: Fix) -> list[str]:
        """Return one answer per ``fix.prompts()``; raise :class:`SkipFix` to skip."""
        ...


@dataclass(frozen=True)
class FixOptions:
    mode: FixMode = FixMode.AUTO
    dry_run: bool = False


@dataclass(frozen=True)
class AppliedFix:
    violation: Violation
    before: str
    after: str


@dataclass(frozen=True)
class SkippedFix:
    violation: Violation
    reason: SkipReason


@dataclass(frozen=True)
class FailedFix:
    violation: Violation
    error: str


@dataclass
class FixResult:
    applied: list[AppliedFix] = field(default_factory=list)
    skipped: list[SkippedFix] = field(default_factory=list)
    failed: list[FailedFix] = field(default_factory=list)
    dry_run: bool = False

    @property
    def changed(self) -> bool:
        return bool(self.applied) and not self.dry_run


class FixEngine:
    """Apply the fixes carried by a batch of violations.

    Fixes run in document order.  A second fix from the same rule anchored
    at the same position is skipped as a conflict.  Interactive fixes are
    only applied in ``interactive`` mode with a prompter.
    """

    def __init__(self, options: FixOptions | None = None, prompter: Prompter | None = None) -> None:
        self.options = options or FixOptions()
        self.prompter = prompter

    def process(self, document: Document, violations: Iterable[Violation]) -> FixResult:
        result = FixResult(dry_run=self.options.dry_run)
        if self.options.mode is FixMode.NONE:
            return result

        claimed: set[tuple[int, int, str]] = set()
        fixable = sorted((v for v in violations if v.fix is not None), key=Violation.sort_key)
        for violation in fixable:
            fix = violation.fix
            if fix is None:
                continue
            # Synthesized nodes have no position to conflict on.
            key = violation.sort_key() if violation.line >= 0 else None
            if key is not None and key in claimed:
                result.skipped.append(SkippedFix(violation, SkipReason.CONFLICT))
                continue

            if fix.interactive:
                if self.options.mode is not FixMode.INTERACTIVE or self.prompter is None:
                    result.skipped.append(SkippedFix(violation, SkipReason.INTERACTIVE))
                    continue
                try:
                    answers = self.prompter.ask(violation, fix)
                except SkipFix:
                    result.skipped.append(SkippedFix(violation, SkipReason.USER))
                    continue
                try:
                    fix.set_input(answers)
                except FixUsageError as exc:
                    result.failed.append(FailedFix(violation, str(exc)))
                    continue
                if fix.declined:
                    result.skipped.append(SkippedFix(violation, SkipReason.USER))
                    continue

            if key is not None:
                claimed.add(key)
            before, after = fix.describe_change()
            if not self.options.dry_run:
                try:
                    apply_fix(fix, document)
                except FixError as exc:
                    logger.warning("Fix for %s failed: %s", violation.rule_id, exc)
                    result.failed.append(FailedFix(violation, str(exc)))
                    continue
            result.applied.append(AppliedFix(violation, before, after))

        logger.debug(
            "Fixes: %d applied, %d skipped, %d failed",
            len(result.applied),
            len(result.skipped),
            len(result.failed),
        )
        return result


def apply_automatic_fixes(document: Document, violations: Iterable[Violation]) -> FixResult:
    """Apply every automatic fix; interactive ones are reported as skipped."""
    return FixEngine(FixOptions(mode=FixMode.AUTO)).process(document, violations)


def revalidate(
    document: Document, registry: Registry, config: LintConfig | None = None
) -> tuple[Document, list[Violation]]:
    """Re-serialize, re-parse, re-index and re-run after fixes were applied."""
    config = config or LintConfig()
    fresh = Document.from_text(document.dump(), location=document.location)
    index = build_index(fresh, config.resolve)
    return fresh, run(enabled_rules(registry, config), index, config)
