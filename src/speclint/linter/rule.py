"""The Rule contract and per-rule configuration."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, ClassVar

from speclint.document.index import ResolveOptions
from speclint.linter.violation import Severity, Violation, ViolationKind

if TYPE_CHECKING:
    import yaml

    from speclint.document.index import Index
    from speclint.linter.fix import Fix

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

CATEGORY_SEMANTIC = "semantic"
CATEGORY_STYLE = "style"
CATEGORY_SECURITY = "security"
CATEGORY_SCHEMA = "schema"

VALID_CATEGORIES: frozenset[str] = frozenset(
    {CATEGORY_SEMANTIC, CATEGORY_STYLE, CATEGORY_SECURITY, CATEGORY_SCHEMA}
)


@dataclass(frozen=True)
class RuleConfig:
    """Effective settings handed to :meth:`Rule.run`."""

    severity: Severity
    enabled: bool = True
    resolve: ResolveOptions = field(default_factory=ResolveOptions)


class Rule:
    """Base class for a single check.

    Subclasses set the class attributes and implement :meth:`run`.  A rule
    reads the index, never mutates it, and never performs I/O.
    """

    id: ClassVar[str] = ""
    category: ClassVar[str] = CATEGORY_STYLE
    default_severity: ClassVar[Severity] = Severity.WARNING
    versions: ClassVar[tuple[str, ...] | None] = None
    summary: ClassVar[str] = ""
    description: ClassVar[str] = ""
    how_to_fix: ClassVar[str] = ""
    link: ClassVar[str] = ""
    fix_available: ClassVar[bool] = False

    def applies_to(self, version: str) -> bool:
        """True when the rule targets *version* (``3.1`` matches ``3.1.0``)."""
        if self.versions is None:
            return True
        return any(version == v or version.startswith(f"{v}.") for v in self.versions)

    def run(self, index: Index, config: RuleConfig) -> list[Violation]:
        raise NotImplementedError

    def violation(
        self,
        config: RuleConfig,
        node: yaml.Node | None,
        message: str,
        fix: Fix | None = None,
        *,
        kind: ViolationKind = ViolationKind.POLICY,
        severity: Severity | None = None,
    ) -> Violation:
        return Violation(
            rule_id=self.id,
            severity=severity or config.severity,
            message=message,
            node=node,
            fix=fix,
            kind=kind,
        )

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.id}>"
