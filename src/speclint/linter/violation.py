"""Severity levels and the Violation record."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from speclint.document import yml

if TYPE_CHECKING:
    import yaml

    from speclint.linter.fix import Fix


class Severity(str, Enum):
    """Ordered severity: ``hint < info < warning < error``."""

    HINT = "hint"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"

    @property
    def rank(self) -> int:
        return _RANK[self]

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: object) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank >= other.rank

    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls, value: str) -> Severity:
        """Parse a configured severity name; ``warn`` is accepted for ``warning``."""
        name = _ALIASES.get(value.strip().lower(), value.strip().lower())
        try:
            return cls(name)
        except ValueError:
            valid = ", ".join(s.value for s in cls)
            msg = f"unknown severity {value!r} (expected one of: {valid})"
            raise ValueError(msg) from None


_RANK = {Severity.HINT: 0, Severity.INFO: 1, Severity.WARNING: 2, Severity.ERROR: 3}
_ALIASES = {"warn": "warning", "information": "info", "err": "error"}


class ViolationKind(str, Enum):
    POLICY = "policy"
    RESOLUTION = "resolution"
    RULE_FAILURE = "rule-failure"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True, eq=False)
class Violation:
    """One finding of one rule, anchored at a node of the syntax tree."""

    rule_id: str
    severity: Severity
    message: str
    node: yaml.Node | None
    fix: Fix | None = None
    kind: ViolationKind = ViolationKind.POLICY

    @property
    def line(self) -> int:
        return yml.position(self.node)[0]

    @property
    def column(self) -> int:
        return yml.position(self.node)[1]

    @property
    def fixable(self) -> bool:
        return self.fix is not None

    def render(self) -> str:
        return f"[{self.line}:{self.column}] {self.severity.value} {self.rule_id} {self.message}"

    def sort_key(self) -> tuple[int, int, str]:
        return self.line, self.column, self.rule_id
