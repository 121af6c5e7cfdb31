"""Output formatters for lint results."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import TYPE_CHECKING

from speclint.linter.violation import Severity

if TYPE_CHECKING:
    from speclint.linter.runner import LintResult
    from speclint.linter.violation import Violation


@dataclass(frozen=True)
class RuleCount:
    """How often one rule fired in a lint run."""

    rule_id: str
    severity: Severity
    count: int
    fixable: int


def rule_counts(result: LintResult) -> list[RuleCount]:
    """Per-rule totals, most frequent first.  ``severity`` is the highest seen."""
    grouped: dict[str, list[Violation]] = {}
    for v in result.violations:
        grouped.setdefault(v.rule_id, []).append(v)
    counts = [
        RuleCount(
            rule_id=rule_id,
            severity=max(v.severity for v in items),
            count=len(items),
            fixable=sum(1 for v in items if v.fix is not None),
        )
        for rule_id, items in grouped.items()
    ]
    return sorted(counts, key=lambda c: (-c.count, c.rule_id))


def format_text(result: LintResult) -> str:
    """Format a LintResult as one rendered line per violation plus a summary.

    Example::

        [4:7] warning style-path-trailing-slash path `/pets/` must not end with a slash
        [12:9] error owasp-integer-limit schema of type `integer` must specify `minimum` and `maximum`

        2 violations (1 error, 1 warning, 0 info, 0 hint); 2 fixable; 16 rules evaluated in 4.1ms
    """
    lines = [v.render() for v in result.violations]
    elapsed = f"{result.elapsed_ms:.1f}ms"
    if not result.violations:
        lines.append(f"No violations found ({result.rules_evaluated} rules evaluated in {elapsed})")
        return "\n".join(lines)

    counts = {s: 0 for s in Severity}
    for v in result.violations:
        counts[v.severity] += 1
    breakdown = ", ".join(f"{counts[s]} {s.value}" for s in sorted(Severity, reverse=True))
    noun = "violation" if len(result.violations) == 1 else "violations"
    lines.append("")
    lines.append(
        f"{len(result.violations)} {noun} ({breakdown}); {result.fixable_count} fixable; "
        f"{result.rules_evaluated} rules evaluated in {elapsed}"
    )
    return "\n".join(lines)


def format_json(result: LintResult, *, per_rule: bool = False) -> str:
    """Format a LintResult as structured JSON with ``violations`` and ``summary``.

    With *per_rule* the summary also carries a ``rules`` list of per-rule counts.
    """
    violations_list: list[dict[str, object]] = []
    for v in result.violations:
        violations_list.append(
            {
                "rule_id": v.rule_id,
                "severity": v.severity.value,
                "kind": v.kind.value,
                "line": v.line,
                "column": v.column,
                "message": v.message,
                "fixable": v.fix is not None,
                "interactive": v.fix.interactive if v.fix is not None else False,
            }
        )

    summary: dict[str, object] = {
        "rules_evaluated": result.rules_evaluated,
        "violations_count": len(result.violations),
        "errors": result.error_count,
        "fixable": result.fixable_count,
        "elapsed_ms": result.elapsed_ms,
    }
    if per_rule:
        summary["rules"] = [
            {
                "rule_id": c.rule_id,
                "severity": c.severity.value,
                "count": c.count,
                "fixable": c.fixable,
            }
            for c in rule_counts(result)
        ]
    output: dict[str, object] = {"violations": violations_list, "summary": summary}
    return json.dumps(output, indent=2)
