"""Rule registry: an explicit catalog of rules and named rulesets."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from speclint.linter.rule import VALID_CATEGORIES

if TYPE_CHECKING:
    from collections.abc import Iterable

    from speclint.linter.rule import Rule

RULESET_ALL = "all"

_RULE_ID_RE = re.compile(r"^[a-z0-9]+(-[a-z0-9]+)*$")


class Registry:
    """Holds rule instances keyed by id, plus named rulesets.

    The ``all`` ruleset is implicit and always names every registered rule.
    """

    def __init__(self) -> None:
        self._rules: dict[str, Rule] = {}
        self._rulesets: dict[str, list[str]] = {}

    def register(self, rule: Rule) -> None:
        if not _RULE_ID_RE.match(rule.id):
            msg = f"rule id {rule.id!r} must be kebab-case"
            raise ValueError(msg)
        if rule.id in self._rules:
            msg = f"rule {rule.id!r} is already registered"
            raise ValueError(msg)
        if rule.category not in VALID_CATEGORIES:
            msg = f"rule {rule.id!r} has unknown category {rule.category!r}"
            raise ValueError(msg)
        self._rules[rule.id] = rule

    def register_ruleset(self, name: str, rule_ids: Iterable[str]) -> None:
        if name == RULESET_ALL:
            msg = f"ruleset {RULESET_ALL!r} is reserved"
            raise ValueError(msg)
        ids = list(rule_ids)
        unknown = [rule_id for rule_id in ids if rule_id not in self._rules]
        if unknown:
            msg = f"ruleset {name!r} names unknown rule(s): {', '.join(unknown)}"
            raise ValueError(msg)
        self._rulesets[name] = ids

    def has_ruleset(self, name: str) -> bool:
        return name == RULESET_ALL or name in self._rulesets

    def ruleset(self, name: str) -> list[str]:
        if name == RULESET_ALL:
            return list(self._rules)
        try:
            return list(self._rulesets[name])
        except KeyError:
            msg = f"unknown ruleset {name!r}"
            raise KeyError(msg) from None

    def ruleset_names(self) -> list[str]:
        return [RULESET_ALL, *self._rulesets]

    def rulesets_containing(self, rule_id: str) -> list[str]:
        return [name for name in self.ruleset_names() if rule_id in self.ruleset(name)]

    def get(self, rule_id: str) -> Rule | None:
        return self._rules.get(rule_id)

    def all_rules(self) -> list[Rule]:
        return list(self._rules.values())

    def __contains__(self, rule_id: object) -> bool:
        return rule_id in self._rules

    def __len__(self) -> int:
        return len(self._rules)
