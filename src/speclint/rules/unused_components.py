"""Reachability analysis: find declared components nothing refers to.

A component is *used* when any ``$ref`` in the document itself points at
it (or at something inside it), or, for security schemes, when a security
requirement names it.  The check is inbound-edge based rather than a walk
from the document root, so a group of components that only refer to each
other counts as used.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import yaml

from speclint.document import yml
from speclint.linter.fix import Fix, Prompt, PromptKind
from speclint.linter.rule import CATEGORY_SEMANTIC, Rule
from speclint.linter.violation import Severity

if TYPE_CHECKING:
    from speclint.document.index import Component, Index
    from speclint.linter.rule import RuleConfig
    from speclint.linter.violation import Violation

logger = logging.getLogger(__name__)

FORCE_USED_EXTENSIONS: tuple[str, ...] = ("x-include", "x-used")


def collect_used_components(index: Index) -> set[str]:
    """Return the ``/components/{kind}/{name}`` pointers with an inbound edge."""
    location = index.document.location
    used: set[str] = set()
    for edge in index.references_from(location):
        if edge.target_uri != location or not edge.resolved:
            continue
        target = edge.component_pointer
        if target is not None:
            used.add(target)
    return used


def is_force_used(component: Component) -> bool:
    return any(yml.is_true(yml.get_value(component.node, ext)) for ext in FORCE_USED_EXTENSIONS)


def find_orphaned_components(index: Index) -> list[Component]:
    """Declared components that are neither referenced nor marked as used."""
    used = collect_used_components(index)
    orphaned = [
        component
        for component in index.components
        if component.pointer not in used and not is_force_used(component)
    ]
    logger.debug(
        "Reachability: %d components, %d used, %d orphaned",
        len(index.components),
        len(used),
        len(orphaned),
    )
    return orphaned


class RemoveUnusedComponentFix(Fix):
    """Delete an orphaned component after confirmation."""

    interactive = True

    def __init__(self, component: Component) -> None:
        super().__init__()
        self._component = component

    def description(self) -> str:
        return f"Remove unused component `{self._component.ref}`"

    def prompts(self) -> list[Prompt]:
        return [
            Prompt(
                PromptKind.CHOICE,
                f"Remove unused component `{self._component.ref}`?",
                choices=("Yes", "No"),
                default="No",
            )
        ]

    @property
    def declined(self) -> bool:
        return self.answers == ("No",)

    def _present(self) -> bool:
        return any(key is self._component.key_node for key, _value in self._component.parent.value)

    def describe_change(self) -> tuple[str, str]:
        if self.declined or not self._present():
            return "", ""
        return self._component.ref, ""

    def _targets(self) -> list[yaml.Node]:
        return [self._component.parent]

    def _apply_node(self, root: yaml.Node) -> None:
        if self.declined:
            return
        parent = self._component.parent
        parent.value = [
            (key, value) for key, value in parent.value if key is not self._component.key_node
        ]


class UnusedComponentRule(Rule):
    id = "semantic-unused-component"
    category = CATEGORY_SEMANTIC
    default_severity = Severity.WARNING
    summary = "Components should be referenced somewhere in the document."
    description = (
        "Reusable components that are never referenced add noise and usually point to "
        "leftovers from refactoring. Remove them, or mark them with `x-used: true` "
        "when they are consumed outside the document."
    )
    how_to_fix = "Remove unused components or reference them where needed in the document."
    fix_available = True

    def run(self, index: Index, config: RuleConfig) -> list[Violation]:
        return [
            self.violation(
                config,
                component.key_node,
                f"`{component.ref}` is potentially unused or has been orphaned",
                RemoveUnusedComponentFix(component),
            )
            for component in find_orphaned_components(index)
        ]
