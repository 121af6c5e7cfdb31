"""The Fix contract: one remediation for one violation.

A fix is either *automatic* (no prompts, ready on construction) or
*interactive* (ordered prompts, ready once :meth:`Fix.set_input` accepted a
full set of answers).  Each fix mutates exactly one layer: the syntax tree
(:meth:`Fix.apply_node`) or the document model (:meth:`Fix.apply`).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, ClassVar

from speclint.document import yml

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    import yaml

    from speclint.document.model import Document

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class FixError(Exception):
    """Base class for fix failures."""


class FixUsageError(FixError):
    """Raised when a fix is driven out of order or fed unusable input."""


# ---------------------------------------------------------------------------
# Prompts and state
# ---------------------------------------------------------------------------


class PromptKind(str, Enum):
    FREE_TEXT = "free-text"
    CHOICE = "choice"


@dataclass(frozen=True)
class Prompt:
    """One question an interactive fix needs answered."""

    kind: PromptKind
    message: str
    choices: tuple[str, ...] = ()
    default: str | None = None


class FixState(str, Enum):
    CREATED = "created"
    READY = "ready"
    APPLIED = "applied"


# ---------------------------------------------------------------------------
# Base class
# ---------------------------------------------------------------------------


class Fix:
    """Base class for all fixes.

    Subclasses set ``interactive`` / ``mutates_node`` and implement the
    ``_apply_node`` (or ``_apply``) hook.  Interactive subclasses override
    :meth:`prompts` and may validate answers in ``_accept``.

    A fix whose captured nodes are no longer part of the tree it is applied
    to (an earlier fix removed an ancestor) does nothing.
    """

    interactive: ClassVar[bool] = False
    mutates_node: ClassVar[bool] = True

    def __init__(self) -> None:
        self._state = FixState.CREATED if self.interactive else FixState.READY
        self._answers: tuple[str, ...] = ()

    @property
    def state(self) -> FixState:
        return self._state

    @property
    def answers(self) -> tuple[str, ...]:
        return self._answers

    @property
    def declined(self) -> bool:
        """True when the accepted answers ask for no change (a "No" to a confirmation)."""
        return False

    def description(self) -> str:
        raise NotImplementedError

    def prompts(self) -> list[Prompt]:
        return []

    def set_input(self, answers: Sequence[str]) -> None:
        """Supply one answer per prompt, in prompt order."""
        prompts = self.prompts()
        try:
            if len(answers) != len(prompts):
                msg = f"{type(self).__name__} expects {len(prompts)} answer(s), got {len(answers)}"
                raise FixUsageError(msg)
            for prompt, answer in zip(prompts, answers):
                if prompt.kind is PromptKind.CHOICE and answer not in prompt.choices:
                    choices = ", ".join(prompt.choices)
                    msg = f"{answer!r} is not a valid answer to {prompt.message!r} ({choices})"
                    raise FixUsageError(msg)
            self._accept(list(answers))
        except FixUsageError:
            if self.interactive:
                self._state = FixState.CREATED
            raise
        self._answers = tuple(answers)
        self._state = FixState.READY

    def apply(self, document: Document) -> None:
        """Apply an object-level fix to *document*."""
        self._ensure_ready()
        if self.mutates_node:
            msg = f"{type(self).__name__} edits the syntax tree; use apply_node()"
            raise FixUsageError(msg)
        if not self._reachable(document.root):
            return
        self._apply(document)
        self._state = FixState.APPLIED

    def apply_node(self, root: yaml.Node) -> None:
        """Apply a tree-level fix below *root*."""
        self._ensure_ready()
        if not self.mutates_node:
            msg = f"{type(self).__name__} edits the document model; use apply()"
            raise FixUsageError(msg)
        if not self._reachable(root):
            return
        self._apply_node(root)
        self._state = FixState.APPLIED

    def describe_change(self) -> tuple[str, str]:
        """Return ``(before, after)`` text for the pending change, or empty strings."""
        return "", ""

    # -- hooks ---------------------------------------------------------------

    def _accept(self, answers: list[str]) -> None:  # noqa: B027
        """Validate and store parsed answers; raise FixUsageError to reject."""

    def _targets(self) -> list[yaml.Node]:
        return []

    def _apply(self, document: Document) -> None:
        raise NotImplementedError

    def _apply_node(self, root: yaml.Node) -> None:
        raise NotImplementedError

    # -- helpers -------------------------------------------------------------

    def _ensure_ready(self) -> None:
        if self._state is FixState.CREATED:
            prompts = len(self.prompts())
            msg = f"{type(self).__name__} needs {prompts} answer(s) before it can be applied"
            raise FixUsageError(msg)

    def _reachable(self, root: yaml.Node) -> bool:
        for target in self._targets():
            if not yml.contains(root, target):
                logger.debug("Skipping %s: target node is no longer in the tree", self.description())
                return False
        return True


class ScalarTransformFix(Fix):
    """Rewrite one scalar through a pure ``str -> str`` function.

    The node keeps its quoting style, so only the text changes.
    """

    def __init__(self, node: yaml.ScalarNode, transform: Callable[[str], str], description: str) -> None:
        super().__init__()
        self._node = node
        self._transform = transform
        self._description = description

    def description(self) -> str:
        return self._description

    def describe_change(self) -> tuple[str, str]:
        before = str(self._node.value)
        after = self._transform(before)
        if before == after:
            return "", ""
        return before, after

    def _targets(self) -> list[yaml.Node]:
        return [self._node]

    def _apply_node(self, root: yaml.Node) -> None:
        self._node.value = self._transform(str(self._node.value))
