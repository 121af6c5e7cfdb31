"""Helpers over the PyYAML node graph (``yaml.compose`` output).

The node graph is the concrete syntax tree fixes operate on.  Nodes keep their
scalar ``style`` and collection ``flow_style`` and the source marks they were
parsed from; :mod:`speclint.document.splice` uses those marks to write edits
back into the original text.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import yaml
from yaml.constructor import SafeConstructor

if TYPE_CHECKING:
    from collections.abc import Iterator

STR_TAG = "tag:yaml.org,2002:str"
INT_TAG = "tag:yaml.org,2002:int"
BOOL_TAG = "tag:yaml.org,2002:bool"
NULL_TAG = "tag:yaml.org,2002:null"
MAP_TAG = "tag:yaml.org,2002:map"
SEQ_TAG = "tag:yaml.org,2002:seq"

_NO_WRAP = 1 << 16


# ---------------------------------------------------------------------------
# Parsing / emitting
# ---------------------------------------------------------------------------


def compose(text: str) -> yaml.Node | None:
    """Parse *text* (YAML or JSON) into a node graph.

    Returns ``None`` for an empty stream.  Raises ``yaml.YAMLError`` on
    malformed input.
    """
    return yaml.compose(text, Loader=yaml.SafeLoader)


class _Dumper(yaml.SafeDumper):
    """Indents block sequences under their parent key."""

    def increase_indent(self, flow: bool = False, indentless: bool = False) -> None:
        super().increase_indent(flow, False)


def serialize(node: yaml.Node) -> str:
    """Emit *node* as YAML text, honouring each node's recorded style.

    Lines are never wrapped.
    """
    return yaml.serialize(node, Dumper=_Dumper, allow_unicode=True, width=_NO_WRAP)


# ---------------------------------------------------------------------------
# Inspection
# ---------------------------------------------------------------------------


def is_mapping(node: yaml.Node | None) -> bool:
    return isinstance(node, yaml.MappingNode)


def is_sequence(node: yaml.Node | None) -> bool:
    return isinstance(node, yaml.SequenceNode)


def is_scalar(node: yaml.Node | None) -> bool:
    return isinstance(node, yaml.ScalarNode)


def iter_map(node: yaml.Node | None) -> Iterator[tuple[str, yaml.Node, yaml.Node]]:
    """Yield ``(key, key_node, value_node)`` for each scalar-keyed entry."""
    if not is_mapping(node):
        return
    for key_node, value_node in node.value:
        if isinstance(key_node, yaml.ScalarNode):
            yield key_node.value, key_node, value_node


def get_map_element(
    node: yaml.Node | None, key: str
) -> tuple[yaml.Node | None, yaml.Node | None]:
    """Return ``(key_node, value_node)`` for *key*, or ``(None, None)`` when absent."""
    for name, key_node, value_node in iter_map(node):
        if name == key:
            return key_node, value_node
    return None, None


def get_value(node: yaml.Node | None, key: str) -> yaml.Node | None:
    return get_map_element(node, key)[1]


def get_path(node: yaml.Node | None, *keys: str) -> yaml.Node | None:
    """Follow a chain of mapping keys; ``None`` as soon as one is missing."""
    current = node
    for key in keys:
        current = get_value(current, key)
        if current is None:
            return None
    return current


def get_scalar(node: yaml.Node | None, key: str) -> str | None:
    """Return the scalar text stored under *key*, or ``None``."""
    value = get_value(node, key)
    if isinstance(value, yaml.ScalarNode):
        return str(value.value)
    return None


def has_key(node: yaml.Node | None, key: str) -> bool:
    return get_map_element(node, key)[0] is not None


def is_true(node: yaml.Node | None) -> bool:
    """True when *node* is a YAML boolean scalar holding a true value."""
    if not isinstance(node, yaml.ScalarNode) or node.tag != BOOL_TAG:
        return False
    return bool(SafeConstructor.bool_values.get(str(node.value).lower(), False))


def is_false(node: yaml.Node | None) -> bool:
    if not isinstance(node, yaml.ScalarNode) or node.tag != BOOL_TAG:
        return False
    return SafeConstructor.bool_values.get(str(node.value).lower()) is False


def position(node: yaml.Node | None) -> tuple[int, int]:
    """1-based ``(line, column)`` of *node*; ``(-1, -1)`` for synthesized nodes."""
    mark = getattr(node, "start_mark", None)
    if mark is None:
        return -1, -1
    return mark.line + 1, mark.column + 1


def contains(root: yaml.Node | None, target: yaml.Node) -> bool:
    """Identity search for *target* anywhere under *root* (inclusive)."""
    if root is None:
        return False
    seen: set[int] = set()
    stack: list[yaml.Node] = [root]
    while stack:
        node = stack.pop()
        if node is target:
            return True
        if id(node) in seen:
            continue
        seen.add(id(node))
        if isinstance(node, yaml.MappingNode):
            for key_node, value_node in node.value:
                stack.append(key_node)
                stack.append(value_node)
        elif isinstance(node, yaml.SequenceNode):
            stack.extend(node.value)
    return False


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------


def create_string_node(value: str, *, style: str | None = None) -> yaml.ScalarNode:
    return yaml.ScalarNode(tag=STR_TAG, value=value, style=style)


def create_int_node(value: int) -> yaml.ScalarNode:
    return yaml.ScalarNode(tag=INT_TAG, value=str(value))


def create_bool_node(value: bool) -> yaml.ScalarNode:
    return yaml.ScalarNode(tag=BOOL_TAG, value="true" if value else "false")


def create_map_node(
    pairs: list[tuple[str, yaml.Node]] | None = None, *, flow_style: bool | None = None
) -> yaml.MappingNode:
    """Build a mapping node from ``(key, value_node)`` pairs, keeping order."""
    value = [(create_string_node(key), node) for key, node in pairs or []]
    return yaml.MappingNode(tag=MAP_TAG, value=value, flow_style=flow_style)


def create_sequence_node(
    items: list[yaml.Node] | None = None, *, flow_style: bool | None = None
) -> yaml.SequenceNode:
    return yaml.SequenceNode(tag=SEQ_TAG, value=list(items or []), flow_style=flow_style)


# ---------------------------------------------------------------------------
# Mutation
# ---------------------------------------------------------------------------


def set_map_element(parent: yaml.MappingNode, key: str, value: yaml.Node) -> None:
    """Replace the value under *key*, or append a new entry at the end.

    An existing entry keeps its key node and its position among siblings.
    """
    for idx, (key_node, _value_node) in enumerate(parent.value):
        if isinstance(key_node, yaml.ScalarNode) and key_node.value == key:
            parent.value[idx] = (key_node, value)
            return
    parent.value.append((create_string_node(key), value))


def ensure_map_element(parent: yaml.MappingNode, key: str) -> yaml.MappingNode:
    """Return the mapping stored under *key*, creating an empty one if missing."""
    existing = get_value(parent, key)
    if isinstance(existing, yaml.MappingNode):
        return existing
    created = create_map_node()
    set_map_element(parent, key, created)
    return created


def delete_map_element(parent: yaml.MappingNode, key: str) -> bool:
    """Remove the entry for *key*.  Returns ``False`` when nothing was removed."""
    for idx, (key_node, _value_node) in enumerate(parent.value):
        if isinstance(key_node, yaml.ScalarNode) and key_node.value == key:
            del parent.value[idx]
            return True
    return False
