"""Write an edited node graph back over the text it was parsed from.

Nodes whose content is unchanged since parsing keep their source bytes,
comments and layout included.  Changed scalars, added or removed entries and
replaced values are spliced in at the offsets the parser recorded.  Edits that
cannot be expressed that way (entries inserted before the first key, reordered
keys) fall back to re-emitting the whole document.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import yaml

from speclint.document import yml

logger = logging.getLogger(__name__)

_HOLDER_KEY = "k"
_BLOCK_SCALAR_STYLES = ("|", ">")


class SpliceError(Exception):
    """Raised when an edit cannot be written as a splice of the source."""


# ---------------------------------------------------------------------------
# Snapshot
# ---------------------------------------------------------------------------


@dataclass(frozen=True, eq=False)
class _Shape:
    node: yaml.Node
    scalar: tuple[str, str, str | None] | None
    flow: bool
    children: tuple[yaml.Node, ...]


def _scalar_state(node: yaml.ScalarNode) -> tuple[str, str, str | None]:
    return str(node.value), node.tag, node.style


def _children(node: yaml.Node) -> tuple[yaml.Node, ...]:
    if isinstance(node, yaml.MappingNode):
        return tuple(child for pair in node.value for child in pair)
    if isinstance(node, yaml.SequenceNode):
        return tuple(node.value)
    return ()


class Snapshot:
    """The shape of every node of a freshly composed graph, by identity.

    Shapes hold on to their nodes, so identities stay unique for as long as
    the snapshot lives even when a fix drops a node from the graph.
    """

    def __init__(self, root: yaml.Node) -> None:
        self._shapes: dict[int, _Shape] = {}
        stack = [root]
        while stack:
            node = stack.pop()
            if id(node) in self._shapes:
                continue
            scalar = _scalar_state(node) if isinstance(node, yaml.ScalarNode) else None
            children = _children(node)
            flow = bool(getattr(node, "flow_style", False))
            self._shapes[id(node)] = _Shape(node, scalar, flow, children)
            stack.extend(children)

    def get(self, node: yaml.Node) -> _Shape | None:
        shape = self._shapes.get(id(node))
        if shape is None or shape.node is not node:
            return None
        return shape

    def __contains__(self, node: object) -> bool:
        return isinstance(node, yaml.Node) and self.get(node) is not None


def render(root: yaml.Node, source: str, snapshot: Snapshot) -> str:
    """Return *source* with every change made to *root* since *snapshot*."""
    try:
        return _Splicer(source, snapshot).render(root)
    except SpliceError as exc:
        logger.debug("Re-emitting the whole document: %s", exc)
        return yml.serialize(root)


# ---------------------------------------------------------------------------
# Splicer
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class _Edit:
    start: int
    end: int
    text: str


class _Splicer:
    def __init__(self, source: str, snapshot: Snapshot) -> None:
        self._source = source
        self._snapshot = snapshot
        self._json = source.lstrip().startswith(("{", "["))
        self._newline = "\r\n" if "\r\n" in source else "\n"
        self._edits: list[_Edit] = []
        self._visited: set[int] = set()

    def render(self, root: yaml.Node) -> str:
        self._visit(root, 0, flow=False)
        out: list[str] = []
        pos = 0
        # Stable sort: deeper insertions were recorded before their parents'.
        for edit in sorted(self._edits, key=lambda e: (e.start, e.end)):
            if edit.start < pos:
                msg = f"overlapping edits at offset {edit.start}"
                raise SpliceError(msg)
            out.append(self._source[pos : edit.start])
            out.append(edit.text)
            pos = edit.end
        out.append(self._source[pos:])
        return "".join(out)

    # -- traversal -----------------------------------------------------------

    def _visit(self, node: yaml.Node, indent: int, *, flow: bool) -> None:
        if id(node) in self._visited:
            return
        self._visited.add(id(node))
        shape = self._shape(node)
        if isinstance(node, yaml.ScalarNode):
            if _scalar_state(node) != shape.scalar:
                self._replace(node, node, indent, flow=flow)
        elif isinstance(node, yaml.MappingNode):
            self._visit_mapping(node, shape)
        elif isinstance(node, yaml.SequenceNode):
            self._visit_sequence(node, shape)

    def _visit_mapping(self, node: yaml.MappingNode, shape: _Shape) -> None:
        old_pairs = list(zip(shape.children[::2], shape.children[1::2]))
        new_pairs = list(node.value)
        if not old_pairs:
            self._fill_empty(node, [self._flow_entry(k, v) for k, v in new_pairs])
            return

        indent = old_pairs[0][0].start_mark.column
        old_values = {id(k): v for k, v in old_pairs}
        current = {id(k): v for k, v in new_pairs}
        kept = [i for i, (k, _v) in enumerate(old_pairs) if id(k) in current]
        if not kept:
            if new_pairs:
                msg = "every entry of a mapping was replaced"
                raise SpliceError(msg)
            self._make_empty(node, shape, "{}")
            return
        survivors = [id(k) for k, _v in new_pairs if id(k) in old_values]
        if survivors != [id(old_pairs[i][0]) for i in kept]:
            msg = "mapping entries were reordered"
            raise SpliceError(msg)

        for i in kept:
            key, old_value = old_pairs[i]
            self._visit(key, indent, flow=shape.flow)
            value = current[id(key)]
            if value is old_value:
                self._visit(value, indent, flow=shape.flow)
            else:
                self._replace(old_value, value, indent, flow=shape.flow)

        self._drop([k for k, _v in old_pairs], [v for _k, v in old_pairs], set(kept), flow=shape.flow)

        groups = _insertion_groups(new_pairs, old_values)
        for anchor, added in groups:
            if shape.flow:
                text = "".join(", " + self._flow_entry(k, v) for k, v in added)
            else:
                text = "".join(self._block_lines(self._block_entry(k, v), indent) for k, v in added)
            self._insert_after(anchor, text, flow=shape.flow)

    def _visit_sequence(self, node: yaml.SequenceNode, shape: _Shape) -> None:
        old_items = list(shape.children)
        new_items = list(node.value)
        if not old_items:
            self._fill_empty(node, [self._flow_item(item) for item in new_items])
            return

        indent = self._dash_column(node, old_items[0])
        old_ids = {id(item): item for item in old_items}
        kept = [i for i, item in enumerate(old_items) if any(item is n for n in new_items)]
        if not kept:
            if new_items:
                msg = "every item of a sequence was replaced"
                raise SpliceError(msg)
            self._make_empty(node, shape, "[]")
            return
        survivors = [id(item) for item in new_items if id(item) in old_ids]
        if survivors != [id(old_items[i]) for i in kept]:
            msg = "sequence items were reordered or repeated"
            raise SpliceError(msg)

        for i in kept:
            self._visit(old_items[i], indent, flow=shape.flow)

        self._drop(old_items, old_items, set(kept), flow=shape.flow)

        groups = _insertion_groups([(item, item) for item in new_items], old_ids)
        for anchor, added in groups:
            if shape.flow:
                text = "".join(", " + self._flow_item(item) for item, _same in added)
            else:
                text = "".join(
                    self._block_lines(self._block_item(item), indent) for item, _same in added
                )
            self._insert_after(anchor, text, flow=shape.flow)

    # -- edits ---------------------------------------------------------------

    def _drop(
        self,
        starts: list[yaml.Node],
        ends: list[yaml.Node],
        kept: set[int],
        *,
        flow: bool,
    ) -> None:
        """Delete the entries whose index is not in *kept*.

        *starts* holds the node each entry begins with (its key, or the item
        itself) and *ends* the node it finishes with.
        """
        lead = min(kept)
        if lead > 0:
            self._edit(starts[0].start_mark.index, starts[lead].start_mark.index, "")
        for i in range(lead + 1, len(starts)):
            if i in kept:
                continue
            self._edit(self._after(ends[i - 1], flow=flow), self._after(ends[i], flow=flow), "")

    def _insert_after(self, anchor: yaml.Node | None, text: str, *, flow: bool) -> None:
        if anchor is None:
            msg = "entry inserted before the first existing one"
            raise SpliceError(msg)
        at = self._after(anchor, flow=flow)
        self._edit(at, at, text)

    def _fill_empty(self, node: yaml.Node, entries: list[str]) -> None:
        if not entries:
            return
        start = node.start_mark.index
        if self._source[start : start + 1] not in ("{", "["):
            msg = "empty collection is not written in flow style"
            raise SpliceError(msg)
        self._edit(start + 1, start + 1, ", ".join(entries))

    def _make_empty(self, node: yaml.Node, shape: _Shape, text: str) -> None:
        start = node.start_mark.index
        end = self._end(node)
        if not shape.flow:
            start = self._skip_back_whitespace(start)
            if self._source[start - 1 : start] not in (":", "-"):
                msg = "cannot empty a top-level block collection"
                raise SpliceError(msg)
            text = " " + text
        self._edit(start, end, text)

    def _replace(self, old: yaml.Node, new: yaml.Node, indent: int, *, flow: bool) -> None:
        """Write *new* over the source span of *old*."""
        start = old.start_mark.index
        end = self._end(old)
        if flow:
            text = self._flow_value(new)
        else:
            text = self._block_value(new)
            if text.startswith("\n"):
                start = self._skip_back_whitespace(start)
                text = self._indent_continuations(text, indent)
            elif isinstance(old, yaml.ScalarNode) or self._shape(old).flow:
                text = self._indent_continuations(text.lstrip(" "), indent)
            else:
                # A block collection starts on the line after its key.
                start = self._skip_back_whitespace(start)
                if self._source[start - 1 : start] not in (":", "-"):
                    msg = "a comment separates the collection from its key"
                    raise SpliceError(msg)
                text = self._indent_continuations(text, indent)
        if start == end and self._source[start - 1 : start] == ":" and not text.startswith("\n"):
            text = " " + text
        self._edit(start, end, text)

    def _edit(self, start: int, end: int, text: str) -> None:
        self._edits.append(_Edit(start, end, text))

    # -- source positions ----------------------------------------------------

    def _shape(self, node: yaml.Node) -> _Shape:
        shape = self._snapshot.get(node)
        if shape is None:
            msg = "node was not parsed from the source"
            raise SpliceError(msg)
        return shape

    def _end(self, node: yaml.Node) -> int:
        """Offset just past the last character that belongs to *node*."""
        shape = self._shape(node)
        if isinstance(node, yaml.ScalarNode):
            end = node.end_mark.index
            if shape.scalar is not None and shape.scalar[2] in _BLOCK_SCALAR_STYLES:
                end = max(self._skip_back_whitespace(end), node.start_mark.index)
            return end
        if shape.flow or not shape.children:
            return node.end_mark.index
        end = self._end(shape.children[-1])
        if end < node.start_mark.index:
            msg = "collection ends with an alias"
            raise SpliceError(msg)
        return end

    def _after(self, node: yaml.Node, *, flow: bool) -> int:
        end = self._end(node)
        return end if flow else self._line_end(end)

    def _line_end(self, index: int) -> int:
        found = self._source.find("\n", index)
        if found < 0:
            return len(self._source)
        if found > 0 and self._source[found - 1] == "\r":
            return found - 1
        return found

    def _skip_back_whitespace(self, index: int) -> int:
        while index > 0 and self._source[index - 1] in " \t\r\n":
            index -= 1
        return index

    def _dash_column(self, node: yaml.SequenceNode, first: yaml.Node) -> int:
        line_start = self._source.rfind("\n", 0, first.start_mark.index) + 1
        dash = self._source.rfind("-", line_start, first.start_mark.index)
        if dash >= 0:
            return dash - line_start
        return node.start_mark.column

    # -- emitting ------------------------------------------------------------

    def _prepare(self, node: yaml.Node) -> yaml.Node:
        """Give new nodes JSON-compatible styles when the source is JSON."""
        if not self._json:
            return node
        stack = [node]
        while stack:
            current = stack.pop()
            if current in self._snapshot:
                continue
            if isinstance(current, yaml.ScalarNode):
                if current.tag == yml.STR_TAG:
                    current.style = '"'
            else:
                current.flow_style = True
                stack.extend(_children(current))
        return node

    def _holder(self, value: yaml.Node, *, flow: bool) -> str:
        key = yml.create_string_node(_HOLDER_KEY)
        holder = yaml.MappingNode(yml.MAP_TAG, [(key, self._prepare(value))], flow_style=flow)
        return yml.serialize(holder).rstrip("\r\n")

    def _flow_value(self, node: yaml.Node) -> str:
        text = self._holder(node, flow=True)
        return text[len("{" + _HOLDER_KEY + ": ") : -1]

    def _block_value(self, node: yaml.Node) -> str:
        """What follows ``key:`` when *node* is written as a block value."""
        return self._holder(node, flow=False)[len(_HOLDER_KEY + ":") :]

    def _flow_entry(self, key: yaml.Node, value: yaml.Node) -> str:
        holder = yaml.MappingNode(
            yml.MAP_TAG, [(self._prepare(key), self._prepare(value))], flow_style=True
        )
        return yml.serialize(holder).rstrip("\r\n")[1:-1]

    def _flow_item(self, item: yaml.Node) -> str:
        holder = yaml.SequenceNode(yml.SEQ_TAG, [self._prepare(item)], flow_style=True)
        return yml.serialize(holder).rstrip("\r\n")[1:-1]

    def _block_entry(self, key: yaml.Node, value: yaml.Node) -> str:
        holder = yaml.MappingNode(yml.MAP_TAG, [(key, value)], flow_style=False)
        return yml.serialize(holder).rstrip("\r\n")

    def _block_item(self, item: yaml.Node) -> str:
        holder = yaml.SequenceNode(yml.SEQ_TAG, [item], flow_style=False)
        return yml.serialize(holder).rstrip("\r\n")

    def _block_lines(self, text: str, indent: int) -> str:
        """Each line of *text* on a new line, shifted right by *indent*."""
        pad = " " * indent
        return "".join(self._newline + (pad + line if line else "") for line in text.split("\n"))

    def _indent_continuations(self, text: str, indent: int) -> str:
        first, *rest = text.split("\n")
        pad = " " * indent
        return first + "".join(self._newline + (pad + line if line else "") for line in rest)


def _insertion_groups(
    pairs: list[tuple[yaml.Node, yaml.Node]], originals: dict[int, yaml.Node]
) -> list[tuple[yaml.Node | None, list[tuple[yaml.Node, yaml.Node]]]]:
    """Group new entries behind the original entry they follow.

    *originals* maps the identity of each original entry's leading node to
    the node the entry ends with.  The anchor is ``None`` for entries placed
    before every original one.
    """
    groups: list[tuple[yaml.Node | None, list[tuple[yaml.Node, yaml.Node]]]] = []
    anchor: yaml.Node | None = None
    pending: list[tuple[yaml.Node, yaml.Node]] = []
    for lead, tail in pairs:
        if id(lead) in originals:
            if pending:
                groups.append((anchor, pending))
                pending = []
            anchor = originals[id(lead)]
        else:
            pending.append((lead, tail))
    if pending:
        groups.append((anchor, pending))
    return groups
