"""Document index: a read-only catalog over a composed OpenAPI tree.

The index records every structural element rules care about (path items,
operations, components, schemas, servers, security requirements) together
with the node it lives at, plus the ``$ref`` graph.  External documents
named by ``$ref`` are fetched here and nowhere else.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

import httpx
import yaml

from speclint.document import pointer, yml
from speclint.document.model import Document, DocumentError

if TYPE_CHECKING:
    from collections.abc import Iterator

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

COMPONENT_KINDS: tuple[str, ...] = (
    "schemas",
    "responses",
    "parameters",
    "examples",
    "requestBodies",
    "headers",
    "securitySchemes",
    "links",
    "callbacks",
    "pathItems",
)

HTTP_METHODS: tuple[str, ...] = (
    "get",
    "put",
    "post",
    "delete",
    "options",
    "head",
    "patch",
    "trace",
)

# Keywords whose value is a single subschema.
_SCHEMA_SINGLE: frozenset[str] = frozenset(
    {
        "not",
        "items",
        "additionalProperties",
        "contains",
        "if",
        "then",
        "else",
        "propertyNames",
        "unevaluatedProperties",
        "unevaluatedItems",
        "additionalItems",
    }
)
# Keywords whose value is a list of subschemas.
_SCHEMA_LIST: frozenset[str] = frozenset({"allOf", "anyOf", "oneOf", "prefixItems", "items"})
# Keywords whose value maps names to subschemas.
_SCHEMA_MAP: frozenset[str] = frozenset(
    {"properties", "patternProperties", "$defs", "definitions", "dependentSchemas"}
)

# Keys of schema, parameter, header, media type, example and server variable
# objects whose value is literal data.
_LITERAL_KEYS: frozenset[str] = frozenset({"example", "default", "enum", "const", "value"})
# Keys whose mapping value is keyed by names the author chose (status codes,
# property names, component names, media types).
_NAMED_MAPS: frozenset[str] = frozenset(
    {
        "paths",
        "webhooks",
        "responses",
        "callbacks",
        "links",
        "headers",
        "content",
        "encoding",
        "variables",
        "mapping",
        "scopes",
        "properties",
        "patternProperties",
        "$defs",
        "definitions",
        "dependentSchemas",
        "dependentRequired",
        *COMPONENT_KINDS,
    }
)
# Named maps that may also carry `x-` extensions.
_EXTENSIBLE_MAPS: frozenset[str] = frozenset({"paths", "webhooks", "responses"})

# Mapping roles while walking the tree.
_OBJECT = "object"
_NAMED = "named"
_EXTENSIBLE = "extensible"
_LITERAL = "literal"

_MAX_REF_HOPS = 32


class ResolutionError(Exception):
    """Raised when a ``$ref`` cannot be followed to its target node."""


# ---------------------------------------------------------------------------
# Catalog records
# ---------------------------------------------------------------------------


@dataclass(frozen=True, eq=False)
class PathItem:
    path: str
    pointer: str
    key_node: yaml.Node
    node: yaml.Node


@dataclass(frozen=True, eq=False)
class Operation:
    path: str
    method: str
    pointer: str
    key_node: yaml.Node
    node: yaml.MappingNode
    path_item: PathItem


@dataclass(frozen=True, eq=False)
class Component:
    """A reusable declaration under ``components/{kind}/{name}``."""

    kind: str
    name: str
    pointer: str
    key_node: yaml.Node
    node: yaml.Node
    parent: yaml.MappingNode

    @property
    def ref(self) -> str:
        return f"#{self.pointer}"


@dataclass(frozen=True, eq=False)
class SchemaNode:
    """A schema object, inline or declared as a component."""

    pointer: str
    node: yaml.MappingNode
    component: Component | None = None


@dataclass(frozen=True, eq=False)
class IndexedNode:
    """A server url with its key and the server object holding it."""

    pointer: str
    key_node: yaml.Node
    node: yaml.Node
    parent: yaml.MappingNode


@dataclass(frozen=True, eq=False)
class SecurityRequirement:
    name: str
    pointer: str
    key_node: yaml.Node


@dataclass(frozen=True, eq=False)
class ReferenceEdge:
    """One edge of the reference graph.

    ``node`` is the ``$ref`` value scalar, or the requirement key for the
    implicit edges synthesized from security requirements.
    """

    source_document: str
    source_pointer: str
    node: yaml.Node
    ref: str
    target_uri: str
    target_pointer: str
    resolved: bool
    implicit: bool = False

    @property
    def component_pointer(self) -> str | None:
        return pointer.component_pointer(self.target_pointer)


@dataclass(frozen=True, eq=False)
class ResolutionFailure:
    ref: str
    node: yaml.Node
    source_document: str
    reason: str


@dataclass
class ResolveOptions:
    """Options forwarded untouched to the index builder.

    ``fs_root`` anchors relative file references when the root document has
    no location of its own.  ``http_client`` is any object with an
    ``httpx.Client``-compatible ``get``; one is created on demand otherwise.
    """

    fs_root: Path | None = None
    http_client: Any = None
    disable_external_refs: bool = False


# ---------------------------------------------------------------------------
# Index
# ---------------------------------------------------------------------------


@dataclass
class Index:
    """Catalog over one root document and the documents it references.

    Rules treat every field as read-only.  Any mutation of the tree makes the
    index stale; call :func:`build_index` again before re-running rules.
    """

    document: Document
    path_items: list[PathItem] = field(default_factory=list)
    operations: list[Operation] = field(default_factory=list)
    components: list[Component] = field(default_factory=list)
    schemas: list[SchemaNode] = field(default_factory=list)
    servers: list[IndexedNode] = field(default_factory=list)
    security_requirements: list[SecurityRequirement] = field(default_factory=list)
    references: list[ReferenceEdge] = field(default_factory=list)
    resolution_failures: list[ResolutionFailure] = field(default_factory=list)
    documents: dict[str, Document] = field(default_factory=dict)
    _targets: dict[int, yaml.Node] = field(default_factory=dict, repr=False)
    _failures: dict[int, str] = field(default_factory=dict, repr=False)

    @property
    def version(self) -> str:
        return self.document.version

    def components_of(self, kind: str) -> list[Component]:
        return [c for c in self.components if c.kind == kind]

    def references_from(self, location: str) -> list[ReferenceEdge]:
        return [e for e in self.references if e.source_document == location]

    def resolve(self, node: yaml.Node) -> yaml.Node:
        """Follow ``$ref`` hops from *node* until a concrete node is reached.

        Nodes without ``$ref`` are returned unchanged.  Raises
        :class:`ResolutionError` for a reference that is dangling, disabled,
        or part of a cycle.
        """
        current = node
        for _ in range(_MAX_REF_HOPS):
            ref_key, ref_value = yml.get_map_element(current, "$ref")
            if ref_key is None or not isinstance(ref_value, yaml.ScalarNode):
                return current
            holder = id(current)
            if holder in self._failures:
                raise ResolutionError(self._failures[holder])
            if holder not in self._targets:
                msg = f"reference {ref_value.value!r} was not indexed"
                raise ResolutionError(msg)
            current = self._targets[holder]
        msg = f"reference chain starting at {yml.get_scalar(node, '$ref')!r} is circular"
        raise ResolutionError(msg)


# ---------------------------------------------------------------------------
# Builder
# ---------------------------------------------------------------------------


def build_index(document: Document, options: ResolveOptions | None = None) -> Index:
    """Catalog *document* and fetch the external documents it references."""
    builder = _IndexBuilder(document, options or ResolveOptions())
    return builder.build()


def resolve_pointer(root: yaml.Node | None, json_pointer: str) -> yaml.Node | None:
    """Return the node at *json_pointer* under *root*, or ``None``."""
    try:
        tokens = pointer.split(json_pointer)
    except ValueError:
        return None
    current = root
    for token in tokens:
        if isinstance(current, yaml.MappingNode):
            current = yml.get_value(current, token)
        elif isinstance(current, yaml.SequenceNode):
            if not token.isdigit() or int(token) >= len(current.value):
                return None
            current = current.value[int(token)]
        else:
            return None
        if current is None:
            return None
    return current


def _child_role(role: str, key: str, value: yaml.Node) -> str:
    if role == _LITERAL:
        return _LITERAL
    if role in (_NAMED, _EXTENSIBLE):
        if role == _EXTENSIBLE and key.startswith("x-"):
            return _LITERAL
        return _OBJECT
    if key.startswith("x-") or key in _LITERAL_KEYS:
        return _LITERAL
    if key == "examples" and isinstance(value, yaml.SequenceNode):
        return _LITERAL
    if key in _NAMED_MAPS and isinstance(value, yaml.MappingNode):
        return _EXTENSIBLE if key in _EXTENSIBLE_MAPS else _NAMED
    return _OBJECT


def _iter_mappings(node: yaml.Node, base: str = "") -> Iterator[tuple[str, yaml.MappingNode, str]]:
    """Yield ``(pointer, mapping, role)`` for every mapping under *node*.

    ``role`` is ``"object"`` for OpenAPI and schema objects, ``"named"`` or
    ``"extensible"`` for maps keyed by author-chosen names, and ``"literal"``
    below example values, schema defaults, enums and extensions.  A key is
    literal only on an object, so a ``default`` response or a component named
    ``example`` is still structure.  Each node is visited once, so YAML
    aliases cannot cause infinite loops.
    """
    seen: set[int] = set()
    stack: list[tuple[str, yaml.Node, str]] = [(base, node, _OBJECT)]
    while stack:
        ptr, current, role = stack.pop()
        if id(current) in seen:
            continue
        seen.add(id(current))
        if isinstance(current, yaml.MappingNode):
            yield ptr, current, role
            children = [
                (f"{ptr}/{pointer.escape(key)}", value, _child_role(role, key, value))
                for key, _key_node, value in yml.iter_map(current)
            ]
            stack.extend(reversed(children))
        elif isinstance(current, yaml.SequenceNode):
            item_role = _LITERAL if role == _LITERAL else _OBJECT
            children = [(f"{ptr}/{i}", item, item_role) for i, item in enumerate(current.value)]
            stack.extend(reversed(children))


class _IndexBuilder:
    def __init__(self, document: Document, options: ResolveOptions) -> None:
        self._document = document
        self._options = options
        self._index = Index(document=document)
        self._load_errors: dict[str, str] = {}
        self._client: Any = options.http_client
        self._owns_client = False

    def build(self) -> Index:
        try:
            self._walk_references(self._document)
        finally:
            if self._owns_client:
                self._client.close()
        self._catalog_paths()
        self._catalog_components()
        self._catalog_schemas()
        self._catalog_servers()
        self._catalog_security()
        return self._index

    # -- references ----------------------------------------------------------

    def _walk_references(self, root_document: Document) -> None:
        pending = [root_document]
        while pending:
            document = pending.pop(0)
            for ptr, mapping, role in _iter_mappings(document.root):
                if role != _OBJECT:
                    continue
                _key, value = yml.get_map_element(mapping, "$ref")
                if not isinstance(value, yaml.ScalarNode) or not isinstance(value.value, str):
                    continue
                loaded = self._record_reference(document, ptr, mapping, value)
                if loaded is not None:
                    pending.append(loaded)

    def _record_reference(
        self,
        document: Document,
        ptr: str,
        holder: yaml.MappingNode,
        value: yaml.ScalarNode,
    ) -> Document | None:
        """Record one ``$ref`` edge; return a newly loaded external document."""
        ref = pointer.parse_reference(value.value)
        newly_loaded: Document | None = None
        target_document: Document | None
        reason = ""

        if self._is_internal(document, ref.uri):
            target_uri = document.location
            target_document = document
        else:
            target_uri = pointer.resolve_uri(document.location, ref.uri)
            if self._options.disable_external_refs:
                target_document = None
                reason = "external references are disabled"
            elif target_uri and target_uri == self._document.location:
                target_document = self._document
            elif target_uri in self._index.documents:
                target_document = self._index.documents[target_uri]
            elif target_uri in self._load_errors:
                target_document = None
                reason = self._load_errors[target_uri]
            else:
                target_document, reason = self._load(target_uri)
                newly_loaded = target_document

        target = None
        if target_document is not None:
            target = resolve_pointer(target_document.root, ref.pointer)
            if target is None:
                reason = f"pointer {ref.pointer or '/'!r} not found in {target_uri or 'document'}"

        edge = ReferenceEdge(
            source_document=document.location,
            source_pointer=ptr,
            node=value,
            ref=ref.raw,
            target_uri=target_uri,
            target_pointer=ref.pointer,
            resolved=target is not None,
        )
        self._index.references.append(edge)
        if target is not None:
            self._index._targets[id(holder)] = target
        else:
            self._index._failures[id(holder)] = reason
            self._index.resolution_failures.append(
                ResolutionFailure(
                    ref=ref.raw, node=value, source_document=document.location, reason=reason
                )
            )
            logger.warning("Unresolved reference %s: %s", ref.raw, reason)
        return newly_loaded

    def _is_internal(self, document: Document, uri: str) -> bool:
        if not uri:
            return True
        if uri in document.identities():
            return True
        return bool(document.location) and pointer.resolve_uri(document.location, uri) == (
            document.location
        )

    def _load(self, location: str) -> tuple[Document | None, str]:
        logger.debug("Loading external document %s", location)
        try:
            if pointer.is_remote(location):
                text = self._fetch(location)
            else:
                text = self._local_path(location).read_text(encoding="utf-8")
            document = Document.from_text(text, location=location)
        except (OSError, httpx.HTTPError, DocumentError) as exc:
            reason = f"cannot load {location}: {exc}"
            self._load_errors[location] = reason
            return None, reason
        self._index.documents[location] = document
        return document, ""

    def _fetch(self, url: str) -> str:
        if self._client is None:
            self._client = httpx.Client(follow_redirects=True, timeout=30.0)
            self._owns_client = True
        response = self._client.get(url)
        response.raise_for_status()
        return str(response.text)

    def _local_path(self, location: str) -> Path:
        path = Path(location)
        if not path.is_absolute() and self._options.fs_root is not None:
            return self._options.fs_root / path
        return path

    # -- structure -----------------------------------------------------------

    def _catalog_paths(self) -> None:
        paths = yml.get_value(self._document.root, "paths")
        for path, key_node, item in yml.iter_map(paths):
            if path.startswith("x-"):
                continue
            item_pointer = pointer.join("paths", path)
            path_item = PathItem(path=path, pointer=item_pointer, key_node=key_node, node=item)
            self._index.path_items.append(path_item)
            for method, method_key, op_node in yml.iter_map(item):
                if method not in HTTP_METHODS or not isinstance(op_node, yaml.MappingNode):
                    continue
                self._index.operations.append(
                    Operation(
                        path=path,
                        method=method,
                        pointer=f"{item_pointer}/{method}",
                        key_node=method_key,
                        node=op_node,
                        path_item=path_item,
                    )
                )

    def _catalog_components(self) -> None:
        components = yml.get_value(self._document.root, "components")
        for kind in COMPONENT_KINDS:
            group = yml.get_value(components, kind)
            if not isinstance(group, yaml.MappingNode):
                continue
            for name, key_node, node in yml.iter_map(group):
                self._index.components.append(
                    Component(
                        kind=kind,
                        name=name,
                        pointer=pointer.join("components", kind, name),
                        key_node=key_node,
                        node=node,
                        parent=group,
                    )
                )

    def _catalog_schemas(self) -> None:
        seen: set[int] = set()
        for component in self._index.components_of("schemas"):
            self._collect_schema(component.pointer, component.node, component, seen)
        for ptr, mapping, role in _iter_mappings(self._document.root):
            if role != _OBJECT or ptr.startswith("/components/schemas/"):
                continue
            schema = yml.get_value(mapping, "schema")
            if schema is not None:
                self._collect_schema(f"{ptr}/schema", schema, None, seen)

    def _collect_schema(
        self, ptr: str, node: yaml.Node, component: Component | None, seen: set[int]
    ) -> None:
        if not isinstance(node, yaml.MappingNode) or id(node) in seen:
            return
        seen.add(id(node))
        if yml.has_key(node, "$ref"):
            return
        self._index.schemas.append(SchemaNode(pointer=ptr, node=node, component=component))
        for key, _key_node, value in yml.iter_map(node):
            child = f"{ptr}/{pointer.escape(key)}"
            if key in _SCHEMA_SINGLE and isinstance(value, yaml.MappingNode):
                self._collect_schema(child, value, component, seen)
            elif key in _SCHEMA_LIST and isinstance(value, yaml.SequenceNode):
                for i, item in enumerate(value.value):
                    self._collect_schema(f"{child}/{i}", item, component, seen)
            elif key in _SCHEMA_MAP:
                for name, _name_key, sub in yml.iter_map(value):
                    self._collect_schema(f"{child}/{pointer.escape(name)}", sub, component, seen)

    def _catalog_servers(self) -> None:
        holders: list[tuple[str, yaml.Node | None]] = [
            ("/servers", yml.get_value(self._document.root, "servers"))
        ]
        for path_item in self._index.path_items:
            holders.append((f"{path_item.pointer}/servers", yml.get_value(path_item.node, "servers")))
        for operation in self._index.operations:
            holders.append((f"{operation.pointer}/servers", yml.get_value(operation.node, "servers")))
        for ptr, servers in holders:
            if not isinstance(servers, yaml.SequenceNode):
                continue
            for i, server in enumerate(servers.value):
                key_node, url = yml.get_map_element(server, "url")
                if key_node is None or not isinstance(url, yaml.ScalarNode):
                    continue
                self._index.servers.append(
                    IndexedNode(pointer=f"{ptr}/{i}/url", key_node=key_node, node=url, parent=server)
                )

    def _catalog_security(self) -> None:
        holders: list[tuple[str, yaml.Node | None]] = [
            ("/security", yml.get_value(self._document.root, "security"))
        ]
        for operation in self._index.operations:
            holders.append((f"{operation.pointer}/security", yml.get_value(operation.node, "security")))
        declared = {c.name for c in self._index.components_of("securitySchemes")}
        for ptr, requirements in holders:
            if not isinstance(requirements, yaml.SequenceNode):
                continue
            for i, requirement in enumerate(requirements.value):
                for name, key_node, _scopes in yml.iter_map(requirement):
                    req_pointer = f"{ptr}/{i}/{pointer.escape(name)}"
                    self._index.security_requirements.append(
                        SecurityRequirement(name=name, pointer=req_pointer, key_node=key_node)
                    )
                    self._index.references.append(
                        ReferenceEdge(
                            source_document=self._document.location,
                            source_pointer=req_pointer,
                            node=key_node,
                            ref=name,
                            target_uri=self._document.location,
                            target_pointer=pointer.join("components", "securitySchemes", name),
                            resolved=name in declared,
                            implicit=True,
                        )
                    )
