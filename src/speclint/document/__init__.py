"""Document layer: syntax tree helpers, pointers, document model and index."""

from speclint.document.index import (
    COMPONENT_KINDS,
    HTTP_METHODS,
    Component,
    Index,
    IndexedNode,
    Operation,
    PathItem,
    ReferenceEdge,
    ResolutionError,
    ResolutionFailure,
    ResolveOptions,
    SchemaNode,
    SecurityRequirement,
    build_index,
    resolve_pointer,
)
from speclint.document.model import Document, DocumentError

__all__ = [
    "COMPONENT_KINDS",
    "HTTP_METHODS",
    "Component",
    "Document",
    "DocumentError",
    "Index",
    "IndexedNode",
    "Operation",
    "PathItem",
    "ReferenceEdge",
    "ResolutionError",
    "ResolutionFailure",
    "ResolveOptions",
    "SchemaNode",
    "SecurityRequirement",
    "build_index",
    "resolve_pointer",
]
