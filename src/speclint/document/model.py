"""Document model: the semantic view over a composed OpenAPI tree."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import yaml

from speclint.document import splice, yml

if TYPE_CHECKING:
    from pathlib import Path


class DocumentError(Exception):
    """Raised when an OpenAPI document cannot be read or parsed."""


@dataclass
class Document:
    """A parsed OpenAPI document.

    ``root`` is the live syntax tree; every mutation (fix application or
    the object-level helpers below) lands in it, so :meth:`dump` always
    reflects the current state.  Documents parsed from text keep that text
    and write changes back into it, leaving comments and layout alone.
    """

    root: yaml.MappingNode
    location: str = ""
    source: str = field(default="", repr=False)
    snapshot: splice.Snapshot | None = field(default=None, repr=False)

    @classmethod
    def from_text(cls, text: str, location: str = "") -> Document:
        try:
            root = yml.compose(text)
        except yaml.YAMLError as exc:
            msg = f"Failed to parse {location or 'document'}: {exc}"
            raise DocumentError(msg) from exc
        if root is None:
            msg = f"{location or 'document'} is empty"
            raise DocumentError(msg)
        if not isinstance(root, yaml.MappingNode):
            msg = f"{location or 'document'} must be a mapping at the top level"
            raise DocumentError(msg)
        return cls(root=root, location=location, source=text, snapshot=splice.Snapshot(root))

    @classmethod
    def from_path(cls, path: Path) -> Document:
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as exc:
            msg = f"Cannot read {path}: {exc}"
            raise DocumentError(msg) from exc
        return cls.from_text(text, location=str(path))

    # -- semantic accessors ---------------------------------------------------

    @property
    def version(self) -> str:
        """The ``openapi`` (or legacy ``swagger``) version string, or ``""``."""
        return yml.get_scalar(self.root, "openapi") or yml.get_scalar(self.root, "swagger") or ""

    @property
    def self_uri(self) -> str:
        """The document's ``$self`` identity (OpenAPI 3.2), or ``""``."""
        return yml.get_scalar(self.root, "$self") or ""

    def get(self, *keys: str) -> yaml.Node | None:
        return yml.get_path(self.root, *keys)

    def identities(self) -> frozenset[str]:
        """Every URI under which this document may refer to itself."""
        return frozenset(uri for uri in (self.location, self.self_uri) if uri)

    # -- object-level mutation -----------------------------------------------

    def add_server(self, url: str, description: str | None = None) -> None:
        """Append a server entry, creating the ``servers`` list when needed."""
        servers = yml.get_value(self.root, "servers")
        if not isinstance(servers, yaml.SequenceNode):
            servers = yml.create_sequence_node()
            yml.set_map_element(self.root, "servers", servers)
        pairs: list[tuple[str, yaml.Node]] = [("url", yml.create_string_node(url))]
        if description:
            pairs.append(("description", yml.create_string_node(description)))
        servers.value.append(yml.create_map_node(pairs))

    def dump(self) -> str:
        if self.snapshot is None:
            return yml.serialize(self.root)
        return splice.render(self.root, self.source, self.snapshot)
