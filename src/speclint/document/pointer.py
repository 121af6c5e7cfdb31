"""JSON pointer and ``$ref`` string handling."""

from __future__ import annotations

import posixpath
from dataclasses import dataclass
from urllib.parse import unquote, urljoin

COMPONENTS_PREFIX = "/components/"


def escape(token: str) -> str:
    """Escape a single reference token (RFC 6901)."""
    return token.replace("~", "~0").replace("/", "~1")


def unescape(token: str) -> str:
    return token.replace("~1", "/").replace("~0", "~")


def join(*tokens: str) -> str:
    """Build a pointer from raw (unescaped) tokens."""
    return "".join("/" + escape(token) for token in tokens)


def split(pointer: str) -> list[str]:
    """Split a pointer into unescaped tokens.  ``""`` is the whole document."""
    if not pointer:
        return []
    if not pointer.startswith("/"):
        msg = f"invalid JSON pointer {pointer!r}: must start with '/'"
        raise ValueError(msg)
    return [unescape(part) for part in pointer[1:].split("/")]


@dataclass(frozen=True)
class Reference:
    """A parsed ``$ref`` value: document URI plus fragment pointer."""

    raw: str
    uri: str
    pointer: str

    @property
    def is_local(self) -> bool:
        return self.uri == ""


def parse_reference(ref: str) -> Reference:
    """Split ``other.yaml#/components/schemas/Pet`` into its URI and pointer.

    The fragment is percent-decoded; the pointer keeps its ``~0``/``~1``
    escapes so it can be compared against pointers built with :func:`join`.
    """
    uri, _sep, fragment = ref.partition("#")
    return Reference(raw=ref, uri=uri, pointer=unquote(fragment))


def component_pointer(pointer: str) -> str | None:
    """Normalize *pointer* to its ``/components/{kind}/{name}`` ancestor.

    ``/components/schemas/Pet/properties/name`` becomes
    ``/components/schemas/Pet``.  Returns ``None`` for pointers outside
    ``/components`` or without both a kind and a name.
    """
    if not pointer.startswith(COMPONENTS_PREFIX):
        return None
    parts = pointer[len(COMPONENTS_PREFIX) :].split("/", 2)
    if len(parts) < 2 or not parts[0] or not parts[1]:
        return None
    return f"{COMPONENTS_PREFIX}{parts[0]}/{parts[1]}"


def resolve_uri(base: str, uri: str) -> str:
    """Resolve a reference *uri* against the location of the referring document."""
    if not uri:
        return base
    if uri.startswith(("http://", "https://", "/")):
        return uri
    if base.startswith(("http://", "https://")):
        return urljoin(base, uri)
    directory = posixpath.dirname(base)
    return posixpath.normpath(posixpath.join(directory, uri)) if directory else posixpath.normpath(uri)


def is_remote(location: str) -> bool:
    return location.startswith(("http://", "https://"))
