"""URI and JSON Pointer helpers shared by the validator and the resolver.

The predicates here are deliberately permissive: :func:`is_uri_reference`
accepts any whitespace-free string made of RFC 3986 reserved, unreserved and
percent-encoded characters (so ``foo:bar:baz`` passes), because documents in
the wild use loose identifiers for ``$self``, ``$id`` and ``$ref``.
"""

from __future__ import annotations

import re
from typing import Any
from urllib.parse import unquote, urljoin, urlsplit

_WHITESPACE = re.compile(r"\s")
_SCHEME = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.-]*$")
_SCHEME_PREFIX = re.compile(r"^([^:/?#]+):")
_ABSOLUTE_IRI = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.-]*:")
_URI_CHARACTERS = re.compile(r"^[A-Za-z0-9\-._~:/?#\[\]@!$&'()*+,;=%]+$")
_EMAIL = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

# Schemes whose URLs are unusable without an authority component.
_HOST_SCHEMES = frozenset({"http", "https", "ws", "wss", "ftp"})


def is_url(value: Any) -> bool:
    """Return ``True`` if *value* parses as an absolute URL.

    Args:
        value: Candidate string.

    Returns:
        ``True`` when the value has a valid scheme (and a host for
        ``http``/``https``-like schemes).
    """
    if not isinstance(value, str) or not value:
        return False
    try:
        parts = urlsplit(value)
    except ValueError:
        return False
    if not parts.scheme or not _SCHEME.match(parts.scheme):
        return False
    if parts.scheme.lower() in _HOST_SCHEMES and not parts.netloc:
        return False
    return True


def is_absolute_iri(value: Any) -> bool:
    """Return ``True`` if *value* starts with a syntactically valid scheme."""
    return isinstance(value, str) and bool(_ABSOLUTE_IRI.match(value))


def is_uri_reference(value: Any) -> bool:
    """Return ``True`` if *value* is an acceptable URI reference.

    Accepts absolute URLs, and otherwise any whitespace-free string made only
    of RFC 3986 reserved/unreserved/percent-encoded characters whose
    scheme-like prefix, if any, is a valid scheme.
    """
    if not isinstance(value, str) or not value:
        return False
    if _WHITESPACE.search(value):
        return False
    if is_url(value):
        return True

    scheme_match = _SCHEME_PREFIX.match(value)
    if scheme_match and not _SCHEME.match(scheme_match.group(1)):
        return False

    return bool(_URI_CHARACTERS.match(value))


def is_email_address(value: Any) -> bool:
    """Pragmatic ``local@domain.tld`` check."""
    return isinstance(value, str) and bool(_EMAIL.match(value))


def join_uri(base: str, reference: str) -> str:
    """Resolve *reference* against *base* (RFC 3986 section 5)."""
    if not reference:
        return base
    return urljoin(base, reference)


def split_reference(ref: str) -> tuple[str, str | None]:
    """Split ``document#fragment`` into its document part and decoded fragment.

    The fragment is percent-decoded; ``None`` means the reference carries no
    ``#`` at all.
    """
    document, sep, fragment = ref.partition("#")
    if not sep:
        return document, None
    return document, decode_fragment(fragment)


def strip_fragment(uri: str) -> str:
    """Return *uri* without its ``#fragment``."""
    return uri.split("#", 1)[0]


def decode_fragment(fragment: str) -> str:
    """Percent-decode a URI fragment, keeping it verbatim if it cannot be decoded."""
    try:
        return unquote(fragment, errors="strict")
    except UnicodeDecodeError:
        return fragment


def unescape_pointer_segment(segment: str) -> str:
    """Undo RFC 6901 escaping: ``~1`` becomes ``/`` and then ``~0`` becomes ``~``."""
    return segment.replace("~1", "/").replace("~0", "~")


def walk_json_pointer(root: Any, pointer: str) -> Any:
    """Follow a JSON Pointer (without the leading ``#``) from *root*.

    Empty segments are skipped, so ``/components//schemas`` behaves like
    ``/components/schemas``. List segments must be decimal indexes.

    Args:
        root: The node the pointer is evaluated against.
        pointer: ``""`` (the root itself) or a ``/``-prefixed pointer.

    Returns:
        The node the pointer designates.

    Raises:
        LookupError: If a segment does not exist or the pointer is malformed.
    """
    if pointer == "":
        return root
    if not pointer.startswith("/"):
        raise LookupError(f"JSON Pointer must start with '/': {pointer!r}")

    current = root
    for raw in pointer[1:].split("/"):
        if raw == "":
            continue
        segment = unescape_pointer_segment(raw)
        if isinstance(current, dict):
            if segment not in current:
                raise LookupError(f"key {segment!r} not found")
            current = current[segment]
        elif isinstance(current, list):
            if not segment.isdigit() or int(segment) >= len(current):
                raise LookupError(f"invalid array index {segment!r}")
            current = current[int(segment)]
        else:
            raise LookupError(f"cannot navigate into {type(current).__name__}")
    return current
