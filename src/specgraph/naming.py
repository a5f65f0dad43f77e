"""Identifier case conversion for generated type names.

Schema keys in real documents mix every convention (``pet_store``,
``Pet-Store``, ``petStore``, ``HTTPError``). Code generators need one stable
spelling per schema, so :class:`~specgraph.parser.resolver.ReferenceResolver`
runs every key through :func:`pascal_case` before exposing it in
``schemas``.
"""

from __future__ import annotations

import re

_NON_WORD = re.compile(r"[^a-zA-Z0-9\s_-]")
_EDGE_SEPARATORS = re.compile(r"^[_-]+|[_-]+$")
_LOWER_UPPER = re.compile(r"([a-z0-9])([A-Z])")
_ACRONYM_WORD = re.compile(r"([A-Z])([A-Z][a-z])")
_SEPARATORS = re.compile(r"[_-]+")
_WHITESPACE = re.compile(r"\s+")


def _words(value: str) -> list[str]:
    """Split *value* into lower-case words on case changes and separators."""
    if not value:
        return []
    normalized = _NON_WORD.sub(" ", value)
    normalized = _EDGE_SEPARATORS.sub("", normalized)
    normalized = _LOWER_UPPER.sub(r"\1 \2", normalized)
    normalized = _ACRONYM_WORD.sub(r"\1 \2", normalized)
    normalized = _SEPARATORS.sub(" ", normalized)
    normalized = _WHITESPACE.sub(" ", normalized).strip().lower()
    return normalized.split(" ") if normalized else []


def pascal_case(value: str) -> str:
    """Convert *value* to PascalCase.

    Example::

        pascal_case("pet_store")  # "PetStore"
        pascal_case("HTTPError")  # "HttpError"
    """
    return "".join(word[:1].upper() + word[1:] for word in _words(value))


def camel_case(value: str) -> str:
    """Convert *value* to camelCase."""
    words = _words(value)
    if not words:
        return ""
    return words[0] + "".join(word[:1].upper() + word[1:] for word in words[1:])
