"""Resolve ``$ref`` and ``$dynamicRef`` references across a set of documents.

:class:`ReferenceResolver` answers one question: *which node does this
reference designate?* It works against a read-only mapping of canonical URIs
to parsed nodes (the *document cache*). The cache holds every document of the
external-reference closure under its retrieval URI (and ``$self`` alias), and
every ``$id`` / ``$anchor`` / ``$dynamicAnchor`` target as indexed by
:meth:`ReferenceResolver.index_schema_ids`. Fetching documents is the job of
:mod:`specgraph.parser.loader`; the resolver itself performs no I/O.

Resolution never copies: resolving the same reference twice yields the very
same node object. References whose target is itself a reference are *not*
followed; callers that need the final target call :meth:`~ReferenceResolver.resolve`
again.

Failures are recoverable. A dangling pointer, an unknown anchor or a missing
external document yields ``None`` (and a logged warning) so that generation
can fall back to an untyped placeholder instead of aborting.

Example::

    resolver = ReferenceResolver(spec)
    pet = resolver.resolve({"$ref": "#/components/schemas/Pet"})
    assert pet is spec["components"]["schemas"]["Pet"]
"""

from __future__ import annotations

import logging
from collections import ChainMap
from collections.abc import Iterator, Mapping, Sequence
from typing import Any, Optional

from specgraph.models import Concrete, DynamicRef, NamedSchema, Ref, schema_or_ref
from specgraph.naming import pascal_case
from specgraph.parser.uri import (
    join_uri,
    split_reference,
    strip_fragment,
    walk_json_pointer,
)

logger = logging.getLogger(__name__)

DEFAULT_DOCUMENT_URI = "file:///entry-spec.json"
"""Retrieval URI assumed for a document that was handed over in memory."""

# Keys that mark a standalone JSON Schema document
_SCHEMA_DOCUMENT_KEYS = (
    "$id",
    "$schema",
    "type",
    "properties",
    "items",
    "allOf",
    "anyOf",
    "oneOf",
    "enum",
    "const",
    "additionalProperties",
    "patternProperties",
    "prefixItems",
    "contentMediaType",
    "contentSchema",
)


def document_base_uri(document: Any, document_uri: str) -> str:
    """Return the logical base URI of *document*: its URI joined with ``$self``."""
    if isinstance(document, dict) and isinstance(document.get("$self"), str):
        return join_uri(document_uri, document["$self"])
    return document_uri


def is_api_document(document: Any) -> bool:
    """Return ``True`` for an OpenAPI or Swagger root object."""
    return isinstance(document, dict) and (
        isinstance(document.get("openapi"), str) or isinstance(document.get("swagger"), str)
    )


def _document_schemas(document: Any) -> Optional[dict[str, Any]]:
    """Return ``definitions`` (Swagger 2.0) or ``components.schemas`` (OpenAPI 3.x)."""
    if not isinstance(document, dict):
        return None
    definitions = document.get("definitions")
    if isinstance(definitions, dict):
        return definitions
    components = document.get("components")
    if isinstance(components, dict) and isinstance(components.get("schemas"), dict):
        return components["schemas"]
    return None


def _iter_scoped_nodes(root: Any, base_uri: str) -> Iterator[tuple[dict[str, Any], str]]:
    """Yield every object under *root* with the base URI in effect for it.

    A ``$id`` rebases the object that declares it and everything below it.
    Each object is visited once even if it is reachable along several paths.
    """
    visited: set[int] = set()
    stack: list[tuple[Any, str]] = [(root, base_uri)]

    while stack:
        node, base = stack.pop()
        if isinstance(node, list):
            stack.extend((item, base) for item in reversed(node))
            continue
        if not isinstance(node, dict) or id(node) in visited:
            continue
        visited.add(id(node))

        schema_id = node.get("$id")
        if isinstance(schema_id, str):
            base = strip_fragment(join_uri(base, schema_id))

        yield node, base
        stack.extend((value, base) for value in reversed(list(node.values())))


class ReferenceResolver:
    """Resolve references of one entry document against a document cache.

    Args:
        document: The entry document (already validated).
        cache: Optional read-only mapping of canonical URIs to parsed nodes,
            as built by :func:`~specgraph.parser.loader.load_spec_graph`. It
            is never mutated. When omitted, a private cache holding only
            *document* is built and indexed.
        document_uri: Retrieval URI of *document*.
    """

    def __init__(
        self,
        document: Any,
        cache: Optional[Mapping[str, Any]] = None,
        document_uri: str = DEFAULT_DOCUMENT_URI,
    ) -> None:
        self.document = document
        self.document_uri = document_uri

        # The entry document is always resolvable, even when the supplied
        # cache was built for a different set of documents.
        local: dict[str, Any] = {document_uri: document}
        base_uri = document_base_uri(document, document_uri)
        if base_uri != document_uri:
            local[base_uri] = document
        self.index_schema_ids(document, base_uri, local)

        self._cache: Mapping[str, Any] = local if cache is None else ChainMap(local, cache)
        self._base_uris = self._collect_base_uris()
        self._schemas: Optional[list[NamedSchema]] = None

    # --- Indexing ---

    @staticmethod
    def index_schema_ids(document: Any, document_uri: str, cache: dict[str, Any]) -> None:
        """Register every ``$id``, ``$anchor`` and ``$dynamicAnchor`` of *document* in *cache*.

        Must run for every document of the external-reference closure before
        any resolution. Existing entries are kept (first registration wins).

        Args:
            document: A parsed document.
            document_uri: The document's logical base URI (retrieval URI
                joined with ``$self``).
            cache: The document cache to populate.
        """
        for node, base in _iter_scoped_nodes(document, document_uri):
            if isinstance(node.get("$id"), str):
                if base not in cache:
                    logger.debug("Indexed $id %s", base)
                cache.setdefault(base, node)
            for keyword in ("$anchor", "$dynamicAnchor"):
                anchor = node.get(keyword)
                if isinstance(anchor, str):
                    cache.setdefault(f"{base}#{anchor}", node)

    @staticmethod
    def find_refs(obj: Any) -> list[str]:
        """Return every distinct ``$ref`` / ``$dynamicRef`` string under *obj*, in document order."""
        refs: dict[str, None] = {}
        for node, _ in _iter_scoped_nodes(obj, ""):
            for keyword in ("$ref", "$dynamicRef"):
                value = node.get(keyword)
                if isinstance(value, str):
                    refs.setdefault(value, None)
        return list(refs)

    def _collect_base_uris(self) -> dict[int, str]:
        """Map every object of every cached document to its base URI."""
        bases: dict[int, str] = {}
        for uri, node in self._cache.items():
            if "#" in uri or not isinstance(node, (dict, list)) or id(node) in bases:
                continue
            for child, base in _iter_scoped_nodes(node, document_base_uri(node, uri)):
                bases.setdefault(id(child), base)
        return bases

    # --- Resolution ---

    def resolve(self, obj: Any, resolution_stack: Sequence[str] = ()) -> Any:
        """Return the node designated by *obj*.

        Args:
            obj: An inline node, a ``{"$ref": ...}`` / ``{"$dynamicRef": ...}``
                wrapper, or an already-classified :data:`~specgraph.models.SchemaOrRef`.
            resolution_stack: URIs of the enclosing resolution scopes,
                outermost first, consulted by ``$dynamicRef``.

        Returns:
            The node itself when *obj* is not a reference, the target node
            otherwise, or ``None`` when the reference cannot be resolved.
        """
        target = schema_or_ref(obj)
        if isinstance(target, Concrete):
            return target.node

        base = self._base_uris.get(id(obj)) if isinstance(obj, dict) else None
        if base is None:
            base = document_base_uri(self.document, self.document_uri)
        if isinstance(target, (Ref, DynamicRef)):
            return self._resolve_at(target.ref, base, resolution_stack)
        return None

    def resolve_reference(
        self,
        ref: str,
        current_document_uri: Optional[str] = None,
        resolution_stack: Sequence[str] = (),
    ) -> Any:
        """Resolve a reference string.

        Args:
            ref: A URI reference such as ``"#/components/schemas/Pet"``,
                ``"common.yaml#/Error"`` or ``"https://example.com/s.json#node"``.
            current_document_uri: Retrieval URI of the document containing
                *ref*; defaults to the entry document.
            resolution_stack: Enclosing scopes for dynamic anchors.

        Returns:
            The target node, or ``None`` when it cannot be resolved.
        """
        if not isinstance(ref, str):
            return None
        document_uri = current_document_uri or self.document_uri
        base = document_base_uri(self._cache.get(document_uri), document_uri)
        return self._resolve_at(ref, base, resolution_stack)

    def _resolve_at(self, ref: str, base_uri: str, resolution_stack: Sequence[str]) -> Any:
        document_part, fragment = split_reference(ref)
        target_uri = join_uri(base_uri, document_part) if document_part else strip_fragment(base_uri)

        # Dynamic anchors: the outermost scope defining the anchor wins
        if fragment and not fragment.startswith("/"):
            for scope in resolution_stack:
                dynamic_key = f"{strip_fragment(scope)}#{fragment}"
                if dynamic_key in self._cache:
                    return self._cache[dynamic_key]

        # $id and $anchor targets
        full_key = f"{target_uri}#{fragment}" if fragment else target_uri
        if full_key in self._cache:
            return self._cache[full_key]

        target = self._cache.get(target_uri)
        if target is None:
            if document_part:
                logger.warning(
                    "Unresolved external document reference: %s (document was not loaded)",
                    target_uri,
                )
            return None

        if not fragment:
            return target
        if not fragment.startswith("/"):
            logger.warning("Failed to resolve anchor %r in %r within %s", fragment, ref, target_uri)
            return None
        try:
            return walk_json_pointer(target, fragment)
        except LookupError as exc:
            logger.warning("Failed to resolve %r within %s: %s", ref, target_uri, exc)
            return None

    # --- Named schemas ---

    @property
    def schemas(self) -> list[NamedSchema]:
        """Every named schema, in a stable order, under its PascalCase name.

        The entry document's ``definitions`` / ``components.schemas`` come
        first, then those of every other cached OpenAPI document, then
        standalone JSON Schema documents (named after their ``$id`` or URI).
        On a name clash the first occurrence wins.
        """
        if self._schemas is None:
            self._schemas = self._collect_schemas()
        return self._schemas

    def get_definition(self, name: str) -> Any:
        """Return the entry document's schema called *name* (raw key), or ``None``."""
        definitions = _document_schemas(self.document) or {}
        return definitions.get(name)

    def _collect_schemas(self) -> list[NamedSchema]:
        named: dict[str, Any] = {}
        included: set[int] = set()
        seen_documents: set[int] = {id(self.document)}

        def add(name: str, definition: Any, origin: str) -> None:
            if name not in named:
                named[name] = definition
                included.add(id(definition))
            elif named[name] is not definition:
                logger.warning(
                    "Duplicate schema name %r encountered in %s; keeping first occurrence",
                    name,
                    origin,
                )

        for name, definition in (_document_schemas(self.document) or {}).items():
            add(pascal_case(name), definition, self.document_uri)

        synthetic = 0
        for uri, document in self._cache.items():
            if not isinstance(document, dict) or id(document) in seen_documents:
                continue
            seen_documents.add(id(document))

            definitions = _document_schemas(document)
            if definitions is not None:
                for name, definition in definitions.items():
                    add(pascal_case(name), definition, uri)
                continue

            if _is_schema_document(document) and id(document) not in included:
                synthetic += 1
                add(_derive_schema_name(uri, document, synthetic), document, uri)

        return [NamedSchema(name=name, definition=definition) for name, definition in named.items()]


def _is_schema_document(candidate: dict[str, Any]) -> bool:
    if any(key in candidate for key in ("openapi", "swagger", "info", "paths")):
        return False
    return any(key in candidate for key in _SCHEMA_DOCUMENT_KEYS)


def _derive_schema_name(uri: str, schema: dict[str, Any], fallback_index: int) -> str:
    """Name a standalone schema after the last segment of its ``$id`` or URI."""
    source = schema["$id"] if isinstance(schema.get("$id"), str) else uri
    path = source.split("#", 1)[0].split("?", 1)[0]
    segments = [segment for segment in path.split("/") if segment]
    if not segments:
        return f"Schema{fallback_index}"
    stem = segments[-1].rsplit(".", 1)[0] if "." in segments[-1] else segments[-1]
    return pascal_case(stem) or f"Schema{fallback_index}"
