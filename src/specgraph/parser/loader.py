"""Load OpenAPI/Swagger documents from a URL, local file, or stdin.

This module handles all I/O: fetching raw documents, converting them into
Python dictionaries, and following external references until every document
the entry document depends on is in memory. JSON and YAML are both accepted
with automatic format detection.

The public functions are:

* :func:`load_spec` -- Load and parse one document from any supported source.
* :func:`detect_spec_version` -- Report whether a document is Swagger 2.0 or
  OpenAPI 3.x, and which version string it declares.
* :func:`load_spec_graph` -- Load a document plus its external-reference
  closure into a document cache for
  :class:`~specgraph.parser.resolver.ReferenceResolver`.
"""

from __future__ import annotations

import json
import logging
import sys
from collections import deque
from pathlib import Path
from typing import Any, Optional
from urllib.parse import urlsplit
from urllib.request import url2pathname

import httpx
import yaml

from specgraph.exceptions import SpecParseError, SpecValidationError
from specgraph.models import LoadedSpec, LoaderConfig, SpecVersion
from specgraph.parser.extractor import iter_operations
from specgraph.parser.resolver import (
    ReferenceResolver,
    document_base_uri,
    is_api_document,
)
from specgraph.parser.uri import join_uri, split_reference, strip_fragment
from specgraph.parser.validator import validate_spec

logger = logging.getLogger(__name__)

_STDIN_URI = "file:///stdin"


def load_spec(source: str, config: Optional[LoaderConfig] = None) -> dict[str, Any]:
    """Load a spec from URL, file path, or stdin ('-').

    Supports JSON and YAML formats.
    Auto-detects format from content/extension.

    Args:
        source: A URL (http/https or file), file path, or '-' for stdin.
        config: HTTP settings; defaults to :class:`~specgraph.models.LoaderConfig`.

    Returns:
        The parsed spec as a dictionary.

    Raises:
        SpecParseError: If the source cannot be loaded or parsed.
    """
    config = config or LoaderConfig()
    if source == "-":
        return _load_from_stdin()
    elif source.startswith(("http://", "https://")):
        return _load_from_url(source, config)
    elif source.startswith("file:"):
        return _load_from_file(url2pathname(urlsplit(source).path))
    else:
        return _load_from_file(source)


def _load_from_stdin() -> dict[str, Any]:
    """Read spec from stdin.

    Reads all available input and attempts to parse as JSON, then YAML.

    Raises:
        SpecParseError: If stdin is empty or content cannot be parsed.
    """
    try:
        content = sys.stdin.read()
    except OSError as exc:
        raise SpecParseError(f"Failed to read from stdin: {exc}") from exc

    if not content.strip():
        raise SpecParseError("No input received from stdin")

    return _parse_content(content, hint="stdin")


def _load_from_url(url: str, config: LoaderConfig) -> dict[str, Any]:
    """Fetch spec from URL. Supports JSON and YAML responses.

    Raises:
        SpecParseError: If the URL cannot be fetched or content cannot be parsed.
    """
    try:
        response = httpx.get(
            url,
            timeout=config.timeout,
            follow_redirects=config.follow_redirects,
            verify=config.verify_ssl,
        )
        response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        raise SpecParseError(
            f"HTTP {exc.response.status_code} fetching spec from {url}"
        ) from exc
    except httpx.RequestError as exc:
        raise SpecParseError(f"Failed to fetch spec from {url}: {exc}") from exc

    content = response.text
    # Use content-type as a hint for parsing
    content_type = response.headers.get("content-type", "")
    hint = ""
    if "json" in content_type:
        hint = "json"
    elif "yaml" in content_type or "yml" in content_type:
        hint = "yaml"

    return _parse_content(content, hint=hint)


def _load_from_file(path: str) -> dict[str, Any]:
    """Load spec from local file.

    Supports .json, .yaml, and .yml extensions. Falls back to content-based
    detection if the extension is not recognized.

    Raises:
        SpecParseError: If the file cannot be read or content cannot be parsed.
    """
    file_path = Path(path)
    if not file_path.is_file():
        raise SpecParseError(f"Spec file not found: {path}")

    try:
        content = file_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise SpecParseError(f"Failed to read spec file {path}: {exc}") from exc

    if not content.strip():
        raise SpecParseError(f"Spec file is empty: {path}")

    suffix = file_path.suffix.lower()
    hint = ""
    if suffix == ".json":
        hint = "json"
    elif suffix in (".yaml", ".yml"):
        hint = "yaml"

    return _parse_content(content, hint=hint)


def _parse_content(content: str, hint: str = "") -> dict[str, Any]:
    """Parse content as JSON or YAML.

    Tries JSON first (unless hint is 'yaml'), then falls back to YAML.
    Valid JSON is also valid YAML, but JSON parsing is stricter and faster.

    Args:
        content: The raw string content.
        hint: Optional format hint ('json' or 'yaml').

    Returns:
        The parsed dictionary.

    Raises:
        SpecParseError: If the content cannot be parsed as either format.
    """
    json_error: Exception | None = None
    yaml_error: Exception | None = None

    if hint != "yaml":
        try:
            result = json.loads(content)
        except json.JSONDecodeError as exc:
            json_error = exc
            # If the hint was explicitly JSON, don't try YAML
            if hint == "json":
                raise SpecParseError(f"Invalid JSON: {exc}") from exc
        else:
            if not isinstance(result, dict):
                raise SpecParseError(
                    f"Spec must be a JSON/YAML object (got {type(result).__name__})"
                )
            return result

    try:
        result = yaml.safe_load(content)
    except yaml.YAMLError as exc:
        yaml_error = exc
    else:
        if not isinstance(result, dict):
            raise SpecParseError(
                "Spec must be a JSON/YAML object (got "
                f"{type(result).__name__ if result is not None else 'empty document'})"
            )
        return result

    msg = "Failed to parse spec as JSON or YAML"
    if json_error:
        msg += f"\n  JSON error: {json_error}"
    if yaml_error:
        msg += f"\n  YAML error: {yaml_error}"
    raise SpecParseError(msg)


def detect_spec_version(spec: Any) -> Optional[SpecVersion]:
    """Report which family and version a document declares.

    Args:
        spec: A parsed document.

    Returns:
        ``SpecVersion(type="swagger", ...)`` for Swagger 2.0,
        ``SpecVersion(type="openapi", ...)`` for OpenAPI 3.x, or ``None``
        when the document declares neither.
    """
    if not isinstance(spec, dict):
        return None
    if isinstance(spec.get("swagger"), str):
        return SpecVersion(type="swagger", version=spec["swagger"])
    if isinstance(spec.get("openapi"), str):
        return SpecVersion(type="openapi", version=spec["openapi"])
    return None


# --- Document graph ---


def source_uri(source: str) -> str:
    """Return the canonical URI of a :func:`load_spec` source."""
    if source == "-":
        return _STDIN_URI
    if source.startswith(("http://", "https://", "file:")):
        return strip_fragment(source)
    return Path(source).resolve().as_uri()


def _fetch(uri: str, config: LoaderConfig) -> dict[str, Any]:
    if uri.startswith(("http://", "https://", "file:")):
        return load_spec(uri, config)
    raise SpecParseError(f"Unsupported URI scheme for external document: {uri}")


def _external_targets(document: Any, base_uri: str) -> list[str]:
    """Return the retrieval URIs of every external document *document* refers to."""
    refs = ReferenceResolver.find_refs(document) + _find_operation_refs(document)
    targets: dict[str, None] = {}
    for ref in refs:
        document_part, _ = split_reference(ref)
        if document_part:
            targets.setdefault(strip_fragment(join_uri(base_uri, document_part)), None)
    return list(targets)


def _find_operation_refs(node: Any) -> list[str]:
    found: list[str] = []
    stack = [node]
    seen: set[int] = set()
    while stack:
        current = stack.pop()
        if isinstance(current, list):
            stack.extend(current)
        elif isinstance(current, dict) and id(current) not in seen:
            seen.add(id(current))
            if isinstance(current.get("operationRef"), str):
                found.append(current["operationRef"])
            stack.extend(current.values())
    return found


def load_spec_graph(source: str, config: Optional[LoaderConfig] = None) -> LoadedSpec:
    """Load a document and every document reachable through external references.

    Each document is stored in the cache under its retrieval URI and, when a
    ``$self`` rebases it, under that URI too. ``$id``, ``$anchor`` and
    ``$dynamicAnchor`` targets are indexed per document. External documents
    that fail to load are logged and skipped so the remaining graph stays
    usable; the resolver reports the affected references later.

    Args:
        source: Entry document, as accepted by :func:`load_spec`.
        config: Loader settings.

    Returns:
        The entry document, the populated cache and the entry URI.

    Raises:
        SpecParseError: If the entry document cannot be loaded.
        SpecValidationError: If a loaded OpenAPI/Swagger document is invalid,
            or if two documents declare the same ``operationId``.
    """
    config = config or LoaderConfig()
    entry_uri = source_uri(source)
    entry = load_spec(source, config)

    cache: dict[str, Any] = {}
    visited: set[str] = {entry_uri}
    pending: deque[tuple[str, dict[str, Any]]] = deque([(entry_uri, entry)])

    while pending:
        uri, document = pending.popleft()
        logger.debug("Loaded document %s", uri)

        if config.validate_documents and is_api_document(document):
            validate_spec(document)

        base_uri = document_base_uri(document, uri)
        cache.setdefault(uri, document)
        cache.setdefault(base_uri, document)
        ReferenceResolver.index_schema_ids(document, base_uri, cache)

        for target in _external_targets(document, base_uri):
            if target in visited or target in cache:
                continue
            visited.add(target)
            if len(visited) > config.max_documents:
                logger.warning(
                    "Not loading %s: document limit of %d reached", target, config.max_documents
                )
                continue
            try:
                pending.append((target, _fetch(target, config)))
            except SpecParseError as exc:
                logger.warning("Failed to load external document %s: %s", target, exc)

    _check_operation_ids_across_documents(cache)
    return LoadedSpec(entry=entry, cache=cache, document_uri=entry_uri)


def _check_operation_ids_across_documents(cache: dict[str, Any]) -> None:
    locations: dict[str, list[str]] = {}
    seen_documents: set[int] = set()

    def collect(path_items: Any, prefix: str) -> None:
        if not isinstance(path_items, dict):
            return
        for path_key, path_item in path_items.items():
            if not isinstance(path_item, dict) or "$ref" in path_item or "$dynamicRef" in path_item:
                continue
            for method, operation in iter_operations(path_item):
                operation_id = operation.get("operationId")
                if operation_id:
                    locations.setdefault(operation_id, []).append(
                        f"{prefix}{method.label} {path_key}"
                    )

    for uri, document in cache.items():
        if not is_api_document(document) or id(document) in seen_documents:
            continue
        seen_documents.add(id(document))

        prefix = f"{uri}::"
        collect(document.get("paths"), f"{prefix}paths.")
        collect(document.get("webhooks"), f"{prefix}webhooks.")

        components = document.get("components")
        if not isinstance(components, dict):
            continue
        collect(components.get("pathItems"), f"{prefix}components.pathItems.")
        collect(components.get("webhooks"), f"{prefix}components.webhooks.")
        callbacks = components.get("callbacks")
        if isinstance(callbacks, dict):
            for name, callback in callbacks.items():
                if isinstance(callback, dict) and "$ref" not in callback:
                    collect(callback, f"{prefix}components.callbacks.{name}.")

    for operation_id, found in locations.items():
        if len(found) > 1:
            raise SpecValidationError(
                f'Duplicate operationId "{operation_id}" found across OpenAPI documents: '
                f"{', '.join(found)}"
            )
