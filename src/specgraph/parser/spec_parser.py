"""The :class:`SpecParser` facade: one validated document, ready for generators.

Constructing a parser validates the document, indexes it, builds a
:class:`~specgraph.parser.resolver.ReferenceResolver` and extracts its
operations and webhooks. Everything else is a read-only view computed from
those.

Typical usage::

    parser = SpecParser.from_source("openapi.yaml")
    for schema in parser.schemas:
        print(schema.name)
    for op in parser.operations:
        print(op.method, op.path, op.operation_id)
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Mapping, Sequence
from typing import Any, Optional
from urllib.parse import urlsplit

from specgraph.exceptions import SpecValidationError
from specgraph.models import (
    APIOperation,
    NamedSchema,
    ParserConfig,
    PolymorphicOption,
    SpecgraphConfig,
    SpecVersion,
)
from specgraph.parser import composition
from specgraph.parser.extractor import extract_operations
from specgraph.parser.loader import detect_spec_version, load_spec_graph
from specgraph.parser.resolver import ReferenceResolver
from specgraph.parser.uri import join_uri
from specgraph.parser.validator import validate_spec

logger = logging.getLogger(__name__)

OAS_3_1_DIALECT = "https://spec.openapis.org/oas/3.1/dialect/base"

# Dialects a generator understands without further configuration
_KNOWN_DIALECTS = frozenset(
    {
        OAS_3_1_DIALECT,
        "https://spec.openapis.org/oas/3.2/dialect/base",
        "https://json-schema.org/draft/2020-12/schema",
    }
)

_OPENAPI_MINOR = re.compile(r"^3\.(\d+)")


class SpecParser:
    """Validated view of one OpenAPI/Swagger document and its reference graph.

    Args:
        spec: The parsed entry document.
        config: Parser settings.
        cache: Document cache from :func:`~specgraph.parser.loader.load_spec_graph`.
            When omitted, the document is indexed on its own.
        document_uri: Retrieval URI of *spec*; defaults to
            ``config.default_document_uri``.
        validate_input: Extra user-supplied check run after structural
            validation.

    Raises:
        SpecValidationError: If the document breaks a structural rule, if
            *validate_input* rejects it, or if two extracted operations share
            an ``operationId``.
    """

    def __init__(
        self,
        spec: Any,
        config: Optional[ParserConfig] = None,
        cache: Optional[Mapping[str, Any]] = None,
        document_uri: Optional[str] = None,
        validate_input: Optional[Callable[[Any], bool]] = None,
    ) -> None:
        validate_spec(spec)
        if validate_input is not None and not validate_input(spec):
            raise SpecValidationError("Custom input validation failed.")

        self.spec: dict[str, Any] = spec
        self.config = config or ParserConfig()
        self.document_uri = document_uri or self.config.default_document_uri
        self.resolver = ReferenceResolver(spec, cache, self.document_uri)

        dialect = spec.get("jsonSchemaDialect")
        if self.config.warn_on_custom_dialect and dialect and dialect not in _KNOWN_DIALECTS:
            logger.warning("Custom jsonSchemaDialect %r; schemas are read as JSON Schema 2020-12", dialect)

        self.servers = self._resolve_servers(spec.get("servers"))

        consumes = spec.get("consumes") if "swagger" in spec else None
        self.operations = self._with_resolved_servers(
            extract_operations(spec.get("paths"), self.resolver, spec.get("security"), consumes)
        )
        self.webhooks = self._with_resolved_servers(
            extract_operations(spec.get("webhooks"), self.resolver, spec.get("security"), consumes)
        )
        self._check_operation_ids()

        self.security_schemes = self._collect_security_schemes()
        self.links = self._collect_links()

    @classmethod
    def from_source(
        cls,
        source: str,
        config: Optional[SpecgraphConfig] = None,
        validate_input: Optional[Callable[[Any], bool]] = None,
    ) -> SpecParser:
        """Load *source* and every document it references, then build a parser.

        Args:
            source: File path, URL or ``-`` for stdin.
            config: Effective configuration, e.g. from
                :func:`~specgraph.config.resolve_config`.
            validate_input: See :class:`SpecParser`.
        """
        config = config or SpecgraphConfig()
        loaded = load_spec_graph(source, config.loader)
        return cls(
            loaded.entry,
            config=config.parser,
            cache=loaded.cache,
            document_uri=loaded.document_uri,
            validate_input=validate_input,
        )

    # --- Schemas and references ---

    @property
    def schemas(self) -> list[NamedSchema]:
        """Every named schema of the document graph (see :attr:`ReferenceResolver.schemas`)."""
        return self.resolver.schemas

    def get_definition(self, name: str) -> Any:
        return self.resolver.get_definition(name)

    def resolve(self, obj: Any, resolution_stack: Sequence[str] = ()) -> Any:
        return self.resolver.resolve(obj, resolution_stack)

    def resolve_reference(self, ref: str, current_document_uri: Optional[str] = None) -> Any:
        return self.resolver.resolve_reference(ref, current_document_uri)

    def polymorphic_options(self, schema: Any) -> list[PolymorphicOption]:
        """Named variants of a discriminated schema."""
        return composition.polymorphic_options(schema, self.resolver)

    # --- Document metadata ---

    def spec_version(self) -> Optional[SpecVersion]:
        return detect_spec_version(self.spec)

    def json_schema_dialect(self) -> Optional[str]:
        """Return the dialect schemas are written in.

        The document's ``jsonSchemaDialect`` when set, else the OAS base
        dialect for OpenAPI 3.1 and later, else ``None``.
        """
        dialect = self.spec.get("jsonSchemaDialect")
        if dialect:
            return dialect
        version = self.spec.get("openapi")
        match = _OPENAPI_MINOR.match(version) if isinstance(version, str) else None
        if match and int(match.group(1)) >= 1:
            return OAS_3_1_DIALECT
        return None

    # --- Servers ---

    def _resolve_servers(self, servers: Any) -> list[dict[str, Any]]:
        if "swagger" in self.spec:
            return self._swagger_servers(servers)
        if not servers:
            return [{"url": "/"}]
        return self._resolve_server_urls(servers)

    def _resolve_server_urls(self, servers: list[dict[str, Any]]) -> list[dict[str, Any]]:
        """Resolve relative server URLs against the document URI.

        URLs that start with a template variable are kept as written.
        """
        resolved = []
        for server in servers:
            url = server.get("url") if isinstance(server, dict) else None
            if not isinstance(url, str) or not url or url.strip().startswith("{"):
                resolved.append(server)
                continue
            resolved.append({**server, "url": join_uri(self.document_uri, url.strip())})
        return resolved

    def _swagger_servers(self, servers: Any) -> list[dict[str, Any]]:
        """Derive servers from Swagger 2.0 ``host``, ``basePath`` and ``schemes``.

        Missing pieces come from the document URL when it was fetched over
        HTTP. Without any host, only a non-root ``basePath`` yields a
        (relative) server.
        """
        if servers:
            return list(servers)

        document_url = urlsplit(self.document_uri)
        fetched_over_http = document_url.scheme in ("http", "https")

        host = self.spec.get("host") or (document_url.netloc if fetched_over_http else None)
        base_path = self.spec.get("basePath") or "/"
        if not base_path.startswith("/"):
            base_path = f"/{base_path}"

        schemes = self.spec.get("schemes") or (
            [document_url.scheme] if fetched_over_http else ["http"]
        )

        if not host:
            return [{"url": base_path}] if base_path != "/" else []
        return [{"url": f"{scheme}://{host}{base_path}"} for scheme in dict.fromkeys(schemes)]

    def _with_resolved_servers(self, operations: list[APIOperation]) -> list[APIOperation]:
        """Resolve operation-level server URLs; an empty list means ``[{"url": "/"}]``."""
        result = []
        for operation in operations:
            if operation.servers is not None:
                servers = operation.servers or [{"url": "/"}]
                operation = operation.model_copy(
                    update={"servers": self._resolve_server_urls(servers)}
                )
            result.append(operation)
        return result

    # --- Cross-checks and collections ---

    def _check_operation_ids(self) -> None:
        """Reject duplicate operationIds, including those behind ``$ref`` path items."""
        locations: dict[str, list[str]] = {}
        for prefix, operations in (("paths: ", self.operations), ("webhooks: ", self.webhooks)):
            for operation in operations:
                if operation.operation_id:
                    locations.setdefault(operation.operation_id, []).append(
                        f"{prefix}{operation.method.label} {operation.path}"
                    )

        for operation_id, found in locations.items():
            if len(found) > 1:
                raise SpecValidationError(
                    f'Duplicate operationId "{operation_id}" found in multiple operations: '
                    f"{', '.join(found)}"
                )

    def _collect_security_schemes(self) -> dict[str, Any]:
        """Merge ``components.securitySchemes`` with Swagger 2.0 ``securityDefinitions``.

        Security requirements may also name a scheme by reference
        (``"other.yaml#/components/securitySchemes/oauth"``); such schemes are
        resolved and added under the key as written.
        """
        components = self.spec.get("components") or {}
        schemes: dict[str, Any] = {
            **(components.get("securitySchemes") or {}),
            **(self.spec.get("securityDefinitions") or {}),
        }

        requirements = list(self.spec.get("security") or [])
        for operation in (*self.operations, *self.webhooks):
            requirements.extend(operation.security or [])

        for requirement in requirements:
            if not isinstance(requirement, dict):
                continue
            for key in requirement:
                if key in schemes or "#" not in key:
                    continue
                resolved = self.resolver.resolve_reference(key)
                if resolved is not None:
                    schemes[key] = resolved
        return schemes

    def _collect_links(self) -> dict[str, Any]:
        components = self.spec.get("components") or {}
        links: dict[str, Any] = {}
        for name, link in (components.get("links") or {}).items():
            resolved = self.resolver.resolve(link)
            if resolved is not None:
                links[name] = resolved
        return links
