"""Canonical models shared across all specgraph modules.

This is the single source of truth for data shapes in the project. Every other
module imports from here rather than defining its own models. The models fall
into three groups:

**Configuration models** -- loaded from JSON config files and environment:
    :class:`LoaderConfig`, :class:`ParserConfig`, and :class:`SpecgraphConfig`.

**Tagged unions** -- decided once, then pattern-matched by every consumer:
    :class:`HTTPMethod` / :class:`CustomMethod` for the operation keys of a
    Path Item, and :class:`Concrete` / :class:`Ref` / :class:`DynamicRef` for
    a schema-or-reference node (see :func:`schema_or_ref`).

**Parser output models** -- produced by the parser and consumed by code
generators:
    :class:`ParameterLocation`, :class:`APIParameter`,
    :class:`RequestBodyInfo`, :class:`ResponseInfo`, :class:`APIOperation`,
    :class:`SpecVersion`, plus the identity-preserving dataclasses
    :class:`NamedSchema`, :class:`PolymorphicOption`, :class:`MergedSchema`
    and :class:`LoadedSpec`.

Pydantic models copy their container fields on validation, so anything that
must keep the *identity* of a node inside the parsed document (schema
definitions, document caches) is a plain dataclass instead.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


# --- Configuration ---


class LoaderConfig(BaseModel):
    """Settings for fetching a document and its external-reference closure."""

    timeout: float = Field(default=30.0, description="HTTP timeout in seconds")
    verify_ssl: bool = Field(default=True, description="Verify SSL certificates")
    follow_redirects: bool = Field(default=True, description="Follow HTTP redirects")
    max_documents: int = Field(
        default=256,
        ge=1,
        description="Maximum number of documents loaded while following external refs",
    )
    validate_documents: bool = Field(
        default=True,
        description="Validate every loaded OpenAPI/Swagger document",
    )


class ParserConfig(BaseModel):
    """Settings for :class:`~specgraph.parser.spec_parser.SpecParser`."""

    warn_on_custom_dialect: bool = Field(
        default=True,
        description="Log a warning when jsonSchemaDialect is not a known default",
    )
    default_document_uri: str = Field(
        default="file:///entry-spec.json",
        description="Retrieval URI assumed for documents passed in memory",
    )


class SpecgraphConfig(BaseModel):
    """Effective configuration, assembled by :func:`~specgraph.config.resolve_config`.

    Loaded from ``~/.config/specgraph/config.json`` and ``./specgraph.json``;
    unknown keys are rejected so that typos surface as
    :class:`~specgraph.exceptions.ConfigError`.
    """

    model_config = ConfigDict(extra="forbid")

    loader: LoaderConfig = Field(default_factory=LoaderConfig)
    parser: ParserConfig = Field(default_factory=ParserConfig)


# --- Operation keys ---


class HTTPMethod(str, enum.Enum):
    """Fixed operation fields of an OpenAPI Path Item Object.

    ``QUERY`` is the OAS 3.2 addition. Any other verb lives in the Path Item's
    ``additionalOperations`` map and is represented by :class:`CustomMethod`.
    """

    GET = "get"
    POST = "post"
    PUT = "put"
    DELETE = "delete"
    OPTIONS = "options"
    HEAD = "head"
    PATCH = "patch"
    TRACE = "trace"
    QUERY = "query"

    @property
    def label(self) -> str:
        """Upper-case verb used in error messages (``GET``, ``POST``...)."""
        return self.value.upper()


class CustomMethod(BaseModel):
    """A non-standard verb declared under ``additionalOperations`` (OAS 3.2).

    The name is kept exactly as written in the document.
    """

    model_config = ConfigDict(frozen=True)

    name: str

    @property
    def label(self) -> str:
        """The verb as written in the document (``COPY``, ``LINK``...)."""
        return self.name


OperationMethod = Union[HTTPMethod, CustomMethod]

FIXED_METHODS: frozenset[str] = frozenset(m.value for m in HTTPMethod)
"""Lower-case names of every fixed Path Item operation field."""


# --- Schema-or-reference ---


@dataclass(frozen=True, eq=False)
class Concrete:
    """An inline schema (or other object) that needs no resolution."""

    node: Any


@dataclass(frozen=True)
class Ref:
    """A ``{"$ref": ...}`` wrapper."""

    ref: str


@dataclass(frozen=True)
class DynamicRef:
    """A ``{"$dynamicRef": ...}`` wrapper (JSON Schema 2020-12 / OAS 3.1)."""

    ref: str


SchemaOrRef = Union[Concrete, Ref, DynamicRef]


def schema_or_ref(obj: Any) -> SchemaOrRef:
    """Classify *obj* as a concrete node or one of the reference wrappers.

    ``$ref`` wins when both keys are present; the validator rejects such
    objects separately. A key whose value is not a string does not make a
    reference.

    Args:
        obj: Any node of a parsed document, or an already-classified value.

    Returns:
        The matching :data:`SchemaOrRef` variant.
    """
    if isinstance(obj, (Concrete, Ref, DynamicRef)):
        return obj
    if isinstance(obj, dict):
        ref = obj.get("$ref")
        if isinstance(ref, str):
            return Ref(ref)
        dynamic_ref = obj.get("$dynamicRef")
        if isinstance(dynamic_ref, str):
            return DynamicRef(dynamic_ref)
    return Concrete(obj)


def is_reference(obj: Any) -> bool:
    """Return ``True`` when *obj* is a ``$ref`` or ``$dynamicRef`` wrapper."""
    return not isinstance(schema_or_ref(obj), Concrete)


# --- Parser output models ---


class ParameterLocation(str, enum.Enum):
    """Locations where an API parameter can appear, per the ``in`` field."""

    QUERY = "query"
    QUERYSTRING = "querystring"
    HEADER = "header"
    PATH = "path"
    COOKIE = "cookie"


class APIParameter(BaseModel):
    """A single parameter of an extracted operation (OpenAPI *Parameter Object*)."""

    name: str
    location: ParameterLocation
    required: bool = False
    description: Optional[str] = None
    schema_type: str = Field(default="string", description="JSON Schema type")
    schema_format: Optional[str] = None
    enum_values: Optional[list[Any]] = None
    style: Optional[str] = None
    explode: Optional[bool] = None
    deprecated: bool = False
    example: Any = None
    schema_: Optional[dict[str, Any]] = Field(default=None, alias="schema")
    content: Optional[dict[str, Any]] = None

    model_config = {"populate_by_name": True}


class RequestBodyInfo(BaseModel):
    """Request body metadata for an :class:`APIOperation`."""

    required: bool = False
    description: Optional[str] = None
    content_types: list[str] = Field(default_factory=list)
    schema_: Optional[dict[str, Any]] = Field(default=None, alias="schema")

    model_config = {"populate_by_name": True}


class ResponseInfo(BaseModel):
    """Response metadata for a single status code (or ``default``)."""

    status_code: str
    description: Optional[str] = None
    content_types: list[str] = Field(default_factory=list)
    schema_: Optional[dict[str, Any]] = Field(default=None, alias="schema")

    model_config = {"populate_by_name": True}


class APIOperation(BaseModel):
    """One operation of a path (or webhook) item.

    ``method`` is either a fixed :class:`HTTPMethod` or a :class:`CustomMethod`
    from ``additionalOperations``; consumers branch on the type instead of
    probing the Path Item with string keys.
    """

    path: str
    method: Union[HTTPMethod, CustomMethod]
    operation_id: Optional[str] = None
    summary: Optional[str] = None
    description: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
    parameters: list[APIParameter] = Field(default_factory=list)
    request_body: Optional[RequestBodyInfo] = None
    responses: list[ResponseInfo] = Field(default_factory=list)
    security: Optional[list[dict[str, list[str]]]] = Field(
        default=None, description="Operation-level security requirements, if overridden"
    )
    servers: Optional[list[dict[str, Any]]] = None
    callbacks: dict[str, Any] = Field(default_factory=dict)
    deprecated: bool = False


class SpecVersion(BaseModel):
    """Which family and version string a document declares."""

    type: Literal["swagger", "openapi"]
    version: str


# --- Identity-preserving results ---


@dataclass
class NamedSchema:
    """A schema definition paired with the PascalCase name emitters use for it.

    ``definition`` is the very object held by the parsed document, not a copy.
    """

    name: str
    definition: Any


@dataclass
class PolymorphicOption:
    """One branch of a discriminated ``oneOf``/``anyOf``."""

    name: str
    schema: Any


@dataclass
class MergedSchema:
    """Flattened view of an ``allOf`` composition."""

    properties: dict[str, Any] = field(default_factory=dict)
    required: list[str] = field(default_factory=list)


@dataclass
class LoadedSpec:
    """The entry document of a load plus every document reachable from it.

    ``cache`` maps canonical URIs (document URIs, ``$self`` aliases, ``$id``
    and anchor URIs) to parsed nodes.
    """

    entry: dict[str, Any]
    cache: dict[str, Any]
    document_uri: str
