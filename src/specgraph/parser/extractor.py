"""Extract operations and their parameters from ``paths`` and ``webhooks``.

This module walks the Path Item Objects of a parsed document and builds
:class:`~specgraph.models.APIOperation` models for code generators. Every
operation carries a tagged ``method``: a fixed :class:`~specgraph.models.HTTPMethod`
(``get`` through ``trace``, plus the OAS 3.2 ``query``) or a
:class:`~specgraph.models.CustomMethod` for verbs declared under
``additionalOperations``. Consumers branch on that type instead of probing the
Path Item with string keys; :func:`iter_operations` is the single place that
does the probing.

Parameter merging follows the OpenAPI specification: path-level parameters
provide defaults, and operation-level parameters override them when they share
the same ``name`` and ``in`` values. Parameter, request body and response
references are resolved through a
:class:`~specgraph.parser.resolver.ReferenceResolver` without copying the
document.
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import TYPE_CHECKING, Any, Optional

from specgraph.models import (
    APIOperation,
    APIParameter,
    CustomMethod,
    HTTPMethod,
    OperationMethod,
    ParameterLocation,
    RequestBodyInfo,
    ResponseInfo,
)

if TYPE_CHECKING:
    from specgraph.parser.resolver import ReferenceResolver

# Swagger 2.0 request bodies default to JSON when no ``consumes`` is declared
_DEFAULT_CONSUMES = ["application/json"]


def iter_operations(path_item: Any) -> Iterator[tuple[OperationMethod, dict[str, Any]]]:
    """Yield ``(method, operation)`` pairs declared by a Path Item Object.

    Fixed methods come first in :class:`~specgraph.models.HTTPMethod` order,
    followed by ``additionalOperations`` entries in document order. Entries
    that are not objects are skipped.

    Args:
        path_item: A Path Item Object (anything else yields nothing).

    Yields:
        Tuples of the tagged method and the Operation Object.
    """
    if not isinstance(path_item, dict):
        return

    for method in HTTPMethod:
        operation = path_item.get(method.value)
        if isinstance(operation, dict):
            yield method, operation

    additional = path_item.get("additionalOperations")
    if isinstance(additional, dict):
        for name, operation in additional.items():
            if isinstance(operation, dict):
                yield CustomMethod(name=name), operation


def operation_key(method: OperationMethod) -> str:
    """Return the Path Item key path of *method* (``get``, ``additionalOperations.COPY``)."""
    if isinstance(method, HTTPMethod):
        return method.value
    return f"additionalOperations.{method.name}"


def extract_operations(
    paths: Any,
    resolver: Optional[ReferenceResolver] = None,
    global_security: Optional[list[dict[str, list[str]]]] = None,
    consumes: Optional[list[str]] = None,
) -> list[APIOperation]:
    """Extract all operations from a ``paths`` (or ``webhooks``) map.

    Path Items that are themselves references are resolved first. For each
    operation, path-level parameters are merged with operation-level
    parameters; operation-level takes precedence for parameters that share the
    same ``name`` and ``in`` values.

    Security requirements follow the same override rule: an operation-level
    ``security`` array replaces the global one; an explicit empty array
    ``[]`` means "no auth required".

    Args:
        paths: The ``paths`` or ``webhooks`` object of a document.
        resolver: Used to follow ``$ref`` Path Items, parameters, request
            bodies and responses. Without one, references are kept as-is.
        global_security: Root-level ``security`` requirements.
        consumes: Root-level Swagger 2.0 ``consumes`` list.

    Returns:
        A list of :class:`~specgraph.models.APIOperation` instances, one per
        path + method combination.
    """
    if not isinstance(paths, dict):
        return []

    operations: list[APIOperation] = []

    for path, path_item in paths.items():
        path_item = _resolve(path_item, resolver)
        if not isinstance(path_item, dict):
            continue

        # Path-level parameters apply to all operations under this path
        path_params = _resolve_list(path_item.get("parameters"), resolver)

        for method, operation in iter_operations(path_item):
            op_params = _resolve_list(operation.get("parameters"), resolver)
            merged_params = _merge_parameters(path_params, op_params)

            request_body = _extract_request_body(
                _resolve(operation.get("requestBody"), resolver)
            )
            if request_body is None:
                request_body = _extract_body_parameter(
                    merged_params, operation.get("consumes") or consumes
                )

            op_security = operation.get("security")
            security = op_security if op_security is not None else global_security

            operations.append(
                APIOperation(
                    path=path,
                    method=method,
                    operation_id=operation.get("operationId"),
                    summary=operation.get("summary"),
                    description=operation.get("description"),
                    tags=operation.get("tags") or [],
                    parameters=_extract_parameters(merged_params),
                    request_body=request_body,
                    responses=_extract_responses(operation.get("responses"), resolver),
                    security=security,
                    servers=operation.get("servers"),
                    callbacks=operation.get("callbacks") or {},
                    deprecated=bool(operation.get("deprecated", False)),
                )
            )

    return operations


def _resolve(obj: Any, resolver: Optional[ReferenceResolver]) -> Any:
    """Resolve *obj* when it is a reference and a resolver is available."""
    if resolver is None:
        return obj
    resolved = resolver.resolve(obj)
    return obj if resolved is None else resolved


def _resolve_list(items: Any, resolver: Optional[ReferenceResolver]) -> list[dict[str, Any]]:
    """Resolve every entry of a parameter list, dropping non-objects."""
    if not isinstance(items, list):
        return []
    resolved = (_resolve(item, resolver) for item in items)
    return [item for item in resolved if isinstance(item, dict)]


def _merge_parameters(
    path_params: list[dict[str, Any]],
    op_params: list[dict[str, Any]],
) -> list[dict[str, Any]]:
    """Merge path-level and operation-level parameters.

    Operation-level parameters override path-level parameters with the same
    name and location (``in`` field), per the OpenAPI spec.

    Args:
        path_params: Parameters defined at the path level.
        op_params: Parameters defined at the operation level.

    Returns:
        A merged list of parameter dicts.
    """
    op_keys = {(param.get("name", ""), param.get("in", "")) for param in op_params}

    merged = [
        param
        for param in path_params
        if (param.get("name", ""), param.get("in", "")) not in op_keys
    ]
    merged.extend(op_params)
    return merged


def _extract_parameters(params_list: list[dict[str, Any]]) -> list[APIParameter]:
    """Convert raw parameter dicts into :class:`~specgraph.models.APIParameter` models.

    Swagger 2.0 non-body parameters carry their type inline instead of in a
    ``schema``; both shapes are handled. Path parameters are always required.
    Parameters with locations outside :class:`~specgraph.models.ParameterLocation`
    (Swagger 2.0 ``body`` and ``formData``) are skipped.
    """
    parameters: list[APIParameter] = []

    for param in params_list:
        try:
            location = ParameterLocation(param.get("in", "query"))
        except ValueError:
            continue

        schema = param.get("schema")
        type_source = schema if isinstance(schema, dict) else param

        required = bool(param.get("required", False))
        if location == ParameterLocation.PATH:
            required = True

        parameters.append(
            APIParameter(
                name=param.get("name", ""),
                location=location,
                required=required,
                description=param.get("description"),
                schema_type=_extract_schema_type(type_source),
                schema_format=type_source.get("format"),
                enum_values=type_source.get("enum"),
                style=param.get("style"),
                explode=param.get("explode"),
                deprecated=bool(param.get("deprecated", False)),
                example=param.get("example"),
                schema=schema if isinstance(schema, dict) else None,
                content=param.get("content"),
            )
        )

    return parameters


def _extract_schema_type(schema: Any) -> str:
    """Extract the type string from a schema object.

    Handles OpenAPI 3.1 type arrays (e.g., ``["string", "null"]``) by
    returning the first non-null type. Falls back to ``"string"``.
    """
    if not isinstance(schema, dict):
        return "string"

    type_value = schema.get("type", "string")

    if isinstance(type_value, list):
        non_null = [t for t in type_value if t != "null"]
        return str(non_null[0]) if non_null else "string"

    return str(type_value)


def _first_schema(content: dict[str, Any]) -> Optional[dict[str, Any]]:
    """Return the schema of the first media type that declares one."""
    for media in content.values():
        if isinstance(media, dict) and isinstance(media.get("schema"), dict):
            return media["schema"]
    return None


def _extract_request_body(body: Any) -> Optional[RequestBodyInfo]:
    """Extract request body metadata from an OpenAPI 3.x ``requestBody``."""
    if not isinstance(body, dict):
        return None

    content = body.get("content")
    if not isinstance(content, dict):
        content = {}

    return RequestBodyInfo(
        required=bool(body.get("required", False)),
        description=body.get("description"),
        content_types=list(content.keys()),
        schema=_first_schema(content),
    )


def _extract_body_parameter(
    params: list[dict[str, Any]],
    consumes: Optional[list[str]],
) -> Optional[RequestBodyInfo]:
    """Build request body metadata from a Swagger 2.0 ``in: body`` parameter."""
    for param in params:
        if param.get("in") != "body":
            continue
        schema = param.get("schema")
        return RequestBodyInfo(
            required=bool(param.get("required", False)),
            description=param.get("description"),
            content_types=list(consumes or _DEFAULT_CONSUMES),
            schema=schema if isinstance(schema, dict) else None,
        )
    return None


def _extract_responses(
    responses: Any,
    resolver: Optional[ReferenceResolver],
) -> list[ResponseInfo]:
    """Extract response metadata for all declared status codes.

    OpenAPI 3.x responses carry a ``content`` map; Swagger 2.0 responses
    carry a bare ``schema``.

    Args:
        responses: The raw ``responses`` dict, keyed by status code string
            (e.g., ``"200"``, ``"4XX"``, ``"default"``).
        resolver: Used to follow ``$ref`` Response Objects.

    Returns:
        A list of :class:`~specgraph.models.ResponseInfo` instances, one
        per status code entry.
    """
    if not isinstance(responses, dict):
        return []

    result: list[ResponseInfo] = []

    for status_code, response in responses.items():
        response = _resolve(response, resolver)
        if not isinstance(response, dict):
            continue

        content = response.get("content")
        if isinstance(content, dict):
            content_types = list(content.keys())
            schema = _first_schema(content)
        else:
            content_types = []
            bare = response.get("schema")
            schema = bare if isinstance(bare, dict) else None

        result.append(
            ResponseInfo(
                status_code=str(status_code),
                description=response.get("description"),
                content_types=content_types,
                schema=schema,
            )
        )

    return result
