"""Helpers for schema composition: ``allOf``, ``oneOf``/``anyOf`` and discriminators.

These are the questions code generators ask once a reference resolver exists:
what properties does an ``allOf`` add up to, which variants does a
polymorphic schema have and under which discriminator values, which
properties belong on the request side versus the response side, and what
does a plausible example value look like.

Every helper resolves references through a
:class:`~specgraph.parser.resolver.ReferenceResolver` and tolerates cycles.
Cycle detection uses an explicit ``visited`` set of node identities: a node is
added before its children are explored and removed afterwards, so a schema
that appears twice side by side is expanded twice, while a schema that
contains itself is expanded once.
"""

from __future__ import annotations

import enum
from typing import TYPE_CHECKING, Any, Optional

from specgraph.models import (
    Concrete,
    MergedSchema,
    PolymorphicOption,
    Ref,
    schema_or_ref,
)
from specgraph.naming import pascal_case

if TYPE_CHECKING:
    from specgraph.parser.resolver import ReferenceResolver


class Direction(str, enum.Enum):
    """Which side of an exchange a schema is rendered for."""

    REQUEST = "request"
    RESPONSE = "response"


# Placeholder values for generated examples, keyed by JSON Schema type
_EXAMPLE_SCALARS: dict[str, Any] = {
    "string": "string",
    "integer": 0,
    "number": 0,
    "boolean": True,
    "null": None,
}

_EXAMPLE_FORMATS: dict[str, str] = {
    "date": "2024-01-01",
    "date-time": "2024-01-01T00:00:00Z",
    "email": "user@example.com",
    "uuid": "00000000-0000-0000-0000-000000000000",
    "uri": "https://example.com",
    "hostname": "example.com",
    "ipv4": "127.0.0.1",
    "ipv6": "::1",
}


def _resolved(node: Any, resolver: ReferenceResolver) -> Optional[dict[str, Any]]:
    target = resolver.resolve(node)
    return target if isinstance(target, dict) else None


def _last_segment(ref: str) -> str:
    return ref.rsplit("/", 1)[-1]


# --- allOf ---


def merge_all_of(
    schema: Any,
    resolver: ReferenceResolver,
    visited: Optional[set[int]] = None,
) -> MergedSchema:
    """Flatten an ``allOf`` composition into one property map.

    Branches are resolved and merged in order, recursing into nested
    ``allOf``; properties declared by the schema itself are merged last.
    When two branches declare the same property, the later one wins.
    ``required`` names are accumulated without duplicates.

    Args:
        schema: A schema or reference.
        resolver: Resolver for the branches.
        visited: Identities of schemas on the current merge path.

    Returns:
        The merged properties and required names. A schema that is already
        being merged (a cycle) contributes nothing.
    """
    visited = set() if visited is None else visited
    merged = MergedSchema()

    node = _resolved(schema, resolver)
    if node is None or id(node) in visited:
        return merged

    visited.add(id(node))
    try:
        branches = node.get("allOf")
        if isinstance(branches, list):
            for branch in branches:
                _merge_into(merged, merge_all_of(branch, resolver, visited))

        own = MergedSchema(
            properties=dict(node["properties"]) if isinstance(node.get("properties"), dict) else {},
            required=[name for name in node.get("required") or [] if isinstance(name, str)],
        )
        _merge_into(merged, own)
    finally:
        visited.discard(id(node))

    return merged


def _merge_into(target: MergedSchema, source: MergedSchema) -> None:
    target.properties.update(source.properties)
    for name in source.required:
        if name not in target.required:
            target.required.append(name)


# --- oneOf / anyOf ---


def variant_schemas(schema: Any, resolver: ReferenceResolver) -> list[Optional[dict[str, Any]]]:
    """Return the resolved ``oneOf`` branches (or ``anyOf`` when there is no ``oneOf``).

    Positions are preserved: a branch that cannot be resolved appears as
    ``None``.
    """
    node = _resolved(schema, resolver)
    if node is None:
        return []
    branches = node.get("oneOf")
    if not isinstance(branches, list):
        branches = node.get("anyOf")
    if not isinstance(branches, list):
        return []
    return [_resolved(branch, resolver) for branch in branches]


def discriminator_value(
    variant: Any,
    property_name: str,
    resolver: ReferenceResolver,
    visited: Optional[set[int]] = None,
) -> Optional[Any]:
    """Return the literal a variant pins its discriminator property to.

    The literal is the first ``enum`` entry or the ``const`` of the property,
    looked up on the variant itself and then through its ``allOf`` branches.
    """
    visited = set() if visited is None else visited
    node = _resolved(variant, resolver)
    if node is None or id(node) in visited:
        return None

    properties = node.get("properties")
    if isinstance(properties, dict) and property_name in properties:
        prop = _resolved(properties[property_name], resolver) or {}
        enum_values = prop.get("enum")
        if isinstance(enum_values, list) and enum_values:
            return enum_values[0]
        if "const" in prop:
            return prop["const"]

    branches = node.get("allOf")
    if not isinstance(branches, list):
        return None

    visited.add(id(node))
    try:
        for branch in branches:
            value = discriminator_value(branch, property_name, resolver, visited)
            if value is not None:
                return value
    finally:
        visited.discard(id(node))
    return None


def polymorphic_options(schema: Any, resolver: ReferenceResolver) -> list[PolymorphicOption]:
    """List the variants of a discriminated ``oneOf``/``anyOf`` by name.

    With a ``discriminator.mapping``, every mapping entry becomes an option
    (its value resolved as a reference). Otherwise each referenced variant is
    named after the literal it pins the discriminator property to, falling
    back to the last segment of its ``$ref``. Inline variants without a
    literal are skipped.

    Args:
        schema: The polymorphic schema or a reference to it.
        resolver: Resolver for the variants.

    Returns:
        The options in mapping (or variant) order; empty when the schema has
        no discriminator.
    """
    node = _resolved(schema, resolver)
    if node is None:
        return []
    discriminator = node.get("discriminator")
    if isinstance(discriminator, str):
        discriminator = {"propertyName": discriminator}
    if not isinstance(discriminator, dict):
        return []

    mapping = discriminator.get("mapping")
    if isinstance(mapping, dict) and mapping:
        options = []
        for name, ref in mapping.items():
            if not isinstance(ref, str):
                continue
            target = resolver.resolve_reference(ref)
            if target is not None:
                options.append(PolymorphicOption(name=name, schema=target))
        return options

    property_name = discriminator.get("propertyName")
    branches = node.get("oneOf")
    if not isinstance(branches, list):
        branches = node.get("anyOf")
    if not isinstance(property_name, str) or not isinstance(branches, list):
        return []

    options = []
    for branch in branches:
        target = _resolved(branch, resolver)
        if target is None:
            continue
        value = discriminator_value(target, property_name, resolver)
        if value is not None:
            options.append(PolymorphicOption(name=str(value), schema=target))
            continue
        kind = schema_or_ref(branch)
        if not isinstance(kind, Concrete):
            options.append(PolymorphicOption(name=_last_segment(kind.ref), schema=target))
    return options


# --- readOnly / writeOnly ---


def split_properties(
    schema: Any,
    resolver: ReferenceResolver,
    direction: Direction,
) -> MergedSchema:
    """Return the properties that apply to one side of an exchange.

    ``readOnly`` properties are dropped for :attr:`Direction.REQUEST` and
    ``writeOnly`` properties for :attr:`Direction.RESPONSE`. ``allOf``
    compositions are flattened first; dropped properties also leave
    ``required``.
    """
    merged = merge_all_of(schema, resolver)
    excluded = "readOnly" if direction == Direction.REQUEST else "writeOnly"

    properties = {}
    for name, prop in merged.properties.items():
        target = _resolved(prop, resolver)
        if target is not None and target.get(excluded) is True:
            continue
        properties[name] = prop

    return MergedSchema(
        properties=properties,
        required=[name for name in merged.required if name in properties],
    )


def named_type(obj: Any, known_types: set[str] | frozenset[str]) -> Optional[str]:
    """Return the PascalCase name of a ``$ref`` target if it is a known type.

    Only plain ``$ref`` wrappers name a type; inline schemas and
    ``$dynamicRef`` yield ``None``.
    """
    kind = schema_or_ref(obj)
    if not isinstance(kind, Ref):
        return None
    name = pascal_case(_last_segment(kind.ref))
    return name if name in known_types else None


# --- Examples ---


def generate_example(
    schema: Any,
    resolver: ReferenceResolver,
    visited: Optional[set[int]] = None,
    max_depth: int = 10,
) -> Any:
    """Build a plausible example value for *schema*.

    ``example``, ``default``, ``const`` and the first ``enum`` entry are used
    when present; otherwise a value is synthesised from ``type`` and
    ``format``. Objects list every property, arrays hold one item.

    A schema reached again while it is still being generated (a recursive
    type) yields ``{}``, as does anything below *max_depth*.

    Args:
        schema: A schema or reference.
        resolver: Resolver for references.
        visited: Identities of schemas on the current generation path.
        max_depth: Maximum nesting depth.

    Returns:
        A JSON-compatible value.
    """
    visited = set() if visited is None else visited
    node = _resolved(schema, resolver)
    if node is None or max_depth <= 0 or id(node) in visited:
        return {}

    for keyword in ("example", "default", "const"):
        if keyword in node:
            return node[keyword]
    enum_values = node.get("enum")
    if isinstance(enum_values, list) and enum_values:
        return enum_values[0]

    visited.add(id(node))
    try:
        return _synthesise(node, resolver, visited, max_depth)
    finally:
        visited.discard(id(node))


def _synthesise(
    node: dict[str, Any],
    resolver: ReferenceResolver,
    visited: set[int],
    max_depth: int,
) -> Any:
    variants = [variant for variant in variant_schemas(node, resolver) if variant is not None]
    if variants:
        return generate_example(variants[0], resolver, visited, max_depth - 1)

    schema_type = node.get("type")
    if isinstance(schema_type, list):
        schema_type = next((t for t in schema_type if t != "null"), "null")

    if schema_type == "array" or (schema_type is None and "items" in node):
        items = node.get("items")
        if items is None:
            return []
        return [generate_example(items, resolver, visited, max_depth - 1)]

    if isinstance(schema_type, str) and schema_type in _EXAMPLE_SCALARS:
        if schema_type == "string":
            fmt = node.get("format")
            return _EXAMPLE_FORMATS.get(fmt, "string") if isinstance(fmt, str) else "string"
        return _EXAMPLE_SCALARS[schema_type]

    merged = merge_all_of(node, resolver)
    return {
        name: generate_example(prop, resolver, visited, max_depth - 1)
        for name, prop in merged.properties.items()
    }
