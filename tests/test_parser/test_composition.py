"""Tests for specgraph.parser.composition."""

from __future__ import annotations

from typing import Any

import pytest

from specgraph.parser.composition import (
    Direction,
    discriminator_value,
    generate_example,
    merge_all_of,
    named_type,
    polymorphic_options,
    split_properties,
    variant_schemas,
)
from specgraph.parser.resolver import ReferenceResolver


def _resolver(**schemas: Any) -> ReferenceResolver:
    return ReferenceResolver(
        {
            "openapi": "3.1.0",
            "info": {"title": "T", "version": "1"},
            "components": {"schemas": schemas},
        }
    )


def _ref(name: str) -> dict[str, str]:
    return {"$ref": f"#/components/schemas/{name}"}


# ---------------------------------------------------------------------------
# allOf
# ---------------------------------------------------------------------------


class TestMergeAllOf:
    """Flattening allOf compositions."""

    def test_union_of_branches(self) -> None:
        resolver = _resolver(
            Base={"properties": {"id": {"type": "string"}}, "required": ["id"]},
            Pet={
                "allOf": [
                    _ref("Base"),
                    {"properties": {"name": {"type": "string"}}, "required": ["name"]},
                ]
            },
        )
        merged = merge_all_of(_ref("Pet"), resolver)
        assert list(merged.properties) == ["id", "name"]
        assert merged.required == ["id", "name"]

    def test_later_branch_wins(self) -> None:
        first = {"type": "string"}
        second = {"type": "integer"}
        resolver = _resolver(
            A={"properties": {"id": first}},
            B={"allOf": [_ref("A"), {"properties": {"id": second}}]},
        )
        assert merge_all_of(_ref("B"), resolver).properties["id"] is second

    def test_required_is_accumulated(self) -> None:
        resolver = _resolver(
            A={"required": ["id"]},
            B={"allOf": [_ref("A"), {"required": ["id", "name"]}], "required": ["tag"]},
        )
        assert merge_all_of(_ref("B"), resolver).required == ["id", "name", "tag"]

    def test_nested_all_of(self) -> None:
        resolver = _resolver(
            Root={"properties": {"a": {}}},
            Mid={"allOf": [_ref("Root")], "properties": {"b": {}}},
            Leaf={"allOf": [_ref("Mid")], "properties": {"c": {}}},
        )
        assert list(merge_all_of(_ref("Leaf"), resolver).properties) == ["a", "b", "c"]

    def test_cyclic_all_of_terminates(self) -> None:
        resolver = _resolver(
            A={"allOf": [_ref("B")], "properties": {"a": {}}},
            B={"allOf": [_ref("A")], "properties": {"b": {}}},
        )
        assert set(merge_all_of(_ref("A"), resolver).properties) == {"a", "b"}

    def test_unresolvable_branch_contributes_nothing(self) -> None:
        resolver = _resolver(A={"allOf": [_ref("Missing")], "properties": {"a": {}}})
        assert list(merge_all_of(_ref("A"), resolver).properties) == ["a"]


# ---------------------------------------------------------------------------
# oneOf / anyOf and discriminators
# ---------------------------------------------------------------------------


@pytest.fixture
def pets() -> ReferenceResolver:
    return _resolver(
        Cat={"properties": {"petType": {"type": "string", "enum": ["cat"]}, "meow": {}}},
        Dog={"properties": {"petType": {"const": "dog"}, "bark": {}}},
        Lizard={"allOf": [{"properties": {"petType": {"enum": ["lizard"]}}}]},
        Untagged={"properties": {"petType": {"type": "string"}}},
        Pet={
            "oneOf": [_ref("Cat"), _ref("Dog"), _ref("Lizard"), _ref("Untagged")],
            "discriminator": {"propertyName": "petType"},
        },
        MappedPet={
            "oneOf": [_ref("Cat"), _ref("Dog")],
            "discriminator": {
                "propertyName": "petType",
                "mapping": {"kitty": "#/components/schemas/Cat", "doggo": "#/components/schemas/Dog"},
            },
        },
    )


class TestVariants:
    """Resolved union branches."""

    def test_one_of_branches_stay_distinct(self, pets: ReferenceResolver) -> None:
        variants = variant_schemas(_ref("Pet"), pets)
        assert len(variants) == 4
        assert variants[0] is pets.get_definition("Cat")

    def test_any_of_used_without_one_of(self) -> None:
        resolver = _resolver(Value={"anyOf": [{"type": "string"}, {"type": "integer"}]})
        assert [v["type"] for v in variant_schemas(_ref("Value"), resolver)] == ["string", "integer"]

    def test_unresolvable_branch_keeps_position(self) -> None:
        resolver = _resolver(Value={"oneOf": [_ref("Missing"), {"type": "string"}]})
        variants = variant_schemas(_ref("Value"), resolver)
        assert variants[0] is None
        assert variants[1] == {"type": "string"}

    def test_discriminator_value_from_enum_const_and_all_of(self, pets: ReferenceResolver) -> None:
        assert discriminator_value(_ref("Cat"), "petType", pets) == "cat"
        assert discriminator_value(_ref("Dog"), "petType", pets) == "dog"
        assert discriminator_value(_ref("Lizard"), "petType", pets) == "lizard"
        assert discriminator_value(_ref("Untagged"), "petType", pets) is None


class TestPolymorphicOptions:
    """Named options of a discriminated union."""

    def test_implicit_names(self, pets: ReferenceResolver) -> None:
        options = polymorphic_options(_ref("Pet"), pets)
        assert [option.name for option in options] == ["cat", "dog", "lizard", "Untagged"]
        assert options[0].schema is pets.get_definition("Cat")

    def test_explicit_mapping(self, pets: ReferenceResolver) -> None:
        options = polymorphic_options(_ref("MappedPet"), pets)
        assert [(o.name, o.schema) for o in options] == [
            ("kitty", pets.get_definition("Cat")),
            ("doggo", pets.get_definition("Dog")),
        ]

    def test_no_discriminator(self) -> None:
        resolver = _resolver(Value={"oneOf": [{"type": "string"}]})
        assert polymorphic_options(_ref("Value"), resolver) == []


# ---------------------------------------------------------------------------
# readOnly / writeOnly and known types
# ---------------------------------------------------------------------------


class TestSplitProperties:
    """Request and response shapes."""

    @pytest.fixture
    def account(self) -> ReferenceResolver:
        return _resolver(
            Account={
                "required": ["id", "password", "email"],
                "properties": {
                    "id": {"type": "string", "readOnly": True},
                    "password": {"type": "string", "writeOnly": True},
                    "email": {"type": "string"},
                },
            }
        )

    def test_request_drops_read_only(self, account: ReferenceResolver) -> None:
        request = split_properties(_ref("Account"), account, Direction.REQUEST)
        assert list(request.properties) == ["password", "email"]
        assert request.required == ["password", "email"]

    def test_response_drops_write_only(self, account: ReferenceResolver) -> None:
        response = split_properties(_ref("Account"), account, Direction.RESPONSE)
        assert list(response.properties) == ["id", "email"]


class TestNamedType:
    def test_known_reference(self) -> None:
        assert named_type({"$ref": "#/components/schemas/pet_store"}, {"PetStore"}) == "PetStore"

    def test_unknown_reference(self) -> None:
        assert named_type({"$ref": "#/components/schemas/Ghost"}, {"PetStore"}) is None

    def test_inline_schema(self) -> None:
        assert named_type({"type": "object"}, {"PetStore"}) is None


# ---------------------------------------------------------------------------
# Example generation
# ---------------------------------------------------------------------------


class TestGenerateExample:
    """Cycle-safe example values."""

    def test_scalar_types(self) -> None:
        resolver = _resolver()
        assert generate_example({"type": "string"}, resolver) == "string"
        assert generate_example({"type": "integer"}, resolver) == 0
        assert generate_example({"type": "boolean"}, resolver) is True
        assert generate_example({"type": "string", "format": "uuid"}, resolver) == (
            "00000000-0000-0000-0000-000000000000"
        )

    def test_malformed_format_and_type(self) -> None:
        resolver = _resolver()
        assert generate_example({"type": "string", "format": ["uuid"]}, resolver) == "string"
        assert generate_example({"type": {"bad": True}}, resolver) == {}

    def test_explicit_values_win(self) -> None:
        resolver = _resolver()
        assert generate_example({"type": "string", "example": "Rex"}, resolver) == "Rex"
        assert generate_example({"enum": ["a", "b"]}, resolver) == "a"

    def test_object_and_array(self, petstore_31: dict[str, Any]) -> None:
        resolver = ReferenceResolver(petstore_31)
        example = generate_example({"type": "array", "items": _ref("Pet")}, resolver)
        assert example == [{"id": 0, "name": "string", "tag": "string"}]

    def test_all_of_cycle_terminates(self) -> None:
        resolver = _resolver(
            A={"allOf": [_ref("B")]},
            B={"type": "object", "properties": {"self": _ref("A"), "name": {"type": "string"}}},
        )
        assert generate_example(_ref("A"), resolver) == {"self": {}, "name": "string"}

    def test_self_reference_terminates(self) -> None:
        resolver = _resolver(
            Node={
                "type": "object",
                "properties": {"children": {"type": "array", "items": _ref("Node")}},
            }
        )
        assert generate_example(_ref("Node"), resolver) == {"children": [{}]}

    def test_siblings_are_not_treated_as_cycles(self) -> None:
        resolver = _resolver(
            Money={"type": "object", "properties": {"amount": {"type": "number"}}},
            Order={
                "type": "object",
                "properties": {"price": _ref("Money"), "tax": _ref("Money")},
            },
        )
        assert generate_example(_ref("Order"), resolver) == {
            "price": {"amount": 0},
            "tax": {"amount": 0},
        }

    def test_unresolvable_reference(self) -> None:
        assert generate_example(_ref("Missing"), _resolver()) == {}
