"""Tests for specgraph.parser.extractor."""

from __future__ import annotations

from typing import Any

import pytest

from specgraph.models import APIOperation, CustomMethod, HTTPMethod, ParameterLocation
from specgraph.parser.extractor import (
    _merge_parameters,
    extract_operations,
    iter_operations,
    operation_key,
)
from specgraph.parser.resolver import ReferenceResolver


# ---------------------------------------------------------------------------
# Method tagged union
# ---------------------------------------------------------------------------


class TestIterOperations:
    """Fixed methods first, then additionalOperations."""

    def test_order_and_tags(self) -> None:
        path_item = {
            "parameters": [],
            "post": {"operationId": "b"},
            "get": {"operationId": "a"},
            "query": {"operationId": "c"},
            "additionalOperations": {"COPY": {"operationId": "d"}, "LINK": "not an object"},
            "summary": "ignored",
        }
        methods = [method for method, _ in iter_operations(path_item)]
        assert methods == [HTTPMethod.GET, HTTPMethod.POST, HTTPMethod.QUERY, CustomMethod(name="COPY")]

    def test_non_dict_path_item(self) -> None:
        assert list(iter_operations(None)) == []

    def test_operation_key(self) -> None:
        assert operation_key(HTTPMethod.PATCH) == "patch"
        assert operation_key(CustomMethod(name="COPY")) == "additionalOperations.COPY"

    def test_labels(self) -> None:
        assert HTTPMethod.DELETE.label == "DELETE"
        assert CustomMethod(name="Purge").label == "Purge"


# ---------------------------------------------------------------------------
# Parameter merging
# ---------------------------------------------------------------------------


class TestMergeParameters:
    def test_operation_overrides_path_level(self) -> None:
        path_params = [
            {"name": "id", "in": "path", "description": "path-level"},
            {"name": "verbose", "in": "query"},
        ]
        op_params = [{"name": "id", "in": "path", "description": "operation-level"}]
        merged = _merge_parameters(path_params, op_params)
        assert [p["name"] for p in merged] == ["verbose", "id"]
        assert merged[1]["description"] == "operation-level"

    def test_same_name_different_location_kept(self) -> None:
        merged = _merge_parameters([{"name": "id", "in": "query"}], [{"name": "id", "in": "header"}])
        assert len(merged) == 2


# ---------------------------------------------------------------------------
# OpenAPI 3.x extraction
# ---------------------------------------------------------------------------


class TestExtractOpenAPI:
    """Extraction from the petstore fixture."""

    @pytest.fixture
    def operations(self, petstore_31: dict[str, Any]) -> list[APIOperation]:
        resolver = ReferenceResolver(petstore_31)
        return extract_operations(petstore_31["paths"], resolver)

    def test_all_operations(self, operations: list[APIOperation]) -> None:
        assert [(op.method, op.path) for op in operations] == [
            (HTTPMethod.GET, "/pets"),
            (HTTPMethod.POST, "/pets"),
            (HTTPMethod.GET, "/pets/{petId}"),
        ]

    def test_path_level_parameters_applied(self, operations: list[APIOperation]) -> None:
        param = operations[2].parameters[0]
        assert param.name == "petId"
        assert param.location == ParameterLocation.PATH
        assert param.required is True

    def test_query_parameter(self, operations: list[APIOperation]) -> None:
        param = operations[0].parameters[0]
        assert (param.name, param.schema_type, param.required) == ("limit", "integer", False)

    def test_request_body(self, operations: list[APIOperation], petstore_31: dict[str, Any]) -> None:
        body = operations[1].request_body
        assert body is not None
        assert body.required is True
        assert body.content_types == ["application/json"]
        assert body.schema_ == {"$ref": "#/components/schemas/NewPet"}

    def test_referenced_response_resolved(self, operations: list[APIOperation]) -> None:
        responses = {r.status_code: r for r in operations[2].responses}
        assert responses["default"].description == "Unexpected error"
        assert responses["default"].content_types == ["application/json"]

    def test_referenced_path_item_and_parameter(self) -> None:
        spec = {
            "openapi": "3.1.0",
            "info": {"title": "T", "version": "1"},
            "paths": {"/items/{id}": {"$ref": "#/components/pathItems/Item"}},
            "components": {
                "parameters": {"Id": {"name": "id", "in": "path", "required": True}},
                "pathItems": {
                    "Item": {
                        "parameters": [{"$ref": "#/components/parameters/Id"}],
                        "get": {"operationId": "getItem"},
                    }
                },
            },
        }
        operations = extract_operations(spec["paths"], ReferenceResolver(spec))
        assert len(operations) == 1
        assert operations[0].operation_id == "getItem"
        assert operations[0].parameters[0].name == "id"

    def test_custom_method(self) -> None:
        paths = {"/files": {"additionalOperations": {"COPY": {"operationId": "copyFile"}}}}
        operations = extract_operations(paths)
        assert operations[0].method == CustomMethod(name="COPY")
        assert operations[0].method.label == "COPY"

    def test_security_override(self) -> None:
        paths = {
            "/public": {"get": {"security": []}},
            "/private": {"get": {}},
        }
        global_security = [{"apiKey": []}]
        public, private = extract_operations(paths, global_security=global_security)
        assert public.security == []
        assert private.security == global_security

    def test_type_array_first_non_null(self) -> None:
        paths = {
            "/a": {"get": {"parameters": [{"name": "q", "in": "query", "schema": {"type": ["null", "integer"]}}]}}
        }
        assert extract_operations(paths)[0].parameters[0].schema_type == "integer"

    def test_non_dict_paths(self) -> None:
        assert extract_operations(None) == []


# ---------------------------------------------------------------------------
# Swagger 2.0 extraction
# ---------------------------------------------------------------------------


class TestExtractSwagger:
    @pytest.fixture
    def operation(self, swagger_20: dict[str, Any]) -> APIOperation:
        resolver = ReferenceResolver(swagger_20)
        return extract_operations(swagger_20["paths"], resolver, consumes=swagger_20["consumes"])[0]

    def test_inline_parameter_type(self, operation: APIOperation) -> None:
        assert len(operation.parameters) == 1
        assert operation.parameters[0].schema_type == "integer"

    def test_body_parameter_becomes_request_body(self, operation: APIOperation) -> None:
        assert operation.request_body is not None
        assert operation.request_body.content_types == ["application/xml"]
        assert operation.request_body.schema_ == {"$ref": "#/definitions/Order"}

    def test_bare_response_schema(self, operation: APIOperation) -> None:
        assert operation.responses[0].schema_ == {"$ref": "#/definitions/Order"}

    def test_default_consumes(self) -> None:
        paths = {"/a": {"post": {"parameters": [{"name": "b", "in": "body", "schema": {}}]}}}
        body = extract_operations(paths)[0].request_body
        assert body is not None
        assert body.content_types == ["application/json"]
