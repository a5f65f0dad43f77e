"""Shared test fixtures for specgraph.

Provides small, valid OpenAPI 3.x and Swagger 2.0 documents as plain dicts,
a helper for writing documents to disk, and an isolated configuration
environment. These fixtures are automatically discovered by pytest and
available to all test modules without explicit imports.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable

import pytest
import yaml


# ---------------------------------------------------------------------------
# Raw spec fixtures (plain dicts)
# ---------------------------------------------------------------------------


@pytest.fixture
def petstore_31() -> dict[str, Any]:
    """A small but complete OpenAPI 3.1 petstore document."""
    return {
        "openapi": "3.1.0",
        "info": {"title": "Petstore API", "version": "1.0.0"},
        "servers": [{"url": "https://petstore.example.com/v1"}],
        "paths": {
            "/pets": {
                "get": {
                    "operationId": "listPets",
                    "tags": ["pets"],
                    "parameters": [
                        {"name": "limit", "in": "query", "schema": {"type": "integer"}},
                    ],
                    "responses": {
                        "200": {
                            "description": "A list of pets",
                            "content": {
                                "application/json": {
                                    "schema": {
                                        "type": "array",
                                        "items": {"$ref": "#/components/schemas/Pet"},
                                    }
                                }
                            },
                        }
                    },
                },
                "post": {
                    "operationId": "createPet",
                    "requestBody": {
                        "required": True,
                        "content": {
                            "application/json": {"schema": {"$ref": "#/components/schemas/NewPet"}}
                        },
                    },
                    "responses": {"201": {"description": "Created"}},
                },
            },
            "/pets/{petId}": {
                "parameters": [
                    {"name": "petId", "in": "path", "required": True, "schema": {"type": "string"}},
                ],
                "get": {
                    "operationId": "showPetById",
                    "responses": {
                        "200": {
                            "description": "A pet",
                            "content": {
                                "application/json": {"schema": {"$ref": "#/components/schemas/Pet"}}
                            },
                        },
                        "default": {"$ref": "#/components/responses/Error"},
                    },
                },
            },
        },
        "components": {
            "schemas": {
                "Pet": {
                    "type": "object",
                    "required": ["id", "name"],
                    "properties": {
                        "id": {"type": "integer", "readOnly": True},
                        "name": {"type": "string"},
                        "tag": {"type": "string"},
                    },
                },
                "NewPet": {
                    "type": "object",
                    "required": ["name"],
                    "properties": {"name": {"type": "string"}, "tag": {"type": "string"}},
                },
                "error_model": {
                    "type": "object",
                    "properties": {"code": {"type": "integer"}, "message": {"type": "string"}},
                },
            },
            "responses": {
                "Error": {
                    "description": "Unexpected error",
                    "content": {
                        "application/json": {"schema": {"$ref": "#/components/schemas/error_model"}}
                    },
                }
            },
        },
    }


@pytest.fixture
def swagger_20() -> dict[str, Any]:
    """A small Swagger 2.0 document with a body parameter."""
    return {
        "swagger": "2.0",
        "info": {"title": "Legacy API", "version": "2.1"},
        "host": "legacy.example.com",
        "basePath": "/api",
        "schemes": ["https"],
        "consumes": ["application/xml"],
        "paths": {
            "/orders/{orderId}": {
                "put": {
                    "operationId": "updateOrder",
                    "parameters": [
                        {"name": "orderId", "in": "path", "required": True, "type": "integer"},
                        {
                            "name": "body",
                            "in": "body",
                            "required": True,
                            "schema": {"$ref": "#/definitions/Order"},
                        },
                    ],
                    "responses": {
                        "200": {"description": "OK", "schema": {"$ref": "#/definitions/Order"}}
                    },
                }
            }
        },
        "definitions": {
            "Order": {
                "type": "object",
                "properties": {"id": {"type": "integer"}, "status": {"type": "string"}},
            }
        },
    }


@pytest.fixture
def minimal_openapi() -> Callable[..., dict[str, Any]]:
    """Factory for a minimal valid OpenAPI document with extra root fields."""

    def _make(version: str = "3.1.0", **fields: Any) -> dict[str, Any]:
        spec: dict[str, Any] = {
            "openapi": version,
            "info": {"title": "T", "version": "1"},
            "paths": {},
        }
        spec.update(fields)
        return spec

    return _make


# ---------------------------------------------------------------------------
# Filesystem helpers
# ---------------------------------------------------------------------------


@pytest.fixture
def write_doc(tmp_path: Path) -> Callable[[str, Any], Path]:
    """Write a document to *tmp_path* as JSON or YAML depending on the suffix."""

    def _write(name: str, data: Any) -> Path:
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        if path.suffix in (".yaml", ".yml"):
            path.write_text(yaml.safe_dump(data, sort_keys=False), encoding="utf-8")
        else:
            path.write_text(json.dumps(data, indent=2), encoding="utf-8")
        return path

    return _write


# ---------------------------------------------------------------------------
# Isolated config environment
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point the config directory and working directory at a temp location.

    Returns the config directory (``<tmp>/config/specgraph``), which is not
    created on disk.
    """
    config_home = tmp_path / "config"
    workdir = tmp_path / "work"
    workdir.mkdir()
    monkeypatch.setattr("specgraph.config._is_xdg_platform", lambda: True)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(config_home))
    monkeypatch.delenv("SPECGRAPH_TIMEOUT", raising=False)
    monkeypatch.delenv("SPECGRAPH_VERIFY_SSL", raising=False)
    monkeypatch.chdir(workdir)
    return config_home / "specgraph"
