"""Tests for specgraph.parser.loader."""

from __future__ import annotations

import io
import json
import logging
import textwrap
from pathlib import Path
from typing import Any, Callable
from unittest.mock import patch

import httpx
import pytest

from specgraph.exceptions import SpecParseError, SpecValidationError
from specgraph.models import LoaderConfig
from specgraph.parser.loader import (
    _parse_content,
    detect_spec_version,
    load_spec,
    load_spec_graph,
    source_uri,
)

WriteDoc = Callable[[str, Any], Path]


def _response(url: str, status_code: int = 200, **kwargs: Any) -> httpx.Response:
    return httpx.Response(status_code=status_code, request=httpx.Request("GET", url), **kwargs)


# ---------------------------------------------------------------------------
# load_spec dispatch
# ---------------------------------------------------------------------------


class TestLoadSpec:
    """Test load_spec dispatcher routes to the correct loader."""

    def test_loads_from_file_json(self, write_doc: WriteDoc, petstore_31: dict[str, Any]) -> None:
        path = write_doc("petstore.json", petstore_31)
        result = load_spec(str(path))
        assert result["info"]["title"] == "Petstore API"

    def test_loads_from_file_yaml(self, tmp_path: Path) -> None:
        yaml_content = textwrap.dedent("""\
            openapi: "3.0.3"
            info:
              title: YAML Test
              version: "1.0.0"
            paths: {}
        """)
        yaml_file = tmp_path / "spec.yaml"
        yaml_file.write_text(yaml_content, encoding="utf-8")
        result = load_spec(str(yaml_file))
        assert result["openapi"] == "3.0.3"
        assert result["info"]["title"] == "YAML Test"

    def test_loads_from_file_uri(self, write_doc: WriteDoc, swagger_20: dict[str, Any]) -> None:
        path = write_doc("legacy.json", swagger_20)
        assert load_spec(path.as_uri())["swagger"] == "2.0"

    def test_loads_from_stdin(self) -> None:
        spec_json = json.dumps({"openapi": "3.0.3", "info": {"title": "stdin test", "version": "1.0"}})
        with patch("specgraph.parser.loader.sys") as mock_sys:
            mock_sys.stdin = io.StringIO(spec_json)
            result = load_spec("-")
        assert result["info"]["title"] == "stdin test"

    def test_empty_stdin(self) -> None:
        with patch("specgraph.parser.loader.sys") as mock_sys:
            mock_sys.stdin = io.StringIO("   ")
            with pytest.raises(SpecParseError, match="No input received from stdin"):
                load_spec("-")

    def test_loads_from_url(self) -> None:
        spec = {"openapi": "3.0.3", "info": {"title": "URL test", "version": "1.0"}}
        mock_response = _response("https://example.com/spec.json", json=spec)
        with patch("specgraph.parser.loader.httpx.get", return_value=mock_response) as mock_get:
            result = load_spec("https://example.com/spec.json")
        assert result["info"]["title"] == "URL test"
        mock_get.assert_called_once_with(
            "https://example.com/spec.json", timeout=30.0, follow_redirects=True, verify=True
        )

    def test_url_uses_loader_config(self) -> None:
        mock_response = _response("https://example.com/spec.json", json={"openapi": "3.0.0"})
        config = LoaderConfig(timeout=5.0, verify_ssl=False, follow_redirects=False)
        with patch("specgraph.parser.loader.httpx.get", return_value=mock_response) as mock_get:
            load_spec("https://example.com/spec.json", config)
        mock_get.assert_called_once_with(
            "https://example.com/spec.json", timeout=5.0, follow_redirects=False, verify=False
        )

    def test_url_http_error(self) -> None:
        mock_response = _response("https://example.com/spec.json", status_code=404, text="nope")
        with patch("specgraph.parser.loader.httpx.get", return_value=mock_response):
            with pytest.raises(SpecParseError, match="HTTP 404"):
                load_spec("https://example.com/spec.json")

    def test_url_connection_error(self) -> None:
        error = httpx.ConnectError("refused", request=httpx.Request("GET", "https://example.com"))
        with patch("specgraph.parser.loader.httpx.get", side_effect=error):
            with pytest.raises(SpecParseError, match="Failed to fetch spec"):
                load_spec("https://example.com/spec.json")

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(SpecParseError, match="Spec file not found"):
            load_spec(str(tmp_path / "nope.json"))

    def test_empty_file(self, tmp_path: Path) -> None:
        path = tmp_path / "empty.yaml"
        path.write_text("\n", encoding="utf-8")
        with pytest.raises(SpecParseError, match="Spec file is empty"):
            load_spec(str(path))


class TestParseContent:
    """JSON first, then YAML."""

    def test_json(self) -> None:
        assert _parse_content('{"a": 1}') == {"a": 1}

    def test_yaml_fallback(self) -> None:
        assert _parse_content("a: 1\nb: [x, y]\n") == {"a": 1, "b": ["x", "y"]}

    def test_json_hint_does_not_fall_back(self) -> None:
        with pytest.raises(SpecParseError, match="Invalid JSON"):
            _parse_content("a: 1", hint="json")

    def test_non_object_rejected(self) -> None:
        with pytest.raises(SpecParseError, match=r"got list"):
            _parse_content("[1, 2]")

    def test_unparseable(self) -> None:
        with pytest.raises(SpecParseError, match="Failed to parse spec as JSON or YAML"):
            _parse_content("{: [")


class TestDetectSpecVersion:
    def test_openapi(self, petstore_31: dict[str, Any]) -> None:
        version = detect_spec_version(petstore_31)
        assert version is not None
        assert (version.type, version.version) == ("openapi", "3.1.0")

    def test_swagger(self, swagger_20: dict[str, Any]) -> None:
        version = detect_spec_version(swagger_20)
        assert version is not None
        assert version.type == "swagger"

    def test_unknown(self) -> None:
        assert detect_spec_version({"info": {}}) is None
        assert detect_spec_version("openapi") is None


# ---------------------------------------------------------------------------
# Document graph
# ---------------------------------------------------------------------------


def _api(**fields: Any) -> dict[str, Any]:
    doc: dict[str, Any] = {"openapi": "3.1.0", "info": {"title": "T", "version": "1"}}
    doc.update(fields)
    return doc


class TestLoadSpecGraph:
    """Following external references into a document cache."""

    def test_source_uri_for_path(self, tmp_path: Path) -> None:
        path = tmp_path / "api.yaml"
        assert source_uri(str(path)) == path.resolve().as_uri()
        assert source_uri("https://example.com/api.json#frag") == "https://example.com/api.json"

    def test_loads_external_documents(self, write_doc: WriteDoc) -> None:
        entry_path = write_doc(
            "main.yaml",
            _api(
                paths={},
                components={"schemas": {"Err": {"$ref": "shared/errors.yaml#/Error"}}},
            ),
        )
        write_doc("shared/errors.yaml", {"Error": {"$ref": "codes.json"}})
        write_doc("shared/codes.json", {"type": "integer"})

        loaded = load_spec_graph(str(entry_path))

        base = entry_path.parent.resolve()
        assert loaded.document_uri == entry_path.resolve().as_uri()
        assert loaded.cache[loaded.document_uri] is loaded.entry
        assert (base / "shared" / "errors.yaml").as_uri() in loaded.cache
        assert loaded.cache[(base / "shared" / "codes.json").as_uri()] == {"type": "integer"}

    def test_missing_external_document_is_skipped(
        self, write_doc: WriteDoc, caplog: pytest.LogCaptureFixture
    ) -> None:
        entry_path = write_doc(
            "main.json",
            _api(components={"schemas": {"Gone": {"$ref": "missing.json#/Gone"}}}),
        )
        with caplog.at_level(logging.WARNING, logger="specgraph.parser.loader"):
            loaded = load_spec_graph(str(entry_path))
        assert list(loaded.cache) == [loaded.document_uri]
        assert "Failed to load external document" in caplog.text

    def test_operation_ref_documents_loaded(self, write_doc: WriteDoc) -> None:
        entry_path = write_doc(
            "main.json",
            _api(components={"links": {"Next": {"operationRef": "other.json#/paths/~1a/get"}}}),
        )
        write_doc("other.json", _api(paths={"/a": {"get": {"operationId": "getA"}}}))
        loaded = load_spec_graph(str(entry_path))
        assert (entry_path.parent.resolve() / "other.json").as_uri() in loaded.cache

    def test_ids_indexed(self, write_doc: WriteDoc) -> None:
        entry_path = write_doc(
            "main.json",
            _api(components={"schemas": {"Pet": {"$id": "https://example.com/pet", "type": "object"}}}),
        )
        loaded = load_spec_graph(str(entry_path))
        assert loaded.cache["https://example.com/pet"] is loaded.entry["components"]["schemas"]["Pet"]

    def test_self_alias(self, write_doc: WriteDoc) -> None:
        entry_path = write_doc("main.json", _api(paths={}, **{"$self": "https://api.example.com/v1/openapi.json"}))
        loaded = load_spec_graph(str(entry_path))
        assert loaded.cache["https://api.example.com/v1/openapi.json"] is loaded.entry

    def test_invalid_external_document_rejected(self, write_doc: WriteDoc) -> None:
        entry_path = write_doc(
            "main.json", _api(components={"pathItems": {"A": {"$ref": "other.json#/paths/~1a"}}})
        )
        write_doc("other.json", {"openapi": "3.1.0", "info": {"title": "T"}, "paths": {}})
        with pytest.raises(SpecValidationError, match="required string field: 'version'"):
            load_spec_graph(str(entry_path))

    def test_validation_can_be_disabled(self, write_doc: WriteDoc) -> None:
        entry_path = write_doc("main.json", {"openapi": "3.1.0", "info": {}})
        loaded = load_spec_graph(str(entry_path), LoaderConfig(validate_documents=False))
        assert loaded.entry["openapi"] == "3.1.0"

    def test_duplicate_operation_id_across_documents(self, write_doc: WriteDoc) -> None:
        entry_path = write_doc(
            "main.json",
            _api(
                paths={
                    "/a": {"get": {"operationId": "getThing"}},
                    "/b": {"$ref": "other.json#/paths/~1b"},
                }
            ),
        )
        write_doc("other.json", _api(paths={"/b": {"get": {"operationId": "getThing"}}}))
        with pytest.raises(SpecValidationError) as exc_info:
            load_spec_graph(str(entry_path))
        message = str(exc_info.value)
        assert "found across OpenAPI documents" in message
        assert "::paths.GET /a" in message
        assert "::paths.GET /b" in message

    def test_document_limit(self, write_doc: WriteDoc, caplog: pytest.LogCaptureFixture) -> None:
        entry_path = write_doc(
            "main.json",
            _api(
                components={
                    "schemas": {"A": {"$ref": "a.json"}, "B": {"$ref": "b.json"}},
                }
            ),
        )
        write_doc("a.json", {"type": "string"})
        write_doc("b.json", {"type": "string"})
        with caplog.at_level(logging.WARNING, logger="specgraph.parser.loader"):
            loaded = load_spec_graph(str(entry_path), LoaderConfig(max_documents=2))
        assert len(loaded.cache) == 2
        assert "document limit" in caplog.text

    def test_remote_references(self) -> None:
        entry = _api(components={"schemas": {"Err": {"$ref": "common.json#/Error"}}})
        responses = {
            "https://api.example.com/specs/openapi.json": _response(
                "https://api.example.com/specs/openapi.json", json=entry
            ),
            "https://api.example.com/specs/common.json": _response(
                "https://api.example.com/specs/common.json", json={"Error": {"type": "object"}}
            ),
        }

        def fake_get(url: str, **kwargs: Any) -> httpx.Response:
            return responses[url]

        with patch("specgraph.parser.loader.httpx.get", side_effect=fake_get):
            loaded = load_spec_graph("https://api.example.com/specs/openapi.json")

        assert loaded.document_uri == "https://api.example.com/specs/openapi.json"
        assert "https://api.example.com/specs/common.json" in loaded.cache

    def test_entry_failure_raises(self, tmp_path: Path) -> None:
        with pytest.raises(SpecParseError):
            load_spec_graph(str(tmp_path / "missing.yaml"))
