"""Structural validation of Swagger 2.0 and OpenAPI 3.x documents.

:func:`validate_spec` inspects an already-parsed document (nested dicts and
lists, as produced by :func:`~specgraph.parser.loader.load_spec`) and raises
:class:`~specgraph.exceptions.SpecValidationError` on the *first* rule
violation it finds. It never mutates the document, performs no I/O and makes
no attempt at partial recovery: downstream generation assumes a structurally
sound document.

The checks run in a fixed order so that error messages are deterministic:

1. Root -- version header, ``info``, the presence of ``paths`` /
   ``components`` / ``webhooks``, ``$self``, Info URI fields and ``license``.
2. Paths -- template collisions across *all* keys, then each Path Item:
   template syntax, ``additionalOperations`` keys, path template parameters
   and parameter exclusivity per operation.
3. Content objects -- Media Type, Header, Request Body, Response, Link and
   Example Objects across ``paths``, ``webhooks``, callbacks and
   ``components``, plus every ``components.parameters`` entry.
4. ``operationId`` uniqueness across every operation of the document.
5. Components -- key naming, discriminators and security schemes.
6. Tags, ``jsonSchemaDialect`` and finally every Server Object.

Local ``#/...`` parameter references are followed when deciding whether a
path template variable is declared; every other reference is checked only as
a Reference Object.
"""

from __future__ import annotations

import re
from typing import Any, Optional

from specgraph.exceptions import SpecValidationError
from specgraph.models import (
    FIXED_METHODS,
    DynamicRef,
    Ref,
    is_reference,
    schema_or_ref,
)
from specgraph.parser.extractor import iter_operations, operation_key
from specgraph.parser.uri import (
    decode_fragment,
    is_absolute_iri,
    is_email_address,
    is_uri_reference,
    is_url,
    walk_json_pointer,
)

_TEMPLATE_VARIABLE = re.compile(r"\{([^}]+)\}")
_HTTP_METHOD_TOKEN = re.compile(r"^[!#$%&'*+\-.^_`|~0-9A-Za-z]+$")
_COMPONENT_KEY = re.compile(r"^[a-zA-Z0-9.\-_]+$")
_STATUS_CODE = re.compile(r"^[1-5](\d{2}|XX)$")

COMPONENT_CATEGORIES = (
    "schemas",
    "responses",
    "parameters",
    "examples",
    "requestBodies",
    "headers",
    "securitySchemes",
    "links",
    "callbacks",
    "pathItems",
    "mediaTypes",
    "webhooks",
)
"""Component maps whose keys must match ``^[a-zA-Z0-9.\\-_]+$``."""

PARAMETER_LOCATIONS = frozenset({"query", "path", "header", "cookie", "querystring"})

_STYLES_BY_LOCATION: dict[str, frozenset[str]] = {
    "path": frozenset({"matrix", "label", "simple"}),
    "query": frozenset({"form", "spaceDelimited", "pipeDelimited", "deepObject"}),
    "header": frozenset({"simple"}),
    "cookie": frozenset({"form", "cookie"}),
    "querystring": frozenset(),
}

# Header parameters with these names are ignored by the parameter rules
_RESERVED_HEADERS = frozenset({"accept", "content-type", "authorization"})

_SECURITY_SCHEME_TYPES = ("apiKey", "http", "oauth2", "openIdConnect", "mutualTLS")

# Keywords whose values are nested schemas, for the discriminator walk
_SCHEMA_MAP_KEYWORDS = ("properties", "patternProperties", "$defs", "definitions")
_SCHEMA_LIST_KEYWORDS = ("allOf", "oneOf", "anyOf", "prefixItems")
_SCHEMA_KEYWORDS = ("items", "additionalProperties", "not", "if", "then", "else")


def validate_spec(spec: Any) -> None:
    """Validate that *spec* is a structurally sound Swagger 2.0 / OpenAPI 3.x document.

    Args:
        spec: The parsed document.

    Raises:
        SpecValidationError: On the first rule violation. The message names
            the offending path, parameter or component.

    Example::

        spec = load_spec("petstore.yaml")
        validate_spec(spec)   # raises on the first problem
    """
    if spec is None:
        raise SpecValidationError("Specification cannot be null or undefined.")
    if not isinstance(spec, dict):
        raise SpecValidationError(
            f"Specification must be an object (got {type(spec).__name__})."
        )
    _SpecValidator(spec).run()


# --- Small helpers ---


def _is_present(obj: dict[str, Any], key: str) -> bool:
    return obj.get(key) is not None


def _template_variables(value: str) -> list[str]:
    """Return every ``{name}`` variable of a path template or server URL, in order."""
    return _TEMPLATE_VARIABLE.findall(value)


def path_signature(path: str) -> str:
    """Normalise a path template for collision detection.

    Every segment that is entirely a template expression becomes ``{}``, so
    ``/users/{id}/details`` and ``/users/{name}/details`` share the signature
    ``/users/{}/details``.
    """
    return "/".join(
        "{}" if segment.startswith("{") and segment.endswith("}") else segment
        for segment in path.split("/")
    )


def _is_external_reference(obj: Any) -> bool:
    target = schema_or_ref(obj)
    return isinstance(target, Ref) and not target.ref.startswith("#")


def _validate_path_key(path_key: Any) -> None:
    # YAML may load keys such as ``200`` as integers
    if not isinstance(path_key, str) or not path_key.startswith("/"):
        raise SpecValidationError(f"Path key \"{path_key}\" must start with \"/\".")


def _validate_template_braces(value: str, location: str, label: str) -> None:
    """Reject unbalanced, empty or nested ``{...}`` expressions."""
    index = 0
    while index < len(value):
        char = value[index]
        if char == "{":
            close = value.find("}", index + 1)
            if close == -1:
                raise SpecValidationError(
                    f"{label} at '{location}' contains an opening \"{{\" without a matching \"}}\"."
                )
            if close == index + 1:
                raise SpecValidationError(
                    f"{label} at '{location}' contains an empty template expression \"{{}}\"."
                )
            if "{" in value[index + 1 : close]:
                raise SpecValidationError(
                    f"{label} at '{location}' contains nested \"{{\" characters, which is not allowed."
                )
            index = close + 1
            continue
        if char == "}":
            raise SpecValidationError(
                f"{label} at '{location}' contains a closing \"}}\" without a matching \"{{\"."
            )
        index += 1


def _validate_reference_object(obj: dict[str, Any], location: str) -> None:
    """Check a Reference Object: one reference keyword, a URI-reference target."""
    if isinstance(obj.get("$ref"), str) and isinstance(obj.get("$dynamicRef"), str):
        raise SpecValidationError(
            f"Reference Object at '{location}' must not define both '$ref' and '$dynamicRef'."
        )

    target = schema_or_ref(obj)
    if isinstance(target, Ref) and not is_uri_reference(target.ref):
        raise SpecValidationError(
            f"Reference Object at '{location}' has invalid '$ref' URI. Value: \"{target.ref}\""
        )
    if isinstance(target, DynamicRef) and not is_uri_reference(target.ref):
        raise SpecValidationError(
            f"Reference Object at '{location}' has invalid '$dynamicRef' URI. Value: \"{target.ref}\""
        )

    for key in ("summary", "description"):
        if key in obj and not isinstance(obj[key], str):
            raise SpecValidationError(
                f"Reference Object at '{location}' has non-string '{key}'. Value: \"{obj[key]}\""
            )


def _validate_external_docs(external_docs: Any, location: str) -> None:
    if not isinstance(external_docs, dict):
        raise SpecValidationError(f"ExternalDocs at '{location}' must be an object.")
    url = external_docs.get("url")
    if not is_uri_reference(url):
        raise SpecValidationError(
            f"ExternalDocs.url must be a valid URI at '{location}'. Value: \"{url}\""
        )


def _validate_unique_parameters(params: Any, location: str) -> None:
    """Parameters must be unique per ``(name, in)``; header names ignore case."""
    if not isinstance(params, list):
        return
    seen: set[tuple[str, str]] = set()
    for param in params:
        if not isinstance(param, dict):
            continue
        name, loc = param.get("name"), param.get("in")
        if not isinstance(name, str) or not isinstance(loc, str):
            continue
        key = (name.lower() if loc.lower() == "header" else name, loc)
        if key in seen:
            raise SpecValidationError(
                f"Duplicate parameter '{name}' in '{location}'. "
                "Parameter names must be unique per location."
            )
        seen.add(key)


def _validate_example_object(example: Any, location: str) -> None:
    """Example Object field exclusivity (``value`` / ``dataValue`` / ``serializedValue`` / ``externalValue``)."""
    if not isinstance(example, dict):
        return
    if is_reference(example):
        _validate_reference_object(example, location)
        return

    exclusive_pairs = (
        ("value", "dataValue"),
        ("value", "serializedValue"),
        ("value", "externalValue"),
        ("serializedValue", "externalValue"),
    )
    for first, second in exclusive_pairs:
        if first in example and second in example:
            raise SpecValidationError(
                f"Example Object at '{location}' cannot define both '{first}' and '{second}'. "
                "These fields are mutually exclusive."
            )

    for key in ("serializedValue", "externalValue"):
        if key in example and not isinstance(example[key], str):
            raise SpecValidationError(
                f"Example Object at '{location}' has a non-string '{key}'. It MUST be a string."
            )


def _validate_examples_map(examples: Any, location: str) -> None:
    if isinstance(examples, dict):
        for name, example in examples.items():
            _validate_example_object(example, f"{location}.examples.{name}")


def _validate_media_type(media: Any, location: str) -> None:
    if not isinstance(media, dict):
        return
    if is_reference(media):
        _validate_reference_object(media, location)
        return

    if "example" in media and "examples" in media:
        raise SpecValidationError(
            f"Media Type Object at '{location}' contains both 'example' and 'examples'. "
            "These fields are mutually exclusive."
        )
    if "encoding" in media and ("prefixEncoding" in media or "itemEncoding" in media):
        raise SpecValidationError(
            f"Media Type Object at '{location}' defines 'encoding' alongside 'prefixEncoding' "
            "or 'itemEncoding'. These fields are mutually exclusive."
        )
    _validate_examples_map(media.get("examples"), location)


def _validate_content_map(content: Any, location: str) -> None:
    if isinstance(content, dict):
        for media_type, media in content.items():
            _validate_media_type(media, f"{location}.{media_type}")


def _validate_header(header: Any, location: str) -> None:
    if not isinstance(header, dict):
        return
    if is_reference(header):
        _validate_reference_object(header, location)
        return

    if "name" in header:
        raise SpecValidationError(f"Header Object at '{location}' MUST NOT define a 'name' field.")
    if "in" in header:
        raise SpecValidationError(f"Header Object at '{location}' MUST NOT define an 'in' field.")
    if "allowEmptyValue" in header:
        raise SpecValidationError(f"Header Object at '{location}' MUST NOT define 'allowEmptyValue'.")
    if "style" in header and header["style"] != "simple":
        raise SpecValidationError(
            f"Header Object at '{location}' has invalid 'style'. The only allowed value is 'simple'."
        )
    if "example" in header and "examples" in header:
        raise SpecValidationError(
            f"Header Object at '{location}' contains both 'example' and 'examples'. "
            "These fields are mutually exclusive."
        )
    _validate_examples_map(header.get("examples"), location)

    if "schema" in header and "content" in header:
        raise SpecValidationError(
            f"Header Object at '{location}' contains both 'schema' and 'content'. "
            "These fields are mutually exclusive."
        )
    content = header.get("content")
    if content is not None:
        if not isinstance(content, dict) or len(content) != 1:
            raise SpecValidationError(
                f"Header Object at '{location}' has an invalid 'content' map. "
                "It MUST contain exactly one entry."
            )
        _validate_content_map(content, f"{location}.content")


def _validate_headers_map(headers: Any, location: str) -> None:
    if not isinstance(headers, dict):
        return
    for name, header in headers.items():
        # Response headers named Content-Type are ignored
        if str(name).lower() == "content-type":
            continue
        _validate_header(header, f"{location}.{name}")


def _validate_link(link: Any, location: str) -> None:
    if not isinstance(link, dict):
        return
    if is_reference(link):
        _validate_reference_object(link, location)
        return

    operation_id = link.get("operationId")
    operation_ref = link.get("operationRef")
    has_id = isinstance(operation_id, str) and operation_id != ""
    has_ref = isinstance(operation_ref, str) and operation_ref != ""

    if has_id and has_ref:
        raise SpecValidationError(
            f"Link Object at '{location}' defines both 'operationId' and 'operationRef'. "
            "These fields are mutually exclusive."
        )
    if not has_id and not has_ref:
        raise SpecValidationError(
            f"Link Object at '{location}' must define either 'operationId' or 'operationRef'."
        )
    if has_ref and not is_uri_reference(operation_ref):
        raise SpecValidationError(
            f"Link Object at '{location}' has invalid 'operationRef'. It must be a valid URI reference."
        )

    if "server" in link:
        _validate_servers([link["server"]], f"{location}.server")


def _validate_links_map(links: Any, location: str) -> None:
    if isinstance(links, dict):
        for name, link in links.items():
            _validate_link(link, f"{location}.{name}")


def _validate_request_body(body: Any, location: str) -> None:
    if not isinstance(body, dict):
        return
    if is_reference(body):
        _validate_reference_object(body, location)
        return

    content = body.get("content")
    if content is None:
        raise SpecValidationError(f"RequestBody Object at '{location}' must define 'content'.")
    if not isinstance(content, dict):
        raise SpecValidationError(
            f"RequestBody Object at '{location}' has invalid 'content'. It must be an object."
        )
    _validate_content_map(content, f"{location}.content")


def _validate_response(response: Any, location: str) -> None:
    if not isinstance(response, dict):
        return
    if is_reference(response):
        _validate_reference_object(response, location)
        return

    if "description" in response and not isinstance(response["description"], str):
        raise SpecValidationError(f"Response Object at '{location}' has non-string 'description'.")

    _validate_headers_map(response.get("headers"), f"{location}.headers")
    _validate_content_map(response.get("content"), f"{location}.content")
    _validate_links_map(response.get("links"), f"{location}.links")


def is_valid_status_code(status: Any) -> bool:
    """Return ``True`` for ``default``, ``1XX``-``5XX`` and ``100``-``599``."""
    normalized = str(status).upper()
    return normalized == "DEFAULT" or bool(_STATUS_CODE.match(normalized))


def _validate_responses(responses: Any, location: str) -> None:
    if not isinstance(responses, dict):
        return
    if not responses:
        raise SpecValidationError(
            f"Responses Object at '{location}' must define at least one response code."
        )
    for status, response in responses.items():
        if not is_valid_status_code(status):
            raise SpecValidationError(
                f"Responses Object at '{location}' has invalid status code '{status}'."
            )
        _validate_response(response, f"{location}.{status}")


def _validate_servers(servers: Any, location: str) -> None:
    """Validate a ``servers`` array (root, Path Item, operation or Link)."""
    if servers is None:
        return
    if not isinstance(servers, list):
        raise SpecValidationError(f"Servers at '{location}' must be an array.")

    seen_names: set[str] = set()

    for index, server in enumerate(servers):
        where = f"{location}[{index}]"
        if not isinstance(server, dict):
            server = {}
        url = server.get("url")
        if not isinstance(url, str) or not url:
            raise SpecValidationError(f"Server url must be a non-empty string at {where}.")
        _validate_template_braces(url, f"{where}.url", "Server url")

        if "?" in url or "#" in url:
            raise SpecValidationError(
                f"Server url MUST NOT include query or fragment at {where}. Value: \"{url}\""
            )

        name = server.get("name")
        if name is not None and not isinstance(name, str):
            raise SpecValidationError(f"Server name must be a string at {where}.")
        if name:
            if name in seen_names:
                raise SpecValidationError(
                    f"Server name \"{name}\" must be unique at {location}. Duplicate found."
                )
            seen_names.add(name)

        template_vars = _template_variables(url)
        variables = server.get("variables")
        if template_vars and not isinstance(variables, dict):
            raise SpecValidationError(
                f"Server url defines template variables but 'variables' is missing at {where}."
            )
        for var_name in template_vars:
            if var_name not in variables:
                raise SpecValidationError(
                    f"Server url variable \"{var_name}\" is not defined in variables at {where}."
                )

        if not isinstance(variables, dict):
            continue

        for var_name, variable in variables.items():
            if not isinstance(variable, dict) or not isinstance(variable.get("default"), str):
                raise SpecValidationError(
                    f"Server variable \"{var_name}\" must define a string default at {where}."
                )
            enum = variable.get("enum")
            if enum is not None:
                if not isinstance(enum, list) or not enum:
                    raise SpecValidationError(
                        f"Server variable \"{var_name}\" enum MUST NOT be empty at {where}."
                    )
                if not all(isinstance(value, str) for value in enum):
                    raise SpecValidationError(
                        f"Server variable \"{var_name}\" enum MUST contain only strings at {where}."
                    )
                if variable["default"] not in enum:
                    raise SpecValidationError(
                        f"Server variable \"{var_name}\" default MUST be present in enum at {where}."
                    )
            if url.count(f"{{{var_name}}}") > 1:
                raise SpecValidationError(
                    f"Server variable \"{var_name}\" appears more than once in url at {where}."
                )


def _validate_https_url(value: Any, location: str, field: str) -> None:
    if not isinstance(value, str) or not value.strip():
        raise SpecValidationError(f"{field} must be a non-empty string at {location}.")
    if not is_url(value):
        raise SpecValidationError(f"{field} must be a valid URL at {location}. Value: \"{value}\"")
    if not value.lower().startswith("https:"):
        raise SpecValidationError(
            f"{field} must use https (TLS required) at {location}. Value: \"{value}\""
        )


def _validate_security_schemes(schemes: Any, location: str) -> None:
    if not isinstance(schemes, dict):
        return

    for name, scheme in schemes.items():
        if not isinstance(scheme, dict):
            continue
        if is_reference(scheme):
            _validate_reference_object(scheme, f"{location}.{name}")
            continue

        scheme_type = scheme.get("type")
        if not isinstance(scheme_type, str):
            raise SpecValidationError(
                f"Security scheme \"{name}\" must define a string 'type' at {location}."
            )
        if scheme_type not in _SECURITY_SCHEME_TYPES:
            raise SpecValidationError(
                f"Security scheme \"{name}\" has unsupported type \"{scheme_type}\" at {location}."
            )

        if scheme_type == "apiKey":
            key_name = scheme.get("name")
            if not isinstance(key_name, str) or not key_name:
                raise SpecValidationError(
                    f"apiKey security scheme \"{name}\" must define non-empty 'name' at {location}."
                )
            if scheme.get("in") not in ("query", "header", "cookie"):
                raise SpecValidationError(
                    f"apiKey security scheme \"{name}\" must define 'in' as 'query', 'header', "
                    f"or 'cookie' at {location}."
                )
        elif scheme_type == "http":
            http_scheme = scheme.get("scheme")
            if not isinstance(http_scheme, str) or not http_scheme:
                raise SpecValidationError(
                    f"http security scheme \"{name}\" must define non-empty 'scheme' at {location}."
                )
        elif scheme_type == "oauth2":
            flows = scheme.get("flows")
            if not isinstance(flows, dict):
                raise SpecValidationError(
                    f"oauth2 security scheme \"{name}\" must define 'flows' at {location}."
                )
            if not flows:
                raise SpecValidationError(
                    f"oauth2 security scheme \"{name}\" must define at least one flow at {location}."
                )
            for flow_name, flow in flows.items():
                flow_location = f"{location}.{name}.flows"
                if not isinstance(flow, dict):
                    raise SpecValidationError(
                        f"OAuth2 flow \"{flow_name}\" must be an object at {flow_location}."
                    )
                if not isinstance(flow.get("scopes"), dict):
                    raise SpecValidationError(
                        f"OAuth2 flow \"{flow_name}\" must define 'scopes' as an object at {flow_location}."
                    )
        elif scheme_type == "openIdConnect":
            _validate_https_url(
                scheme.get("openIdConnectUrl"), f"{location}.{name}", "openIdConnectUrl"
            )


def _validate_discriminator(schema: dict[str, Any], location: str) -> None:
    discriminator = schema.get("discriminator")
    if discriminator is None:
        return

    # Swagger 2.0 definitions carry the property name as a plain string
    if isinstance(discriminator, str) and location.startswith("definitions."):
        return
    if not isinstance(discriminator, dict):
        raise SpecValidationError(f"Discriminator at '{location}' must be an object.")

    property_name = discriminator.get("propertyName")
    if not isinstance(property_name, str) or not property_name.strip():
        raise SpecValidationError(
            f"Discriminator at '{location}' must define a non-empty string 'propertyName'."
        )

    mapping = discriminator.get("mapping")
    if mapping is None:
        return
    if not isinstance(mapping, dict):
        raise SpecValidationError(f"Discriminator mapping at '{location}' must be an object.")
    for key, value in mapping.items():
        if not isinstance(value, str):
            raise SpecValidationError(
                f"Discriminator mapping value for '{key}' at '{location}' must be a string."
            )


def _validate_schema_tree(schema: Any, location: str, visited: set[int]) -> None:
    """Check discriminators on *schema* and every schema nested inside it."""
    if not isinstance(schema, dict) or is_reference(schema) or id(schema) in visited:
        return
    visited.add(id(schema))

    _validate_discriminator(schema, location)

    for keyword in _SCHEMA_MAP_KEYWORDS:
        children = schema.get(keyword)
        if isinstance(children, dict):
            for name, child in children.items():
                _validate_schema_tree(child, f"{location}.{keyword}.{name}", visited)
    for keyword in _SCHEMA_LIST_KEYWORDS:
        children = schema.get(keyword)
        if isinstance(children, list):
            for index, child in enumerate(children):
                _validate_schema_tree(child, f"{location}.{keyword}[{index}]", visited)
    for keyword in _SCHEMA_KEYWORDS:
        if keyword in schema:
            _validate_schema_tree(schema[keyword], f"{location}.{keyword}", visited)


# --- Document-level validation ---


class _SpecValidator:
    """One validation pass over a single document."""

    def __init__(self, spec: dict[str, Any]) -> None:
        self.spec = spec
        swagger = spec.get("swagger")
        openapi = spec.get("openapi")
        self.is_swagger2 = isinstance(swagger, str) and swagger.startswith("2.")
        self.is_openapi3 = isinstance(openapi, str) and openapi.startswith("3.")
        self.components = spec.get("components") if isinstance(spec.get("components"), dict) else {}
        self.callback_items: dict[str, dict[str, Any]] = {}

    def run(self) -> None:
        self._validate_root()
        self._validate_info()

        paths = self.spec.get("paths")
        if isinstance(paths, dict):
            for path_key in paths:
                _validate_path_key(path_key)
            self._validate_path_collisions(paths)
            for path_key, path_item in paths.items():
                self._validate_path_item(path_key, path_item)

        self.callback_items = {
            **self._collect_callbacks(self.spec.get("paths"), "paths."),
            **self._collect_callbacks(self.spec.get("webhooks"), "webhooks."),
        }

        if self.is_openapi3:
            self._validate_path_items_content(self.spec.get("webhooks"), "webhooks.")
            self._validate_path_items_content(self.callback_items, "callbacks.")
            self._validate_components_content()

        self._validate_operation_ids()

        if self.is_openapi3:
            self._validate_component_keys()
            schemas = self.components.get("schemas")
            if isinstance(schemas, dict):
                visited: set[int] = set()
                for name, schema in schemas.items():
                    _validate_schema_tree(schema, f"components.schemas.{name}", visited)
            _validate_security_schemes(
                self.components.get("securitySchemes"), "components.securitySchemes"
            )
            self._validate_tags()
            self._validate_dialect()
            self._validate_all_servers()

        definitions = self.spec.get("definitions")
        if isinstance(definitions, dict):
            visited = set()
            for name, schema in definitions.items():
                _validate_schema_tree(schema, f"definitions.{name}", visited)

    # -- root --

    def _validate_root(self) -> None:
        if not self.is_swagger2 and not self.is_openapi3:
            raise SpecValidationError(
                "Unsupported or missing OpenAPI/Swagger version. Specification must contain "
                "'swagger: \"2.x\"' or 'openapi: \"3.x\"'."
            )

        info = self.spec.get("info")
        if not isinstance(info, dict):
            raise SpecValidationError("Specification must contain an 'info' object.")
        for field in ("title", "version"):
            value = info.get(field)
            if not isinstance(value, str) or not value:
                raise SpecValidationError(
                    f"Specification info object must contain a required string field: '{field}'."
                )

        if self.is_swagger2 and not isinstance(self.spec.get("paths"), dict):
            raise SpecValidationError("Swagger 2.0 specification must contain a 'paths' object.")
        if self.is_openapi3 and not any(
            _is_present(self.spec, key) for key in ("paths", "components", "webhooks")
        ):
            raise SpecValidationError(
                "OpenAPI 3.x specification must contain at least one of: "
                "'paths', 'components', or 'webhooks'."
            )

    def _validate_info(self) -> None:
        info = self.spec["info"]

        if "termsOfService" in info and not is_uri_reference(info["termsOfService"]):
            raise SpecValidationError(
                f"Info.termsOfService must be a valid URI. Value: \"{info['termsOfService']}\""
            )

        contact = info.get("contact")
        if isinstance(contact, dict):
            if "url" in contact and not is_uri_reference(contact["url"]):
                raise SpecValidationError(
                    f"Info.contact.url must be a valid URI. Value: \"{contact['url']}\""
                )
            if "email" in contact and not is_email_address(contact["email"]):
                raise SpecValidationError(
                    f"Info.contact.email must be a valid email address. Value: \"{contact['email']}\""
                )

        license_info = info.get("license")
        if isinstance(license_info, dict):
            if _is_present(license_info, "url") and _is_present(license_info, "identifier"):
                raise SpecValidationError(
                    "License object cannot contain both 'url' and 'identifier' fields. "
                    "They are mutually exclusive."
                )
            url = license_info.get("url")
            if isinstance(url, str) and not is_uri_reference(url):
                raise SpecValidationError(f"Info.license.url must be a valid URI. Value: \"{url}\"")

        if self.is_openapi3 and "$self" in self.spec:
            if not is_uri_reference(self.spec["$self"]):
                raise SpecValidationError(
                    f"OpenAPI Object $self must be a valid URI reference. "
                    f"Value: \"{self.spec['$self']}\""
                )

        if "externalDocs" in self.spec:
            _validate_external_docs(self.spec["externalDocs"], "externalDocs")

    # -- paths --

    def _validate_path_collisions(self, paths: dict[str, Any]) -> None:
        signatures: dict[str, str] = {}
        for path_key in paths:
            signature = path_signature(path_key)
            if "{}" not in signature:
                continue
            if signature in signatures:
                raise SpecValidationError(
                    "Ambiguous path definition detected. OAS 3.2 forbids identical path "
                    "hierarchies with different parameter names.\n"
                    f"Path 1: \"{signatures[signature]}\"\n"
                    f"Path 2: \"{path_key}\""
                )
            signatures[signature] = path_key

    def _validate_path_item(self, path_key: str, path_item: Any) -> None:
        _validate_template_braces(path_key, f"paths.{path_key}", "Path template")

        template_vars = _template_variables(path_key)
        duplicates = sorted({name for name in template_vars if template_vars.count(name) > 1})
        if duplicates:
            raise SpecValidationError(
                f"Path template \"{path_key}\" repeats template variable(s): {', '.join(duplicates)}"
            )

        if not isinstance(path_item, dict):
            return
        if is_reference(path_item):
            # The target is validated where it is defined
            _validate_reference_object(path_item, f"paths.{path_key}")
            return

        self._validate_additional_operation_keys(path_key, path_item)

        path_params = path_item.get("parameters")
        if not isinstance(path_params, list):
            path_params = []
        _validate_unique_parameters(path_params, f"{path_key}.parameters")

        for method, operation in iter_operations(path_item):
            where = f"{method.label} {path_key}"
            if "externalDocs" in operation:
                _validate_external_docs(
                    operation["externalDocs"], f"{path_key}.{operation_key(method)}.externalDocs"
                )
            self._validate_operation_parameters(
                path_params,
                operation,
                where,
                f"{path_key}.{operation_key(method)}",
                path_key,
            )
            if self.is_openapi3:
                self._validate_operation_content(
                    operation, f"paths.{path_key}.{operation_key(method)}"
                )

    def _validate_additional_operation_keys(self, path_key: str, path_item: dict[str, Any]) -> None:
        additional = path_item.get("additionalOperations")
        if not isinstance(additional, dict):
            return
        for method_key in additional:
            if not isinstance(method_key, str) or not _HTTP_METHOD_TOKEN.match(method_key):
                raise SpecValidationError(
                    f"Path '{path_key}' defines additionalOperations method \"{method_key}\" "
                    "which is not a valid HTTP method token."
                )
            normalized = method_key.lower()
            if normalized in FIXED_METHODS:
                raise SpecValidationError(
                    f"Path '{path_key}' defines additionalOperations method \"{method_key}\" "
                    "which conflicts with a fixed HTTP method. "
                    f"Use the corresponding fixed field (e.g. \"{normalized}\") instead."
                )

    def _resolve_local(self, param: Any) -> Any:
        """Follow local ``#/...`` references from *param*; ``None`` if unresolvable."""
        seen: set[str] = set()
        while True:
            target = schema_or_ref(param)
            if not isinstance(target, Ref):
                return param
            if not target.ref.startswith("#") or target.ref in seen:
                return None
            seen.add(target.ref)
            try:
                param = walk_json_pointer(self.spec, decode_fragment(target.ref[1:]))
            except LookupError:
                return None

    def _validate_operation_parameters(
        self,
        path_params: list[Any],
        operation: dict[str, Any],
        where: str,
        location: str,
        path_key: Optional[str],
    ) -> None:
        """Parameter rules for one operation's effective parameter set.

        Args:
            path_params: Path Item level parameters.
            operation: The Operation Object.
            where: ``"GET /pets"`` style label used in messages.
            location: Dotted location used for uniqueness messages.
            path_key: The templated path, or ``None`` when path template
                checks do not apply (webhooks, callbacks, component Path Items).
        """
        op_params = operation.get("parameters")
        if not isinstance(op_params, list):
            op_params = []
        _validate_unique_parameters(op_params, f"{location}.parameters")

        all_params = [*path_params, *op_params]
        resolved = [self._resolve_local(param) for param in all_params]
        resolved_dicts = [param for param in resolved if isinstance(param, dict)]

        # A parameter in another document may declare any template variable
        external = any(
            target is None and _is_external_reference(param)
            for param, target in zip(all_params, resolved)
        )

        template_vars = _template_variables(path_key) if path_key is not None else None
        if template_vars is not None and not external:
            for name in template_vars:
                if not any(
                    param.get("in") == "path" and param.get("name") == name
                    for param in resolved_dicts
                ):
                    raise SpecValidationError(
                        f"Path template '{{{name}}}' in '{where}' is missing a corresponding "
                        "'in: path' parameter definition."
                    )

        locations = [param.get("in") for param in resolved_dicts]
        if "query" in locations and "querystring" in locations:
            raise SpecValidationError(
                f"Operation '{where}' contains both 'query' and 'querystring' parameters. "
                "These are mutually exclusive."
            )
        if locations.count("querystring") > 1:
            raise SpecValidationError(
                f"Operation '{where}' defines more than one 'querystring' parameter. Only one is allowed."
            )

        for index, (param, target) in enumerate(zip(all_params, resolved)):
            if not isinstance(param, dict):
                raise SpecValidationError(
                    f"Parameter in '{where}' must be an object or Reference Object."
                )
            if is_reference(param):
                _validate_reference_object(param, f"{where}.parameters[{index}]")
                if template_vars is not None and isinstance(target, dict):
                    self._validate_path_parameter(target, where, path_key, template_vars)
                continue

            name = param.get("name")
            if not isinstance(name, str) or not name.strip():
                raise SpecValidationError(
                    f"Parameter in '{where}' must define a non-empty string 'name'."
                )
            loc = param.get("in")
            if not isinstance(loc, str) or not loc.strip():
                raise SpecValidationError(
                    f"Parameter '{name}' in '{where}' must define a non-empty string 'in'."
                )
            if loc == "header" and name.lower() in _RESERVED_HEADERS:
                continue
            if template_vars is not None:
                self._validate_path_parameter(param, where, path_key, template_vars)

            self._validate_parameter(
                param,
                f"Parameter '{name}' in '{where}'",
                f"{where}.parameters.{name}",
            )

    def _validate_path_parameter(
        self, param: dict[str, Any], where: str, path_key: str, template_vars: list[str]
    ) -> None:
        if param.get("in") != "path":
            return
        name = param.get("name")
        if name not in template_vars:
            raise SpecValidationError(
                f"Path parameter '{name}' in '{where}' does not match any template variable "
                f"in path '{path_key}'."
            )
        if param.get("required") is not True:
            raise SpecValidationError(
                f"Path parameter '{name}' in '{where}' must be marked as required: true."
            )

    def _validate_parameter(self, param: dict[str, Any], subject: str, location: str) -> None:
        """Exclusivity rules shared by operation and component parameters.

        Args:
            param: A concrete Parameter Object.
            subject: Message prefix naming the parameter.
            location: Dotted location for nested objects.
        """
        self._validate_parameter_exclusivity(param, subject)
        _validate_examples_map(param.get("examples"), location)

        loc = param.get("in")

        if self.is_openapi3:
            content = param.get("content")
            if content is not None and (not isinstance(content, dict) or len(content) != 1):
                raise SpecValidationError(
                    f"{subject} has an invalid 'content' map. It MUST contain exactly one entry."
                )
            if param.get("allowEmptyValue"):
                if loc != "query":
                    raise SpecValidationError(
                        f"{subject} defines 'allowEmptyValue' but location is not 'query'."
                    )
                if param.get("style"):
                    raise SpecValidationError(
                        f"{subject} defines 'allowEmptyValue' alongside 'style'. This is forbidden."
                    )

        if loc == "querystring":
            if any(key in param for key in ("style", "explode", "allowReserved")):
                raise SpecValidationError(
                    f"{subject} has location 'querystring' but defines style/explode/allowReserved, "
                    "which are forbidden."
                )
            if "schema" in param:
                raise SpecValidationError(
                    f"{subject} has location 'querystring' but defines 'schema'. "
                    "Querystring parameters MUST use 'content' instead."
                )
            if "content" not in param:
                raise SpecValidationError(
                    f"{subject} has location 'querystring' but is missing 'content'. "
                    "Querystring parameters MUST use 'content'."
                )

        if self.is_openapi3:
            self._validate_parameter_style(param, subject)
            _validate_content_map(param.get("content"), f"{location}.content")

    def _validate_parameter_exclusivity(self, param: dict[str, Any], subject: str) -> None:
        if "example" in param and "examples" in param:
            raise SpecValidationError(
                f"{subject} contains both 'example' and 'examples'. These fields are mutually exclusive."
            )
        if self.is_openapi3 and "schema" in param and "content" in param:
            raise SpecValidationError(
                f"{subject} contains both 'schema' and 'content'. These fields are mutually exclusive."
            )

    def _validate_parameter_style(self, param: dict[str, Any], subject: str) -> None:
        loc = param.get("in")
        if loc not in PARAMETER_LOCATIONS:
            raise SpecValidationError(f"{subject} has invalid location '{loc}' for OpenAPI 3.x.")

        if "style" not in param:
            return
        style = param["style"]
        if not isinstance(style, str):
            raise SpecValidationError(f"{subject} has non-string 'style'.")
        if style not in _STYLES_BY_LOCATION[loc]:
            raise SpecValidationError(
                f"{subject} has invalid style '{style}' for location '{loc}'."
            )
        if style in ("spaceDelimited", "pipeDelimited") and param.get("explode") is True:
            raise SpecValidationError(
                f"{subject} uses '{style}' style with explode=true, which is not permitted."
            )

    # -- content objects --

    def _validate_operation_content(self, operation: dict[str, Any], location: str) -> None:
        _validate_request_body(operation.get("requestBody"), f"{location}.requestBody")
        _validate_responses(operation.get("responses"), f"{location}.responses")

    def _validate_path_items_content(self, path_items: Any, prefix: str) -> None:
        """Content and parameter checks for Path Items outside ``paths``."""
        if not isinstance(path_items, dict):
            return
        for key, path_item in path_items.items():
            if not isinstance(path_item, dict):
                continue
            location = f"{prefix}{key}"
            if is_reference(path_item):
                _validate_reference_object(path_item, location)
                continue

            path_params = path_item.get("parameters")
            if not isinstance(path_params, list):
                path_params = []
            for method, operation in iter_operations(path_item):
                op_location = f"{location}.{operation_key(method)}"
                if "externalDocs" in operation:
                    _validate_external_docs(operation["externalDocs"], f"{op_location}.externalDocs")
                self._validate_operation_parameters(
                    path_params, operation, f"{method.label} {location}", op_location, None
                )
                self._validate_operation_content(operation, op_location)

    def _collect_callbacks(self, path_items: Any, prefix: str) -> dict[str, dict[str, Any]]:
        """Gather callback Path Items of every operation, keyed by dotted location."""
        callbacks: dict[str, dict[str, Any]] = {}
        if not isinstance(path_items, dict):
            return callbacks

        for key, path_item in path_items.items():
            for method, operation in iter_operations(path_item):
                op_location = f"{prefix}{key}.{operation_key(method)}"
                callback_map = operation.get("callbacks")
                if not isinstance(callback_map, dict):
                    continue
                for name, callback in callback_map.items():
                    if not isinstance(callback, dict):
                        continue
                    if is_reference(callback):
                        _validate_reference_object(callback, f"{op_location}.callbacks.{name}")
                        continue
                    for expression, callback_item in callback.items():
                        if isinstance(callback_item, dict):
                            callbacks[f"{op_location}.callbacks.{name}.{expression}"] = callback_item
        return callbacks

    def _validate_components_content(self) -> None:
        components = self.components

        parameters = components.get("parameters")
        if isinstance(parameters, dict):
            for key, param in parameters.items():
                self._validate_component_parameter(key, param)

        _validate_headers_map(components.get("headers"), "components.headers")
        _validate_links_map(components.get("links"), "components.links")

        examples = components.get("examples")
        if isinstance(examples, dict):
            for name, example in examples.items():
                _validate_example_object(example, f"components.examples.{name}")

        media_types = components.get("mediaTypes")
        if isinstance(media_types, dict):
            for name, media in media_types.items():
                _validate_media_type(media, f"components.mediaTypes.{name}")

        request_bodies = components.get("requestBodies")
        if isinstance(request_bodies, dict):
            for name, body in request_bodies.items():
                _validate_request_body(body, f"components.requestBodies.{name}")

        callbacks = components.get("callbacks")
        if isinstance(callbacks, dict):
            for name, callback in callbacks.items():
                if not isinstance(callback, dict):
                    continue
                if is_reference(callback):
                    _validate_reference_object(callback, f"components.callbacks.{name}")
                    continue
                self._validate_path_items_content(callback, f"components.callbacks.{name}.")

        self._validate_path_items_content(components.get("pathItems"), "components.pathItems.")
        self._validate_path_items_content(components.get("webhooks"), "components.webhooks.")

        responses = components.get("responses")
        if isinstance(responses, dict):
            for name, response in responses.items():
                _validate_response(response, f"components.responses.{name}")

    def _validate_component_parameter(self, key: str, param: Any) -> None:
        subject = f"Component parameter '{key}'"
        if not isinstance(param, dict):
            raise SpecValidationError(f"{subject} must be an object or Reference Object.")
        if is_reference(param):
            _validate_reference_object(param, f"components.parameters.{key}")
            return

        # Field exclusivity is reported before missing identity fields
        self._validate_parameter_exclusivity(param, subject)

        name = param.get("name")
        if not isinstance(name, str) or not name.strip():
            raise SpecValidationError(f"{subject} must define a non-empty string 'name'.")
        loc = param.get("in")
        if not isinstance(loc, str) or not loc.strip():
            raise SpecValidationError(f"{subject} must define a non-empty string 'in'.")
        if loc == "header" and name.lower() in _RESERVED_HEADERS:
            return

        self._validate_parameter(param, subject, f"components.parameters.{key}")

    # -- operationIds --

    def _validate_operation_ids(self) -> None:
        locations: dict[str, list[str]] = {}

        def collect(path_items: Any, prefix: str) -> None:
            if not isinstance(path_items, dict):
                return
            for key, path_item in path_items.items():
                for method, operation in iter_operations(path_item):
                    operation_id = operation.get("operationId")
                    if isinstance(operation_id, str) and operation_id:
                        locations.setdefault(operation_id, []).append(
                            f"{prefix}{key} {method.label}"
                        )

        collect(self.spec.get("paths"), "")
        collect(self.spec.get("webhooks"), "webhooks:")
        collect(self.callback_items, "callbacks:")

        if self.is_openapi3:
            collect(self.components.get("pathItems"), "components.pathItems:")
            collect(self.components.get("webhooks"), "components.webhooks:")
            callbacks = self.components.get("callbacks")
            if isinstance(callbacks, dict):
                for name, callback in callbacks.items():
                    if isinstance(callback, dict) and not is_reference(callback):
                        collect(callback, f"components.callbacks.{name}:")

        for operation_id, found in locations.items():
            if len(found) > 1:
                raise SpecValidationError(
                    f"Duplicate operationId \"{operation_id}\" found in multiple operations: "
                    f"{', '.join(found)}"
                )

    # -- components --

    def _validate_component_keys(self) -> None:
        for category in COMPONENT_CATEGORIES:
            group = self.components.get(category)
            if not isinstance(group, dict):
                continue
            for key in group:
                if not isinstance(key, str) or not _COMPONENT_KEY.match(key):
                    raise SpecValidationError(
                        f"Invalid component key \"{key}\" in \"components.{category}\". "
                        "Keys must match regex: ^[a-zA-Z0-9\\.\\-_]+$"
                    )

    # -- tags --

    def _validate_tags(self) -> None:
        tags = self.spec.get("tags")
        if not isinstance(tags, list) or not tags:
            return
        tags = [tag for tag in tags if isinstance(tag, dict)]

        names: set[str] = set()
        duplicates: list[str] = []
        for tag in tags:
            name = tag.get("name")
            if not isinstance(name, str):
                continue
            if name in names and name not in duplicates:
                duplicates.append(name)
            names.add(name)
        if duplicates:
            raise SpecValidationError(f"Duplicate tag name(s) detected: {', '.join(duplicates)}")

        parents: dict[str, str] = {}
        for tag in tags:
            name = tag.get("name")
            if "externalDocs" in tag:
                _validate_external_docs(tag["externalDocs"], f"tags.{name}.externalDocs")
            parent = tag.get("parent")
            if parent is not None and not isinstance(parent, str):
                raise SpecValidationError(f"Tag \"{name}\" parent must be a string.")
            if parent and isinstance(name, str):
                if parent not in names:
                    raise SpecValidationError(
                        f"Tag \"{name}\" has parent \"{parent}\" which does not exist in tags array."
                    )
                parents[name] = parent

        for tag in tags:
            seen: set[str] = set()
            current = tag.get("name")
            if not isinstance(current, str):
                continue
            while current in parents:
                if current in seen:
                    raise SpecValidationError(
                        f"Circular tag parent reference detected at \"{current}\"."
                    )
                seen.add(current)
                current = parents[current]

    # -- dialect --

    def _validate_dialect(self) -> None:
        if "jsonSchemaDialect" not in self.spec or self.spec["jsonSchemaDialect"] is None:
            return
        dialect = self.spec["jsonSchemaDialect"]
        if not isinstance(dialect, str):
            raise SpecValidationError("Field 'jsonSchemaDialect' must be a string.")
        if not is_url(dialect) and not is_absolute_iri(dialect):
            raise SpecValidationError(
                f"Field 'jsonSchemaDialect' must be a valid URI. Value: \"{dialect}\""
            )

    # -- servers --

    def _validate_all_servers(self) -> None:
        _validate_servers(self.spec.get("servers"), "servers")
        self._validate_server_overrides(self.spec.get("paths"), "paths.")
        self._validate_server_overrides(self.spec.get("webhooks"), "webhooks.")
        self._validate_server_overrides(self.callback_items, "callbacks.")

    def _validate_server_overrides(self, path_items: Any, prefix: str) -> None:
        if not isinstance(path_items, dict):
            return
        for key, path_item in path_items.items():
            if not isinstance(path_item, dict):
                continue
            if "servers" in path_item:
                _validate_servers(path_item["servers"], f"{prefix}{key}.servers")
            for method, operation in iter_operations(path_item):
                if "servers" in operation:
                    _validate_servers(
                        operation["servers"], f"{prefix}{key}.{operation_key(method)}.servers"
                    )
