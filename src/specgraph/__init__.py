"""specgraph -- Validate OpenAPI/Swagger documents and resolve their schema graph.

This package checks a parsed Swagger 2.0 or OpenAPI 3.x (including 3.2)
document against the structural rules of the specification and then builds a
reference resolver over it, so that downstream code generators can ask for the
concrete definition behind any ``$ref``/``$dynamicRef`` and read a flat list
of named schemas.

Typical workflow::

    from specgraph.parser import SpecParser

    parser = SpecParser.from_source("openapi.yaml")
    pet = parser.resolve({"$ref": "#/components/schemas/Pet"})
    names = [s.name for s in parser.schemas]

Modules:
    models: Pydantic models and tagged unions shared across the package.
    config: XDG-aware configuration discovery and precedence resolution.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes carried by the exceptions.
    naming: Identifier case conversion for schema names.
    parser: Loader, validator, resolver, and composition helpers.
"""

__version__ = "0.1.0"
