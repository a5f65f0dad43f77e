"""OpenAPI/Swagger parser -- load, validate, resolve references, and extract operations.

Typical usage::

    from specgraph.parser import SpecParser

    parser = SpecParser.from_source("https://petstore3.swagger.io/api/v3/openapi.json")
    pet = parser.resolve({"$ref": "#/components/schemas/Pet"})

Sub-modules:

* :mod:`~specgraph.parser.loader` -- I/O layer (URL, file, stdin), format
  detection, and loading of the external-reference closure.
* :mod:`~specgraph.parser.validator` -- Structural validation of a parsed
  document; the first violation raises
  :class:`~specgraph.exceptions.SpecValidationError`.
* :mod:`~specgraph.parser.resolver` -- ``$ref`` / ``$dynamicRef`` resolution
  against a document cache, plus the flat list of named schemas.
* :mod:`~specgraph.parser.composition` -- ``allOf`` merging, polymorphic
  variants, read/write splits and example generation.
* :mod:`~specgraph.parser.extractor` -- Walks ``paths`` and ``webhooks`` into
  :class:`~specgraph.models.APIOperation` objects.
* :mod:`~specgraph.parser.spec_parser` -- The :class:`SpecParser` facade.
"""

from specgraph.parser.loader import detect_spec_version, load_spec, load_spec_graph
from specgraph.parser.resolver import ReferenceResolver
from specgraph.parser.spec_parser import SpecParser
from specgraph.parser.validator import validate_spec

__all__ = [
    "ReferenceResolver",
    "SpecParser",
    "detect_spec_version",
    "load_spec",
    "load_spec_graph",
    "validate_spec",
]
