"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~specgraph.exceptions.SpecgraphError` subclass.
Tools that wrap the validator (CI scripts, code generators) can inspect the
exit code to tell a broken document from an unreadable one without parsing
stderr.
"""

EXIT_SUCCESS = 0
"""The document was loaded and validated successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_SPEC_PARSE_ERROR = 7
"""The specification could not be read or parsed as JSON/YAML."""

EXIT_SPEC_VALIDATION_ERROR = 8
"""The specification was parsed but violates a structural rule."""
