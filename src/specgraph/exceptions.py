"""Exception hierarchy for specgraph.

All exceptions inherit from :class:`SpecgraphError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`specgraph.exit_codes`.
Callers that expose specgraph through a command line catch ``SpecgraphError``
and exit with the appropriate code.

Subclass hierarchy::

    SpecgraphError          (exit 1)
    +-- SpecParseError      (exit 7)
    +-- SpecValidationError (exit 8)
    +-- ConfigError         (exit 1)

Reference resolution never raises: an unresolvable ``$ref`` yields ``None``
so generation can degrade the affected type instead of aborting.
"""

from specgraph.exit_codes import (
    EXIT_GENERIC_FAILURE,
    EXIT_SPEC_PARSE_ERROR,
    EXIT_SPEC_VALIDATION_ERROR,
)


class SpecgraphError(Exception):
    """Base exception for all specgraph errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`specgraph.exit_codes`.

    Args:
        message: Human-readable error description.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class SpecParseError(SpecgraphError):
    """Raised when a specification document cannot be read or parsed."""

    exit_code = EXIT_SPEC_PARSE_ERROR


class SpecValidationError(SpecgraphError):
    """Raised on the first structural rule violation found in a specification.

    The message names the offending path, parameter, or component and is
    meant to be shown to the user verbatim.
    """

    exit_code = EXIT_SPEC_VALIDATION_ERROR


class ConfigError(SpecgraphError):
    """Raised for configuration problems (invalid JSON, bad values)."""

    exit_code = EXIT_GENERIC_FAILURE
