"""Exception hierarchy for request processing.

Every fatal condition raised by the library derives from :class:`ExtractError`
and carries the exit code the CLI terminates with. Candidate-level rejections
are plain values, see :mod:`opamextract.resolver.candidates`.
"""

from opamextract.constants import ExitCodes

__all__ = [
    "ExtractError",
    "RequestMalformed",
    "ConfigError",
    "MalformedVersion",
    "MalformedOperator",
    "OpamSyntaxError",
    "PackageNotFound",
    "UnsupportedArchive",
    "SearchFailed",
    "OutputError",
]


class ExtractError(Exception):
    """Base class for errors that abort the whole request."""

    exit_code = ExitCodes.REQUEST_ERROR


class RequestMalformed(ExtractError):
    """Raised when the request document is structurally invalid or ambiguous."""


class ConfigError(ExtractError):
    """Raised when a configuration file or --set override cannot be used."""


class MalformedVersion(ExtractError):
    """Raised when a version string contains characters opam does not allow."""


class MalformedOperator(ExtractError):
    """Raised when a constraint operator is not one of = != < <= > >=."""


class OpamSyntaxError(ExtractError):
    """Raised when an opam or url file cannot be parsed."""

    def __init__(self, message: str, path: str = "<string>", line: int = 0):
        self.path = path
        self.line = line
        super().__init__(f"{path}:{line}: {message}" if line else f"{path}: {message}")


class PackageNotFound(ExtractError):
    """Raised when a selected package is absent from every repository."""

    exit_code = ExitCodes.PACKAGE_ERROR


class UnsupportedArchive(ExtractError):
    """Raised when a chosen package's source URL cannot be handled."""

    exit_code = ExitCodes.PACKAGE_ERROR


class SearchFailed(ExtractError):
    """Raised when no consistent set of package versions exists."""

    exit_code = ExitCodes.SEARCH_FAILED


class OutputError(ExtractError):
    """Raised when the response cannot be written."""
