"""Constants used in the project."""

from enum import Enum


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    SEARCH_FAILED = 1
    REQUEST_ERROR = 2
    PACKAGE_ERROR = 3


class RelOp(Enum):
    """Relational operators accepted in version constraints and filters.

    Args:
        Enum (string): Operator as written in opam files and requests.
    """

    EQ = "="
    NEQ = "!="
    LT = "<"
    LEQ = "<="
    GT = ">"
    GEQ = ">="


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    OPAM_FILE = "opam"
    URL_FILE = "url"
    OPAM_SUFFIX = ".opam"
    PACKAGES_DIR = "packages"
    DEV_VERSION = "dev"
    OPAM_VERSION = "2.1.0"
    LOG_FORMAT = "[%(levelname)s] %(message)s"
    LOG_FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
    ENV_LOG_LEVEL = "OPAMEXTRACT_LOG_LEVEL"
    JSON_INDENT = 2
    SEARCH_MAX_ROUNDS = 2000
    SEARCH_MAX_ATTEMPTS = 64

    # Source URL classification
    ARCHIVE_TRANSPORTS = ["http", "https", "ftp"]
    GIT_TRANSPORTS = ["http", "https", "ssh", "file"]
    UNSUPPORTED_BACKENDS = ["hg", "darcs", "rsync", "local"]

    # Filter variables fixed while reducing dependency formulas
    DEPENDENCY_FLAGS = {
        "build": True,
        "post": True,
        "test": False,
        "doc": False,
        "dev": False,
    }
    FLAG_ALIASES = {
        "with-test": "test",
        "with-doc": "doc",
    }
