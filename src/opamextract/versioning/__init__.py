"""Package identity, version ordering and version constraints."""

from .version import OpamVersion, compare, parse_version
from .constraint import (
    Constraint,
    VersionAnd,
    VersionOr,
    formula_matches,
    matches,
    parse_constraint,
    parse_operator,
)
from .models import (
    Direct,
    FromRepository,
    PackageId,
    PackageSource,
    PackageSpec,
    Repository,
    SelectedPackage,
    Selection,
    Spec,
)

__all__ = [
    "OpamVersion",
    "compare",
    "parse_version",
    "Constraint",
    "VersionAnd",
    "VersionOr",
    "formula_matches",
    "matches",
    "parse_constraint",
    "parse_operator",
    "Direct",
    "FromRepository",
    "PackageId",
    "PackageSource",
    "PackageSpec",
    "Repository",
    "SelectedPackage",
    "Selection",
    "Spec",
]
