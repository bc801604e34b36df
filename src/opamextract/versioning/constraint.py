"""Version constraints and version formulas."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple, Union

from opamextract.constants import RelOp
from opamextract.errors import MalformedOperator
from opamextract.versioning.version import OpamVersion, parse_version

__all__ = [
    "Constraint",
    "VersionAnd",
    "VersionOr",
    "VersionFormula",
    "parse_operator",
    "parse_constraint",
    "matches",
    "formula_matches",
    "relop_holds",
]


def parse_operator(raw: str) -> RelOp:
    """Map an operator string to :class:`RelOp`.

    Raises:
        MalformedOperator: If ``raw`` is not a known operator.
    """
    try:
        return RelOp(raw)
    except ValueError as e:
        raise MalformedOperator(f"Malformed operator: {raw!r}") from e


def relop_holds(op: RelOp, cmp: int) -> bool:
    """Tell whether a comparison result satisfies ``op``."""
    if op is RelOp.EQ:
        return cmp == 0
    if op is RelOp.NEQ:
        return cmp != 0
    if op is RelOp.LT:
        return cmp < 0
    if op is RelOp.LEQ:
        return cmp <= 0
    if op is RelOp.GT:
        return cmp > 0
    return cmp >= 0


@dataclass(frozen=True)
class Constraint:
    """A single ``op version`` restriction."""

    op: RelOp
    version: OpamVersion

    def __str__(self) -> str:
        return f'{self.op.value} "{self.version}"'


@dataclass(frozen=True)
class VersionAnd:
    items: Tuple["VersionFormula", ...]

    def __str__(self) -> str:
        return " & ".join(_wrap(item) for item in self.items)


@dataclass(frozen=True)
class VersionOr:
    items: Tuple["VersionFormula", ...]

    def __str__(self) -> str:
        return " | ".join(_wrap(item) for item in self.items)


VersionFormula = Union[Constraint, VersionAnd, VersionOr]


def _wrap(item: "VersionFormula") -> str:
    if isinstance(item, Constraint):
        return str(item)
    return f"({item})"


def parse_constraint(op: str, value: str) -> Constraint:
    """Build a constraint from request strings, validating both parts."""
    return Constraint(parse_operator(op), parse_version(value))


def matches(constraint: Constraint, version: OpamVersion) -> bool:
    """Evaluate ``constraint`` against ``version``."""
    return relop_holds(constraint.op, version.compare(constraint.version))


def formula_matches(formula: "VersionFormula | None", version: OpamVersion) -> bool:
    """Evaluate a version formula; ``None`` accepts every version."""
    if formula is None:
        return True
    if isinstance(formula, Constraint):
        return matches(formula, version)
    if isinstance(formula, VersionAnd):
        return all(formula_matches(item, version) for item in formula.items)
    return any(formula_matches(item, version) for item in formula.items)
