"""Dependency formulas and their reduction under filter flags.

A raw formula (``depends:``, ``conflicts:``) is a tree of ``&``/``|`` over
atoms ``name {condition}``; the condition mixes filters (``build``,
``os = "linux"``) with version constraints (``>= "1.0"``). Reduction
evaluates the filters and leaves a plain formula of package names and
version formulas.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterator, Optional, Tuple, Union

from opamextract.constants import Constants, RelOp
from opamextract.filters.ast import FIdent, Filter
from opamextract.filters.environment import Lookup, VariableEnvironment, VariableValue
from opamextract.filters.evaluator import evaluate, to_bool, to_string
from opamextract.versioning.constraint import Constraint, VersionAnd, VersionFormula, VersionOr
from opamextract.versioning.models import PackageId
from opamextract.versioning.version import OpamVersion

# Raw conditions


@dataclass(frozen=True)
class CondFilter:
    filter: Filter


@dataclass(frozen=True)
class CondConstraint:
    op: RelOp
    arg: Filter


@dataclass(frozen=True)
class CondAnd:
    left: "Condition"
    right: "Condition"


@dataclass(frozen=True)
class CondOr:
    left: "Condition"
    right: "Condition"


Condition = Union[CondFilter, CondConstraint, CondAnd, CondOr]

# Raw formulas


@dataclass(frozen=True)
class Atom:
    name: str
    condition: Optional[Condition] = None


@dataclass(frozen=True)
class And:
    items: Tuple["RawFormula", ...]


@dataclass(frozen=True)
class Or:
    items: Tuple["RawFormula", ...]


RawFormula = Union[Atom, And, Or]

# Reduced formulas


@dataclass(frozen=True)
class Dep:
    name: str
    versions: Optional[VersionFormula] = None

    def __str__(self) -> str:
        if self.versions is None:
            return self.name
        return f"{self.name} {{{self.versions}}}"


@dataclass(frozen=True)
class DepAnd:
    items: Tuple["DepFormula", ...]

    def __str__(self) -> str:
        return " & ".join(_wrap(item) for item in self.items)


@dataclass(frozen=True)
class DepOr:
    items: Tuple["DepFormula", ...]

    def __str__(self) -> str:
        return " | ".join(_wrap(item) for item in self.items)


DepFormula = Union[Dep, DepAnd, DepOr]


def _wrap(item: DepFormula) -> str:
    if isinstance(item, Dep):
        return str(item)
    return f"({item})"


def atoms(formula: Optional[DepFormula]) -> Iterator[Dep]:
    """Every atom of a reduced formula, regardless of connectives."""
    if formula is None:
        return
    if isinstance(formula, Dep):
        yield formula
        return
    for item in formula.items:
        yield from atoms(item)


def _flag_lookup(lookup: Lookup, flags: Dict[str, bool]) -> Lookup:
    def resolve(ident: FIdent) -> Optional[VariableValue]:
        if not ident.packages:
            name = Constants.FLAG_ALIASES.get(ident.variable, ident.variable)
            if name in flags:
                return flags[name]
        return lookup(ident)
    return resolve


# Reduced condition: True, False or a version formula.
_Reduced = Union[bool, VersionFormula]


def _join(kind, left: VersionFormula, right: VersionFormula) -> VersionFormula:
    items = []
    for item in (left, right):
        items.extend(item.items if isinstance(item, kind) else (item,))
    return kind(tuple(items))


def _reduce_condition(condition: Condition, lookup: Lookup) -> _Reduced:
    if isinstance(condition, CondFilter):
        return to_bool(evaluate(condition.filter, lookup)) is True
    if isinstance(condition, CondConstraint):
        value = evaluate(condition.arg, lookup)
        if value is None:
            return False
        return Constraint(condition.op, OpamVersion(to_string(value)))
    left = _reduce_condition(condition.left, lookup)
    right = _reduce_condition(condition.right, lookup)
    if isinstance(condition, CondAnd):
        if left is False or right is False:
            return False
        if left is True:
            return right
        if right is True:
            return left
        return _join(VersionAnd, left, right)
    if left is True or right is True:
        return True
    if left is False:
        return right
    if right is False:
        return left
    return _join(VersionOr, left, right)


def _reduce(formula: RawFormula, lookup: Lookup) -> Optional[DepFormula]:
    if isinstance(formula, Atom):
        if formula.condition is None:
            return Dep(formula.name)
        reduced = _reduce_condition(formula.condition, lookup)
        if reduced is False:
            return None
        if reduced is True:
            return Dep(formula.name)
        return Dep(formula.name, reduced)
    kind = DepAnd if isinstance(formula, And) else DepOr
    items = []
    for item in formula.items:
        result = _reduce(item, lookup)
        if result is None:
            continue
        items.extend(result.items if isinstance(result, kind) else (result,))
    if not items:
        return None
    if len(items) == 1:
        return items[0]
    return kind(tuple(items))


def reduce_formula(lookup: Lookup, formula: Optional[RawFormula], **flags: bool) -> Optional[DepFormula]:
    """Reduce ``formula`` with a bound lookup; None means no requirement."""
    if formula is None:
        return None
    values = dict(Constants.DEPENDENCY_FLAGS)
    values.update(flags)
    return _reduce(formula, _flag_lookup(lookup, values))


def filter_deps(
    env: VariableEnvironment,
    package: PackageId,
    formula: Optional[RawFormula],
    build: bool = True,
    post: bool = True,
    test: bool = False,
    doc: bool = False,
    dev: bool = False,
) -> Optional[DepFormula]:
    """Reduce the dependency formula of ``package`` under the given flags."""
    return reduce_formula(
        env.resolver(package), formula,
        build=build, post=post, test=test, doc=doc, dev=dev,
    )
