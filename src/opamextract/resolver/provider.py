"""resolvelib provider over opam candidates and dependency formulas.

Package names are resolvelib identifiers. A disjunction ``a | b`` in a
reduced dependency formula becomes a virtual *choice* identifier whose
candidates are its alternatives in written order; picking one alternative
adds that alternative's requirements.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, FrozenSet, Iterable, Iterator, List, Mapping, Optional, Sequence, Tuple, Union

from resolvelib import BaseReporter
from resolvelib.providers import AbstractProvider

from opamextract.filters.environment import VariableEnvironment
from opamextract.filters.formula import Dep, DepAnd, DepFormula, DepOr, filter_deps
from opamextract.opamfile.metadata import PackageMetadata
from opamextract.resolver.candidates import CandidateEnumerator
from opamextract.versioning.constraint import VersionFormula, formula_matches
from opamextract.versioning.models import PackageId
from opamextract.versioning.version import OpamVersion

logger = logging.getLogger(__name__)

__all__ = [
    "PackageRequirement",
    "ChoiceRequirement",
    "PackageCandidate",
    "ChoiceCandidate",
    "ExtractProvider",
    "ExtractReporter",
    "requirements_of",
]


@dataclass(frozen=True)
class PackageRequirement:
    """Some version of ``name`` satisfying ``versions`` (None: any)."""
    name: str
    versions: Optional[VersionFormula] = None

    @property
    def identifier(self) -> str:
        return self.name

    def __str__(self) -> str:
        return str(Dep(self.name, self.versions))


@dataclass(frozen=True)
class ChoiceRequirement:
    """One of several alternative formulas must hold."""
    formula: DepOr

    @property
    def identifier(self) -> str:
        return f"({self.formula})"

    def __str__(self) -> str:
        return self.identifier


Requirement = Union[PackageRequirement, ChoiceRequirement]


@dataclass(frozen=True)
class PackageCandidate:
    name: str
    version: OpamVersion
    metadata: Optional[PackageMetadata] = field(default=None, compare=False, hash=False)

    @property
    def identifier(self) -> str:
        return self.name

    @property
    def package_id(self) -> PackageId:
        return PackageId(self.name, self.version)

    def __str__(self) -> str:
        return str(self.package_id)


@dataclass(frozen=True)
class ChoiceCandidate:
    identifier: str
    index: int
    alternative: DepFormula = field(compare=False, hash=False)

    def __str__(self) -> str:
        return f"{self.identifier}[{self.index}] = {self.alternative}"


Candidate = Union[PackageCandidate, ChoiceCandidate]


def requirements_of(formula: Optional[DepFormula]) -> List[Requirement]:
    """Flatten a reduced formula into resolvelib requirements."""
    if formula is None:
        return []
    if isinstance(formula, Dep):
        return [PackageRequirement(formula.name, formula.versions)]
    if isinstance(formula, DepAnd):
        requirements: List[Requirement] = []
        for item in formula.items:
            requirements.extend(requirements_of(item))
        return requirements
    return [ChoiceRequirement(formula)]


class ExtractProvider(AbstractProvider):
    """Feeds the enumerator's candidates and reduced dependencies to resolvelib."""

    def __init__(self, enumerator: CandidateEnumerator, excluded: Iterable[PackageCandidate] = ()):
        self.enumerator = enumerator
        self.env: VariableEnvironment = enumerator.env
        # Versions ruled out by a declared conflict in an earlier attempt.
        self.excluded: FrozenSet[PackageCandidate] = frozenset(excluded)

    def identify(self, requirement_or_candidate: Any) -> str:
        return requirement_or_candidate.identifier

    def get_preference(
        self,
        identifier: str,
        resolutions: Mapping[str, Candidate],
        candidates: Mapping[str, Iterator[Candidate]],
        information: Mapping[str, Iterator[Any]],
        backtrack_causes: Sequence[Any],
    ) -> Tuple[bool, str]:
        # Real packages first, so that choices see pinned versions.
        return (identifier.startswith("("), identifier)

    def find_matches(
        self,
        identifier: str,
        requirements: Mapping[str, Iterator[Requirement]],
        incompatibilities: Mapping[str, Iterator[Candidate]],
    ) -> List[Candidate]:
        reqs = list(requirements.get(identifier, iter(())))
        banned = set(incompatibilities.get(identifier, iter(())))
        if not reqs:
            return []

        if isinstance(reqs[0], ChoiceRequirement):
            choices = [
                ChoiceCandidate(identifier, index, alternative)
                for index, alternative in enumerate(reqs[0].formula.items)
            ]
            return [choice for choice in choices if choice not in banned]

        matches: List[Candidate] = []
        for found in self.enumerator.candidates(identifier):
            if not found.ok:
                continue
            candidate = PackageCandidate(identifier, found.version, found.metadata)
            if candidate in banned or candidate in self.excluded:
                continue
            if all(self.is_satisfied_by(req, candidate) for req in reqs):
                matches.append(candidate)
        return matches

    def is_satisfied_by(self, requirement: Requirement, candidate: Candidate) -> bool:
        if isinstance(requirement, ChoiceRequirement):
            return isinstance(candidate, ChoiceCandidate) and candidate.identifier == requirement.identifier
        if not isinstance(candidate, PackageCandidate) or candidate.name != requirement.name:
            return False
        return formula_matches(requirement.versions, candidate.version)

    def get_dependencies(self, candidate: Candidate) -> Iterable[Requirement]:
        if isinstance(candidate, ChoiceCandidate):
            return requirements_of(candidate.alternative)
        if candidate.metadata is None:
            return []
        formula = filter_deps(self.env, candidate.package_id, candidate.metadata.depends)
        logger.debug("Dependencies of %s: %s", candidate, formula if formula is not None else "none")
        return requirements_of(formula)


class ExtractReporter(BaseReporter):
    """Logs search progress at DEBUG level."""

    def starting(self) -> None:
        logger.debug("Resolution starting")

    def adding_requirement(self, requirement, parent) -> None:
        logger.debug("Adding requirement %s (from %s)", requirement, parent if parent is not None else "request")

    def pinning(self, candidate) -> None:
        logger.debug("Pinning %s", candidate)

    def rejecting_candidate(self, criterion, candidate) -> None:
        logger.debug("Rejecting candidate %s", candidate)

    def resolving_conflicts(self, causes) -> None:
        logger.debug("Backtracking on: %s", ", ".join(str(cause.requirement) for cause in causes))

    def ending(self, state) -> None:
        logger.debug("Resolution finished")
