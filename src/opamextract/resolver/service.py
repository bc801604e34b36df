"""Solve-mode entry point: turn package specs into a selection."""

from __future__ import annotations

import logging
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

from resolvelib import ResolutionImpossible, ResolutionTooDeep, Resolver

from opamextract.common.logging_utils import Timer, extra_context
from opamextract.constants import Constants
from opamextract.errors import SearchFailed
from opamextract.filters.environment import EnvironmentConfig
from opamextract.filters.formula import Dep, atoms, filter_deps
from opamextract.resolver.candidates import CandidateEnumerator
from opamextract.resolver.provider import (
    ChoiceRequirement, ExtractProvider, ExtractReporter, PackageCandidate, PackageRequirement,
)
from opamextract.versioning.constraint import VersionAnd, formula_matches
from opamextract.versioning.models import (
    FromRepository, PackageId, PackageSpec, Repository, SelectedPackage, Selection,
)

logger = logging.getLogger(__name__)

__all__ = ["solve_specs", "root_requirement"]


def root_requirement(spec: PackageSpec) -> PackageRequirement:
    """Requirement for a requested package with all its constraints."""
    if not spec.constraints:
        return PackageRequirement(spec.name)
    if len(spec.constraints) == 1:
        return PackageRequirement(spec.name, spec.constraints[0])
    return PackageRequirement(spec.name, VersionAnd(tuple(spec.constraints)))


def _involved_names(requirements: Iterable) -> List[str]:
    names: List[str] = []
    for requirement in requirements:
        if isinstance(requirement, ChoiceRequirement):
            found = [dep.name for dep in atoms(requirement.formula)]
        else:
            found = [requirement.name]
        names.extend(name for name in found if name not in names)
    return names


def _diagnostics(causes, enumerator: CandidateEnumerator) -> str:
    lines = ["Unable to find a consistent set of packages:"]
    for cause in causes:
        parent = cause.parent if cause.parent is not None else "the request"
        lines.append(f"  - {cause.requirement} (required by {parent})")

    requirements = [cause.requirement for cause in causes]
    for name in _involved_names(requirements):
        lines.append(f"Candidates for {name}:")
        candidates = enumerator.candidates(name)
        if not candidates:
            lines.append("  - No known versions")
        for candidate in candidates:
            if candidate.ok:
                reason = "conflicts with other requirements"
                wanted = [r for r in requirements if isinstance(r, PackageRequirement) and r.name == name]
                if any(not formula_matches(r.versions, candidate.version) for r in wanted):
                    reason = "Rejected by constraints"
            else:
                reason = str(candidate.rejection)
            lines.append(f"  - {name}.{candidate.version}: {reason}")
    return "\n".join(lines)


def _find_conflict(
    chosen: Mapping[str, PackageCandidate], enumerator: CandidateEnumerator,
) -> Optional[Tuple[PackageCandidate, PackageCandidate, Dep]]:
    """First declared conflict violated by ``chosen``, or None."""
    for name in sorted(chosen):
        candidate = chosen[name]
        if candidate.metadata is None:
            continue
        formula = filter_deps(enumerator.env, candidate.package_id, candidate.metadata.conflicts)
        for dep in atoms(formula):
            other = chosen.get(dep.name)
            if other is not None and formula_matches(dep.versions, other.version):
                return candidate, other, dep
    return None


def _resolve(
    enumerator: CandidateEnumerator, roots: Sequence[PackageRequirement], excluded: FrozenSet[PackageCandidate],
) -> Dict[str, PackageCandidate]:
    resolver = Resolver(ExtractProvider(enumerator, excluded), ExtractReporter())
    result = resolver.resolve(roots, max_rounds=Constants.SEARCH_MAX_ROUNDS)
    return {c.name: c for c in result.mapping.values() if isinstance(c, PackageCandidate)}


def _search(enumerator: CandidateEnumerator, roots: Sequence[PackageRequirement]) -> Dict[str, PackageCandidate]:
    """Resolve, then retry without one side of each violated conflict.

    Each violation forks the search: one attempt drops the declaring version,
    the other drops the version it conflicts with.
    """
    pending: List[FrozenSet[PackageCandidate]] = [frozenset()]
    tried: Set[FrozenSet[PackageCandidate]] = set()
    impossible: Optional[ResolutionImpossible] = None
    conflicts: List[str] = []

    while pending and len(tried) < Constants.SEARCH_MAX_ATTEMPTS:
        excluded = pending.pop(0)
        if excluded in tried:
            continue
        tried.add(excluded)
        try:
            chosen = _resolve(enumerator, roots, excluded)
        except ResolutionImpossible as e:
            if impossible is None:
                impossible = e
            continue
        except ResolutionTooDeep as e:
            raise SearchFailed(f"Search gave up after {Constants.SEARCH_MAX_ROUNDS} rounds") from e

        violation = _find_conflict(chosen, enumerator)
        if violation is None:
            return chosen
        candidate, other, dep = violation
        message = f"{candidate} conflicts with {other} (declared conflict: {dep})"
        logger.debug("Retrying search: %s", message)
        if message not in conflicts:
            conflicts.append(message)
        pending.append(excluded | {candidate})
        pending.append(excluded | {other})

    lines = []
    if impossible is not None:
        lines.append(_diagnostics(impossible.causes, enumerator))
    else:
        lines.append("Unable to find a consistent set of packages")
    if conflicts:
        lines.append("Declared conflicts:")
        lines.extend(f"  - {message}" for message in conflicts)
    if pending:
        lines.append(f"Search gave up after {Constants.SEARCH_MAX_ATTEMPTS} attempts")
    raise SearchFailed("\n".join(lines)) from impossible


def solve_specs(
    specs: Sequence[PackageSpec],
    repositories: Sequence[Repository],
    config: Optional[EnvironmentConfig] = None,
) -> Selection:
    """Pick one version for every package transitively required by ``specs``.

    Raises:
        SearchFailed: If no consistent selection exists.
    """
    inputs = {spec.name: spec.source for spec in specs}
    enumerator = CandidateEnumerator(repositories, inputs, config)
    roots = [root_requirement(spec) for spec in specs]

    logger.info("Solving ...")
    with Timer() as timer:
        chosen = _search(enumerator, roots)

    selection: Selection = {}
    for name in sorted(chosen):
        source = inputs.get(name, FromRepository())
        selection[name] = SelectedPackage(PackageId(name, chosen[name].version), source)

    logger.info(
        "Selected packages:\n%s",
        "\n".join(f"- {selected.id}" for selected in selection.values()),
        extra=extra_context(count=len(selection), duration_ms=timer.duration_ms()),
    )
    return selection
