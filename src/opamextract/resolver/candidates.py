"""Candidate enumeration for the resolver.

For each package name the enumerator returns the versions that may be
chosen, newest first, each paired with either its metadata or the reason it
cannot be used. Rejected versions stay in the list so that a failed search
can explain itself.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence, Union

from opamextract.errors import UnsupportedArchive
from opamextract.filters.environment import EnvironmentConfig, VariableEnvironment
from opamextract.filters.evaluator import eval_filter
from opamextract.opamfile.metadata import PackageMetadata
from opamextract.registry.repository import load_direct, lookup_all_versions
from opamextract.registry.source import resolve_url
from opamextract.versioning.models import Direct, PackageId, PackageSource, Repository
from opamextract.versioning.version import OpamVersion

logger = logging.getLogger(__name__)

__all__ = [
    "Unavailable",
    "UnsupportedArchiveReason",
    "RejectionReason",
    "Candidate",
    "check_usable",
    "CandidateEnumerator",
]


@dataclass(frozen=True)
class Unavailable:
    """The ``available`` filter evaluated to false."""
    detail: str

    def __str__(self) -> str:
        return f"Unavailable: {self.detail}"


@dataclass(frozen=True)
class UnsupportedArchiveReason:
    """The source URL is of a kind that cannot be built."""
    detail: str

    def __str__(self) -> str:
        return f"Unsupported archive: {self.detail}"


RejectionReason = Union[Unavailable, UnsupportedArchiveReason]


@dataclass
class Candidate:
    """One version of a package and whether it can be used."""
    version: OpamVersion
    metadata: Optional[PackageMetadata] = None
    rejection: Optional[RejectionReason] = None
    repository: Optional[Repository] = field(default=None, compare=False)

    @property
    def ok(self) -> bool:
        return self.rejection is None


def check_usable(
    metadata: PackageMetadata, env: VariableEnvironment, package_id: PackageId
) -> Optional[RejectionReason]:
    """Return why ``metadata`` cannot be used, or None when it can.

    The source URL is checked first, then the ``available`` filter.
    """
    if metadata.url is not None:
        try:
            resolve_url(metadata.url)
        except UnsupportedArchive:
            return UnsupportedArchiveReason(metadata.url.src)
    if not eval_filter(env, package_id, metadata.available):
        return Unavailable(str(metadata.available))
    return None


class CandidateEnumerator:
    """Lists candidate versions per package name for one request.

    Args:
        repositories: Repositories in priority order.
        inputs: Packages whose metadata is given explicitly by the request.
        config: Request-wide variable bindings.
    """

    def __init__(
        self,
        repositories: Sequence[Repository],
        inputs: Optional[Mapping[str, PackageSource]] = None,
        config: Optional[EnvironmentConfig] = None,
    ):
        self.repositories = list(repositories)
        self.inputs = dict(inputs or {})
        # Nothing is selected yet while searching.
        self.env = VariableEnvironment(config or EnvironmentConfig())
        self._cache: Dict[str, List[Candidate]] = {}

    def candidates(self, name: str) -> List[Candidate]:
        """Candidates for ``name``, strictly descending by version."""
        if name not in self._cache:
            self._cache[name] = self._enumerate(name)
        return self._cache[name]

    def _enumerate(self, name: str) -> List[Candidate]:
        source = self.inputs.get(name)
        if isinstance(source, Direct):
            metadata = load_direct(name, source.path)
            logger.debug("Using %s.%s from %s", name, metadata.version, source.path)
            return [Candidate(metadata.version, metadata)]

        chosen: Dict[OpamVersion, Candidate] = {}
        for repo in self.repositories:
            for metadata in lookup_all_versions(repo, name):
                version = metadata.version
                existing = chosen.get(version)
                if existing is not None and existing.ok:
                    continue
                rejection = check_usable(metadata, self.env, PackageId(name, version))
                if rejection is None:
                    chosen[version] = Candidate(version, metadata, repository=repo)
                    continue
                logger.debug("Rejecting %s.%s from %s: %s", name, version, repo.id, rejection)
                if existing is None:
                    chosen[version] = Candidate(version, rejection=rejection, repository=repo)

        result = sorted(chosen.values(), key=lambda c: c.version, reverse=True)
        logger.debug(
            "Candidates for %s: %s", name,
            ", ".join(str(c.version) if c.ok else f"{c.version} ({c.rejection})" for c in result) or "none",
        )
        return result
