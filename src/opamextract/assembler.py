"""Assembly of buildables from a final selection.

A buildable is the terminal artifact for one selected package: where its
source comes from and the exact build and install commands, with filters
decided and ``%{var}%`` placeholders expanded against the whole selection.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from opamextract.errors import PackageNotFound
from opamextract.filters.ast import Command
from opamextract.filters.environment import EnvironmentConfig, Lookup, VariableEnvironment
from opamextract.filters.evaluator import eval_with, expand_with
from opamextract.opamfile.metadata import PackageMetadata
from opamextract.registry.repository import load_direct, lookup_exact
from opamextract.registry.source import Source, resolve_url
from opamextract.resolver.candidates import check_usable
from opamextract.versioning.models import Direct, Repository, SelectedPackage, Selection

logger = logging.getLogger(__name__)

__all__ = ["Buildable", "BuildableAssembler", "resolve_commands"]


@dataclass
class Buildable:
    """Fully resolved description of how to fetch, build and install a package."""
    name: str
    version: str
    repository: Optional[str] = None
    src: Optional[Source] = None
    build_commands: List[List[str]] = field(default_factory=list)
    install_commands: List[List[str]] = field(default_factory=list)

    def to_json(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"name": self.name, "version": self.version}
        if self.repository is not None:
            data["repository"] = self.repository
        if self.src is not None:
            data["src"] = self.src.to_json()
        data["build_commands"] = self.build_commands
        data["install_commands"] = self.install_commands
        return data


def resolve_commands(lookup: Lookup, commands: Sequence[Command]) -> List[List[str]]:
    """Filter and expand ``commands``, dropping those left without arguments."""
    resolved = []
    for command in commands:
        if not eval_with(lookup, command.filter):
            continue
        args = [expand_with(lookup, arg.template) for arg in command.args if eval_with(lookup, arg.filter)]
        if args:
            resolved.append(args)
    return resolved


class BuildableAssembler:
    """Builds one :class:`Buildable` per selected package.

    Args:
        repositories: Repositories in priority order.
        config: Request-wide variable bindings.
    """

    def __init__(self, repositories: Sequence[Repository], config: Optional[EnvironmentConfig] = None):
        self.repositories = list(repositories)
        self.config = config or EnvironmentConfig()

    def find_impl(self, selected: SelectedPackage) -> Tuple[Optional[Repository], PackageMetadata]:
        """Locate the metadata of ``selected``.

        Repositories are tried in order and the first usable copy wins; when
        no copy is usable the first one found is returned so that its problem
        surfaces during assembly.

        Raises:
            PackageNotFound: If no repository has the exact version.
        """
        if isinstance(selected.source, Direct):
            return None, load_direct(selected.name, selected.source.path)

        partial = VariableEnvironment(self.config)
        first: Optional[Tuple[Repository, PackageMetadata]] = None
        for repo in self.repositories:
            metadata = lookup_exact(repo, selected.id)
            if metadata is None:
                continue
            rejection = check_usable(metadata, partial, selected.id)
            if rejection is None:
                return repo, metadata
            logger.debug("Skipping %s from %s: %s", selected.id, repo.id, rejection)
            if first is None:
                first = (repo, metadata)
        if first is None:
            raise PackageNotFound(f"Package not found in any repository: {selected.id}")
        return first

    def assemble(self, selection: Selection, selected: SelectedPackage) -> Buildable:
        """Resolve ``selected`` into a buildable, using ``selection`` as the installed set.

        Raises:
            PackageNotFound: If a repository package cannot be located.
            UnsupportedArchive: If the package's source URL is not supported.
        """
        repo, metadata = self.find_impl(selected)
        src = resolve_url(metadata.url) if metadata.url is not None else None
        env = VariableEnvironment(self.config, {name: pkg.version for name, pkg in selection.items()})
        lookup = env.resolver(selected.id)
        return Buildable(
            name=selected.name,
            version=str(selected.version),
            repository=repo.id if repo is not None else None,
            src=src,
            build_commands=resolve_commands(lookup, metadata.build),
            install_commands=resolve_commands(lookup, metadata.install),
        )
