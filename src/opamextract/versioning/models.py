"""Data models for package identity and requests."""

from dataclasses import dataclass, field
from typing import Dict, List, Union

from opamextract.versioning.constraint import Constraint
from opamextract.versioning.version import OpamVersion


@dataclass(frozen=True)
class PackageId:
    """A (name, version) pair identifying one package build target."""
    name: str
    version: OpamVersion

    def __str__(self) -> str:
        return f"{self.name}.{self.version}"


@dataclass(frozen=True)
class FromRepository:
    """Package metadata comes from the configured repositories."""

    def __str__(self) -> str:
        return "repository"


@dataclass(frozen=True)
class Direct:
    """Package metadata is loaded from an explicit opam file or directory."""
    path: str

    def __str__(self) -> str:
        return self.path


PackageSource = Union[FromRepository, Direct]


@dataclass(frozen=True)
class Repository:
    """A local opam repository checkout."""
    id: str
    path: str


@dataclass
class PackageSpec:
    """Solve-mode input: resolve ``name`` subject to ``constraints``."""
    name: str
    source: PackageSource = field(default_factory=FromRepository)
    constraints: List[Constraint] = field(default_factory=list)


@dataclass(frozen=True)
class SelectedPackage:
    """An already-fixed package choice."""
    id: PackageId
    source: PackageSource = field(default_factory=FromRepository)

    @property
    def name(self) -> str:
        return self.id.name

    @property
    def version(self) -> OpamVersion:
        return self.id.version


Selection = Dict[str, SelectedPackage]


@dataclass
class Spec:
    """A fully resolved request, ready for artifact assembly."""
    repositories: List[Repository]
    selection: Selection
