"""Variable bindings used to evaluate filters and expand templates."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Callable, Dict, Mapping, Optional, Tuple, Union

from opamextract.filters.ast import FIdent
from opamextract.versioning.models import PackageId
from opamextract.versioning.version import OpamVersion

__all__ = [
    "VariableValue",
    "EnvironmentConfig",
    "VariableEnvironment",
    "Lookup",
]

# None stands for an undefined variable.
VariableValue = Union[bool, str]
Lookup = Callable[[FIdent], Optional[VariableValue]]


def _frozen(mapping: Optional[Mapping]) -> Mapping:
    return MappingProxyType(dict(mapping or {}))


@dataclass(frozen=True)
class EnvironmentConfig:
    """Request-wide variable bindings.

    ``variables`` holds global variables (``os``, ``arch``, ...);
    ``package_variables`` holds bindings scoped to one package, keyed by
    ``(package, variable)``.
    """
    variables: Mapping[str, VariableValue] = field(default_factory=dict)
    package_variables: Mapping[Tuple[str, str], VariableValue] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "variables", _frozen(self.variables))
        object.__setattr__(self, "package_variables", _frozen(self.package_variables))


class VariableEnvironment:
    """Resolves variable references for one selection.

    ``packages`` maps every package name in scope to its chosen version. It
    is empty while searching, when the final selection is not known yet.
    """

    def __init__(self, config: EnvironmentConfig, packages: Optional[Mapping[str, OpamVersion]] = None):
        self.config = config
        self.packages: Dict[str, OpamVersion] = dict(packages or {})

    def lookup(self, package: PackageId, ident: FIdent) -> Optional[VariableValue]:
        """Value of ``ident`` as seen from ``package``; None when undefined."""
        if not ident.packages:
            return self._lookup_one(package, None, ident.variable)
        values = [self._lookup_one(package, scope, ident.variable) for scope in ident.packages]
        if len(values) == 1:
            return values[0]
        # Several packages: only boolean variables combine.
        if any(not isinstance(value, bool) for value in values):
            return None
        return all(values)

    def resolver(self, package: PackageId) -> Lookup:
        """Bind ``package`` so the result can be handed to the evaluator."""
        return lambda ident: self.lookup(package, ident)

    def _lookup_one(self, package: PackageId, scope: Optional[str], variable: str) -> Optional[VariableValue]:
        if scope is None:
            if variable == "name":
                return package.name
            if variable == "version":
                return str(package.version)
            return self.config.variables.get(variable)

        if scope == "_":
            scope = package.name
        bound = self.config.package_variables.get((scope, variable))
        if bound is not None:
            return bound
        if variable == "name":
            return scope
        if variable == "installed":
            return scope in self.packages
        if variable == "enable":
            return "enable" if scope in self.packages else "disable"
        if variable == "version":
            if scope == package.name:
                return str(package.version)
            version = self.packages.get(scope)
            return str(version) if version is not None else None
        return None
