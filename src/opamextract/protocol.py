"""Request parsing, mode dispatch and response serialization.

A request document looks like::

    {
      "repositories": [{"id": "main", "path": "/path/to/opam-repository"}],
      "spec": [{"name": "foo", "constraints": [{"op": ">=", "value": "1.0"}]}]
    }

with either ``spec`` (Solve mode) or ``selection`` (Exact mode), never both.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Union

from opamextract.assembler import BuildableAssembler
from opamextract.errors import MalformedOperator, MalformedVersion, RequestMalformed
from opamextract.filters.environment import EnvironmentConfig
from opamextract.resolver.service import solve_specs
from opamextract.versioning.constraint import Constraint, parse_constraint
from opamextract.versioning.models import (
    Direct, FromRepository, PackageId, PackageSource, PackageSpec, Repository,
    SelectedPackage, Selection, Spec,
)
from opamextract.versioning.version import parse_version

logger = logging.getLogger(__name__)

__all__ = ["Solve", "Exact", "Request", "parse_request", "solve", "dump"]


@dataclass
class Solve:
    specs: List[PackageSpec]


@dataclass
class Exact:
    selection: Selection


@dataclass
class Request:
    repositories: List[Repository]
    mode: Union[Solve, Exact]


def _require(obj: Mapping[str, Any], key: str, kind: type, where: str) -> Any:
    if key not in obj:
        raise RequestMalformed(f"{where}: missing {key!r}")
    value = obj[key]
    if not isinstance(value, kind):
        raise RequestMalformed(f"{where}: {key!r} must be a {kind.__name__}, got {value!r}")
    return value


def _mapping(value: Any, where: str) -> Mapping[str, Any]:
    if not isinstance(value, dict):
        raise RequestMalformed(f"{where}: expected an object, got {value!r}")
    return value


def _definition(value: Any, where: str) -> PackageSource:
    if value is None:
        return FromRepository()
    if isinstance(value, str):
        return Direct(value)
    raise RequestMalformed(f"{where}: 'definition' must be a path or null, got {value!r}")


def _repositories(doc: Mapping[str, Any]) -> List[Repository]:
    repositories = []
    for index, item in enumerate(_require(doc, "repositories", list, "request")):
        where = f"repositories[{index}]"
        item = _mapping(item, where)
        repositories.append(Repository(_require(item, "id", str, where), _require(item, "path", str, where)))
    return repositories


def _constraint(value: Any, where: str) -> Constraint:
    if isinstance(value, dict):
        op, version = value.get("op"), value.get("value")
    elif isinstance(value, list) and len(value) == 2:
        op, version = value
    else:
        raise RequestMalformed(f"{where}: expected {{op, value}} or [op, value], got {value!r}")
    if not isinstance(op, str) or not isinstance(version, str):
        raise RequestMalformed(f"{where}: operator and version must be strings")
    return parse_constraint(op, version)


def _specs(value: Any) -> List[PackageSpec]:
    if not isinstance(value, list):
        raise RequestMalformed(f"spec: expected a list, got {value!r}")
    specs = []
    for index, item in enumerate(value):
        where = f"spec[{index}]"
        item = _mapping(item, where)
        constraints = item.get("constraints") or []
        if not isinstance(constraints, list):
            raise RequestMalformed(f"{where}: 'constraints' must be a list")
        specs.append(PackageSpec(
            name=_require(item, "name", str, where),
            source=_definition(item.get("definition"), where),
            constraints=[_constraint(c, f"{where}.constraints[{i}]") for i, c in enumerate(constraints)],
        ))
    return specs


def _selected(name: str, version: Any, definition: Any, where: str) -> SelectedPackage:
    if not isinstance(version, str):
        raise RequestMalformed(f"{where}: 'version' must be a string, got {version!r}")
    return SelectedPackage(PackageId(name, parse_version(version)), _definition(definition, where))


def _selection(value: Any) -> Selection:
    selection: Selection = {}
    if isinstance(value, list):
        for index, item in enumerate(value):
            where = f"selection[{index}]"
            item = _mapping(item, where)
            name = _require(item, "name", str, where)
            selection[name] = _selected(name, item.get("version"), item.get("definition"), where)
    elif isinstance(value, dict):
        for name, item in value.items():
            where = f"selection.{name}"
            if isinstance(item, dict):
                selection[name] = _selected(name, item.get("version"), item.get("definition"), where)
            else:
                selection[name] = _selected(name, item, None, where)
    else:
        raise RequestMalformed(f"selection: expected a list or an object, got {value!r}")
    return selection


def parse_request(doc: Any) -> Request:
    """Validate a decoded request document.

    Raises:
        RequestMalformed: If the document is invalid or names both or neither mode.
    """
    doc = _mapping(doc, "request")
    has_spec = doc.get("spec") is not None
    has_selection = doc.get("selection") is not None
    if has_spec == has_selection:
        raise RequestMalformed("request must contain exactly one of 'spec' or 'selection'")
    repositories = _repositories(doc)
    try:
        mode: Union[Solve, Exact] = Solve(_specs(doc["spec"])) if has_spec else Exact(_selection(doc["selection"]))
    except (MalformedVersion, MalformedOperator) as e:
        raise RequestMalformed(str(e)) from e
    return Request(repositories, mode)


def solve(request: Request, config: Optional[EnvironmentConfig] = None) -> Spec:
    """Fix the selection: pass-through in Exact mode, search in Solve mode."""
    if isinstance(request.mode, Exact):
        return Spec(request.repositories, request.mode.selection)
    return Spec(request.repositories, solve_specs(request.mode.specs, request.repositories, config))


def dump(spec: Spec, config: Optional[EnvironmentConfig] = None) -> Dict[str, Any]:
    """Assemble every selected package; keys are sorted by package name."""
    assembler = BuildableAssembler(spec.repositories, config)
    return {
        name: assembler.assemble(spec.selection, spec.selection[name]).to_json()
        for name in sorted(spec.selection)
    }
