"""Package metadata extracted from opam descriptors.

Only the fields needed to resolve and assemble a package are interpreted:
``name``, ``version``, ``url``, ``depends``, ``conflicts``, ``available``,
``build`` and ``install``. Everything else is ignored.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from opamextract.constants import Constants, RelOp
from opamextract.errors import OpamSyntaxError
from opamextract.filters.ast import (
    Argument, Command, FAnd, FBool, FDefined, FIdent, FNot, FOp, FOr, FString,
    Filter, IdentArg, StringArg, parse_ident,
)
from opamextract.filters.formula import (
    And, Atom, CondAnd, CondConstraint, CondFilter, CondOr, Condition, Or, RawFormula,
)
from opamextract.opamfile import parser
from opamextract.opamfile.values import (
    Bool, Group, Ident, Int, List_, Logop, OpamFile, Option, Pfxop, PrefixRelop,
    Relop, String, Value, as_list, strip_options,
)
from opamextract.versioning.version import OpamVersion

logger = logging.getLogger(__name__)

# Keys of the legacy opam 1.2 ``url`` file and the backend they imply.
_LEGACY_URL_KEYS = [
    ("src", ""), ("archive", ""), ("http", ""), ("git", "git"),
    ("hg", "hg"), ("darcs", "darcs"), ("local", "local"),
]


@dataclass(frozen=True)
class UrlSpec:
    """Raw ``url`` information: source URL plus checksums."""
    src: str
    checksums: Tuple[str, ...] = ()


@dataclass
class PackageMetadata:
    """One package version as described by its opam file."""
    name: Optional[str]
    version: Optional[OpamVersion]
    path: str
    url: Optional[UrlSpec] = None
    depends: Optional[RawFormula] = None
    conflicts: Optional[RawFormula] = None
    available: Optional[Filter] = None
    build: List[Command] = field(default_factory=list)
    install: List[Command] = field(default_factory=list)


class _Converter:
    """Turns syntax values into filters, formulas and commands."""

    def __init__(self, path: str):
        self._path = path

    def error(self, message: str, value: Optional[Value] = None) -> OpamSyntaxError:
        if value is not None:
            message = f"{message}: {value!r}"
        return OpamSyntaxError(message, self._path)

    def relop(self, op: str, value: Value) -> RelOp:
        try:
            return RelOp(op)
        except ValueError as e:
            raise self.error(f"invalid operator {op!r}", value) from e

    def filter(self, value: Value) -> Filter:
        if isinstance(value, Bool):
            return FBool(value.value)
        if isinstance(value, String):
            return FString(value.value)
        if isinstance(value, Int):
            return FString(str(value.value))
        if isinstance(value, Ident):
            ident = parse_ident(value.name)
            if ident is None:
                raise self.error("invalid variable", value)
            return ident
        if isinstance(value, Relop):
            return FOp(self.relop(value.op, value), self.filter(value.left), self.filter(value.right))
        if isinstance(value, Logop):
            kind = FAnd if value.op == "&" else FOr
            return kind(self.filter(value.left), self.filter(value.right))
        if isinstance(value, Pfxop):
            inner = self.filter(value.value)
            return FNot(inner) if value.op == "!" else FDefined(inner)
        if isinstance(value, (Group, List_)):
            return self.filter_all(value.items, value)
        raise self.error("invalid filter", value)

    def filter_all(self, items, context: Optional[Value] = None) -> Filter:
        if not items:
            raise self.error("empty filter", context)
        result = self.filter(items[0])
        for item in items[1:]:
            result = FAnd(result, self.filter(item))
        return result

    def condition(self, value: Value) -> Condition:
        if isinstance(value, PrefixRelop):
            return CondConstraint(self.relop(value.op, value), self.filter(value.value))
        if isinstance(value, Logop):
            kind = CondAnd if value.op == "&" else CondOr
            return kind(self.condition(value.left), self.condition(value.right))
        if isinstance(value, Group):
            return self.conditions(value.items, value)
        return CondFilter(self.filter(value))

    def conditions(self, items, context: Optional[Value] = None) -> Condition:
        if not items:
            raise self.error("empty condition", context)
        result = self.condition(items[0])
        for item in items[1:]:
            result = CondAnd(result, self.condition(item))
        return result

    def formula(self, value: Value) -> RawFormula:
        if isinstance(value, Option):
            inner = value.value
            if not isinstance(inner, String):
                raise self.error("expected package name", value)
            condition = self.conditions(value.options, value) if value.options else None
            return Atom(inner.value, condition)
        if isinstance(value, String):
            return Atom(value.value)
        if isinstance(value, Logop):
            kind = And if value.op == "&" else Or
            return kind((self.formula(value.left), self.formula(value.right)))
        if isinstance(value, Group):
            return self.formula_list(list(value.items))
        raise self.error("invalid package formula", value)

    def formula_list(self, items: List[Value]) -> RawFormula:
        formulas = tuple(self.formula(item) for item in items)
        if len(formulas) == 1:
            return formulas[0]
        return And(formulas)

    def argument(self, value: Value) -> Argument:
        option_filter = None
        if isinstance(value, Option):
            option_filter = self.filter_all(value.options, value)
            value = value.value
        if isinstance(value, String):
            return Argument(StringArg(value.value), option_filter)
        if isinstance(value, Ident):
            return Argument(IdentArg(value.name), option_filter)
        raise self.error("invalid command argument", value)

    def command(self, value: Value) -> Command:
        command_filter = None
        if isinstance(value, Option):
            command_filter = self.filter_all(value.options, value)
            value = value.value
        if not isinstance(value, List_):
            raise self.error("invalid command", value)
        return Command(tuple(self.argument(item) for item in value.items), command_filter)


def _string(opam: OpamFile, name: str) -> Optional[str]:
    value = opam.get(name)
    if value is None:
        return None
    if not isinstance(value, String):
        raise OpamSyntaxError(f"field {name!r} must be a string", opam.path)
    return value.value


def _checksums(value: Optional[Value]) -> Tuple[str, ...]:
    checksums = []
    for item in as_list(value):
        item = strip_options(item)
        if isinstance(item, String):
            text = item.value
            # opam 1.2 checksums are bare md5 digests
            checksums.append(text if "=" in text else f"md5={text}")
    return tuple(checksums)


def url_of_section(opam: OpamFile) -> Optional[UrlSpec]:
    """Read a ``url { src: ... checksum: ... }`` block or a legacy url file."""
    for key, backend in _LEGACY_URL_KEYS:
        src = _string(opam, key)
        if src is None:
            continue
        if backend == "local":
            src = src if "://" in src else f"file://{src}"
        elif backend and "://" in src and not src.startswith((backend + "+", backend + "://")):
            src = f"{backend}+{src}"
        return UrlSpec(src, _checksums(opam.get("checksum")))
    return None


def metadata_of_file(opam: OpamFile) -> PackageMetadata:
    """Interpret a parsed opam file."""
    conv = _Converter(opam.path)
    version_text = _string(opam, "version")
    url = None
    section = opam.section("url")
    if section is not None:
        url = url_of_section(section.items)

    depends = as_list(opam.get("depends"))
    conflicts = as_list(opam.get("conflicts"))
    available = as_list(opam.get("available"))
    return PackageMetadata(
        name=_string(opam, "name"),
        version=OpamVersion(version_text) if version_text else None,
        path=opam.path,
        url=url,
        depends=conv.formula_list(depends) if depends else None,
        conflicts=conv.formula_list(conflicts) if conflicts else None,
        available=conv.filter_all(available) if available else None,
        build=[conv.command(item) for item in as_list(opam.get("build"), depth=2)],
        install=[conv.command(item) for item in as_list(opam.get("install"), depth=2)],
    )


def load_url(path: str) -> Optional[UrlSpec]:
    """Load a legacy ``url`` file if it exists."""
    if not os.path.isfile(path):
        return None
    return url_of_section(parser.load(path))


def load_opam(path: str) -> PackageMetadata:
    """Load an opam file, falling back to a sibling ``url`` file for the source.

    Raises:
        OpamSyntaxError: If the file is missing or malformed.
    """
    metadata = metadata_of_file(parser.load(path))
    if metadata.url is None:
        metadata.url = load_url(os.path.join(os.path.dirname(path), Constants.URL_FILE))
    logger.debug("Loaded %s", path)
    return metadata
