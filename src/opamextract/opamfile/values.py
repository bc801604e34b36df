"""Syntax tree of the opam file format."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple, Union


@dataclass(frozen=True)
class Bool:
    value: bool


@dataclass(frozen=True)
class Int:
    value: int


@dataclass(frozen=True)
class String:
    value: str


@dataclass(frozen=True)
class Ident:
    name: str


@dataclass(frozen=True)
class Relop:
    """Infix comparison, e.g. ``os = "linux"``."""
    op: str
    left: "Value"
    right: "Value"


@dataclass(frozen=True)
class PrefixRelop:
    """Version constraint without a left operand, e.g. ``>= "4.08"``."""
    op: str
    value: "Value"


@dataclass(frozen=True)
class Logop:
    op: str  # "&" or "|"
    left: "Value"
    right: "Value"


@dataclass(frozen=True)
class Pfxop:
    op: str  # "!" or "?"
    value: "Value"


@dataclass(frozen=True)
class EnvBinding:
    """``VAR += "value"`` style entries of ``build-env``."""
    name: str
    op: str
    value: "Value"


@dataclass(frozen=True)
class List_:
    items: Tuple["Value", ...]


@dataclass(frozen=True)
class Group:
    items: Tuple["Value", ...]


@dataclass(frozen=True)
class Option:
    """A value followed by ``{ ... }``: the braces hold filters or constraints."""
    value: "Value"
    options: Tuple["Value", ...]


Value = Union[Bool, Int, String, Ident, Relop, PrefixRelop, Logop, Pfxop,
              EnvBinding, List_, Group, Option]


@dataclass
class Section:
    kind: str
    name: Optional[str]
    items: "OpamFile"


@dataclass
class OpamFile:
    """Parsed file: fields in order plus sections."""
    path: str = "<string>"
    fields: Dict[str, Value] = field(default_factory=dict)
    sections: List[Section] = field(default_factory=list)

    def get(self, name: str) -> Optional[Value]:
        return self.fields.get(name)

    def section(self, kind: str) -> Optional[Section]:
        for section in self.sections:
            if section.kind == kind:
                return section
        return None


def strip_options(value: Value) -> Value:
    while isinstance(value, Option):
        value = value.value
    return value


def list_depth(value: Value) -> int:
    """Nesting depth of lists, ignoring option braces."""
    value = strip_options(value)
    if not isinstance(value, List_):
        return 0
    return 1 + max((list_depth(item) for item in value.items), default=0)


def as_list(value: Optional[Value], depth: int = 1) -> List[Value]:
    """Items of ``value`` seen as a list nested ``depth`` times.

    opam lets a single element stand for a one-element list, so
    ``build: ["make"]`` and ``build: [["make"]]`` mean the same thing.
    """
    if value is None:
        return []
    stripped = strip_options(value)
    if isinstance(stripped, List_) and not stripped.items:
        return []
    while list_depth(value) < depth:
        value = List_((value,))
    stripped = strip_options(value)
    if isinstance(stripped, List_) and stripped is value:
        return list(stripped.items)
    return [value]
