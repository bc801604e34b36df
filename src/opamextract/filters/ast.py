"""Filter expressions and command arguments."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional, Tuple, Union

from opamextract.constants import RelOp

__all__ = [
    "FBool", "FString", "FIdent", "FOp", "FAnd", "FOr", "FNot", "FDefined",
    "Filter", "parse_ident", "StringArg", "IdentArg", "Arg", "Argument",
    "Command",
]

_IDENT = re.compile(
    r"^(?:(?P<packages>[A-Za-z0-9_][A-Za-z0-9_+-]*):)?"
    r"(?P<variable>[A-Za-z0-9_][A-Za-z0-9_-]*)"
    r"(?:\?(?P<then>[^:]*):(?P<else>.*))?$"
)


@dataclass(frozen=True)
class FBool:
    value: bool

    def __str__(self) -> str:
        return "true" if self.value else "false"


@dataclass(frozen=True)
class FString:
    value: str

    def __str__(self) -> str:
        return f'"{self.value}"'


@dataclass(frozen=True)
class FIdent:
    """Variable reference ``[pkg1+pkg2:]var[?then:else]``.

    ``packages`` is empty for an unqualified variable; ``_`` stands for the
    package the filter belongs to.
    """
    packages: Tuple[str, ...]
    variable: str
    converter: Optional[Tuple[str, str]] = None

    def __str__(self) -> str:
        text = self.variable
        if self.packages:
            text = "+".join(self.packages) + ":" + text
        if self.converter is not None:
            text += f"?{self.converter[0]}:{self.converter[1]}"
        return text


@dataclass(frozen=True)
class FOp:
    op: RelOp
    left: "Filter"
    right: "Filter"

    def __str__(self) -> str:
        return f"{_wrap(self.left)} {self.op.value} {_wrap(self.right)}"


@dataclass(frozen=True)
class FAnd:
    left: "Filter"
    right: "Filter"

    def __str__(self) -> str:
        return f"{_wrap(self.left)} & {_wrap(self.right)}"


@dataclass(frozen=True)
class FOr:
    left: "Filter"
    right: "Filter"

    def __str__(self) -> str:
        return f"{_wrap(self.left)} | {_wrap(self.right)}"


@dataclass(frozen=True)
class FNot:
    item: "Filter"

    def __str__(self) -> str:
        return f"!{_wrap(self.item)}"


@dataclass(frozen=True)
class FDefined:
    item: "Filter"

    def __str__(self) -> str:
        return f"?{_wrap(self.item)}"


Filter = Union[FBool, FString, FIdent, FOp, FAnd, FOr, FNot, FDefined]


def _wrap(item: Filter) -> str:
    if isinstance(item, (FAnd, FOr, FOp)):
        return f"({item})"
    return str(item)


def parse_ident(text: str) -> Optional[FIdent]:
    """Parse the inside of a ``%{...}%`` placeholder or a bare identifier.

    Returns None when ``text`` is not a valid variable reference.
    """
    match = _IDENT.match(text.strip())
    if not match:
        return None
    packages = tuple(match.group("packages").split("+")) if match.group("packages") else ()
    converter = None
    if match.group("then") is not None:
        converter = (match.group("then"), match.group("else"))
    return FIdent(packages, match.group("variable"), converter)


@dataclass(frozen=True)
class StringArg:
    """A literal argument, possibly holding ``%{var}%`` placeholders."""
    template: str


@dataclass(frozen=True)
class IdentArg:
    """A bare variable reference used as a whole argument."""
    ident: str


Arg = Union[StringArg, IdentArg]


@dataclass(frozen=True)
class Argument:
    value: Arg
    filter: Optional[Filter] = None

    @property
    def template(self) -> str:
        """The argument as a template; a bare ident becomes ``%{ident}%``."""
        if isinstance(self.value, IdentArg):
            return "%{" + self.value.ident + "}%"
        return self.value.template


@dataclass(frozen=True)
class Command:
    args: Tuple[Argument, ...]
    filter: Optional[Filter] = None
