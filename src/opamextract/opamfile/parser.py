"""Recursive-descent parser for opam files.

Operator precedence, loosest first: ``|``, ``&``, relational operators,
prefix operators (``!``, ``?``), then option braces which bind to the
value immediately before them.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from opamextract.errors import OpamSyntaxError
from opamextract.opamfile import lexer as lx
from opamextract.opamfile.values import (
    Bool, EnvBinding, Group, Ident, Int, List_, Logop, OpamFile, Option,
    Pfxop, PrefixRelop, Relop, Section, String, Value,
)

logger = logging.getLogger(__name__)

_VALUE_START = {
    lx.STRING, lx.INT, lx.BOOL, lx.IDENT, lx.LBRACKET, lx.LPAREN,
    lx.PFXOP, lx.RELOP,
}


class Parser:
    """Build an :class:`OpamFile` from tokens."""

    def __init__(self, tokens: List[lx.Token], path: str = "<string>"):
        self._tokens = tokens
        self._index = 0
        self._path = path

    def _peek(self, offset: int = 0) -> lx.Token:
        index = min(self._index + offset, len(self._tokens) - 1)
        return self._tokens[index]

    def _next(self) -> lx.Token:
        token = self._peek()
        if token.kind != lx.EOF:
            self._index += 1
        return token

    def _expect(self, kind: str) -> lx.Token:
        token = self._next()
        if token.kind != kind:
            raise self._error(f"expected {kind}, found {token.kind}", token)
        return token

    def _error(self, message: str, token: Optional[lx.Token] = None) -> OpamSyntaxError:
        line = (token or self._peek()).line
        return OpamSyntaxError(message, self._path, line)

    # File structure

    def parse_file(self) -> OpamFile:
        opam = self._items(lx.EOF)
        self._expect(lx.EOF)
        return opam

    def _items(self, closer: str) -> OpamFile:
        opam = OpamFile(path=self._path)
        while self._peek().kind != closer:
            token = self._expect(lx.IDENT)
            following = self._peek()
            if following.kind == lx.COLON:
                self._next()
                if token.value in opam.fields:
                    raise self._error(f"duplicate field {token.value!r}", token)
                opam.fields[str(token.value)] = self._value()
            elif following.kind in (lx.LBRACE, lx.STRING):
                name = None
                if following.kind == lx.STRING:
                    name = str(self._next().value)
                self._expect(lx.LBRACE)
                items = self._items(lx.RBRACE)
                self._expect(lx.RBRACE)
                opam.sections.append(Section(str(token.value), name, items))
            else:
                raise self._error(f"expected ':' or section after {token.value!r}", following)
        return opam

    # Values

    def _values(self, closer: str) -> Tuple[Value, ...]:
        items: List[Value] = []
        while self._peek().kind != closer:
            if self._peek().kind not in _VALUE_START:
                raise self._error(f"unexpected {self._peek().kind}")
            items.append(self._value())
        self._expect(closer)
        return tuple(items)

    def _value(self) -> Value:
        left = self._and()
        while self._peek().kind == lx.OR:
            self._next()
            left = Logop("|", left, self._and())
        return left

    def _and(self) -> Value:
        left = self._relation()
        while self._peek().kind == lx.AND:
            self._next()
            left = Logop("&", left, self._relation())
        return left

    def _relation(self) -> Value:
        token = self._peek()
        if token.kind == lx.RELOP:
            self._next()
            return PrefixRelop(str(token.value), self._unary())
        if token.kind == lx.IDENT and self._peek(1).kind == lx.ENVOP:
            self._next()
            op = str(self._next().value)
            return EnvBinding(str(token.value), op, self._unary())
        left = self._unary()
        if self._peek().kind == lx.RELOP:
            op = str(self._next().value)
            return Relop(op, left, self._unary())
        return left

    def _unary(self) -> Value:
        token = self._peek()
        if token.kind == lx.PFXOP:
            self._next()
            return Pfxop(str(token.value), self._unary())
        return self._postfix()

    def _postfix(self) -> Value:
        value = self._primary()
        while self._peek().kind == lx.LBRACE:
            self._next()
            value = Option(value, self._values(lx.RBRACE))
        return value

    def _primary(self) -> Value:
        token = self._next()
        if token.kind == lx.STRING:
            return String(str(token.value))
        if token.kind == lx.INT:
            return Int(int(token.value))  # type: ignore[arg-type]
        if token.kind == lx.BOOL:
            return Bool(bool(token.value))
        if token.kind == lx.IDENT:
            return Ident(str(token.value))
        if token.kind == lx.LBRACKET:
            return List_(self._values(lx.RBRACKET))
        if token.kind == lx.LPAREN:
            return Group(self._values(lx.RPAREN))
        raise self._error(f"unexpected {token.kind}", token)


def parse(text: str, path: str = "<string>") -> OpamFile:
    """Parse opam file contents."""
    return Parser(lx.tokenize(text, path), path).parse_file()


def load(path: str) -> OpamFile:
    """Read and parse the file at ``path``.

    Raises:
        OpamSyntaxError: If the file cannot be read or parsed.
    """
    try:
        with open(path, encoding="utf-8") as f:
            text = f.read()
    except OSError as e:
        raise OpamSyntaxError(f"cannot read file: {e}", path) from e
    except UnicodeDecodeError as e:
        raise OpamSyntaxError(f"invalid UTF-8: {e}", path) from e
    logger.debug("Parsing %s", path)
    return parse(text, path)
