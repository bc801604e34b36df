"""Tokenizer for the opam file format."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterator, List

from opamextract.errors import OpamSyntaxError

# Token kinds
STRING = "STRING"
INT = "INT"
BOOL = "BOOL"
IDENT = "IDENT"
RELOP = "RELOP"
ENVOP = "ENVOP"
AND = "AND"
OR = "OR"
PFXOP = "PFXOP"
COLON = "COLON"
LBRACE = "LBRACE"
RBRACE = "RBRACE"
LBRACKET = "LBRACKET"
RBRACKET = "RBRACKET"
LPAREN = "LPAREN"
RPAREN = "RPAREN"
EOF = "EOF"

_SEGMENT = r"[A-Za-z0-9_][A-Za-z0-9_+-]*"
_WORD = re.compile(rf"{_SEGMENT}(?::{_SEGMENT})?")
_NEGATIVE_INT = re.compile(r"-[0-9]+(?![A-Za-z0-9_+-])")
_INT = re.compile(r"-?[0-9]+$")

_PUNCTUATION = [
    ("!=", RELOP), ("<=", RELOP), (">=", RELOP),
    ("+=", ENVOP), ("=+=", ENVOP), ("=+", ENVOP), (":=", ENVOP),
    ("=", RELOP), ("<", RELOP), (">", RELOP),
    ("&", AND), ("|", OR), ("!", PFXOP), ("?", PFXOP),
    (":", COLON), ("{", LBRACE), ("}", RBRACE), ("[", LBRACKET),
    ("]", RBRACKET), ("(", LPAREN), (")", RPAREN),
]
# Longest operators first so "=+=" wins over "=".
_PUNCTUATION.sort(key=lambda item: -len(item[0]))

_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "b": "\b", "\\": "\\", '"': '"', " ": " "}


@dataclass(frozen=True)
class Token:
    kind: str
    value: object
    line: int


class Lexer:
    """Turn opam text into a list of :class:`Token`."""

    def __init__(self, text: str, path: str = "<string>"):
        self._text = text
        self._path = path
        self._pos = 0
        self._line = 1

    def _error(self, message: str) -> OpamSyntaxError:
        return OpamSyntaxError(message, self._path, self._line)

    def tokens(self) -> List[Token]:
        return list(self._iter_tokens())

    def _iter_tokens(self) -> Iterator[Token]:
        text = self._text
        while True:
            self._skip_blanks()
            if self._pos >= len(text):
                yield Token(EOF, None, self._line)
                return
            ch = text[self._pos]
            if text.startswith('"""', self._pos):
                yield self._triple_string()
            elif ch == '"':
                yield self._string()
            else:
                yield self._word_or_punctuation()

    def _skip_blanks(self) -> None:
        text = self._text
        while self._pos < len(text):
            ch = text[self._pos]
            if ch == "\n":
                self._line += 1
                self._pos += 1
            elif ch in " \t\r":
                self._pos += 1
            elif ch == "#":
                end = text.find("\n", self._pos)
                self._pos = len(text) if end == -1 else end
            elif text.startswith("(*", self._pos):
                self._skip_comment()
            else:
                return

    def _skip_comment(self) -> None:
        text = self._text
        depth = 0
        while self._pos < len(text):
            if text.startswith("(*", self._pos):
                depth += 1
                self._pos += 2
            elif text.startswith("*)", self._pos):
                depth -= 1
                self._pos += 2
                if depth == 0:
                    return
            else:
                if text[self._pos] == "\n":
                    self._line += 1
                self._pos += 1
        raise self._error("unterminated comment")

    def _triple_string(self) -> Token:
        line = self._line
        end = self._text.find('"""', self._pos + 3)
        if end == -1:
            raise self._error("unterminated string")
        raw = self._text[self._pos + 3:end]
        self._line += raw.count("\n")
        self._pos = end + 3
        return Token(STRING, self._unescape(raw), line)

    def _string(self) -> Token:
        text = self._text
        line = self._line
        pos = self._pos + 1
        while pos < len(text):
            ch = text[pos]
            if ch == "\\":
                pos += 2
                continue
            if ch == '"':
                raw = text[self._pos + 1:pos]
                self._line += raw.count("\n")
                self._pos = pos + 1
                return Token(STRING, self._unescape(raw), line)
            pos += 1
        raise self._error("unterminated string")

    def _unescape(self, raw: str) -> str:
        out: List[str] = []
        i = 0
        while i < len(raw):
            ch = raw[i]
            if ch != "\\":
                out.append(ch)
                i += 1
                continue
            nxt = raw[i + 1] if i + 1 < len(raw) else ""
            if nxt in _ESCAPES:
                out.append(_ESCAPES[nxt])
                i += 2
            elif nxt == "\n":
                # Line continuation: drop the newline and leading blanks.
                i += 2
                while i < len(raw) and raw[i] in " \t":
                    i += 1
            elif nxt.isdigit() and raw[i + 1:i + 4].isdigit():
                out.append(chr(int(raw[i + 1:i + 4])))
                i += 4
            elif nxt == "x" and re.match(r"[0-9A-Fa-f]{2}", raw[i + 2:i + 4]):
                out.append(chr(int(raw[i + 2:i + 4], 16)))
                i += 4
            else:
                raise self._error(f"invalid escape sequence \\{nxt}")
        return "".join(out)

    def _word_or_punctuation(self) -> Token:
        text = self._text
        match = _NEGATIVE_INT.match(text, self._pos)
        if match:
            self._pos = match.end()
            return Token(INT, int(match.group(0)), self._line)
        match = _WORD.match(text, self._pos)
        if match:
            word = match.group(0)
            self._pos = match.end()
            if word in ("true", "false"):
                return Token(BOOL, word == "true", self._line)
            if _INT.match(word):
                return Token(INT, int(word), self._line)
            return Token(IDENT, word, self._line)
        for symbol, kind in _PUNCTUATION:
            if text.startswith(symbol, self._pos):
                self._pos += len(symbol)
                return Token(kind, symbol, self._line)
        raise self._error(f"unexpected character {text[self._pos]!r}")


def tokenize(text: str, path: str = "<string>") -> List[Token]:
    return Lexer(text, path).tokens()
