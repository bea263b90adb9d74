"""Tokenization for the surface formula language."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Token:
    kind: str
    text: str
    pos: int
    end: int
    value: float | None = None


_SINGLE_TOKENS = {
    "+": "PLUS",
    "-": "MINUS",
    "*": "STAR",
    "/": "SLASH",
    "^": "CARET",
    "(": "LPAREN",
    ")": "RPAREN",
    ",": "COMMA",
    "?": "QMARK",
    ":": "COLON",
}

# Operators that are invalid unless followed by "=".
_STRICT_EQ_TOKENS = {"=": "EQ", "!": "NE"}
# Operators that optionally extend with "=".
_RELATIONAL_TOKENS = {"<": ("LT", "LE"), ">": ("GT", "GE")}

_BLANK = {" ", "\t"}
_DIGITS = set("0123456789")


def _is_ident_start(ch: str) -> bool:
    return ch.isascii() and ch.isalpha()


def _is_ident_continue(ch: str) -> bool:
    return (ch.isascii() and ch.isalnum()) or ch in {"_", "'"}


class Lexer:
    """Produces tokens on demand, remembering where the last one started."""

    def __init__(self, source: str) -> None:
        self.source = source
        self.pos = 0
        self.token_start = 0

    def _peek(self) -> str:
        return self.source[self.pos] if self.pos < len(self.source) else ""

    def _token(self, kind: str, value: float | None = None) -> Token:
        text = self.source[self.token_start : self.pos]
        return Token(kind, text, self.token_start, self.pos, value)

    def _scan_number(self) -> float:
        whole = 0
        while self._peek() in _DIGITS:
            whole = whole * 10 + int(self._peek())
            self.pos += 1

        fraction = 0
        divisor = 1
        if self._peek() == ".":
            self.pos += 1
            while self._peek() in _DIGITS:
                fraction = fraction * 10 + int(self._peek())
                divisor *= 10
                self.pos += 1

        return whole + fraction / divisor

    def next_token(self) -> Token:
        while self._peek() in _BLANK:
            self.pos += 1

        self.token_start = self.pos
        ch = self._peek()

        if not ch:
            return self._token("END")

        if ch in _DIGITS or ch == ".":
            value = self._scan_number()
            return self._token("NUMBER", value)

        if _is_ident_start(ch):
            self.pos += 1
            while self._peek() and _is_ident_continue(self._peek()):
                self.pos += 1
            return self._token("NAME")

        self.pos += 1

        if ch in _STRICT_EQ_TOKENS:
            if self._peek() == "=":
                self.pos += 1
                return self._token(_STRICT_EQ_TOKENS[ch])
            return self._token("INVALID")

        if ch in _RELATIONAL_TOKENS:
            bare, with_eq = _RELATIONAL_TOKENS[ch]
            if self._peek() == "=":
                self.pos += 1
                return self._token(with_eq)
            return self._token(bare)

        if ch in _SINGLE_TOKENS:
            return self._token(_SINGLE_TOKENS[ch])

        return self._token("INVALID")


def tokenize(source: str) -> list[Token]:
    """Return every token of ``source`` up to and including the END token."""
    lexer = Lexer(source)
    tokens: list[Token] = []
    while True:
        tok = lexer.next_token()
        tokens.append(tok)
        if tok.kind == "END":
            return tokens
