"""Recursive-descent compiler from formula text to a flat instruction program.

Precedence, loosest first::

    expr       := ifelse
    ifelse     := comparison ("?" ifelse ":" ifelse)?
    comparison := sum (("==" | "!=" | "<" | "<=" | ">=" | ">") sum)?
    sum        := product (("+" | "-") product)*
    product    := power (("*" | "/") power)*
    power      := ("+" | "-")* factor ("^" factor)*
    factor     := FUNC factor | NAME | NUMBER | "(" expr ")"

The collected sign of ``power`` is applied after the whole ``^`` chain, so
``-2^2`` is ``-(2^2)``. Function arguments are a single ``factor``.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
import logging

from .errors import CompileError
from .lexer import Lexer, Token
from .program import FUNCTION_OPS, Binary, Instruction, Program, PushConst, PushVar, Select, Unary

logger = logging.getLogger(__name__)

_COMPARISON_TOKENS = {
    "EQ": "==",
    "NE": "!=",
    "LT": "<",
    "LE": "<=",
    "GE": ">=",
    "GT": ">",
}
_SUM_TOKENS = {"PLUS": "+", "MINUS": "-"}
_PRODUCT_TOKENS = {"STAR": "*", "SLASH": "/"}


@dataclass
class _Compiler:
    lexer: Lexer
    variables: tuple[str, ...]
    constants: dict[str, float]
    current: Token = field(init=False)
    instructions: list[Instruction] = field(default_factory=list)

    def __post_init__(self) -> None:
        self._advance()

    def compile(self) -> Program:
        try:
            self._parse_expr()
        except RecursionError:
            raise CompileError(self.current.pos, "expression nested too deeply") from None
        if self.current.kind != "END":
            self._error("unexpected extra token")
        return tuple(self.instructions)

    def _advance(self) -> Token:
        self.current = self.lexer.next_token()
        return self.current

    def _error(self, message: str) -> None:
        raise CompileError(self.current.pos, message)

    def _emit(self, instr: Instruction) -> None:
        self.instructions.append(instr)

    def _parse_expr(self) -> None:
        self._parse_ifelse()

    def _parse_ifelse(self) -> None:
        self._parse_comparison()
        if self.current.kind != "QMARK":
            return

        self._advance()
        self._parse_ifelse()
        if self.current.kind != "COLON":
            self._error("colon expected")
        self._advance()
        self._parse_ifelse()
        self._emit(Select())

    def _parse_comparison(self) -> None:
        self._parse_sum()
        op = _COMPARISON_TOKENS.get(self.current.kind)
        if op is None:
            return

        # Non-chaining: a second relational operator is left for the caller.
        self._advance()
        self._parse_sum()
        self._emit(Binary(op))

    def _parse_sum(self) -> None:
        self._parse_product()
        while self.current.kind in _SUM_TOKENS:
            op = _SUM_TOKENS[self.current.kind]
            self._advance()
            self._parse_product()
            self._emit(Binary(op))

    def _parse_product(self) -> None:
        self._parse_power()
        while self.current.kind in _PRODUCT_TOKENS:
            op = _PRODUCT_TOKENS[self.current.kind]
            self._advance()
            self._parse_power()
            self._emit(Binary(op))

    def _parse_power(self) -> None:
        negative = False
        while self.current.kind in _SUM_TOKENS:
            if self.current.kind == "MINUS":
                negative = not negative
            self._advance()

        self._parse_factor()
        while self.current.kind == "CARET":
            self._advance()
            self._parse_factor()
            self._emit(Binary("^"))

        if negative:
            self._emit(Unary("neg"))

    def _parse_factor(self) -> None:
        tok = self.current

        if tok.kind == "NAME":
            name = tok.text
            func = FUNCTION_OPS.get(name)
            if func is not None:
                self._advance()
                self._parse_factor()
                self._emit(Unary(func))
                return

            slot = self._variable_slot(name)
            if slot is not None:
                self._emit(PushVar(slot))
                self._advance()
                return

            if name in self.constants:
                self._emit(PushConst(float(self.constants[name])))
                self._advance()
                return

            self._error(f'unknown identifier "{name}"')

        if tok.kind == "NUMBER":
            self._emit(PushConst(float(tok.value)))
            self._advance()
            return

        if tok.kind == "LPAREN":
            self._advance()
            self._parse_expr()
            if self.current.kind != "RPAREN":
                self._error("closing parenthesis expected")
            self._advance()
            return

        self._error("number or parenthesis expected")

    def _variable_slot(self, name: str) -> int | None:
        try:
            return self.variables.index(name)
        except ValueError:
            return None


def compile_program(
    formula: str,
    variables: Sequence[str],
    constants: Mapping[str, float] | None = None,
) -> Program:
    """Compile ``formula`` into a flat program.

    Identifiers resolve to built-in functions first, then to ``variables``
    (emitting the slot index), then to ``constants`` (inlined as literals).
    Raises :class:`CompileError` on any failure; no partial program is returned.
    """
    compiler = _Compiler(
        lexer=Lexer(formula),
        variables=tuple(variables),
        constants=dict(constants or {}),
    )
    program = compiler.compile()
    logger.debug("compiled %r into %d instructions", formula, len(program))
    return program
