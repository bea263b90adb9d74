"""Compiled formulas: construction once, evaluation many times."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from .compiler import compile_program
from .errors import CompileError, EvaluationError
from .interpreter import execute
from .program import Program, format_program


@dataclass(frozen=True)
class CompiledFormula:
    """A formula compiled against a fixed variable list.

    The program and variable names are read-only after construction, so one
    instance may be evaluated from many callers as long as each passes its
    own ``values`` sequence.
    """

    source: str
    variables: tuple[str, ...]
    program: Program

    def evaluate(self, values: Sequence[float]) -> float:
        if len(values) != len(self.variables):
            raise EvaluationError(
                f"Expected {len(self.variables)} values for {list(self.variables)}, got {len(values)}"
            )
        return execute(self.program, values)

    def __call__(self, *values: float) -> float:
        return self.evaluate(values)

    def evaluate_batch(self, *arrays):
        """Evaluate over broadcast-compatible arrays, one per variable (JAX path)."""
        from .jax_backend import evaluate_program

        if len(arrays) != len(self.variables):
            raise EvaluationError(f"Expected {len(self.variables)} inputs, got {len(arrays)}")
        return evaluate_program(self.program, arrays)

    def jit(self):
        """Return a cached ``jax.jit`` callable taking one array per variable."""
        from .jax_backend import cached_jit

        return cached_jit(self.program, len(self.variables))

    def disassemble(self) -> str:
        return format_program(self.program, self.variables)


@dataclass(frozen=True)
class CompileResult:
    """Outcome of :func:`try_compile`: exactly one of ``formula``/``error`` is set."""

    formula: CompiledFormula | None = None
    error: CompileError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> CompiledFormula:
        if self.error is not None:
            raise self.error
        if self.formula is None:
            raise ValueError("CompileResult holds neither a formula nor an error")
        return self.formula


def compile_formula(
    formula: str,
    variables: Sequence[str],
    constants: Mapping[str, float] | None = None,
) -> CompiledFormula:
    """Compile ``formula``; raises :class:`CompileError` on bad input."""
    names = tuple(variables)
    program = compile_program(formula, names, constants)
    return CompiledFormula(source=formula, variables=names, program=program)


def try_compile(
    formula: str,
    variables: Sequence[str],
    constants: Mapping[str, float] | None = None,
) -> CompileResult:
    try:
        return CompileResult(formula=compile_formula(formula, variables, constants))
    except CompileError as err:
        return CompileResult(error=err)
