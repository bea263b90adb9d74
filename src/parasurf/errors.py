"""Structured error types for compile/evaluate/sampling separation."""

from __future__ import annotations

from dataclasses import dataclass


class FormulaError(Exception):
    """Base class for structured parasurf errors."""


@dataclass(frozen=True)
class CompileError(FormulaError):
    """A formula failed to compile; ``position`` is the offset of the active token."""

    position: int
    message: str

    def __str__(self) -> str:
        return f"at position {self.position}: {self.message}"


class EvaluationError(FormulaError):
    """Evaluation inputs do not match the compiled variable list."""


class SurfaceError(FormulaError, ValueError):
    """Invalid surface definition or sampling resolution."""
