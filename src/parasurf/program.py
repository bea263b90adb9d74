"""Stack-machine instructions produced by the formula compiler."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

UNARY_OPS = ("neg", "abs", "sin", "cos", "tan", "exp")
ARITHMETIC_OPS = ("+", "-", "*", "/", "^")
COMPARISON_OPS = ("==", "!=", "<", "<=", ">=", ">")
BINARY_OPS = ARITHMETIC_OPS + COMPARISON_OPS

# Built-in function names map onto unary opcodes; "neg" is only reachable
# through a leading minus sign.
FUNCTION_OPS = {
    "abs": "abs",
    "sin": "sin",
    "cos": "cos",
    "tan": "tan",
    "exp": "exp",
}


@dataclass(frozen=True)
class PushConst:
    value: float


@dataclass(frozen=True)
class PushVar:
    slot: int


@dataclass(frozen=True)
class Unary:
    op: str

    def __post_init__(self) -> None:
        if self.op not in UNARY_OPS:
            raise ValueError(f"Unknown unary opcode {self.op!r}")


@dataclass(frozen=True)
class Binary:
    op: str

    def __post_init__(self) -> None:
        if self.op not in BINARY_OPS:
            raise ValueError(f"Unknown binary opcode {self.op!r}")


@dataclass(frozen=True)
class Select:
    """Pops else, then, condition; pushes then if condition != 0 else else."""


Instruction = Union[PushConst, PushVar, Unary, Binary, Select]
Program = tuple[Instruction, ...]


def stack_effect(instr: Instruction) -> int:
    """Net change in value-stack depth caused by ``instr``."""
    if isinstance(instr, (PushConst, PushVar)):
        return 1
    if isinstance(instr, Unary):
        return 0
    if isinstance(instr, Binary):
        return -1
    if isinstance(instr, Select):
        return -2
    raise TypeError(f"Unknown instruction {instr!r}")


def max_stack_depth(program: Program) -> int:
    depth = 0
    peak = 0
    for instr in program:
        depth += stack_effect(instr)
        peak = max(peak, depth)
    return peak


def format_instruction(instr: Instruction, variables: tuple[str, ...] = ()) -> str:
    if isinstance(instr, PushConst):
        return f"push {instr.value!r}"
    if isinstance(instr, PushVar):
        if instr.slot < len(variables):
            return f"load {instr.slot} ({variables[instr.slot]})"
        return f"load {instr.slot}"
    if isinstance(instr, Unary):
        return instr.op
    if isinstance(instr, Binary):
        return instr.op
    if isinstance(instr, Select):
        return "select"
    raise TypeError(f"Unknown instruction {instr!r}")


def format_program(program: Program, variables: tuple[str, ...] = ()) -> str:
    """Render one instruction per line, prefixed by its index."""
    width = len(str(max(len(program) - 1, 0)))
    return "\n".join(
        f"{index:>{width}}  {format_instruction(instr, variables)}" for index, instr in enumerate(program)
    )
