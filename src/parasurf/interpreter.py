"""Scalar stack-machine interpreter for compiled formula programs."""

from __future__ import annotations

from collections.abc import Sequence
import operator

import numpy as np

from .program import Binary, Program, PushConst, PushVar, Select, Unary

_UNARY_FUNCS = {
    "neg": np.negative,
    "abs": np.abs,
    "sin": np.sin,
    "cos": np.cos,
    "tan": np.tan,
    "exp": np.exp,
}

_ARITHMETIC_FUNCS = {
    "+": np.add,
    "-": np.subtract,
    "*": np.multiply,
    "/": np.divide,
    "^": np.power,
}

_COMPARISON_FUNCS = {
    "==": operator.eq,
    "!=": operator.ne,
    "<": operator.lt,
    "<=": operator.le,
    ">=": operator.ge,
    ">": operator.gt,
}

_ONE = np.float64(1.0)
_ZERO = np.float64(0.0)


def execute(program: Program, values: Sequence[float]) -> float:
    """Run ``program`` once against ``values`` and return the single result.

    Arithmetic is IEEE754 float64: division by zero and domain errors yield
    inf/NaN instead of raising. Both arms of a ternary are always computed.
    """
    stack: list[np.float64] = []
    push = stack.append
    pop = stack.pop

    with np.errstate(all="ignore"):
        for instr in program:
            if isinstance(instr, PushConst):
                push(np.float64(instr.value))
            elif isinstance(instr, PushVar):
                push(np.float64(values[instr.slot]))
            elif isinstance(instr, Unary):
                push(_UNARY_FUNCS[instr.op](pop()))
            elif isinstance(instr, Binary):
                b = pop()
                a = pop()
                func = _ARITHMETIC_FUNCS.get(instr.op)
                if func is not None:
                    push(func(a, b))
                else:
                    push(_ONE if _COMPARISON_FUNCS[instr.op](a, b) else _ZERO)
            elif isinstance(instr, Select):
                c = pop()
                b = pop()
                a = pop()
                push(b if a != 0 else c)
            else:
                raise TypeError(f"Unknown instruction {instr!r}")

    return float(stack[-1])
