"""JAX lowering of compiled formula programs for whole-grid evaluation.

float64 is enabled only while parasurf itself evaluates: every entry point
runs inside :func:`precision_scope`, a thread-local ``jax.enable_x64`` block,
so the process-wide ``jax_enable_x64`` flag is never touched. Set
``PARASURF_DISABLE_X64=1`` to evaluate in the ambient (usually float32) mode.
"""

from __future__ import annotations

from collections.abc import Callable
import contextlib
from functools import lru_cache
import logging
import os

import jax
import jax.numpy as jnp

from .errors import EvaluationError
from .program import Binary, Program, PushConst, PushVar, Select, Unary

logger = logging.getLogger(__name__)

_ENABLE_X64 = os.environ.get("PARASURF_DISABLE_X64", "0") != "1"
_JIT_CACHE_MAX = max(1, int(os.environ.get("PARASURF_JIT_CACHE_MAX", "256")))

_UNARY_FUNCS = {
    "neg": jnp.negative,
    "abs": jnp.abs,
    "sin": jnp.sin,
    "cos": jnp.cos,
    "tan": jnp.tan,
    "exp": jnp.exp,
}

_BINARY_FUNCS = {
    "+": jnp.add,
    "-": jnp.subtract,
    "*": jnp.multiply,
    "/": jnp.true_divide,
    "^": jnp.power,
    "==": jnp.equal,
    "!=": jnp.not_equal,
    "<": jnp.less,
    "<=": jnp.less_equal,
    ">=": jnp.greater_equal,
    ">": jnp.greater,
}


def precision_scope() -> contextlib.AbstractContextManager:
    """Context in which parasurf's JAX evaluation runs (float64 unless disabled)."""
    if _ENABLE_X64:
        return jax.enable_x64(True)
    return contextlib.nullcontext()


def float_dtype():
    """Default floating dtype of the active JAX configuration."""
    return jnp.result_type(float)


def evaluate_program(program: Program, args: tuple[object, ...]) -> jnp.ndarray:
    """Execute ``program`` elementwise over broadcast-compatible ``args``.

    Ternaries lower to ``jnp.where`` so both arms are computed, exactly like
    the scalar interpreter. The result is broadcast to the common arg shape.
    """
    with precision_scope():
        return _run_program(program, args)


def _run_program(program: Program, args: tuple[object, ...]) -> jnp.ndarray:
    dtype = float_dtype()
    arrays = tuple(jnp.asarray(arg, dtype=dtype) for arg in args)
    shape = jnp.broadcast_shapes(*(arr.shape for arr in arrays)) if arrays else ()
    stack: list[jnp.ndarray] = []

    for instr in program:
        if isinstance(instr, PushConst):
            stack.append(jnp.asarray(instr.value, dtype=dtype))
        elif isinstance(instr, PushVar):
            if instr.slot >= len(arrays):
                raise EvaluationError(f"Program reads slot {instr.slot} but only {len(arrays)} inputs were given")
            stack.append(arrays[instr.slot])
        elif isinstance(instr, Unary):
            stack.append(_UNARY_FUNCS[instr.op](stack.pop()))
        elif isinstance(instr, Binary):
            b = stack.pop()
            a = stack.pop()
            out = _BINARY_FUNCS[instr.op](a, b)
            if out.dtype == jnp.bool_:
                out = out.astype(dtype)
            stack.append(out)
        elif isinstance(instr, Select):
            c = stack.pop()
            b = stack.pop()
            a = stack.pop()
            stack.append(jnp.where(a != 0, b, c))
        else:
            raise TypeError(f"Unknown instruction {instr!r}")

    return jnp.broadcast_to(stack[-1], shape)


def lower_program(program: Program, n_vars: int) -> Callable[..., jnp.ndarray]:
    """Return a traceable ``fn(*vars)`` computing ``program``.

    The function uses whatever precision is active when it is traced; wrap
    calls in :func:`precision_scope` to get parasurf's float64 results.
    """

    def _call(*args):
        if len(args) != n_vars:
            raise EvaluationError(f"Expected {n_vars} inputs, got {len(args)}")
        return _run_program(program, args)

    return _call


@lru_cache(maxsize=_JIT_CACHE_MAX)
def cached_jit(program: Program, n_vars: int) -> Callable[..., jnp.ndarray]:
    """``jax.jit`` of :func:`lower_program`, shared across identical programs.

    Each call runs inside :func:`precision_scope`.
    """
    logger.debug("jit-compiling program of %d instructions over %d inputs", len(program), n_vars)
    jitted = jax.jit(lower_program(program, n_vars))

    def _call(*args):
        with precision_scope():
            return jitted(*args)

    return _call


def jit_cache_stats(*, reset: bool = False) -> dict[str, int]:
    info = cached_jit.cache_info()
    stats = {
        "hits": info.hits,
        "misses": info.misses,
        "size": info.currsize,
        "max_size": info.maxsize or 0,
    }
    if reset:
        cached_jit.cache_clear()
    return stats
