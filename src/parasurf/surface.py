"""Parametric surface sampling over a regular (u, v) grid."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
import logging
import math
from typing import Literal

import numpy as np

from .errors import CompileError, SurfaceError
from .formula import CompiledFormula, compile_formula
from .lexer import tokenize
from .program import FUNCTION_OPS

logger = logging.getLogger(__name__)

BASE_VARIABLES = ("u", "v")
DEFAULT_CONSTANTS: Mapping[str, float] = {"pi": math.pi, "e": math.e}
DEFAULT_RESOLUTION = 64
MAX_VERTICES = 256 * 256

POSITION_FIELDS = ("x", "y", "z")
COLOR_FIELDS = ("r", "g", "b")

Backend = Literal["jax", "interpreter"]


@dataclass(frozen=True)
class AuxiliaryVariable:
    name: str
    formula: str

    @classmethod
    def parse(cls, definition: str) -> "AuxiliaryVariable":
        """Parse ``NAME=FORMULA``; the name ends at the first ``=``."""
        name, sep, formula = definition.partition("=")
        name = name.strip()
        if not sep or not name or not formula.strip():
            raise SurfaceError(f"Auxiliary variable must look like NAME=FORMULA, got {definition!r}")
        return cls(name=name, formula=formula)


@dataclass(frozen=True)
class SurfaceDefinition:
    x: str = "2*u-1"
    y: str = "0"
    z: str = "2*v-1"
    r: str = "1"
    g: str = "1"
    b: str = "1"
    auxiliaries: tuple[AuxiliaryVariable, ...] = ()


@dataclass(frozen=True)
class SurfaceSamples:
    """Sampled grid values.

    ``positions`` covers the padded grid, shape ``(res_v + 2, res_u + 2, 3)``,
    so every inner node has four neighbours for normal estimation.
    ``colors`` covers only the inner grid, shape ``(res_v, res_u, 3)``.
    """

    positions: np.ndarray
    colors: np.ndarray
    res_u: int
    res_v: int


def _is_identifier(name: str) -> bool:
    tokens = tokenize(name)
    return len(tokens) == 2 and tokens[0].kind == "NAME" and tokens[0].pos == 0 and tokens[0].end == len(name)


def validate_resolution(res_u: int, res_v: int) -> None:
    if res_u < 2 or res_v < 2:
        raise SurfaceError(f"Resolution must be at least 2 along u and v, got {res_u}x{res_v}")
    if res_u * res_v > MAX_VERTICES:
        raise SurfaceError(f"Resolution {res_u}x{res_v} exceeds {MAX_VERTICES} vertices")


def _compile_field(field: str, source: str, variables: tuple[str, ...], constants: Mapping[str, float]) -> CompiledFormula:
    try:
        return compile_formula(source, variables, constants)
    except CompileError as err:
        logger.error("failed to compile %s formula %r: %s", field, source, err)
        raise


@dataclass(frozen=True)
class CompiledSurface:
    variables: tuple[str, ...]
    auxiliaries: tuple[CompiledFormula, ...]
    positions: tuple[CompiledFormula, CompiledFormula, CompiledFormula]
    colors: tuple[CompiledFormula, CompiledFormula, CompiledFormula]

    def evaluate_node(self, u: float, v: float) -> tuple[list[float], list[float]]:
        """Evaluate one grid node with the scalar interpreter."""
        values = [u, v]
        for aux in self.auxiliaries:
            # Each auxiliary sees only the variables declared before it.
            values.append(aux.evaluate(values))
        position = [formula.evaluate(values) for formula in self.positions]
        color = [formula.evaluate(values) for formula in self.colors]
        return position, color

    def sample(
        self,
        res_u: int = DEFAULT_RESOLUTION,
        res_v: int = DEFAULT_RESOLUTION,
        *,
        backend: Backend = "jax",
    ) -> SurfaceSamples:
        validate_resolution(res_u, res_v)
        logger.debug("sampling %dx%d grid with %s backend", res_u, res_v, backend)
        if backend == "jax":
            return self._sample_jax(res_u, res_v)
        if backend == "interpreter":
            return self._sample_interpreter(res_u, res_v)
        raise SurfaceError(f"Unknown sampling backend {backend!r}")

    def _sample_interpreter(self, res_u: int, res_v: int) -> SurfaceSamples:
        positions = np.empty((res_v + 2, res_u + 2, 3), dtype=np.float64)
        colors = np.empty((res_v, res_u, 3), dtype=np.float64)
        for j in range(-1, res_v + 1):
            v = j / (res_v - 1)
            for i in range(-1, res_u + 1):
                u = i / (res_u - 1)
                position, color = self.evaluate_node(u, v)
                positions[j + 1, i + 1] = position
                if 0 <= i < res_u and 0 <= j < res_v:
                    colors[j, i] = color
        return SurfaceSamples(positions=positions, colors=colors, res_u=res_u, res_v=res_v)

    def _sample_jax(self, res_u: int, res_v: int) -> SurfaceSamples:
        import jax.numpy as jnp

        from .jax_backend import float_dtype, precision_scope

        with precision_scope():
            dtype = float_dtype()
            us = jnp.arange(-1, res_u + 1, dtype=dtype) / (res_u - 1)
            vs = jnp.arange(-1, res_v + 1, dtype=dtype) / (res_v - 1)
            grid_v, grid_u = jnp.meshgrid(vs, us, indexing="ij")

            values = [grid_u, grid_v]
            for aux in self.auxiliaries:
                values.append(aux.jit()(*values))

            positions = jnp.stack([formula.jit()(*values) for formula in self.positions], axis=-1)
            inner = [value[1:-1, 1:-1] for value in values]
            colors = jnp.stack([formula.jit()(*inner) for formula in self.colors], axis=-1)
            return SurfaceSamples(
                positions=np.asarray(positions, dtype=np.float64),
                colors=np.asarray(colors, dtype=np.float64),
                res_u=res_u,
                res_v=res_v,
            )


def compile_surface(
    definition: SurfaceDefinition,
    constants: Mapping[str, float] | None = None,
) -> CompiledSurface:
    """Compile every formula of ``definition``.

    Auxiliary variables are compiled in order, each against the variable list
    as it stood before its own name was appended, so they may only refer to
    ``u``, ``v`` and earlier auxiliaries.
    """
    consts = dict(DEFAULT_CONSTANTS if constants is None else constants)
    variables: list[str] = list(BASE_VARIABLES)
    auxiliaries: list[CompiledFormula] = []

    for aux in definition.auxiliaries:
        if not _is_identifier(aux.name):
            raise SurfaceError(f"Invalid auxiliary variable name {aux.name!r}")
        if aux.name in FUNCTION_OPS:
            raise SurfaceError(f"Auxiliary variable {aux.name!r} shadows a built-in function")
        if aux.name in variables:
            raise SurfaceError(f"Variable {aux.name!r} is already defined")
        auxiliaries.append(_compile_field(f"auxiliary {aux.name}", aux.formula, tuple(variables), consts))
        variables.append(aux.name)

    names = tuple(variables)
    positions = tuple(_compile_field(field, getattr(definition, field), names, consts) for field in POSITION_FIELDS)
    colors = tuple(_compile_field(field, getattr(definition, field), names, consts) for field in COLOR_FIELDS)
    logger.debug("compiled surface over variables %s", names)
    return CompiledSurface(
        variables=names,
        auxiliaries=tuple(auxiliaries),
        positions=positions,
        colors=colors,
    )
