"""parasurf public API."""

from .errors import CompileError, EvaluationError, FormulaError, SurfaceError
from .formula import CompiledFormula, CompileResult, compile_formula, try_compile
from .compiler import compile_program
from .interpreter import execute
from .lexer import Token, tokenize
from .mesh import SurfaceMesh, build_mesh, strip_indices, vertex_normals
from .program import Binary, Instruction, Program, PushConst, PushVar, Select, Unary, format_program
from .surface import (
    DEFAULT_CONSTANTS,
    AuxiliaryVariable,
    CompiledSurface,
    SurfaceDefinition,
    SurfaceSamples,
    compile_surface,
)

try:
    from .jax_backend import cached_jit, jit_cache_stats, lower_program, precision_scope
except ModuleNotFoundError as exc:
    if exc.name and exc.name.startswith("jax"):
        _jax_import_error = exc

        def lower_program(*_args, **_kwargs):
            raise ModuleNotFoundError(
                "jax is required for lower_program(). Install runtime deps first."
            ) from _jax_import_error

        def cached_jit(*_args, **_kwargs):
            raise ModuleNotFoundError(
                "jax is required for cached_jit(). Install runtime deps first."
            ) from _jax_import_error

        def jit_cache_stats(*_args, **_kwargs):
            raise ModuleNotFoundError(
                "jax is required for jit_cache_stats(). Install runtime deps first."
            ) from _jax_import_error

        def precision_scope(*_args, **_kwargs):
            raise ModuleNotFoundError(
                "jax is required for precision_scope(). Install runtime deps first."
            ) from _jax_import_error

    else:
        raise

__all__ = [
    "tokenize",
    "Token",
    "compile_program",
    "compile_formula",
    "try_compile",
    "execute",
    "CompiledFormula",
    "CompileResult",
    "Instruction",
    "Program",
    "PushConst",
    "PushVar",
    "Unary",
    "Binary",
    "Select",
    "format_program",
    "lower_program",
    "cached_jit",
    "jit_cache_stats",
    "precision_scope",
    "DEFAULT_CONSTANTS",
    "AuxiliaryVariable",
    "SurfaceDefinition",
    "CompiledSurface",
    "SurfaceSamples",
    "compile_surface",
    "SurfaceMesh",
    "build_mesh",
    "strip_indices",
    "vertex_normals",
    "FormulaError",
    "CompileError",
    "EvaluationError",
    "SurfaceError",
]
