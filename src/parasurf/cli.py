"""Command line: compile surface formulas, sample them, and write the mesh."""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
import sys

from .errors import CompileError, SurfaceError
from .mesh import build_mesh
from .surface import DEFAULT_RESOLUTION, AuxiliaryVariable, CompiledSurface, SurfaceDefinition, compile_surface

logger = logging.getLogger(__name__)

_DEFAULTS = SurfaceDefinition()

_EPILOG = """\
examples:
  sphere:
    parasurf -e "U=2*pi*u" -e "V=pi*v" -x "cos(U) * sin(V)" -z "sin(U) * sin(V)" -y "cos(V)"
  flipped sphere (a formula may start with a minus sign; -y=-cos(V) also works):
    parasurf -e "U=2*pi*u" -e "V=pi*v" -x "cos(U) * sin(V)" -z "sin(U) * sin(V)" -y "-cos(V)"
"""

_FORMULA_FLAGS = frozenset({"-x", "-y", "-z", "-r", "-g", "-b"})
_VALUE_FLAGS = frozenset({"-e", "-u", "-v", "-o", "--output", "--backend", "--log-level"})


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="parasurf",
        description=__doc__,
        epilog=_EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "-e",
        dest="auxiliaries",
        action="append",
        default=[],
        metavar="NAME=DEF",
        help="define an auxiliary variable usable by later -e and by -x/-y/-z/-r/-g/-b; may use u, v and earlier auxiliaries",
    )
    for field, default in (("x", _DEFAULTS.x), ("y", _DEFAULTS.y), ("z", _DEFAULTS.z)):
        parser.add_argument(f"-{field}", default=default, metavar="DEF", help=f"{field} coordinate formula (default: %(default)s)")
    for field, default in (("r", _DEFAULTS.r), ("g", _DEFAULTS.g), ("b", _DEFAULTS.b)):
        parser.add_argument(f"-{field}", default=default, metavar="DEF", help=f"{field} color channel formula (default: %(default)s)")
    parser.add_argument("-u", dest="res_u", type=int, default=DEFAULT_RESOLUTION, help="samples along u (default: %(default)s)")
    parser.add_argument("-v", dest="res_v", type=int, default=DEFAULT_RESOLUTION, help="samples along v (default: %(default)s)")
    parser.add_argument(
        "--backend",
        choices=("jax", "interpreter"),
        default="jax",
        help="evaluate the grid with vectorized JAX or the scalar interpreter",
    )
    parser.add_argument("-o", "--output", type=Path, default=None, help="write the mesh as JSON to this path")
    parser.add_argument("--disassemble", action="store_true", help="print the compiled program of every formula")
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=("DEBUG", "INFO", "WARNING", "ERROR"),
        type=str.upper,
        help="logging level (default: %(default)s)",
    )
    return parser


def _attach_formula_values(argv: list[str]) -> list[str]:
    """Join each formula flag with its value so a leading minus is not read as an option."""
    out: list[str] = []
    items = iter(argv)
    for item in items:
        if item == "--":
            out.append(item)
            out.extend(items)
            break
        if item in _FORMULA_FLAGS:
            value = next(items, None)
            if value is None:
                out.append(item)
            else:
                out.append(f"{item}={value}")
        elif item in _VALUE_FLAGS:
            out.append(item)
            value = next(items, None)
            if value is not None:
                out.append(value)
        else:
            out.append(item)
    return out


def write_json(path: Path, payload: object) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, indent=2), encoding="utf-8")


def _print_programs(surface: CompiledSurface, definition: SurfaceDefinition) -> None:
    labelled = [(aux.name, formula) for aux, formula in zip(definition.auxiliaries, surface.auxiliaries, strict=True)]
    labelled += list(zip("xyz", surface.positions, strict=True))
    labelled += list(zip("rgb", surface.colors, strict=True))
    for label, formula in labelled:
        print(f"{label} = {formula.source}")
        print(formula.disassemble())
        print()


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(_attach_formula_values(sys.argv[1:] if argv is None else list(argv)))
    logging.basicConfig(level=args.log_level, format="%(levelname)s %(name)s: %(message)s")

    try:
        definition = SurfaceDefinition(
            x=args.x,
            y=args.y,
            z=args.z,
            r=args.r,
            g=args.g,
            b=args.b,
            auxiliaries=tuple(AuxiliaryVariable.parse(text) for text in args.auxiliaries),
        )
        surface = compile_surface(definition)
        if args.disassemble:
            _print_programs(surface, definition)
        samples = surface.sample(args.res_u, args.res_v, backend=args.backend)
    except CompileError as err:
        print(f"PARSE ERROR: {err}", file=sys.stderr)
        return 1
    except SurfaceError as err:
        print(f"ERROR: {err}", file=sys.stderr)
        return 2

    mesh = build_mesh(samples)
    if args.output is not None:
        write_json(args.output, mesh.to_payload())
        logger.info("wrote %d vertices to %s", mesh.vertex_count, args.output)
    else:
        print(f"{mesh.vertex_count} vertices ({mesh.res_u}x{mesh.res_v}), {len(mesh.indices)} strip indices")
    return 0
