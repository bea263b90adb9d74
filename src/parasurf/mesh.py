"""Mesh assembly from sampled surface grids: normals, vertices, strip indices."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from .errors import SurfaceError
from .surface import SurfaceSamples, validate_resolution


@dataclass(frozen=True)
class SurfaceMesh:
    positions: np.ndarray
    colors: np.ndarray
    normals: np.ndarray
    indices: np.ndarray
    res_u: int
    res_v: int

    @property
    def vertex_count(self) -> int:
        return self.res_u * self.res_v

    def to_payload(self) -> dict[str, object]:
        """JSON-friendly view; non-finite samples become ``None``."""

        def _rows(arr: np.ndarray) -> list[list[float | None]]:
            return [[float(x) if np.isfinite(x) else None for x in row] for row in arr]

        return {
            "res_u": self.res_u,
            "res_v": self.res_v,
            "primitive": "triangle_strip",
            "positions": _rows(self.positions),
            "colors": _rows(self.colors),
            "normals": _rows(self.normals),
            "indices": [int(i) for i in self.indices],
        }


def vertex_normals(positions: np.ndarray) -> np.ndarray:
    """Central-difference normals for the inner nodes of a padded position grid.

    ``positions`` has shape ``(res_v + 2, res_u + 2, 3)``; the result has shape
    ``(res_v, res_u, 3)``. Degenerate nodes get a zero normal.
    """
    if positions.ndim != 3 or positions.shape[-1] != 3:
        raise SurfaceError(f"Expected padded (rows, cols, 3) positions, got shape {positions.shape}")

    along_u = positions[1:-1, 2:] - positions[1:-1, :-2]
    along_v = positions[:-2, 1:-1] - positions[2:, 1:-1]
    cross = np.cross(along_u, along_v)
    length = np.linalg.norm(cross, axis=-1, keepdims=True)
    with np.errstate(invalid="ignore", divide="ignore"):
        normals = np.where(length > 0, cross / length, 0.0)
    return normals


def strip_indices(res_u: int, res_v: int) -> np.ndarray:
    """Triangle-strip element indices, rows joined by degenerate triangles."""
    validate_resolution(res_u, res_v)
    count = (res_v - 1) * 2 * res_u + (res_v - 2) * 2
    indices = np.empty(count, dtype=np.uint16)

    idx = 0
    for j in range(res_v - 1):
        if j > 0:
            indices[idx] = res_u * (j + 1) - 1
            indices[idx + 1] = res_u * j
            idx += 2
        row = np.arange(res_u)
        indices[idx : idx + 2 * res_u : 2] = row + res_u * j
        indices[idx + 1 : idx + 2 * res_u : 2] = row + res_u * (j + 1)
        idx += 2 * res_u

    assert idx == count
    return indices


def build_mesh(samples: SurfaceSamples) -> SurfaceMesh:
    res_u, res_v = samples.res_u, samples.res_v
    n_verts = res_u * res_v
    normals = vertex_normals(samples.positions)
    return SurfaceMesh(
        positions=samples.positions[1:-1, 1:-1].reshape(n_verts, 3),
        colors=samples.colors.reshape(n_verts, 3),
        normals=normals.reshape(n_verts, 3),
        indices=strip_indices(res_u, res_v),
        res_u=res_u,
        res_v=res_v,
    )
