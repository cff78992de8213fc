"""
Geometric value types for triangle meshes.

A mesh is carried through the package as a float64 array of shape (N, 3, 3):
N triangles, three vertices each, three coordinates per vertex.
"""

from typing import Iterable, NamedTuple, Sequence, Union

import numpy as np
from numpy.typing import NDArray


class Point3(NamedTuple):
    """Point in 3D space."""
    x: float
    y: float
    z: float


class Triangle(NamedTuple):
    """Oriented triangle; winding (v0 -> v1 -> v2) defines the normal."""
    v0: Point3
    v1: Point3
    v2: Point3


MeshLike = Union[NDArray[np.float64], Sequence[Triangle], Iterable[Sequence[Sequence[float]]]]


def as_triangle_array(mesh: MeshLike) -> NDArray[np.float64]:
    """Convert a sequence of triangles to a read-only (N, 3, 3) float64 array.

    Args:
        mesh: Array of shape (N, 3, 3), or any sequence of triangles
            given as three 3-component points.

    Returns:
        Read-only array. Empty input gives shape (0, 3, 3).

    Raises:
        ValueError: if the input cannot be shaped as (N, 3, 3)
    """
    if isinstance(mesh, np.ndarray):
        triangles = mesh
    else:
        triangles = np.asarray(list(mesh), dtype=np.float64)

    if triangles.size == 0:
        triangles = np.empty((0, 3, 3), dtype=np.float64)

    if triangles.ndim != 3 or triangles.shape[1:] != (3, 3):
        raise ValueError(
            f"Expected triangles of shape (N, 3, 3), got {triangles.shape}"
        )

    if triangles.dtype != np.float64 or triangles.flags.writeable:
        triangles = np.array(triangles, dtype=np.float64)
        triangles.flags.writeable = False

    return triangles


def triangle_normals(triangles: NDArray[np.float64]) -> NDArray[np.float64]:
    """Unnormalized face normals cross(v1 - v0, v2 - v0)."""
    e1 = triangles[:, 1] - triangles[:, 0]
    e2 = triangles[:, 2] - triangles[:, 0]
    return np.cross(e1, e2)


def count_unique_vertices(triangles: NDArray[np.float64]) -> int:
    """Number of distinct vertex positions in the mesh."""
    if len(triangles) == 0:
        return 0
    return int(len(np.unique(triangles.reshape(-1, 3), axis=0)))
