"""
Enclosed volume of a closed triangle mesh.

Every triangle forms a tetrahedron with the coordinate origin. Its signed
volume is

    V_i = (1/6) * v0 . (v1 x v2)

and by the divergence theorem the sum over a closed, outward-wound mesh is
the volume of the solid. Inverted winding flips the sign; the raw signed sum
is reported without correction.
"""

import numpy as np
from numpy.typing import NDArray

from stl_volume.geometry.primitives import MeshLike, as_triangle_array


def signed_tetrahedron_volumes(triangles: NDArray[np.float64]) -> NDArray[np.float64]:
    """Signed volume of the origin tetrahedron of each triangle.

    Args:
        triangles: (N, 3, 3) array

    Returns:
        Array of N signed volumes
    """
    if len(triangles) == 0:
        return np.array([], dtype=np.float64)

    v0 = triangles[:, 0]
    v1 = triangles[:, 1]
    v2 = triangles[:, 2]

    cross = np.cross(v1, v2)
    return np.einsum('ij,ij->i', v0, cross) / 6.0


class VolumeAccumulator:
    """Running signed-volume sum over consecutive chunks of a mesh.

    Chunks must be fed in mesh order. Partial accumulators built over
    disjoint chunks combine with :meth:`merge`.
    """

    def __init__(self) -> None:
        self._sum = 0.0
        self._count = 0

    def add(self, triangles: NDArray[np.float64]) -> 'VolumeAccumulator':
        """Consume a chunk of triangles."""
        if len(triangles):
            self._sum += float(np.sum(signed_tetrahedron_volumes(triangles)))
            self._count += len(triangles)
        return self

    def merge(self, other: 'VolumeAccumulator') -> 'VolumeAccumulator':
        """Add the partial sum of another accumulator."""
        self._sum += other._sum
        self._count += other._count
        return self

    @property
    def volume(self) -> float:
        """Signed volume; 0.0 when nothing was consumed."""
        return self._sum

    @property
    def n_triangles(self) -> int:
        return self._count


def calculate_volume(mesh: MeshLike) -> float:
    """Calculate signed mesh volume.

    Args:
        mesh: Triangles, (N, 3, 3) array or sequence of triangles

    Returns:
        Signed volume in cubic model units
    """
    return VolumeAccumulator().add(as_triangle_array(mesh)).volume
