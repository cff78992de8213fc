"""
Axis-aligned bounding box of a triangle mesh.

The box is accumulated per axis: min starts at +inf, max at -inf and both are
updated component-wise from every vertex. A box that has seen no vertex stays
at the sentinels and reports zero volume.
"""

from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray

from stl_volume.geometry.primitives import MeshLike, as_triangle_array


@dataclass(frozen=True)
class BoundingBox:
    """Axis-Aligned Bounding Box (AABB) for a mesh.

    Attributes:
        min_point: Minimum corner (x_min, y_min, z_min)
        max_point: Maximum corner (x_max, y_max, z_max)
    """
    min_point: NDArray[np.float64]
    max_point: NDArray[np.float64]

    @classmethod
    def empty(cls) -> 'BoundingBox':
        return cls(
            min_point=np.full(3, np.inf),
            max_point=np.full(3, -np.inf),
        )

    @property
    def is_empty(self) -> bool:
        """True if no vertex was ever added."""
        return bool(np.any(self.min_point > self.max_point))

    @property
    def dimensions(self) -> NDArray[np.float64]:
        """Get box dimensions (width, height, depth)."""
        if self.is_empty:
            return np.zeros(3)
        return self.max_point - self.min_point

    @property
    def center(self) -> NDArray[np.float64]:
        """Get box center point."""
        if self.is_empty:
            return np.zeros(3)
        return (self.min_point + self.max_point) / 2

    @property
    def volume(self) -> float:
        """Get box volume (0.0 for an empty box)."""
        if self.is_empty:
            return 0.0
        dims = self.max_point - self.min_point
        return float(dims[0] * dims[1] * dims[2])

    @property
    def diagonal(self) -> float:
        """Get box diagonal length."""
        return float(np.linalg.norm(self.dimensions))

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        if self.is_empty:
            return {'min': None, 'max': None, 'dimensions': [0.0, 0.0, 0.0],
                    'volume': 0.0}
        return {
            'min': self.min_point.tolist(),
            'max': self.max_point.tolist(),
            'dimensions': self.dimensions.tolist(),
            'volume': self.volume,
        }


class BoundingBoxAccumulator:
    """Running per-axis min/max over consecutive chunks of a mesh."""

    def __init__(self) -> None:
        self._min = np.full(3, np.inf)
        self._max = np.full(3, -np.inf)

    def add(self, triangles: NDArray[np.float64]) -> 'BoundingBoxAccumulator':
        """Consume a chunk of triangles."""
        if len(triangles):
            points = triangles.reshape(-1, 3)
            self._min = np.minimum(self._min, points.min(axis=0))
            self._max = np.maximum(self._max, points.max(axis=0))
        return self

    def merge(self, other: 'BoundingBoxAccumulator') -> 'BoundingBoxAccumulator':
        """Combine with a box accumulated over another chunk."""
        self._min = np.minimum(self._min, other._min)
        self._max = np.maximum(self._max, other._max)
        return self

    @property
    def bounding_box(self) -> BoundingBox:
        return BoundingBox(min_point=self._min.copy(), max_point=self._max.copy())

    @property
    def volume(self) -> float:
        return self.bounding_box.volume


def calculate_bounding_box(mesh: MeshLike) -> BoundingBox:
    """Calculate axis-aligned bounding box of all mesh vertices.

    Args:
        mesh: Triangles, (N, 3, 3) array or sequence of triangles

    Returns:
        BoundingBox instance (empty box for an empty mesh)
    """
    return BoundingBoxAccumulator().add(as_triangle_array(mesh)).bounding_box
