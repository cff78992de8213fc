"""
Wall thickness and projected area of a triangle mesh.

Thickness is sampled once per triangle: a ray leaves the triangle centroid
along the inward normal and the distance to the first other triangle it hits
is the local wall thickness. Candidate triangles come from a 3D R-tree over
triangle bounding boxes, the exact test is Moller-Trumbore.
"""

import logging
import threading
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Sequence, Tuple

import numpy as np
from numpy.typing import NDArray
from rtree import index
from scipy.stats import median_abs_deviation

from stl_volume.geometry.primitives import (
    MeshLike,
    as_triangle_array,
    triangle_normals,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_DISTANCE = 100.0

# Hits closer than this to the ray origin belong to the source triangle.
_RAY_EPSILON = 1e-9

# Barycentric slack so rays through a shared edge hit at least one side.
_EDGE_TOLERANCE = 1e-9

_rtree_lock = threading.Lock()


@dataclass(frozen=True)
class OutlierLimits:
    """Open interval of accepted thickness samples."""
    min: float = 0.0
    max: float = float('inf')

    def accepts(self, value: float) -> bool:
        return self.min < value < self.max


@dataclass
class ThicknessStatistics:
    """Wall thickness distribution over the mesh surface.

    Attributes:
        mean: Area-weighted mean thickness
        median: Median of the samples
        std_dev: Standard deviation around the weighted mean
        mad: Median absolute deviation, scaled to be consistent with the
            standard deviation of a normal distribution
        samples: One thickness value per sampled triangle
    """
    mean: float
    median: float
    std_dev: float
    mad: float
    samples: NDArray[np.float64] = field(repr=False)

    @property
    def count(self) -> int:
        return int(len(self.samples))

    def to_dict(self) -> dict:
        return {
            'mean': self.mean,
            'median': self.median,
            'std_dev': self.std_dev,
            'mad': self.mad,
            'count': self.count,
        }


def _triangle_bounds(triangles: NDArray[np.float64]) -> Iterator[Tuple[int, tuple, None]]:
    lo = triangles.min(axis=1)
    hi = triangles.max(axis=1)
    for face_id in range(len(triangles)):
        yield face_id, (*lo[face_id], *hi[face_id]), None


def build_triangle_index(triangles: NDArray[np.float64]) -> index.Index:
    """Build a 3D R-tree over the bounding boxes of all triangles."""
    props = index.Property()
    props.dimension = 3
    if len(triangles) == 0:
        return index.Index(properties=props)
    return index.Index(_triangle_bounds(triangles), properties=props)


def query_triangle_index(spatial_idx: index.Index, bounds: Sequence[float]) -> List[int]:
    """Thread-safe R-tree query; bounds are (minx, miny, minz, maxx, maxy, maxz)."""
    with _rtree_lock:
        return list(spatial_idx.intersection(tuple(bounds)))


def ray_triangle_distances(
    origin: NDArray[np.float64],
    direction: NDArray[np.float64],
    triangles: NDArray[np.float64],
) -> NDArray[np.float64]:
    """Distance along a ray to each triangle (Moller-Trumbore).

    Args:
        origin: Ray origin (3,)
        direction: Unit ray direction (3,)
        triangles: (K, 3, 3) candidate triangles

    Returns:
        Array of K distances, inf where the ray misses
    """
    v0 = triangles[:, 0]
    e1 = triangles[:, 1] - v0
    e2 = triangles[:, 2] - v0

    p = np.cross(direction, e2)
    det = np.einsum('ij,ij->i', e1, p)
    parallel = np.abs(det) < 1e-12
    inv_det = np.where(parallel, 0.0, 1.0 / np.where(parallel, 1.0, det))

    s = origin - v0
    u = np.einsum('ij,ij->i', s, p) * inv_det
    q = np.cross(s, e1)
    v = (q @ direction) * inv_det
    t = np.einsum('ij,ij->i', e2, q) * inv_det

    hit = (
        ~parallel
        & (u >= -_EDGE_TOLERANCE)
        & (v >= -_EDGE_TOLERANCE)
        & (u + v <= 1.0 + _EDGE_TOLERANCE)
        & (t > _RAY_EPSILON)
    )
    return np.where(hit, t, np.inf)


def _summarize(samples: NDArray[np.float64], weights: NDArray[np.float64]) -> ThicknessStatistics:
    if len(samples) == 0:
        nan = float('nan')
        return ThicknessStatistics(mean=nan, median=nan, std_dev=nan, mad=nan,
                                   samples=samples)

    total = float(np.sum(weights))
    if total > 0.0:
        mean = float(np.sum(samples * weights) / total)
    else:
        mean = float(np.mean(samples))

    return ThicknessStatistics(
        mean=mean,
        median=float(np.median(samples)),
        std_dev=float(np.sqrt(np.mean((samples - mean) ** 2))),
        mad=float(median_abs_deviation(samples, scale='normal')),
        samples=samples,
    )


def calculate_thickness(
    mesh: MeshLike,
    max_distance: float = DEFAULT_MAX_DISTANCE,
    limits: Optional[OutlierLimits] = None,
) -> ThicknessStatistics:
    """Sample wall thickness by casting rays along inward face normals.

    Degenerate triangles and rays that hit nothing within ``max_distance``
    produce no sample. Samples outside ``limits`` are dropped.

    Args:
        mesh: Closed, outward-wound triangle mesh
        max_distance: Longest ray considered, in model units
        limits: Accepted sample interval (default: (0, inf))

    Returns:
        ThicknessStatistics; moments are NaN when no sample was taken
    """
    triangles = as_triangle_array(mesh)
    limits = limits or OutlierLimits()

    # R-tree rejects NaN/inf bounds; such triangles are neither indexed nor sampled.
    finite = np.isfinite(triangles).all(axis=(1, 2))
    if not finite.all():
        logger.debug("Skipping %d non-finite triangles", int(np.count_nonzero(~finite)))
        triangles = triangles[finite]

    normals = triangle_normals(triangles) if len(triangles) else np.empty((0, 3))
    lengths = np.linalg.norm(normals, axis=1)
    areas = 0.5 * lengths
    centroids = triangles.mean(axis=1)

    spatial_idx = build_triangle_index(triangles)

    samples: List[float] = []
    weights: List[float] = []
    for face_id in range(len(triangles)):
        if lengths[face_id] < 1e-12:
            continue

        origin = centroids[face_id]
        direction = -normals[face_id] / lengths[face_id]
        end = origin + direction * max_distance
        bounds = np.concatenate([np.minimum(origin, end), np.maximum(origin, end)])

        candidates = [i for i in query_triangle_index(spatial_idx, bounds) if i != face_id]
        if not candidates:
            continue

        distances = ray_triangle_distances(origin, direction, triangles[candidates])
        nearest = float(np.min(distances))
        if nearest <= max_distance and limits.accepts(nearest):
            samples.append(nearest)
            weights.append(float(areas[face_id]))

    stats = _summarize(np.array(samples, dtype=np.float64),
                       np.array(weights, dtype=np.float64))

    logger.debug(
        "Thickness sampled",
        extra={'triangles': len(triangles), 'samples': stats.count},
    )
    return stats


def calculate_facing_area(mesh: MeshLike, plane_normal: Sequence[float]) -> float:
    """Total area of all triangles projected onto a plane.

    Every triangle contributes its projected area regardless of which side
    faces the plane, so a closed mesh yields twice its silhouette area.

    Args:
        mesh: Triangle mesh
        plane_normal: Normal of the projection plane (need not be unit)

    Returns:
        Projected area in square model units

    Raises:
        ValueError: if the normal is not 3D or has zero length
    """
    normal = np.asarray(plane_normal, dtype=np.float64)
    if normal.shape != (3,):
        raise ValueError(f"Plane normal must have 3 components, got {normal.shape}")
    norm = np.linalg.norm(normal)
    if norm == 0.0:
        raise ValueError("Plane normal must be non-zero")

    triangles = as_triangle_array(mesh)
    if len(triangles) == 0:
        return 0.0

    projected = np.abs(triangle_normals(triangles) @ (normal / norm))
    return float(0.5 * np.sum(projected))


