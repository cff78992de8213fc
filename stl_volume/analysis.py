"""
Mesh analysis: runs the volume and bounding-box accumulators over one mesh.

The mesh is walked in fixed-size contiguous chunks. Each chunk feeds both
accumulators, so they always observe the same triangles in the same order.
With ``workers > 1`` chunks are reduced in a thread pool and the partial
results are merged in chunk order once all of them are done; for a given
``chunk_size`` the result is bit-identical to the sequential walk.

Usage:
    from stl_volume.analysis import MeshAnalyzer, AnalysisOptions

    result = MeshAnalyzer(AnalysisOptions(workers=4)).analyze(triangles)
    print(result.mesh_volume, result.box_volume)
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import numpy as np
from numpy.typing import NDArray

from stl_volume.geometry.bounding_box import BoundingBox, BoundingBoxAccumulator
from stl_volume.geometry.primitives import MeshLike, as_triangle_array
from stl_volume.geometry.thickness import (
    DEFAULT_MAX_DISTANCE,
    OutlierLimits,
    ThicknessStatistics,
    calculate_thickness,
)
from stl_volume.geometry.volume import VolumeAccumulator
from stl_volume.logging_config import log_timing

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 65536


@dataclass(frozen=True)
class AnalysisOptions:
    """Knobs for a single mesh analysis.

    Attributes:
        chunk_size: Triangles per chunk (fixes the summation partition)
        workers: Threads used to reduce chunks; 1 means sequential
        warn_negative_volume: Log a warning when the volume comes out negative
        compute_thickness: Also sample wall thickness (slow on large meshes)
        max_thickness_distance: Longest ray used for thickness sampling
        thickness_limits: Accepted thickness interval
    """
    chunk_size: int = DEFAULT_CHUNK_SIZE
    workers: int = 1
    warn_negative_volume: bool = True
    compute_thickness: bool = False
    max_thickness_distance: float = DEFAULT_MAX_DISTANCE
    thickness_limits: OutlierLimits = field(default_factory=OutlierLimits)

    def __post_init__(self) -> None:
        if self.chunk_size < 1:
            raise ValueError(f"chunk_size must be positive, got {self.chunk_size}")
        if self.workers < 1:
            raise ValueError(f"workers must be positive, got {self.workers}")


@dataclass(frozen=True)
class AnalysisResult:
    """Measurements of one mesh.

    Attributes:
        mesh_volume: Signed enclosed volume
        box_volume: Axis-aligned bounding box volume (0.0 for an empty mesh)
        n_triangles: Number of triangles analyzed
        bounding_box: The bounding box itself
        thickness: Wall thickness statistics, if requested
    """
    mesh_volume: float
    box_volume: float
    n_triangles: int = 0
    bounding_box: BoundingBox = field(default_factory=BoundingBox.empty, repr=False, compare=False)
    thickness: Optional[ThicknessStatistics] = field(default=None, compare=False)

    @property
    def fill_ratio(self) -> float:
        """Mesh volume over box volume; NaN when the box has no volume."""
        if self.box_volume == 0.0:
            return float('nan')
        return self.mesh_volume / self.box_volume

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            'mesh_volume': self.mesh_volume,
            'box_volume': self.box_volume,
            'n_triangles': self.n_triangles,
            'fill_ratio': self.fill_ratio,
            'bbox': self.bounding_box.to_dict(),
            'thickness': self.thickness.to_dict() if self.thickness else None,
        }


def _reduce_chunk(chunk: NDArray[np.float64]) -> Tuple[VolumeAccumulator, BoundingBoxAccumulator]:
    return VolumeAccumulator().add(chunk), BoundingBoxAccumulator().add(chunk)


class MeshAnalyzer:
    """Computes mesh volume and bounding-box volume for decoded meshes.

    Holds only options; every :meth:`analyze` call builds fresh accumulators,
    so one analyzer may be shared between threads.
    """

    def __init__(self, options: Optional[AnalysisOptions] = None):
        self.options = options or AnalysisOptions()

    def _chunks(self, triangles: NDArray[np.float64]) -> List[NDArray[np.float64]]:
        size = self.options.chunk_size
        return [triangles[start:start + size] for start in range(0, len(triangles), size)]

    def analyze(self, mesh: MeshLike) -> AnalysisResult:
        """Analyze one in-memory mesh.

        Args:
            mesh: Triangles, (N, 3, 3) array or sequence of triangles

        Returns:
            AnalysisResult. Malformed coordinates (NaN) propagate into the
            result; nothing is raised for degenerate geometry.
        """
        triangles = as_triangle_array(mesh)
        chunks = self._chunks(triangles)

        volume_acc = VolumeAccumulator()
        bbox_acc = BoundingBoxAccumulator()

        with log_timing(logger, "Mesh analysis", triangles=len(triangles)):
            if self.options.workers > 1 and len(chunks) > 1:
                with ThreadPoolExecutor(max_workers=self.options.workers) as executor:
                    partials = list(executor.map(_reduce_chunk, chunks))
                for partial_volume, partial_bbox in partials:
                    volume_acc.merge(partial_volume)
                    bbox_acc.merge(partial_bbox)
            else:
                for chunk in chunks:
                    volume_acc.add(chunk)
                    bbox_acc.add(chunk)

            thickness = None
            if self.options.compute_thickness:
                thickness = calculate_thickness(
                    triangles,
                    max_distance=self.options.max_thickness_distance,
                    limits=self.options.thickness_limits,
                )

        bbox = bbox_acc.bounding_box
        result = AnalysisResult(
            mesh_volume=volume_acc.volume,
            box_volume=bbox.volume,
            n_triangles=volume_acc.n_triangles,
            bounding_box=bbox,
            thickness=thickness,
        )

        if self.options.warn_negative_volume and result.mesh_volume < 0:
            logger.warning(
                "Negative mesh volume %.6g: triangle winding looks inverted",
                result.mesh_volume,
            )

        return result


def analyze_mesh(mesh: MeshLike, **options: Any) -> AnalysisResult:
    """Analyze a mesh with a throwaway analyzer.

    Example:
        >>> result = analyze_mesh(triangles, workers=2)
    """
    return MeshAnalyzer(AnalysisOptions(**options)).analyze(mesh)
