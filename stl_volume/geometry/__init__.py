"""Geometric measurements: volume, bounding box, thickness, projected area."""

from stl_volume.geometry.bounding_box import (
    BoundingBox,
    BoundingBoxAccumulator,
    calculate_bounding_box,
)
from stl_volume.geometry.primitives import (
    Point3,
    Triangle,
    as_triangle_array,
)
from stl_volume.geometry.thickness import (
    OutlierLimits,
    ThicknessStatistics,
    calculate_facing_area,
    calculate_thickness,
)
from stl_volume.geometry.volume import (
    VolumeAccumulator,
    calculate_volume,
    signed_tetrahedron_volumes,
)

__all__ = [
    "BoundingBox",
    "BoundingBoxAccumulator",
    "OutlierLimits",
    "Point3",
    "ThicknessStatistics",
    "Triangle",
    "VolumeAccumulator",
    "as_triangle_array",
    "calculate_bounding_box",
    "calculate_facing_area",
    "calculate_thickness",
    "calculate_volume",
    "signed_tetrahedron_volumes",
]
