"""
Unit tests for stl_volume.geometry.volume.

Tests:
- Signed tetrahedron volumes
- Enclosed volume of simple solids
- Orientation, ordering, translation and scaling behaviour
- Chunked accumulation and merging
"""

import math

import numpy as np
import pytest

from stl_volume.geometry.primitives import Point3, Triangle
from stl_volume.geometry.volume import (
    VolumeAccumulator,
    calculate_volume,
    signed_tetrahedron_volumes,
)
from tests.conftest import make_box, make_cylinder, make_tetrahedron, reverse_winding


class TestSignedTetrahedronVolumes:
    """Tests for signed_tetrahedron_volumes."""

    def test_single_triangle(self):
        """Triangle (1,0,0), (0,1,0), (0,0,1) spans 1/6 with the origin."""
        triangles = np.array([[[1, 0, 0], [0, 1, 0], [0, 0, 1]]], dtype=np.float64)
        volumes = signed_tetrahedron_volumes(triangles)
        assert volumes.shape == (1,)
        assert np.isclose(volumes[0], 1 / 6)

    def test_triangle_through_origin(self):
        """A triangle containing the origin contributes nothing."""
        triangles = np.array([[[0, 0, 0], [1, 0, 0], [0, 1, 0]]], dtype=np.float64)
        assert signed_tetrahedron_volumes(triangles)[0] == 0.0

    def test_empty(self):
        """No triangles, no volumes."""
        assert len(signed_tetrahedron_volumes(np.empty((0, 3, 3)))) == 0


class TestCalculateVolume:
    """Tests for calculate_volume."""

    def test_unit_cube(self, unit_cube):
        """12-triangle unit cube encloses exactly 1."""
        assert calculate_volume(unit_cube) == pytest.approx(1.0)

    def test_tetrahedron(self, tetrahedron):
        """Corner tetrahedron encloses 1/6."""
        assert calculate_volume(tetrahedron) == pytest.approx(1 / 6)

    def test_cylinder_prism(self, cylinder):
        """Regular 32-gon prism: 0.5 * n * r^2 * sin(2pi/n) * h."""
        n, r, h = 32, 5.0, 20.0
        expected = 0.5 * n * r * r * math.sin(2 * math.pi / n) * h
        assert calculate_volume(cylinder) == pytest.approx(expected)

    def test_empty_mesh(self):
        """Empty mesh gives exactly 0."""
        assert calculate_volume([]) == 0.0

    def test_outward_mesh_is_non_negative(self, unit_cube, tetrahedron, cylinder):
        """Closed outward meshes have non-negative volume."""
        for mesh in (unit_cube, tetrahedron, cylinder):
            assert calculate_volume(mesh) >= 0.0

    def test_reversed_winding_negates(self, cylinder):
        """Flipping every triangle flips the sign, magnitude unchanged."""
        forward = calculate_volume(cylinder)
        backward = calculate_volume(reverse_winding(cylinder))
        assert backward == pytest.approx(-forward)
        assert backward < 0

    def test_order_invariant(self, cylinder):
        """Shuffling the triangles does not change the volume."""
        rng = np.random.default_rng(7)
        shuffled = cylinder[rng.permutation(len(cylinder))]
        assert calculate_volume(shuffled) == pytest.approx(calculate_volume(cylinder))

    def test_translation_invariant(self, tetrahedron):
        """Translated mesh keeps its volume."""
        moved = tetrahedron + np.array([12.5, -3.0, 100.0])
        assert calculate_volume(moved) == pytest.approx(1 / 6)

    @pytest.mark.parametrize("k", [0.5, 2.0, 10.0])
    def test_uniform_scaling(self, unit_cube, k):
        """Scaling by k scales volume by k^3."""
        assert calculate_volume(unit_cube * k) == pytest.approx(k ** 3)

    def test_named_tuple_input(self):
        """Point3 / Triangle sequences are accepted."""
        o, a, b, c = Point3(0, 0, 0), Point3(1, 0, 0), Point3(0, 1, 0), Point3(0, 0, 1)
        mesh = [
            Triangle(o, b, a),
            Triangle(o, a, c),
            Triangle(o, c, b),
            Triangle(a, b, c),
        ]
        assert calculate_volume(mesh) == pytest.approx(1 / 6)

    def test_nan_propagates(self, unit_cube):
        """NaN coordinates give a NaN volume instead of an error."""
        broken = unit_cube.copy()
        broken[5, 1, 2] = np.nan
        assert math.isnan(calculate_volume(broken))

    def test_bad_shape_rejected(self):
        """Input that is not (N, 3, 3) raises ValueError."""
        with pytest.raises(ValueError):
            calculate_volume(np.zeros((4, 3)))


class TestVolumeAccumulator:
    """Tests for VolumeAccumulator."""

    def test_fresh_accumulator(self):
        """Nothing consumed means zero volume and zero triangles."""
        acc = VolumeAccumulator()
        assert acc.volume == 0.0
        assert acc.n_triangles == 0

    def test_chunks_sum_to_whole(self, cylinder):
        """Feeding chunks in order matches a single pass."""
        acc = VolumeAccumulator()
        for start in range(0, len(cylinder), 10):
            acc.add(cylinder[start:start + 10])
        assert acc.volume == pytest.approx(calculate_volume(cylinder))
        assert acc.n_triangles == len(cylinder)

    def test_merge(self):
        """Partial accumulators combine by addition."""
        box = make_box(size=(2, 3, 4))
        left = VolumeAccumulator().add(box[:5])
        right = VolumeAccumulator().add(box[5:])
        merged = left.merge(right)
        assert merged.volume == pytest.approx(24.0)
        assert merged.n_triangles == 12

    def test_merge_order_irrelevant(self):
        """Merge is commutative up to rounding."""
        tetra = make_tetrahedron()
        a = VolumeAccumulator().add(tetra[:2]).merge(VolumeAccumulator().add(tetra[2:]))
        b = VolumeAccumulator().add(tetra[2:]).merge(VolumeAccumulator().add(tetra[:2]))
        assert a.volume == pytest.approx(b.volume)

    def test_empty_chunk_ignored(self):
        """Adding an empty chunk changes nothing."""
        acc = VolumeAccumulator().add(np.empty((0, 3, 3)))
        assert acc.volume == 0.0
        assert acc.n_triangles == 0

    def test_large_mesh_precision(self):
        """Many tiny contributions accumulate in double precision."""
        cylinder = make_cylinder(radius=1000.0, height=1000.0, segments=2048)
        n, r, h = 2048, 1000.0, 1000.0
        expected = 0.5 * n * r * r * math.sin(2 * math.pi / n) * h
        assert calculate_volume(cylinder) == pytest.approx(expected, rel=1e-12)
