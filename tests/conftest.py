"""
Pytest configuration and fixtures for stl_volume.

Provides:
- Triangle meshes of simple solids (cube, box, tetrahedron)
- STL files written with numpy-stl (binary, ASCII, empty)
- Logger reset between tests
"""

import logging
from pathlib import Path

import numpy as np
import pytest
from stl import mesh as stl_mesh

from stl_volume.logging_config import PACKAGE_LOGGER


# ============================================================================
# Logging isolation
# ============================================================================

@pytest.fixture(autouse=True)
def reset_package_logger():
    """Undo setup_logging() so caplog sees package records in every test."""
    yield
    logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.filters.clear()
    logger.setLevel(logging.NOTSET)
    logger.propagate = True


# ============================================================================
# Mesh builders
# ============================================================================

UNIT_CUBE_VERTICES = np.array([
    [0, 0, 0], [1, 0, 0], [1, 1, 0], [0, 1, 0],  # bottom
    [0, 0, 1], [1, 0, 1], [1, 1, 1], [0, 1, 1],  # top
], dtype=np.float64)

# Outward winding (right-hand rule).
UNIT_CUBE_FACES = [
    [0, 2, 1], [0, 3, 2],  # bottom (-z)
    [4, 5, 6], [4, 6, 7],  # top (+z)
    [0, 1, 5], [0, 5, 4],  # front (-y)
    [3, 7, 6], [3, 6, 2],  # back (+y)
    [0, 4, 7], [0, 7, 3],  # left (-x)
    [1, 2, 6], [1, 6, 5],  # right (+x)
]


def make_box(size=(1.0, 1.0, 1.0), origin=(0.0, 0.0, 0.0)) -> np.ndarray:
    """Outward-wound box as an (12, 3, 3) triangle array."""
    vertices = UNIT_CUBE_VERTICES * np.asarray(size) + np.asarray(origin)
    return np.array([vertices[f] for f in UNIT_CUBE_FACES])


def make_tetrahedron() -> np.ndarray:
    """Corner tetrahedron (0,0,0), (1,0,0), (0,1,0), (0,0,1), outward wound."""
    o, a, b, c = np.eye(4, 3, k=-1)
    return np.array([
        [o, b, a],
        [o, a, c],
        [o, c, b],
        [a, b, c],
    ])


def make_cylinder(radius: float = 5.0, height: float = 20.0, segments: int = 32) -> np.ndarray:
    """Closed prism approximating a cylinder along z, outward wound."""
    angles = np.linspace(0, 2 * np.pi, segments, endpoint=False)
    h2 = height / 2
    top = np.column_stack([radius * np.cos(angles), radius * np.sin(angles),
                           np.full(segments, h2)])
    bot = np.column_stack([radius * np.cos(angles), radius * np.sin(angles),
                           np.full(segments, -h2)])
    top_center = np.array([0.0, 0.0, h2])
    bot_center = np.array([0.0, 0.0, -h2])

    triangles = []
    for i in range(segments):
        j = (i + 1) % segments
        triangles.append([bot[i], bot[j], top[j]])
        triangles.append([bot[i], top[j], top[i]])
        triangles.append([top[i], top[j], top_center])
        triangles.append([bot[i], bot_center, bot[j]])
    return np.array(triangles)


def reverse_winding(triangles: np.ndarray) -> np.ndarray:
    """Swap the last two vertices of every triangle."""
    return triangles[:, [0, 2, 1], :]


@pytest.fixture
def unit_cube() -> np.ndarray:
    return make_box()


@pytest.fixture
def tetrahedron() -> np.ndarray:
    return make_tetrahedron()


@pytest.fixture
def cylinder() -> np.ndarray:
    return make_cylinder()


# ============================================================================
# STL file fixtures
# ============================================================================

def write_stl(path: Path, triangles: np.ndarray) -> Path:
    """Save triangles as a binary STL."""
    m = stl_mesh.Mesh(np.zeros(len(triangles), dtype=stl_mesh.Mesh.dtype))
    for i, tri in enumerate(triangles):
        m.vectors[i] = tri
    m.save(str(path))
    return path


def write_ascii_stl(path: Path, triangles: np.ndarray, name: str = "part") -> Path:
    """Write triangles as an ASCII STL."""
    with open(path, 'w') as f:
        f.write(f"solid {name}\n")
        for tri in triangles:
            normal = np.cross(tri[1] - tri[0], tri[2] - tri[0])
            norm = np.linalg.norm(normal)
            if norm > 0:
                normal = normal / norm
            f.write(f"  facet normal {normal[0]} {normal[1]} {normal[2]}\n")
            f.write("    outer loop\n")
            for v in tri:
                f.write(f"      vertex {v[0]} {v[1]} {v[2]}\n")
            f.write("    endloop\n")
            f.write("  endfacet\n")
        f.write(f"endsolid {name}\n")
    return path


@pytest.fixture
def cube_stl_path(tmp_path: Path) -> Path:
    """10 x 10 x 10 cube, binary STL."""
    return write_stl(tmp_path / "cube.stl", make_box(size=(10, 10, 10)))


@pytest.fixture
def ascii_cube_stl_path(tmp_path: Path) -> Path:
    """10 x 10 x 10 cube, ASCII STL."""
    return write_ascii_stl(tmp_path / "ascii_cube.stl", make_box(size=(10, 10, 10)), name="cube")


@pytest.fixture
def tetra_stl_path(tmp_path: Path) -> Path:
    return write_stl(tmp_path / "tetra.stl", make_tetrahedron())


@pytest.fixture
def empty_stl_path(tmp_path: Path) -> Path:
    """Binary STL with 0 triangles."""
    path = tmp_path / "empty.stl"
    m = stl_mesh.Mesh(np.zeros(0, dtype=stl_mesh.Mesh.dtype))
    m.save(str(path))
    return path


@pytest.fixture
def models_dir(tmp_path: Path) -> Path:
    """Directory with two STL files and one unrelated file."""
    directory = tmp_path / "models"
    directory.mkdir()
    write_stl(directory / "cube.stl", make_box(size=(10, 10, 10)))
    write_stl(directory / "tetra.stl", make_tetrahedron())
    (directory / "notes.txt").write_text("not a mesh")
    return directory
