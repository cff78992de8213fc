"""
STL decoding.

Supports:
- Binary STL (autodetected)
- ASCII STL (autodetected)

Returns the raw triangle soup as a read-only (N, 3, 3) float64 array. No
vertex welding is done: volume and bounding box only need the triangles.
"""

import logging
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional, Tuple, Union

import numpy as np
from numpy.typing import NDArray
from stl import mesh

from stl_volume.geometry.primitives import count_unique_vertices

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

BINARY_HEADER_SIZE = 80


class STLFormat(Enum):
    """STL file format type."""
    BINARY = "binary"
    ASCII = "ascii"
    UNKNOWN = "unknown"


@dataclass
class STLInfo:
    """Metadata about a loaded STL file."""
    filepath: str
    format: STLFormat
    file_size_bytes: int
    n_triangles: int
    n_unique_vertices: int
    solid_name: Optional[str] = None

    @property
    def file_size_kb(self) -> float:
        return self.file_size_bytes / 1024


class STLLoadError(Exception):
    """STL file is missing, unreadable or malformed."""


def _solid_name(line: str) -> Optional[str]:
    return line[5:].strip() or None


def detect_stl_format(filepath: PathLike) -> Tuple[STLFormat, Optional[str]]:
    """Detect STL file format (binary vs ASCII).

    ASCII files start with the ``solid`` keyword and contain ``facet`` or
    ``endsolid`` soon after. Binary headers may also begin with ``solid``,
    so the keyword alone is not enough.

    Returns:
        Tuple of (format, solid_name or None)

    Raises:
        STLLoadError: if file cannot be read
    """
    try:
        with open(filepath, 'rb') as f:
            head = f.read(1024)
    except FileNotFoundError:
        raise STLLoadError(f"File not found: {str(filepath)!r}")
    except OSError as exc:
        raise STLLoadError(f"Cannot read {str(filepath)!r}: {exc}") from exc

    text = head.decode('ascii', errors='ignore')
    first_line = text.lstrip().split('\n', 1)[0].strip()

    if first_line.lower().startswith('solid'):
        lowered = text.lower()
        if 'facet' in lowered or 'endsolid' in lowered:
            return STLFormat.ASCII, _solid_name(first_line)

    if len(head) < BINARY_HEADER_SIZE:
        return STLFormat.UNKNOWN, None

    header = head[:BINARY_HEADER_SIZE].split(b'\x00')[0]
    header_text = header.decode('ascii', errors='ignore').strip()
    solid_name = _solid_name(header_text) if header_text.startswith('solid') else None
    return STLFormat.BINARY, solid_name


def load_stl(filepath: PathLike) -> NDArray[np.float64]:
    """Load an STL file as a triangle array.

    Args:
        filepath: Path to STL file (binary or ASCII)

    Returns:
        Read-only array of shape (N, 3, 3), float64. A file without
        triangles gives shape (0, 3, 3).

    Raises:
        STLLoadError: if the file is missing, corrupt or holds non-finite
            coordinates
    """
    stl_format, solid_name = detect_stl_format(filepath)
    file_size = os.path.getsize(filepath)

    logger.info("Loading STL: %s (format: %s, size: %.1f KB)",
                filepath, stl_format.value, file_size / 1024)
    if solid_name:
        logger.debug("Solid name: %s", solid_name)

    try:
        stl_mesh = mesh.Mesh.from_file(str(filepath), calculate_normals=False)
    except FileNotFoundError:
        raise STLLoadError(f"File not found: {str(filepath)!r}")
    except Exception as exc:
        raise STLLoadError(f"Cannot parse STL file {str(filepath)!r}: {exc}") from exc

    triangles = np.array(stl_mesh.vectors, dtype=np.float64).reshape(-1, 3, 3)

    if not np.all(np.isfinite(triangles)):
        raise STLLoadError(f"STL file {str(filepath)!r} contains non-finite coordinates")

    if len(triangles) == 0:
        logger.warning("STL file %s contains no triangles", filepath)

    triangles.flags.writeable = False
    logger.debug("Loaded %d triangles", len(triangles))
    return triangles


def load_stl_with_info(filepath: PathLike) -> Tuple[NDArray[np.float64], STLInfo]:
    """Load an STL file and return triangles together with file metadata.

    Raises:
        STLLoadError: as :func:`load_stl`
    """
    triangles = load_stl(filepath)
    stl_format, solid_name = detect_stl_format(filepath)

    info = STLInfo(
        filepath=str(filepath),
        format=stl_format,
        file_size_bytes=os.path.getsize(filepath),
        n_triangles=len(triangles),
        n_unique_vertices=count_unique_vertices(triangles),
        solid_name=solid_name,
    )
    return triangles, info
