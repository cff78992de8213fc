"""
stl_volume: mesh volume and bounding box volume of STL solids.

Command-line entry point: stl_volume.cli (``stl-volume`` / ``python -m stl_volume``).
"""

__version__ = "0.3.0"

from stl_volume.analysis import (
    AnalysisOptions,
    AnalysisResult,
    MeshAnalyzer,
    analyze_mesh,
)
from stl_volume.logging_config import (
    LogContext,
    configure_default_logging,
    get_logger,
    log_timing,
    setup_logging,
    timed,
)

__all__ = [
    "AnalysisOptions",
    "AnalysisResult",
    "MeshAnalyzer",
    "analyze_mesh",
    "setup_logging",
    "get_logger",
    "configure_default_logging",
    "log_timing",
    "timed",
    "LogContext",
]
