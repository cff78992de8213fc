"""
Batch analysis of STL files.

Provides:
- Path expansion (directories, files, glob patterns)
- Per-file analysis that never raises
- Optional parallel processing across files

Usage:
    from stl_volume.batch import batch_analyze, expand_paths

    files = expand_paths(["./models", "extra/*.stl"])
    results = batch_analyze(files, parallel=True)
    print(results.summary())
"""

import glob
import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Union

from stl_volume.analysis import AnalysisOptions, AnalysisResult, MeshAnalyzer
from stl_volume.io.stl_loader import load_stl
from stl_volume.logging_config import LogContext

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]
ProgressCallback = Callable[[int, int, 'FileReport'], None]


@dataclass
class FileReport:
    """Outcome of analyzing a single file."""
    path: Path
    result: Optional[AnalysisResult] = None
    error: Optional[str] = None
    duration_seconds: float = 0.0

    @property
    def success(self) -> bool:
        return self.result is not None and self.error is None

    @property
    def status(self) -> str:
        return "OK" if self.success else "FAILED"

    def to_dict(self) -> Dict:
        return {
            'path': str(self.path),
            'success': self.success,
            'error': self.error,
            'duration': self.duration_seconds,
            'result': self.result.to_dict() if self.result else None,
        }


@dataclass
class BatchResult:
    """Reports of all analyzed files, in input order."""
    reports: List[FileReport] = field(default_factory=list)
    total_duration_seconds: float = 0.0

    @property
    def total(self) -> int:
        return len(self.reports)

    @property
    def successful(self) -> int:
        return sum(1 for r in self.reports if r.success)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.reports if not r.success)

    @property
    def success_rate(self) -> float:
        """Success rate as percentage."""
        if self.total == 0:
            return 0.0
        return 100.0 * self.successful / self.total

    def summary(self) -> str:
        """Generate human-readable summary."""
        lines = [
            "Batch Analysis Summary",
            "=" * 40,
            f"Total files:     {self.total}",
            f"Successful:      {self.successful}",
            f"Failed:          {self.failed}",
            f"Success rate:    {self.success_rate:.1f}%",
            f"Total time:      {self.total_duration_seconds:.1f}s",
        ]

        if self.failed > 0:
            lines.append("")
            lines.append("Failed files:")
            for r in self.reports:
                if not r.success:
                    lines.append(f"  - {r.path.name}: {r.error}")

        return "\n".join(lines)

    def to_dict(self) -> Dict:
        """Convert to dictionary for JSON serialization."""
        return {
            'total': self.total,
            'successful': self.successful,
            'failed': self.failed,
            'success_rate': self.success_rate,
            'total_duration_seconds': self.total_duration_seconds,
            'files': [r.to_dict() for r in self.reports],
        }


def find_stl_files(
    input_dir: PathLike,
    pattern: str = "*.stl",
    recursive: bool = False,
) -> List[Path]:
    """Find STL files in a directory.

    The upper-case variant of the pattern (``*.STL``) is searched as well.

    Raises:
        FileNotFoundError: if the directory does not exist
        NotADirectoryError: if the path is not a directory
    """
    input_dir = Path(input_dir)

    if not input_dir.exists():
        raise FileNotFoundError(f"Input directory not found: {input_dir}")
    if not input_dir.is_dir():
        raise NotADirectoryError(f"Not a directory: {input_dir}")

    search = input_dir.rglob if recursive else input_dir.glob
    files = set(search(pattern))
    files.update(search(pattern.replace('.stl', '.STL')))

    found = sorted(f for f in files if f.is_file())
    logger.debug("Found %d STL files in %s", len(found), input_dir)
    return found


def expand_paths(
    paths: Iterable[PathLike],
    pattern: str = "*.stl",
    recursive: bool = False,
) -> List[Path]:
    """Expand command-line path arguments into a list of files.

    Directories expand to the STL files they contain, existing files are kept
    as given, anything else is tried as a glob pattern. Duplicates are
    dropped; the first occurrence keeps its position.
    """
    expanded: List[Path] = []
    seen = set()

    def _add(path: Path) -> None:
        key = path.resolve()
        if key not in seen:
            seen.add(key)
            expanded.append(path)

    for raw in paths:
        path = Path(raw)
        if path.is_dir():
            for found in find_stl_files(path, pattern, recursive):
                _add(found)
        elif path.is_file():
            _add(path)
        else:
            matches = sorted(glob.glob(str(raw), recursive=recursive))
            files = [Path(m) for m in matches if Path(m).is_file()]
            if not files:
                logger.warning("No files match %s", raw)
            for found in files:
                _add(found)

    return expanded


def analyze_file(
    path: PathLike,
    options: Optional[AnalysisOptions] = None,
) -> FileReport:
    """Decode and analyze one STL file.

    Errors are captured in the returned report instead of being raised.
    """
    path = Path(path)
    report = FileReport(path=path)
    start = time.perf_counter()

    with LogContext(file=path.name):
        try:
            triangles = load_stl(path)
            report.result = MeshAnalyzer(options).analyze(triangles)
        except Exception as e:
            report.error = str(e)
            logger.error("Failed to analyze %s: %s", path.name, e)

    report.duration_seconds = time.perf_counter() - start
    return report


def _log_progress(index: int, total: int, report: FileReport) -> None:
    logger.info(
        "[%d/%d] %s: %s (%.2fs)",
        index, total, report.path.name, report.status, report.duration_seconds,
    )


def batch_analyze(
    paths: Iterable[PathLike],
    options: Optional[AnalysisOptions] = None,
    parallel: bool = False,
    max_workers: Optional[int] = None,
    progress_callback: Optional[ProgressCallback] = None,
) -> BatchResult:
    """Analyze a list of STL files.

    Args:
        paths: Files to analyze (see :func:`expand_paths`)
        options: Analyzer options shared by all files
        parallel: Analyze files concurrently in a thread pool
        max_workers: Maximum parallel workers (None = executor default)
        progress_callback: Called after each file: (done, total, report)

    Returns:
        BatchResult with reports in the order of ``paths``
    """
    start = time.perf_counter()
    files = [Path(p) for p in paths]

    if not files:
        logger.warning("No STL files to analyze")
        return BatchResult(total_duration_seconds=time.perf_counter() - start)

    logger.info("Analyzing %d files, parallel=%s", len(files), parallel)

    reports: List[Optional[FileReport]] = [None] * len(files)

    if parallel:
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            futures = {
                executor.submit(analyze_file, path, options): i
                for i, path in enumerate(files)
            }
            for done, future in enumerate(as_completed(futures), 1):
                report = future.result()
                reports[futures[future]] = report
                _log_progress(done, len(files), report)
                if progress_callback:
                    progress_callback(done, len(files), report)
    else:
        for i, path in enumerate(files):
            report = analyze_file(path, options)
            reports[i] = report
            _log_progress(i + 1, len(files), report)
            if progress_callback:
                progress_callback(i + 1, len(files), report)

    result = BatchResult(
        reports=[r for r in reports if r is not None],
        total_duration_seconds=time.perf_counter() - start,
    )

    logger.info(
        "Batch analysis complete: %d/%d successful in %.1fs",
        result.successful, result.total, result.total_duration_seconds,
    )
    return result
