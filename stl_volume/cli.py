"""
Command-line entry point: mesh and bounding-box volumes of STL files.

Usage:
    stl-volume PATH [PATH ...] [--parallel] [--thickness] [--format {table,csv,json}]

Examples:
    stl-volume ./models part.stl
    stl-volume "parts/**/*.stl" -r --format csv -o volumes.csv
    stl-volume ./models --config project.stlvolume.json --thickness
"""

import argparse
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import List, Optional

from stl_volume import __version__
from stl_volume.batch import batch_analyze, expand_paths
from stl_volume.logging_config import setup_logging
from stl_volume.project_config import REPORT_FORMATS, ProjectConfig, load_config
from stl_volume.report import render_report

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="stl-volume",
        description="Compute mesh volume and bounding box volume of STL files",
    )
    parser.add_argument(
        "paths",
        nargs="+",
        help="STL files, directories containing STL files, or glob patterns",
    )
    parser.add_argument(
        "-p", "--pattern",
        help="File pattern for directory arguments (default: *.stl)",
    )
    parser.add_argument(
        "-r", "--recursive",
        action="store_true",
        default=None,
        help="Search subdirectories",
    )
    parser.add_argument(
        "-c", "--config",
        dest="config_path",
        help="Path to .stlvolume.json config file",
    )
    parser.add_argument(
        "--parallel",
        action="store_true",
        default=None,
        help="Analyze files in parallel",
    )
    parser.add_argument(
        "-j", "--jobs",
        type=int,
        dest="max_workers",
        help="Maximum parallel files",
    )
    parser.add_argument(
        "--workers",
        type=int,
        help="Threads per mesh for volume accumulation",
    )
    parser.add_argument(
        "--thickness",
        action="store_true",
        default=None,
        help="Also sample wall thickness (slow on large meshes)",
    )
    parser.add_argument(
        "-f", "--format",
        choices=REPORT_FORMATS,
        help="Report format (default: table)",
    )
    parser.add_argument(
        "-o", "--output",
        help="Write the report to a file instead of stdout",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Debug logging",
    )
    parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Only log warnings and errors",
    )
    parser.add_argument(
        "--log-json",
        help="Also write JSON-lines log to this file",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    return parser


def apply_cli_overrides(config: ProjectConfig, args: argparse.Namespace) -> ProjectConfig:
    """Return a copy of ``config`` with every given CLI flag applied."""
    analysis = config.analysis
    if args.workers is not None:
        analysis = replace(analysis, workers=args.workers)
    if args.thickness is not None:
        analysis = replace(analysis, compute_thickness=args.thickness)

    discovery = config.discovery
    if args.pattern is not None:
        discovery = replace(discovery, pattern=args.pattern)
    if args.recursive is not None:
        discovery = replace(discovery, recursive=args.recursive)

    report = config.report
    if args.format is not None:
        report = replace(report, format=args.format)

    batch = config.batch
    if args.parallel is not None:
        batch = replace(batch, parallel=args.parallel)
    if args.max_workers is not None:
        batch = replace(batch, max_workers=args.max_workers)

    return ProjectConfig(analysis=analysis, discovery=discovery, report=report, batch=batch)


def main(argv: Optional[List[str]] = None) -> int:
    """Run the CLI; returns the process exit code."""
    args = build_parser().parse_args(argv)

    if args.verbose:
        level = logging.DEBUG
    elif args.quiet:
        level = logging.WARNING
    else:
        level = logging.INFO
    setup_logging(level=level, json_file=args.log_json)

    try:
        config = load_config(input_path=args.paths[0], explicit_config=args.config_path)
        config = apply_cli_overrides(config, args)

        files = expand_paths(
            args.paths,
            pattern=config.discovery.pattern,
            recursive=config.discovery.recursive,
        )
        if not files:
            logger.error("No STL files found")
            return 1

        result = batch_analyze(
            files,
            options=config.analysis.to_options(),
            parallel=config.batch.parallel,
            max_workers=config.batch.max_workers,
        )
        text = render_report(result, config.report,
                             show_thickness=config.analysis.compute_thickness)

        if args.output:
            Path(args.output).write_text(text + "\n", encoding="utf-8")
            logger.info("Report written to %s", args.output)
        else:
            print(text)
    except (OSError, TypeError, ValueError) as e:
        logger.error("Volume analysis failed: %s", e)
        return 1

    return 0 if result.failed == 0 else 1


if __name__ == "__main__":
    sys.exit(main())
