"""
Report formatting for batch analysis results.

Formats:
- table: fixed-width columns for the terminal
- csv:   one row per file
- json:  full BatchResult dictionary
"""

import csv
import io
import json
import math
from typing import List

from stl_volume.batch import BatchResult
from stl_volume.project_config import REPORT_FORMATS, ReportConfig


def _scaled(value: float, config: ReportConfig) -> float:
    return value / config.volume_divisor


def _fmt(value: float, precision: int) -> str:
    if math.isnan(value):
        return "n/a"
    return f"{value:.{precision}f}"


def format_table(batch: BatchResult, config: ReportConfig, show_thickness: bool = False) -> str:
    """Fixed-width table, failed files listed underneath."""
    name_width = config.filename_width
    p = config.precision

    headers = ["Filename", "Mesh volume", "Bounding box volume", "Ratio"]
    if show_thickness:
        headers.append("Thickness")

    widths = [name_width, 20, 20, 8, 12]
    header = " | ".join(f"{h:<{w}}" for h, w in zip(headers, widths))
    lines: List[str] = [header, "-" * len(header)]

    for report in batch.reports:
        if not report.success:
            continue
        result = report.result
        cells = [
            report.path.name,
            _fmt(_scaled(result.mesh_volume, config), p),
            _fmt(_scaled(result.box_volume, config), p),
            _fmt(result.fill_ratio, 3),
        ]
        if show_thickness:
            mean = result.thickness.mean if result.thickness else float('nan')
            cells.append(_fmt(mean, p))
        lines.append(" | ".join(f"{c:<{w}}" for c, w in zip(cells, widths)))

    failed = [r for r in batch.reports if not r.success]
    if failed:
        lines.append("")
        lines.append("Failed files:")
        for report in failed:
            lines.append(f"  - {report.path}: {report.error}")

    return "\n".join(lines)


def format_csv(batch: BatchResult, config: ReportConfig, show_thickness: bool = False) -> str:
    """One CSV row per file; volumes divided by volume_divisor."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")

    columns = ["filename", "mesh_volume", "box_volume", "ratio", "triangles"]
    if show_thickness:
        columns += ["thickness_mean", "thickness_median", "thickness_std"]
    columns.append("error")
    writer.writerow(columns)

    for report in batch.reports:
        if report.success:
            result = report.result
            row = [
                str(report.path),
                _fmt(_scaled(result.mesh_volume, config), config.precision),
                _fmt(_scaled(result.box_volume, config), config.precision),
                _fmt(result.fill_ratio, 6),
                result.n_triangles,
            ]
            if show_thickness:
                t = result.thickness
                row += [_fmt(t.mean, config.precision), _fmt(t.median, config.precision),
                        _fmt(t.std_dev, config.precision)] if t else ["", "", ""]
            row.append("")
        else:
            row = [str(report.path), "", "", "", ""]
            if show_thickness:
                row += ["", "", ""]
            row.append(report.error or "")
        writer.writerow(row)

    return buffer.getvalue()


def format_json(batch: BatchResult, config: ReportConfig) -> str:
    """Full batch result as indented JSON (raw, undivided volumes)."""
    data = batch.to_dict()
    data['volume_divisor'] = config.volume_divisor

    def _clean(value):
        if isinstance(value, float) and (math.isnan(value) or math.isinf(value)):
            return None
        if isinstance(value, dict):
            return {k: _clean(v) for k, v in value.items()}
        if isinstance(value, list):
            return [_clean(v) for v in value]
        return value

    return json.dumps(_clean(data), indent=2, ensure_ascii=False)


def render_report(batch: BatchResult, config: ReportConfig, show_thickness: bool = False) -> str:
    """Render a batch result in ``config.format``.

    Raises:
        ValueError: for an unknown format
    """
    if config.format == "table":
        return format_table(batch, config, show_thickness)
    if config.format == "csv":
        return format_csv(batch, config, show_thickness)
    if config.format == "json":
        return format_json(batch, config)
    raise ValueError(f"Unknown report format {config.format!r}; expected one of {REPORT_FORMATS}")
