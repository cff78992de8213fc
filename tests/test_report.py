"""
Unit tests for stl_volume.report.
"""

import csv
import io
import json
from pathlib import Path

import pytest

from stl_volume.analysis import AnalysisResult
from stl_volume.batch import BatchResult, FileReport
from stl_volume.geometry.thickness import ThicknessStatistics
from stl_volume.project_config import ReportConfig
from stl_volume.report import format_csv, format_json, format_table, render_report


@pytest.fixture
def batch():
    """One 2 dm^3 part in a 4 dm^3 box, one unreadable file."""
    return BatchResult(reports=[
        FileReport(Path("models/part.stl"),
                   result=AnalysisResult(mesh_volume=2e6, box_volume=4e6, n_triangles=12)),
        FileReport(Path("models/broken.stl"), error="Cannot parse STL file"),
    ])


class TestFormatTable:
    """Tests for the terminal table."""

    def test_header_and_row(self, batch):
        text = format_table(batch, ReportConfig())
        lines = text.splitlines()
        assert lines[0].startswith("Filename")
        assert "Bounding box volume" in lines[0]
        row = lines[2]
        assert row.startswith("part.stl")
        assert "2.00" in row
        assert "4.00" in row
        assert "0.500" in row

    def test_failures_listed(self, batch):
        text = format_table(batch, ReportConfig())
        assert "Failed files:" in text
        assert "broken.stl: Cannot parse STL file" in text

    def test_divisor_and_precision(self, batch):
        text = format_table(batch, ReportConfig(volume_divisor=1.0, precision=0))
        assert "2000000" in text

    def test_thickness_column(self):
        stats = ThicknessStatistics(mean=3.25, median=3.0, std_dev=0.1, mad=0.0,
                                    samples=[3.0, 3.5])
        batch = BatchResult(reports=[FileReport(
            Path("wall.stl"),
            result=AnalysisResult(mesh_volume=1.0, box_volume=2.0, thickness=stats),
        )])
        text = format_table(batch, ReportConfig(), show_thickness=True)
        assert "Thickness" in text
        assert "3.25" in text


class TestFormatCSV:
    """Tests for CSV output."""

    def test_rows(self, batch):
        rows = list(csv.reader(io.StringIO(format_csv(batch, ReportConfig()))))
        assert rows[0] == ["filename", "mesh_volume", "box_volume", "ratio", "triangles", "error"]
        assert rows[1][:5] == [str(Path("models/part.stl")), "2.00", "4.00", "0.500000", "12"]
        assert rows[1][5] == ""
        assert rows[2][1] == ""
        assert rows[2][5] == "Cannot parse STL file"

    def test_thickness_columns_without_thickness(self, batch):
        rows = list(csv.reader(io.StringIO(
            format_csv(batch, ReportConfig(), show_thickness=True))))
        assert "thickness_mean" in rows[0]
        assert all(len(row) == len(rows[0]) for row in rows)

    def test_nan_volume_rendered_as_na(self):
        """NaN volumes print as n/a, the same as in the table."""
        batch = BatchResult(reports=[FileReport(
            Path("bad.stl"),
            result=AnalysisResult(mesh_volume=float("nan"), box_volume=float("nan")),
        )])
        rows = list(csv.reader(io.StringIO(format_csv(batch, ReportConfig()))))
        assert rows[1][1:4] == ["n/a", "n/a", "n/a"]


class TestFormatJSON:
    """Tests for JSON output."""

    def test_structure(self, batch):
        data = json.loads(format_json(batch, ReportConfig()))
        assert data['total'] == 2
        assert data['failed'] == 1
        assert data['volume_divisor'] == 1e6
        assert data['files'][0]['result']['mesh_volume'] == 2e6

    def test_nan_becomes_null(self):
        batch = BatchResult(reports=[FileReport(
            Path("empty.stl"), result=AnalysisResult(mesh_volume=0.0, box_volume=0.0),
        )])
        data = json.loads(format_json(batch, ReportConfig()))
        assert data['files'][0]['result']['fill_ratio'] is None


class TestRenderReport:
    """Tests for format dispatch."""

    @pytest.mark.parametrize("fmt, marker", [
        ("table", "Filename"),
        ("csv", "filename,mesh_volume"),
        ("json", '"files"'),
    ])
    def test_dispatch(self, batch, fmt, marker):
        assert marker in render_report(batch, ReportConfig(format=fmt))

    def test_unknown_format(self, batch):
        with pytest.raises(ValueError):
            render_report(batch, ReportConfig(format="xml"))
