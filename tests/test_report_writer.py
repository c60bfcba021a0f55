"""Tests for console and file rendering of report documents."""

from __future__ import annotations

import io
import json
from datetime import datetime

import pytest

from utils.report_writer import ReportWriter, format_table, safe_filename, to_json


@pytest.fixture
def document():
    return {
        "database_name": "SalesDB",
        "usage_stats_since": datetime(2026, 10, 1, 4, 30),
        "overview": [
            {"index_name": "PK_Orders", "page_count": 50000, "avg_fragmentation_percent": 42.5,
             "last_user_update": None, "recommended_action": "REBUILD"},
        ],
        "unused_candidates": [],
        "action_needed": [
            {"index_name": "PK_Orders", "recommended_action": "REBUILD"},
        ],
        "maintenance_commands": [
            {"maintenance_command": "ALTER INDEX [PK_Orders] ON [dbo].[Orders] REBUILD;",
             "recommended_action": "REBUILD"},
        ],
    }


def test_format_table_empty():
    assert format_table([]) == "  (no rows)"


def test_format_table_aligns_columns():
    lines = format_table([{"name": "IX_A", "pages": 5}, {"name": "PK", "pages": 12000}]).splitlines()
    assert lines[0] == "  name  pages"
    assert lines[2] == "  IX_A  5    "


def test_to_json_serializes_timestamps(document):
    assert json.loads(to_json(document))["usage_stats_since"] == "2026-10-01T04:30:00"


def test_print_tables(document):
    stream = io.StringIO()
    ReportWriter(stream=stream).print_tables(document)
    out = stream.getvalue()

    assert "INDEX USAGE AND MAINTENANCE REPORT: SalesDB" in out
    assert "since 2026-10-01 04:30:00" in out
    assert "Result set 2: Candidate unused" in out
    assert "  (no rows)" in out
    assert "  ALTER INDEX [PK_Orders] ON [dbo].[Orders] REBUILD;" in out


def test_print_csv_blank_for_missing_values(document):
    stream = io.StringIO()
    ReportWriter(stream=stream).print_csv(document["overview"])
    assert stream.getvalue().splitlines() == [
        "index_name,page_count,avg_fragmentation_percent,last_user_update,recommended_action",
        "PK_Orders,50000,42.5,,REBUILD",
    ]


def test_file_export(document, tmp_path):
    writer = ReportWriter(output_dir=tmp_path / "out")

    json_path = writer.write_json(document)
    csv_paths = writer.write_csv(document, ["overview", "unused_candidates"])

    assert json_path.name == "SalesDB_index_report.json"
    assert [p.name for p in csv_paths] == ["SalesDB_overview.csv", "SalesDB_unused_candidates.csv"]
    assert csv_paths[1].read_text() == ""
    assert [entry["records"] for entry in writer.get_write_log()] == [1, 1, 0]


def test_file_export_needs_output_dir(document):
    with pytest.raises(ValueError):
        ReportWriter().write_json(document)


@pytest.mark.parametrize("name, expected", [
    ("SalesDB", "SalesDB"),
    ("Sales/2026", "Sales_2026"),
    ("../escaped", "_escaped"),
    ("..", "_"),
    ("Sales DB", "Sales_DB"),
])
def test_safe_filename(name, expected):
    assert safe_filename(name) == expected


@pytest.mark.parametrize("database", ["Sales/2026", "../escaped", "..\\escaped"])
def test_export_stays_inside_output_dir(document, tmp_path, database):
    out = tmp_path / "out"
    writer = ReportWriter(output_dir=out)
    document = dict(document, database_name=database)

    paths = [writer.write_json(document), *writer.write_csv(document, ["overview"])]

    for path in paths:
        assert path.exists()
        assert path.resolve().parent == out.resolve()
    assert sorted(p.name for p in tmp_path.iterdir()) == ["out"]
