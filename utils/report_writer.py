"""
ReportWriter: renders and exports advisor reports.

Handles:
- Console tables with a banner per result set
- JSON export (one document per database run)
- CSV export (one file per report view)

Rendering only; rows arrive already filtered and sorted.
"""

from __future__ import annotations

import csv
import json
import logging
import re
import sys
from datetime import date, datetime
from pathlib import Path
from typing import Any, Iterable, Optional, TextIO

from config.settings import REPORT_VIEWS

logger = logging.getLogger("index_advisor.report_writer")


def _json_default(value: Any):
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def to_json(document: dict) -> str:
    """Deterministic JSON: same reports in, same bytes out."""
    return json.dumps(document, default=_json_default, indent=2, sort_keys=False)


def _cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float):
        return f"{value:.2f}"
    if isinstance(value, datetime):
        return value.strftime("%Y-%m-%d %H:%M:%S")
    return str(value)


def _csv_value(value: Any):
    if value is None:
        return ""
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


def safe_filename(name: str) -> str:
    """Database names may hold path separators or dot segments; keep word chars, dots and dashes."""
    cleaned = re.sub(r"[^\w.-]", "_", name).lstrip(".")
    return cleaned or "_"


def format_table(rows: list[dict], columns: Optional[list[str]] = None) -> str:
    """Plain fixed-width table; empty reports say so instead of printing a bare header."""
    if not rows:
        return "  (no rows)"
    columns = columns or list(rows[0].keys())
    cells = [[_cell(row.get(c)) for c in columns] for row in rows]
    widths = [max(len(c), *(len(r[i]) for r in cells)) for i, c in enumerate(columns)]

    lines = [
        "  " + "  ".join(c.ljust(w) for c, w in zip(columns, widths)),
        "  " + "  ".join("-" * w for w in widths),
    ]
    for r in cells:
        lines.append("  " + "  ".join(v.ljust(w) for v, w in zip(r, widths)))
    return "\n".join(lines)


class ReportWriter:
    """Console and file output for IndexReports documents (see IndexReports.to_dict)."""

    def __init__(self, output_dir: Optional[Path] = None, stream: Optional[TextIO] = None):
        self.output_dir = Path(output_dir) if output_dir else None
        self.stream = stream
        self._write_log: list[dict] = []

    def _print(self, text: str = "") -> None:
        print(text, file=self.stream)

    def print_tables(self, document: dict, views: Iterable[str] = REPORT_VIEWS) -> None:
        self._print("\n" + "=" * 80)
        self._print(f"  INDEX USAGE AND MAINTENANCE REPORT: {document['database_name']}")
        if document.get("usage_stats_since"):
            self._print(f"  Usage counters accumulate since {_cell(document['usage_stats_since'])} "
                        f"(engine start); they reset on restart")
        self._print("=" * 80)

        for number, view in enumerate(views, start=1):
            rows = document[view]
            self._print(f"\nResult set {number}: {REPORT_VIEWS[view]} ({len(rows)} rows)")
            if view == "maintenance_commands":
                self._print("\n".join(f"  {r['maintenance_command']}" for r in rows) or "  (no rows)")
            else:
                self._print(format_table(rows))
        self._print()

    def print_json(self, document: dict) -> None:
        self._print(to_json(document))

    def print_csv(self, rows: list[dict]) -> None:
        self._write_csv_rows(self.stream or sys.stdout, rows)

    def _write_csv_rows(self, handle: TextIO, rows: list[dict]) -> None:
        if not rows:
            return
        writer = csv.DictWriter(handle, fieldnames=list(rows[0].keys()), lineterminator="\n")
        writer.writeheader()
        for row in rows:
            writer.writerow({k: _csv_value(v) for k, v in row.items()})

    def _target(self, filename: str) -> Path:
        if self.output_dir is None:
            raise ValueError("output_dir is required for file export")
        self.output_dir.mkdir(parents=True, exist_ok=True)
        path = self.output_dir / filename
        if path.resolve().parent != self.output_dir.resolve():
            raise ValueError(f"export file name escapes output_dir: {filename!r}")
        return path

    def write_json(self, document: dict) -> Path:
        path = self._target(f"{safe_filename(document['database_name'])}_index_report.json")
        path.write_text(to_json(document) + "\n", encoding="utf-8")
        self._log(path, 1)
        return path

    def write_csv(self, document: dict, views: Iterable[str] = REPORT_VIEWS) -> list[Path]:
        paths = []
        for view in views:
            rows = document[view]
            path = self._target(f"{safe_filename(document['database_name'])}_{view}.csv")
            with path.open("w", newline="", encoding="utf-8") as handle:
                self._write_csv_rows(handle, rows)
            self._log(path, len(rows))
            paths.append(path)
        return paths

    def _log(self, path: Path, records: int) -> None:
        self._write_log.append({"path": str(path), "records": records})
        logger.info(f"Wrote {records} records -> {path}")

    def get_write_log(self) -> list[dict]:
        """Return log of all file writes."""
        return self._write_log
