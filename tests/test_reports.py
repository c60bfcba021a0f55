"""Tests for the four report views and generated command text."""

from __future__ import annotations

import pytest

from agents.advisor.classifier import classify_index
from agents.advisor.models import IndexIdentity, IndexKey, PhysicalStats, RecommendedAction, UsageCounters
from agents.advisor.reports import (
    build_reports, maintenance_command, quote_name, select_action_needed, select_unused_candidates,
)


def _row(thresholds, object_id, schema, table, index, frag=None, pages=None, reads=0, writes=0, physical=True):
    key = IndexKey(object_id, 2)
    identity = IndexIdentity(key=key, database_name="SalesDB", schema_name=schema, table_name=table,
                             index_name=index, type_desc="NONCLUSTERED")
    usage = UsageCounters(key, user_seeks=reads, user_updates=writes)
    stats = PhysicalStats(key, frag, pages) if physical else None
    return classify_index(identity, usage, stats, thresholds)


class TestMaintenanceCommand:

    def test_rebuild_command_text(self, thresholds):
        row = _row(thresholds, 1, "dbo", "Orders", "IX_Orders_CustomerId", frag=45.0, pages=5000)
        assert row.recommended_action is RecommendedAction.REBUILD
        assert maintenance_command(row) == "ALTER INDEX [IX_Orders_CustomerId] ON [dbo].[Orders] REBUILD;"

    def test_reorganize_command_text(self, thresholds):
        row = _row(thresholds, 1, "sales", "Invoices", "IX_Invoices_DueDate", frag=10.0, pages=5000)
        assert maintenance_command(row) == "ALTER INDEX [IX_Invoices_DueDate] ON [sales].[Invoices] REORGANIZE;"

    def test_closing_bracket_in_names_is_escaped(self, thresholds):
        row = _row(thresholds, 1, "dbo", "Odd]Table", "IX [weird]", frag=45.0, pages=5000)
        assert maintenance_command(row) == "ALTER INDEX [IX [weird]]] ON [dbo].[Odd]]Table] REBUILD;"

    def test_non_actionable_rows_have_no_command(self, thresholds):
        row = _row(thresholds, 1, "dbo", "Orders", "IX_Small", frag=90.0, pages=10)
        with pytest.raises(ValueError):
            maintenance_command(row)

    def test_quote_name(self):
        assert quote_name("Orders") == "[Orders]"
        assert quote_name("a]b") == "[a]]b]"


class TestUnusedCandidates:

    def test_large_written_unread_index_is_a_candidate(self, thresholds):
        row = _row(thresholds, 1, "dbo", "Orders", "IX_A", frag=1.0, pages=1200, writes=150)
        assert select_unused_candidates([row], thresholds) == [row]

    def test_small_index_is_not_a_candidate(self, thresholds):
        row = _row(thresholds, 1, "dbo", "Orders", "IX_A", frag=1.0, pages=500, writes=150)
        assert select_unused_candidates([row], thresholds) == []

    def test_read_index_is_not_a_candidate(self, thresholds):
        row = _row(thresholds, 1, "dbo", "Orders", "IX_A", frag=1.0, pages=1200, reads=1, writes=150)
        assert select_unused_candidates([row], thresholds) == []

    def test_write_threshold_is_inclusive(self, thresholds):
        at = _row(thresholds, 1, "dbo", "Orders", "IX_A", pages=1200, writes=100)
        below = _row(thresholds, 2, "dbo", "Orders", "IX_B", pages=1200, writes=99)
        assert select_unused_candidates([at, below], thresholds) == [at]

    def test_absent_page_count_is_excluded(self, thresholds):
        row = _row(thresholds, 1, "dbo", "Orders", "IX_A", writes=5000, physical=False)
        assert select_unused_candidates([row], thresholds) == []

    def test_sorted_by_writes_then_pages_descending(self, thresholds):
        a = _row(thresholds, 1, "dbo", "T", "IX_A", pages=2000, writes=200)
        b = _row(thresholds, 2, "dbo", "T", "IX_B", pages=9000, writes=200)
        c = _row(thresholds, 3, "dbo", "T", "IX_C", pages=1000, writes=5000)
        assert select_unused_candidates([a, b, c], thresholds) == [c, b, a]


class TestActionNeeded:

    def test_rebuild_before_reorganize_then_fragmentation_desc(self, thresholds):
        reorg_hi = _row(thresholds, 1, "dbo", "T", "IX_R1", frag=25.0, pages=5000)
        rebuild_lo = _row(thresholds, 2, "dbo", "T", "IX_B1", frag=31.0, pages=5000)
        reorg_lo = _row(thresholds, 3, "dbo", "T", "IX_R2", frag=6.0, pages=5000)
        rebuild_hi = _row(thresholds, 4, "dbo", "T", "IX_B2", frag=88.0, pages=5000)
        none = _row(thresholds, 5, "dbo", "T", "IX_N", frag=1.0, pages=5000)
        na = _row(thresholds, 6, "dbo", "T", "IX_X", physical=False)

        ordered = select_action_needed([reorg_hi, rebuild_lo, reorg_lo, rebuild_hi, none, na])

        assert ordered == [rebuild_hi, rebuild_lo, reorg_hi, reorg_lo]


class TestBuildReports:

    def test_overview_sorted_by_schema_table_index(self, thresholds):
        rows = [
            _row(thresholds, 1, "dbo", "Orders", "PK_Orders"),
            _row(thresholds, 2, "audit", "Events", "IX_Events"),
            _row(thresholds, 3, "dbo", "Customers", "IX_B"),
            _row(thresholds, 4, "dbo", "Customers", "IX_A"),
        ]
        reports = build_reports("SalesDB", rows, thresholds)

        assert [(r["schema_name"], r["table_name"], r["index_name"]) for r in reports.overview] == [
            ("audit", "Events", "IX_Events"),
            ("dbo", "Customers", "IX_A"),
            ("dbo", "Customers", "IX_B"),
            ("dbo", "Orders", "PK_Orders"),
        ]

    def test_overview_row_columns(self, thresholds):
        reports = build_reports("SalesDB", [_row(thresholds, 1, "dbo", "Orders", "IX_A", frag=12.0, pages=4000,
                                                 reads=3, writes=8)], thresholds)
        assert reports.overview == [{
            "database_name": "SalesDB", "schema_name": "dbo", "table_name": "Orders", "index_name": "IX_A",
            "type_desc": "NONCLUSTERED", "page_count": 4000, "avg_fragmentation_percent": 12.0,
            "user_seeks": 3, "user_scans": 0, "user_lookups": 0, "user_updates": 8,
            "total_reads": 3, "total_writes": 8, "last_user_seek": None, "last_user_scan": None,
            "last_user_lookup": None, "last_user_update": None, "recommended_action": "REORGANIZE",
        }]

    def test_commands_mirror_action_needed(self, thresholds):
        rows = [
            _row(thresholds, 1, "dbo", "Orders", "IX_A", frag=12.0, pages=4000),
            _row(thresholds, 2, "dbo", "Orders", "IX_B", frag=60.0, pages=4000),
            _row(thresholds, 3, "dbo", "Orders", "IX_C", frag=1.0, pages=4000),
            _row(thresholds, 4, "dbo", "Orders", "IX_D", physical=False),
        ]
        reports = build_reports("SalesDB", rows, thresholds)

        assert [r["index_name"] for r in reports.action_needed] == ["IX_B", "IX_A"]
        assert [r["maintenance_command"] for r in reports.maintenance_commands] == [
            "ALTER INDEX [IX_B] ON [dbo].[Orders] REBUILD;",
            "ALTER INDEX [IX_A] ON [dbo].[Orders] REORGANIZE;",
        ]
        assert all(r["recommended_action"] in ("REBUILD", "REORGANIZE") for r in reports.maintenance_commands)

    def test_na_is_reported_distinct_from_none(self, thresholds):
        rows = [
            _row(thresholds, 1, "dbo", "Orders", "IX_A", frag=None, pages=4000),
            _row(thresholds, 2, "dbo", "Orders", "IX_B", physical=False),
        ]
        actions = {r["index_name"]: r["recommended_action"] for r in build_reports("SalesDB", rows, thresholds).overview}
        assert actions == {"IX_A": "NONE", "IX_B": "N/A"}

    def test_unknown_view_name(self, thresholds):
        with pytest.raises(KeyError):
            build_reports("SalesDB", [], thresholds).view("missing")

    def test_to_dict_carries_thresholds(self, thresholds):
        document = build_reports("SalesDB", [], thresholds).to_dict()
        assert document["thresholds"] == {
            "low_frag_threshold": 5.0, "high_frag_threshold": 30.0,
            "min_page_count": 1000, "min_update_count": 100,
        }
        assert document["overview"] == []
