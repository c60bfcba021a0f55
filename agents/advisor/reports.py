"""
Report projection: four views derived from one classified dataset.

- overview: every index, by schema/table/index name
- unused_candidates: zero reads, non-trivial writes, non-trivial size
- action_needed: REBUILD then REORGANIZE, most fragmented first
- maintenance_commands: ALTER INDEX text for the action_needed rows

Views filter, sort and reshape only; recommendations come from the classifier.
Nothing here executes the generated commands.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from config.settings import AdvisorThresholds
from framework.agent_framework import EventType

from .models import MAINTENANCE_ACTIONS, ClassifiedIndex, RecommendedAction

logger = logging.getLogger("index_advisor.reports")

# REBUILD rows are listed before REORGANIZE rows
_ACTION_RANK = {RecommendedAction.REBUILD: 0, RecommendedAction.REORGANIZE: 1}


def quote_name(name: str) -> str:
    """Bracket-quote an identifier the way QUOTENAME does."""
    return "[" + name.replace("]", "]]") + "]"


def maintenance_command(row: ClassifiedIndex) -> str:
    if row.recommended_action not in MAINTENANCE_ACTIONS:
        raise ValueError(f"no maintenance command for action {row.recommended_action.value}")
    ident = row.identity
    return (
        f"ALTER INDEX {quote_name(ident.index_name)} "
        f"ON {quote_name(ident.schema_name)}.{quote_name(ident.table_name)} "
        f"{row.recommended_action.value};"
    )


def _overview_key(row: ClassifiedIndex):
    ident = row.identity
    return (
        ident.schema_name.casefold(), ident.table_name.casefold(), ident.index_name.casefold(),
        ident.schema_name, ident.table_name, ident.index_name, row.key,
    )


def overview_order(classified: list[ClassifiedIndex]) -> list[ClassifiedIndex]:
    return sorted(classified, key=_overview_key)


def select_unused_candidates(rows: list[ClassifiedIndex],
                             thresholds: AdvisorThresholds) -> list[ClassifiedIndex]:
    """Zero reads, at least min_update_count writes, at least min_page_count pages."""
    candidates = [
        r for r in rows
        if r.total_reads == 0
        and r.total_writes >= thresholds.min_update_count
        and r.page_count is not None
        and r.page_count >= thresholds.min_page_count
    ]
    # sorted() is stable, so ties keep the overview order of the input
    return sorted(candidates, key=lambda r: (-r.total_writes, -r.page_count))


def select_action_needed(rows: list[ClassifiedIndex]) -> list[ClassifiedIndex]:
    actionable = [r for r in rows if r.recommended_action in MAINTENANCE_ACTIONS]
    return sorted(
        actionable,
        key=lambda r: (_ACTION_RANK[r.recommended_action], -(r.avg_fragmentation_percent or 0.0)),
    )


def overview_row(row: ClassifiedIndex) -> dict:
    ident, usage = row.identity, row.usage
    return {
        "database_name": ident.database_name,
        "schema_name": ident.schema_name,
        "table_name": ident.table_name,
        "index_name": ident.index_name,
        "type_desc": ident.type_desc,
        "page_count": row.page_count,
        "avg_fragmentation_percent": row.avg_fragmentation_percent,
        "user_seeks": usage.user_seeks,
        "user_scans": usage.user_scans,
        "user_lookups": usage.user_lookups,
        "user_updates": usage.user_updates,
        "total_reads": row.total_reads,
        "total_writes": row.total_writes,
        "last_user_seek": usage.last_user_seek,
        "last_user_scan": usage.last_user_scan,
        "last_user_lookup": usage.last_user_lookup,
        "last_user_update": usage.last_user_update,
        "recommended_action": row.recommended_action.value,
    }


def unused_candidate_row(row: ClassifiedIndex) -> dict:
    ident = row.identity
    return {
        "database_name": ident.database_name,
        "schema_name": ident.schema_name,
        "table_name": ident.table_name,
        "index_name": ident.index_name,
        "type_desc": ident.type_desc,
        "page_count": row.page_count,
        "avg_fragmentation_percent": row.avg_fragmentation_percent,
        "user_updates": row.usage.user_updates,
        "total_reads": row.total_reads,
        "last_user_update": row.usage.last_user_update,
    }


def action_needed_row(row: ClassifiedIndex) -> dict:
    ident = row.identity
    return {
        "database_name": ident.database_name,
        "schema_name": ident.schema_name,
        "table_name": ident.table_name,
        "index_name": ident.index_name,
        "type_desc": ident.type_desc,
        "page_count": row.page_count,
        "avg_fragmentation_percent": row.avg_fragmentation_percent,
        "recommended_action": row.recommended_action.value,
        "total_reads": row.total_reads,
        "total_writes": row.total_writes,
    }


def maintenance_command_row(row: ClassifiedIndex) -> dict:
    ident = row.identity
    return {
        "maintenance_command": maintenance_command(row),
        "recommended_action": row.recommended_action.value,
        "database_name": ident.database_name,
        "schema_name": ident.schema_name,
        "table_name": ident.table_name,
        "index_name": ident.index_name,
        "avg_fragmentation_percent": row.avg_fragmentation_percent,
        "page_count": row.page_count,
    }


@dataclass(frozen=True)
class IndexReports:
    """The four report views for one database snapshot."""
    database_name: str
    thresholds: AdvisorThresholds
    overview: list[dict] = field(default_factory=list)
    unused_candidates: list[dict] = field(default_factory=list)
    action_needed: list[dict] = field(default_factory=list)
    maintenance_commands: list[dict] = field(default_factory=list)
    usage_stats_since: Optional[datetime] = None

    def view(self, name: str) -> list[dict]:
        if name not in ("overview", "unused_candidates", "action_needed", "maintenance_commands"):
            raise KeyError(f"unknown report view: {name}")
        return getattr(self, name)

    def to_dict(self) -> dict:
        return {
            "database_name": self.database_name,
            "usage_stats_since": self.usage_stats_since,
            "thresholds": self.thresholds.to_dict(),
            "overview": self.overview,
            "unused_candidates": self.unused_candidates,
            "action_needed": self.action_needed,
            "maintenance_commands": self.maintenance_commands,
        }


def build_reports(database_name: str, classified: list[ClassifiedIndex],
                  thresholds: AdvisorThresholds,
                  usage_stats_since: Optional[datetime] = None) -> IndexReports:
    """Project all four views from a single materialized classification."""
    ordered = overview_order(classified)
    unused = select_unused_candidates(ordered, thresholds)
    actionable = select_action_needed(ordered)

    return IndexReports(
        database_name=database_name,
        thresholds=thresholds,
        overview=[overview_row(r) for r in ordered],
        unused_candidates=[unused_candidate_row(r) for r in unused],
        action_needed=[action_needed_row(r) for r in actionable],
        maintenance_commands=[maintenance_command_row(r) for r in actionable],
        usage_stats_since=usage_stats_since,
    )


class ReportMixin:
    """Mixin exposing report projection as an agent tool."""

    def build_index_reports(self, database_name: str, classified: list[ClassifiedIndex],
                            usage_stats_since: Optional[datetime] = None) -> IndexReports:
        reports = build_reports(database_name, classified, self.settings.thresholds, usage_stats_since)

        logger.info(
            f"[{database_name}] overview={len(reports.overview)} "
            f"unused_candidates={len(reports.unused_candidates)} "
            f"action_needed={len(reports.action_needed)}"
        )

        if reports.action_needed:
            self.emit_event(EventType.INDEX_MAINTENANCE_RECOMMENDED, {
                "database_name": database_name,
                "rebuild": sum(1 for r in reports.action_needed if r["recommended_action"] == "REBUILD"),
                "reorganize": sum(1 for r in reports.action_needed if r["recommended_action"] == "REORGANIZE"),
            })
        if reports.unused_candidates:
            self.emit_event(EventType.UNUSED_INDEX_DETECTED, {
                "database_name": database_name,
                "candidates": len(reports.unused_candidates),
            })
        return reports
