"""
Index Advisor Agent

Read-only index health review for one SQL Server database per run:
- collects the index catalog, usage telemetry, and physical stats (one snapshot)
- classifies each index (NONE / REORGANIZE / REBUILD / N/A)
- projects the overview, unused-candidate, action-needed, and
  maintenance-command reports

Generated ALTER INDEX statements are returned as text and never executed.
"""

from __future__ import annotations

import logging
from typing import Optional

from config.settings import AdvisorSettings
from framework.agent_framework import BaseAgent, TaskResult

from .classifier import ClassifierMixin
from .reports import IndexReports, ReportMixin
from .sources import SourceMixin

logger = logging.getLogger("index_advisor.agent")


class IndexAdvisorAgent(SourceMixin, ClassifierMixin, ReportMixin, BaseAgent):
    """Usage and fragmentation review with maintenance recommendations."""

    def __init__(self, sql_client, settings: AdvisorSettings):
        super().__init__(
            name="IndexAdvisorAgent",
            description="Joins index usage counters with fragmentation metrics, recommends "
                        "REBUILD/REORGANIZE, flags unused indexes, and generates ALTER INDEX text",
        )
        self.client = sql_client
        self.settings = settings

    def register_tools(self) -> None:
        """Register the advisor tools."""
        self.register_tool("collect_index_snapshot", self.collect_index_snapshot,
                           "Read catalog, usage, and physical stats for a database")
        self.register_tool("classify_indexes", self.classify_indexes,
                           "Join the snapshot and recommend an action per index")
        self.register_tool("build_index_reports", self.build_index_reports,
                           "Project overview, unused, action-needed, and command reports")
        self.register_tool("run_index_advisor", self.run_index_advisor,
                           "Full advisor run: snapshot, classify, report")

    async def run_index_advisor(self, database: Optional[str] = None) -> IndexReports:
        """One stateless run against a single database."""
        database = database or self.settings.target_database
        snapshot = await self.collect_index_snapshot(database)
        classified = self.classify_indexes(snapshot)
        return self.build_index_reports(database, classified, snapshot.usage_stats_since)

    async def run_cycle(self, context: dict = None) -> list[TaskResult]:
        """Run the advisor once per requested database, one snapshot each."""
        ctx = context or {}
        databases = ctx.get("databases") or [self.settings.target_database]

        results = []
        for database in databases:
            result = await self.execute_tool("run_index_advisor", database=database)
            results.append(result)
        return results
