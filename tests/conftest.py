"""Shared fixtures: a fake read-only client serving canned catalog/DMV rows."""

from __future__ import annotations

import copy
from datetime import datetime

import pytest

from agents.advisor import IndexAdvisorAgent
from config.settings import AdvisorSettings, AdvisorThresholds
from framework.agent_framework import AgentFramework
from framework.errors import SourceUnavailable


def identity_row(object_id, index_id, schema, table, index, type_desc="NONCLUSTERED", database="SalesDB"):
    return {
        "database_name": database, "schema_name": schema, "table_name": table,
        "index_name": index, "object_id": object_id, "index_id": index_id, "type_desc": type_desc,
    }


def usage_row(object_id, index_id, seeks=0, scans=0, lookups=0, updates=0, **last):
    row = {
        "object_id": object_id, "index_id": index_id, "user_seeks": seeks, "user_scans": scans,
        "user_lookups": lookups, "user_updates": updates, "last_user_seek": None,
        "last_user_scan": None, "last_user_lookup": None, "last_user_update": None,
    }
    row.update(last)
    return row


def physical_row(object_id, index_id, frag, pages, partition=1):
    return {
        "object_id": object_id, "index_id": index_id, "partition_number": partition,
        "avg_fragmentation_in_percent": frag, "page_count": pages,
    }


class FakeSqlClient:
    """Serves relation rows by query source name and records every statement it sees."""

    def __init__(self, metadata=None, usage=None, physical=None, stats_since=None, failures=None):
        self.relations = {
            "index_metadata": metadata or [],
            "index_usage_stats": usage or [],
            "index_physical_stats": physical or [],
            "usage_stats_since": [{"sqlserver_start_time": stats_since}] if stats_since else [],
        }
        self.failures = failures or {}
        self.calls = []

    def execute_query(self, database, query, params=(), source="query"):
        self.calls.append({"database": database, "source": source, "query": query})
        if source in self.failures:
            raise self.failures[source]
        return copy.deepcopy(self.relations.get(source, []))

    def ping(self, database=None):
        self.execute_query(database, "SELECT 1 AS ok", source="ping")
        return True


@pytest.fixture
def thresholds():
    return AdvisorThresholds(low_frag_threshold=5.0, high_frag_threshold=30.0,
                             min_page_count=1000, min_update_count=100)


@pytest.fixture
def settings(thresholds):
    return AdvisorSettings(target_database="SalesDB", thresholds=thresholds, mock_mode=True)


@pytest.fixture
def sales_client():
    """Orders/Customers catalog with a mix of used, unused, fragmented and small indexes."""
    return FakeSqlClient(
        metadata=[
            identity_row(100, 1, "dbo", "Orders", "PK_Orders", "CLUSTERED"),
            identity_row(100, 2, "dbo", "Orders", "IX_Orders_CustomerId"),
            identity_row(100, 3, "dbo", "Orders", "IX_Orders_Legacy"),
            identity_row(200, 1, "dbo", "Customers", "PK_Customers", "CLUSTERED"),
            identity_row(200, 2, "dbo", "Customers", "IX_Customers_Email"),
            identity_row(300, 2, "audit", "Events", "IX_Events_At"),
        ],
        usage=[
            usage_row(100, 1, seeks=500, scans=2, lookups=40, updates=900,
                      last_user_seek=datetime(2026, 10, 18, 9, 0)),
            usage_row(100, 2, seeks=120, updates=900),
            usage_row(100, 3, updates=900, last_user_update=datetime(2026, 10, 18, 9, 5)),
            usage_row(200, 1, seeks=30, updates=20),
            # 200/2 never accessed; 999/1 belongs to an object outside the catalog
            usage_row(999, 1, seeks=7),
        ],
        physical=[
            physical_row(100, 1, 42.5, 50000),
            physical_row(100, 2, 12.0, 8000),
            physical_row(100, 3, 2.0, 3000),
            physical_row(200, 1, 80.0, 200),
            physical_row(200, 2, 30.0, 1000),
            # 300/2 has no physical stats row
        ],
        stats_since=datetime(2026, 10, 1, 4, 30),
    )


@pytest.fixture
def framework():
    return AgentFramework()


@pytest.fixture
def agent(sales_client, settings, framework):
    agent = IndexAdvisorAgent(sales_client, settings)
    framework.register_agent(agent)
    return agent


@pytest.fixture
def unavailable():
    return SourceUnavailable("index_usage_stats", "VIEW SERVER STATE permission was denied")
