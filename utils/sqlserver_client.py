"""
SqlServerClient: read-only SQL Server client for the index advisor.

Handles:
- ODBC connection string assembly (SQL or integrated authentication)
- Read-only sessions (ApplicationIntent=ReadOnly, readonly connection attribute)
- Per-statement query timeout
- Mock mode with a canned catalog/DMV snapshot for demos and tests

There is no statement-execution path: the advisor only reads.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Optional

from config.settings import AdvisorSettings
from framework.errors import SourceUnavailable

logger = logging.getLogger("index_advisor.client")


def _odbc_value(value: str) -> str:
    """Brace-quote an ODBC connection-string value when it needs it."""
    if any(c in value for c in ";{}=") or value != value.strip():
        return "{" + value.replace("}", "}}") + "}"
    return value


class SqlServerClient:
    """
    Mock-capable client for catalog and DMV reads.
    Opens one short-lived connection per query so concurrent adapters never
    share a connection, and nothing survives between runs.
    """

    def __init__(self, settings: AdvisorSettings, mock_mode: Optional[bool] = None):
        self.settings = settings
        self.mock_mode = settings.mock_mode if mock_mode is None else mock_mode
        self._query_log: list[dict] = []

    def connection_string(self, database: str) -> str:
        s = self.settings
        parts = [
            f"DRIVER={{{s.odbc_driver}}}",
            f"SERVER={s.server},{s.port}",
            f"DATABASE={_odbc_value(database)}",
            "ApplicationIntent=ReadOnly",
        ]
        if s.trusted_connection:
            parts.append("Trusted_Connection=yes")
        else:
            parts.append(f"UID={_odbc_value(s.username or '')}")
            parts.append(f"PWD={_odbc_value(s.password or '')}")
        parts.append(f"Encrypt={'yes' if s.encrypt else 'no'}")
        parts.append(f"TrustServerCertificate={'yes' if s.trust_server_certificate else 'no'}")
        return ";".join(parts) + ";"

    def _connect(self, database: str) -> Any:
        import pyodbc

        conn = pyodbc.connect(
            self.connection_string(database),
            autocommit=True,
            readonly=True,
            timeout=self.settings.query_timeout_seconds,
        )
        conn.timeout = self.settings.query_timeout_seconds
        return conn

    def execute_query(self, database: str, query: str, params: tuple = (),
                      source: str = "query") -> list[dict]:
        """Run a SELECT in the context of `database` and return rows as dicts."""
        self._query_log.append({"database": database, "source": source, "query": query})

        if self.mock_mode:
            return MockConnection(database).execute_mock(query)

        import pyodbc

        try:
            conn = self._connect(database)
            try:
                cur = conn.cursor()
                cur.execute(query, *params)
                columns = [desc[0] for desc in cur.description] if cur.description else []
                rows = cur.fetchall()
                return [dict(zip(columns, row)) for row in rows]
            finally:
                conn.close()
        except pyodbc.Error as e:
            logger.error(f"[{database}] {source} failed: {e}")
            raise SourceUnavailable(source, str(e)) from e

    def ping(self, database: Optional[str] = None) -> bool:
        from sql import queries

        rows = self.execute_query(database or self.settings.target_database, queries.PING, source="ping")
        return bool(rows) and rows[0].get("ok") == 1

    def get_query_log(self) -> list[dict]:
        return list(self._query_log)


class MockConnection:
    """Canned catalog and DMV rows for a small sales database."""

    def __init__(self, database: str):
        self.database = database
        self._mock_data = self._generate_mock_data()

    def _generate_mock_data(self) -> dict:
        db = self.database
        return {
            "sys.indexes": [
                {"database_name": db, "schema_name": "dbo", "table_name": "Orders", "index_name": "PK_Orders",
                 "object_id": 245575913, "index_id": 1, "type_desc": "CLUSTERED"},
                {"database_name": db, "schema_name": "dbo", "table_name": "Orders", "index_name": "IX_Orders_CustomerId",
                 "object_id": 245575913, "index_id": 2, "type_desc": "NONCLUSTERED"},
                {"database_name": db, "schema_name": "dbo", "table_name": "Orders", "index_name": "IX_Orders_LegacyStatus",
                 "object_id": 245575913, "index_id": 3, "type_desc": "NONCLUSTERED"},
                {"database_name": db, "schema_name": "dbo", "table_name": "Customers", "index_name": "PK_Customers",
                 "object_id": 261575970, "index_id": 1, "type_desc": "CLUSTERED"},
                {"database_name": db, "schema_name": "dbo", "table_name": "Customers", "index_name": "IX_Customers_Email",
                 "object_id": 261575970, "index_id": 2, "type_desc": "NONCLUSTERED"},
                {"database_name": db, "schema_name": "sales", "table_name": "Invoices", "index_name": "CCI_Invoices",
                 "object_id": 277576027, "index_id": 1, "type_desc": "CLUSTERED COLUMNSTORE"},
                {"database_name": db, "schema_name": "sales", "table_name": "Invoices", "index_name": "IX_Invoices_DueDate",
                 "object_id": 277576027, "index_id": 2, "type_desc": "NONCLUSTERED"},
            ],
            "dm_db_index_usage_stats": [
                {"object_id": 245575913, "index_id": 1, "user_seeks": 120000, "user_scans": 40,
                 "user_lookups": 9000, "user_updates": 45000,
                 "last_user_seek": datetime(2026, 10, 18, 9, 15), "last_user_scan": datetime(2026, 10, 17, 22, 0),
                 "last_user_lookup": datetime(2026, 10, 18, 9, 14), "last_user_update": datetime(2026, 10, 18, 9, 16)},
                {"object_id": 245575913, "index_id": 2, "user_seeks": 52000, "user_scans": 3,
                 "user_lookups": 0, "user_updates": 45000,
                 "last_user_seek": datetime(2026, 10, 18, 9, 10), "last_user_scan": datetime(2026, 10, 12, 3, 0),
                 "last_user_lookup": None, "last_user_update": datetime(2026, 10, 18, 9, 16)},
                {"object_id": 245575913, "index_id": 3, "user_seeks": 0, "user_scans": 0,
                 "user_lookups": 0, "user_updates": 45000,
                 "last_user_seek": None, "last_user_scan": None,
                 "last_user_lookup": None, "last_user_update": datetime(2026, 10, 18, 9, 16)},
                {"object_id": 261575970, "index_id": 1, "user_seeks": 8000, "user_scans": 12,
                 "user_lookups": 600, "user_updates": 150,
                 "last_user_seek": datetime(2026, 10, 18, 8, 0), "last_user_scan": datetime(2026, 10, 16, 1, 0),
                 "last_user_lookup": datetime(2026, 10, 18, 7, 55), "last_user_update": datetime(2026, 10, 15, 12, 0)},
                # IX_Customers_Email has never been touched: no usage row
                {"object_id": 277576027, "index_id": 1, "user_seeks": 0, "user_scans": 310,
                 "user_lookups": 0, "user_updates": 90,
                 "last_user_seek": None, "last_user_scan": datetime(2026, 10, 18, 6, 0),
                 "last_user_lookup": None, "last_user_update": datetime(2026, 10, 18, 5, 0)},
                {"object_id": 277576027, "index_id": 2, "user_seeks": 0, "user_scans": 0,
                 "user_lookups": 0, "user_updates": 2400,
                 "last_user_seek": None, "last_user_scan": None,
                 "last_user_lookup": None, "last_user_update": datetime(2026, 10, 18, 5, 0)},
            ],
            "dm_db_index_physical_stats": [
                {"object_id": 245575913, "index_id": 1, "partition_number": 1,
                 "avg_fragmentation_in_percent": 42.7, "page_count": 185000},
                {"object_id": 245575913, "index_id": 2, "partition_number": 1,
                 "avg_fragmentation_in_percent": 12.4, "page_count": 26000},
                {"object_id": 245575913, "index_id": 3, "partition_number": 1,
                 "avg_fragmentation_in_percent": 3.1, "page_count": 14000},
                {"object_id": 261575970, "index_id": 1, "partition_number": 1,
                 "avg_fragmentation_in_percent": 55.0, "page_count": 400},
                {"object_id": 261575970, "index_id": 2, "partition_number": 1,
                 "avg_fragmentation_in_percent": 8.0, "page_count": 2200},
                # columnstore rowgroups report no fragmentation in LIMITED mode
                {"object_id": 277576027, "index_id": 1, "partition_number": 1,
                 "avg_fragmentation_in_percent": None, "page_count": 0},
                {"object_id": 277576027, "index_id": 2, "partition_number": 1,
                 "avg_fragmentation_in_percent": 35.0, "page_count": 3000},
                {"object_id": 277576027, "index_id": 2, "partition_number": 2,
                 "avg_fragmentation_in_percent": 15.0, "page_count": 1000},
            ],
            "dm_os_sys_info": [
                {"sqlserver_start_time": datetime(2026, 10, 1, 4, 30)},
            ],
        }

    def execute_mock(self, query: str) -> list[dict]:
        """Return mock data based on the query pattern."""
        q = query.lower()
        if "dm_db_index_usage_stats" in q:
            return self._mock_data["dm_db_index_usage_stats"]
        elif "dm_db_index_physical_stats" in q:
            return self._mock_data["dm_db_index_physical_stats"]
        elif "dm_os_sys_info" in q:
            return self._mock_data["dm_os_sys_info"]
        elif "sys.indexes" in q:
            return self._mock_data["sys.indexes"]
        else:
            return [{"ok": 1}]
