"""Source adapters: index catalog, usage telemetry, and physical stats for one database."""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime
from typing import Optional

from framework.agent_framework import EventType
from framework.errors import SourceUnavailable
from sql import queries

from .models import IndexIdentity, IndexKey, IndexSnapshot, PhysicalStats, UsageCounters

logger = logging.getLogger("index_advisor.sources")

METADATA_SOURCE = "index_metadata"
USAGE_SOURCE = "index_usage_stats"
PHYSICAL_SOURCE = "index_physical_stats"
STATS_SINCE_SOURCE = "usage_stats_since"


def _key(row: dict, source: str) -> IndexKey:
    try:
        return IndexKey(object_id=int(row["object_id"]), index_id=int(row["index_id"]))
    except (KeyError, TypeError, ValueError) as e:
        raise SourceUnavailable(source, f"row without a valid (object_id, index_id): {row!r}") from e


def _count(row: dict, column: str, source: str) -> int:
    value = row.get(column)
    if value is None:
        return 0
    try:
        value = int(value)
    except (TypeError, ValueError) as e:
        raise SourceUnavailable(source, f"non-numeric {column}: {value!r}") from e
    if value < 0:
        raise SourceUnavailable(source, f"negative {column} ({value})")
    return value


def _fragmentation(row: dict) -> Optional[float]:
    value = row.get("avg_fragmentation_in_percent")
    if value is None:
        return None
    try:
        value = float(value)
    except (TypeError, ValueError) as e:
        raise SourceUnavailable(PHYSICAL_SOURCE, f"non-numeric avg_fragmentation_in_percent: {value!r}") from e
    if not 0.0 <= value <= 100.0:
        raise SourceUnavailable(PHYSICAL_SOURCE, f"avg_fragmentation_in_percent out of range ({value})")
    return value


def merge_partitions(key: IndexKey, partitions: list[dict]) -> Optional[PhysicalStats]:
    """
    Collapse per-partition rows of one index into one PhysicalStats.
    page_count is summed; fragmentation is page-weighted over partitions that
    report it. Returns None when no partition reports a page count.
    Malformed page counts or fragmentation values raise SourceUnavailable.
    """
    # (pages, fragmentation) for partitions that report a page count
    counted = [
        (_count(p, "page_count", PHYSICAL_SOURCE), _fragmentation(p))
        for p in partitions if p.get("page_count") is not None
    ]
    if not counted:
        return None
    page_count = sum(pages for pages, _ in counted)

    fragmented = [(pages, frag) for pages, frag in counted if frag is not None]
    if not fragmented:
        avg_fragmentation = None
    elif len(fragmented) == 1:
        avg_fragmentation = fragmented[0][1]
    else:
        weight = sum(pages for pages, _ in fragmented)
        if weight == 0:
            avg_fragmentation = max(frag for _, frag in fragmented)
        else:
            avg_fragmentation = sum(frag * pages for pages, frag in fragmented) / weight

    return PhysicalStats(key=key, avg_fragmentation_percent=avg_fragmentation, page_count=page_count)


class SourceMixin:
    """Mixin for reading the three upstream relations of a target database."""

    def fetch_index_metadata(self, database: str) -> list[IndexIdentity]:
        """Secondary indexes (index_id > 0) on user tables; heaps are excluded."""
        rows = self.client.execute_query(database, queries.INDEX_METADATA, source=METADATA_SOURCE)

        identities: dict[IndexKey, IndexIdentity] = {}
        for row in rows:
            key = _key(row, METADATA_SOURCE)
            if key.index_id <= 0:
                continue
            if key in identities:
                raise SourceUnavailable(METADATA_SOURCE, f"duplicate catalog entry for {key}")
            names = (row.get("schema_name"), row.get("table_name"), row.get("index_name"))
            if None in names:
                raise SourceUnavailable(METADATA_SOURCE, f"unnamed object or index for {key}")
            identities[key] = IndexIdentity(
                key=key,
                database_name=row.get("database_name") or database,
                schema_name=names[0],
                table_name=names[1],
                index_name=names[2],
                type_desc=row.get("type_desc") or "",
            )

        logger.debug(f"[{database}] {len(identities)} indexes in catalog")
        return list(identities.values())

    def fetch_usage_counters(self, database: str) -> dict[IndexKey, UsageCounters]:
        """Usage rows keyed by index; indexes never accessed simply have no entry."""
        rows = self.client.execute_query(database, queries.INDEX_USAGE_STATS, source=USAGE_SOURCE)

        usage: dict[IndexKey, UsageCounters] = {}
        for row in rows:
            key = _key(row, USAGE_SOURCE)
            if key in usage:
                raise SourceUnavailable(USAGE_SOURCE, f"duplicate usage row for {key}")
            usage[key] = UsageCounters(
                key=key,
                user_seeks=_count(row, "user_seeks", USAGE_SOURCE),
                user_scans=_count(row, "user_scans", USAGE_SOURCE),
                user_lookups=_count(row, "user_lookups", USAGE_SOURCE),
                user_updates=_count(row, "user_updates", USAGE_SOURCE),
                last_user_seek=row.get("last_user_seek"),
                last_user_scan=row.get("last_user_scan"),
                last_user_lookup=row.get("last_user_lookup"),
                last_user_update=row.get("last_user_update"),
            )

        logger.debug(f"[{database}] {len(usage)} usage rows")
        return usage

    def fetch_physical_stats(self, database: str) -> dict[IndexKey, PhysicalStats]:
        """LIMITED-mode fragmentation and page counts, one record per index."""
        rows = self.client.execute_query(database, queries.INDEX_PHYSICAL_STATS, source=PHYSICAL_SOURCE)

        partitions: dict[IndexKey, list[dict]] = {}
        for row in rows:
            partitions.setdefault(_key(row, PHYSICAL_SOURCE), []).append(row)

        physical = {}
        for key, parts in partitions.items():
            stats = merge_partitions(key, parts)
            if stats is not None:
                physical[key] = stats

        logger.debug(f"[{database}] {len(physical)} physical stats records from {len(rows)} rows")
        return physical

    def fetch_stats_since(self, database: str) -> Optional[datetime]:
        """Engine start time: usage counters only cover activity since then."""
        rows = self.client.execute_query(database, queries.USAGE_STATS_SINCE, source=STATS_SINCE_SOURCE)
        return rows[0].get("sqlserver_start_time") if rows else None

    async def collect_index_snapshot(self, database: Optional[str] = None) -> IndexSnapshot:
        """
        Read all relations concurrently and wait for every one of them.
        Any failure, or running past snapshot_timeout_seconds, aborts with
        SourceUnavailable; there is no partial snapshot.
        Worker threads are not cancelled on expiry: a query still running is
        only stopped by the driver's query_timeout_seconds.
        """
        database = database or self.settings.target_database
        start = time.time()

        gathered = asyncio.gather(
            asyncio.to_thread(self.fetch_index_metadata, database),
            asyncio.to_thread(self.fetch_usage_counters, database),
            asyncio.to_thread(self.fetch_physical_stats, database),
            asyncio.to_thread(self.fetch_stats_since, database),
        )
        try:
            identities, usage, physical, stats_since = await asyncio.wait_for(
                gathered, timeout=self.settings.snapshot_timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            raise SourceUnavailable(
                "snapshot", f"timed out after {self.settings.snapshot_timeout_seconds}s",
            ) from e

        snapshot = IndexSnapshot(
            database_name=database,
            indexes=tuple(identities),
            usage=usage,
            physical=physical,
            usage_stats_since=stats_since,
        )
        logger.info(
            f"[{database}] Snapshot collected in {time.time() - start:.2f}s: "
            f"{len(identities)} indexes, {len(usage)} usage rows, {len(physical)} physical stats"
        )
        self.emit_event(EventType.INDEX_SNAPSHOT_COLLECTED, {
            "database_name": database,
            "indexes": len(identities),
        })
        return snapshot
