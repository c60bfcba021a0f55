"""
Centralized T-SQL for the index advisor.
Adapters import named constants from here.
Every statement is a read-only SELECT against catalog views and DMVs, and
runs in the context of the target database (DB_ID() / DB_NAME()).
"""

# =============================================================================
# Metadata: secondary indexes on user tables (heaps excluded)
# =============================================================================

INDEX_METADATA = """
    SELECT DB_NAME()                       AS database_name,
           OBJECT_SCHEMA_NAME(i.object_id) AS schema_name,
           OBJECT_NAME(i.object_id)        AS table_name,
           i.name                          AS index_name,
           i.object_id,
           i.index_id,
           i.type_desc
    FROM sys.indexes AS i
    INNER JOIN sys.objects AS o
        ON o.object_id = i.object_id
    WHERE o.type = 'U'
      AND i.index_id > 0
"""

# =============================================================================
# Usage telemetry (reset on engine restart)
# =============================================================================

INDEX_USAGE_STATS = """
    SELECT us.object_id,
           us.index_id,
           us.user_seeks,
           us.user_scans,
           us.user_lookups,
           us.user_updates,
           us.last_user_seek,
           us.last_user_scan,
           us.last_user_lookup,
           us.last_user_update
    FROM sys.dm_db_index_usage_stats AS us
    WHERE us.database_id = DB_ID()
"""

USAGE_STATS_SINCE = """
    SELECT sqlserver_start_time
    FROM sys.dm_os_sys_info
"""

# =============================================================================
# Physical stats, LIMITED mode to reduce overhead
# One row per partition; LOB/row-overflow allocation units are skipped
# =============================================================================

INDEX_PHYSICAL_STATS = """
    SELECT ps.object_id,
           ps.index_id,
           ps.partition_number,
           ps.avg_fragmentation_in_percent,
           ps.page_count
    FROM sys.dm_db_index_physical_stats
    (
        DB_ID(),          -- current database
        NULL,             -- all objects
        NULL,             -- all indexes
        NULL,             -- all partitions
        'LIMITED'
    ) AS ps
    WHERE ps.index_id > 0
      AND ps.alloc_unit_type_desc = 'IN_ROW_DATA'
"""

# =============================================================================
# Connectivity probe
# =============================================================================

PING = "SELECT 1 AS ok"
