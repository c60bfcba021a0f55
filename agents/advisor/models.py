"""Index advisor domain records. All of them are immutable and built fresh per run."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional


class RecommendedAction(Enum):
    NONE = "NONE"
    REORGANIZE = "REORGANIZE"
    REBUILD = "REBUILD"
    NOT_APPLICABLE = "N/A"  # no physical stats row for the index


MAINTENANCE_ACTIONS = (RecommendedAction.REBUILD, RecommendedAction.REORGANIZE)


@dataclass(frozen=True, order=True)
class IndexKey:
    """(object_id, index_id) within one database."""
    object_id: int
    index_id: int


@dataclass(frozen=True)
class IndexIdentity:
    """Catalog entry for one secondary index on a user table."""
    key: IndexKey
    database_name: str
    schema_name: str
    table_name: str
    index_name: str
    type_desc: str


@dataclass(frozen=True)
class UsageCounters:
    """Cumulative usage since the engine's statistics were last reset."""
    key: IndexKey
    user_seeks: int = 0
    user_scans: int = 0
    user_lookups: int = 0
    user_updates: int = 0
    last_user_seek: Optional[datetime] = None
    last_user_scan: Optional[datetime] = None
    last_user_lookup: Optional[datetime] = None
    last_user_update: Optional[datetime] = None

    @classmethod
    def zero(cls, key: IndexKey) -> "UsageCounters":
        """Usage for an index the engine has never touched."""
        return cls(key=key)


@dataclass(frozen=True)
class PhysicalStats:
    key: IndexKey
    avg_fragmentation_percent: Optional[float] = None
    page_count: Optional[int] = None


@dataclass(frozen=True)
class ClassifiedIndex:
    """One row of the joined dataset, with its recommendation."""
    identity: IndexIdentity
    usage: UsageCounters
    physical: Optional[PhysicalStats]
    recommended_action: RecommendedAction

    @property
    def key(self) -> IndexKey:
        return self.identity.key

    @property
    def total_reads(self) -> int:
        return self.usage.user_seeks + self.usage.user_scans + self.usage.user_lookups

    @property
    def total_writes(self) -> int:
        return self.usage.user_updates

    @property
    def page_count(self) -> Optional[int]:
        return self.physical.page_count if self.physical else None

    @property
    def avg_fragmentation_percent(self) -> Optional[float]:
        return self.physical.avg_fragmentation_percent if self.physical else None


@dataclass(frozen=True)
class IndexSnapshot:
    """The three upstream relations for one database, read in one invocation."""
    database_name: str
    indexes: tuple[IndexIdentity, ...]
    usage: dict[IndexKey, UsageCounters] = field(default_factory=dict)
    physical: dict[IndexKey, PhysicalStats] = field(default_factory=dict)
    usage_stats_since: Optional[datetime] = None
