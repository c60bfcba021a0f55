"""Index health classification: join the three relations and pick one action per index."""

from __future__ import annotations

import logging
from collections import Counter
from typing import Optional

from config.settings import AdvisorThresholds

from .models import (
    ClassifiedIndex, IndexIdentity, IndexSnapshot, PhysicalStats,
    RecommendedAction, UsageCounters,
)

logger = logging.getLogger("index_advisor.classifier")


def recommend_action(page_count: Optional[int], avg_fragmentation_percent: Optional[float],
                     thresholds: AdvisorThresholds) -> RecommendedAction:
    """
    Rules are evaluated in order, first match wins:
      1. no page count                                       -> N/A
      2. small index, no fragmentation value, or below low   -> NONE
      3. low <= fragmentation < high                         -> REORGANIZE
      4. fragmentation >= high                               -> REBUILD
    Usage counters never influence the result.
    """
    if page_count is None:
        return RecommendedAction.NOT_APPLICABLE
    if (page_count < thresholds.min_page_count
            or avg_fragmentation_percent is None
            or avg_fragmentation_percent < thresholds.low_frag_threshold):
        return RecommendedAction.NONE
    if avg_fragmentation_percent < thresholds.high_frag_threshold:
        return RecommendedAction.REORGANIZE
    return RecommendedAction.REBUILD


def classify_index(identity: IndexIdentity, usage: Optional[UsageCounters],
                   physical: Optional[PhysicalStats],
                   thresholds: AdvisorThresholds) -> ClassifiedIndex:
    """Build one ClassifiedIndex; absent usage is all-zero, absent physical stats stay absent."""
    if usage is None:
        usage = UsageCounters.zero(identity.key)
    if physical is None:
        action = RecommendedAction.NOT_APPLICABLE
    else:
        action = recommend_action(physical.page_count, physical.avg_fragmentation_percent, thresholds)
    return ClassifiedIndex(identity=identity, usage=usage, physical=physical, recommended_action=action)


def classify_snapshot(snapshot: IndexSnapshot, thresholds: AdvisorThresholds) -> list[ClassifiedIndex]:
    """Left-join identity with usage and physical stats; one row per catalog index."""
    classified = [
        classify_index(
            identity,
            snapshot.usage.get(identity.key),
            snapshot.physical.get(identity.key),
            thresholds,
        )
        for identity in snapshot.indexes
    ]

    if logger.isEnabledFor(logging.DEBUG):
        by_action = Counter(c.recommended_action.value for c in classified)
        logger.debug(f"Classified {len(classified)} indexes in {snapshot.database_name}: {dict(by_action)}")
    return classified


class ClassifierMixin:
    """Mixin exposing classification as an agent tool."""

    def classify_indexes(self, snapshot: IndexSnapshot) -> list[ClassifiedIndex]:
        classified = classify_snapshot(snapshot, self.settings.thresholds)
        logger.info(f"[{snapshot.database_name}] {len(classified)} indexes classified")
        return classified
