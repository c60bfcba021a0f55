from .agent import IndexAdvisorAgent
from .models import ClassifiedIndex, IndexKey, IndexSnapshot, RecommendedAction
from .reports import IndexReports

__all__ = [
    "IndexAdvisorAgent",
    "ClassifiedIndex",
    "IndexKey",
    "IndexSnapshot",
    "RecommendedAction",
    "IndexReports",
]
