"""
Analytics package exports.
"""

from recall.analytics.service import build_learning_stats
from recall.analytics.types import LearningStats

__all__ = [
    "build_learning_stats",
    "LearningStats",
]
