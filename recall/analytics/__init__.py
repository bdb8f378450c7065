"""
Analytics Module - insights and adaptive recommendations.

Provides:
- InsightEngine: leech / due surge / stagnation / fast lane / slow response / tag gap detection
- LearningProfileTracker: accuracy, retention and streak aggregation
- RecommendationEngine: decision table over the learning profile
"""

from recall.analytics.insight_engine import InsightEngine, InsightThresholds
from recall.analytics.learning_profile import (
    LearningGoals,
    LearningProfile,
    LearningProfileTracker,
    PerformanceProfile,
    StreakData,
)
from recall.analytics.recommendation_engine import (
    Priority,
    Recommendation,
    RecommendationEngine,
    RecommendationType,
)

__all__ = [
    "InsightEngine",
    "InsightThresholds",
    "LearningGoals",
    "LearningProfile",
    "LearningProfileTracker",
    "PerformanceProfile",
    "StreakData",
    "Priority",
    "Recommendation",
    "RecommendationEngine",
    "RecommendationType",
]
