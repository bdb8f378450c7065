"""
Study Module - per-card scheduling and review bookkeeping.

Provides:
- SM-2 interval/ease computation
- The review transaction (before/after snapshots)
- Activity heatmap aggregation
"""

from recall.study.heatmap import HeatmapAggregator, HeatmapWorker, bucket_sessions
from recall.study.review_recorder import (
    ReviewOutcome,
    ReviewRecorder,
    ReviewRequest,
    record_review,
)
from recall.study.scheduler import SM2Scheduler, retention_score, sm2_update

__all__ = [
    "SM2Scheduler",
    "sm2_update",
    "retention_score",
    "ReviewOutcome",
    "ReviewRecorder",
    "ReviewRequest",
    "record_review",
    "HeatmapAggregator",
    "HeatmapWorker",
    "bucket_sessions",
]
