"""
Learning profile - aggregate accuracy, retention and streak metrics.

LearningProfile is a plain value object. LearningProfileTracker owns the one
live profile of a process, folds review and session events into it, and hands
out deep copies so callers never reach into its internal state.
"""

from __future__ import annotations

import copy
import math
import threading
from dataclasses import dataclass, field
from datetime import date

from loguru import logger

from recall.core.errors import ValidationError
from recall.core.models import ReviewEvent, StudySession, is_pass
from recall.study.heatmap import local_day

# EMA smoothing of review accuracy
ACCURACY_ALPHA = 0.3
# Retention is approximated as a fraction of accuracy
RETENTION_FACTOR = 0.9


@dataclass
class PerformanceProfile:
    overall_accuracy: float = 0.0  # 0-100
    retention_rate: float = 0.0  # 0-100
    average_response_time_ms: float = 0.0
    mastery_level: int = 0
    total_reviews: int = 0
    correct_reviews: int = 0
    timed_sessions: int = 0


@dataclass
class StreakData:
    current_streak: int = 0
    longest_streak: int = 0
    total_sessions: int = 0
    last_session_date: date | None = None


@dataclass
class LearningGoals:
    daily_cards: int = 50
    accuracy_target: float = 85.0


@dataclass
class LearningProfile:
    """Aggregate performance summary consumed by the recommendation engine."""

    performance: PerformanceProfile = field(default_factory=PerformanceProfile)
    streaks: StreakData = field(default_factory=StreakData)
    goals: LearningGoals = field(default_factory=LearningGoals)

    def validate(self) -> LearningProfile:
        """Raise ValidationError if a metric is outside its domain."""
        perf = self.performance
        for name in ("overall_accuracy", "retention_rate"):
            value = getattr(perf, name)
            if not isinstance(value, (int, float)) or math.isnan(value) or not 0 <= value <= 100:
                raise ValidationError(
                    f"{name} must be within 0-100, got {value!r}", meta={"field": name}
                )
        if self.streaks.current_streak < 0:
            raise ValidationError(
                "current_streak must not be negative",
                meta={"field": "current_streak", "value": self.streaks.current_streak},
            )
        return self


class LearningProfileTracker:
    """
    Process-wide owner of the learning profile.

    record_review() can be subscribed directly to ReviewRecorder. All
    mutations hold an internal lock.
    """

    def __init__(self, profile: LearningProfile | None = None):
        self._profile = copy.deepcopy(profile) if profile else LearningProfile()
        self._lock = threading.Lock()

    def snapshot(self) -> LearningProfile:
        with self._lock:
            return copy.deepcopy(self._profile)

    def record_review(self, event: ReviewEvent) -> None:
        """Fold one answered card into accuracy, retention and mastery."""
        with self._lock:
            perf = self._profile.performance
            perf.total_reviews += 1
            if is_pass(event.quality):
                perf.correct_reviews += 1

            accuracy = perf.correct_reviews / perf.total_reviews * 100
            if perf.overall_accuracy == 0:
                perf.overall_accuracy = accuracy
            else:
                perf.overall_accuracy = (
                    ACCURACY_ALPHA * accuracy + (1 - ACCURACY_ALPHA) * perf.overall_accuracy
                )
            perf.retention_rate = min(100.0, max(0.0, perf.overall_accuracy * RETENTION_FACTOR))
            perf.mastery_level = round(math.log10(1 + perf.correct_reviews) * 25)

    def record_session(self, session: StudySession) -> None:
        """Advance the daily streak and response-time average with a finished session."""
        day = local_day(session.start_time)
        with self._lock:
            streaks = self._profile.streaks
            last = streaks.last_session_date
            if last is None or (day - last).days > 1:
                streaks.current_streak = 1
            elif (day - last).days == 1:
                streaks.current_streak += 1
            streaks.longest_streak = max(streaks.longest_streak, streaks.current_streak)
            streaks.total_sessions += 1
            if last is None or day > last:
                streaks.last_session_date = day

            if session.average_response_time_ms is not None:
                perf = self._profile.performance
                perf.timed_sessions += 1
                perf.average_response_time_ms += (
                    session.average_response_time_ms - perf.average_response_time_ms
                ) / perf.timed_sessions

            logger.debug(
                f"Profile streak={streaks.current_streak} sessions={streaks.total_sessions}"
            )
