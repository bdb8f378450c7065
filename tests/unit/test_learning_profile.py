"""
Unit tests for LearningProfileTracker.
"""

from datetime import timedelta

import pytest

from recall.analytics.learning_profile import LearningProfile, LearningProfileTracker
from recall.core.errors import ValidationError
from recall.core.models import ReviewEvent


@pytest.fixture
def tracker():
    return LearningProfileTracker()


def event(quality, now):
    return ReviewEvent(card_id="card-001", quality=quality, reviewed_at=now)


class TestReviews:
    def test_first_pass_sets_accuracy(self, tracker, now):
        tracker.record_review(event(5, now))

        perf = tracker.snapshot().performance
        assert perf.overall_accuracy == pytest.approx(100.0)
        assert perf.retention_rate == pytest.approx(90.0)
        assert perf.total_reviews == 1
        assert perf.correct_reviews == 1

    def test_accuracy_is_smoothed(self, tracker, now):
        tracker.record_review(event(4, now))
        tracker.record_review(event(1, now))

        perf = tracker.snapshot().performance
        # 0.3 * 50 + 0.7 * 100
        assert perf.overall_accuracy == pytest.approx(85.0)
        assert perf.retention_rate == pytest.approx(76.5)

    def test_mastery_grows_with_correct_reviews(self, tracker, now):
        for _ in range(9):
            tracker.record_review(event(5, now))

        assert tracker.snapshot().performance.mastery_level == 25

    def test_profile_stays_valid(self, tracker, now):
        for q in (0, 5, 2, 3, 1, 5, 5):
            tracker.record_review(event(q, now))

        tracker.snapshot().validate()


class TestSessions:
    def test_consecutive_days_extend_streak(self, tracker, session_factory):
        for days_ago in (2, 1, 0):
            tracker.record_session(session_factory(days_ago=days_ago))

        streaks = tracker.snapshot().streaks
        assert streaks.current_streak == 3
        assert streaks.longest_streak == 3
        assert streaks.total_sessions == 3

    def test_gap_resets_streak(self, tracker, session_factory):
        for days_ago in (7, 6, 5, 0):
            tracker.record_session(session_factory(days_ago=days_ago))

        streaks = tracker.snapshot().streaks
        assert streaks.current_streak == 1
        assert streaks.longest_streak == 3

    def test_same_day_sessions_count_once(self, tracker, session_factory):
        tracker.record_session(session_factory(days_ago=0, id="a"))
        tracker.record_session(session_factory(days_ago=0, id="b"))

        streaks = tracker.snapshot().streaks
        assert streaks.current_streak == 1
        assert streaks.total_sessions == 2

    def test_response_time_average_skips_untimed(self, tracker, session_factory):
        tracker.record_session(session_factory(days_ago=1, response_ms=1000))
        tracker.record_session(session_factory(days_ago=1, id="untimed"))
        tracker.record_session(session_factory(days_ago=0, response_ms=3000))

        perf = tracker.snapshot().performance
        assert perf.average_response_time_ms == pytest.approx(2000)
        assert perf.timed_sessions == 2


def test_snapshot_is_a_copy(tracker, now):
    snap = tracker.snapshot()
    snap.performance.overall_accuracy = 99

    assert tracker.snapshot().performance.overall_accuracy == 0


def test_validate_rejects_negative_streak():
    p = LearningProfile()
    p.streaks.current_streak = -1

    with pytest.raises(ValidationError):
        p.validate()


def test_seed_profile_is_copied(now):
    seed = LearningProfile()
    tracker = LearningProfileTracker(seed)

    tracker.record_review(event(5, now + timedelta(minutes=1)))

    assert seed.performance.total_reviews == 0
