"""
Unit tests for RecommendationEngine.
"""

import pytest

from recall.analytics.learning_profile import LearningProfile, PerformanceProfile, StreakData
from recall.analytics.recommendation_engine import Priority, RecommendationEngine
from recall.core.errors import ValidationError


def profile(accuracy: float, retention: float, streak: int) -> LearningProfile:
    return LearningProfile(
        performance=PerformanceProfile(overall_accuracy=accuracy, retention_rate=retention),
        streaks=StreakData(current_streak=streak),
    )


def actions(recs):
    return [r.action for r in recs]


@pytest.fixture
def engine():
    return RecommendationEngine()


class TestDecisionTable:
    def test_over_easy_material(self, engine):
        recs = engine.generate_recommendations(profile(92, 55, 6))

        assert "adjust-difficulty-up" in actions(recs)
        assert "add-micro-session" in actions(recs)
        assert "celebrate-streak" in actions(recs)

    def test_over_easy_ranking(self, engine):
        recs = engine.generate_recommendations(profile(92, 55, 6))

        assert actions(recs) == ["add-micro-session", "adjust-difficulty-up", "celebrate-streak"]

    def test_retention_failure_is_urgent(self, engine):
        recs = engine.generate_recommendations(profile(70, 35, 2))

        assert recs[0].action == "add-micro-session"
        assert recs[0].priority == Priority.URGENT

    def test_low_accuracy_lowers_difficulty(self, engine):
        recs = engine.generate_recommendations(profile(45, 70, 1))

        assert actions(recs) == ["adjust-difficulty-down"]
        assert recs[0].priority == Priority.HIGH

    def test_streak_threshold_boundary(self, engine):
        assert "celebrate-streak" in actions(engine.generate_recommendations(profile(60, 60, 5)))
        assert "celebrate-streak" not in actions(engine.generate_recommendations(profile(60, 60, 4)))

    def test_nothing_fires_for_a_balanced_profile(self, engine):
        assert engine.generate_recommendations(profile(60, 60, 3)) == []

    def test_accuracy_exactly_ninety_is_not_over_easy(self, engine):
        recs = engine.generate_recommendations(profile(90, 50, 1))

        assert "adjust-difficulty-up" not in actions(recs)


class TestExtendedRules:
    def test_no_streak_suggests_starting_one(self, engine):
        assert actions(engine.generate_recommendations(profile(60, 60, 0))) == ["start-streak"]

    def test_steady_streak_suggests_challenge(self, engine):
        recs = engine.generate_recommendations(profile(80, 70, 5))

        assert "start-challenge-set" in actions(recs)

    def test_extended_rules_can_be_disabled(self):
        engine = RecommendationEngine(extended_rules=False)

        assert engine.generate_recommendations(profile(80, 70, 0)) == []


class TestRanking:
    def test_duplicate_actions_keep_highest_priority(self, engine):
        # over_easy and retention_failure both propose a micro-session
        recs = engine.generate_recommendations(profile(95, 30, 1))

        micro = [r for r in recs if r.action == "add-micro-session"]
        assert len(micro) == 1
        assert micro[0].priority == Priority.URGENT

    def test_sorted_by_priority(self, engine):
        recs = engine.generate_recommendations(profile(95, 30, 8))

        ranks = [r.priority.rank for r in recs]
        assert ranks == sorted(ranks, reverse=True)

    def test_result_cap(self):
        engine = RecommendationEngine(max_results=1)

        recs = engine.generate_recommendations(profile(92, 55, 6))

        assert actions(recs) == ["add-micro-session"]

    def test_profile_not_mutated(self, engine):
        p = profile(92, 55, 6)

        engine.generate_recommendations(p)

        assert p == profile(92, 55, 6)


class TestValidation:
    @pytest.mark.parametrize(
        "accuracy,retention,streak",
        [(101, 50, 1), (-1, 50, 1), (50, 150, 1), (50, float("nan"), 1), (50, 50, -2)],
    )
    def test_out_of_domain_profile(self, engine, accuracy, retention, streak):
        with pytest.raises(ValidationError):
            engine.generate_recommendations(profile(accuracy, retention, streak))


def test_from_settings():
    from recall.config import Settings

    engine = RecommendationEngine.from_settings(
        Settings(streak_bonus_threshold=3, recommendation_extended_rules=False)
    )

    assert actions(engine.generate_recommendations(profile(60, 60, 3))) == ["celebrate-streak"]
