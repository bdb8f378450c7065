"""
Recommendation Engine - turns a learning profile into ranked actions.

Decision table (several rows may fire at once):

    accuracy > 90 and retention < 60  -> adjust-difficulty-up, add-micro-session
    retention < 40                    -> add-micro-session
    streak >= streak bonus threshold  -> celebrate-streak
    accuracy < 50                     -> adjust-difficulty-down

Extended rows (on by default, see Settings.recommendation_extended_rules):

    streak == 0                               -> start-streak
    streak >= 5 and 70 <= accuracy < 90       -> start-challenge-set

Results are ranked by priority then estimated benefit and de-duplicated by
action, keeping the highest ranked entry.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from loguru import logger

from recall.analytics.learning_profile import LearningProfile


class RecommendationType(str, Enum):
    STUDY = "study"
    REVIEW = "review"
    BREAK = "break"
    DIFFICULTY = "difficulty"
    CONTENT = "content"


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"

    @property
    def rank(self) -> int:
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {Priority.LOW: 1, Priority.MEDIUM: 2, Priority.HIGH: 3, Priority.URGENT: 4}


@dataclass(frozen=True)
class Recommendation:
    """A suggested action for the presentation layer."""

    action: str
    type: RecommendationType
    priority: Priority
    title: str
    rationale: str = ""
    estimated_benefit: float = 0.5
    confidence: float = 0.5


@dataclass(frozen=True)
class Rule:
    name: str
    condition: Callable[[LearningProfile], bool]
    recommendations: tuple[Recommendation, ...]


DIFFICULTY_UP = Recommendation(
    action="adjust-difficulty-up",
    type=RecommendationType.DIFFICULTY,
    priority=Priority.MEDIUM,
    title="Raise the difficulty",
    rationale="High short-term accuracy with poor retention points to material that is too easy.",
    estimated_benefit=0.7,
    confidence=0.85,
)

MICRO_SESSION = Recommendation(
    action="add-micro-session",
    type=RecommendationType.REVIEW,
    priority=Priority.HIGH,
    title="Add a micro-session",
    rationale="A short extra review session today reinforces fragile cards.",
    estimated_benefit=0.75,
    confidence=0.75,
)

RETENTION_RESCUE = Recommendation(
    action="add-micro-session",
    type=RecommendationType.REVIEW,
    priority=Priority.URGENT,
    title="Rescue retention",
    rationale="Retention is failing; extra spaced reinforcement is needed regardless of accuracy.",
    estimated_benefit=0.8,
    confidence=0.8,
)

CELEBRATE_STREAK = Recommendation(
    action="celebrate-streak",
    type=RecommendationType.STUDY,
    priority=Priority.LOW,
    title="Keep the streak going",
    rationale="Acknowledging a sustained streak reinforces the study habit.",
    estimated_benefit=0.5,
    confidence=0.9,
)

DIFFICULTY_DOWN = Recommendation(
    action="adjust-difficulty-down",
    type=RecommendationType.DIFFICULTY,
    priority=Priority.HIGH,
    title="Lower the difficulty",
    rationale="Accuracy is low; easier cards rebuild the foundations.",
    estimated_benefit=0.8,
    confidence=0.9,
)

START_STREAK = Recommendation(
    action="start-streak",
    type=RecommendationType.STUDY,
    priority=Priority.MEDIUM,
    title="Restart your routine",
    rationale="A new daily streak builds a regular habit.",
    estimated_benefit=0.7,
    confidence=0.8,
)

CHALLENGE_SET = Recommendation(
    action="start-challenge-set",
    type=RecommendationType.STUDY,
    priority=Priority.MEDIUM,
    title="Try a challenge set",
    rationale="A steady streak at moderate accuracy can absorb a small batch of harder cards.",
    estimated_benefit=0.65,
    confidence=0.7,
)


class RecommendationEngine:
    """Evaluates the decision table against a profile snapshot."""

    def __init__(
        self,
        streak_bonus_threshold: int = 5,
        extended_rules: bool = True,
        max_results: int = 10,
    ):
        self.streak_bonus_threshold = streak_bonus_threshold
        self.extended_rules = extended_rules
        self.max_results = max_results
        self.rules = self._build_rules()

    @classmethod
    def from_settings(cls, settings=None) -> RecommendationEngine:
        if settings is None:
            from recall.config import get_settings

            settings = get_settings()
        return cls(
            streak_bonus_threshold=settings.streak_bonus_threshold,
            extended_rules=settings.recommendation_extended_rules,
            max_results=settings.max_recommendations,
        )

    def _build_rules(self) -> list[Rule]:
        def accuracy(p: LearningProfile) -> float:
            return p.performance.overall_accuracy

        def retention(p: LearningProfile) -> float:
            return p.performance.retention_rate

        def streak(p: LearningProfile) -> int:
            return p.streaks.current_streak

        rules = [
            Rule(
                "over_easy",
                lambda p: accuracy(p) > 90 and retention(p) < 60,
                (DIFFICULTY_UP, MICRO_SESSION),
            ),
            Rule("retention_failure", lambda p: retention(p) < 40, (RETENTION_RESCUE,)),
            Rule(
                "streak_bonus",
                lambda p: streak(p) >= self.streak_bonus_threshold,
                (CELEBRATE_STREAK,),
            ),
            Rule("overloaded", lambda p: accuracy(p) < 50, (DIFFICULTY_DOWN,)),
        ]
        if self.extended_rules:
            rules += [
                Rule("no_streak", lambda p: streak(p) == 0, (START_STREAK,)),
                Rule(
                    "steady_streak",
                    lambda p: streak(p) >= 5 and 70 <= accuracy(p) < 90,
                    (CHALLENGE_SET,),
                ),
            ]
        return rules

    def generate_recommendations(self, profile: LearningProfile) -> list[Recommendation]:
        """
        Rank the actions the profile calls for.

        Raises:
            ValidationError: accuracy/retention outside 0-100 or negative streak
        """
        profile.validate()

        fired: list[Recommendation] = []
        for rule in self.rules:
            if rule.condition(profile):
                fired.extend(rule.recommendations)

        fired.sort(key=lambda r: (-r.priority.rank, -r.estimated_benefit))

        seen: set[str] = set()
        ranked: list[Recommendation] = []
        for rec in fired:
            if rec.action not in seen:
                seen.add(rec.action)
                ranked.append(rec)

        ranked = ranked[: self.max_results]
        logger.debug(f"Recommendations: {[r.action for r in ranked]}")
        return ranked
