"""
Domain models for the recall scheduler.

Plain dataclasses shared by the scheduler, the review recorder, the analytics
engines and the repositories. Persistence models live in recall.db.models and
are converted to these at the repository boundary.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any

from recall.core.errors import ValidationError

# Pass threshold on the 0-5 SM-2 quality scale
PASS_QUALITY = 3
MIN_QUALITY = 0
MAX_QUALITY = 5

DEFAULT_EASE = 2.5

# Card fields a review is allowed to change
REVIEW_FIELDS = (
    "easiness_factor",
    "interval",
    "repetition",
    "last_review",
    "next_review",
    "total_reviews",
    "correct_reviews",
)


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_aware(ts: datetime) -> datetime:
    """Treat naive timestamps as UTC."""
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts


def is_pass(quality: int) -> bool:
    return quality >= PASS_QUALITY


@dataclass(frozen=True)
class ReviewState:
    """SM-2 memory state of a card."""

    easiness_factor: float = DEFAULT_EASE
    interval: int = 0  # days
    repetition: int = 0
    last_review: datetime | None = None
    next_review: datetime | None = None


@dataclass
class Card:
    """A flashcard together with its review state and durable counters."""

    id: str
    easiness_factor: float = DEFAULT_EASE
    interval: int = 0
    repetition: int = 0
    last_review: datetime | None = None
    next_review: datetime | None = None
    total_reviews: int = 0
    correct_reviews: int = 0
    tags: list[str] = field(default_factory=list)
    deck_id: str | None = None

    @property
    def review_state(self) -> ReviewState:
        return ReviewState(
            easiness_factor=self.easiness_factor,
            interval=self.interval,
            repetition=self.repetition,
            last_review=self.last_review,
            next_review=self.next_review,
        )

    @property
    def failures(self) -> int:
        return self.total_reviews - self.correct_reviews

    @property
    def success_rate(self) -> float:
        if self.total_reviews == 0:
            return 0.0
        return self.correct_reviews / self.total_reviews

    def snapshot(self) -> Card:
        """Independent copy, safe to hand out as a before/after image."""
        return replace(self, tags=list(self.tags))

    def with_patch(self, patch: dict[str, Any]) -> Card:
        """Copy of the card with patch applied; unknown keys are rejected."""
        known = {f.name for f in fields(self)}
        unknown = set(patch) - known
        if unknown:
            raise ValidationError(
                f"Unknown card fields: {sorted(unknown)}", meta={"fields": sorted(unknown)}
            )
        return replace(self.snapshot(), **patch)


@dataclass(frozen=True)
class ReviewEvent:
    """One answered card. Drives a review transaction."""

    card_id: str
    quality: int
    reviewed_at: datetime


@dataclass
class StudySession:
    """A finished (or running) study session."""

    id: str
    start_time: datetime
    cards_studied: int = 0
    end_time: datetime | None = None
    correct_answers: int = 0
    average_response_time_ms: float | None = None
    card_ids: list[str] = field(default_factory=list)
    deck_id: str | None = None


class InsightType(str, Enum):
    LEECH = "leech"
    DUE_SURGE = "due_surge"
    STAGNATION = "stagnation"
    FAST_LANE = "fast_lane"
    SLOW_RESPONSE = "slow_response"
    TAG_GAP = "tag_gap"


class InsightSeverity(str, Enum):
    INFO = "info"
    WARN = "warn"
    CRITICAL = "critical"


@dataclass(frozen=True)
class StudyInsight:
    """A single finding of the insight engine."""

    id: str
    type: InsightType
    severity: InsightSeverity
    title: str
    detail: str
    created: datetime
    meta: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class InsightSnapshot:
    """All insights of one scan, in detection order."""

    generated_at: datetime
    insights: list[StudyInsight] = field(default_factory=list)

    def of_type(self, insight_type: InsightType) -> list[StudyInsight]:
        return [i for i in self.insights if i.type == insight_type]


@dataclass(frozen=True)
class DayHeat:
    """Activity bucket of the heatmap."""

    day: date
    reviews: int = 0
