"""
Insight Engine - pattern detection over review and session history.

Scans the card population and recent sessions and emits a snapshot of typed
insights. Rules are independent and read-only; they are evaluated in a fixed
order so the emission order is stable:

    leech -> due_surge -> stagnation -> fast_lane -> slow_response -> tag_gap

The snapshot is rebuilt from a fresh read on every call, so the engine can be
polled at any cadence.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Callable
from datetime import datetime, timedelta
from statistics import median

from loguru import logger
from pydantic import BaseModel, Field

from recall.core.models import (
    Card,
    InsightSeverity,
    InsightSnapshot,
    InsightType,
    StudyInsight,
    StudySession,
    ensure_aware,
    utc_now,
)
from recall.core.repositories import CardRepository, SessionRepository
from recall.study.heatmap import local_day


class InsightThresholds(BaseModel):
    """Tunable trigger thresholds. Defaults are starting points, not constants."""

    leech_min_failures: int = Field(default=4, ge=1)
    leech_critical_failures: int = Field(default=8, ge=1)
    leech_max_success_rate: float = Field(default=0.45, ge=0, le=1)
    leech_max_repetition: int = Field(default=3, ge=0)
    due_surge_min_cards: int = Field(default=20, ge=0)
    due_surge_ratio: float = Field(default=1.5, gt=0)
    throughput_window_days: int = Field(default=14, ge=1)
    stagnation_days: int = Field(default=2, ge=1)
    fast_lane_min_ease: float = Field(default=2.6, ge=1.3)
    fast_lane_min_repetition: int = Field(default=3, ge=1)
    fast_lane_max_failures: int = Field(default=1, ge=0)
    slow_response_ms: float = Field(default=6000.0, gt=0)
    slow_response_sessions: int = Field(default=5, ge=1)
    tag_gap_min_reviews: int = Field(default=10, ge=1)
    tag_gap_margin: float = Field(default=0.15, ge=0, le=1)
    max_card_insights: int = Field(default=10, ge=1)
    session_limit: int = Field(default=200, ge=1)

    @classmethod
    def from_settings(cls, settings=None) -> InsightThresholds:
        if settings is None:
            from recall.config import get_settings

            settings = get_settings()
        return cls(**settings.get_insight_config())


class InsightEngine:
    """
    Generates InsightSnapshots from injected card and session stores.

    Thresholds come from InsightThresholds; every rule consumes only the slice
    of history it needs and never mutates its inputs.
    """

    def __init__(
        self,
        cards: CardRepository,
        sessions: SessionRepository,
        thresholds: InsightThresholds | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.cards = cards
        self.sessions = sessions
        self.thresholds = thresholds or InsightThresholds()
        self.clock = clock

    async def generate(self) -> InsightSnapshot:
        """Scan current state and return a fresh snapshot."""
        cards = await self.cards.list_cards()
        sessions = await self.sessions.get_recent(self.thresholds.session_limit)
        now = ensure_aware(self.clock())

        insights: list[StudyInsight] = []
        insights.extend(self.detect_leeches(cards, now))
        insights.extend(self.detect_due_surge(cards, sessions, now))
        insights.extend(self.detect_stagnation(sessions, now))
        insights.extend(self.detect_fast_lane(cards, now))
        insights.extend(self.detect_slow_response(sessions, now))
        insights.extend(self.detect_tag_gaps(cards, now))

        logger.info(
            f"Insights generated: {len(insights)} from {len(cards)} cards, {len(sessions)} sessions"
        )
        return InsightSnapshot(generated_at=now, insights=insights)

    # =========================================================================
    # Rules
    # =========================================================================

    def detect_leeches(self, cards: list[Card], now: datetime) -> list[StudyInsight]:
        """Cards that keep failing despite repeated resets."""
        t = self.thresholds
        leeches = [
            c
            for c in cards
            if c.failures >= t.leech_min_failures
            and c.success_rate < t.leech_max_success_rate
            and c.repetition < t.leech_max_repetition
        ]
        leeches.sort(key=lambda c: (-c.failures, c.id))

        insights = []
        for card in leeches[: t.max_card_insights]:
            critical = card.failures >= t.leech_critical_failures
            insights.append(
                StudyInsight(
                    id=f"leech:{card.id}",
                    type=InsightType.LEECH,
                    severity=InsightSeverity.CRITICAL if critical else InsightSeverity.WARN,
                    title="Leech detected",
                    detail=(
                        f"Card {card.id} failed {card.failures} of {card.total_reviews} reviews "
                        f"({card.success_rate:.0%} success)"
                    ),
                    created=now,
                    meta={
                        "card_id": card.id,
                        "failures": card.failures,
                        "success_rate": card.success_rate,
                    },
                )
            )
        return insights

    def daily_throughput(self, sessions: list[StudySession], now: datetime) -> float:
        """Mean cards studied per active day within the throughput window."""
        cutoff = now - timedelta(days=self.thresholds.throughput_window_days)
        per_day: dict = defaultdict(int)
        for s in sessions:
            if ensure_aware(s.start_time) >= cutoff:
                per_day[local_day(s.start_time)] += s.cards_studied
        if not per_day:
            return 0.0
        return sum(per_day.values()) / len(per_day)

    def detect_due_surge(
        self, cards: list[Card], sessions: list[StudySession], now: datetime
    ) -> list[StudyInsight]:
        """More cards due right now than the learner usually gets through."""
        t = self.thresholds
        due = sum(1 for c in cards if c.next_review is not None and ensure_aware(c.next_review) <= now)
        throughput = self.daily_throughput(sessions, now)
        threshold = max(float(t.due_surge_min_cards), throughput * t.due_surge_ratio)

        if due <= threshold:
            return []
        return [
            StudyInsight(
                id="due_surge",
                type=InsightType.DUE_SURGE,
                severity=InsightSeverity.WARN,
                title="Review backlog building up",
                detail=f"{due} cards are due; typical daily throughput is {throughput:.0f}",
                created=now,
                meta={"due_count": due, "daily_throughput": throughput, "threshold": threshold},
            )
        ]

    def detect_stagnation(self, sessions: list[StudySession], now: datetime) -> list[StudyInsight]:
        """No study session within the configured number of days."""
        days = self.thresholds.stagnation_days
        last = max((ensure_aware(s.start_time) for s in sessions), default=None)
        if last is not None and now - last <= timedelta(days=days):
            return []

        days_since = (now - last).days if last is not None else None
        detail = (
            f"No study session in the last {days_since} days"
            if days_since is not None
            else "No study session recorded yet"
        )
        return [
            StudyInsight(
                id="stagnation",
                type=InsightType.STAGNATION,
                severity=InsightSeverity.WARN,
                title="Study activity stalled",
                detail=detail,
                created=now,
                meta={"days_since_last_session": days_since, "threshold_days": days},
            )
        ]

    def detect_fast_lane(self, cards: list[Card], now: datetime) -> list[StudyInsight]:
        """High-ease, rarely failed cards that could be spaced out faster."""
        t = self.thresholds
        fast = [
            c
            for c in cards
            if c.easiness_factor >= t.fast_lane_min_ease
            and c.repetition >= t.fast_lane_min_repetition
            and c.failures <= t.fast_lane_max_failures
        ]
        fast.sort(key=lambda c: (-c.easiness_factor, -c.repetition, c.id))

        return [
            StudyInsight(
                id=f"fast_lane:{card.id}",
                type=InsightType.FAST_LANE,
                severity=InsightSeverity.INFO,
                title="Fast-lane candidate",
                detail=(
                    f"Card {card.id} has ease {card.easiness_factor:.2f} after "
                    f"{card.repetition} straight successes"
                ),
                created=now,
                meta={
                    "card_id": card.id,
                    "easiness_factor": card.easiness_factor,
                    "repetition": card.repetition,
                },
            )
            for card in fast[: t.max_card_insights]
        ]

    def detect_slow_response(self, sessions: list[StudySession], now: datetime) -> list[StudyInsight]:
        """Median answer latency of the latest sessions above threshold."""
        t = self.thresholds
        latest = sorted(
            (s for s in sessions if s.average_response_time_ms is not None),
            key=lambda s: ensure_aware(s.start_time),
            reverse=True,
        )[: t.slow_response_sessions]
        if not latest:
            return []

        med = median(s.average_response_time_ms for s in latest)
        if med <= t.slow_response_ms:
            return []
        return [
            StudyInsight(
                id="slow_response",
                type=InsightType.SLOW_RESPONSE,
                severity=InsightSeverity.INFO,
                title="Slow answers",
                detail=f"Median response time {med / 1000:.1f}s over the last {len(latest)} sessions",
                created=now,
                meta={"median_ms": med, "sessions": len(latest)},
            )
        ]

    def detect_tag_gaps(self, cards: list[Card], now: datetime) -> list[StudyInsight]:
        """Tags whose accuracy trails the learner's overall accuracy."""
        t = self.thresholds
        total = sum(c.total_reviews for c in cards)
        if total == 0:
            return []
        overall = sum(c.correct_reviews for c in cards) / total

        per_tag: dict[str, list[int]] = defaultdict(lambda: [0, 0])
        for c in cards:
            for tag in set(c.tags):
                per_tag[tag][0] += c.correct_reviews
                per_tag[tag][1] += c.total_reviews

        gaps = []
        for tag, (correct, reviews) in per_tag.items():
            if reviews < t.tag_gap_min_reviews:
                continue
            accuracy = correct / reviews
            if overall - accuracy > t.tag_gap_margin:
                gaps.append((tag, accuracy, reviews))
        gaps.sort(key=lambda g: (g[1], g[0]))

        return [
            StudyInsight(
                id=f"tag_gap:{tag}",
                type=InsightType.TAG_GAP,
                severity=InsightSeverity.WARN,
                title="Weak tag",
                detail=f"{tag}: {accuracy:.0%} accuracy vs {overall:.0%} overall",
                created=now,
                meta={
                    "tag": tag,
                    "accuracy": accuracy,
                    "overall_accuracy": overall,
                    "reviews": reviews,
                },
            )
            for tag, accuracy, reviews in gaps[: t.max_card_insights]
        ]
