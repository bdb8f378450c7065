"""
SM-2 Scheduler - per-card review interval computation.

Implements the SuperMemo-2 update used for every recorded review:
1. Failed recall (quality < 3) resets the repetition count and re-queues the
   card for tomorrow
2. Passed recall grows the interval 1 -> 6 -> interval * EF
3. The easiness factor moves by the canonical SM-2 delta on every review and
   never drops below 1.3

Reference: https://www.supermemo.com/en/archives1990-2015/english/ol/sm2
"""

from __future__ import annotations

import math
from collections.abc import Callable
from datetime import datetime, timedelta

from loguru import logger

from recall.core.errors import ValidationError
from recall.core.models import (
    MAX_QUALITY,
    MIN_QUALITY,
    ReviewState,
    is_pass,
    utc_now,
)


# =============================================================================
# SM-2 CONSTANTS
# =============================================================================

MIN_EASE = 1.3
FIRST_INTERVAL = 1   # days, after a failure or the first success
SECOND_INTERVAL = 6  # days, after the second consecutive success
MATURE_INTERVAL = 21  # days, cards at or past this are considered mature


def validate_quality(quality: int) -> int:
    """Return quality if it is an integer grade in [0, 5], else raise ValidationError."""
    if isinstance(quality, bool) or not isinstance(quality, int):
        raise ValidationError(
            f"Quality must be an integer, got {type(quality).__name__}",
            meta={"quality": quality},
        )
    if not MIN_QUALITY <= quality <= MAX_QUALITY:
        raise ValidationError(
            f"Quality must be between {MIN_QUALITY} and {MAX_QUALITY}, got {quality}",
            meta={"quality": quality},
        )
    return quality


def ease_delta(quality: int) -> float:
    """SM-2 easiness adjustment for a grade: +0.1 at 5, 0.0 at 4, -0.8 at 0."""
    miss = 5 - quality
    return 0.1 - miss * (0.08 + miss * 0.02)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class SM2Scheduler:
    """
    SM-2 Spaced Repetition Scheduler.

    Stateless apart from its constants; update() is a pure function of
    (state, quality, now).
    """

    def __init__(
        self,
        min_ease: float = MIN_EASE,
        max_ease: float | None = None,
        first_interval: int = FIRST_INTERVAL,
        second_interval: int = SECOND_INTERVAL,
        clock: Callable[[], datetime] = utc_now,
    ):
        if max_ease is not None and max_ease < min_ease:
            raise ValidationError(
                "max_ease must not be below min_ease",
                meta={"min_ease": min_ease, "max_ease": max_ease},
            )
        self.min_ease = min_ease
        self.max_ease = max_ease
        self.first_interval = first_interval
        self.second_interval = second_interval
        self.clock = clock

    @classmethod
    def from_settings(cls, settings=None) -> SM2Scheduler:
        """Build a scheduler from application settings."""
        if settings is None:
            from recall.config import get_settings

            settings = get_settings()
        return cls(**settings.get_sm2_config())

    def next_ease(self, easiness_factor: float, quality: int) -> float:
        ease = easiness_factor + ease_delta(quality)
        if self.max_ease is not None:
            ease = min(ease, self.max_ease)
        return max(ease, self.min_ease)

    def update(
        self,
        state: ReviewState,
        quality: int,
        now: datetime | None = None,
    ) -> ReviewState:
        """
        Process a review and return the new memory state.

        Args:
            state: Current review state of the card
            quality: Recall grade 0-5 (3+ is a pass)
            now: Review timestamp (defaults to the scheduler clock)

        Returns:
            New ReviewState; the input state is left untouched
        """
        validate_quality(quality)
        if now is None:
            now = self.clock()

        ease = self.next_ease(state.easiness_factor, quality)

        if not is_pass(quality):
            repetition = 0
            interval = self.first_interval
        else:
            repetition = state.repetition + 1
            if repetition == 1:
                interval = self.first_interval
            elif repetition == 2:
                interval = self.second_interval
            else:
                interval = max(self.first_interval, _round_half_up(state.interval * ease))

        logger.debug(
            f"SM-2 q={quality}: rep {state.repetition}->{repetition}, "
            f"interval {state.interval}->{interval}d, ef {state.easiness_factor:.2f}->{ease:.2f}"
        )

        return ReviewState(
            easiness_factor=ease,
            interval=interval,
            repetition=repetition,
            last_review=now,
            next_review=now + timedelta(days=interval),
        )


_default_scheduler = SM2Scheduler()


def sm2_update(state: ReviewState, quality: int, now: datetime | None = None) -> ReviewState:
    """Apply SM-2 with the default constants."""
    return _default_scheduler.update(state, quality, now=now)


def retention_score(
    total_reviews: int,
    correct_reviews: int,
    easiness_factor: float,
    interval: int,
    reference_ease: float = 2.5,
) -> float:
    """
    Estimate how well a card is retained (0-1).

    60% success rate, +0.2 once the card is mature, up to +0.2 for a high
    easiness factor.
    """
    if total_reviews == 0:
        return 0.0
    success_rate = correct_reviews / total_reviews
    maturity_bonus = 0.2 if interval >= MATURE_INTERVAL else 0.0
    consistency = min(easiness_factor / reference_ease, 1.0) * 0.2
    return min(1.0, success_rate * 0.6 + maturity_bonus + consistency)
