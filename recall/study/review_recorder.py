"""
Review Recorder - the review transaction.

Loads a card, applies the SM-2 update, bumps the durable counters and
persists the result with a single partial update. Returns before/after
snapshots so callers can diff exactly what changed.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from loguru import logger

from recall.core.models import REVIEW_FIELDS, Card, ReviewEvent, is_pass
from recall.core.repositories import CardRepository
from recall.study.scheduler import SM2Scheduler, validate_quality

ReviewListener = Callable[[ReviewEvent], None]


@dataclass(frozen=True)
class ReviewRequest:
    """Input of a review transaction."""

    card_id: str
    quality: int


@dataclass(frozen=True)
class ReviewOutcome:
    """Card images captured around a review."""

    before: Card
    after: Card

    @property
    def changed_fields(self) -> dict[str, tuple[Any, Any]]:
        """Fields that differ between before and after, as (old, new) pairs."""
        return {
            name: (getattr(self.before, name), getattr(self.after, name))
            for name in REVIEW_FIELDS
            if getattr(self.before, name) != getattr(self.after, name)
        }


def _coerce_request(request: ReviewRequest | Mapping[str, Any]) -> ReviewRequest:
    if isinstance(request, ReviewRequest):
        return request
    card_id = request.get("card_id", request.get("cardId"))
    return ReviewRequest(card_id=card_id, quality=request.get("quality"))


def build_review_patch(
    card: Card,
    quality: int,
    scheduler: SM2Scheduler,
    now: datetime | None = None,
) -> dict[str, Any]:
    """Compute the partial update a review applies to card."""
    state = scheduler.update(card.review_state, quality, now=now)
    return {
        "easiness_factor": state.easiness_factor,
        "interval": state.interval,
        "repetition": state.repetition,
        "last_review": state.last_review,
        "next_review": state.next_review,
        "total_reviews": card.total_reviews + 1,
        "correct_reviews": card.correct_reviews + (1 if is_pass(quality) else 0),
    }


async def record_review(
    deps: CardRepository,
    request: ReviewRequest | Mapping[str, Any],
    scheduler: SM2Scheduler | None = None,
    now: datetime | None = None,
) -> ReviewOutcome:
    """
    Record one review.

    Args:
        deps: Card store providing get_card/update_card
        request: ReviewRequest or mapping with card_id and quality
        scheduler: SM-2 scheduler (defaults to standard constants)
        now: Review timestamp (defaults to the scheduler clock)

    Returns:
        ReviewOutcome with the pre-mutation and persisted card images

    Raises:
        ValidationError: quality outside [0, 5]
        NotFoundError: unknown card (from the repository, unchanged)
    """
    request = _coerce_request(request)
    validate_quality(request.quality)
    scheduler = scheduler or SM2Scheduler()

    card = await deps.get_card(request.card_id)
    before = card.snapshot()

    patch = build_review_patch(before, request.quality, scheduler, now=now)
    persisted = await deps.update_card(request.card_id, patch)
    after = persisted if persisted is not None else before.with_patch(patch)

    logger.debug(
        f"Review recorded: card={request.card_id} q={request.quality} "
        f"interval={after.interval}d next={after.next_review}"
    )
    return ReviewOutcome(before=before, after=after)


class ReviewRecorder:
    """
    Review transaction bound to a card store and scheduler.

    Listeners are notified after a successful commit; their exceptions
    propagate to the caller.
    """

    def __init__(
        self,
        cards: CardRepository,
        scheduler: SM2Scheduler | None = None,
        listeners: list[ReviewListener] | None = None,
    ):
        self.cards = cards
        self.scheduler = scheduler or SM2Scheduler()
        self._listeners: list[ReviewListener] = list(listeners or [])

    def subscribe(self, listener: ReviewListener) -> None:
        self._listeners.append(listener)

    async def record(self, card_id: str, quality: int, now: datetime | None = None) -> ReviewOutcome:
        outcome = await record_review(
            self.cards, ReviewRequest(card_id, quality), scheduler=self.scheduler, now=now
        )
        event = ReviewEvent(
            card_id=card_id,
            quality=quality,
            reviewed_at=outcome.after.last_review,
        )
        for listener in self._listeners:
            listener(event)
        return outcome
