"""
Unit tests for the review transaction.

Focused on the before/after contract, counters, the partial patch and
error propagation. Uses the in-memory store and AsyncMock doubles.
"""

from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from recall.core.errors import NotFoundError, ServiceError, ValidationError
from recall.core.models import REVIEW_FIELDS, Card
from recall.core.repositories import InMemoryCardRepository
from recall.study.review_recorder import (
    ReviewRecorder,
    ReviewRequest,
    record_review,
)
from recall.study.scheduler import SM2Scheduler


@pytest.fixture
def scheduler(clock):
    return SM2Scheduler(clock=clock)


@pytest.mark.asyncio
async def test_first_good_review(card_repo, scheduler, now):
    outcome = await record_review(card_repo, ReviewRequest("card-001", 4), scheduler=scheduler)

    after = outcome.after
    assert after.total_reviews == 1
    assert after.correct_reviews == 1
    assert after.repetition == 1
    assert after.interval == 1
    assert after.easiness_factor >= 2.5
    assert after.next_review == now + timedelta(days=1)


@pytest.mark.asyncio
async def test_before_snapshot_is_pre_mutation(card_repo, scheduler):
    outcome = await record_review(card_repo, ReviewRequest("card-001", 5), scheduler=scheduler)

    assert outcome.before.total_reviews == 0
    assert outcome.before.repetition == 0
    assert outcome.before.last_review is None
    assert outcome.after.total_reviews == outcome.before.total_reviews + 1


@pytest.mark.asyncio
async def test_failed_review_counts_but_not_correct(scheduler):
    repo = InMemoryCardRepository(
        [Card(id="c", interval=20, repetition=4, total_reviews=6, correct_reviews=5)]
    )

    outcome = await record_review(repo, ReviewRequest("c", 1), scheduler=scheduler)

    assert outcome.after.total_reviews == 7
    assert outcome.after.correct_reviews == 5
    assert outcome.after.repetition == 0
    assert outcome.after.interval == 1


@pytest.mark.asyncio
async def test_repeated_reviews_keep_changing_state(card_repo, scheduler):
    first = await record_review(card_repo, ReviewRequest("card-001", 4), scheduler=scheduler)
    second = await record_review(card_repo, ReviewRequest("card-001", 4), scheduler=scheduler)

    assert second.before == first.after
    assert second.after.total_reviews == 2
    assert second.after.interval == 6


@pytest.mark.asyncio
async def test_accepts_mapping_request(card_repo, scheduler):
    outcome = await record_review(card_repo, {"cardId": "card-001", "quality": 3}, scheduler=scheduler)

    assert outcome.after.total_reviews == 1


@pytest.mark.asyncio
async def test_patch_contains_only_review_fields(sample_card, scheduler):
    deps = AsyncMock()
    deps.get_card.return_value = sample_card
    deps.update_card.side_effect = lambda card_id, patch: sample_card.with_patch(patch)

    await record_review(deps, ReviewRequest("card-001", 4), scheduler=scheduler)

    deps.update_card.assert_awaited_once()
    card_id, patch = deps.update_card.await_args.args
    assert card_id == "card-001"
    assert set(patch) == set(REVIEW_FIELDS)
    assert "tags" not in patch and "id" not in patch


@pytest.mark.asyncio
async def test_missing_card_propagates_not_found(scheduler):
    repo = InMemoryCardRepository()

    with pytest.raises(NotFoundError):
        await record_review(repo, ReviewRequest("nope", 4), scheduler=scheduler)


@pytest.mark.asyncio
async def test_invalid_quality_rejected_before_io():
    deps = AsyncMock()

    with pytest.raises(ValidationError):
        await record_review(deps, ReviewRequest("card-001", 7))

    deps.get_card.assert_not_awaited()
    deps.update_card.assert_not_awaited()


@pytest.mark.asyncio
async def test_update_failure_propagates_unchanged(sample_card, scheduler):
    failure = ServiceError("disk full")
    deps = AsyncMock()
    deps.get_card.return_value = sample_card
    deps.update_card.side_effect = failure

    with pytest.raises(ServiceError) as exc:
        await record_review(deps, ReviewRequest("card-001", 4), scheduler=scheduler)

    assert exc.value is failure
    assert deps.update_card.await_count == 1


@pytest.mark.asyncio
async def test_changed_fields_diff(card_repo, scheduler):
    outcome = await record_review(card_repo, ReviewRequest("card-001", 4), scheduler=scheduler)

    changed = outcome.changed_fields
    assert changed["total_reviews"] == (0, 1)
    assert changed["repetition"] == (0, 1)
    # q=4 leaves the ease untouched
    assert "easiness_factor" not in changed


class TestReviewRecorder:
    @pytest.mark.asyncio
    async def test_listeners_receive_event(self, card_repo, scheduler, now):
        events = []
        recorder = ReviewRecorder(card_repo, scheduler=scheduler, listeners=[events.append])

        await recorder.record("card-001", 2)

        assert len(events) == 1
        assert events[0].card_id == "card-001"
        assert events[0].quality == 2
        assert events[0].reviewed_at == now

    @pytest.mark.asyncio
    async def test_listener_not_called_on_failure(self, scheduler):
        events = []
        recorder = ReviewRecorder(InMemoryCardRepository(), scheduler=scheduler)
        recorder.subscribe(events.append)

        with pytest.raises(NotFoundError):
            await recorder.record("missing", 4)

        assert events == []
