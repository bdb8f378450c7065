"""
SQLAlchemy-backed card and session repositories.

Implement the CardRepository / SessionRepository protocols on top of an
async_sessionmaker. Each call runs in its own transaction; storage failures are
raised as ServiceError with the original exception attached. Timestamps are
written as UTC since SQLite drops the offset.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from loguru import logger
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from recall.core.errors import NotFoundError, ServiceError, ValidationError
from recall.core.models import REVIEW_FIELDS, Card, StudySession, ensure_aware
from recall.db.database import get_session_factory, session_scope
from recall.db.models import CardRecord, StudySessionRecord

_CARD_COLUMNS = REVIEW_FIELDS + ("tags", "deck_id")


def _aware(ts):
    return ensure_aware(ts) if ts is not None else None


def _utc(ts):
    return ensure_aware(ts).astimezone(timezone.utc) if ts is not None else None


def card_from_record(record: CardRecord) -> Card:
    return Card(
        id=record.id,
        easiness_factor=record.easiness_factor,
        interval=record.interval,
        repetition=record.repetition,
        last_review=_aware(record.last_review),
        next_review=_aware(record.next_review),
        total_reviews=record.total_reviews,
        correct_reviews=record.correct_reviews,
        tags=list(record.tags or []),
        deck_id=record.deck_id,
    )


def session_from_record(record: StudySessionRecord) -> StudySession:
    return StudySession(
        id=record.id,
        start_time=ensure_aware(record.start_time),
        end_time=_aware(record.end_time),
        cards_studied=record.cards_studied,
        correct_answers=record.correct_answers,
        average_response_time_ms=record.average_response_time_ms,
        card_ids=list(record.card_ids or []),
        deck_id=record.deck_id,
    )


class SqlCardRepository:
    """Card store backed by the `cards` table."""

    def __init__(self, factory: async_sessionmaker | None = None):
        self.factory = factory or get_session_factory()

    async def get_card(self, card_id: str) -> Card:
        try:
            async with session_scope(self.factory) as session:
                record = await session.get(CardRecord, card_id)
                card = card_from_record(record) if record is not None else None
        except SQLAlchemyError as e:
            raise ServiceError(
                f"Failed to load card {card_id}", meta={"card_id": card_id, "original": e}
            ) from e
        if card is None:
            raise NotFoundError(f"Card not found: {card_id}", meta={"card_id": card_id})
        return card

    async def update_card(self, card_id: str, patch: dict[str, Any]) -> Card:
        unknown = set(patch) - set(_CARD_COLUMNS)
        if unknown:
            raise ValidationError(
                f"Unknown card fields: {sorted(unknown)}", meta={"fields": sorted(unknown)}
            )
        try:
            async with session_scope(self.factory) as session:
                record = await session.get(CardRecord, card_id)
                if record is None:
                    raise NotFoundError(f"Card not found: {card_id}", meta={"card_id": card_id})
                for name, value in patch.items():
                    setattr(record, name, _utc(value) if isinstance(value, datetime) else value)
                await session.flush()
                card = card_from_record(record)
        except SQLAlchemyError as e:
            raise ServiceError(
                f"Failed to update card {card_id}", meta={"card_id": card_id, "original": e}
            ) from e
        logger.debug(f"Card {card_id} persisted: {sorted(patch)}")
        return card

    async def list_cards(self) -> list[Card]:
        try:
            async with session_scope(self.factory) as session:
                records = (await session.scalars(select(CardRecord).order_by(CardRecord.id))).all()
                return [card_from_record(r) for r in records]
        except SQLAlchemyError as e:
            raise ServiceError("Failed to list cards", meta={"original": e}) from e

    async def add_card(self, card: Card) -> Card:
        try:
            async with session_scope(self.factory) as session:
                session.add(
                    CardRecord(
                        id=card.id,
                        deck_id=card.deck_id,
                        easiness_factor=card.easiness_factor,
                        interval=card.interval,
                        repetition=card.repetition,
                        last_review=_utc(card.last_review),
                        next_review=_utc(card.next_review),
                        total_reviews=card.total_reviews,
                        correct_reviews=card.correct_reviews,
                        tags=list(card.tags),
                    )
                )
        except SQLAlchemyError as e:
            raise ServiceError(
                f"Failed to add card {card.id}", meta={"card_id": card.id, "original": e}
            ) from e
        return card.snapshot()


class SqlSessionRepository:
    """Session store backed by the `study_sessions` table."""

    def __init__(self, factory: async_sessionmaker | None = None):
        self.factory = factory or get_session_factory()

    async def get_recent(self, limit: int = 200) -> list[StudySession]:
        try:
            async with session_scope(self.factory) as session:
                stmt = (
                    select(StudySessionRecord)
                    .order_by(StudySessionRecord.start_time.desc())
                    .limit(limit)
                )
                return [session_from_record(r) for r in (await session.scalars(stmt)).all()]
        except SQLAlchemyError as e:
            raise ServiceError("Failed to load recent sessions", meta={"original": e}) from e

    async def get_since(self, start: datetime) -> list[StudySession]:
        try:
            async with session_scope(self.factory) as session:
                stmt = (
                    select(StudySessionRecord)
                    .where(StudySessionRecord.start_time >= _utc(start))
                    .order_by(StudySessionRecord.start_time)
                )
                return [session_from_record(r) for r in (await session.scalars(stmt)).all()]
        except SQLAlchemyError as e:
            raise ServiceError(
                f"Failed to load sessions since {start.isoformat()}", meta={"original": e}
            ) from e

    async def add_session(self, study_session: StudySession) -> StudySession:
        try:
            async with session_scope(self.factory) as session:
                session.add(
                    StudySessionRecord(
                        id=study_session.id,
                        deck_id=study_session.deck_id,
                        start_time=_utc(study_session.start_time),
                        end_time=_utc(study_session.end_time),
                        cards_studied=study_session.cards_studied,
                        correct_answers=study_session.correct_answers,
                        average_response_time_ms=study_session.average_response_time_ms,
                        card_ids=list(study_session.card_ids),
                    )
                )
        except SQLAlchemyError as e:
            raise ServiceError(
                f"Failed to store session {study_session.id}",
                meta={"session_id": study_session.id, "original": e},
            ) from e
        return study_session
