"""
Repository interfaces for the card and session stores.

The core only talks to storage through these protocols. In-memory
implementations are provided for embedding and tests; SQLAlchemy-backed
ones live in recall.db.repositories.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Protocol, runtime_checkable

from loguru import logger

from recall.core.errors import NotFoundError
from recall.core.models import Card, StudySession, ensure_aware


# =============================================================================
# Protocol Definitions
# =============================================================================


@runtime_checkable
class CardRepository(Protocol):
    """Protocol for card stores."""

    async def get_card(self, card_id: str) -> Card:
        """Return the card or raise NotFoundError."""
        ...

    async def update_card(self, card_id: str, patch: dict[str, Any]) -> Card:
        """Apply a partial update and return the persisted card."""
        ...

    async def list_cards(self) -> list[Card]:
        """Return every card."""
        ...


@runtime_checkable
class SessionRepository(Protocol):
    """Protocol for study session stores."""

    async def get_recent(self, limit: int = 200) -> list[StudySession]:
        """Return up to limit sessions, newest first."""
        ...

    async def get_since(self, start: datetime) -> list[StudySession]:
        """Return every session starting at or after start, oldest first."""
        ...


# =============================================================================
# In-memory Implementations
# =============================================================================


class InMemoryCardRepository:
    """Dict-backed card store. Returns copies so callers never alias state."""

    def __init__(self, cards: list[Card] | None = None):
        self._cards: dict[str, Card] = {c.id: c.snapshot() for c in cards or []}

    async def get_card(self, card_id: str) -> Card:
        card = self._cards.get(card_id)
        if card is None:
            raise NotFoundError(f"Card not found: {card_id}", meta={"card_id": card_id})
        return card.snapshot()

    async def update_card(self, card_id: str, patch: dict[str, Any]) -> Card:
        current = await self.get_card(card_id)
        updated = current.with_patch(patch)
        self._cards[card_id] = updated
        logger.debug(f"Card {card_id} updated: {sorted(patch)}")
        return updated.snapshot()

    async def list_cards(self) -> list[Card]:
        return [c.snapshot() for c in self._cards.values()]

    def add(self, card: Card) -> None:
        self._cards[card.id] = card.snapshot()


class InMemorySessionRepository:
    """List-backed session store."""

    def __init__(self, sessions: list[StudySession] | None = None):
        self._sessions: list[StudySession] = list(sessions or [])

    async def get_recent(self, limit: int = 200) -> list[StudySession]:
        ordered = sorted(self._sessions, key=lambda s: ensure_aware(s.start_time), reverse=True)
        return ordered[:limit]

    async def get_since(self, start: datetime) -> list[StudySession]:
        start = ensure_aware(start)
        selected = [s for s in self._sessions if ensure_aware(s.start_time) >= start]
        return sorted(selected, key=lambda s: ensure_aware(s.start_time))

    def add(self, session: StudySession) -> None:
        self._sessions.append(session)
