"""Persistence layer: SQLAlchemy models, engine/session management and repositories."""

from recall.db.database import (
    dispose_engine,
    get_engine,
    get_session_factory,
    init_db,
    session_scope,
)
from recall.db.models import Base, CardRecord, StudySessionRecord
from recall.db.repositories import SqlCardRepository, SqlSessionRepository

__all__ = [
    "Base",
    "CardRecord",
    "StudySessionRecord",
    "SqlCardRepository",
    "SqlSessionRepository",
    "dispose_engine",
    "get_engine",
    "get_session_factory",
    "init_db",
    "session_scope",
]
