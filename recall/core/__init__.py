"""
Core Module - Shared domain models, errors and repository interfaces.

All domain-specific modules (recall.study, recall.analytics, recall.db)
import from recall.core rather than redefining shared concepts.
"""

from recall.core.errors import (
    AppError,
    NotFoundError,
    ServiceError,
    ValidationError,
    normalize_error,
)
from recall.core.models import (
    Card,
    DayHeat,
    InsightSeverity,
    InsightSnapshot,
    InsightType,
    ReviewEvent,
    ReviewState,
    StudyInsight,
    StudySession,
)
from recall.core.repositories import (
    CardRepository,
    InMemoryCardRepository,
    InMemorySessionRepository,
    SessionRepository,
)

__all__ = [
    # Errors
    "AppError",
    "NotFoundError",
    "ServiceError",
    "ValidationError",
    "normalize_error",
    # Models
    "Card",
    "DayHeat",
    "InsightSeverity",
    "InsightSnapshot",
    "InsightType",
    "ReviewEvent",
    "ReviewState",
    "StudyInsight",
    "StudySession",
    # Repositories
    "CardRepository",
    "SessionRepository",
    "InMemoryCardRepository",
    "InMemorySessionRepository",
]
