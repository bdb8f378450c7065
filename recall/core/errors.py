"""
Error taxonomy shared by every recall component.

All errors raised on purpose derive from AppError so callers (CLI, API,
presentation layers) can translate them into user messages with a single
except clause. Anything unclassified is wrapped via normalize_error().
"""

from __future__ import annotations

from typing import Any


class AppError(Exception):
    """Base class for application errors."""

    default_code = "APP_ERROR"

    def __init__(
        self,
        message: str,
        code: str | None = None,
        meta: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.meta = dict(meta or {})

    def to_dict(self) -> dict[str, Any]:
        """Serializable representation for logging."""
        return {
            "name": type(self).__name__,
            "code": self.code,
            "message": self.message,
            "meta": {k: v for k, v in self.meta.items() if k != "original"},
        }


class NotFoundError(AppError):
    """A referenced card or session does not exist."""

    default_code = "NOT_FOUND"


class ValidationError(AppError):
    """Input outside its allowed domain (quality, profile metrics, messages)."""

    default_code = "VALIDATION_FAILED"


class ServiceError(AppError):
    """Repository or storage failure."""

    default_code = "OPERATION_FAILED"


def normalize_error(err: BaseException) -> AppError:
    """Return err as an AppError, wrapping foreign exceptions."""
    if isinstance(err, AppError):
        return err
    return AppError(
        str(err) or type(err).__name__,
        meta={"original_type": type(err).__name__, "original": err},
    )
