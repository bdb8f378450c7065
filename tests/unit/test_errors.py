"""Unit tests for the error taxonomy and settings helpers."""

import pytest

from recall.config import Settings
from recall.core.errors import (
    AppError,
    NotFoundError,
    ServiceError,
    ValidationError,
    normalize_error,
)


@pytest.mark.parametrize(
    "cls,code",
    [(NotFoundError, "NOT_FOUND"), (ValidationError, "VALIDATION_FAILED"), (ServiceError, "OPERATION_FAILED")],
)
def test_default_codes(cls, code):
    err = cls("boom")

    assert isinstance(err, AppError)
    assert err.code == code
    assert str(err) == "boom"


def test_to_dict_hides_original_exception():
    err = ServiceError("store down", meta={"card_id": "c1", "original": OSError("disk")})

    assert err.to_dict() == {
        "name": "ServiceError",
        "code": "OPERATION_FAILED",
        "message": "store down",
        "meta": {"card_id": "c1"},
    }


def test_normalize_passes_app_errors_through():
    err = NotFoundError("missing")

    assert normalize_error(err) is err


def test_normalize_wraps_foreign_errors():
    original = KeyError("x")

    err = normalize_error(original)

    assert err.code == "APP_ERROR"
    assert err.meta["original_type"] == "KeyError"
    assert err.meta["original"] is original


class TestSettings:
    def test_env_prefix(self, monkeypatch):
        monkeypatch.setenv("RECALL_LEECH_MIN_FAILURES", "7")

        assert Settings().leech_min_failures == 7

    def test_sm2_config(self):
        config = Settings(sm2_max_ease=3.0).get_sm2_config()

        assert config == {
            "min_ease": 1.3,
            "max_ease": 3.0,
            "first_interval": 1,
            "second_interval": 6,
        }
