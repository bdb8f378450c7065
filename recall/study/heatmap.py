"""
Activity heatmap - study volume per calendar day.

Buckets session activity (cards studied) by local calendar date over a
trailing window. Bucketing can be offloaded to a HeatmapWorker, which only
exchanges request/response messages with the caller:

    request:  {"sessions": [{"startTime": ..., "cardsStudied": 10}, ...]}
    response: {"map": {"YYYY-MM-DD": 10, ...}}
"""

from __future__ import annotations

import asyncio
import copy
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from datetime import date, datetime, time, timedelta
from typing import Any

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from recall.core.errors import ValidationError
from recall.core.models import DayHeat, StudySession, ensure_aware, utc_now
from recall.core.repositories import SessionRepository


# =============================================================================
# Worker Messages
# =============================================================================


class HeatmapSession(BaseModel):
    """Minimal session slice carried in a heatmap request."""

    model_config = ConfigDict(populate_by_name=True)

    start_time: datetime = Field(alias="startTime")
    cards_studied: int = Field(default=0, ge=0, alias="cardsStudied")


class HeatmapRequest(BaseModel):
    sessions: list[HeatmapSession] = Field(default_factory=list)


class HeatmapResponse(BaseModel):
    map: dict[str, int] = Field(default_factory=dict)


def local_day(ts: datetime) -> date:
    """Local calendar date of a timestamp (naive values are taken as UTC)."""
    return ensure_aware(ts).astimezone().date()


def bucket_sessions(message: dict[str, Any]) -> dict[str, Any]:
    """
    Handle one worker request message.

    Args:
        message: {"sessions": [{"startTime", "cardsStudied"}]}

    Returns:
        {"map": {"YYYY-MM-DD": total cards studied}}

    Raises:
        ValidationError: malformed request
    """
    try:
        request = HeatmapRequest.model_validate(message)
    except PydanticValidationError as e:
        raise ValidationError(
            "Malformed heatmap request", meta={"errors": e.errors(include_url=False)}
        ) from e

    totals: dict[str, int] = {}
    for session in request.sessions:
        key = local_day(session.start_time).isoformat()
        totals[key] = totals.get(key, 0) + session.cards_studied

    return HeatmapResponse(map=totals).model_dump()


def to_request_message(sessions: list[StudySession]) -> dict[str, Any]:
    return {
        "sessions": [
            {"startTime": s.start_time, "cardsStudied": s.cards_studied} for s in sessions
        ]
    }


class HeatmapWorker:
    """
    Background bucketing worker.

    Runs bucket_sessions on a dedicated thread. Only plain request/response
    dicts cross the boundary; nothing is shared with the caller.
    """

    def __init__(self, max_workers: int = 1):
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="heatmap")

    async def submit(self, message: dict[str, Any]) -> dict[str, Any]:
        payload = copy.deepcopy(message)
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, bucket_sessions, payload)

    def close(self) -> None:
        self._executor.shutdown(wait=True)

    def __enter__(self) -> HeatmapWorker:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    async def __aenter__(self) -> HeatmapWorker:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await asyncio.to_thread(self.close)


# =============================================================================
# Aggregator
# =============================================================================


class HeatmapAggregator:
    """Per-day review counts over a trailing window, oldest day first."""

    def __init__(
        self,
        sessions: SessionRepository,
        worker: HeatmapWorker | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.sessions = sessions
        self.worker = worker
        self.clock = clock

    async def get_last_n_days(self, n: int = 180) -> list[DayHeat]:
        if n < 1:
            raise ValidationError(f"Heatmap window must be at least 1 day, got {n}", meta={"n": n})

        today = local_day(self.clock())
        days = [today - timedelta(days=offset) for offset in range(n - 1, -1, -1)]
        # Local midnight of the oldest day
        start = datetime.combine(days[0], time.min).astimezone()

        in_window = await self.sessions.get_since(start)
        message = to_request_message(in_window)
        if self.worker is not None:
            response = await self.worker.submit(message)
        else:
            response = bucket_sessions(message)
        totals = response["map"]
        heat = [DayHeat(day=d, reviews=totals.get(d.isoformat(), 0)) for d in days]

        logger.debug(f"Heatmap: {len(in_window)} sessions over {n} days, {sum(h.reviews for h in heat)} reviews")
        return heat
