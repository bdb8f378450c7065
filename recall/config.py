"""
Configuration settings for recall-scheduler.

Uses Pydantic Settings for environment variable management with .env file support.
Every tunable threshold of the scheduler and the analytics engines lives here so
deployments can adjust them without code changes.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="RECALL_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # Database
    # ========================================
    database_url: str = Field(
        default="sqlite:///recall.db",
        description="SQLAlchemy connection string for the card and session stores",
    )

    # ========================================
    # Logging
    # ========================================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging verbosity level",
    )
    log_file: str | None = Field(
        default=None,
        description="Log file path (None for stderr only)",
    )

    # ========================================
    # SM-2 Scheduler
    # ========================================
    sm2_min_ease: float = Field(
        default=1.3,
        description="Floor for the easiness factor",
    )
    sm2_max_ease: float | None = Field(
        default=None,
        description="Optional ceiling for the easiness factor (None = unbounded)",
    )
    sm2_first_interval: int = Field(
        default=1,
        description="Interval in days after a failure or the first success",
    )
    sm2_second_interval: int = Field(
        default=6,
        description="Interval in days after the second consecutive success",
    )

    # ========================================
    # Insight Engine
    # ========================================
    leech_min_failures: int = Field(
        default=4,
        description="Minimum failed reviews before a card can be flagged as a leech",
    )
    leech_critical_failures: int = Field(
        default=8,
        description="Failed reviews at which a leech becomes critical",
    )
    leech_max_success_rate: float = Field(
        default=0.45,
        description="Success rate below which a failing card is a leech",
    )
    leech_max_repetition: int = Field(
        default=3,
        description="Leeches have fewer consecutive successes than this",
    )
    due_surge_min_cards: int = Field(
        default=20,
        description="Due-card count that always counts as a surge baseline",
    )
    due_surge_ratio: float = Field(
        default=1.5,
        description="Surge fires when due cards exceed this multiple of daily throughput",
    )
    throughput_window_days: int = Field(
        default=14,
        description="Trailing window used to estimate typical daily throughput",
    )
    stagnation_days: int = Field(
        default=2,
        description="Days without any session before stagnation is reported",
    )
    fast_lane_min_ease: float = Field(
        default=2.6,
        description="Minimum easiness factor for a fast-lane candidate",
    )
    fast_lane_min_repetition: int = Field(
        default=3,
        description="Minimum consecutive successes for a fast-lane candidate",
    )
    fast_lane_max_failures: int = Field(
        default=1,
        description="Maximum failed reviews for a fast-lane candidate",
    )
    slow_response_ms: float = Field(
        default=6000.0,
        description="Median response time (ms) above which answers are slow",
    )
    slow_response_sessions: int = Field(
        default=5,
        description="Number of latest sessions inspected for the latency trend",
    )
    tag_gap_min_reviews: int = Field(
        default=10,
        description="Minimum reviews on a tag before its accuracy is compared",
    )
    tag_gap_margin: float = Field(
        default=0.15,
        description="Accuracy shortfall vs. overall accuracy that flags a tag",
    )
    max_card_insights: int = Field(
        default=10,
        description="Cap on per-card insights emitted by a single rule",
    )

    # ========================================
    # Recommendations
    # ========================================
    streak_bonus_threshold: int = Field(
        default=5,
        description="Day streak at which the streak acknowledgement fires",
    )
    recommendation_extended_rules: bool = Field(
        default=True,
        description="Enable start-streak / start-challenge-set rules",
    )
    max_recommendations: int = Field(
        default=10,
        description="Maximum number of recommendations returned",
    )

    # ========================================
    # Sessions & Heatmap
    # ========================================
    session_recent_limit: int = Field(
        default=200,
        description="Number of recent sessions read by the analytics engines",
    )
    heatmap_default_days: int = Field(
        default=180,
        description="Default trailing window of the activity heatmap",
    )

    # ========================================
    # Helper Methods
    # ========================================
    def get_sm2_config(self) -> dict[str, float | int | None]:
        """Get SM-2 constants as keyword arguments for SM2Scheduler."""
        return {
            "min_ease": self.sm2_min_ease,
            "max_ease": self.sm2_max_ease,
            "first_interval": self.sm2_first_interval,
            "second_interval": self.sm2_second_interval,
        }

    def get_insight_config(self) -> dict[str, float | int]:
        """Get insight thresholds as a dictionary keyed like InsightThresholds."""
        return {
            "leech_min_failures": self.leech_min_failures,
            "leech_critical_failures": self.leech_critical_failures,
            "leech_max_success_rate": self.leech_max_success_rate,
            "leech_max_repetition": self.leech_max_repetition,
            "due_surge_min_cards": self.due_surge_min_cards,
            "due_surge_ratio": self.due_surge_ratio,
            "throughput_window_days": self.throughput_window_days,
            "stagnation_days": self.stagnation_days,
            "fast_lane_min_ease": self.fast_lane_min_ease,
            "fast_lane_min_repetition": self.fast_lane_min_repetition,
            "fast_lane_max_failures": self.fast_lane_max_failures,
            "slow_response_ms": self.slow_response_ms,
            "slow_response_sessions": self.slow_response_sessions,
            "tag_gap_min_reviews": self.tag_gap_min_reviews,
            "tag_gap_margin": self.tag_gap_margin,
            "max_card_insights": self.max_card_insights,
            "session_limit": self.session_recent_limit,
        }


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
