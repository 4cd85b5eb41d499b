"""
Inbound telemetry contract

Normalized interaction records handed to the engine by an external collector.
Out-of-range values are clamped here, at the ingestion boundary, so detectors
never see them and never raise on them.
"""
from typing import Any, Dict, List, Optional
from datetime import datetime
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field, field_validator

from adaptive_engine.core.clock import clamp, ensure_utc, utcnow

MIN_LEVEL = 1
MAX_LEVEL = 10


def _clamp_unit(value: Any) -> Any:
    if value is None:
        return value
    return clamp(float(value), 0.0, 1.0)


def _clamp_non_negative(value: Any) -> Any:
    if value is None:
        return value
    return max(0.0, float(value))


class TimeOfDay(str, Enum):
    MORNING = "morning"
    AFTERNOON = "afternoon"
    EVENING = "evening"
    NIGHT = "night"


class FrustrationIndicatorType(str, Enum):
    RAPID_CLICKING = "rapid_clicking"
    BACK_NAVIGATION = "back_navigation"
    LONG_PAUSE = "long_pause"
    HELP_SEEKING = "help_seeking"
    TAB_SWITCHING = "tab_switching"


class PerformanceContext(BaseModel):
    """Circumstances under which a PerformancePoint was recorded"""
    model_config = ConfigDict(frozen=True)

    time_of_day: TimeOfDay = TimeOfDay.AFTERNOON
    session_duration_minutes: float = 0.0
    device_type: str = "desktop"
    distraction_level: float = Field(0.0, description="0-1 estimated")

    @field_validator("session_duration_minutes", mode="before")
    @classmethod
    def _non_negative(cls, v):
        return _clamp_non_negative(v)

    @field_validator("distraction_level", mode="before")
    @classmethod
    def _unit(cls, v):
        return _clamp_unit(v)


class PerformancePoint(BaseModel):
    """Single graded interaction with a piece of content. Immutable once recorded."""
    model_config = ConfigDict(frozen=True)

    timestamp: datetime
    content_id: str
    difficulty_level: int
    success: bool
    attempts: int = 1
    time_spent_seconds: float = 0.0
    score: Optional[float] = None
    context: PerformanceContext = Field(default_factory=PerformanceContext)

    @field_validator("timestamp", mode="after")
    @classmethod
    def _utc(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    @field_validator("difficulty_level", mode="before")
    @classmethod
    def _level(cls, v):
        return int(round(clamp(float(v), MIN_LEVEL, MAX_LEVEL)))

    @field_validator("attempts", mode="before")
    @classmethod
    def _attempts(cls, v):
        return max(1, int(v))

    @field_validator("time_spent_seconds", mode="before")
    @classmethod
    def _time(cls, v):
        return _clamp_non_negative(v)

    @field_validator("score", mode="before")
    @classmethod
    def _score(cls, v):
        return _clamp_unit(v)


class ScrollPattern(BaseModel):
    total_scrolls: int = 0
    average_scroll_speed: float = 0.5
    back_scroll_events: int = 0
    time_at_top: float = 0.0            # seconds
    time_at_bottom: float = 0.0         # seconds
    scroll_completion_rate: float = 0.5

    @field_validator("scroll_completion_rate", mode="before")
    @classmethod
    def _unit(cls, v):
        return _clamp_unit(v)

    @field_validator("average_scroll_speed", "time_at_top", "time_at_bottom", mode="before")
    @classmethod
    def _non_negative(cls, v):
        return _clamp_non_negative(v)


class ClickPattern(BaseModel):
    timestamp: datetime
    element_type: str
    element_id: Optional[str] = None
    click_count: int = 1
    double_clicks: int = 0
    right_clicks: int = 0

    @field_validator("timestamp", mode="after")
    @classmethod
    def _utc(cls, v: datetime) -> datetime:
        return ensure_utc(v)


class PauseEvent(BaseModel):
    timestamp: datetime
    duration_seconds: float
    location: str = ""
    resumed_to: Optional[str] = None

    @field_validator("timestamp", mode="after")
    @classmethod
    def _utc(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    @field_validator("duration_seconds", mode="before")
    @classmethod
    def _non_negative(cls, v):
        return _clamp_non_negative(v)


class FrustrationIndicator(BaseModel):
    type: FrustrationIndicatorType
    intensity: float
    timestamp: datetime
    context: Optional[str] = None

    @field_validator("timestamp", mode="after")
    @classmethod
    def _utc(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    @field_validator("intensity", mode="before")
    @classmethod
    def _unit(cls, v):
        return _clamp_unit(v)


class CurrentInteraction(BaseModel):
    """State of the learner's interaction with the current piece of content"""
    time_spent_seconds: float = 0.0
    scroll_pattern: ScrollPattern = Field(default_factory=ScrollPattern)
    click_patterns: List[ClickPattern] = Field(default_factory=list)
    pause_events: List[PauseEvent] = Field(default_factory=list)
    help_requests: int = 0
    attempts: int = 1
    last_activity: datetime = Field(default_factory=utcnow)
    frustration_indicators: List[FrustrationIndicator] = Field(default_factory=list)
    engagement_level: float = 0.7

    @field_validator("last_activity", mode="after")
    @classmethod
    def _utc(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    @field_validator("time_spent_seconds", mode="before")
    @classmethod
    def _non_negative(cls, v):
        return _clamp_non_negative(v)

    @field_validator("help_requests", mode="before")
    @classmethod
    def _help(cls, v):
        return max(0, int(v))

    @field_validator("attempts", mode="before")
    @classmethod
    def _attempts(cls, v):
        return max(1, int(v))

    @field_validator("engagement_level", mode="before")
    @classmethod
    def _unit(cls, v):
        return _clamp_unit(v)


class EnvironmentalFactors(BaseModel):
    time_of_day: TimeOfDay = TimeOfDay.AFTERNOON
    day_of_week: str = "Monday"
    device_type: str = "desktop"        # mobile, tablet, desktop
    connection_speed: str = "fast"      # slow, medium, fast
    battery_level: Optional[float] = None
    notification_count: int = 0

    @field_validator("battery_level", mode="before")
    @classmethod
    def _unit(cls, v):
        return _clamp_unit(v)


class RealTimeContext(BaseModel):
    """
    Per-cycle view of a learning session.

    Built by the host for each adaptation cycle and discarded afterwards.
    Every field the host does not populate must be supplied explicitly
    (test doubles included); nothing here is filled in randomly.
    """
    user_id: str
    subject: str = "general"
    session_id: str
    content_id: str
    started_at: datetime
    current_interaction: CurrentInteraction = Field(default_factory=CurrentInteraction)
    environmental_factors: EnvironmentalFactors = Field(default_factory=EnvironmentalFactors)
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("started_at", mode="after")
    @classmethod
    def _utc(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    def session_duration_seconds(self, now: datetime) -> float:
        return max(0.0, (now - self.started_at).total_seconds())
