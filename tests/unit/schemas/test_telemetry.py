"""
Unit tests for inbound telemetry models

Tests cover:
- Clamping of out-of-range values at ingestion
- UTC normalization
- Immutability of performance points
"""

import pytest
from datetime import datetime, timedelta, timezone

from pydantic import ValidationError

from adaptive_engine.schemas.telemetry import (
    CurrentInteraction,
    FrustrationIndicator,
    FrustrationIndicatorType,
    PerformanceContext,
    PerformancePoint,
    RealTimeContext,
    ScrollPattern,
)
from tests.factories import BASE_TIME


class TestPerformancePointClamping:
    """Out-of-range telemetry is clamped, never rejected"""

    def test_level_clamped_high(self):
        point = PerformancePoint(
            timestamp=BASE_TIME, content_id="c", difficulty_level=14, success=True
        )
        assert point.difficulty_level == 10

    def test_level_clamped_low(self):
        point = PerformancePoint(
            timestamp=BASE_TIME, content_id="c", difficulty_level=-3, success=True
        )
        assert point.difficulty_level == 1

    def test_attempts_at_least_one(self):
        point = PerformancePoint(
            timestamp=BASE_TIME, content_id="c", difficulty_level=5, success=False, attempts=0
        )
        assert point.attempts == 1

    def test_negative_time_clamped(self):
        point = PerformancePoint(
            timestamp=BASE_TIME, content_id="c", difficulty_level=5, success=True,
            time_spent_seconds=-20,
        )
        assert point.time_spent_seconds == 0.0

    def test_score_clamped(self):
        point = PerformancePoint(
            timestamp=BASE_TIME, content_id="c", difficulty_level=5, success=True, score=1.7
        )
        assert point.score == 1.0

    def test_context_distraction_clamped(self):
        context = PerformanceContext(distraction_level=-0.5, session_duration_minutes=-2)
        assert context.distraction_level == 0.0
        assert context.session_duration_minutes == 0.0

    def test_naive_timestamp_is_utc(self):
        point = PerformancePoint(
            timestamp=datetime(2024, 1, 1, 9, 0), content_id="c", difficulty_level=5, success=True
        )
        assert point.timestamp.tzinfo == timezone.utc

    def test_point_is_immutable(self):
        point = PerformancePoint(
            timestamp=BASE_TIME, content_id="c", difficulty_level=5, success=True
        )
        with pytest.raises(ValidationError):
            point.success = False


class TestInteractionModels:
    """Tests for real-time interaction telemetry"""

    def test_engagement_clamped(self):
        assert CurrentInteraction(engagement_level=1.4).engagement_level == 1.0
        assert CurrentInteraction(engagement_level=-0.2).engagement_level == 0.0

    def test_help_requests_non_negative(self):
        assert CurrentInteraction(help_requests=-3).help_requests == 0

    def test_scroll_completion_clamped(self):
        assert ScrollPattern(scroll_completion_rate=2).scroll_completion_rate == 1.0

    def test_indicator_intensity_clamped(self):
        indicator = FrustrationIndicator(
            type=FrustrationIndicatorType.RAPID_CLICKING, intensity=3, timestamp=BASE_TIME
        )
        assert indicator.intensity == 1.0

    def test_session_duration(self):
        context = RealTimeContext(
            user_id="u", session_id="s", content_id="c", started_at=BASE_TIME
        )
        assert context.session_duration_seconds(BASE_TIME + timedelta(minutes=5)) == 300
        assert context.session_duration_seconds(BASE_TIME - timedelta(minutes=5)) == 0

    def test_context_requires_session_start(self):
        with pytest.raises(ValidationError):
            RealTimeContext(user_id="u", session_id="s", content_id="c")
