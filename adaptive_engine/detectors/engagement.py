"""
Engagement Detector

Derives re-engagement, break and variety needs from the reported engagement
level, how long the learner has been idle, and an attention span estimated
from pause events.
"""
from typing import Dict, List, Optional, Sequence
from dataclasses import dataclass
from datetime import datetime

import numpy as np

from adaptive_engine.core.clock import clamp, utcnow
from adaptive_engine.schemas.telemetry import ClickPattern, CurrentInteraction, PauseEvent


@dataclass
class EngagementEstimate:
    current_engagement: float   # 0-1
    attention_span: float       # seconds
    interaction_quality: float  # 0-1
    sustained_engagement: float # 0-1
    idle_seconds: float
    needs_reengagement: bool
    needs_break: bool
    needs_variety: bool


class EngagementDetector:
    """Estimates engagement and attention for the current interaction"""

    THRESHOLDS = {
        "low_engagement": 0.4,
        "idle_seconds": 30,
        "meaningful_pause_seconds": 10,
        "attention_baseline_seconds": 300,
        "min_attention_span_seconds": 60,
        "break_after_session_seconds": 600,
        "engagement_decay_seconds": 1800,
        "min_engagement_decay": 0.3,
        "variety_engagement": 0.5,
        "variety_after_seconds": 300,
        "ideal_clicks_per_minute": 3,
        "click_rate_tolerance": 5,
    }

    def __init__(self, custom_thresholds: Optional[Dict] = None):
        self.thresholds = {**self.THRESHOLDS, **(custom_thresholds or {})}

    def meaningful_pauses(self, pauses: Sequence[PauseEvent]) -> List[float]:
        return [
            p.duration_seconds for p in pauses
            if p.duration_seconds > self.thresholds["meaningful_pause_seconds"]
        ]

    def attention_span(self, pauses: Sequence[PauseEvent], time_spent: float) -> float:
        """Span estimated from meaningful pauses, or time on content when there are none"""
        meaningful = self.meaningful_pauses(pauses)
        if not meaningful:
            return time_spent

        average_gap = float(np.mean(meaningful))
        return max(
            self.thresholds["min_attention_span_seconds"],
            self.thresholds["attention_baseline_seconds"] - average_gap,
        )

    def interaction_quality(self, clicks: Sequence[ClickPattern], time_spent: float) -> float:
        """Good interaction: a few clicks per minute with few double clicks"""
        if not clicks or time_spent <= 0:
            return 0.0

        click_rate = len(clicks) / (time_spent / 60)
        double_click_rate = sum(1 for c in clicks if c.double_clicks > 0) / len(clicks)

        quality = (
            (1 - abs(click_rate - self.thresholds["ideal_clicks_per_minute"]) / self.thresholds["click_rate_tolerance"])
            * (1 - double_click_rate * 2)
        )
        return clamp(quality, 0.0, 1.0)

    def sustained_engagement(self, time_spent: float, engagement: float) -> float:
        decay = max(
            self.thresholds["min_engagement_decay"],
            1 - time_spent / self.thresholds["engagement_decay_seconds"],
        )
        return clamp(engagement * decay, 0.0, 1.0)

    def detect(
        self,
        interaction: CurrentInteraction,
        session_duration_seconds: float,
        now: Optional[datetime] = None,
    ) -> EngagementEstimate:
        """
        Args:
            interaction: Current interaction state
            session_duration_seconds: Time since the session started
            now: Evaluation time
        """
        now = now or utcnow()
        t = self.thresholds
        time_spent = interaction.time_spent_seconds
        idle_seconds = max(0.0, (now - interaction.last_activity).total_seconds())

        attention_span = self.attention_span(interaction.pause_events, time_spent)
        # Without meaningful pauses the span is only time on content, not a measurement
        span_measured = bool(self.meaningful_pauses(interaction.pause_events))
        sustained = self.sustained_engagement(time_spent, interaction.engagement_level)

        return EngagementEstimate(
            current_engagement=interaction.engagement_level,
            attention_span=attention_span,
            interaction_quality=self.interaction_quality(interaction.click_patterns, time_spent),
            sustained_engagement=sustained,
            idle_seconds=idle_seconds,
            needs_reengagement=(
                interaction.engagement_level < t["low_engagement"]
                or idle_seconds > t["idle_seconds"]
            ),
            needs_break=(
                span_measured
                and attention_span <= t["min_attention_span_seconds"]
                and session_duration_seconds > t["break_after_session_seconds"]
            ),
            needs_variety=(
                sustained < t["variety_engagement"]
                and time_spent > t["variety_after_seconds"]
            ),
        )
