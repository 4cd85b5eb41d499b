"""
Behavior pattern analysis for the current interaction

Two views of the same interaction:
- Interaction performance: pace, attempts and independence on this content,
  plus struggling and advanced signals.
- Behavior patterns: reading speed, focus, exploration style and
  comprehension, which drive pacing and support needs.
"""
from typing import Dict, List, Optional, Sequence
from dataclasses import dataclass, field
from enum import Enum

from adaptive_engine.core.clock import clamp
from adaptive_engine.schemas.telemetry import (
    ClickPattern,
    CurrentInteraction,
    PauseEvent,
    ScrollPattern,
)


class ExplorationStyle(str, Enum):
    ACTIVE = "active"
    PASSIVE = "passive"
    EXPLORATORY = "exploratory"
    METHODICAL = "methodical"


@dataclass
class InteractionPerformance:
    time_performance: float
    attempt_performance: float
    independence_level: float
    struggling_signals: List[str] = field(default_factory=list)
    advanced_signals: List[str] = field(default_factory=list)

    @property
    def overall_performance(self) -> float:
        return (self.time_performance + self.attempt_performance + self.independence_level) / 3


@dataclass
class ComprehensionIndicators:
    confident: bool
    reviewing: bool
    processing: bool
    comprehensive: bool


@dataclass
class BehaviorAnalysis:
    reading_speed: float  # 0-1 relative to the reference reading speed
    focus_level: float    # 0-1
    exploration_style: ExplorationStyle
    comprehension: ComprehensionIndicators
    performance: InteractionPerformance
    needs_slower_pacing: bool
    needs_faster_pacing: bool
    needs_more_support: bool
    needs_more_challenge: bool


class BehaviorAnalyzer:
    """Reads pacing and support needs off raw interaction patterns"""

    THRESHOLDS = {
        # Expected time on content (seconds)
        "expected_time": 300,
        "expected_time_min_factor": 0.7,
        "expected_time_max_factor": 1.8,

        # Reading
        "reference_wpm": 200,
        "estimated_words": 500,
        "slow_reading": 0.3,
        "fast_reading": 0.8,

        # Focus
        "long_pause_seconds": 15,
        "burst_clicks": 3,
        "low_focus": 0.4,
        "high_focus": 0.7,
        "very_high_focus": 0.8,

        # Struggling / advanced signals
        "excessive_help": 2,
        "many_attempts": 3,
        "frustration_events": 2,
        "confusion_back_scrolls": 5,
        "struggle_pause_seconds": 30,
        "struggle_pause_count": 3,
        "quick_completion_seconds": 120,
        "quick_completion_rate": 0.8,
        "high_engagement": 0.8,
        "fast_scroll_speed": 1.2,
    }

    def __init__(self, custom_thresholds: Optional[Dict] = None):
        self.thresholds = {**self.THRESHOLDS, **(custom_thresholds or {})}

    # Interaction performance

    def time_performance(self, time_spent: float, level_multiplier: float = 1.0) -> float:
        t = self.thresholds
        base = t["expected_time"] * level_multiplier
        if time_spent < base * t["expected_time_min_factor"]:
            return 0.3  # Too fast, might be skipping
        if time_spent > base * t["expected_time_max_factor"]:
            return 0.4  # Too slow, might be struggling
        return 0.8

    @staticmethod
    def attempt_performance(attempts: int) -> float:
        if attempts <= 1:
            return 1.0
        if attempts <= 3:
            return 0.7
        if attempts <= 5:
            return 0.5
        return 0.3

    @staticmethod
    def independence_level(help_requests: int, time_spent: float) -> float:
        if help_requests == 0:
            return 1.0
        if time_spent <= 0:
            return 0.3
        help_rate = help_requests / (time_spent / 60)  # requests per minute
        if help_rate < 0.5:
            return 0.8
        if help_rate < 1:
            return 0.6
        return 0.3

    def struggling_signals(self, interaction: CurrentInteraction) -> List[str]:
        t = self.thresholds
        signals = []
        if interaction.help_requests > t["excessive_help"]:
            signals.append("excessive_help_requests")
        if interaction.attempts > t["many_attempts"]:
            signals.append("multiple_attempts")
        if len(interaction.frustration_indicators) > t["frustration_events"]:
            signals.append("frustration_indicators")
        if interaction.scroll_pattern.back_scroll_events > t["confusion_back_scrolls"]:
            signals.append("confusion_scrolling")
        long_pauses = [p for p in interaction.pause_events if p.duration_seconds > t["struggle_pause_seconds"]]
        if len(long_pauses) > t["struggle_pause_count"]:
            signals.append("long_pauses")
        return signals

    def advanced_signals(self, interaction: CurrentInteraction) -> List[str]:
        t = self.thresholds
        signals = []
        if interaction.attempts == 1 and interaction.help_requests == 0:
            signals.append("first_try_success")
        if (
            interaction.time_spent_seconds < t["quick_completion_seconds"]
            and interaction.scroll_pattern.scroll_completion_rate > t["quick_completion_rate"]
        ):
            signals.append("quick_completion")
        if interaction.engagement_level > t["high_engagement"]:
            signals.append("high_engagement")
        if interaction.scroll_pattern.average_scroll_speed > t["fast_scroll_speed"]:
            signals.append("fast_processing")
        return signals

    def analyze_performance(self, interaction: CurrentInteraction) -> InteractionPerformance:
        return InteractionPerformance(
            time_performance=self.time_performance(interaction.time_spent_seconds),
            attempt_performance=self.attempt_performance(interaction.attempts),
            independence_level=self.independence_level(
                interaction.help_requests, interaction.time_spent_seconds
            ),
            struggling_signals=self.struggling_signals(interaction),
            advanced_signals=self.advanced_signals(interaction),
        )

    # Behavior patterns

    def reading_speed(self, scroll: ScrollPattern, time_spent: float) -> float:
        if time_spent <= 0:
            return 0.0
        estimated_words = scroll.scroll_completion_rate * self.thresholds["estimated_words"]
        actual_wpm = estimated_words / (time_spent / 60)
        return clamp(actual_wpm / self.thresholds["reference_wpm"], 0.0, 1.0)

    def focus_level(self, pauses: Sequence[PauseEvent], clicks: Sequence[ClickPattern]) -> float:
        long_pauses = sum(1 for p in pauses if p.duration_seconds > self.thresholds["long_pause_seconds"])
        bursts = sum(1 for c in clicks if c.click_count > self.thresholds["burst_clicks"])
        return max(0.0, 1 - long_pauses * 0.2 - bursts * 0.1)

    @staticmethod
    def exploration_style(scroll: ScrollPattern, clicks: Sequence[ClickPattern]) -> ExplorationStyle:
        if scroll.back_scroll_events > 5 and len(clicks) > 10:
            return ExplorationStyle.EXPLORATORY
        if scroll.average_scroll_speed < 0.5 and len(clicks) < 3:
            return ExplorationStyle.METHODICAL
        if len(clicks) > 8:
            return ExplorationStyle.ACTIVE
        return ExplorationStyle.PASSIVE

    @staticmethod
    def comprehension(scroll: ScrollPattern, pauses: Sequence[PauseEvent]) -> ComprehensionIndicators:
        thoughtful_pauses = sum(1 for p in pauses if 5 < p.duration_seconds < 30)
        review_scrolls = scroll.back_scroll_events
        return ComprehensionIndicators(
            confident=thoughtful_pauses > 2 and review_scrolls < 3,
            reviewing=review_scrolls > 3,
            processing=thoughtful_pauses > 5,
            comprehensive=(scroll.time_at_top + scroll.time_at_bottom) > 0.6,
        )

    def analyze(self, interaction: CurrentInteraction) -> BehaviorAnalysis:
        t = self.thresholds
        scroll = interaction.scroll_pattern
        reading_speed = self.reading_speed(scroll, interaction.time_spent_seconds)
        focus = self.focus_level(interaction.pause_events, interaction.click_patterns)
        comprehension = self.comprehension(scroll, interaction.pause_events)

        return BehaviorAnalysis(
            reading_speed=reading_speed,
            focus_level=focus,
            exploration_style=self.exploration_style(scroll, interaction.click_patterns),
            comprehension=comprehension,
            performance=self.analyze_performance(interaction),
            needs_slower_pacing=reading_speed < t["slow_reading"],
            needs_faster_pacing=reading_speed > t["fast_reading"] and focus > t["high_focus"],
            needs_more_support=focus < t["low_focus"],
            needs_more_challenge=focus > t["very_high_focus"] and comprehension.confident,
        )
