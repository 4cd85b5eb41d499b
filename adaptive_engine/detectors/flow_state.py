"""
Flow-State Detector

Flow occurs when content difficulty closely matches the learner's skill.
Skill is estimated from the current level shifted by how far the success rate
sits from the 70% target, nudged by the trend. The flow score falls off with
the gap between level and skill and is damped by inconsistency, success rates
outside the 60-90% sweet band, and help seeking.
"""
from typing import Dict, Optional
from dataclasses import dataclass
from enum import Enum

from adaptive_engine.core.clock import clamp
from adaptive_engine.difficulty.models import DifficultyProfile
from adaptive_engine.difficulty.performance_analyzer import PerformanceAnalysis, PerformanceTrend


class FlowRecommendation(str, Enum):
    MAINTAIN = "maintain"
    INCREASE_DIFFICULTY = "increase_difficulty"
    DECREASE_DIFFICULTY = "decrease_difficulty"


@dataclass
class FlowStateEstimate:
    in_flow: bool
    flow_score: float       # 0-1
    difficulty_gap: float
    skill_level: float      # 1-10
    recommendation: FlowRecommendation

    @property
    def needs_difficulty_change(self) -> bool:
        return not self.in_flow and self.difficulty_gap > 1


class FlowStateDetector:
    """Estimates skill level and how close the learner is to flow"""

    THRESHOLDS = {
        "target_success": 0.7,
        "success_weight": 3.0,
        "trend_adjustment": 0.5,
        "gap_scale": 3.0,
        "sweet_band_low": 0.6,
        "sweet_band_high": 0.9,
        "out_of_band_factor": 0.5,
        "help_request_scale": 2.0,
        "flow_threshold": 0.7,
        "maintain_gap": 0.5,
        "min_level": 1,
        "max_level": 10,
    }

    def __init__(self, custom_thresholds: Optional[Dict] = None):
        self.thresholds = {**self.THRESHOLDS, **(custom_thresholds or {})}

    def estimate_skill_level(
        self,
        current_level: float,
        performance: PerformanceAnalysis,
    ) -> float:
        t = self.thresholds
        performance_adjustment = (performance.success_rate - t["target_success"]) * t["success_weight"]

        if performance.trend == PerformanceTrend.IMPROVING:
            trend_adjustment = t["trend_adjustment"]
        elif performance.trend == PerformanceTrend.DECLINING:
            trend_adjustment = -t["trend_adjustment"]
        else:
            trend_adjustment = 0.0

        return clamp(
            current_level + performance_adjustment + trend_adjustment,
            t["min_level"],
            t["max_level"],
        )

    def _recommend(self, gap: float, skill_level: float, current_level: float) -> FlowRecommendation:
        if gap < self.thresholds["maintain_gap"]:
            return FlowRecommendation.MAINTAIN
        if skill_level > current_level:
            return FlowRecommendation.INCREASE_DIFFICULTY
        if skill_level < current_level:
            return FlowRecommendation.DECREASE_DIFFICULTY
        return FlowRecommendation.MAINTAIN

    def detect(
        self,
        profile: DifficultyProfile,
        performance: PerformanceAnalysis,
    ) -> FlowStateEstimate:
        t = self.thresholds
        skill_level = self.estimate_skill_level(profile.current_level, performance)
        gap = abs(profile.current_level - skill_level)

        in_band = t["sweet_band_low"] < performance.success_rate < t["sweet_band_high"]
        band_factor = 1.0 if in_band else t["out_of_band_factor"]
        engagement_factor = clamp(1.0 - profile.help_requests / t["help_request_scale"], 0.0, 1.0)

        flow_score = (
            max(0.0, 1.0 - gap / t["gap_scale"])
            * clamp(performance.consistency, 0.0, 1.0)
            * band_factor
            * engagement_factor
        )
        flow_score = clamp(flow_score, 0.0, 1.0)

        return FlowStateEstimate(
            in_flow=flow_score > t["flow_threshold"],
            flow_score=flow_score,
            difficulty_gap=gap,
            skill_level=skill_level,
            recommendation=self._recommend(gap, skill_level, profile.current_level),
        )
