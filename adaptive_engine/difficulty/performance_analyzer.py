"""
Performance Analyzer

Aggregates a window of PerformancePoints (newest last) into the statistics the
signal detectors consume. An empty window yields neutral defaults so a cold
start never divides by zero and early recommendations stay conservative.
"""
from typing import Dict, List, Optional, Sequence
from dataclasses import dataclass
from enum import Enum
import logging

import numpy as np

from adaptive_engine.core.clock import clamp
from adaptive_engine.schemas.telemetry import PerformancePoint

logger = logging.getLogger(__name__)


class PerformanceTrend(str, Enum):
    IMPROVING = "improving"
    STABLE = "stable"
    DECLINING = "declining"


@dataclass
class PerformanceAnalysis:
    """Aggregate statistics over a performance window"""
    success_rate: float
    average_attempts: float
    average_time: float
    trend: PerformanceTrend
    consistency: float
    recent_success: float
    earlier_success: float
    average_score: Optional[float] = None
    sample_size: int = 0

    @property
    def is_neutral(self) -> bool:
        return self.sample_size == 0


def success_variance(points: Sequence[PerformancePoint]) -> float:
    """Population variance of success encoded as 0/1"""
    if not points:
        return 0.0
    return float(np.var([1.0 if p.success else 0.0 for p in points]))


class PerformanceAnalyzer:
    """
    Computes success rate, attempts, timing, trend and consistency.

    Trend compares the success rate of the last TREND_WINDOW points against the
    first TREND_WINDOW points of the same window.
    """

    DEFAULTS = {
        "success_rate": 0.7,
        "average_attempts": 1.5,
        "average_time": 300.0,
        "consistency": 0.7,
    }

    THRESHOLDS = {
        "trend_window": 5,
        "trend_delta": 0.10,
        "improvement_min_points": 10,
        "improvement_window": 20,
    }

    def __init__(self, custom_thresholds: Optional[Dict] = None):
        self.thresholds = {**self.THRESHOLDS, **(custom_thresholds or {})}

    def neutral(self) -> PerformanceAnalysis:
        return PerformanceAnalysis(
            success_rate=self.DEFAULTS["success_rate"],
            average_attempts=self.DEFAULTS["average_attempts"],
            average_time=self.DEFAULTS["average_time"],
            trend=PerformanceTrend.STABLE,
            consistency=self.DEFAULTS["consistency"],
            recent_success=self.DEFAULTS["success_rate"],
            earlier_success=self.DEFAULTS["success_rate"],
        )

    def analyze(self, points: Sequence[PerformancePoint]) -> PerformanceAnalysis:
        """
        Analyze a performance window

        Args:
            points: Ordered window, newest last

        Returns:
            PerformanceAnalysis (neutral defaults for an empty window)
        """
        if not points:
            return self.neutral()

        successes = np.array([1.0 if p.success else 0.0 for p in points])
        success_rate = float(successes.mean())
        average_attempts = float(np.mean([p.attempts for p in points]))
        average_time = float(np.mean([p.time_spent_seconds for p in points]))

        window = self.thresholds["trend_window"]
        recent_success = float(successes[-window:].mean())
        earlier_success = float(successes[:window].mean())

        delta = self.thresholds["trend_delta"]
        if recent_success > earlier_success + delta:
            trend = PerformanceTrend.IMPROVING
        elif recent_success < earlier_success - delta:
            trend = PerformanceTrend.DECLINING
        else:
            trend = PerformanceTrend.STABLE

        consistency = max(0.0, 1.0 - float(np.var(successes)))

        scores = [p.score for p in points if p.score is not None]
        average_score = float(np.mean(scores)) if scores else None

        return PerformanceAnalysis(
            success_rate=success_rate,
            average_attempts=average_attempts,
            average_time=average_time,
            trend=trend,
            consistency=consistency,
            recent_success=recent_success,
            earlier_success=earlier_success,
            average_score=average_score,
            sample_size=len(points),
        )

    def improvement_rate(self, points: Sequence[PerformancePoint]) -> Optional[float]:
        """
        Least-squares slope of success against position over the recent history.

        Returns None when there is not enough history to say anything.
        """
        if len(points) < self.thresholds["improvement_min_points"]:
            return None

        recent: List[PerformancePoint] = list(points)[-self.thresholds["improvement_window"]:]
        positions = np.arange(len(recent), dtype=float)
        successes = np.array([1.0 if p.success else 0.0 for p in recent])

        slope, _ = np.polyfit(positions, successes, 1)
        return float(clamp(slope, -1.0, 1.0))
