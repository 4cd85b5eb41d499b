"""
Fatigue / Motivation Detector

Fatigue grows with session length and recent errors and is shifted by time of
day. Motivation is its floor-limited complement.
"""
from typing import Dict, Optional, Sequence, Union
from dataclasses import dataclass

from adaptive_engine.core.clock import clamp
from adaptive_engine.schemas.telemetry import PerformancePoint, TimeOfDay


@dataclass
class FatigueEstimate:
    fatigue_level: float     # 0-1
    motivation_level: float  # 0-1
    recommendation: str      # "reduce_difficulty" | "maintain"
    confidence: float

    @property
    def is_fatigued(self) -> bool:
        return self.recommendation == "reduce_difficulty"


class FatigueDetector:
    """Estimates fatigue and motivation for the current session"""

    THRESHOLDS = {
        "fatigue_per_hour": 0.5,
        "error_weight": 0.1,
        "max_error_fatigue": 0.3,
        "fatigue_threshold": 0.7,
        "min_motivation": 0.3,
        "confidence": 0.6,
    }

    TIME_OF_DAY_ADJUSTMENT = {
        TimeOfDay.MORNING: -0.1,
        TimeOfDay.AFTERNOON: 0.0,
        TimeOfDay.EVENING: 0.1,
        TimeOfDay.NIGHT: 0.1,
    }

    def __init__(self, custom_thresholds: Optional[Dict] = None):
        self.thresholds = {**self.THRESHOLDS, **(custom_thresholds or {})}

    @staticmethod
    def count_recent_errors(points: Sequence[PerformancePoint], window: int = 5) -> int:
        return sum(1 for p in list(points)[-window:] if not p.success)

    def detect(
        self,
        session_duration_seconds: float,
        recent_errors: int = 0,
        time_of_day: Union[TimeOfDay, str] = TimeOfDay.AFTERNOON,
    ) -> FatigueEstimate:
        t = self.thresholds
        time_of_day = TimeOfDay(time_of_day)

        fatigue = t["fatigue_per_hour"] * (max(0.0, session_duration_seconds) / 3600)
        fatigue += min(t["max_error_fatigue"], max(0, recent_errors) * t["error_weight"])
        fatigue += self.TIME_OF_DAY_ADJUSTMENT.get(time_of_day, 0.0)
        fatigue = clamp(fatigue, 0.0, 1.0)

        motivation = max(t["min_motivation"], 1.0 - fatigue)

        return FatigueEstimate(
            fatigue_level=fatigue,
            motivation_level=motivation,
            recommendation="reduce_difficulty" if fatigue > t["fatigue_threshold"] else "maintain",
            confidence=t["confidence"],
        )
