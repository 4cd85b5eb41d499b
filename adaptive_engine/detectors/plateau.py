"""
Plateau Detector

A plateau is stable performance that is not improving: low variance of success
over the most recent window, observed for long enough, while the profile's
improvement rate stays near zero. Too little data is reported as "not
detected, confidence 0" rather than as an error.
"""
from typing import Dict, List, Optional, Sequence
from dataclasses import dataclass, field
from datetime import timedelta

from adaptive_engine.difficulty.models import DifficultyProfile
from adaptive_engine.difficulty.performance_analyzer import success_variance
from adaptive_engine.schemas.telemetry import PerformancePoint


@dataclass
class PlateauEstimate:
    plateau_detected: bool
    plateau_score: float   # 0-1
    confidence: float      # 0-1
    recommendation: str    # "increase_difficulty" | "maintain"
    details: Dict = field(default_factory=dict)


class PlateauDetector:
    """Detects sustained, stable, non-improving performance"""

    THRESHOLDS = {
        "min_points": 10,
        "window": 10,
        "min_span_minutes": 30,
        "score_threshold": 0.8,
        "improvement_threshold": 0.02,
        "max_confidence": 0.9,
    }

    def __init__(self, custom_thresholds: Optional[Dict] = None):
        self.thresholds = {**self.THRESHOLDS, **(custom_thresholds or {})}

    def _not_detected(self, reason: str, **details) -> PlateauEstimate:
        return PlateauEstimate(
            plateau_detected=False,
            plateau_score=0.0,
            confidence=0.0,
            recommendation="maintain",
            details={"reason": reason, **details},
        )

    def _points_since_last_change(
        self,
        points: Sequence[PerformancePoint],
        recent_records: Optional[Sequence] = None,
    ) -> List[PerformancePoint]:
        """Only points after the latest applied difficulty change count toward a plateau"""
        if not recent_records:
            return list(points)

        difficulty_changes = [
            r.timestamp for r in recent_records
            if r.action_type == "difficulty" and r.previous_state.get("level") != r.new_state.get("level")
        ]
        if not difficulty_changes:
            return list(points)

        last_change = max(difficulty_changes)
        return [p for p in points if p.timestamp >= last_change]

    def detect(
        self,
        profile: DifficultyProfile,
        points: Sequence[PerformancePoint],
        recent_records: Optional[Sequence] = None,
    ) -> PlateauEstimate:
        """
        Detect a learning plateau

        Args:
            profile: Profile supplying the improvement rate
            points: Recent performance, newest last
            recent_records: Optional AdaptationRecords for this user

        Returns:
            PlateauEstimate
        """
        t = self.thresholds
        eligible = self._points_since_last_change(points, recent_records)

        if len(eligible) < t["min_points"]:
            return self._not_detected("insufficient_data", point_count=len(eligible))

        window = eligible[-t["window"]:]
        time_span = window[-1].timestamp - window[0].timestamp
        long_enough = time_span >= timedelta(minutes=t["min_span_minutes"])

        if not long_enough:
            return self._not_detected(
                "insufficient_time_span",
                span_minutes=round(time_span.total_seconds() / 60, 1),
            )

        plateau_score = max(0.0, min(1.0, 1.0 - success_variance(window)))
        detected = (
            plateau_score > t["score_threshold"]
            and profile.improvement_rate < t["improvement_threshold"]
        )

        return PlateauEstimate(
            plateau_detected=detected,
            plateau_score=plateau_score,
            confidence=min(plateau_score, t["max_confidence"]) if detected else 0.0,
            recommendation="increase_difficulty" if detected else "maintain",
            details={
                "span_minutes": round(time_span.total_seconds() / 60, 1),
                "improvement_rate": profile.improvement_rate,
            },
        )
