"""
Frustration Detection - Real-Time Affective State Monitoring

Key Indicators (reported by the collector as FrustrationIndicators):
1. Rapid clicking
2. Back navigation
3. Long pauses
4. Help seeking
5. Tab switching

Only indicators observed within the trailing window (60s by default) count.
Their intensities are averaged into a 0-1 frustration score.
"""
from typing import Dict, List, Optional, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
import logging

from adaptive_engine.core.clock import clamp, utcnow
from adaptive_engine.schemas.telemetry import FrustrationIndicator, FrustrationIndicatorType

logger = logging.getLogger(__name__)


class FrustrationRecommendation(str, Enum):
    CONTINUE_NORMAL = "continue_normal"
    MONITOR_CLOSELY = "monitor_closely"
    PROVIDE_SUPPORT = "provide_support"
    IMMEDIATE_INTERVENTION = "immediate_intervention"


@dataclass
class FrustrationEstimate:
    frustration_score: float  # 0-1
    primary_source: Optional[FrustrationIndicatorType]
    recent_event_count: int
    needs_immediate_support: bool
    needs_encouragement: bool
    recommendation: FrustrationRecommendation
    details: Dict = field(default_factory=dict)


class FrustrationDetector:
    """
    Scores frustration from recent behavioral indicators

    Thresholds:
        immediate_support: score above which the learner needs help now
        encouragement: score above which encouragement is warranted
    """

    THRESHOLDS = {
        "window_seconds": 60,
        "primary_source_intensity": 0.5,
        "immediate_support": 0.7,
        "encouragement": 0.4,

        # Recommendation bands
        "immediate_intervention": 0.8,
        "provide_support": 0.6,
        "monitor_closely": 0.4,
    }

    def __init__(self, custom_thresholds: Optional[Dict] = None):
        self.thresholds = {**self.THRESHOLDS, **(custom_thresholds or {})}

    def recent_indicators(
        self,
        indicators: Sequence[FrustrationIndicator],
        now: datetime,
    ) -> List[FrustrationIndicator]:
        window = timedelta(seconds=self.thresholds["window_seconds"])
        return [i for i in indicators if timedelta(0) <= now - i.timestamp < window]

    def _recommend(self, score: float) -> FrustrationRecommendation:
        if score > self.thresholds["immediate_intervention"]:
            return FrustrationRecommendation.IMMEDIATE_INTERVENTION
        if score > self.thresholds["provide_support"]:
            return FrustrationRecommendation.PROVIDE_SUPPORT
        if score > self.thresholds["monitor_closely"]:
            return FrustrationRecommendation.MONITOR_CLOSELY
        return FrustrationRecommendation.CONTINUE_NORMAL

    def detect(
        self,
        indicators: Sequence[FrustrationIndicator],
        now: Optional[datetime] = None,
    ) -> FrustrationEstimate:
        """
        Detect frustration from indicators in the trailing window

        Args:
            indicators: Indicators reported for the current interaction
            now: Evaluation time (defaults to current UTC time)

        Returns:
            FrustrationEstimate
        """
        now = now or utcnow()
        recent = self.recent_indicators(indicators, now)

        if not recent:
            return FrustrationEstimate(
                frustration_score=0.0,
                primary_source=None,
                recent_event_count=0,
                needs_immediate_support=False,
                needs_encouragement=False,
                recommendation=FrustrationRecommendation.CONTINUE_NORMAL,
                details={"reason": "no_recent_indicators"},
            )

        total_intensity = 0.0
        primary_source = None
        for indicator in recent:
            total_intensity += indicator.intensity
            if primary_source is None and indicator.intensity > self.thresholds["primary_source_intensity"]:
                primary_source = indicator.type

        score = clamp(total_intensity / len(recent), 0.0, 1.0)

        by_type: Dict[str, int] = {}
        for indicator in recent:
            by_type[indicator.type.value] = by_type.get(indicator.type.value, 0) + 1

        return FrustrationEstimate(
            frustration_score=score,
            primary_source=primary_source,
            recent_event_count=len(recent),
            needs_immediate_support=score > self.thresholds["immediate_support"],
            needs_encouragement=score > self.thresholds["encouragement"],
            recommendation=self._recommend(score),
            details={"by_type": by_type},
        )
