"""
Behavioral Signal Detectors

Independent detectors consuming the Performance Analyzer's output and the raw
interaction context:
1. Flow state: does difficulty match estimated skill?
2. Plateau: stable but not improving
3. Fatigue / motivation: session length, errors, time of day
4. Frustration and engagement: recent indicators, idle time, attention span

Behavior pattern analysis adds pacing and support needs read off scroll,
click and pause telemetry.
"""

from .flow_state import FlowStateDetector, FlowStateEstimate, FlowRecommendation
from .plateau import PlateauDetector, PlateauEstimate
from .fatigue import FatigueDetector, FatigueEstimate
from .frustration import FrustrationDetector, FrustrationEstimate, FrustrationRecommendation
from .engagement import EngagementDetector, EngagementEstimate
from .behavior import (
    BehaviorAnalyzer,
    BehaviorAnalysis,
    ComprehensionIndicators,
    ExplorationStyle,
    InteractionPerformance,
)

__all__ = [
    # Flow
    "FlowStateDetector",
    "FlowStateEstimate",
    "FlowRecommendation",
    # Plateau
    "PlateauDetector",
    "PlateauEstimate",
    # Fatigue
    "FatigueDetector",
    "FatigueEstimate",
    # Frustration / engagement
    "FrustrationDetector",
    "FrustrationEstimate",
    "FrustrationRecommendation",
    "EngagementDetector",
    "EngagementEstimate",
    # Behavior
    "BehaviorAnalyzer",
    "BehaviorAnalysis",
    "ComprehensionIndicators",
    "ExplorationStyle",
    "InteractionPerformance",
]
