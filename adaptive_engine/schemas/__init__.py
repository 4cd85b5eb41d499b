from .telemetry import (
    TimeOfDay,
    FrustrationIndicatorType,
    PerformanceContext,
    PerformancePoint,
    ScrollPattern,
    ClickPattern,
    PauseEvent,
    FrustrationIndicator,
    CurrentInteraction,
    EnvironmentalFactors,
    RealTimeContext,
)

__all__ = [
    "TimeOfDay",
    "FrustrationIndicatorType",
    "PerformanceContext",
    "PerformancePoint",
    "ScrollPattern",
    "ClickPattern",
    "PauseEvent",
    "FrustrationIndicator",
    "CurrentInteraction",
    "EnvironmentalFactors",
    "RealTimeContext",
]
