"""
Human-readable reasoning for structured triggers.

Decisions are made on AdaptationTrigger values; prose is derived from them
here and nowhere else.
"""
from typing import Any, Dict, Optional

from .actions import AdaptationTrigger

_REASONS = {
    AdaptationTrigger.FATIGUE: "Reducing difficulty due to high fatigue levels",
    AdaptationTrigger.PLATEAU: "Increasing difficulty to overcome learning plateau",
    AdaptationTrigger.HIGH_PERFORMANCE: "High success rate indicates readiness for increased challenge",
    AdaptationTrigger.LOW_PERFORMANCE: "Low success rate indicates need for difficulty reduction",
    AdaptationTrigger.MAINTAIN: "Maintaining current difficulty",
    AdaptationTrigger.FRUSTRATION: "Frustration signals detected in recent interactions",
    AdaptationTrigger.DISENGAGEMENT: "Engagement has dropped or the learner has gone idle",
    AdaptationTrigger.SLOW_READING: "Reading pace suggests slowing content delivery",
    AdaptationTrigger.FAST_READING: "Reading pace and focus suggest faster content delivery",
    AdaptationTrigger.SUPPORT_NEEDED: "Focus and progress suggest additional support",
    AdaptationTrigger.VARIETY_NEEDED: "Sustained engagement is fading; varying the format",
    AdaptationTrigger.ATTENTION_DROP: "Attention span has dropped after a long session",
    AdaptationTrigger.ROLLBACK: "Reverting adaptation after performance dropped during monitoring",
}


def describe(trigger: AdaptationTrigger, parameters: Optional[Dict[str, Any]] = None) -> str:
    """Reasoning text for a trigger and its parameters"""
    parameters = parameters or {}

    if trigger == AdaptationTrigger.FLOW_MISMATCH:
        direction = parameters.get("direction", "increase")
        if direction == "increase":
            return "Increasing difficulty to match skill level and restore flow state"
        return "Reducing difficulty to match skill level and restore flow state"

    if trigger == AdaptationTrigger.ROLLBACK and "drop" in parameters:
        return (
            f"{_REASONS[trigger]} "
            f"(drop {parameters['drop']:.2f} exceeded threshold {parameters.get('threshold', 0):.2f})"
        )

    return _REASONS.get(trigger, trigger.value.replace("_", " ").capitalize())
