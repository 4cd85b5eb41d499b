"""
Adaptation value types

AdaptationAction is what the decision engine proposes; AdaptationResult is what
the executor hands to the presentation layer (data only, never UI calls);
AdaptationRecord is the audit trail entry written when an action is applied.
"""
from typing import Any, Dict, List, Optional
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class AdaptationType(str, Enum):
    DIFFICULTY = "difficulty"
    PACING = "pacing"
    HINTS = "hints"
    EXAMPLES = "examples"
    ENCOURAGEMENT = "encouragement"
    CONTENT_FORMAT = "content_format"
    BREAK_SUGGESTION = "break_suggestion"


class AdaptationTiming(str, Enum):
    IMMEDIATE = "immediate"
    NEXT_INTERACTION = "next_interaction"
    NEXT_CONTENT = "next_content"


class Urgency(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class AdaptationTrigger(str, Enum):
    """Structured reason an action was proposed"""
    # Difficulty policy
    FATIGUE = "fatigue"
    PLATEAU = "plateau"
    FLOW_MISMATCH = "flow_mismatch"
    HIGH_PERFORMANCE = "high_performance"
    LOW_PERFORMANCE = "low_performance"
    MAINTAIN = "maintain"

    # Real-time signals
    FRUSTRATION = "frustration"
    DISENGAGEMENT = "disengagement"
    SLOW_READING = "slow_reading"
    FAST_READING = "fast_reading"
    SUPPORT_NEEDED = "support_needed"
    VARIETY_NEEDED = "variety_needed"
    ATTENTION_DROP = "attention_drop"

    # Monitoring
    ROLLBACK = "rollback"


# Higher runs first
ADAPTATION_PRIORITY = {
    AdaptationType.BREAK_SUGGESTION: 10,
    AdaptationType.ENCOURAGEMENT: 9,
    AdaptationType.DIFFICULTY: 8,
    AdaptationType.HINTS: 7,
    AdaptationType.PACING: 6,
    AdaptationType.EXAMPLES: 5,
    AdaptationType.CONTENT_FORMAT: 4,
}


@dataclass(frozen=True)
class AdaptationAction:
    """A bounded adaptation proposed for one session"""
    type: AdaptationType
    intensity: float              # 0-1
    trigger: AdaptationTrigger
    confidence: float             # 0-1
    timing: AdaptationTiming
    parameters: Dict[str, Any] = field(default_factory=dict)
    expected_duration_ms: int = 0
    success_criteria: List[str] = field(default_factory=list)
    rollback_threshold: float = 0.3
    urgency: Urgency = Urgency.LOW
    risk_level: RiskLevel = RiskLevel.LOW

    @property
    def priority(self) -> int:
        return ADAPTATION_PRIORITY.get(self.type, 3)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "intensity": self.intensity,
            "trigger": self.trigger.value,
            "confidence": self.confidence,
            "timing": self.timing.value,
            "parameters": dict(self.parameters),
            "expected_duration_ms": self.expected_duration_ms,
            "success_criteria": list(self.success_criteria),
            "rollback_threshold": self.rollback_threshold,
            "urgency": self.urgency.value,
            "risk_level": self.risk_level.value,
        }


@dataclass
class DifficultyRecommendation:
    """Outcome of the primary difficulty policy"""
    recommended_level: int
    current_level: int
    confidence: float
    trigger: AdaptationTrigger
    reasoning: str
    urgency: Urgency
    risk_level: RiskLevel
    expected_improvement: float
    current_performance: float
    target_performance: float
    monitoring_period_minutes: int
    success_criteria: List[str]
    rollback_threshold: float

    @property
    def adjustment_magnitude(self) -> int:
        return abs(self.recommended_level - self.current_level)

    @property
    def is_adjustment(self) -> bool:
        return self.recommended_level != self.current_level


@dataclass
class VisualFeedback:
    """Presentation-neutral description of feedback to show"""
    type: str                       # highlight, popup, animation, overlay, tooltip
    content: str
    duration_ms: int
    style_hints: Dict[str, str] = field(default_factory=dict)


@dataclass
class ContentRequest:
    """Request to the content-delivery collaborator"""
    content_id: str
    target_difficulty: int
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class AdaptationResult:
    applied: bool
    action: AdaptationAction
    adapted_content: Optional[ContentRequest] = None
    visual_feedback: Optional[VisualFeedback] = None
    system_message: Optional[str] = None
    user_feedback: Optional[str] = None
    next_actions: List[AdaptationAction] = field(default_factory=list)
    record_id: Optional[str] = None


@dataclass
class AdaptationRecord:
    """Append-only audit entry for an applied (or rolled back) adaptation"""
    record_id: str
    user_id: str
    timestamp: datetime
    session_id: str
    action_type: str
    trigger: str
    previous_state: Dict[str, Any]
    new_state: Dict[str, Any]
    effectiveness: Optional[float] = None
    duration_ms: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "record_id": self.record_id,
            "user_id": self.user_id,
            "timestamp": self.timestamp.isoformat(),
            "session_id": self.session_id,
            "action_type": self.action_type,
            "trigger": self.trigger,
            "previous_state": dict(self.previous_state),
            "new_state": dict(self.new_state),
            "effectiveness": self.effectiveness,
            "duration_ms": self.duration_ms,
        }

    @classmethod
    def from_dict(cls, d: Dict) -> "AdaptationRecord":
        d = d.copy()
        d["timestamp"] = datetime.fromisoformat(d["timestamp"])
        return cls(**{k: v for k, v in d.items() if k in cls.__dataclass_fields__})


@dataclass
class AdaptationPlan:
    """Ranked output of one decision cycle"""
    recommendation: DifficultyRecommendation
    candidates: List[AdaptationAction] = field(default_factory=list)
    immediate: List[AdaptationAction] = field(default_factory=list)
    deferred: List[AdaptationAction] = field(default_factory=list)
    rejected: List[AdaptationAction] = field(default_factory=list)
    held: List[AdaptationAction] = field(default_factory=list)  # difficulty changes waiting on monitoring

    @property
    def difficulty_action(self) -> Optional[AdaptationAction]:
        for action in self.candidates:
            if action.type == AdaptationType.DIFFICULTY:
                return action
        return None
