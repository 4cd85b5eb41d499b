"""
Difficulty profile state

One DifficultyProfile exists per (user, subject). Profiles are created lazily
with conservative defaults and carry append-only adjustment and performance
histories. Serialization via to_dict/from_dict is an exact round trip so a
storage collaborator can persist snapshots without knowing the internals.
"""
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Any
from datetime import datetime
from enum import Enum

from adaptive_engine.core.clock import utcnow
from adaptive_engine.schemas.telemetry import PerformancePoint


class AdjustmentTrigger(str, Enum):
    """What caused a difficulty level change"""
    PERFORMANCE = "performance"
    TIME = "time"
    PLATEAU = "plateau"
    MANUAL = "manual"                  # Also used for automatic rollbacks
    AI_RECOMMENDATION = "ai_recommendation"


@dataclass
class DifficultyAdjustment:
    """A single recorded change of difficulty level"""
    timestamp: datetime
    from_level: int
    to_level: int
    reason: str
    trigger: AdjustmentTrigger
    confidence: float
    applied: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "from_level": self.from_level,
            "to_level": self.to_level,
            "reason": self.reason,
            "trigger": self.trigger.value,
            "confidence": self.confidence,
            "applied": self.applied,
        }

    @classmethod
    def from_dict(cls, d: Dict) -> "DifficultyAdjustment":
        d = d.copy()
        d["timestamp"] = datetime.fromisoformat(d["timestamp"])
        d["trigger"] = AdjustmentTrigger(d["trigger"])
        return cls(**{k: v for k, v in d.items() if k in cls.__dataclass_fields__})


@dataclass
class DifficultyProfile:
    """Per-user, per-subject difficulty and performance profile"""
    user_id: str
    subject: str = "general"
    current_level: int = 5            # 1-10 scale
    optimal_level: int = 5            # Target difficulty for flow state
    confidence: float = 0.3           # How sure we are about the level

    # Performance metrics
    success_rate: float = 0.7
    average_attempts: float = 1.5
    time_to_complete: float = 300.0   # seconds
    help_requests: float = 0.2        # per content item

    # Learning velocity
    improvement_rate: float = 0.05
    plateau_detected: bool = False
    last_adjustment: datetime = field(default_factory=utcnow)

    # Contextual factors
    session_quality: float = 0.7
    fatigue_level: float = 0.3
    motivation_level: float = 0.8

    # Histories (append-only)
    adjustment_history: List[DifficultyAdjustment] = field(default_factory=list)
    performance_history: List[PerformancePoint] = field(default_factory=list)

    @property
    def key(self) -> tuple:
        return (self.user_id, self.subject)

    def last_applied_adjustment(self) -> Optional[DifficultyAdjustment]:
        for adjustment in reversed(self.adjustment_history):
            if adjustment.applied:
                return adjustment
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id,
            "subject": self.subject,
            "current_level": self.current_level,
            "optimal_level": self.optimal_level,
            "confidence": self.confidence,
            "success_rate": self.success_rate,
            "average_attempts": self.average_attempts,
            "time_to_complete": self.time_to_complete,
            "help_requests": self.help_requests,
            "improvement_rate": self.improvement_rate,
            "plateau_detected": self.plateau_detected,
            "last_adjustment": self.last_adjustment.isoformat(),
            "session_quality": self.session_quality,
            "fatigue_level": self.fatigue_level,
            "motivation_level": self.motivation_level,
            "adjustment_history": [a.to_dict() for a in self.adjustment_history],
            "performance_history": [p.model_dump(mode="json") for p in self.performance_history],
        }

    @classmethod
    def from_dict(cls, d: Dict) -> "DifficultyProfile":
        d = d.copy()
        d["last_adjustment"] = datetime.fromisoformat(d["last_adjustment"])
        d["adjustment_history"] = [
            DifficultyAdjustment.from_dict(a) for a in d.get("adjustment_history", [])
        ]
        d["performance_history"] = [
            PerformancePoint.model_validate(p) for p in d.get("performance_history", [])
        ]
        return cls(**{k: v for k, v in d.items() if k in cls.__dataclass_fields__})
