"""
Adaptation decisions, execution and monitoring.
"""

from .actions import (
    ADAPTATION_PRIORITY,
    AdaptationAction,
    AdaptationPlan,
    AdaptationRecord,
    AdaptationResult,
    AdaptationTiming,
    AdaptationTrigger,
    AdaptationType,
    ContentRequest,
    DifficultyRecommendation,
    RiskLevel,
    Urgency,
    VisualFeedback,
)
from .reasoning import describe
from .decision_engine import AdaptationDecisionEngine
from .feedback import FeedbackBuilder
from .history import AdaptationHistoryLog
from .monitoring import MonitoringCheck, MonitoringObligation, MonitoringOutcome, RollbackMonitor
from .executor import AdaptationExecutor

__all__ = [
    # Actions
    "ADAPTATION_PRIORITY",
    "AdaptationAction",
    "AdaptationPlan",
    "AdaptationRecord",
    "AdaptationResult",
    "AdaptationTiming",
    "AdaptationTrigger",
    "AdaptationType",
    "ContentRequest",
    "DifficultyRecommendation",
    "RiskLevel",
    "Urgency",
    "VisualFeedback",
    "describe",
    # Decisions
    "AdaptationDecisionEngine",
    # Execution
    "AdaptationExecutor",
    "FeedbackBuilder",
    "AdaptationHistoryLog",
    # Monitoring
    "MonitoringCheck",
    "MonitoringObligation",
    "MonitoringOutcome",
    "RollbackMonitor",
]
