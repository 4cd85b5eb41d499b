"""
Monitoring and rollback

Every applied adaptation with a non-zero expected duration opens a monitoring
obligation. Obligations are checked cooperatively at the start of each cycle:
- Rollback: once enough post-adaptation points exist inside the window and
  success has dropped from the baseline by at least the rollback threshold.
- Completed: the window expired without a violation.
- Pending: otherwise.
Ending a session discards its obligations without rolling back.
"""
from typing import Dict, List, Optional, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from threading import Lock
import logging
import uuid

from adaptive_engine.core.clock import Clock, clamp, utcnow
from adaptive_engine.core.config import EngineSettings, settings as default_settings
from adaptive_engine.schemas.telemetry import PerformancePoint
from .actions import AdaptationAction, AdaptationType

logger = logging.getLogger(__name__)


class MonitoringOutcome(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    ROLLBACK = "rollback"


@dataclass
class MonitoringObligation:
    """Open monitoring window for one applied adaptation"""
    user_id: str
    subject: str
    session_id: str
    record_id: str
    action: AdaptationAction
    started_at: datetime
    expires_at: datetime
    baseline_performance: float
    rollback_threshold: float
    previous_level: Optional[int] = None
    new_level: Optional[int] = None
    obligation_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    @property
    def is_difficulty(self) -> bool:
        return self.action.type == AdaptationType.DIFFICULTY


@dataclass
class MonitoringCheck:
    obligation: MonitoringObligation
    outcome: MonitoringOutcome
    observed_points: int
    current_performance: Optional[float] = None
    performance_drop: Optional[float] = None
    effectiveness: Optional[float] = None


class RollbackMonitor:
    """Tracks monitoring obligations per user"""

    def __init__(
        self,
        settings: Optional[EngineSettings] = None,
        clock: Optional[Clock] = None,
    ):
        self.settings = settings or default_settings
        self.clock = clock or utcnow
        self._obligations: Dict[str, List[MonitoringObligation]] = {}
        self._lock = Lock()

    def open(
        self,
        action: AdaptationAction,
        user_id: str,
        subject: str,
        session_id: str,
        record_id: str,
        baseline_performance: float,
        previous_level: Optional[int] = None,
        new_level: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> Optional[MonitoringObligation]:
        """Register an obligation; actions without a duration are not monitored"""
        if action.expected_duration_ms <= 0:
            return None

        started_at = now or self.clock()
        obligation = MonitoringObligation(
            user_id=user_id,
            subject=subject,
            session_id=session_id,
            record_id=record_id,
            action=action,
            started_at=started_at,
            expires_at=started_at + timedelta(milliseconds=action.expected_duration_ms),
            baseline_performance=clamp(baseline_performance, 0.0, 1.0),
            rollback_threshold=action.rollback_threshold,
            previous_level=previous_level,
            new_level=new_level,
        )
        with self._lock:
            self._obligations.setdefault(user_id, []).append(obligation)

        logger.debug(
            f"Monitoring {action.type.value} for user={user_id} until {obligation.expires_at.isoformat()}"
        )
        return obligation

    def pending(self, user_id: str, subject: Optional[str] = None) -> List[MonitoringObligation]:
        """Open obligations in the order they were opened"""
        obligations = list(self._obligations.get(user_id, []))
        if subject is not None:
            obligations = [o for o in obligations if o.subject == subject]
        return obligations

    def evaluate(
        self,
        obligation: MonitoringObligation,
        points: Sequence[PerformancePoint],
        now: Optional[datetime] = None,
    ) -> MonitoringCheck:
        """Judge one obligation against the points recorded since it opened"""
        now = now or self.clock()
        window = [
            p for p in points
            if obligation.started_at <= p.timestamp <= obligation.expires_at
        ]

        current = None
        drop = None
        if window:
            current = sum(1 for p in window if p.success) / len(window)
            drop = obligation.baseline_performance - current

        if (
            drop is not None
            and len(window) >= self.settings.MONITORING_MIN_POINTS
            and drop >= obligation.rollback_threshold
        ):
            outcome = MonitoringOutcome.ROLLBACK
        elif now >= obligation.expires_at:
            outcome = MonitoringOutcome.COMPLETED
        else:
            outcome = MonitoringOutcome.PENDING

        effectiveness = None
        if outcome != MonitoringOutcome.PENDING:
            effectiveness = 0.5 if current is None else clamp(0.5 - drop, 0.0, 1.0)

        return MonitoringCheck(
            obligation=obligation,
            outcome=outcome,
            observed_points=len(window),
            current_performance=current,
            performance_drop=drop,
            effectiveness=effectiveness,
        )

    def check(
        self,
        user_id: str,
        subject: str,
        points: Sequence[PerformancePoint],
        now: Optional[datetime] = None,
    ) -> List[MonitoringCheck]:
        """
        Evaluate and close every resolved obligation for one profile

        Newest obligations come first so stacked difficulty rollbacks unwind in
        reverse order and end on the oldest previous level.
        """
        resolved = []
        for obligation in reversed(self.pending(user_id, subject)):
            result = self.evaluate(obligation, points, now)
            if result.outcome != MonitoringOutcome.PENDING:
                self.close(obligation)
                resolved.append(result)
        return resolved

    def close(self, obligation: MonitoringObligation) -> None:
        with self._lock:
            obligations = self._obligations.get(obligation.user_id, [])
            self._obligations[obligation.user_id] = [
                o for o in obligations if o.obligation_id != obligation.obligation_id
            ]

    def discard_session(self, session_id: str) -> int:
        """Drop every obligation opened in a session"""
        discarded = 0
        with self._lock:
            for user_id, obligations in self._obligations.items():
                kept = [o for o in obligations if o.session_id != session_id]
                discarded += len(obligations) - len(kept)
                self._obligations[user_id] = kept
        if discarded:
            logger.info(f"Discarded {discarded} monitoring obligations for session={session_id}")
        return discarded
