"""
Adaptive Engine: closed-loop difficulty and behavioral adaptation

Integrates every component around an injected profile store:
1. Performance Analyzer - telemetry window -> success, attempts, trend
2. Detectors - flow state, plateau, fatigue, frustration, engagement, behavior
3. Decision Engine - ranked, gated adaptation plan
4. Executor - applies actions, writes the history log
5. Rollback Monitor - reverts adaptations that hurt performance

The loop for one session:
    Observing -> Deciding -> Executing -> Monitoring -> {Continue | Rollback}

A cycle is synchronous and holds only the learner's own lock. Deferred actions
wait for the next interaction or content boundary of their session.
Only one difficulty change per profile is monitored at a time; later difficulty
actions are held until its window resolves.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Union
from datetime import datetime, timedelta
from threading import Lock
import logging
import random

from pydantic import ValidationError

from adaptive_engine.core.clock import Clock, utcnow
from adaptive_engine.core.config import EngineSettings, settings as default_settings
from adaptive_engine.difficulty.models import DifficultyProfile
from adaptive_engine.difficulty.performance_analyzer import PerformanceAnalysis, PerformanceAnalyzer
from adaptive_engine.difficulty.profile_store import InMemoryProfileStore, ProfileStore
from adaptive_engine.detectors.behavior import BehaviorAnalyzer
from adaptive_engine.detectors.engagement import EngagementDetector
from adaptive_engine.detectors.fatigue import FatigueDetector, FatigueEstimate
from adaptive_engine.detectors.flow_state import FlowStateDetector
from adaptive_engine.detectors.frustration import FrustrationDetector
from adaptive_engine.detectors.plateau import PlateauDetector, PlateauEstimate
from adaptive_engine.schemas.telemetry import PerformancePoint, RealTimeContext, TimeOfDay
from adaptive_engine.adaptation.actions import (
    AdaptationAction,
    AdaptationPlan,
    AdaptationRecord,
    AdaptationResult,
    AdaptationTiming,
    AdaptationType,
    DifficultyRecommendation,
)
from adaptive_engine.adaptation.decision_engine import AdaptationDecisionEngine
from adaptive_engine.adaptation.executor import AdaptationExecutor
from adaptive_engine.adaptation.history import AdaptationHistoryLog
from adaptive_engine.adaptation.monitoring import MonitoringOutcome, RollbackMonitor

logger = logging.getLogger(__name__)

PointInput = Union[PerformancePoint, Dict[str, Any]]


@dataclass
class SessionState:
    """Per-session bookkeeping between cycles"""
    user_id: str
    subject: str
    content_id: str
    attempts: int = 1
    last_cycle_at: Optional[datetime] = None
    deferred: List[AdaptationAction] = field(default_factory=list)


@dataclass
class CycleResult:
    """Outcome of one adaptation cycle"""
    user_id: str
    session_id: str
    recommendation: Optional[DifficultyRecommendation] = None
    plan: Optional[AdaptationPlan] = None
    results: List[AdaptationResult] = field(default_factory=list)
    deferred: List[AdaptationAction] = field(default_factory=list)
    rollbacks: List[AdaptationRecord] = field(default_factory=list)
    skipped_reason: Optional[str] = None

    @property
    def applied(self) -> List[AdaptationResult]:
        return [r for r in self.results if r.applied]


class AdaptiveEngine:
    """
    Main entry point for difficulty and real-time adaptation

    Usage:
        engine = AdaptiveEngine()
        result = engine.run_cycle(context, points)
        for adaptation in result.applied:
            ...
    """

    def __init__(
        self,
        settings: Optional[EngineSettings] = None,
        store: Optional[ProfileStore] = None,
        history: Optional[AdaptationHistoryLog] = None,
        clock: Optional[Clock] = None,
        rng: Optional[random.Random] = None,
    ):
        self.settings = settings or default_settings
        self.clock = clock or utcnow
        self.store = store or InMemoryProfileStore(self.settings, self.clock)
        self.history = history or AdaptationHistoryLog()

        self.analyzer = PerformanceAnalyzer()
        self.flow_detector = FlowStateDetector({
            "min_level": self.settings.MIN_LEVEL,
            "max_level": self.settings.MAX_LEVEL,
        })
        self.plateau_detector = PlateauDetector()
        self.fatigue_detector = FatigueDetector()
        self.frustration_detector = FrustrationDetector({
            "window_seconds": self.settings.FRUSTRATION_WINDOW_SECONDS,
        })
        self.engagement_detector = EngagementDetector({
            "idle_seconds": self.settings.IDLE_THRESHOLD_SECONDS,
        })
        self.behavior_analyzer = BehaviorAnalyzer()
        self.decision_engine = AdaptationDecisionEngine(self.settings)
        self.monitor = RollbackMonitor(self.settings, self.clock)
        self.executor = AdaptationExecutor(
            self.store,
            self.history,
            self.monitor,
            settings=self.settings,
            clock=self.clock,
            rng=rng,
            analyzer=self.analyzer,
        )

        self._sessions: Dict[str, SessionState] = {}
        self._sessions_lock = Lock()

        logger.info(f"{self.settings.APP_NAME} initialized ({self.settings.ENVIRONMENT})")

    # Helpers

    @staticmethod
    def _parse_points(points: Optional[Sequence[PointInput]]) -> List[PerformancePoint]:
        parsed = [
            p if isinstance(p, PerformancePoint) else PerformancePoint.model_validate(p)
            for p in (points or [])
        ]
        return sorted(parsed, key=lambda p: p.timestamp)

    def _window(self, profile: DifficultyProfile, points: Sequence[PerformancePoint]) -> List[PerformancePoint]:
        return (profile.performance_history + list(points))[-self.settings.ANALYSIS_WINDOW:]

    def _fatigue(
        self,
        window: Sequence[PerformancePoint],
        context: Optional[RealTimeContext],
        now: datetime,
    ) -> FatigueEstimate:
        if context is not None:
            session_seconds = context.session_duration_seconds(now)
            time_of_day = context.environmental_factors.time_of_day
        elif window:
            session_seconds = window[-1].context.session_duration_minutes * 60
            time_of_day = window[-1].context.time_of_day
        else:
            session_seconds = 0.0
            time_of_day = TimeOfDay.AFTERNOON

        recent_errors = FatigueDetector.count_recent_errors(window, self.settings.FATIGUE_ERROR_WINDOW)
        return self.fatigue_detector.detect(session_seconds, recent_errors, time_of_day)

    def _plateau(
        self,
        profile: DifficultyProfile,
        points: Sequence[PerformancePoint],
    ) -> PlateauEstimate:
        return self.plateau_detector.detect(
            profile,
            profile.performance_history + list(points),
            self.history.list(profile.user_id),
        )

    # Analysis

    def analyze_difficulty(
        self,
        user_id: str,
        subject: str = "general",
        points: Optional[Sequence[PointInput]] = None,
        context: Optional[RealTimeContext] = None,
    ) -> DifficultyRecommendation:
        """
        Recommend a difficulty level without changing any state

        Args:
            user_id: Learner
            subject: Subject of the profile
            points: New performance points not yet ingested
            context: Optional session context (session length, time of day)

        Returns:
            DifficultyRecommendation
        """
        now = self.clock()
        new_points = self._parse_points(points)

        with self.store.lock(user_id):
            profile = self.store.get(user_id, subject) or self.store.default_profile(user_id, subject)
            window = self._window(profile, new_points)
            analysis = self.analyzer.analyze(window)
            flow = self.flow_detector.detect(profile, analysis)
            plateau = self._plateau(profile, new_points)
            fatigue = self._fatigue(window, context, now)

            return self.decision_engine.recommend_difficulty(profile, analysis, flow, plateau, fatigue)

    # Closed loop

    def _session(self, context: RealTimeContext) -> SessionState:
        with self._sessions_lock:
            session = self._sessions.get(context.session_id)
            if session is None:
                session = SessionState(
                    user_id=context.user_id,
                    subject=context.subject,
                    content_id=context.content_id,
                    attempts=context.current_interaction.attempts,
                )
                self._sessions[context.session_id] = session
            return session

    def _resolve_monitoring(self, context: RealTimeContext, now: datetime) -> List[AdaptationRecord]:
        profile = self.store.get_or_create(context.user_id, context.subject)
        rollbacks = []
        for check in self.monitor.check(context.user_id, context.subject, profile.performance_history, now):
            if check.outcome == MonitoringOutcome.ROLLBACK:
                record = self.executor.rollback(check)
                if record is not None:
                    rollbacks.append(record)
            else:
                self.executor.complete(check)
        return rollbacks

    def _difficulty_monitored(self, user_id: str, subject: str) -> bool:
        return any(o.is_difficulty for o in self.monitor.pending(user_id, subject))

    @staticmethod
    def _hold_difficulty(plan: AdaptationPlan) -> None:
        """Move difficulty actions out of the plan until monitoring resolves"""
        for bucket in (plan.immediate, plan.deferred):
            held = [a for a in bucket if a.type == AdaptationType.DIFFICULTY]
            for action in held:
                bucket.remove(action)
            plan.held.extend(held)

    def _release_deferred(
        self,
        session: SessionState,
        context: RealTimeContext,
        new_points: Sequence[PerformancePoint],
        hold_difficulty: bool = False,
    ) -> List[AdaptationAction]:
        content_changed = context.content_id != session.content_id
        new_interaction = bool(new_points) or context.current_interaction.attempts != session.attempts

        released, kept = [], []
        for action in session.deferred:
            if content_changed or (new_interaction and action.timing == AdaptationTiming.NEXT_INTERACTION):
                released.append(action)
            else:
                kept.append(action)
        session.deferred = kept
        session.content_id = context.content_id
        session.attempts = context.current_interaction.attempts

        profile = self.store.get_or_create(context.user_id, context.subject)
        fresh = []
        for action in released:
            if action.type == AdaptationType.DIFFICULTY and (
                hold_difficulty or action.parameters.get("from_level") != profile.current_level
            ):
                logger.debug(f"Dropping deferred difficulty action for session={context.session_id}")
                continue
            fresh.append(action)
        return fresh

    @staticmethod
    def _queue_deferred(session: SessionState, actions: Sequence[AdaptationAction]) -> None:
        queued = {a.type: a for a in session.deferred}
        for action in actions:
            queued[action.type] = action
        session.deferred = sorted(queued.values(), key=lambda a: (-a.priority, -a.confidence))

    def run_cycle(
        self,
        context: Union[RealTimeContext, Dict[str, Any]],
        points: Optional[Sequence[PointInput]] = None,
    ) -> CycleResult:
        """
        Run one observe-decide-execute cycle for a session

        Args:
            context: Current session context
            points: Performance points recorded since the last cycle

        Returns:
            CycleResult
        """
        try:
            if not isinstance(context, RealTimeContext):
                context = RealTimeContext.model_validate(context)
            new_points = self._parse_points(points)
        except ValidationError as e:
            return self._invalid_input(context, e)

        result = CycleResult(user_id=context.user_id, session_id=context.session_id)
        if not self.settings.ENABLED:
            result.skipped_reason = "disabled"
            return result

        now = self.clock()
        interaction = context.current_interaction
        session_seconds = context.session_duration_seconds(now)

        with self.store.lock(context.user_id):
            session = self._session(context)

            # Observe
            profile = self.store.get_or_create(context.user_id, context.subject)
            window = self._window(profile, new_points)
            analysis = self.analyzer.analyze(window)
            fatigue = self._fatigue(window, context, now)
            if new_points:
                self.executor.observe(profile, new_points, analysis, fatigue, interaction)
                self.store.save(profile)

            # Monitoring and deferred work
            result.rollbacks = self._resolve_monitoring(context, now)
            # One difficulty change is monitored at a time, and none follows a rollback in the same cycle
            hold_difficulty = (
                any(r.action_type == AdaptationType.DIFFICULTY.value for r in result.rollbacks)
                or self._difficulty_monitored(context.user_id, context.subject)
            )
            for action in self._release_deferred(session, context, new_points, hold_difficulty):
                result.results.append(self._execute(action, context, analysis))

            # Gates
            frequency = timedelta(seconds=self.settings.ADAPTATION_FREQUENCY_SECONDS)
            if session.last_cycle_at is not None and now - session.last_cycle_at < frequency:
                result.skipped_reason = "throttled"
                result.deferred = list(session.deferred)
                return result
            if interaction.time_spent_seconds < self.settings.MINIMUM_INTERACTION_SECONDS:
                result.skipped_reason = "insufficient_interaction"
                result.deferred = list(session.deferred)
                return result
            session.last_cycle_at = now

            # Decide
            profile = self.store.get_or_create(context.user_id, context.subject)
            flow = self.flow_detector.detect(profile, analysis)
            plateau = self._plateau(profile, [])
            profile.plateau_detected = plateau.plateau_detected
            self.store.save(profile)

            plan = self.decision_engine.decide(
                profile,
                analysis,
                flow,
                plateau,
                fatigue,
                frustration=self.frustration_detector.detect(interaction.frustration_indicators, now),
                engagement=self.engagement_detector.detect(interaction, session_seconds, now),
                behavior=self.behavior_analyzer.analyze(interaction),
                context=context,
                session_duration_seconds=session_seconds,
            )
            if hold_difficulty or self._difficulty_monitored(context.user_id, context.subject):
                self._hold_difficulty(plan)
            result.plan = plan
            result.recommendation = plan.recommendation

            # Execute
            for action in plan.immediate:
                result.results.append(self._execute(action, context, analysis))
            self._queue_deferred(session, plan.deferred)
            result.deferred = list(session.deferred)

        if result.applied:
            logger.info(
                f"Cycle for user={context.user_id} session={context.session_id} applied "
                f"{[r.action.type.value for r in result.applied]}"
            )
        return result

    @staticmethod
    def _invalid_input(context: Union[RealTimeContext, Dict[str, Any]], error: ValidationError) -> CycleResult:
        if isinstance(context, RealTimeContext):
            user_id, session_id = context.user_id, context.session_id
        else:
            user_id, session_id = context.get("user_id", ""), context.get("session_id", "")
        logger.warning(
            f"Skipping cycle for user={user_id} session={session_id}: "
            f"{error.error_count()} invalid telemetry field(s)"
        )
        return CycleResult(user_id=str(user_id), session_id=str(session_id), skipped_reason="invalid_input")

    def _execute(
        self,
        action: AdaptationAction,
        context: RealTimeContext,
        analysis: PerformanceAnalysis,
    ) -> AdaptationResult:
        baseline = None if analysis.is_neutral else analysis.success_rate
        return self.executor.execute(action, context, baseline_performance=baseline)

    def end_session(self, session_id: str) -> int:
        """Discard a session's monitoring obligations and deferred actions"""
        with self._sessions_lock:
            session = self._sessions.pop(session_id, None)
        discarded = len(session.deferred) if session else 0
        discarded += self.monitor.discard_session(session_id)
        logger.info(f"Ended session={session_id}, discarded {discarded} pending adaptations")
        return discarded

    def pending_actions(self, session_id: str) -> List[AdaptationAction]:
        session = self._sessions.get(session_id)
        return list(session.deferred) if session else []

    # Persistence hooks

    def snapshot(self, user_id: str, subject: str = "general") -> Optional[Dict]:
        return self.store.snapshot(user_id, subject)

    def restore(self, snapshot: Dict) -> DifficultyProfile:
        return self.store.restore(snapshot)

    def export_history(self, user_id: str) -> List[Dict]:
        return self.history.export(user_id)


# Global engine instance
_engine: Optional[AdaptiveEngine] = None


def get_adaptive_engine() -> AdaptiveEngine:
    """Get or create the default engine"""
    global _engine
    if _engine is None:
        _engine = AdaptiveEngine()
    return _engine
