"""
Adaptation Executor

Applies one action and reports the outcome as data:
- Difficulty actions move the profile's level through the store and return a
  ContentRequest for the content-delivery collaborator.
- Support actions return presentation-neutral feedback.
Every applied action is appended to the history log and, when it has an
expected duration, opens a monitoring obligation.

Applying is all-or-nothing: the profile is changed on a working copy and only
committed to the store once the adjustment is valid; if the history append
fails the previous profile is put back. Any failure yields
``applied=False`` with no state change.
"""
from typing import List, Optional, Sequence
from copy import deepcopy
import logging
import random
import time
import uuid

from adaptive_engine.core.clock import Clock, clamp, utcnow
from adaptive_engine.core.config import EngineSettings, settings as default_settings
from adaptive_engine.core.exceptions import AdaptationExecutionError
from adaptive_engine.difficulty.models import AdjustmentTrigger, DifficultyAdjustment, DifficultyProfile
from adaptive_engine.difficulty.performance_analyzer import PerformanceAnalysis, PerformanceAnalyzer
from adaptive_engine.difficulty.profile_store import ProfileStore
from adaptive_engine.detectors.fatigue import FatigueEstimate
from adaptive_engine.schemas.telemetry import CurrentInteraction, PerformancePoint, RealTimeContext
from .actions import (
    AdaptationAction,
    AdaptationRecord,
    AdaptationResult,
    AdaptationTrigger,
    AdaptationType,
    ContentRequest,
)
from .feedback import FeedbackBuilder
from .history import AdaptationHistoryLog
from .monitoring import MonitoringCheck, RollbackMonitor
from .reasoning import describe

logger = logging.getLogger(__name__)

UNAVAILABLE_MESSAGE = "adaptation unavailable"


class AdaptationExecutor:
    """Applies adaptation actions against a profile store"""

    THRESHOLDS = {
        "help_smoothing": 0.2,           # Weight of the newest interaction
        "confidence_per_point": 0.02,
        "max_confidence": 0.9,
    }

    def __init__(
        self,
        store: ProfileStore,
        history: AdaptationHistoryLog,
        monitor: RollbackMonitor,
        settings: Optional[EngineSettings] = None,
        clock: Optional[Clock] = None,
        rng: Optional[random.Random] = None,
        analyzer: Optional[PerformanceAnalyzer] = None,
    ):
        self.store = store
        self.history = history
        self.monitor = monitor
        self.settings = settings or default_settings
        self.clock = clock or utcnow
        self.feedback = FeedbackBuilder(rng)
        self.analyzer = analyzer or PerformanceAnalyzer()

    # Execution

    def execute(
        self,
        action: AdaptationAction,
        context: RealTimeContext,
        baseline_performance: Optional[float] = None,
    ) -> AdaptationResult:
        """
        Apply an action for the learner in ``context``

        Args:
            action: Action to apply
            context: Current session context
            baseline_performance: Success rate to monitor against
                (defaults to the profile's success rate)

        Returns:
            AdaptationResult; ``applied`` is False if anything failed
        """
        try:
            if action.type == AdaptationType.DIFFICULTY:
                return self._execute_difficulty(action, context, baseline_performance)
            return self._execute_support(action, context, baseline_performance)
        except Exception:
            logger.exception(
                f"Failed to apply {action.type.value} adaptation for user={context.user_id}"
            )
            return AdaptationResult(
                applied=False,
                action=action,
                system_message=UNAVAILABLE_MESSAGE,
            )

    def _execute_difficulty(
        self,
        action: AdaptationAction,
        context: RealTimeContext,
        baseline_performance: Optional[float],
    ) -> AdaptationResult:
        started = time.perf_counter()
        now = self.clock()
        profile = self.store.get_or_create(context.user_id, context.subject)

        if "to_level" not in action.parameters:
            raise AdaptationExecutionError("Difficulty action without a target level")

        from_level = profile.current_level
        to_level = int(clamp(
            action.parameters["to_level"], self.settings.MIN_LEVEL, self.settings.MAX_LEVEL
        ))
        trigger = AdjustmentTrigger(
            action.parameters.get("adjustment_trigger", AdjustmentTrigger.PERFORMANCE.value)
        )
        reason = action.parameters.get("reasoning") or describe(action.trigger)

        adjustment = DifficultyAdjustment(
            timestamp=now,
            from_level=from_level,
            to_level=to_level,
            reason=reason,
            trigger=trigger,
            confidence=action.confidence,
        )
        working = deepcopy(profile)
        self.store.apply_adjustment(working, adjustment, now)

        record = AdaptationRecord(
            record_id=str(uuid.uuid4()),
            user_id=context.user_id,
            timestamp=now,
            session_id=context.session_id,
            action_type=action.type.value,
            trigger=action.trigger.value,
            previous_state={"level": from_level},
            new_state={"level": to_level},
            duration_ms=int((time.perf_counter() - started) * 1000),
        )
        try:
            self.history.append(record)
        except Exception:
            self.store.save(profile)
            raise

        baseline = profile.success_rate if baseline_performance is None else baseline_performance
        self.monitor.open(
            action,
            user_id=context.user_id,
            subject=context.subject,
            session_id=context.session_id,
            record_id=record.record_id,
            baseline_performance=baseline,
            previous_level=from_level,
            new_level=to_level,
            now=now,
        )

        direction = "increased" if to_level > from_level else "decreased"
        logger.info(
            f"Difficulty {direction} for user={context.user_id} subject={context.subject}: "
            f"{from_level} -> {to_level} ({action.trigger.value})"
        )

        return AdaptationResult(
            applied=True,
            action=action,
            adapted_content=ContentRequest(
                content_id=context.content_id,
                target_difficulty=to_level,
                metadata={
                    "previous_difficulty": from_level,
                    "reason": reason,
                    "target_performance": action.parameters.get("target_performance"),
                },
            ),
            system_message=f"Difficulty {direction} from level {from_level} to {to_level}",
            user_feedback=reason,
            record_id=record.record_id,
        )

    def _execute_support(
        self,
        action: AdaptationAction,
        context: RealTimeContext,
        baseline_performance: Optional[float],
    ) -> AdaptationResult:
        started = time.perf_counter()
        now = self.clock()
        profile = self.store.get_or_create(context.user_id, context.subject)

        built = self.feedback.build(
            action,
            subject=context.subject,
            learner_name=context.metadata.get("learner_name"),
        )
        parameters = {**action.parameters, **built.get("parameters", {})}

        adapted_content = None
        if action.type == AdaptationType.PACING:
            adapted_content = ContentRequest(
                content_id=context.content_id,
                target_difficulty=profile.current_level,
                metadata={
                    "adapted_pacing": "slower" if parameters.get("slow_down", True) else "faster",
                    "suggested_breaks": parameters.get("suggest_break", False),
                    "reduced_content": parameters.get("reduce_content", False),
                },
            )
        elif action.type in (AdaptationType.EXAMPLES, AdaptationType.CONTENT_FORMAT):
            adapted_content = ContentRequest(
                content_id=context.content_id,
                target_difficulty=profile.current_level,
                metadata={"adaptation": action.type.value, **parameters},
            )

        record = AdaptationRecord(
            record_id=str(uuid.uuid4()),
            user_id=context.user_id,
            timestamp=now,
            session_id=context.session_id,
            action_type=action.type.value,
            trigger=action.trigger.value,
            previous_state={},
            new_state={"parameters": parameters},
            duration_ms=int((time.perf_counter() - started) * 1000),
        )
        self.history.append(record)

        baseline = profile.success_rate if baseline_performance is None else baseline_performance
        self.monitor.open(
            action,
            user_id=context.user_id,
            subject=context.subject,
            session_id=context.session_id,
            record_id=record.record_id,
            baseline_performance=baseline,
            now=now,
        )

        visual = built.get("visual_feedback")
        return AdaptationResult(
            applied=True,
            action=action,
            adapted_content=adapted_content,
            visual_feedback=visual,
            system_message=built.get("system_message"),
            user_feedback=visual.content if visual else None,
            record_id=record.record_id,
        )

    # Rollback

    def rollback(self, check: MonitoringCheck) -> Optional[AdaptationRecord]:
        """
        Revert an adaptation whose monitoring window detected a performance drop

        Difficulty rollbacks restore the previous level and are logged as a
        manual DifficultyAdjustment. Returns the rollback record, or None if
        nothing could be recorded.
        """
        obligation = check.obligation
        now = self.clock()
        reason = describe(AdaptationTrigger.ROLLBACK, {
            "drop": check.performance_drop or 0.0,
            "threshold": obligation.rollback_threshold,
        })

        try:
            previous_state = {}
            new_state = {}
            if obligation.is_difficulty and obligation.previous_level is not None:
                profile = self.store.get_or_create(obligation.user_id, obligation.subject)
                current_level = profile.current_level
                adjustment = DifficultyAdjustment(
                    timestamp=now,
                    from_level=current_level,
                    to_level=obligation.previous_level,
                    reason=reason,
                    trigger=AdjustmentTrigger.MANUAL,
                    confidence=obligation.action.confidence,
                )
                self.store.apply_adjustment(deepcopy(profile), adjustment, now)
                previous_state = {"level": current_level}
                new_state = {"level": obligation.previous_level}

            record = AdaptationRecord(
                record_id=str(uuid.uuid4()),
                user_id=obligation.user_id,
                timestamp=now,
                session_id=obligation.session_id,
                action_type=obligation.action.type.value,
                trigger=AdaptationTrigger.ROLLBACK.value,
                previous_state=previous_state,
                new_state=new_state,
                effectiveness=check.effectiveness,
            )
            self.history.append(record)
            self.history.set_effectiveness(obligation.record_id, check.effectiveness or 0.0)
        except Exception:
            logger.exception(f"Rollback failed for user={obligation.user_id} record={obligation.record_id}")
            return None

        logger.warning(f"Rolled back {obligation.action.type.value} for user={obligation.user_id}: {reason}")
        return record

    def complete(self, check: MonitoringCheck) -> None:
        """Record the effectiveness of an adaptation whose window closed cleanly"""
        if check.effectiveness is not None:
            self.history.set_effectiveness(check.obligation.record_id, check.effectiveness)

    # Observation

    def observe(
        self,
        profile: DifficultyProfile,
        points: Sequence[PerformancePoint],
        analysis: PerformanceAnalysis,
        fatigue: Optional[FatigueEstimate] = None,
        interaction: Optional[CurrentInteraction] = None,
    ) -> DifficultyProfile:
        """
        Fold new telemetry into a profile in place

        The caller holds the user's lock and saves the profile afterwards.
        """
        t = self.THRESHOLDS
        if points:
            history: List[PerformancePoint] = profile.performance_history + list(points)
            profile.performance_history = history[-self.settings.PERFORMANCE_HISTORY_LIMIT:]

        if not analysis.is_neutral:
            profile.success_rate = analysis.success_rate
            profile.average_attempts = analysis.average_attempts
            profile.time_to_complete = analysis.average_time

        if interaction is not None:
            profile.help_requests = (
                (1 - t["help_smoothing"]) * profile.help_requests
                + t["help_smoothing"] * interaction.help_requests
            )

        improvement = self.analyzer.improvement_rate(profile.performance_history)
        if improvement is not None:
            profile.improvement_rate = improvement

        if fatigue is not None:
            profile.fatigue_level = fatigue.fatigue_level
            profile.motivation_level = fatigue.motivation_level

        evidence = self.settings.DEFAULT_CONFIDENCE + t["confidence_per_point"] * len(profile.performance_history)
        profile.confidence = max(profile.confidence, min(t["max_confidence"], evidence))
        return profile
