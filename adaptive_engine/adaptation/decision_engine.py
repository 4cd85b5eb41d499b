"""
Adaptation Decision Engine

Combines detector outputs into one ranked, deduplicated set of bounded
adaptation actions.

Primary difficulty policy (first matching rule wins):
1. High fatigue            -> decrease one level, urgency high
2. Plateau                 -> increase one level
3. Out of flow, gap > 1    -> move one level toward estimated skill
4. Very high success, improving -> increase one level
5. Low success, declining  -> decrease one level
Otherwise the current level is maintained.

Independently, frustration, engagement, fatigue and behavior signals add
non-difficulty support actions (hints, examples, encouragement, pacing,
content format, break suggestions). Candidates are ranked by a fixed type
priority and then confidence. Only actions passing the confidence gate with
immediate timing are returned for synchronous execution; the rest are
deferred or rejected.
"""
from typing import Dict, List, Optional
import logging

from adaptive_engine.core.clock import clamp
from adaptive_engine.core.config import EngineSettings, settings as default_settings
from adaptive_engine.difficulty.models import AdjustmentTrigger, DifficultyProfile
from adaptive_engine.difficulty.performance_analyzer import PerformanceAnalysis, PerformanceTrend
from adaptive_engine.detectors.behavior import BehaviorAnalysis, ExplorationStyle
from adaptive_engine.detectors.engagement import EngagementEstimate
from adaptive_engine.detectors.fatigue import FatigueEstimate
from adaptive_engine.detectors.flow_state import FlowStateEstimate
from adaptive_engine.detectors.frustration import FrustrationEstimate
from adaptive_engine.detectors.plateau import PlateauEstimate
from adaptive_engine.schemas.telemetry import RealTimeContext
from .actions import (
    AdaptationAction,
    AdaptationPlan,
    AdaptationTiming,
    AdaptationTrigger,
    AdaptationType,
    DifficultyRecommendation,
    RiskLevel,
    Urgency,
)
from .reasoning import describe

logger = logging.getLogger(__name__)


ADJUSTMENT_TRIGGERS = {
    AdaptationTrigger.FATIGUE: AdjustmentTrigger.TIME,
    AdaptationTrigger.PLATEAU: AdjustmentTrigger.PLATEAU,
}

HINT_TYPES = {
    "mathematics": "formula_reminder",
    "science": "concept_explanation",
    "language": "grammar_tip",
}


class AdaptationDecisionEngine:
    """
    Decides which adaptations to apply for one cycle

    The coefficients below are tunable heuristics, not fitted values.
    """

    THRESHOLDS = {
        # Difficulty policy
        "fatigue_threshold": 0.7,
        "fatigue_confidence": 0.8,
        "flow_gap": 1.0,
        "flow_confidence_boost": 0.3,
        "flow_confidence_cap": 0.8,
        "high_success": 0.9,
        "high_success_confidence": 0.7,
        "low_success": 0.5,
        "low_success_confidence": 0.8,
        "maintain_confidence": 0.5,

        # Risk / rollback
        "risk_confidence": 0.6,
        "rollback_high_risk": 0.2,
        "rollback_medium_risk": 0.3,
        "rollback_low_risk": 0.4,

        # Support actions
        "base_confidence": 0.7,
        "format_confidence": 0.6,
        "break_confidence": 0.8,
        "frustration_for_break": 0.8,
        "fast_pacing_engagement": 0.7,
        "low_engagement": 0.4,
        "long_break_seconds": 1200,
        "difficulty_intensity": 0.7,
    }

    URGENCY_MONITORING_MULTIPLIER = {
        Urgency.HIGH: 0.5,
        Urgency.MEDIUM: 0.75,
        Urgency.LOW: 1.0,
    }

    def __init__(
        self,
        settings: Optional[EngineSettings] = None,
        custom_thresholds: Optional[Dict] = None,
    ):
        self.settings = settings or default_settings
        self.thresholds = {**self.THRESHOLDS, **(custom_thresholds or {})}

    # Difficulty policy

    def _clamp_level(self, level: float) -> int:
        return int(clamp(level, self.settings.MIN_LEVEL, self.settings.MAX_LEVEL))

    def risk_level(self, magnitude: int, confidence: float) -> RiskLevel:
        if magnitude >= 2:
            return RiskLevel.HIGH
        if magnitude == 1 and confidence < self.thresholds["risk_confidence"]:
            return RiskLevel.MEDIUM
        return RiskLevel.LOW

    def rollback_threshold(self, risk: RiskLevel) -> float:
        return {
            RiskLevel.HIGH: self.thresholds["rollback_high_risk"],
            RiskLevel.MEDIUM: self.thresholds["rollback_medium_risk"],
            RiskLevel.LOW: self.thresholds["rollback_low_risk"],
        }[risk]

    def monitoring_period(self, urgency: Urgency, magnitude: int) -> int:
        """Minutes to monitor an adjustment before it is considered final"""
        base = self.settings.BASE_MONITORING_MINUTES
        return round(base * self.URGENCY_MONITORING_MULTIPLIER[urgency] * (1 + magnitude * 0.5))

    @staticmethod
    def expected_improvement(profile: DifficultyProfile, new_level: int) -> float:
        delta = new_level - profile.current_level
        if delta == 0:
            return 0.05
        return min(0.4, abs(delta) * 0.1 * profile.confidence)

    @staticmethod
    def target_performance(level: int) -> float:
        """Target success rate, 60-85% depending on level"""
        return clamp(0.9 - level / 15, 0.6, 0.85)

    @staticmethod
    def success_criteria(level: int) -> List[str]:
        return [
            f"Maintain success rate above {max(0.5, 0.8 - level / 20):.2f}",
            "Complete content without excessive help requests",
            "Show engagement through consistent interaction patterns",
            "Avoid signs of frustration or disengagement",
        ]

    def recommend_difficulty(
        self,
        profile: DifficultyProfile,
        performance: PerformanceAnalysis,
        flow: FlowStateEstimate,
        plateau: PlateauEstimate,
        fatigue: FatigueEstimate,
    ) -> DifficultyRecommendation:
        t = self.thresholds
        current = profile.current_level
        recommended = current
        trigger = AdaptationTrigger.MAINTAIN
        confidence = t["maintain_confidence"]
        urgency = Urgency.LOW
        reason_params: Dict = {}

        if fatigue.fatigue_level > t["fatigue_threshold"]:
            recommended = self._clamp_level(current - 1)
            trigger = AdaptationTrigger.FATIGUE
            confidence = t["fatigue_confidence"]
            urgency = Urgency.HIGH
        elif plateau.plateau_detected:
            recommended = self._clamp_level(current + 1)
            trigger = AdaptationTrigger.PLATEAU
            confidence = plateau.plateau_score
            urgency = Urgency.MEDIUM
        elif not flow.in_flow and flow.difficulty_gap > t["flow_gap"]:
            direction = "increase" if flow.skill_level > current else "decrease"
            recommended = self._clamp_level(current + 1 if direction == "increase" else current - 1)
            trigger = AdaptationTrigger.FLOW_MISMATCH
            confidence = min(t["flow_confidence_cap"], flow.flow_score + t["flow_confidence_boost"])
            urgency = Urgency.MEDIUM
            reason_params = {"direction": direction}
        elif performance.success_rate > t["high_success"] and performance.trend == PerformanceTrend.IMPROVING:
            recommended = self._clamp_level(current + 1)
            trigger = AdaptationTrigger.HIGH_PERFORMANCE
            confidence = t["high_success_confidence"]
            urgency = Urgency.LOW
        elif performance.success_rate < t["low_success"] and performance.trend == PerformanceTrend.DECLINING:
            recommended = self._clamp_level(current - 1)
            trigger = AdaptationTrigger.LOW_PERFORMANCE
            confidence = t["low_success_confidence"]
            urgency = Urgency.MEDIUM

        confidence = clamp(confidence, 0.0, 1.0)
        magnitude = abs(recommended - current)
        risk = self.risk_level(magnitude, confidence)

        return DifficultyRecommendation(
            recommended_level=recommended,
            current_level=current,
            confidence=confidence,
            trigger=trigger,
            reasoning=describe(trigger, reason_params),
            urgency=urgency,
            risk_level=risk,
            expected_improvement=self.expected_improvement(profile, recommended),
            current_performance=performance.success_rate,
            target_performance=self.target_performance(recommended),
            monitoring_period_minutes=self.monitoring_period(urgency, magnitude),
            success_criteria=self.success_criteria(recommended),
            rollback_threshold=self.rollback_threshold(risk),
        )

    def difficulty_action(self, recommendation: DifficultyRecommendation) -> Optional[AdaptationAction]:
        """Turn an adjusting recommendation into an action"""
        if not recommendation.is_adjustment:
            return None

        direction = "increase" if recommendation.recommended_level > recommendation.current_level else "decrease"
        timing = (
            AdaptationTiming.IMMEDIATE
            if recommendation.urgency == Urgency.HIGH
            else AdaptationTiming.NEXT_CONTENT
        )
        adjustment_trigger = ADJUSTMENT_TRIGGERS.get(recommendation.trigger, AdjustmentTrigger.PERFORMANCE)

        return AdaptationAction(
            type=AdaptationType.DIFFICULTY,
            intensity=min(1.0, self.thresholds["difficulty_intensity"] * recommendation.adjustment_magnitude),
            trigger=recommendation.trigger,
            confidence=recommendation.confidence,
            timing=timing,
            parameters={
                "from_level": recommendation.current_level,
                "to_level": recommendation.recommended_level,
                "direction": direction,
                "adjustment_trigger": adjustment_trigger.value,
                "reasoning": recommendation.reasoning,
                "target_performance": recommendation.target_performance,
            },
            expected_duration_ms=recommendation.monitoring_period_minutes * 60 * 1000,
            success_criteria=list(recommendation.success_criteria),
            rollback_threshold=recommendation.rollback_threshold,
            urgency=recommendation.urgency,
            risk_level=recommendation.risk_level,
        )

    # Support actions

    def support_actions(
        self,
        profile: DifficultyProfile,
        fatigue: Optional[FatigueEstimate] = None,
        frustration: Optional[FrustrationEstimate] = None,
        engagement: Optional[EngagementEstimate] = None,
        behavior: Optional[BehaviorAnalysis] = None,
        context: Optional[RealTimeContext] = None,
        session_duration_seconds: float = 0.0,
    ) -> List[AdaptationAction]:
        """Non-difficulty actions from real-time signals"""
        t = self.thresholds
        base = t["base_confidence"]
        interaction = context.current_interaction if context else None
        help_requests = interaction.help_requests if interaction else 0
        indicator_count = len(interaction.frustration_indicators) if interaction else 0
        time_spent = interaction.time_spent_seconds if interaction else 0.0
        engagement_level = interaction.engagement_level if interaction else (
            engagement.current_engagement if engagement else 0.7
        )
        frustration_score = frustration.frustration_score if frustration else 0.0
        fatigued = bool(fatigue and fatigue.is_fatigued)

        actions: List[AdaptationAction] = []

        # Pacing
        slow_trigger = None
        if behavior and behavior.needs_slower_pacing:
            slow_trigger = AdaptationTrigger.SLOW_READING
        elif engagement and engagement.needs_break:
            slow_trigger = AdaptationTrigger.ATTENTION_DROP
        elif fatigued:
            slow_trigger = AdaptationTrigger.FATIGUE

        fast = bool(
            behavior and behavior.needs_faster_pacing
            and engagement_level > t["fast_pacing_engagement"]
        )
        if slow_trigger or fast:
            slow_down = slow_trigger is not None
            actions.append(AdaptationAction(
                type=AdaptationType.PACING,
                intensity=0.8 if engagement_level < t["low_engagement"] else 0.5,
                trigger=slow_trigger or AdaptationTrigger.FAST_READING,
                confidence=base,
                timing=AdaptationTiming.IMMEDIATE,
                parameters={
                    "slow_down": slow_down,
                    "suggest_break": time_spent > 600 and engagement_level < 0.3,
                    "reduce_content": indicator_count > 2,
                },
                expected_duration_ms=300000,
                success_criteria=["improved_engagement", "reduced_frustration"],
                rollback_threshold=0.3,
                urgency=Urgency.MEDIUM if slow_down else Urgency.LOW,
            ))

        # Hints and examples
        needs_support = bool(behavior and behavior.needs_more_support)
        needs_immediate = bool(frustration and frustration.needs_immediate_support)
        if needs_support or needs_immediate:
            support_trigger = AdaptationTrigger.FRUSTRATION if needs_immediate else AdaptationTrigger.SUPPORT_NEEDED
            actions.append(AdaptationAction(
                type=AdaptationType.HINTS,
                intensity=min(1.0, help_requests * 0.3 + 0.4),
                trigger=support_trigger,
                confidence=min(1.0, base + help_requests * 0.1),
                timing=AdaptationTiming.IMMEDIATE,
                parameters={
                    "hint_level": "detailed" if help_requests > 2 else "subtle",
                    "hint_type": HINT_TYPES.get(profile.subject.lower(), "general_guidance"),
                    "subject": profile.subject,
                    "show_progressively": True,
                },
                expected_duration_ms=60000,
                success_criteria=["user_progression", "reduced_help_requests"],
                rollback_threshold=0.4,
                urgency=Urgency.HIGH if needs_immediate else Urgency.MEDIUM,
            ))
            actions.append(AdaptationAction(
                type=AdaptationType.EXAMPLES,
                intensity=0.6,
                trigger=support_trigger,
                confidence=base,
                timing=AdaptationTiming.NEXT_INTERACTION,
                parameters={
                    "example_type": "practical",
                    "step_by_step": True,
                    "interactive": True,
                },
                expected_duration_ms=120000,
                success_criteria=["improved_understanding", "successful_application"],
                rollback_threshold=0.3,
                urgency=Urgency.MEDIUM,
            ))

        # Encouragement
        needs_encouragement = bool(frustration and frustration.needs_encouragement)
        needs_reengagement = bool(engagement and engagement.needs_reengagement)
        if needs_encouragement or needs_reengagement:
            attempts = interaction.attempts if interaction else 1
            if indicator_count > 3:
                message_type = "struggling"
            elif engagement_level > 0.7:
                message_type = "breakthrough"
            elif attempts > 2:
                message_type = "persistence"
            else:
                message_type = "general"

            actions.append(AdaptationAction(
                type=AdaptationType.ENCOURAGEMENT,
                intensity=max(0.3, min(1.0, indicator_count * 0.2)),
                trigger=AdaptationTrigger.FRUSTRATION if needs_encouragement else AdaptationTrigger.DISENGAGEMENT,
                confidence=base,
                timing=AdaptationTiming.IMMEDIATE,
                parameters={
                    "message_type": message_type,
                    "show_progress": True,
                    "highlight_achievements": True,
                },
                expected_duration_ms=30000,
                success_criteria=["improved_mood", "continued_engagement"],
                rollback_threshold=0.2,
                urgency=Urgency.MEDIUM,
            ))

        # Content format
        needs_variety = bool(engagement and engagement.needs_variety)
        exploratory = bool(behavior and behavior.exploration_style == ExplorationStyle.EXPLORATORY)
        if needs_variety or exploratory:
            scroll_completion = interaction.scroll_pattern.scroll_completion_rate if interaction else 0.5
            device_type = context.environmental_factors.device_type if context else "desktop"
            actions.append(AdaptationAction(
                type=AdaptationType.CONTENT_FORMAT,
                intensity=0.5,
                trigger=AdaptationTrigger.VARIETY_NEEDED,
                confidence=t["format_confidence"],
                timing=AdaptationTiming.NEXT_CONTENT,
                parameters={
                    "add_visuals": scroll_completion < 0.5,
                    "add_audio": device_type == "mobile",
                    "add_interactivity": engagement_level < t["low_engagement"],
                },
                expected_duration_ms=180000,
                success_criteria=["increased_engagement", "better_comprehension"],
                rollback_threshold=0.3,
                urgency=Urgency.LOW,
            ))

        # Break suggestion
        break_trigger = None
        if engagement and engagement.needs_break:
            break_trigger = AdaptationTrigger.ATTENTION_DROP
        elif frustration_score > t["frustration_for_break"]:
            break_trigger = AdaptationTrigger.FRUSTRATION
        elif fatigued:
            break_trigger = AdaptationTrigger.FATIGUE
        if break_trigger:
            intensity = min(1.0, time_spent / 600)
            if fatigue:
                intensity = max(intensity, fatigue.fatigue_level)
            actions.append(AdaptationAction(
                type=AdaptationType.BREAK_SUGGESTION,
                intensity=intensity,
                trigger=break_trigger,
                confidence=t["break_confidence"],
                timing=AdaptationTiming.IMMEDIATE,
                parameters={
                    "break_type": "long" if session_duration_seconds > t["long_break_seconds"] else "short",
                    "save_progress": True,
                },
                expected_duration_ms=0,
                success_criteria=["user_takes_break", "refreshed_return"],
                rollback_threshold=0.1,
                urgency=Urgency.HIGH if break_trigger != AdaptationTrigger.ATTENTION_DROP else Urgency.MEDIUM,
            ))

        return actions

    # Ranking

    @staticmethod
    def rank(actions: List[AdaptationAction]) -> List[AdaptationAction]:
        """Deduplicate by type (highest confidence wins) and order by priority, then confidence"""
        best: Dict[AdaptationType, AdaptationAction] = {}
        for action in actions:
            current = best.get(action.type)
            if current is None or action.confidence > current.confidence:
                best[action.type] = action
        return sorted(best.values(), key=lambda a: (-a.priority, -a.confidence))

    def decide(
        self,
        profile: DifficultyProfile,
        performance: PerformanceAnalysis,
        flow: FlowStateEstimate,
        plateau: PlateauEstimate,
        fatigue: FatigueEstimate,
        frustration: Optional[FrustrationEstimate] = None,
        engagement: Optional[EngagementEstimate] = None,
        behavior: Optional[BehaviorAnalysis] = None,
        context: Optional[RealTimeContext] = None,
        session_duration_seconds: float = 0.0,
    ) -> AdaptationPlan:
        """
        Decide adaptations for one cycle

        Returns:
            AdaptationPlan with the difficulty recommendation and the ranked
            candidates split into immediate, deferred and rejected actions
        """
        recommendation = self.recommend_difficulty(profile, performance, flow, plateau, fatigue)

        candidates: List[AdaptationAction] = []
        difficulty = self.difficulty_action(recommendation)
        if difficulty:
            candidates.append(difficulty)
        candidates.extend(self.support_actions(
            profile,
            fatigue=fatigue,
            frustration=frustration,
            engagement=engagement,
            behavior=behavior,
            context=context,
            session_duration_seconds=session_duration_seconds,
        ))

        enabled = set(self.settings.ENABLED_ADAPTATION_TYPES)
        candidates = self.rank([a for a in candidates if a.type.value in enabled])

        plan = AdaptationPlan(recommendation=recommendation, candidates=candidates)
        threshold = self.settings.CONFIDENCE_THRESHOLD
        for action in candidates:
            if action.confidence < threshold:
                plan.rejected.append(action)
            elif action.timing == AdaptationTiming.IMMEDIATE:
                plan.immediate.append(action)
            else:
                plan.deferred.append(action)

        if plan.rejected:
            logger.debug(
                f"Low-confidence candidates for user={profile.user_id}: "
                f"{[(a.type.value, round(a.confidence, 2)) for a in plan.rejected]}"
            )

        return plan
