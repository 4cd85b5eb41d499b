"""
Unit tests for the Adaptation Executor

Tests cover:
- Applying difficulty and support actions
- All-or-nothing failure handling
- Rollback after a performance drop
- Folding telemetry into the profile
"""

import pytest
import random
from datetime import timedelta

from adaptive_engine.adaptation.actions import (
    AdaptationAction,
    AdaptationTiming,
    AdaptationTrigger,
    AdaptationType,
    Urgency,
)
from adaptive_engine.adaptation.executor import AdaptationExecutor, UNAVAILABLE_MESSAGE
from adaptive_engine.adaptation.feedback import BREAK_ACTIVITIES
from adaptive_engine.adaptation.history import AdaptationHistoryLog
from adaptive_engine.adaptation.monitoring import MonitoringOutcome, RollbackMonitor
from adaptive_engine.core.config import EngineSettings
from adaptive_engine.difficulty.models import AdjustmentTrigger
from adaptive_engine.difficulty.performance_analyzer import PerformanceAnalyzer
from adaptive_engine.difficulty.profile_store import InMemoryProfileStore
from adaptive_engine.detectors.fatigue import FatigueDetector
from tests.factories import BASE_TIME, make_context, make_points


def difficulty_action(from_level=5, to_level=6, minutes=15, threshold=0.3):
    return AdaptationAction(
        type=AdaptationType.DIFFICULTY,
        intensity=0.7,
        trigger=AdaptationTrigger.HIGH_PERFORMANCE,
        confidence=0.7,
        timing=AdaptationTiming.NEXT_CONTENT,
        parameters={
            "from_level": from_level,
            "to_level": to_level,
            "direction": "increase" if to_level > from_level else "decrease",
            "adjustment_trigger": "performance",
            "reasoning": "High success rate indicates readiness for increased challenge",
        },
        expected_duration_ms=minutes * 60 * 1000,
        rollback_threshold=threshold,
        urgency=Urgency.LOW,
    )


def support_action(kind, **parameters):
    return AdaptationAction(
        type=kind,
        intensity=0.5,
        trigger=AdaptationTrigger.SUPPORT_NEEDED,
        confidence=0.7,
        timing=AdaptationTiming.IMMEDIATE,
        parameters=parameters,
        expected_duration_ms=60000,
        rollback_threshold=0.4,
    )


class FailingStore(InMemoryProfileStore):
    def apply_adjustment(self, profile, adjustment, now=None):
        raise RuntimeError("storage offline")


class FailingHistory(AdaptationHistoryLog):
    def append(self, record):
        raise RuntimeError("log offline")


@pytest.fixture
def history():
    return AdaptationHistoryLog()


@pytest.fixture
def monitor(settings, clock):
    return RollbackMonitor(settings, clock)


@pytest.fixture
def executor(store, history, monitor, settings, clock):
    return AdaptationExecutor(store, history, monitor, settings=settings, clock=clock, rng=random.Random(7))


@pytest.fixture
def context():
    return make_context(BASE_TIME - timedelta(minutes=10))


class TestDifficultyExecution:
    """Difficulty actions move the profile and request new content"""

    def test_applies_adjustment(self, executor, store, history, monitor, context):
        result = executor.execute(difficulty_action(), context, baseline_performance=0.9)
        profile = store.get("user-1")

        assert result.applied
        assert profile.current_level == 6
        assert profile.adjustment_history[-1].trigger == AdjustmentTrigger.PERFORMANCE
        assert result.adapted_content.target_difficulty == 6
        assert result.adapted_content.content_id == "content-1"

        records = history.list("user-1")
        assert len(records) == 1
        assert records[0].previous_state == {"level": 5}
        assert records[0].new_state == {"level": 6}
        assert records[0].record_id == result.record_id

        obligation = monitor.pending("user-1")[0]
        assert obligation.baseline_performance == 0.9
        assert obligation.expires_at == BASE_TIME + timedelta(minutes=15)

    def test_target_level_clamped(self, executor, store, context):
        executor.execute(difficulty_action(5, 15), context)
        assert store.get("user-1").current_level == 10

    def test_store_failure_changes_nothing(self, settings, clock, history, monitor, context):
        store = FailingStore(settings, clock)
        executor = AdaptationExecutor(store, history, monitor, settings=settings, clock=clock)

        result = executor.execute(difficulty_action(), context)

        assert not result.applied
        assert result.system_message == UNAVAILABLE_MESSAGE
        assert store.get("user-1").current_level == 5
        assert history.list("user-1") == []
        assert monitor.pending("user-1") == []

    def test_history_failure_restores_profile(self, store, settings, clock, monitor, context):
        executor = AdaptationExecutor(store, FailingHistory(), monitor, settings=settings, clock=clock)

        result = executor.execute(difficulty_action(), context)
        profile = store.get("user-1")

        assert not result.applied
        assert profile.current_level == 5
        assert profile.adjustment_history == []

    def test_missing_target_is_not_applied(self, executor, store, context):
        action = support_action(AdaptationType.HINTS)
        broken = AdaptationAction(
            type=AdaptationType.DIFFICULTY,
            intensity=0.7,
            trigger=action.trigger,
            confidence=0.7,
            timing=AdaptationTiming.IMMEDIATE,
        )

        assert not executor.execute(broken, context).applied
        assert store.get("user-1").current_level == 5


class TestSupportExecution:
    """Support actions return presentation-neutral feedback"""

    def test_hint_feedback(self, executor, history, context):
        result = executor.execute(
            support_action(AdaptationType.HINTS, hint_level="detailed", subject="algebra"), context
        )

        assert result.applied
        assert result.visual_feedback.type == "tooltip"
        assert "algebra" in result.visual_feedback.content
        assert result.system_message == "Hint available - click the help icon for guidance"
        assert history.list("user-1")[0].action_type == "hints"

    def test_break_activity_recorded(self, executor, history, context):
        result = executor.execute(support_action(AdaptationType.BREAK_SUGGESTION, break_type="short"), context)

        activity = history.list("user-1")[0].new_state["parameters"]["suggested_activity"]
        assert activity in BREAK_ACTIVITIES
        assert activity in result.visual_feedback.content
        assert result.visual_feedback.type == "overlay"

    def test_pacing_adapts_content(self, executor, context):
        result = executor.execute(support_action(AdaptationType.PACING, slow_down=True), context)

        assert result.adapted_content.metadata["adapted_pacing"] == "slower"
        assert result.adapted_content.target_difficulty == 5

    def test_support_does_not_change_level(self, executor, store, context):
        executor.execute(support_action(AdaptationType.ENCOURAGEMENT, message_type="persistence"), context)
        assert store.get("user-1").current_level == 5


class TestRollback:
    """Adaptations that hurt performance are reverted"""

    def test_rollback_restores_level(self, executor, store, history, monitor, clock, context):
        applied = executor.execute(difficulty_action(), context, baseline_performance=0.9)
        points = make_points([False, False, False], start=clock.now + timedelta(minutes=1), spacing_minutes=1)
        clock.advance(minutes=4)

        check = monitor.evaluate(monitor.pending("user-1")[0], points)
        assert check.outcome == MonitoringOutcome.ROLLBACK

        record = executor.rollback(check)
        profile = store.get("user-1")

        assert profile.current_level == 5
        assert profile.adjustment_history[-1].trigger == AdjustmentTrigger.MANUAL
        assert record.trigger == "rollback"
        assert record.new_state == {"level": 5}
        assert history.get(applied.record_id).effectiveness == 0.0

    def test_complete_fills_effectiveness(self, executor, history, monitor, clock, context):
        applied = executor.execute(difficulty_action(minutes=5), context, baseline_performance=0.6)
        clock.advance(minutes=6)

        check = monitor.evaluate(monitor.pending("user-1")[0], [])
        executor.complete(check)

        assert check.outcome == MonitoringOutcome.COMPLETED
        assert history.get(applied.record_id).effectiveness == 0.5


class TestObserve:
    """Telemetry is folded into the profile"""

    def test_updates_metrics(self, executor, store):
        profile = store.get_or_create("user-1")
        points = make_points([True, True, False, True], attempts=2, time_spent=90)
        analysis = PerformanceAnalyzer().analyze(points)
        fatigue = FatigueDetector().detect(3600, 1)

        executor.observe(profile, points, analysis, fatigue)

        assert len(profile.performance_history) == 4
        assert profile.success_rate == pytest.approx(0.75)
        assert profile.average_attempts == pytest.approx(2.0)
        assert profile.time_to_complete == pytest.approx(90.0)
        assert profile.fatigue_level == pytest.approx(0.6)
        assert profile.motivation_level == pytest.approx(0.4)
        assert 0.0 <= profile.confidence <= 1.0

    def test_history_capped(self, store, history, monitor, clock):
        settings = EngineSettings(_env_file=None, PERFORMANCE_HISTORY_LIMIT=5)
        executor = AdaptationExecutor(store, history, monitor, settings=settings, clock=clock)
        profile = store.get_or_create("user-1")
        points = make_points([True] * 8)

        executor.observe(profile, points, PerformanceAnalyzer().analyze(points))

        assert len(profile.performance_history) == 5
        assert profile.performance_history[-1] == points[-1]

    def test_neutral_analysis_keeps_metrics(self, executor, store):
        profile = store.get_or_create("user-1")
        executor.observe(profile, [], PerformanceAnalyzer().analyze([]))

        assert profile.success_rate == 0.7
        assert profile.performance_history == []
