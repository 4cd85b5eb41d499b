"""
Unit tests for flow-state and plateau detection

Tests cover:
- Skill estimation and flow score bounds
- Flow mismatch recommendations
- Plateau detection with enough stable, non-improving data
- Not-detected results for insufficient data
"""

import pytest
from datetime import timedelta

from adaptive_engine.adaptation.actions import AdaptationRecord
from adaptive_engine.detectors.flow_state import FlowRecommendation, FlowStateDetector
from adaptive_engine.detectors.plateau import PlateauDetector
from adaptive_engine.difficulty.models import DifficultyProfile
from adaptive_engine.difficulty.performance_analyzer import PerformanceAnalysis, PerformanceTrend
from tests.factories import BASE_TIME, make_points


def _analysis(success_rate, trend=PerformanceTrend.STABLE, consistency=1.0):
    return PerformanceAnalysis(
        success_rate=success_rate,
        average_attempts=1.0,
        average_time=120.0,
        trend=trend,
        consistency=consistency,
        recent_success=success_rate,
        earlier_success=success_rate,
        sample_size=10,
    )


class TestFlowStateDetector:
    """Tests for skill estimation and flow scoring"""

    @pytest.fixture
    def detector(self):
        return FlowStateDetector()

    def test_matched_difficulty_is_in_flow(self, detector):
        profile = DifficultyProfile(user_id="u", current_level=5)
        flow = detector.detect(profile, _analysis(0.7))

        assert flow.skill_level == pytest.approx(5.0)
        assert flow.difficulty_gap == pytest.approx(0.0)
        assert flow.flow_score == pytest.approx(0.9)
        assert flow.in_flow
        assert flow.recommendation == FlowRecommendation.MAINTAIN

    def test_too_easy_recommends_increase(self, detector):
        profile = DifficultyProfile(user_id="u", current_level=5)
        flow = detector.detect(profile, _analysis(1.0, PerformanceTrend.IMPROVING))

        assert flow.skill_level == pytest.approx(6.4)
        assert not flow.in_flow
        assert flow.needs_difficulty_change
        assert flow.recommendation == FlowRecommendation.INCREASE_DIFFICULTY

    def test_too_hard_recommends_decrease(self, detector):
        profile = DifficultyProfile(user_id="u", current_level=5)
        flow = detector.detect(profile, _analysis(0.2, PerformanceTrend.DECLINING))

        assert flow.skill_level < 5
        assert flow.recommendation == FlowRecommendation.DECREASE_DIFFICULTY

    def test_out_of_band_success_halves_score(self, detector):
        profile = DifficultyProfile(user_id="u", current_level=5, help_requests=0.0)
        in_band = detector.detect(profile, _analysis(0.75))
        out_of_band = detector.detect(profile, _analysis(0.95))

        gap = abs(5 - detector.estimate_skill_level(5, _analysis(0.95)))
        assert out_of_band.flow_score == pytest.approx(max(0.0, 1 - gap / 3) * 0.5)
        assert in_band.flow_score > out_of_band.flow_score

    @pytest.mark.parametrize("level", [1, 10])
    def test_skill_clamped(self, detector, level):
        profile = DifficultyProfile(user_id="u", current_level=level)
        for success in (0.0, 1.0):
            flow = detector.detect(profile, _analysis(success))
            assert 1 <= flow.skill_level <= 10
            assert 0.0 <= flow.flow_score <= 1.0


class TestPlateauDetector:
    """Tests for plateau detection"""

    @pytest.fixture
    def detector(self):
        return PlateauDetector()

    @pytest.fixture
    def stalled_profile(self):
        return DifficultyProfile(user_id="u", improvement_rate=0.0)

    def test_stable_non_improving_is_plateau(self, detector, stalled_profile):
        plateau = detector.detect(stalled_profile, make_points([True] * 12, spacing_minutes=5))

        assert plateau.plateau_detected
        assert plateau.plateau_score == pytest.approx(1.0)
        assert plateau.confidence == pytest.approx(0.9)
        assert plateau.recommendation == "increase_difficulty"

    def test_improving_profile_is_not_plateau(self, detector):
        profile = DifficultyProfile(user_id="u", improvement_rate=0.05)
        plateau = detector.detect(profile, make_points([True] * 12, spacing_minutes=5))

        assert not plateau.plateau_detected
        assert plateau.confidence == 0.0

    def test_insufficient_points(self, detector, stalled_profile):
        plateau = detector.detect(stalled_profile, make_points([True] * 9, spacing_minutes=10))

        assert not plateau.plateau_detected
        assert plateau.confidence == 0.0
        assert plateau.details["reason"] == "insufficient_data"

    def test_short_time_span(self, detector, stalled_profile):
        plateau = detector.detect(stalled_profile, make_points([True] * 12, spacing_minutes=1))

        assert not plateau.plateau_detected
        assert plateau.plateau_score == 0.0
        assert plateau.details["reason"] == "insufficient_time_span"

    def test_recent_difficulty_change_restarts_observation(self, detector, stalled_profile):
        points = make_points([True] * 15, spacing_minutes=5)
        change = AdaptationRecord(
            record_id="r1",
            user_id="u",
            timestamp=points[8].timestamp,
            session_id="s",
            action_type="difficulty",
            trigger="plateau",
            previous_state={"level": 5},
            new_state={"level": 6},
        )

        plateau = detector.detect(stalled_profile, points, [change])

        assert not plateau.plateau_detected
        assert plateau.details["point_count"] == 7

    def test_non_difficulty_records_ignored(self, detector, stalled_profile):
        points = make_points([True] * 12, spacing_minutes=5)
        hint = AdaptationRecord(
            record_id="r1",
            user_id="u",
            timestamp=points[-1].timestamp + timedelta(minutes=1),
            session_id="s",
            action_type="hints",
            trigger="support_needed",
            previous_state={},
            new_state={"parameters": {}},
        )

        assert detector.detect(stalled_profile, points, [hint]).plateau_detected
