"""
Unit tests for the Performance Analyzer
"""

import pytest

from adaptive_engine.difficulty.performance_analyzer import (
    PerformanceAnalyzer,
    PerformanceTrend,
    success_variance,
)
from tests.factories import make_points


@pytest.fixture
def analyzer():
    return PerformanceAnalyzer()


class TestNeutralDefaults:
    """An empty window never divides by zero"""

    def test_empty_window(self, analyzer):
        analysis = analyzer.analyze([])

        assert analysis.success_rate == 0.7
        assert analysis.average_attempts == 1.5
        assert analysis.average_time == 300.0
        assert analysis.trend == PerformanceTrend.STABLE
        assert analysis.consistency == 0.7
        assert analysis.is_neutral


class TestAggregates:
    """Tests for success rate, attempts, time and consistency"""

    def test_basic_aggregates(self, analyzer):
        points = make_points([True, True, False, True], attempts=2, time_spent=60)
        analysis = analyzer.analyze(points)

        assert analysis.success_rate == pytest.approx(0.75)
        assert analysis.average_attempts == pytest.approx(2.0)
        assert analysis.average_time == pytest.approx(60.0)
        assert analysis.sample_size == 4

    def test_consistency_is_one_minus_variance(self, analyzer):
        points = make_points([True, False] * 5)
        analysis = analyzer.analyze(points)

        assert analysis.consistency == pytest.approx(0.75)
        assert success_variance(points) == pytest.approx(0.25)

    def test_all_success_fully_consistent(self, analyzer):
        analysis = analyzer.analyze(make_points([True] * 8))
        assert analysis.consistency == pytest.approx(1.0)


class TestTrend:
    """Trend compares the last five points to the first five"""

    def test_improving(self, analyzer):
        analysis = analyzer.analyze(make_points([False] * 5 + [True] * 5))
        assert analysis.trend == PerformanceTrend.IMPROVING

    def test_declining(self, analyzer):
        analysis = analyzer.analyze(make_points([True] * 5 + [False] * 5))
        assert analysis.trend == PerformanceTrend.DECLINING

    def test_stable(self, analyzer):
        analysis = analyzer.analyze(make_points([True, False] * 5))
        assert analysis.trend == PerformanceTrend.STABLE


class TestImprovementRate:
    """Least-squares slope over recent history"""

    def test_insufficient_history(self, analyzer):
        assert analyzer.improvement_rate(make_points([True] * 9)) is None

    def test_flat_history(self, analyzer):
        assert analyzer.improvement_rate(make_points([True] * 12)) == pytest.approx(0.0, abs=1e-9)

    def test_rising_history(self, analyzer):
        rate = analyzer.improvement_rate(make_points([False] * 6 + [True] * 6))
        assert rate > 0
