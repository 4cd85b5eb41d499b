"""
Unit tests for difficulty profiles and the in-memory profile store

Tests cover:
- Cold-start defaults
- Level clamping on adjustment
- Snapshot round trip
- Per-user locking
"""

import pytest
import threading
from datetime import timedelta

from adaptive_engine.core.exceptions import SnapshotError
from adaptive_engine.difficulty.models import (
    AdjustmentTrigger,
    DifficultyAdjustment,
    DifficultyProfile,
)
from tests.factories import BASE_TIME, make_points


def _adjustment(from_level, to_level, trigger=AdjustmentTrigger.PERFORMANCE):
    return DifficultyAdjustment(
        timestamp=BASE_TIME,
        from_level=from_level,
        to_level=to_level,
        reason="test",
        trigger=trigger,
        confidence=0.8,
    )


class TestColdStart:
    """Profiles are created lazily with conservative defaults"""

    def test_defaults(self, store):
        profile = store.get_or_create("new-user")

        assert profile.current_level == 5
        assert profile.optimal_level == 5
        assert profile.confidence == 0.3
        assert profile.success_rate == 0.7
        assert profile.average_attempts == 1.5
        assert profile.time_to_complete == 300.0
        assert profile.help_requests == 0.2
        assert profile.improvement_rate == 0.05
        assert profile.plateau_detected is False
        assert profile.session_quality == 0.7
        assert profile.fatigue_level == 0.3
        assert profile.motivation_level == 0.8
        assert profile.adjustment_history == []
        assert profile.performance_history == []
        assert profile.last_adjustment == BASE_TIME

    def test_get_or_create_is_idempotent(self, store):
        first = store.get_or_create("user-1", "math")
        second = store.get_or_create("user-1", "math")
        assert first is second

    def test_one_profile_per_subject(self, store):
        math = store.get_or_create("user-1", "math")
        science = store.get_or_create("user-1", "science")

        assert math is not science
        assert len(store.list_profiles("user-1")) == 2

    def test_get_unknown_returns_none(self, store):
        assert store.get("nobody") is None

    def test_default_profile_is_not_stored(self, store):
        profile = store.default_profile("user-1", "math")

        assert profile.current_level == 5
        assert store.get("user-1", "math") is None


class TestApplyAdjustment:
    """Tests for recording difficulty changes"""

    def test_updates_level_and_history(self, store, clock):
        profile = store.get_or_create("user-1")
        clock.advance(minutes=10)

        store.apply_adjustment(profile, _adjustment(5, 6))

        assert profile.current_level == 6
        assert profile.last_adjustment == BASE_TIME + timedelta(minutes=10)
        assert store.list_history("user-1")[-1].to_level == 6

    @pytest.mark.parametrize("target,expected", [(14, 10), (0, 1), (-5, 1)])
    def test_level_clamped(self, store, target, expected):
        profile = store.get_or_create("user-1")
        store.apply_adjustment(profile, _adjustment(5, target))
        assert profile.current_level == expected

    def test_history_is_append_only(self, store):
        profile = store.get_or_create("user-1")
        store.apply_adjustment(profile, _adjustment(5, 6))
        store.apply_adjustment(profile, _adjustment(6, 5, AdjustmentTrigger.MANUAL))

        history = store.list_history("user-1")
        assert [a.to_level for a in history] == [6, 5]
        assert profile.last_applied_adjustment().trigger == AdjustmentTrigger.MANUAL


class TestSnapshotRoundTrip:
    """to_dict/from_dict is an exact round trip"""

    def test_round_trip(self, store):
        profile = store.get_or_create("user-1", "math")
        profile.performance_history = make_points([True, False, True])
        store.apply_adjustment(profile, _adjustment(5, 7, AdjustmentTrigger.PLATEAU))

        restored = DifficultyProfile.from_dict(profile.to_dict())

        assert restored == profile

    def test_store_restore(self, store, settings, clock):
        profile = store.get_or_create("user-1")
        store.apply_adjustment(profile, _adjustment(5, 3))
        snapshot = store.snapshot("user-1")

        from adaptive_engine.difficulty.profile_store import InMemoryProfileStore
        other = InMemoryProfileStore(settings, clock)
        restored = other.restore(snapshot)

        assert restored.current_level == 3
        assert other.get("user-1") == profile

    def test_invalid_snapshot(self, store):
        with pytest.raises(SnapshotError):
            store.restore({"subject": "math"})


class TestLocking:
    """Per-user locks serialize one user's updates"""

    def test_lock_is_reentrant(self, store):
        with store.lock("user-1"):
            with store.lock("user-1"):
                profile = store.get_or_create("user-1")
        assert profile.user_id == "user-1"

    def test_concurrent_adjustments_are_all_recorded(self, store):
        profile = store.get_or_create("user-1")

        def adjust():
            for _ in range(50):
                with store.lock("user-1"):
                    store.apply_adjustment(profile, _adjustment(5, 5))

        threads = [threading.Thread(target=adjust) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(store.list_history("user-1")) == 200
