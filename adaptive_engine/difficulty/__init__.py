"""
Difficulty state: profiles, their store, and performance aggregation.
"""

from .models import AdjustmentTrigger, DifficultyAdjustment, DifficultyProfile
from .profile_store import ProfileStore, InMemoryProfileStore
from .performance_analyzer import (
    PerformanceAnalyzer,
    PerformanceAnalysis,
    PerformanceTrend,
    success_variance,
)

__all__ = [
    "AdjustmentTrigger",
    "DifficultyAdjustment",
    "DifficultyProfile",
    "ProfileStore",
    "InMemoryProfileStore",
    "PerformanceAnalyzer",
    "PerformanceAnalysis",
    "PerformanceTrend",
    "success_variance",
]
