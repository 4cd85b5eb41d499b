"""
Adaptive Difficulty & Real-Time Behavioral Adaptation Engine

Keeps a per-learner difficulty profile, scores behavior and performance
telemetry, and decides whether and how to intervene: raise or lower
difficulty, change pacing, inject hints, examples or encouragement, or suggest
a break. Every adaptation is monitored and rolled back if performance drops.
"""

from .core import EngineSettings, get_settings
from .engine import AdaptiveEngine, CycleResult, get_adaptive_engine

__version__ = "1.0.0"

__all__ = [
    "AdaptiveEngine",
    "CycleResult",
    "EngineSettings",
    "get_adaptive_engine",
    "get_settings",
]
