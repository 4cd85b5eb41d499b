from .config import EngineSettings, settings, get_settings, ALL_ADAPTATION_TYPES
from .exceptions import AdaptiveEngineError, AdaptationExecutionError, SnapshotError
from .clock import Clock, utcnow, ensure_utc, clamp

__all__ = [
    "EngineSettings",
    "settings",
    "get_settings",
    "ALL_ADAPTATION_TYPES",
    "AdaptiveEngineError",
    "AdaptationExecutionError",
    "SnapshotError",
    "Clock",
    "utcnow",
    "ensure_utc",
    "clamp",
]
