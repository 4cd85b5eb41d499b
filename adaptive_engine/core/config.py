"""
Engine configuration settings
"""
import os
from typing import List
from pydantic_settings import BaseSettings, SettingsConfigDict


ALL_ADAPTATION_TYPES = [
    "difficulty",
    "pacing",
    "hints",
    "examples",
    "encouragement",
    "content_format",
    "break_suggestion",
]


class EngineSettings(BaseSettings):
    """Engine settings with environment variable support (ADAPTIVE_ prefix)"""

    # App
    APP_NAME: str = "Adaptive Difficulty Engine"
    APP_VERSION: str = "1.0.0"
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")  # development, staging, production

    # Monitoring
    LOG_LEVEL: str = "INFO"

    # Real-time adaptation loop
    ENABLED: bool = True
    ADAPTATION_FREQUENCY_SECONDS: float = 10.0    # Minimum time between cycles per session
    MINIMUM_INTERACTION_SECONDS: float = 30.0     # Time on content before first adaptation
    CONFIDENCE_THRESHOLD: float = 0.6             # Confidence gate
    ENABLED_ADAPTATION_TYPES: List[str] = list(ALL_ADAPTATION_TYPES)

    # Profile defaults (cold start)
    DEFAULT_LEVEL: int = 5
    DEFAULT_CONFIDENCE: float = 0.3
    MIN_LEVEL: int = 1
    MAX_LEVEL: int = 10

    # Analysis windows
    ANALYSIS_WINDOW: int = 20          # PerformancePoints fed to the analyzer
    PERFORMANCE_HISTORY_LIMIT: int = 500
    FATIGUE_ERROR_WINDOW: int = 5      # Points inspected for recent errors

    # Frustration / engagement
    FRUSTRATION_WINDOW_SECONDS: float = 60.0
    IDLE_THRESHOLD_SECONDS: float = 30.0

    # Monitoring / rollback
    MONITORING_MIN_POINTS: int = 3     # Post-adaptation points needed to judge a rollback
    BASE_MONITORING_MINUTES: float = 15.0

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="ADAPTIVE_",
        case_sensitive=True,
        extra="ignore"
    )


settings = EngineSettings()


def get_settings() -> EngineSettings:
    """Dependency injection"""
    return settings
