"""
Logging configuration for host processes embedding the engine
"""
import logging
import sys
from pathlib import Path
from typing import Optional

from loguru import logger
from adaptive_engine.core.config import EngineSettings, settings as default_settings


class InterceptHandler(logging.Handler):
    """
    Intercept standard logging and redirect to loguru
    """

    def emit(self, record: logging.LogRecord) -> None:
        # Get corresponding Loguru level if it exists
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Find caller from where originated the logged message
        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )


def setup_logging(settings: Optional[EngineSettings] = None, enqueue: bool = True):
    """
    Route the engine's stdlib loggers through loguru.

    Engine modules log with ``logging.getLogger(__name__)`` so they stay quiet
    until a host process calls this.
    """
    settings = settings or default_settings

    # Remove default logger
    logger.remove()

    logger.add(
        sys.stdout,
        enqueue=enqueue,
        colorize=True,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
        level=settings.LOG_LEVEL,
    )

    # Add file logger for production
    if settings.ENVIRONMENT == "production":
        log_path = Path("logs")
        log_path.mkdir(exist_ok=True)

        logger.add(
            log_path / "adaptive_engine_{time:YYYY-MM-DD}.log",
            rotation="500 MB",
            retention="30 days",
            enqueue=enqueue,
            serialize=False,
            level=settings.LOG_LEVEL,
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}",
        )

    # Intercept everything at the root logger
    logging.root.handlers = [InterceptHandler()]
    logging.root.setLevel(settings.LOG_LEVEL)

    # Engine loggers propagate to the intercepted root
    for name in list(logging.root.manager.loggerDict.keys()):
        if name.startswith("adaptive_engine"):
            logging.getLogger(name).handlers = []
            logging.getLogger(name).propagate = True

    logger.info(f"Logging configured - Level: {settings.LOG_LEVEL}, Environment: {settings.ENVIRONMENT}")
