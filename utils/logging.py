"""
Logging Configuration Module

Console or JSON logging for the voice order resolver, plus helpers that
give pipeline steps and applied corrections one consistent line format.

Usage:
    from utils.logging import get_logger

    logger = get_logger(__name__)
    logger.info("Resolving utterance", extra={"user_id": user_id})
    logger.error("Failed to load corrections", exc_info=True)
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Optional

from config.settings import settings

# Extra attributes copied onto structured records
CONTEXT_FIELDS = ("user_id", "step", "source", "confidence", "details")


# =============================================================================
# Custom Formatters
# =============================================================================

class ColoredFormatter(logging.Formatter):
    """
    Colored console formatter.

    Appends `[user=...]` when the record carries a user id.
    """

    COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[1;31m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelno, "")
        levelname = record.levelname
        record.levelname = f"{color}{levelname:8}{self.RESET}"
        try:
            line = super().format(record)
        finally:
            record.levelname = levelname

        user_id = getattr(record, "user_id", None)
        if user_id and f"user={user_id}" not in line:
            line += f" [user={user_id}]"
        return line


class JSONFormatter(logging.Formatter):
    """One JSON object per record, for log aggregators."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "line": record.lineno,
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key in CONTEXT_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                log_data[key] = value

        return json.dumps(log_data, default=str, ensure_ascii=False)


# =============================================================================
# Logger Configuration
# =============================================================================

def setup_logging(
    level: Optional[str] = None,
    json_format: Optional[bool] = None
) -> None:
    """
    Configure application-wide logging.

    Args:
        level: Log level name. Defaults to DEBUG when settings.DEBUG is on,
               INFO otherwise.
        json_format: Structured output. Defaults to settings.LOG_JSON.
    """
    if level is None:
        level = "DEBUG" if settings.DEBUG else "INFO"
    if json_format is None:
        json_format = settings.LOG_JSON

    log_level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)
    handler.setFormatter(
        JSONFormatter() if json_format else ColoredFormatter(
            fmt="%(asctime)s │ %(levelname)s │ %(name)s │ %(message)s",
            datefmt="%H:%M:%S"
        )
    )
    root_logger.addHandler(handler)

    # Quiet driver and client chatter
    for noisy in ("aiosqlite", "sqlalchemy.engine", "httpx", "httpcore", "asyncio"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Logger for a module; pass __name__."""
    return logging.getLogger(name)


# =============================================================================
# Convenience Functions
# =============================================================================

def log_pipeline_step(
    step: str,
    user_id: str,
    success: bool,
    details: Optional[str] = None
) -> None:
    """
    Log a voice-order pipeline step with standard format.

    Args:
        step: Pipeline step (e.g., "matching", "confirmed", "rejected")
        user_id: User whose utterance is being resolved
        success: Whether the step produced a usable result
        details: Free-form suffix (matched product, learned pair)
    """
    logger = get_logger("pipeline")

    status = "✅" if success else "❌"
    msg = f"{status} {step.upper()} | user={user_id}"
    if details:
        msg += f" | {details}"

    extra = {"user_id": user_id, "step": step, "details": details}
    if success:
        logger.info(msg, extra=extra)
    else:
        logger.warning(msg, extra=extra)


def log_correction(
    user_id: str,
    source: str,
    original: str,
    corrected: str,
    confidence: float
) -> None:
    """Log a transcript rewrite with the step that produced it."""
    get_logger("corrections").info(
        f"✏️ {source.upper()} | '{original}' -> '{corrected}' ({confidence:.2f})",
        extra={"user_id": user_id, "source": source, "confidence": round(confidence, 4)},
    )
