"""
Utilities Module

Provides shared utilities across the application:
- Logging configuration
- Custom exceptions
"""

from .logging import get_logger, setup_logging, log_pipeline_step, log_correction
from .exceptions import (
    VoiceOrderError,
    CorrectionValidationError,
    PersistenceError,
    PipelineBusyError,
)

__all__ = [
    # Logging
    "get_logger",
    "setup_logging",
    "log_pipeline_step",
    "log_correction",
    # Exceptions
    "VoiceOrderError",
    "CorrectionValidationError",
    "PersistenceError",
    "PipelineBusyError",
]
