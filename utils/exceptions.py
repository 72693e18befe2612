"""
Custom Exceptions Module

Defines application-specific exceptions for clearer error handling.
All exceptions inherit from a base VoiceOrderError for easy catching.

The resolution core itself never raises for bad input; these exceptions
belong to the edges (persistence wrapper, HTTP layer, input validation).

Usage:
    from utils.exceptions import CorrectionValidationError

    try:
        validate_correction(original, corrected)
    except CorrectionValidationError as e:
        logger.warning(f"Rejected correction: {e}")
"""

from typing import Optional, Dict, Any


class VoiceOrderError(Exception):
    """
    Base exception for all voice order application errors.

    Attributes:
        message: Human-readable error message
        details: Additional error details (optional)
        status_code: HTTP status code to return (optional)
    """

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        status_code: int = 500
    ):
        self.message = message
        self.details = details or {}
        self.status_code = status_code
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "details": self.details
        }


# =============================================================================
# Correction Exceptions
# =============================================================================

class CorrectionValidationError(VoiceOrderError):
    """
    Raised when a correction candidate is malformed.

    Common causes:
        - Empty original text
        - Empty corrected text
        - Correction maps a phrase to itself
    """

    def __init__(
        self,
        message: str = "Invalid correction",
        original_text: Optional[str] = None,
        corrected_text: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            details={
                "original_text": original_text,
                "corrected_text": corrected_text,
                **(details or {})
            },
            status_code=422
        )


# =============================================================================
# Persistence Exceptions
# =============================================================================

class PersistenceError(VoiceOrderError):
    """
    Raised when the correction/catalog database cannot be reached.

    Common causes:
        - Database file locked or missing
        - Connection refused
        - Driver not installed
    """

    def __init__(
        self,
        message: str = "Persistence backend unavailable",
        operation: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            details={"operation": operation, **(details or {})},
            status_code=503
        )


# =============================================================================
# Pipeline Exceptions
# =============================================================================

class PipelineBusyError(VoiceOrderError):
    """
    Raised by the HTTP layer when a user's previous utterance is still
    being resolved.
    """

    def __init__(
        self,
        message: str = "Previous utterance still being processed",
        user_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            details={"user_id": user_id, **(details or {})},
            status_code=409
        )
