"""
Core Module

Provides database, models, schemas, and dependencies for the application.
"""

from .database import Base, engine, SessionLocal, get_db, check_database_health
from .models import SpeechCorrection, CatalogProduct
from .schemas import (
    TranscriptRequest,
    CorrectionCreate,
    CorrectionResponse,
    AppliedCorrectionResponse,
    ParseRequest,
    ParsedOrderResponse,
    CandidateResponse,
    SearchRequest,
    FeedbackRequest,
    HealthResponse,
)
from .dependencies import (
    get_repository,
    get_correction_store,
    get_voice_pipeline,
)

__all__ = [
    # Database
    "Base",
    "engine",
    "SessionLocal",
    "get_db",
    "check_database_health",
    # Models
    "SpeechCorrection",
    "CatalogProduct",
    # Schemas
    "TranscriptRequest",
    "CorrectionCreate",
    "CorrectionResponse",
    "AppliedCorrectionResponse",
    "ParseRequest",
    "ParsedOrderResponse",
    "CandidateResponse",
    "SearchRequest",
    "FeedbackRequest",
    "HealthResponse",
    # Dependencies
    "get_repository",
    "get_correction_store",
    "get_voice_pipeline",
]
