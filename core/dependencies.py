"""
FastAPI Dependencies Module

Provides dependency injection for the voice order services.
All service instances are singletons so the correction cache and the
per-user pipeline sessions are shared across requests.

Usage:
    from core.dependencies import get_voice_pipeline

    @router.post("/resolve")
    async def resolve(
        pipeline: VoiceOrderPipeline = Depends(get_voice_pipeline)
    ):
        ...
"""

from utils.logging import get_logger

# Lazy imports to avoid circular dependencies
_repository = None
_correction_store = None
_voice_pipeline = None

logger = get_logger(__name__)


# =============================================================================
# Service Initialization
# =============================================================================

def _initialize_services() -> None:
    """
    Initialize all service singletons.

    Called lazily on first access to any service.
    """
    global _repository, _correction_store, _voice_pipeline

    from core.database import SessionLocal
    from services.voice.repository import SQLVoiceOrderRepository
    from services.voice.stt.corrections import CorrectionStore
    from services.voice.orders.pipeline import VoiceOrderPipeline

    _repository = SQLVoiceOrderRepository(SessionLocal)
    _correction_store = CorrectionStore(_repository)
    _voice_pipeline = VoiceOrderPipeline(_correction_store, _repository)

    logger.info("Voice order services initialized successfully")


def _ensure_initialized() -> None:
    """Ensure services are initialized."""
    if _voice_pipeline is None:
        _initialize_services()


def reset_services() -> None:
    """Drop the singletons so the next access builds fresh ones."""
    global _repository, _correction_store, _voice_pipeline
    _repository = None
    _correction_store = None
    _voice_pipeline = None


# =============================================================================
# Service Providers
# =============================================================================

def get_repository():
    """
    Get the persistence collaborator singleton.

    Returns:
        SQLVoiceOrderRepository: Repository over the application database
    """
    _ensure_initialized()
    return _repository


def get_correction_store():
    """
    Get CorrectionStore singleton for transcript corrections.

    Returns:
        CorrectionStore: Store sharing one TTL cache across requests
    """
    _ensure_initialized()
    return _correction_store


def get_voice_pipeline():
    """
    Get VoiceOrderPipeline singleton for utterance resolution.

    Returns:
        VoiceOrderPipeline: Pipeline holding per-user sessions
    """
    _ensure_initialized()
    return _voice_pipeline
