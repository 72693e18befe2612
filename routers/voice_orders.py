"""
Voice Orders Router

HTTP surface for transcript correction, order parsing, catalog search and
the per-user resolution pipeline.
"""

from typing import List

from fastapi import APIRouter, Depends, HTTPException

from core.dependencies import get_correction_store, get_repository, get_voice_pipeline
from core.schemas import (
    AppliedCorrectionResponse,
    CandidateResponse,
    CorrectionCreate,
    CorrectionResponse,
    FeedbackRequest,
    ParsedOrderResponse,
    ParseRequest,
    SearchRequest,
    TranscriptRequest,
)
from services.voice.orders.parser import parse_order
from services.voice.orders.pipeline import VoiceOrderPipeline
from services.voice.repository import VoiceOrderRepository
from services.voice.stt.corrections import CorrectionStore, validate_correction
from utils.exceptions import PersistenceError, PipelineBusyError
from utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/voice-orders", tags=["Voice Orders"])


# =============================================================================
# Pipeline
# =============================================================================

@router.post("/listen")
async def start_listening(
    request: FeedbackRequest,
    pipeline: VoiceOrderPipeline = Depends(get_voice_pipeline)
):
    """Mark the user's session as listening for the next utterance"""
    state = pipeline.start_listening(request.user_id)
    return {"user_id": request.user_id, "state": state.value}


@router.post("/resolve")
async def resolve_transcript(
    request: TranscriptRequest,
    pipeline: VoiceOrderPipeline = Depends(get_voice_pipeline)
):
    """Correct, parse and match one final transcript"""
    resolution = await pipeline.process_transcript(request.user_id, request.transcript)
    if resolution.busy:
        raise PipelineBusyError(user_id=request.user_id)
    return resolution.to_dict()


@router.post("/confirm")
async def confirm_match(
    request: FeedbackRequest,
    pipeline: VoiceOrderPipeline = Depends(get_voice_pipeline)
):
    """Confirm the user's last match"""
    if not await pipeline.confirm_match(request.user_id):
        raise HTTPException(status_code=404, detail="No match to confirm")
    return {"success": True}


@router.post("/reject")
async def reject_match(
    request: FeedbackRequest,
    pipeline: VoiceOrderPipeline = Depends(get_voice_pipeline)
):
    """Reject the user's last resolution, optionally naming the intended product"""
    if pipeline.get_session(request.user_id).last is None:
        raise HTTPException(status_code=404, detail="No resolution to reject")

    learned = await pipeline.reject_match(request.user_id, request.correct_product_name)
    return {"success": True, "correction_stored": bool(request.correct_product_name) and learned}


# =============================================================================
# Corrections
# =============================================================================

@router.post("/corrections/apply", response_model=AppliedCorrectionResponse)
async def apply_corrections(
    request: TranscriptRequest,
    store: CorrectionStore = Depends(get_correction_store)
):
    """Apply the user's corrections to a transcript"""
    result = await store.correct(request.transcript, request.user_id)
    alternatives = await store.list_alternative_corrections(request.transcript, request.user_id)
    return AppliedCorrectionResponse(
        original=result.original,
        corrected=result.corrected,
        source=result.source.value,
        confidence=result.confidence,
        alternatives=alternatives,
    )


@router.get("/corrections/{user_id}", response_model=List[CorrectionResponse])
async def list_corrections(
    user_id: str,
    store: CorrectionStore = Depends(get_correction_store)
):
    """Active corrections for a user, newest first"""
    return await store.get_corrections(user_id)


@router.post("/corrections", status_code=201)
async def add_correction(
    request: CorrectionCreate,
    store: CorrectionStore = Depends(get_correction_store)
):
    """Store a confirmed correction"""
    original, corrected = validate_correction(request.original_text, request.corrected_text)

    if not await store.learn_correction(request.user_id, original, corrected):
        raise PersistenceError("Could not store correction", operation="upsert_correction")

    return {"success": True, "original_text": original, "corrected_text": corrected}


@router.delete("/corrections/{correction_id}")
async def deactivate_correction(
    correction_id: int,
    user_id: str,
    store: CorrectionStore = Depends(get_correction_store)
):
    """Deactivate a correction (records are never deleted)"""
    if not await store.reject_correction(user_id, correction_id):
        raise HTTPException(status_code=404, detail="Correction not found")
    return {"success": True, "message": "Correction deactivated"}


# =============================================================================
# Parsing & Search
# =============================================================================

@router.post("/parse", response_model=ParsedOrderResponse)
async def parse(request: ParseRequest):
    """Extract quantity, name and price from text"""
    return parse_order(request.text)


@router.post("/search", response_model=List[CandidateResponse])
async def search(
    request: SearchRequest,
    repository: VoiceOrderRepository = Depends(get_repository),
    pipeline: VoiceOrderPipeline = Depends(get_voice_pipeline)
):
    """Multi-result voice search over the user's catalog"""
    catalog = await repository.list_catalog(request.user_id)
    threshold = pipeline.rank_threshold if request.threshold is None else request.threshold
    ranked = pipeline.scorer.rank(request.query, catalog, threshold)
    return [
        CandidateResponse(product_id=entry.id, product_name=entry.name, score=round(score, 4))
        for entry, score in ranked
    ]
