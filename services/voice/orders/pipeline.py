"""
Voice Order Pipeline

Per-user orchestration of one utterance:

    IDLE → LISTENING → FINAL_TRANSCRIPT → CORRECTING → PARSING → MATCHING
         → MATCHED | UNMATCHED

A processing flag per user keeps a second final transcript from being
resolved while one is in flight. Confirming or rejecting the last match
returns the session to IDLE and feeds the learning loop.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from config.settings import settings
from services.voice.matching.strategies import ProductScorer, default_strategies
from services.voice.models import CatalogEntry, MatchResult, ParsedOrderItem
from services.voice.orders.parser import parse_order
from services.voice.orders.resolver import resolve_best_match, search_with_alternatives
from services.voice.repository import VoiceOrderRepository
from services.voice.stt.corrections import CorrectionStore
from services.voice.stt.learning_system import FeedbackLog
from utils.logging import get_logger, log_pipeline_step

logger = get_logger(__name__)


class PipelineState(str, Enum):
    IDLE = "idle"
    LISTENING = "listening"
    FINAL_TRANSCRIPT = "final_transcript"
    CORRECTING = "correcting"
    PARSING = "parsing"
    MATCHING = "matching"
    MATCHED = "matched"
    UNMATCHED = "unmatched"


def _pairs_to_dict(pairs: List[Tuple[CatalogEntry, float]]) -> List[Dict[str, Any]]:
    return [
        {"product_id": entry.id, "product_name": entry.name, "score": round(score, 4)}
        for entry, score in pairs
    ]


@dataclass
class OrderResolution:
    """Everything the pipeline learned about one utterance."""
    transcript: str
    corrected_text: str
    state: PipelineState
    parsed: Optional[ParsedOrderItem] = None
    match: Optional[MatchResult] = None
    suggestions: List[Tuple[CatalogEntry, float]] = field(default_factory=list)
    alternatives: List[Tuple[CatalogEntry, float]] = field(default_factory=list)
    alternative_terms: List[str] = field(default_factory=list)
    busy: bool = False

    @property
    def matched(self) -> bool:
        return self.match is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "transcript": self.transcript,
            "corrected_text": self.corrected_text,
            "state": self.state.value,
            "busy": self.busy,
            "parsed": {
                "name": self.parsed.name,
                "quantity": self.parsed.quantity,
                "price": self.parsed.price,
                "confidence": self.parsed.confidence,
            } if self.parsed else None,
            "match": self.match.to_dict() if self.match else None,
            "suggestions": _pairs_to_dict(self.suggestions),
            "alternatives": _pairs_to_dict(self.alternatives),
            "alternative_terms": list(self.alternative_terms),
        }


@dataclass
class UtteranceSession:
    """Pipeline state for one user."""
    user_id: str
    state: PipelineState = PipelineState.IDLE
    processing: bool = False
    last: Optional[OrderResolution] = None


class VoiceOrderPipeline:
    """
    Resolve transcripts into catalog matches, one utterance per user at a time.

    Usage:
        pipeline = VoiceOrderPipeline(store, repository)
        resolution = await pipeline.process_transcript("user-1", "2 arroz de 500")
        if resolution.matched:
            await pipeline.confirm_match("user-1")
    """

    def __init__(
        self,
        store: CorrectionStore,
        repository: VoiceOrderRepository,
        feedback: Optional[FeedbackLog] = None,
        rank_threshold: Optional[float] = None
    ):
        self.store = store
        self.repository = repository
        self.feedback = feedback or FeedbackLog()
        self.rank_threshold = settings.RANK_THRESHOLD if rank_threshold is None else rank_threshold
        self.scorer = ProductScorer(default_strategies(store.tables))
        self._sessions: Dict[str, UtteranceSession] = {}

    def get_session(self, user_id: str) -> UtteranceSession:
        if user_id not in self._sessions:
            self._sessions[user_id] = UtteranceSession(user_id=user_id)
        return self._sessions[user_id]

    def is_processing(self, user_id: str) -> bool:
        return self.get_session(user_id).processing

    def _transition(self, session: UtteranceSession, state: PipelineState) -> None:
        logger.debug(f"user={session.user_id} {session.state.value} -> {state.value}")
        session.state = state

    def start_listening(self, user_id: str) -> PipelineState:
        """Open the microphone for a user; ignored while an utterance is in flight."""
        session = self.get_session(user_id)
        if not session.processing:
            self._transition(session, PipelineState.LISTENING)
        return session.state

    async def _load_catalog(self, user_id: str) -> List[CatalogEntry]:
        try:
            return await self.repository.list_catalog(user_id)
        except Exception as e:
            logger.error(f"Failed to load catalog for user {user_id}: {e}", exc_info=True)
            return []

    async def process_transcript(self, user_id: str, transcript: str) -> OrderResolution:
        """
        Resolve one final transcript.

        Returns:
            OrderResolution. When the user already has an utterance in flight,
            nothing is processed and the resolution comes back with busy=True.
        """
        session = self.get_session(user_id)
        transcript = transcript or ""

        if session.processing:
            logger.warning(f"Utterance already in flight for user {user_id}; ignoring '{transcript}'")
            return OrderResolution(
                transcript=transcript,
                corrected_text=transcript,
                state=session.state,
                busy=True,
            )

        session.processing = True
        try:
            self._transition(session, PipelineState.FINAL_TRANSCRIPT)
            catalog = await self._load_catalog(user_id)

            self._transition(session, PipelineState.CORRECTING)
            correction = await self.store.correct(transcript, user_id, catalog)

            self._transition(session, PipelineState.PARSING)
            parsed = parse_order(correction.corrected)

            self._transition(session, PipelineState.MATCHING)
            match = resolve_best_match(parsed, catalog)

            resolution = OrderResolution(
                transcript=transcript,
                corrected_text=correction.corrected,
                state=PipelineState.MATCHED if match else PipelineState.UNMATCHED,
                parsed=parsed,
                match=match,
            )
            if match is None:
                await self._fill_fallback(resolution, user_id, catalog)

            self._transition(session, resolution.state)
            session.last = resolution

            log_pipeline_step(
                "matching",
                user_id,
                match is not None,
                f"'{parsed.name}' -> {match.product.name} ({match.confidence:.2f})" if match
                else f"'{parsed.name}' unmatched, {len(resolution.suggestions)} suggestions",
            )
            return resolution
        finally:
            session.processing = False

    async def _fill_fallback(
        self,
        resolution: OrderResolution,
        user_id: str,
        catalog: List[CatalogEntry]
    ) -> None:
        """Multi-term search and ranked suggestions for an unmatched utterance."""
        query = resolution.parsed.name if resolution.parsed and resolution.parsed.name else resolution.corrected_text

        terms = await self.store.list_alternative_corrections(query, user_id, catalog)
        if query and query.lower() not in {t.lower() for t in terms}:
            terms.append(query)

        resolution.alternative_terms = terms
        resolution.alternatives = search_with_alternatives(catalog, terms)
        resolution.suggestions = self.scorer.rank(query, catalog, self.rank_threshold)

    async def confirm_match(self, user_id: str) -> bool:
        """
        Record the last match as correct.

        Positive reinforcement only; no correction is stored.
        """
        session = self.get_session(user_id)
        last = session.last
        if last is None or last.match is None:
            return False

        self.feedback.record_confirmation(
            user_id,
            last.transcript,
            last.match.product.id,
            last.match.product.name,
            last.match.confidence,
        )
        session.last = None
        self._transition(session, PipelineState.IDLE)
        log_pipeline_step("confirmed", user_id, True, last.match.product.name)
        return True

    async def reject_match(self, user_id: str, correct_product_name: Optional[str] = None) -> bool:
        """
        Record the last resolution as wrong.

        When the user names the product they meant, the heard product phrase
        is stored as a correction to that name so the next utterance resolves.

        Returns:
            False when there is nothing to reject or the correction could
            not be stored.
        """
        session = self.get_session(user_id)
        last = session.last
        if last is None:
            return False

        self.feedback.record_rejection(
            user_id,
            last.transcript,
            product_id=last.match.product.id if last.match else None,
            product_name=last.match.product.name if last.match else None,
            confidence=last.match.confidence if last.match else 0.0,
            corrected_to=correct_product_name,
        )
        session.last = None
        self._transition(session, PipelineState.IDLE)

        if not correct_product_name:
            log_pipeline_step("rejected", user_id, True)
            return True

        # what was heard, before any correction rewrote it
        heard = parse_order(last.transcript).name or last.transcript.strip()
        learned = await self.store.learn_correction(user_id, heard, correct_product_name)
        log_pipeline_step("rejected", user_id, learned, f"'{heard}' -> '{correct_product_name}'")
        return learned
