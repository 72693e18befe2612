"""
Correction Store

Per-user learned transcript corrections with a TTL cache, multi-step
lookup and a feedback-driven learning loop.

Lookup order for one transcript:
    1. Exact match on a stored correction (case-insensitive)
    2. Substring replacement for every stored correction found in the text
    3. Inference from the user's catalog (dialect variants, famous
       mis-recognitions, edit distance, shared prefixes)
    4. Static table of common mis-recognitions
    5. Unchanged text

Persistence failures never fail a transcript: they are logged and treated
as "no corrections available".
"""

import asyncio
import re
import weakref
from typing import List, Optional, Sequence, Tuple

from config.settings import settings
from services.voice.config import VariantTables, get_variant_tables
from services.voice.matching.similarity import levenshtein
from services.voice.models import (
    CatalogEntry,
    CorrectionRecord,
    CorrectionResult,
    CorrectionSource,
)
from services.voice.normalization.phonetic import normalize_text
from services.voice.repository import VoiceOrderRepository
from services.voice.stt.cache import CorrectionCache
from utils.exceptions import CorrectionValidationError
from utils.logging import get_logger, log_correction

logger = get_logger(__name__)

MAX_EDIT_DISTANCE = 3
PREFIX_LENGTH = 3
MAX_PREFIX_LENGTH_DIFF = 2

SUBSTRING_CONFIDENCE = 0.9
DIALECT_CONFIDENCE = 0.9
FAMOUS_CONFIDENCE = 0.85
PREFIX_CONFIDENCE = 0.5
COMMON_MISTAKE_CONFIDENCE = 0.7

# Order words never rewritten by the prefix heuristic
_ORDER_WORDS = frozenset({
    "quero", "queria", "adicionar", "comprar", "colocar", "preciso",
    "por", "favor", "carrinho", "uma", "um", "de", "da", "do", "cada",
})

_WORD = re.compile(r"\w+", re.UNICODE)


def validate_correction(original_text: Optional[str], corrected_text: Optional[str]) -> Tuple[str, str]:
    """
    Reject malformed correction candidates before they reach persistence.

    Returns:
        The stripped (original, corrected) pair

    Raises:
        CorrectionValidationError: either side is empty, or the pair is a no-op
    """
    original = (original_text or "").strip()
    corrected = (corrected_text or "").strip()

    if not original or not corrected:
        raise CorrectionValidationError(
            "Correction needs both original and corrected text",
            original_text=original,
            corrected_text=corrected,
        )
    if original.lower() == corrected.lower():
        raise CorrectionValidationError(
            "Correction does not change the text",
            original_text=original,
            corrected_text=corrected,
        )
    return original, corrected


def _recency(record: CorrectionRecord):
    return (record.created_at, record.id or 0)


def _replace_all(pattern: re.Pattern, replacement: str, text: str) -> Tuple[str, int]:
    # Callable replacement so backslashes in stored text are literal
    return pattern.subn(lambda _match: replacement, text)


def _spaced_pattern(phrase: str) -> Optional[re.Pattern]:
    """Word-bounded pattern tolerant to any run of whitespace between words."""
    words = phrase.split()
    if not words:
        return None
    body = r"\s+".join(re.escape(word) for word in words)
    return re.compile(rf"(?<!\w){body}(?!\w)", re.IGNORECASE)


class CorrectionStore:
    """
    Per-user correction lookup and learning.

    Usage:
        store = CorrectionStore(repository)
        text = await store.apply_corrections("quero tibana", "user-1")
        await store.learn_correction("user-1", "tibana", "tibone")
    """

    def __init__(
        self,
        repository: VoiceOrderRepository,
        cache: Optional[CorrectionCache] = None,
        tables: Optional[VariantTables] = None,
        auto_learn: Optional[bool] = None,
        auto_learn_min_confidence: Optional[float] = None,
    ):
        self.repository = repository
        self.cache = cache or CorrectionCache()
        self.tables = tables or get_variant_tables()
        self.auto_learn = settings.AUTO_LEARN_ENABLED if auto_learn is None else auto_learn
        self.auto_learn_min_confidence = (
            settings.AUTO_LEARN_MIN_CONFIDENCE
            if auto_learn_min_confidence is None
            else auto_learn_min_confidence
        )
        self._common_patterns = self.tables.common_mistake_patterns()
        # Per-user locks serialize read-reload and write-invalidate; a lock
        # disappears once no coroutine holds or waits on it
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()

    def _lock_for(self, user_id: str) -> asyncio.Lock:
        lock = self._locks.get(user_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[user_id] = lock
        return lock

    # -------------------------------------------------------------------------
    # Records
    # -------------------------------------------------------------------------

    async def get_corrections(self, user_id: str) -> List[CorrectionRecord]:
        """
        Active corrections for a user, newest first.

        Served from the cache while it is fresh; reloaded from the repository
        otherwise. A failed reload returns an empty list and is not cached.
        """
        async with self._lock_for(user_id):
            cached = self.cache.get(user_id)
            if cached is not None:
                return cached

            try:
                records = await self.repository.list_active_corrections(user_id)
            except Exception as e:
                logger.error(f"Failed to load corrections for user {user_id}: {e}", exc_info=True)
                return []

            records = sorted((r for r in records if r.active), key=_recency, reverse=True)
            self.cache.put(user_id, records)
            logger.debug(f"Loaded {len(records)} corrections for user {user_id}")
            return records

    async def _get_catalog(self, user_id: str) -> List[CatalogEntry]:
        try:
            return await self.repository.list_catalog(user_id)
        except Exception as e:
            logger.error(f"Failed to load catalog for user {user_id}: {e}", exc_info=True)
            return []

    # -------------------------------------------------------------------------
    # Lookup
    # -------------------------------------------------------------------------

    async def correct(
        self,
        text: str,
        user_id: str,
        catalog: Optional[Sequence[CatalogEntry]] = None
    ) -> CorrectionResult:
        """
        Run one transcript through every correction step.

        Args:
            text: Raw transcript
            user_id: Owner of the corrections
            catalog: Catalog snapshot; loaded from the repository when omitted

        Returns:
            CorrectionResult naming the step that produced the text
        """
        if not text or not text.strip():
            return CorrectionResult(original=text or "", corrected=text or "")

        records = await self.get_corrections(user_id)

        result = self._exact_match(text, records)
        if result is None:
            result = self._substring_match(text, records)

        if result is None:
            if catalog is None:
                catalog = await self._get_catalog(user_id)
            result = self._infer_from_catalog(text, catalog)
            if result is not None:
                await self._maybe_auto_learn(user_id, result)

        if result is None:
            result = self._common_mistakes(text)

        if result is None:
            return CorrectionResult(original=text, corrected=text)

        log_correction(user_id, result.source.value, text, result.corrected, result.confidence)
        return result

    async def apply_corrections(
        self,
        text: str,
        user_id: str,
        catalog: Optional[Sequence[CatalogEntry]] = None
    ) -> str:
        """Best single corrected text for a transcript."""
        return (await self.correct(text, user_id, catalog)).corrected

    def _exact_match(self, text: str, records: List[CorrectionRecord]) -> Optional[CorrectionResult]:
        wanted = text.strip().lower()
        for record in records:
            if record.original_text.strip().lower() == wanted:
                return CorrectionResult(
                    original=text,
                    corrected=record.corrected_text,
                    source=CorrectionSource.EXACT,
                    confidence=1.0,
                    applied=[{
                        "id": record.id,
                        "heard": record.original_text,
                        "correct": record.corrected_text,
                        "count": 1,
                    }],
                )
        return None

    def _substring_match(self, text: str, records: List[CorrectionRecord]) -> Optional[CorrectionResult]:
        lowered = text.lower()
        corrected = text
        applied = []
        used = set()

        for index, record in enumerate(records):
            heard = record.original_text.strip()
            if not heard or heard.lower() not in lowered:
                continue
            pattern = re.compile(re.escape(heard), re.IGNORECASE)
            corrected, count = _replace_all(pattern, record.corrected_text, corrected)
            if count:
                used.add(index)
                applied.append({
                    "id": record.id,
                    "heard": heard,
                    "correct": record.corrected_text,
                    "count": count,
                })

        # Stricter pass: whole words with any spacing, for records not yet applied
        for index, record in enumerate(records):
            if index in used:
                continue
            pattern = _spaced_pattern(record.original_text)
            if pattern is None:
                continue
            corrected, count = _replace_all(pattern, record.corrected_text, corrected)
            if count:
                applied.append({
                    "id": record.id,
                    "heard": record.original_text.strip(),
                    "correct": record.corrected_text,
                    "count": count,
                })

        if not applied:
            return None

        return CorrectionResult(
            original=text,
            corrected=corrected,
            source=CorrectionSource.SUBSTRING,
            confidence=SUBSTRING_CONFIDENCE,
            applied=applied,
        )

    def _infer_from_catalog(
        self,
        text: str,
        catalog: Sequence[CatalogEntry]
    ) -> Optional[CorrectionResult]:
        """Best product-based inference across the catalog; earlier products win ties."""
        if not catalog:
            return None

        heard = normalize_text(text)
        catalog_words = {
            word
            for entry in catalog
            for word in normalize_text(entry.name).split()
        }

        best: Optional[CorrectionResult] = None
        for entry in catalog:
            candidate = self._infer_for_product(text, heard, entry, catalog_words)
            if candidate is not None and (best is None or candidate.confidence > best.confidence):
                best = candidate

        return best

    def _infer_for_product(
        self,
        text: str,
        heard: str,
        entry: CatalogEntry,
        catalog_words: set
    ) -> Optional[CorrectionResult]:
        name = normalize_text(entry.name)
        if not name:
            return None

        # (a) dialect variants of the product's family
        for canonical, variants in self.tables.dialects.items():
            if normalize_text(canonical) not in name:
                continue
            for variant in sorted(variants, key=len, reverse=True):
                pattern = _spaced_pattern(variant)
                if pattern is None:
                    continue
                corrected, count = _replace_all(pattern, canonical, text)
                if count:
                    return self._inferred(text, corrected, DIALECT_CONFIDENCE, variant, canonical, entry)

        # (b) famous mis-recognitions
        for variant, canonical in self.tables.famous_pairs:
            if normalize_text(canonical) not in name or variant.lower() not in text.lower():
                continue
            pattern = re.compile(re.escape(variant), re.IGNORECASE)
            corrected, _ = _replace_all(pattern, canonical, text)
            return self._inferred(text, corrected, FAMOUS_CONFIDENCE, variant, canonical, entry)

        # (c) whole utterance within a few edits of the product name
        if len(heard) > MAX_EDIT_DISTANCE and heard != name:
            distance = levenshtein(heard, name)
            if distance <= MAX_EDIT_DISTANCE:
                confidence = 1.0 - distance / max(len(heard), len(name))
                return self._inferred(text, entry.name, confidence, text, entry.name, entry)

        # (d) a word sharing its first letters with a product word
        for match in _WORD.finditer(text):
            word = normalize_text(match.group())
            if len(word) < PREFIX_LENGTH or word.isdigit() or word in _ORDER_WORDS or word in catalog_words:
                continue
            for product_word in name.split():
                if (
                    len(product_word) >= PREFIX_LENGTH
                    and product_word[:PREFIX_LENGTH] == word[:PREFIX_LENGTH]
                    and abs(len(product_word) - len(word)) <= MAX_PREFIX_LENGTH_DIFF
                ):
                    corrected = text[:match.start()] + product_word + text[match.end():]
                    return self._inferred(
                        text, corrected, PREFIX_CONFIDENCE, match.group(), product_word, entry
                    )

        return None

    @staticmethod
    def _inferred(
        text: str,
        corrected: str,
        confidence: float,
        heard: str,
        correct: str,
        entry: CatalogEntry
    ) -> CorrectionResult:
        return CorrectionResult(
            original=text,
            corrected=corrected,
            source=CorrectionSource.PRODUCT_INFERENCE,
            confidence=round(confidence, 4),
            applied=[{"heard": heard, "correct": correct, "product_id": entry.id, "count": 1}],
        )

    def _common_mistakes(self, text: str) -> Optional[CorrectionResult]:
        corrected = text
        applied = []
        for pattern, canonical in self._common_patterns:
            corrected, count = _replace_all(pattern, canonical, corrected)
            if count:
                applied.append({"heard": pattern.pattern, "correct": canonical, "count": count})

        if not applied:
            return None

        return CorrectionResult(
            original=text,
            corrected=corrected,
            source=CorrectionSource.KNOWN_MISTAKE,
            confidence=COMMON_MISTAKE_CONFIDENCE,
            applied=applied,
        )

    async def _maybe_auto_learn(self, user_id: str, result: CorrectionResult) -> None:
        if not self.auto_learn or result.confidence < self.auto_learn_min_confidence:
            return
        # store the inferred phrase, not the whole utterance
        heard = result.applied[0]["heard"]
        correct = result.applied[0]["correct"]
        if await self.learn_correction(user_id, heard, correct):
            logger.info(f"Auto-learned correction for user {user_id}: '{heard}' -> '{correct}'")

    # -------------------------------------------------------------------------
    # Alternatives
    # -------------------------------------------------------------------------

    async def list_alternative_corrections(
        self,
        text: str,
        user_id: str,
        catalog: Optional[Sequence[CatalogEntry]] = None
    ) -> List[str]:
        """
        Every plausible corrected term for a transcript, deduplicated.

        Combines stored corrections (substring or within a few edits),
        known variant tables and catalog-name proximity. Used to drive a
        multi-term fallback search when no single correction is confident.
        """
        if not text or not text.strip():
            return []

        lowered = text.strip().lower()
        heard = normalize_text(text)
        alternatives: List[str] = []

        for record in await self.get_corrections(user_id):
            original = record.original_text.strip().lower()
            if not original:
                continue
            if original in lowered or levenshtein(lowered, original) <= MAX_EDIT_DISTANCE:
                alternatives.append(record.corrected_text)

        for variant, canonical in self.tables.all_known_variants():
            if variant and variant.lower() in lowered:
                alternatives.append(canonical)

        if catalog is None:
            catalog = await self._get_catalog(user_id)

        content = " ".join(w for w in heard.split() if w not in _ORDER_WORDS)
        heard_words = [w for w in content.split() if len(w) >= PREFIX_LENGTH]
        for entry in catalog:
            name = normalize_text(entry.name)
            if not name or not heard:
                continue
            if levenshtein(heard, name) <= MAX_EDIT_DISTANCE:
                alternatives.append(entry.name)
            elif len(content) >= PREFIX_LENGTH and name[:PREFIX_LENGTH] == content[:PREFIX_LENGTH]:
                alternatives.append(entry.name)
            elif any(
                len(pw) >= PREFIX_LENGTH and pw[:PREFIX_LENGTH] == hw[:PREFIX_LENGTH]
                for hw in heard_words
                for pw in name.split()
            ):
                alternatives.append(entry.name)

        seen = set()
        unique = []
        for alternative in alternatives:
            key = alternative.strip().lower()
            if key and key not in seen:
                seen.add(key)
                unique.append(alternative)
        return unique

    # -------------------------------------------------------------------------
    # Learning loop
    # -------------------------------------------------------------------------

    async def learn_correction(self, user_id: str, original_text: str, corrected_text: str) -> bool:
        """
        Upsert a confirmed correction and invalidate the user's cache.

        Returns:
            True when stored. Malformed pairs and repository failures
            return False.
        """
        if not user_id:
            logger.warning("Refusing to store a correction without a user")
            return False

        try:
            original, corrected = validate_correction(original_text, corrected_text)
        except CorrectionValidationError as e:
            logger.warning(f"Rejected correction for user {user_id}: {e.message}")
            return False

        async with self._lock_for(user_id):
            try:
                stored = await self.repository.upsert_correction(user_id, original, corrected)
            except Exception as e:
                logger.error(f"Failed to store correction '{original}' -> '{corrected}': {e}", exc_info=True)
                return False

            self.cache.invalidate(user_id)

        if stored:
            logger.info(f"Learned correction for user {user_id}: '{original}' -> '{corrected}'")
        return bool(stored)

    async def reject_correction(self, user_id: str, correction_id: int) -> bool:
        """
        Deactivate one of the user's corrections. Records are never deleted.

        Returns:
            False when the id is unknown or belongs to another user.
        """
        async with self._lock_for(user_id):
            try:
                deactivated = await self.repository.deactivate_correction(correction_id, user_id)
            except Exception as e:
                logger.error(f"Failed to deactivate correction {correction_id}: {e}", exc_info=True)
                return False

            self.cache.invalidate(user_id)

        if deactivated:
            logger.info(f"Deactivated correction {correction_id} for user {user_id}")
        return bool(deactivated)

    def invalidate(self, user_id: str) -> None:
        self.cache.invalidate(user_id)
