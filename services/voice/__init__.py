"""
Voice Order Package

Resolution of noisy Portuguese (Angolan) transcripts into order intents
and catalog matches.
"""

# Models
from services.voice.models import (
    CatalogEntry,
    CorrectionRecord,
    CorrectionResult,
    CorrectionSource,
    MatchResult,
    ParsedItem,
    ParsedOrderItem,
)

# Normalization
from services.voice.normalization import (
    normalize_text,
    phonetic_code,
    parse_pt_number,
    normalize_thousands_in_text,
)

# Matching
from services.voice.matching import (
    levenshtein,
    text_similarity,
    phonetic_similarity,
    word_similarity,
    partial_match_score,
    brand_override,
    ProductScorer,
    rank_candidates,
)

# Persistence
from services.voice.repository import (
    VoiceOrderRepository,
    SQLVoiceOrderRepository,
    InMemoryVoiceOrderRepository,
)

# Corrections
from services.voice.stt import (
    CorrectionCache,
    CorrectionStore,
    FeedbackLog,
)

# Orders
from services.voice.orders import (
    parse_order,
    parse_item,
    resolve_best_match,
    search_with_alternatives,
    PipelineState,
    OrderResolution,
    VoiceOrderPipeline,
)

__all__ = [
    # Models
    'CatalogEntry',
    'CorrectionRecord',
    'CorrectionResult',
    'CorrectionSource',
    'MatchResult',
    'ParsedItem',
    'ParsedOrderItem',
    # Normalization
    'normalize_text',
    'phonetic_code',
    'parse_pt_number',
    'normalize_thousands_in_text',
    # Matching
    'levenshtein',
    'text_similarity',
    'phonetic_similarity',
    'word_similarity',
    'partial_match_score',
    'brand_override',
    'ProductScorer',
    'rank_candidates',
    # Persistence
    'VoiceOrderRepository',
    'SQLVoiceOrderRepository',
    'InMemoryVoiceOrderRepository',
    # Corrections
    'CorrectionCache',
    'CorrectionStore',
    'FeedbackLog',
    # Orders
    'parse_order',
    'parse_item',
    'resolve_best_match',
    'search_with_alternatives',
    'PipelineState',
    'OrderResolution',
    'VoiceOrderPipeline',
]
