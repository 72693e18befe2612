"""
Matching Package

Fuzzy and phonetic similarity scoring for catalog search.
"""

from services.voice.matching.similarity import (
    levenshtein,
    text_similarity,
    phonetic_similarity,
    word_similarity,
    partial_match_score,
    brand_override,
)
from services.voice.matching.strategies import (
    ScoringStrategy,
    ProductScorer,
    ScoreBreakdown,
    default_strategies,
    reduce_signals,
    rank_candidates,
)

__all__ = [
    'levenshtein',
    'text_similarity',
    'phonetic_similarity',
    'word_similarity',
    'partial_match_score',
    'brand_override',
    'ScoringStrategy',
    'ProductScorer',
    'ScoreBreakdown',
    'default_strategies',
    'reduce_signals',
    'rank_candidates',
]
