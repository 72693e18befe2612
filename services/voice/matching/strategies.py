"""
Product Scoring Strategies

Combined catalog score as an explicit, ordered list of scorer strategies.

Each strategy returns an optional confidence in [0, 1]. The reducer takes
the maximum over the signals that fired, then adds a flat bonus when a
query token appears verbatim in the candidate's name or category.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from services.voice.config import VariantTables, get_variant_tables
from services.voice.matching.similarity import (
    brand_override,
    partial_match_score,
    phonetic_similarity,
    text_similarity,
    word_similarity,
)
from services.voice.models import CatalogEntry
from services.voice.normalization.phonetic import normalize_text

TOKEN_BONUS = 0.2
DEFAULT_RANK_THRESHOLD = 0.35


class ScoringStrategy(ABC):
    """
    One signal in the combined product score.

    Subclasses implement score(); returning None means the signal does not
    apply to this candidate (as opposed to 0.0, a signal that scored nothing).
    """

    name: str = "base"

    @abstractmethod
    def score(self, query: str, entry: CatalogEntry) -> Optional[float]:
        pass


class WordStrategy(ScoringStrategy):
    """Token-by-token similarity against the product name."""
    name = "word"

    def score(self, query: str, entry: CatalogEntry) -> Optional[float]:
        return word_similarity(query, entry.name)


class CategoryStrategy(ScoringStrategy):
    """Half-weight similarity against the product category."""
    name = "category"
    weight = 0.5

    def score(self, query: str, entry: CatalogEntry) -> Optional[float]:
        if not entry.category:
            return None
        return text_similarity(normalize_text(entry.category), normalize_text(query)) * self.weight


class PartialStrategy(ScoringStrategy):
    """Substring containment of the query in the name."""
    name = "partial"

    def score(self, query: str, entry: CatalogEntry) -> Optional[float]:
        return partial_match_score(query, entry.name)


class PhoneticStrategy(ScoringStrategy):
    """Whole-string phonetic similarity, discounted."""
    name = "phonetic"
    weight = 0.85

    def score(self, query: str, entry: CatalogEntry) -> Optional[float]:
        return phonetic_similarity(query, entry.name) * self.weight


class BrandStrategy(ScoringStrategy):
    """Curated brand override; fires only for known mis-heard variants."""
    name = "brand"

    def __init__(self, tables: Optional[VariantTables] = None):
        self._brands = (tables or get_variant_tables()).brands

    def score(self, query: str, entry: CatalogEntry) -> Optional[float]:
        return brand_override(query, entry.name, self._brands)


def default_strategies(tables: Optional[VariantTables] = None) -> List[ScoringStrategy]:
    """Strategies in precedence order."""
    return [
        WordStrategy(),
        CategoryStrategy(),
        PartialStrategy(),
        PhoneticStrategy(),
        BrandStrategy(tables),
    ]


@dataclass
class ScoreBreakdown:
    """Combined score plus the signals it was reduced from."""
    score: float
    signals: Dict[str, float] = field(default_factory=dict)
    best_signal: Optional[str] = None
    token_bonus: bool = False


def has_verbatim_token(query: str, entry: CatalogEntry) -> bool:
    """True when any query word appears as a word of the name or category."""
    query_tokens = set(normalize_text(query).split())
    if not query_tokens:
        return False
    candidate_tokens = set(normalize_text(entry.name).split())
    candidate_tokens.update(normalize_text(entry.category).split())
    return bool(query_tokens & candidate_tokens)


def reduce_signals(signals: Dict[str, Optional[float]], token_bonus: bool) -> ScoreBreakdown:
    """
    Single documented reducer for all strategies.

    score = max(signals that fired), +0.2 when a query token is present
    verbatim, capped at 1.0. Earlier strategies win ties.
    """
    fired = {name: value for name, value in signals.items() if value is not None}

    best_signal = None
    best = 0.0
    for name, value in fired.items():
        if best_signal is None or value > best:
            best_signal, best = name, value

    score = best + TOKEN_BONUS if token_bonus else best
    return ScoreBreakdown(
        score=min(1.0, max(0.0, score)),
        signals=fired,
        best_signal=best_signal,
        token_bonus=token_bonus,
    )


class ProductScorer:
    """
    Combined catalog scorer.

    Usage:
        scorer = ProductScorer()
        breakdown = scorer.score("arroz", entry)
        ranked = scorer.rank("arroz", catalog, threshold=0.35)
    """

    def __init__(self, strategies: Optional[Sequence[ScoringStrategy]] = None):
        self.strategies = list(strategies) if strategies is not None else default_strategies()

    def score(self, query: str, entry: CatalogEntry) -> ScoreBreakdown:
        signals = {strategy.name: strategy.score(query, entry) for strategy in self.strategies}
        return reduce_signals(signals, has_verbatim_token(query, entry))

    def rank(
        self,
        query: str,
        catalog: Sequence[CatalogEntry],
        threshold: float = DEFAULT_RANK_THRESHOLD
    ) -> List[Tuple[CatalogEntry, float]]:
        if not query or not query.strip() or not catalog:
            return []

        scored = []
        for entry in catalog:
            score = self.score(query, entry).score
            if score >= threshold:
                scored.append((entry, score))

        # stable: equal scores keep catalog order
        scored.sort(key=lambda pair: pair[1], reverse=True)
        return scored


_default_scorer: Optional[ProductScorer] = None


def get_product_scorer() -> ProductScorer:
    """Get the shared default ProductScorer."""
    global _default_scorer
    if _default_scorer is None:
        _default_scorer = ProductScorer()
    return _default_scorer


def rank_candidates(
    query: str,
    catalog: Sequence[CatalogEntry],
    threshold: float = DEFAULT_RANK_THRESHOLD
) -> List[Tuple[CatalogEntry, float]]:
    """
    Multi-result voice search.

    Args:
        query: Heard (or corrected) product text
        catalog: Catalog snapshot
        threshold: Minimum combined score to keep

    Returns:
        (entry, score) pairs with score >= threshold, best first
    """
    return get_product_scorer().rank(query, catalog, threshold)
