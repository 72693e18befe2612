"""
Product Resolver

Single best catalog match for a parsed order, plus the multi-term
fallback search used when no single match is good enough.
"""

from typing import Dict, List, Optional, Sequence, Tuple

from config.settings import settings
from services.voice.models import CatalogEntry, MatchResult, ParsedOrderItem
from services.voice.normalization.phonetic import normalize_search_text

MIN_QUERY_WORD_LENGTH = 3
PREFIX_BONUS = 0.2
CATEGORY_BONUS = 0.1
# Only the exact-name branch reports full confidence
MAX_FUZZY_CONFIDENCE = 0.99


def _price_bonus(requested: Optional[float], catalog_price: float) -> float:
    if not requested or not catalog_price:
        return 0.0
    ratio = abs(catalog_price - requested) / catalog_price
    if ratio < 0.1:
        return 0.2
    if ratio < 0.2:
        return 0.1
    return 0.0


def _is_exact(query: str, entry: CatalogEntry) -> bool:
    if normalize_search_text(entry.name) == query:
        return True
    return bool(entry.code) and normalize_search_text(entry.code) == query


def score_entry(parsed: ParsedOrderItem, entry: CatalogEntry) -> float:
    """
    Word-containment score of one catalog entry.

    ratio of query words (3+ letters) found in the name, +0.2 when the
    name starts with the query, +0.1 when the category contains it, and a
    price-proximity bonus when the order carries a price. Zero when no
    query word is found.
    """
    query = normalize_search_text(parsed.name)
    words = [w for w in query.split() if len(w) >= MIN_QUERY_WORD_LENGTH]
    if not words:
        return 0.0

    name = normalize_search_text(entry.name)
    matched = [w for w in words if w in name]
    if not matched:
        return 0.0

    score = len(matched) / len(words)
    if name.startswith(query):
        score += PREFIX_BONUS
    if query in normalize_search_text(entry.category):
        score += CATEGORY_BONUS
    score += _price_bonus(parsed.price, entry.price)
    return score


def resolve_best_match(
    parsed: ParsedOrderItem,
    catalog: Sequence[CatalogEntry],
    reject_threshold: Optional[float] = None
) -> Optional[MatchResult]:
    """
    Resolve a parsed order to one catalog entry.

    Args:
        parsed: Output of parse_order
        catalog: Catalog snapshot
        reject_threshold: Minimum confidence (default settings.MATCH_REJECT_THRESHOLD)

    Returns:
        MatchResult, or None when the catalog is empty or nothing scores
        at least the threshold. An exact name or code match returns 1.0
        without further scoring.
    """
    threshold = settings.MATCH_REJECT_THRESHOLD if reject_threshold is None else reject_threshold

    query = normalize_search_text(parsed.name) if parsed else ""
    if not catalog or not query:
        return None

    for entry in catalog:
        if _is_exact(query, entry):
            return MatchResult(product=entry, confidence=1.0)

    best: Optional[MatchResult] = None
    for entry in catalog:
        score = score_entry(parsed, entry)
        if score > 0 and (best is None or score > best.confidence):
            best = MatchResult(product=entry, confidence=score)

    if best is None:
        return None

    best.confidence = min(MAX_FUZZY_CONFIDENCE, best.confidence)
    if best.confidence < threshold:
        return None
    return best


def search_with_alternatives(
    catalog: Sequence[CatalogEntry],
    terms: Sequence[str]
) -> List[Tuple[CatalogEntry, float]]:
    """
    Rank catalog entries over several alternative search terms.

    Earlier terms weigh more (1, 1/2, 1/3, ...). Per term, an entry gets
    the first signal that applies: exact name/code 10, name contains 5
    (+3 when it starts with the term), category contains 2, code contains
    4, otherwise 3 x the share of term words found in name words. Scores
    add up across terms.

    Returns:
        (entry, score) pairs with a positive score, best first
    """
    if not catalog or not terms:
        return []

    normalized_terms = [normalize_search_text(term) for term in terms]
    scores: Dict[str, float] = {}
    entries: Dict[str, CatalogEntry] = {}

    for index, term in enumerate(normalized_terms):
        if not term:
            continue
        weight = 1 / (index + 1)

        for entry in catalog:
            name = normalize_search_text(entry.name)
            category = normalize_search_text(entry.category)
            code = normalize_search_text(entry.code or "")

            score = 0.0
            if name == term or code == term:
                score = 10 * weight
            elif term in name:
                score = 5 * weight
                if name.startswith(term):
                    score += 3 * weight
            elif term in category:
                score = 2 * weight
            elif code and term in code:
                score = 4 * weight
            else:
                words = [w for w in term.split() if len(w) >= MIN_QUERY_WORD_LENGTH]
                name_words = name.split()
                matched = [w for w in words if any(w in nw for nw in name_words)]
                if matched:
                    score = len(matched) / len(words) * 3 * weight

            if score > 0:
                scores[entry.id] = scores.get(entry.id, 0.0) + score
                entries.setdefault(entry.id, entry)

    ranked = [(entries[entry_id], score) for entry_id, score in scores.items()]
    ranked.sort(key=lambda pair: pair[1], reverse=True)
    return ranked
