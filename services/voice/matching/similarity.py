"""
Similarity Signals

Edit-distance, phonetic, word-level, substring and brand-override signals.
Every similarity function returns a value in [0, 1].
"""

from dataclasses import dataclass
from typing import Dict, List, Optional

from services.voice.normalization.phonetic import normalize_text, phonetic_code

# Only best-token contributions above this count toward the word average
WORD_MATCH_FLOOR = 0.35

BRAND_OVERRIDE_SCORE = 0.95
PHONETIC_PARTIAL_SCORE = 0.65


def levenshtein(s1: str, s2: str) -> int:
    """
    Classic edit distance with a single reused row.

    Args:
        s1: First string
        s2: Second string

    Returns:
        Minimum number of insertions, deletions and substitutions
    """
    if s1 == s2:
        return 0
    if not s1:
        return len(s2)
    if not s2:
        return len(s1)

    # Keep the shorter string on the row
    if len(s1) < len(s2):
        s1, s2 = s2, s1

    previous = list(range(len(s2) + 1))
    for i, c1 in enumerate(s1, start=1):
        current = [i] + [0] * len(s2)
        for j, c2 in enumerate(s2, start=1):
            cost = 0 if c1 == c2 else 1
            current[j] = min(
                previous[j] + 1,        # deletion
                current[j - 1] + 1,     # insertion
                previous[j - 1] + cost  # substitution
            )
        previous = current

    return previous[-1]


def text_similarity(s1: str, s2: str) -> float:
    """
    Levenshtein similarity ratio: 1 - distance / longest length.

    Two empty strings are identical (1.0).
    """
    max_len = max(len(s1), len(s2))
    if max_len == 0:
        return 1.0
    return 1.0 - levenshtein(s1, s2) / max_len


def phonetic_similarity(s1: str, s2: str) -> float:
    """Levenshtein similarity between the phonetic keys of both strings."""
    return text_similarity(phonetic_code(s1), phonetic_code(s2))


def _tokens(text: str) -> List[str]:
    return [token for token in normalize_text(text).split() if len(token) > 1]


@dataclass
class WordMatchStats:
    """Per-query breakdown of word_similarity()."""
    score: float
    average: float
    exact_matches: int
    phonetic_matches: int
    query_tokens: int


def word_match_stats(query: str, candidate: str) -> WordMatchStats:
    """
    Score every query token against its best candidate token.

    Priority per candidate token: exact normalized equality (1.0, stops the
    scan), phonetic key equality (0.9), phonetic key containment either
    way (0.8), plain text similarity.
    """
    query_tokens = _tokens(query)
    candidate_tokens = _tokens(candidate)

    if not query_tokens or not candidate_tokens:
        fallback = text_similarity(normalize_text(query), normalize_text(candidate))
        return WordMatchStats(fallback, fallback, 0, 0, len(query_tokens))

    candidate_codes = [(token, phonetic_code(token)) for token in candidate_tokens]

    total_score = 0.0
    match_count = 0
    exact_matches = 0
    phonetic_matches = 0

    for q_token in query_tokens:
        q_code = phonetic_code(q_token)
        best = 0.0
        best_kind = None

        for c_token, c_code in candidate_codes:
            if q_token == c_token:
                best, best_kind = 1.0, "exact"
                break
            if q_code and q_code == c_code:
                score, kind = 0.9, "phonetic"
            elif q_code and c_code and (q_code in c_code or c_code in q_code):
                score, kind = 0.8, "phonetic"
            else:
                score, kind = text_similarity(q_token, c_token), "text"
            if score > best:
                best, best_kind = score, kind

        if best > WORD_MATCH_FLOOR:
            total_score += best
            match_count += 1
            if best_kind == "exact":
                exact_matches += 1
            elif best_kind == "phonetic":
                phonetic_matches += 1

    average = total_score / match_count if match_count else 0.0
    token_count = len(query_tokens)
    exact_bonus = (exact_matches / token_count) * 0.3
    phonetic_bonus = (phonetic_matches / token_count) * 0.2

    score = average * 0.5 + exact_bonus + phonetic_bonus
    return WordMatchStats(
        score=min(1.0, max(0.0, score)),
        average=average,
        exact_matches=exact_matches,
        phonetic_matches=phonetic_matches,
        query_tokens=token_count,
    )


def word_similarity(query: str, candidate: str) -> float:
    """Word-level similarity of a query against a candidate name."""
    return word_match_stats(query, candidate).score


def partial_match_score(query: str, candidate_name: str) -> float:
    """
    Substring signal.

    Returns:
        0.7 + 0.3 * coverage when the name contains the query,
        0.65 when the phonetic keys contain one another, else 0.0
    """
    q = normalize_text(query).strip()
    name = normalize_text(candidate_name).strip()
    if not q or not name:
        return 0.0

    if q in name:
        return 0.7 + 0.3 * (len(q) / len(name))

    q_code = phonetic_code(q)
    name_code = phonetic_code(name)
    if q_code and name_code and (q_code in name_code or name_code in q_code):
        return PHONETIC_PARTIAL_SCORE

    return 0.0


def brand_override(
    query: str,
    candidate_name: str,
    brand_variants: Dict[str, List[str]]
) -> Optional[float]:
    """
    Manual override for brands the recognizer reliably mangles.

    Args:
        query: Heard text
        candidate_name: Catalog entry name
        brand_variants: canonical brand → accepted mis-heard variants

    Returns:
        0.95 when the name carries the brand and the query is one of its
        known variants, otherwise None
    """
    q = normalize_text(query).strip()
    name = normalize_text(candidate_name)
    if not q or not name:
        return None

    for brand, variants in brand_variants.items():
        if normalize_text(brand) not in name:
            continue
        if any(q == normalize_text(variant).strip() for variant in variants):
            return BRAND_OVERRIDE_SCORE

    return None
