"""
Tests for similarity signals and the combined product scorer.
"""

from typing import Optional

import pytest

from services.voice.config import get_variant_tables
from services.voice.matching.similarity import (
    brand_override,
    levenshtein,
    partial_match_score,
    phonetic_similarity,
    text_similarity,
    word_match_stats,
    word_similarity,
)
from services.voice.matching.strategies import (
    ProductScorer,
    ScoringStrategy,
    default_strategies,
    has_verbatim_token,
    rank_candidates,
    reduce_signals,
)
from services.voice.models import CatalogEntry


class TestLevenshtein:

    def test_classic_distance(self):
        assert levenshtein("kitten", "sitting") == 3

    def test_empty_strings(self):
        assert levenshtein("", "") == 0
        assert levenshtein("", "abc") == 3
        assert levenshtein("abc", "") == 3

    @pytest.mark.parametrize("a,b", [
        ("arroz", "aroz"),
        ("tibana", "tibone"),
        ("manteiga", "mantega"),
        ("", "sal"),
    ])
    def test_symmetric(self, a, b):
        assert levenshtein(a, b) == levenshtein(b, a)


class TestTextSimilarity:

    @pytest.mark.parametrize("s", ["", "a", "arroz", "bolacha tibone"])
    def test_identity(self, s):
        assert text_similarity(s, s) == 1.0

    def test_disjoint(self):
        assert text_similarity("abc", "xyz") == 0.0

    def test_ratio(self):
        assert text_similarity("arroz", "aroz") == pytest.approx(0.8)

    def test_phonetic_similarity_uses_keys(self):
        assert phonetic_similarity("Yummy", "iumi") == 1.0
        assert 0.0 <= phonetic_similarity("arroz", "feijão") < 1.0


class TestWordSimilarity:

    def test_exact_token(self):
        stats = word_match_stats("arroz", "Arroz Premium 5kg")
        assert stats.exact_matches == 1
        assert stats.score == pytest.approx(0.8)

    def test_phonetic_token(self):
        stats = word_match_stats("aroz", "Arroz Premium")
        assert stats.exact_matches == 0
        assert stats.phonetic_matches == 1
        assert stats.score == pytest.approx(0.65)

    def test_single_letter_tokens_ignored(self):
        # nothing left to compare: falls back to whole-string similarity
        assert word_similarity("a", "a") == 1.0

    def test_range(self):
        for query, name in [("oleo palma", "Óleo de Palma 1L"), ("xyz", "Manteiga"), ("", "")]:
            assert 0.0 <= word_similarity(query, name) <= 1.0


class TestPartialAndBrand:

    def test_contained_query(self):
        assert partial_match_score("manteiga", "Manteiga Extra") == pytest.approx(0.7 + 0.3 * 8 / 14)

    def test_no_containment(self):
        assert partial_match_score("xyz", "Manteiga") == 0.0

    def test_empty_query(self):
        assert partial_match_score("", "Manteiga") == 0.0

    def test_brand_variant(self):
        brands = get_variant_tables().brands
        assert brand_override("tibana", "Bolacha Tibone", brands) == 0.95

    def test_brand_absent_from_name(self):
        brands = get_variant_tables().brands
        assert brand_override("tibana", "Arroz", brands) is None

    def test_query_not_a_variant(self):
        brands = get_variant_tables().brands
        assert brand_override("arroz", "Bolacha Tibone", brands) is None


class TestReducer:

    def test_max_of_fired_signals(self):
        breakdown = reduce_signals({"word": 0.5, "category": None, "partial": 0.7}, False)
        assert breakdown.score == pytest.approx(0.7)
        assert breakdown.best_signal == "partial"
        assert "category" not in breakdown.signals

    def test_earlier_strategy_wins_ties(self):
        breakdown = reduce_signals({"word": 0.7, "partial": 0.7}, False)
        assert breakdown.best_signal == "word"

    def test_token_bonus_is_capped(self):
        assert reduce_signals({"word": 0.9}, True).score == 1.0
        assert reduce_signals({"word": 0.5}, True).score == pytest.approx(0.7)

    def test_nothing_fired(self):
        breakdown = reduce_signals({"brand": None}, False)
        assert breakdown.score == 0.0
        assert breakdown.best_signal is None

    def test_verbatim_token_checks_category(self):
        entry = CatalogEntry(id="x", name="Coca Cola 330ml", category="Bebidas")
        assert has_verbatim_token("bebidas frescas", entry)
        assert not has_verbatim_token("sumo", entry)


class FixedStrategy(ScoringStrategy):
    name = "fixed"

    def __init__(self, value: Optional[float]):
        self.value = value

    def score(self, query, entry):
        return self.value


class TestProductScorer:

    def test_default_precedence(self):
        names = [s.name for s in default_strategies()]
        assert names == ["word", "category", "partial", "phonetic", "brand"]

    def test_strategies_in_isolation(self):
        scorer = ProductScorer([FixedStrategy(0.42)])
        entry = CatalogEntry(id="x", name="Feijão")
        assert scorer.score("massa", entry).score == pytest.approx(0.42)

    @pytest.mark.parametrize("threshold", [0.0, 0.35, 0.6, 0.9, 1.0])
    def test_rank_respects_threshold(self, catalog, threshold):
        for query in ["arroz", "tibana", "coca", "oleo", "xyz"]:
            ranked = rank_candidates(query, catalog, threshold)
            assert all(score >= threshold for _, score in ranked)
            scores = [score for _, score in ranked]
            assert scores == sorted(scores, reverse=True)

    def test_rank_finds_product(self, catalog):
        ranked = rank_candidates("arroz", catalog)
        assert ranked[0][0].name == "Arroz Premium 5kg"
        assert ranked[0][1] == 1.0

    def test_brand_override_ranks_mangled_brand(self, catalog):
        ranked = rank_candidates("tibana", catalog)
        assert ranked[0][0].name == "Bolacha Tibone"
        assert ranked[0][1] >= 0.95

    def test_empty_inputs(self, catalog):
        assert rank_candidates("", catalog) == []
        assert rank_candidates("   ", catalog) == []
        assert rank_candidates("arroz", []) == []
