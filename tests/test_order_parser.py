"""
Tests for order parsing and catalog resolution.
"""

import pytest

from services.voice.models import CatalogEntry, ParsedOrderItem
from services.voice.orders.parser import parse_item, parse_order
from services.voice.orders.resolver import (
    resolve_best_match,
    score_entry,
    search_with_alternatives,
)


class TestParseOrder:

    def test_quantity_unit_and_price(self):
        item = parse_order("2 pacotes de manteiga de 400 kz cada")
        assert item.quantity == 2
        assert item.name == "manteiga"
        assert item.price == 400
        assert item.confidence == pytest.approx(0.8)
        assert item.original_text == "2 pacotes de manteiga de 400 kz cada"

    def test_fillers_removed(self):
        item = parse_order("Quero adicionar arroz no carrinho por favor")
        assert item.name == "arroz"
        assert item.quantity == 1
        assert item.price is None
        assert item.confidence == pytest.approx(0.5)

    def test_bare_quantity(self):
        item = parse_order("3 coca cola")
        assert item.quantity == 3
        assert item.name == "coca cola"
        assert item.confidence == pytest.approx(0.6)

    def test_spoken_quantity(self):
        item = parse_order("quero duas caixas de leite")
        assert item.quantity == 2
        assert item.name == "leite"

    def test_unit_after_name(self):
        item = parse_order("arroz 5 kg")
        assert item.quantity == 5
        assert item.name == "arroz"
        assert item.price is None

    def test_price_with_trigger(self):
        item = parse_order("óleo por 1.500")
        assert item.name == "óleo"
        assert item.price == 1500

    def test_price_with_currency_suffix(self):
        item = parse_order("sabão 250 kwanzas")
        assert item.name == "sabão"
        assert item.price == 250

    def test_price_with_currency_prefix(self):
        item = parse_order("açúcar custa kz 300")
        assert item.name == "açúcar"
        assert item.price == 300

    def test_decimal_comma_price(self):
        assert parse_order("pão de 2,50").price == pytest.approx(2.5)

    def test_leading_preposition_stripped(self):
        assert parse_order("quero do leite do campo").name == "leite campo"

    def test_quantity_at_least_one(self):
        assert parse_order("0 pacotes de sal").quantity == 1

    @pytest.mark.parametrize("text", ["", "   ", "de de de", "kz", "!!!"])
    def test_total_on_junk(self, text):
        item = parse_order(text)
        assert item.quantity >= 1
        assert 0.0 <= item.confidence <= 1.0


class TestParseItem:

    def test_simple_price(self):
        item = parse_item("comprar arroz por 500")
        assert item.name == "arroz"
        assert item.price == 500

    def test_written_out_thousands(self):
        item = parse_item("quero arroz por dois mil e quinhentos kz")
        assert item.name == "arroz"
        assert item.price == 2500

    def test_no_price(self):
        item = parse_item("gostaria de feijão")
        assert item.name == "feijão"
        assert item.price is None


def _parsed(name, price=None):
    return ParsedOrderItem(name=name, price=price)


class TestResolveBestMatch:

    def test_word_containment_branch(self, catalog):
        match = resolve_best_match(_parsed("arroz"), catalog)
        assert match.product.name == "Arroz Premium 5kg"
        assert 0.3 < match.confidence < 1.0

    def test_exact_name(self, catalog):
        match = resolve_best_match(_parsed("manteiga"), catalog)
        assert match.product.id == "2"
        assert match.confidence == 1.0

    def test_exact_code_skips_price_bonus(self, catalog):
        match = resolve_best_match(_parsed("mnt400", price=9999), catalog)
        assert match.product.id == "2"
        assert match.confidence == 1.0

    def test_empty_catalog(self):
        assert resolve_best_match(_parsed("arroz"), []) is None
        assert resolve_best_match(_parsed(""), []) is None

    def test_empty_query(self, catalog):
        assert resolve_best_match(_parsed(""), catalog) is None

    def test_no_shared_words(self, catalog):
        assert resolve_best_match(_parsed("farinha"), catalog) is None

    def test_below_threshold_rejected(self):
        catalog = [CatalogEntry(id="1", name="Leite Condensado", category="Laticínios")]
        # 1 of 4 words: 0.25
        assert resolve_best_match(_parsed("leite fresco gordo magro"), catalog) is None

    def test_never_below_threshold(self, catalog):
        for name in ["arroz", "oleo palma", "cola", "bolacha", "palma barata", "abc"]:
            match = resolve_best_match(_parsed(name), catalog)
            assert match is None or match.confidence >= 0.3

    def test_price_bonus(self):
        catalog = [
            CatalogEntry(id="1", name="Leite Gordo", price=1000.0),
            CatalogEntry(id="2", name="Leite Magro", price=500.0),
        ]
        match = resolve_best_match(_parsed("leite", price=520), catalog)
        assert match.product.id == "2"

    def test_price_bonus_bands(self):
        entry = CatalogEntry(id="1", name="Leite Gordo", price=1000.0)
        base = score_entry(_parsed("leite"), entry)
        assert score_entry(_parsed("leite", price=950), entry) == pytest.approx(base + 0.2)
        assert score_entry(_parsed("leite", price=850), entry) == pytest.approx(base + 0.1)
        assert score_entry(_parsed("leite", price=500), entry) == pytest.approx(base)

    def test_first_entry_wins_ties(self):
        catalog = [
            CatalogEntry(id="1", name="Sumo Laranja"),
            CatalogEntry(id="2", name="Sumo Manga"),
        ]
        assert resolve_best_match(_parsed("sumo"), catalog).product.id == "1"


class TestSearchWithAlternatives:

    def test_terms_weighted_by_position(self, catalog):
        ranked = search_with_alternatives(catalog, ["manteiga", "tibone"])
        names = [entry.name for entry, _ in ranked]
        assert names == ["Manteiga", "Bolacha Tibone"]

    def test_scores_add_up(self, catalog):
        ranked = dict(
            (entry.id, score)
            for entry, score in search_with_alternatives(catalog, ["bolacha", "tibone"])
        )
        # "bolacha": contains + prefix = 8; "tibone" at half weight: contains = 2.5
        assert ranked["3"] == pytest.approx(10.5)

    def test_category_and_code(self, catalog):
        ranked = dict(
            (entry.id, score)
            for entry, score in search_with_alternatives(catalog, ["bebidas", "mnt"])
        )
        assert ranked["5"] == pytest.approx(2)
        assert ranked["2"] == pytest.approx(4 * 0.5)

    def test_word_overlap(self, catalog):
        ranked = search_with_alternatives(catalog, ["palma boa"])
        assert ranked[0][0].id == "4"
        assert ranked[0][1] == pytest.approx(0.5 * 3)

    def test_empty(self, catalog):
        assert search_with_alternatives([], ["arroz"]) == []
        assert search_with_alternatives(catalog, []) == []
        assert search_with_alternatives(catalog, ["", "  "]) == []
