"""
Order Parser

Extracts {quantity, name, price} from a corrected transcript.

    "2 pacotes de manteiga de 400 kz cada"  →  quantity=2, name="manteiga", price=400

The parser never raises: anything it cannot read stays in the name with
quantity 1 and no price.
"""

import re
from typing import List, Optional, Pattern, Tuple

from services.voice.models import ParsedItem, ParsedOrderItem
from services.voice.normalization.number_normalizer import (
    normalize_thousands_in_text,
    parse_pt_number,
    words_to_quantity,
)

BASE_CONFIDENCE = 0.5
UNIT_CONFIDENCE_BONUS = 0.2
BARE_QUANTITY_CONFIDENCE_BONUS = 0.1
PRICE_CONFIDENCE_BONUS = 0.1

_NUMBER = r"(\d+(?:[.,]\d+)*)"
_TRIGGER = r"\b(?:de|por|custa|vale)"
_CURRENCY_WORD = r"(?:reais|kwanzas|kzs|kz)"
_CURRENCY_PREFIX = r"(?:r\$|kz)"

FILLER_PATTERN = re.compile(
    r"\b(?:quero|adicionar|comprar|colocar|no carrinho|por favor|preciso|um|uma)\b"
    # "de" stays when it introduces a price
    r"|\bde\b(?!\s*(?:r\$|kz)?\s*\d)"
)

UNITS = (
    "unidades", "unidade", "un",
    "pacotes", "pacote",
    "caixas", "caixa",
    "kg", "kilos", "kilo", "quilos", "quilo",
    "litros", "litro", "l",
)

QUANTITY_WITH_UNIT = re.compile(
    rf"(\d+)\s+(?:{'|'.join(UNITS)})\b(?:\s+(?:de\s+(?!\d))?(.*))?$"
)
BARE_QUANTITY = re.compile(rf"^(\d+)\s+(?!{_CURRENCY_PREFIX}|{_CURRENCY_WORD}\b)(.+)$")
LEADING_NUMBER = re.compile(r"^(\d+)\s+(.+)$")

# Priority order: first matching pattern wins
PRICE_PATTERNS: List[Pattern] = [
    re.compile(rf"{_TRIGGER}\s+{_NUMBER}\b"),
    re.compile(rf"{_TRIGGER}\s+{_NUMBER}\s*{_CURRENCY_WORD}\b"),
    re.compile(rf"{_TRIGGER}\s+{_CURRENCY_PREFIX}\s*{_NUMBER}\b"),
    re.compile(rf"\b{_NUMBER}\s*{_CURRENCY_WORD}\b"),
    re.compile(rf"(?:{_CURRENCY_PREFIX}\s*)?\b{_NUMBER}\b"),
]

SIMPLE_FILLER_PATTERN = re.compile(
    r"\b(?:comprar|adicionar|lista|pendente|pagar|quero|gostaria de|por favor)\b"
)

SIMPLE_PRICE_PATTERNS: List[Pattern] = [
    re.compile(rf"{_TRIGGER}\s+{_NUMBER}\b"),
    re.compile(rf"{_TRIGGER}\s+{_NUMBER}\s*(?:reais|real|{_CURRENCY_WORD})\b"),
    re.compile(rf"{_TRIGGER}\s+{_CURRENCY_PREFIX}\s*{_NUMBER}\b"),
]

_CURRENCY_LEFTOVERS = re.compile(rf"\b(?:{_CURRENCY_WORD}|real|cada)\b|r\$")
_LEADING_PREPOSITION = re.compile(r"^\s*(?:de|da|do)\s+")
_INNER_PREPOSITION = re.compile(r"\s+(?:de|da|do)\s+")
_WHITESPACE = re.compile(r"\s+")


def _collapse(text: str) -> str:
    return _WHITESPACE.sub(" ", text).strip()


def _extract_price(text: str, patterns: List[Pattern]) -> Tuple[Optional[float], str]:
    """
    Find the first price pattern that yields a number.

    Returns:
        (price, text with the matched price removed); (None, text) if none
    """
    for pattern in patterns:
        for match in pattern.finditer(text):
            price = parse_pt_number(match.group(1))
            if price is None:
                continue
            remaining = text[:match.start()] + " " + text[match.end():]
            return price, _collapse(remaining)
    return None, text


def _clean_name(name: str) -> str:
    name = _CURRENCY_LEFTOVERS.sub(" ", name)
    name = _collapse(name)
    name = _LEADING_PREPOSITION.sub("", name)
    name = _INNER_PREPOSITION.sub(" ", name)
    return _collapse(name)


def parse_order(text: str) -> ParsedOrderItem:
    """
    Parse one spoken order.

    Steps:
        1. Lowercase, spoken quantities to digits, strip filler words
        2. Quantity with a unit ("2 pacotes de ..."), else a bare "2 ..."
        3. First price pattern in priority order, removed from the name
        4. A leading number left in the name becomes the quantity
        5. Leftover prepositions and currency words are dropped

    Args:
        text: Corrected transcript

    Returns:
        ParsedOrderItem with quantity >= 1 and confidence in [0, 1]
    """
    original = text or ""
    clean = words_to_quantity(original.lower())
    clean = _collapse(FILLER_PATTERN.sub(" ", clean))

    quantity = 1
    quantity_matched = False
    confidence = BASE_CONFIDENCE
    name = clean

    unit_match = QUANTITY_WITH_UNIT.search(clean)
    if unit_match:
        quantity = int(unit_match.group(1))
        name = _collapse(clean[:unit_match.start()] + " " + (unit_match.group(2) or ""))
        quantity_matched = True
        confidence += UNIT_CONFIDENCE_BONUS
    else:
        bare_match = BARE_QUANTITY.match(clean)
        if bare_match:
            quantity = int(bare_match.group(1))
            name = bare_match.group(2).strip()
            quantity_matched = True
            confidence += BARE_QUANTITY_CONFIDENCE_BONUS

    price, name = _extract_price(name, PRICE_PATTERNS)
    if price is not None:
        confidence += PRICE_CONFIDENCE_BONUS

    if not quantity_matched:
        leading = LEADING_NUMBER.match(name)
        if leading:
            quantity = int(leading.group(1))
            name = leading.group(2)

    return ParsedOrderItem(
        name=_clean_name(name),
        quantity=max(1, quantity),
        price=price,
        confidence=min(1.0, round(confidence, 4)),
        original_text=original,
    )


def parse_item(text: str) -> ParsedItem:
    """
    Simpler name/price parser without quantities.

    When no price is found, written-out thousands ("dois mil e quinhentos")
    are turned into digits and the price patterns are tried once more.
    """
    clean = _collapse(SIMPLE_FILLER_PATTERN.sub(" ", (text or "").lower()))

    price, name = _extract_price(clean, SIMPLE_PRICE_PATTERNS)
    if price is None:
        price, name = _extract_price(normalize_thousands_in_text(clean), SIMPLE_PRICE_PATTERNS)
        if price is None:
            name = clean

    return ParsedItem(name=_clean_name(name), price=price)
