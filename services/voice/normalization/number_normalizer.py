"""
Number Normalizer

Portuguese number parsing for spoken prices and quantities.

Handles:
- Thousands grouping: "1.500" → 1500, "23,500" → 23500
- Decimal comma: "2,50" → 2.5
- Mixed: "1.234,56" → 1234 (values of a thousand or more drop decimals)
- Written-out thousands: "dois mil e quinhentos" → 2500
- Small number words: "duas" → 2
"""

import re
import unicodedata
from typing import List, Optional, Tuple

UNITS = {
    "zero": 0,
    "um": 1, "uma": 1,
    "dois": 2, "duas": 2,
    "tres": 3,
    "quatro": 4,
    "cinco": 5,
    "seis": 6,
    "sete": 7,
    "oito": 8,
    "nove": 9,
}

TEENS = {
    "dez": 10,
    "onze": 11,
    "doze": 12,
    "treze": 13,
    "catorze": 14, "quatorze": 14,
    "quinze": 15,
    "dezesseis": 16, "dezasseis": 16,
    "dezessete": 17, "dezassete": 17,
    "dezoito": 18,
    "dezenove": 19, "dezanove": 19,
}

TENS = {
    "vinte": 20,
    "trinta": 30,
    "quarenta": 40,
    "cinquenta": 50,
    "sessenta": 60,
    "setenta": 70,
    "oitenta": 80,
    "noventa": 90,
}

HUNDREDS = {
    "cem": 100,
    "cento": 100,
    "duzentos": 200,
    "trezentos": 300,
    "quatrocentos": 400,
    "quinhentos": 500,
    "seiscentos": 600,
    "setecentos": 700,
    "oitocentos": 800,
    "novecentos": 900,
}

# Spoken quantities accepted in orders; "um"/"uma" are articles there
QUANTITY_WORDS = {
    word: value
    for word, value in {**UNITS, **TEENS}.items()
    if value >= 2 and value <= 12
}

CURRENCY_TOKEN = re.compile(
    r"^(kz|kzs|kwanzas?|mt|metical|meticais|r\$|reais|real|aoa)$",
    re.IGNORECASE,
)

_THOUSANDS_GROUPING = re.compile(r"^\d{1,3}([., ]\d{3})+$")


def _normalize_token(token: str) -> str:
    decomposed = unicodedata.normalize("NFD", token)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch)).lower()


def is_currency_token(token: str) -> bool:
    """Check if a token names a currency (kz, kwanzas, reais, ...)."""
    return bool(CURRENCY_TOKEN.match(token.strip()))


def parse_under_thousand(tokens: List[str]) -> int:
    """
    Sum number words below a thousand, stopping at the first unknown word.

    Examples:
        >>> parse_under_thousand(["quinhentos", "e", "vinte", "e", "cinco"])
        525
    """
    total = 0
    i = 0
    while i < len(tokens):
        token = _normalize_token(tokens[i])
        if token == "e":
            i += 1
            continue

        if token in HUNDREDS:
            total += HUNDREDS[token]
        elif token in TEENS:
            total += TEENS[token]
        elif token in TENS:
            total += TENS[token]
            # "vinte e três"
            if i + 2 < len(tokens) and _normalize_token(tokens[i + 1]) == "e":
                unit = _normalize_token(tokens[i + 2])
                if unit in UNITS:
                    total += UNITS[unit]
                    i += 3
                    continue
        elif token in UNITS:
            total += UNITS[token]
        else:
            break
        i += 1

    return total


def parse_words_thousands(text: str) -> Optional[int]:
    """
    Find the largest written-out amount containing "mil".

    Up to four words before "mil" form the multiplier ("mil" alone is 1000)
    and up to five words after it form the remainder.

    Returns:
        The amount, or None when the text has no such expression
    """
    found = _largest_words_amount(text.split())
    return found[1] if found else None


def _largest_words_amount(tokens: List[str]) -> Optional[Tuple[int, int]]:
    """(index of "mil", amount) for the largest amount; the first wins ties."""
    best: Optional[Tuple[int, int]] = None

    for i, raw in enumerate(tokens):
        if _normalize_token(raw) != "mil":
            continue

        left = [t for t in tokens[max(0, i - 4):i] if _normalize_token(t) != "de"]
        multiplier = parse_under_thousand(_trailing_number_words(left)) if left else 1
        if multiplier == 0:
            multiplier = 1

        right = [
            t for t in tokens[i + 1:i + 6]
            if _normalize_token(t) != "e" and not is_currency_token(t)
        ]
        remainder = parse_under_thousand(right)

        total = multiplier * 1000 + remainder
        if best is None or total > best[1]:
            best = (i, total)

    return best


def _trailing_number_words(tokens: List[str]) -> List[str]:
    """Keep only the run of number words directly before "mil"."""
    known = set(UNITS) | set(TEENS) | set(TENS) | set(HUNDREDS) | {"e"}
    run: List[str] = []
    for token in reversed(tokens):
        if _normalize_token(token) not in known:
            break
        run.append(token)
    return list(reversed(run))


def parse_pt_number(token: str) -> Optional[float]:
    """
    Convert a numeric token to a number using Portuguese conventions.

    Args:
        token: Digits with optional "." / "," separators

    Returns:
        Parsed value, or None when the token is not numeric

    Examples:
        >>> parse_pt_number("1.500")
        1500.0
        >>> parse_pt_number("2,50")
        2.5
    """
    raw = (token or "").strip()
    if not raw or re.search(r"[a-zA-Z]", raw):
        return None

    compact = re.sub(r"\s", "", raw)
    if not re.fullmatch(r"[\d.,]+", compact) or not re.search(r"\d", compact):
        return None

    if _THOUSANDS_GROUPING.match(compact):
        return float(re.sub(r"[., ]", "", compact))

    has_comma = "," in compact
    has_dot = "." in compact

    # 1.234,56
    if has_comma and has_dot:
        last_comma = compact.rfind(",")
        int_part = re.sub(r"[.]", "", compact[:last_comma]) or "0"
        dec_part = re.sub(r"\D", "", compact[last_comma + 1:])
        value = int(int_part)
        if value >= 1000 or not dec_part:
            return float(value)
        return value + int(dec_part) / (10 ** len(dec_part))

    for separator, has_separator in ((",", has_comma), (".", has_dot)):
        if not has_separator:
            continue
        escaped = re.escape(separator)
        if re.search(rf"{escaped}\d{{3}}(?:{escaped}\d{{3}})*$", compact):
            return float(compact.replace(separator, ""))
        if re.search(rf"{escaped}\d{{1,2}}$", compact):
            int_part, dec_part = compact.rsplit(separator, 1)
            int_digits = int_part.replace(separator, "") or "0"
            value = int(int_digits)
            if value >= 1000:
                return float(value)
            return value + int(dec_part) / (10 ** len(dec_part))
        digits = compact.replace(separator, "")
        return float(digits) if digits else None

    return float(compact)


def normalize_thousands_in_text(text: str) -> str:
    """
    Rewrite thousands in a transcript as plain digits.

    1. The largest written-out expression with "mil" becomes its value.
    2. Grouped numeric tokens of a thousand or more lose their separators.

    Examples:
        >>> normalize_thousands_in_text("arroz dois mil e quinhentos kz")
        'arroz 2500 kz'
        >>> normalize_thousands_in_text("oleo de 1.500")
        'oleo de 1500'
    """
    if not text:
        return text

    result = text
    found = _largest_words_amount(result.lower().split())
    if found is not None:
        result = _replace_words_amount(result, *found)

    def _ungroup(match: re.Match) -> str:
        value = parse_pt_number(match.group(0))
        if value is not None and value >= 1000:
            return str(int(value))
        return match.group(0)

    return re.sub(r"\d[\d.,]*\d|\d", _ungroup, result)


def _replace_words_amount(text: str, mil_index: int, amount: int) -> str:
    """Replace the number-word run around the "mil" at mil_index with digits."""
    tokens = text.split()
    known = set(UNITS) | set(TEENS) | set(TENS) | set(HUNDREDS) | {"e"}

    start = mil_index
    while start > 0 and _normalize_token(tokens[start - 1]) in known:
        start -= 1
    end = mil_index + 1
    while end < len(tokens) and _normalize_token(tokens[end]) in known:
        end += 1
    # never swallow a dangling connector
    while end > mil_index + 1 and _normalize_token(tokens[end - 1]) == "e":
        end -= 1

    return " ".join(tokens[:start] + [str(amount)] + tokens[end:])


def words_to_quantity(text: str) -> str:
    """
    Convert spoken small quantities to digits, leaving other words intact.

    Examples:
        >>> words_to_quantity("duas caixas de leite")
        '2 caixas de leite'
    """
    words = text.split()
    converted = []
    for word in words:
        value = QUANTITY_WORDS.get(_normalize_token(word))
        converted.append(str(value) if value is not None else word)
    return " ".join(converted)
