"""
Phonetic Normalizer

Dialect-aware canonical keys for Portuguese (Angolan-accented) transcripts.

The key is only used for equality/substring comparison and is never shown
to users. Rules are ordered: later rules assume earlier ones already ran.
"""

import re
import unicodedata
from typing import List, Pattern, Tuple

# Outside the [a-z0-9 ] key alphabet
_SS_MARKER = "S"


# (pattern, replacement) pairs, applied in order
PHONETIC_RULES: List[Tuple[Pattern, str]] = [
    # 0. double s is held as a marker so later passes cannot voice it
    (re.compile(r"s{2,}"), _SS_MARKER),
    # 1. hard/soft c
    (re.compile(r"qu"), "k"),
    (re.compile(r"c(?=[eiéêèíì])"), "s"),
    (re.compile(r"c(?=[aouáàâãóòôõúùkq])"), "k"),
    # 2. sibilants
    (re.compile(r"(?:ç|x)(?=[ieéêèíì])"), "s"),
    (re.compile(r"ch|sh"), "x"),
    # 3. final z, voiced intervocalic s
    (re.compile(r"z\b"), "s"),
    (re.compile(r"(?<=[aeiouáéíóúâêôãõ])s(?=[aeiouáéíóúâêôãõ])"), "z"),
    # 4. nasal assimilation
    (re.compile(r"n(?=[pbmf])"), "m"),
    (re.compile(r"m(?=[tdnlr])"), "n"),
    # 5. liquids, palatals, foreign letters
    (re.compile(r"l\b"), "u"),
    (re.compile(r"lh"), "li"),
    (re.compile(r"nh"), "ni"),
    (re.compile(r"y"), "i"),
    (re.compile(r"w"), "u"),
    (re.compile(r"rr"), "r"),
    # 6. accented vowel classes
    (re.compile(r"[áàâãä]"), "a"),
    (re.compile(r"[éêèë]"), "e"),
    (re.compile(r"[íìîï]"), "i"),
    (re.compile(r"[óòôõö]"), "o"),
    (re.compile(r"[úùûü]"), "u"),
    # 7. repeated letters
    (re.compile(r"([a-z])\1+"), r"\1"),
    # 8. restore double s
    (re.compile(_SS_MARKER), "ss"),
]

# Upper bound on rule passes; keys settle after two or three in practice
MAX_PASSES = 8

_NON_KEY_CHARS = re.compile(r"[^a-z0-9 ]")
_WHITESPACE = re.compile(r"\s+")


def normalize_text(text: str) -> str:
    """
    Lowercase, strip diacritics and drop everything outside [a-z0-9 ].

    Args:
        text: Raw text

    Returns:
        Normalized text (may be empty)

    Examples:
        >>> normalize_text("Açúcar Refinado!")
        'acucar refinado'
    """
    if not text:
        return ""

    decomposed = unicodedata.normalize("NFD", text.lower())
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    stripped = _WHITESPACE.sub(" ", stripped)
    return _NON_KEY_CHARS.sub("", stripped)


def normalize_search_text(text: str) -> str:
    """
    Search-oriented normalization: punctuation becomes a word separator,
    whitespace is collapsed and the result trimmed.

    Examples:
        >>> normalize_search_text("Óleo-de  Palma")
        'oleo de palma'
    """
    if not text:
        return ""

    decomposed = unicodedata.normalize("NFD", text.lower())
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    stripped = re.sub(r"[^a-z0-9\s]", " ", stripped)
    return _WHITESPACE.sub(" ", stripped).strip()


def _apply_rules(text: str) -> str:
    result = text
    for pattern, replacement in PHONETIC_RULES:
        result = pattern.sub(replacement, result)
    return result


def phonetic_code(text: str) -> str:
    """
    Generate the phonetic key for a piece of text.

    Starts from normalize_text() and runs the ordered rule set until the
    key stops changing, so phonetic_code(phonetic_code(s)) == phonetic_code(s).

    Args:
        text: Raw text

    Returns:
        Phonetic key

    Examples:
        >>> phonetic_code("queijo")
        'keijo'
        >>> phonetic_code("casa")
        'kaza'
    """
    key = normalize_text(text)
    if not key:
        return ""

    for _ in range(MAX_PASSES):
        next_key = _apply_rules(key)
        if next_key == key:
            break
        key = next_key

    return key
