"""
Normalization Package

Phonetic keys and Portuguese number handling for voice transcripts.
"""

from services.voice.normalization.phonetic import (
    normalize_text,
    normalize_search_text,
    phonetic_code,
)
from services.voice.normalization.number_normalizer import (
    parse_pt_number,
    normalize_thousands_in_text,
    words_to_quantity,
    is_currency_token,
)

__all__ = [
    'normalize_text',
    'normalize_search_text',
    'phonetic_code',
    'parse_pt_number',
    'normalize_thousands_in_text',
    'words_to_quantity',
    'is_currency_token',
]
