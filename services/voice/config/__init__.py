"""
Voice Config Package

Variant tables for brand, dialect and mis-recognition handling.
"""

from services.voice.config.variant_tables import (
    VariantEntry,
    VariantTables,
    load_variant_tables,
    get_variant_tables,
)

__all__ = [
    'VariantEntry',
    'VariantTables',
    'load_variant_tables',
    'get_variant_tables',
]
