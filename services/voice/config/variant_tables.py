"""
Variant Tables Configuration

Brand, dialect and known mis-recognition tables for voice orders.

Tables are loaded from a JSON document of tagged {canonical, variants[]}
entries so another locale can be swapped in through
settings.VARIANT_TABLES_PATH without code changes.
"""

import json
import re
from functools import lru_cache
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Pattern

from pydantic import BaseModel, Field

from config.settings import settings
from utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_TABLES_PATH = Path(__file__).with_name("variant_tables.json")


class VariantEntry(BaseModel):
    """One canonical term and the ways the recognizer mishears it."""
    canonical: str = Field(..., min_length=1)
    variants: List[str] = Field(default_factory=list)


class VariantTables(BaseModel):
    """All variant tables for one locale."""
    version: str = "1.0"
    locale: str = "pt-AO"
    brand_variants: List[VariantEntry] = Field(default_factory=list)
    dialect_variants: List[VariantEntry] = Field(default_factory=list)
    famous_mistakes: List[VariantEntry] = Field(default_factory=list)
    common_mistakes: List[VariantEntry] = Field(default_factory=list)

    @property
    def brands(self) -> Dict[str, List[str]]:
        """Brand override table: canonical brand → variants."""
        return _as_mapping(self.brand_variants)

    @property
    def dialects(self) -> Dict[str, List[str]]:
        """Dialect variants keyed by canonical product-family name."""
        return _as_mapping(self.dialect_variants)

    @property
    def famous_pairs(self) -> List[Tuple[str, str]]:
        """(heard, canonical) pairs checked directly against the input."""
        return [
            (variant, entry.canonical)
            for entry in self.famous_mistakes
            for variant in entry.variants
        ]

    def common_mistake_patterns(self) -> List[Tuple[Pattern, str]]:
        """Word-bounded, case-insensitive regexes for common mis-recognitions."""
        patterns = []
        for entry in self.common_mistakes:
            variants = sorted(
                (v for v in entry.variants if v.strip()),
                key=len,
                reverse=True
            )
            if not variants:
                continue
            alternation = "|".join(re.escape(v) for v in variants)
            patterns.append((re.compile(rf"\b(?:{alternation})\b", re.IGNORECASE), entry.canonical))
        return patterns

    def all_known_variants(self) -> List[Tuple[str, str]]:
        """(variant, canonical) across dialect, famous and common tables."""
        pairs = []
        for table in (self.dialect_variants, self.famous_mistakes, self.common_mistakes):
            for entry in table:
                pairs.extend((variant, entry.canonical) for variant in entry.variants)
        return pairs


def _as_mapping(entries: List[VariantEntry]) -> Dict[str, List[str]]:
    mapping: Dict[str, List[str]] = {}
    for entry in entries:
        mapping.setdefault(entry.canonical, []).extend(entry.variants)
    return mapping


def load_variant_tables(path: Optional[str] = None) -> VariantTables:
    """
    Load and validate variant tables from JSON.

    Args:
        path: JSON file path. Defaults to settings.VARIANT_TABLES_PATH,
              then the bundled tables.

    Returns:
        VariantTables. An unreadable or invalid custom file falls back to
        the bundled tables.
    """
    table_path = Path(path or settings.VARIANT_TABLES_PATH or DEFAULT_TABLES_PATH)

    try:
        with open(table_path, encoding="utf-8") as f:
            tables = VariantTables.model_validate(json.load(f))
    except Exception as e:
        if table_path == DEFAULT_TABLES_PATH:
            raise
        logger.error(f"Failed to load variant tables from {table_path}: {e} - using bundled tables")
        return load_variant_tables(str(DEFAULT_TABLES_PATH))

    logger.debug(
        f"Loaded variant tables {tables.locale} v{tables.version}: "
        f"{len(tables.brand_variants)} brands, {len(tables.dialect_variants)} dialect families"
    )
    return tables


@lru_cache()
def get_variant_tables() -> VariantTables:
    """Get the cached default variant tables."""
    return load_variant_tables()
