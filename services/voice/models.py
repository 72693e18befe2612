"""
Voice Order Models

Data classes shared by the voice order resolution pipeline.
Pure data models with no business logic.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional


@dataclass
class CorrectionRecord:
    """
    Learned mapping from a mis-recognized phrase to its intended text.

    original_text keeps the casing it was stored with and is compared
    case-insensitively. Records are never deleted, only deactivated.
    """
    id: Optional[int]
    user_id: str
    original_text: str
    corrected_text: str
    active: bool = True
    created_at: datetime = field(default_factory=datetime.now)


@dataclass(frozen=True)
class CatalogEntry:
    """Sellable product record. Read-only input owned by inventory."""
    id: str
    name: str
    category: str = ""
    price: float = 0.0
    stock: int = 0
    code: Optional[str] = None


@dataclass
class ParsedItem:
    """Name and optional price extracted by the simple parser."""
    name: str
    price: Optional[float] = None


@dataclass
class ParsedOrderItem:
    """Structured order intent for one utterance."""
    name: str
    quantity: int = 1
    price: Optional[float] = None
    confidence: float = 0.5
    original_text: str = ""


@dataclass
class MatchResult:
    """A catalog entry with the confidence it was matched at."""
    product: CatalogEntry
    confidence: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "product_id": self.product.id,
            "product_name": self.product.name,
            "confidence": round(self.confidence, 4),
        }


class CorrectionSource(str, Enum):
    """Which correction step produced a CorrectionResult."""
    EXACT = "exact"
    SUBSTRING = "substring"
    PRODUCT_INFERENCE = "product_inference"
    KNOWN_MISTAKE = "known_mistake"
    NONE = "none"


@dataclass
class CorrectionResult:
    """Outcome of running a transcript through the correction store."""
    original: str
    corrected: str
    source: CorrectionSource = CorrectionSource.NONE
    confidence: float = 0.0
    applied: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return self.corrected != self.original
