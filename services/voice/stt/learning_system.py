"""
Learning System

Bounded per-user log of match feedback.

Confirmations are positive reinforcement only and never create a stored
correction. A rejection that names the intended product is turned into a
correction (transcript → product name) by the pipeline.
"""

from collections import defaultdict, deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Deque, Dict, List, Optional

from config.settings import settings
from utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class FeedbackSample:
    """One confirmation or rejection of a match."""
    transcript: str
    product_id: Optional[str]
    product_name: Optional[str]
    accepted: bool
    confidence: float = 0.0
    corrected_to: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.now)


class FeedbackLog:
    """
    Keep the most recent feedback samples per user.

    Features:
    - Confirmation/rejection tracking
    - Bounded memory per user
    - Statistics for monitoring
    """

    def __init__(self, max_samples: Optional[int] = None):
        self.max_samples = max_samples or settings.FEEDBACK_LOG_SIZE
        self._samples: Dict[str, Deque[FeedbackSample]] = defaultdict(
            lambda: deque(maxlen=self.max_samples)
        )

    def record_confirmation(
        self,
        user_id: str,
        transcript: str,
        product_id: Optional[str],
        product_name: Optional[str],
        confidence: float = 0.0
    ) -> FeedbackSample:
        sample = FeedbackSample(
            transcript=transcript,
            product_id=product_id,
            product_name=product_name,
            accepted=True,
            confidence=confidence,
        )
        self._samples[user_id].append(sample)
        logger.debug(f"Confirmed '{transcript}' -> '{product_name}' for user {user_id}")
        return sample

    def record_rejection(
        self,
        user_id: str,
        transcript: str,
        product_id: Optional[str] = None,
        product_name: Optional[str] = None,
        confidence: float = 0.0,
        corrected_to: Optional[str] = None
    ) -> FeedbackSample:
        """
        Record a rejected match.

        Args:
            user_id: Owner of the feedback
            transcript: What the recognizer heard
            product_id: Product that was offered, if any
            product_name: Name of the offered product
            confidence: Confidence it was offered at
            corrected_to: Product name the user said they meant
        """
        sample = FeedbackSample(
            transcript=transcript,
            product_id=product_id,
            product_name=product_name,
            accepted=False,
            confidence=confidence,
            corrected_to=corrected_to,
        )
        self._samples[user_id].append(sample)
        logger.debug(f"Rejected '{transcript}' -> '{product_name}' for user {user_id}")
        return sample

    def get_samples(self, user_id: str) -> List[FeedbackSample]:
        return list(self._samples.get(user_id, ()))

    def get_statistics(self, user_id: str) -> Dict[str, Any]:
        samples = self.get_samples(user_id)
        confirmed = sum(1 for s in samples if s.accepted)
        return {
            "total": len(samples),
            "confirmed": confirmed,
            "rejected": len(samples) - confirmed,
            "acceptance_rate": round(confirmed / len(samples), 4) if samples else 0.0,
        }

    def clear(self, user_id: Optional[str] = None) -> None:
        if user_id is None:
            self._samples.clear()
        else:
            self._samples.pop(user_id, None)
