"""
Voice Order Repository

Persistence contracts consumed by the voice order core, with a SQLAlchemy
implementation and an in-memory one for development and tests.

Upserts are check-then-insert-or-update keyed by (user_id, original_text).
Two concurrent writes for the same phrase can both insert; that narrow
duplicate is accepted instead of a transactional upsert.
"""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import replace
from datetime import datetime
from itertools import count
from typing import Dict, List, Optional

from sqlalchemy import func, select, update

from core.models import CatalogProduct, SpeechCorrection
from services.voice.models import CatalogEntry, CorrectionRecord
from utils.exceptions import PersistenceError
from utils.logging import get_logger

logger = get_logger(__name__)


class VoiceOrderRepository(ABC):
    """
    Abstract persistence collaborator.

    All repositories must implement:
    - list_active_corrections(): active corrections for one user
    - upsert_correction(): update-if-exists-else-insert
    - deactivate_correction(): soft delete
    - list_catalog(): the user's catalog snapshot
    """

    @abstractmethod
    async def list_active_corrections(self, user_id: str) -> List[CorrectionRecord]:
        pass

    @abstractmethod
    async def upsert_correction(self, user_id: str, original_text: str, corrected_text: str) -> bool:
        pass

    @abstractmethod
    async def deactivate_correction(self, correction_id: int, user_id: Optional[str] = None) -> bool:
        """Soft delete; when user_id is given only that user's record is touched."""
        pass

    @abstractmethod
    async def list_catalog(self, user_id: str) -> List[CatalogEntry]:
        pass


# =============================================================================
# SQLAlchemy Implementation
# =============================================================================

class SQLVoiceOrderRepository(VoiceOrderRepository):
    """
    Repository backed by the speech_corrections and catalog_products tables.

    Opens one session per call from the given session factory.
    Database errors surface as PersistenceError.
    """

    def __init__(self, session_factory):
        self._session_factory = session_factory

    async def list_active_corrections(self, user_id: str) -> List[CorrectionRecord]:
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(SpeechCorrection)
                    .filter(SpeechCorrection.user_id == user_id)
                    .filter(SpeechCorrection.active.is_(True))
                    .order_by(SpeechCorrection.id)
                )
                rows = result.scalars().all()
        except Exception as e:
            raise PersistenceError(str(e), operation="list_active_corrections") from e

        return [
            CorrectionRecord(
                id=row.id,
                user_id=row.user_id,
                original_text=row.original_text,
                corrected_text=row.corrected_text,
                active=row.active,
                created_at=row.created_at or datetime.now(),
            )
            for row in rows
        ]

    async def upsert_correction(self, user_id: str, original_text: str, corrected_text: str) -> bool:
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(SpeechCorrection)
                    .filter(SpeechCorrection.user_id == user_id)
                    .filter(SpeechCorrection.active.is_(True))
                    .filter(func.lower(SpeechCorrection.original_text) == original_text.lower())
                )
                existing = result.scalars().first()

                if existing:
                    existing.corrected_text = corrected_text
                    logger.info(f"Updated correction: '{original_text}' -> '{corrected_text}'")
                else:
                    session.add(SpeechCorrection(
                        user_id=user_id,
                        original_text=original_text,
                        corrected_text=corrected_text,
                        active=True,
                    ))
                    logger.info(f"Added correction: '{original_text}' -> '{corrected_text}'")

                await session.commit()
        except Exception as e:
            raise PersistenceError(str(e), operation="upsert_correction") from e

        return True

    async def deactivate_correction(self, correction_id: int, user_id: Optional[str] = None) -> bool:
        statement = update(SpeechCorrection).where(SpeechCorrection.id == correction_id)
        if user_id is not None:
            statement = statement.where(SpeechCorrection.user_id == user_id)

        try:
            async with self._session_factory() as session:
                result = await session.execute(statement.values(active=False))
                await session.commit()
        except Exception as e:
            raise PersistenceError(str(e), operation="deactivate_correction") from e

        return result.rowcount > 0

    async def list_catalog(self, user_id: str) -> List[CatalogEntry]:
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(CatalogProduct)
                    .filter(CatalogProduct.user_id == user_id)
                    .order_by(CatalogProduct.id)
                )
                rows = result.scalars().all()
        except Exception as e:
            raise PersistenceError(str(e), operation="list_catalog") from e

        return [
            CatalogEntry(
                id=str(row.id),
                name=row.name,
                category=row.category or "",
                price=row.price or 0.0,
                stock=row.stock or 0,
                code=row.code,
            )
            for row in rows
        ]


# =============================================================================
# In-Memory Implementation
# =============================================================================

class InMemoryVoiceOrderRepository(VoiceOrderRepository):
    """
    Simple in-memory repository for development/single-instance use.

    Not suitable for multi-instance deployments.
    """

    def __init__(self):
        self._corrections: Dict[int, CorrectionRecord] = {}
        self._catalogs: Dict[str, List[CatalogEntry]] = {}
        self._ids = count(1)
        self._lock = asyncio.Lock()

    async def list_active_corrections(self, user_id: str) -> List[CorrectionRecord]:
        async with self._lock:
            # copies; stored records stay private
            return [
                replace(record) for record in self._corrections.values()
                if record.user_id == user_id and record.active
            ]

    async def upsert_correction(self, user_id: str, original_text: str, corrected_text: str) -> bool:
        async with self._lock:
            for record in self._corrections.values():
                if (
                    record.user_id == user_id
                    and record.active
                    and record.original_text.lower() == original_text.lower()
                ):
                    record.corrected_text = corrected_text
                    return True

            correction_id = next(self._ids)
            self._corrections[correction_id] = CorrectionRecord(
                id=correction_id,
                user_id=user_id,
                original_text=original_text,
                corrected_text=corrected_text,
            )
            return True

    async def deactivate_correction(self, correction_id: int, user_id: Optional[str] = None) -> bool:
        async with self._lock:
            record = self._corrections.get(correction_id)
            if record is None or (user_id is not None and record.user_id != user_id):
                return False
            record.active = False
            return True

    async def list_catalog(self, user_id: str) -> List[CatalogEntry]:
        async with self._lock:
            return list(self._catalogs.get(user_id, []))

    def add_product(self, user_id: str, entry: CatalogEntry) -> None:
        """Seed a product into a user's catalog."""
        self._catalogs.setdefault(user_id, []).append(entry)

    def get_correction(self, correction_id: int) -> Optional[CorrectionRecord]:
        """Look up a correction, active or not."""
        return self._corrections.get(correction_id)
