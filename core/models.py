"""
Database Models Module

Defines SQLAlchemy ORM models for the application.
All models inherit from Base defined in database.py.

Models:
    - SpeechCorrection: Learned per-user transcript correction
    - CatalogProduct: Per-user sellable product (read by the resolver)
"""

from sqlalchemy import Boolean, Column, DateTime, Float, Integer, String
from sqlalchemy.sql import func

from .database import Base


class SpeechCorrection(Base):
    """
    Per-user speech correction.

    Never hard-deleted: rejection sets active to False.

    Attributes:
        id: Primary key
        user_id: Owner of the correction
        original_text: What the recognizer heard (case preserved)
        corrected_text: What the user meant
        active: Whether the correction is visible to the correction store
        created_at: Creation timestamp
    """

    __tablename__ = "speech_corrections"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(64), nullable=False, index=True)
    original_text = Column(String(255), nullable=False, index=True)
    corrected_text = Column(String(255), nullable=False)
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self) -> str:
        return f"<SpeechCorrection(id={self.id}, '{self.original_text}' → '{self.corrected_text}')>"


class CatalogProduct(Base):
    """
    Sellable product owned by the inventory subsystem.

    The voice order core only reads this table.
    """

    __tablename__ = "catalog_products"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(64), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    category = Column(String(120), nullable=False, default="")
    price = Column(Float, nullable=False, default=0.0)
    stock = Column(Integer, nullable=False, default=0)
    code = Column(String(64), nullable=True)

    def __repr__(self) -> str:
        return f"<CatalogProduct(id={self.id}, name='{self.name}')>"
