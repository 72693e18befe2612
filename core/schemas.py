from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime


class TranscriptRequest(BaseModel):
    user_id: str = Field(..., min_length=1, description="Owner of the corrections and catalog")
    transcript: str = Field("", description="Final transcript from the speech engine")


class CorrectionCreate(BaseModel):
    user_id: str = Field(..., min_length=1)
    original_text: str = Field(..., description="What the recognizer heard")
    corrected_text: str = Field(..., description="What the user meant")


class CorrectionResponse(BaseModel):
    id: Optional[int]
    user_id: str
    original_text: str
    corrected_text: str
    active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class AppliedCorrectionResponse(BaseModel):
    original: str
    corrected: str
    source: str
    confidence: float
    alternatives: List[str] = []


class ParseRequest(BaseModel):
    text: str = ""


class ParsedOrderResponse(BaseModel):
    name: str
    quantity: int
    price: Optional[float] = None
    confidence: float
    original_text: str

    class Config:
        from_attributes = True


class CandidateResponse(BaseModel):
    product_id: str
    product_name: str
    score: float


class SearchRequest(BaseModel):
    user_id: str = Field(..., min_length=1)
    query: str = ""
    threshold: Optional[float] = Field(None, ge=0.0, le=1.0)


class FeedbackRequest(BaseModel):
    user_id: str = Field(..., min_length=1)
    correct_product_name: Optional[str] = Field(
        None, description="Product the user actually meant (rejections only)"
    )


class HealthResponse(BaseModel):
    status: str
    database: str
    version: str
