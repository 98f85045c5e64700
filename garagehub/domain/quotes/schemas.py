"""Quote domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from ...config import DEFAULT_TAX_RATE


class LineItemInput(BaseModel):
    """One priced line; the subtotal is always computed server side"""

    description: str = Field(..., min_length=1, max_length=500)
    part_name: Optional[str] = None
    part_cost: float = Field(0, ge=0)
    quantity: int = Field(1, ge=1)
    labor_hours: float = Field(0, ge=0)
    labor_rate: float = Field(0, ge=0)


class LineItemResponse(BaseModel):
    id: int
    description: str
    part_name: Optional[str] = None
    part_cost: float
    quantity: int
    labor_hours: float
    labor_rate: float
    subtotal: float

    class Config:
        from_attributes = True


class QuoteRequestCreate(BaseModel):
    vehicle_id: int
    description: str = Field(..., min_length=1)
    symptoms: list[str] = []
    photos: list[str] = []
    broadcast: bool = True
    radius: int = Field(10, ge=1, le=500)
    target_shop_ids: list[int] = []

    @model_validator(mode="after")
    def check_audience(self):
        if not self.broadcast and not self.target_shop_ids:
            raise ValueError("target_shop_ids is required when broadcast is false")
        return self


class QuoteCreate(BaseModel):
    """A shop's response to a quote request"""

    line_items: list[LineItemInput] = Field(..., min_length=1)
    shop_fees: float = Field(0, ge=0)
    tax_rate: float = Field(DEFAULT_TAX_RATE, ge=0, le=1)
    confidence: float = Field(0.8, ge=0, le=1)
    guaranteed: bool = False
    guarantee_valid_days: Optional[int] = Field(None, ge=1)
    service_id: Optional[int] = None
    notes: Optional[str] = None
    valid_days: int = Field(7, ge=1, le=90)

    @field_validator("notes")
    @classmethod
    def strip_notes(cls, v):
        if v is not None:
            v = v.strip()
        return v or None


class QuoteResponse(BaseModel):
    id: int
    quote_request_id: int
    shop_id: int
    shop_name: Optional[str] = None
    shop_rating: Optional[float] = None
    shop_verified: Optional[bool] = None
    user_id: int
    vehicle_id: int
    service_id: Optional[int] = None
    line_items: list[LineItemResponse] = []
    parts_cost_total: float
    labor_cost_total: float
    shop_fees: float
    tax_rate: float
    taxes: float
    estimated_total: float
    estimated_min: float
    estimated_max: float
    confidence: float
    confidence_label: str
    guaranteed: bool
    guarantee_valid_days: Optional[int] = None
    notes: Optional[str] = None
    status: str
    expires_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


class QuoteRequestResponse(BaseModel):
    id: int
    user_id: int
    customer_name: Optional[str] = None
    vehicle_id: int
    vehicle: Optional[str] = None
    description: str
    symptoms: list[str] = []
    photos: list[str] = []
    broadcast: bool
    radius: int
    target_shop_ids: list[int] = []
    status: str
    created_at: Optional[datetime] = None
    quotes: list[QuoteResponse] = []


class QuoteComparisonEntry(BaseModel):
    rank: int
    deposit_preview: float
    quote: QuoteResponse


class QuoteComparisonResponse(BaseModel):
    request_id: int
    quotes: list[QuoteComparisonEntry]
