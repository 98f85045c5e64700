"""Invoice domain schemas"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from ...config import DEFAULT_TAX_RATE
from ..quotes.schemas import LineItemInput


class InvoiceLineItemInput(LineItemInput):
    photo_url: Optional[str] = None


class InvoiceLineItemResponse(BaseModel):
    id: int
    description: str
    part_name: Optional[str] = None
    part_cost: float
    quantity: int
    labor_hours: float
    labor_rate: float
    subtotal: float
    photo_url: Optional[str] = None

    class Config:
        from_attributes = True


class InvoiceCreate(BaseModel):
    booking_id: int
    line_items: list[InvoiceLineItemInput] = Field(..., min_length=1)
    shop_fees: float = Field(0, ge=0)
    tax_rate: float = Field(DEFAULT_TAX_RATE, ge=0, le=1)
    notes: Optional[str] = None


class InvoiceResponse(BaseModel):
    id: int
    booking_id: int
    invoice_number: str
    line_items: list[InvoiceLineItemResponse] = []
    parts_cost_total: float
    labor_cost_total: float
    shop_fees: float
    tax_rate: float
    taxes: float
    subtotal: float
    total_amount: float
    deposit_applied: float
    amount_due: float
    amount_paid: float
    quote_total: Optional[float] = None
    variance: float
    variance_over_tolerance: bool
    notes: Optional[str] = None
    status: str
    approved_at: Optional[datetime] = None
    paid_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
