"""Availability domain schemas - Pydantic models for validation"""

from datetime import date
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ...shared.validators import validate_time_hhmm


class TimeSlotInput(BaseModel):
    """One slot to create or update, keyed by (date, start_time)"""

    date: date
    start_time: str
    end_time: str

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_time(cls, v):
        return validate_time_hhmm(v)


class TimeSlotBatchCreate(BaseModel):
    slots: list[TimeSlotInput] = Field(..., min_length=1)


class SlotBookingSummary(BaseModel):
    id: int
    status: str
    customer_name: Optional[str] = None
    vehicle: Optional[str] = None
    service_name: Optional[str] = None


class TimeSlotResponse(BaseModel):
    id: int
    shop_id: int
    date: date
    start_time: str
    end_time: str
    is_booked: bool
    booking_id: Optional[int] = None
    booking: Optional[SlotBookingSummary] = None


class TimeSlotBatchResponse(BaseModel):
    message: str
    slots: list[TimeSlotResponse]
