"""Booking domain schemas - Pydantic models for validation"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from ...enums import BookingMethod, BookingStatus, JobStatus
from ...shared.validators import validate_time_hhmm


class BookingCreate(BaseModel):
    """
    A reservation request. The slot is addressed either by time_slot_id or
    by scheduled_date + scheduled_time.
    """

    shop_id: int
    vehicle_id: int
    service_id: Optional[int] = None
    quote_id: Optional[int] = None
    time_slot_id: Optional[int] = None
    scheduled_date: Optional[date] = None
    scheduled_time: Optional[str] = None
    method: BookingMethod = BookingMethod.DROP_OFF
    notes: Optional[str] = None

    @field_validator("scheduled_time")
    @classmethod
    def validate_time(cls, v):
        if v is not None:
            return validate_time_hhmm(v)
        return v

    @model_validator(mode="after")
    def check_slot_reference(self):
        if self.time_slot_id is None and (self.scheduled_date is None or self.scheduled_time is None):
            raise ValueError("Provide time_slot_id or both scheduled_date and scheduled_time")
        return self


class BookingStatusUpdate(BaseModel):
    status: BookingStatus
    notes: Optional[str] = None


class BookingReschedule(BaseModel):
    new_date: date
    new_time: str

    @field_validator("new_time")
    @classmethod
    def validate_time(cls, v):
        return validate_time_hhmm(v)


class JobUpdateCreate(BaseModel):
    status: JobStatus = JobStatus.IN_PROGRESS
    message: str = Field(..., min_length=1)

    @field_validator("status")
    @classmethod
    def no_manual_cancellation(cls, v: JobStatus) -> JobStatus:
        if v == JobStatus.CANCELLED:
            raise ValueError("Cancel the booking instead of posting a CANCELLED update")
        return v


class JobUpdateResponse(BaseModel):
    id: int
    booking_id: int
    status: str
    message: str
    created_by: int
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class BookingResponse(BaseModel):
    id: int
    user_id: int
    customer_name: Optional[str] = None
    shop_id: int
    shop_name: Optional[str] = None
    vehicle_id: int
    vehicle: Optional[str] = None
    service_id: Optional[int] = None
    service_name: Optional[str] = None
    quote_id: Optional[int] = None
    time_slot_id: Optional[int] = None
    scheduled_date: date
    scheduled_time: str
    method: str
    notes: Optional[str] = None
    deposit_amount: float
    status: str
    has_invoice: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class BookingCancelResponse(BaseModel):
    booking: BookingResponse
    refund_status: str  # REFUNDED or NON_REFUNDABLE
    message: str
