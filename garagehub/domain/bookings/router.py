"""Booking router - FastAPI endpoints for bookings and job progress"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...auth import get_current_user, require_roles
from ...database import get_db
from ...enums import UserRole
from ...models import User
from ...models_booking import Booking
from .schemas import (
    BookingCancelResponse,
    BookingCreate,
    BookingReschedule,
    BookingResponse,
    BookingStatusUpdate,
    JobUpdateCreate,
    JobUpdateResponse,
)
from .service import BookingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/bookings", tags=["Bookings"])


def get_booking_service(db: Session = Depends(get_db)) -> BookingService:
    """Dependency injection for BookingService"""
    return BookingService(db)


def build_booking_response(booking: Booking) -> BookingResponse:
    vehicle = booking.vehicle
    return BookingResponse(
        id=booking.id,
        user_id=booking.user_id,
        customer_name=booking.user.name if booking.user else None,
        shop_id=booking.shop_id,
        shop_name=booking.shop.name if booking.shop else None,
        vehicle_id=booking.vehicle_id,
        vehicle=f"{vehicle.year} {vehicle.make} {vehicle.model}" if vehicle else None,
        service_id=booking.service_id,
        service_name=booking.service.name if booking.service else None,
        quote_id=booking.quote_id,
        time_slot_id=booking.time_slot.id if booking.time_slot else None,
        scheduled_date=booking.scheduled_date,
        scheduled_time=booking.scheduled_time,
        method=booking.method,
        notes=booking.notes,
        deposit_amount=booking.deposit_amount,
        status=booking.status,
        has_invoice=booking.invoice is not None,
        created_at=booking.created_at,
        updated_at=booking.updated_at,
    )


@router.post("", response_model=BookingResponse, status_code=201)
async def create_booking(
    data: BookingCreate,
    current_user: User = Depends(require_roles(UserRole.OWNER)),
    service: BookingService = Depends(get_booking_service),
):
    """Book a shop time slot, optionally against an accepted quote"""
    booking = service.create_booking(data, current_user)
    return build_booking_response(booking)


@router.get("", response_model=list[BookingResponse])
async def get_bookings(
    current_user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    """Owners see their bookings, shops their shop's bookings, admins everything"""
    return [build_booking_response(b) for b in service.get_bookings(current_user)]


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: int,
    current_user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    return build_booking_response(service.get_booking(booking_id, current_user))


@router.put("/{booking_id}/status", response_model=BookingResponse)
async def update_booking_status(
    booking_id: int,
    data: BookingStatusUpdate,
    current_user: User = Depends(require_roles(UserRole.OWNER, UserRole.SHOP)),
    service: BookingService = Depends(get_booking_service),
):
    booking = service.update_status(booking_id, data, current_user)
    return build_booking_response(booking)


@router.put("/{booking_id}/cancel", response_model=BookingCancelResponse)
async def cancel_booking(
    booking_id: int,
    current_user: User = Depends(require_roles(UserRole.OWNER)),
    service: BookingService = Depends(get_booking_service),
):
    """Cancel a booking; inside the late window the deposit is kept"""
    booking, is_late = service.cancel_booking(booking_id, current_user)
    return BookingCancelResponse(
        booking=build_booking_response(booking),
        refund_status="NON_REFUNDABLE" if is_late else "REFUNDED",
        message=(
            "Booking cancelled. Deposit is non-refundable due to late cancellation."
            if is_late
            else "Booking cancelled successfully. Deposit will be refunded."
        ),
    )


@router.put("/{booking_id}/reschedule", response_model=BookingResponse)
async def reschedule_booking(
    booking_id: int,
    data: BookingReschedule,
    current_user: User = Depends(require_roles(UserRole.OWNER, UserRole.SHOP)),
    service: BookingService = Depends(get_booking_service),
):
    booking = service.reschedule_booking(booking_id, data, current_user)
    return build_booking_response(booking)


@router.get("/{booking_id}/updates", response_model=list[JobUpdateResponse])
async def get_job_updates(
    booking_id: int,
    current_user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    """Job progress timeline, oldest first"""
    return service.get_job_updates(booking_id, current_user)


@router.post("/{booking_id}/updates", response_model=JobUpdateResponse, status_code=201)
async def add_job_update(
    booking_id: int,
    data: JobUpdateCreate,
    current_user: User = Depends(require_roles(UserRole.SHOP)),
    service: BookingService = Depends(get_booking_service),
):
    return service.add_job_update(booking_id, data, current_user)
