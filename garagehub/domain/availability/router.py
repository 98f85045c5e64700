"""Availability router - FastAPI endpoints for shop time slots"""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_user_shop, require_roles
from ...database import get_db
from ...enums import UserRole
from ...models import User
from ...models_booking import TimeSlot
from .schemas import (
    SlotBookingSummary,
    TimeSlotBatchCreate,
    TimeSlotBatchResponse,
    TimeSlotResponse,
)
from .service import AvailabilityService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/shops", tags=["Availability"])


def get_availability_service(db: Session = Depends(get_db)) -> AvailabilityService:
    """Dependency injection for AvailabilityService"""
    return AvailabilityService(db)


def serialize_slot(slot: TimeSlot) -> TimeSlotResponse:
    summary = None
    booking = slot.booking
    if booking is not None:
        vehicle = booking.vehicle
        summary = SlotBookingSummary(
            id=booking.id,
            status=booking.status,
            customer_name=booking.user.name if booking.user else None,
            vehicle=f"{vehicle.year} {vehicle.make} {vehicle.model}" if vehicle else None,
            service_name=booking.service.name if booking.service else None,
        )

    return TimeSlotResponse(
        id=slot.id,
        shop_id=slot.shop_id,
        date=slot.date,
        start_time=slot.start_time,
        end_time=slot.end_time,
        is_booked=slot.is_booked,
        booking_id=slot.booking_id,
        booking=summary,
    )


@router.get("/{shop_id}/availability", response_model=list[TimeSlotResponse])
async def get_shop_availability(
    shop_id: int,
    date: date = Query(..., description="Day to list (YYYY-MM-DD)"),
    service: AvailabilityService = Depends(get_availability_service),
):
    """All time slots of a shop on one day"""
    slots = service.get_shop_availability(shop_id, date)
    logger.info(f"📊 Found {len(slots)} slots for shop {shop_id} on {date}")
    return [serialize_slot(s) for s in slots]


@router.get("/{shop_id}/availability/week", response_model=list[TimeSlotResponse])
async def get_shop_weekly_availability(
    shop_id: int,
    start_date: Optional[date] = Query(None),
    service: AvailabilityService = Depends(get_availability_service),
):
    """Seven days of time slots starting at start_date (defaults to today)"""
    return [serialize_slot(s) for s in service.get_weekly_availability(shop_id, start_date)]


@router.post("/availability", response_model=TimeSlotBatchResponse, status_code=201)
async def create_time_slots(
    data: TimeSlotBatchCreate,
    current_user: User = Depends(require_roles(UserRole.SHOP)),
    service: AvailabilityService = Depends(get_availability_service),
    db: Session = Depends(get_db),
):
    """Create or update time slots for the caller's shop"""
    shop = get_user_shop(db, current_user)
    slots = service.create_time_slots(shop, data.slots)
    return TimeSlotBatchResponse(message="Slots created", slots=[serialize_slot(s) for s in slots])


@router.delete("/availability/{slot_id}")
async def delete_time_slot(
    slot_id: int,
    current_user: User = Depends(require_roles(UserRole.SHOP)),
    service: AvailabilityService = Depends(get_availability_service),
    db: Session = Depends(get_db),
):
    """Remove an unbooked time slot"""
    shop = get_user_shop(db, current_user)
    service.delete_time_slot(slot_id, shop)
    return {"message": "Slot deleted"}
