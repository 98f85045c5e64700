"""Availability service - Slot publishing and reservation rules"""

import logging
from datetime import date, timedelta
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import Shop
from ...models_booking import TimeSlot
from ...shared.validators import time_to_minutes
from .repository import AvailabilityRepository
from .schemas import TimeSlotInput

logger = logging.getLogger(__name__)


class AvailabilityService:
    """Service layer for time slots"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = AvailabilityRepository()

    # ------------------------------------------------------------------
    # Shop-side management
    # ------------------------------------------------------------------

    def create_time_slots(self, shop: Shop, slots: list[TimeSlotInput]) -> list[TimeSlot]:
        """
        Upsert each slot by (shop, date, start_time).

        Every slot is committed on its own, so a failure part-way through
        leaves the slots before it in place.
        """
        saved = []
        for slot in slots:
            if time_to_minutes(slot.end_time) <= time_to_minutes(slot.start_time):
                logger.warning(
                    f"⚠️ Rejected slot {slot.date} {slot.start_time}-{slot.end_time} for shop {shop.id} "
                    f"after saving {len(saved)} slot(s)"
                )
                raise HTTPException(
                    status_code=400,
                    detail=f"Slot on {slot.date} must end after it starts ({slot.start_time}-{slot.end_time})",
                )
            saved.append(
                self.repo.upsert_slot(self.db, shop.id, slot.date, slot.start_time, slot.end_time)
            )

        logger.info(f"✅ Saved {len(saved)} time slot(s) for shop {shop.id}")
        return saved

    def delete_time_slot(self, slot_id: int, shop: Shop) -> None:
        slot = self.repo.get_slot(self.db, slot_id)
        if not slot:
            raise HTTPException(status_code=404, detail="Slot not found")
        if slot.shop_id != shop.id:
            raise HTTPException(status_code=403, detail="Not your shop")
        if slot.is_booked:
            raise HTTPException(status_code=409, detail="Cannot delete a booked slot")

        self.repo.delete_slot(self.db, slot)
        logger.info(f"🗑️ Deleted time slot {slot_id} for shop {shop.id}")

    # ------------------------------------------------------------------
    # Booking lifecycle hooks (caller owns the transaction)
    # ------------------------------------------------------------------

    def _claim(self, slot: TimeSlot, booking_id: int) -> TimeSlot:
        # The in-memory is_booked may be stale; the conditional UPDATE decides
        if not self.repo.claim_slot(self.db, slot.id, booking_id):
            logger.warning(f"⚠️ Slot {slot.id} is already booked, booking {booking_id} refused")
            raise HTTPException(status_code=409, detail="This slot is already booked")

        self.db.expire(slot)
        logger.info(f"📅 Slot {slot.id} claimed by booking {booking_id}")
        return slot

    def book_slot(self, shop_id: int, day: date, start_time: str, booking_id: int) -> TimeSlot:
        """Claim the slot at (shop_id, day, start_time) for booking_id"""
        slot = self.repo.get_slot_by_key(self.db, shop_id, day, start_time)
        if not slot:
            raise HTTPException(status_code=404, detail="Time slot not found")
        return self._claim(slot, booking_id)

    def book_slot_by_id(self, slot_id: int, shop_id: int, booking_id: int) -> TimeSlot:
        slot = self.repo.get_slot(self.db, slot_id)
        if not slot or slot.shop_id != shop_id:
            raise HTTPException(status_code=404, detail="Time slot not found")
        return self._claim(slot, booking_id)

    def release_slot(self, booking_id: int) -> bool:
        """Free the slot held by booking_id; nothing happens when it holds none"""
        released = self.repo.release_for_booking(self.db, booking_id)
        if released:
            logger.info(f"🔓 Released slot held by booking {booking_id}")
        return bool(released)

    # ------------------------------------------------------------------
    # Public read side
    # ------------------------------------------------------------------

    def _require_shop(self, shop_id: int) -> Shop:
        shop = self.db.query(Shop).filter(Shop.id == shop_id).first()
        if not shop:
            raise HTTPException(status_code=404, detail="Shop not found")
        return shop

    def get_shop_availability(self, shop_id: int, day: date) -> list[TimeSlot]:
        self._require_shop(shop_id)
        return self.repo.get_slots_between(self.db, shop_id, day, day + timedelta(days=1))

    def get_weekly_availability(self, shop_id: int, start_date: Optional[date] = None) -> list[TimeSlot]:
        """Seven days of slots starting at start_date (today by default)"""
        self._require_shop(shop_id)
        start = start_date or date.today()
        return self.repo.get_slots_between(self.db, shop_id, start, start + timedelta(days=7))
