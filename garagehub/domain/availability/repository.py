"""Availability repository - Database operations for time slots"""

from datetime import date
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from ...models_booking import Booking, TimeSlot


class AvailabilityRepository:
    """Repository for time slot database operations"""

    @staticmethod
    def get_slot(db: Session, slot_id: int) -> Optional[TimeSlot]:
        return db.query(TimeSlot).filter(TimeSlot.id == slot_id).first()

    @staticmethod
    def get_slot_by_key(db: Session, shop_id: int, day: date, start_time: str) -> Optional[TimeSlot]:
        """Look a slot up by its unique (shop_id, date, start_time) key"""
        return (
            db.query(TimeSlot)
            .filter(
                TimeSlot.shop_id == shop_id,
                TimeSlot.date == day,
                TimeSlot.start_time == start_time,
            )
            .first()
        )

    @staticmethod
    def get_slot_for_booking(db: Session, booking_id: int) -> Optional[TimeSlot]:
        return db.query(TimeSlot).filter(TimeSlot.booking_id == booking_id).first()

    @staticmethod
    def upsert_slot(db: Session, shop_id: int, day: date, start_time: str, end_time: str) -> TimeSlot:
        """Insert an unbooked slot or move the end time of the existing one, then commit"""
        slot = AvailabilityRepository.get_slot_by_key(db, shop_id, day, start_time)
        if slot:
            slot.end_time = end_time
        else:
            slot = TimeSlot(
                shop_id=shop_id,
                date=day,
                start_time=start_time,
                end_time=end_time,
                is_booked=False,
            )
            db.add(slot)

        try:
            db.commit()
        except IntegrityError:
            # Another request inserted the same key first; update theirs instead
            db.rollback()
            slot = AvailabilityRepository.get_slot_by_key(db, shop_id, day, start_time)
            if slot is None:
                raise
            slot.end_time = end_time
            db.commit()

        db.refresh(slot)
        return slot

    @staticmethod
    def delete_slot(db: Session, slot: TimeSlot) -> None:
        db.delete(slot)
        db.commit()

    @staticmethod
    def claim_slot(db: Session, slot_id: int, booking_id: int) -> bool:
        """
        Atomically mark a slot booked for booking_id.

        The conditional UPDATE only matches while the slot is still free, so two
        concurrent claimers cannot both succeed. Returns False when the slot
        was taken in the meantime. Does not commit.
        """
        updated = (
            db.query(TimeSlot)
            .filter(TimeSlot.id == slot_id, TimeSlot.is_booked.is_(False))
            .update({"is_booked": True, "booking_id": booking_id}, synchronize_session=False)
        )
        return updated == 1

    @staticmethod
    def release_for_booking(db: Session, booking_id: int) -> int:
        """Free whichever slot references booking_id. Does not commit."""
        return (
            db.query(TimeSlot)
            .filter(TimeSlot.booking_id == booking_id)
            .update({"is_booked": False, "booking_id": None}, synchronize_session=False)
        )

    @staticmethod
    def get_slots_between(db: Session, shop_id: int, start: date, end: date) -> list[TimeSlot]:
        """Slots with start <= date < end, with their booking loaded"""
        return (
            db.query(TimeSlot)
            .options(
                joinedload(TimeSlot.booking).joinedload(Booking.user),
                joinedload(TimeSlot.booking).joinedload(Booking.vehicle),
                joinedload(TimeSlot.booking).joinedload(Booking.service),
            )
            .filter(TimeSlot.shop_id == shop_id, TimeSlot.date >= start, TimeSlot.date < end)
            .order_by(TimeSlot.date.asc(), TimeSlot.start_time.asc())
            .all()
        )
