"""Booking service - Reservation lifecycle on top of shop time slots"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...auth import get_user_shop
from ...config import LATE_CANCELLATION_HOURS
from ...enums import TERMINAL_BOOKING_STATUSES, BookingStatus, JobStatus, QuoteStatus, UserRole
from ...models import Shop, User, Vehicle
from ...models_booking import Booking, JobUpdate
from ...models_quote import Quote
from ...shared.validators import combine_date_time
from ..availability.service import AvailabilityService
from ..notifications.service import NotificationService
from ..quotes.calculator import calculate_deposit
from ..quotes.service import QuoteService
from .repository import BookingRepository
from .schemas import BookingCreate, BookingReschedule, BookingStatusUpdate, JobUpdateCreate

logger = logging.getLogger(__name__)

# Timeline entry recorded for each booking status change
JOB_STATUS_FOR_BOOKING = {
    BookingStatus.PENDING: JobStatus.SCHEDULED,
    BookingStatus.CONFIRMED: JobStatus.SCHEDULED,
    BookingStatus.IN_PROGRESS: JobStatus.IN_PROGRESS,
    BookingStatus.COMPLETED: JobStatus.COMPLETED,
    BookingStatus.CANCELLED: JobStatus.CANCELLED,
}


class BookingService:
    """Service layer for bookings"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = BookingRepository()
        self.availability = AvailabilityService(db)
        self.quotes = QuoteService(db)
        self.notifications = NotificationService(db)

    # ------------------------------------------------------------------
    # Access helpers
    # ------------------------------------------------------------------

    def _get_booking(self, booking_id: int) -> Booking:
        booking = self.repo.get_booking(self.db, booking_id)
        if not booking:
            raise HTTPException(status_code=404, detail="Booking not found")
        return booking

    @staticmethod
    def _is_owner(booking: Booking, user: User) -> bool:
        return booking.user_id == user.id

    @staticmethod
    def _is_shop_owner(booking: Booking, user: User) -> bool:
        return booking.shop is not None and booking.shop.user_id == user.id

    def _get_participant_booking(self, booking_id: int, user: User) -> Booking:
        booking = self._get_booking(booking_id)
        if not (self._is_owner(booking, user) or self._is_shop_owner(booking, user)):
            raise HTTPException(status_code=403, detail="Not authorized to update this booking")
        return booking

    @staticmethod
    def _ensure_open(booking: Booking) -> None:
        if BookingStatus(booking.status) in TERMINAL_BOOKING_STATUSES:
            raise HTTPException(status_code=409, detail=f"Booking is already {booking.status}")

    @staticmethod
    def _ensure_not_invoiced(booking: Booking, action: str) -> None:
        """An invoiced booking keeps its slot until the invoice is settled"""
        if booking.invoice is not None:
            raise HTTPException(status_code=409, detail=f"Cannot {action} a booking that has been invoiced")

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def _resolve_quote(self, quote_id: int, user: User, shop: Shop) -> Quote:
        quote = self.db.query(Quote).filter(Quote.id == quote_id).first()
        if not quote:
            raise HTTPException(status_code=404, detail="Quote not found")
        if quote.user_id != user.id:
            raise HTTPException(status_code=403, detail="Not authorized to book this quote")
        if quote.shop_id != shop.id:
            raise HTTPException(status_code=400, detail="Quote was issued by a different shop")

        existing = self.repo.booking_for_quote(self.db, quote.id)
        if existing:
            raise HTTPException(
                status_code=409, detail=f"A booking already exists for this quote (booking {existing.id})"
            )

        self.quotes.ensure_acceptable(quote, allowed=(QuoteStatus.QUOTED, QuoteStatus.ACCEPTED))
        return quote

    def create_booking(self, data: BookingCreate, user: User) -> Booking:
        """
        Create a booking and claim its slot in one transaction.

        Either both the booking row and the slot claim are committed or
        neither is: a taken or missing slot rolls the booking back.
        """
        shop = self.db.query(Shop).filter(Shop.id == data.shop_id).first()
        if not shop:
            raise HTTPException(status_code=404, detail="Shop not found")

        vehicle = self.db.query(Vehicle).filter(Vehicle.id == data.vehicle_id).first()
        if not vehicle or vehicle.user_id != user.id:
            raise HTTPException(status_code=403, detail="Invalid vehicle")

        quote: Optional[Quote] = None
        deposit = 0.0
        if data.quote_id is not None:
            quote = self._resolve_quote(data.quote_id, user, shop)
            deposit = calculate_deposit(quote.estimated_total, shop.deposit_percent)

        scheduled_date, scheduled_time = data.scheduled_date, data.scheduled_time
        if data.time_slot_id is not None:
            slot = self.availability.repo.get_slot(self.db, data.time_slot_id)
            if not slot or slot.shop_id != shop.id:
                raise HTTPException(status_code=404, detail="Time slot not found")
            scheduled_date, scheduled_time = slot.date, slot.start_time

        booking = Booking(
            user_id=user.id,
            shop_id=shop.id,
            vehicle_id=vehicle.id,
            service_id=data.service_id if data.service_id is not None else (quote.service_id if quote else None),
            quote_id=quote.id if quote else None,
            scheduled_date=scheduled_date,
            scheduled_time=scheduled_time,
            method=data.method.value,
            notes=data.notes,
            deposit_amount=deposit,
            status=BookingStatus.PENDING.value,
        )

        try:
            self.db.add(booking)
            self.db.flush()

            if data.time_slot_id is not None:
                self.availability.book_slot_by_id(data.time_slot_id, shop.id, booking.id)
            else:
                self.availability.book_slot(shop.id, scheduled_date, scheduled_time, booking.id)

            if quote is not None:
                self.quotes.apply_acceptance(quote)

            self.db.commit()
        except HTTPException:
            self.db.rollback()
            raise
        except IntegrityError as e:
            self.db.rollback()
            logger.warning(f"⚠️ Booking for shop {shop.id} on {scheduled_date} {scheduled_time} conflicted: {e.orig}")
            raise HTTPException(status_code=409, detail="This slot is already booked") from None

        self.db.refresh(booking)
        logger.info(
            f"✅ Booking {booking.id} created: user={user.id} shop={shop.id} "
            f"{booking.scheduled_date} {booking.scheduled_time} deposit={booking.deposit_amount}"
        )

        self.notifications.booking_created(shop.user_id, user.name, booking.id)
        return booking

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_bookings(self, user: User) -> list[Booking]:
        role = UserRole(user.role)
        if role == UserRole.OWNER:
            return self.repo.get_bookings_for_user(self.db, user.id)
        elif role == UserRole.SHOP:
            shop = get_user_shop(self.db, user)
            return self.repo.get_bookings_for_shop(self.db, shop.id)
        elif role == UserRole.ADMIN:
            return self.repo.get_all_bookings(self.db)
        raise HTTPException(status_code=403, detail="Unknown user role")

    def get_booking(self, booking_id: int, user: User) -> Booking:
        booking = self._get_booking(booking_id)
        if UserRole(user.role) == UserRole.ADMIN:
            return booking
        if not (self._is_owner(booking, user) or self._is_shop_owner(booking, user)):
            raise HTTPException(status_code=403, detail="Not authorized to view this booking")
        return booking

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def update_status(self, booking_id: int, data: BookingStatusUpdate, user: User) -> Booking:
        """Shops move bookings through the workflow; owners may only cancel"""
        booking = self._get_participant_booking(booking_id, user)
        acting_as_shop = self._is_shop_owner(booking, user)

        if not acting_as_shop and data.status != BookingStatus.CANCELLED:
            raise HTTPException(status_code=403, detail="Customers can only cancel bookings")

        self._ensure_open(booking)
        if data.status == BookingStatus.CANCELLED:
            self._ensure_not_invoiced(booking, "cancel")

        booking.status = data.status.value
        if data.notes is not None:
            booking.notes = data.notes

        message = f"Booking status updated to {data.status.value}"
        if data.status == BookingStatus.CANCELLED:
            self.availability.release_slot(booking.id)
            message = "Booking cancelled by " + ("shop" if acting_as_shop else "customer")

        self.repo.add_job_update(
            self.db, booking.id, JOB_STATUS_FOR_BOOKING[data.status].value, message, user.id
        )
        self.db.commit()
        self.db.refresh(booking)
        logger.info(f"📋 Booking {booking.id} → {booking.status} by user {user.id}")

        if acting_as_shop:
            if data.status == BookingStatus.CONFIRMED:
                self.notifications.booking_confirmed(booking.user_id, booking.shop.name, booking.id)
            else:
                self.notifications.booking_status_changed(booking.user_id, booking.status, booking.id)
        else:
            self.notifications.booking_cancelled(booking.shop.user_id, booking.id)

        return booking

    def cancel_booking(self, booking_id: int, user: User) -> tuple[Booking, bool]:
        """
        Owner cancellation. Returns (booking, is_late); a late cancellation
        keeps the deposit.
        """
        booking = self._get_booking(booking_id)
        if not self._is_owner(booking, user):
            raise HTTPException(status_code=403, detail="Not authorized")
        if BookingStatus(booking.status) in TERMINAL_BOOKING_STATUSES:
            raise HTTPException(status_code=409, detail="Booking cannot be cancelled")
        self._ensure_not_invoiced(booking, "cancel")

        appointment = combine_date_time(booking.scheduled_date, booking.scheduled_time)
        hours_until = (appointment - datetime.now()).total_seconds() / 3600
        is_late = hours_until < LATE_CANCELLATION_HOURS

        booking.status = BookingStatus.CANCELLED.value
        self.availability.release_slot(booking.id)
        self.repo.add_job_update(
            self.db,
            booking.id,
            JobStatus.CANCELLED.value,
            "Booking cancelled by customer" + (" (late cancellation)" if is_late else ""),
            user.id,
        )
        self.db.commit()
        self.db.refresh(booking)
        logger.info(f"🚫 Booking {booking.id} cancelled by owner ({hours_until:.1f}h before, late={is_late})")

        refund_status = "NON_REFUNDABLE" if is_late else "REFUNDED"
        self.notifications.booking_cancelled(booking.shop.user_id, booking.id, refund_status)
        return booking, is_late

    def reschedule_booking(self, booking_id: int, data: BookingReschedule, user: User) -> Booking:
        """
        Move a booking to another slot of the same shop.

        The old slot is released and the new one claimed in one transaction,
        so a missing or taken target leaves the old reservation in place.
        """
        booking = self._get_participant_booking(booking_id, user)
        self._ensure_open(booking)
        self._ensure_not_invoiced(booking, "reschedule")

        old_when = f"{booking.scheduled_date} {booking.scheduled_time}"
        new_when = f"{data.new_date} {data.new_time}"

        try:
            self.availability.release_slot(booking.id)
            self.availability.book_slot(booking.shop_id, data.new_date, data.new_time, booking.id)
        except HTTPException:
            self.db.rollback()
            logger.warning(f"⚠️ Reschedule of booking {booking_id} to {new_when} failed, keeping {old_when}")
            raise
        except IntegrityError:
            self.db.rollback()
            raise HTTPException(status_code=409, detail="Target time slot is already taken") from None

        booking.scheduled_date = data.new_date
        booking.scheduled_time = data.new_time
        booking.status = BookingStatus.CONFIRMED.value
        note = f"[RESCHEDULED] Changed from {old_when} to {new_when}"
        booking.notes = f"{booking.notes}\n\n{note}" if booking.notes else note

        self.repo.add_job_update(
            self.db, booking.id, JobStatus.SCHEDULED.value, f"Rescheduled to {new_when}", user.id
        )
        self.db.commit()
        self.db.refresh(booking)
        logger.info(f"📅 Booking {booking.id} rescheduled {old_when} → {new_when}")

        other_party = booking.user_id if self._is_shop_owner(booking, user) else booking.shop.user_id
        self.notifications.booking_rescheduled(other_party, booking.id, new_when)
        return booking

    # ------------------------------------------------------------------
    # Job timeline
    # ------------------------------------------------------------------

    def get_job_updates(self, booking_id: int, user: User) -> list[JobUpdate]:
        booking = self.get_booking(booking_id, user)
        return self.repo.get_job_updates(self.db, booking.id)

    def add_job_update(self, booking_id: int, data: JobUpdateCreate, user: User) -> JobUpdate:
        booking = self._get_booking(booking_id)
        if not self._is_shop_owner(booking, user):
            raise HTTPException(status_code=403, detail="Only the shop can post job updates")
        if booking.status == BookingStatus.CANCELLED.value:
            raise HTTPException(status_code=409, detail="Booking is CANCELLED")

        update = self.repo.add_job_update(self.db, booking.id, data.status.value, data.message, user.id)
        self.db.commit()
        self.db.refresh(update)

        self.notifications.booking_status_changed(booking.user_id, data.status.value, booking.id)
        return update
