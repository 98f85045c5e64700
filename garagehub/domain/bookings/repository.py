"""Booking repository - Database operations for bookings and job updates"""

from typing import Optional

from sqlalchemy.orm import Query, Session, joinedload

from ...models_booking import Booking, JobUpdate


class BookingRepository:
    """Repository for booking database operations"""

    @staticmethod
    def _base_query(db: Session) -> Query:
        return db.query(Booking).options(
            joinedload(Booking.user),
            joinedload(Booking.shop),
            joinedload(Booking.vehicle),
            joinedload(Booking.service),
        )

    @staticmethod
    def get_booking(db: Session, booking_id: int) -> Optional[Booking]:
        return BookingRepository._base_query(db).filter(Booking.id == booking_id).first()

    @staticmethod
    def get_bookings_for_user(db: Session, user_id: int) -> list[Booking]:
        return (
            BookingRepository._base_query(db)
            .filter(Booking.user_id == user_id)
            .order_by(Booking.scheduled_date.desc(), Booking.id.desc())
            .all()
        )

    @staticmethod
    def get_bookings_for_shop(db: Session, shop_id: int) -> list[Booking]:
        return (
            BookingRepository._base_query(db)
            .filter(Booking.shop_id == shop_id)
            .order_by(Booking.scheduled_date.desc(), Booking.id.desc())
            .all()
        )

    @staticmethod
    def get_all_bookings(db: Session) -> list[Booking]:
        return (
            BookingRepository._base_query(db)
            .order_by(Booking.scheduled_date.desc(), Booking.id.desc())
            .all()
        )

    @staticmethod
    def get_recent_bookings(db: Session, limit: int = 20) -> list[Booking]:
        return (
            BookingRepository._base_query(db)
            .order_by(Booking.created_at.desc(), Booking.id.desc())
            .limit(limit)
            .all()
        )

    @staticmethod
    def booking_for_quote(db: Session, quote_id: int) -> Optional[Booking]:
        return db.query(Booking).filter(Booking.quote_id == quote_id).first()

    @staticmethod
    def add_job_update(db: Session, booking_id: int, status: str, message: str, created_by: int) -> JobUpdate:
        """Stage a timeline entry. Does not commit."""
        update = JobUpdate(booking_id=booking_id, status=status, message=message, created_by=created_by)
        db.add(update)
        return update

    @staticmethod
    def get_job_updates(db: Session, booking_id: int) -> list[JobUpdate]:
        return (
            db.query(JobUpdate)
            .filter(JobUpdate.booking_id == booking_id)
            .order_by(JobUpdate.id.asc())
            .all()
        )
