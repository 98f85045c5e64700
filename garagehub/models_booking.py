"""
Booking, Time Slot and Job Progress Models
"""

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base
from .enums import BookingMethod, BookingStatus, DisputeStatus, JobStatus


class Booking(Base):
    """Reservation of exactly one TimeSlot by a vehicle owner"""

    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    shop_id = Column(Integer, ForeignKey("shops.id"), nullable=False, index=True)
    vehicle_id = Column(Integer, ForeignKey("vehicles.id"), nullable=False)
    service_id = Column(Integer, ForeignKey("services.id"), nullable=True)
    quote_id = Column(Integer, ForeignKey("quotes.id"), nullable=True, unique=True)

    # Scheduling (mirrors the claimed TimeSlot key)
    scheduled_date = Column(Date, nullable=False)
    scheduled_time = Column(String(5), nullable=False)  # HH:MM

    method = Column(String(20), default=BookingMethod.DROP_OFF.value, nullable=False)
    notes = Column(Text, nullable=True)
    deposit_amount = Column(Float, default=0, nullable=False)

    # Status workflow: PENDING → CONFIRMED → IN_PROGRESS → COMPLETED, or CANCELLED
    status = Column(String(20), default=BookingStatus.PENDING.value, nullable=False, index=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    user = relationship("User")
    shop = relationship("Shop")
    vehicle = relationship("Vehicle")
    service = relationship("Service")
    quote = relationship("Quote", back_populates="booking")
    time_slot = relationship("TimeSlot", back_populates="booking", uselist=False)
    invoice = relationship("Invoice", back_populates="booking", uselist=False)
    updates = relationship(
        "JobUpdate", back_populates="booking", cascade="all, delete-orphan", order_by="JobUpdate.id"
    )


class TimeSlot(Base):
    """Shop-owned bookable unit of time"""

    __tablename__ = "time_slots"
    __table_args__ = (
        UniqueConstraint("shop_id", "date", "start_time", name="uq_time_slot_shop_date_start"),
    )

    id = Column(Integer, primary_key=True, index=True)
    shop_id = Column(Integer, ForeignKey("shops.id"), nullable=False, index=True)
    date = Column(Date, nullable=False)
    start_time = Column(String(5), nullable=False)  # HH:MM
    end_time = Column(String(5), nullable=False)  # HH:MM

    # Only the booking lifecycle writes these two columns
    is_booked = Column(Boolean, default=False, nullable=False)
    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=True, unique=True)

    created_at = Column(DateTime, server_default=func.now())

    shop = relationship("Shop", back_populates="time_slots")
    booking = relationship("Booking", back_populates="time_slot")


class JobUpdate(Base):
    """Progress entry on a booking's job timeline"""

    __tablename__ = "job_updates"

    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=False, index=True)
    status = Column(String(20), default=JobStatus.IN_PROGRESS.value, nullable=False)
    message = Column(Text, nullable=False)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    booking = relationship("Booking", back_populates="updates")


class Dispute(Base):
    """Complaint raised by the owner about a booking, settled by an admin"""

    __tablename__ = "disputes"

    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    shop_id = Column(Integer, ForeignKey("shops.id"), nullable=False)
    reason = Column(Text, nullable=False)
    status = Column(String(20), default=DisputeStatus.OPEN.value, nullable=False, index=True)

    resolution = Column(Text, nullable=True)
    resolved_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    resolved_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    booking = relationship("Booking")
    user = relationship("User", foreign_keys=[user_id])
    shop = relationship("Shop")
