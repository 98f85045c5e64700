"""
Invoice Models for Final Job Billing
"""

from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base
from .enums import InvoiceStatus


class Invoice(Base):
    """Final bill for one booking"""

    __tablename__ = "invoices"

    id = Column(Integer, primary_key=True, index=True)
    # One invoice per booking, enforced here as well as in the service
    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=False, unique=True)
    invoice_number = Column(String(50), unique=True, nullable=False, index=True)

    # Pricing (same shape as Quote)
    parts_cost_total = Column(Float, default=0, nullable=False)
    labor_cost_total = Column(Float, default=0, nullable=False)
    shop_fees = Column(Float, default=0, nullable=False)
    tax_rate = Column(Float, nullable=False)
    taxes = Column(Float, default=0, nullable=False)
    subtotal = Column(Float, nullable=False)
    total_amount = Column(Float, nullable=False)

    # Settlement
    deposit_applied = Column(Float, default=0, nullable=False)
    amount_due = Column(Float, nullable=False)
    amount_paid = Column(Float, default=0, nullable=False)

    # Percent difference from the originating quote (0 when there is none)
    variance = Column(Float, default=0, nullable=False)
    notes = Column(Text, nullable=True)

    status = Column(String(20), default=InvoiceStatus.PENDING.value, nullable=False)  # PENDING, PAID
    approved_at = Column(DateTime, nullable=True)
    paid_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    booking = relationship("Booking", back_populates="invoice")
    line_items = relationship(
        "InvoiceLineItem",
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="InvoiceLineItem.id",
    )


class InvoiceLineItem(Base):
    __tablename__ = "invoice_line_items"

    id = Column(Integer, primary_key=True, index=True)
    invoice_id = Column(Integer, ForeignKey("invoices.id"), nullable=False, index=True)
    description = Column(String(500), nullable=False)
    part_name = Column(String(255), nullable=True)
    part_cost = Column(Float, default=0, nullable=False)
    quantity = Column(Integer, default=1, nullable=False)
    labor_hours = Column(Float, default=0, nullable=False)
    labor_rate = Column(Float, default=0, nullable=False)
    subtotal = Column(Float, nullable=False)
    photo_url = Column(String(500), nullable=True)  # Evidence photo

    invoice = relationship("Invoice", back_populates="line_items")
