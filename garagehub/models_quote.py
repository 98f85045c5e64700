"""
Quote Request and Quote Models for the Quoting Marketplace
"""

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
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
from .enums import QuoteRequestStatus, QuoteStatus


class QuoteRequest(Base):
    """An owner's ask for quotes on a vehicle problem"""

    __tablename__ = "quote_requests"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    vehicle_id = Column(Integer, ForeignKey("vehicles.id"), nullable=False)
    description = Column(Text, nullable=False)
    symptoms = Column(JSON, default=list)
    photos = Column(JSON, default=list)  # URLs of previously uploaded photos

    # Visibility: every shop when broadcast, otherwise only target_shop_ids
    broadcast = Column(Boolean, default=True, nullable=False)
    radius = Column(Integer, default=10, nullable=False)  # miles
    target_shop_ids = Column(JSON, default=list)

    status = Column(String(20), default=QuoteRequestStatus.OPEN.value, nullable=False, index=True)
    created_at = Column(DateTime, server_default=func.now())

    user = relationship("User")
    vehicle = relationship("Vehicle")
    quotes = relationship("Quote", back_populates="request", order_by="Quote.id")


class Quote(Base):
    """A shop's priced offer against one QuoteRequest"""

    __tablename__ = "quotes"
    __table_args__ = (UniqueConstraint("quote_request_id", "shop_id", name="uq_quote_request_shop"),)

    id = Column(Integer, primary_key=True, index=True)
    quote_request_id = Column(Integer, ForeignKey("quote_requests.id"), nullable=False, index=True)
    shop_id = Column(Integer, ForeignKey("shops.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)  # Requesting owner
    vehicle_id = Column(Integer, ForeignKey("vehicles.id"), nullable=False)
    service_id = Column(Integer, ForeignKey("services.id"), nullable=True)

    # Totals are always derived from line items, never written by clients
    parts_cost_total = Column(Float, default=0, nullable=False)
    labor_cost_total = Column(Float, default=0, nullable=False)
    shop_fees = Column(Float, default=0, nullable=False)
    tax_rate = Column(Float, nullable=False)
    taxes = Column(Float, default=0, nullable=False)
    estimated_total = Column(Float, nullable=False)
    estimated_min = Column(Float, nullable=False)
    estimated_max = Column(Float, nullable=False)

    confidence = Column(Float, nullable=False)  # 0-1
    guaranteed = Column(Boolean, default=False, nullable=False)
    guarantee_valid_days = Column(Integer, nullable=True)
    notes = Column(Text, nullable=True)

    status = Column(String(20), default=QuoteStatus.QUOTED.value, nullable=False, index=True)
    expires_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    request = relationship("QuoteRequest", back_populates="quotes")
    shop = relationship("Shop")
    line_items = relationship(
        "QuoteLineItem", back_populates="quote", cascade="all, delete-orphan", order_by="QuoteLineItem.id"
    )
    booking = relationship("Booking", back_populates="quote", uselist=False)


class QuoteLineItem(Base):
    __tablename__ = "quote_line_items"

    id = Column(Integer, primary_key=True, index=True)
    quote_id = Column(Integer, ForeignKey("quotes.id"), nullable=False, index=True)
    description = Column(String(500), nullable=False)
    part_name = Column(String(255), nullable=True)
    part_cost = Column(Float, default=0, nullable=False)
    quantity = Column(Integer, default=1, nullable=False)
    labor_hours = Column(Float, default=0, nullable=False)
    labor_rate = Column(Float, default=0, nullable=False)
    subtotal = Column(Float, nullable=False)

    quote = relationship("Quote", back_populates="line_items")
