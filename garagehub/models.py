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
from .enums import NotificationType, UserRole


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(20), default=UserRole.OWNER.value, nullable=False)  # OWNER, SHOP, ADMIN
    phone = Column(String(50), nullable=True)
    avatar_url = Column(String(500), nullable=True)
    # Presence, maintained by the realtime hub
    is_online = Column(Boolean, default=False, nullable=False)
    last_active = Column(DateTime, nullable=True)
    # Password reset: only the digest of the emailed token is kept
    reset_token_hash = Column(String(64), nullable=True, index=True)
    reset_token_expires_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    shop = relationship("Shop", back_populates="user", uselist=False)
    vehicles = relationship("Vehicle", back_populates="user", cascade="all, delete-orphan")
    notifications = relationship(
        "Notification", back_populates="user", cascade="all, delete-orphan"
    )


class Shop(Base):
    __tablename__ = "shops"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)
    name = Column(String(255), nullable=False)
    address = Column(String(500), nullable=False)
    phone = Column(String(50), nullable=True)
    description = Column(Text, nullable=True)
    image_url = Column(String(500), nullable=True)
    rating = Column(Float, default=0, nullable=False)
    review_count = Column(Integer, default=0, nullable=False)
    verified = Column(Boolean, default=False, nullable=False)
    verified_at = Column(DateTime, nullable=True)
    deposit_percent = Column(Float, default=20, nullable=False)  # Upfront share of a quote total
    created_at = Column(DateTime, server_default=func.now())

    user = relationship("User", back_populates="shop")
    time_slots = relationship("TimeSlot", back_populates="shop", cascade="all, delete-orphan")
    reviews = relationship("Review", back_populates="shop")


class Service(Base):
    """Catalogue service offered across shops"""

    __tablename__ = "services"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    category = Column(String(20), nullable=False)  # MAINTENANCE, REPAIR, DIAGNOSTIC
    description = Column(Text, nullable=True)
    duration = Column(String(50), nullable=True)  # e.g. "1-2 hours"
    warranty = Column(String(100), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    pricing = relationship("ServicePricing", back_populates="service", cascade="all, delete-orphan")


class ServicePricing(Base):
    """Price band for a service on one vehicle class"""

    __tablename__ = "service_pricing"
    __table_args__ = (UniqueConstraint("service_id", "car_type", name="uq_service_pricing_car_type"),)

    id = Column(Integer, primary_key=True, index=True)
    service_id = Column(Integer, ForeignKey("services.id"), nullable=False)
    car_type = Column(String(20), nullable=False)
    min_price = Column(Float, nullable=False)
    max_price = Column(Float, nullable=False)

    service = relationship("Service", back_populates="pricing")


class Vehicle(Base):
    __tablename__ = "vehicles"
    __table_args__ = (UniqueConstraint("user_id", "vin", name="uq_vehicle_user_vin"),)

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    vin = Column(String(17), nullable=False)
    make = Column(String(100), nullable=False)
    model = Column(String(100), nullable=False)
    year = Column(Integer, nullable=False)
    car_type = Column(String(20), nullable=False)
    license_plate = Column(String(20), nullable=True)
    trim = Column(String(100), nullable=True)
    color = Column(String(50), nullable=True)
    mileage = Column(Integer, nullable=True)
    is_primary = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    user = relationship("User", back_populates="vehicles")


class Review(Base):
    __tablename__ = "reviews"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    shop_id = Column(Integer, ForeignKey("shops.id"), nullable=False, index=True)
    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=True, unique=True)
    rating = Column(Integer, nullable=False)  # 1-5
    comment = Column(Text, nullable=True)
    images = Column(JSON, default=list)
    is_verified = Column(Boolean, default=False, nullable=False)  # Linked to a real booking
    created_at = Column(DateTime, server_default=func.now())

    user = relationship("User")
    shop = relationship("Shop", back_populates="reviews")


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    type = Column(String(20), default=NotificationType.SYSTEM.value, nullable=False)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=True)
    action_url = Column(String(500), nullable=True)
    is_read = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    user = relationship("User", back_populates="notifications")


class Conversation(Base):
    """Message thread between one vehicle owner and one shop"""

    __tablename__ = "conversations"
    __table_args__ = (UniqueConstraint("user_id", "shop_id", name="uq_conversation_user_shop"),)

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    shop_id = Column(Integer, ForeignKey("shops.id"), nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    user = relationship("User")
    shop = relationship("Shop")
    messages = relationship(
        "Message",
        back_populates="conversation",
        cascade="all, delete-orphan",
        order_by="Message.id",
    )


class Message(Base):
    __tablename__ = "messages"

    id = Column(Integer, primary_key=True, index=True)
    conversation_id = Column(Integer, ForeignKey("conversations.id"), nullable=False, index=True)
    sender_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    text = Column(Text, nullable=False)
    is_read = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    conversation = relationship("Conversation", back_populates="messages")
