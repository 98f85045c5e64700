"""
Closed value sets shared by models, schemas and authorization checks.
Stored as plain strings in the database.
"""

from enum import Enum


class UserRole(str, Enum):
    OWNER = "OWNER"
    SHOP = "SHOP"
    ADMIN = "ADMIN"


class CarType(str, Enum):
    COMPACT = "COMPACT"
    SEDAN = "SEDAN"
    SUV = "SUV"
    LUXURY = "LUXURY"
    EV = "EV"


class ServiceCategory(str, Enum):
    MAINTENANCE = "MAINTENANCE"
    REPAIR = "REPAIR"
    DIAGNOSTIC = "DIAGNOSTIC"


class QuoteRequestStatus(str, Enum):
    OPEN = "OPEN"
    CLOSED = "CLOSED"
    EXPIRED = "EXPIRED"


class QuoteStatus(str, Enum):
    PENDING = "PENDING"
    QUOTED = "QUOTED"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"
    EXPIRED = "EXPIRED"


class BookingStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


TERMINAL_BOOKING_STATUSES = {BookingStatus.COMPLETED, BookingStatus.CANCELLED}


class BookingMethod(str, Enum):
    DROP_OFF = "DROP_OFF"
    TOWING = "TOWING"
    MOBILE = "MOBILE"


class JobStatus(str, Enum):
    SCHEDULED = "SCHEDULED"
    IN_PROGRESS = "IN_PROGRESS"
    WAITING_PARTS = "WAITING_PARTS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class DisputeStatus(str, Enum):
    OPEN = "OPEN"
    UNDER_REVIEW = "UNDER_REVIEW"
    RESOLVED = "RESOLVED"
    REJECTED = "REJECTED"


class InvoiceStatus(str, Enum):
    PENDING = "PENDING"
    PAID = "PAID"


class NotificationType(str, Enum):
    BOOKING = "BOOKING"
    QUOTE = "QUOTE"
    MESSAGE = "MESSAGE"
    REVIEW = "REVIEW"
    PAYMENT = "PAYMENT"
    SYSTEM = "SYSTEM"
    DISPUTE = "DISPUTE"
