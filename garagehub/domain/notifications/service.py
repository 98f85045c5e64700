"""Notification service - Persisted in-app notifications plus realtime push"""

import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...enums import NotificationType
from ...models import Notification, User
from ...realtime import hub, user_room
from .repository import NotificationRepository

logger = logging.getLogger(__name__)


def serialize_notification(notification: Notification) -> dict:
    return {
        "id": notification.id,
        "type": notification.type,
        "title": notification.title,
        "message": notification.message,
        "action_url": notification.action_url,
        "is_read": notification.is_read,
        "created_at": notification.created_at,
    }


class NotificationService:
    """Service layer for notifications"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = NotificationRepository()

    def notify(
        self,
        user_id: int,
        type: NotificationType,
        title: str,
        message: Optional[str] = None,
        action_url: Optional[str] = None,
    ) -> Optional[Notification]:
        """
        Store a notification and push it to the user's socket room.

        Best effort: any failure is logged and None returned. Call it only
        after the business change has been committed.
        """
        try:
            notification = self.repo.create(
                self.db,
                user_id=user_id,
                type=NotificationType(type).value,
                title=title,
                message=message,
                action_url=action_url,
            )
            hub.publish(user_room(user_id), "new_notification", serialize_notification(notification))
            return notification
        except Exception as e:
            logger.error(f"❌ Failed to create notification for user {user_id}: {e}")
            self.db.rollback()
            return None

    # ------------------------------------------------------------------
    # Named notifications
    # ------------------------------------------------------------------

    def quote_requested(self, shop_user_id: int, request_id: int):
        return self.notify(
            shop_user_id,
            NotificationType.QUOTE,
            "New Quote Request",
            "A customer is asking for a quote on their vehicle.",
            f"/quotes/requests/{request_id}",
        )

    def quote_received(self, user_id: int, shop_name: str, quote_id: int):
        return self.notify(
            user_id,
            NotificationType.QUOTE,
            "New Quote Received",
            f"{shop_name} has sent you a quote for your service request.",
            f"/quotes/{quote_id}",
        )

    def quote_accepted(self, shop_user_id: int, quote_id: int):
        return self.notify(
            shop_user_id,
            NotificationType.QUOTE,
            "Quote Accepted",
            f"Your quote #{quote_id} was accepted.",
            f"/quotes/{quote_id}",
        )

    def booking_created(self, shop_user_id: int, customer_name: str, booking_id: int):
        return self.notify(
            shop_user_id,
            NotificationType.BOOKING,
            "New Booking",
            f"{customer_name} booked an appointment.",
            f"/bookings/{booking_id}",
        )

    def booking_confirmed(self, user_id: int, shop_name: str, booking_id: int):
        return self.notify(
            user_id,
            NotificationType.BOOKING,
            "Booking Confirmed",
            f"Your appointment with {shop_name} has been confirmed.",
            f"/bookings/{booking_id}",
        )

    def booking_status_changed(self, user_id: int, status: str, booking_id: int):
        return self.notify(
            user_id,
            NotificationType.BOOKING,
            "Booking Status Updated",
            f"Your booking status has been updated to: {status}",
            f"/bookings/{booking_id}",
        )

    def booking_cancelled(self, user_id: int, booking_id: int, refund_status: Optional[str] = None):
        message = f"Booking #{booking_id} has been cancelled."
        if refund_status:
            message += f" Deposit: {refund_status}."
        return self.notify(
            user_id, NotificationType.BOOKING, "Booking Cancelled", message, f"/bookings/{booking_id}"
        )

    def booking_rescheduled(self, user_id: int, booking_id: int, when: str):
        return self.notify(
            user_id,
            NotificationType.BOOKING,
            "Booking Rescheduled",
            f"Booking #{booking_id} moved to {when}.",
            f"/bookings/{booking_id}",
        )

    def invoice_ready(self, user_id: int, invoice_number: str, booking_id: int):
        return self.notify(
            user_id,
            NotificationType.PAYMENT,
            "Invoice Ready",
            f"Invoice {invoice_number} is ready for your approval.",
            f"/bookings/{booking_id}",
        )

    def payment_received(self, shop_user_id: int, amount: float):
        return self.notify(
            shop_user_id,
            NotificationType.PAYMENT,
            "Payment Received",
            f"You received a payment of ${amount:.2f}",
            "/dashboard?tab=analytics",
        )

    def new_message(self, user_id: int, sender_name: str, conversation_id: int):
        return self.notify(
            user_id,
            NotificationType.MESSAGE,
            "New Message",
            f"You have a new message from {sender_name}",
            f"/messages?conversation={conversation_id}",
        )

    def new_review(self, shop_user_id: int, rating: int):
        return self.notify(
            shop_user_id,
            NotificationType.REVIEW,
            "New Review",
            f"A customer has left you a {rating}-star review.",
            "/dashboard?tab=reviews",
        )

    def shop_verified(self, user_id: int, shop_name: str):
        return self.notify(
            user_id,
            NotificationType.SYSTEM,
            "Shop Verified",
            f"{shop_name} is now verified and visible to customers.",
            "/dashboard",
        )

    def dispute_resolved(self, user_id: int, dispute_id: int, status: str):
        return self.notify(
            user_id,
            NotificationType.DISPUTE,
            "Dispute Resolved",
            f"Dispute #{dispute_id} was closed as {status}.",
            f"/disputes/{dispute_id}",
        )

    # ------------------------------------------------------------------
    # Inbox
    # ------------------------------------------------------------------

    def list_notifications(self, user: User, unread_only: bool = False) -> tuple[list[Notification], int]:
        notifications = self.repo.list_for_user(self.db, user.id, unread_only)
        return notifications, self.repo.count_unread(self.db, user.id)

    def _get_own(self, notification_id: int, user: User) -> Notification:
        notification = self.repo.get(self.db, notification_id)
        if not notification:
            raise HTTPException(status_code=404, detail="Notification not found")
        if notification.user_id != user.id:
            raise HTTPException(status_code=403, detail="Not authorized")
        return notification

    def mark_read(self, notification_id: int, user: User) -> Notification:
        return self.repo.mark_read(self.db, self._get_own(notification_id, user))

    def mark_all_read(self, user: User) -> int:
        return self.repo.mark_all_read(self.db, user.id)

    def delete(self, notification_id: int, user: User) -> None:
        self.repo.delete(self.db, self._get_own(notification_id, user))
