"""Invoice service - Final billing and owner approval"""

import logging
import time
from datetime import datetime

from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...auth import get_user_shop
from ...enums import BookingStatus, InvoiceStatus, UserRole
from ...models import User
from ...models_booking import Booking
from ...models_invoice import Invoice
from ..availability.repository import AvailabilityRepository
from ..notifications.service import NotificationService
from ..quotes.calculator import (
    calculate_line_item_subtotal,
    calculate_totals,
    calculate_variance,
    round_money,
)
from .repository import InvoiceRepository
from .schemas import InvoiceCreate

logger = logging.getLogger(__name__)


def generate_invoice_number(booking_id: int) -> str:
    return f"INV-{int(time.time() * 1000)}-{booking_id}"


class InvoiceService:
    """Service layer for invoices"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = InvoiceRepository()
        self.notifications = NotificationService(db)

    def create_invoice(self, data: InvoiceCreate, user: User) -> Invoice:
        """Bill a booking from its final line items; one invoice per booking"""
        shop = get_user_shop(self.db, user)

        booking = self.db.query(Booking).filter(Booking.id == data.booking_id).first()
        if not booking:
            raise HTTPException(status_code=404, detail="Booking not found")
        if booking.shop_id != shop.id:
            raise HTTPException(status_code=403, detail="Not authorized to create invoice for this booking")
        if booking.status == BookingStatus.CANCELLED.value:
            raise HTTPException(status_code=409, detail="Cannot invoice a cancelled booking")
        if AvailabilityRepository.get_slot_for_booking(self.db, booking.id) is None:
            raise HTTPException(status_code=409, detail="Booking does not hold a time slot")
        if self.repo.get_invoice_for_booking(self.db, booking.id):
            raise HTTPException(status_code=409, detail="Invoice already exists for this booking")

        items = [item.model_dump() for item in data.line_items]
        for item in items:
            item["subtotal"] = calculate_line_item_subtotal(item)

        totals = calculate_totals(items, data.shop_fees, data.tax_rate)
        deposit_applied = booking.deposit_amount or 0
        quote_total = booking.quote.estimated_total if booking.quote else 0

        try:
            invoice = self.repo.create_invoice(
                self.db,
                items,
                booking_id=booking.id,
                invoice_number=generate_invoice_number(booking.id),
                parts_cost_total=totals["parts_cost_total"],
                labor_cost_total=totals["labor_cost_total"],
                shop_fees=data.shop_fees,
                tax_rate=data.tax_rate,
                taxes=totals["taxes"],
                subtotal=totals["subtotal"],
                total_amount=totals["total"],
                deposit_applied=deposit_applied,
                amount_due=round_money(totals["total"] - deposit_applied),
                amount_paid=0,
                variance=calculate_variance(quote_total, totals["total"]),
                notes=data.notes,
                status=InvoiceStatus.PENDING.value,
            )
        except IntegrityError:
            self.db.rollback()
            raise HTTPException(status_code=409, detail="Invoice already exists for this booking") from None

        logger.info(
            f"🧾 Invoice {invoice.invoice_number} for booking {booking.id}: "
            f"total={invoice.total_amount} due={invoice.amount_due} variance={invoice.variance}%"
        )
        self.notifications.invoice_ready(booking.user_id, invoice.invoice_number, booking.id)
        return invoice

    def get_invoices(self, user: User) -> list[Invoice]:
        role = UserRole(user.role)
        if role == UserRole.OWNER:
            return self.repo.list_invoices(self.db, user_id=user.id)
        elif role == UserRole.SHOP:
            shop = get_user_shop(self.db, user)
            return self.repo.list_invoices(self.db, shop_id=shop.id)
        elif role == UserRole.ADMIN:
            return self.repo.list_invoices(self.db)
        raise HTTPException(status_code=403, detail="Unknown user role")

    def get_invoice_for_booking(self, booking_id: int, user: User) -> Invoice:
        booking = self.db.query(Booking).filter(Booking.id == booking_id).first()
        if not booking:
            raise HTTPException(status_code=404, detail="Booking not found")

        is_owner = booking.user_id == user.id
        is_shop = booking.shop is not None and booking.shop.user_id == user.id
        if not (is_owner or is_shop or UserRole(user.role) == UserRole.ADMIN):
            raise HTTPException(status_code=403, detail="Not authorized to view this invoice")

        invoice = self.repo.get_invoice_for_booking(self.db, booking.id)
        if not invoice:
            raise HTTPException(status_code=404, detail="Invoice not found")
        return invoice

    def approve_invoice(self, invoice_id: int, user: User) -> Invoice:
        """Owner approval settles the amount due and completes the booking"""
        invoice = self.repo.get_invoice(self.db, invoice_id)
        if not invoice:
            raise HTTPException(status_code=404, detail="Invoice not found")

        booking = invoice.booking
        if booking.user_id != user.id:
            raise HTTPException(status_code=403, detail="Not authorized to approve this invoice")
        if invoice.status == InvoiceStatus.PAID.value:
            raise HTTPException(status_code=409, detail="Invoice already approved and paid")
        if booking.status == BookingStatus.CANCELLED.value:
            raise HTTPException(status_code=409, detail="Booking was cancelled; invoice cannot be approved")

        now = datetime.utcnow()
        invoice.status = InvoiceStatus.PAID.value
        invoice.amount_paid = invoice.amount_due
        invoice.approved_at = now
        invoice.paid_at = now
        booking.status = BookingStatus.COMPLETED.value
        self.db.commit()
        self.db.refresh(invoice)

        logger.info(f"💰 Invoice {invoice.invoice_number} paid: {invoice.amount_paid}; booking {booking.id} COMPLETED")
        self.notifications.payment_received(booking.shop.user_id, invoice.amount_paid)
        return invoice
