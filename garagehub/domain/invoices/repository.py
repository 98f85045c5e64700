"""Invoice repository - Database operations for invoices"""

from typing import Optional

from sqlalchemy.orm import Session, joinedload, selectinload

from ...models_booking import Booking
from ...models_invoice import Invoice, InvoiceLineItem


class InvoiceRepository:
    """Repository for invoice database operations"""

    @staticmethod
    def get_invoice(db: Session, invoice_id: int) -> Optional[Invoice]:
        return (
            db.query(Invoice)
            .options(
                selectinload(Invoice.line_items),
                joinedload(Invoice.booking).joinedload(Booking.shop),
            )
            .filter(Invoice.id == invoice_id)
            .first()
        )

    @staticmethod
    def get_invoice_for_booking(db: Session, booking_id: int) -> Optional[Invoice]:
        return (
            db.query(Invoice)
            .options(selectinload(Invoice.line_items))
            .filter(Invoice.booking_id == booking_id)
            .first()
        )

    @staticmethod
    def create_invoice(db: Session, line_items: list[dict], **data) -> Invoice:
        invoice = Invoice(**data)
        invoice.line_items = [InvoiceLineItem(**item) for item in line_items]
        db.add(invoice)
        db.commit()
        db.refresh(invoice)
        return invoice

    @staticmethod
    def list_invoices(db: Session, user_id: Optional[int] = None, shop_id: Optional[int] = None) -> list[Invoice]:
        """Newest first; filter by booking owner or by shop when given"""
        query = db.query(Invoice).join(Booking, Invoice.booking_id == Booking.id)
        if user_id is not None:
            query = query.filter(Booking.user_id == user_id)
        if shop_id is not None:
            query = query.filter(Booking.shop_id == shop_id)
        return query.options(selectinload(Invoice.line_items)).order_by(Invoice.id.desc()).all()
