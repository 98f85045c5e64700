"""Invoice router - FastAPI endpoints for final billing"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...auth import get_current_user, require_roles
from ...database import get_db
from ...enums import UserRole
from ...models import User
from ...models_invoice import Invoice
from ..quotes.calculator import is_variance_over_tolerance
from .schemas import InvoiceCreate, InvoiceLineItemResponse, InvoiceResponse
from .service import InvoiceService

router = APIRouter(prefix="/invoices", tags=["Invoices"])


def get_invoice_service(db: Session = Depends(get_db)) -> InvoiceService:
    """Dependency injection for InvoiceService"""
    return InvoiceService(db)


def build_invoice_response(invoice: Invoice) -> InvoiceResponse:
    quote = invoice.booking.quote if invoice.booking else None
    return InvoiceResponse(
        id=invoice.id,
        booking_id=invoice.booking_id,
        invoice_number=invoice.invoice_number,
        line_items=[InvoiceLineItemResponse.model_validate(item) for item in invoice.line_items],
        parts_cost_total=invoice.parts_cost_total,
        labor_cost_total=invoice.labor_cost_total,
        shop_fees=invoice.shop_fees,
        tax_rate=invoice.tax_rate,
        taxes=invoice.taxes,
        subtotal=invoice.subtotal,
        total_amount=invoice.total_amount,
        deposit_applied=invoice.deposit_applied,
        amount_due=invoice.amount_due,
        amount_paid=invoice.amount_paid,
        quote_total=quote.estimated_total if quote else None,
        variance=invoice.variance,
        variance_over_tolerance=is_variance_over_tolerance(invoice.variance),
        notes=invoice.notes,
        status=invoice.status,
        approved_at=invoice.approved_at,
        paid_at=invoice.paid_at,
        created_at=invoice.created_at,
    )


@router.post("", response_model=InvoiceResponse, status_code=201)
async def create_invoice(
    data: InvoiceCreate,
    current_user: User = Depends(require_roles(UserRole.SHOP)),
    service: InvoiceService = Depends(get_invoice_service),
):
    """Issue the final invoice for one of the shop's bookings"""
    return build_invoice_response(service.create_invoice(data, current_user))


@router.get("", response_model=list[InvoiceResponse])
async def get_invoices(
    current_user: User = Depends(get_current_user),
    service: InvoiceService = Depends(get_invoice_service),
):
    return [build_invoice_response(i) for i in service.get_invoices(current_user)]


@router.get("/booking/{booking_id}", response_model=InvoiceResponse)
async def get_invoice_for_booking(
    booking_id: int,
    current_user: User = Depends(get_current_user),
    service: InvoiceService = Depends(get_invoice_service),
):
    return build_invoice_response(service.get_invoice_for_booking(booking_id, current_user))


@router.put("/{invoice_id}/approve", response_model=InvoiceResponse)
async def approve_invoice(
    invoice_id: int,
    current_user: User = Depends(require_roles(UserRole.OWNER)),
    service: InvoiceService = Depends(get_invoice_service),
):
    """Approve and pay; the booking becomes COMPLETED"""
    return build_invoice_response(service.approve_invoice(invoice_id, current_user))
