"""Quote service - Quote requests, shop responses and owner decisions"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...enums import QuoteRequestStatus, QuoteStatus, UserRole
from ...models import Shop, User, Vehicle
from ...models_quote import Quote, QuoteRequest
from ..notifications.service import NotificationService
from .calculator import (
    calculate_estimated_range,
    calculate_line_item_subtotal,
    calculate_totals,
    compare_quotes,
)
from .repository import QuoteRepository
from .schemas import QuoteCreate, QuoteRequestCreate

logger = logging.getLogger(__name__)

SHOP_REQUEST_LIMIT = 50


def is_quote_expired(quote: Quote, now: Optional[datetime] = None) -> bool:
    return quote.expires_at is not None and quote.expires_at < (now or datetime.utcnow())


def is_request_visible_to(request: QuoteRequest, shop_id: int) -> bool:
    """Broadcast requests reach every shop, others only the listed ones"""
    if request.broadcast:
        return True
    targets = request.target_shop_ids or []
    return shop_id in targets or str(shop_id) in targets


class QuoteService:
    """Service layer for the quoting marketplace"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = QuoteRepository()
        self.notifications = NotificationService(db)

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------

    def create_request(self, data: QuoteRequestCreate, user: User) -> QuoteRequest:
        vehicle = self.db.query(Vehicle).filter(Vehicle.id == data.vehicle_id).first()
        if not vehicle or vehicle.user_id != user.id:
            raise HTTPException(status_code=403, detail="Invalid vehicle")

        request = self.repo.create_request(
            self.db,
            user_id=user.id,
            vehicle_id=vehicle.id,
            description=data.description,
            symptoms=data.symptoms,
            photos=data.photos,
            broadcast=data.broadcast,
            radius=data.radius,
            target_shop_ids=data.target_shop_ids,
            status=QuoteRequestStatus.OPEN.value,
        )
        logger.info(f"✅ Quote request {request.id} created by user {user.id} (broadcast={request.broadcast})")

        if data.target_shop_ids:
            shops = self.db.query(Shop).filter(Shop.id.in_(data.target_shop_ids)).all()
            for shop in shops:
                self.notifications.quote_requested(shop.user_id, request.id)

        return request

    def get_my_requests(self, user: User) -> list[QuoteRequest]:
        return self.repo.get_requests_for_user(self.db, user.id)

    def get_shop_requests(self, shop: Shop) -> list[QuoteRequest]:
        """Open requests this shop can see and has not quoted yet"""
        candidates = self.repo.get_open_requests_not_quoted_by(self.db, shop.id)
        visible = [r for r in candidates if is_request_visible_to(r, shop.id)]
        logger.debug(f"📊 Shop {shop.id}: {len(visible)} of {len(candidates)} open requests visible")
        return visible[:SHOP_REQUEST_LIMIT]

    # ------------------------------------------------------------------
    # Quotes
    # ------------------------------------------------------------------

    def respond_to_request(self, request_id: int, data: QuoteCreate, shop: Shop) -> Quote:
        """Price a request from line items; one quote per shop per request"""
        request = self.repo.get_request(self.db, request_id)
        if (
            not request
            or request.status != QuoteRequestStatus.OPEN.value
            or not is_request_visible_to(request, shop.id)
        ):
            raise HTTPException(status_code=404, detail="Request not found")

        if self.repo.shop_has_quoted(self.db, request.id, shop.id):
            raise HTTPException(status_code=409, detail="You have already quoted this request")

        items = [item.model_dump() for item in data.line_items]
        for item in items:
            item["subtotal"] = calculate_line_item_subtotal(item)

        totals = calculate_totals(items, data.shop_fees, data.tax_rate)
        estimated_min, estimated_max = calculate_estimated_range(totals["total"], data.confidence)

        try:
            quote = self.repo.create_quote(
                self.db,
                items,
                quote_request_id=request.id,
                shop_id=shop.id,
                user_id=request.user_id,
                vehicle_id=request.vehicle_id,
                service_id=data.service_id,
                parts_cost_total=totals["parts_cost_total"],
                labor_cost_total=totals["labor_cost_total"],
                shop_fees=data.shop_fees,
                tax_rate=data.tax_rate,
                taxes=totals["taxes"],
                estimated_total=totals["total"],
                estimated_min=estimated_min,
                estimated_max=estimated_max,
                confidence=data.confidence,
                guaranteed=data.guaranteed,
                guarantee_valid_days=data.guarantee_valid_days,
                notes=data.notes,
                status=QuoteStatus.QUOTED.value,
                expires_at=datetime.utcnow() + timedelta(days=data.valid_days),
            )
        except IntegrityError:
            self.db.rollback()
            logger.warning(f"⚠️ Duplicate quote from shop {shop.id} on request {request_id}")
            raise HTTPException(status_code=409, detail="You have already quoted this request") from None

        logger.info(f"✅ Shop {shop.id} quoted request {request.id}: total={quote.estimated_total}")
        self.notifications.quote_received(request.user_id, shop.name, quote.id)
        return quote

    def _get_own_request(self, request_id: int, user: User) -> QuoteRequest:
        request = self.repo.get_request(self.db, request_id)
        if not request:
            raise HTTPException(status_code=404, detail="Request not found")
        if request.user_id != user.id:
            raise HTTPException(status_code=403, detail="Not authorized to view this request")
        return request

    def compare_request_quotes(self, request_id: int, user: User) -> tuple[QuoteRequest, list[Quote]]:
        request = self._get_own_request(request_id, user)
        return request, compare_quotes(request.quotes)

    def get_quote(self, quote_id: int, user: User) -> Quote:
        """Visible to the requesting owner, the quoting shop and admins"""
        quote = self.repo.get_quote(self.db, quote_id)
        if not quote:
            raise HTTPException(status_code=404, detail="Quote not found")

        role = UserRole(user.role)
        if role == UserRole.ADMIN:
            return quote
        elif role == UserRole.OWNER and quote.user_id == user.id:
            return quote
        elif role == UserRole.SHOP and quote.shop.user_id == user.id:
            return quote
        raise HTTPException(status_code=403, detail="Not authorized to view this quote")

    def _get_decidable_quote(self, quote_id: int, user: User) -> Quote:
        quote = self.repo.get_quote(self.db, quote_id)
        if not quote:
            raise HTTPException(status_code=404, detail="Quote not found")
        if quote.user_id != user.id:
            raise HTTPException(status_code=403, detail="Only the requesting owner can decide on this quote")
        return quote

    def ensure_acceptable(self, quote: Quote, allowed=(QuoteStatus.QUOTED,)) -> None:
        """
        Raise 409 unless quote is in one of the allowed states and unexpired.
        An expired quote is marked EXPIRED (committed) before raising.
        """
        if quote.status not in {s.value for s in allowed}:
            raise HTTPException(status_code=409, detail=f"Quote is {quote.status}")

        if is_quote_expired(quote):
            quote.status = QuoteStatus.EXPIRED.value
            self.db.commit()
            logger.info(f"⌛ Quote {quote.id} expired at {quote.expires_at}")
            raise HTTPException(status_code=409, detail="Quote has expired")

    def apply_acceptance(self, quote: Quote) -> None:
        """ACCEPTED quote, CLOSED request, competing quotes REJECTED. Does not commit."""
        quote.status = QuoteStatus.ACCEPTED.value
        quote.request.status = QuoteRequestStatus.CLOSED.value
        self.repo.reject_other_quotes(self.db, quote.quote_request_id, quote.id)

    def accept_quote(self, quote_id: int, user: User) -> Quote:
        quote = self._get_decidable_quote(quote_id, user)
        self.ensure_acceptable(quote)

        self.apply_acceptance(quote)
        self.db.commit()
        self.db.refresh(quote)
        logger.info(f"✅ Quote {quote.id} accepted by user {user.id}")

        self.notifications.quote_accepted(quote.shop.user_id, quote.id)
        return quote

    def reject_quote(self, quote_id: int, user: User) -> Quote:
        quote = self._get_decidable_quote(quote_id, user)
        if quote.status != QuoteStatus.QUOTED.value:
            raise HTTPException(status_code=409, detail=f"Quote is {quote.status}")

        quote.status = QuoteStatus.REJECTED.value
        self.db.commit()
        self.db.refresh(quote)
        logger.info(f"Quote {quote.id} rejected by user {user.id}")
        return quote
