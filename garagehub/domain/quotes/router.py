"""Quote router - FastAPI endpoints for the quoting marketplace"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...auth import get_current_user, get_user_shop, require_roles
from ...config import DEFAULT_DEPOSIT_PERCENT
from ...database import get_db
from ...enums import UserRole
from ...models import User
from ...models_quote import Quote, QuoteRequest
from .calculator import calculate_deposit, get_confidence_label
from .schemas import (
    LineItemResponse,
    QuoteComparisonEntry,
    QuoteComparisonResponse,
    QuoteCreate,
    QuoteRequestCreate,
    QuoteRequestResponse,
    QuoteResponse,
)
from .service import QuoteService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/quotes", tags=["Quotes"])


def get_quote_service(db: Session = Depends(get_db)) -> QuoteService:
    """Dependency injection for QuoteService"""
    return QuoteService(db)


def build_quote_response(quote: Quote) -> QuoteResponse:
    shop = quote.shop
    return QuoteResponse(
        id=quote.id,
        quote_request_id=quote.quote_request_id,
        shop_id=quote.shop_id,
        shop_name=shop.name if shop else None,
        shop_rating=shop.rating if shop else None,
        shop_verified=shop.verified if shop else None,
        user_id=quote.user_id,
        vehicle_id=quote.vehicle_id,
        service_id=quote.service_id,
        line_items=[LineItemResponse.model_validate(item) for item in quote.line_items],
        parts_cost_total=quote.parts_cost_total,
        labor_cost_total=quote.labor_cost_total,
        shop_fees=quote.shop_fees,
        tax_rate=quote.tax_rate,
        taxes=quote.taxes,
        estimated_total=quote.estimated_total,
        estimated_min=quote.estimated_min,
        estimated_max=quote.estimated_max,
        confidence=quote.confidence,
        confidence_label=get_confidence_label(quote.confidence),
        guaranteed=quote.guaranteed,
        guarantee_valid_days=quote.guarantee_valid_days,
        notes=quote.notes,
        status=quote.status,
        expires_at=quote.expires_at,
        created_at=quote.created_at,
    )


def build_request_response(request: QuoteRequest, include_quotes: bool = True) -> QuoteRequestResponse:
    vehicle = request.vehicle
    return QuoteRequestResponse(
        id=request.id,
        user_id=request.user_id,
        customer_name=request.user.name if request.user else None,
        vehicle_id=request.vehicle_id,
        vehicle=f"{vehicle.year} {vehicle.make} {vehicle.model}" if vehicle else None,
        description=request.description,
        symptoms=request.symptoms or [],
        photos=request.photos or [],
        broadcast=request.broadcast,
        radius=request.radius,
        target_shop_ids=[int(s) for s in (request.target_shop_ids or [])],
        status=request.status,
        created_at=request.created_at,
        quotes=[build_quote_response(q) for q in request.quotes] if include_quotes else [],
    )


# ============================================================================
# QUOTE REQUESTS
# ============================================================================


@router.post("/requests", response_model=QuoteRequestResponse, status_code=201)
async def create_quote_request(
    data: QuoteRequestCreate,
    current_user: User = Depends(require_roles(UserRole.OWNER)),
    service: QuoteService = Depends(get_quote_service),
):
    """Ask shops to quote on a vehicle problem"""
    request = service.create_request(data, current_user)
    return build_request_response(request)


@router.get("/requests/mine", response_model=list[QuoteRequestResponse])
async def get_my_quote_requests(
    current_user: User = Depends(require_roles(UserRole.OWNER)),
    service: QuoteService = Depends(get_quote_service),
):
    """The caller's requests with every quote received"""
    return [build_request_response(r) for r in service.get_my_requests(current_user)]


@router.get("/requests/shop", response_model=list[QuoteRequestResponse])
async def get_shop_quote_requests(
    current_user: User = Depends(require_roles(UserRole.SHOP)),
    service: QuoteService = Depends(get_quote_service),
    db: Session = Depends(get_db),
):
    """Open requests the caller's shop can still answer"""
    shop = get_user_shop(db, current_user)
    return [
        build_request_response(r, include_quotes=False) for r in service.get_shop_requests(shop)
    ]


@router.post("/requests/{request_id}/respond", response_model=QuoteResponse, status_code=201)
async def respond_to_quote_request(
    request_id: int,
    data: QuoteCreate,
    current_user: User = Depends(require_roles(UserRole.SHOP)),
    service: QuoteService = Depends(get_quote_service),
    db: Session = Depends(get_db),
):
    """Submit the shop's priced quote for a request"""
    shop = get_user_shop(db, current_user)
    quote = service.respond_to_request(request_id, data, shop)
    return build_quote_response(quote)


@router.get("/requests/{request_id}/compare", response_model=QuoteComparisonResponse)
async def compare_quotes_for_request(
    request_id: int,
    current_user: User = Depends(require_roles(UserRole.OWNER)),
    service: QuoteService = Depends(get_quote_service),
):
    """Quotes ranked guaranteed first, then by confidence, then by price"""
    request, ranked = service.compare_request_quotes(request_id, current_user)
    entries = []
    for index, quote in enumerate(ranked, start=1):
        entries.append(
            QuoteComparisonEntry(
                rank=index,
                deposit_preview=calculate_deposit(
                    quote.estimated_total, quote.shop.deposit_percent if quote.shop else DEFAULT_DEPOSIT_PERCENT
                ),
                quote=build_quote_response(quote),
            )
        )
    return QuoteComparisonResponse(request_id=request.id, quotes=entries)


# ============================================================================
# QUOTES
# ============================================================================


@router.get("/{quote_id}", response_model=QuoteResponse)
async def get_quote(
    quote_id: int,
    current_user: User = Depends(get_current_user),
    service: QuoteService = Depends(get_quote_service),
):
    return build_quote_response(service.get_quote(quote_id, current_user))


@router.put("/{quote_id}/accept", response_model=QuoteResponse)
async def accept_quote(
    quote_id: int,
    current_user: User = Depends(require_roles(UserRole.OWNER)),
    service: QuoteService = Depends(get_quote_service),
):
    """Accept a quote; the request closes and competing quotes are rejected"""
    return build_quote_response(service.accept_quote(quote_id, current_user))


@router.put("/{quote_id}/reject", response_model=QuoteResponse)
async def reject_quote(
    quote_id: int,
    current_user: User = Depends(require_roles(UserRole.OWNER)),
    service: QuoteService = Depends(get_quote_service),
):
    return build_quote_response(service.reject_quote(quote_id, current_user))
