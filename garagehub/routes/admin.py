import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import func
from sqlalchemy.orm import Session

from ..auth import require_roles
from ..database import get_db
from ..domain.bookings.repository import BookingRepository
from ..domain.bookings.router import build_booking_response
from ..domain.bookings.schemas import BookingResponse
from ..domain.notifications.service import NotificationService
from ..enums import BookingStatus, DisputeStatus, InvoiceStatus, QuoteRequestStatus, UserRole
from ..models import Shop, User
from ..models_booking import Booking, Dispute
from ..models_invoice import Invoice
from ..models_quote import QuoteRequest
from ..schemas import AdminStatsResponse, DisputeResolve, DisputeResponse, ShopResponse, UserResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["Admin"])

require_admin = require_roles(UserRole.ADMIN)


@router.get("/stats", response_model=AdminStatsResponse)
async def get_platform_stats(
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Platform-wide counters computed from live data"""
    status_counts = dict(db.query(Booking.status, func.count(Booking.id)).group_by(Booking.status).all())
    total_shops = db.query(func.count(Shop.id)).scalar() or 0
    verified_shops = db.query(func.count(Shop.id)).filter(Shop.verified.is_(True)).scalar() or 0
    revenue = (
        db.query(func.coalesce(func.sum(Invoice.amount_paid), 0))
        .filter(Invoice.status == InvoiceStatus.PAID.value)
        .scalar()
    )

    return AdminStatsResponse(
        total_users=db.query(func.count(User.id)).scalar() or 0,
        total_owners=db.query(func.count(User.id)).filter(User.role == UserRole.OWNER.value).scalar() or 0,
        total_shops=total_shops,
        verified_shops=verified_shops,
        pending_shops=total_shops - verified_shops,
        total_bookings=sum(status_counts.values()),
        bookings_by_status={s.value: status_counts.get(s.value, 0) for s in BookingStatus},
        total_revenue=round(float(revenue or 0), 2),
        open_quote_requests=db.query(func.count(QuoteRequest.id))
        .filter(QuoteRequest.status == QuoteRequestStatus.OPEN.value)
        .scalar()
        or 0,
    )


@router.get("/users", response_model=list[UserResponse])
async def list_users(
    role: Optional[UserRole] = None,
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    query = db.query(User)
    if role:
        query = query.filter(User.role == role.value)
    return query.order_by(User.id).offset(offset).limit(limit).all()


@router.get("/shops/pending", response_model=list[ShopResponse])
async def list_pending_shops(
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return db.query(Shop).filter(Shop.verified.is_(False)).order_by(Shop.created_at, Shop.id).all()


@router.put("/shops/{shop_id}/verify", response_model=ShopResponse)
async def verify_shop(
    shop_id: int,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    shop = db.query(Shop).filter(Shop.id == shop_id).first()
    if not shop:
        raise HTTPException(status_code=404, detail="Shop not found")
    if shop.verified:
        return shop

    shop.verified = True
    shop.verified_at = datetime.utcnow()
    db.commit()
    db.refresh(shop)

    logger.info(f"✅ Shop {shop.id} verified by admin {current_user.id}")
    NotificationService(db).shop_verified(shop.user_id, shop.name)
    return shop


@router.get("/bookings/recent", response_model=list[BookingResponse])
async def recent_bookings(
    limit: int = Query(20, ge=1, le=100),
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return [build_booking_response(b) for b in BookingRepository.get_recent_bookings(db, limit=limit)]


@router.get("/disputes", response_model=list[DisputeResponse])
async def get_all_disputes(
    status: Optional[DisputeStatus] = None,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    query = db.query(Dispute)
    if status:
        query = query.filter(Dispute.status == status.value)
    return query.order_by(Dispute.created_at.desc(), Dispute.id.desc()).all()


@router.put("/disputes/{dispute_id}/resolve", response_model=DisputeResponse)
async def resolve_dispute(
    dispute_id: int,
    data: DisputeResolve,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Close a dispute and tell both the owner and the shop"""
    dispute = db.query(Dispute).filter(Dispute.id == dispute_id).first()
    if not dispute:
        raise HTTPException(status_code=404, detail="Dispute not found")
    if dispute.status in (DisputeStatus.RESOLVED.value, DisputeStatus.REJECTED.value):
        raise HTTPException(status_code=409, detail="Dispute is already closed")

    dispute.status = data.status.value
    dispute.resolution = data.resolution
    dispute.resolved_by = current_user.id
    dispute.resolved_at = datetime.utcnow()
    db.commit()
    db.refresh(dispute)

    logger.info(f"⚖️ Dispute {dispute.id} closed as {dispute.status} by admin {current_user.id}")
    notifications = NotificationService(db)
    notifications.dispute_resolved(dispute.user_id, dispute.id, dispute.status)
    if dispute.shop:
        notifications.dispute_resolved(dispute.shop.user_id, dispute.id, dispute.status)
    return dispute
