import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..auth import require_roles
from ..database import get_db
from ..enums import DisputeStatus, UserRole
from ..models import User
from ..models_booking import Booking, Dispute
from ..schemas import DisputeCreate, DisputeResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/disputes", tags=["Disputes"])

OPEN_DISPUTE_STATUSES = (DisputeStatus.OPEN.value, DisputeStatus.UNDER_REVIEW.value)


@router.post("", response_model=DisputeResponse, status_code=201)
async def create_dispute(
    data: DisputeCreate,
    current_user: User = Depends(require_roles(UserRole.OWNER)),
    db: Session = Depends(get_db),
):
    """Raise a dispute about one of the owner's own bookings"""
    booking = db.query(Booking).filter(Booking.id == data.booking_id).first()
    if not booking:
        raise HTTPException(status_code=404, detail="Booking not found")
    if booking.user_id != current_user.id:
        raise HTTPException(status_code=403, detail="Not authorized to dispute this booking")

    already_open = (
        db.query(Dispute.id)
        .filter(Dispute.booking_id == booking.id, Dispute.status.in_(OPEN_DISPUTE_STATUSES))
        .first()
    )
    if already_open:
        raise HTTPException(status_code=409, detail="This booking already has an open dispute")

    dispute = Dispute(
        booking_id=booking.id,
        user_id=current_user.id,
        shop_id=booking.shop_id,
        reason=data.reason,
    )
    db.add(dispute)
    db.commit()
    db.refresh(dispute)

    logger.info(f"⚖️ Dispute {dispute.id} opened on booking {booking.id} by user {current_user.id}")
    return dispute


@router.get("/mine", response_model=list[DisputeResponse])
async def get_my_disputes(
    current_user: User = Depends(require_roles(UserRole.OWNER)),
    db: Session = Depends(get_db),
):
    return (
        db.query(Dispute)
        .filter(Dispute.user_id == current_user.id)
        .order_by(Dispute.created_at.desc(), Dispute.id.desc())
        .all()
    )
