import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from ..auth import require_roles
from ..database import get_db
from ..domain.notifications.service import NotificationService
from ..enums import BookingStatus, UserRole
from ..models import Review, Shop, User
from ..models_booking import Booking
from ..schemas import ReviewCreate, ReviewResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/reviews", tags=["Reviews"])


def build_review_response(review: Review) -> ReviewResponse:
    return ReviewResponse(
        id=review.id,
        user_id=review.user_id,
        user_name=review.user.name if review.user else None,
        shop_id=review.shop_id,
        booking_id=review.booking_id,
        rating=review.rating,
        comment=review.comment,
        images=review.images or [],
        is_verified=review.is_verified,
        created_at=review.created_at,
    )


def recalculate_shop_rating(db: Session, shop: Shop) -> None:
    """Refresh the denormalized rating and review_count on the shop row"""
    avg_rating, count = (
        db.query(func.avg(Review.rating), func.count(Review.id)).filter(Review.shop_id == shop.id).one()
    )
    shop.rating = round(float(avg_rating), 1) if avg_rating is not None else 0
    shop.review_count = count


@router.post("", response_model=ReviewResponse, status_code=201)
async def create_review(
    data: ReviewCreate,
    current_user: User = Depends(require_roles(UserRole.OWNER)),
    db: Session = Depends(get_db),
):
    """Review a shop; reviews tied to a completed booking are marked verified"""
    shop = db.query(Shop).filter(Shop.id == data.shop_id).first()
    if not shop:
        raise HTTPException(status_code=404, detail="Shop not found")

    if data.booking_id is not None:
        booking = db.query(Booking).filter(Booking.id == data.booking_id).first()
        if not booking or booking.user_id != current_user.id or booking.shop_id != shop.id:
            raise HTTPException(status_code=404, detail="Booking not found")
        if booking.status != BookingStatus.COMPLETED.value:
            raise HTTPException(status_code=400, detail="Only completed bookings can be reviewed")
        if db.query(Review.id).filter(Review.booking_id == booking.id).first():
            raise HTTPException(status_code=409, detail="Booking already reviewed")

    review = Review(
        user_id=current_user.id,
        shop_id=shop.id,
        booking_id=data.booking_id,
        rating=data.rating,
        comment=data.comment,
        images=data.images,
        is_verified=data.booking_id is not None,
    )
    db.add(review)
    try:
        db.flush()
        recalculate_shop_rating(db, shop)
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="Booking already reviewed") from None

    db.refresh(review)
    logger.info(f"⭐ Review {review.id} ({review.rating}) for shop {shop.id}; new rating {shop.rating}")
    NotificationService(db).new_review(shop.user_id, review.rating)
    return build_review_response(review)


@router.get("/shop/{shop_id}", response_model=list[ReviewResponse])
async def get_shop_reviews(shop_id: int, db: Session = Depends(get_db)):
    if not db.query(Shop.id).filter(Shop.id == shop_id).first():
        raise HTTPException(status_code=404, detail="Shop not found")

    reviews = (
        db.query(Review)
        .options(joinedload(Review.user))
        .filter(Review.shop_id == shop_id)
        .order_by(Review.created_at.desc(), Review.id.desc())
        .all()
    )
    return [build_review_response(r) for r in reviews]
