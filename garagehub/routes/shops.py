import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ..auth import get_user_shop, require_roles
from ..database import get_db
from ..enums import UserRole
from ..models import Shop, User
from ..schemas import ShopResponse, ShopUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/shops", tags=["Shops"])


@router.get("", response_model=list[ShopResponse])
async def list_shops(
    search: Optional[str] = None,
    verified: Optional[bool] = None,
    min_rating: Optional[float] = Query(None, ge=0, le=5),
    db: Session = Depends(get_db),
):
    """Public shop directory, best rated first"""
    query = db.query(Shop)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(
            (Shop.name.ilike(pattern)) | (Shop.address.ilike(pattern)) | (Shop.description.ilike(pattern))
        )
    if verified is not None:
        query = query.filter(Shop.verified.is_(verified))
    if min_rating is not None:
        query = query.filter(Shop.rating >= min_rating)

    return query.order_by(Shop.rating.desc(), Shop.review_count.desc(), Shop.id).all()


@router.get("/{shop_id}", response_model=ShopResponse)
async def get_shop(shop_id: int, db: Session = Depends(get_db)):
    shop = db.query(Shop).filter(Shop.id == shop_id).first()
    if not shop:
        raise HTTPException(status_code=404, detail="Shop not found")
    return shop


@router.put("/profile", response_model=ShopResponse)
async def update_shop_profile(
    data: ShopUpdate,
    current_user: User = Depends(require_roles(UserRole.SHOP)),
    db: Session = Depends(get_db),
):
    """Update the caller's shop profile"""
    shop = get_user_shop(db, current_user)

    if data.name is not None:
        shop.name = data.name
    if data.address is not None:
        shop.address = data.address
    if data.phone is not None:
        shop.phone = data.phone
    if data.description is not None:
        shop.description = data.description
    if data.image_url is not None:
        shop.image_url = data.image_url
    if data.deposit_percent is not None:
        shop.deposit_percent = data.deposit_percent

    db.commit()
    db.refresh(shop)
    logger.info(f"🔧 Shop {shop.id} profile updated")
    return shop
