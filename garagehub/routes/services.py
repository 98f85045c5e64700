"""
Public service catalogue.
List and detail reads are served from the Redis cache when available.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session, selectinload

from ..cache import build_service_key, build_service_list_key, cache
from ..database import get_db
from ..domain.quotes.calculator import get_service_price_range
from ..enums import CarType, ServiceCategory
from ..models import Service, ServicePricing
from ..schemas import ServicePriceResponse, ServiceResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/services", tags=["Services"])


def _serialize_service(service: Service) -> dict:
    return ServiceResponse.model_validate(service).model_dump(mode="json")


@router.get("", response_model=list[ServiceResponse])
async def list_services(category: Optional[ServiceCategory] = None, db: Session = Depends(get_db)):
    cache_key = build_service_list_key(category.value if category else None)
    cached = cache.get(cache_key)
    if cached is not None:
        return cached

    query = db.query(Service).options(selectinload(Service.pricing)).filter(Service.is_active.is_(True))
    if category:
        query = query.filter(Service.category == category.value)

    result = [_serialize_service(s) for s in query.order_by(Service.name).all()]
    cache.set(cache_key, result)
    return result


@router.get("/{service_id}", response_model=ServiceResponse)
async def get_service(service_id: int, db: Session = Depends(get_db)):
    cache_key = build_service_key(service_id)
    cached = cache.get(cache_key)
    if cached is not None:
        return cached

    service = db.query(Service).filter(Service.id == service_id).first()
    if not service:
        raise HTTPException(status_code=404, detail="Service not found")

    result = _serialize_service(service)
    cache.set(cache_key, result)
    return result


@router.get("/{service_id}/price", response_model=ServicePriceResponse)
async def get_service_price(service_id: int, car_type: CarType, db: Session = Depends(get_db)):
    """Price band of a service for one vehicle class"""
    if not db.query(Service.id).filter(Service.id == service_id).first():
        raise HTTPException(status_code=404, detail="Service not found")

    rows = db.query(ServicePricing).filter(ServicePricing.service_id == service_id).all()
    price_range = get_service_price_range(rows, car_type.value)
    if price_range is None:
        raise HTTPException(status_code=404, detail=f"No pricing for {car_type.value}")

    min_price, max_price = price_range
    return ServicePriceResponse(
        service_id=service_id,
        car_type=car_type.value,
        min_price=min_price,
        max_price=max_price,
    )
