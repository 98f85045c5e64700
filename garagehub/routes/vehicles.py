import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..auth import require_roles
from ..database import get_db
from ..enums import UserRole
from ..models import User, Vehicle
from ..models_booking import Booking
from ..models_quote import QuoteRequest
from ..schemas import MessageResponse, VehicleCreate, VehicleResponse, VehicleUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/vehicles", tags=["Vehicles"])

require_owner = require_roles(UserRole.OWNER)


def _get_own_vehicle(db: Session, vehicle_id: int, user: User) -> Vehicle:
    vehicle = db.query(Vehicle).filter(Vehicle.id == vehicle_id, Vehicle.user_id == user.id).first()
    if not vehicle:
        raise HTTPException(status_code=404, detail="Vehicle not found")
    return vehicle


def _clear_primary(db: Session, user_id: int, keep_id: Optional[int] = None) -> None:
    """At most one primary vehicle per owner"""
    query = db.query(Vehicle).filter(Vehicle.user_id == user_id, Vehicle.is_primary.is_(True))
    if keep_id is not None:
        query = query.filter(Vehicle.id != keep_id)
    query.update({"is_primary": False}, synchronize_session="fetch")


@router.get("", response_model=list[VehicleResponse])
async def list_vehicles(
    current_user: User = Depends(require_owner),
    db: Session = Depends(get_db),
):
    return (
        db.query(Vehicle)
        .filter(Vehicle.user_id == current_user.id)
        .order_by(Vehicle.is_primary.desc(), Vehicle.id)
        .all()
    )


@router.post("", response_model=VehicleResponse, status_code=201)
async def create_vehicle(
    data: VehicleCreate,
    current_user: User = Depends(require_owner),
    db: Session = Depends(get_db),
):
    """Register a vehicle; the first one becomes primary"""
    if db.query(Vehicle).filter(Vehicle.user_id == current_user.id, Vehicle.vin == data.vin).first():
        raise HTTPException(status_code=409, detail="Vehicle with this VIN already exists")

    has_vehicles = db.query(Vehicle.id).filter(Vehicle.user_id == current_user.id).first() is not None
    is_primary = data.is_primary or not has_vehicles
    if is_primary:
        _clear_primary(db, current_user.id)

    vehicle = Vehicle(
        user_id=current_user.id,
        vin=data.vin,
        make=data.make,
        model=data.model,
        year=data.year,
        car_type=data.car_type.value,
        license_plate=data.license_plate,
        trim=data.trim,
        color=data.color,
        mileage=data.mileage,
        is_primary=is_primary,
    )
    db.add(vehicle)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="Vehicle with this VIN already exists") from None

    db.refresh(vehicle)
    logger.info(f"🚗 Vehicle {vehicle.id} added for user {current_user.id}")
    return vehicle


@router.put("/{vehicle_id}", response_model=VehicleResponse)
async def update_vehicle(
    vehicle_id: int,
    data: VehicleUpdate,
    current_user: User = Depends(require_owner),
    db: Session = Depends(get_db),
):
    vehicle = _get_own_vehicle(db, vehicle_id, current_user)

    updates = data.model_dump(exclude_unset=True)
    if updates.get("is_primary"):
        _clear_primary(db, current_user.id, keep_id=vehicle.id)
    if updates.get("car_type") is not None:
        updates["car_type"] = updates["car_type"].value

    for field, value in updates.items():
        if value is not None:
            setattr(vehicle, field, value)

    db.commit()
    db.refresh(vehicle)
    return vehicle


@router.delete("/{vehicle_id}", response_model=MessageResponse)
async def delete_vehicle(
    vehicle_id: int,
    current_user: User = Depends(require_owner),
    db: Session = Depends(get_db),
):
    vehicle = _get_own_vehicle(db, vehicle_id, current_user)

    in_use = (
        db.query(Booking.id).filter(Booking.vehicle_id == vehicle.id).first()
        or db.query(QuoteRequest.id).filter(QuoteRequest.vehicle_id == vehicle.id).first()
    )
    if in_use:
        raise HTTPException(status_code=409, detail="Vehicle has bookings or quote requests")

    db.delete(vehicle)
    db.commit()
    logger.info(f"🗑️ Vehicle {vehicle_id} deleted by user {current_user.id}")
    return {"message": "Vehicle deleted"}
