from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from .enums import CarType, DisputeStatus, UserRole
from .shared.validators import validate_email, validate_us_phone, validate_vin


# Auth / users
class RegisterRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: str
    password: str
    role: UserRole = UserRole.OWNER
    phone: Optional[str] = None

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return validate_email(v)

    @field_validator("role")
    @classmethod
    def no_self_service_admin(cls, v):
        if v == UserRole.ADMIN:
            raise ValueError("Admin accounts cannot be self-registered")
        return v

    @field_validator("phone")
    @classmethod
    def check_phone(cls, v):
        if v:
            return validate_us_phone(v)
        return v


class LoginRequest(BaseModel):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v):
        return v.strip().lower()


class ForgotPasswordRequest(BaseModel):
    email: str

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v):
        return v.strip().lower()


class ResetPasswordRequest(BaseModel):
    password: str


class UserResponse(BaseModel):
    id: int
    name: str
    email: str
    role: str
    phone: Optional[str] = None
    avatar_url: Optional[str] = None
    is_online: bool = False
    last_active: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class AuthResponse(BaseModel):
    token: str
    user: UserResponse
    shop_id: Optional[int] = None


class UserUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    phone: Optional[str] = None
    avatar_url: Optional[str] = None

    @field_validator("phone")
    @classmethod
    def check_phone(cls, v):
        if v:
            return validate_us_phone(v)
        return v


class MessageResponse(BaseModel):
    message: str


# Shops
class ShopResponse(BaseModel):
    id: int
    user_id: int
    name: str
    address: str
    phone: Optional[str] = None
    description: Optional[str] = None
    image_url: Optional[str] = None
    rating: float
    review_count: int
    verified: bool
    verified_at: Optional[datetime] = None
    deposit_percent: float
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ShopUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    address: Optional[str] = Field(None, min_length=1, max_length=500)
    phone: Optional[str] = None
    description: Optional[str] = None
    image_url: Optional[str] = None
    deposit_percent: Optional[float] = Field(None, ge=0, le=100)

    @field_validator("phone")
    @classmethod
    def check_phone(cls, v):
        if v:
            return validate_us_phone(v)
        return v


# Services
class ServicePricingResponse(BaseModel):
    car_type: str
    min_price: float
    max_price: float

    class Config:
        from_attributes = True


class ServiceResponse(BaseModel):
    id: int
    name: str
    category: str
    description: Optional[str] = None
    duration: Optional[str] = None
    warranty: Optional[str] = None
    pricing: list[ServicePricingResponse] = []

    class Config:
        from_attributes = True


class ServicePriceResponse(BaseModel):
    service_id: int
    car_type: str
    min_price: float
    max_price: float


# Vehicles
class VehicleCreate(BaseModel):
    vin: str
    make: str = Field(..., min_length=1, max_length=100)
    model: str = Field(..., min_length=1, max_length=100)
    year: int = Field(..., ge=1900, le=2100)
    car_type: CarType
    license_plate: Optional[str] = None
    trim: Optional[str] = None
    color: Optional[str] = None
    mileage: Optional[int] = Field(None, ge=0)
    is_primary: bool = False

    @field_validator("vin")
    @classmethod
    def check_vin(cls, v):
        return validate_vin(v)


class VehicleUpdate(BaseModel):
    make: Optional[str] = Field(None, min_length=1, max_length=100)
    model: Optional[str] = Field(None, min_length=1, max_length=100)
    year: Optional[int] = Field(None, ge=1900, le=2100)
    car_type: Optional[CarType] = None
    license_plate: Optional[str] = None
    trim: Optional[str] = None
    color: Optional[str] = None
    mileage: Optional[int] = Field(None, ge=0)
    is_primary: Optional[bool] = None


class VehicleResponse(BaseModel):
    id: int
    user_id: int
    vin: str
    make: str
    model: str
    year: int
    car_type: str
    license_plate: Optional[str] = None
    trim: Optional[str] = None
    color: Optional[str] = None
    mileage: Optional[int] = None
    is_primary: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# Reviews
class ReviewCreate(BaseModel):
    shop_id: int
    booking_id: Optional[int] = None
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = None
    images: list[str] = []


class ReviewResponse(BaseModel):
    id: int
    user_id: int
    user_name: Optional[str] = None
    shop_id: int
    booking_id: Optional[int] = None
    rating: int
    comment: Optional[str] = None
    images: list[str] = []
    is_verified: bool
    created_at: Optional[datetime] = None


# Conversations
class MessageCreate(BaseModel):
    text: str = Field(..., min_length=1, max_length=5000)


class ChatMessageResponse(BaseModel):
    id: int
    conversation_id: int
    sender_id: int
    text: str
    is_read: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ConversationResponse(BaseModel):
    id: int
    user_id: int
    user_name: Optional[str] = None
    shop_id: int
    shop_name: Optional[str] = None
    last_message: Optional[ChatMessageResponse] = None
    unread_count: int = 0
    updated_at: Optional[datetime] = None


class ConversationDetailResponse(ConversationResponse):
    messages: list[ChatMessageResponse] = []


# Forum
class ForumPostCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    content: str = Field(..., min_length=1)
    tags: list[str] = Field(default_factory=list, max_length=10)

    @field_validator("tags")
    @classmethod
    def clean_tags(cls, v):
        tags = []
        for tag in v:
            tag = tag.strip().lower()
            if tag and tag not in tags:
                tags.append(tag)
        return tags


class ForumCommentCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=5000)


class ForumCommentResponse(BaseModel):
    id: int
    author: str
    role: str
    content: str
    shop_id: Optional[int] = None
    created_at: Optional[datetime] = None


class ForumPostResponse(BaseModel):
    id: int
    author: str
    author_role: str
    title: str
    content: str
    tags: list[str] = []
    like_count: int
    comment_count: int
    view_count: int
    liked_by_me: bool = False
    comments: list[ForumCommentResponse] = []
    created_at: Optional[datetime] = None


# Disputes
class DisputeCreate(BaseModel):
    booking_id: int
    reason: str = Field(..., min_length=1, max_length=5000)


class DisputeResolve(BaseModel):
    resolution: str = Field(..., min_length=1)
    status: DisputeStatus = DisputeStatus.RESOLVED

    @field_validator("status")
    @classmethod
    def must_close(cls, v):
        if v not in (DisputeStatus.RESOLVED, DisputeStatus.REJECTED):
            raise ValueError("A dispute is closed as RESOLVED or REJECTED")
        return v


class DisputeResponse(BaseModel):
    id: int
    booking_id: int
    user_id: int
    shop_id: int
    reason: str
    status: str
    resolution: Optional[str] = None
    resolved_by: Optional[int] = None
    resolved_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# Admin
class AdminStatsResponse(BaseModel):
    total_users: int
    total_owners: int
    total_shops: int
    verified_shops: int
    pending_shops: int
    total_bookings: int
    bookings_by_status: dict[str, int]
    total_revenue: float
    open_quote_requests: int
