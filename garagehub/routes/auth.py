import logging
from datetime import datetime, timedelta

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..auth import get_current_user
from ..config import DEFAULT_DEPOSIT_PERCENT, FRONTEND_URL, PASSWORD_RESET_TOKEN_MINUTES
from ..database import get_db
from ..enums import UserRole
from ..models import Shop, User
from ..rate_limiter import create_rate_limiter
from ..schemas import (
    AuthResponse,
    ForgotPasswordRequest,
    LoginRequest,
    RegisterRequest,
    ResetPasswordRequest,
    UserResponse,
)
from ..security_utils import (
    check_password_strength,
    create_access_token,
    generate_secure_token,
    hash_password_bcrypt,
    hash_token,
    verify_password_bcrypt,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])

# 5 sign-ups per hour per IP
rate_limit_register = create_rate_limiter(limit=5, window_seconds=3600, key_prefix="register")
# 10 login attempts per 15 minutes per IP
rate_limit_login = create_rate_limiter(limit=10, window_seconds=900, key_prefix="login")
# 5 reset requests per hour per IP
rate_limit_password_reset = create_rate_limiter(limit=5, window_seconds=3600, key_prefix="password_reset")

RESET_REQUESTED_MESSAGE = "If an account exists, a reset link has been sent."


def _auth_response(user: User) -> AuthResponse:
    return AuthResponse(
        token=create_access_token(user.id, user.role),
        user=UserResponse.model_validate(user),
        shop_id=user.shop.id if user.shop else None,
    )


@router.post("/register", response_model=AuthResponse, status_code=201)
async def register(
    data: RegisterRequest,
    db: Session = Depends(get_db),
    _: None = Depends(rate_limit_register),
):
    """Create an account; SHOP accounts get a starter shop profile"""
    strength = check_password_strength(data.password)
    if not strength["is_valid"]:
        raise HTTPException(
            status_code=400,
            detail={"message": "Password is too weak", "feedback": strength["feedback"]},
        )

    if db.query(User).filter(User.email == data.email).first():
        raise HTTPException(status_code=409, detail="User already exists")

    user = User(
        name=data.name,
        email=data.email,
        password_hash=hash_password_bcrypt(data.password),
        role=data.role.value,
        phone=data.phone,
    )
    db.add(user)

    try:
        db.flush()
        if data.role == UserRole.SHOP:
            db.add(
                Shop(
                    user_id=user.id,
                    name=f"{data.name}'s Shop",
                    address="Update your address",
                    phone=data.phone,
                    deposit_percent=DEFAULT_DEPOSIT_PERCENT,
                )
            )
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="User already exists") from None

    db.refresh(user)
    logger.info(f"✅ Registered user {user.id} ({user.role})")
    return _auth_response(user)


@router.post("/login", response_model=AuthResponse)
async def login(
    data: LoginRequest,
    db: Session = Depends(get_db),
    _: None = Depends(rate_limit_login),
):
    user = db.query(User).filter(User.email == data.email).first()
    if not user or not verify_password_bcrypt(data.password, user.password_hash):
        logger.warning(f"⚠️ Failed login for {data.email}")
        raise HTTPException(status_code=401, detail="Invalid email or password")

    logger.info(f"✅ User {user.id} logged in")
    return _auth_response(user)


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: User = Depends(get_current_user)):
    return current_user


@router.post("/forgot-password")
async def forgot_password(
    data: ForgotPasswordRequest,
    db: Session = Depends(get_db),
    _: None = Depends(rate_limit_password_reset),
):
    """Issue a single-use reset link; the answer never reveals whether the email exists"""
    user = db.query(User).filter(User.email == data.email).first()
    if not user:
        logger.info(f"Password reset requested for unknown email {data.email}")
        return {"message": RESET_REQUESTED_MESSAGE}

    token = generate_secure_token(20)
    user.reset_token_hash = hash_token(token)
    user.reset_token_expires_at = datetime.utcnow() + timedelta(minutes=PASSWORD_RESET_TOKEN_MINUTES)
    db.commit()

    # No mail provider is wired in; the link goes to the server log
    logger.info(f"🔑 Password reset link for user {user.id}: {FRONTEND_URL}/reset-password?token={token}")
    return {"message": RESET_REQUESTED_MESSAGE}


@router.post("/reset-password/{token}")
async def reset_password(
    token: str,
    data: ResetPasswordRequest,
    db: Session = Depends(get_db),
    _: None = Depends(rate_limit_password_reset),
):
    user = (
        db.query(User)
        .filter(
            User.reset_token_hash == hash_token(token),
            User.reset_token_expires_at > datetime.utcnow(),
        )
        .first()
    )
    if not user:
        raise HTTPException(status_code=400, detail="Invalid or expired token")

    strength = check_password_strength(data.password)
    if not strength["is_valid"]:
        raise HTTPException(
            status_code=400,
            detail={"message": "Password is too weak", "feedback": strength["feedback"]},
        )

    user.password_hash = hash_password_bcrypt(data.password)
    user.reset_token_hash = None
    user.reset_token_expires_at = None
    db.commit()

    logger.info(f"✅ Password reset for user {user.id}")
    return {"message": "Password updated successfully"}
