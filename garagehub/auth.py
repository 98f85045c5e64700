import logging
from typing import Optional

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from .database import get_db
from .enums import UserRole
from .models import Shop, User
from .security_utils import verify_jwt_token

logger = logging.getLogger(__name__)

security = HTTPBearer()


def resolve_token_user(db: Session, token: str) -> Optional[User]:
    """Return the user a bearer token belongs to, or None when the token is not usable"""
    payload = verify_jwt_token(token)
    if not payload:
        return None

    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        logger.warning("⚠️ Token missing a numeric subject claim")
        return None

    return db.query(User).filter(User.id == user_id).first()


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """Get current user from the bearer token"""

    if not credentials:
        logger.error("❌ No credentials provided")
        raise HTTPException(
            status_code=401,
            detail="Not authenticated. Please provide a valid Bearer token in the Authorization header.",
        )

    token = credentials.credentials

    # Basic token format validation before processing
    if len(token.split(".")) != 3:
        logger.warning(f"⚠️ Malformed token received, token length: {len(token)}")
        raise HTTPException(
            status_code=401, detail="Invalid token format. Expected a valid JWT token."
        )

    user = resolve_token_user(db, token)
    if not user:
        raise HTTPException(status_code=401, detail="Not authorized, token failed")

    logger.debug(f"✅ User authenticated: {user.email} ({user.role})")
    return user


def require_roles(*roles: UserRole):
    """
    Create a dependency that only lets the given roles through.

    Example usage:
        @router.post("/availability")
        async def create_slots(current_user: User = Depends(require_roles(UserRole.SHOP))):
            ...
    """
    allowed = {UserRole(r) for r in roles}

    async def role_checker(user: User = Depends(get_current_user)) -> User:
        try:
            role = UserRole(user.role)
        except ValueError:
            logger.error(f"❌ User {user.id} has unknown role {user.role!r}")
            raise HTTPException(status_code=403, detail="Unknown user role") from None

        if role not in allowed:
            logger.warning(f"⚠️ User {user.id} with role {role.value} denied (needs {sorted(r.value for r in allowed)})")
            raise HTTPException(
                status_code=403,
                detail=f"User role {role.value} is not authorized to access this route",
            )
        return user

    return role_checker


def get_user_shop(db: Session, user: User) -> Shop:
    """Shop profile owned by a SHOP user"""
    shop = db.query(Shop).filter(Shop.user_id == user.id).first()
    if not shop:
        raise HTTPException(status_code=404, detail="Shop profile not found")
    return shop


optional_security = HTTPBearer(auto_error=False)


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(optional_security),
    db: Session = Depends(get_db),
) -> Optional[User]:
    """Current user for public endpoints that personalise their answer when signed in"""
    if not credentials:
        return None
    return resolve_token_user(db, credentials.credentials)
