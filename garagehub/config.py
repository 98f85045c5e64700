import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./garagehub.db")

# Security - CRITICAL: No default secret key in production
SECRET_KEY = os.getenv("SECRET_KEY")
if not SECRET_KEY:
    import warnings

    warnings.warn(
        "SECRET_KEY not set! Using insecure default - DO NOT USE IN PRODUCTION", RuntimeWarning, stacklevel=2
    )
    SECRET_KEY = "INSECURE-DEV-KEY-CHANGE-IN-PRODUCTION"  # noqa: S105 - Dev fallback only

JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_DAYS = int(os.getenv("ACCESS_TOKEN_EXPIRE_DAYS", "30"))
BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "12"))

# Frontend base URL (used for CORS defaults and socket origins)
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:3000")

# Pricing rules
DEFAULT_TAX_RATE = float(os.getenv("DEFAULT_TAX_RATE", "0.08"))  # 8%
# Fraction, compared against variance expressed as a percent
DEFAULT_VARIANCE_TOLERANCE = float(os.getenv("DEFAULT_VARIANCE_TOLERANCE", "0.15"))
DEFAULT_DEPOSIT_PERCENT = float(os.getenv("DEFAULT_DEPOSIT_PERCENT", "20"))

# Cancellations closer than this to the appointment keep the deposit
LATE_CANCELLATION_HOURS = int(os.getenv("LATE_CANCELLATION_HOURS", "24"))

# Redis-backed helpers (rate limiting + catalogue cache)
RATE_LIMIT_ENABLED = os.getenv("RATE_LIMIT_ENABLED", "true").lower() == "true"
CACHE_ENABLED = os.getenv("CACHE_ENABLED", "true").lower() == "true"

# Redis connection; REDIS_URL wins over the individual settings
REDIS_URL = os.getenv("REDIS_URL")
REDIS_HOST = os.getenv("REDIS_HOST", "localhost")
REDIS_PORT = int(os.getenv("REDIS_PORT", "6379"))
REDIS_PASSWORD = os.getenv("REDIS_PASSWORD")
REDIS_DB = int(os.getenv("REDIS_DB", "0"))
REDIS_SSL = os.getenv("REDIS_SSL", "false").lower() == "true"

# Password reset links
PASSWORD_RESET_TOKEN_MINUTES = int(os.getenv("PASSWORD_RESET_TOKEN_MINUTES", "10"))
