"""
Application configuration from environment variables.

Load with python-dotenv in main so env vars are available before imports.
Validates critical secrets at module load; missing values raise RuntimeError.
"""
import os

# --- Required (raise if missing) ---
GOOGLE_CLIENT_ID = os.getenv("GOOGLE_CLIENT_ID")
JWT_SECRET = os.getenv("JWT_SECRET")
JWT_REFRESH_SECRET = os.getenv("JWT_REFRESH_SECRET")
STRIPE_SECRET_KEY = os.getenv("STRIPE_SECRET_KEY")
STRIPE_WEBHOOK_SECRET = os.getenv("STRIPE_WEBHOOK_SECRET")

for name, val in [
    ("GOOGLE_CLIENT_ID", GOOGLE_CLIENT_ID),
    ("JWT_SECRET", JWT_SECRET),
    ("JWT_REFRESH_SECRET", JWT_REFRESH_SECRET),
    ("STRIPE_SECRET_KEY", STRIPE_SECRET_KEY),
    ("STRIPE_WEBHOOK_SECRET", STRIPE_WEBHOOK_SECRET),
]:
    if not val or not str(val).strip():
        raise RuntimeError(f"Required env var {name} is missing or empty")

if JWT_SECRET == JWT_REFRESH_SECRET:
    raise RuntimeError("JWT_SECRET and JWT_REFRESH_SECRET must differ")

JWT_ALGORITHM = "HS256"


def _int_env(key: str, default: int, minimum: int = 1) -> int:
    try:
        return max(minimum, int(os.getenv(key, str(default))))
    except ValueError:
        return default


# --- Optional with defaults ---
# Access credential 7 days, refresh credential 30 days
JWT_ACCESS_TTL_SECONDS = _int_env("JWT_ACCESS_TTL_SECONDS", 7 * 24 * 3600, minimum=60)
JWT_REFRESH_TTL_SECONDS = _int_env("JWT_REFRESH_TTL_SECONDS", 30 * 24 * 3600, minimum=60)

# Frontend URL for checkout success/cancel redirects and CORS
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:3000").rstrip("/")

# Base URL of this API; signed download links are built against it
PUBLIC_API_URL = os.getenv("PUBLIC_API_URL", "http://localhost:8000").rstrip("/")

# Google ID token verification
GOOGLE_CERTS_URL = os.getenv("GOOGLE_CERTS_URL", "https://www.googleapis.com/oauth2/v3/certs")
GOOGLE_ISSUERS = ("accounts.google.com", "https://accounts.google.com")
GOOGLE_REQUEST_TIMEOUT = (5, 15)  # connect 5s, read 15s

# Stripe network calls are bounded; seconds
STRIPE_REQUEST_TIMEOUT = _int_env("STRIPE_REQUEST_TIMEOUT", 20)
STRIPE_CURRENCY = "usd"

# bcrypt work factor for admin passwords
BCRYPT_ROUNDS = _int_env("BCRYPT_ROUNDS", 12, minimum=4)
MIN_PASSWORD_LENGTH = 8

# Storage root; uploaded files go under storage/documents/<admin_id>/...
STORAGE_ROOT = os.getenv("STORAGE_ROOT", "storage")

# Upload ceiling (bytes), 50 MB for PDFs
MAX_UPLOAD_BYTES = _int_env("MAX_UPLOAD_BYTES", 52428800)

# Lifetime of signed download links
SIGNED_URL_TTL_SECONDS = _int_env("SIGNED_URL_TTL_SECONDS", 3600, minimum=60)

# Settings readable without authentication
PUBLIC_SETTING_KEYS = frozenset({"lifetime_subscription_price"})

# Database URL (SQLite default; use Postgres URL in production)
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./app.db")

# Skip create_all at startup (set in production when using Alembic migrations)
SKIP_DB_INIT = os.getenv("SKIP_DB_INIT", "false").lower() in ("1", "true", "yes")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Environment: development | production (affects .env loading, error details)
ENV = os.getenv("ENV", "development").lower()
