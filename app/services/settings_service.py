"""
Settings service: key/value application settings.

lifetime_subscription_price is the only setting the payment flow depends on.
It is stored as a 2-decimal string ("29.99") and must be present before any
lifetime checkout can be created; there is no fallback price.
"""
import logging
from decimal import Decimal, InvalidOperation

from sqlalchemy.orm import Session

import repository
from errors import ConfigurationError, ConflictError, NotFoundError, ValidationError
from models import Setting

logger = logging.getLogger(__name__)

LIFETIME_PRICE_KEY = "lifetime_subscription_price"
LIFETIME_PRICE_MIN = Decimal("1")
LIFETIME_PRICE_MAX = Decimal("9999")
MAX_AMOUNT = Decimal("999999.99")


def parse_amount(value, field: str = "price") -> int:
    """Decimal amount (string or number) to integer cents. 0 to MAX_AMOUNT, at most 2 decimals."""
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError("Amount must be a number", field=field)
    if not amount.is_finite() or amount < 0:
        raise ValidationError("Amount must be a non-negative number", field=field)
    if amount > MAX_AMOUNT:
        raise ValidationError(f"Amount must be at most {MAX_AMOUNT}", field=field)
    try:
        exact = amount == amount.quantize(Decimal("0.01"))
    except InvalidOperation:
        raise ValidationError("Amount must be a number", field=field)
    if not exact:
        raise ValidationError("Amount may have at most 2 decimal places", field=field)
    return int(amount * 100)


def _normalize(key: str, value: str) -> str:
    if value is None or not str(value).strip():
        raise ValidationError("Setting value cannot be empty", field="value")
    value = str(value).strip()
    if key == LIFETIME_PRICE_KEY:
        try:
            price = Decimal(value)
        except InvalidOperation:
            raise ValidationError("Subscription price must be a number", field="value")
        if not price.is_finite() or price < LIFETIME_PRICE_MIN or price > LIFETIME_PRICE_MAX:
            raise ValidationError("Subscription price must be between $1 and $9999", field="value")
        value = str(price.quantize(Decimal("0.01")))
    return value


def get_all(db: Session) -> list[Setting]:
    return repository.list_settings(db)


def get_by_key(db: Session, key: str) -> Setting:
    setting = repository.get_setting(db, key)
    if setting is None:
        raise NotFoundError(f'Setting with key "{key}" not found')
    return setting


def update(db: Session, key: str, value: str) -> Setting:
    setting = get_by_key(db, key)
    setting.value = _normalize(key, value)
    db.commit()
    logger.info("Setting updated: %s", key)
    return setting


def create(db: Session, key: str, value: str, description: str | None = None) -> Setting:
    key = (key or "").strip()
    if not key:
        raise ValidationError("Setting key cannot be empty", field="key")
    if repository.get_setting(db, key) is not None:
        raise ConflictError(f'Setting with key "{key}" already exists')
    setting = Setting(key=key, value=_normalize(key, value), description=description)
    db.add(setting)
    db.commit()
    logger.info("Setting created: %s", key)
    return setting


def get_lifetime_price_cents(db: Session) -> int:
    """Configured lifetime price in cents. Raises ConfigurationError if unset or invalid."""
    setting = repository.get_setting(db, LIFETIME_PRICE_KEY)
    if setting is None:
        logger.error("Lifetime checkout attempted but %s is not configured", LIFETIME_PRICE_KEY)
        raise ConfigurationError(f"{LIFETIME_PRICE_KEY} is not configured")
    try:
        cents = parse_amount(setting.value, field=LIFETIME_PRICE_KEY)
    except ValidationError as e:
        logger.error("Invalid %s value %r", LIFETIME_PRICE_KEY, setting.value)
        raise ConfigurationError(f"{LIFETIME_PRICE_KEY} is invalid") from e
    if cents <= 0:
        raise ConfigurationError(f"{LIFETIME_PRICE_KEY} must be positive")
    return cents
