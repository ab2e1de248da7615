"""
Signed, time-limited download tokens using Fernet (symmetric, from cryptography).

A token wraps "<ttl>|<storage locator>". Fernet embeds the issue timestamp,
so expiry is checked on redemption against the ttl carried inside the token.
Tokens are opaque to clients and cannot be forged or altered without
FILE_URL_SIGNING_KEY.
"""
import os
import time

from cryptography.fernet import Fernet, InvalidToken

FERNET_KEY = os.environ.get("FILE_URL_SIGNING_KEY")
if not FERNET_KEY:
    raise RuntimeError("FILE_URL_SIGNING_KEY environment variable is required")
fernet = Fernet(FERNET_KEY.encode() if isinstance(FERNET_KEY, str) else FERNET_KEY)


def sign_locator(locator: str, ttl: int) -> str:
    """Wrap a storage locator in a URL-safe token valid for ttl seconds."""
    return fernet.encrypt(f"{int(ttl)}|{locator}".encode()).decode()


def unsign_locator(token: str) -> str | None:
    """
    Return the locator inside token, or None if the token is malformed,
    tampered with, or expired.
    """
    try:
        raw = fernet.decrypt(token.encode()).decode()
        issued_at = fernet.extract_timestamp(token.encode())
        ttl_raw, locator = raw.split("|", 1)
        ttl = int(ttl_raw)
    except (InvalidToken, ValueError):
        return None
    if time.time() > issued_at + ttl:
        return None
    return locator
