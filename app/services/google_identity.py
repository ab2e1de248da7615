"""
Google ID token verification.

The frontend signs the user in with Google and posts the resulting ID token.
We verify it ourselves: RS256 signature against Google's published JWKS,
audience = GOOGLE_CLIENT_ID, issuer accounts.google.com, expiry. JWKS is
fetched with a timeout and cached on the verifier for the process lifetime;
an unknown key id triggers one refetch (Google rotates keys).
"""
import logging
import threading
from dataclasses import dataclass
from functools import lru_cache

import requests
from jose import jwt, JWTError

from config import GOOGLE_CERTS_URL, GOOGLE_CLIENT_ID, GOOGLE_ISSUERS, GOOGLE_REQUEST_TIMEOUT
from errors import EmailNotVerified, ExternalProviderError, InvalidAssertion

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GoogleClaims:
    email: str
    name: str | None
    subject: str
    picture: str | None
    email_verified: bool


class GoogleIdentityVerifier:
    def __init__(self, client_id: str, certs_url: str = GOOGLE_CERTS_URL):
        self.client_id = client_id
        self.certs_url = certs_url
        self._jwks: dict | None = None
        self._lock = threading.Lock()

    def _fetch_jwks(self) -> dict:
        try:
            resp = requests.get(self.certs_url, timeout=GOOGLE_REQUEST_TIMEOUT)
            resp.raise_for_status()
            return resp.json()
        except (requests.RequestException, ValueError) as e:
            logger.error("Failed to fetch Google signing keys: %s", e)
            raise ExternalProviderError(f"Google JWKS fetch failed: {e}") from e

    def _signing_keys(self, kid: str | None) -> dict:
        with self._lock:
            known = {k.get("kid") for k in (self._jwks or {}).get("keys", [])}
            if self._jwks is None or (kid and kid not in known):
                self._jwks = self._fetch_jwks()
            return self._jwks

    def verify(self, id_token: str) -> GoogleClaims:
        """
        Return verified claims. Raises InvalidAssertion on a bad signature,
        audience, issuer or expiry; EmailNotVerified when Google reports the
        address as unverified.
        """
        try:
            header = jwt.get_unverified_header(id_token)
            payload = jwt.decode(
                id_token,
                self._signing_keys(header.get("kid")),
                algorithms=["RS256"],
                audience=self.client_id,
                issuer=GOOGLE_ISSUERS,
                options={"verify_at_hash": False},
            )
        except JWTError as e:
            logger.info("Rejected Google ID token: %s", e)
            raise InvalidAssertion() from e

        email = payload.get("email")
        subject = payload.get("sub")
        if not email or not subject:
            raise InvalidAssertion("Google token missing sub or email")
        if payload.get("email_verified") is not True:
            raise EmailNotVerified()
        return GoogleClaims(
            email=email,
            name=payload.get("name"),
            subject=subject,
            picture=payload.get("picture"),
            email_verified=True,
        )


@lru_cache(maxsize=1)
def get_identity_verifier() -> GoogleIdentityVerifier:
    """FastAPI dependency: process-wide verifier, built on first use."""
    return GoogleIdentityVerifier(GOOGLE_CLIENT_ID)
