"""
Auth router and the authentication dependencies used by every other router.

- POST /auth/google exchanges a Google ID token for access + refresh tokens
  (creating the user on first sign-in).
- POST /auth/refresh issues a new access token from a refresh token.
- POST /auth/admin/login is the admin email/password login.
- POST /auth/admin/set-password sets or changes an admin password.
- require_authenticated / optional_authenticated / require_role read the
  access token from the Authorization: Bearer header. Identity comes from the
  token claims; no database lookup per request.
"""
import logging
from dataclasses import dataclass

from fastapi import APIRouter, Depends, HTTPException, Request
from jose import JWTError
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

import repository
from database import get_db
from models import ROLE_ADMIN
from schemas import AuthResult, UserOut
from security import decode_access_token
from services import auth_service
from services.google_identity import GoogleIdentityVerifier, get_identity_verifier

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@dataclass(frozen=True)
class Identity:
    id: str
    email: str
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN


def _bearer_token(request: Request) -> str | None:
    header = request.headers.get("Authorization") or ""
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def _identity_from_token(token: str) -> Identity:
    """Raises JWTError when the token is invalid, expired, or not an access token."""
    payload = decode_access_token(token)
    user_id, email, role = payload.get("sub"), payload.get("email"), payload.get("role")
    if not user_id or not role:
        raise JWTError("Token missing sub or role")
    return Identity(id=user_id, email=email or "", role=role)


def require_authenticated(request: Request) -> Identity:
    """FastAPI dependency: 401 if the bearer token is missing or invalid."""
    token = _bearer_token(request)
    if not token:
        raise HTTPException(status_code=401, detail="Access token required")
    try:
        return _identity_from_token(token)
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid or expired token")


def optional_authenticated(request: Request) -> Identity | None:
    """FastAPI dependency: the identity if a valid token is present, else None. Never fails."""
    token = _bearer_token(request)
    if not token:
        return None
    try:
        return _identity_from_token(token)
    except JWTError:
        logger.debug("Optional auth: invalid token, continuing as anonymous")
        return None


def require_role(role: str):
    """Dependency factory: 403 unless the authenticated role is exactly role."""
    def dependency(identity: Identity = Depends(require_authenticated)) -> Identity:
        if identity.role != role:
            raise HTTPException(status_code=403, detail="Insufficient permissions")
        return identity
    return dependency


require_admin = require_role(ROLE_ADMIN)


# --- Request models ---


class GoogleAuthBody(BaseModel):
    id_token: str = Field(..., min_length=1)


class RefreshBody(BaseModel):
    refresh_token: str = Field(..., min_length=1)


class AdminLoginBody(BaseModel):
    email: str = Field(..., min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    password: str = Field(..., min_length=1)


class SetPasswordBody(BaseModel):
    password: str = Field(..., min_length=1)
    current_password: str | None = None


# --- Endpoints ---


@router.post("/google", response_model=AuthResult)
def google_auth(
    body: GoogleAuthBody,
    db: Session = Depends(get_db),
    verifier: GoogleIdentityVerifier = Depends(get_identity_verifier),
):
    """Sign in (or register) with a Google ID token."""
    user, tokens = auth_service.authenticate_google(db, verifier, body.id_token)
    return {"user": user, **tokens}


@router.post("/refresh")
def refresh(body: RefreshBody, db: Session = Depends(get_db)):
    """New access token for a valid refresh token. The refresh token is not rotated."""
    return {"access_token": auth_service.refresh_access_token(db, body.refresh_token)}


@router.get("/profile", response_model=UserOut)
def profile(identity: Identity = Depends(require_authenticated), db: Session = Depends(get_db)):
    user = repository.get_user(db, identity.id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@router.post("/logout")
def logout(identity: Identity = Depends(require_authenticated)):
    """
    Stateless JWTs: the client discards its tokens. Kept so clients have a
    uniform logout call.
    """
    return {"ok": True, "message": "Logout successful. Please remove tokens from client."}


@router.post("/admin/login", response_model=AuthResult)
def admin_login(body: AdminLoginBody, db: Session = Depends(get_db)):
    user, tokens = auth_service.authenticate_admin_password(db, body.email, body.password)
    return {"user": user, **tokens}


@router.post("/admin/set-password")
def set_password(
    body: SetPasswordBody,
    identity: Identity = Depends(require_authenticated),
    db: Session = Depends(get_db),
):
    """Set the initial admin password, or change it (current_password required then)."""
    if not identity.is_admin:
        raise HTTPException(status_code=403, detail="Only admins can use this endpoint")
    auth_service.set_admin_password(db, identity.id, body.password, body.current_password)
    return {"ok": True}
