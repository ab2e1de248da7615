"""
Auth service: Google sign-in, token refresh, admin password login and
password management.

HTTP concerns live in auth.py; everything here raises errors from errors.py.
"""
import logging

import bcrypt
from jose import JWTError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

import repository
from config import BCRYPT_ROUNDS, MIN_PASSWORD_LENGTH
from errors import (
    AuthorizationError,
    CurrentPasswordIncorrect,
    CurrentPasswordRequired,
    InvalidCredentials,
    InvalidOrExpiredCredential,
    UserNotFound,
    ValidationError,
)
from models import ROLE_ADMIN, ROLE_USER, User
from security import create_access_token, create_refresh_token, decode_refresh_token
from services.google_identity import GoogleIdentityVerifier

logger = logging.getLogger(__name__)


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=BCRYPT_ROUNDS)).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False


def issue_tokens(user: User) -> dict:
    return {
        "access_token": create_access_token(user),
        "refresh_token": create_refresh_token(user),
    }


def authenticate_google(db: Session, verifier: GoogleIdentityVerifier, id_token: str) -> tuple[User, dict]:
    """
    Verify a Google ID token, find or create the user by email, and issue an
    access/refresh pair. New users get role "user".
    """
    claims = verifier.verify(id_token)

    user = repository.get_user_by_email(db, claims.email)
    if user is None:
        try:
            user = repository.create_user(
                db,
                email=claims.email,
                name=claims.name,
                role=ROLE_USER,
                google_id=claims.subject,
                picture=claims.picture,
            )
            db.commit()
            logger.info("New user created via Google sign-in: %s", user.id)
        except IntegrityError:
            # A concurrent first sign-in with the same email won the insert
            db.rollback()
            user = repository.get_user_by_email(db, claims.email)
            if user is None:
                raise
            logger.info("User created concurrently, signing in: %s", user.id)
    else:
        if not user.google_id:
            user.google_id = claims.subject
            db.commit()
        logger.info("User signed in via Google: %s", user.id)

    return user, issue_tokens(user)


def refresh_access_token(db: Session, refresh_token: str) -> str:
    """Exchange a valid refresh token for a new access token. No rotation."""
    try:
        payload = decode_refresh_token(refresh_token)
    except JWTError as e:
        raise InvalidOrExpiredCredential("Invalid or expired refresh token") from e

    user = repository.get_user_by_email(db, payload.get("email") or "")
    if user is None:
        raise UserNotFound()
    return create_access_token(user)


def authenticate_admin_password(db: Session, email: str, password: str) -> tuple[User, dict]:
    """
    Password login for admins. Unknown email, non-admin role, unset password
    and wrong password all fail with the same InvalidCredentials.
    """
    user = repository.get_user_by_email(db, email)
    if (
        user is None
        or user.role != ROLE_ADMIN
        or not user.password_hash
        or not verify_password(password, user.password_hash)
    ):
        raise InvalidCredentials()

    logger.info("Admin logged in with password: %s", user.id)
    return user, issue_tokens(user)


def set_admin_password(
    db: Session,
    user_id: str,
    new_password: str,
    current_password: str | None = None,
) -> None:
    user = repository.get_user(db, user_id)
    if user is None:
        raise UserNotFound()
    if user.role != ROLE_ADMIN:
        raise AuthorizationError("Only admins can use this endpoint")
    if not new_password or len(new_password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters long",
            field="password",
        )

    if user.password_hash:
        if not current_password:
            raise CurrentPasswordRequired()
        if not verify_password(current_password, user.password_hash):
            raise CurrentPasswordIncorrect()

    user.password_hash = hash_password(new_password)
    db.commit()
    logger.info("Password set for admin: %s", user.id)


def provision_admin(db: Session, email: str, name: str | None, password: str) -> User:
    """Create an admin, or promote an existing user, and set its password."""
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters long",
            field="password",
        )
    user = repository.get_user_by_email(db, email)
    if user is None:
        user = repository.create_user(db, email=email, name=name, role=ROLE_ADMIN)
    else:
        user.role = ROLE_ADMIN
        if name:
            user.name = name
    user.password_hash = hash_password(password)
    db.commit()
    logger.info("Admin provisioned: %s", user.id)
    return user
