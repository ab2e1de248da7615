"""
Data models for the document paywall backend.

Prices and amounts are integer cents (USD). Ids are UUID4 strings.
"""
import uuid
from datetime import datetime, UTC

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    text,
)

from database import Base

ROLE_ADMIN = "admin"
ROLE_USER = "user"

DOCUMENT_ACTIVE = "active"
DOCUMENT_INACTIVE = "inactive"

PAYMENT_PENDING = "pending"
PAYMENT_COMPLETED = "completed"
PAYMENT_FAILED = "failed"
PAYMENT_EXPIRED = "expired"

PURCHASE_COMPLETED = "completed"


def _uuid() -> str:
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now(UTC)


class User(Base):
    """
    Identity record.

    - email: unique, stored trimmed and lower-cased.
    - role: "admin" or "user"; gates admin routes and the password login.
    - password_hash: bcrypt hash (salt embedded); only admins have one.
    - google_id: Google subject id, set on Google sign-in.
    - industry / contact / address: profile fields; profile_completed is
      derived from industry and contact.
    """
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=_uuid)
    email = Column(String(255), unique=True, nullable=False, index=True)
    name = Column(String(255))
    role = Column(String(16), nullable=False, default=ROLE_USER)
    password_hash = Column(String(255), nullable=True)
    google_id = Column(String(255), nullable=True)
    picture = Column(String(1024), nullable=True)

    industry = Column(String(255), nullable=True)
    contact = Column(String(255), nullable=True)
    address = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_now, onupdate=_now)

    @property
    def profile_completed(self) -> bool:
        return bool((self.industry or "").strip() and (self.contact or "").strip())


class Folder(Base):
    """Node in a strict tree; parent_id null means root. Owned by its admin."""
    __tablename__ = "folders"

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(String(100), nullable=False)
    parent_id = Column(String(36), ForeignKey("folders.id"), nullable=True, index=True)
    admin_id = Column(String(36), ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_now, onupdate=_now)


class Document(Base):
    """
    Purchasable PDF.

    - file_url: storage locator; never returned to a viewer without access.
    - status: "active" | "inactive" (soft delete).
    - is_visible: controls non-admin listings only, independent of status.
    """
    __tablename__ = "documents"

    id = Column(String(36), primary_key=True, default=_uuid)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    price_cents = Column(Integer, nullable=False, default=0)
    file_url = Column(String(1024), nullable=False)
    admin_id = Column(String(36), ForeignKey("users.id"), nullable=False)
    folder_id = Column(String(36), ForeignKey("folders.id", ondelete="SET NULL"), nullable=True, index=True)
    status = Column(String(16), nullable=False, default=DOCUMENT_ACTIVE)
    is_visible = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_now, onupdate=_now)


class PublicDocument(Base):
    """Free document addressed by an unguessable token; no purchase involved."""
    __tablename__ = "public_documents"

    id = Column(String(36), primary_key=True, default=_uuid)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    file_url = Column(String(1024), nullable=False)
    admin_id = Column(String(36), ForeignKey("users.id"), nullable=False)
    token = Column(String(64), unique=True, nullable=False, index=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_now, onupdate=_now)


class Payment(Base):
    """
    Shadow of a Stripe checkout session.

    status: pending -> completed | failed | expired. document_id null means
    the session sells lifetime access.
    """
    __tablename__ = "payments"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    document_id = Column(String(36), ForeignKey("documents.id"), nullable=True)
    stripe_session_id = Column(String(255), unique=True, nullable=False, index=True)
    amount_cents = Column(Integer, nullable=False)
    status = Column(String(16), nullable=False, default=PAYMENT_PENDING)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_now, onupdate=_now)


class Purchase(Base):
    """
    Entitlement grant, created once per reconciled Payment and never updated.

    document_id null is a lifetime grant. The partial unique indexes allow at
    most one lifetime grant per user and one grant per user+document.
    """
    __tablename__ = "purchases"
    __table_args__ = (
        Index(
            "uq_purchases_lifetime_per_user",
            "user_id",
            unique=True,
            sqlite_where=text("document_id IS NULL"),
            postgresql_where=text("document_id IS NULL"),
        ),
        Index(
            "uq_purchases_user_document",
            "user_id",
            "document_id",
            unique=True,
            sqlite_where=text("document_id IS NOT NULL"),
            postgresql_where=text("document_id IS NOT NULL"),
        ),
    )

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    document_id = Column(String(36), ForeignKey("documents.id"), nullable=True)
    payment_id = Column(String(36), ForeignKey("payments.id"), unique=True, nullable=False)
    amount_cents = Column(Integer, nullable=False)
    status = Column(String(16), nullable=False, default=PURCHASE_COMPLETED)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)


class Setting(Base):
    """Key/value application setting, e.g. lifetime_subscription_price."""
    __tablename__ = "settings"

    key = Column(String(100), primary_key=True)
    value = Column(String(1024), nullable=False)
    description = Column(Text, nullable=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_now, onupdate=_now)
