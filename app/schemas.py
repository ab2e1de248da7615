"""
Response models.

Document payloads come in distinct types selected by the entitlement engine.
RestrictedDocumentView and DocumentSummary have no file_url field at all, so
a storage link cannot leak through them.
"""
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


def cents_to_amount(cents: int) -> float:
    return round(cents / 100, 2)


class _Orm(BaseModel):
    model_config = ConfigDict(from_attributes=True)


# --- Users ---

class UserOut(_Orm):
    id: str
    email: str
    name: str | None = None
    role: str
    picture: str | None = None
    industry: str | None = None
    contact: str | None = None
    address: str | None = None
    profile_completed: bool
    created_at: datetime


class AuthResult(BaseModel):
    user: UserOut
    access_token: str
    refresh_token: str


class PurchaseOut(BaseModel):
    id: str
    document_id: str | None
    document_title: str | None = None
    is_lifetime: bool
    amount: float
    purchased_at: datetime


# --- Documents ---

class DocumentSummary(BaseModel):
    """Listing row. Never carries a download link."""
    id: str
    title: str
    description: str | None = None
    price: float
    folder_id: str | None = None
    created_at: datetime
    status: str | None = None
    is_visible: bool | None = None


class DocumentView(BaseModel):
    id: str
    title: str
    description: str | None = None
    price: float
    folder_id: str | None = None
    created_at: datetime


class RestrictedDocumentView(DocumentView):
    has_access: Literal[False] = False


class EntitledDocumentView(DocumentView):
    has_access: Literal[True] = True
    file_url: str


class AdminDocumentView(EntitledDocumentView):
    status: str
    is_visible: bool
    admin_id: str
    updated_at: datetime


def document_fields(document) -> dict:
    return {
        "id": document.id,
        "title": document.title,
        "description": document.description,
        "price": cents_to_amount(document.price_cents),
        "folder_id": document.folder_id,
        "created_at": document.created_at,
    }


# --- Public documents ---

class PublicDocumentOut(_Orm):
    id: str
    title: str
    description: str | None = None
    token: str
    is_active: bool
    created_at: datetime


class PublicDocumentView(BaseModel):
    title: str
    description: str | None = None
    file_url: str


# --- Folders ---

class FolderOut(_Orm):
    id: str
    name: str
    parent_id: str | None = None
    admin_id: str
    created_at: datetime
    updated_at: datetime


class FolderNode(FolderOut):
    children: list["FolderNode"] = Field(default_factory=list)


class PathEntry(BaseModel):
    id: str
    name: str


class FolderContents(BaseModel):
    folder: FolderOut
    subfolders: list[FolderOut]
    documents: list[DocumentSummary]


# --- Payments ---

class CheckoutOut(BaseModel):
    session_id: str
    checkout_url: str | None


class ReconcileOut(BaseModel):
    success: bool
    already_processed: bool = False
    document_id: str | None = None
    type: str | None = None


class PaymentStatusOut(BaseModel):
    payment_status: str
    status: str | None


# --- Settings ---

class SettingOut(_Orm):
    key: str
    value: str
    description: str | None = None
    updated_at: datetime
