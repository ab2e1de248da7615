"""
Entitlement engine: the single place that decides whether a user may see a
document's download link.

Access is granted by a lifetime purchase (document_id null) or a completed
purchase of that exact document. The admin shortcut is applied by callers
holding the role; has_access itself only consults purchases.
"""
import logging

from sqlalchemy.orm import Session

import repository
from errors import NotFoundError
from models import ROLE_ADMIN
from schemas import (
    AdminDocumentView,
    DocumentSummary,
    EntitledDocumentView,
    RestrictedDocumentView,
    cents_to_amount,
    document_fields,
)
from services.storage_service import LocalStorage

logger = logging.getLogger(__name__)


def has_access(db: Session, user_id: str, document_id: str | None = None) -> bool:
    if repository.find_lifetime_purchase(db, user_id) is not None:
        logger.debug("User %s has lifetime access", user_id)
        return True
    if document_id is None:
        return False
    return repository.find_document_purchase(db, user_id, document_id) is not None


def has_lifetime_access(db: Session, user_id: str) -> bool:
    return has_access(db, user_id, None)


def get_document_for_viewer(
    db: Session,
    storage: LocalStorage,
    document_id: str,
    user_id: str,
    role: str,
) -> AdminDocumentView | EntitledDocumentView | RestrictedDocumentView:
    document = repository.get_document(db, document_id)

    if role == ROLE_ADMIN:
        if document is None:
            raise NotFoundError("Document not found")
        return admin_view(document, storage)

    document = repository.get_active_document(db, document_id)
    if document is None:
        raise NotFoundError("Document not found")

    if has_access(db, user_id, document.id):
        return EntitledDocumentView(
            **document_fields(document),
            file_url=storage.signed_url(document.file_url),
        )
    return RestrictedDocumentView(**document_fields(document))


def admin_view(document, storage: LocalStorage) -> AdminDocumentView:
    """Full record for admins, whatever the status."""
    return AdminDocumentView(
        **document_fields(document),
        file_url=storage.signed_url(document.file_url),
        status=document.status,
        is_visible=document.is_visible,
        admin_id=document.admin_id,
        updated_at=document.updated_at,
    )


def list_documents(db: Session, *, folder_id: str | None = None, is_admin: bool = False) -> list[DocumentSummary]:
    """
    Admins see every status and hidden documents; everyone else only active,
    visible ones. folder_id "root" selects documents outside any folder.
    """
    documents = repository.list_documents(
        db,
        folder_id=None if folder_id == "root" else folder_id,
        root_only=folder_id == "root",
        include_hidden=is_admin,
    )
    return [summarize(d, is_admin=is_admin) for d in documents]


def summarize(document, *, is_admin: bool = False) -> DocumentSummary:
    summary = DocumentSummary(
        id=document.id,
        title=document.title,
        description=document.description,
        price=cents_to_amount(document.price_cents),
        folder_id=document.folder_id,
        created_at=document.created_at,
    )
    if is_admin:
        summary.status = document.status
        summary.is_visible = document.is_visible
    return summary
