"""
Public documents: free PDFs shared by an unguessable token. No purchase check.
"""
import logging
import secrets

from sqlalchemy.orm import Session

import repository
from errors import NotFoundError, ValidationError
from models import PublicDocument
from services.storage_service import LocalStorage

logger = logging.getLogger(__name__)


def create(db: Session, *, title: str, description: str | None, file_url: str, admin_id: str) -> PublicDocument:
    title = (title or "").strip()
    if not title:
        raise ValidationError("Title is required", field="title")
    document = PublicDocument(
        title=title,
        description=description,
        file_url=file_url,
        admin_id=admin_id,
        token=secrets.token_urlsafe(32),
        is_active=True,
    )
    db.add(document)
    db.commit()
    logger.info("Public document created: %s by admin %s", document.id, admin_id)
    return document


def list_all(db: Session) -> list[PublicDocument]:
    return repository.list_public_documents(db)


def get_by_token(db: Session, token: str) -> PublicDocument:
    document = repository.get_public_document_by_token(db, token)
    if document is None or not document.is_active:
        raise NotFoundError("Document not found or has been disabled")
    return document


def delete(db: Session, storage: LocalStorage, public_document_id: str) -> None:
    """Hard delete: the row and its stored file."""
    document = repository.get_public_document(db, public_document_id)
    if document is None:
        raise NotFoundError("Public document not found")
    locator = document.file_url
    db.delete(document)
    db.commit()
    storage.delete(locator)
    logger.info("Public document deleted: %s", public_document_id)


def set_active(db: Session, public_document_id: str, is_active: bool) -> PublicDocument:
    document = repository.get_public_document(db, public_document_id)
    if document is None:
        raise NotFoundError("Public document not found")
    document.is_active = bool(is_active)
    db.commit()
    logger.info("Public document %s status changed to %s", public_document_id, document.is_active)
    return document
