"""
Document catalog management (admin side): create, update, soft delete,
visibility toggle. Reads for viewers go through entitlement_service.
"""
import logging

from sqlalchemy.orm import Session

import repository
from errors import NotFoundError, ParentNotFound, ValidationError
from models import DOCUMENT_ACTIVE, DOCUMENT_INACTIVE, Document
from services.settings_service import parse_amount

logger = logging.getLogger(__name__)

MAX_TITLE_LENGTH = 255


def _clean_title(title: str | None) -> str:
    title = (title or "").strip()
    if not title:
        raise ValidationError("Title is required", field="title")
    if len(title) > MAX_TITLE_LENGTH:
        raise ValidationError(f"Title must be at most {MAX_TITLE_LENGTH} characters", field="title")
    return title


def _check_folder(db: Session, folder_id: str | None) -> str | None:
    if folder_id and repository.get_folder(db, folder_id) is None:
        raise ParentNotFound("Folder does not exist")
    return folder_id or None


def get(db: Session, document_id: str) -> Document:
    document = repository.get_document(db, document_id)
    if document is None:
        raise NotFoundError("Document not found")
    return document


def create(
    db: Session,
    *,
    title: str,
    description: str | None,
    price,
    file_url: str,
    admin_id: str,
    folder_id: str | None = None,
) -> Document:
    """price defaults to 0 when empty (documents covered only by lifetime access)."""
    document = Document(
        title=_clean_title(title),
        description=description,
        price_cents=parse_amount(price) if price not in (None, "") else 0,
        file_url=file_url,
        admin_id=admin_id,
        folder_id=_check_folder(db, folder_id),
        status=DOCUMENT_ACTIVE,
        is_visible=True,
    )
    db.add(document)
    db.commit()
    logger.info("Document created: %s by admin %s", document.id, admin_id)
    return document


def update(db: Session, document_id: str, updates: dict) -> Document:
    document = get(db, document_id)

    if "title" in updates:
        document.title = _clean_title(updates["title"])
    if "description" in updates:
        document.description = updates["description"]
    if "price" in updates:
        document.price_cents = parse_amount(updates["price"])
    if "folder_id" in updates:
        document.folder_id = _check_folder(db, updates["folder_id"])
    if "is_visible" in updates and updates["is_visible"] is not None:
        document.is_visible = bool(updates["is_visible"])
    if "status" in updates and updates["status"] is not None:
        if updates["status"] not in (DOCUMENT_ACTIVE, DOCUMENT_INACTIVE):
            raise ValidationError("Status must be active or inactive", field="status")
        document.status = updates["status"]

    db.commit()
    logger.info("Document updated: %s", document_id)
    return document


def delete(db: Session, document_id: str) -> Document:
    """Soft delete; the stored file stays so existing purchases remain intact."""
    document = get(db, document_id)
    document.status = DOCUMENT_INACTIVE
    db.commit()
    logger.info("Document deleted: %s", document_id)
    return document


def toggle_visibility(db: Session, document_id: str) -> Document:
    document = get(db, document_id)
    document.is_visible = not document.is_visible
    db.commit()
    logger.info("Document %s visibility set to %s", document_id, document.is_visible)
    return document
