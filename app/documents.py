"""
Documents router: catalog listing, viewer reads, access checks and admin
management.

Every read of a download link goes through entitlement_service. Uploads are
PDF only and bounded by MAX_UPLOAD_BYTES; the limit is enforced while
reading the upload, not after.
"""
from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from auth import Identity, optional_authenticated, require_admin, require_authenticated
from config import MAX_UPLOAD_BYTES
from database import get_db
from schemas import AdminDocumentView, DocumentSummary
from services import document_service, entitlement_service
from services.storage_service import LocalStorage, get_storage

router = APIRouter(prefix="/documents", tags=["documents"])

PDF_CONTENT_TYPE = "application/pdf"
_CHUNK = 1024 * 1024


def read_pdf_upload(file: UploadFile) -> bytes:
    """Read an uploaded PDF, rejecting other types and anything over MAX_UPLOAD_BYTES."""
    if file.content_type != PDF_CONTENT_TYPE:
        raise HTTPException(status_code=400, detail="Only PDF files are allowed")
    chunks: list[bytes] = []
    total = 0
    while True:
        chunk = file.file.read(_CHUNK)
        if not chunk:
            break
        total += len(chunk)
        if total > MAX_UPLOAD_BYTES:
            raise HTTPException(
                status_code=413,
                detail=f"File exceeds max size ({MAX_UPLOAD_BYTES} bytes)",
            )
        chunks.append(chunk)
    if total == 0:
        raise HTTPException(status_code=400, detail="Document file is empty")
    return b"".join(chunks)


# --- Request models ---


class DocumentUpdateBody(BaseModel):
    """Partial update; only fields present in the body are applied."""
    title: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    price: float | str | None = None
    folder_id: str | None = None
    is_visible: bool | None = None
    status: str | None = None


# --- Endpoints ---


@router.get("", response_model=list[DocumentSummary])
def list_documents(
    folder_id: str | None = None,
    identity: Identity | None = Depends(optional_authenticated),
    db: Session = Depends(get_db),
):
    """
    Browse the catalog. Anonymous and regular users see active, visible
    documents; admins see everything. folder_id=root lists root-level documents.
    """
    is_admin = identity is not None and identity.is_admin
    return entitlement_service.list_documents(db, folder_id=folder_id, is_admin=is_admin)


@router.get("/{document_id}")
def get_document(
    document_id: str,
    identity: Identity = Depends(require_authenticated),
    db: Session = Depends(get_db),
    storage: LocalStorage = Depends(get_storage),
):
    """Document detail; file_url is present only when the caller has access."""
    return entitlement_service.get_document_for_viewer(db, storage, document_id, identity.id, identity.role)


@router.get("/{document_id}/access")
def check_access(
    document_id: str,
    identity: Identity = Depends(require_authenticated),
    db: Session = Depends(get_db),
):
    if identity.is_admin:
        return {"has_access": True}
    return {"has_access": entitlement_service.has_access(db, identity.id, document_id)}


@router.get("/{document_id}/download")
def download_link(
    document_id: str,
    identity: Identity = Depends(require_authenticated),
    db: Session = Depends(get_db),
    storage: LocalStorage = Depends(get_storage),
):
    """Signed, short-lived download URL. 403 without a purchase."""
    view = entitlement_service.get_document_for_viewer(db, storage, document_id, identity.id, identity.role)
    if not view.has_access:
        raise HTTPException(status_code=403, detail="Purchase required to download this document")
    return {"url": view.file_url}


@router.post("", status_code=201, response_model=AdminDocumentView)
def upload_document(
    title: str = Form(..., min_length=1, max_length=255),
    description: str | None = Form(None),
    price: str | None = Form(None),
    folder_id: str | None = Form(None),
    file: UploadFile = File(...),
    identity: Identity = Depends(require_admin),
    db: Session = Depends(get_db),
    storage: LocalStorage = Depends(get_storage),
):
    data = read_pdf_upload(file)
    locator = storage.put(data, PDF_CONTENT_TYPE, identity.id)
    try:
        document = document_service.create(
            db,
            title=title,
            description=description,
            price=price,
            file_url=locator,
            admin_id=identity.id,
            folder_id=folder_id,
        )
    except Exception:
        storage.delete(locator)
        raise
    return entitlement_service.admin_view(document, storage)


@router.put("/{document_id}", response_model=AdminDocumentView)
def update_document(
    document_id: str,
    body: DocumentUpdateBody,
    identity: Identity = Depends(require_admin),
    db: Session = Depends(get_db),
    storage: LocalStorage = Depends(get_storage),
):
    document = document_service.update(db, document_id, body.model_dump(exclude_unset=True))
    return entitlement_service.admin_view(document, storage)


@router.delete("/{document_id}")
def delete_document(
    document_id: str,
    identity: Identity = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Soft delete: the document becomes inactive."""
    document = document_service.delete(db, document_id)
    return {"ok": True, "id": document.id, "status": document.status}


@router.patch("/{document_id}/visibility")
def toggle_visibility(
    document_id: str,
    identity: Identity = Depends(require_admin),
    db: Session = Depends(get_db),
):
    document = document_service.toggle_visibility(db, document_id)
    return {"id": document.id, "is_visible": document.is_visible}
