"""
Public documents: admin management under /public-documents and anonymous
access by token under /public/{token}.
"""
from fastapi import APIRouter, Depends, File, Form, UploadFile
from pydantic import BaseModel
from sqlalchemy.orm import Session

from auth import Identity, require_admin
from database import get_db
from documents import PDF_CONTENT_TYPE, read_pdf_upload
from schemas import PublicDocumentOut, PublicDocumentView
from services import public_document_service
from services.storage_service import LocalStorage, get_storage

router = APIRouter(prefix="/public-documents", tags=["public-documents"])
public_router = APIRouter(prefix="/public", tags=["public-documents"])


class StatusBody(BaseModel):
    is_active: bool


@router.post("", status_code=201, response_model=PublicDocumentOut)
def upload_public_document(
    title: str = Form(..., min_length=1, max_length=255),
    description: str | None = Form(None),
    file: UploadFile = File(...),
    identity: Identity = Depends(require_admin),
    db: Session = Depends(get_db),
    storage: LocalStorage = Depends(get_storage),
):
    data = read_pdf_upload(file)
    locator = storage.put(data, PDF_CONTENT_TYPE, identity.id, namespace="public")
    try:
        return public_document_service.create(
            db, title=title, description=description, file_url=locator, admin_id=identity.id,
        )
    except Exception:
        storage.delete(locator)
        raise


@router.get("", response_model=list[PublicDocumentOut])
def list_public_documents(identity: Identity = Depends(require_admin), db: Session = Depends(get_db)):
    return public_document_service.list_all(db)


@router.delete("/{public_document_id}")
def delete_public_document(
    public_document_id: str,
    identity: Identity = Depends(require_admin),
    db: Session = Depends(get_db),
    storage: LocalStorage = Depends(get_storage),
):
    public_document_service.delete(db, storage, public_document_id)
    return {"ok": True}


@router.patch("/{public_document_id}/status", response_model=PublicDocumentOut)
def set_status(
    public_document_id: str,
    body: StatusBody,
    identity: Identity = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return public_document_service.set_active(db, public_document_id, body.is_active)


@public_router.get("/{token}", response_model=PublicDocumentView)
def get_public_document(
    token: str,
    db: Session = Depends(get_db),
    storage: LocalStorage = Depends(get_storage),
):
    """No authentication: the token is the credential."""
    document = public_document_service.get_by_token(db, token)
    return PublicDocumentView(
        title=document.title,
        description=document.description,
        file_url=storage.signed_url(document.file_url),
    )
