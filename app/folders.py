"""
Folders router. Any authenticated user can browse the hierarchy; only admins
create, rename, move and delete, and only their own folders.
"""
from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from auth import Identity, require_admin, require_authenticated
from database import get_db
from schemas import FolderContents, FolderNode, FolderOut, PathEntry
from services import folder_service

router = APIRouter(prefix="/folders", tags=["folders"])


class FolderCreateBody(BaseModel):
    name: str = Field(..., max_length=255)
    parent_id: str | None = None


class FolderRenameBody(BaseModel):
    name: str = Field(..., max_length=255)


class FolderMoveBody(BaseModel):
    """parent_id null moves the folder to the root."""
    parent_id: str | None = None


@router.get("/tree", response_model=list[FolderNode])
def get_tree(identity: Identity = Depends(require_authenticated), db: Session = Depends(get_db)):
    return folder_service.build_tree(db)


@router.get("/{folder_id}", response_model=FolderOut)
def get_folder(folder_id: str, identity: Identity = Depends(require_authenticated), db: Session = Depends(get_db)):
    return folder_service.get(db, folder_id)


@router.get("/{folder_id}/documents", response_model=FolderContents)
def get_folder_documents(
    folder_id: str,
    identity: Identity = Depends(require_authenticated),
    db: Session = Depends(get_db),
):
    return folder_service.get_with_documents(db, folder_id, is_admin=identity.is_admin)


@router.get("/{folder_id}/path", response_model=list[PathEntry])
def get_folder_path(folder_id: str, identity: Identity = Depends(require_authenticated), db: Session = Depends(get_db)):
    """Breadcrumb from the root to this folder."""
    return folder_service.resolve_path(db, folder_id)


@router.post("", status_code=201, response_model=FolderOut)
def create_folder(body: FolderCreateBody, identity: Identity = Depends(require_admin), db: Session = Depends(get_db)):
    return folder_service.create(db, body.name, body.parent_id, identity.id)


@router.put("/{folder_id}", response_model=FolderOut)
def rename_folder(
    folder_id: str,
    body: FolderRenameBody,
    identity: Identity = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return folder_service.rename(db, folder_id, body.name, identity.id)


@router.put("/{folder_id}/move", response_model=FolderOut)
def move_folder(
    folder_id: str,
    body: FolderMoveBody,
    identity: Identity = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return folder_service.move(db, folder_id, body.parent_id, identity.id)


@router.delete("/{folder_id}")
def delete_folder(folder_id: str, identity: Identity = Depends(require_admin), db: Session = Depends(get_db)):
    folder_service.delete(db, folder_id, identity.id)
    return {"ok": True, "message": "Folder deleted successfully"}
