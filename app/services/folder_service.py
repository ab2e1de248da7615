"""
Folder service: admin-owned folder tree over a flat parent-pointer table.

- Tree and descendant computations load the folder table once and walk an
  in-memory adjacency map with an explicit stack.
- Every write to parent_id re-validates acyclicity inside the same
  transaction as the write.
- Delete is strict: a folder with subfolders or active documents is refused.
"""
import logging
from collections import defaultdict

from sqlalchemy.orm import Session

import repository
from errors import (
    AppError,
    AuthorizationError,
    CannotMoveToSelf,
    CircularReference,
    FolderNotEmpty,
    NotFoundError,
    ParentNotFound,
    ValidationError,
)
from models import Folder
from schemas import FolderContents, FolderNode, FolderOut, PathEntry
from services import entitlement_service

logger = logging.getLogger(__name__)

MAX_NAME_LENGTH = 100


def _clean_name(name: str | None) -> str:
    name = (name or "").strip()
    if not name:
        raise ValidationError("Folder name is required", field="name")
    if len(name) > MAX_NAME_LENGTH:
        raise ValidationError(f"Folder name must be at most {MAX_NAME_LENGTH} characters", field="name")
    return name


def _get_owned(db: Session, folder_id: str, owner_id: str, action: str) -> Folder:
    folder = repository.get_folder(db, folder_id)
    if folder is None:
        raise NotFoundError("Folder not found")
    if folder.admin_id != owner_id:
        raise AuthorizationError(f"You can only {action} your own folders")
    return folder


def get(db: Session, folder_id: str) -> Folder:
    folder = repository.get_folder(db, folder_id)
    if folder is None:
        raise NotFoundError("Folder not found")
    return folder


def create(db: Session, name: str, parent_id: str | None, owner_id: str) -> Folder:
    name = _clean_name(name)
    if parent_id and repository.get_folder(db, parent_id) is None:
        raise ParentNotFound()

    folder = Folder(name=name, parent_id=parent_id or None, admin_id=owner_id)
    db.add(folder)
    db.commit()
    logger.info("Folder created: %s by admin %s", folder.id, owner_id)
    return folder


def rename(db: Session, folder_id: str, name: str, owner_id: str) -> Folder:
    name = _clean_name(name)
    folder = _get_owned(db, folder_id, owner_id, "update")
    folder.name = name
    db.commit()
    logger.info("Folder renamed: %s by admin %s", folder_id, owner_id)
    return folder


def build_tree(db: Session) -> list[FolderNode]:
    """
    Forest of all folders. Folders with no parent, or whose parent does not
    resolve, are roots. Siblings keep creation order.
    """
    folders = repository.list_folders(db)
    nodes = {f.id: FolderNode.model_validate(f) for f in folders}

    roots: list[FolderNode] = []
    for folder in folders:
        node = nodes[folder.id]
        parent = nodes.get(folder.parent_id) if folder.parent_id else None
        if parent is None:
            roots.append(node)
        else:
            parent.children.append(node)
    return roots


def _children_map(folders: list[Folder]) -> dict[str, list[str]]:
    children = defaultdict(list)
    for folder in folders:
        if folder.parent_id:
            children[folder.parent_id].append(folder.id)
    return children


def descendant_ids(folders: list[Folder], folder_id: str) -> set[str]:
    """All ids strictly below folder_id."""
    children = _children_map(folders)
    found: set[str] = set()
    stack = list(children.get(folder_id, []))
    while stack:
        current = stack.pop()
        if current in found:
            continue
        found.add(current)
        stack.extend(children.get(current, []))
    return found


def move(db: Session, folder_id: str, new_parent_id: str | None, owner_id: str) -> Folder:
    # Lock the table snapshot used for the cycle check until the write commits
    folders = repository.list_folders(db, for_update=True)
    by_id = {f.id: f for f in folders}

    folder = by_id.get(folder_id)
    if folder is None:
        raise NotFoundError("Folder not found")
    if folder.admin_id != owner_id:
        raise AuthorizationError("You can only move your own folders")

    if new_parent_id:
        if new_parent_id == folder_id:
            raise CannotMoveToSelf()
        parent = by_id.get(new_parent_id)
        if parent is None:
            raise ParentNotFound("Target parent folder does not exist")
        if parent.admin_id != owner_id:
            raise AuthorizationError("Cannot move folder into another admin's folder")
        if new_parent_id in descendant_ids(folders, folder_id):
            raise CircularReference()

    folder.parent_id = new_parent_id or None
    db.commit()
    logger.info("Folder moved: %s to parent %s by admin %s", folder_id, new_parent_id, owner_id)
    return folder


def delete(db: Session, folder_id: str, owner_id: str) -> None:
    folder = _get_owned(db, folder_id, owner_id, "delete")

    subfolders = repository.list_child_folders(db, folder_id)
    if subfolders:
        raise FolderNotEmpty(
            f"Cannot delete folder: it contains {len(subfolders)} subfolder(s). Delete subfolders first."
        )
    documents = repository.count_active_documents_in_folder(db, folder_id)
    if documents:
        raise FolderNotEmpty(
            f"Cannot delete folder: it contains {documents} document(s). Move or delete documents first."
        )

    db.delete(folder)
    db.commit()
    logger.info("Folder deleted: %s by admin %s", folder_id, owner_id)


def resolve_path(db: Session, folder_id: str) -> list[PathEntry]:
    """Breadcrumb from the root down to folder_id."""
    path: list[PathEntry] = []
    seen: set[str] = set()
    current_id = folder_id
    while current_id:
        if current_id in seen:
            logger.error("Folder hierarchy loop at %s while resolving path of %s", current_id, folder_id)
            raise AppError("Folder hierarchy is inconsistent")
        seen.add(current_id)
        folder = repository.get_folder(db, current_id)
        if folder is None:
            raise NotFoundError("Folder not found")
        path.insert(0, PathEntry(id=folder.id, name=folder.name))
        current_id = folder.parent_id
    return path


def get_with_documents(db: Session, folder_id: str, *, is_admin: bool = False) -> FolderContents:
    folder = get(db, folder_id)
    return FolderContents(
        folder=FolderOut.model_validate(folder),
        subfolders=[FolderOut.model_validate(f) for f in repository.list_child_folders(db, folder_id)],
        documents=entitlement_service.list_documents(db, folder_id=folder_id, is_admin=is_admin),
    )
