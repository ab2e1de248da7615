"""
Serves stored files for signed download URLs (/files/{token}).

The token itself is the authorization: it is only handed out by endpoints
that already checked entitlement, and it expires.
"""
from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import FileResponse

from services.storage_service import LocalStorage, get_storage

router = APIRouter(prefix="/files", tags=["files"])


@router.get("/{token}")
def download_file(token: str, storage: LocalStorage = Depends(get_storage)):
    path = storage.open_signed(token)
    if path is None:
        raise HTTPException(status_code=404, detail="Link is invalid or has expired")
    return FileResponse(path, media_type="application/pdf")
