"""
Settings router. Only keys in PUBLIC_SETTING_KEYS are readable without
authentication; everything else is admin-only.
"""
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from auth import Identity, require_admin
from config import PUBLIC_SETTING_KEYS
from database import get_db
from schemas import SettingOut
from services import settings_service

router = APIRouter(prefix="/settings", tags=["settings"])


class SettingCreateBody(BaseModel):
    key: str = Field(..., min_length=1, max_length=100)
    value: str = Field(..., min_length=1, max_length=1024)
    description: str | None = None


class SettingUpdateBody(BaseModel):
    value: str = Field(..., min_length=1, max_length=1024)


@router.get("/public/{key}", response_model=SettingOut)
def get_public_setting(key: str, db: Session = Depends(get_db)):
    if key not in PUBLIC_SETTING_KEYS:
        raise HTTPException(status_code=403, detail="This setting is not publicly accessible")
    return settings_service.get_by_key(db, key)


@router.get("", response_model=list[SettingOut])
def list_settings(identity: Identity = Depends(require_admin), db: Session = Depends(get_db)):
    return settings_service.get_all(db)


@router.get("/{key}", response_model=SettingOut)
def get_setting(key: str, identity: Identity = Depends(require_admin), db: Session = Depends(get_db)):
    return settings_service.get_by_key(db, key)


@router.put("/{key}", response_model=SettingOut)
def update_setting(
    key: str,
    body: SettingUpdateBody,
    identity: Identity = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return settings_service.update(db, key, body.value)


@router.post("", status_code=201, response_model=SettingOut)
def create_setting(body: SettingCreateBody, identity: Identity = Depends(require_admin), db: Session = Depends(get_db)):
    return settings_service.create(db, body.key, body.value, body.description)
