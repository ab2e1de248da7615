"""
Users router: the caller's own profile and purchases.
"""
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

import repository
from auth import Identity, require_authenticated
from database import get_db
from schemas import PurchaseOut, UserOut, cents_to_amount

router = APIRouter(prefix="/users", tags=["users"])


class ProfileBody(BaseModel):
    name: str | None = Field(None, max_length=255)
    industry: str | None = Field(None, max_length=255)
    contact: str | None = Field(None, max_length=255)
    address: str | None = Field(None, max_length=2000)


def _current_user(identity: Identity, db: Session):
    user = repository.get_user(db, identity.id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@router.get("/profile", response_model=UserOut)
def get_profile(identity: Identity = Depends(require_authenticated), db: Session = Depends(get_db)):
    return _current_user(identity, db)


@router.put("/profile", response_model=UserOut)
def update_profile(
    body: ProfileBody,
    identity: Identity = Depends(require_authenticated),
    db: Session = Depends(get_db),
):
    """Partial update; profile_completed follows industry and contact."""
    user = _current_user(identity, db)
    for field, value in body.model_dump(exclude_unset=True).items():
        setattr(user, field, value.strip() if isinstance(value, str) else value)
    db.commit()
    return user


@router.get("/purchases", response_model=list[PurchaseOut])
def get_purchases(identity: Identity = Depends(require_authenticated), db: Session = Depends(get_db)):
    """Completed purchases, newest first. A lifetime grant has no document."""
    result = []
    for purchase in repository.list_user_purchases(db, identity.id):
        document = repository.get_document(db, purchase.document_id) if purchase.document_id else None
        result.append(PurchaseOut(
            id=purchase.id,
            document_id=purchase.document_id,
            document_title=document.title if document else None,
            is_lifetime=purchase.document_id is None,
            amount=cents_to_amount(purchase.amount_cents),
            purchased_at=purchase.created_at,
        ))
    return result
