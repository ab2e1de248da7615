"""
Payments router: Stripe checkout creation, client-side verification after
redirect, status lookup, and the Stripe webhook.

verify-payment and the webhook both call payment_service.reconcile, so a
session is granted exactly once whichever arrives first.
"""
from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

import repository
from auth import Identity, require_authenticated
from database import get_db
from schemas import CheckoutOut, PaymentStatusOut, ReconcileOut
from services import payment_service
from services.stripe_gateway import StripeGateway, get_payment_gateway

router = APIRouter(prefix="/payments", tags=["payments"])


class CreateCheckoutBody(BaseModel):
    """document_id null buys lifetime access to every document."""
    document_id: str | None = None


class VerifyPaymentBody(BaseModel):
    session_id: str = Field(..., min_length=1, max_length=255)


@router.post("/create-checkout", response_model=CheckoutOut)
def create_checkout(
    body: CreateCheckoutBody,
    identity: Identity = Depends(require_authenticated),
    db: Session = Depends(get_db),
    gateway: StripeGateway = Depends(get_payment_gateway),
):
    user = repository.get_user(db, identity.id)
    if user is None:
        raise HTTPException(status_code=401, detail="User not found")
    return payment_service.checkout_for(db, gateway, user, body.document_id)


@router.post("/verify-payment", response_model=ReconcileOut)
def verify_payment(
    body: VerifyPaymentBody,
    identity: Identity = Depends(require_authenticated),
    db: Session = Depends(get_db),
    gateway: StripeGateway = Depends(get_payment_gateway),
):
    """Called by the frontend after Stripe redirects back with session_id."""
    outcome = payment_service.reconcile(db, gateway, body.session_id, authenticated_user_id=identity.id)
    return asdict(outcome)


@router.get("/status/{session_id}", response_model=PaymentStatusOut)
def payment_status(
    session_id: str,
    identity: Identity = Depends(require_authenticated),
    db: Session = Depends(get_db),
    gateway: StripeGateway = Depends(get_payment_gateway),
):
    return payment_service.get_payment_status(db, gateway, session_id, identity.id)


@router.post("/webhook")
async def stripe_webhook(
    request: Request,
    db: Session = Depends(get_db),
    gateway: StripeGateway = Depends(get_payment_gateway),
):
    """
    Stripe event endpoint. The raw body is needed for signature verification;
    the handler itself runs in the threadpool like the sync routes.
    """
    payload = await request.body()
    signature = request.headers.get("Stripe-Signature")
    event_type = await run_in_threadpool(payment_service.handle_webhook, db, gateway, payload, signature)
    return {"received": True, "type": event_type}
