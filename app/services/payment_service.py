"""
Payment service: Stripe checkout creation and reconciliation of provider
outcomes into Payment/Purchase state, exactly once.

- Payment status: pending -> completed | failed | expired. completed and
  expired never change again. failed means the provider last reported the
  session unpaid; a later "paid" report for the same session still completes it.
- reconcile() is the single entry point for both the client verify call and
  the checkout.session.completed webhook.
- Double grants are prevented by the compare-and-set on Payment.status and the
  unique indexes on purchases; losing either race yields the
  already-processed outcome, not an error.
"""
import logging
from dataclasses import dataclass

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

import repository
from config import FRONTEND_URL
from errors import (
    AlreadyPurchased,
    AlreadySubscribed,
    NotFoundError,
    PaymentNotFound,
    UnauthorizedSessionAccess,
    ValidationError,
)
from models import PAYMENT_COMPLETED, PAYMENT_EXPIRED, PAYMENT_FAILED, PAYMENT_PENDING
from services import entitlement_service, settings_service
from services.stripe_gateway import StripeGateway

logger = logging.getLogger(__name__)

LIFETIME_MARKER = "lifetime_subscription"
TYPE_LIFETIME = "lifetime"
TYPE_DOCUMENT = "document"
LIFETIME_TITLE = "Lifetime Access - All Premium Documents"


# --- Checkout metadata: what a Stripe session is buying ---

@dataclass(frozen=True)
class LifetimeAccess:
    document_id = None
    type = TYPE_LIFETIME


@dataclass(frozen=True)
class DocumentPurchase:
    document_id: str
    type = TYPE_DOCUMENT


PurchaseTarget = LifetimeAccess | DocumentPurchase


def target_for(document_id: str | None) -> PurchaseTarget:
    return DocumentPurchase(document_id) if document_id else LifetimeAccess()


def to_metadata(user_id: str, target: PurchaseTarget) -> dict:
    """Metadata Stripe echoes back unmodified; the only session-to-domain binding."""
    return {
        "user_id": user_id,
        "document_id": target.document_id or LIFETIME_MARKER,
        "subscription_type": target.type,
    }


def from_metadata(metadata: dict, fallback: PurchaseTarget) -> tuple[str | None, PurchaseTarget]:
    """
    Inverse of to_metadata: (user_id, target). When document_id and
    subscription_type are missing or disagree, the target is fallback
    (the payment row's), never lifetime by default.
    """
    document_id = metadata.get("document_id")
    kind = metadata.get("subscription_type")
    if kind == TYPE_LIFETIME and document_id == LIFETIME_MARKER:
        target = LifetimeAccess()
    elif kind == TYPE_DOCUMENT and document_id and document_id != LIFETIME_MARKER:
        target = DocumentPurchase(document_id)
    else:
        target = fallback
    return metadata.get("user_id"), target


@dataclass(frozen=True)
class ReconcileOutcome:
    success: bool
    already_processed: bool = False
    document_id: str | None = None
    type: str | None = None

    @classmethod
    def processed(cls, target: PurchaseTarget) -> "ReconcileOutcome":
        return cls(success=True, already_processed=True, document_id=target.document_id, type=target.type)


# --- Checkout ---

def create_checkout(
    db: Session,
    gateway: StripeGateway,
    *,
    user_id: str,
    user_email: str | None,
    document_id: str | None,
    title: str,
    price_cents: int,
) -> dict:
    """
    Create a Stripe session and record a pending Payment for it before
    returning the checkout URL.
    """
    if entitlement_service.has_lifetime_access(db, user_id):
        raise AlreadySubscribed()
    if document_id and repository.find_document_purchase(db, user_id, document_id) is not None:
        raise AlreadyPurchased()
    if price_cents <= 0:
        raise ValidationError("Price must be greater than zero", field="price")

    target = target_for(document_id)
    if document_id:
        success_url = f"{FRONTEND_URL}/documents/{document_id}?session_id={{CHECKOUT_SESSION_ID}}"
        description = "One-time purchase for lifetime access"
    else:
        success_url = f"{FRONTEND_URL}/documents?session_id={{CHECKOUT_SESSION_ID}}"
        description = "One-time payment for lifetime access to all premium documents"

    session = gateway.create_session(
        name=title,
        description=description,
        amount_cents=price_cents,
        customer_email=user_email,
        success_url=success_url,
        cancel_url=f"{FRONTEND_URL}/subscription",
        metadata=to_metadata(user_id, target),
    )

    repository.create_payment(
        db,
        user_id=user_id,
        document_id=document_id,
        stripe_session_id=session.id,
        amount_cents=price_cents,
        status=PAYMENT_PENDING,
    )
    db.commit()
    logger.info("Checkout session created: %s for user %s, type %s", session.id, user_id, target.type)
    return {"session_id": session.id, "checkout_url": session.url}


def checkout_for(db: Session, gateway: StripeGateway, user, document_id: str | None) -> dict:
    """Resolve title and price for a document or lifetime checkout, then create it."""
    if document_id:
        document = repository.get_active_document(db, document_id)
        if document is None:
            raise NotFoundError("Document not found")
        title, price_cents = document.title, document.price_cents
    else:
        title, price_cents = LIFETIME_TITLE, settings_service.get_lifetime_price_cents(db)

    return create_checkout(
        db,
        gateway,
        user_id=user.id,
        user_email=user.email,
        document_id=document_id,
        title=title,
        price_cents=price_cents,
    )


# --- Reconciliation ---

def reconcile(
    db: Session,
    gateway: StripeGateway,
    session_id: str,
    authenticated_user_id: str | None = None,
) -> ReconcileOutcome:
    payment = repository.get_payment_by_session_id(db, session_id)
    if payment is None:
        raise PaymentNotFound()

    if payment.status == PAYMENT_COMPLETED:
        logger.info("Payment already processed: %s", session_id)
        return ReconcileOutcome.processed(target_for(payment.document_id))

    if payment.status == PAYMENT_EXPIRED:
        logger.warning("Verify attempted on expired session %s", session_id)
        return ReconcileOutcome(success=False)

    session = gateway.get_session(session_id)

    if not session.is_paid:
        if repository.transition_payment(db, payment.id, from_statuses=(PAYMENT_PENDING,), to_status=PAYMENT_FAILED):
            logger.info("Payment %s not paid (%s); marked failed", session_id, session.payment_status)
        db.commit()
        return ReconcileOutcome(success=False)

    if session.metadata.get("user_id"):
        metadata_user_id, target = from_metadata(session.metadata, target_for(payment.document_id))
    else:
        logger.warning("Session %s carries no metadata; using the payment record", session_id)
        metadata_user_id, target = payment.user_id, target_for(payment.document_id)

    if authenticated_user_id is not None and metadata_user_id != authenticated_user_id:
        logger.warning("User %s tried to verify session %s owned by another user", authenticated_user_id, session_id)
        raise UnauthorizedSessionAccess()

    if entitlement_service.has_lifetime_access(db, metadata_user_id):
        raise AlreadySubscribed()

    try:
        won = repository.transition_payment(
            db,
            payment.id,
            from_statuses=(PAYMENT_PENDING, PAYMENT_FAILED),
            to_status=PAYMENT_COMPLETED,
        )
        if not won:
            db.rollback()
            db.refresh(payment)
            if payment.status != PAYMENT_COMPLETED:
                logger.warning("Payment %s moved to %s concurrently; not granting", session_id, payment.status)
                return ReconcileOutcome(success=False)
            logger.info("Payment %s completed concurrently; treating as processed", session_id)
            return ReconcileOutcome.processed(target)

        repository.insert_purchase(
            db,
            user_id=metadata_user_id,
            document_id=target.document_id,
            payment_id=payment.id,
            amount_cents=payment.amount_cents,
        )
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.info("Purchase for session %s already granted; treating as processed", session_id)
        return ReconcileOutcome.processed(target)

    logger.info("Payment verified and access granted: %s, type %s", session_id, target.type)
    return ReconcileOutcome(success=True, document_id=target.document_id, type=target.type)


def mark_expired(db: Session, session_id: str) -> bool:
    """checkout.session.expired: pending -> expired; no-op otherwise."""
    payment = repository.get_payment_by_session_id(db, session_id)
    if payment is None:
        logger.warning("Expiry event for unknown session %s", session_id)
        return False
    changed = repository.transition_payment(db, payment.id, from_statuses=(PAYMENT_PENDING,), to_status=PAYMENT_EXPIRED)
    db.commit()
    if changed:
        logger.info("Payment expired: %s", session_id)
    return changed


def mark_failed(db: Session, session_id: str) -> bool:
    """pending -> failed; no-op otherwise."""
    payment = repository.get_payment_by_session_id(db, session_id)
    if payment is None:
        logger.warning("Failure event for unknown session %s", session_id)
        return False
    changed = repository.transition_payment(db, payment.id, from_statuses=(PAYMENT_PENDING,), to_status=PAYMENT_FAILED)
    db.commit()
    if changed:
        logger.info("Payment failed: %s", session_id)
    return changed


def mark_failed_for_payment_intent(db: Session, gateway: StripeGateway, payment_intent_id: str) -> bool:
    session_id = gateway.find_session_id_for_payment_intent(payment_intent_id)
    if session_id is None:
        logger.warning("No checkout session for failed payment intent %s", payment_intent_id)
        return False
    return mark_failed(db, session_id)


def handle_webhook(db: Session, gateway: StripeGateway, payload: bytes, signature: str | None) -> str:
    """Verify and dispatch a Stripe event. Returns the event type."""
    event = gateway.construct_event(payload, signature)
    obj = event.object

    if event.type == "checkout.session.completed":
        try:
            reconcile(db, gateway, obj["id"])
        except PaymentNotFound:
            logger.warning("Completed event for unknown session %s", obj["id"])
        except AlreadySubscribed:
            logger.warning("Session %s paid by a user who already has lifetime access", obj["id"])
    elif event.type == "checkout.session.expired":
        mark_expired(db, obj["id"])
    elif event.type == "payment_intent.payment_failed":
        mark_failed_for_payment_intent(db, gateway, obj["id"])
    else:
        logger.debug("Ignoring Stripe event %s", event.type)
    return event.type


def get_payment_status(db: Session, gateway: StripeGateway, session_id: str, user_id: str) -> dict:
    payment = repository.get_payment_by_session_id(db, session_id)
    if payment is None:
        raise PaymentNotFound()
    if payment.user_id != user_id:
        raise UnauthorizedSessionAccess()
    session = gateway.get_session(session_id)
    return {"payment_status": session.payment_status, "status": session.status}
