"""
Stripe Checkout integration: session creation, session status lookup and
webhook signature verification.

The gateway is built once per process (get_payment_gateway) and injected into
routers; every Stripe call goes through a requests-based HTTP client with an
explicit timeout. Stripe errors are logged and re-raised as
ExternalProviderError so provider details never reach clients.
"""
import logging
from dataclasses import dataclass, field
from functools import lru_cache

import stripe

from config import STRIPE_CURRENCY, STRIPE_REQUEST_TIMEOUT, STRIPE_SECRET_KEY, STRIPE_WEBHOOK_SECRET
from errors import ExternalProviderError, InvalidWebhookSignature

logger = logging.getLogger(__name__)

PAID = "paid"


@dataclass(frozen=True)
class CheckoutSession:
    id: str
    url: str | None
    payment_status: str
    status: str | None
    metadata: dict = field(default_factory=dict)

    @property
    def is_paid(self) -> bool:
        return self.payment_status == PAID


@dataclass(frozen=True)
class WebhookEvent:
    type: str
    object: dict


def _to_session(obj) -> CheckoutSession:
    metadata = obj.get("metadata") or {}
    return CheckoutSession(
        id=obj["id"],
        url=obj.get("url"),
        payment_status=obj.get("payment_status") or "unpaid",
        status=obj.get("status"),
        metadata={k: str(v) for k, v in dict(metadata).items()},
    )


class StripeGateway:
    def __init__(self, api_key: str, webhook_secret: str, timeout: int = STRIPE_REQUEST_TIMEOUT):
        self.api_key = api_key
        self.webhook_secret = webhook_secret
        stripe.default_http_client = stripe.RequestsClient(timeout=timeout)
        stripe.max_network_retries = 2

    def create_session(
        self,
        *,
        name: str,
        description: str,
        amount_cents: int,
        customer_email: str | None,
        success_url: str,
        cancel_url: str,
        metadata: dict,
    ) -> CheckoutSession:
        """One-line-item card payment; metadata is echoed back on the session."""
        try:
            session = stripe.checkout.Session.create(
                api_key=self.api_key,
                mode="payment",
                payment_method_types=["card"],
                line_items=[
                    {
                        "price_data": {
                            "currency": STRIPE_CURRENCY,
                            "product_data": {"name": name, "description": description},
                            "unit_amount": amount_cents,
                        },
                        "quantity": 1,
                    }
                ],
                customer_email=customer_email,
                success_url=success_url,
                cancel_url=cancel_url,
                metadata=metadata,
            )
        except stripe.StripeError as e:
            logger.error("Stripe session create failed: %s", e)
            raise ExternalProviderError(f"Stripe session create failed: {e}") from e
        return _to_session(session)

    def get_session(self, session_id: str) -> CheckoutSession:
        try:
            session = stripe.checkout.Session.retrieve(session_id, api_key=self.api_key)
        except stripe.StripeError as e:
            logger.error("Stripe session retrieve failed for %s: %s", session_id, e)
            raise ExternalProviderError(f"Stripe session retrieve failed: {e}") from e
        return _to_session(session)

    def find_session_id_for_payment_intent(self, payment_intent_id: str) -> str | None:
        try:
            sessions = stripe.checkout.Session.list(
                api_key=self.api_key,
                payment_intent=payment_intent_id,
                limit=1,
            )
        except stripe.StripeError as e:
            logger.error("Stripe session lookup failed for intent %s: %s", payment_intent_id, e)
            raise ExternalProviderError(f"Stripe session lookup failed: {e}") from e
        data = sessions.get("data") or []
        return data[0]["id"] if data else None

    def construct_event(self, payload: bytes, signature: str | None) -> WebhookEvent:
        """Verify the Stripe-Signature header BEFORE trusting the payload."""
        if not signature:
            raise InvalidWebhookSignature("Missing Stripe-Signature header")
        try:
            event = stripe.Webhook.construct_event(payload, signature, self.webhook_secret)
        except stripe.SignatureVerificationError as e:
            logger.warning("Webhook signature invalid: %s", e)
            raise InvalidWebhookSignature() from e
        except ValueError as e:
            raise InvalidWebhookSignature("Malformed webhook payload") from e
        return WebhookEvent(type=event["type"], object=event["data"]["object"])


@lru_cache(maxsize=1)
def get_payment_gateway() -> StripeGateway:
    """FastAPI dependency: process-wide Stripe gateway, built on first use."""
    return StripeGateway(STRIPE_SECRET_KEY, STRIPE_WEBHOOK_SECRET)
