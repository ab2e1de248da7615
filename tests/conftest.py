"""
Shared fixtures. Environment is set before any app module is imported, since
config and crypto validate their variables at import time.
"""
import hashlib
import hmac
import json
import os
import tempfile
import time

from cryptography.fernet import Fernet

_TMP = tempfile.mkdtemp(prefix="paywall-tests-")

os.environ.update({
    "ENV": "test",
    "GOOGLE_CLIENT_ID": "test-client-id.apps.googleusercontent.com",
    "JWT_SECRET": "test-access-secret",
    "JWT_REFRESH_SECRET": "test-refresh-secret",
    "STRIPE_SECRET_KEY": "sk_test_dummy",
    "STRIPE_WEBHOOK_SECRET": "whsec_test_secret",
    "FILE_URL_SIGNING_KEY": Fernet.generate_key().decode(),
    "DATABASE_URL": f"sqlite:///{os.path.join(_TMP, 'test.db')}",
    "STORAGE_ROOT": os.path.join(_TMP, "storage"),
    "PUBLIC_API_URL": "http://testserver",
    "SKIP_DB_INIT": "true",
    "BCRYPT_ROUNDS": "4",
})

import pytest
from fastapi.testclient import TestClient

from database import Base, SessionLocal, engine
from errors import EmailNotVerified, InvalidAssertion
from main import app
from models import ROLE_ADMIN, ROLE_USER, Document, Setting
from security import create_access_token
from services import auth_service
from services.google_identity import GoogleClaims, GoogleIdentityVerifier, get_identity_verifier
from services.storage_service import LocalStorage, get_storage
from services.stripe_gateway import CheckoutSession, StripeGateway, get_payment_gateway
import repository

WEBHOOK_SECRET = os.environ["STRIPE_WEBHOOK_SECRET"]
PDF_BYTES = b"%PDF-1.4\n1 0 obj<<>>endobj\ntrailer<<>>\n%%EOF\n"


class FakeStripeGateway(StripeGateway):
    """
    In-memory checkout sessions. Webhook signature checks are the real
    stripe ones, so tests sign payloads with sign_webhook().
    """

    def __init__(self):
        super().__init__("sk_test_dummy", WEBHOOK_SECRET)
        self.sessions: dict[str, CheckoutSession] = {}
        self.payment_intents: dict[str, str] = {}
        self.created: list[dict] = []
        self.retrieved: list[str] = []

    def create_session(self, **kwargs) -> CheckoutSession:
        session_id = f"cs_test_{len(self.sessions) + 1}"
        session = CheckoutSession(
            id=session_id,
            url=f"https://checkout.stripe.test/{session_id}",
            payment_status="unpaid",
            status="open",
            metadata=dict(kwargs["metadata"]),
        )
        self.sessions[session_id] = session
        self.created.append(kwargs)
        return session

    def get_session(self, session_id: str) -> CheckoutSession:
        self.retrieved.append(session_id)
        return self.sessions[session_id]

    def find_session_id_for_payment_intent(self, payment_intent_id: str) -> str | None:
        return self.payment_intents.get(payment_intent_id)

    def set_status(self, session_id: str, payment_status: str, status: str = "complete", metadata: dict | None = None):
        current = self.sessions[session_id]
        self.sessions[session_id] = CheckoutSession(
            id=session_id,
            url=current.url,
            payment_status=payment_status,
            status=status,
            metadata=current.metadata if metadata is None else metadata,
        )

    def mark_paid(self, session_id: str):
        self.set_status(session_id, "paid")

    def add_session(self, session_id: str, metadata: dict):
        self.sessions[session_id] = CheckoutSession(
            id=session_id, url=None, payment_status="unpaid", status="open", metadata=metadata,
        )


class FakeIdentityVerifier(GoogleIdentityVerifier):
    """Maps literal id_token strings to claims."""

    def __init__(self):
        super().__init__("test-client-id.apps.googleusercontent.com")
        self.identities: dict[str, GoogleClaims] = {}

    def add(self, id_token: str, email: str, name: str = "Test User", verified: bool = True):
        self.identities[id_token] = GoogleClaims(
            email=email, name=name, subject=f"google-{id_token}", picture=None, email_verified=verified,
        )

    def verify(self, id_token: str) -> GoogleClaims:
        claims = self.identities.get(id_token)
        if claims is None:
            raise InvalidAssertion()
        if not claims.email_verified:
            raise EmailNotVerified()
        return claims


def sign_webhook(event: dict, secret: str = WEBHOOK_SECRET) -> tuple[bytes, str]:
    """Payload and Stripe-Signature header the way Stripe signs events."""
    payload = json.dumps(event)
    timestamp = int(time.time())
    signature = hmac.new(secret.encode(), f"{timestamp}.{payload}".encode(), hashlib.sha256).hexdigest()
    return payload.encode(), f"t={timestamp},v1={signature}"


def stripe_event(event_type: str, obj: dict) -> dict:
    return {
        "id": "evt_test",
        "object": "event",
        "type": event_type,
        "data": {"object": obj},
    }


@pytest.fixture(autouse=True)
def _schema():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def storage(tmp_path):
    return LocalStorage(root=str(tmp_path / "storage"), base_url="http://testserver")


@pytest.fixture
def gateway():
    return FakeStripeGateway()


@pytest.fixture
def verifier():
    return FakeIdentityVerifier()


@pytest.fixture
def client(gateway, verifier, storage):
    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    app.dependency_overrides[get_identity_verifier] = lambda: verifier
    app.dependency_overrides[get_storage] = lambda: storage
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    def _make(email: str = "reader@example.com", role: str = ROLE_USER, password: str | None = None, **fields):
        user = repository.create_user(db, email=email, name=fields.pop("name", "Reader"), role=role, **fields)
        if password:
            user.password_hash = auth_service.hash_password(password)
        db.commit()
        return user
    return _make


@pytest.fixture
def user(make_user):
    return make_user("reader@example.com")


@pytest.fixture
def admin(make_user):
    return make_user("admin@example.com", role=ROLE_ADMIN, name="Admin")


def auth_headers(user) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user)}"}


@pytest.fixture
def make_document(db, admin, storage):
    def _make(title: str = "Guide", price_cents: int = 1500, **fields):
        locator = storage.put(PDF_BYTES, "application/pdf", admin.id)
        document = Document(
            title=title,
            description=fields.pop("description", f"{title} description"),
            price_cents=price_cents,
            file_url=locator,
            admin_id=fields.pop("admin_id", admin.id),
            **fields,
        )
        db.add(document)
        db.commit()
        return document
    return _make


@pytest.fixture
def lifetime_price(db):
    db.add(Setting(key="lifetime_subscription_price", value="49.99"))
    db.commit()
