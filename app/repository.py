"""
Query helpers over the SQLAlchemy models.

Single-row lookups return None when the row does not exist; database errors
propagate. Writes are added to the session and flushed; the caller owns the
commit so a service operation stays one transaction.
"""
from sqlalchemy import update
from sqlalchemy.orm import Session

from models import (
    DOCUMENT_ACTIVE,
    Document,
    Folder,
    Payment,
    PublicDocument,
    Purchase,
    PURCHASE_COMPLETED,
    Setting,
    User,
)


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


# --- Users ---

def get_user(db: Session, user_id: str) -> User | None:
    return db.get(User, user_id)


def get_user_by_email(db: Session, email: str) -> User | None:
    return db.query(User).filter(User.email == normalize_email(email)).first()


def create_user(db: Session, **fields) -> User:
    fields["email"] = normalize_email(fields["email"])
    user = User(**fields)
    db.add(user)
    db.flush()
    return user


# --- Documents ---

def get_document(db: Session, document_id: str) -> Document | None:
    return db.get(Document, document_id)


def get_active_document(db: Session, document_id: str) -> Document | None:
    document = db.get(Document, document_id)
    if document is None or document.status != DOCUMENT_ACTIVE:
        return None
    return document


def list_documents(
    db: Session,
    *,
    folder_id: str | None = None,
    root_only: bool = False,
    include_hidden: bool = False,
) -> list[Document]:
    """Newest first. Without include_hidden, only active and visible rows."""
    query = db.query(Document)
    if not include_hidden:
        query = query.filter(Document.status == DOCUMENT_ACTIVE, Document.is_visible.is_(True))
    if root_only:
        query = query.filter(Document.folder_id.is_(None))
    elif folder_id:
        query = query.filter(Document.folder_id == folder_id)
    return query.order_by(Document.created_at.desc()).all()


def count_active_documents_in_folder(db: Session, folder_id: str) -> int:
    return (
        db.query(Document)
        .filter(Document.folder_id == folder_id, Document.status == DOCUMENT_ACTIVE)
        .count()
    )


# --- Public documents ---

def get_public_document(db: Session, public_document_id: str) -> PublicDocument | None:
    return db.get(PublicDocument, public_document_id)


def get_public_document_by_token(db: Session, token: str) -> PublicDocument | None:
    return db.query(PublicDocument).filter(PublicDocument.token == token).first()


def list_public_documents(db: Session) -> list[PublicDocument]:
    """Newest first, active or not."""
    return db.query(PublicDocument).order_by(PublicDocument.created_at.desc()).all()


# --- Folders ---

def get_folder(db: Session, folder_id: str) -> Folder | None:
    return db.get(Folder, folder_id)


def list_folders(db: Session, *, for_update: bool = False) -> list[Folder]:
    """Whole folder table, oldest first. for_update locks rows where supported."""
    query = db.query(Folder).order_by(Folder.created_at.asc())
    if for_update:
        query = query.with_for_update()
    return query.all()


def list_child_folders(db: Session, parent_id: str) -> list[Folder]:
    return (
        db.query(Folder)
        .filter(Folder.parent_id == parent_id)
        .order_by(Folder.created_at.asc())
        .all()
    )


# --- Purchases ---

def find_lifetime_purchase(db: Session, user_id: str) -> Purchase | None:
    """Completed purchase with null document id for user, limit 1."""
    return (
        db.query(Purchase)
        .filter(
            Purchase.user_id == user_id,
            Purchase.document_id.is_(None),
            Purchase.status == PURCHASE_COMPLETED,
        )
        .first()
    )


def find_document_purchase(db: Session, user_id: str, document_id: str) -> Purchase | None:
    """Completed purchase for exactly this user and document."""
    return (
        db.query(Purchase)
        .filter(
            Purchase.user_id == user_id,
            Purchase.document_id == document_id,
            Purchase.status == PURCHASE_COMPLETED,
        )
        .first()
    )


def list_user_purchases(db: Session, user_id: str) -> list[Purchase]:
    return (
        db.query(Purchase)
        .filter(Purchase.user_id == user_id, Purchase.status == PURCHASE_COMPLETED)
        .order_by(Purchase.created_at.desc())
        .all()
    )


def insert_purchase(db: Session, **fields) -> Purchase:
    """Flushes immediately so uniqueness violations raise IntegrityError here."""
    purchase = Purchase(status=PURCHASE_COMPLETED, **fields)
    db.add(purchase)
    db.flush()
    return purchase


# --- Payments ---

def get_payment_by_session_id(db: Session, session_id: str) -> Payment | None:
    return db.query(Payment).filter(Payment.stripe_session_id == session_id).first()


def create_payment(db: Session, **fields) -> Payment:
    payment = Payment(**fields)
    db.add(payment)
    db.flush()
    return payment


def transition_payment(
    db: Session,
    payment_id: str,
    *,
    from_statuses: tuple[str, ...],
    to_status: str,
) -> bool:
    """
    Compare-and-set the payment status. Returns True if this call performed
    the transition, False if the row was no longer in one of from_statuses.
    """
    result = db.execute(
        update(Payment)
        .where(Payment.id == payment_id, Payment.status.in_(from_statuses))
        .values(status=to_status)
        .execution_options(synchronize_session="fetch")
    )
    return result.rowcount == 1


# --- Settings ---

def get_setting(db: Session, key: str) -> Setting | None:
    return db.get(Setting, key)


def list_settings(db: Session) -> list[Setting]:
    return db.query(Setting).order_by(Setting.key.asc()).all()
