import io

import pytest

import repository
from conftest import PDF_BYTES, auth_headers
from errors import NotFoundError
from models import DOCUMENT_INACTIVE, ROLE_ADMIN, ROLE_USER
from services import entitlement_service


def _grant(db, user, document_id=None, session_id="cs_grant"):
    payment = repository.create_payment(
        db, user_id=user.id, document_id=document_id, stripe_session_id=session_id, amount_cents=1000,
    )
    repository.insert_purchase(
        db, user_id=user.id, document_id=document_id, payment_id=payment.id, amount_cents=1000,
    )
    db.commit()


def _upload(client, admin, **form):
    files = {"file": form.pop("file", ("guide.pdf", io.BytesIO(PDF_BYTES), "application/pdf"))}
    data = {"title": "Uploaded", "price": "12.50", **form}
    return client.post("/documents", data=data, files=files, headers=auth_headers(admin))


# --- Entitlement engine ---


def test_no_purchase_means_no_access(db, user, make_document):
    document = make_document()
    assert entitlement_service.has_access(db, user.id, document.id) is False
    assert entitlement_service.has_lifetime_access(db, user.id) is False


def test_document_purchase_grants_only_that_document(db, user, make_document):
    bought, other = make_document("Bought"), make_document("Other")
    _grant(db, user, bought.id)

    assert entitlement_service.has_access(db, user.id, bought.id) is True
    assert entitlement_service.has_access(db, user.id, other.id) is False
    assert entitlement_service.has_lifetime_access(db, user.id) is False


def test_lifetime_purchase_grants_every_document(db, user, make_document):
    _grant(db, user)
    documents = [make_document(f"Doc {i}") for i in range(3)]

    assert all(entitlement_service.has_access(db, user.id, d.id) for d in documents)
    assert entitlement_service.has_lifetime_access(db, user.id) is True


def test_viewer_without_access_gets_restricted_view(db, storage, user, make_document):
    document = make_document()

    view = entitlement_service.get_document_for_viewer(db, storage, document.id, user.id, ROLE_USER)

    assert view.has_access is False
    assert "file_url" not in view.model_dump()


def test_admin_sees_inactive_document(db, storage, admin, make_document):
    document = make_document(status=DOCUMENT_INACTIVE)

    view = entitlement_service.get_document_for_viewer(db, storage, document.id, admin.id, ROLE_ADMIN)

    assert view.status == DOCUMENT_INACTIVE
    assert view.file_url.startswith("http://testserver/files/")


def test_inactive_document_is_not_found_even_for_buyer(db, storage, user, make_document):
    document = make_document()
    _grant(db, user, document.id)
    document.status = DOCUMENT_INACTIVE
    db.commit()

    with pytest.raises(NotFoundError):
        entitlement_service.get_document_for_viewer(db, storage, document.id, user.id, ROLE_USER)


# --- Viewer endpoints ---


def test_purchase_flow_unlocks_document(client, db, gateway, user, make_document):
    document = make_document(price_cents=2500)
    headers = auth_headers(user)

    before = client.get(f"/documents/{document.id}", headers=headers).json()
    assert before["has_access"] is False
    assert "file_url" not in before
    assert before["price"] == 25.0

    session_id = client.post(
        "/payments/create-checkout", json={"document_id": document.id}, headers=headers,
    ).json()["session_id"]
    gateway.mark_paid(session_id)
    client.post("/payments/verify-payment", json={"session_id": session_id}, headers=headers)

    after = client.get(f"/documents/{document.id}", headers=headers).json()
    assert after["has_access"] is True
    assert after["file_url"].startswith("http://testserver/files/")
    assert client.get(f"/documents/{document.id}/access", headers=headers).json() == {"has_access": True}


def test_listing_never_carries_file_urls(client, db, user, make_document):
    make_document("A")
    make_document("B")
    _grant(db, user)

    for headers in ({}, auth_headers(user)):
        rows = client.get("/documents", headers=headers).json()
        assert len(rows) == 2
        assert all("file_url" not in row for row in rows)


def test_listing_hides_hidden_and_inactive_from_non_admins(client, admin, make_document):
    make_document("Visible")
    make_document("Hidden", is_visible=False)
    make_document("Gone", status=DOCUMENT_INACTIVE)

    public = client.get("/documents").json()
    assert [row["title"] for row in public] == ["Visible"]
    assert "status" not in public[0] or public[0]["status"] is None

    everything = client.get("/documents", headers=auth_headers(admin)).json()
    assert {row["title"] for row in everything} == {"Visible", "Hidden", "Gone"}


def test_listing_with_invalid_token_is_anonymous(client, make_document):
    make_document()
    resp = client.get("/documents", headers={"Authorization": "Bearer not-a-jwt"})
    assert resp.status_code == 200
    assert len(resp.json()) == 1


def test_listing_by_folder_and_root(client, db, admin, make_document):
    folder = client.post("/folders", json={"name": "Guides"}, headers=auth_headers(admin)).json()
    make_document("In folder", folder_id=folder["id"])
    make_document("At root")

    in_folder = client.get("/documents", params={"folder_id": folder["id"]}).json()
    at_root = client.get("/documents", params={"folder_id": "root"}).json()

    assert [row["title"] for row in in_folder] == ["In folder"]
    assert [row["title"] for row in at_root] == ["At root"]


def test_document_detail_requires_authentication(client, make_document):
    document = make_document()
    assert client.get(f"/documents/{document.id}").status_code == 401


def test_unknown_document_is_not_found(client, user):
    assert client.get("/documents/nope", headers=auth_headers(user)).status_code == 404


def test_download_link_requires_purchase(client, db, user, make_document):
    document = make_document()
    headers = auth_headers(user)

    assert client.get(f"/documents/{document.id}/download", headers=headers).status_code == 403

    _grant(db, user, document.id)
    url = client.get(f"/documents/{document.id}/download", headers=headers).json()["url"]
    resp = client.get(url.removeprefix("http://testserver"))
    assert resp.status_code == 200
    assert resp.content == PDF_BYTES


def test_admin_access_check_is_always_true(client, admin, make_document):
    document = make_document()
    assert client.get(f"/documents/{document.id}/access", headers=auth_headers(admin)).json() == {"has_access": True}


# --- Admin management ---


def test_admin_uploads_pdf(client, admin):
    resp = _upload(client, admin, description="Intro")

    assert resp.status_code == 201
    body = resp.json()
    assert body["title"] == "Uploaded"
    assert body["price"] == 12.5
    assert body["status"] == "active"
    assert body["is_visible"] is True
    assert body["admin_id"] == admin.id


def test_upload_rejects_non_pdf(client, admin):
    resp = _upload(client, admin, file=("notes.txt", io.BytesIO(b"hello"), "text/plain"))
    assert resp.status_code == 400


def test_upload_rejects_empty_file(client, admin):
    resp = _upload(client, admin, file=("empty.pdf", io.BytesIO(b""), "application/pdf"))
    assert resp.status_code == 400


@pytest.mark.parametrize("price", ["12.345", "-1", "1e20", "1e30", "1000000"])
def test_upload_rejects_bad_price(client, admin, price):
    resp = _upload(client, admin, price=price)
    assert resp.status_code == 400
    assert resp.json()["field"] == "price"


def test_upload_requires_admin(client, user):
    assert _upload(client, user).status_code == 403


def test_update_document(client, admin, make_document):
    document = make_document()

    resp = client.put(
        f"/documents/{document.id}",
        json={"title": "Renamed", "price": "9.99"},
        headers=auth_headers(admin),
    )

    assert resp.status_code == 200
    assert resp.json()["title"] == "Renamed"
    assert resp.json()["price"] == 9.99
    assert resp.json()["description"] == document.description


def test_update_rejects_unknown_status(client, admin, make_document):
    document = make_document()
    resp = client.put(f"/documents/{document.id}", json={"status": "archived"}, headers=auth_headers(admin))
    assert resp.status_code == 400


def test_update_rejects_oversized_price(client, db, admin, make_document):
    document = make_document(price_cents=500)

    resp = client.put(f"/documents/{document.id}", json={"price": "1e20"}, headers=auth_headers(admin))

    assert resp.status_code == 400
    assert resp.json()["field"] == "price"
    db.expire_all()
    assert repository.get_document(db, document.id).price_cents == 500


def test_soft_delete_keeps_row(client, db, admin, user, make_document):
    document = make_document()

    resp = client.delete(f"/documents/{document.id}", headers=auth_headers(admin))

    assert resp.json() == {"ok": True, "id": document.id, "status": "inactive"}
    db.expire_all()
    assert repository.get_document(db, document.id) is not None
    assert client.get(f"/documents/{document.id}", headers=auth_headers(user)).status_code == 404


def test_toggle_visibility(client, admin, make_document):
    document = make_document()
    headers = auth_headers(admin)

    assert client.patch(f"/documents/{document.id}/visibility", headers=headers).json()["is_visible"] is False
    assert client.patch(f"/documents/{document.id}/visibility", headers=headers).json()["is_visible"] is True

