import io
import os

import repository
from conftest import PDF_BYTES, auth_headers


def _upload(client, admin, title="Brochure"):
    return client.post(
        "/public-documents",
        data={"title": title, "description": "Free"},
        files={"file": ("brochure.pdf", io.BytesIO(PDF_BYTES), "application/pdf")},
        headers=auth_headers(admin),
    )


def test_share_by_token(client, admin):
    created = _upload(client, admin).json()
    assert len(created["token"]) >= 32

    resp = client.get(f"/public/{created['token']}")

    assert resp.status_code == 200
    body = resp.json()
    assert body["title"] == "Brochure"
    download = client.get(body["file_url"].removeprefix("http://testserver"))
    assert download.content == PDF_BYTES


def test_disabled_document_is_not_served(client, admin):
    created = _upload(client, admin).json()
    headers = auth_headers(admin)

    resp = client.patch(f"/public-documents/{created['id']}/status", json={"is_active": False}, headers=headers)
    assert resp.json()["is_active"] is False
    assert client.get(f"/public/{created['token']}").status_code == 404

    client.patch(f"/public-documents/{created['id']}/status", json={"is_active": True}, headers=headers)
    assert client.get(f"/public/{created['token']}").status_code == 200


def test_unknown_token(client):
    assert client.get("/public/not-a-token").status_code == 404


def test_delete_removes_row_and_file(client, db, admin, storage):
    created = _upload(client, admin).json()
    locator = repository.get_public_document(db, created["id"]).file_url
    assert os.path.isfile(storage._path(locator))

    assert client.delete(f"/public-documents/{created['id']}", headers=auth_headers(admin)).json() == {"ok": True}

    assert not os.path.exists(storage._path(locator))
    assert client.get(f"/public/{created['token']}").status_code == 404
    assert client.get("/public-documents", headers=auth_headers(admin)).json() == []


def test_management_is_admin_only(client, user):
    assert client.get("/public-documents", headers=auth_headers(user)).status_code == 403
    assert _upload(client, user).status_code == 403


def test_admin_listing_includes_disabled_documents_newest_first(client, admin):
    first = _upload(client, admin, title="First").json()
    second = _upload(client, admin, title="Second").json()
    client.patch(f"/public-documents/{first['id']}/status", json={"is_active": False}, headers=auth_headers(admin))

    rows = client.get("/public-documents", headers=auth_headers(admin)).json()

    assert [row["id"] for row in rows] == [second["id"], first["id"]]
    assert [row["is_active"] for row in rows] == [True, False]
