import pytest

import repository
from conftest import auth_headers
from errors import AppError, CircularReference, ValidationError
from models import DOCUMENT_INACTIVE, ROLE_ADMIN
from services import folder_service


@pytest.fixture
def folders(db, admin):
    """A -> B -> C, plus a separate root D."""
    a = folder_service.create(db, "A", None, admin.id)
    b = folder_service.create(db, "B", a.id, admin.id)
    c = folder_service.create(db, "C", b.id, admin.id)
    d = folder_service.create(db, "D", None, admin.id)
    return a, b, c, d


def test_create_folder(client, admin):
    resp = client.post("/folders", json={"name": "  Reports  "}, headers=auth_headers(admin))

    assert resp.status_code == 201
    assert resp.json()["name"] == "Reports"
    assert resp.json()["parent_id"] is None
    assert resp.json()["admin_id"] == admin.id


def test_create_folder_validates_name(client, admin):
    assert client.post("/folders", json={"name": "   "}, headers=auth_headers(admin)).status_code == 400
    assert client.post("/folders", json={"name": "x" * 101}, headers=auth_headers(admin)).status_code == 400


def test_create_folder_with_missing_parent(client, admin):
    resp = client.post("/folders", json={"name": "Orphan", "parent_id": "missing"}, headers=auth_headers(admin))
    assert resp.status_code == 404
    assert resp.json()["code"] == "parent_not_found"


def test_create_folder_requires_admin(client, user):
    assert client.post("/folders", json={"name": "Nope"}, headers=auth_headers(user)).status_code == 403


def test_tree(client, user, folders):
    a, b, c, d = folders

    tree = client.get("/folders/tree", headers=auth_headers(user)).json()

    assert [node["name"] for node in tree] == ["A", "D"]
    assert tree[0]["children"][0]["id"] == b.id
    assert tree[0]["children"][0]["children"][0]["id"] == c.id
    assert tree[1]["children"] == []


def test_descendant_ids(db, folders):
    a, b, c, d = folders
    all_folders = repository.list_folders(db)

    assert folder_service.descendant_ids(all_folders, a.id) == {b.id, c.id}
    assert folder_service.descendant_ids(all_folders, c.id) == set()


def test_move_into_descendant_is_refused(client, db, admin, folders):
    a, b, c, d = folders

    resp = client.put(f"/folders/{a.id}/move", json={"parent_id": c.id}, headers=auth_headers(admin))

    assert resp.status_code == 409
    assert resp.json()["code"] == "circular_reference"
    db.expire_all()
    assert folder_service.get(db, a.id).parent_id is None


def test_move_into_self_is_refused(client, admin, folders):
    a = folders[0]
    resp = client.put(f"/folders/{a.id}/move", json={"parent_id": a.id}, headers=auth_headers(admin))
    assert resp.status_code == 400
    assert resp.json()["field"] == "parent_id"


def test_move_to_other_branch_and_back_to_root(client, db, admin, folders):
    a, b, c, d = folders
    headers = auth_headers(admin)

    resp = client.put(f"/folders/{b.id}/move", json={"parent_id": d.id}, headers=headers)
    assert resp.status_code == 200
    assert resp.json()["parent_id"] == d.id

    resp = client.put(f"/folders/{b.id}/move", json={"parent_id": None}, headers=headers)
    assert resp.json()["parent_id"] is None


def test_move_to_missing_parent(client, admin, folders):
    resp = client.put(f"/folders/{folders[0].id}/move", json={"parent_id": "missing"}, headers=auth_headers(admin))
    assert resp.status_code == 404


def test_move_other_admins_folder_is_forbidden(client, make_user, folders):
    other = make_user("other-admin@example.com", role=ROLE_ADMIN)
    resp = client.put(f"/folders/{folders[1].id}/move", json={"parent_id": None}, headers=auth_headers(other))
    assert resp.status_code == 403


def test_move_service_raises_circular_reference(db, admin, folders):
    a, b, c, d = folders
    with pytest.raises(CircularReference):
        folder_service.move(db, b.id, c.id, admin.id)


def test_rename(client, admin, folders):
    resp = client.put(f"/folders/{folders[3].id}", json={"name": "Renamed"}, headers=auth_headers(admin))
    assert resp.json()["name"] == "Renamed"


def test_path(client, user, folders):
    a, b, c, d = folders
    path = client.get(f"/folders/{c.id}/path", headers=auth_headers(user)).json()
    assert path == [{"id": a.id, "name": "A"}, {"id": b.id, "name": "B"}, {"id": c.id, "name": "C"}]


def test_delete_folder_with_subfolders_is_refused(client, admin, folders):
    resp = client.delete(f"/folders/{folders[0].id}", headers=auth_headers(admin))
    assert resp.status_code == 409
    assert resp.json()["code"] == "folder_not_empty"


def test_delete_folder_with_active_document_is_refused(client, admin, folders, make_document):
    d = folders[3]
    make_document(folder_id=d.id)
    assert client.delete(f"/folders/{d.id}", headers=auth_headers(admin)).status_code == 409


def test_delete_empty_folder(client, admin, folders):
    leaf = folders[2]
    headers = auth_headers(admin)

    assert client.delete(f"/folders/{leaf.id}", headers=headers).status_code == 200
    assert client.get(f"/folders/{leaf.id}", headers=headers).status_code == 404


def test_delete_folder_detaches_inactive_documents(client, db, admin, folders, make_document):
    d = folders[3]
    document = make_document(folder_id=d.id, status=DOCUMENT_INACTIVE)

    assert client.delete(f"/folders/{d.id}", headers=auth_headers(admin)).status_code == 200

    db.expire_all()
    assert repository.get_document(db, document.id).folder_id is None


def test_folder_contents(client, user, folders, make_document):
    a, b, c, d = folders
    make_document("Inside", folder_id=a.id)
    make_document("Hidden", folder_id=a.id, is_visible=False)

    body = client.get(f"/folders/{a.id}/documents", headers=auth_headers(user)).json()

    assert body["folder"]["id"] == a.id
    assert [f["id"] for f in body["subfolders"]] == [b.id]
    assert [doc["title"] for doc in body["documents"]] == ["Inside"]


def test_path_loop_is_an_internal_error(client, db, user, folders):
    a, b, c, d = folders
    a.parent_id = c.id
    db.commit()

    with pytest.raises(AppError) as exc_info:
        folder_service.resolve_path(db, c.id)
    assert not isinstance(exc_info.value, ValidationError)

    resp = client.get(f"/folders/{c.id}/path", headers=auth_headers(user))
    assert resp.status_code == 500
    assert resp.json()["code"] == "internal_error"
