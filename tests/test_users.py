# tests/test_users.py

"""
Tests for the user administration endpoints.
"""

from fastapi.testclient import TestClient


VALID_USER = {
    "name": "Peter Okello",
    "phone": "0700123456",
    "email": "peter.okello@dims.go.ug",
    "role": "village_health_worker",
    "facility_name": "Kawempe Health Center IV",
    "region": "Central Region",
}


# ------------------------------------------------------------
# Listing
# ------------------------------------------------------------
def test_list_users_newest_first(client: TestClient, make_user, store):
    headers = make_user("admin")
    store.seed("users", "u-old", name="Old", phone="1", role="facility_manager")
    store.seed("users", "u-new", name="New", phone="2", role="facility_manager")
    store.refresh("users")

    response = client.get("/users", headers=headers)

    assert response.status_code == 200
    ids = [u["id"] for u in response.json()["data"]]
    assert ids[:2] == ["u-new", "u-old"]


def test_list_users_filters(client: TestClient, make_user, store):
    headers = make_user("regional_supervisor")
    store.seed("users", "a", name="Alice Achan", email="alice@dims.go.ug", phone="1", role="facility_manager")
    store.seed("users", "b", name="Bob", phone="0772", role="village_health_worker", status="inactive")
    store.refresh("users")

    by_role = client.get("/users?role=village_health_worker", headers=headers).json()["data"]
    assert [u["id"] for u in by_role] == ["b"]

    by_status = client.get("/users?status=inactive", headers=headers).json()["data"]
    assert [u["id"] for u in by_status] == ["b"]

    by_search = client.get("/users?search=ACHAN", headers=headers).json()["data"]
    assert [u["id"] for u in by_search] == ["a"]

    by_phone = client.get("/users?search=0772", headers=headers).json()["data"]
    assert [u["id"] for u in by_phone] == ["b"]

    assert client.get("/users?role=superuser", headers=headers).status_code == 400


def test_village_health_worker_cannot_list_users(client: TestClient, make_user):
    headers = make_user("village_health_worker")
    response = client.get("/users", headers=headers)
    assert response.status_code == 403
    assert "users:view" in response.json()["detail"]


def test_get_user_and_missing_user(client: TestClient, make_user, store):
    headers = make_user("facility_manager")
    store.seed("users", "u1", name="Grace", phone="1", role="village_health_worker")

    assert client.get("/users/u1", headers=headers).json()["data"]["name"] == "Grace"
    assert client.get("/users/nope", headers=headers).status_code == 404


def test_get_user_with_null_phone_and_status(client: TestClient, make_user, store):
    headers = make_user("facility_manager")
    store.seed("users", "u9", name="Ann", role="village_health_worker", phone=None, status=None)

    response = client.get("/users/u9", headers=headers)

    assert response.status_code == 200
    assert response.json()["data"]["phone"] == ""
    assert response.json()["data"]["status"] == "active"


# ------------------------------------------------------------
# Create
# ------------------------------------------------------------
def test_create_user_keeps_only_role_location(client: TestClient, make_user, store):
    headers = make_user("facility_manager")

    response = client.post("/users", json=VALID_USER, headers=headers)

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["facility_name"] == "Kawempe Health Center IV"
    assert data["region"] is None
    assert store.read("users", data["id"])["phone"] == "0700123456"


def test_create_user_shows_up_in_list(client: TestClient, make_user):
    headers = make_user("admin")
    created = client.post("/users", json=VALID_USER, headers=headers).json()["data"]

    ids = [u["id"] for u in client.get("/users", headers=headers).json()["data"]]
    assert created["id"] in ids


def test_create_user_with_login(client: TestClient, make_user, provider):
    headers = make_user("admin")
    payload = {**VALID_USER, "password": "s3cret-pass"}

    response = client.post("/users", json=payload, headers=headers)

    assert response.status_code == 201
    user_id = response.json()["data"]["id"]
    assert provider.accounts["peter.okello@dims.go.ug"]["uid"] == user_id


def test_create_user_validation(client: TestClient, make_user, store):
    headers = make_user("admin")
    before = len(store.list("users"))

    response = client.post("/users", json={**VALID_USER, "phone": "  "}, headers=headers)
    assert response.status_code == 400
    assert response.json()["field"] == "phone"

    response = client.post("/users", json={**VALID_USER, "role": "superuser"}, headers=headers)
    assert response.status_code == 400
    assert response.json()["field"] == "role"

    assert len(store.list("users")) == before


def test_only_admin_may_grant_admin(client: TestClient, make_user):
    headers = make_user("regional_supervisor")
    response = client.post("/users", json={**VALID_USER, "role": "admin"}, headers=headers)
    assert response.status_code == 403


def test_store_outage_is_service_unavailable(client: TestClient, make_user, store):
    headers = make_user("admin")
    store.fail = True
    response = client.get("/users/anyone", headers=headers)
    assert response.status_code == 503


# ------------------------------------------------------------
# Update / role / status
# ------------------------------------------------------------
def test_update_user(client: TestClient, make_user, store):
    headers = make_user("facility_manager")
    store.seed("users", "u1", name="Grace", phone="1", role="village_health_worker",
               facility_name="Mulago")

    response = client.patch("/users/u1", json={"phone": "0700999888"}, headers=headers)

    assert response.status_code == 200
    assert store.read("users", "u1")["phone"] == "0700999888"
    assert store.read("users", "u1")["facility_name"] == "Mulago"


def test_role_change_through_patch_needs_assign_roles(client: TestClient, make_user, store):
    headers = make_user("facility_manager")
    store.seed("users", "u1", name="Grace", phone="1", role="village_health_worker")

    response = client.patch("/users/u1", json={"role": "facility_manager"}, headers=headers)

    assert response.status_code == 403
    assert store.read("users", "u1")["role"] == "village_health_worker"


def test_assign_role_moves_location_field(client: TestClient, make_user, store):
    headers = make_user("district_health_officer")
    store.seed("users", "u1", name="Grace", phone="1", role="village_health_worker",
               facility_name="Mulago")

    response = client.put("/users/u1/role", json={"role": "district_health_officer"}, headers=headers)

    assert response.status_code == 200
    row = store.read("users", "u1")
    assert row["role"] == "district_health_officer"
    assert row["facility_name"] is None


def test_toggle_status(client: TestClient, make_user, store):
    headers = make_user("facility_manager")
    store.seed("users", "u1", name="Grace", phone="1", role="village_health_worker")

    assert client.post("/users/u1/toggle-status", headers=headers).json()["data"]["status"] == "inactive"
    assert client.post("/users/u1/toggle-status", headers=headers).json()["data"]["status"] == "active"


def test_last_active_admin_is_protected(client: TestClient, make_user, store):
    headers = make_user("admin", uid="admin-1")
    make_user("admin", uid="admin-2", status="inactive")

    assert client.put("/users/admin-1/role", json={"role": "facility_manager"}, headers=headers).status_code == 400
    assert client.post("/users/admin-1/toggle-status", headers=headers).status_code == 400
    assert client.patch("/users/admin-1", json={"status": "inactive"}, headers=headers).status_code == 400
    assert store.read("users", "admin-1")["role"] == "admin"


def test_second_admin_can_be_demoted(client: TestClient, make_user, store):
    headers = make_user("admin", uid="admin-1")
    make_user("admin", uid="admin-2")

    response = client.put("/users/admin-2/role", json={"role": "regional_supervisor"}, headers=headers)
    assert response.status_code == 200


# ------------------------------------------------------------
# Delete
# ------------------------------------------------------------
def test_delete_user(client: TestClient, make_user, store):
    headers = make_user("admin")
    store.seed("users", "u1", name="Grace", phone="1", role="village_health_worker")

    response = client.delete("/users/u1", headers=headers)

    assert response.status_code == 200
    assert store.read("users", "u1") is None


def test_cannot_delete_self(client: TestClient, make_user):
    headers = make_user("admin", uid="admin-1")
    make_user("admin", uid="admin-2")
    assert client.delete("/users/admin-1", headers=headers).status_code == 400


def test_facility_manager_cannot_delete(client: TestClient, make_user, store):
    headers = make_user("facility_manager")
    store.seed("users", "u1", name="Grace", phone="1", role="village_health_worker")
    assert client.delete("/users/u1", headers=headers).status_code == 403


def test_create_user_stores_lowercase_email(client: TestClient, make_user, store):
    headers = make_user("admin")
    payload = {**VALID_USER, "email": "Peter.Okello@dims.go.ug"}

    data = client.post("/users", json=payload, headers=headers).json()["data"]

    assert store.read("users", data["id"])["email"] == "peter.okello@dims.go.ug"
