"""Customer endpoints through the FastAPI TestClient."""

import pytest

CUSTOMER_FORM = {
    "full_name": "Aziz Karimov",
    "phone_number": "+998 90 123-45-67",
    "car_brand": "Chevrolet",
    "car_model": "Cobalt",
    "car_year": "2022",
    "car_purchase_cost": "9000",
    "leasing_amount": "10000",
    "monthly_installment": "500",
    "lease_duration": "3",
    "lease_start_date": "2024-01-15",
}


def create_customer(client, files=None, **overrides):
    form = dict(CUSTOMER_FORM)
    form.update(overrides)
    return client.post("/customers", data=form, files=files)


def test_root(client):
    r = client.get("/")
    assert r.status_code == 200
    assert "running" in r.json()["message"]


def test_create_customer_with_schedule(client):
    r = create_customer(client)

    assert r.status_code == 201
    body = r.json()
    assert body["total_paid"] == 0
    assert body["status"] == "active"
    assert body["profit"] == -8500
    assert body["remaining_balance"] == 1500

    schedule = client.get(f"/customers/{body['customer_id']}/payments").json()
    assert [p["due_date"] for p in schedule] == ["2024-01-15", "2024-02-15", "2024-03-15"]
    assert {p["status"] for p in schedule} == {"pending"}
    assert {p["amount"] for p in schedule} == {500}


@pytest.mark.parametrize(
    "override",
    [
        {"phone_number": "call me"},
        {"car_year": "1800"},
        {"lease_duration": "0"},
        {"monthly_installment": "-5"},
        {"full_name": "   "},
    ],
)
def test_create_customer_validation(client, override):
    r = create_customer(client, **override)

    assert r.status_code == 422
    assert client.get("/customers").json() == []


def test_create_customer_stores_identity_files(client, storage):
    r = create_customer(
        client,
        files={
            "driver_id": ("license.jpg", b"\xff\xd8jpeg", "image/jpeg"),
            "photo": ("me.png", b"\x89PNG", "image/png"),
        },
    )

    assert r.status_code == 201
    body = r.json()
    assert body["driver_id_path"].startswith("/uploads/driver_")
    assert body["photo_url"].startswith("/uploads/photo_")
    assert body["passport_photo_path"] is None
    assert storage.path_for(body["driver_id_path"]).exists()


def test_rejected_file_cleans_up_and_creates_nothing(client, storage):
    r = create_customer(
        client,
        files={
            "driver_id": ("license.jpg", b"\xff\xd8jpeg", "image/jpeg"),
            "passport": ("passport.gif", b"GIF89a", "image/gif"),
        },
    )

    assert r.status_code == 400
    assert r.json()["detail"] == "Invalid file type"
    assert client.get("/customers").json() == []
    assert list(storage.upload_dir.iterdir()) == []


def test_list_and_search(client):
    create_customer(client)
    create_customer(client, full_name="Dilnoza Rahimova", car_brand="Kia", car_model="K5")

    assert len(client.get("/customers").json()) == 2
    found = client.get("/customers", params={"search": "kia"}).json()
    assert [c["full_name"] for c in found] == ["Dilnoza Rahimova"]


def test_get_customer_with_payments(client):
    cid = create_customer(client).json()["customer_id"]

    r = client.get(f"/customers/{cid}")

    assert r.status_code == 200
    assert len(r.json()["payments"]) == 3


def test_get_missing_customer(client):
    r = client.get("/customers/999")
    assert r.status_code == 404
    assert r.json() == {"detail": "Customer not found"}


def test_update_profile(client):
    cid = create_customer(client).json()["customer_id"]

    r = client.put(f"/customers/{cid}", json={"full_name": "Aziz K.", "leasing_amount": 9000})

    assert r.status_code == 200
    assert r.json()["full_name"] == "Aziz K."
    assert r.json()["profit"] == -7500


@pytest.mark.parametrize(
    "payload",
    [{"total_paid": 1500}, {"status": "completed"}, {"monthly_installment": 100}, {"lease_duration": 6}],
)
def test_update_rejects_schedule_and_aggregate_fields(client, payload):
    cid = create_customer(client).json()["customer_id"]

    r = client.put(f"/customers/{cid}", json=payload)

    assert r.status_code == 422
    assert client.get(f"/customers/{cid}").json()["total_paid"] == 0


def test_replace_identity_file(client, storage):
    body = create_customer(client, files={"passport": ("old.png", b"old", "image/png")}).json()
    old_ref = body["passport_photo_path"]

    r = client.put(
        f"/customers/{body['customer_id']}/files",
        files={"passport": ("new.png", b"new", "image/png")},
    )

    assert r.status_code == 200
    new_ref = r.json()["passport_photo_path"]
    assert new_ref != old_ref
    assert storage.path_for(new_ref).read_bytes() == b"new"
    assert not storage.path_for(old_ref).exists()


def test_delete_customer_removes_payments_and_files(client, storage):
    body = create_customer(client, files={"photo": ("me.png", b"\x89PNG", "image/png")}).json()
    cid = body["customer_id"]

    r = client.delete(f"/customers/{cid}")

    assert r.status_code == 200
    assert client.get(f"/customers/{cid}").status_code == 404
    assert client.get("/payments", params={"customer_id": cid}).json() == []
    assert not storage.path_for(body["photo_url"]).exists()
