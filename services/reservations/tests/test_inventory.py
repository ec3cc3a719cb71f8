def test_list_inventory(client, world):
    resp = client.get("/inventory/", headers=world.staff_headers)
    assert resp.status_code == 200
    items = resp.json()
    assert len(items) == 1
    assert items[0]["quantity"] == 10
    assert items[0]["status"] == "LOW_STOCK"
    assert items[0]["medicine"]["name"] == "Amoxicillin"

    assert client.get("/inventory/?status=IN_STOCK", headers=world.staff_headers).json() == []
    assert client.get("/inventory/", headers=world.other_staff_headers).json() == []


def test_inventory_requires_pharmacy_role(client, world):
    resp = client.get("/inventory/", headers=world.patient_headers)
    assert resp.status_code == 403
    assert resp.json()["message"] == "Pharmacy access required"


def test_add_inventory(client, world, clock):
    resp = client.post(
        "/inventory/",
        json={"medicineId": world.unstocked.id, "quantity": 0},
        headers=world.staff_headers,
    )
    assert resp.status_code == 201
    body = resp.json()
    assert body["pharmacyId"] == world.pharmacy.id
    assert body["status"] == "OUT_OF_STOCK"
    assert body["lastUpdated"] == clock.now.isoformat()


def test_add_duplicate_inventory(client, world):
    resp = client.post(
        "/inventory/",
        json={"medicineId": world.medicine.id, "quantity": 5},
        headers=world.staff_headers,
    )
    assert resp.status_code == 409
    assert resp.json()["message"] == "Medicine already exists in inventory. Use PUT to update quantity."


def test_add_inventory_validation(client, world):
    resp = client.post("/inventory/", json={"medicineId": world.unstocked.id, "quantity": -1},
                       headers=world.staff_headers)
    assert resp.status_code == 400
    resp = client.post("/inventory/", json={"medicineId": 9999, "quantity": 1}, headers=world.staff_headers)
    assert resp.status_code == 404


def test_update_inventory_rederives_status(client, world, clock):
    clock.advance(hours=1)
    resp = client.put(f"/inventory/{world.stock.id}", json={"quantity": 25}, headers=world.staff_headers)
    assert resp.status_code == 200
    body = resp.json()
    assert body["quantity"] == 25
    assert body["status"] == "IN_STOCK"
    assert body["lastUpdated"] == clock.now.isoformat()

    resp = client.put(f"/inventory/{world.stock.id}", json={"quantity": 0}, headers=world.staff_headers)
    assert resp.json()["status"] == "OUT_OF_STOCK"


def test_update_other_pharmacy_inventory(client, world):
    resp = client.put(f"/inventory/{world.stock.id}", json={"quantity": 3}, headers=world.other_staff_headers)
    assert resp.status_code == 403
    assert resp.json()["message"] == "Cannot update inventory for another pharmacy"
    assert client.put("/inventory/9999", json={"quantity": 3}, headers=world.staff_headers).status_code == 404


def test_restocking_makes_larger_reservation_possible(client, world):
    payload = {"pharmacyId": world.pharmacy.id, "medicineId": world.medicine.id, "quantity": 20}
    assert client.post("/reservations/", json=payload, headers=world.patient_headers).status_code == 409
    client.put(f"/inventory/{world.stock.id}", json={"quantity": 20}, headers=world.staff_headers)
    assert client.post("/reservations/", json=payload, headers=world.patient_headers).status_code == 201
