from conftest import ADMIN, TENANT


def _business(client, name, shop_number):
    response = client.post("/api/businesses/create", json={
        "name": name, "shop_number": shop_number, "rent_amount": "12000",
    })
    assert response.status_code == 200, response.text
    return response.json()


def _rent_bill(client, business, month):
    response = client.post("/api/bills/create", json={
        "business_id": business["id"], "kind": "rent", "month": month, "year": 2026,
        "bill_date": f"2026-{month:02d}-01", "due_date": f"2026-{month:02d}-16",
    })
    assert response.status_code == 200, response.text
    return response.json()


def test_billing_actions_show_up_in_the_log(client):
    tea = _business(client, "Tea Stall", "G-04")
    bill = _rent_bill(client, tea, 2)
    client.put(f"/api/bills/{bill['id']}/status", json={"status": "paid"})

    logs = client.get("/api/activity-logs/all").json()
    assert logs["total"] == 2
    assert {log["action_type"] for log in logs["logs"]} == {"bill_generated", "bill_status_changed"}

    generated = client.get("/api/activity-logs/all", params={"action_type": "bill_generated"}).json()
    assert generated["total"] == 1
    entry = generated["logs"][0]
    assert entry["entity_name"] == bill["bill_number"]
    assert entry["username"] == "Plaza Admin"
    assert float(entry["amount"]) == 12000

    assert client.get("/api/activity-logs/action-types").json() == [
        "bill_generated", "bill_status_changed",
    ]


def test_log_filters(client, auth):
    _rent_bill(client, _business(client, "Tea Stall", "G-04"), 2)
    _rent_bill(client, _business(client, "Shoe Corner", "G-05"), 2)

    by_entity = client.get("/api/activity-logs/all", params={"search": "shoe corner"}).json()
    assert by_entity["total"] == 1

    assert client.get("/api/activity-logs/all", params={"username": "admin"}).json()["total"] == 2
    assert client.get("/api/activity-logs/all", params={"user_type": "tenant"}).json()["total"] == 0
    assert client.get("/api/activity-logs/all", params={"start_date": "2000-01-01"}).json()["total"] == 2
    assert client.get("/api/activity-logs/all", params={"end_date": "2000-01-01"}).json()["total"] == 0

    auth["user"] = TENANT
    assert client.get("/api/activity-logs/all").status_code == 403


def test_record_and_reject_endpoints(client, auth):
    tea = _business(client, "Tea Stall", "G-04")
    bill = _rent_bill(client, tea, 2)

    recorded = client.post("/api/payments/record", json={
        "business_id": tea["id"], "amount": "12000", "payment_date": "2026-02-10",
        "payment_method": "upi",
    })
    assert recorded.status_code == 200, recorded.text
    assert recorded.json()["bill_status"] == "paid"
    assert recorded.json()["bill_number"] == bill["bill_number"]

    march = _rent_bill(client, tea, 3)
    auth["user"] = TENANT
    client.put(f"/api/bills/{march['id']}/status", json={"status": "paid"})
    pending = client.get("/api/payments/all", params={"approval_status": "pending_approval"}).json()
    payment_id = pending["payments"][0]["id"]

    assert client.put(f"/api/payments/{payment_id}/reject", json={}).status_code == 403

    auth["user"] = ADMIN
    response = client.put(f"/api/payments/{payment_id}/reject", json={"reason": "Not received"})
    assert response.status_code == 200
    assert response.json()["approval_status"] == "rejected"
    assert client.get(f"/api/bills/{march['id']}").json()["status"] == "pending"

    # more than the reopened bill still owes
    response = client.post("/api/payments/record", json={
        "business_id": tea["id"], "amount": "20000", "payment_date": "2026-03-10",
    })
    assert response.status_code == 400
