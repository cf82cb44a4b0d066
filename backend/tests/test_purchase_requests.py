"""
Purchase request lifecycle.

Pending -> Approved -> Completed (after refill) and Pending -> Rejected.
Approval raises each ingredient's refill amount exactly once.
"""

from backoffice.roles import RoleName

from conftest import add_staff, create_ingredient


def _request(client, headers, *items, **extra):
    payload = {
        "items": [{"ingredient_id": i, "quantity_requested": q} for i, q in items],
    }
    payload.update(extra)
    resp = client.post("/api/purchase-requests", json=payload, headers=headers)
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()


def _ingredient(client, headers, ingredient_id):
    return client.get(f"/api/ingredients/{ingredient_id}", headers=headers).get_json()


def test_create_is_pending(client, owner_headers):
    flour = create_ingredient(client, owner_headers, "Flour")
    pr = _request(client, owner_headers, (flour["id"], 10), notes="weekly order")

    assert pr["status"] == "Pending"
    assert pr["notes"] == "weekly order"
    assert pr["items"][0]["quantity_requested"] == "10.00"


def test_non_positive_quantity_rejected(client, owner_headers):
    flour = create_ingredient(client, owner_headers, "Flour")
    for qty in (0, -5):
        resp = client.post("/api/purchase-requests", json={
            "items": [{"ingredient_id": flour["id"], "quantity_requested": qty}],
        }, headers=owner_headers)
        assert resp.status_code == 400

    assert client.get("/api/purchase-requests", headers=owner_headers).get_json()["count"] == 0


def test_empty_items_rejected(client, owner_headers):
    resp = client.post("/api/purchase-requests", json={"items": []}, headers=owner_headers)
    assert resp.status_code == 400


def test_approve_raises_refill_once(client, owner_headers):
    flour = create_ingredient(client, owner_headers, "Flour")
    pr = _request(client, owner_headers, (flour["id"], 10))

    first = client.post(f"/api/purchase-requests/{pr['id']}/approve", headers=owner_headers)
    second = client.post(f"/api/purchase-requests/{pr['id']}/approve", headers=owner_headers)

    assert first.status_code == 200
    assert first.get_json()["status"] == "Approved"
    assert first.get_json()["approved_by_user_id"] is not None
    assert second.status_code == 409
    assert _ingredient(client, owner_headers, flour["id"])["refill_amount"] == "10.00"


def test_reject_leaves_refill_untouched(client, owner_headers):
    flour = create_ingredient(client, owner_headers, "Flour")
    pr = _request(client, owner_headers, (flour["id"], 10))

    resp = client.post(f"/api/purchase-requests/{pr['id']}/reject", headers=owner_headers)
    assert resp.status_code == 200
    assert resp.get_json()["status"] == "Rejected"
    assert _ingredient(client, owner_headers, flour["id"])["refill_amount"] == "0.00"

    # Terminal
    resp = client.post(f"/api/purchase-requests/{pr['id']}/approve", headers=owner_headers)
    assert resp.status_code == 409


def test_approve_all(client, owner_headers):
    flour = create_ingredient(client, owner_headers, "Flour")
    sugar = create_ingredient(client, owner_headers, "Sugar")
    a = _request(client, owner_headers, (flour["id"], 10))
    b = _request(client, owner_headers, (flour["id"], 5), (sugar["id"], 2))
    c = _request(client, owner_headers, (sugar["id"], 1))
    client.post(f"/api/purchase-requests/{c['id']}/reject", headers=owner_headers)

    resp = client.post("/api/purchase-requests/approve-all", headers=owner_headers)

    assert resp.status_code == 200
    assert resp.get_json() == {"approved": [a["id"], b["id"]], "count": 2}
    assert _ingredient(client, owner_headers, flour["id"])["refill_amount"] == "15.00"
    assert _ingredient(client, owner_headers, sugar["id"])["refill_amount"] == "2.00"

    again = client.post("/api/purchase-requests/approve-all", headers=owner_headers)
    assert again.get_json()["count"] == 0
    assert _ingredient(client, owner_headers, flour["id"])["refill_amount"] == "15.00"


def test_refill_completes_approved_request(client, owner_headers):
    flour = create_ingredient(client, owner_headers, "Flour", current_stock="3")
    pr = _request(client, owner_headers, (flour["id"], 10))
    client.post(f"/api/purchase-requests/{pr['id']}/approve", headers=owner_headers)

    resp = client.post(f"/api/ingredients/{flour['id']}/refill", headers=owner_headers)

    assert resp.status_code == 200
    body = resp.get_json()
    assert body["current_stock"] == "13.00"
    assert body["refill_amount"] == "0.00"

    pr = client.get(f"/api/purchase-requests/{pr['id']}", headers=owner_headers).get_json()
    assert pr["status"] == "Completed"


def test_request_waits_for_every_ingredient(client, owner_headers):
    flour = create_ingredient(client, owner_headers, "Flour")
    sugar = create_ingredient(client, owner_headers, "Sugar")
    pr = _request(client, owner_headers, (flour["id"], 10), (sugar["id"], 4))
    client.post(f"/api/purchase-requests/{pr['id']}/approve", headers=owner_headers)

    client.post(f"/api/ingredients/{flour['id']}/refill", headers=owner_headers)
    status = client.get(f"/api/purchase-requests/{pr['id']}", headers=owner_headers).get_json()["status"]
    assert status == "Approved"

    client.post(f"/api/ingredients/{sugar['id']}/refill", headers=owner_headers)
    status = client.get(f"/api/purchase-requests/{pr['id']}", headers=owner_headers).get_json()["status"]
    assert status == "Completed"


def test_completed_cannot_be_set_by_client(client, owner_headers):
    flour = create_ingredient(client, owner_headers, "Flour")
    pr = _request(client, owner_headers, (flour["id"], 1))
    resp = client.put(f"/api/purchase-requests/{pr['id']}", json={"status": "Completed"}, headers=owner_headers)
    assert resp.status_code == 409


def test_baker_can_request_but_not_approve(client, owner_headers):
    baker = add_staff(client, owner_headers, "bea", RoleName.BAKER)
    flour = create_ingredient(client, owner_headers, "Flour")
    pr = _request(client, baker, (flour["id"], 2))

    resp = client.post(f"/api/purchase-requests/{pr['id']}/approve", headers=baker)
    assert resp.status_code == 403

    resp = client.put(f"/api/purchase-requests/{pr['id']}", json={"status": "Approved"}, headers=baker)
    assert resp.status_code == 403

    pr = client.get(f"/api/purchase-requests/{pr['id']}", headers=owner_headers).get_json()
    assert pr["status"] == "Pending"
    assert _ingredient(client, owner_headers, flour["id"])["refill_amount"] == "0.00"


def test_edit_only_while_pending(client, owner_headers):
    flour = create_ingredient(client, owner_headers, "Flour")
    pr = _request(client, owner_headers, (flour["id"], 2))

    resp = client.put(f"/api/purchase-requests/{pr['id']}", json={"notes": "urgent"}, headers=owner_headers)
    assert resp.status_code == 200
    assert resp.get_json()["notes"] == "urgent"

    client.post(f"/api/purchase-requests/{pr['id']}/approve", headers=owner_headers)
    resp = client.put(f"/api/purchase-requests/{pr['id']}", json={"notes": "late"}, headers=owner_headers)
    assert resp.status_code == 409


def test_oversized_quantity_rejected(client, owner_headers):
    flour = create_ingredient(client, owner_headers, "Flour")
    resp = client.post("/api/purchase-requests", json={
        "items": [{"ingredient_id": flour["id"], "quantity_requested": "1e12"}],
    }, headers=owner_headers)
    assert resp.status_code == 400
