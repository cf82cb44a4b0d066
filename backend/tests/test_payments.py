"""Payment provider callback verification."""

import pytest

from backoffice.services import payment_service

SECRET = "test-payment-secret"


def _callback(client, payload, signature=None):
    return client.post("/api/payments/notification", json={
        "payload": payload,
        "sha512": signature if signature is not None else payment_service.sign(payload, SECRET),
    })


def test_signature_is_order_independent():
    a = {"orderId": "o-1", "status": "SUCCESS", "amount": "12.00"}
    b = {"amount": "12.00", "status": "SUCCESS", "orderId": "o-1"}
    assert payment_service.sign(a, SECRET) == payment_service.sign(b, SECRET)


def test_success(client):
    resp = _callback(client, {"orderId": "o-1", "status": "SUCCESS", "amount": "12.00", "transactionId": "t-9"})
    assert resp.status_code == 200
    assert resp.get_json() == {"message": "Payment processed successfully", "orderId": "o-1", "amount": "12.00"}


def test_failed(client):
    resp = _callback(client, {"orderId": "o-2", "status": "FAILED"})
    assert resp.status_code == 200
    assert resp.get_json()["message"] == "Payment not received"


@pytest.mark.parametrize("status", ["PENDING", "PROCESSING", None])
def test_other_statuses_are_pending(client, status):
    resp = _callback(client, {"orderId": "o-3", "status": status})
    assert resp.status_code == 202
    assert resp.get_json() == {"status": "PENDING", "orderId": "o-3"}


def test_bad_signature_is_403(client):
    payload = {"orderId": "o-4", "status": "SUCCESS", "amount": "12.00"}
    forged = payment_service.sign(payload, "wrong-secret")
    resp = _callback(client, payload, signature=forged)
    assert resp.status_code == 403
    assert resp.get_json()["error"] == "Signature validation failed"


def test_tampered_payload_is_403(client):
    payload = {"orderId": "o-5", "status": "FAILED"}
    signature = payment_service.sign(payload, SECRET)
    resp = _callback(client, {"orderId": "o-5", "status": "SUCCESS"}, signature=signature)
    assert resp.status_code == 403


@pytest.mark.parametrize("body", [None, {}, {"payload": {"orderId": "x"}}, {"sha512": "abc"}])
def test_malformed_body_is_400(client, body):
    resp = client.post("/api/payments/notification", json=body)
    assert resp.status_code == 400


def test_missing_secret_is_server_error(app, client):
    app.config["PAYMENT_SECRET_KEY"] = None
    resp = _callback(client, {"orderId": "o-6", "status": "SUCCESS"})
    assert resp.status_code == 500


def test_non_ascii_signature_is_403(client):
    resp = _callback(client, {"orderId": "o-7", "status": "SUCCESS"}, signature="éabc")
    assert resp.status_code == 403
    assert resp.get_json()["error"] == "Signature validation failed"
