# Overview: Payment-provider callback verification (HMAC-SHA512) and status acknowledgment.

"""
Payment callbacks.

The provider posts ``{"payload": {...}, "sha512": "<hex>"}``. The signature
is HMAC-SHA512 over the payload serialized as compact JSON with sorted keys,
keyed with ``PAYMENT_SECRET_KEY``.

Terminal statuses SUCCESS and FAILED are acknowledged as final. Any other
status is acknowledged as PENDING and changes nothing.
"""
from __future__ import annotations

import hashlib
import hmac
import json

from flask import current_app

from ..errors import ForbiddenError, ServiceUnavailableError
from ..validation import ValidationError

STATUS_SUCCESS = "SUCCESS"
STATUS_FAILED = "FAILED"
STATUS_PENDING = "PENDING"


def canonical_payload(payload: dict) -> bytes:
    return json.dumps(payload, sort_keys=True, separators=(",", ":")).encode("utf-8")


def sign(payload: dict, secret: str) -> str:
    return hmac.new(secret.encode("utf-8"), canonical_payload(payload), hashlib.sha512).hexdigest()


def verify_signature(payload: dict, signature: str, secret: str) -> bool:
    expected = sign(payload, secret).encode("ascii")
    return hmac.compare_digest(expected, signature.strip().lower().encode("utf-8"))


def handle_notification(body) -> tuple[dict, int]:
    """Verify a callback and return the acknowledgment body and status code."""
    if not isinstance(body, dict):
        raise ValidationError("Invalid request body")
    payload = body.get("payload")
    signature = body.get("sha512")
    if not isinstance(payload, dict) or not payload or not isinstance(signature, str) or not signature:
        current_app.logger.warning("Payment callback missing payload or signature")
        raise ValidationError("Invalid request body")

    secret = current_app.config.get("PAYMENT_SECRET_KEY")
    if not secret:
        current_app.logger.error("PAYMENT_SECRET_KEY is not configured; rejecting payment callback")
        raise ServiceUnavailableError()

    if not verify_signature(payload, signature, secret):
        current_app.logger.warning(
            "Payment callback signature mismatch for order %s", payload.get("orderId")
        )
        raise ForbiddenError("Signature validation failed")

    status = payload.get("status")
    order_id = payload.get("orderId")
    current_app.logger.info(
        "Payment callback verified: order=%s transaction=%s status=%s",
        order_id,
        payload.get("transactionId"),
        status,
    )

    if status == STATUS_SUCCESS:
        return {
            "message": "Payment processed successfully",
            "orderId": order_id,
            "amount": payload.get("amount"),
        }, 200
    if status == STATUS_FAILED:
        return {"message": "Payment not received", "orderId": order_id}, 200

    return {"status": STATUS_PENDING, "orderId": order_id}, 202
