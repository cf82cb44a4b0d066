# Overview: Flask API route for the payment provider's signed callback.

from flask import Blueprint, request

from ..services import payment_service

payments_bp = Blueprint("payments", __name__, url_prefix="/api/payments")


@payments_bp.post("/notification")
def payment_notification():
    """
    Payment provider callback (public; authenticated by its HMAC-SHA512 signature).

    Body: {"payload": {"orderId", "status", "amount", "transactionId", ...}, "sha512": "<hex>"}

    Returns 200 for SUCCESS/FAILED, 202 {"status": "PENDING"} for anything
    else, 403 when the signature does not match.
    """
    body = request.get_json(silent=True)
    return payment_service.handle_notification(body)
