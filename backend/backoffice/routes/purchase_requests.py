# Overview: Flask API routes for purchase requests and their approval workflow.

"""
Purchase request routes.

Kitchen staff (Owner, Admin, Baker) create and edit requests; only Store
Owners and Admins approve, reject or delete them. Approval raises the
requested ingredients' refill amounts exactly once per request.
"""
from flask import Blueprint, g, request

from ..decorators import require_auth, require_roles
from ..roles import KITCHEN, MANAGERS
from ..services import purchasing_service
from ..services.tenant_scope import tenant_session

purchase_requests_bp = Blueprint("purchase_requests", __name__, url_prefix="/api/purchase-requests")


@purchase_requests_bp.get("")
@require_auth
@require_roles(*KITCHEN)
def list_purchase_requests():
    """
    List purchase requests.

    Query params:
    - status: Pending | Approved | Rejected | Completed (optional)
    - page / per_page: optional pagination
    """
    return purchasing_service.list_requests(
        tenant_session(),
        status=request.args.get("status") or None,
        page=request.args.get("page", type=int),
        per_page=request.args.get("per_page", type=int),
    )


@purchase_requests_bp.get("/<int:request_id>")
@require_auth
@require_roles(*KITCHEN)
def get_purchase_request(request_id: int):
    return purchasing_service.get_request(tenant_session(), request_id).to_dict()


@purchase_requests_bp.post("")
@require_auth
@require_roles(*KITCHEN)
def create_purchase_request_route():
    """
    Create a Pending purchase request.

    Body: {"notes"?, "items": [{"ingredient_id", "quantity_requested", "estimated_unit_price"?}, ...]}
    """
    payload = request.get_json(silent=True) or {}
    purchase_request = purchasing_service.create_request(tenant_session(), g.identity, payload)
    return purchase_request.to_dict(), 201


@purchase_requests_bp.put("/<int:request_id>")
@require_auth
@require_roles(*KITCHEN)
def update_purchase_request_route(request_id: int):
    payload = request.get_json(silent=True) or {}
    purchase_request = purchasing_service.update_request(tenant_session(), g.identity, request_id, payload)
    return purchase_request.to_dict(), 200


@purchase_requests_bp.post("/<int:request_id>/approve")
@require_auth
@require_roles(*MANAGERS)
def approve_purchase_request_route(request_id: int):
    purchase_request = purchasing_service.approve_request(tenant_session(), g.identity, request_id)
    return purchase_request.to_dict(), 200


@purchase_requests_bp.post("/<int:request_id>/reject")
@require_auth
@require_roles(*MANAGERS)
def reject_purchase_request_route(request_id: int):
    purchase_request = purchasing_service.reject_request(tenant_session(), g.identity, request_id)
    return purchase_request.to_dict(), 200


@purchase_requests_bp.post("/approve-all")
@require_auth
@require_roles(*MANAGERS)
def approve_all_purchase_requests_route():
    approved = purchasing_service.approve_all(tenant_session(), g.identity)
    return {"approved": approved, "count": len(approved)}, 200


@purchase_requests_bp.delete("/<int:request_id>")
@require_auth
@require_roles(*MANAGERS)
def delete_purchase_request_route(request_id: int):
    purchasing_service.delete_request(tenant_session(), request_id)
    return {"ok": True}, 200
