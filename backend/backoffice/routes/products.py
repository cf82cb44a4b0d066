# Overview: Flask API routes for products; parses input and returns JSON responses.

"""
Product routes.

Every route runs inside the caller's namespace (bound by @require_auth).
Reads are open to any bakery user; writes need Store Owner or Admin.
Cost price is derived from the product's recipe and is never accepted.
"""
from flask import Blueprint, request

from ..decorators import require_auth, require_roles
from ..roles import MANAGERS
from ..services import products_service
from ..services.tenant_scope import tenant_session

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_auth
def list_products():
    """
    List products.

    Query params:
    - active: "true" to hide inactive products
    - page: int (optional) - page number (1-indexed). If omitted, returns all items.
    - per_page: int (optional) - items per page (default 20, max 100)
    """
    active_only = request.args.get("active", "").lower() == "true"
    return products_service.list_products(
        tenant_session(),
        active_only=active_only,
        page=request.args.get("page", type=int),
        per_page=request.args.get("per_page", type=int),
    )


@products_bp.get("/<int:product_id>")
@require_auth
def get_product(product_id: int):
    return products_service.get_product(tenant_session(), product_id).to_dict()


@products_bp.post("")
@require_auth
@require_roles(*MANAGERS)
def create_product_route():
    payload = request.get_json(silent=True) or {}
    product = products_service.create_product(tenant_session(), payload)
    return product.to_dict(), 201


@products_bp.put("/<int:product_id>")
@require_auth
@require_roles(*MANAGERS)
def update_product_route(product_id: int):
    payload = request.get_json(silent=True) or {}
    product = products_service.update_product(tenant_session(), product_id, payload)
    return product.to_dict(), 200


@products_bp.delete("/<int:product_id>")
@require_auth
@require_roles(*MANAGERS)
def delete_product_route(product_id: int):
    products_service.delete_product(tenant_session(), product_id)
    return {"ok": True}, 200
