# Overview: Flask API routes for sales; recording a sale decrements stock in the same transaction.

from flask import Blueprint, g, request

from ..decorators import require_auth, require_roles
from ..roles import MANAGERS, TILL
from ..services import sales_service
from ..services.tenant_scope import tenant_session

sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.get("")
@require_auth
def list_sales():
    """
    List sales with their items, newest first.

    Query params:
    - startDate / endDate: ISO dates; endDate includes the whole day
    - page / per_page: optional pagination
    """
    return sales_service.list_sales(
        tenant_session(),
        start_date=request.args.get("startDate"),
        end_date=request.args.get("endDate"),
        page=request.args.get("page", type=int),
        per_page=request.args.get("per_page", type=int),
    )


@sales_bp.get("/<int:sale_id>")
@require_auth
def get_sale(sale_id: int):
    return sales_service.get_sale(tenant_session(), sale_id).to_dict()


@sales_bp.post("")
@require_auth
@require_roles(*TILL)
def create_sale_route():
    """
    Record a sale.

    Body: {"payment_method", "sale_date"?,
           "items": [{"product_id", "quantity", "unit_price"?}, ...]}

    The total is computed from the items.
    """
    payload = request.get_json(silent=True) or {}
    sale = sales_service.create_sale(tenant_session(), g.identity, payload)
    return sale.to_dict(), 201


@sales_bp.put("/<int:sale_id>")
@require_auth
@require_roles(*MANAGERS)
def update_sale_route(sale_id: int):
    payload = request.get_json(silent=True) or {}
    sale = sales_service.update_sale(tenant_session(), sale_id, payload)
    return sale.to_dict(), 200


@sales_bp.delete("/<int:sale_id>")
@require_auth
@require_roles(*MANAGERS)
def delete_sale_route(sale_id: int):
    sales_service.delete_sale(tenant_session(), sale_id)
    return {"ok": True}, 200
