# Overview: Flask API routes for stock movements (overstocks, defects, restocks).

from flask import Blueprint, request

from ..decorators import require_auth, require_roles
from ..roles import KITCHEN, MANAGERS
from ..services import stock_service
from ..services.tenant_scope import tenant_session

overstocks_bp = Blueprint("overstocks", __name__, url_prefix="/api/overstocks")
defects_bp = Blueprint("defects", __name__, url_prefix="/api/defects")
restocks_bp = Blueprint("restocks", __name__, url_prefix="/api/restocks")


def _window_args() -> dict:
    return {
        "start_date": request.args.get("startDate"),
        "end_date": request.args.get("endDate"),
        "page": request.args.get("page", type=int),
        "per_page": request.args.get("per_page", type=int),
    }


@overstocks_bp.get("")
@require_auth
def list_overstocks():
    """
    List overstock records.

    Query params:
    - startDate / endDate: ISO dates on the record's creation time
    - rolled_over: "true" or "false" (optional)
    - page / per_page: optional pagination
    """
    rolled_over = request.args.get("rolled_over")
    if rolled_over is not None:
        rolled_over = rolled_over.lower() == "true"
    return stock_service.list_overstocks(tenant_session(), rolled_over=rolled_over, **_window_args())


@overstocks_bp.post("")
@require_auth
@require_roles(*KITCHEN)
def record_overstock_route():
    payload = request.get_json(silent=True) or {}
    overstock = stock_service.record_overstock(tenant_session(), payload)
    return overstock.to_dict(), 201


@overstocks_bp.post("/rollover")
@require_auth
@require_roles(*MANAGERS)
def rollover_route():
    """Return all unrolled overstock to product stock. Nothing to roll over is still a success."""
    return stock_service.rollover(tenant_session()), 200


@defects_bp.get("")
@require_auth
def list_defects():
    return stock_service.list_defects(tenant_session(), **_window_args())


@defects_bp.post("/<int:product_id>")
@require_auth
@require_roles(*KITCHEN)
def record_defect_route(product_id: int):
    payload = request.get_json(silent=True) or {}
    defect = stock_service.record_defect(tenant_session(), product_id, payload)
    return defect.to_dict(), 201


@restocks_bp.get("")
@require_auth
def list_restocks():
    return stock_service.list_restocks(tenant_session(), **_window_args())


@restocks_bp.post("")
@require_auth
@require_roles(*KITCHEN)
def record_restock_route():
    payload = request.get_json(silent=True) or {}
    restock = stock_service.record_restock(tenant_session(), payload)
    return restock.to_dict(), 201
