# Overview: Flask API routes for expenses.

from flask import Blueprint, g, request

from ..decorators import require_auth, require_roles
from ..roles import KITCHEN, MANAGERS
from ..services import expenses_service
from ..services.tenant_scope import tenant_session

expenses_bp = Blueprint("expenses", __name__, url_prefix="/api/expenses")


@expenses_bp.get("")
@require_auth
@require_roles(*KITCHEN)
def list_expenses():
    return expenses_service.list_expenses(
        tenant_session(),
        status=request.args.get("status"),
        cost_type=request.args.get("cost_type"),
        page=request.args.get("page", type=int),
        per_page=request.args.get("per_page", type=int),
    )


@expenses_bp.get("/<int:expense_id>")
@require_auth
@require_roles(*KITCHEN)
def get_expense(expense_id: int):
    return expenses_service.get_expense(tenant_session(), expense_id).to_dict()


@expenses_bp.post("")
@require_auth
@require_roles(*KITCHEN)
def create_expense_route():
    payload = request.get_json(silent=True) or {}
    expense = expenses_service.create_expense(tenant_session(), g.identity, payload)
    return expense.to_dict(), 201


@expenses_bp.put("/<int:expense_id>")
@require_auth
@require_roles(*MANAGERS)
def update_expense_route(expense_id: int):
    """Update an expense. is_active may only be true while status is Paid."""
    payload = request.get_json(silent=True) or {}
    expense = expenses_service.update_expense(tenant_session(), expense_id, payload)
    return expense.to_dict(), 200


@expenses_bp.delete("/<int:expense_id>")
@require_auth
@require_roles(*MANAGERS)
def delete_expense_route(expense_id: int):
    expenses_service.delete_expense(tenant_session(), expense_id)
    return {"ok": True}, 200
