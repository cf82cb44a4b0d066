# Overview: Flask API routes for ingredients and the refill workflow.

from flask import Blueprint, request

from ..decorators import require_auth, require_roles
from ..roles import KITCHEN, MANAGERS
from ..services import ingredients_service
from ..services.tenant_scope import tenant_session

ingredients_bp = Blueprint("ingredients", __name__, url_prefix="/api/ingredients")


@ingredients_bp.get("")
@require_auth
def list_ingredients():
    """
    List ingredients.

    Query params:
    - below_reorder: "true" to return only ingredients at or under their reorder level
    - page / per_page: optional pagination
    """
    below_reorder = request.args.get("below_reorder", "").lower() == "true"
    return ingredients_service.list_ingredients(
        tenant_session(),
        below_reorder=below_reorder,
        page=request.args.get("page", type=int),
        per_page=request.args.get("per_page", type=int),
    )


@ingredients_bp.get("/<int:ingredient_id>")
@require_auth
def get_ingredient(ingredient_id: int):
    return ingredients_service.get_ingredient(tenant_session(), ingredient_id).to_dict()


@ingredients_bp.post("")
@require_auth
@require_roles(*KITCHEN)
def create_ingredient_route():
    payload = request.get_json(silent=True) or {}
    ingredient = ingredients_service.create_ingredient(tenant_session(), payload)
    return ingredient.to_dict(), 201


@ingredients_bp.put("/<int:ingredient_id>")
@require_auth
@require_roles(*KITCHEN)
def update_ingredient_route(ingredient_id: int):
    """Update an ingredient. Changing cost_price re-costs dependent recipes and products."""
    payload = request.get_json(silent=True) or {}
    ingredient = ingredients_service.update_ingredient(tenant_session(), ingredient_id, payload)
    return ingredient.to_dict(), 200


@ingredients_bp.delete("/<int:ingredient_id>")
@require_auth
@require_roles(*MANAGERS)
def delete_ingredient_route(ingredient_id: int):
    ingredients_service.delete_ingredient(tenant_session(), ingredient_id)
    return {"ok": True}, 200


@ingredients_bp.post("/<int:ingredient_id>/refill")
@require_auth
@require_roles(*KITCHEN)
def refill_ingredient_route(ingredient_id: int):
    """Receive the approved refill amount into current stock."""
    ingredient = ingredients_service.refill(tenant_session(), ingredient_id)
    return ingredient.to_dict(), 200
