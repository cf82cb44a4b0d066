# Overview: Flask API routes for recipes; line changes re-cost the products using them.

from flask import Blueprint, request

from ..decorators import require_auth, require_roles
from ..roles import KITCHEN, MANAGERS
from ..services import recipes_service
from ..services.tenant_scope import tenant_session

recipes_bp = Blueprint("recipes", __name__, url_prefix="/api/recipes")


@recipes_bp.get("")
@require_auth
def list_recipes():
    return recipes_service.list_recipes(
        tenant_session(),
        page=request.args.get("page", type=int),
        per_page=request.args.get("per_page", type=int),
    )


@recipes_bp.get("/<int:recipe_id>")
@require_auth
def get_recipe(recipe_id: int):
    recipe = recipes_service.get_recipe(tenant_session(), recipe_id)
    data = recipe.to_dict()
    data["cost"] = str(recipes_service.recipe_cost(tenant_session(), recipe.id))
    return data


@recipes_bp.post("")
@require_auth
@require_roles(*KITCHEN)
def create_recipe_route():
    """
    Create a recipe.

    Body: {"recipe_name", "description"?, "batch_size"?,
           "ingredients": [{"ingredient_id", "quantity"}, ...]}
    """
    payload = request.get_json(silent=True) or {}
    recipe = recipes_service.create_recipe(tenant_session(), payload)
    return recipe.to_dict(), 201


@recipes_bp.put("/<int:recipe_id>")
@require_auth
@require_roles(*KITCHEN)
def update_recipe_route(recipe_id: int):
    payload = request.get_json(silent=True) or {}
    recipe = recipes_service.update_recipe(tenant_session(), recipe_id, payload)
    return recipe.to_dict(), 200


@recipes_bp.delete("/<int:recipe_id>")
@require_auth
@require_roles(*MANAGERS)
def delete_recipe_route(recipe_id: int):
    recipes_service.delete_recipe(tenant_session(), recipe_id)
    return {"ok": True}, 200
