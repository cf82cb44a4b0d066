# Overview: Recipes and recipe cost propagation into the products that reference them.

"""
Recipe costing.

    cost(recipe) = sum(line.quantity * ingredient.cost_price)

An ingredient without a cost contributes 0. The result is written to every
Product referencing the recipe whenever a product is created or re-pointed
at a recipe, a recipe's lines change, or an ingredient's cost changes. All
of those run inside the caller's transaction.
"""
from __future__ import annotations

from decimal import Decimal

from flask import current_app
from sqlalchemy import update

from ..errors import ConflictError, NotFoundError
from ..models import Ingredient, Product, Recipe, RecipeIngredient
from ..models.base import CENTS
from ..validation import ModelValidationPolicy, ValidationError, require_list, require_positive, validate_payload
from .concurrency import atomic, lock_for_update
from .pagination import paginate

RECIPE_POLICY = ModelValidationPolicy(
    writable_fields={"recipe_name", "description", "batch_size"},
    required_on_create={"recipe_name"},
)


def recipe_cost(session, recipe_id: int) -> Decimal:
    rows = (
        session.query(RecipeIngredient.quantity, Ingredient.cost_price)
        .join(Ingredient, RecipeIngredient.ingredient_id == Ingredient.id)
        .filter(RecipeIngredient.recipe_id == recipe_id)
        .all()
    )
    total = sum(
        (Decimal(qty) * Decimal(cost or 0) for qty, cost in rows),
        Decimal("0"),
    )
    return total.quantize(CENTS)


def propagate_recipe_cost(session, recipe_id: int) -> Decimal:
    """Recompute a recipe's cost and write it to every product using the recipe."""
    cost = recipe_cost(session, recipe_id)
    session.execute(
        update(Product)
        .where(Product.recipe_id == recipe_id)
        .values(cost_price=cost)
        .execution_options(synchronize_session="fetch")
    )
    return cost


def propagate_ingredient_cost(session, ingredient_id: int) -> list[int]:
    """Re-cost every recipe that uses ``ingredient_id``."""
    recipe_ids = [
        rid for (rid,) in session.query(RecipeIngredient.recipe_id)
        .filter(RecipeIngredient.ingredient_id == ingredient_id)
        .distinct()
        .all()
    ]
    for recipe_id in recipe_ids:
        propagate_recipe_cost(session, recipe_id)
    return recipe_ids


def _parse_lines(session, payload: dict) -> list[tuple[int, Decimal]]:
    raw_lines = require_list(payload, "ingredients")
    lines = []
    seen = set()
    for raw in raw_lines:
        ingredient_id = raw.get("ingredient_id")
        if not isinstance(ingredient_id, int) or isinstance(ingredient_id, bool):
            raise ValidationError("ingredient_id must be an integer")
        if ingredient_id in seen:
            raise ValidationError(f"Ingredient {ingredient_id} appears more than once")
        seen.add(ingredient_id)
        qty = require_positive("quantity", raw.get("quantity"))
        if session.get(Ingredient, ingredient_id) is None:
            raise NotFoundError(f"Ingredient with ID {ingredient_id} not found")
        lines.append((ingredient_id, qty))
    return lines


def _get(session, recipe_id: int, *, lock: bool = False) -> Recipe:
    query = session.query(Recipe).filter(Recipe.id == recipe_id)
    if lock:
        query = lock_for_update(query).populate_existing()
    recipe = query.first()
    if recipe is None:
        raise NotFoundError("Recipe not found")
    return recipe


def list_recipes(session, *, page=None, per_page=None) -> dict:
    query = session.query(Recipe).order_by(Recipe.recipe_name.asc(), Recipe.id.asc())
    return paginate(query, page=page, per_page=per_page)


def get_recipe(session, recipe_id: int) -> Recipe:
    return _get(session, recipe_id)


def create_recipe(session, payload: dict) -> Recipe:
    patch = validate_payload(model=Recipe, payload=_header(payload), policy=RECIPE_POLICY, partial=False)
    _check_batch_size(patch)

    with atomic(session, conflict_message="A recipe with this name already exists"):
        if session.query(Recipe.id).filter(Recipe.recipe_name == patch["recipe_name"]).first():
            raise ConflictError("A recipe with this name already exists")
        lines = _parse_lines(session, payload)
        recipe = Recipe(**patch)
        for ingredient_id, qty in lines:
            recipe.lines.append(RecipeIngredient(ingredient_id=ingredient_id, quantity=qty))
        session.add(recipe)
        session.flush()
        propagate_recipe_cost(session, recipe.id)

    return recipe


def update_recipe(session, recipe_id: int, payload: dict) -> Recipe:
    """Update header fields and, when ``ingredients`` is present, replace the lines."""
    patch = validate_payload(model=Recipe, payload=_header(payload), policy=RECIPE_POLICY, partial=True)
    _check_batch_size(patch)

    with atomic(session, conflict_message="A recipe with this name already exists"):
        recipe = _get(session, recipe_id, lock=True)
        for key, value in patch.items():
            setattr(recipe, key, value)

        if "ingredients" in payload:
            lines = _parse_lines(session, payload)
            recipe.lines.clear()
            # Old lines must be gone before re-inserting the same ingredients.
            session.flush()
            for ingredient_id, qty in lines:
                recipe.lines.append(RecipeIngredient(ingredient_id=ingredient_id, quantity=qty))
            session.flush()
            cost = propagate_recipe_cost(session, recipe.id)
            current_app.logger.info("Recipe %s re-costed at %s", recipe.id, cost)

    return recipe


def delete_recipe(session, recipe_id: int) -> None:
    """Delete a recipe. Products keep their last cost and lose the recipe link."""
    with atomic(session):
        recipe = _get(session, recipe_id, lock=True)
        session.execute(
            update(Product)
            .where(Product.recipe_id == recipe.id)
            .values(recipe_id=None)
            .execution_options(synchronize_session="fetch")
        )
        session.delete(recipe)


def _header(payload: dict) -> dict:
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    return {k: v for k, v in payload.items() if k != "ingredients"}


def _check_batch_size(patch: dict) -> None:
    if "batch_size" in patch and patch["batch_size"] is not None and patch["batch_size"] <= 0:
        raise ValidationError("batch_size must be greater than 0")
