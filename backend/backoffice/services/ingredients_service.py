# Overview: Ingredient CRUD and the refill workflow.

from __future__ import annotations

from flask import current_app
from sqlalchemy import update

from ..errors import ConflictError, NotFoundError
from ..models import Ingredient, PurchaseRequestItem, RecipeIngredient
from ..validation import ModelValidationPolicy, enforce_rules_ingredient, validate_payload
from . import purchasing_service, recipes_service
from .concurrency import atomic, lock_for_update
from .pagination import paginate

INGREDIENT_POLICY = ModelValidationPolicy(
    writable_fields={
        "ingredient_name",
        "unit_of_measure",
        "current_stock",
        "reorder_level",
        "supplier",
        "cost_price",
    },
    required_on_create={"ingredient_name", "unit_of_measure"},
)

DUPLICATE_NAME = "An ingredient with this name already exists"


def _get(session, ingredient_id: int, *, lock: bool = False) -> Ingredient:
    query = session.query(Ingredient).filter(Ingredient.id == ingredient_id)
    if lock:
        query = lock_for_update(query).populate_existing()
    ingredient = query.first()
    if ingredient is None:
        raise NotFoundError("Ingredient not found")
    return ingredient


def list_ingredients(session, *, below_reorder: bool = False, page=None, per_page=None) -> dict:
    query = session.query(Ingredient)
    if below_reorder:
        query = query.filter(Ingredient.current_stock <= Ingredient.reorder_level)
    query = query.order_by(Ingredient.ingredient_name.asc(), Ingredient.id.asc())
    return paginate(query, page=page, per_page=per_page)


def get_ingredient(session, ingredient_id: int) -> Ingredient:
    return _get(session, ingredient_id)


def create_ingredient(session, payload: dict) -> Ingredient:
    patch = validate_payload(model=Ingredient, payload=payload, policy=INGREDIENT_POLICY, partial=False)
    enforce_rules_ingredient(patch)

    with atomic(session, conflict_message=DUPLICATE_NAME):
        if session.query(Ingredient.id).filter(Ingredient.ingredient_name == patch["ingredient_name"]).first():
            raise ConflictError(DUPLICATE_NAME)
        ingredient = Ingredient(**patch)
        session.add(ingredient)

    return ingredient


def update_ingredient(session, ingredient_id: int, payload: dict) -> Ingredient:
    """Update an ingredient; a cost change re-costs every recipe that uses it."""
    patch = validate_payload(model=Ingredient, payload=payload, policy=INGREDIENT_POLICY, partial=True)
    enforce_rules_ingredient(patch)

    with atomic(session, conflict_message=DUPLICATE_NAME):
        ingredient = _get(session, ingredient_id, lock=True)
        cost_changed = "cost_price" in patch and patch["cost_price"] != ingredient.cost_price
        for key, value in patch.items():
            setattr(ingredient, key, value)
        session.flush()
        if cost_changed:
            recipe_ids = recipes_service.propagate_ingredient_cost(session, ingredient.id)
            current_app.logger.info(
                "Ingredient %s cost changed; re-costed recipes %s", ingredient.id, recipe_ids
            )

    return ingredient


def delete_ingredient(session, ingredient_id: int) -> None:
    with atomic(session):
        ingredient = _get(session, ingredient_id, lock=True)
        in_recipe = session.query(RecipeIngredient.id).filter_by(ingredient_id=ingredient.id).first()
        if in_recipe:
            raise ConflictError("Ingredient is used by a recipe")
        in_request = session.query(PurchaseRequestItem.id).filter_by(ingredient_id=ingredient.id).first()
        if in_request:
            raise ConflictError("Ingredient is referenced by a purchase request")
        session.delete(ingredient)


def refill(session, ingredient_id: int) -> Ingredient:
    """
    Receive the pending refill: current_stock += refill_amount; refill_amount = 0.

    A single UPDATE, so concurrent approvals that raise refill_amount cannot
    interleave between the read and the write. Afterwards Approved purchase
    requests whose ingredients are all refilled become Completed.
    """
    with atomic(session):
        result = session.execute(
            update(Ingredient)
            .where(Ingredient.id == ingredient_id)
            .values(
                current_stock=Ingredient.current_stock + Ingredient.refill_amount,
                refill_amount=0,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise NotFoundError("Ingredient not found")
        purchasing_service.reconcile(session)

    return _get(session, ingredient_id)
