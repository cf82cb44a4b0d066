# Overview: Product CRUD; cost price is always derived from the referenced recipe.

from __future__ import annotations

from flask import current_app
from sqlalchemy import delete

from ..errors import ConflictError, NotFoundError
from ..models import Defect, Overstock, Product, Recipe, Restock, SaleItem
from ..validation import ModelValidationPolicy, enforce_rules_product, validate_payload
from . import recipes_service
from .concurrency import atomic, lock_for_update
from .pagination import paginate

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={
        "product_name",
        "description",
        "unit_price",
        "is_active",
        "recipe_id",
        "quantity_left",
    },
    required_on_create={"product_name", "unit_price"},
)

DUPLICATE_NAME = "A product with this name already exists"


def _get(session, product_id: int, *, lock: bool = False) -> Product:
    query = session.query(Product).filter(Product.id == product_id)
    if lock:
        query = lock_for_update(query).populate_existing()
    product = query.first()
    if product is None:
        raise NotFoundError("Product not found")
    return product


def _resolve_cost(session, recipe_id):
    """Lock the referenced recipe and return its current cost."""
    recipe = lock_for_update(session.query(Recipe).filter(Recipe.id == recipe_id)).first()
    if recipe is None:
        raise NotFoundError(f"Recipe with ID {recipe_id} not found")
    return recipes_service.recipe_cost(session, recipe.id)


def list_products(session, *, active_only: bool = False, page=None, per_page=None) -> dict:
    query = session.query(Product)
    if active_only:
        query = query.filter(Product.is_active.is_(True))
    query = query.order_by(Product.product_name.asc(), Product.id.asc())
    return paginate(query, page=page, per_page=per_page)


def get_product(session, product_id: int) -> Product:
    return _get(session, product_id)


def create_product(session, payload: dict) -> Product:
    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
    enforce_rules_product(patch)

    with atomic(session, conflict_message=DUPLICATE_NAME):
        if session.query(Product.id).filter(Product.product_name == patch["product_name"]).first():
            raise ConflictError(DUPLICATE_NAME)
        cost = 0
        if patch.get("recipe_id") is not None:
            cost = _resolve_cost(session, patch["recipe_id"])
        product = Product(cost_price=cost, **patch)
        session.add(product)

    current_app.logger.info("Product %s created with cost %s", product.id, product.cost_price)
    return product


def update_product(session, product_id: int, payload: dict) -> Product:
    """
    Update a product. Re-pointing it at a recipe recomputes its cost;
    clearing the recipe keeps the last cost.
    """
    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
    enforce_rules_product(patch)

    with atomic(session, conflict_message=DUPLICATE_NAME):
        product = _get(session, product_id, lock=True)
        if "product_name" in patch and patch["product_name"] != product.product_name:
            taken = session.query(Product.id).filter(
                Product.product_name == patch["product_name"], Product.id != product.id
            ).first()
            if taken:
                raise ConflictError(DUPLICATE_NAME)
        if patch.get("recipe_id") is not None:
            product.cost_price = _resolve_cost(session, patch["recipe_id"])
        for key, value in patch.items():
            setattr(product, key, value)

    return product


def delete_product(session, product_id: int) -> None:
    with atomic(session):
        product = _get(session, product_id, lock=True)
        if session.query(SaleItem.id).filter_by(product_id=product.id).first():
            raise ConflictError("Product has recorded sales; deactivate it instead")
        for model in (Overstock, Defect, Restock):
            session.execute(
                delete(model)
                .where(model.product_id == product.id)
                .execution_options(synchronize_session=False)
            )
        session.delete(product)
