from __future__ import annotations

from .base import TenantModel, tenant_fk, money, measure
from ..extensions import db
from backoffice.time_utils import utcnow, to_utc_z


class Ingredient(TenantModel):
    """
    Raw material tracked by the kitchen.

    ``refill_amount`` is the quantity approved for purchase but not yet
    received; a refill moves it into ``current_stock`` in one statement.
    """
    __tablename__ = "ingredients"
    __table_args__ = (
        db.CheckConstraint("current_stock >= 0", name="ck_ingredients_current_stock"),
        db.CheckConstraint("refill_amount >= 0", name="ck_ingredients_refill_amount"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    ingredient_name = db.Column(db.String(255), nullable=False, unique=True)
    unit_of_measure = db.Column(db.String(50), nullable=False)
    current_stock = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    reorder_level = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    refill_amount = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    supplier = db.Column(db.String(255), nullable=True)
    cost_price = db.Column(db.Numeric(10, 2), nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "ingredient_name": self.ingredient_name,
            "unit_of_measure": self.unit_of_measure,
            "current_stock": measure(self.current_stock),
            "reorder_level": measure(self.reorder_level),
            "refill_amount": measure(self.refill_amount),
            "supplier": self.supplier,
            "cost_price": money(self.cost_price),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Recipe(TenantModel):
    __tablename__ = "recipes"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    recipe_name = db.Column(db.String(255), nullable=False, unique=True)
    description = db.Column(db.Text, nullable=True)
    batch_size = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    lines = db.relationship(
        "RecipeIngredient",
        back_populates="recipe",
        cascade="all, delete-orphan",
        order_by="RecipeIngredient.id",
    )

    def to_dict(self, include_lines: bool = True) -> dict:
        data = {
            "id": self.id,
            "recipe_name": self.recipe_name,
            "description": self.description,
            "batch_size": self.batch_size,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_lines:
            data["ingredients"] = [line.to_dict() for line in self.lines]
        return data


class RecipeIngredient(TenantModel):
    __tablename__ = "recipe_ingredients"
    __table_args__ = (
        db.UniqueConstraint("recipe_id", "ingredient_id", name="uq_recipe_ingredients_recipe_ingredient"),
        db.CheckConstraint("quantity > 0", name="ck_recipe_ingredients_quantity"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    recipe_id = db.Column(db.Integer, db.ForeignKey(tenant_fk("recipes.id"), ondelete="CASCADE"), nullable=False)
    ingredient_id = db.Column(db.Integer, db.ForeignKey(tenant_fk("ingredients.id")), nullable=False)
    quantity = db.Column(db.Numeric(10, 2), nullable=False)

    recipe = db.relationship("Recipe", back_populates="lines")
    ingredient = db.relationship("Ingredient", lazy="joined")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "recipe_id": self.recipe_id,
            "ingredient_id": self.ingredient_id,
            "ingredient_name": self.ingredient.ingredient_name if self.ingredient else None,
            "unit_of_measure": self.ingredient.unit_of_measure if self.ingredient else None,
            "quantity": measure(self.quantity),
        }


class Product(TenantModel):
    """
    Sellable item.

    ``cost_price`` is derived: it is recomputed from the referenced recipe and
    never accepted from clients.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("unit_price >= 0", name="ck_products_unit_price"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_name = db.Column(db.String(255), nullable=False, unique=True)
    description = db.Column(db.Text, nullable=True)
    unit_price = db.Column(db.Numeric(10, 2), nullable=False)
    cost_price = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    recipe_id = db.Column(db.Integer, db.ForeignKey(tenant_fk("recipes.id"), ondelete="SET NULL"), nullable=True)

    quantity_left = db.Column(db.Integer, nullable=False, default=0)
    sold_count = db.Column(db.Integer, nullable=False, default=0)
    defect_count = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    recipe = db.relationship("Recipe")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_name": self.product_name,
            "description": self.description,
            "unit_price": money(self.unit_price),
            "cost_price": money(self.cost_price),
            "is_active": self.is_active,
            "recipe_id": self.recipe_id,
            "recipe_name": self.recipe.recipe_name if self.recipe else None,
            "quantity_left": self.quantity_left,
            "sold_count": self.sold_count,
            "defect_count": self.defect_count,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
