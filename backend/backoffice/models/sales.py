from __future__ import annotations

from .base import TenantModel, tenant_fk, money
from ..extensions import db
from backoffice.time_utils import utcnow, to_utc_z


class Sale(TenantModel):
    """
    Completed sale.

    ``cashier_user_id`` refers to a global user and is therefore a plain
    integer rather than a foreign key out of the namespace.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.CheckConstraint("total_amount >= 0", name="ck_sales_total_amount"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_date = db.Column(db.DateTime, nullable=False, default=utcnow)
    total_amount = db.Column(db.Numeric(10, 2), nullable=False)
    payment_method = db.Column(db.String(50), nullable=False)
    cashier_user_id = db.Column(db.Integer, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    items = db.relationship(
        "SaleItem",
        back_populates="sale",
        cascade="all, delete-orphan",
        order_by="SaleItem.id",
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_date": to_utc_z(self.sale_date),
            "total_amount": money(self.total_amount),
            "payment_method": self.payment_method,
            "cashier_user_id": self.cashier_user_id,
            "items": [item.to_dict() for item in self.items],
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class SaleItem(TenantModel):
    """Sale line. ``cost_price`` is the product cost captured at the time of sale."""
    __tablename__ = "sale_items"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_sale_items_quantity"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey(tenant_fk("sales.id"), ondelete="CASCADE"), nullable=False)
    product_id = db.Column(db.Integer, db.ForeignKey(tenant_fk("products.id")), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    unit_price = db.Column(db.Numeric(10, 2), nullable=False)
    cost_price = db.Column(db.Numeric(10, 2), nullable=False, default=0)

    sale = db.relationship("Sale", back_populates="items")
    product = db.relationship("Product", lazy="joined")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product_name": self.product.product_name if self.product else None,
            "quantity": self.quantity,
            "unit_price": money(self.unit_price),
            "cost_price": money(self.cost_price),
        }
