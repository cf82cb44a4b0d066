from __future__ import annotations

from .base import TenantModel, tenant_fk
from ..extensions import db
from backoffice.time_utils import utcnow, to_utc_z


class Overstock(TenantModel):
    """Unsold units set aside at close; rolled back into stock the next day."""
    __tablename__ = "overstocks"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_overstocks_quantity"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey(tenant_fk("products.id"), ondelete="CASCADE"), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    rolled_over = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    rolled_over_at = db.Column(db.DateTime, nullable=True)

    product = db.relationship("Product", lazy="joined")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product_name": self.product.product_name if self.product else None,
            "quantity": self.quantity,
            "rolled_over": self.rolled_over,
            "created_at": to_utc_z(self.created_at),
            "rolled_over_at": to_utc_z(self.rolled_over_at),
        }


class Defect(TenantModel):
    __tablename__ = "defects"
    __table_args__ = (
        db.CheckConstraint("defect_count >= 0", name="ck_defects_defect_count"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey(tenant_fk("products.id"), ondelete="CASCADE"), nullable=False)
    defect_count = db.Column(db.Integer, nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    product = db.relationship("Product", lazy="joined")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product_name": self.product.product_name if self.product else None,
            "defect_count": self.defect_count,
            "created_at": to_utc_z(self.created_at),
        }


class Restock(TenantModel):
    __tablename__ = "restocks"
    __table_args__ = (
        db.CheckConstraint("restock_value > 0", name="ck_restocks_restock_value"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey(tenant_fk("products.id"), ondelete="CASCADE"), nullable=False)
    restock_value = db.Column(db.Integer, nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    product = db.relationship("Product", lazy="joined")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product_name": self.product.product_name if self.product else None,
            "restock_value": self.restock_value,
            "created_at": to_utc_z(self.created_at),
        }
