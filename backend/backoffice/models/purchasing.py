from __future__ import annotations

from .base import TenantModel, tenant_fk, money, measure
from ..extensions import db
from backoffice.time_utils import utcnow, to_utc_z

STATUS_PENDING = "Pending"
STATUS_APPROVED = "Approved"
STATUS_REJECTED = "Rejected"
STATUS_COMPLETED = "Completed"

PURCHASE_REQUEST_STATUSES = (STATUS_PENDING, STATUS_APPROVED, STATUS_REJECTED, STATUS_COMPLETED)


class PurchaseRequest(TenantModel):
    """
    Request to buy ingredients.

    Lifecycle: Pending -> Approved | Rejected; Approved -> Completed once every
    referenced ingredient has been refilled. Rejected and Completed are final.
    """
    __tablename__ = "purchase_requests"
    __table_args__ = (
        db.CheckConstraint(
            "status IN ('Pending', 'Approved', 'Rejected', 'Completed')",
            name="ck_purchase_requests_status",
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    request_date = db.Column(db.DateTime, nullable=False, default=utcnow)
    status = db.Column(db.String(20), nullable=False, default=STATUS_PENDING)
    requested_by_user_id = db.Column(db.Integer, nullable=True)
    approved_by_user_id = db.Column(db.Integer, nullable=True)
    approval_date = db.Column(db.DateTime, nullable=True)
    approval_required = db.Column(db.Boolean, nullable=False, default=True)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    items = db.relationship(
        "PurchaseRequestItem",
        back_populates="request",
        cascade="all, delete-orphan",
        order_by="PurchaseRequestItem.id",
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "request_date": to_utc_z(self.request_date),
            "status": self.status,
            "requested_by_user_id": self.requested_by_user_id,
            "approved_by_user_id": self.approved_by_user_id,
            "approval_date": to_utc_z(self.approval_date),
            "approval_required": self.approval_required,
            "notes": self.notes,
            "items": [item.to_dict() for item in self.items],
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class PurchaseRequestItem(TenantModel):
    __tablename__ = "purchase_request_items"
    __table_args__ = (
        db.CheckConstraint("quantity_requested > 0", name="ck_purchase_request_items_quantity"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    request_id = db.Column(
        db.Integer,
        db.ForeignKey(tenant_fk("purchase_requests.id"), ondelete="CASCADE"),
        nullable=False,
    )
    ingredient_id = db.Column(db.Integer, db.ForeignKey(tenant_fk("ingredients.id")), nullable=False)
    quantity_requested = db.Column(db.Numeric(10, 2), nullable=False)
    estimated_unit_price = db.Column(db.Numeric(10, 2), nullable=True)

    request = db.relationship("PurchaseRequest", back_populates="items")
    ingredient = db.relationship("Ingredient", lazy="joined")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "ingredient_id": self.ingredient_id,
            "ingredient_name": self.ingredient.ingredient_name if self.ingredient else None,
            "quantity_requested": measure(self.quantity_requested),
            "estimated_unit_price": money(self.estimated_unit_price),
        }
