from __future__ import annotations

from .base import TenantModel, money
from ..extensions import db
from backoffice.time_utils import utcnow, to_utc_z


class Expense(TenantModel):
    """
    Operating expense.

    An expense only counts as active once it has been paid; the database
    enforces that with a check constraint as well.
    """
    __tablename__ = "expenses"
    __table_args__ = (
        db.CheckConstraint("amount >= 0", name="ck_expenses_amount"),
        db.CheckConstraint("cost_type IN ('Fixed', 'Variable')", name="ck_expenses_cost_type"),
        db.CheckConstraint("frequency IN ('One-time', 'Monthly', 'Yearly')", name="ck_expenses_frequency"),
        db.CheckConstraint(
            "status IN ('Requested', 'Approved', 'Paid', 'Denied')",
            name="ck_expenses_status",
        ),
        db.CheckConstraint("NOT is_active OR status = 'Paid'", name="ck_expenses_active_requires_paid"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    expense_date = db.Column(db.Date, nullable=False)
    amount = db.Column(db.Numeric(10, 2), nullable=False)
    category = db.Column(db.String(100), nullable=False)
    description = db.Column(db.Text, nullable=True)
    cost_type = db.Column(db.String(20), nullable=False)
    frequency = db.Column(db.String(20), nullable=False, default="One-time")
    status = db.Column(db.String(20), nullable=False, default="Requested")
    is_active = db.Column(db.Boolean, nullable=False, default=False)
    recorded_by_user_id = db.Column(db.Integer, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "expense_date": self.expense_date.isoformat() if self.expense_date else None,
            "amount": money(self.amount),
            "category": self.category,
            "description": self.description,
            "cost_type": self.cost_type,
            "frequency": self.frequency,
            "status": self.status,
            "is_active": self.is_active,
            "recorded_by_user_id": self.recorded_by_user_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
