# Overview: Expense CRUD with enum validation and the paid-before-active rule.

from __future__ import annotations

from ..errors import NotFoundError
from ..models import Expense
from ..validation import ModelValidationPolicy, ValidationError, enforce_rules_expense, validate_payload
from .concurrency import atomic, lock_for_update
from .pagination import paginate

EXPENSE_POLICY = ModelValidationPolicy(
    writable_fields={
        "expense_date",
        "amount",
        "category",
        "description",
        "cost_type",
        "frequency",
        "status",
        "is_active",
    },
    required_on_create={"expense_date", "amount", "category", "cost_type"},
)


def _get(session, expense_id: int, *, lock: bool = False) -> Expense:
    query = session.query(Expense).filter(Expense.id == expense_id)
    if lock:
        query = lock_for_update(query).populate_existing()
    expense = query.first()
    if expense is None:
        raise NotFoundError("Expense not found")
    return expense


def list_expenses(session, *, status=None, cost_type=None, page=None, per_page=None) -> dict:
    query = session.query(Expense)
    if status:
        query = query.filter(Expense.status == status)
    if cost_type:
        query = query.filter(Expense.cost_type == cost_type)
    query = query.order_by(Expense.expense_date.desc(), Expense.id.desc())
    return paginate(query, page=page, per_page=per_page)


def get_expense(session, expense_id: int) -> Expense:
    return _get(session, expense_id)


def create_expense(session, actor, payload: dict) -> Expense:
    """New expenses always start inactive; activation happens on update once Paid."""
    patch = validate_payload(model=Expense, payload=payload, policy=EXPENSE_POLICY, partial=False)
    if patch.get("is_active"):
        raise ValidationError("An expense is inactive when created")
    enforce_rules_expense(patch)

    with atomic(session):
        expense = Expense(recorded_by_user_id=actor.user_id, **patch)
        expense.is_active = False
        session.add(expense)

    return expense


def update_expense(session, expense_id: int, payload: dict) -> Expense:
    patch = validate_payload(model=Expense, payload=payload, policy=EXPENSE_POLICY, partial=True)

    with atomic(session):
        expense = _get(session, expense_id, lock=True)
        enforce_rules_expense(patch, current_status=expense.status)
        # Leaving Paid deactivates the expense unless the patch says otherwise.
        if patch.get("status") not in (None, "Paid") and "is_active" not in patch:
            patch["is_active"] = False
        for key, value in patch.items():
            setattr(expense, key, value)

    return expense


def delete_expense(session, expense_id: int) -> None:
    with atomic(session):
        expense = _get(session, expense_id, lock=True)
        session.delete(expense)
