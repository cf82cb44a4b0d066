# Overview: Purchase-request lifecycle (create, approve, reject, reconcile) over ingredient refill state.

"""
Purchase requests.

State machine::

    Pending --approve--> Approved --(all ingredients refilled)--> Completed
    Pending --reject---> Rejected

Approved -> Completed is system-driven (``reconcile``). Rejected and
Completed are terminal.

Approval locks the request row (SELECT ... FOR UPDATE) and then performs the
status change as a guarded UPDATE (``WHERE status = 'Pending'``). Only when
that UPDATE matched exactly one row are the ingredients' refill amounts
raised, so two concurrent approvals of one request raise them once.
"""
from __future__ import annotations

from flask import current_app
from sqlalchemy import func, update

from ..errors import ConflictError, ForbiddenError, NotFoundError
from ..models import Ingredient, PurchaseRequest, PurchaseRequestItem
from ..models.purchasing import (
    PURCHASE_REQUEST_STATUSES,
    STATUS_APPROVED,
    STATUS_COMPLETED,
    STATUS_PENDING,
    STATUS_REJECTED,
)
from ..roles import MANAGERS
from ..time_utils import utcnow
from ..validation import ValidationError, coerce_decimal, require_list, require_non_negative, require_positive
from .concurrency import atomic, lock_for_update, run_with_retry
from .pagination import paginate


def _parse_items(session, payload: dict) -> list[PurchaseRequestItem]:
    items = []
    seen = set()
    for raw in require_list(payload, "items"):
        ingredient_id = raw.get("ingredient_id")
        if not isinstance(ingredient_id, int) or isinstance(ingredient_id, bool):
            raise ValidationError("ingredient_id must be an integer")
        if ingredient_id in seen:
            raise ValidationError(f"Ingredient {ingredient_id} appears more than once")
        seen.add(ingredient_id)

        qty = require_positive("quantity_requested", raw.get("quantity_requested", raw.get("quantity")))
        price = raw.get("estimated_unit_price")
        if price is not None:
            price = coerce_decimal("estimated_unit_price", price)
            require_non_negative({"estimated_unit_price": price}, "estimated_unit_price")

        if session.get(Ingredient, ingredient_id) is None:
            raise NotFoundError(f"Ingredient with ID {ingredient_id} not found")
        items.append(
            PurchaseRequestItem(
                ingredient_id=ingredient_id,
                quantity_requested=qty,
                estimated_unit_price=price,
            )
        )
    return items


def _get(session, request_id: int, *, lock: bool = False) -> PurchaseRequest:
    query = session.query(PurchaseRequest).filter(PurchaseRequest.id == request_id)
    if lock:
        query = lock_for_update(query).populate_existing()
    request = query.first()
    if request is None:
        raise NotFoundError("Purchase request not found")
    return request


def reconcile(session) -> list[int]:
    """
    Move Approved requests to Completed once none of their ingredients has a
    pending refill left. Runs in the caller's transaction.
    """
    completed = []
    approved = session.query(PurchaseRequest).filter(PurchaseRequest.status == STATUS_APPROVED).all()
    for request in approved:
        ingredient_ids = [item.ingredient_id for item in request.items]
        outstanding = 0
        if ingredient_ids:
            outstanding = (
                session.query(func.count(Ingredient.id))
                .filter(Ingredient.id.in_(ingredient_ids), Ingredient.refill_amount > 0)
                .scalar()
            )
        if outstanding:
            continue
        result = session.execute(
            update(PurchaseRequest)
            .where(PurchaseRequest.id == request.id)
            .where(PurchaseRequest.status == STATUS_APPROVED)
            .values(status=STATUS_COMPLETED, updated_at=utcnow())
            .execution_options(synchronize_session="fetch")
        )
        if result.rowcount == 1:
            completed.append(request.id)
    if completed:
        current_app.logger.info("Purchase requests completed after refill: %s", completed)
    return completed


def list_requests(session, *, status: str | None = None, page=None, per_page=None) -> dict:
    if status is not None and status not in PURCHASE_REQUEST_STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(PURCHASE_REQUEST_STATUSES)}")

    with atomic(session):
        reconcile(session)

    query = session.query(PurchaseRequest)
    if status is not None:
        query = query.filter(PurchaseRequest.status == status)
    query = query.order_by(PurchaseRequest.request_date.desc(), PurchaseRequest.id.desc())
    return paginate(query, page=page, per_page=per_page)


def get_request(session, request_id: int) -> PurchaseRequest:
    return _get(session, request_id)


def create_request(session, actor, payload: dict) -> PurchaseRequest:
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    with atomic(session):
        items = _parse_items(session, payload)
        request = PurchaseRequest(
            status=STATUS_PENDING,
            requested_by_user_id=actor.user_id,
            notes=payload.get("notes"),
            approval_required=bool(payload.get("approval_required", True)),
        )
        request.items.extend(items)
        session.add(request)
    current_app.logger.info("Purchase request %s created by user %s", request.id, actor.user_id)
    return request


def update_request(session, actor, request_id: int, payload: dict) -> PurchaseRequest:
    """
    Edit notes/items of a Pending request. A ``status`` field is routed
    through the same guarded transitions as the approve/reject endpoints.
    """
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    status = payload.get("status")
    if status in (STATUS_APPROVED, STATUS_REJECTED) and not (actor.is_global or actor.has_role(*MANAGERS)):
        raise ForbiddenError("Only Store Owners and Admins can approve or reject purchase requests")
    if status is not None:
        if status == STATUS_APPROVED:
            return approve_request(session, actor, request_id)
        if status == STATUS_REJECTED:
            return reject_request(session, actor, request_id)
        if status == STATUS_PENDING:
            pass
        elif status == STATUS_COMPLETED:
            raise ConflictError("Completed is set by the system once stock is refilled")
        else:
            raise ValidationError(f"status must be one of: {', '.join(PURCHASE_REQUEST_STATUSES)}")

    with atomic(session):
        request = _get(session, request_id, lock=True)
        if request.status != STATUS_PENDING:
            raise ConflictError(f"Purchase request is {request.status}; only Pending requests can be edited")
        if "notes" in payload:
            request.notes = payload["notes"]
        if "items" in payload:
            items = _parse_items(session, payload)
            request.items.clear()
            session.flush()
            request.items.extend(items)
    return request


def _transition(session, request_id: int, to_status: str, actor_id: int | None) -> PurchaseRequest:
    request = _get(session, request_id, lock=True)
    if request.status != STATUS_PENDING:
        raise ConflictError(
            f"Purchase request is {request.status}; only Pending requests can be {to_status.lower()}"
        )

    now = utcnow()
    values = {"status": to_status, "updated_at": now}
    if to_status == STATUS_APPROVED:
        values.update(approved_by_user_id=actor_id, approval_date=now)

    result = session.execute(
        update(PurchaseRequest)
        .where(PurchaseRequest.id == request_id)
        .where(PurchaseRequest.status == STATUS_PENDING)
        .values(**values)
        .execution_options(synchronize_session="fetch")
    )
    if result.rowcount != 1:
        raise ConflictError("Purchase request was changed concurrently")
    return request


def _apply_refills(session, request: PurchaseRequest) -> None:
    for item in request.items:
        session.execute(
            update(Ingredient)
            .where(Ingredient.id == item.ingredient_id)
            .values(refill_amount=Ingredient.refill_amount + item.quantity_requested)
            .execution_options(synchronize_session=False)
        )


def approve_request(session, actor, request_id: int) -> PurchaseRequest:
    """Pending -> Approved; raises each requested ingredient's refill amount once."""
    def _op():
        with atomic(session):
            request = _transition(session, request_id, STATUS_APPROVED, actor.user_id)
            _apply_refills(session, request)
        return request

    request = run_with_retry(session, _op)
    current_app.logger.info("Purchase request %s approved by user %s", request_id, actor.user_id)
    return request


def reject_request(session, actor, request_id: int) -> PurchaseRequest:
    with atomic(session):
        request = _transition(session, request_id, STATUS_REJECTED, actor.user_id)
    current_app.logger.info("Purchase request %s rejected by user %s", request_id, actor.user_id)
    return request


def approve_all(session, actor) -> list[int]:
    """Approve every Pending request in one transaction; each is transitioned at most once."""
    approved = []
    with atomic(session):
        pending_ids = [
            rid for (rid,) in session.query(PurchaseRequest.id)
            .filter(PurchaseRequest.status == STATUS_PENDING)
            .order_by(PurchaseRequest.id.asc())
            .all()
        ]
        for request_id in pending_ids:
            # A request that stopped being Pending fails the guard before any write.
            try:
                request = _transition(session, request_id, STATUS_APPROVED, actor.user_id)
            except ConflictError:
                continue
            _apply_refills(session, request)
            approved.append(request_id)
    current_app.logger.info("User %s approved %d pending purchase requests", actor.user_id, len(approved))
    return approved


def delete_request(session, request_id: int) -> None:
    with atomic(session):
        request = _get(session, request_id, lock=True)
        session.delete(request)
