# Overview: Product stock movements: overstock set-aside and roll-over, defects and restocks.

"""
Stock movements.

Every movement is recorded as a row and applied to the product's remaining
quantity in the same transaction:

- overstock: units set aside at close (quantity_left -= q); roll-over puts
  every not yet rolled-over record back (quantity_left += q) and marks it
- defect: quantity_left -= n, defect_count += n
- restock: quantity_left += n
"""
from __future__ import annotations

from flask import current_app
from sqlalchemy import update

from ..errors import NotFoundError
from ..models import Defect, Overstock, Product, Restock
from ..time_utils import day_range, utcnow
from ..validation import ValidationError, require_positive_int
from .concurrency import atomic, lock_for_update
from .pagination import paginate


def _product_id(value) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise ValidationError("product_id must be an integer")
    return value


def _lock_product(session, product_id: int) -> Product:
    product = lock_for_update(
        session.query(Product).filter(Product.id == product_id)
    ).populate_existing().first()
    if product is None:
        raise NotFoundError(f"Product with ID {product_id} not found")
    return product


def _bump(session, product_id: int, **deltas) -> None:
    values = {name: getattr(Product, name) + delta for name, delta in deltas.items()}
    session.execute(
        update(Product)
        .where(Product.id == product_id)
        .values(**values)
        .execution_options(synchronize_session=False)
    )


def _window(query, column, start_date, end_date):
    try:
        start, end = day_range(start_date, end_date)
    except ValueError:
        raise ValidationError("startDate and endDate must be ISO-8601 dates")
    if start is not None:
        query = query.filter(column >= start)
    if end is not None:
        query = query.filter(column < end)
    return query


# -- overstocks ---------------------------------------------------------------

def list_overstocks(session, *, start_date=None, end_date=None, rolled_over=None, page=None, per_page=None) -> dict:
    query = _window(session.query(Overstock), Overstock.created_at, start_date, end_date)
    if rolled_over is not None:
        query = query.filter(Overstock.rolled_over.is_(bool(rolled_over)))
    query = query.order_by(Overstock.created_at.desc(), Overstock.id.desc())
    return paginate(query, page=page, per_page=per_page)


def record_overstock(session, payload: dict) -> Overstock:
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    product_id = _product_id(payload.get("product_id"))
    qty = require_positive_int("quantity", payload.get("quantity"))

    with atomic(session):
        product = _lock_product(session, product_id)
        overstock = Overstock(product_id=product.id, quantity=qty)
        session.add(overstock)
        _bump(session, product.id, quantity_left=-qty)

    return overstock


def rollover(session) -> dict:
    """
    Return every unrolled overstock to its product's remaining quantity and
    mark it rolled over. With nothing to roll over this is a successful no-op.
    """
    with atomic(session):
        pending = (
            lock_for_update(session.query(Overstock).filter(Overstock.rolled_over.is_(False)))
            .order_by(Overstock.id.asc())
            .all()
        )
        now = utcnow()
        for overstock in pending:
            _bump(session, overstock.product_id, quantity_left=overstock.quantity)
            overstock.rolled_over = True
            overstock.rolled_over_at = now
        ids = [o.id for o in pending]

    if ids:
        current_app.logger.info("Rolled over %d overstock records", len(ids))
    return {"rolled_over": len(ids), "overstock_ids": ids}


# -- defects ------------------------------------------------------------------

def list_defects(session, *, start_date=None, end_date=None, page=None, per_page=None) -> dict:
    query = _window(session.query(Defect), Defect.created_at, start_date, end_date)
    query = query.order_by(Defect.created_at.desc(), Defect.id.desc())
    return paginate(query, page=page, per_page=per_page)


def record_defect(session, product_id: int, payload: dict) -> Defect:
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    count = payload.get("defect_count")
    if not isinstance(count, int) or isinstance(count, bool) or count < 0:
        raise ValidationError("defect_count must be a non-negative integer")

    with atomic(session):
        product = _lock_product(session, product_id)
        defect = Defect(product_id=product.id, defect_count=count)
        session.add(defect)
        _bump(session, product.id, quantity_left=-count, defect_count=count)

    return defect


# -- restocks -----------------------------------------------------------------

def list_restocks(session, *, start_date=None, end_date=None, page=None, per_page=None) -> dict:
    query = _window(session.query(Restock), Restock.created_at, start_date, end_date)
    query = query.order_by(Restock.created_at.desc(), Restock.id.desc())
    return paginate(query, page=page, per_page=per_page)


def record_restock(session, payload: dict) -> Restock:
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    product_id = _product_id(payload.get("product_id"))
    value = require_positive_int("restock_value", payload.get("restock_value"))

    with atomic(session):
        product = _lock_product(session, product_id)
        restock = Restock(product_id=product.id, restock_value=value)
        session.add(restock)
        _bump(session, product.id, quantity_left=value)

    return restock
