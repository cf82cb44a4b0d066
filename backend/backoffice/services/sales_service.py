# Overview: Sale recording; line items, stock decrement and the cost snapshot in one transaction.

"""
Sales.

Recording a sale inserts the Sale row, one SaleItem per line and decrements
each product's remaining quantity, all in one transaction. A missing product
on any line rolls the whole sale back.

Each SaleItem captures the product's cost price at the moment of sale, so
later recipe or ingredient cost changes never rewrite historical margins.
The total is computed here from the lines; a client-sent total is ignored.
Remaining quantity is allowed to go negative.
"""
from __future__ import annotations

from decimal import Decimal

from flask import current_app
from sqlalchemy import update

from ..errors import NotFoundError
from ..models import Product, Sale, SaleItem
from ..models.base import CENTS
from ..time_utils import day_range, parse_iso_datetime
from ..validation import (
    ValidationError,
    coerce_decimal,
    require_list,
    require_non_negative,
    require_positive_int,
)
from .concurrency import atomic, lock_for_update
from .pagination import paginate

MAX_PAYMENT_METHOD_LENGTH = 50


def _payment_method(value) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError("payment_method is required")
    value = value.strip()
    if len(value) > MAX_PAYMENT_METHOD_LENGTH:
        raise ValidationError(f"payment_method exceeds max length {MAX_PAYMENT_METHOD_LENGTH}")
    return value


def _parse_lines(payload: dict) -> list[tuple[int, int, Decimal | None]]:
    lines = []
    for raw in require_list(payload, "items"):
        product_id = raw.get("product_id")
        if not isinstance(product_id, int) or isinstance(product_id, bool):
            raise ValidationError("product_id must be an integer")
        qty = require_positive_int("quantity", raw.get("quantity"))
        price = raw.get("unit_price")
        if price is not None:
            price = coerce_decimal("unit_price", price)
            require_non_negative({"unit_price": price}, "unit_price")
        lines.append((product_id, qty, price))
    return lines


def _adjust_stock(session, product_id: int, sold: int) -> None:
    session.execute(
        update(Product)
        .where(Product.id == product_id)
        .values(
            quantity_left=Product.quantity_left - sold,
            sold_count=Product.sold_count + sold,
        )
        .execution_options(synchronize_session=False)
    )


def _apply_lines(session, sale: Sale, lines) -> Decimal:
    total = Decimal("0")
    for product_id, qty, price in lines:
        product = lock_for_update(
            session.query(Product).filter(Product.id == product_id)
        ).populate_existing().first()
        if product is None:
            raise NotFoundError(f"Product with ID {product_id} not found")

        unit_price = price if price is not None else Decimal(product.unit_price)
        sale.items.append(
            SaleItem(
                product_id=product.id,
                quantity=qty,
                unit_price=unit_price,
                cost_price=product.cost_price or 0,
            )
        )
        _adjust_stock(session, product.id, qty)
        total += unit_price * qty
    return total.quantize(CENTS)


def _restore_lines(session, sale: Sale) -> None:
    for item in sale.items:
        _adjust_stock(session, item.product_id, -item.quantity)


def _get(session, sale_id: int, *, lock: bool = False) -> Sale:
    query = session.query(Sale).filter(Sale.id == sale_id)
    if lock:
        query = lock_for_update(query).populate_existing()
    sale = query.first()
    if sale is None:
        raise NotFoundError("Sale not found")
    return sale


def list_sales(session, *, start_date=None, end_date=None, page=None, per_page=None) -> dict:
    try:
        start, end = day_range(start_date, end_date)
    except ValueError:
        raise ValidationError("startDate and endDate must be ISO-8601 dates")

    query = session.query(Sale)
    if start is not None:
        query = query.filter(Sale.sale_date >= start)
    if end is not None:
        query = query.filter(Sale.sale_date < end)
    query = query.order_by(Sale.sale_date.desc(), Sale.id.desc())
    return paginate(query, page=page, per_page=per_page)


def get_sale(session, sale_id: int) -> Sale:
    return _get(session, sale_id)


def create_sale(session, actor, payload: dict) -> Sale:
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    payment_method = _payment_method(payload.get("payment_method"))
    lines = _parse_lines(payload)

    sale_date = None
    if payload.get("sale_date"):
        try:
            sale_date = parse_iso_datetime(payload["sale_date"])
        except (TypeError, ValueError, AttributeError):
            raise ValidationError("sale_date must be an ISO-8601 datetime")

    with atomic(session):
        sale = Sale(
            payment_method=payment_method,
            cashier_user_id=actor.user_id,
            total_amount=0,
        )
        if sale_date is not None:
            sale.sale_date = sale_date
        session.add(sale)
        sale.total_amount = _apply_lines(session, sale, lines)

    current_app.logger.info(
        "Sale %s recorded by user %s: %d lines, total %s",
        sale.id,
        actor.user_id,
        len(lines),
        sale.total_amount,
    )
    return sale


def update_sale(session, sale_id: int, payload: dict) -> Sale:
    """
    Change the payment method and/or replace the lines. Replacing lines
    restores the old quantities before applying the new ones.
    """
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    payment_method = None
    if "payment_method" in payload:
        payment_method = _payment_method(payload["payment_method"])
    lines = _parse_lines(payload) if "items" in payload else None

    with atomic(session):
        sale = _get(session, sale_id, lock=True)
        if payment_method is not None:
            sale.payment_method = payment_method
        if lines is not None:
            _restore_lines(session, sale)
            sale.items.clear()
            session.flush()
            sale.total_amount = _apply_lines(session, sale, lines)

    return sale


def delete_sale(session, sale_id: int) -> None:
    with atomic(session):
        sale = _get(session, sale_id, lock=True)
        _restore_lines(session, sale)
        session.delete(sale)
    current_app.logger.info("Sale %s deleted; stock restored", sale_id)
