# Overview: Read-only profit/loss aggregation over the bound namespace.

"""
Profit and loss for a date range (both ends inclusive).

    revenue        = sum(sale.total_amount)
    cogs           = sum(item.quantity * item.cost_price)   # cost snapshot
    gross_profit   = revenue - cogs
    fixed/variable = sum(expense.amount) by cost_type, excluding Denied
    net_profit     = gross_profit - fixed - variable
"""
from __future__ import annotations

from datetime import date
from decimal import Decimal

from sqlalchemy import func

from ..models import Expense, Sale, SaleItem
from ..models.base import money
from ..time_utils import day_range
from ..validation import ValidationError


def _as_decimal(value) -> Decimal:
    return Decimal(value or 0)


def _parse_dates(start_date, end_date):
    if not start_date or not end_date:
        raise ValidationError("startDate and endDate are required")
    try:
        start_day = date.fromisoformat(str(start_date).strip()[:10])
        end_day = date.fromisoformat(str(end_date).strip()[:10])
        start, end = day_range(start_day.isoformat(), end_day.isoformat())
    except ValueError:
        raise ValidationError("startDate and endDate must be ISO-8601 dates")
    if start_day > end_day:
        raise ValidationError("startDate must not be after endDate")
    return start_day, end_day, start, end


def profit_loss(session, start_date, end_date) -> dict:
    start_day, end_day, start, end = _parse_dates(start_date, end_date)

    revenue = _as_decimal(
        session.query(func.sum(Sale.total_amount))
        .filter(Sale.sale_date >= start, Sale.sale_date < end)
        .scalar()
    )
    cogs = _as_decimal(
        session.query(func.sum(SaleItem.quantity * SaleItem.cost_price))
        .join(Sale, SaleItem.sale_id == Sale.id)
        .filter(Sale.sale_date >= start, Sale.sale_date < end)
        .scalar()
    )

    expense_rows = (
        session.query(Expense.cost_type, func.sum(Expense.amount))
        .filter(
            Expense.expense_date >= start_day,
            Expense.expense_date <= end_day,
            Expense.status != "Denied",
        )
        .group_by(Expense.cost_type)
        .all()
    )
    expenses = {cost_type: _as_decimal(total) for cost_type, total in expense_rows}
    fixed = expenses.get("Fixed", Decimal("0"))
    variable = expenses.get("Variable", Decimal("0"))

    gross = revenue - cogs
    net = gross - fixed - variable

    return {
        "report_period": {
            "startDate": start_day.isoformat(),
            "endDate": end_day.isoformat(),
        },
        "total_revenue": money(revenue),
        "total_cogs": money(cogs),
        "gross_profit": money(gross),
        "total_fixed_expenses": money(fixed),
        "total_variable_expenses": money(variable),
        "net_profit": money(net),
    }
