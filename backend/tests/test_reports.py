"""Profit and loss report."""

from conftest import create_ingredient, create_product, create_recipe


def _sell(client, headers, product_id, quantity, when):
    resp = client.post("/api/sales", json={
        "payment_method": "Cash",
        "sale_date": when,
        "items": [{"product_id": product_id, "quantity": quantity}],
    }, headers=headers)
    assert resp.status_code == 201, resp.get_json()


def _expense(client, headers, day, amount, cost_type, status=None):
    payload = {"expense_date": day, "amount": amount, "category": "Misc", "cost_type": cost_type}
    if status:
        payload["status"] = status
    resp = client.post("/api/expenses", json=payload, headers=headers)
    assert resp.status_code == 201, resp.get_json()


def test_profit_loss(client, owner_headers):
    flour = create_ingredient(client, owner_headers, "Flour", cost_price="1.00")
    loaf = create_recipe(client, owner_headers, "Loaf", [(flour["id"], 2)])
    bread = create_product(client, owner_headers, "Bread", unit_price="5.00", recipe_id=loaf["id"], quantity_left=20)

    _sell(client, owner_headers, bread["id"], 3, "2026-03-02T10:00:00Z")
    _sell(client, owner_headers, bread["id"], 1, "2026-04-01T10:00:00Z")

    _expense(client, owner_headers, "2026-03-03", "4.00", "Fixed", status="Paid")
    _expense(client, owner_headers, "2026-03-31", "1.50", "Variable")
    _expense(client, owner_headers, "2026-03-10", "2.00", "Variable", status="Denied")
    _expense(client, owner_headers, "2026-04-02", "100.00", "Fixed")

    resp = client.get("/api/reports/profit-loss?startDate=2026-03-01&endDate=2026-03-31", headers=owner_headers)

    assert resp.status_code == 200
    assert resp.get_json() == {
        "report_period": {"startDate": "2026-03-01", "endDate": "2026-03-31"},
        "total_revenue": "15.00",
        "total_cogs": "6.00",
        "gross_profit": "9.00",
        "total_fixed_expenses": "4.00",
        "total_variable_expenses": "1.50",
        "net_profit": "3.50",
    }


def test_empty_period_is_all_zero(client, owner_headers):
    resp = client.get("/api/reports/profit-loss?startDate=2026-01-01&endDate=2026-01-31", headers=owner_headers)
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["total_revenue"] == "0.00"
    assert body["net_profit"] == "0.00"


def test_dates_required_and_ordered(client, owner_headers):
    assert client.get("/api/reports/profit-loss", headers=owner_headers).status_code == 400
    assert client.get("/api/reports/profit-loss?startDate=2026-01-01", headers=owner_headers).status_code == 400
    resp = client.get("/api/reports/profit-loss?startDate=2026-02-01&endDate=2026-01-01", headers=owner_headers)
    assert resp.status_code == 400
    resp = client.get("/api/reports/profit-loss?startDate=yesterday&endDate=today", headers=owner_headers)
    assert resp.status_code == 400
