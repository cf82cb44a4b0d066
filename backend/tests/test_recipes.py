"""Recipe costing and propagation into products."""

from conftest import create_ingredient, create_product, create_recipe


def test_recipe_cost_is_sum_of_lines(client, owner_headers):
    a = create_ingredient(client, owner_headers, "Flour", cost_price="1.50")
    b = create_ingredient(client, owner_headers, "Butter", cost_price="3.00")
    recipe = create_recipe(client, owner_headers, "Brioche", [(a["id"], 2), (b["id"], 1)])

    resp = client.get(f"/api/recipes/{recipe['id']}", headers=owner_headers)

    assert resp.status_code == 200
    body = resp.get_json()
    assert body["cost"] == "6.00"
    assert [line["quantity"] for line in body["ingredients"]] == ["2.00", "1.00"]


def test_ingredient_without_cost_contributes_zero(client, owner_headers):
    a = create_ingredient(client, owner_headers, "Flour", cost_price="1.50")
    b = create_ingredient(client, owner_headers, "Water", cost_price=None)
    recipe = create_recipe(client, owner_headers, "Dough", [(a["id"], 2), (b["id"], 5)])

    resp = client.get(f"/api/recipes/{recipe['id']}", headers=owner_headers)
    assert resp.get_json()["cost"] == "3.00"


def test_product_takes_recipe_cost(client, owner_headers):
    a = create_ingredient(client, owner_headers, "Flour", cost_price="1.50")
    recipe = create_recipe(client, owner_headers, "Loaf", [(a["id"], 2)])

    product = create_product(client, owner_headers, "Bread", recipe_id=recipe["id"])

    assert product["cost_price"] == "3.00"
    assert product["recipe_name"] == "Loaf"


def test_ingredient_cost_change_propagates_to_products(client, owner_headers):
    a = create_ingredient(client, owner_headers, "Flour", cost_price="1.50")
    recipe = create_recipe(client, owner_headers, "Loaf", [(a["id"], 2)])
    product = create_product(client, owner_headers, "Bread", recipe_id=recipe["id"])

    resp = client.put(f"/api/ingredients/{a['id']}", json={"cost_price": "2.25"}, headers=owner_headers)
    assert resp.status_code == 200

    resp = client.get(f"/api/products/{product['id']}", headers=owner_headers)
    assert resp.get_json()["cost_price"] == "4.50"


def test_replacing_lines_recomputes_cost(client, owner_headers):
    a = create_ingredient(client, owner_headers, "Flour", cost_price="1.50")
    b = create_ingredient(client, owner_headers, "Butter", cost_price="3.00")
    recipe = create_recipe(client, owner_headers, "Loaf", [(a["id"], 2)])
    product = create_product(client, owner_headers, "Bread", recipe_id=recipe["id"])

    resp = client.put(f"/api/recipes/{recipe['id']}", json={
        "ingredients": [
            {"ingredient_id": a["id"], "quantity": 1},
            {"ingredient_id": b["id"], "quantity": 2},
        ],
    }, headers=owner_headers)
    assert resp.status_code == 200
    assert len(resp.get_json()["ingredients"]) == 2

    resp = client.get(f"/api/products/{product['id']}", headers=owner_headers)
    assert resp.get_json()["cost_price"] == "7.50"


def test_non_positive_quantity_rejected(client, owner_headers):
    a = create_ingredient(client, owner_headers, "Flour")
    for qty in (0, -1):
        resp = client.post("/api/recipes", json={
            "recipe_name": "Broken",
            "ingredients": [{"ingredient_id": a["id"], "quantity": qty}],
        }, headers=owner_headers)
        assert resp.status_code == 400
        assert "quantity" in resp.get_json()["error"]


def test_unknown_ingredient_is_404(client, owner_headers):
    resp = client.post("/api/recipes", json={
        "recipe_name": "Ghost",
        "ingredients": [{"ingredient_id": 42, "quantity": 1}],
    }, headers=owner_headers)
    assert resp.status_code == 404

    resp = client.get("/api/recipes", headers=owner_headers)
    assert resp.get_json()["count"] == 0


def test_duplicate_recipe_name_is_409(client, owner_headers):
    a = create_ingredient(client, owner_headers, "Flour")
    create_recipe(client, owner_headers, "Loaf", [(a["id"], 1)])

    resp = client.post("/api/recipes", json={
        "recipe_name": "Loaf",
        "ingredients": [{"ingredient_id": a["id"], "quantity": 1}],
    }, headers=owner_headers)
    assert resp.status_code == 409


def test_delete_recipe_unlinks_products(client, owner_headers):
    a = create_ingredient(client, owner_headers, "Flour", cost_price="1.50")
    recipe = create_recipe(client, owner_headers, "Loaf", [(a["id"], 2)])
    product = create_product(client, owner_headers, "Bread", recipe_id=recipe["id"])

    resp = client.delete(f"/api/recipes/{recipe['id']}", headers=owner_headers)
    assert resp.status_code == 200

    body = client.get(f"/api/products/{product['id']}", headers=owner_headers).get_json()
    assert body["recipe_id"] is None
    assert body["cost_price"] == "3.00"


def test_ingredient_used_by_recipe_cannot_be_deleted(client, owner_headers):
    a = create_ingredient(client, owner_headers, "Flour")
    create_recipe(client, owner_headers, "Loaf", [(a["id"], 1)])

    resp = client.delete(f"/api/ingredients/{a['id']}", headers=owner_headers)
    assert resp.status_code == 409


def test_oversized_quantity_rejected(client, owner_headers):
    a = create_ingredient(client, owner_headers, "Flour")
    resp = client.post("/api/recipes", json={
        "recipe_name": "Mountain",
        "ingredients": [{"ingredient_id": a["id"], "quantity": "100000000"}],
    }, headers=owner_headers)
    assert resp.status_code == 400
    assert "cannot exceed" in resp.get_json()["error"]
