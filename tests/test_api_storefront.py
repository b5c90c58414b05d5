from models.log import Log
from conftest import auth_headers, create_item, create_user


def test_landing_lists_categories_and_routes(client, db):
    create_item(db, "Margherita Pizza", "Pizza")
    body = client.get("/").json()

    assert body["categories"] == ["All", "Pizza", "Snacks"]
    assert {r["path"] for r in body["routes"]} >= {"/", "/menu", "/cart", "/admin", "/reset-password"}


def test_unknown_route_is_not_found_page(client):
    response = client.get("/no-such-page")
    assert response.status_code == 404
    assert response.json() == {"detail": "Not Found", "home": "/"}


def test_menu_is_public_and_filterable(client, db):
    create_item(db, "Margherita Pizza", "Pizza")
    create_item(db, "Cold Coffee", "Beverages", description="Blended with ice cream")

    body = client.get("/menu").json()
    assert body["selected_category"] == "All"
    assert len(body["items"]) == 2

    body = client.get("/menu", params={"q": "ICE"}).json()
    assert [i["name"] for i in body["items"]] == ["Cold Coffee"]

    body = client.get("/menu", params={"category": "Pizza"}).json()
    assert [i["name"] for i in body["items"]] == ["Margherita Pizza"]


def test_menu_snacks_coming_soon(client, db):
    create_item(db, "Samosa", "Snacks")
    body = client.get("/menu", params={"category": "Snacks"}).json()
    assert body["coming_soon"] is True
    assert body["items"] == []


def test_menu_zero_variant_card(client, db):
    create_item(db, "Chef's Special", "Meals", variants=())
    card = client.get("/menu").json()["items"][0]

    assert card["orderable"] is False
    assert card["unavailable_reason"] == "No variants available"
    assert card["quantity_selector"] is None


def test_menu_shows_cart_quantity_for_signed_in_user(client, db, customer_headers):
    item = create_item(db)
    variant_id = item.variants[0].id
    client.post("/cart/items", json={"item_id": item.id, "variant_id": variant_id}, headers=customer_headers)

    card = client.get("/menu", headers=customer_headers).json()["items"][0]
    assert card["quantity_selector"] == {"selected_variant_id": variant_id, "quantity": 1}


def test_cart_requires_sign_in_and_opens_modal(client):
    response = client.get("/cart")

    assert response.status_code == 401
    assert response.headers["www-authenticate"] == "Bearer"
    assert response.json()["auth_modal"]["open"] is True
    assert response.json()["auth_modal"]["mode"] == "signin"


def test_admin_route_redirects_customer_home(client, customer_headers):
    response = client.get("/admin", headers=customer_headers, follow_redirects=False)

    assert response.status_code == 303
    assert response.headers["location"] == "/"


def test_cart_totals(client, db, customer_headers):
    pizza = create_item(db, "Pizza", variants=(("Regular", 100.0),))
    burger = create_item(db, "Burger", "Burgers", variants=(("Single", 50.0),))

    client.post("/cart/items", json={"item_id": pizza.id, "variant_id": pizza.variants[0].id}, headers=customer_headers)
    client.post("/cart/items", json={"item_id": burger.id, "variant_id": burger.variants[0].id}, headers=customer_headers)
    response = client.post("/cart/items", json={"item_id": burger.id, "variant_id": burger.variants[0].id},
                           headers=customer_headers)

    body = response.json()
    assert body["message"] == "Burger (Single) added to cart!"
    assert body["total_amount"] == 200.0
    assert body["total_items"] == 3
    assert len(body["items"]) == 2
    assert db.query(Log).filter(Log.action == "CART_ADD").count() == 3


def test_cart_update_and_remove(client, db, customer_headers):
    item = create_item(db)
    key = {"item_id": item.id, "variant_id": item.variants[0].id}
    client.post("/cart/items", json=key, headers=customer_headers)

    body = client.put("/cart/items", json={**key, "quantity": 5}, headers=customer_headers).json()
    assert body["total_items"] == 5

    body = client.put("/cart/items", json={**key, "quantity": 0}, headers=customer_headers).json()
    assert body["items"] == []

    client.post("/cart/items", json=key, headers=customer_headers)
    body = client.delete(f"/cart/items/{item.id}/{item.variants[0].id}", headers=customer_headers).json()
    assert body["items"] == []


def test_cart_unknown_line_is_noop(client, db, customer_headers):
    item = create_item(db)
    client.post("/cart/items", json={"item_id": item.id, "variant_id": item.variants[0].id}, headers=customer_headers)

    response = client.put("/cart/items", json={"item_id": 999, "variant_id": 999, "quantity": 3}, headers=customer_headers)
    assert response.status_code == 200
    assert response.json()["total_items"] == 1


def test_cart_rejects_out_of_stock_and_unorderable(client, db, customer_headers):
    sold_out = create_item(db, "Sold Out", in_stock=False)
    no_variants = create_item(db, "Chef's Special", variants=())

    response = client.post("/cart/items", json={"item_id": sold_out.id, "variant_id": sold_out.variants[0].id},
                           headers=customer_headers)
    assert response.status_code == 400
    assert response.json()["detail"] == "This item is currently out of stock"

    response = client.post("/cart/items", json={"item_id": no_variants.id, "variant_id": 1}, headers=customer_headers)
    assert response.status_code == 400
    assert response.json()["detail"] == "No variants available"


def test_cart_rejects_variant_of_other_item(client, db, customer_headers):
    pizza = create_item(db, "Pizza")
    burger = create_item(db, "Burger")
    response = client.post("/cart/items", json={"item_id": pizza.id, "variant_id": burger.variants[0].id},
                           headers=customer_headers)
    assert response.status_code == 404


def test_clear_cart(client, db, customer_headers):
    item = create_item(db)
    client.post("/cart/items", json={"item_id": item.id, "variant_id": item.variants[0].id}, headers=customer_headers)
    assert client.delete("/cart", headers=customer_headers).json()["total_items"] == 0


def test_dashboard_greets_user(client, customer_headers):
    body = client.get("/dashboard", headers=customer_headers).json()

    assert body["greeting"] == "Welcome back, Jan Kowalski!"
    assert body["active_orders"] == 0
    assert [a["path"] for a in body["quick_actions"]] == ["/menu", "/cart", "/orders"]


def test_dashboard_falls_back_to_food_lover(client, db):
    create_user(db, email="anon@example.com", full_name=None)
    body = client.get("/dashboard", headers=auth_headers(client, "anon@example.com")).json()
    assert body["greeting"] == "Welcome back, Food Lover!"
