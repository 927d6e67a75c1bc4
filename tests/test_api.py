"""HTTP flows through the Flask test client."""

import os

import pytest

from cheesy_pos.extensions import db
from cheesy_pos.model import Sale, Setting
from cheesy_pos.services import pos


def _data(r):
    return r.get_json()["data"]


@pytest.fixture
def cashier_cart(client, auth_headers, products):
    """Open a cart and fill it with 2x Burger + 1x Cheesy Fries for Juan."""
    r = client.post("/api/cart", headers=auth_headers("cashier"))
    cart_id = r.headers["X-Cart-Id"]
    headers = auth_headers("cashier", cart_id)
    for key in ("burger", "burger", "fries"):
        client.post("/api/cart/items", json={"product_id": products[key].id}, headers=headers)
    client.patch("/api/cart", json={"customer_name": "Juan"}, headers=headers)
    return headers


@pytest.fixture
def placed_order(client, cashier_cart):
    r = client.post("/api/cart/checkout", json={"payment_method": "cash", "amount_tendered": 250},
                    headers=cashier_cart)
    assert r.status_code == 201
    return _data(r)


class TestAuth:
    def test_login(self, client, users):
        r = client.post("/api/auth/login", json={"email": "Cashier@example.com", "password": "secret123"})
        assert r.status_code == 200
        body = r.get_json()
        assert body["status"] is True
        assert body["data"]["user"]["role"] == "cashier"
        assert body["data"]["token"]

    def test_bad_password(self, client, users):
        r = client.post("/api/auth/login", json={"email": "cashier@example.com", "password": "nope"})
        assert r.status_code == 401
        assert r.get_json()["status"] is False

    def test_me(self, client, auth_headers):
        r = client.get("/api/auth/me", headers=auth_headers("kitchen"))
        assert _data(r)["user"]["email"] == "kitchen@example.com"


class TestProducts:
    def test_requires_token(self, client, products):
        assert client.get("/api/products").status_code == 401

    def test_kitchen_cannot_browse_menu(self, client, auth_headers, products):
        assert client.get("/api/products", headers=auth_headers("kitchen")).status_code == 403

    def test_cashier_sees_available_only(self, client, auth_headers, products):
        r = client.get("/api/products", headers=auth_headers("cashier"))
        assert [p["name"] for p in _data(r)["items"]] == ["Burger", "Cheesy Fries"]

    def test_admin_sees_everything(self, client, auth_headers, products):
        r = client.get("/api/products/all", headers=auth_headers("admin"))
        assert _data(r)["total"] == 3

    def test_admin_create_invalidates_cache(self, client, auth_headers, products):
        client.get("/api/products", headers=auth_headers("cashier"))

        r = client.post("/api/products", headers=auth_headers("admin"),
                        json={"name": "Iced Tea", "price": 59.75, "category": "Drinks"})
        assert r.status_code == 201
        assert _data(r)["price"] == 59.75

        names = [p["name"] for p in _data(client.get("/api/products", headers=auth_headers("cashier")))["items"]]
        assert "Iced Tea" in names

    def test_update_and_delete(self, client, auth_headers, products):
        pid = products["soda"].id
        r = client.put(f"/api/products/{pid}", headers=auth_headers("admin"), json={"is_available": True})
        assert _data(r)["is_available"] is True
        assert client.delete(f"/api/products/{pid}", headers=auth_headers("admin")).status_code == 200
        assert client.get(f"/api/products/{pid}", headers=auth_headers("admin")).status_code == 404

    def test_invalid_category(self, client, auth_headers):
        r = client.post("/api/products", headers=auth_headers("admin"),
                        json={"name": "Pizza", "price": 10, "category": "Mains"})
        assert r.status_code == 422

    def test_cashier_cannot_create(self, client, auth_headers):
        r = client.post("/api/products", headers=auth_headers("cashier"),
                        json={"name": "Pizza", "price": 10, "category": "Snacks"})
        assert r.status_code == 403

    def test_categories(self, client, auth_headers):
        r = client.get("/api/products/categories", headers=auth_headers("kitchen"))
        assert _data(r)["items"] == ["Sandwiches", "Sides", "Drinks", "Snacks"]


class TestCart:
    def test_new_cart_previews_first_order_number(self, client, auth_headers):
        r = client.get("/api/cart", headers=auth_headers("cashier"))
        assert r.headers["X-Cart-Id"]
        assert _data(r)["cart"]["order_number"] == "#001"

    def test_totals(self, client, cashier_cart):
        cart = _data(client.get("/api/cart", headers=cashier_cart))["cart"]
        assert cart["item_count"] == 3
        assert cart["totals"] == {"subtotal": 200.0, "total": 200.0}
        assert cart["customer_name"] == "Juan"

    def test_unavailable_product_returns_warning(self, client, cashier_cart, products):
        r = client.post("/api/cart/items", json={"product_id": products["soda"].id}, headers=cashier_cart)
        assert r.status_code == 200
        assert _data(r)["notice"]["variant"] == "warning"
        assert _data(r)["cart"]["item_count"] == 3

    def test_unknown_product(self, client, cashier_cart):
        r = client.post("/api/cart/items", json={"product_id": 9999}, headers=cashier_cart)
        assert r.status_code == 404

    def test_quantity_zero_removes(self, client, cashier_cart, products):
        r = client.patch(f"/api/cart/items/{products['burger'].id}", json={"quantity": 0}, headers=cashier_cart)
        assert [i["name"] for i in _data(r)["cart"]["items"]] == ["Cheesy Fries"]

    def test_remove_and_clear(self, client, cashier_cart, products):
        r = client.delete(f"/api/cart/items/{products['fries'].id}", headers=cashier_cart)
        assert _data(r)["cart"]["item_count"] == 2
        r = client.delete("/api/cart/items", headers=cashier_cart)
        assert _data(r)["cart"]["items"] == []
        assert _data(r)["cart"]["customer_name"] == ""

    def test_reads_without_cart_id_keep_nothing(self, client, auth_headers):
        for _ in range(50):
            client.get("/api/cart", headers=auth_headers("cashier"))
        assert len(pos().carts) == 0

    def test_first_write_keeps_the_cart(self, client, auth_headers, products):
        r = client.post("/api/cart/items", json={"product_id": products["burger"].id}, headers=auth_headers("cashier"))
        cart_id = r.headers["X-Cart-Id"]
        assert pos().carts.get(cart_id).item_count == 1

    def test_edits_refused_while_checkout_in_flight(self, client, cashier_cart, products):
        cart = pos().carts.get(cashier_cart["X-Cart-Id"])
        cart.begin_submit()

        r = client.post("/api/cart/items", json={"product_id": products["fries"].id}, headers=cashier_cart)
        assert r.status_code == 409
        r = client.patch(f"/api/cart/items/{products['burger'].id}", json={"quantity": 5}, headers=cashier_cart)
        assert r.status_code == 409
        assert client.delete("/api/cart/items", headers=cashier_cart).status_code == 409
        assert client.patch("/api/cart", json={"customer_name": "Ana"}, headers=cashier_cart).status_code == 409

        cart.end_submit()
        assert cart.item_count == 3
        assert cart.customer_name == "Juan"

    def test_cancel_hands_back_fresh_cart(self, client, cashier_cart):
        r = client.delete("/api/cart", headers=cashier_cart)
        assert r.headers["X-Cart-Id"] != cashier_cart["X-Cart-Id"]
        assert _data(r)["cart"]["items"] == []


class TestCheckout:
    def test_juan_end_to_end(self, app, placed_order):
        assert placed_order["state"] == "succeeded"
        assert placed_order["order_number"] == "#001"
        assert placed_order["change"] == 50.0
        assert placed_order["receipt"]["subtotal"] == 200.0
        assert placed_order["receipt"]["total"] == 200.0
        assert placed_order["receipt"]["receipt_number"].startswith("MSC-")
        assert placed_order["receipt"]["receipt_number"].endswith("-0001")
        assert placed_order["confirm_delay_ms"] == 1500
        assert [p["status"] for p in placed_order["prints"]] == ["previewed", "previewed"]
        assert all(os.path.exists(p["location"]) for p in placed_order["prints"])
        assert placed_order["receipt_printed"] is True

        # cart cleared, next number previewed
        assert placed_order["cart"]["items"] == []
        assert placed_order["cart"]["customer_name"] == ""
        assert placed_order["cart"]["order_number"] == "#002"

        sale = Sale.query.one()
        assert sale.receipt_printed is True
        assert float(sale.tax_amount) == 0.0
        assert float(sale.change_given) == 50.0
        assert sale.order.item_count == 3
        assert sale.receipt_json["customer_name"] == "Juan"

        kitchen = [p for p in placed_order["prints"] if p["copy"] == "kitchen"][0]
        with open(kitchen["location"], encoding="utf-8") as fh:
            text = fh.read()
        assert "₱" not in text
        assert "50.00" not in text

    def test_blank_name_keeps_cart(self, client, cashier_cart):
        client.patch("/api/cart", json={"customer_name": "   "}, headers=cashier_cart)
        r = client.post("/api/cart/checkout", json={"payment_method": "cash", "amount_tendered": 250},
                        headers=cashier_cart)
        assert r.status_code == 422
        assert r.get_json()["status"] is False
        assert Sale.query.count() == 0
        assert _data(client.get("/api/cart", headers=cashier_cart))["cart"]["item_count"] == 3

    def test_insufficient_cash(self, client, cashier_cart):
        r = client.post("/api/cart/checkout", json={"payment_method": "cash", "amount_tendered": 199.99},
                        headers=cashier_cart)
        assert r.status_code == 422
        assert Sale.query.count() == 0

    def test_empty_cart(self, client, auth_headers):
        r = client.post("/api/cart/checkout", json={"customer_name": "Juan", "payment_method": "digital"},
                        headers=auth_headers("cashier"))
        assert r.status_code == 422

    def test_product_pulled_before_checkout(self, client, cashier_cart, auth_headers, products):
        client.put(f"/api/products/{products['fries'].id}", json={"is_available": False},
                   headers=auth_headers("admin"))
        r = client.post("/api/cart/checkout", json={"payment_method": "digital"}, headers=cashier_cart)
        assert r.status_code == 503
        assert "no longer available" in r.get_json()["message"]
        assert _data(client.get("/api/cart", headers=cashier_cart))["cart"]["item_count"] == 3

    def test_auto_print_uses_printer_surface(self, client, cashier_cart, auth_headers):
        client.put("/api/settings/printer", json={"autoPrint": True}, headers=auth_headers("admin"))
        r = client.post("/api/cart/checkout", json={"payment_method": "digital"}, headers=cashier_cart)
        assert [p["status"] for p in _data(r)["prints"]] == ["printed", "printed"]

    def test_second_order_gets_next_numbers(self, client, placed_order, cashier_cart, products):
        headers = cashier_cart
        client.post("/api/cart/items", json={"product_id": products["burger"].id}, headers=headers)
        r = client.post("/api/cart/checkout", json={"customer_name": "Ana", "payment_method": "digital"},
                        headers=headers)
        data = _data(r)
        assert data["order_number"] == "#002"
        assert data["receipt"]["receipt_number"].endswith("-0002")


class TestKitchen:
    def test_active_orders_hide_money(self, client, auth_headers, placed_order):
        r = client.get("/api/orders/active", headers=auth_headers("kitchen"))
        order = _data(r)["items"][0]
        assert order["order_number"] == "#001"
        assert order["status"] == "pending"
        assert order["next_status"] == "preparing"
        assert "money" not in order
        assert all("price" not in k for item in order["items"] for k in item)

    def test_advance_and_invalid_jump(self, client, auth_headers, placed_order):
        oid = placed_order["order_id"]
        r = client.post(f"/api/orders/{oid}/advance", headers=auth_headers("kitchen"))
        assert _data(r)["status"] == "preparing"

        r = client.patch(f"/api/orders/{oid}/status", json={"status": "completed"}, headers=auth_headers("kitchen"))
        assert r.status_code == 409

        r = client.patch(f"/api/orders/{oid}/status", json={"status": "ready"}, headers=auth_headers("kitchen"))
        assert _data(r)["status_label"] == "Ready for Pickup"

    def test_cashier_is_not_kitchen(self, client, auth_headers):
        assert client.get("/api/orders/active", headers=auth_headers("cashier")).status_code == 403

    def test_admin_order_listing(self, client, auth_headers, placed_order):
        r = client.get("/api/orders?status=pending", headers=auth_headers("admin"))
        assert _data(r)["total"] == 1
        r = client.get(f"/api/orders/{placed_order['order_id']}", headers=auth_headers("admin"))
        assert _data(r)["money"]["total"] == 200.0
        assert client.get("/api/orders/999", headers=auth_headers("admin")).status_code == 404


class TestSales:
    def test_report(self, client, auth_headers, placed_order):
        r = client.get("/api/sales?period=daily", headers=auth_headers("admin"))
        data = _data(r)
        assert [b["total"] for b in data["buckets"]] == [200.0]
        assert data["summary"]["transactions"] == 1
        assert data["items"][0]["order_number"] == "#001"

    def test_bad_period(self, client, auth_headers):
        assert client.get("/api/sales?period=hourly", headers=auth_headers("admin")).status_code == 422

    def test_csv_export(self, client, auth_headers, placed_order):
        r = client.get("/api/sales/export.csv", headers=auth_headers("admin"))
        assert r.mimetype == "text/csv"
        lines = r.get_data(as_text=True).splitlines()
        assert lines[0] == "Date,Receipt#,Order#,Customer,Items,Subtotal,Total,Payment,AmountPaid,Change"
        assert lines[1].endswith(",#001,Juan,3,200.00,200.00,cash,250.00,50.00")

    def test_kitchen_receipt_copy(self, client, auth_headers, placed_order):
        r = client.get(f"/api/sales/{placed_order['sale_id']}/receipt?copy=kitchen", headers=auth_headers("admin"))
        data = _data(r)
        assert "customer" not in data
        assert "KITCHEN COPY" in data["kitchen"]
        assert "₱" not in data["kitchen"]

    def test_receipt_for_sale_without_stored_record(self, client, auth_headers, placed_order):
        sale = db.session.get(Sale, placed_order["sale_id"])
        sale.receipt_json = None
        db.session.commit()

        r = client.get(f"/api/sales/{sale.id}/receipt?copy=customer", headers=auth_headers("admin"))
        text = _data(r)["customer"]
        assert "Customer: Juan" in text
        assert "2x Burger" in text
        assert "Change:" in text

    def test_reprint(self, client, auth_headers, placed_order):
        r = client.post(f"/api/sales/{placed_order['sale_id']}/reprint", json={"copies": ["kitchen"]},
                        headers=auth_headers("admin"))
        prints = _data(r)["prints"]
        assert [(p["copy"], p["status"]) for p in prints] == [("kitchen", "previewed")]

    def test_bad_copy(self, client, auth_headers, placed_order):
        r = client.get(f"/api/sales/{placed_order['sale_id']}/receipt?copy=manager", headers=auth_headers("admin"))
        assert r.status_code == 422

    def test_admin_only(self, client, auth_headers):
        assert client.get("/api/sales", headers=auth_headers("cashier")).status_code == 403


class TestSettings:
    def test_defaults(self, client, auth_headers):
        data = _data(client.get("/api/settings", headers=auth_headers("cashier")))
        assert data["business_name"] == "Ms. Cheesy"
        assert data["tagline"] == "Point of Sale System"

    def test_update_shows_on_receipt(self, client, auth_headers, placed_order):
        r = client.put("/api/settings", json={"store_address": "12 Rizal Ave"}, headers=auth_headers("admin"))
        assert _data(r)["store_address"] == "12 Rizal Ave"
        r = client.get(f"/api/sales/{placed_order['sale_id']}/receipt?copy=customer", headers=auth_headers("admin"))
        assert "12 Rizal Ave" in _data(r)["customer"]

    def test_unknown_key(self, client, auth_headers):
        r = client.put("/api/settings", json={"favorite_color": "red"}, headers=auth_headers("admin"))
        assert r.status_code == 422

    def test_rejected_update_writes_nothing(self, client, auth_headers):
        r = client.put("/api/settings", json={"tagline": "Open late", "business_name": "  "}, headers=auth_headers("admin"))
        assert r.status_code == 422
        assert Setting.query.count() == 0
        assert _data(client.get("/api/settings", headers=auth_headers("admin")))["tagline"] == "Point of Sale System"

    def test_failed_commit_is_reported_and_rolled_back(self, client, auth_headers, monkeypatch):
        def refuse():
            raise RuntimeError("database is locked")

        monkeypatch.setattr(db.session, "commit", refuse)
        r = client.put("/api/settings", json={"tagline": "Open late"}, headers=auth_headers("admin"))
        monkeypatch.undo()

        assert r.status_code == 503
        assert "database" not in r.get_json()["message"]
        assert Setting.query.count() == 0

    def test_printer_switches_must_be_booleans(self, client, auth_headers):
        r = client.put("/api/settings/printer", json={"enabled": "false"}, headers=auth_headers("admin"))
        assert r.status_code == 422
        assert _data(client.get("/api/settings/printer", headers=auth_headers("admin")))["enabled"] is True

    def test_cashier_cannot_update(self, client, auth_headers):
        r = client.put("/api/settings", json={"tagline": "x"}, headers=auth_headers("cashier"))
        assert r.status_code == 403

    def test_printer_settings_roundtrip(self, client, app, auth_headers):
        r = client.get("/api/settings/printer", headers=auth_headers("cashier"))
        assert _data(r)["width"] == 40
        assert _data(r)["autoPrint"] is False
        assert _data(r)["width_options"] == [32, 40, 48, 58, 80]

        r = client.put("/api/settings/printer", json={"width": 32, "autoPrint": True}, headers=auth_headers("admin"))
        assert r.status_code == 200
        assert os.path.exists(app.config["PRINTER_SETTINGS_PATH"])
        data = _data(client.get("/api/settings/printer", headers=auth_headers("kitchen")))
        assert (data["width"], data["autoPrint"], data["enabled"]) == (32, True, True)

    def test_printer_width_must_be_positive(self, client, auth_headers):
        r = client.put("/api/settings/printer", json={"width": 0}, headers=auth_headers("admin"))
        assert r.status_code == 422

    def test_test_print(self, client, auth_headers):
        r = client.post("/api/settings/printer/test", headers=auth_headers("admin"))
        data = _data(r)
        assert data["status"] == "previewed"
        with open(data["location"], encoding="utf-8") as fh:
            assert "MSC-20241101-TEST" in fh.read()


def test_unknown_route_uses_envelope(client):
    r = client.get("/api/nope")
    assert r.status_code == 404
    assert r.get_json()["status"] is False
