# cheesy_pos/cart/routes.py
from __future__ import annotations

from flask import current_app, request

from ..errors import NotFoundError, ValidationError
from ..services import pos
from ..services.checkout_service import CheckoutProcessor, Payment
from ..services.suggestion_service import DEFAULT_LIMIT, MAX_LIMIT, suggest_pairings
from ..utils.api import ok
from ..utils.decorators import current_user, role_required
from . import bp

# ---- helpers ---------------------------------------------------------------


def _resolve_cart(create=False):
    """Cart named by X-Cart-Id; only kept in the registry once written to."""
    return pos().carts.resolve(request.headers.get("X-Cart-Id"), create=create)


def _respond(msg, cart, status=200, extra=None):
    data = {"cart": cart.as_api(), **(extra or {})}
    resp = ok(msg, data, status=status)
    resp.headers["X-Cart-Id"] = cart.uuid
    return resp


def _product_id(data) -> int:
    try:
        return int(data.get("product_id"))
    except (TypeError, ValueError):
        raise ValidationError("product_id is required")


# ---- endpoints -------------------------------------------------------------

@bp.get("")
@role_required("cashier")
def get_cart():
    return _respond("cart", _resolve_cart())


@bp.post("")
@role_required("cashier")
def create_or_get_cart():
    return _respond("cart ready", _resolve_cart(create=True), status=201)


@bp.patch("")
@role_required("cashier")
def update_cart():
    """Body: { "customer_name": str }"""
    cart = _resolve_cart(create=True)
    data = request.get_json(silent=True) or {}
    if "customer_name" in data:
        cart.set_customer_name(data.get("customer_name"))
    return _respond("cart updated", cart)


@bp.delete("")
@role_required("cashier")
def cancel_cart():
    """Drops the current cart and hands back a fresh one."""
    svc = pos()
    cart = _resolve_cart()
    if cart.submitting:
        raise ValidationError("Checkout is in progress; the order cannot be cancelled now.")
    svc.carts.discard(cart.uuid)
    new_cart = svc.carts.resolve(None)
    return _respond("order cancelled; new cart ready", new_cart)


@bp.post("/items")
@role_required("cashier")
def add_item():
    """
    Body: { "product_id": int }
    Header: X-Cart-Id: <uuid>
    """
    cart = _resolve_cart(create=True)
    product = pos().catalog.get_product(_product_id(request.get_json(silent=True) or {}))
    if product is None:
        raise NotFoundError("Product not found.")

    notice = cart.add_item(product)
    status = 200 if notice.variant == "warning" else 201
    return _respond(notice.title, cart, status=status, extra={"notice": notice.as_api()})


@bp.patch("/items/<int:product_id>")
@bp.put("/items/<int:product_id>")
@role_required("cashier")
def update_item(product_id: int):
    """Body: { "quantity": int }  (0 or less removes the line)"""
    cart = _resolve_cart(create=True)
    data = request.get_json(silent=True) or {}
    try:
        quantity = int(data.get("quantity"))
    except (TypeError, ValueError):
        raise ValidationError("quantity must be a whole number")
    cart.update_quantity(product_id, quantity)
    return _respond("quantity updated" if quantity > 0 else "item removed", cart)


@bp.delete("/items/<int:product_id>")
@role_required("cashier")
def remove_item(product_id: int):
    cart = _resolve_cart()
    cart.remove_item(product_id)
    return _respond("item removed", cart)


# ---- clear all items (keep same cart uuid) ---------------------------------
@bp.delete("/items")
@role_required("cashier")
def clear_cart_items():
    cart = _resolve_cart()
    cart.clear()
    return _respond("all items removed", cart)


# GET /api/cart/suggestions?limit=3
@bp.get("/suggestions")
@role_required("cashier")
def suggestions():
    """Products often bought together with what is in the cart."""
    svc = pos()
    cart = _resolve_cart()
    limit = request.args.get("limit", default=DEFAULT_LIMIT, type=int)
    if limit is None or not 1 <= limit <= MAX_LIMIT:
        raise ValidationError(f"limit must be between 1 and {MAX_LIMIT}")

    picks = suggest_pairings(
        svc.store.fetch_order_baskets(current_app.config["SUGGESTION_HISTORY_ORDERS"]),
        [line.product_id for line in cart.lines],
        svc.catalog.available_products(),
        limit,
    )
    return _respond("suggestions", cart, extra={"suggestions": [s.as_api() for s in picks]})


@bp.post("/checkout")
@role_required("cashier")
def checkout():
    """
    Body: { "customer_name"?: str, "payment_method": "cash"|"digital", "amount_tendered"?: number }
    """
    svc = pos()
    cart = _resolve_cart()
    data = request.get_json(silent=True) or {}
    if "customer_name" in data:
        cart.set_customer_name(data.get("customer_name"))

    processor = CheckoutProcessor(svc.store, svc.receipt_printer)
    result = processor.checkout(cart, Payment.from_payload(data), cashier_id=current_user().id)
    svc.carts.refresh_order_number(cart)

    resp = _respond(
        f"Order {result.order_number} placed",
        cart,
        status=201,
        extra={
            **result.as_api(),
            "state": processor.state.value,
            "confirm_delay_ms": current_app.config["CHECKOUT_CONFIRM_DELAY_MS"],
        },
    )
    resp.headers["X-Order-Id"] = str(result.order_id)
    return resp
