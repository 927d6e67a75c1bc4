from __future__ import annotations

import threading
import time
import uuid as _uuid
from dataclasses import dataclass
from decimal import Decimal
from typing import Callable

import structlog

from ..errors import CheckoutInProgressError
from ..utils.money import D, round_money, ZERO
from .catalog_service import ProductSnapshot

logger = structlog.get_logger()


def format_order_number(count: int) -> str:
    """`#` plus the count zero-padded to at least three digits: 4 -> '#004'."""
    return f"#{int(count):03d}"


@dataclass(frozen=True)
class Notice:
    """Transient message for the cashier screen (toast)."""

    title: str
    description: str = ""
    variant: str = "default"  # "default" | "warning"

    def as_api(self):
        return {"title": self.title, "description": self.description, "variant": self.variant}


@dataclass(frozen=True)
class CartLine:
    product: ProductSnapshot
    quantity: int

    @property
    def product_id(self) -> int:
        return self.product.id

    @property
    def line_total(self) -> Decimal:
        return round_money(self.product.price * Decimal(self.quantity))

    def as_api(self):
        return {
            "product_id": self.product.id,
            "name": self.product.name,
            "category": self.product.category,
            "price": float(self.product.price),
            "quantity": self.quantity,
            "line_total": float(self.line_total),
            "image_url": self.product.image_url,
        }


class Cart:
    """The in-progress order of one cashier terminal.

    Lines are keyed by product id and keep insertion order; a product never
    has two lines and no line is kept at quantity 0. Totals are derived from
    the lines on every read. Tax is not applied, so total == subtotal.
    """

    def __init__(self, cart_uuid: str | None = None, order_number: str = ""):
        self.uuid = cart_uuid or str(_uuid.uuid4())
        self.order_number = order_number
        self.customer_name = ""
        self.submitting = False
        self._lines: dict[int, CartLine] = {}
        self._submit_lock = threading.Lock()

    # --------- lines ----------
    @property
    def lines(self) -> list[CartLine]:
        return list(self._lines.values())

    def __len__(self):
        return len(self._lines)

    def is_empty(self) -> bool:
        return not self._lines

    def _check_open(self) -> None:
        if self.submitting:
            raise CheckoutInProgressError("Checkout is in progress; the order cannot be changed now.")

    def add_item(self, product: ProductSnapshot) -> Notice:
        self._check_open()
        if not product.is_available:
            return Notice(
                title=f"{product.name} is unavailable",
                description="This item cannot be added right now.",
                variant="warning",
            )
        line = self._lines.get(product.id)
        if line:
            self._lines[product.id] = CartLine(line.product, line.quantity + 1)
        else:
            self._lines[product.id] = CartLine(product, 1)
        return Notice(
            title=f"{product.name} added to order!",
            description="You can adjust the quantity in the order summary.",
        )

    def remove_item(self, product_id: int) -> None:
        self._check_open()
        self._lines.pop(product_id, None)

    def update_quantity(self, product_id: int, quantity: int) -> None:
        self._check_open()
        if quantity <= 0:
            self.remove_item(product_id)
            return
        line = self._lines.get(product_id)
        if line:
            self._lines[product_id] = CartLine(line.product, int(quantity))

    def set_customer_name(self, name: str) -> None:
        self._check_open()
        self.customer_name = "" if name is None else str(name)

    def clear(self) -> None:
        self._check_open()
        self._reset()

    def _reset(self) -> None:
        self._lines.clear()
        self.customer_name = ""

    def snapshot(self) -> tuple[CartLine, ...]:
        return tuple(self._lines.values())

    # --------- money / totals ----------
    @property
    def subtotal(self) -> Decimal:
        return round_money(sum((D(l.product.price) * l.quantity for l in self._lines.values()), ZERO))

    @property
    def total(self) -> Decimal:
        return self.subtotal

    @property
    def item_count(self) -> int:
        return sum(l.quantity for l in self._lines.values())

    # --------- submission flag ----------
    def begin_submit(self) -> None:
        with self._submit_lock:
            if self.submitting:
                raise CheckoutInProgressError("Checkout is already in progress for this order.")
            self.submitting = True

    def end_submit(self) -> None:
        self.submitting = False

    def complete_submit(self) -> None:
        """Empty the cart after its order was committed and reopen it for input."""
        with self._submit_lock:
            self._reset()
            self.submitting = False

    def as_api(self):
        return {
            "uuid": self.uuid,
            "order_number": self.order_number,
            "customer_name": self.customer_name,
            "submitting": self.submitting,
            "items": [l.as_api() for l in self._lines.values()],
            "item_count": self.item_count,
            "totals": {
                "subtotal": float(self.subtotal),
                "total": float(self.total),
            },
        }


class CartRegistry:
    """Carts of all terminals served by this process, keyed by uuid.

    A cart is only held once something is written to it (``create=True``);
    reads of an unknown uuid get a fresh cart that is not kept. Carts idle
    for ``idle_ttl`` seconds are dropped, and past ``max_carts`` the least
    recently used one goes first. A cart in the middle of a checkout is
    never dropped.
    """

    def __init__(
        self,
        order_number_source: Callable[[], str] | None = None,
        idle_ttl: float = 4 * 60 * 60,
        max_carts: int = 500,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._carts: dict[str, Cart] = {}
        self._touched: dict[str, float] = {}
        self._lock = threading.RLock()
        self._order_number_source = order_number_source or (lambda: "")
        self.idle_ttl = idle_ttl
        self.max_carts = max_carts
        self._clock = clock

    def resolve(self, cart_uuid: str | None, create: bool = False) -> Cart:
        with self._lock:
            now = self._clock()
            self._sweep(now)
            cart = self._carts.get(cart_uuid) if cart_uuid else None
            if cart is None:
                cart = Cart(cart_uuid, order_number=self._order_number_source())
                if not create:
                    return cart
                self._carts[cart.uuid] = cart
                self._evict_over_cap()
            self._touched[cart.uuid] = now
            return cart

    def _sweep(self, now: float) -> None:
        for key in [k for k, t in self._touched.items() if now - t > self.idle_ttl]:
            if not self._carts[key].submitting:
                self.discard(key)
                logger.info("cart.evicted", cart=key, reason="idle")

    def _evict_over_cap(self) -> None:
        while len(self._carts) > self.max_carts:
            idle = [k for k in self._touched if not self._carts[k].submitting]
            if not idle:
                return
            key = min(idle, key=self._touched.__getitem__)
            self.discard(key)
            logger.info("cart.evicted", cart=key, reason="capacity")

    def get(self, cart_uuid: str) -> Cart | None:
        with self._lock:
            return self._carts.get(cart_uuid)

    def discard(self, cart_uuid: str) -> None:
        with self._lock:
            self._carts.pop(cart_uuid, None)
            self._touched.pop(cart_uuid, None)

    def refresh_order_number(self, cart: Cart) -> None:
        cart.order_number = self._order_number_source()

    def __len__(self):
        with self._lock:
            return len(self._carts)
