"""Cart → persisted order/sale → receipts.

``CheckoutProcessor.checkout`` is the only way a cart becomes an order. It
validates before the store is touched, lets the store commit the order and sale
in a single transaction, then runs the print hook. Printing is best-effort:
whatever happens there, the committed order stands.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass, field
from decimal import Decimal

import structlog

from ..errors import CheckoutInProgressError, PersistenceError, ValidationError
from ..utils.money import D, ZERO, parse_money, round_money
from .print_service import COPIES, DispatchResult

logger = structlog.get_logger()

PAYMENT_METHODS = ("cash", "digital")


class CheckoutState(str, enum.Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    SUBMITTING = "submitting"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class Payment:
    method: str
    amount_tendered: Decimal | None = None

    @classmethod
    def from_payload(cls, payload: dict) -> "Payment":
        payload = payload or {}
        method = str(payload.get("payment_method") or payload.get("method") or "").strip().lower()
        return cls(method=method, amount_tendered=parse_money(payload.get("amount_tendered")))


@dataclass
class CheckoutResult:
    order_id: int
    order_number: str
    sale_id: int
    receipt: object  # ReceiptData
    change: Decimal = ZERO
    prints: list = field(default_factory=list)
    receipt_printed: bool = False

    def as_api(self):
        return {
            "order_id": self.order_id,
            "order_number": self.order_number,
            "sale_id": self.sale_id,
            "receipt": self.receipt.as_record(),
            "change": float(self.change),
            "prints": [p.as_api() for p in self.prints],
            "receipt_printed": self.receipt_printed,
        }


def compute_change(total, tendered) -> Decimal:
    """max(0, tendered - total), in cents."""
    if tendered is None:
        return ZERO
    return max(ZERO, round_money(D(tendered) - D(total)))


class CheckoutProcessor:
    def __init__(self, store, receipt_printer=None):
        self.store = store
        self.receipt_printer = receipt_printer
        self.state = CheckoutState.IDLE
        self.error: str | None = None

    def _fail(self, cart, exc):
        self.state = CheckoutState.FAILED
        self.error = exc.message
        cart.end_submit()
        logger.info("checkout.rejected", cart=cart.uuid, reason=exc.message)

    def _validate(self, cart, payment: Payment):
        if cart.is_empty():
            raise ValidationError("Your order is empty. Add at least one item.")
        if not (cart.customer_name or "").strip():
            raise ValidationError("Please enter the customer's name.")
        if payment.method not in PAYMENT_METHODS:
            raise ValidationError("Please choose a payment method (cash or digital).")
        if payment.method == "cash":
            if payment.amount_tendered is None:
                raise ValidationError("Please enter the cash amount received.")
            if payment.amount_tendered < cart.total:
                raise ValidationError("Cash received is less than the total amount.")

    def checkout(self, cart, payment: Payment, cashier_id=None) -> CheckoutResult:
        # a second submit while one is in flight is rejected and leaves the first alone
        try:
            cart.begin_submit()
        except CheckoutInProgressError as e:
            self.error = e.message
            logger.info("checkout.duplicate_rejected", cart=cart.uuid)
            raise

        self.state = CheckoutState.VALIDATING
        self.error = None
        try:
            self._validate(cart, payment)
        except ValidationError as e:
            self._fail(cart, e)
            raise

        self.state = CheckoutState.SUBMITTING
        tendered = payment.amount_tendered if payment.method == "cash" else None
        try:
            confirmation = self.store.create_order(
                customer_name=cart.customer_name.strip(),
                lines=cart.snapshot(),
                payment_method=payment.method,
                amount_tendered=tendered,
                cashier_id=cashier_id,
            )
        except PersistenceError as e:
            self._fail(cart, e)
            raise

        self.state = CheckoutState.SUCCEEDED
        result = CheckoutResult(
            order_id=confirmation.order_id,
            order_number=confirmation.order_number,
            sale_id=confirmation.sale_id,
            receipt=confirmation.receipt,
            change=compute_change(confirmation.receipt.total, tendered),
        )
        logger.info(
            "checkout.succeeded",
            order_number=result.order_number,
            receipt_number=confirmation.receipt.receipt_number,
            total=str(confirmation.receipt.total),
            payment_method=payment.method,
        )

        self._after_commit(result)
        cart.complete_submit()
        return result

    def _after_commit(self, result: CheckoutResult) -> None:
        if self.receipt_printer is None:
            return
        try:
            result.prints = self.receipt_printer.print_receipts(result.receipt)
        except Exception as e:
            # the order is committed; nothing here may undo it
            logger.exception("checkout.print_hook_failed", sale_id=result.sale_id, error=str(e))
            result.prints = [DispatchResult(c, "failed", error="Receipt could not be generated.") for c in COPIES]
            return
        if any(p.delivered for p in result.prints):
            result.receipt_printed = self.store.mark_receipt_printed(result.sale_id)
