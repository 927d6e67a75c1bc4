"""Fixed-width receipt rendering for the thermal printer.

Everything here is pure: the same ``ReceiptData`` and settings always give
the same text. Raw receipt records coming from the data store (or from the
checkout response the cashier screen holds) go through ``normalize_receipt``
first; the formatters only ever see the canonical shape.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Mapping

from ..errors import ValidationError
from ..utils.money import D, format_currency, parse_money, round_money

PAYMENT_LABELS = {"cash": "Cash", "digital": "Card/Digital"}


@dataclass(frozen=True)
class ReceiptItem:
    name: str
    quantity: int
    price: Decimal
    total: Decimal
    category: str | None = None


@dataclass(frozen=True)
class ReceiptData:
    receipt_number: str
    order_number: str
    customer_name: str
    sale_date: datetime
    subtotal: Decimal
    total: Decimal
    payment_method: str
    items: tuple[ReceiptItem, ...] = ()
    amount_tendered: Decimal | None = None
    change_given: Decimal | None = None

    @property
    def item_count(self) -> int:
        return sum(i.quantity for i in self.items)

    def as_record(self) -> dict:
        """Persisted-record naming; what ``Sale.receipt_json`` stores."""
        return {
            "receipt_number": self.receipt_number,
            "order_number": self.order_number,
            "customer_name": self.customer_name,
            "sale_date": self.sale_date.isoformat(),
            "subtotal": float(self.subtotal),
            "total": float(self.total),
            "payment_method": self.payment_method,
            "amount_tendered": float(self.amount_tendered) if self.amount_tendered is not None else None,
            "change_given": float(self.change_given) if self.change_given is not None else None,
            "items": [
                {
                    "product_name": i.name,
                    "quantity": i.quantity,
                    "unit_price": float(i.price),
                    "line_total": float(i.total),
                    "category": i.category,
                }
                for i in self.items
            ],
        }


@dataclass(frozen=True)
class StoreInfo:
    name: str = "Ms. Cheesy"
    address: str = ""
    phone: str = ""
    currency_symbol: str = "₱"
    utc_offset_hours: float = 0


@dataclass(frozen=True)
class ReceiptTexts:
    customer: str
    kitchen: str


# ---- field normalization ---------------------------------------------------
# (persisted-record name, ...fallbacks). First present, non-None value wins.
_FIELDS = {
    "receipt_number": ("receipt_number", "receiptNumber"),
    "order_number": ("order_number", "orderNumber"),
    "customer_name": ("customer_name", "customer", "customerName"),
    "sale_date": ("sale_date", "saleDate"),
    "subtotal": ("subtotal",),
    "total": ("total",),
    "payment_method": ("payment_method", "payment_type", "paymentMethod"),
    "amount_tendered": ("amount_tendered", "amount_paid", "amountTendered"),
    "change_given": ("change_given", "change_amount", "changeGiven"),
}

_ITEM_FIELDS = {
    "name": ("product_name", "name"),
    "quantity": ("quantity",),
    "price": ("unit_price", "price"),
    "total": ("line_total", "total"),
    "category": ("product_category", "category"),
}


def _pick(raw: Mapping[str, Any], names: tuple[str, ...]):
    for name in names:
        value = raw.get(name)
        if value is not None:
            return value
    return None


def _parse_date(value) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str) and value.strip():
        try:
            return datetime.fromisoformat(value.strip().replace("Z", "+00:00")).replace(tzinfo=None)
        except ValueError:
            pass
    raise ValidationError("Receipt has no valid sale date.")


def _amount(value, field: str) -> Decimal:
    amount = parse_money(value)
    if amount is None:
        raise ValidationError(f"Receipt field '{field}' is not a number.")
    return amount


def _normalize_item(raw: Mapping[str, Any]) -> ReceiptItem:
    name = _pick(raw, _ITEM_FIELDS["name"]) or "Item"
    quantity = int(_pick(raw, _ITEM_FIELDS["quantity"]) or 0)
    price = parse_money(_pick(raw, _ITEM_FIELDS["price"])) or D(0)
    total = parse_money(_pick(raw, _ITEM_FIELDS["total"]))
    if total is None:
        total = round_money(price * quantity)
    return ReceiptItem(
        name=str(name),
        quantity=quantity,
        price=round_money(price),
        total=total,
        category=_pick(raw, _ITEM_FIELDS["category"]),
    )


def normalize_receipt(raw: Mapping[str, Any] | ReceiptData) -> ReceiptData:
    """Turn either naming convention into one ``ReceiptData``."""
    if isinstance(raw, ReceiptData):
        return raw
    values = {field: _pick(raw, names) for field, names in _FIELDS.items()}

    payment_method = str(values["payment_method"] or "digital").lower()
    tendered = parse_money(values["amount_tendered"])
    change = parse_money(values["change_given"])
    if payment_method != "cash":
        tendered = change = None

    return ReceiptData(
        receipt_number=str(values["receipt_number"] or ""),
        order_number=str(values["order_number"] or "N/A"),
        customer_name=str(values["customer_name"] or ""),
        sale_date=_parse_date(values["sale_date"]),
        subtotal=_amount(values["subtotal"], "subtotal"),
        total=_amount(values["total"], "total"),
        payment_method=payment_method,
        items=tuple(_normalize_item(i) for i in (raw.get("items") or [])),
        amount_tendered=tendered,
        change_given=change,
    )


# ---- layout helpers --------------------------------------------------------

def center_text(text: str, width: int) -> str:
    if len(text) >= width:
        return text
    return " " * ((width - len(text)) // 2) + text


def two_column(left: str, right: str, width: int) -> str:
    max_left = width - len(right) - 1
    if max_left < 1:
        # no room for a label: the value alone, never wider than the paper
        return right[:width].rjust(width)
    if len(left) > max_left:
        if max_left >= 3:
            left = left[: max_left - 3] + "..."
        else:
            left = left[: max(0, max_left)]
    padding = max(1, width - len(left) - len(right))
    return left + " " * padding + right


def _local(ts: datetime, store: StoreInfo) -> datetime:
    return ts + timedelta(hours=store.utc_offset_hours)


# ---- formatters ------------------------------------------------------------

def format_customer_receipt(receipt: ReceiptData, settings, store: StoreInfo) -> str:
    width = settings.width
    line = "=" * width
    half_line = "-" * width
    def money(x):
        return format_currency(x, store.currency_symbol)

    when = _local(receipt.sale_date, store)

    out = []
    out.append(center_text(store.name, width))
    if store.address:
        out.append(center_text(store.address, width))
    if store.phone:
        out.append(center_text(store.phone, width))
    out.append(line)
    out.append(center_text("CUSTOMER COPY", width))
    out.append(line)
    out.append("")

    out.append(f"Receipt #: {receipt.receipt_number}")
    out.append(f"Order #: {receipt.order_number}")
    out.append(f"Customer: {receipt.customer_name}")
    out.append(f"Date: {when:%Y-%m-%d}")
    out.append(f"Time: {when:%H:%M:%S}")
    out.append(half_line)

    out.append(two_column("Item", "Amount", width))
    out.append(half_line)
    for item in receipt.items:
        out.append(two_column(f"{item.quantity}x {item.name}", money(item.total), width))
    out.append(half_line)

    out.append(two_column("Subtotal:", money(receipt.subtotal), width))
    out.append(two_column("TOTAL:", money(receipt.total), width))
    out.append(half_line)

    out.append(two_column("Payment:", PAYMENT_LABELS.get(receipt.payment_method, receipt.payment_method), width))
    if receipt.payment_method == "cash":
        if receipt.amount_tendered is not None:
            out.append(two_column("Cash Tendered:", money(receipt.amount_tendered), width))
        if receipt.change_given is not None:
            out.append(two_column("Change:", money(receipt.change_given), width))

    out.append(line)
    out.append(center_text("Thank you for your order!", width))
    out.append(center_text("Please come again!", width))
    out.append(line)
    return "\n".join(out) + "\n"


def format_kitchen_receipt(receipt: ReceiptData, settings, store: StoreInfo) -> str:
    # prices never reach this copy
    width = settings.width
    line = "=" * width
    half_line = "-" * width
    when = _local(receipt.sale_date, store)

    out = [center_text("KITCHEN COPY", width), line, ""]
    out.append(f"Order #: {receipt.order_number}")
    out.append(f"Customer: {receipt.customer_name}")
    out.append(f"Time: {when:%H:%M:%S}")
    out.append(half_line)
    out.append("ITEMS TO PREPARE:")
    out.append(half_line)
    for item in receipt.items:
        out.append(f"{item.quantity}x {item.name}")
        if item.category:
            out.append(f"    ({item.category})")
    out.append(half_line)
    out.append(f"Total Items: {receipt.item_count}")
    out.append(line)
    return "\n".join(out) + "\n"


def format_receipts(receipt, settings, store: StoreInfo) -> ReceiptTexts:
    data = normalize_receipt(receipt)
    return ReceiptTexts(
        customer=format_customer_receipt(data, settings, store),
        kitchen=format_kitchen_receipt(data, settings, store),
    )


def sample_receipt(sale_date: datetime) -> ReceiptData:
    """Fixed receipt used by the printer test page."""
    return ReceiptData(
        receipt_number="MSC-20241101-TEST",
        order_number="ORD-TEST-001",
        customer_name="Test Customer",
        sale_date=sale_date,
        subtotal=D("150.00"),
        total=D("150.00"),
        payment_method="cash",
        items=(
            ReceiptItem("Classic Cheeseburger", 2, D("50.00"), D("100.00")),
            ReceiptItem("Fries", 1, D("50.00"), D("50.00")),
        ),
        amount_tendered=D("200.00"),
        change_given=D("50.00"),
    )
