"""Sales reporting: period buckets and the CSV export."""
from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal

import pandas as pd

from ..errors import ValidationError
from ..utils.money import D, ZERO, round_money

PERIODS = ("daily", "weekly", "monthly")

CSV_COLUMNS = [
    "Date", "Receipt#", "Order#", "Customer", "Items",
    "Subtotal", "Total", "Payment", "AmountPaid", "Change",
]


@dataclass(frozen=True)
class Transaction:
    """One sale as reports see it. ``sale_date`` is naive UTC."""

    sale_date: datetime
    total: Decimal
    receipt_number: str = ""
    order_number: str | None = None
    customer_name: str = ""
    items_count: int = 0
    subtotal: Decimal | None = None
    payment_method: str = ""
    amount_tendered: Decimal | None = None
    change_given: Decimal | None = None
    sale_id: int | None = None

    @classmethod
    def from_sale(cls, s) -> "Transaction":
        return cls(
            sale_id=s.id,
            sale_date=s.sale_date,
            total=D(s.total),
            receipt_number=s.receipt_number or "",
            order_number=s.order_number,
            customer_name=s.customer_name or "",
            items_count=s.items_count,
            subtotal=D(s.subtotal),
            payment_method=s.payment_method or "",
            amount_tendered=D(s.amount_tendered) if s.amount_tendered is not None else None,
            change_given=D(s.change_given) if s.change_given is not None else None,
        )


@dataclass(frozen=True)
class SalesBucket:
    label: str
    start: date
    total: Decimal

    def as_api(self):
        return {"label": self.label, "start": self.start.isoformat(), "total": float(self.total)}


def _check_period(period: str) -> str:
    period = (period or "").strip().lower()
    if period not in PERIODS:
        raise ValidationError(f"Unknown period '{period}'. Use daily, weekly or monthly.")
    return period


def bucket_for(ts: datetime, period: str) -> tuple[date, str]:
    d = ts.date()
    if period == "daily":
        return d, d.isoformat()
    if period == "weekly":
        year, week, weekday = d.isocalendar()
        monday = d - timedelta(days=weekday - 1)
        return monday, f"{year}-W{week:02d} (Mon {monday.isoformat()})"
    start = d.replace(day=1)
    return start, f"{start:%Y-%m}"


def aggregate_sales(transactions, period: str, utc_offset_hours: float = 0) -> list[SalesBucket]:
    """Sum ``total`` per period bucket, oldest bucket first.

    Bucketing happens in store-local time (``sale_date + utc_offset_hours``).
    """
    period = _check_period(period)
    offset = timedelta(hours=utc_offset_hours)
    sums: dict[date, Decimal] = {}
    labels: dict[date, str] = {}
    for t in transactions:
        start, label = bucket_for(t.sale_date + offset, period)
        sums[start] = sums.get(start, ZERO) + D(t.total)
        labels[start] = label
    return [SalesBucket(labels[k], k, round_money(sums[k])) for k in sorted(sums)]


def _months_back(ts: datetime, months: int) -> datetime:
    y, m = divmod(ts.year * 12 + (ts.month - 1) - months, 12)
    m += 1
    day = min(ts.day, calendar.monthrange(y, m)[1])
    return ts.replace(year=y, month=m, day=day)


def report_window(period: str, now: datetime) -> tuple[datetime, datetime]:
    """Default look-back for a period: 7 days, 4 weeks or 6 months up to ``now``."""
    period = _check_period(period)
    if period == "daily":
        return now - timedelta(days=7), now
    if period == "weekly":
        return now - timedelta(weeks=4), now
    return _months_back(now, 6), now


def _amount(x) -> float:
    return float(round_money(x)) if x is not None else None


def sales_frame(transactions, utc_offset_hours: float = 0) -> pd.DataFrame:
    offset = timedelta(hours=utc_offset_hours)
    rows = [
        {
            "Date": (t.sale_date + offset).strftime("%Y-%m-%d %H:%M:%S"),
            "Receipt#": t.receipt_number,
            "Order#": t.order_number or "N/A",
            "Customer": t.customer_name,
            "Items": int(t.items_count or 0),
            "Subtotal": _amount(t.subtotal if t.subtotal is not None else t.total),
            "Total": _amount(t.total),
            "Payment": t.payment_method,
            "AmountPaid": _amount(t.amount_tendered),
            "Change": _amount(t.change_given),
        }
        for t in transactions
    ]
    df = pd.DataFrame(rows, columns=CSV_COLUMNS)
    df[["AmountPaid", "Change"]] = df[["AmountPaid", "Change"]].astype(float).fillna(0.0)
    return df


def sales_csv(transactions, utc_offset_hours: float = 0) -> str:
    df = sales_frame(transactions, utc_offset_hours)
    return df.to_csv(index=False, float_format="%.2f", lineterminator="\n")


def summarize(transactions) -> dict:
    transactions = list(transactions)
    revenue = round_money(sum((D(t.total) for t in transactions), ZERO))
    count = len(transactions)
    return {
        "transactions": count,
        "revenue": float(revenue),
        "average_sale": float(round_money(revenue / count)) if count else 0.0,
        "items_sold": sum(int(t.items_count or 0) for t in transactions),
    }
