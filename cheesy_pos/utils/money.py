# cheesy_pos/utils/money.py

from decimal import Decimal, ROUND_HALF_UP, InvalidOperation

Money = Decimal
ZERO = Decimal("0.00")


def D(x) -> Money:
    return x if isinstance(x, Decimal) else Decimal(str(x or "0"))


def round_money(x: Money) -> Money:
    return D(x).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def parse_money(value) -> Money | None:
    """Parse user input into a rounded amount; None for blank or garbage."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str) and value.strip() == "":
        return None
    try:
        amount = Decimal(str(value).strip())
    except InvalidOperation:
        return None
    if not amount.is_finite():
        return None
    return round_money(amount)


def format_currency(value, symbol="$", decimals=2, use_thousands=True) -> str:
    n = round_money(value)
    num = f"{n:,.{decimals}f}" if use_thousands else f"{n:.{decimals}f}"
    return f"{symbol}{num}"


def to_float(x) -> float:
    return float(round_money(x)) if x is not None else 0.0
