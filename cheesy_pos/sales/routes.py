# cheesy_pos/sales/routes.py
from datetime import datetime, timedelta

from flask import Response, current_app, request

from ..errors import NotFoundError, ValidationError
from ..services import pos
from ..services.print_service import COPIES
from ..services.receipt_service import normalize_receipt
from ..services.sales_service import Transaction, aggregate_sales, report_window, sales_csv, summarize
from ..utils.api import ok, utcnow
from ..utils.decorators import role_required
from . import bp


# ---------- helpers ----------
def _offset() -> timedelta:
    return timedelta(hours=float(current_app.config["STORE_UTC_OFFSET_HOURS"]))


def _window(period):
    """UTC [start, end) for the request; ``start``/``end`` are store-local days, end inclusive."""
    start_raw = (request.args.get("start") or "").strip()
    end_raw = (request.args.get("end") or "").strip()
    try:
        start = datetime.fromisoformat(start_raw) - _offset() if start_raw else None
        end = datetime.fromisoformat(end_raw) + timedelta(days=1) - _offset() if end_raw else None
    except ValueError:
        raise ValidationError("start and end must be YYYY-MM-DD")
    if start is None and end is None:
        return report_window(period, utcnow())
    return start, end


def _sale_or_404(sale_id):
    sale = pos().store.get_sale(sale_id)
    if not sale:
        raise NotFoundError("Sale not found.")
    return sale


def _receipt_source(sale):
    """Stored receipt record, or one rebuilt from the sale row for older sales."""
    if sale.receipt_json:
        return sale.receipt_json
    record = sale.as_api()
    record["items"] = [i.as_api() for i in (sale.order.items if sale.order else [])]
    return record


# ---------- routes ----------
# GET /api/sales?period=daily|weekly|monthly&start=YYYY-MM-DD&end=YYYY-MM-DD
@bp.get("")
@role_required("admin")
def list_sales():
    period = (request.args.get("period") or "daily").strip().lower()
    start, end = _window(period)
    sales = pos().store.fetch_transactions(start, end)
    transactions = [Transaction.from_sale(s) for s in sales]
    buckets = aggregate_sales(transactions, period, float(current_app.config["STORE_UTC_OFFSET_HOURS"]))
    return ok("Sales fetched", {
        "period": period,
        "start": start.isoformat() if start else None,
        "end": end.isoformat() if end else None,
        "items": [s.as_api() for s in reversed(sales)],
        "buckets": [b.as_api() for b in buckets],
        "summary": summarize(transactions),
    })


# GET /api/sales/export.csv
@bp.get("/export.csv")
@role_required("admin")
def export_sales():
    period = (request.args.get("period") or "daily").strip().lower()
    start, end = _window(period)
    transactions = [Transaction.from_sale(s) for s in pos().store.fetch_transactions(start, end)]
    body = sales_csv(transactions, float(current_app.config["STORE_UTC_OFFSET_HOURS"]))
    filename = f"sales-{(utcnow() + _offset()):%Y%m%d}.csv"
    return Response(
        body,
        mimetype="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# GET /api/sales/<id>/receipt?copy=customer|kitchen
@bp.get("/<int:sale_id>/receipt")
@role_required("admin")
def sale_receipt(sale_id):
    sale = _sale_or_404(sale_id)
    copy = (request.args.get("copy") or "").strip().lower()
    if copy and copy not in COPIES:
        raise ValidationError("copy must be customer or kitchen")

    receipt = normalize_receipt(_receipt_source(sale))
    texts = pos().receipt_printer.render(receipt)
    data = {"sale_id": sale.id, "receipt_number": receipt.receipt_number}
    if copy in ("", "customer"):
        data["customer"] = texts.customer
    if copy in ("", "kitchen"):
        data["kitchen"] = texts.kitchen
    return ok("Receipt rendered", data)


# POST /api/sales/<id>/reprint   body: { "copies"?: ["customer", "kitchen"] }
@bp.post("/<int:sale_id>/reprint")
@role_required("admin")
def reprint(sale_id):
    svc = pos()
    sale = _sale_or_404(sale_id)
    copies = (request.get_json(silent=True) or {}).get("copies") or list(COPIES)
    if not isinstance(copies, list) or any(c not in COPIES for c in copies):
        raise ValidationError("copies must be a list of customer and/or kitchen")

    receipt = normalize_receipt(_receipt_source(sale))
    results = svc.receipt_printer.print_receipts(receipt, copies)
    printed = False
    if any(r.delivered for r in results):
        printed = svc.store.mark_receipt_printed(sale.id)
    return ok("Receipt sent", {
        "sale_id": sale.id,
        "receipt_number": receipt.receipt_number,
        "prints": [r.as_api() for r in results],
        "receipt_printed": printed or bool(sale.receipt_printed),
    })
