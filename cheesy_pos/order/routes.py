# cheesy_pos/order/routes.py
from datetime import datetime, timedelta

from flask import request

from ..errors import NotFoundError, ValidationError
from ..services import pos
from ..services.kitchen_service import next_status, status_label
from ..utils.api import ok
from ..utils.decorators import role_required
from . import bp


def _kitchen_view(o):
    data = o.as_kitchen()
    nxt = next_status(o.status)
    data["status_label"] = status_label(o.status)
    data["next_status"] = nxt.value if nxt else None
    data["next_status_label"] = status_label(nxt) if nxt else None
    return data


def _date_arg(name):
    raw = (request.args.get(name) or "").strip()
    if not raw:
        return None
    try:
        return datetime.fromisoformat(raw)
    except ValueError:
        raise ValidationError(f"{name} must be YYYY-MM-DD")


# ---- kitchen display --------------------------------------------------------

@bp.get("/active")
@role_required("kitchen")
def active_orders():
    items = [_kitchen_view(o) for o in pos().kitchen.active_orders()]
    return ok("active orders", {"items": items, "total": len(items)})


@bp.post("/<int:order_id>/advance")
@role_required("kitchen")
def advance_order(order_id: int):
    order = pos().kitchen.advance(order_id)
    return ok(f"Order {order.order_number} is now {status_label(order.status)}", _kitchen_view(order))


@bp.patch("/<int:order_id>/status")
@role_required("kitchen")
def set_order_status(order_id: int):
    """Body: { "status": "preparing"|"ready"|"completed", "kitchen_notes"?: str }"""
    data = request.get_json(silent=True) or {}
    if not data.get("status"):
        raise ValidationError("status is required")
    order = pos().kitchen.set_status(order_id, data["status"], data.get("kitchen_notes"))
    return ok(f"Order {order.order_number} is now {status_label(order.status)}", _kitchen_view(order))


# ---- admin ------------------------------------------------------------------

@bp.get("")
@role_required("admin")
def list_orders():
    """
    Query params:
      - page, per_page
      - status=pending|preparing|ready|completed
      - order_number=#004
      - customer=<substring>
      - start=YYYY-MM-DD
      - end=YYYY-MM-DD (inclusive)
    """
    start, end = _date_arg("start"), _date_arg("end")
    filters = {
        "status": request.args.get("status"),
        "order_number": request.args.get("order_number"),
        "customer": request.args.get("customer"),
        "start": start,
        # make end inclusive for the whole day
        "end": end + timedelta(days=1) if end else None,
    }
    page = request.args.get("page", default=1, type=int)
    per = min(request.args.get("per_page", default=20, type=int), 100)

    paged = pos().store.fetch_orders(filters, page=page, per_page=per)
    return ok("orders", {
        "page": page,
        "per_page": per,
        "total": paged.total,
        "items": [o.as_api() for o in paged.items],
    })


@bp.get("/<int:order_id>")
@role_required("admin")
def get_order(order_id: int):
    o = pos().store.get_order(order_id)
    if not o:
        raise NotFoundError("Order not found.")
    return ok("order", o.as_api())
