"""SQLAlchemy-backed data store for the POS core.

Every write that spans more than one row (order + items + sale) happens in a
single session transaction; on any failure the session is rolled back and a
short ``PersistenceError`` is raised. Driver messages only go to the log.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

import structlog
from sqlalchemy import and_, or_, select

from ..errors import NotFoundError, PersistenceError, ValidationError
from ..extensions import db
from ..model import CATEGORIES, ORDER_STATUSES, Order, OrderItem, OrderSequence, Product, Sale
from ..utils.api import utcnow
from ..utils.money import D, ZERO, parse_money, round_money
from .cart_service import format_order_number
from .receipt_service import ReceiptData, ReceiptItem

logger = structlog.get_logger()

ORDER_SEQUENCE = "order"


@dataclass(frozen=True)
class OrderConfirmation:
    order_id: int
    order_number: str
    sale_id: int
    receipt: ReceiptData


def _product_fields(data: dict, partial: bool = False) -> dict:
    data = data or {}
    out = {}

    if "name" in data or not partial:
        name = (data.get("name") or "").strip()
        if not name:
            raise ValidationError("Product name is required.")
        out["name"] = name

    if "price" in data or not partial:
        price = parse_money(data.get("price"))
        if price is None or price < 0:
            raise ValidationError("Price must be a number of zero or more.")
        out["price"] = price

    if "category" in data or not partial:
        category = (data.get("category") or "").strip()
        if category not in CATEGORIES:
            raise ValidationError(f"Category must be one of: {', '.join(CATEGORIES)}.")
        out["category"] = category

    for key in ("image_url", "description"):
        if key in data:
            value = data.get(key)
            out[key] = (str(value).strip() or None) if value is not None else None

    if "is_available" in data:
        out["is_available"] = bool(data.get("is_available"))
    elif not partial:
        out["is_available"] = True
    return out


class OrderStore:
    def __init__(self, receipt_prefix: str = "MSC", utc_offset_hours: float = 0):
        self.receipt_prefix = receipt_prefix
        self.utc_offset_hours = utc_offset_hours

    # ---------- products ----------
    def fetch_available_products(self):
        return (Product.query.filter(Product.is_available.is_(True))
                .order_by(Product.category.asc(), Product.name.asc()).all())

    def fetch_all_products(self):
        return Product.query.order_by(Product.category.asc(), Product.name.asc()).all()

    def get_product(self, product_id):
        return db.session.get(Product, product_id)

    def create_product(self, data: dict) -> Product:
        p = Product(**_product_fields(data))
        db.session.add(p)
        self._commit("product.create_failed")
        return p

    def update_product(self, product_id, data: dict) -> Product:
        p = self.get_product(product_id)
        if not p:
            raise NotFoundError("Product not found.")
        for k, v in _product_fields(data, partial=True).items():
            setattr(p, k, v)
        self._commit("product.update_failed")
        return p

    def delete_product(self, product_id) -> None:
        p = self.get_product(product_id)
        if not p:
            raise NotFoundError("Product not found.")
        db.session.delete(p)
        self._commit("product.delete_failed")

    def _commit(self, event: str) -> None:
        try:
            db.session.commit()
        except Exception as e:
            db.session.rollback()
            logger.exception(event, error=str(e))
            raise PersistenceError("Could not save your changes. Please try again.")

    # ---------- orders ----------
    def _sequence_value(self, name: str) -> int:
        return db.session.query(OrderSequence.value).filter(OrderSequence.name == name).scalar() or 0

    def peek_order_number(self) -> str:
        """Next order number for display; not reserved."""
        return format_order_number(self._sequence_value(ORDER_SEQUENCE) + 1)

    def _next_value(self, name: str) -> int:
        seq = (db.session.query(OrderSequence)
               .filter(OrderSequence.name == name)
               .with_for_update()
               .first())
        if seq is None:
            seq = OrderSequence(name=name, value=0)
            db.session.add(seq)
        seq.value = int(seq.value or 0) + 1
        db.session.flush()
        return seq.value

    def create_order(self, customer_name, lines, payment_method, amount_tendered=None, cashier_id=None) -> OrderConfirmation:
        try:
            ids = [l.product_id for l in lines]
            products = {p.id: p for p in Product.query.filter(Product.id.in_(ids)).with_for_update().all()}
            for l in lines:
                p = products.get(l.product_id)
                if p is None or not p.is_available:
                    raise PersistenceError(f"{l.product.name} is no longer available. Remove it and try again.")

            order_number = format_order_number(self._next_value(ORDER_SEQUENCE))
            sale_date = utcnow()
            local_day = (sale_date + timedelta(hours=self.utc_offset_hours)).strftime("%Y%m%d")
            receipt_seq = self._next_value(f"receipt-{local_day}")
            receipt_number = f"{self.receipt_prefix}-{local_day}-{receipt_seq:04d}"

            items = tuple(
                ReceiptItem(
                    name=l.product.name,
                    quantity=l.quantity,
                    price=round_money(l.product.price),
                    total=l.line_total,
                    category=l.product.category,
                )
                for l in lines
            )
            subtotal = round_money(sum((i.total for i in items), ZERO))
            total = subtotal

            change = None
            if payment_method == "cash" and amount_tendered is not None:
                amount_tendered = round_money(amount_tendered)
                change = max(ZERO, round_money(D(amount_tendered) - total))
            else:
                amount_tendered = None

            order = Order(
                order_number=order_number,
                status="pending",
                customer_name=customer_name,
                subtotal=subtotal,
                total=total,
                created_at=sale_date,
                updated_at=sale_date,
            )
            db.session.add(order)
            db.session.flush()

            for l, item in zip(lines, items):
                db.session.add(OrderItem(
                    order_id=order.id,
                    product_id=l.product_id,
                    product_name=item.name,
                    product_price=item.price,
                    product_category=item.category,
                    quantity=item.quantity,
                    line_total=item.total,
                ))

            receipt = ReceiptData(
                receipt_number=receipt_number,
                order_number=order_number,
                customer_name=customer_name,
                sale_date=sale_date,
                subtotal=subtotal,
                total=total,
                payment_method=payment_method,
                items=items,
                amount_tendered=amount_tendered,
                change_given=change,
            )
            sale = Sale(
                receipt_number=receipt_number,
                order_id=order.id,
                customer_name=customer_name,
                sale_date=sale_date,
                subtotal=subtotal,
                tax_amount=ZERO,
                total=total,
                payment_method=payment_method,
                amount_tendered=amount_tendered,
                change_given=change,
                cashier_id=cashier_id,
                receipt_json=receipt.as_record(),
            )
            db.session.add(sale)
            db.session.commit()
        except PersistenceError:
            db.session.rollback()
            raise
        except Exception as e:
            db.session.rollback()
            logger.exception("order.create_failed", error=str(e))
            raise PersistenceError("Could not save the order. Please try again.")

        logger.info("order.created", order_id=order.id, order_number=order_number, sale_id=sale.id)
        return OrderConfirmation(order_id=order.id, order_number=order_number, sale_id=sale.id, receipt=receipt)

    def get_order(self, order_id):
        return db.session.get(Order, order_id)

    def update_order_status(self, order_id, new_status, kitchen_notes=None):
        if new_status not in ORDER_STATUSES:
            raise ValidationError(f"Unknown order status '{new_status}'.")
        order = self.get_order(order_id)
        if not order:
            raise NotFoundError("Order not found.")
        order.status = new_status
        if kitchen_notes is not None:
            order.kitchen_notes = kitchen_notes
        order.updated_at = utcnow()
        try:
            db.session.commit()
        except Exception as e:
            db.session.rollback()
            logger.exception("order.status_update_failed", order_id=order_id, error=str(e))
            raise PersistenceError("Could not update the order status. Please try again.")
        return order

    def fetch_active_orders(self, completed_since):
        q = Order.query.filter(or_(
            Order.status != "completed",
            and_(Order.status == "completed", Order.updated_at >= completed_since),
        ))
        return q.order_by(Order.created_at.asc(), Order.id.asc()).all()

    def fetch_orders(self, filters: dict | None = None, page: int = 1, per_page: int = 20):
        """Paginated admin listing, newest first."""
        filters = filters or {}
        q = Order.query
        if filters.get("status"):
            q = q.filter(Order.status == filters["status"])
        if filters.get("order_number"):
            q = q.filter(Order.order_number == filters["order_number"])
        if filters.get("customer"):
            q = q.filter(Order.customer_name.ilike(f"%{filters['customer']}%"))
        if filters.get("start"):
            q = q.filter(Order.created_at >= filters["start"])
        if filters.get("end"):
            q = q.filter(Order.created_at < filters["end"])
        q = q.order_by(Order.created_at.desc(), Order.id.desc())
        return q.paginate(page=page, per_page=per_page, error_out=False)

    def fetch_order_baskets(self, recent: int = 500) -> list[set[int]]:
        """Product ids of the latest ``recent`` orders, one set per order."""
        latest = (db.session.query(Order.id)
                  .order_by(Order.created_at.desc(), Order.id.desc())
                  .limit(recent).subquery())
        rows = (db.session.query(OrderItem.order_id, OrderItem.product_id)
                .filter(OrderItem.order_id.in_(select(latest.c.id)))
                .filter(OrderItem.product_id.isnot(None))
                .all())
        baskets: dict[int, set[int]] = {}
        for order_id, product_id in rows:
            baskets.setdefault(order_id, set()).add(product_id)
        return list(baskets.values())

    # ---------- sales ----------
    def fetch_transactions(self, start=None, end=None):
        q = Sale.query
        if start is not None:
            q = q.filter(Sale.sale_date >= start)
        if end is not None:
            q = q.filter(Sale.sale_date < end)
        return q.order_by(Sale.sale_date.asc(), Sale.id.asc()).all()

    def get_sale(self, sale_id):
        return db.session.get(Sale, sale_id)

    def mark_receipt_printed(self, sale_id) -> bool:
        try:
            sale = self.get_sale(sale_id)
            if sale is None:
                return False
            sale.receipt_printed = True
            db.session.commit()
            return True
        except Exception as e:
            db.session.rollback()
            logger.warning("sale.mark_printed_failed", sale_id=sale_id, error=str(e))
            return False
