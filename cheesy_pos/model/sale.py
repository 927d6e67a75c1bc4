# cheesy_pos/model/sale.py
from ..extensions import db
from ..utils.api import utcnow


class Sale(db.Model):
    """A paid order. Reports and CSV exports read these rows as transactions."""
    __tablename__ = "sales"

    id = db.Column(db.Integer, primary_key=True)
    receipt_number = db.Column(db.String(40), unique=True, index=True)  # e.g. "MSC-20241101-0007"
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)

    customer_name = db.Column(db.String(120), nullable=False)
    sale_date = db.Column(db.DateTime, default=utcnow, nullable=False, index=True)

    subtotal = db.Column(db.Numeric(12, 2), nullable=False)
    tax_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    total = db.Column(db.Numeric(12, 2), nullable=False)

    payment_method = db.Column(db.String(16), nullable=False)  # "cash" | "digital"
    amount_tendered = db.Column(db.Numeric(12, 2))
    change_given = db.Column(db.Numeric(12, 2))

    cashier_id = db.Column(db.Integer, nullable=True)
    receipt_printed = db.Column(db.Boolean, nullable=False, default=False)
    receipt_json = db.Column(db.JSON)  # receipt data as handed to the printer
    notes = db.Column(db.Text)

    order = db.relationship("Order", lazy="joined")

    @property
    def order_number(self):
        return self.order.order_number if self.order else None

    @property
    def items_count(self) -> int:
        return self.order.item_count if self.order else 0

    def as_api(self):
        return {
            "id": self.id,
            "receipt_number": self.receipt_number,
            "order_id": self.order_id,
            "order_number": self.order_number,
            "customer_name": self.customer_name,
            "sale_date": self.sale_date.isoformat() if self.sale_date else None,
            "subtotal": float(self.subtotal or 0),
            "tax_amount": float(self.tax_amount or 0),
            "total": float(self.total or 0),
            "payment_method": self.payment_method,
            "amount_tendered": float(self.amount_tendered) if self.amount_tendered is not None else None,
            "change_given": float(self.change_given) if self.change_given is not None else None,
            "receipt_printed": bool(self.receipt_printed),
            "items_count": self.items_count,
        }
