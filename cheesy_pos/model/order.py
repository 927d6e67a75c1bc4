from ..extensions import db
from ..utils.api import utcnow

ORDER_STATUSES = ("pending", "preparing", "ready", "completed")


class OrderSequence(db.Model):
    """Named counter handed out under a row lock; one row per sequence."""
    __tablename__ = "order_sequence"

    name = db.Column(db.String(32), primary_key=True)
    value = db.Column(db.Integer, nullable=False, default=0)


class Order(db.Model):
    __tablename__ = "orders"

    id = db.Column(db.Integer, primary_key=True)
    order_number = db.Column(db.String(16), unique=True, index=True)  # e.g. "#004"
    status = db.Column(db.String(20), default="pending", nullable=False, index=True)

    customer_name = db.Column(db.String(120), nullable=False)

    # Money snapshot
    subtotal = db.Column(db.Numeric(12, 2), nullable=False)
    total = db.Column(db.Numeric(12, 2), nullable=False)

    kitchen_notes = db.Column(db.Text)

    created_at = db.Column(db.DateTime, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    items = db.relationship(
        "OrderItem",
        backref="order",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="OrderItem.id.asc()",
    )

    @property
    def item_count(self) -> int:
        return sum(int(i.quantity or 0) for i in self.items)

    def as_api(self):
        return {
            "id": self.id,
            "order_number": self.order_number,
            "status": self.status,
            "customer_name": self.customer_name,
            "money": {
                "subtotal": float(self.subtotal or 0),
                "total": float(self.total or 0),
            },
            "items": [i.as_api() for i in self.items],
            "item_count": self.item_count,
            "kitchen_notes": self.kitchen_notes,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def as_kitchen(self):
        # kitchen display never gets money fields
        return {
            "id": self.id,
            "order_number": self.order_number,
            "status": self.status,
            "customer_name": self.customer_name,
            "items": [
                {"product_id": i.product_id, "name": i.product_name,
                 "category": i.product_category, "quantity": i.quantity}
                for i in self.items
            ],
            "item_count": self.item_count,
            "kitchen_notes": self.kitchen_notes,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


class OrderItem(db.Model):
    __tablename__ = "order_items"

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)

    # snapshot at order time; catalog edits never touch these
    product_id = db.Column(db.Integer, index=True)
    product_name = db.Column(db.String(255), nullable=False)
    product_price = db.Column(db.Numeric(12, 2), nullable=False)
    product_category = db.Column(db.String(32))

    quantity = db.Column(db.Integer, nullable=False)
    line_total = db.Column(db.Numeric(12, 2), nullable=False)

    def as_api(self):
        return {
            "product_id": self.product_id,
            "name": self.product_name,
            "category": self.product_category,
            "unit_price": float(self.product_price or 0),
            "quantity": self.quantity,
            "line_total": float(self.line_total or 0),
        }
