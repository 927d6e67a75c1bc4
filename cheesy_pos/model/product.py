# cheesy_pos/model/product.py
from ..extensions import db
from sqlalchemy.sql import func

CATEGORIES = ("Sandwiches", "Sides", "Drinks", "Snacks")


class Product(db.Model):
    __tablename__ = "product"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False, index=True)
    price = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    category = db.Column(db.String(32), nullable=False, index=True)
    image_url = db.Column(db.String(1024))
    description = db.Column(db.String(512))          # doubles as the image hint
    is_available = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_at = db.Column(db.DateTime, server_default=func.now())
    updated_at = db.Column(db.DateTime, onupdate=func.now(), server_default=func.now())

    def as_api(self):
        return {
            "id": self.id,
            "name": self.name,
            "price": float(self.price or 0),
            "category": self.category,
            "image_url": self.image_url,
            "image_hint": self.description or self.name,
            "is_available": bool(self.is_available),
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
