# ------ cheesy_pos/model/__init__.py ------

from .user import User
from .product import Product, CATEGORIES
from .order import Order, OrderItem, OrderSequence, ORDER_STATUSES
from .sale import Sale
from .setting import Setting

__all__ = [
    "User",
    "Product",
    "CATEGORIES",
    "Order",
    "OrderItem",
    "OrderSequence",
    "ORDER_STATUSES",
    "Sale",
    "Setting",
]
