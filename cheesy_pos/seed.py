# Default menu loaded by `flask seed-products`.
from .extensions import db
from .model import Product
from .utils.money import D

DEFAULT_MENU = [
    {"name": "The Classic", "price": "189.99", "category": "Sandwiches", "description": "grilled cheese"},
    {"name": "Bacon Bliss", "price": "229.99", "category": "Sandwiches", "description": "bacon sandwich"},
    {"name": "Jalapeño Popper", "price": "209.99", "category": "Sandwiches", "description": "jalapeno sandwich"},
    {"name": "Veggie Delight", "price": "199.49", "category": "Sandwiches", "description": "vegetable sandwich"},
    {"name": "Tomato Soup", "price": "95.50", "category": "Sides", "description": "tomato soup"},
    {"name": "French Fries", "price": "75.50", "category": "Sides", "description": "french fries"},
    {"name": "Onion Rings", "price": "85.00", "category": "Sides", "description": "onion rings"},
    {"name": "Mozzarella Sticks", "price": "115.50", "category": "Sides", "description": "mozzarella sticks"},
    {"name": "Cola", "price": "55.50", "category": "Drinks", "description": "cola drink"},
    {"name": "Lemonade", "price": "65.00", "category": "Drinks", "description": "lemonade drink"},
    {"name": "Water", "price": "35.00", "category": "Drinks", "description": "water bottle"},
    {"name": "Iced Tea", "price": "59.75", "category": "Drinks", "description": "iced tea"},
]


def seed_products(menu=DEFAULT_MENU) -> int:
    """Insert menu items whose name is not in the catalog yet; returns how many were added."""
    existing = {name for (name,) in db.session.query(Product.name).all()}
    added = 0
    for item in menu:
        if item["name"] in existing:
            continue
        db.session.add(Product(**{**item, "price": D(item["price"])}, is_available=True))
        added += 1
    db.session.commit()
    return added
