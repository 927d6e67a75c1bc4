from flask import request

from ..errors import NotFoundError
from ..model import CATEGORIES
from ..services import pos
from ..utils.api import ok
from ..utils.decorators import role_required, signed_in
from . import bp


# ---------- helpers ----------
def _filter(products, category=None, q=None):
    if category:
        products = [p for p in products if p.category == category]
    if q:
        needle = q.lower()
        products = [p for p in products if needle in p.name.lower()]
    return products


# ---------- routes ----------
# GET /api/products
@bp.get("")
@role_required("cashier")
def list_products():
    """
    Available products for the cashier grid (served from the catalog cache).
    Query params:
      category -> Sandwiches | Sides | Drinks | Snacks
      q        -> substring match on name
    """
    items = _filter(
        pos().catalog.available_products(),
        (request.args.get("category") or "").strip(),
        (request.args.get("q") or "").strip(),
    )
    return ok("Products fetched", {"items": [p.as_api() for p in items], "total": len(items)})


# GET /api/products/all
@bp.get("/all")
@role_required("admin")
def list_all_products():
    items = _filter(
        pos().catalog.all_products(),
        (request.args.get("category") or "").strip(),
        (request.args.get("q") or "").strip(),
    )
    return ok("Products fetched", {"items": [p.as_api() for p in items], "total": len(items)})


# GET /api/products/categories
@bp.get("/categories")
@signed_in
def list_categories():
    return ok("Categories fetched", {"items": list(CATEGORIES)})


# GET /api/products/<id>
@bp.get("/<int:pid>")
@role_required("cashier")
def get_product(pid):
    product = pos().store.get_product(pid)
    if not product:
        raise NotFoundError("Product not found.")
    return ok("Product fetched", product.as_api())


# POST /api/products
@bp.post("")
@role_required("admin")
def create_product():
    svc = pos()
    product = svc.store.create_product(request.get_json(silent=True) or {})
    svc.catalog.invalidate()
    return ok("Product created", product.as_api(), status=201)


# PUT /api/products/<id>
@bp.put("/<int:pid>")
@bp.patch("/<int:pid>")
@role_required("admin")
def update_product(pid):
    svc = pos()
    product = svc.store.update_product(pid, request.get_json(silent=True) or {})
    svc.catalog.invalidate()
    return ok("Product updated", product.as_api())


# DELETE /api/products/<id>
@bp.delete("/<int:pid>")
@role_required("admin")
def delete_product(pid):
    svc = pos()
    svc.store.delete_product(pid)
    svc.catalog.invalidate()
    return ok(f"Product {pid} deleted", {"id": pid})
