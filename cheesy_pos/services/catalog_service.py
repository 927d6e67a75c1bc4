from __future__ import annotations

import time
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Callable

import structlog

from ..utils.money import round_money

logger = structlog.get_logger()

AVAILABLE_KEY = "available_products"
ALL_KEY = "all_products"


@dataclass(frozen=True)
class ProductSnapshot:
    """Catalog product as the cart sees it; frozen once fetched."""

    id: int
    name: str
    price: Decimal
    category: str
    image_url: str | None = None
    is_available: bool = True

    @classmethod
    def from_model(cls, p) -> "ProductSnapshot":
        return cls(
            id=int(p.id),
            name=p.name,
            price=round_money(p.price),
            category=p.category,
            image_url=p.image_url,
            is_available=bool(p.is_available),
        )

    def as_api(self):
        return {
            "id": self.id,
            "name": self.name,
            "price": float(self.price),
            "category": self.category,
            "image_url": self.image_url,
            "is_available": self.is_available,
        }


class CatalogCache:
    """Key/value cache with a fixed TTL and substring invalidation."""

    def __init__(self, ttl_seconds: float = 300, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, tuple[float, Any]] = {}

    def get(self, key: str):
        entry = self._entries.get(key)
        if entry is None:
            return None
        stored_at, value = entry
        if self._clock() - stored_at < self.ttl_seconds:
            return value
        del self._entries[key]
        return None

    def set(self, key: str, value) -> None:
        self._entries[key] = (self._clock(), value)

    def invalidate(self, pattern: str) -> int:
        doomed = [k for k in self._entries if pattern in k]
        for k in doomed:
            del self._entries[k]
        return len(doomed)

    def clear(self) -> None:
        self._entries.clear()


class Catalog:
    def __init__(self, store, cache: CatalogCache):
        self.store = store
        self.cache = cache

    def _cached(self, key, loader):
        hit = self.cache.get(key)
        if hit is not None:
            return hit
        logger.debug("catalog.cache_miss", key=key)
        products = tuple(ProductSnapshot.from_model(p) for p in loader())
        self.cache.set(key, products)
        return products

    def available_products(self) -> tuple[ProductSnapshot, ...]:
        return self._cached(AVAILABLE_KEY, self.store.fetch_available_products)

    def all_products(self) -> tuple[ProductSnapshot, ...]:
        return self._cached(ALL_KEY, self.store.fetch_all_products)

    def get_product(self, product_id: int) -> ProductSnapshot | None:
        # always read through: availability may have flipped since the last list
        p = self.store.get_product(product_id)
        return ProductSnapshot.from_model(p) if p else None

    def invalidate(self) -> None:
        dropped = self.cache.invalidate("products")
        logger.info("catalog.invalidated", dropped=dropped)
