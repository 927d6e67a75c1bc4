"""Product pairings for the cashier screen, ranked from past orders."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import Iterable

DEFAULT_LIMIT = 3
MAX_LIMIT = 10


@dataclass(frozen=True)
class Suggestion:
    product: object  # ProductSnapshot
    together: int  # past orders holding this product and something in the cart
    popularity: int  # past orders holding this product at all

    def as_api(self):
        return {**self.product.as_api(), "together": self.together, "popularity": self.popularity}


def suggest_pairings(baskets: Iterable[Iterable[int]], cart_ids, candidates, limit: int = DEFAULT_LIMIT) -> list[Suggestion]:
    """
    Rank ``candidates`` by how often they were bought together with what is in
    the cart, then by overall popularity, then by name.

    ``baskets`` are the product ids of past orders. Products already in the
    cart and unavailable ones are never suggested, and an empty cart gets no
    suggestions. A product nobody has ordered yet is not suggested either.
    """
    cart_ids = set(cart_ids)
    if not cart_ids or limit <= 0:
        return []

    together: Counter = Counter()
    popularity: Counter = Counter()
    for basket in baskets:
        basket = set(basket)
        popularity.update(basket)
        if basket & cart_ids:
            together.update(basket - cart_ids)

    ranked = [
        Suggestion(p, together[p.id], popularity[p.id])
        for p in candidates
        if p.is_available and p.id not in cart_ids and popularity[p.id]
    ]
    ranked.sort(key=lambda s: (-s.together, -s.popularity, s.product.name.lower()))
    return ranked[:limit]
