from __future__ import annotations

import random
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Iterable, List, Optional
from urllib.parse import quote

from storefront.constants import CATEGORIES, DEFAULT_LIMIT, DEFAULT_OFFSET
from storefront.utils.validators import coerce_int, is_true


@dataclass(frozen=True)
class Product:
    id: str
    title: str
    category: str
    price: int
    img: str
    deal: bool = False

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Product":
        return cls(
            id=str(d["id"]),
            title=str(d["title"]),
            category=str(d["category"]),
            price=int(d["price"]),
            img=str(d.get("img", "")),
            deal=bool(d.get("deal", False)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ProductQuery:
    q: str = ""
    category: str = ""
    deal: bool = False
    offset: int = DEFAULT_OFFSET
    limit: int = DEFAULT_LIMIT

    @classmethod
    def from_params(
        cls,
        q: Any = None,
        category: Any = None,
        deal: Any = None,
        offset: Any = None,
        limit: Any = None,
    ) -> "ProductQuery":
        # never rejects: bad numbers fall back to the defaults
        return cls(
            q=str(q or "").lower(),
            category=str(category or ""),
            deal=is_true(deal),
            offset=coerce_int(offset, DEFAULT_OFFSET),
            limit=coerce_int(limit, DEFAULT_LIMIT),
        )

    def matches(self, p: Product) -> bool:
        if self.q and self.q not in p.title.lower() and self.q not in p.category.lower():
            return False
        if self.category and p.category != self.category:
            return False
        if self.deal and not p.deal:
            return False
        return True


@dataclass
class QueryResult:
    total: int
    offset: int
    limit: int
    results: List[Product] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "offset": self.offset,
            "limit": self.limit,
            "results": [p.to_dict() for p in self.results],
        }


def generate_products(
    count: int = 500,
    deal_ratio: float = 0.12,
    seed: Optional[int] = None,
) -> List[Product]:
    rnd = random.Random(seed)
    products = []
    for i in range(1, count + 1):
        cat = CATEGORIES[i % len(CATEGORIES)]
        pid = f"p{i}"
        products.append(
            Product(
                id=pid,
                title=f"{cat} Product #{i}",
                category=cat,
                price=rnd.randint(100, 5099),
                img=f"https://picsum.photos/seed/{quote(pid, safe='')}/480/320",
                deal=rnd.random() < deal_ratio,
            )
        )
    return products


class Catalog:
    """In-memory, read-only product list kept in generation order."""

    def __init__(self, products: Iterable[Product]) -> None:
        self._products = list(products)
        self._by_id = {p.id: p for p in self._products}

    def __len__(self) -> int:
        return len(self._products)

    def query(self, pq: ProductQuery) -> QueryResult:
        filtered = [p for p in self._products if pq.matches(p)]
        page = filtered[pq.offset : pq.offset + pq.limit]
        return QueryResult(total=len(filtered), offset=pq.offset, limit=pq.limit, results=page)

    def get(self, product_id: str) -> Optional[Product]:
        return self._by_id.get(product_id)

    def categories(self) -> List[str]:
        return sorted({p.category for p in self._products})
