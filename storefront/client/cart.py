from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any, Callable, Dict, List, Optional

from storefront.client.storage import LocalStorage
from storefront.constants import CART_KEY

logger = logging.getLogger(__name__)


@dataclass
class CartEntry:
    title: str
    price: int
    qty: int
    img: str = ""


Listener = Callable[["CartStore"], None]


class CartStore:
    """
    Client-side cart: product id -> CartEntry.

    An entry never sits at qty 0, it is dropped instead. After every change the
    whole cart is written to local storage and listeners are called in order.
    """

    def __init__(self, storage: Optional[LocalStorage] = None, key: str = CART_KEY) -> None:
        self.storage = storage
        self.key = key
        self._items: Dict[str, CartEntry] = {}
        self._listeners: List[Listener] = []
        self._restore()

    def _restore(self) -> None:
        if self.storage is None:
            return
        raw = self.storage.get_json(self.key, default={})
        if not isinstance(raw, dict):
            return
        for pid, d in raw.items():
            try:
                entry = CartEntry(
                    title=str(d["title"]),
                    price=int(d["price"]),
                    qty=int(d.get("qty", 0)),
                    img=str(d.get("img", "")),
                )
            except (KeyError, TypeError, ValueError):
                logger.warning("dropping unreadable cart entry %s", pid)
                continue
            if entry.qty > 0:
                self._items[str(pid)] = entry

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _commit(self) -> None:
        if self.storage is not None:
            self.storage.set_json(self.key, {pid: asdict(e) for pid, e in self._items.items()})
        for listener in list(self._listeners):
            listener(self)

    # ---------------- transitions ----------------

    def add(self, product: Dict[str, Any]) -> CartEntry:
        pid = str(product["id"])
        entry = self._items.get(pid)
        if entry is None:
            entry = CartEntry(
                title=str(product.get("title", "")),
                price=int(product.get("price", 0)),
                qty=0,
                img=str(product.get("img", "")),
            )
            self._items[pid] = entry
        entry.qty += 1
        self._commit()
        return entry

    def set_qty(self, product_id: str, qty: int) -> None:
        entry = self._items.get(product_id)
        if entry is None:
            return
        if qty <= 0:
            del self._items[product_id]
        else:
            entry.qty = int(qty)
        self._commit()

    def remove(self, product_id: str) -> None:
        self._items.pop(product_id, None)
        self._commit()

    def clear(self) -> None:
        self._items = {}
        self._commit()

    # ---------------- reads ----------------

    def __contains__(self, product_id: object) -> bool:
        return product_id in self._items

    def __len__(self) -> int:
        return len(self._items)

    def get(self, product_id: str) -> Optional[CartEntry]:
        return self._items.get(product_id)

    def to_list(self) -> List[Dict[str, Any]]:
        return [{"id": pid, **asdict(e)} for pid, e in self._items.items()]

    @property
    def count(self) -> int:
        return sum(e.qty for e in self._items.values())

    @property
    def total(self) -> int:
        return sum(e.price * e.qty for e in self._items.values())
