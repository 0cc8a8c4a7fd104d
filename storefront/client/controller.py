from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional, Set

from storefront.client.api import StorefrontClient, StorefrontError
from storefront.client.cart import CartEntry, CartStore
from storefront.client.storage import LocalStorage
from storefront.client.toast import ToastQueue
from storefront.config import settings
from storefront.constants import LOCATION_KEY, USER_KEY
from storefront.utils.formatters import money

logger = logging.getLogger(__name__)


class CartController:
    """
    Cart store + best-effort server mirror.

    Every cart change schedules a push of the full item list to the backend.
    Failed pushes are logged and forgotten; the local cart stays as it is.
    """

    def __init__(
        self,
        store: CartStore,
        client: StorefrontClient,
        toasts: Optional[ToastQueue] = None,
    ) -> None:
        self.store = store
        self.client = client
        self.toasts = toasts
        self._pending: Set[asyncio.Task] = set()
        store.subscribe(self._on_change)

    def _on_change(self, store: CartStore) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("no event loop, cart sync skipped")
            return
        task = loop.create_task(self._push(store.to_list()))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _push(self, items: List[Dict[str, Any]]) -> None:
        try:
            await self.client.push_cart(items)
        except StorefrontError as e:
            logger.warning("cart sync failed: %s", e)

    async def flush(self) -> None:
        if self._pending:
            await asyncio.gather(*list(self._pending))

    def add(self, product: Optional[Dict[str, Any]]) -> Optional[CartEntry]:
        if not product:
            return None
        entry = self.store.add(product)
        if self.toasts is not None:
            self.toasts.push(f"{entry.title} added to cart")
        return entry

    def set_qty(self, product_id: str, qty: int) -> None:
        self.store.set_qty(product_id, qty)

    def remove(self, product_id: str) -> None:
        self.store.remove(product_id)

    def clear(self) -> None:
        self.store.clear()

    @property
    def count(self) -> int:
        return self.store.count

    @property
    def total(self) -> int:
        return self.store.total

    def render(self) -> str:
        items = self.store.to_list()
        if not items:
            return "Your cart is empty"
        lines = []
        for it in items:
            lines.append(f"• {it['title']} ({it['id']}) | {money(it['price'])} x {it['qty']}")
        lines.append("")
        lines.append(f"Total: {money(self.store.total)}")
        return "\n".join(lines)


class CatalogBrowser:
    """
    Paginated product listing with the current filters.

    Each request gets a sequence number; a response that arrives after a newer
    request was started is dropped.
    """

    def __init__(
        self,
        client: StorefrontClient,
        limit: Optional[int] = None,
        max_limit: Optional[int] = None,
    ) -> None:
        self.client = client
        self.max_limit = max_limit
        self.limit = self._clamp(limit or settings.page_limit)
        self.query = ""
        self.category = ""
        self.deal = False
        self.offset = 0
        self.total: Optional[int] = None
        self.loading = False
        self.products: List[Dict[str, Any]] = []
        self._seq = 0

    def _clamp(self, limit: int) -> int:
        if self.max_limit is not None:
            return min(limit, self.max_limit)
        return limit

    @property
    def has_more(self) -> bool:
        return self.total is None or self.offset < self.total

    def find(self, product_id: str) -> Optional[Dict[str, Any]]:
        for p in self.products:
            if p.get("id") == product_id:
                return p
        return None

    async def fetch_page(self, reset: bool = False) -> Optional[List[Dict[str, Any]]]:
        """
        Load the next page (or page one when ``reset``).
        Returns the new products, or None when the response was superseded.
        A failure of the current request raises StorefrontError.
        """
        if reset:
            self.offset = 0
            self.products = []
            self.total = None
        elif self.loading or not self.has_more:
            return []

        self._seq += 1
        seq = self._seq
        self.loading = True
        try:
            data = await self.client.list_products(
                q=self.query,
                category=self.category,
                deal=self.deal,
                limit=self.limit,
                offset=self.offset,
            )
        except StorefrontError as e:
            logger.warning("fetch products failed: %s", e)
            if seq != self._seq:
                return None
            self.loading = False
            raise

        if seq != self._seq:
            logger.debug("dropping stale products response #%d", seq)
            return None

        page = data.get("results") or []
        self.products.extend(page)
        self.offset += len(page)
        self.total = int(data.get("total", 0))
        self.loading = False
        return page

    async def load_more(self) -> Optional[List[Dict[str, Any]]]:
        return await self.fetch_page(reset=False)

    async def apply(
        self,
        query: str = "",
        category: str = "",
        deal: bool = False,
    ) -> Optional[List[Dict[str, Any]]]:
        self.query = query.strip()
        self.category = category
        self.deal = deal
        return await self.fetch_page(reset=True)

    async def search(self, query: str) -> Optional[List[Dict[str, Any]]]:
        return await self.apply(query=query, category=self.category, deal=self.deal)

    async def set_category(self, category: str) -> Optional[List[Dict[str, Any]]]:
        return await self.apply(query=self.query, category=category, deal=self.deal)

    async def set_limit(self, limit: int) -> Optional[List[Dict[str, Any]]]:
        self.limit = self._clamp(limit if limit > 0 else settings.page_limit)
        return await self.fetch_page(reset=True)

    async def todays_deals(self) -> Optional[List[Dict[str, Any]]]:
        return await self.apply(deal=True)

    async def electronics_deals(self) -> Optional[List[Dict[str, Any]]]:
        return await self.apply(category="Electronics", deal=True)

    async def author(self, name: str) -> Optional[List[Dict[str, Any]]]:
        return await self.apply(query=name, category="Books")

    async def home(self) -> Optional[List[Dict[str, Any]]]:
        return await self.apply()

    async def product(self, product_id: str) -> Dict[str, Any]:
        """Product from the loaded pages, or from the backend when not loaded yet."""
        p = self.find(product_id)
        if p is not None:
            return p
        return await self.client.get_product(product_id)


async def sign_in(client: StorefrontClient, storage: LocalStorage, data: Dict[str, Any]) -> None:
    await client.sign_in(data)
    storage.set_json(USER_KEY, data)


async def set_location(client: StorefrontClient, storage: LocalStorage, data: Dict[str, Any]) -> None:
    storage.set_json(LOCATION_KEY, data)
    try:
        await client.send_location(data)
    except StorefrontError as e:
        logger.warning("location not sent: %s", e)
