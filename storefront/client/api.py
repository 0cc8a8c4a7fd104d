"""
Async HTTP client for the storefront backend.

Wraps one ``httpx.AsyncClient``; every call returns the decoded JSON body
and raises ``StorefrontError`` on transport errors or ``ok: false`` answers.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import httpx

from storefront.config import settings


class StorefrontError(Exception):
    pass


class ProductNotFound(StorefrontError):
    pass


class StorefrontClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout_seconds: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = (base_url or settings.api_base_url).rstrip("/")
        self._client = httpx.AsyncClient(base_url=self.base_url, timeout=timeout_seconds, transport=transport)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "StorefrontClient":
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> Dict[str, Any]:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise StorefrontError(f"{method} {path} failed: {e}") from e
        if response.status_code == 404:
            raise ProductNotFound(path)
        try:
            data = response.json() if response.content else {}
        except ValueError as e:
            raise StorefrontError(f"{method} {path}: invalid JSON") from e
        if response.status_code >= 400 or not data.get("ok"):
            raise StorefrontError(f"{method} {path}: status {response.status_code}")
        return data

    # ---------------- catalog ----------------

    async def list_products(
        self,
        q: str = "",
        category: str = "",
        deal: bool = False,
        limit: int = 50,
        offset: int = 0,
    ) -> Dict[str, Any]:
        params: Dict[str, Any] = {"limit": str(limit), "offset": str(offset)}
        if q:
            params["q"] = q
        if category:
            params["category"] = category
        if deal:
            params["deal"] = "true"
        return await self._request("GET", "/products", params=params)

    async def get_product(self, product_id: str) -> Dict[str, Any]:
        data = await self._request("GET", f"/products/{product_id}")
        return data["product"]

    async def categories(self, catalog_size: Optional[int] = None) -> List[str]:
        data = await self.list_products(limit=catalog_size or settings.product_count, offset=0)
        return sorted({p["category"] for p in data.get("results", [])})

    # ---------------- cart ----------------

    async def push_cart(self, items: List[Dict[str, Any]]) -> None:
        await self._request("POST", "/cart", json={"items": items})

    # ---------------- forms ----------------

    async def send_contact(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request("POST", "/contact", json=data)

    async def sign_in(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request("POST", "/signin", json=data)

    async def send_location(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request("POST", "/location", json=data)

    async def send_gift(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request("POST", "/gift", json=data)

    async def health(self) -> bool:
        try:
            await self._request("GET", "/health")
        except StorefrontError:
            return False
        return True
