from __future__ import annotations

import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from storefront.config import settings
from storefront.constants import CARTS, CONTACTS, GIFTS, LOGS, PRODUCTS, USERS
from storefront.services.catalog import Product, generate_products

logger = logging.getLogger(__name__)


def _dir(data_dir: Optional[str] = None) -> Path:
    return Path(data_dir or settings.data_dir)


def _path(name: str, data_dir: Optional[str] = None) -> Path:
    return _dir(data_dir) / f"{name}.json"


def _read(name: str, data_dir: Optional[str] = None) -> Any:
    with open(_path(name, data_dir), "r", encoding="utf-8") as f:
        return json.load(f)


def _write(name: str, data: Any, data_dir: Optional[str] = None) -> None:
    # temp file + rename: readers never see a half-written file
    path = _path(name, data_dir)
    tmp = path.with_suffix(".json.tmp")
    with open(tmp, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)
    os.replace(tmp, path)


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def init_db(
    data_dir: Optional[str] = None,
    count: Optional[int] = None,
    deal_ratio: Optional[float] = None,
    seed: Optional[int] = None,
) -> None:
    _dir(data_dir).mkdir(parents=True, exist_ok=True)

    if not _path(PRODUCTS, data_dir).exists():
        products = generate_products(
            count=settings.product_count if count is None else count,
            deal_ratio=settings.deal_ratio if deal_ratio is None else deal_ratio,
            seed=settings.catalog_seed if seed is None else seed,
        )
        _write(PRODUCTS, [p.to_dict() for p in products], data_dir)
        logger.info("Generated products.json with %d items", len(products))

    for name in LOGS:
        if not _path(name, data_dir).exists():
            _write(name, [], data_dir)


def read_products(data_dir: Optional[str] = None) -> List[Product]:
    return [Product.from_dict(d) for d in _read(PRODUCTS, data_dir)]


def append_record(name: str, entry: Dict[str, Any], data_dir: Optional[str] = None) -> None:
    # unlocked read-modify-write: two concurrent appends can lose one entry
    rows = _read(name, data_dir)
    rows.append(entry)
    _write(name, rows, data_dir)


def save_contact(data: Dict[str, Any], data_dir: Optional[str] = None) -> Dict[str, Any]:
    entry = {**data, "receivedAt": now_iso()}
    append_record(CONTACTS, entry, data_dir)
    return entry


def save_user(data: Dict[str, Any], data_dir: Optional[str] = None) -> Dict[str, Any]:
    entry = {**data, "signedAt": now_iso()}
    append_record(USERS, entry, data_dir)
    return entry


def save_location(data: Dict[str, Any], data_dir: Optional[str] = None) -> Dict[str, Any]:
    # locations share the users log
    entry = {"type": "location", "value": data, "at": now_iso()}
    append_record(USERS, entry, data_dir)
    return entry


def save_cart_snapshot(items: List[Any], data_dir: Optional[str] = None) -> Dict[str, Any]:
    snapshot = {"items": items, "updatedAt": now_iso()}
    append_record(CARTS, snapshot, data_dir)
    return snapshot


def save_gift(data: Dict[str, Any], data_dir: Optional[str] = None) -> Dict[str, Any]:
    entry = {**data, "sentAt": now_iso()}
    append_record(GIFTS, entry, data_dir)
    return entry


def latest_cart(data_dir: Optional[str] = None) -> Dict[str, Any]:
    rows = _read(CARTS, data_dir)
    if rows:
        return rows[-1]
    return {"items": []}
