from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ROOT_DIR = Path(__file__).resolve().parents[1]  # .../package
load_dotenv(dotenv_path=ROOT_DIR / ".env")


def _get_env(*keys: str, default: str | None = None) -> str | None:
    for k in keys:
        v = os.getenv(k)
        if v is not None and str(v).strip() != "":
            return v.strip()
    return default


def _get_int(*keys: str, default: int | None = None) -> int | None:
    v = _get_env(*keys, default=None)
    if v is None:
        return default
    return int(v)


def _get_float(*keys: str, default: float | None = None) -> float | None:
    v = _get_env(*keys, default=None)
    if v is None:
        return default
    return float(v)


def _get_path(*keys: str, default: str) -> str:
    v = _get_env(*keys, default=default)
    return str(v)


@dataclass(frozen=True)
class Settings:
    data_dir: str
    host: str
    port: int
    port_attempts: int
    product_count: int
    deal_ratio: float
    catalog_seed: int | None
    page_limit: int
    api_base_url: str
    client_dir: str
    currency: str
    bot_token: str
    toast_timeout: float
    toast_settle: float


settings = Settings(
    data_dir=_get_path("DATA_DIR", "DB_DIR", default=str(ROOT_DIR / "data")),
    host=_get_env("HOST", default="0.0.0.0") or "0.0.0.0",
    port=_get_int("PORT", default=3000) or 3000,
    port_attempts=_get_int("PORT_ATTEMPTS", default=5) or 5,
    product_count=_get_int("PRODUCT_COUNT", default=500) or 500,
    deal_ratio=_get_float("DEAL_RATIO", default=0.12) or 0.0,
    catalog_seed=_get_int("CATALOG_SEED", default=None),
    page_limit=_get_int("PAGE_LIMIT", default=50) or 50,
    api_base_url=_get_env("API_BASE_URL", "STOREFRONT_URL", default="http://localhost:3000")
    or "http://localhost:3000",
    client_dir=_get_path("CLIENT_DIR", default=str(ROOT_DIR / "client_data")),
    currency=_get_env("CURRENCY", default="₹") or "₹",
    bot_token=_get_env("BOT_TOKEN", "TELEGRAM_BOT_TOKEN", default="") or "",
    toast_timeout=_get_float("TOAST_TIMEOUT", default=1.6) or 1.6,
    toast_settle=_get_float("TOAST_SETTLE", default=0.22) or 0.22,
)
