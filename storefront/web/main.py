from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates

from storefront.constants import CATEGORIES
from storefront.db import jsonstore
from storefront.services.catalog import Catalog, ProductQuery
from storefront.utils.formatters import money

logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).resolve().parent
TEMPLATES_DIR = BASE_DIR / "templates"
STATIC_DIR = BASE_DIR / "static"

templates = Jinja2Templates(directory=str(TEMPLATES_DIR))
templates.env.filters["money"] = money


def _fail(status_code: int = 500) -> JSONResponse:
    return JSONResponse({"ok": False}, status_code=status_code)


async def json_body(request: Request) -> Dict[str, Any]:
    """Request body as a dict; missing or malformed JSON counts as ``{}``."""
    raw = await request.body()
    if not raw:
        return {}
    try:
        data = json.loads(raw)
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


def create_app(data_dir: Optional[str] = None) -> FastAPI:
    app = FastAPI(title="Storefront")
    app.state.data_dir = data_dir
    app.state.catalog = Catalog([])

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    if STATIC_DIR.exists():
        app.mount("/static", StaticFiles(directory=str(STATIC_DIR)), name="static")

    @app.on_event("startup")
    def _startup() -> None:
        jsonstore.init_db(data_dir)
        app.state.catalog = Catalog(jsonstore.read_products(data_dir))
        logger.info("Catalog loaded: %d products", len(app.state.catalog))

    def catalog() -> Catalog:
        return app.state.catalog

    @app.get("/", response_class=HTMLResponse)
    def index(request: Request):
        cat = catalog()
        page = cat.query(ProductQuery())
        return templates.TemplateResponse(
            request,
            "index.html",
            {
                "products": page.results,
                "total": page.total,
                "categories": cat.categories() or CATEGORIES,
            },
        )

    # ---------------- catalog ----------------

    @app.get("/products")
    def list_products(
        q: Optional[str] = None,
        category: Optional[str] = None,
        deal: Optional[str] = None,
        limit: Optional[str] = None,
        offset: Optional[str] = None,
    ):
        try:
            pq = ProductQuery.from_params(q=q, category=category, deal=deal, offset=offset, limit=limit)
            res = catalog().query(pq)
        except Exception:
            logger.exception("product query failed")
            return _fail()
        return {"ok": True, **res.to_dict()}

    @app.get("/products/{product_id}")
    def get_product(product_id: str):
        p = catalog().get(product_id)
        if p is None:
            return _fail(404)
        return {"ok": True, "product": p.to_dict()}

    # ---------------- cart ----------------

    @app.get("/cart")
    def get_cart():
        try:
            cart = jsonstore.latest_cart(data_dir)
        except Exception:
            logger.exception("cart log unreadable")
            cart = {"items": []}
        return {"ok": True, "cart": cart}

    @app.post("/cart")
    def post_cart(data: Dict[str, Any] = Depends(json_body)):
        items = data.get("items") or []
        if not isinstance(items, list):
            items = []
        try:
            snapshot = jsonstore.save_cart_snapshot(items, data_dir)
        except Exception:
            logger.exception("cart snapshot not saved")
            return _fail()
        logger.info("Cart updated: %d items at %s", len(snapshot["items"]), snapshot["updatedAt"])
        return {"ok": True}

    # ---------------- forms ----------------

    @app.post("/contact")
    def contact(data: Dict[str, Any] = Depends(json_body)):
        try:
            jsonstore.save_contact(data, data_dir)
        except Exception:
            logger.exception("contact not saved")
            return _fail()
        logger.info("Contact received: %s", data)
        return {"ok": True, "message": "Contact received"}

    @app.post("/signin")
    def signin(data: Dict[str, Any] = Depends(json_body)):
        try:
            jsonstore.save_user(data, data_dir)
        except Exception:
            logger.exception("signin not saved")
            return _fail()
        return {"ok": True}

    @app.post("/location")
    def location(data: Dict[str, Any] = Depends(json_body)):
        try:
            jsonstore.save_location(data, data_dir)
        except Exception:
            logger.exception("location not saved")
            return _fail()
        return {"ok": True}

    @app.post("/gift")
    def gift(data: Dict[str, Any] = Depends(json_body)):
        try:
            entry = jsonstore.save_gift(data, data_dir)
        except Exception:
            logger.exception("gift not saved")
            return _fail()
        logger.info("Gift sent: %s", entry)
        return {"ok": True}

    @app.get("/health")
    def health():
        return {"ok": True}

    return app


app = create_app()
