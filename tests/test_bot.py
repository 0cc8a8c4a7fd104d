from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from storefront.bot import handlers, states
from storefront.bot.handlers import format_page, format_product
from storefront.bot.keyboards import categories_kb, products_kb
from storefront.bot.states import Session
from storefront.client.api import StorefrontError
from storefront.client.cart import CartStore
from storefront.client.controller import CartController, CatalogBrowser
from storefront.client.storage import LocalStorage
from storefront.constants import BOT_PAGE_MAX
from storefront.services.catalog import generate_products

PRODUCT = {"id": "p4", "title": "Fashion Product #4", "category": "Fashion", "price": 420, "deal": True}


class StubClient:
    def __init__(self):
        self.pushed = []
        self.locations = []

    async def push_cart(self, items):
        self.pushed.append(items)

    async def send_location(self, data):
        self.locations.append(data)


def _message():
    return SimpleNamespace(chat=SimpleNamespace(id=1), answer=AsyncMock())


def _session(tmp_path, client):
    storage = LocalStorage(tmp_path / "1.json")
    return Session(
        chat_id=1,
        storage=storage,
        cart=CartController(CartStore(storage), client),
        browser=CatalogBrowser(client, limit=5),
    )


def test_format_product():
    line = format_product(PRODUCT)
    assert "<b>p4</b>" in line
    assert "₹420" in line
    assert "deal" in line


def test_format_product_escapes_html():
    line = format_product({**PRODUCT, "title": "a<b & c"})
    assert "a&lt;b &amp; c" in line
    assert "a<b" not in line


def test_format_page():
    browser = CatalogBrowser(client=None, limit=1)
    browser.total = 12
    browser.offset = 1
    text = format_page(browser, [PRODUCT])
    assert text.startswith("<b>12 results</b>")
    assert "Fashion Product #4" in text

    browser.total = 0
    assert format_page(browser, []) == "Nothing found"


def test_full_page_fits_one_message():
    browser = CatalogBrowser(client=None, limit=1000, max_limit=BOT_PAGE_MAX)
    assert browser.limit == BOT_PAGE_MAX

    page = [p.to_dict() for p in generate_products(count=5000, deal_ratio=1.0, seed=1)][-browser.limit:]
    browser.total = 5000
    browser.offset = 5000
    assert len(format_page(browser, page)) <= 4096
    kb = products_kb(page, has_more=True)
    assert sum(len(row) for row in kb.inline_keyboard) <= 100


def test_products_keyboard():
    kb = products_kb([PRODUCT], has_more=True)
    assert kb.inline_keyboard[0][0].callback_data == "add:p4"
    assert kb.inline_keyboard[0][1].callback_data == "details:p4"
    assert kb.inline_keyboard[-1][0].callback_data == "more"
    assert len(products_kb([PRODUCT], has_more=False).inline_keyboard) == 1


def test_categories_keyboard():
    kb = categories_kb(["Books", "Tools"])
    assert kb.inline_keyboard[0][0].callback_data == "cat:"
    assert [row[0].callback_data for row in kb.inline_keyboard[1:]] == ["cat:Books", "cat:Tools"]


@pytest.mark.asyncio
async def test_cart_set_rejects_bad_quantity(tmp_path, monkeypatch):
    s = _session(tmp_path, StubClient())
    s.cart.add(PRODUCT)
    monkeypatch.setitem(states.SESSIONS, 1, s)
    message = _message()

    await handlers.cmd_cart_set(message, None, SimpleNamespace(args="p4 abc"))

    assert s.cart.count == 1
    assert message.answer.await_args.args[0].startswith("Usage: /cart_set ID QTY")

    await handlers.cmd_cart_set(message, None, SimpleNamespace(args="p4 0"))
    assert s.cart.count == 0


@pytest.mark.asyncio
async def test_cart_reply_is_escaped(tmp_path, monkeypatch):
    s = _session(tmp_path, StubClient())
    s.cart.add({**PRODUCT, "title": "<i>big</i>"})
    monkeypatch.setitem(states.SESSIONS, 1, s)
    message = _message()

    await handlers.cmd_cart(message, None)

    assert "&lt;i&gt;big&lt;/i&gt;" in message.answer.await_args.args[0]


@pytest.mark.asyncio
async def test_location_reply_is_escaped(tmp_path, monkeypatch):
    client = StubClient()
    monkeypatch.setitem(states.SESSIONS, 1, _session(tmp_path, client))
    monkeypatch.setattr(handlers, "_client", lambda: client)
    message = _message()

    await handlers.cmd_location(message, None, SimpleNamespace(args="a<b"))

    assert client.locations == [{"country": "a<b"}]
    assert message.answer.await_args.args[0] == "📍 Delivering to a&lt;b"


@pytest.mark.asyncio
async def test_catalog_failure_is_reported():
    async def down():
        raise StorefrontError("down")

    message = _message()
    await handlers._answer_page(message, CatalogBrowser(client=None, limit=5), down())
    message.answer.assert_awaited_once_with("❌ Catalog unavailable, try later")


@pytest.mark.asyncio
async def test_superseded_page_is_not_answered():
    async def superseded():
        return None

    message = _message()
    await handlers._answer_page(message, CatalogBrowser(client=None, limit=5), superseded())
    message.answer.assert_not_awaited()


@pytest.mark.asyncio
async def test_category_menu_lists_backend_categories(monkeypatch):
    client = SimpleNamespace(categories=AsyncMock(return_value=["Books", "Toys"]))
    monkeypatch.setattr(handlers, "_client", lambda: client)
    message = _message()

    await handlers.cmd_category(message, None, SimpleNamespace(args=None))

    kb = message.answer.await_args.kwargs["reply_markup"]
    assert [row[0].text for row in kb.inline_keyboard] == ["All", "Books", "Toys"]
