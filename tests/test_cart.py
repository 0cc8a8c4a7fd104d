import pytest

from storefront.client.cart import CartStore
from storefront.client.storage import LocalStorage
from storefront.constants import CART_KEY

P1 = {"id": "p1", "title": "Books Product #1", "price": 100, "img": "a.png", "category": "Books"}
P2 = {"id": "p2", "title": "Tools Product #2", "price": 250, "img": "b.png", "category": "Tools"}


@pytest.fixture
def storage(tmp_path):
    return LocalStorage(tmp_path / "client.json")


def test_add_twice_then_zero_removes(storage):
    cart = CartStore(storage)
    cart.add(P1)
    cart.add(P1)
    assert cart.get("p1").qty == 2
    cart.set_qty("p1", 0)
    assert "p1" not in cart
    assert cart.total == 0


def test_add_then_remove_is_empty():
    cart = CartStore()
    cart.add(P1)
    cart.remove("p1")
    assert len(cart) == 0
    assert cart.to_list() == []


def test_set_qty_zero_equals_remove():
    a, b = CartStore(), CartStore()
    for c in (a, b):
        c.add(P1)
        c.add(P2)
    a.set_qty("p1", 0)
    b.remove("p1")
    assert a.to_list() == b.to_list()


def test_negative_qty_removes():
    cart = CartStore()
    cart.add(P1)
    cart.set_qty("p1", -3)
    assert "p1" not in cart


def test_set_qty_on_missing_is_noop():
    cart = CartStore()
    seen = []
    cart.subscribe(seen.append)
    cart.set_qty("p9", 4)
    assert len(cart) == 0
    assert seen == []


def test_total_and_count():
    cart = CartStore()
    cart.add(P1)
    cart.add(P2)
    cart.set_qty("p2", 3)
    cart.add(P1)
    assert cart.count == 5
    assert cart.total == 100 * 2 + 250 * 3
    assert cart.total == sum(it["price"] * it["qty"] for it in cart.to_list())
    cart.clear()
    assert (cart.count, cart.total) == (0, 0)


def test_remove_missing_is_absent():
    cart = CartStore()
    cart.remove("nope")
    assert "nope" not in cart


def test_persisted_and_restored(storage):
    cart = CartStore(storage)
    cart.add(P1)
    cart.add(P2)
    cart.set_qty("p2", 4)

    saved = storage.get_json(CART_KEY)
    assert saved["p2"] == {"title": "Tools Product #2", "price": 250, "qty": 4, "img": "b.png"}

    again = CartStore(storage)
    assert again.to_list() == cart.to_list()


def test_restore_skips_bad_rows(storage):
    storage.set_json(CART_KEY, {"p1": {"title": "x", "price": 5, "qty": 2}, "p2": {"qty": 1}, "p3": {"title": "z", "price": 1, "qty": 0}})
    cart = CartStore(storage)
    assert [it["id"] for it in cart.to_list()] == ["p1"]


def test_corrupt_storage_gives_empty_cart(tmp_path):
    path = tmp_path / "client.json"
    path.write_text("garbage", encoding="utf-8")
    assert len(CartStore(LocalStorage(path))) == 0


def test_listeners_see_every_change():
    cart = CartStore()
    counts = []
    unsubscribe = cart.subscribe(lambda c: counts.append(c.count))
    cart.add(P1)
    cart.add(P1)
    cart.remove("p1")
    unsubscribe()
    cart.add(P2)
    assert counts == [1, 2, 0]


def test_to_list_carries_id():
    cart = CartStore()
    cart.add(P1)
    assert cart.to_list() == [{"id": "p1", "title": "Books Product #1", "price": 100, "qty": 1, "img": "a.png"}]
