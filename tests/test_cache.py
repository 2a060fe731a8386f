from concurrent.futures import ThreadPoolExecutor

import pytest
from sqlalchemy import update

from laundry import cache
from laundry.db.schema import orders
from laundry.services import orders as order_service


@pytest.mark.cache
class TestViewCache:
    """Generation-checked, size-capped view cache."""

    def test_stores_view_when_nothing_changed(self):
        read_generation = cache.generation()

        assert cache.set_view("orders:detail:a", {"status": "pending"}, read_generation)
        assert cache.get_view("orders:detail:a") == {"status": "pending"}

    def test_view_read_before_invalidation_is_not_stored(self):
        read_generation = cache.generation()
        cache.invalidate_order_views("a")

        assert not cache.set_view("orders:detail:a", {"status": "pending"}, read_generation)
        assert cache.get_view("orders:detail:a") is None

    def test_invalidate_order_views_drops_detail_and_lists(self):
        read_generation = cache.generation()
        cache.set_view(cache.order_detail_key("a"), "a", read_generation)
        cache.set_view(cache.order_detail_key("b"), "b", read_generation)
        cache.set_view(cache.order_list_key(limit=50, offset=0), "page", read_generation)

        cache.invalidate_order_views("a")

        assert cache.get_view(cache.order_detail_key("a")) is None
        assert cache.get_view(cache.order_list_key(limit=50, offset=0)) is None
        assert cache.get_view(cache.order_detail_key("b")) == "b"

    def test_least_recently_used_entry_is_evicted(self, monkeypatch):
        monkeypatch.setattr(cache, "MAX_ENTRIES", 2)
        read_generation = cache.generation()
        cache.set_view("k1", 1, read_generation)
        cache.set_view("k2", 2, read_generation)
        cache.get_view("k1")

        cache.set_view("k3", 3, read_generation)

        assert cache.size() == 2
        assert cache.get_view("k2") is None
        assert cache.get_view("k1") == 1
        assert cache.get_view("k3") == 3

    def test_concurrent_writes_and_invalidations(self):
        def fill(worker):
            for n in range(200):
                cache.set_view(cache.order_list_key(worker=worker, n=n), n, cache.generation())

        def drop(worker):
            for _ in range(200):
                cache.invalidate_prefix(cache.ORDER_LIST_PREFIX)

        with ThreadPoolExecutor(max_workers=8) as pool:
            futures = [pool.submit(fill, w) for w in range(4)] + [pool.submit(drop, w) for w in range(4)]
            for future in futures:
                future.result()

        assert cache.size() <= cache.MAX_ENTRIES


@pytest.mark.cache
class TestCachedOrderViews:
    """Cached views served by the order endpoints."""

    def test_write_during_detail_read_is_not_cached(self, client, engine, order, monkeypatch):
        real_get_order = order_service.get_order

        def get_order_then_concurrent_write(conn, order_id):
            view = real_get_order(conn, order_id)
            # Another request commits and invalidates after this read
            with engine.begin() as other:
                other.execute(update(orders).where(orders.c.id == order_id).values(status="ready"))
            cache.invalidate_order_views(order_id)
            return view

        monkeypatch.setattr(order_service, "get_order", get_order_then_concurrent_write)
        first = client.get(f"/orders/{order['id']}")
        monkeypatch.setattr(order_service, "get_order", real_get_order)

        assert first.json()["status"] == "pending"
        assert cache.get_view(cache.order_detail_key(order["id"])) is None
        assert client.get(f"/orders/{order['id']}").json()["status"] == "ready"

    def test_create_invalidates_list_views(self, client, make_order):
        make_order()
        assert client.get("/orders/").json()["total"] == 1

        make_order()

        assert client.get("/orders/").json()["total"] == 2
