"""Tests for the client's catalog cache."""

from unittest.mock import MagicMock

from app.client.catalog import CatalogCache
from app.client.errors import NetworkError


def test_products_and_categories_share_the_collection(local_store):
    cache = CatalogCache(local_store)
    cache.save_products([{"id": "p1", "name": "Jeans", "stock": 3}, {"id": "p2", "name": "Shoes", "stock": 0}])
    cache.save_categories([{"id": "c2", "name": "Sports"}, {"id": "c1", "name": "Clothing"}])

    assert {p["id"] for p in cache.get_products()} == {"p1", "p2"}
    assert [c["name"] for c in cache.get_categories()] == ["Clothing", "Sports"]
    assert cache.get_product("p1")["stock"] == 3

    cache.clear_products()

    assert cache.get_products() == []
    assert len(cache.get_categories()) == 2


def test_decrement_stock_floors_at_zero(local_store):
    cache = CatalogCache(local_store)
    cache.save_products([{"id": "p1", "stock": 2}])

    with local_store.transaction() as tx:
        cache.decrement_stock(tx, "p1", 5)
        cache.decrement_stock(tx, "not-cached", 1)

    assert cache.get_product("p1")["stock"] == 0
    assert cache.get_product("not-cached") is None


def test_refresh_walks_every_page(local_store):
    api = MagicMock()
    api.fetch_products.side_effect = [
        {"products": [{"id": "p1"}], "pagination": {"page": 1, "pages": 2}},
        {"products": [{"id": "p2"}], "pagination": {"page": 2, "pages": 2}},
    ]
    api.fetch_categories.return_value = [{"id": "c1", "name": "Books"}]
    cache = CatalogCache(local_store, api)
    cache.save_products([{"id": "stale"}])

    assert cache.refresh(limit=1) is True

    assert {p["id"] for p in cache.get_products()} == {"p1", "p2"}
    assert cache.get_categories() == [{"id": "c1", "name": "Books"}]


def test_refresh_failure_keeps_cached_copy(local_store):
    api = MagicMock()
    api.fetch_products.side_effect = NetworkError("offline")
    cache = CatalogCache(local_store, api)
    cache.save_products([{"id": "p1"}])

    assert cache.refresh() is False
    assert cache.get_product("p1") == {"id": "p1"}


def test_load_product_caches_fresh_copy(local_store):
    api = MagicMock()
    api.fetch_product.return_value = {"id": "p1", "name": "Jeans", "stock": 7}
    cache = CatalogCache(local_store, api)
    cache.save_products([{"id": "p1", "name": "Jeans", "stock": 2}])

    assert cache.load_product("p1", online=False)["stock"] == 2
    api.fetch_product.assert_not_called()

    assert cache.load_product("p1")["stock"] == 7
    assert cache.get_product("p1")["stock"] == 7


def test_load_product_falls_back_to_cache(local_store):
    api = MagicMock()
    api.fetch_product.side_effect = NetworkError("offline")
    cache = CatalogCache(local_store, api)
    cache.save_products([{"id": "p1", "stock": 2}])

    assert cache.load_product("p1") == {"id": "p1", "stock": 2}
    assert cache.load_product("p9") is None
