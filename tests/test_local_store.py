"""Tests for the client's local durable store."""

import pytest

from app.client.errors import StoreUnavailableError
from app.client.store import CART, CATALOG, ORDERS, PENDING_ACTIONS, LocalStore


def test_put_get_delete(local_store):
    local_store.put(CART, "p1", {"productId": "p1", "quantity": 2})

    assert local_store.get(CART, "p1") == {"productId": "p1", "quantity": 2}

    local_store.delete(CART, "p1")
    assert local_store.get(CART, "p1") is None


def test_put_replaces_existing_record(local_store):
    local_store.put(CART, "p1", {"quantity": 1})
    local_store.put(CART, "p1", {"quantity": 4})

    assert local_store.get_all(CART) == [{"quantity": 4}]


def test_collections_are_isolated(local_store):
    local_store.put(CART, "k", {"v": "cart"})
    local_store.put(ORDERS, "k", {"v": "order"})

    local_store.clear(CART)

    assert local_store.get_all(CART) == []
    assert local_store.get(ORDERS, "k") == {"v": "order"}


def test_unknown_collection_rejected(local_store):
    with pytest.raises(ValueError):
        local_store.put("wishlist", "k", {})


def test_returned_records_are_copies(local_store):
    local_store.put(CATALOG, "product:1", {"stock": 3})

    record = local_store.get(CATALOG, "product:1")
    record["stock"] = 0

    assert local_store.get(CATALOG, "product:1") == {"stock": 3}


def test_transaction_spans_collections(local_store):
    with local_store.transaction() as tx:
        tx.put(PENDING_ACTIONS, "a1", {"id": "a1"})
        tx.put(ORDERS, "temp-a1", {"id": "temp-a1"})
        tx.clear(CART)

    assert local_store.get(PENDING_ACTIONS, "a1") == {"id": "a1"}
    assert local_store.get(ORDERS, "temp-a1") == {"id": "temp-a1"}


def test_transaction_rolls_back_on_error(local_store):
    """A failure half way leaves every collection as it was."""
    local_store.put(CART, "p1", {"quantity": 1})

    with pytest.raises(RuntimeError):
        with local_store.transaction() as tx:
            tx.put(PENDING_ACTIONS, "a1", {"id": "a1"})
            tx.clear(CART)
            raise RuntimeError("crash before commit")

    assert local_store.get(PENDING_ACTIONS, "a1") is None
    assert local_store.get(CART, "p1") == {"quantity": 1}


def test_data_survives_reopen(tmp_path):
    url = f"sqlite:///{tmp_path / 'local.db'}"
    store = LocalStore(url, schema_version=3)
    store.put(ORDERS, "o1", {"id": "o1"})
    store.close()

    reopened = LocalStore(url, schema_version=3)

    assert reopened.get(ORDERS, "o1") == {"id": "o1"}
    reopened.close()


def test_version_change_rebuilds_from_empty(tmp_path):
    """A different schema version is not migrated: old data is dropped."""
    url = f"sqlite:///{tmp_path / 'local.db'}"
    store = LocalStore(url, schema_version=2)
    store.put(CART, "p1", {"quantity": 1})
    store.close()

    upgraded = LocalStore(url, schema_version=3)

    assert upgraded.get_all(CART) == []
    upgraded.put(CART, "p2", {"quantity": 2})
    assert upgraded.get(CART, "p2") == {"quantity": 2}
    upgraded.close()


def test_unwritable_location_is_unavailable(tmp_path):
    missing_dir = tmp_path / "no" / "such" / "dir"

    with pytest.raises(StoreUnavailableError):
        LocalStore(f"sqlite:///{missing_dir / 'local.db'}")
