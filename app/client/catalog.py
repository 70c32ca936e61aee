# app/client/catalog.py
from typing import Any, Dict, Iterable, List

from app.client.errors import StorefrontClientError
from app.client.store import CATALOG, LocalStore, StoreTransaction
from app.utils.logging import get_logger

logger = get_logger(__name__)

PRODUCT_PREFIX = "product:"
CATEGORY_PREFIX = "category:"


class CatalogCache:
    """Last known products and categories, readable while offline."""

    def __init__(self, store: LocalStore, api=None):
        self.store = store
        self.api = api

    def save_products(self, products: Iterable[Dict[str, Any]]) -> int:
        count = 0
        with self.store.transaction() as tx:
            for product in products:
                tx.put(CATALOG, f"{PRODUCT_PREFIX}{product['id']}", product)
                count += 1
        return count

    def get_products(self) -> List[Dict[str, Any]]:
        return [data for key, data in self.store.items(CATALOG) if key.startswith(PRODUCT_PREFIX)]

    def get_product(self, product_id: str) -> Dict[str, Any] | None:
        return self.store.get(CATALOG, f"{PRODUCT_PREFIX}{product_id}")

    def load_product(self, product_id: str, online: bool = True) -> Dict[str, Any] | None:
        """Fresh copy from the API when online, cached; otherwise the last known one."""
        if not online or self.api is None:
            return self.get_product(product_id)
        try:
            product = self.api.fetch_product(product_id)
        except StorefrontClientError as e:
            logger.warning(f"Product {product_id} unavailable, using cached copy: {e}")
            return self.get_product(product_id)
        self.save_products([product])
        return product

    def save_categories(self, categories: Iterable[Dict[str, Any]]) -> int:
        count = 0
        with self.store.transaction() as tx:
            for category in categories:
                tx.put(CATALOG, f"{CATEGORY_PREFIX}{category['id']}", category)
                count += 1
        return count

    def get_categories(self) -> List[Dict[str, Any]]:
        categories = [data for key, data in self.store.items(CATALOG) if key.startswith(CATEGORY_PREFIX)]
        return sorted(categories, key=lambda c: c.get("name", ""))

    def clear_products(self) -> None:
        with self.store.transaction() as tx:
            for key, _ in tx.items(CATALOG):
                if key.startswith(PRODUCT_PREFIX):
                    tx.delete(CATALOG, key)

    def decrement_stock(self, tx: StoreTransaction, product_id: str, quantity: int) -> None:
        # local view only, the server recomputes stock on replay
        key = f"{PRODUCT_PREFIX}{product_id}"
        product = tx.get(CATALOG, key)
        if product is None or "stock" not in product:
            return
        product["stock"] = max(0, int(product["stock"]) - quantity)
        tx.put(CATALOG, key, product)

    def refresh(self, limit: int = 100) -> bool:
        """Best effort: pull the whole catalog from the API. False when it failed."""
        if self.api is None:
            return False
        try:
            products = []
            page = 1
            while True:
                body = self.api.fetch_products(page=page, limit=limit)
                products.extend(body.get("products", []))
                if page >= body.get("pagination", {}).get("pages", 1):
                    break
                page += 1
            categories = self.api.fetch_categories()
        except StorefrontClientError as e:
            logger.warning(f"Catalog refresh failed, keeping cached copy: {e}")
            return False

        with self.store.transaction() as tx:
            for key, _ in tx.items(CATALOG):
                tx.delete(CATALOG, key)
            for product in products:
                tx.put(CATALOG, f"{PRODUCT_PREFIX}{product['id']}", product)
            for category in categories:
                tx.put(CATALOG, f"{CATEGORY_PREFIX}{category['id']}", category)
        logger.info(f"Catalog refreshed: {len(products)} products, {len(categories)} categories")
        return True
