# app/client/cart.py
from concurrent.futures import Future, ThreadPoolExecutor
from decimal import Decimal
import threading
from typing import Any, Callable, Dict, List, Mapping

from app.client.errors import StorefrontClientError
from app.client.models import CartItem
from app.client.store import CART, LocalStore
from app.domain.schemas import CartValidationOut, ReconciliationDelta
from app.utils.logging import get_logger

logger = get_logger(__name__)

CartListener = Callable[[List[CartItem]], None]


class CartManager:
    """
    Cart kept in the local store, one record per product.

    Every mutation is persisted first and then published to subscribers.
    While online, a quantity change also sends the whole cart to the
    server for validation in the background and merges the answer back.
    """

    def __init__(self, store: LocalStore, api=None, is_online: Callable[[], bool] = lambda: False):
        self.store = store
        self.api = api
        self._is_online = is_online
        self._cart: List[CartItem] = []
        self._listeners: List[CartListener] = []
        self._lock = threading.Lock()
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="cart-validation")
        self._validation: Future | None = None

    @property
    def cart(self) -> List[CartItem]:
        with self._lock:
            return list(self._cart)

    def subscribe(self, listener: CartListener) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe():
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def _publish(self, records: List[Dict[str, Any]]) -> List[CartItem]:
        items = [CartItem.model_validate(r) for r in records]
        with self._lock:
            self._cart = items
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(list(items))
            except Exception:
                logger.exception("Cart listener failed")
        return list(items)

    def load_cart(self) -> List[CartItem]:
        return self._publish(self.store.get_all(CART))

    def add_to_cart(self, product: Mapping[str, Any]) -> List[CartItem]:
        """Add one unit of a catalog product, refreshing its cached price and display fields."""
        product_id = str(product["id"])
        with self.store.transaction() as tx:
            record = tx.get(CART, product_id)
            if record:
                item = CartItem.model_validate(record)
                item.quantity += 1
                item.price = Decimal(str(product["price"]))
                item.name = product.get("name", item.name)
                item.image_url = product.get("imageURL", item.image_url)
            else:
                item = CartItem(
                    product_id=product_id,
                    quantity=1,
                    price=Decimal(str(product["price"])),
                    name=product.get("name"),
                    image_url=product.get("imageURL"),
                )
            tx.put(CART, product_id, item.to_record())
            records = tx.get_all(CART)

        logger.info(f"Added {product_id} to cart (quantity {item.quantity})")
        return self._publish(records)

    def update_cart_item(self, product_id: str, quantity: int) -> List[CartItem]:
        with self.store.transaction() as tx:
            if quantity <= 0:
                tx.delete(CART, product_id)
            else:
                record = tx.get(CART, product_id)
                if record:
                    record["quantity"] = quantity
                    tx.put(CART, product_id, record)
            records = tx.get_all(CART)

        cart = self._publish(records)
        if cart and self.api is not None and self._is_online():
            self._validation = self._executor.submit(self._validate_in_background, cart)
        return cart

    def remove_from_cart(self, product_id: str) -> List[CartItem]:
        with self.store.transaction() as tx:
            tx.delete(CART, product_id)
            records = tx.get_all(CART)
        return self._publish(records)

    def clear_cart(self) -> List[CartItem]:
        self.store.clear(CART)
        return self._publish([])

    def reconcile(self, delta: ReconciliationDelta) -> List[CartItem]:
        """Apply server corrections: drop removed lines, take adjusted quantity and price."""
        adjusted = {a.product_id: a for a in delta.adjusted_items}
        removed = {r.product_id for r in delta.removed_items}

        with self.store.transaction() as tx:
            for record in tx.get_all(CART):
                item = CartItem.model_validate(record)
                if item.product_id in removed:
                    tx.delete(CART, item.product_id)
                    continue
                change = adjusted.get(item.product_id)
                if change is None:
                    continue
                if change.adjusted_quantity is not None:
                    if change.adjusted_quantity <= 0:
                        tx.delete(CART, item.product_id)
                        continue
                    item.quantity = change.adjusted_quantity
                item.price = change.new_price
                tx.put(CART, item.product_id, item.to_record())
            records = tx.get_all(CART)

        if not delta.is_empty():
            logger.info(
                f"Cart reconciled: {len(adjusted)} adjusted, {len(removed)} removed, "
                f"new total {delta.new_total_price}"
            )
        return self._publish(records)

    def _validate_in_background(self, cart: List[CartItem]) -> CartValidationOut | None:
        try:
            result = self.api.validate_cart(validation_items(cart))
        except StorefrontClientError as e:
            # non-blocking, the cart stays as the user left it
            logger.warning(f"Cart validation skipped: {e}")
            return None
        if result.has_changes:
            self.reconcile(result)
        return result

    def wait_for_validation(self, timeout: float | None = None) -> CartValidationOut | None:
        if self._validation is None:
            return None
        return self._validation.result(timeout)

    def get_cart_total(self) -> Decimal:
        return sum((item.price * item.quantity for item in self.cart), Decimal("0.00"))

    def get_cart_item_count(self) -> int:
        return sum(item.quantity for item in self.cart)

    def close(self) -> None:
        self._executor.shutdown(wait=True)


def validation_items(cart: List[CartItem]) -> List[dict]:
    return [
        {"productId": item.product_id, "quantity": item.quantity, "price": float(item.price)}
        for item in cart
    ]
