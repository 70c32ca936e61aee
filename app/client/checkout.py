# app/client/checkout.py
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Callable, Dict, List, Union
import uuid

from app.client.cart import CartManager, validation_items
from app.client.catalog import CatalogCache
from app.client.errors import NetworkError, StorefrontClientError
from app.client.models import ActionType, CartItem, provisional_order_id
from app.client.queue import ActionQueue, create_action
from app.client.store import CART, ORDERS, LocalStore
from app.domain.outcomes import Created, Duplicate, NeedsReconciliation, Rejected
from app.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class Queued:
    """Order accepted locally, waiting for connectivity."""

    order: Dict[str, Any]


CheckoutResult = Union[Created, Duplicate, NeedsReconciliation, Rejected, Queued]


class CheckoutService:
    def __init__(
        self,
        store: LocalStore,
        cart: CartManager,
        queue: ActionQueue,
        catalog: CatalogCache,
        api,
        is_online: Callable[[], bool] = lambda: False,
    ):
        self.store = store
        self.cart = cart
        self.queue = queue
        self.catalog = catalog
        self.api = api
        self._is_online = is_online

    def submit(self, email: str, shipping_address: str) -> CheckoutResult:
        """
        Place an order for the current cart.

        Online: validate, then POST /orders. A server correction comes back
        as NeedsReconciliation and leaves the cart untouched so the user can
        review it. Offline, or when the network drops mid-way, the order is
        queued with a provisional id and the cart is emptied.
        """
        items = self.cart.load_cart()
        if not items:
            raise ValueError("Cart is empty")
        if not email or not shipping_address:
            raise ValueError("Email and shipping address are required")

        order_data = build_order_data(items, email, shipping_address)
        if not self._is_online():
            return self.queue_offline(order_data)

        try:
            validation = self.api.validate_cart(validation_items(items))
        except NetworkError as e:
            logger.warning(f"Validation unreachable, queueing order offline: {e}")
            return self.queue_offline(order_data)
        if validation.has_changes:
            return NeedsReconciliation(validation)

        try:
            outcome = self.api.create_order(order_data)
        except NetworkError as e:
            logger.warning(f"Order submit unreachable, queueing order offline: {e}")
            return self.queue_offline(order_data)

        if isinstance(outcome, (Created, Duplicate)):
            self.store.put(ORDERS, outcome.order["id"], outcome.order)
            self.cart.clear_cart()
            logger.info(f"Order {outcome.order['id']} placed")
        return outcome

    def queue_offline(self, order_data: Dict[str, Any]) -> Queued:
        """Queue the checkout, decrement cached stock, store the provisional order and empty the cart, all or nothing."""
        client_action_id = order_data["clientActionId"]
        action = create_action(ActionType.CHECKOUT, order_data, action_id=client_action_id)
        provisional = {
            "id": provisional_order_id(client_action_id),
            "clientActionId": client_action_id,
            "lineItems": order_data["lineItems"],
            "totalPrice": order_data["totalPrice"],
            "shippingAddress": order_data["shippingAddress"],
            "email": order_data["email"],
            "status": "pending",
            "createdAt": datetime.now(timezone.utc).isoformat(),
            "isOffline": True,
        }

        with self.store.transaction() as tx:
            self.queue.enqueue(action, tx=tx)
            for line in order_data["lineItems"]:
                self.catalog.decrement_stock(tx, line["productId"], line["quantity"])
            tx.put(ORDERS, provisional["id"], provisional)
            tx.clear(CART)

        self.cart.load_cart()
        logger.info(f"Order {provisional['id']} queued offline")
        return Queued(provisional)

    def orders(self, email: str | None = None) -> List[Dict[str, Any]]:
        """
        Order history, provisional orders included, newest first.

        With an email the cache is filtered on it, case-insensitively. When
        online the server's orders for that email are merged in by id and
        cached, so orders placed in another session show up offline later.
        An unreachable server leaves the local copy.
        """
        orders = {o["id"]: o for o in self.store.get_all(ORDERS)}
        if email is None:
            return _newest_first(orders.values())

        wanted = email.lower()
        orders = {k: o for k, o in orders.items() if (o.get("email") or "").lower() == wanted}
        if self._is_online():
            try:
                server_orders = self.api.fetch_orders(email)
            except StorefrontClientError as e:
                logger.warning(f"Order history unavailable, showing cached orders: {e}")
            else:
                with self.store.transaction() as tx:
                    for order in server_orders:
                        tx.put(ORDERS, order["id"], order)
                        orders[order["id"]] = order
                logger.info(f"Cached {len(server_orders)} server orders for {email}")
        return _newest_first(orders.values())

    def order(self, order_id: str) -> Dict[str, Any] | None:
        """A single order, from the cache first, otherwise from the server when online."""
        order = self.store.get(ORDERS, order_id)
        if order is not None or not self._is_online():
            return order
        try:
            order = self.api.fetch_order(order_id)
        except StorefrontClientError as e:
            logger.warning(f"Order {order_id} unavailable: {e}")
            return None
        self.store.put(ORDERS, order["id"], order)
        return order


def _newest_first(orders) -> List[Dict[str, Any]]:
    return sorted(orders, key=lambda o: o.get("createdAt", ""), reverse=True)


def build_order_data(items: List[CartItem], email: str, shipping_address: str) -> Dict[str, Any]:
    total = sum((item.price * item.quantity for item in items), Decimal("0.00"))
    return {
        "clientActionId": str(uuid.uuid4()),
        "lineItems": [
            {
                "productId": item.product_id,
                "quantity": item.quantity,
                "price": float(item.price),
                "name": item.name,
                "imageURL": item.image_url,
            }
            for item in items
        ],
        "totalPrice": float(total),
        "shippingAddress": shipping_address,
        "email": email,
    }
