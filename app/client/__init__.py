# app/client/__init__.py
from app.client.api_client import StorefrontClient
from app.client.cart import CartManager
from app.client.catalog import CatalogCache
from app.client.checkout import CheckoutService
from app.client.connectivity import ConnectivityMonitor
from app.client.queue import ActionQueue
from app.client.store import LocalStore


class OfflineStorefront:
    """Client components wired around one local store."""

    def __init__(
        self,
        api_url: str | None = None,
        store_url: str | None = None,
        policy: str | None = None,
        session=None,
        online: bool = False,
        retry_attempts: int | None = None,
    ):
        self.store = LocalStore(store_url)
        api_kwargs = {"session": session}
        if retry_attempts is not None:
            api_kwargs["retry_attempts"] = retry_attempts
        self.api = StorefrontClient(api_url, **api_kwargs)
        self.catalog = CatalogCache(self.store, self.api)
        self.queue = ActionQueue(self.store, self.api, policy=policy)
        self.connectivity = ConnectivityMonitor(self.queue, self.api, self.catalog, online=online)
        self.cart = CartManager(self.store, self.api, is_online=lambda: self.connectivity.is_online)
        self.checkout = CheckoutService(
            self.store,
            self.cart,
            self.queue,
            self.catalog,
            self.api,
            is_online=lambda: self.connectivity.is_online,
        )
        self.cart.load_cart()

    def close(self) -> None:
        self.connectivity.stop()
        self.cart.close()
        self.store.close()
