# app/client/errors.py

class StorefrontClientError(Exception):
    """Base class for client side failures."""


class NetworkError(StorefrontClientError):
    """No response from the API (connection refused, DNS, timeout)."""


class StorefrontAPIError(StorefrontClientError):
    """The API answered with a status the caller does not handle."""

    def __init__(self, status_code: int, payload: dict | None = None):
        self.status_code = status_code
        self.payload = payload or {}
        super().__init__(f"HTTP {status_code}: {self.payload.get('error', 'unexpected response')}")


class StoreUnavailableError(StorefrontClientError):
    """Local durable store cannot be opened or written."""
