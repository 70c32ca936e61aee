# app/client/api_client.py
from typing import Any, Dict, List

import requests
from requests import RequestException

from app.client.errors import NetworkError, StorefrontAPIError
from app.domain.outcomes import Created, Duplicate, NeedsReconciliation, Outcome, Rejected
from app.domain.schemas import CartValidationOut, ReconciliationDelta, RemovedItem
from app.utils.retry import http_retry
from app.utils.settings import HTTP_RETRY_ATTEMPTS, HTTP_TIMEOUT_SECONDS, STOREFRONT_API_URL
from app.utils.logging import get_logger

logger = get_logger(__name__)


def _payload(resp) -> Dict[str, Any]:
    try:
        body = resp.json()
    except ValueError:
        return {"error": resp.text}
    return body if isinstance(body, dict) else {"data": body}


class StorefrontClient:
    """
    HTTP client of the storefront API.

    Transport failures are retried, then surface as NetworkError.
    Any HTTP response, whatever its status, is final.
    """

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float = HTTP_TIMEOUT_SECONDS,
        retry_attempts: int = HTTP_RETRY_ATTEMPTS,
        session=None,
        user_id: str | None = None,
    ):
        self.base_url = (base_url or STOREFRONT_API_URL).rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.user_id = user_id
        self._retry = http_retry(retry_attempts)

    def _request(self, method: str, path: str, **kwargs):
        url = f"{self.base_url}{path}"
        logger.debug(f"StorefrontClient {method} {url}")

        headers = {"X-User-Id": self.user_id} if self.user_id else None
        send = self._retry(self.session.request)
        try:
            return send(method, url, timeout=self.timeout, headers=headers, **kwargs)
        except RequestException as e:
            logger.info(f"StorefrontClient {method} {url} unreachable: {e}")
            raise NetworkError(f"{method} {url} failed: {e}") from e

    def _get_json(self, path: str, **kwargs):
        resp = self._request("GET", path, **kwargs)
        if resp.status_code != 200:
            raise StorefrontAPIError(resp.status_code, _payload(resp))
        return resp.json()

    def ping(self) -> bool:
        try:
            return self._request("GET", "/health").status_code == 200
        except NetworkError:
            return False

    def fetch_products(self, page: int = 1, limit: int = 20, search: str = "", category: str = "") -> dict:
        params = {"page": page, "limit": limit}
        if search:
            params["search"] = search
        if category:
            params["category"] = category
        return self._get_json("/products", params=params)

    def fetch_product(self, product_id: str) -> dict:
        return self._get_json(f"/products/{product_id}")

    def fetch_categories(self) -> List[dict]:
        return self._get_json("/categories")

    def fetch_orders(self, email: str) -> List[dict]:
        if not email:
            return []
        return self._get_json("/orders", params={"email": email})

    def fetch_order(self, order_id: str) -> dict:
        return self._get_json(f"/orders/{order_id}")

    def validate_cart(self, items: List[dict]) -> CartValidationOut:
        resp = self._request("POST", "/cart/validate", json={"items": items})
        if resp.status_code != 200:
            raise StorefrontAPIError(resp.status_code, _payload(resp))
        return CartValidationOut.model_validate(resp.json())

    def create_order(self, order_data: dict) -> Outcome:
        resp = self._request("POST", "/orders", json=order_data)
        body = _payload(resp)

        if resp.status_code == 201:
            return Created(body["order"])
        if resp.status_code == 200:
            if body.get("isDuplicate"):
                return Duplicate(body["order"])
            return Created(body["order"])
        if resp.status_code == 400:
            if "adjustedItems" in body:
                return NeedsReconciliation(ReconciliationDelta.model_validate(body))
            removed = [RemovedItem.model_validate(r) for r in body.get("removedItems", [])]
            return Rejected(body.get("error", "Order rejected"), removed)

        raise StorefrontAPIError(resp.status_code, body)
