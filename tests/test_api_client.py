"""Tests for the StorefrontClient HTTP wrapper."""

from unittest.mock import MagicMock

import pytest
import requests

from app.client.api_client import StorefrontClient
from app.client.errors import NetworkError, StorefrontAPIError
from app.domain.outcomes import Created, Duplicate, NeedsReconciliation, Rejected

API_URL = "http://testserver"


def _response(status_code, body):
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = body
    return response


@pytest.fixture
def api(network):
    return StorefrontClient(API_URL, session=network, retry_attempts=1)


def test_ping(api, network):
    assert api.ping() is True

    network.offline = True
    assert api.ping() is False


def test_fetch_catalog(api, products):
    page = api.fetch_products(limit=5)

    assert len(page["products"]) == 5
    assert page["pagination"]["total"] == len(products)
    assert {c["name"] for c in api.fetch_categories()} >= {"Books", "Sports"}
    assert api.fetch_product(products["Jeans"].id)["name"] == "Jeans"


def test_missing_product_raises_api_error(api):
    with pytest.raises(StorefrontAPIError) as exc_info:
        api.fetch_product("missing")

    assert exc_info.value.status_code == 404
    assert exc_info.value.payload == {"error": "Product not found"}


def test_fetch_orders_by_email(api, client, order_payload):
    placed = client.post("/orders", json=order_payload(("Jeans", 1))).json()["order"]

    assert [o["id"] for o in api.fetch_orders("buyer@example.com")] == [placed["id"]]
    assert api.fetch_order(placed["id"])["lineItems"][0]["product"]["name"] == "Jeans"


def test_validate_cart_parses_delta(api, products):
    planter = products["Ceramic Planter"]

    result = api.validate_cart([{"productId": planter.id, "quantity": 6, "price": 34.0}])

    assert result.has_changes is True
    assert result.adjusted_items[0].adjusted_quantity == 5


def test_create_order_outcomes(api, order_payload):
    """201, 200 duplicate and 400 reconciliation map onto the outcome types."""
    payload = order_payload(("Jeans", 1))

    created = api.create_order(payload)
    duplicate = api.create_order(payload)
    needs_reconciliation = api.create_order(order_payload(("Ceramic Planter", 50)))

    assert isinstance(created, Created)
    assert created.order["clientActionId"] == payload["clientActionId"]
    assert isinstance(duplicate, Duplicate)
    assert duplicate.order["id"] == created.order["id"]
    assert isinstance(needs_reconciliation, NeedsReconciliation)
    assert needs_reconciliation.delta.adjusted_items[0].adjusted_quantity == 5


def test_no_valid_items_is_rejected():
    session = MagicMock()
    session.request.return_value = _response(
        400,
        {"error": "No valid items in order", "removedItems": [{"productId": "p1", "reason": "Out of stock"}]},
    )
    api = StorefrontClient(API_URL, session=session, retry_attempts=1)

    outcome = api.create_order({"clientActionId": "x"})

    assert isinstance(outcome, Rejected)
    assert outcome.reason == "No valid items in order"
    assert outcome.removed_items[0].product_id == "p1"


def test_server_error_is_not_an_outcome():
    session = MagicMock()
    session.request.return_value = _response(500, {"error": "Internal server error"})
    api = StorefrontClient(API_URL, session=session, retry_attempts=1)

    with pytest.raises(StorefrontAPIError) as exc_info:
        api.create_order({"clientActionId": "x"})

    assert exc_info.value.status_code == 500


def test_transport_failures_are_retried_then_raised():
    """Connection errors are retried up to the attempt limit, then become NetworkError."""
    session = MagicMock()
    session.request.side_effect = requests.ConnectionError("refused")
    api = StorefrontClient(API_URL, session=session, retry_attempts=2)

    with pytest.raises(NetworkError):
        api.fetch_categories()

    assert session.request.call_count == 2


def test_http_errors_are_not_retried():
    session = MagicMock()
    session.request.return_value = _response(503, {"error": "busy"})
    api = StorefrontClient(API_URL, session=session, retry_attempts=3)

    with pytest.raises(StorefrontAPIError):
        api.fetch_categories()

    assert session.request.call_count == 1


def test_user_id_header_forwarded():
    session = MagicMock()
    session.request.return_value = _response(200, [])
    api = StorefrontClient(API_URL, session=session, user_id="user-7")

    api.fetch_orders("a@example.com")

    _, kwargs = session.request.call_args
    assert kwargs["headers"] == {"X-User-Id": "user-7"}
    assert kwargs["params"] == {"email": "a@example.com"}


def test_fetch_orders_without_email_skips_request():
    session = MagicMock()
    api = StorefrontClient(API_URL, session=session)

    session.request.assert_not_called()
